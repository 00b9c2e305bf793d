"""Mini README: Tests covering the balance-consistency engine.

Structure:
    * apply/undo behaviour - signs, round trips and single-level undo.
    * invariants - cached balance equals the sum of stored transactions.
    * failures - unknown members, empty history and bad input leave no trace.
    * concurrency - parallel applies on one member never lose an amount.
"""

from __future__ import annotations

import threading
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from paylog.errors import NotFoundError, StorageError, ValidationError
from paylog.finance import LedgerEngine, TransactionKind
from paylog.finance.money import MAX_CENTS, parse_to_cents
from paylog.storage import MAX_MEMBER_ID, Database, LedgerTransaction, Member


def _balance_and_sum(database: Database, member_id: int) -> tuple[int, int]:
    with database.session_scope() as session:
        balance = session.get(Member, member_id).balance
        amounts = session.execute(
            select(LedgerTransaction.amount).where(LedgerTransaction.member_id == member_id)
        ).scalars()
        total = sum(parse_to_cents(amount) for amount in amounts)
    return parse_to_cents(balance), total


def test_apply_charge_and_credit_update_balance(database, recorder, seed_members) -> None:
    """Credits add, charges subtract, and observers hear about each change."""

    seed_members([(1, "Ada", "Lovelace")])
    engine = LedgerEngine(database, notifier=recorder)

    credit = engine.apply_transaction(1, "2024-05-01", "Deposit", 2500, TransactionKind.CREDIT)
    charge = engine.apply_transaction(1, date(2024, 5, 2), "Lunch", 1230, "Charge")

    assert credit.balance == "25.00"
    assert charge.balance == "12.70"
    assert charge.transaction_id > credit.transaction_id
    assert recorder.payloads == [
        {"type": "memberUpdated", "memberId": 1},
        {"type": "memberUpdated", "memberId": 1},
    ]
    balance, total = _balance_and_sum(database, 1)
    assert balance == total == 1270


def test_credit_then_undo_restores_prior_balance(database, seed_members) -> None:
    seed_members([(1, "Ada", "Lovelace")], transactions={1: ["-3.15"]})
    engine = LedgerEngine(database)

    engine.apply_transaction(1, "2024-05-01", None, 987, "credit")
    undone = engine.undo_last_transaction(1)

    assert undone.balance_cents == -315
    assert _balance_and_sum(database, 1) == (-315, -315)


def test_undo_removes_most_recent_insert_not_latest_date(database, seed_members) -> None:
    """Undo follows insertion order, and two undos remove two entries."""

    seed_members([(1, "Ada", "Lovelace")])
    engine = LedgerEngine(database)
    first = engine.apply_transaction(1, "2030-01-01", "future dated", 100, "credit")
    second = engine.apply_transaction(1, "2020-01-01", "back dated", 200, "credit")

    assert engine.undo_last_transaction(1).transaction_id == second.transaction_id
    assert engine.undo_last_transaction(1).transaction_id == first.transaction_id
    assert _balance_and_sum(database, 1) == (0, 0)


def test_invariant_holds_across_mixed_sequence(database, seed_members) -> None:
    seed_members([(1, "Ada", "Lovelace"), (2, "Alan", "Turing")])
    engine = LedgerEngine(database)
    operations = [
        ("apply", 1, 500, "credit"),
        ("apply", 1, 120, "charge"),
        ("apply", 2, 999, "charge"),
        ("undo", 1, None, None),
        ("apply", 1, 1, "charge"),
        ("undo", 2, None, None),
        ("apply", 2, 45, "credit"),
    ]
    for action, member_id, amount, kind in operations:
        if action == "apply":
            engine.apply_transaction(member_id, "2024-06-01", "", amount, kind)
        else:
            engine.undo_last_transaction(member_id)
        for checked in (1, 2):
            balance, total = _balance_and_sum(database, checked)
            assert balance == total

    assert _balance_and_sum(database, 1)[0] == 499
    assert _balance_and_sum(database, 2)[0] == 45


def test_undo_without_transactions_is_not_found(database, recorder, seed_members) -> None:
    seed_members([(1, "Ada", "Lovelace")])
    engine = LedgerEngine(database, notifier=recorder)

    with pytest.raises(NotFoundError, match="No transactions to undo"):
        engine.undo_last_transaction(1)

    assert _balance_and_sum(database, 1) == (0, 0)
    assert recorder.payloads == []


def test_unknown_member_is_not_found(database) -> None:
    engine = LedgerEngine(database)

    with pytest.raises(NotFoundError, match="Member not found"):
        engine.apply_transaction(42, "2024-01-01", "", 100, "credit")
    with pytest.raises(NotFoundError):
        engine.undo_last_transaction(42)
    with pytest.raises(NotFoundError):
        engine.get_member(42)


@pytest.mark.parametrize(
    ("occurred_on", "amount", "kind"),
    [
        ("2024-02-30", 100, "credit"),
        ("", 100, "credit"),
        ("2024-01-01", 0, "credit"),
        ("2024-01-01", -100, "charge"),
        ("2024-01-01", 100, "refund"),
    ],
)
def test_invalid_input_leaves_no_trace(database, seed_members, occurred_on, amount, kind) -> None:
    seed_members([(1, "Ada", "Lovelace")])
    engine = LedgerEngine(database)

    with pytest.raises(ValidationError):
        engine.apply_transaction(1, occurred_on, "bad", amount, kind)

    assert engine.get_member(1).transactions == []


def test_amounts_beyond_column_precision_are_rejected(database, seed_members) -> None:
    """Amounts and balances stay within what a Numeric(12, 2) column stores exactly."""

    seed_members([(1, "Ada", "Lovelace")], {1: ["9999999999.00"]})
    engine = LedgerEngine(database)

    with pytest.raises(ValidationError, match="too large"):
        engine.apply_transaction(1, "2024-01-01", "", 123456789012345678, "credit")
    with pytest.raises(ValidationError, match="out of range"):
        engine.apply_transaction(1, "2024-01-01", "", 100, "credit")

    engine.apply_transaction(1, "2024-01-01", "", 99, "credit")
    assert _balance_and_sum(database, 1) == (MAX_CENTS, MAX_CENTS)
    assert len(engine.get_member(1).transactions) == 2


def test_apply_logs_amounts_as_currency(database, seed_members, caplog) -> None:
    seed_members([(1, "Ada", "Lovelace")])
    engine = LedgerEngine(database)

    with caplog.at_level("INFO", logger="paylog.finance.ledger"):
        engine.apply_transaction(1, "2024-01-01", "", 1230, "charge")

    assert "charge of $12.30 to member 1" in caplog.text
    assert "balance -$12.30" in caplog.text


def test_ids_outside_the_integer_range_are_not_found(database) -> None:
    engine = LedgerEngine(database)

    for member_id in (0, -1, MAX_MEMBER_ID + 1, 99999999999999999999):
        with pytest.raises(NotFoundError):
            engine.get_member(member_id)
        with pytest.raises(NotFoundError):
            engine.apply_transaction(member_id, "2024-01-01", "", 100, "credit")
        with pytest.raises(NotFoundError):
            engine.undo_last_transaction(member_id)


def test_storage_failure_rolls_back_insert(database, seed_members, monkeypatch) -> None:
    """A failure after the insert must not leave a transaction or stale balance."""

    seed_members([(1, "Ada", "Lovelace")])
    engine = LedgerEngine(database)

    from sqlalchemy.exc import OperationalError

    import paylog.finance.ledger as ledger_module

    original = ledger_module.cents_to_decimal
    calls: list[int] = []

    def _explode(cents):
        calls.append(cents)
        if len(calls) > 1:
            raise OperationalError("UPDATE members", {}, Exception("disk full"))
        return original(cents)

    monkeypatch.setattr(ledger_module, "cents_to_decimal", _explode)

    with pytest.raises(StorageError):
        engine.apply_transaction(1, "2024-01-01", "", 100, "credit")

    monkeypatch.undo()
    assert engine.get_member(1).transactions == []
    assert _balance_and_sum(database, 1) == (0, 0)


def test_list_members_pads_display_names(database, seed_members) -> None:
    seed_members([(7, "Ada", "Lovelace"), (120, "Alan", "Turing")], transactions={7: ["1.50"]})
    engine = LedgerEngine(database)

    listing = engine.list_members()

    assert listing.pad_length == 3
    assert [member.display_name for member in listing.members] == [
        "007 – Ada Lovelace",
        "120 – Alan Turing",
    ]
    payload = listing.as_dict()
    assert payload["members"][0]["balance"] == "1.50"


def test_get_member_lists_transactions_newest_first(database, seed_members) -> None:
    seed_members([(1, "Ada", "Lovelace")])
    engine = LedgerEngine(database)
    engine.apply_transaction(1, "2024-01-01", "first", 100, "credit")
    engine.apply_transaction(1, "2024-01-02", "second", 40, "charge")

    detail = engine.get_member(1).as_dict()

    assert [row["description"] for row in detail["transactions"]] == ["second", "first"]
    assert detail["transactions"][0]["amount"] == "-0.40"
    assert detail["member"]["balance"] == "0.60"


def test_concurrent_applies_never_lose_an_amount(tmp_path) -> None:
    """Parallel read-modify-write cycles on one balance serialise cleanly."""

    database = Database(f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}")
    database.create_schema()
    with database.session_scope() as session:
        session.add(Member(id=1, first_name="Ada", last_name="Lovelace", balance=Decimal("0")))
    engine = LedgerEngine(database)

    workers = 4
    per_worker = 10
    barrier = threading.Barrier(workers)
    failures: list[BaseException] = []

    def _worker(amount: int) -> None:
        barrier.wait()
        try:
            for _ in range(per_worker):
                engine.apply_transaction(1, "2024-01-01", "", amount, "credit")
        except BaseException as error:  # pragma: no cover - surfaced below
            failures.append(error)

    threads = [threading.Thread(target=_worker, args=(index + 1,)) for index in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    try:
        assert failures == []
        expected = per_worker * sum(range(1, workers + 1))
        assert _balance_and_sum(database, 1) == (expected, expected)
    finally:
        database.dispose()
