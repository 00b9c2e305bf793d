"""Mini README: Shared pytest fixtures.

Structure:
    * database - fresh in-memory SQLite database with the schema created.
    * recorder - notifier capturing published payloads.
    * seed_members - helper inserting members (and optional transactions).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterable, Iterator, List, Tuple

import pytest

from paylog.storage import Database, LedgerTransaction, Member


class RecordingNotifier:
    def __init__(self) -> None:
        self.payloads: List[Dict[str, object]] = []

    def publish(self, payload: Dict[str, object]) -> None:
        self.payloads.append(payload)


@pytest.fixture
def database() -> Iterator[Database]:
    db = Database("sqlite+pysqlite:///:memory:")
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def recorder() -> RecordingNotifier:
    return RecordingNotifier()


SeedMembers = Callable[..., None]


@pytest.fixture
def seed_members(database: Database) -> SeedMembers:
    """Insert ``(id, first, last)`` members plus ``{member_id: [amount, ...]}`` history."""

    def _seed(
        members: Iterable[Tuple[int, str, str]],
        transactions: Dict[int, List[str]] | None = None,
    ) -> None:
        transactions = transactions or {}
        with database.session_scope() as session:
            for member_id, first_name, last_name in members:
                amounts = [Decimal(value) for value in transactions.get(member_id, [])]
                session.add(
                    Member(
                        id=member_id,
                        first_name=first_name,
                        last_name=last_name,
                        balance=sum(amounts, Decimal("0.00")),
                    )
                )
                session.flush()
                for amount in amounts:
                    session.add(
                        LedgerTransaction(
                            member_id=member_id,
                            occurred_on=date(2024, 1, 1),
                            description="seed",
                            amount=amount,
                        )
                    )

    return _seed
