"""Mini README: Ledger engine keeping member balances consistent.

Structure:
    * TransactionKind - enum of charge versus credit entries.
    * TransactionRecord / MemberSnapshot / MemberDetail / MemberListing -
      read models handed to the web layer.
    * LedgerResult - outcome of an apply or undo.
    * LedgerEngine - apply, undo and read operations over the database.

Every mutation runs inside one ``Database.session_scope``: the member row is
locked, the transaction row inserted or deleted and the cached balance
rewritten before the single commit, so the balance always equals the sum of
the member's transactions. Arithmetic happens on integer cents. A
notification is published only after the commit succeeded.

Only the most recent transaction can be undone; repeated undos walk back one
transaction at a time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..errors import NotFoundError, ValidationError
from ..logging_utils import get_logger
from ..notifications import ChangeNotifier, NullNotifier, member_updated
from ..storage import MAX_MEMBER_ID, Database, LedgerTransaction, Member
from .money import (
    MAX_CENTS,
    cents_to_decimal,
    cents_to_decimal_string,
    format_currency,
    parse_to_cents,
)

LOGGER = get_logger(__name__)


class TransactionKind(str, Enum):
    """Enumerate the supported transaction kinds."""

    CHARGE = "charge"
    CREDIT = "credit"

    @classmethod
    def from_str(cls, value: str) -> "TransactionKind":
        """Coerce arbitrary casing into a valid transaction kind."""

        try:
            normalised = value.strip().lower()
            return cls(normalised)
        except (ValueError, AttributeError) as error:
            raise ValidationError(f"Unsupported transaction type: {value}") from error

    def signed(self, amount_cents: int) -> int:
        """Return the balance delta for a positive amount of this kind."""

        return amount_cents if self is TransactionKind.CREDIT else -amount_cents


def _parse_date(value: object) -> date:
    """Parse ISO formatted strings or date objects safely."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip())
        except ValueError as error:
            raise ValidationError(f"Invalid transaction date: {value}") from error
    raise ValidationError("Transaction date is required.")


def _check_member_id(member_id: int) -> None:
    # Ids outside the Integer column range cannot name a stored member.
    if not 1 <= member_id <= MAX_MEMBER_ID:
        raise NotFoundError("Member not found.")


def _check_balance(balance_cents: int) -> None:
    if abs(balance_cents) > MAX_CENTS:
        raise ValidationError("Resulting balance is out of range.")


def format_member_name(member_id: int, first_name: str, last_name: str, pad_length: int) -> str:
    """Return the roster label, e.g. ``007 – Ada Lovelace``."""

    return f"{str(member_id).zfill(pad_length)} – {first_name} {last_name}"


@dataclass(slots=True)
class TransactionRecord:
    """Serialisable view of a stored transaction."""

    transaction_id: int
    member_id: int
    occurred_on: date
    description: str
    amount_cents: int

    @classmethod
    def from_row(cls, row: LedgerTransaction) -> "TransactionRecord":
        return cls(
            transaction_id=row.id,
            member_id=row.member_id,
            occurred_on=row.occurred_on,
            description=row.description or "",
            amount_cents=parse_to_cents(row.amount),
        )

    def as_dict(self) -> Dict[str, object]:
        return {
            "id": self.transaction_id,
            "member_id": self.member_id,
            "date": self.occurred_on.isoformat(),
            "description": self.description,
            "amount": cents_to_decimal_string(self.amount_cents),
        }


@dataclass(slots=True)
class MemberSnapshot:
    """Member fields with the balance expressed in cents."""

    member_id: int
    first_name: str
    last_name: str
    balance_cents: int
    display_name: str = ""

    @classmethod
    def from_row(cls, row: Member, *, pad_length: int = 1) -> "MemberSnapshot":
        return cls(
            member_id=row.id,
            first_name=row.first_name,
            last_name=row.last_name,
            balance_cents=parse_to_cents(row.balance),
            display_name=format_member_name(row.id, row.first_name, row.last_name, pad_length),
        )

    def as_dict(self) -> Dict[str, object]:
        return {
            "id": self.member_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "balance": cents_to_decimal_string(self.balance_cents),
            "displayName": self.display_name,
        }


@dataclass(slots=True)
class MemberDetail:
    member: MemberSnapshot
    transactions: List[TransactionRecord] = field(default_factory=list)

    def as_dict(self) -> Dict[str, object]:
        return {
            "member": self.member.as_dict(),
            "transactions": [record.as_dict() for record in self.transactions],
        }


@dataclass(slots=True)
class MemberListing:
    pad_length: int
    members: List[MemberSnapshot]

    def as_dict(self) -> Dict[str, object]:
        return {
            "padLength": self.pad_length,
            "members": [member.as_dict() for member in self.members],
        }


@dataclass(slots=True)
class LedgerResult:
    """Balance after an apply or undo and the transaction it concerned."""

    member_id: int
    balance_cents: int
    transaction_id: int

    @property
    def balance(self) -> str:
        return cents_to_decimal_string(self.balance_cents)


class LedgerEngine:
    """Apply and undo transactions while keeping cached balances exact."""

    def __init__(self, database: Database, notifier: Optional[ChangeNotifier] = None) -> None:
        self._database = database
        self._notifier: ChangeNotifier = notifier if notifier is not None else NullNotifier()

    def list_members(self) -> MemberListing:
        """Return every member ordered by id with padded display names."""

        with self._database.session_scope() as session:
            max_id = session.execute(select(func.max(Member.id))).scalar_one_or_none() or 0
            pad_length = len(str(max_id))
            rows = session.execute(select(Member).order_by(Member.id)).scalars().all()
            members = [MemberSnapshot.from_row(row, pad_length=pad_length) for row in rows]
        LOGGER.debug("Listed %s members", len(members))
        return MemberListing(pad_length=pad_length, members=members)

    def get_member(self, member_id: int) -> MemberDetail:
        """Return a member and its transactions, newest first."""

        _check_member_id(member_id)
        with self._database.session_scope() as session:
            row = session.get(Member, member_id)
            if row is None:
                raise NotFoundError("Member not found.")
            transactions = session.execute(
                select(LedgerTransaction)
                .where(LedgerTransaction.member_id == member_id)
                .order_by(LedgerTransaction.id.desc())
            ).scalars().all()
            return MemberDetail(
                member=MemberSnapshot.from_row(row, pad_length=len(str(row.id))),
                transactions=[TransactionRecord.from_row(item) for item in transactions],
            )

    def apply_transaction(
        self,
        member_id: int,
        occurred_on: date | str,
        description: Optional[str],
        amount_cents: int,
        kind: TransactionKind | str,
    ) -> LedgerResult:
        """Record a charge or credit and return the member's new balance."""

        if not isinstance(kind, TransactionKind):
            kind = TransactionKind.from_str(str(kind))
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
            raise ValidationError("Amount must be greater than zero.")
        if amount_cents > MAX_CENTS:
            raise ValidationError("Amount is too large.")
        transaction_date = _parse_date(occurred_on)
        signed_cents = kind.signed(amount_cents)

        with self._database.session_scope() as session:
            member = self._lock_member(session, member_id)
            next_cents = parse_to_cents(member.balance) + signed_cents
            _check_balance(next_cents)
            entry = LedgerTransaction(
                member_id=member_id,
                occurred_on=transaction_date,
                description=(description or "").strip(),
                amount=cents_to_decimal(signed_cents),
            )
            session.add(entry)
            session.flush()
            member.balance = cents_to_decimal(next_cents)
            result = LedgerResult(
                member_id=member_id, balance_cents=next_cents, transaction_id=entry.id
            )

        LOGGER.info(
            "Applied %s of %s to member %s (transaction %s, balance %s)",
            kind.value,
            format_currency(amount_cents),
            member_id,
            result.transaction_id,
            format_currency(result.balance_cents),
        )
        self._notifier.publish(member_updated(member_id))
        return result

    def undo_last_transaction(self, member_id: int) -> LedgerResult:
        """Remove the member's most recently inserted transaction."""

        with self._database.session_scope() as session:
            member = self._lock_member(session, member_id)
            last = session.execute(
                select(LedgerTransaction)
                .where(LedgerTransaction.member_id == member_id)
                .order_by(LedgerTransaction.id.desc())
                .limit(1)
            ).scalar_one_or_none()
            if last is None:
                raise NotFoundError("No transactions to undo.")
            next_cents = parse_to_cents(member.balance) - parse_to_cents(last.amount)
            _check_balance(next_cents)
            transaction_id = last.id
            session.delete(last)
            member.balance = cents_to_decimal(next_cents)
            result = LedgerResult(
                member_id=member_id, balance_cents=next_cents, transaction_id=transaction_id
            )

        LOGGER.info(
            "Undid transaction %s for member %s (balance %s)",
            result.transaction_id,
            member_id,
            format_currency(result.balance_cents),
        )
        self._notifier.publish(member_updated(member_id))
        return result

    @staticmethod
    def _lock_member(session: Session, member_id: int) -> Member:
        _check_member_id(member_id)
        member = session.execute(
            select(Member).where(Member.id == member_id).with_for_update()
        ).scalar_one_or_none()
        if member is None:
            raise NotFoundError("Member not found.")
        return member


__all__ = [
    "LedgerEngine",
    "LedgerResult",
    "MemberDetail",
    "MemberListing",
    "MemberSnapshot",
    "TransactionKind",
    "TransactionRecord",
    "format_member_name",
]
