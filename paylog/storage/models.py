"""Mini README: SQLAlchemy ORM models for the PayLog ledger.

Structure:
    * Base - declarative base shared by every table.
    * Member - roster entry with a cached running balance.
    * LedgerTransaction - signed movement against one member's balance.
    * AdminCredential - the single admin password hash.

``Member.balance`` is a cached sum kept in step with the member's
transactions by ``LedgerEngine`` inside the same storage transaction.
Transactions cascade-delete with their member at the database level and in
the ORM relationship.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String, Text, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# Largest value an Integer primary key holds on every supported backend.
MAX_MEMBER_ID = 2**31 - 1


class Base(DeclarativeBase):
    pass


class Member(Base):
    __tablename__ = "members"

    # Identifiers come from the uploaded roster, never from a sequence.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00"), server_default=text("0")
    )

    transactions: Mapped[List["LedgerTransaction"]] = relationship(
        back_populates="member",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"Member(id={self.id!r}, balance={self.balance!r})"


class LedgerTransaction(Base):
    __tablename__ = "transactions"
    # AUTOINCREMENT keeps SQLite from reusing the id of an undone transaction.
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    member_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    occurred_on: Mapped[date] = mapped_column("date", Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    member: Mapped[Member] = relationship(back_populates="transactions")

    def __repr__(self) -> str:
        return (
            f"LedgerTransaction(id={self.id!r}, member_id={self.member_id!r}, "
            f"amount={self.amount!r})"
        )


class AdminCredential(Base):
    __tablename__ = "admin_credentials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    password: Mapped[str] = mapped_column(String, nullable=False)


__all__ = ["AdminCredential", "Base", "LedgerTransaction", "MAX_MEMBER_ID", "Member"]
