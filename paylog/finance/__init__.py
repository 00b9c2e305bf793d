"""Mini README: Money handling and the balance-consistency engine.

``money`` holds the integer-cent conversions used at every boundary and
``ledger`` the engine that applies and undoes transactions against member
balances inside a single storage transaction.
"""

from .ledger import (
    LedgerEngine,
    LedgerResult,
    MemberDetail,
    MemberListing,
    MemberSnapshot,
    TransactionKind,
    TransactionRecord,
)
from .money import (
    MAX_CENTS,
    cents_to_decimal,
    cents_to_decimal_string,
    format_currency,
    parse_to_cents,
)

__all__ = [
    "LedgerEngine",
    "LedgerResult",
    "MAX_CENTS",
    "MemberDetail",
    "MemberListing",
    "MemberSnapshot",
    "TransactionKind",
    "TransactionRecord",
    "cents_to_decimal",
    "cents_to_decimal_string",
    "format_currency",
    "parse_to_cents",
]
