"""Mini README: Persistent storage for PayLog.

Exposes the ORM models and the ``Database`` wrapper that owns the SQLAlchemy
engine and the transactional ``session_scope`` used by the ledger engine and
roster reconciler.
"""

from .database import Database
from .models import MAX_MEMBER_ID, AdminCredential, Base, LedgerTransaction, Member

__all__ = [
    "AdminCredential",
    "Base",
    "Database",
    "LedgerTransaction",
    "MAX_MEMBER_ID",
    "Member",
]
