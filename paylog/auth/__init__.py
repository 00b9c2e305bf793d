"""Mini README: Admin authentication for PayLog.

``SessionStore`` tracks live admin sessions and ``AdminAuthenticator``
verifies the single admin password, gating every ledger and roster endpoint.
"""

from .admin import AdminAuthenticator, hash_password, looks_hashed, verify_password
from .sessions import SessionStore

__all__ = [
    "AdminAuthenticator",
    "SessionStore",
    "hash_password",
    "looks_hashed",
    "verify_password",
]
