"""Mini README: Single admin credential with bcrypt hashing.

Structure:
    * hash_password / verify_password / looks_hashed - bcrypt helpers.
    * AdminAuthenticator - first-time setup, login and password changes.

The first successful login when no credential exists stores the password
(it must be confirmed). Credentials saved as plain text by older installs
are accepted once and replaced with a bcrypt hash.
"""

from __future__ import annotations

from typing import Optional

import bcrypt
from sqlalchemy import delete, select

from ..errors import AuthError, ValidationError
from ..logging_utils import get_logger
from ..storage import AdminCredential, Database
from .sessions import SessionStore

LOGGER = get_logger(__name__)

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def looks_hashed(value: str) -> bool:
    return value.startswith(_BCRYPT_PREFIXES)


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, saved: Optional[str]) -> bool:
    """Check ``password`` against a bcrypt hash or a legacy plain value."""

    if not saved:
        return False
    if looks_hashed(saved):
        try:
            return bcrypt.checkpw(password.encode("utf-8"), saved.encode("ascii"))
        except ValueError:
            LOGGER.warning("Stored admin hash is malformed")
            return False
    return password == saved


class AdminAuthenticator:
    """Authenticate the admin and hand out sessions."""

    def __init__(self, database: Database, sessions: SessionStore, *, bcrypt_rounds: int = 12) -> None:
        self._database = database
        self.sessions = sessions
        self._bcrypt_rounds = bcrypt_rounds

    def has_credential(self) -> bool:
        with self._database.session_scope() as session:
            return bool(self._saved_password(session))

    def login(self, password: str, confirm_password: Optional[str] = None) -> str:
        """Verify (or initially set) the admin password and open a session."""

        if not isinstance(password, str) or not password:
            raise ValidationError("Password is required.")

        with self._database.session_scope() as session:
            saved = self._saved_password(session)
            if not saved:
                if confirm_password != password:
                    raise ValidationError("Passwords do not match.")
                self._store(session, password)
                LOGGER.info("Admin password initialised")
            else:
                if not verify_password(password, saved):
                    LOGGER.warning("Rejected admin login attempt")
                    raise AuthError()
                if not looks_hashed(saved):
                    self._store(session, password)
                    LOGGER.info("Upgraded legacy admin password to bcrypt")

        return self.sessions.create()

    def logout(self, token: Optional[str]) -> None:
        self.sessions.revoke(token)

    def is_authenticated(self, token: Optional[str]) -> bool:
        return self.sessions.validate(token)

    def change_password(self, current_password: str, new_password: str, confirm_password: str) -> None:
        if not new_password or new_password != confirm_password:
            raise ValidationError("Passwords do not match.")

        with self._database.session_scope() as session:
            if not verify_password(current_password, self._saved_password(session)):
                LOGGER.warning("Rejected admin password change")
                raise AuthError()
            self._store(session, new_password)
        LOGGER.info("Admin password changed")

    @staticmethod
    def _saved_password(session) -> str:
        saved = session.execute(select(AdminCredential.password).limit(1)).scalar_one_or_none()
        return saved or ""

    def _store(self, session, password: str) -> None:
        session.execute(delete(AdminCredential))
        session.add(AdminCredential(password=hash_password(password, self._bcrypt_rounds)))


__all__ = ["AdminAuthenticator", "hash_password", "looks_hashed", "verify_password"]
