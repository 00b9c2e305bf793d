"""Mini README: In-process admin session store.

Structure:
    * SessionStore - issues tokens on login, validates them with a sliding
      idle expiry and revokes them on logout.

Sessions live in this process only. Running several application instances
requires replacing the store with a shared one (database or cache) that
offers the same four methods.
"""

from __future__ import annotations

import secrets
import threading
import time
from typing import Callable, Dict, Optional

from ..logging_utils import get_logger

LOGGER = get_logger(__name__)

DEFAULT_MAX_IDLE_SECONDS = 8 * 60 * 60


class SessionStore:
    """Map opaque session tokens to their last-seen timestamp."""

    def __init__(
        self,
        max_idle_seconds: float = DEFAULT_MAX_IDLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_idle_seconds = max_idle_seconds
        self._clock = clock
        self._last_seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_seen)

    def create(self) -> str:
        """Issue a new token, first dropping sessions that went idle too long."""

        self.purge_expired()
        token = secrets.token_hex(32)
        with self._lock:
            self._last_seen[token] = self._clock()
        LOGGER.info("Admin session created")
        return token

    def validate(self, token: Optional[str]) -> bool:
        """Return whether ``token`` is live, refreshing its idle timer."""

        if not token:
            return False
        now = self._clock()
        with self._lock:
            last_seen = self._last_seen.get(token)
            if last_seen is None:
                return False
            if now - last_seen > self.max_idle_seconds:
                del self._last_seen[token]
                LOGGER.info("Admin session expired")
                return False
            self._last_seen[token] = now
            return True

    def revoke(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            removed = self._last_seen.pop(token, None)
        if removed is not None:
            LOGGER.info("Admin session revoked")

    def purge_expired(self) -> int:
        """Drop every expired session and return how many were removed."""

        now = self._clock()
        with self._lock:
            expired = [
                token
                for token, last_seen in self._last_seen.items()
                if now - last_seen > self.max_idle_seconds
            ]
            for token in expired:
                del self._last_seen[token]
        if expired:
            LOGGER.info("Purged %s expired admin sessions", len(expired))
        return len(expired)


__all__ = ["SessionStore"]
