"""Mini README: Change notifications fanned out to connected observers.

Structure:
    * ChangeNotifier - protocol consumed by the ledger engine and reconciler.
    * NullNotifier - drop-in notifier used by the CLI and tests.
    * SubscriberRegistry - WebSocket fan-out with explicit add/remove.
    * member_updated / members_updated - payload builders.

Delivery is best-effort and at-most-once. ``publish`` may be called from a
worker thread: each send is scheduled onto the event loop that owns the
socket. Observers whose loop has gone away or whose send fails are dropped;
nobody retries.
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from typing import Any, Dict, List, Protocol, Tuple

from .logging_utils import get_logger

LOGGER = get_logger(__name__)

Payload = Dict[str, Any]


def member_updated(member_id: int) -> Payload:
    return {"type": "memberUpdated", "memberId": member_id}


def members_updated() -> Payload:
    return {"type": "membersUpdated"}


class ChangeNotifier(Protocol):
    def publish(self, payload: Payload) -> None:
        ...


class NullNotifier:
    """Notifier that discards every payload."""

    def publish(self, payload: Payload) -> None:
        LOGGER.debug("Discarding notification %s", payload)


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None:
        ...


class SubscriberRegistry:
    """Track live observers and broadcast payloads to them."""

    def __init__(self) -> None:
        self._subscribers: Dict[int, Tuple[Subscriber, asyncio.AbstractEventLoop]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def add(self, subscriber: Subscriber, loop: asyncio.AbstractEventLoop) -> None:
        with self._lock:
            self._subscribers[id(subscriber)] = (subscriber, loop)
        LOGGER.debug("Subscriber connected (%s active)", len(self))

    def remove(self, subscriber: Subscriber) -> None:
        with self._lock:
            removed = self._subscribers.pop(id(subscriber), None)
        if removed is not None:
            LOGGER.debug("Subscriber disconnected (%s active)", len(self))

    def publish(self, payload: Payload) -> None:
        """Schedule ``payload`` for every observer without waiting for delivery."""

        with self._lock:
            targets: List[Tuple[Subscriber, asyncio.AbstractEventLoop]] = list(
                self._subscribers.values()
            )
        LOGGER.debug("Broadcasting %s to %s subscriber(s)", payload.get("type"), len(targets))
        for subscriber, loop in targets:
            coroutine = subscriber.send_json(payload)
            try:
                future = asyncio.run_coroutine_threadsafe(coroutine, loop)
            except RuntimeError:
                coroutine.close()
                LOGGER.debug("Dropping subscriber with a closed event loop")
                self.remove(subscriber)
                continue
            future.add_done_callback(self._drop_on_failure(subscriber))

    def _drop_on_failure(self, subscriber: Subscriber):
        def _callback(future: Future) -> None:
            if future.cancelled() or future.exception() is not None:
                LOGGER.debug("Notification delivery failed; dropping subscriber")
                self.remove(subscriber)

        return _callback


__all__ = [
    "ChangeNotifier",
    "NullNotifier",
    "Payload",
    "SubscriberRegistry",
    "member_updated",
    "members_updated",
]
