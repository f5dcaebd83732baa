"""Deadline-keyed in-memory registries.

:class:`ExpiringRegistry` maps opaque handles to entries that stop being
usable after a per-entry deadline.  It is the shared machinery behind the
undo store and the pending-preview cache:

- ``consume`` removes and returns an entry atomically, at most once.
- Reads honour the deadline immediately, even while an expired entry is
  still physically present.
- A one-shot timer evicts each entry a short grace period after its
  deadline, so abandoned entries never accumulate.

The clock and the scheduler are injected.  Any object with
``call_later(delay, callback, *args)`` returning something with a
``cancel()`` method works as a scheduler; the asyncio event loop is the
default.
"""

from __future__ import annotations

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Generic, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], datetime]

DEFAULT_GRACE_SECONDS = 5.0


class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled."""

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything that can run a callback after a delay (seconds)."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


def utc_now() -> datetime:
    """Default clock: the current UTC instant."""
    return datetime.now(timezone.utc)


class ExpiringRegistry(ABC, Generic[T]):
    """Handle-keyed store whose entries expire at a per-entry deadline.

    Args:
        grace_seconds: Delay after the deadline before the entry is
            physically evicted.
        clock: Returns the current instant.  Defaults to :func:`utc_now`.
        scheduler: Schedules eviction timers.  Defaults to the running
            asyncio loop, looked up on each registration.
    """

    def __init__(
        self,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._grace_seconds = grace_seconds
        self._clock = clock or utc_now
        self._scheduler = scheduler
        self._entries: dict[str, T] = {}
        self._timers: dict[str, TimerHandle] = {}

    # ------------------------------------------------------------------
    # Subclass hook
    # ------------------------------------------------------------------

    @abstractmethod
    def deadline_of(self, entry: T) -> datetime:
        """Return the last instant at which *entry* is still usable."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def register(self, handle: str, entry: T) -> None:
        """Insert or replace the entry for *handle*.

        Any eviction timer already scheduled for *handle* is cancelled
        before the new one is scheduled, so a replaced entry never leaves
        an orphaned timer behind.
        """
        previous = self._timers.pop(handle, None)
        if previous is not None:
            previous.cancel()
            logger.debug("Replaced entry for handle %s", handle)

        self._entries[handle] = entry
        delay = max(0.0, (self.deadline_of(entry) - self._clock()).total_seconds())
        self._timers[handle] = self._get_scheduler().call_later(
            delay + self._grace_seconds, self._evict, handle, entry
        )

    def consume(self, handle: str) -> T | None:
        """Remove *handle* and return its entry if it is still within its deadline.

        The entry is removed whether or not it expired, so a second call for
        the same handle always returns ``None``.
        """
        entry = self._entries.pop(handle, None)
        self._cancel_timer(handle)
        if entry is None:
            return None
        if self._expired(entry):
            logger.debug("Handle %s consumed after its deadline", handle)
            return None
        return entry

    def peek(self, handle: str) -> T | None:
        """Return the entry for *handle* without removing it.

        An entry past its deadline is dropped and ``None`` is returned.
        """
        entry = self._entries.get(handle)
        if entry is None:
            return None
        if self._expired(entry):
            self.discard(handle)
            return None
        return entry

    def is_alive(self, handle: str) -> bool:
        """Whether *handle* has an entry that is still within its deadline."""
        return self.peek(handle) is not None

    def remaining_seconds(self, handle: str) -> int:
        """Whole seconds (rounded up) until the deadline, ``0`` if absent or expired."""
        entry = self.peek(handle)
        if entry is None:
            return 0
        remaining = (self.deadline_of(entry) - self._clock()).total_seconds()
        return max(0, math.ceil(remaining))

    def contains(self, handle: str) -> bool:
        """Whether an entry is physically present, expired or not."""
        return handle in self._entries

    def discard(self, handle: str) -> None:
        """Drop *handle* and its timer if present."""
        self._entries.pop(handle, None)
        self._cancel_timer(handle)

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _expired(self, entry: T) -> bool:
        return self._clock() > self.deadline_of(entry)

    def _evict(self, handle: str, entry: T) -> None:
        """Timer callback: drop *handle* if it still holds *entry*."""
        self._timers.pop(handle, None)
        if self._entries.get(handle) is entry:
            del self._entries[handle]
            logger.debug("Evicted expired handle %s", handle)

    def _cancel_timer(self, handle: str) -> None:
        timer = self._timers.pop(handle, None)
        if timer is not None:
            timer.cancel()

    def _get_scheduler(self) -> Scheduler:
        if self._scheduler is not None:
            return self._scheduler
        return asyncio.get_running_loop()
