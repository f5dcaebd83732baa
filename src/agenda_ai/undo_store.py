"""Time-boxed registry of reversible event creations.

After an event is created, its backend id is registered here under the
preview handle.  The user may undo within the window; afterwards the entry
is unusable and is evicted shortly after.

Per-handle lifecycle::

    absent --register--> alive --consume (in window)--> consumed --> absent
                           |
                           +--consume (late) / eviction timer--> expired --> absent
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from agenda_ai.expiring import (
    DEFAULT_GRACE_SECONDS,
    Clock,
    ExpiringRegistry,
    Scheduler,
)
from agenda_ai.models.calendar import CreatedEvent, UndoRecord

logger = logging.getLogger(__name__)

DEFAULT_UNDO_WINDOW_SECONDS = 120


class UndoStore(ExpiringRegistry[UndoRecord]):
    """In-memory store of pending undo records.

    Args:
        window_seconds: How long after creation an undo is honoured.
        grace_seconds: Extra delay before the eviction timer fires.
        clock: Returns the current instant.
        scheduler: Schedules eviction timers (asyncio loop by default).
    """

    def __init__(
        self,
        window_seconds: int = DEFAULT_UNDO_WINDOW_SECONDS,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        super().__init__(grace_seconds=grace_seconds, clock=clock, scheduler=scheduler)
        self.window = timedelta(seconds=window_seconds)

    def deadline_of(self, entry: UndoRecord) -> datetime:
        return entry.undo_deadline

    def open_window(self, handle: str, created: CreatedEvent) -> UndoRecord:
        """Build an :class:`UndoRecord` for *created* and register it.

        The deadline is the current instant plus the configured window.

        Returns:
            The registered record.
        """
        created_at = self._clock()
        record = UndoRecord(
            calendar_event_id=created.event_id,
            calendar_id=created.calendar_id,
            event_title=created.title,
            event_link=created.link,
            created_at=created_at,
            undo_deadline=created_at + self.window,
        )
        self.register(handle, record)
        logger.info(
            "Undo window opened for '%s' (handle=%s, %ds)",
            created.title,
            handle,
            int(self.window.total_seconds()),
        )
        return record
