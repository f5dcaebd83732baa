"""Cache of previews waiting for a confirm / edit / cancel decision.

The orchestrator keeps the validated event of every preview it sends so that
a later button press acts on exactly the data the user saw.  Entries expire
after a TTL so abandoned previews do not pile up, and they are consumed
atomically so a double-tapped "Confirmar" can only create one event.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from agenda_ai.expiring import DEFAULT_GRACE_SECONDS, Clock, ExpiringRegistry, Scheduler
from agenda_ai.models.event import ValidatedEvent

DEFAULT_PREVIEW_TTL_SECONDS = 600


@dataclass(frozen=True)
class PendingPreview:
    """A preview sent to the user and not yet answered.

    Attributes:
        event: The validated event shown in the preview.
        chat_id: Chat the preview was sent to.
        created_at: When the preview was sent.
        deadline: Last instant at which the preview can be confirmed.
    """

    event: ValidatedEvent
    chat_id: int
    created_at: datetime
    deadline: datetime


class PreviewCache(ExpiringRegistry[PendingPreview]):
    """Handle-keyed store of :class:`PendingPreview` entries."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_PREVIEW_TTL_SECONDS,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        super().__init__(grace_seconds=grace_seconds, clock=clock, scheduler=scheduler)
        self.ttl = timedelta(seconds=ttl_seconds)

    def deadline_of(self, entry: PendingPreview) -> datetime:
        return entry.deadline

    def add(self, handle: str, event: ValidatedEvent, chat_id: int) -> PendingPreview:
        """Register *event* as awaiting a decision under *handle*."""
        now = self._clock()
        pending = PendingPreview(
            event=event,
            chat_id=chat_id,
            created_at=now,
            deadline=now + self.ttl,
        )
        self.register(handle, pending)
        return pending
