"""Data models for calendar-side results.

- :class:`ConflictInfo` / :class:`ConflictReport` -- outcome of the conflict
  check for one candidate event.
- :class:`CreatedEvent` -- what the calendar backend returned on creation.
- :class:`UndoRecord` -- everything needed to reverse a creation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(frozen=True)
class ConflictInfo:
    """An existing event that overlaps the candidate.

    Attributes:
        title: Title of the existing event.
        start_time: ``HH:MM`` start at the reference offset.
        end_time: ``HH:MM`` end at the reference offset.
        calendar_event_id: Backend id of the existing event.
        event_date: Day that was checked.
    """

    title: str
    start_time: str
    end_time: str
    calendar_event_id: str
    event_date: date


@dataclass(frozen=True)
class ConflictReport:
    """Result of a conflict check.

    Attributes:
        conflicts: Overlapping events, in the order the backend listed them.
        query_failed: ``True`` when the listing failed and the report was
            produced fail-open.  Only used for logging; callers treat a
            failed query exactly like an empty day.
    """

    conflicts: list[ConflictInfo] = field(default_factory=list)
    query_failed: bool = False

    @property
    def has_conflicts(self) -> bool:
        """Whether any overlap was found."""
        return len(self.conflicts) > 0


@dataclass(frozen=True)
class CreatedEvent:
    """An event the calendar backend accepted.

    Attributes:
        event_id: Backend event id (needed for undo).
        calendar_id: Calendar the event was created in.
        link: Browser URL of the event.
        title: Event title.
        start: Backend start value (RFC 3339 instant or ``YYYY-MM-DD``).
        end: Backend end value (RFC 3339 instant or ``YYYY-MM-DD``).
    """

    event_id: str
    calendar_id: str
    link: str
    title: str
    start: str
    end: str

    @property
    def all_day(self) -> bool:
        """Whether the backend stored this as a date-only event."""
        return "T" not in self.start


@dataclass(frozen=True)
class UndoRecord:
    """Information needed to delete a just-created event.

    Attributes:
        calendar_event_id: Backend id of the created event.
        calendar_id: Calendar holding the event.
        event_title: Title, for the confirmation message.
        event_link: Browser URL, kept so the expiry update can rebuild the
            link button.
        created_at: When the event was created.
        undo_deadline: Last instant at which undo is honoured.
    """

    calendar_event_id: str
    calendar_id: str
    event_title: str
    event_link: str
    created_at: datetime
    undo_deadline: datetime
