"""Map validated events to the Google Calendar API body format.

Converts :class:`~agenda_ai.models.event.ValidatedEvent` instances into
``dict`` payloads for ``events().insert()``.

The mapping includes:

- **summary** from the event title.
- **start / end**: ``date`` values for all-day events (the end date is
  exclusive, so a one-day event ends on the following day), otherwise
  ``dateTime`` instants composed textually at the fixed UTC offset plus the
  IANA ``timeZone``.
- **attendees**: the calendar owner first, then every resolved participant
  email, without duplicates.  Unresolved participants are left out.
- **description** and **location** when provided.
- **reminders**: a single 30-minute popup.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from agenda_ai.intervals import compose_instant, compute_end
from agenda_ai.models.event import ValidatedEvent

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60
REMINDER_MINUTES = 30


def map_to_google_event(
    event: ValidatedEvent,
    owner_email: str,
    utc_offset: str,
    timezone: str,
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
) -> dict:
    """Convert a validated event into a Google Calendar API event body.

    Args:
        event: The validated event.
        owner_email: Calendar owner, always added as the first attendee.
        utc_offset: Fixed offset used to compose instants (``"-03:00"``).
        timezone: IANA timezone name sent alongside the instants.
        default_duration_minutes: Applied when the event has neither an end
            time nor a duration.

    Returns:
        A ``dict`` conforming to the Google Calendar Event resource schema.

    Raises:
        ValueError: If a timed event has no start time.
    """
    body: dict = {"summary": event.title}

    if event.all_day:
        body["start"] = {"date": event.start_date.isoformat()}
        body["end"] = {"date": (event.start_date + timedelta(days=1)).isoformat()}
    else:
        if not event.start_time:
            raise ValueError(f"Timed event '{event.title}' has no start_time")
        end_date, end_time = event_end(event, default_duration_minutes)
        body["start"] = {
            "dateTime": compose_instant(event.start_date, event.start_time, utc_offset),
            "timeZone": timezone,
        }
        body["end"] = {
            "dateTime": compose_instant(end_date, end_time, utc_offset),
            "timeZone": timezone,
        }

    body["attendees"] = _build_attendees(event, owner_email)

    if event.description:
        body["description"] = event.description
    if event.location:
        body["location"] = event.location

    body["reminders"] = {
        "useDefault": False,
        "overrides": [{"method": "popup", "minutes": REMINDER_MINUTES}],
    }

    logger.info(
        "Mapped event '%s' (%s -> %s) to Google Calendar body",
        event.title,
        body["start"].get("dateTime") or body["start"].get("date"),
        body["end"].get("dateTime") or body["end"].get("date"),
    )
    return body


def event_end(event: ValidatedEvent, default_duration_minutes: int) -> tuple[date, str]:
    """Return the ``(date, "HH:MM")`` end of a timed event.

    Uses the explicit end time when present, otherwise start + duration,
    otherwise start + *default_duration_minutes*.  A duration that crosses
    midnight moves the end to the next day.
    """
    if event.end_time:
        return event.start_date, event.end_time
    duration = (
        event.duration_minutes
        if event.duration_minutes is not None
        else default_duration_minutes
    )
    return compute_end(event.start_date, event.start_time, duration)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_attendees(event: ValidatedEvent, owner_email: str) -> list[dict]:
    """Owner first, then resolved participant emails, case-insensitively unique."""
    entries: list[dict] = [{"email": owner_email}]
    seen = {owner_email.lower()}

    for email in event.attendee_emails:
        if email.lower() in seen:
            continue
        seen.add(email.lower())
        entries.append({"email": email})

    return entries
