"""Google Calendar integration for agenda-ai."""

from __future__ import annotations

from agenda_ai.calendar.auth import get_calendar_credentials
from agenda_ai.calendar.client import GoogleCalendarClient
from agenda_ai.calendar.event_mapper import map_to_google_event

__all__ = [
    "GoogleCalendarClient",
    "get_calendar_credentials",
    "map_to_google_event",
]
