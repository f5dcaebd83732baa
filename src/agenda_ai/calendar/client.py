"""Async Google Calendar client.

Provides :class:`GoogleCalendarClient`, a thin wrapper around the Google
Calendar API v3 exposing the three operations the pipeline needs:

- **list_events** -- every event of one day at the reference offset, with
  pagination.
- **create_event** -- insert a validated event and return a
  :class:`~agenda_ai.models.calendar.CreatedEvent`.
- **delete_event** -- remove an event by id (used by undo).

``googleapiclient`` is blocking, so each ``execute()`` runs in the event
loop's default executor.  Every method is wrapped by
:func:`~agenda_ai.calendar.exceptions.with_retry`; creation never retries
network errors because a lost response may hide a created event.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, timedelta
from functools import partial
from typing import Any

from google.auth.credentials import Credentials
from google.auth.transport.requests import Request
from googleapiclient.discovery import build

from agenda_ai.calendar.event_mapper import DEFAULT_DURATION_MINUTES, map_to_google_event
from agenda_ai.calendar.exceptions import CalendarAPIError, with_retry
from agenda_ai.intervals import compose_instant
from agenda_ai.models.calendar import CreatedEvent
from agenda_ai.models.event import ValidatedEvent

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """Async client for the calendar operations used by the pipeline.

    Args:
        credentials: Google credentials (OAuth user or service account).
        owner_email: Always added as an attendee of created events.
        timezone: IANA timezone name sent with timed events.
        utc_offset: Fixed offset for composed instants (``"-03:00"``).
        default_duration_minutes: Duration used when an event has neither an
            end time nor a duration.
        service: Optional pre-built ``googleapiclient`` service resource.
            If ``None``, one is built from *credentials*.  Pass a mock here
            in tests.
    """

    def __init__(
        self,
        credentials: Credentials,
        owner_email: str,
        timezone: str,
        utc_offset: str,
        default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
        service: Any | None = None,
    ) -> None:
        self._credentials = credentials
        self._owner_email = owner_email
        self._timezone = timezone
        self._utc_offset = utc_offset
        self._default_duration_minutes = default_duration_minutes
        self._service = service or build(
            "calendar", "v3", credentials=credentials, cache_discovery=False
        )

    # ------------------------------------------------------------------
    # Credential refresh hook (used by @with_retry on 401)
    # ------------------------------------------------------------------

    def _refresh_credentials(self) -> None:
        """Refresh the credentials and rebuild the service resource."""
        self._credentials.refresh(Request())
        self._service = build(
            "calendar", "v3", credentials=self._credentials, cache_discovery=False
        )
        logger.info("Credentials refreshed and service rebuilt")

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @with_retry()
    async def list_events(self, day: date, calendar_id: str) -> list[dict]:
        """List every event overlapping *day* at the reference offset.

        Handles pagination automatically.

        Args:
            day: Calendar day to list.
            calendar_id: Calendar to query.

        Returns:
            Google Calendar event resource dicts in start-time order.
        """
        time_min = compose_instant(day, "00:00", self._utc_offset)
        time_max = compose_instant(day + timedelta(days=1), "00:00", self._utc_offset)

        all_events: list[dict] = []
        page_token: str | None = None

        while True:
            request = self._service.events().list(
                calendarId=calendar_id,
                timeMin=time_min,
                timeMax=time_max,
                singleEvents=True,
                orderBy="startTime",
                pageToken=page_token,
            )
            response = await self._run_in_executor(request.execute)

            all_events.extend(response.get("items", []))

            page_token = response.get("nextPageToken")
            if page_token is None:
                break

        logger.info(
            "Listed %d event(s) on %s (calendar=%s)",
            len(all_events),
            day.isoformat(),
            calendar_id,
        )
        return all_events

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @with_retry(retry_network=False)
    async def create_event(self, event: ValidatedEvent, calendar_id: str) -> CreatedEvent:
        """Insert *event* into *calendar_id*.

        Raises:
            CalendarAPIError: On API failures, or when the response lacks an
                event id.
        """
        body = map_to_google_event(
            event,
            owner_email=self._owner_email,
            utc_offset=self._utc_offset,
            timezone=self._timezone,
            default_duration_minutes=self._default_duration_minutes,
        )
        request = self._service.events().insert(calendarId=calendar_id, body=body)
        result = await self._run_in_executor(request.execute)

        if not isinstance(result, dict) or not result.get("id"):
            raise CalendarAPIError(f"Unexpected create response: {result!r}")

        start = result.get("start") or {}
        end = result.get("end") or {}
        created = CreatedEvent(
            event_id=result["id"],
            calendar_id=calendar_id,
            link=result.get("htmlLink", ""),
            title=result.get("summary") or event.title,
            start=start.get("dateTime") or start.get("date") or "",
            end=end.get("dateTime") or end.get("date") or "",
        )
        logger.info("Created event '%s' (id=%s)", created.title, created.event_id)
        return created

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    @with_retry()
    async def delete_event(self, calendar_id: str, event_id: str) -> None:
        """Delete an event by its id.

        Raises:
            CalendarNotFoundError: If the event no longer exists.
        """
        request = self._service.events().delete(calendarId=calendar_id, eventId=event_id)
        await self._run_in_executor(request.execute)
        logger.info("Deleted event (id=%s, calendar=%s)", event_id, calendar_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run_in_executor(self, func, *args, **kwargs) -> Any:
        """Run a blocking Google API call in the default thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))
