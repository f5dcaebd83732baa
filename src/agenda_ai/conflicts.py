"""Scheduling conflict detection.

:class:`ConflictDetector` lists the events already on the candidate's day
and reports every one whose interval overlaps the candidate's.  Intervals
are half-open, so back-to-back events are not conflicts.

Conflict checking is advisory: any failure to list the day (API error,
timeout, unexpected payload) produces an empty report with
``query_failed=True`` and never blocks the user.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Protocol

from agenda_ai.intervals import (
    MINUTES_PER_DAY,
    format_clock,
    instant_minutes_on,
    overlaps,
    parse_clock,
)
from agenda_ai.models.calendar import ConflictInfo, ConflictReport
from agenda_ai.models.event import ValidatedEvent

logger = logging.getLogger(__name__)

DEFAULT_UTC_OFFSET = "-03:00"


class EventLister(Protocol):
    """The part of the calendar backend the detector needs."""

    async def list_events(self, day: date, calendar_id: str) -> list[dict]: ...


class ConflictDetector:
    """Find existing events overlapping a validated event.

    Args:
        calendar: Backend able to list one day's events as Google Calendar
            event resource dicts.
        utc_offset: Fixed offset at which clock times are compared.
        default_duration_minutes: Duration assumed for a candidate with
            neither an end time nor a duration.  ``None`` treats such a
            candidate as a zero-length interval.
        timeout: Upper bound in seconds for the listing call, or ``None``.
    """

    def __init__(
        self,
        calendar: EventLister,
        utc_offset: str = DEFAULT_UTC_OFFSET,
        default_duration_minutes: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self._calendar = calendar
        self._utc_offset = utc_offset
        self._default_duration_minutes = default_duration_minutes
        self._timeout = timeout

    async def check_conflicts(self, event: ValidatedEvent, calendar_id: str) -> ConflictReport:
        """Return the events on *event*'s day that overlap it.

        All-day events never conflict and skip the backend entirely.  The
        result lists conflicts in the order the backend returned them.
        This method never raises.
        """
        if event.all_day:
            return ConflictReport()

        start = parse_clock(event.start_time)
        if start is None:
            return ConflictReport()
        end = min(self._candidate_end(event, start), MINUTES_PER_DAY)

        try:
            existing = await asyncio.wait_for(
                self._calendar.list_events(event.start_date, calendar_id),
                timeout=self._timeout,
            )
            conflicts = self._find_overlaps(event.start_date, start, end, existing)
        except Exception as exc:
            logger.warning(
                "Conflict query failed for %s (calendar=%s), continuing without conflicts: %r",
                event.start_date.isoformat(),
                calendar_id,
                exc,
            )
            return ConflictReport(query_failed=True)

        if not existing:
            logger.debug("No events on %s, nothing to conflict with", event.start_date.isoformat())
        elif conflicts:
            logger.info(
                "Event '%s' overlaps %d existing event(s): %s",
                event.title,
                len(conflicts),
                ", ".join(c.title for c in conflicts),
            )
        return ConflictReport(conflicts=conflicts)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _candidate_end(self, event: ValidatedEvent, start: int) -> int:
        end = parse_clock(event.end_time)
        if end is not None:
            return end
        if event.duration_minutes is not None:
            return start + event.duration_minutes
        if self._default_duration_minutes is not None:
            return start + self._default_duration_minutes
        return start

    def _find_overlaps(
        self,
        day: date,
        start: int,
        end: int,
        existing: list[Any],
    ) -> list[ConflictInfo]:
        conflicts: list[ConflictInfo] = []

        for item in existing:
            if not isinstance(item, dict):
                raise TypeError(f"Unexpected calendar entry: {item!r}")
            start_instant = (item.get("start") or {}).get("dateTime")
            end_instant = (item.get("end") or {}).get("dateTime")
            if not start_instant or not end_instant:
                continue

            raw_start = instant_minutes_on(day, start_instant, self._utc_offset)
            raw_end = instant_minutes_on(day, end_instant, self._utc_offset)
            if raw_start is None or raw_end is None:
                continue

            other_start = max(raw_start, 0)
            other_end = min(raw_end, MINUTES_PER_DAY)
            if overlaps(start, end, other_start, other_end):
                conflicts.append(
                    ConflictInfo(
                        title=item.get("summary") or "(sem título)",
                        start_time=format_clock(raw_start),
                        end_time=format_clock(raw_end),
                        calendar_event_id=item.get("id", ""),
                        event_date=day,
                    )
                )

        return conflicts
