"""Tests for the scheduling conflict detector."""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Any
from unittest.mock import AsyncMock

import pytest

from agenda_ai.conflicts import ConflictDetector
from agenda_ai.models.event import ValidatedEvent

DAY = date(2026, 3, 10)


def _existing(start: str, end: str, title: str = "Existente", event_id: str = "e1") -> dict[str, Any]:
    return {
        "id": event_id,
        "summary": title,
        "start": {"dateTime": f"2026-03-10T{start}:00-03:00"},
        "end": {"dateTime": f"2026-03-10T{end}:00-03:00"},
    }


def _event(start: str = "10:00", end: str | None = "11:00", **kw: Any) -> ValidatedEvent:
    return ValidatedEvent(title="Novo", start_date=DAY, start_time=start, end_time=end, **kw)


def _detector(items: list[Any], **kw: Any) -> tuple[ConflictDetector, AsyncMock]:
    calendar = AsyncMock()
    calendar.list_events.return_value = items
    return ConflictDetector(calendar, **kw), calendar


class TestOverlapRules:
    async def test_touching_events_do_not_conflict(self) -> None:
        detector, _ = _detector([_existing("09:00", "10:00"), _existing("11:00", "12:00")])

        report = await detector.check_conflicts(_event(), "primary")

        assert report.conflicts == []
        assert report.has_conflicts is False

    async def test_contained_event_conflicts(self) -> None:
        detector, _ = _detector([_existing("10:15", "10:45", title="Café")])

        report = await detector.check_conflicts(_event(), "primary")

        assert [c.title for c in report.conflicts] == ["Café"]
        assert report.conflicts[0].start_time == "10:15"
        assert report.conflicts[0].end_time == "10:45"
        assert report.conflicts[0].event_date == DAY

    async def test_one_minute_gap_does_not_conflict(self) -> None:
        detector, _ = _detector([_existing("11:01", "12:00")])

        report = await detector.check_conflicts(_event(), "primary")

        assert report.conflicts == []

    async def test_order_follows_backend(self) -> None:
        items = [
            _existing("10:30", "11:30", title="B", event_id="b"),
            _existing("09:30", "10:30", title="A", event_id="a"),
        ]
        detector, _ = _detector(items)

        report = await detector.check_conflicts(_event(), "primary")

        assert [c.calendar_event_id for c in report.conflicts] == ["b", "a"]

    async def test_untitled_and_all_day_existing(self) -> None:
        untitled = _existing("10:00", "10:30")
        del untitled["summary"]
        all_day = {"id": "d", "start": {"date": "2026-03-10"}, "end": {"date": "2026-03-11"}}
        detector, _ = _detector([untitled, all_day])

        report = await detector.check_conflicts(_event(), "primary")

        assert [c.title for c in report.conflicts] == ["(sem título)"]

    async def test_event_spanning_previous_day_is_clamped(self) -> None:
        overnight = {
            "id": "n",
            "summary": "Plantão",
            "start": {"dateTime": "2026-03-09T22:00:00-03:00"},
            "end": {"dateTime": "2026-03-10T01:00:00-03:00"},
        }
        detector, _ = _detector([overnight])

        report = await detector.check_conflicts(_event("00:30", "02:00"), "primary")

        assert [c.title for c in report.conflicts] == ["Plantão"]
        assert report.conflicts[0].start_time == "22:00"


class TestCandidateEnd:
    async def test_duration_defines_end(self) -> None:
        detector, _ = _detector([_existing("10:20", "11:00")])

        report = await detector.check_conflicts(_event(end=None, duration_minutes=15), "primary")

        assert report.conflicts == []

    async def test_default_duration_applies(self) -> None:
        detector, _ = _detector([_existing("10:30", "11:00")], default_duration_minutes=60)

        report = await detector.check_conflicts(_event(end=None), "primary")

        assert len(report.conflicts) == 1

    async def test_no_end_and_no_default_is_a_point(self) -> None:
        detector, _ = _detector([_existing("10:30", "11:00")])

        report = await detector.check_conflicts(_event(end=None), "primary")

        assert report.conflicts == []

    async def test_candidate_past_midnight_is_clamped(self) -> None:
        detector, _ = _detector([_existing("23:50", "23:59")])

        report = await detector.check_conflicts(
            _event("23:45", None, duration_minutes=30), "primary"
        )

        assert len(report.conflicts) == 1


class TestSkipsAndFailures:
    async def test_all_day_candidate_skips_query(self) -> None:
        detector, calendar = _detector([_existing("10:00", "11:00")])
        event = ValidatedEvent(title="Feriado", start_date=DAY, all_day=True)

        report = await detector.check_conflicts(event, "primary")

        assert report.conflicts == []
        assert report.query_failed is False
        calendar.list_events.assert_not_called()

    async def test_listing_uses_day_and_calendar(self) -> None:
        detector, calendar = _detector([])

        await detector.check_conflicts(_event(), "team")

        calendar.list_events.assert_awaited_once_with(DAY, "team")

    async def test_api_failure_is_fail_open(self) -> None:
        calendar = AsyncMock()
        calendar.list_events.side_effect = RuntimeError("boom")
        detector = ConflictDetector(calendar)

        report = await detector.check_conflicts(_event(), "primary")

        assert report.conflicts == []
        assert report.query_failed is True

    async def test_timeout_is_fail_open(self) -> None:
        async def slow(day: date, calendar_id: str) -> list[dict]:
            await asyncio.sleep(1)
            return []

        calendar = AsyncMock()
        calendar.list_events.side_effect = slow
        detector = ConflictDetector(calendar, timeout=0.01)

        report = await detector.check_conflicts(_event(), "primary")

        assert report.query_failed is True

    @pytest.mark.parametrize("payload", [["not-a-dict"], [None]])
    async def test_unexpected_payload_is_fail_open(self, payload: list[Any]) -> None:
        detector, _ = _detector(payload)

        report = await detector.check_conflicts(_event(), "primary")

        assert report.query_failed is True
