"""Tests for mapping validated events to Google Calendar API bodies."""

from __future__ import annotations

from datetime import date

import pytest

from agenda_ai.calendar.event_mapper import event_end, map_to_google_event
from agenda_ai.models.event import Participant, ValidatedEvent

_OWNER = "owner@example.com"
_TZ = "America/Sao_Paulo"


def _event(**overrides) -> ValidatedEvent:
    fields = {"title": "Reunião", "start_date": date(2026, 3, 10), "start_time": "14:00"}
    fields.update(overrides)
    return ValidatedEvent(**fields)


def _map(event: ValidatedEvent, **kw) -> dict:
    return map_to_google_event(event, owner_email=_OWNER, utc_offset="-03:00", timezone=_TZ, **kw)


class TestTimes:
    def test_explicit_end(self) -> None:
        body = _map(_event(end_time="15:30"))

        assert body["start"] == {"dateTime": "2026-03-10T14:00:00-03:00", "timeZone": _TZ}
        assert body["end"] == {"dateTime": "2026-03-10T15:30:00-03:00", "timeZone": _TZ}

    def test_duration(self) -> None:
        body = _map(_event(duration_minutes=45))

        assert body["end"]["dateTime"] == "2026-03-10T14:45:00-03:00"

    def test_default_duration(self) -> None:
        body = _map(_event())

        assert body["end"]["dateTime"] == "2026-03-10T15:00:00-03:00"

    def test_configured_default_duration(self) -> None:
        body = _map(_event(), default_duration_minutes=30)

        assert body["end"]["dateTime"] == "2026-03-10T14:30:00-03:00"

    def test_zero_duration_is_not_replaced_by_default(self) -> None:
        body = _map(_event(duration_minutes=0))

        assert body["end"]["dateTime"] == body["start"]["dateTime"]

    def test_end_rolls_over_midnight(self) -> None:
        body = _map(_event(start_time="23:45", duration_minutes=30))

        assert body["end"]["dateTime"] == "2026-03-11T00:15:00-03:00"

    def test_all_day_uses_exclusive_end_date(self) -> None:
        body = _map(_event(all_day=True, start_time=None))

        assert body["start"] == {"date": "2026-03-10"}
        assert body["end"] == {"date": "2026-03-11"}

    def test_timed_event_without_start_raises(self) -> None:
        with pytest.raises(ValueError, match="no start_time"):
            _map(_event(start_time=None))

    def test_event_end_helper(self) -> None:
        assert event_end(_event(end_time="16:00"), 60) == (date(2026, 3, 10), "16:00")
        assert event_end(_event(start_time="23:30"), 60) == (date(2026, 3, 11), "00:30")


class TestAttendees:
    def test_owner_always_first(self) -> None:
        body = _map(_event())

        assert body["attendees"] == [{"email": _OWNER}]

    def test_resolved_participants_only_and_deduplicated(self) -> None:
        participants = [
            Participant(name="Ana", email="ana@example.com", resolved=True),
            Participant(name="Bia"),
            Participant(name="Ana de novo", email="ANA@example.com", resolved=True),
            Participant(name="Eu", email="Owner@Example.com", resolved=True),
        ]

        body = _map(_event(participants=participants))

        assert body["attendees"] == [{"email": _OWNER}, {"email": "ana@example.com"}]


class TestOptionalFields:
    def test_description_and_location(self) -> None:
        body = _map(_event(description="Pauta: orçamento", location="Sala 3"))

        assert body["summary"] == "Reunião"
        assert body["description"] == "Pauta: orçamento"
        assert body["location"] == "Sala 3"

    def test_absent_fields_are_omitted(self) -> None:
        body = _map(_event())

        assert "description" not in body
        assert "location" not in body

    def test_single_popup_reminder(self) -> None:
        body = _map(_event())

        assert body["reminders"] == {
            "useDefault": False,
            "overrides": [{"method": "popup", "minutes": 30}],
        }
