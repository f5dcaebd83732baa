"""Tests for clock arithmetic and half-open interval overlap."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from agenda_ai.intervals import (
    compose_instant,
    compute_end,
    compute_end_time,
    format_clock,
    instant_minutes_on,
    now_at_offset,
    overlaps,
    parse_clock,
    parse_utc_offset,
    today_at_offset,
)


class TestParseClock:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [("00:00", 0), ("09:05", 545), ("14:30", 870), ("23:59", 1439)],
    )
    def test_valid(self, text: str, expected: int) -> None:
        assert parse_clock(text) == expected

    @pytest.mark.parametrize("text", [None, "", "9:00", "24:00", "12:60", "14h30", "14:30:00", "ab:cd"])
    def test_invalid(self, text: str | None) -> None:
        assert parse_clock(text) is None


class TestFormatClock:
    def test_pads(self) -> None:
        assert format_clock(545) == "09:05"

    def test_wraps_past_midnight(self) -> None:
        assert format_clock(1440 + 15) == "00:15"


class TestOverlaps:
    """Half-open ``[start, end)`` semantics."""

    def test_touching_intervals_do_not_overlap(self) -> None:
        assert not overlaps(540, 600, 600, 660)
        assert not overlaps(600, 660, 540, 600)

    def test_contained_interval_overlaps(self) -> None:
        assert overlaps(540, 720, 600, 630)

    def test_partial_overlap(self) -> None:
        assert overlaps(540, 600, 570, 630)

    def test_one_minute_gap(self) -> None:
        assert not overlaps(540, 600, 601, 660)

    def test_identical_intervals(self) -> None:
        assert overlaps(540, 600, 540, 600)


class TestComputeEnd:
    def test_same_day(self) -> None:
        assert compute_end(date(2026, 3, 10), "14:00", 90) == (date(2026, 3, 10), "15:30")

    def test_rolls_over_midnight(self) -> None:
        assert compute_end(date(2026, 3, 10), "23:45", 30) == (date(2026, 3, 11), "00:15")

    def test_zero_duration(self) -> None:
        assert compute_end(date(2026, 3, 10), "10:00", 0) == (date(2026, 3, 10), "10:00")

    def test_invalid_start_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid start time"):
            compute_end(date(2026, 3, 10), "25:00", 30)

    def test_compute_end_time_ignores_day(self) -> None:
        assert compute_end_time("23:45", 30) == "00:15"


class TestOffsets:
    def test_parse_negative_offset(self) -> None:
        assert parse_utc_offset("-03:00").utcoffset(None).total_seconds() == -3 * 3600

    def test_parse_positive_offset_with_minutes(self) -> None:
        assert parse_utc_offset("+05:30").utcoffset(None).total_seconds() == 5.5 * 3600

    @pytest.mark.parametrize("text", ["-3", "03:00", "-03", "UTC", ""])
    def test_invalid_offset(self, text: str) -> None:
        with pytest.raises(ValueError):
            parse_utc_offset(text)

    def test_compose_instant_is_textual(self) -> None:
        assert compose_instant(date(2026, 2, 25), "14:30", "-03:00") == "2026-02-25T14:30:00-03:00"

    def test_today_at_offset_crosses_day(self) -> None:
        """01:00 UTC is still the previous day at -03:00."""
        now = datetime(2026, 3, 11, 1, 0, tzinfo=timezone.utc)

        assert today_at_offset("-03:00", now) == date(2026, 3, 10)

    def test_now_at_offset_treats_naive_as_utc(self) -> None:
        local = now_at_offset("-03:00", datetime(2026, 3, 10, 15, 0))

        assert (local.hour, local.minute) == (12, 0)


class TestInstantMinutesOn:
    def test_same_offset(self) -> None:
        assert instant_minutes_on(date(2026, 3, 10), "2026-03-10T14:30:00-03:00", "-03:00") == 870

    def test_converted_from_utc(self) -> None:
        assert instant_minutes_on(date(2026, 3, 10), "2026-03-10T17:30:00Z", "-03:00") == 870

    def test_previous_day_is_negative(self) -> None:
        assert instant_minutes_on(date(2026, 3, 10), "2026-03-09T23:00:00-03:00", "-03:00") == -60

    def test_next_day_exceeds_day_length(self) -> None:
        assert instant_minutes_on(date(2026, 3, 10), "2026-03-11T01:00:00-03:00", "-03:00") == 1500

    def test_unparseable_or_naive(self) -> None:
        day = date(2026, 3, 10)
        assert instant_minutes_on(day, "not-a-date", "-03:00") is None
        assert instant_minutes_on(day, "2026-03-10T14:30:00", "-03:00") is None
