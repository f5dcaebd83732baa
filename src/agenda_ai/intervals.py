"""Clock-time arithmetic and interval overlap helpers.

All event times are wall-clock ``HH:MM`` strings at a single fixed UTC
offset (``-03:00`` by default, no daylight saving).  Instants sent to the
calendar backend are composed **textually** from the date and clock parts
(``"2026-02-25T14:30:00-03:00"``) rather than round-tripped through a local
timezone, so the host's timezone can never shift an event.

Intervals are half-open: ``[start, end)``.  Two intervals that merely touch
(one ends when the other starts) do not overlap.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone

MINUTES_PER_DAY = 24 * 60

_CLOCK_RE = re.compile(r"^(\d{2}):(\d{2})$")
_OFFSET_RE = re.compile(r"^([+-])(\d{2}):(\d{2})$")


def parse_clock(text: str | None) -> int | None:
    """Convert a strict 24-hour ``HH:MM`` string to minutes since midnight.

    Args:
        text: Candidate clock string.

    Returns:
        Minutes since midnight, or ``None`` when *text* is missing, does not
        match ``HH:MM`` exactly, or names an hour outside 0-23 or a minute
        outside 0-59.
    """
    if text is None:
        return None
    match = _CLOCK_RE.match(text)
    if match is None:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return hour * 60 + minute


def format_clock(minutes: int) -> str:
    """Format minutes since midnight as ``HH:MM``, wrapping past midnight."""
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Whether ``[start_a, end_a)`` and ``[start_b, end_b)`` overlap.

    Touching intervals (``end_a == start_b``) are **not** overlapping.
    """
    return start_a < end_b and start_b < end_a


def compute_end(start_date: date, start_time: str, duration_minutes: int) -> tuple[date, str]:
    """Add *duration_minutes* to a start and return the end day and clock.

    The end day rolls forward when the duration crosses midnight, so
    ``23:45 + 30`` on 2026-03-10 ends at ``00:15`` on 2026-03-11.

    Raises:
        ValueError: If *start_time* is not a valid ``HH:MM`` string.
    """
    start = parse_clock(start_time)
    if start is None:
        raise ValueError(f"Invalid start time: {start_time!r}")
    total = start + duration_minutes
    day_offset, end_minutes = divmod(total, MINUTES_PER_DAY)
    return start_date + timedelta(days=day_offset), format_clock(end_minutes)


def compute_end_time(start_time: str, duration_minutes: int) -> str:
    """Wall-clock end of an event, ignoring any change of day."""
    return compute_end(date.min, start_time, duration_minutes)[1]


def parse_utc_offset(utc_offset: str) -> timezone:
    """Parse ``"+HH:MM"`` / ``"-HH:MM"`` into a fixed :class:`timezone`.

    Raises:
        ValueError: If *utc_offset* is not in that form.
    """
    match = _OFFSET_RE.match(utc_offset)
    if match is None:
        raise ValueError(f"Invalid UTC offset: {utc_offset!r}")
    sign = -1 if match.group(1) == "-" else 1
    delta = timedelta(hours=int(match.group(2)), minutes=int(match.group(3)))
    return timezone(sign * delta)


def compose_instant(day: date, clock: str, utc_offset: str) -> str:
    """Build an RFC 3339 instant from its textual parts.

    Example: ``compose_instant(date(2026, 2, 25), "14:30", "-03:00")``
    returns ``"2026-02-25T14:30:00-03:00"``.
    """
    return f"{day.isoformat()}T{clock}:00{utc_offset}"


def now_at_offset(utc_offset: str, now: datetime | None = None) -> datetime:
    """Current instant expressed at the fixed reference offset."""
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(parse_utc_offset(utc_offset))


def today_at_offset(utc_offset: str, now: datetime | None = None) -> date:
    """Calendar day at the fixed reference offset."""
    return now_at_offset(utc_offset, now).date()


def instant_minutes_on(day: date, instant: str, utc_offset: str) -> int | None:
    """Minutes since *day*'s midnight for an RFC 3339 *instant*.

    The instant is converted to the reference offset first.  Instants on an
    earlier day give negative values and later days give values past
    ``MINUTES_PER_DAY``; callers clamp as needed.

    Returns:
        The minute offset, or ``None`` if *instant* cannot be parsed or has
        no timezone.
    """
    try:
        parsed = datetime.fromisoformat(instant.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    local = parsed.astimezone(parse_utc_offset(utc_offset))
    midnight = datetime.combine(day, datetime.min.time(), tzinfo=local.tzinfo)
    return int((local - midnight).total_seconds() // 60)
