"""Business-rule validation for parsed event candidates.

Turns a :class:`~agenda_ai.models.event.ParsedCandidate` into exactly one of
:class:`~agenda_ai.models.validation.Valid`,
:class:`~agenda_ai.models.validation.Ambiguous` or
:class:`~agenda_ai.models.validation.Invalid`.

Rules:

- Title: required, 1-100 characters.
- Date: required, a real ``YYYY-MM-DD`` calendar day from today up to
  365 days ahead (today is taken at the fixed reference offset).
- Start time: required unless the event is all-day.
- Ambiguities reported by the parser block the request and ask for
  clarification; an invalid date reported by the parser is an error.

Validation is pure: "today" and "now" are parameters so tests never depend
on the wall clock.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta

from agenda_ai.intervals import now_at_offset, parse_clock
from agenda_ai.models.event import ParsedCandidate, ValidatedEvent
from agenda_ai.models.validation import (
    Ambiguous,
    ErrorCode,
    Invalid,
    Valid,
    ValidationResult,
    WarningCode,
)

logger = logging.getLogger(__name__)

DEFAULT_UTC_OFFSET = "-03:00"

MAX_TITLE_LENGTH = 100
MAX_DAYS_AHEAD = 365
DURATION_TOLERANCE_MINUTES = 5

_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

_INVALID_DATE_MARKERS = ("data inválida", "invalid date")

# Known ambiguity phrases -> follow-up question.
_AMBIGUITY_QUESTIONS: list[tuple[tuple[str, ...], str]] = [
    (("hora não específica", "horário vago", "vague time"), "horário exato (ex: 14:30)?"),
    (("data vaga", "vague date"), "data específica (ex: 25/02)?"),
]

_ERROR_MESSAGES: dict[str, str] = {
    "title_missing": "Qual é o título do evento?",
    "date_missing": "Que dia será? (ex: 25/02)",
    "time_missing": "Que horário? (ex: 14:30)",
    "title_length_invalid": "Título muito curto ou muito longo (máx 100 chars)",
    "date_format_invalid": "Data em formato inválido",
    "time_format_invalid": "Horário em formato inválido (use HH:MM)",
    "end_time_format_invalid": "Hora final em formato inválido (use HH:MM)",
    "date_too_far_future": "Data muito distante (máx 1 ano no futuro)",
    "date_out_of_range": "Data inválida",
    "time_end_before_start": "Hora final deve ser depois da hora inicial",
}

_GENERIC_PARSE_ERROR = "Erro ao fazer parse do texto"


def validate(
    candidate: ParsedCandidate,
    today: date | None = None,
    now: datetime | None = None,
    utc_offset: str = DEFAULT_UTC_OFFSET,
) -> ValidationResult:
    """Validate *candidate* against the scheduling rules.

    Steps run in order and stop at the first terminal decision:

    1. Parser error -> :class:`Invalid` with the parser's message.
    2. Ambiguities -> :class:`Invalid` for invalid dates, otherwise
       :class:`Ambiguous` with a follow-up question.
    3. Required fields, 4. formats and date range, 5. logical consistency
       -> :class:`Invalid` listing every error found.
    6. Otherwise :class:`Valid` with any warnings.

    Args:
        candidate: The parsed candidate (never mutated).
        today: The reference day.  Defaults to today at *utc_offset*.
        now: The reference instant, used only to flag a start time that
            has already passed today.  Defaults to the current time.
        utc_offset: Fixed offset defining "today".

    Returns:
        The validation outcome.
    """
    current = now_at_offset(utc_offset, now)
    if today is None:
        today = current.date()

    if candidate.status == "error":
        message = candidate.ambiguities[0] if candidate.ambiguities else _GENERIC_PARSE_ERROR
        logger.info("Candidate rejected: parser error (%s)", message)
        return Invalid(errors=[message])

    if candidate.ambiguities:
        invalid_dates = [
            a for a in candidate.ambiguities
            if any(marker in a.lower() for marker in _INVALID_DATE_MARKERS)
        ]
        if invalid_dates:
            logger.info("Candidate rejected: invalid date reported by parser")
            return Invalid(
                errors=invalid_dates,
                clarification=build_error_clarification(invalid_dates),
            )
        logger.info("Candidate ambiguous: %s", "; ".join(candidate.ambiguities))
        return Ambiguous(clarification=build_ambiguity_clarification(candidate.ambiguities))

    errors: list[ErrorCode] = []
    warnings: list[WarningCode] = []

    _check_required_fields(candidate, errors)
    start_date = _check_formats(candidate, errors)
    if start_date is not None:
        _check_date_range(candidate, start_date, today, current, errors, warnings)
    _check_consistency(candidate, errors, warnings)

    if errors:
        logger.info("Candidate rejected: %s", ", ".join(errors))
        return Invalid(errors=list(errors), clarification=build_error_clarification(errors))

    if start_date is None:
        missing: list[ErrorCode] = ["date_missing"]
        return Invalid(errors=missing, clarification=build_error_clarification(missing))

    event = ValidatedEvent(
        title=candidate.title or "",
        start_date=start_date,
        all_day=candidate.all_day,
        start_time=None if candidate.all_day else candidate.start_time,
        end_time=None if candidate.all_day else candidate.end_time,
        duration_minutes=candidate.duration_minutes,
        participants=list(candidate.participants),
        description=candidate.description,
        location=candidate.location,
    )
    if warnings:
        logger.info("Candidate valid with warnings: %s", ", ".join(warnings))
    return Valid(event=event, warnings=warnings)


# ---------------------------------------------------------------------------
# Rule steps
# ---------------------------------------------------------------------------


def _check_required_fields(candidate: ParsedCandidate, errors: list[ErrorCode]) -> None:
    if candidate.title is None or not candidate.title.strip():
        errors.append("title_missing")
    if not candidate.start_date:
        errors.append("date_missing")
    if not candidate.all_day and not candidate.start_time:
        errors.append("time_missing")


def _check_formats(candidate: ParsedCandidate, errors: list[ErrorCode]) -> date | None:
    """Check title length and date/time formats; return the parsed date."""
    title = candidate.title
    if title and title.strip() and not 1 <= len(title) <= MAX_TITLE_LENGTH:
        errors.append("title_length_invalid")

    start_date: date | None = None
    if candidate.start_date:
        start_date = parse_calendar_date(candidate.start_date)
        if start_date is None:
            errors.append("date_format_invalid")

    if candidate.start_time and parse_clock(candidate.start_time) is None:
        errors.append("time_format_invalid")
    if candidate.end_time and parse_clock(candidate.end_time) is None:
        errors.append("end_time_format_invalid")

    return start_date


def _check_date_range(
    candidate: ParsedCandidate,
    start_date: date,
    today: date,
    current: datetime,
    errors: list[ErrorCode],
    warnings: list[WarningCode],
) -> None:
    if start_date < today:
        errors.append("date_out_of_range")
        return
    if start_date > today + timedelta(days=MAX_DAYS_AHEAD):
        errors.append("date_too_far_future")
        return
    if start_date == today and current.date() == today and not candidate.all_day:
        start = parse_clock(candidate.start_time)
        if start is not None and start < current.hour * 60 + current.minute:
            warnings.append("date_retroactive_same_day")


def _check_consistency(
    candidate: ParsedCandidate,
    errors: list[ErrorCode],
    warnings: list[WarningCode],
) -> None:
    start = parse_clock(candidate.start_time)
    end = parse_clock(candidate.end_time)
    if start is None or end is None:
        return
    if end <= start:
        errors.append("time_end_before_start")
        return
    if candidate.duration_minutes is not None:
        if abs((end - start) - candidate.duration_minutes) > DURATION_TOLERANCE_MINUTES:
            warnings.append("duration_mismatch_times")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_calendar_date(text: str) -> date | None:
    """Parse a strict ``YYYY-MM-DD`` string that names a real calendar day.

    ``"2026-02-30"`` and ``"2026-04-31"`` match the grammar but do not
    round-trip through :class:`datetime.date`, so they return ``None``.
    """
    match = _DATE_RE.match(text)
    if match is None:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        parsed = date(year, month, day)
    except ValueError:
        return None
    if (parsed.year, parsed.month, parsed.day) != (year, month, day):
        return None
    return parsed


def build_ambiguity_clarification(ambiguities: list[str]) -> str:
    """Turn parser ambiguity tags into one Portuguese follow-up question."""
    questions = [_question_for(tag) for tag in ambiguities]
    return f"Preciso de mais informações: {', '.join(questions)}\n\nPode detalhar?"


def build_error_clarification(errors: list[str]) -> str:
    """Turn error codes into a bulleted Portuguese explanation.

    Unknown codes (such as parser-reported texts) are shown verbatim.
    """
    lines = [f"• {_ERROR_MESSAGES.get(code, code)}" for code in errors if code]
    return "❌ Evento inválido:\n" + "\n".join(lines) + "\n\nPode revisar?"


def _question_for(tag: str) -> str:
    lowered = tag.lower()
    for markers, question in _AMBIGUITY_QUESTIONS:
        if any(marker in lowered for marker in markers):
            return question
    return tag
