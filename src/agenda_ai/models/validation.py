"""Validation outcomes produced by :func:`agenda_ai.validator.validate`.

A result is exactly one of :class:`Valid`, :class:`Ambiguous` or
:class:`Invalid`; callers dispatch on the type (or on ``status``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

from agenda_ai.models.event import ValidatedEvent

ErrorCode = Literal[
    "title_missing",
    "date_missing",
    "time_missing",
    "title_length_invalid",
    "date_format_invalid",
    "time_format_invalid",
    "end_time_format_invalid",
    "date_too_far_future",
    "date_out_of_range",
    "time_end_before_start",
]

WarningCode = Literal["date_retroactive_same_day", "duration_mismatch_times"]


@dataclass(frozen=True)
class Valid:
    """The candidate passed every rule.

    Attributes:
        event: The validated event.
        warnings: Non-blocking warning codes.
    """

    event: ValidatedEvent
    warnings: list[WarningCode] = field(default_factory=list)
    status: Literal["valid"] = "valid"


@dataclass(frozen=True)
class Ambiguous:
    """The request is too vague to act on.

    Attributes:
        clarification: Portuguese follow-up question for the user.
    """

    clarification: str
    status: Literal["ambiguous"] = "ambiguous"


@dataclass(frozen=True)
class Invalid:
    """The request was rejected.

    Attributes:
        errors: Error codes, or pass-through texts for parser-reported
            problems (an ``error`` candidate or an invalid-date ambiguity).
        clarification: Portuguese explanation, ``None`` when the parser
            itself failed.
    """

    errors: list[str]
    clarification: str | None = None
    status: Literal["invalid"] = "invalid"


ValidationResult = Union[Valid, Ambiguous, Invalid]
