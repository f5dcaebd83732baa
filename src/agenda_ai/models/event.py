"""Pydantic models for the natural-language event pipeline.

Defines the structured data types that flow from the LLM to the calendar:

- :class:`Participant` -- a person mentioned in the request.
- :class:`ParsedCandidate` -- the LLM's best-effort guess, with raw
  ``YYYY-MM-DD`` / ``HH:MM`` strings that have not been checked yet.
- :class:`ValidatedEvent` -- the committed event shape produced by
  :func:`~agenda_ai.validator.validate`.
- :class:`LLMResponseSchema` -- schema for Gemini's ``response_schema``
  parameter.

Both pipeline models are frozen: a candidate is never mutated after parsing
and a validated event is read-only once built.
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Participant
# ---------------------------------------------------------------------------


class Participant(BaseModel):
    """A participant named in the request.

    Attributes:
        name: Display name as written by the user.
        email: Email address, or ``None`` when it could not be resolved.
        resolved: Whether *email* is a usable address.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    email: str | None = None
    resolved: bool = False


# ---------------------------------------------------------------------------
# ParsedCandidate -- raw LLM guess
# ---------------------------------------------------------------------------

CandidateStatus = Literal["success", "ambiguous", "error"]


class ParsedCandidate(BaseModel):
    """The LLM's structured guess for a single event.

    Dates and times are kept as the **strings** the LLM produced; format and
    range checks happen in the validator.

    Attributes:
        status: ``"success"``, ``"ambiguous"`` or ``"error"``.
        confidence: LLM confidence in ``[0, 1]``.
        title: Event title, or ``None``.
        start_date: ``YYYY-MM-DD`` text, or ``None``.
        start_time: ``HH:MM`` (24h) text, or ``None``.
        end_time: ``HH:MM`` (24h) text, or ``None``.
        duration_minutes: Duration in minutes (``>= 0``), or ``None``.
        all_day: Whether the event spans the whole day.
        participants: Participants in the order they were mentioned.
        description: Free-text description, or ``None``.
        location: Location, or ``None``.
        ambiguities: Free-text tags describing vague parts of the input.
        raw_input: The text the user sent.
    """

    model_config = ConfigDict(frozen=True)

    status: CandidateStatus
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    title: str | None = None
    start_date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    all_day: bool = False
    participants: list[Participant] = Field(default_factory=list)
    description: str | None = None
    location: str | None = None
    ambiguities: list[str] = Field(default_factory=list)
    raw_input: str = ""

    @classmethod
    def error(cls, message: str, raw_input: str = "") -> ParsedCandidate:
        """Build an ``error`` candidate carrying *message* as its only ambiguity.

        Used whenever parsing cannot produce a real guess (empty input, LLM
        outage, timeout) so the pipeline always has a candidate to validate.
        """
        return cls(
            status="error",
            confidence=0.0,
            ambiguities=[message],
            raw_input=raw_input,
        )


# ---------------------------------------------------------------------------
# ValidatedEvent -- committed shape
# ---------------------------------------------------------------------------


class ValidatedEvent(BaseModel):
    """An event that passed every validation rule.

    Attributes:
        title: Event title (1-100 characters).
        start_date: Calendar day of the event.
        all_day: Whether the event spans the whole day.
        start_time: ``HH:MM`` start, ``None`` for all-day events.
        end_time: ``HH:MM`` end, ``None`` when unknown or all-day.
        duration_minutes: Explicit duration, ``None`` when not given.
        participants: Participants (may be empty).
        description: Description, or ``None``.
        location: Location, or ``None``.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, max_length=100)
    start_date: date
    all_day: bool = False
    start_time: str | None = None
    end_time: str | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    participants: list[Participant] = Field(default_factory=list)
    description: str | None = None
    location: str | None = None

    @property
    def attendee_emails(self) -> list[str]:
        """Emails of resolved participants, in mention order."""
        return [p.email for p in self.participants if p.resolved and p.email]


# ---------------------------------------------------------------------------
# LLMResponseSchema -- schema for Gemini response_schema
# ---------------------------------------------------------------------------


class LLMParticipant(BaseModel):
    """Participant entry in the Gemini response schema."""

    name: str
    email: str | None = None


class LLMResponseSchema(BaseModel):
    """Top-level schema passed to Gemini's ``response_schema`` parameter.

    The parser does not trust this schema: every field is re-checked by
    :func:`~agenda_ai.llm.coerce_candidate` because the model
    may still return absent or ill-typed values.
    """

    title: str | None = None
    start_date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    duration_minutes: int | None = None
    all_day: bool = False
    participants: list[LLMParticipant] = Field(default_factory=list)
    description: str | None = None
    location: str | None = None
    ambiguities: list[str] = Field(default_factory=list)
    confidence: float = 0.0
