"""Data models for agenda-ai."""

from __future__ import annotations

from agenda_ai.models.calendar import (
    ConflictInfo,
    ConflictReport,
    CreatedEvent,
    UndoRecord,
)
from agenda_ai.models.event import (
    LLMResponseSchema,
    ParsedCandidate,
    Participant,
    ValidatedEvent,
)
from agenda_ai.models.validation import Ambiguous, Invalid, Valid, ValidationResult

__all__ = [
    "Ambiguous",
    "ConflictInfo",
    "ConflictReport",
    "CreatedEvent",
    "Invalid",
    "LLMResponseSchema",
    "ParsedCandidate",
    "Participant",
    "UndoRecord",
    "Valid",
    "ValidatedEvent",
    "ValidationResult",
]
