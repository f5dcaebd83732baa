"""agenda-ai: natural-language calendar assistant.

Turns Portuguese chat messages into Google Calendar events, with a
confirmation preview, conflict warnings and a short undo window.
"""

from __future__ import annotations

from agenda_ai.exceptions import LLMError, MalformedResponseError, PipelineError, TransportError
from agenda_ai.models.calendar import ConflictInfo, ConflictReport, CreatedEvent, UndoRecord
from agenda_ai.models.event import ParsedCandidate, Participant, ValidatedEvent
from agenda_ai.models.validation import Ambiguous, Invalid, Valid, ValidationResult
from agenda_ai.validator import validate

__version__ = "0.1.0"

__all__ = [
    "Ambiguous",
    "ConflictInfo",
    "ConflictReport",
    "CreatedEvent",
    "Invalid",
    "LLMError",
    "MalformedResponseError",
    "ParsedCandidate",
    "Participant",
    "PipelineError",
    "TransportError",
    "UndoRecord",
    "Valid",
    "ValidatedEvent",
    "ValidationResult",
    "validate",
]
