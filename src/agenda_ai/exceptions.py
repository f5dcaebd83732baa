"""Custom exceptions for the agenda-ai event pipeline.

Calendar backend errors live in :mod:`agenda_ai.calendar.exceptions`.
"""

from __future__ import annotations


class MalformedResponseError(Exception):
    """Raised when the LLM response cannot be parsed into a candidate.

    Covers empty output, invalid JSON and non-object payloads.  The
    :class:`~agenda_ai.llm.GeminiParser` catches this to retry once before
    falling back to an error candidate.

    Attributes:
        raw_response: The raw LLM output that failed to parse.
    """

    def __init__(self, message: str, raw_response: str = "") -> None:
        super().__init__(message)
        self.raw_response = raw_response


class LLMError(Exception):
    """Raised when the LLM cannot be reached or rejects the request.

    Unlike :class:`MalformedResponseError`, retrying is not expected to help.
    The orchestrator converts it into an error candidate.
    """


class PipelineError(Exception):
    """Raised for malformed user actions reaching the orchestrator.

    Attributes:
        user_message: Portuguese text safe to show in the chat.
    """

    def __init__(self, message: str, user_message: str) -> None:
        super().__init__(message)
        self.user_message = user_message


class TransportError(Exception):
    """Raised when the chat platform fails to deliver or edit a message."""
