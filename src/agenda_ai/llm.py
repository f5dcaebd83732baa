"""Gemini parser turning free text into event candidates.

Wraps the Google ``google-genai`` SDK (async surface) to convert one chat
message into a :class:`~agenda_ai.models.event.ParsedCandidate`.  Handles
prompt construction, the API call, tolerant JSON extraction, lenient
field coercion and a single retry on malformed responses.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from datetime import datetime
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from agenda_ai.exceptions import LLMError, MalformedResponseError
from agenda_ai.intervals import today_at_offset
from agenda_ai.models.event import LLMResponseSchema, ParsedCandidate, Participant
from agenda_ai.prompts import build_system_prompt, build_user_prompt

logger = logging.getLogger(__name__)

CONFIDENCE_THRESHOLD = 0.7
EMPTY_INPUT_MESSAGE = "Input vazio"

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class GeminiParser:
    """Parse chat messages into event candidates via Google Gemini.

    Args:
        api_key: Google Gemini API key.
        model: Model identifier.
        utc_offset: Offset defining "today" in the prompt.
        clock: Returns the current instant (for tests).
        client: Optional pre-built ``genai.Client``.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash-lite",
        utc_offset: str = "-03:00",
        clock: Callable[[], datetime] | None = None,
        client: genai.Client | None = None,
    ) -> None:
        self._client = client or genai.Client(api_key=api_key)
        self._model = model
        self._utc_offset = utc_offset
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def parse(self, text: str) -> ParsedCandidate:
        """Parse *text* into a candidate.

        Empty or whitespace-only input returns an ``error`` candidate without
        calling the API.  A malformed response is retried **once**; a second
        failure also yields an ``error`` candidate rather than raising.

        Raises:
            LLMError: If the Gemini API is unreachable or rejects the call.
        """
        if not text or not text.strip():
            return ParsedCandidate.error(EMPTY_INPUT_MESSAGE, raw_input=text or "")

        now = self._clock() if self._clock else None
        system_prompt = build_system_prompt(today_at_offset(self._utc_offset, now))
        user_prompt = build_user_prompt(text.strip())

        logger.debug("System prompt sent to Gemini:\n%s", system_prompt)
        logger.debug("User prompt sent to Gemini:\n%s", user_prompt)

        config = genai_types.GenerateContentConfig(
            system_instruction=system_prompt,
            response_mime_type="application/json",
            response_schema=LLMResponseSchema,
            temperature=0.3,
        )

        last_error: MalformedResponseError | None = None
        for attempt in range(1, 3):
            raw_text = await self._call_api(user_prompt, config)
            logger.debug("Raw LLM response (attempt %d):\n%s", attempt, raw_text)

            try:
                data = extract_json(raw_text)
            except MalformedResponseError as exc:
                last_error = exc
                if attempt == 1:
                    logger.warning("Malformed LLM response, retrying: %s", exc)
                continue

            candidate = coerce_candidate(data, raw_input=text)
            logger.info(
                "Parsed candidate: status=%s confidence=%.2f title=%r date=%s time=%s",
                candidate.status,
                candidate.confidence,
                candidate.title,
                candidate.start_date,
                candidate.start_time,
            )
            return candidate

        logger.error(
            "LLM response malformed after 2 attempts. Raw response: %s | Error: %s",
            last_error.raw_response if last_error else "<unknown>",
            last_error,
        )
        return ParsedCandidate.error(f"Parse error: {last_error}", raw_input=text)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _call_api(
        self,
        user_prompt: str,
        config: genai_types.GenerateContentConfig,
    ) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=user_prompt,
                config=config,
            )
        except genai_errors.APIError as exc:
            logger.error("Gemini API error: %s", exc)
            raise LLMError(f"Gemini API call failed: {exc}") from exc
        except (httpx.HTTPError, OSError) as exc:
            logger.error("Gemini request failed: %r", exc)
            raise LLMError(f"Gemini request failed: {exc}") from exc

        return response.text or ""


# ---------------------------------------------------------------------------
# Response handling
# ---------------------------------------------------------------------------


def extract_json(raw_text: str) -> dict:
    """Extract the JSON object from an LLM reply.

    Accepts a bare object, an object inside a Markdown code fence, or an
    object surrounded by prose.

    Raises:
        MalformedResponseError: If no JSON object can be decoded.
    """
    if not raw_text or not raw_text.strip():
        raise MalformedResponseError("Empty response from LLM", raw_response=raw_text or "")

    fenced = _FENCE_RE.search(raw_text)
    if fenced:
        payload = fenced.group(1)
    else:
        bare = _OBJECT_RE.search(raw_text)
        payload = bare.group(0) if bare else raw_text

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"Invalid JSON: {exc}", raw_response=raw_text) from exc

    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"Expected a JSON object, got {type(data).__name__}", raw_response=raw_text
        )
    return data


def coerce_candidate(data: dict[str, Any], raw_input: str) -> ParsedCandidate:
    """Build a candidate from decoded LLM output, ignoring ill-typed fields.

    Absent, ``null`` or wrongly typed values become ``None`` (or the field's
    empty default); a duration of ``0`` is kept.  A participant counts as
    resolved only when its email contains ``"@"``.  The status is
    ``ambiguous`` when any ambiguity is reported or confidence is below
    :data:`CONFIDENCE_THRESHOLD`.
    """
    ambiguities = [a.strip() for a in _list(data.get("ambiguities")) if isinstance(a, str) and a.strip()]
    confidence = _confidence(data.get("confidence"))
    status = "ambiguous" if ambiguities or confidence < CONFIDENCE_THRESHOLD else "success"

    return ParsedCandidate(
        status=status,
        confidence=confidence,
        title=_text(data.get("title")),
        start_date=_text(data.get("start_date")),
        start_time=_text(data.get("start_time")),
        end_time=_text(data.get("end_time")),
        duration_minutes=_duration(data.get("duration_minutes")),
        all_day=data.get("all_day") is True,
        participants=_participants(data.get("participants")),
        description=_text(data.get("description")),
        location=_text(data.get("location")),
        ambiguities=ambiguities,
        raw_input=raw_input,
    )


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip() and value.strip().lower() != "null":
        return value.strip()
    return None


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _duration(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and value >= 0:
        return value
    return None


def _confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return min(max(float(value), 0.0), 1.0)


def _participants(value: Any) -> list[Participant]:
    participants: list[Participant] = []
    for item in _list(value):
        if isinstance(item, str):
            name, email = item, None
        elif isinstance(item, dict):
            name, email = item.get("name"), item.get("email")
        else:
            continue
        name = _text(name)
        if name is None:
            continue
        email = _text(email)
        resolved = email is not None and "@" in email
        participants.append(
            Participant(name=name, email=email if resolved else None, resolved=resolved)
        )
    return participants
