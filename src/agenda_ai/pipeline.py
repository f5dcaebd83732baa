"""Event-lifecycle orchestrator.

:class:`PipelineOrchestrator` drives one attempt per incoming message::

    RECEIVED -> PARSED -> VALID | AMBIGUOUS | INVALID
    VALID -> CONFLICT_CHECKED -> PREVIEW_SENT
    PREVIEW_SENT -> CONFIRMED -> CREATED -> UNDO_WINDOW_OPEN -> UNDONE | EXPIRED
                 -> CANCELLED | EDIT_REQUESTED | PREVIEW_EXPIRED

plus ``IGNORED`` for unauthorised chats and ``FAILED`` when a collaborator
(LLM, calendar, chat platform) errors out.  Button presses arrive later as
actions carrying ``"<verb>:<handle>"``; previews and undo records are keyed
by handle, never by chat, so concurrent attempts from the same chat do not
interfere.

Collaborator errors are caught here, logged and turned into Portuguese
chat messages.  A failed creation never opens an undo window.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Protocol

from agenda_ai import messages
from agenda_ai.calendar.exceptions import CalendarAPIError, CalendarNotFoundError
from agenda_ai.chat.base import ChatTransport, decode_action
from agenda_ai.config import Settings
from agenda_ai.conflicts import ConflictDetector
from agenda_ai.exceptions import (
    LLMError,
    MalformedResponseError,
    PipelineError,
    TransportError,
)
from agenda_ai.expiring import Scheduler, TimerHandle, utc_now
from agenda_ai.llm import EMPTY_INPUT_MESSAGE
from agenda_ai.models.calendar import ConflictReport, CreatedEvent
from agenda_ai.models.event import ParsedCandidate, ValidatedEvent
from agenda_ai.models.validation import Ambiguous, Invalid, ValidationResult
from agenda_ai.previews import PreviewCache
from agenda_ai.undo_store import UndoStore
from agenda_ai.validator import validate

logger = logging.getLogger(__name__)

_ACTION_VERBS = (
    messages.CONFIRM,
    messages.EDIT,
    messages.CANCEL,
    messages.UNDO,
    messages.UNDO_EXPIRED,
)


# ---------------------------------------------------------------------------
# Collaborator interfaces
# ---------------------------------------------------------------------------


class EventParser(Protocol):
    async def parse(self, text: str) -> ParsedCandidate: ...


class CalendarBackend(Protocol):
    async def list_events(self, day: date, calendar_id: str) -> list[dict]: ...

    async def create_event(self, event: ValidatedEvent, calendar_id: str) -> CreatedEvent: ...

    async def delete_event(self, calendar_id: str, event_id: str) -> None: ...


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class AttemptState(str, Enum):
    """Where an attempt ended up after one message or action."""

    RECEIVED = "received"
    PARSED = "parsed"
    VALID = "valid"
    AMBIGUOUS = "ambiguous"
    INVALID = "invalid"
    CONFLICT_CHECKED = "conflict_checked"
    PREVIEW_SENT = "preview_sent"
    PREVIEW_EXPIRED = "preview_expired"
    CONFIRMED = "confirmed"
    CREATED = "created"
    UNDO_WINDOW_OPEN = "undo_window_open"
    UNDONE = "undone"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    EDIT_REQUESTED = "edit_requested"
    IGNORED = "ignored"
    FAILED = "failed"


@dataclass
class AttemptResult:
    """Outcome of :meth:`PipelineOrchestrator.handle_message` or ``handle_action``.

    Attributes:
        state: Final state reached.
        handle: Event handle, once one was generated.
        text: Last chat text sent, if any.
        message_id: Id of the last message sent, if any.
        validation: Validation outcome (messages only).
        conflicts: Conflict report (valid messages only).
        created: Backend result (confirmations only).
    """

    state: AttemptState
    handle: str | None = None
    text: str | None = None
    message_id: int | None = None
    validation: ValidationResult | None = None
    conflicts: ConflictReport | None = None
    created: CreatedEvent | None = None


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class PipelineOrchestrator:
    """Run the parse -> validate -> preview -> create -> undo lifecycle.

    Args:
        parser: Turns text into a :class:`ParsedCandidate`.
        calendar: Calendar backend (list / create / delete).
        transport: Chat transport used for every outgoing message.
        settings: Application settings (allowed chat, calendar id, windows,
            timeouts, offset).
        undo_store: Undo registry.  Built from *settings* when ``None``.
        preview_cache: Pending-preview registry.  Built from *settings* when
            ``None``.
        detector: Conflict detector.  Built from *settings* when ``None``.
        clock: Returns the current instant.
        scheduler: Schedules the undo-expiry notification.  Defaults to the
            running asyncio loop.
    """

    def __init__(
        self,
        parser: EventParser,
        calendar: CalendarBackend,
        transport: ChatTransport,
        settings: Settings,
        undo_store: UndoStore | None = None,
        preview_cache: PreviewCache | None = None,
        detector: ConflictDetector | None = None,
        clock: Callable[[], datetime] | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._parser = parser
        self._calendar = calendar
        self._transport = transport
        self._settings = settings
        self._clock = clock or utc_now
        self._scheduler = scheduler
        self.undo_store = undo_store or UndoStore(
            window_seconds=settings.undo_window_seconds,
            clock=self._clock,
            scheduler=scheduler,
        )
        self.preview_cache = preview_cache or PreviewCache(
            ttl_seconds=settings.preview_ttl_seconds,
            clock=self._clock,
            scheduler=scheduler,
        )
        self._detector = detector or ConflictDetector(
            calendar,
            utc_offset=settings.utc_offset,
            default_duration_minutes=settings.default_duration_minutes,
            timeout=settings.calendar_timeout_seconds,
        )
        self._expiry_timers: dict[str, TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Incoming messages
    # ------------------------------------------------------------------

    async def handle_message(self, chat_id: int, text: str) -> AttemptResult:
        """Process one free-text message from *chat_id*.

        Messages from any chat other than the configured one are ignored
        without a reply.
        """
        if chat_id != self._settings.allowed_chat_id:
            logger.info("Ignoring message from unauthorised chat %s", chat_id)
            return AttemptResult(AttemptState.IGNORED)

        logger.info("Attempt %s: %r", AttemptState.RECEIVED.value, (text or "")[:80])
        try:
            return await self._process_message(chat_id, text)
        except TransportError as exc:
            logger.error("Could not reply to chat %s: %s", chat_id, exc)
            return AttemptResult(AttemptState.FAILED)

    async def _process_message(self, chat_id: int, text: str) -> AttemptResult:
        candidate = await self._parse(text)
        logger.info("Attempt %s: status=%s", AttemptState.PARSED.value, candidate.status)

        now = self._clock()
        result = validate(candidate, now=now, utc_offset=self._settings.utc_offset)

        if isinstance(result, Ambiguous):
            reply = messages.build_clarification_text(result.clarification)
            message_id = await self._transport.send_message(chat_id, reply)
            logger.info("Attempt %s", AttemptState.AMBIGUOUS.value)
            return AttemptResult(
                AttemptState.AMBIGUOUS, text=reply, message_id=message_id, validation=result
            )

        if isinstance(result, Invalid):
            if result.clarification is not None:
                reply = messages.build_clarification_text(result.clarification)
            else:
                reply = messages.build_parse_error_text(result.errors)
            message_id = await self._transport.send_message(chat_id, reply)
            logger.info("Attempt %s: %s", AttemptState.INVALID.value, ", ".join(result.errors))
            return AttemptResult(
                AttemptState.INVALID, text=reply, message_id=message_id, validation=result
            )

        event = result.event
        logger.info("Attempt %s: '%s' on %s", AttemptState.VALID.value, event.title, event.start_date)

        report = await self._detector.check_conflicts(event, self._settings.calendar_id)
        logger.info(
            "Attempt %s: %d conflict(s)%s",
            AttemptState.CONFLICT_CHECKED.value,
            len(report.conflicts),
            " (query failed)" if report.query_failed else "",
        )

        handle = messages.generate_handle(now)
        self.preview_cache.add(handle, event, chat_id)
        reply = messages.build_preview_text(event, report.conflicts, result.warnings)
        try:
            message_id = await self._transport.send_message(
                chat_id, reply, messages.preview_actions(handle)
            )
        except TransportError:
            self.preview_cache.discard(handle)
            raise

        logger.info("[%s] %s", handle, AttemptState.PREVIEW_SENT.value)
        return AttemptResult(
            AttemptState.PREVIEW_SENT,
            handle=handle,
            text=reply,
            message_id=message_id,
            validation=result,
            conflicts=report,
        )

    async def _parse(self, text: str) -> ParsedCandidate:
        """Call the parser, turning every failure into an error candidate."""
        if not text or not text.strip():
            return ParsedCandidate.error(EMPTY_INPUT_MESSAGE, raw_input=text or "")
        try:
            return await asyncio.wait_for(
                self._parser.parse(text), timeout=self._settings.llm_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.error("LLM parse timed out after %ss", self._settings.llm_timeout_seconds)
            return ParsedCandidate.error("Parse error: timeout", raw_input=text)
        except (LLMError, MalformedResponseError) as exc:
            logger.error("LLM parse failed: %s", exc)
            return ParsedCandidate.error(f"Parse error: {exc}", raw_input=text)
        except Exception as exc:
            logger.exception("Unexpected parser failure")
            return ParsedCandidate.error(f"Parse error: {exc}", raw_input=text)

    # ------------------------------------------------------------------
    # Button actions
    # ------------------------------------------------------------------

    async def handle_action(
        self,
        chat_id: int,
        action_id: str,
        data: str,
        message_id: int | None = None,
    ) -> AttemptResult:
        """Process a button press.

        Args:
            chat_id: Chat the button was pressed in.
            action_id: Platform id of the press, used to acknowledge it.
            data: ``"<verb>:<handle>"`` callback payload.
            message_id: Message carrying the button.  When given, decided
                previews lose their buttons.
        """
        if chat_id != self._settings.allowed_chat_id:
            logger.info("Ignoring action from unauthorised chat %s", chat_id)
            return AttemptResult(AttemptState.IGNORED)

        try:
            verb, handle = parse_action(data)
        except PipelineError as exc:
            logger.warning("Rejected action %r: %s", data, exc)
            await self._answer(action_id, exc.user_message)
            return AttemptResult(AttemptState.IGNORED)

        handlers = {
            messages.CONFIRM: self._confirm,
            messages.EDIT: self._edit,
            messages.CANCEL: self._cancel,
            messages.UNDO: self._undo,
            messages.UNDO_EXPIRED: self._undo_expired,
        }
        try:
            return await handlers[verb](chat_id, action_id, handle, message_id)
        except TransportError as exc:
            logger.error("[%s] could not reply to chat %s: %s", handle, chat_id, exc)
            return AttemptResult(AttemptState.FAILED, handle=handle)

    async def _confirm(
        self, chat_id: int, action_id: str, handle: str, message_id: int | None
    ) -> AttemptResult:
        pending = self.preview_cache.consume(handle)
        if pending is None:
            return await self._preview_expired(chat_id, action_id, handle)

        await self._answer(action_id)
        await self._clear_actions(chat_id, message_id)
        logger.info("[%s] %s", handle, AttemptState.CONFIRMED.value)

        try:
            created = await asyncio.wait_for(
                self._calendar.create_event(pending.event, self._settings.calendar_id),
                timeout=self._settings.calendar_timeout_seconds,
            )
        except (CalendarAPIError, asyncio.TimeoutError, ValueError) as exc:
            logger.error("[%s] create failed: %r", handle, exc)
            return await self._failed(chat_id, handle, messages.CREATE_FAILED_TEXT)
        except Exception:
            logger.exception("[%s] create failed unexpectedly", handle)
            return await self._failed(chat_id, handle, messages.CREATE_FAILED_TEXT)

        logger.info("[%s] %s: id=%s", handle, AttemptState.CREATED.value, created.event_id)

        self.undo_store.open_window(handle, created)
        window = self._settings.undo_window_seconds
        reply = messages.build_created_text(created)
        try:
            sent_id = await self._transport.send_message(
                chat_id, reply, messages.undo_actions(handle, created.link, window)
            )
        except TransportError:
            self.undo_store.discard(handle)
            raise
        self._schedule_expiry(handle, chat_id, sent_id, created.link)
        logger.info("[%s] %s (%ds)", handle, AttemptState.UNDO_WINDOW_OPEN.value, window)
        return AttemptResult(
            AttemptState.UNDO_WINDOW_OPEN,
            handle=handle,
            text=reply,
            message_id=sent_id,
            created=created,
        )

    async def _cancel(
        self, chat_id: int, action_id: str, handle: str, message_id: int | None
    ) -> AttemptResult:
        if self.preview_cache.consume(handle) is None:
            return await self._preview_expired(chat_id, action_id, handle)

        await self._answer(action_id)
        await self._clear_actions(chat_id, message_id)
        reply = messages.CANCELLED_TEXT
        sent_id = await self._transport.send_message(chat_id, reply)
        logger.info("[%s] %s", handle, AttemptState.CANCELLED.value)
        return AttemptResult(AttemptState.CANCELLED, handle=handle, text=reply, message_id=sent_id)

    async def _edit(
        self, chat_id: int, action_id: str, handle: str, message_id: int | None
    ) -> AttemptResult:
        if self.preview_cache.consume(handle) is None:
            return await self._preview_expired(chat_id, action_id, handle)

        await self._answer(action_id)
        await self._clear_actions(chat_id, message_id)
        reply = messages.EDIT_REQUESTED_TEXT
        sent_id = await self._transport.send_message(chat_id, reply)
        logger.info("[%s] %s", handle, AttemptState.EDIT_REQUESTED.value)
        return AttemptResult(
            AttemptState.EDIT_REQUESTED, handle=handle, text=reply, message_id=sent_id
        )

    async def _undo(
        self, chat_id: int, action_id: str, handle: str, message_id: int | None
    ) -> AttemptResult:
        record = self.undo_store.consume(handle)
        if record is None:
            await self._answer(action_id, messages.UNDO_EXPIRED_TOAST)
            reply = messages.build_undo_expired_text(self._settings.undo_window_seconds)
            sent_id = await self._transport.send_message(chat_id, reply)
            logger.info("[%s] undo refused: %s", handle, AttemptState.EXPIRED.value)
            return AttemptResult(AttemptState.EXPIRED, handle=handle, text=reply, message_id=sent_id)

        self._cancel_expiry(handle)
        await self._answer(action_id)

        try:
            await asyncio.wait_for(
                self._calendar.delete_event(record.calendar_id, record.calendar_event_id),
                timeout=self._settings.calendar_timeout_seconds,
            )
        except CalendarNotFoundError:
            logger.warning("[%s] event %s was already gone", handle, record.calendar_event_id)
        except (CalendarAPIError, asyncio.TimeoutError) as exc:
            logger.error("[%s] delete failed: %r", handle, exc)
            return await self._failed(chat_id, handle, messages.UNDO_FAILED_TEXT)
        except Exception:
            logger.exception("[%s] delete failed unexpectedly", handle)
            return await self._failed(chat_id, handle, messages.UNDO_FAILED_TEXT)

        await self._clear_actions(chat_id, message_id)
        reply = messages.build_undo_success_text(record.event_title)
        sent_id = await self._transport.send_message(chat_id, reply)
        logger.info("[%s] %s", handle, AttemptState.UNDONE.value)
        return AttemptResult(AttemptState.UNDONE, handle=handle, text=reply, message_id=sent_id)

    async def _undo_expired(
        self, chat_id: int, action_id: str, handle: str, message_id: int | None
    ) -> AttemptResult:
        await self._answer(action_id, messages.UNDO_EXPIRED_TOAST)
        return AttemptResult(AttemptState.EXPIRED, handle=handle)

    async def _failed(self, chat_id: int, handle: str, reply: str) -> AttemptResult:
        sent_id = await self._transport.send_message(chat_id, reply)
        return AttemptResult(AttemptState.FAILED, handle=handle, text=reply, message_id=sent_id)

    async def _preview_expired(self, chat_id: int, action_id: str, handle: str) -> AttemptResult:
        await self._answer(action_id)
        reply = messages.PREVIEW_EXPIRED_TEXT
        sent_id = await self._transport.send_message(chat_id, reply)
        logger.info("[%s] %s", handle, AttemptState.PREVIEW_EXPIRED.value)
        return AttemptResult(
            AttemptState.PREVIEW_EXPIRED, handle=handle, text=reply, message_id=sent_id
        )

    # ------------------------------------------------------------------
    # Undo expiry
    # ------------------------------------------------------------------

    async def expire_undo(
        self, handle: str, chat_id: int, message_id: int, link: str
    ) -> AttemptResult | None:
        """Swap the undo button for a disabled "Prazo expirado" button.

        Does nothing when the handle is no longer in the undo store (the
        event was undone in the meantime).
        """
        self._expiry_timers.pop(handle, None)
        if not self.undo_store.contains(handle):
            logger.debug("[%s] expiry skipped, handle no longer registered", handle)
            return None

        try:
            await self._transport.edit_actions(
                chat_id, message_id, messages.expired_actions(handle, link)
            )
        except TransportError as exc:
            logger.warning("[%s] could not mark undo as expired: %s", handle, exc)
        logger.info("[%s] %s", handle, AttemptState.EXPIRED.value)
        return AttemptResult(AttemptState.EXPIRED, handle=handle, message_id=message_id)

    def _schedule_expiry(self, handle: str, chat_id: int, message_id: int, link: str) -> None:
        self._cancel_expiry(handle)
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._expiry_timers[handle] = scheduler.call_later(
            self._settings.undo_window_seconds,
            self._on_expiry_timer,
            handle,
            chat_id,
            message_id,
            link,
        )

    def _on_expiry_timer(self, handle: str, chat_id: int, message_id: int, link: str) -> None:
        task = asyncio.get_running_loop().create_task(
            self.expire_undo(handle, chat_id, message_id, link)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _cancel_expiry(self, handle: str) -> None:
        timer = self._expiry_timers.pop(handle, None)
        if timer is not None:
            timer.cancel()

    # ------------------------------------------------------------------
    # Transport helpers
    # ------------------------------------------------------------------

    async def _answer(self, action_id: str, text: str | None = None) -> None:
        """Acknowledge a button press; failures only cost the spinner."""
        try:
            await self._transport.answer_action(action_id, text)
        except TransportError as exc:
            logger.warning("Could not answer action %s: %s", action_id, exc)

    async def _clear_actions(self, chat_id: int, message_id: int | None) -> None:
        if message_id is None:
            return
        try:
            await self._transport.edit_actions(chat_id, message_id, None)
        except TransportError as exc:
            logger.warning("Could not clear buttons on message %s: %s", message_id, exc)


def parse_action(data: str) -> tuple[str, str]:
    """Split and check a callback payload.

    Raises:
        PipelineError: If the verb is unknown or the handle is missing.
    """
    verb, handle = decode_action(data or "")
    if verb not in _ACTION_VERBS:
        raise PipelineError(f"Unknown action verb {verb!r}", messages.UNKNOWN_ACTION_TEXT)
    if not handle and verb != messages.UNDO_EXPIRED:
        raise PipelineError(f"Action {verb!r} without handle", messages.UNKNOWN_ACTION_TEXT)
    return verb, handle
