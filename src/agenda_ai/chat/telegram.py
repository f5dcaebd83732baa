"""Telegram adapter built on ``python-telegram-bot``.

- :class:`TelegramTransport` implements
  :class:`~agenda_ai.chat.base.ChatTransport` on top of a ``telegram.Bot``.
- :class:`TelegramHandlers` turns incoming updates into orchestrator calls.
- :func:`build_application` wires both into a polling ``Application``.
"""

from __future__ import annotations

import logging

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from agenda_ai.chat.base import ActionRows, ChatTransport
from agenda_ai.config import Settings
from agenda_ai.exceptions import TransportError
from agenda_ai.messages import HELP_TEXT
from agenda_ai.pipeline import CalendarBackend, EventParser, PipelineOrchestrator

logger = logging.getLogger(__name__)


def to_markup(actions: ActionRows | None) -> InlineKeyboardMarkup | None:
    """Convert button rows to a Telegram inline keyboard."""
    if not actions:
        return None
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(a.text, url=a.url)
                if a.url
                else InlineKeyboardButton(a.text, callback_data=a.callback_data)
                for a in row
            ]
            for row in actions
        ]
    )


class TelegramTransport(ChatTransport):
    """Send and edit messages through a ``telegram.Bot``.

    Every Telegram failure is re-raised as
    :class:`~agenda_ai.exceptions.TransportError`.
    """

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_message(
        self,
        chat_id: int,
        text: str,
        actions: ActionRows | None = None,
    ) -> int:
        try:
            message = await self._bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=ParseMode.HTML,
                reply_markup=to_markup(actions),
            )
        except TelegramError as exc:
            raise TransportError(f"send_message failed: {exc}") from exc
        return message.message_id

    async def answer_action(self, action_id: str, text: str | None = None) -> None:
        try:
            await self._bot.answer_callback_query(callback_query_id=action_id, text=text)
        except TelegramError as exc:
            raise TransportError(f"answer_callback_query failed: {exc}") from exc

    async def edit_actions(
        self,
        chat_id: int,
        message_id: int,
        actions: ActionRows | None,
    ) -> None:
        try:
            await self._bot.edit_message_reply_markup(
                chat_id=chat_id,
                message_id=message_id,
                reply_markup=to_markup(actions),
            )
        except TelegramError as exc:
            raise TransportError(f"edit_message_reply_markup failed: {exc}") from exc


class TelegramHandlers:
    """Update handlers delegating to a :class:`PipelineOrchestrator`."""

    def __init__(self, orchestrator: PipelineOrchestrator, allowed_chat_id: int) -> None:
        self._orchestrator = orchestrator
        self._allowed_chat_id = allowed_chat_id

    async def on_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        chat = update.effective_chat
        if message is None or chat is None:
            return
        await self._orchestrator.handle_message(chat.id, message.text or "")

    async def on_action(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        chat = update.effective_chat
        if query is None or chat is None:
            return
        message_id = query.message.message_id if query.message is not None else None
        await self._orchestrator.handle_action(
            chat.id, query.id, query.data or "", message_id=message_id
        )

    async def on_help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        chat = update.effective_chat
        if message is None or chat is None or chat.id != self._allowed_chat_id:
            return
        await message.reply_text(HELP_TEXT, parse_mode=ParseMode.HTML)

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        logger.error("Unhandled error while processing update", exc_info=context.error)


def build_application(
    settings: Settings,
    parser: EventParser,
    calendar: CalendarBackend,
) -> Application:
    """Build the polling bot application.

    Args:
        settings: Application settings (token, allowed chat, ...).
        parser: Event parser handed to the orchestrator.
        calendar: Calendar backend handed to the orchestrator.

    Returns:
        A configured ``telegram.ext.Application``; call ``run_polling()``.
    """
    application = ApplicationBuilder().token(settings.telegram_bot_token).build()
    orchestrator = PipelineOrchestrator(
        parser=parser,
        calendar=calendar,
        transport=TelegramTransport(application.bot),
        settings=settings,
    )
    handlers = TelegramHandlers(orchestrator, settings.allowed_chat_id)

    application.add_handler(CommandHandler(["start", "help"], handlers.on_help))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handlers.on_text))
    application.add_handler(CallbackQueryHandler(handlers.on_action))
    application.add_error_handler(handlers.on_error)

    application.bot_data["orchestrator"] = orchestrator
    logger.info("Telegram application built (allowed chat %s)", settings.allowed_chat_id)
    return application
