"""Chat transport interface.

The pipeline talks to the chat platform only through
:class:`ChatTransport`, so the orchestrator can be driven by a fake in
tests and by :class:`~agenda_ai.chat.telegram.TelegramTransport` in
production.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

ACTION_SEPARATOR = ":"


@dataclass(frozen=True)
class Action:
    """A button attached to a chat message.

    Exactly one of *callback_data* (sent back to the bot when pressed) and
    *url* (opened in the browser) is set.
    """

    text: str
    callback_data: str | None = None
    url: str | None = None


ActionRows = list[list[Action]]


def encode_action(verb: str, handle: str) -> str:
    """Build the ``"<verb>:<handle>"`` callback payload."""
    return f"{verb}{ACTION_SEPARATOR}{handle}"


def decode_action(data: str) -> tuple[str, str]:
    """Split a callback payload into ``(verb, handle)``.

    A payload without a separator yields an empty handle.
    """
    verb, _, handle = data.partition(ACTION_SEPARATOR)
    return verb, handle


class ChatTransport(ABC):
    """Outbound side of the chat platform."""

    @abstractmethod
    async def send_message(
        self,
        chat_id: int,
        text: str,
        actions: ActionRows | None = None,
    ) -> int:
        """Send *text* with optional button rows and return the message id."""

    @abstractmethod
    async def answer_action(self, action_id: str, text: str | None = None) -> None:
        """Acknowledge a button press, optionally with a short toast."""

    @abstractmethod
    async def edit_actions(
        self,
        chat_id: int,
        message_id: int,
        actions: ActionRows | None,
    ) -> None:
        """Replace the buttons of an existing message (``None`` removes them)."""
