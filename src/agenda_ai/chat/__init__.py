"""Chat platform integration for agenda-ai.

The Telegram adapter lives in :mod:`agenda_ai.chat.telegram` and is
imported explicitly by the CLI.
"""

from __future__ import annotations

from agenda_ai.chat.base import Action, ActionRows, ChatTransport, decode_action, encode_action

__all__ = [
    "Action",
    "ActionRows",
    "ChatTransport",
    "decode_action",
    "encode_action",
]
