"""User-facing chat texts and button layouts.

Every string the bot shows lives here, in Portuguese, formatted for
Telegram's HTML parse mode.  User-provided values are escaped with
:func:`html.escape`.
"""

from __future__ import annotations

import html
import secrets
import string
from datetime import date, datetime, timezone

from agenda_ai.chat.base import Action, ActionRows, encode_action
from agenda_ai.models.calendar import ConflictInfo, CreatedEvent
from agenda_ai.models.event import Participant, ValidatedEvent

HANDLE_RANDOM_LENGTH = 6
_HANDLE_ALPHABET = string.ascii_uppercase + string.digits

MAX_PARTICIPANTS_SHOWN = 3
MAX_DESCRIPTION_LENGTH = 200

WEEKDAYS_PT = [
    "Segunda-feira",
    "Terça-feira",
    "Quarta-feira",
    "Quinta-feira",
    "Sexta-feira",
    "Sábado",
    "Domingo",
]

MONTHS_PT = [
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
]

# Action verbs carried in callback data.
CONFIRM = "confirm"
EDIT = "edit"
CANCEL = "cancel"
UNDO = "undo"
UNDO_EXPIRED = "undo_expired"

# ---------------------------------------------------------------------------
# Fixed texts
# ---------------------------------------------------------------------------

HELP_TEXT = (
    "👋 <b>Olá!</b> Me diga o evento em uma frase e eu preparo o convite.\n\n"
    "Exemplos:\n"
    "• <i>Reunião com João amanhã às 14h</i>\n"
    "• <i>Dentista dia 25/03 às 9h30 por 45 minutos</i>\n"
    "• <i>Aniversário da Ana sábado o dia todo</i>\n\n"
    "Você confirma antes de qualquer coisa ir para o Google Calendar."
)
CANCELLED_TEXT = "❌ Evento cancelado."
EDIT_REQUESTED_TEXT = (
    "✏️ Envie uma nova mensagem com o evento corrigido "
    "(ex: <i>Reunião amanhã às 15h</i>)."
)
PREVIEW_EXPIRED_TEXT = "⌛ Esta prévia expirou. Envie o evento novamente."
CREATE_FAILED_TEXT = (
    "⚠️ Não consegui criar o evento no Google Calendar. Tente novamente em instantes."
)
UNDO_FAILED_TEXT = "⚠️ Não consegui remover o evento. Verifique no Google Calendar."
UNKNOWN_ACTION_TEXT = "Ação desconhecida."
UNDO_EXPIRED_TOAST = "⏱ Prazo expirado. O evento foi mantido."

_WARNING_TEXTS = {
    "date_retroactive_same_day": "⚠️ Esse horário de hoje já passou.",
    "duration_mismatch_times": "⚠️ A duração informada não bate com o horário final.",
}


# ---------------------------------------------------------------------------
# Handles
# ---------------------------------------------------------------------------


def generate_handle(now: datetime | None = None) -> str:
    """Return a new event handle.

    Format: 10-digit unix seconds followed by 6 random upper-case
    alphanumerics (16 characters), e.g. ``"1772030400K3Z9QA"``.
    """
    current = now or datetime.now(timezone.utc)
    suffix = "".join(secrets.choice(_HANDLE_ALPHABET) for _ in range(HANDLE_RANDOM_LENGTH))
    return f"{int(current.timestamp()):010d}{suffix}"


# ---------------------------------------------------------------------------
# Preview
# ---------------------------------------------------------------------------


def build_preview_text(
    event: ValidatedEvent,
    conflicts: list[ConflictInfo] | None = None,
    warnings: list[str] | None = None,
) -> str:
    """Render the confirmation preview for *event*."""
    lines = [
        "📅 <b>Evento</b>",
        "",
        f"<b>Título:</b> {html.escape(event.title)}",
        f"<b>Data:</b> {weekday_pt(event.start_date)}, {event.start_date:%d/%m/%Y}",
    ]

    if event.all_day:
        lines.append("<b>Horário:</b> O dia todo")
    else:
        lines.append(f"<b>Horário:</b> {_time_range(event)}")

    if event.participants:
        lines.append(f"<b>Participantes:</b> {_participants(event.participants)}")

    if event.description and event.description.strip():
        desc = truncate(event.description, MAX_DESCRIPTION_LENGTH)
        lines.append(f"<b>Descrição:</b> {html.escape(desc)}")

    if event.location and event.location.strip():
        lines.append(f"<b>Local:</b> {html.escape(event.location)}")

    for code in warnings or []:
        if code in _WARNING_TEXTS:
            lines.append(_WARNING_TEXTS[code])

    if conflicts:
        lines.append("")
        lines.append("⚠️ <b>Conflito detectado:</b>")
        for conflict in conflicts:
            lines.append(
                f"• {html.escape(conflict.title)} "
                f"({conflict.start_time}–{conflict.end_time})"
            )

    lines.append("")
    lines.append("<i>Confirme, edite ou cancele:</i>")
    return "\n".join(lines)


def preview_actions(handle: str) -> ActionRows:
    return [
        [
            Action("✅ Confirmar", callback_data=encode_action(CONFIRM, handle)),
            Action("✏️ Editar", callback_data=encode_action(EDIT, handle)),
            Action("❌ Cancelar", callback_data=encode_action(CANCEL, handle)),
        ]
    ]


# ---------------------------------------------------------------------------
# Creation notification and undo
# ---------------------------------------------------------------------------


def build_created_text(created: CreatedEvent) -> str:
    """Render the "event created" notification from the backend's values."""
    lines = [
        "✅ <b>Evento criado!</b>",
        "",
        f"📋 <b>{html.escape(created.title)}</b>",
    ]

    day = _date_part(created.start)
    if day is not None:
        lines.append(f"📅 {long_date_pt(day)}")

    if not created.all_day:
        start_clock = created.start[11:16]
        end_clock = created.end[11:16]
        minutes = _minutes_between(created.start, created.end)
        time_line = f"⏰ {start_clock} - {end_clock}"
        if minutes:
            time_line += f" ({format_duration(minutes)})"
        lines.append(time_line)

    return "\n".join(lines)


def undo_actions(handle: str, link: str, window_seconds: int) -> ActionRows:
    row = _link_row(link)
    row.append(
        Action(
            f"↩️ Desfazer ({format_countdown(window_seconds)})",
            callback_data=encode_action(UNDO, handle),
        )
    )
    return [row]


def expired_actions(handle: str, link: str) -> ActionRows:
    row = _link_row(link)
    row.append(Action("⏱ Prazo expirado", callback_data=encode_action(UNDO_EXPIRED, handle)))
    return [row]


def build_undo_success_text(title: str) -> str:
    return (
        "↩️ <b>Evento cancelado</b>\n\n"
        f"<i>\"{html.escape(title)}\" foi removido do Google Calendar.</i>"
    )


def build_undo_expired_text(window_seconds: int) -> str:
    return (
        "⏱ <b>Prazo expirado</b>\n\n"
        f"<i>O prazo de desfazer ({_window_label(window_seconds)}) já passou. "
        "O evento foi mantido no Google Calendar.</i>"
    )


# ---------------------------------------------------------------------------
# Validation feedback
# ---------------------------------------------------------------------------


def build_clarification_text(clarification: str) -> str:
    return html.escape(clarification)


def build_parse_error_text(errors: list[str]) -> str:
    """Text for a request the parser could not turn into a candidate."""
    reason = errors[0] if errors else "erro desconhecido"
    return f"❌ Não entendi o pedido ({html.escape(reason)}). Pode reformular?"


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def weekday_pt(day: date) -> str:
    return WEEKDAYS_PT[day.weekday()]


def long_date_pt(day: date) -> str:
    """``"Quarta-feira, 25 de fevereiro de 2026"``."""
    return f"{weekday_pt(day)}, {day.day} de {MONTHS_PT[day.month - 1]} de {day.year}"


def format_duration(minutes: int) -> str:
    """``45`` -> ``"45min"``, ``60`` -> ``"1h"``, ``90`` -> ``"1h 30min"``."""
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins}min"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}min"


def format_countdown(seconds: int) -> str:
    """``120`` -> ``"2:00"``."""
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes}:{secs:02d}"


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def _time_range(event: ValidatedEvent) -> str:
    if event.end_time:
        return f"{event.start_time}–{event.end_time}"
    if event.duration_minutes is not None:
        return f"{event.start_time} (~{format_duration(event.duration_minutes)})"
    return event.start_time or ""


def _participants(participants: list[Participant]) -> str:
    names = ", ".join(html.escape(p.name) for p in participants[:MAX_PARTICIPANTS_SHOWN])
    hidden = len(participants) - MAX_PARTICIPANTS_SHOWN
    if hidden > 0:
        return f"{names} +{hidden} outros"
    return names


def _link_row(link: str) -> list[Action]:
    if not link:
        return []
    return [Action("🔗 Ver no Google Calendar", url=link)]


def _window_label(seconds: int) -> str:
    if seconds % 60 == 0:
        minutes = seconds // 60
        return "1 minuto" if minutes == 1 else f"{minutes} minutos"
    return f"{seconds} segundos"


def _date_part(value: str) -> date | None:
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _minutes_between(start: str, end: str) -> int:
    try:
        delta = datetime.fromisoformat(end) - datetime.fromisoformat(start)
    except (TypeError, ValueError):
        return 0
    return max(int(delta.total_seconds() // 60), 0)
