"""Configuration loading for agenda-ai.

Reads settings from environment variables (with .env support via python-dotenv)
and validates that all required values are present.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from agenda_ai.intervals import parse_utc_offset


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        gemini_api_key: API key for Google Gemini.
        telegram_bot_token: Bot token issued by Telegram's BotFather.
        allowed_chat_id: The only Telegram chat allowed to drive the bot.
        owner_email: Email always injected as an attendee of created events.
        calendar_id: Google Calendar identifier (default ``"primary"``).
        undo_window_seconds: How long a created event can be undone.
        preview_ttl_seconds: How long an unanswered preview stays confirmable.
        default_duration_minutes: Duration applied when the user gives
            neither an end time nor a duration.
        llm_timeout_seconds: Upper bound for one LLM parse call.
        calendar_timeout_seconds: Upper bound for one calendar API call.
        gemini_model: Gemini model identifier.
        timezone: IANA timezone sent to the calendar API.
        utc_offset: Fixed offset used to compose event instants.
        credentials_path: OAuth client secrets or service-account key file.
        token_path: Cached OAuth user token.
        log_level: Logging level (default ``"INFO"``).
    """

    gemini_api_key: str
    telegram_bot_token: str
    allowed_chat_id: int
    owner_email: str
    calendar_id: str = "primary"
    undo_window_seconds: int = 120
    preview_ttl_seconds: int = 600
    default_duration_minutes: int = 60
    llm_timeout_seconds: int = 20
    calendar_timeout_seconds: int = 30
    gemini_model: str = "gemini-2.5-flash-lite"
    timezone: str = "America/Sao_Paulo"
    utc_offset: str = "-03:00"
    credentials_path: str = "credentials.json"
    token_path: str = "token.json"
    log_level: str = "INFO"

    def __repr__(self) -> str:
        return (
            f"Settings(gemini_api_key='***', "
            f"telegram_bot_token='***', "
            f"allowed_chat_id={self.allowed_chat_id!r}, "
            f"owner_email={self.owner_email!r}, "
            f"calendar_id={self.calendar_id!r}, "
            f"undo_window_seconds={self.undo_window_seconds!r}, "
            f"timezone={self.timezone!r}, "
            f"utc_offset={self.utc_offset!r}, "
            f"log_level={self.log_level!r})"
        )


# Optional string settings: env var -> field name.
_OPTIONAL_STRINGS = {
    "CALENDAR_ID": "calendar_id",
    "GEMINI_MODEL": "gemini_model",
    "TIMEZONE": "timezone",
    "UTC_OFFSET": "utc_offset",
    "GOOGLE_CREDENTIALS_PATH": "credentials_path",
    "GOOGLE_TOKEN_PATH": "token_path",
    "LOG_LEVEL": "log_level",
}

# Optional positive integer settings: env var -> field name.
_OPTIONAL_INTS = {
    "UNDO_WINDOW_SECONDS": "undo_window_seconds",
    "PREVIEW_TTL_SECONDS": "preview_ttl_seconds",
    "DEFAULT_DURATION_MINUTES": "default_duration_minutes",
    "LLM_TIMEOUT_SECONDS": "llm_timeout_seconds",
    "CALENDAR_TIMEOUT_SECONDS": "calendar_timeout_seconds",
}


# Variables only the chat bot needs; ``agenda-ai parse`` runs without them.
_CHAT_REQUIRED = {
    "TELEGRAM_BOT_TOKEN": "telegram_bot_token",
    "TELEGRAM_ALLOWED_CHAT_ID": "allowed_chat_id",
    "OWNER_EMAIL": "owner_email",
}


def load_settings(require_chat: bool = True) -> Settings:
    """Load and validate settings from environment variables.

    Calls :func:`dotenv.load_dotenv` so a ``.env`` file in the project root
    is picked up automatically.

    Args:
        require_chat: When ``False``, the Telegram and owner variables may
            be absent (empty values are used instead).  The offline
            ``parse`` command only needs the Gemini key.

    Returns:
        A validated :class:`Settings` instance.

    Raises:
        ConfigError: If any required environment variable is missing,
            empty, or whitespace-only (the message names **all** missing
            variables), if a numeric variable is not a positive integer,
            or if ``UTC_OFFSET`` is not of the form ``+HH:MM`` / ``-HH:MM``.
    """
    load_dotenv()

    required = {"GEMINI_API_KEY": "gemini_api_key"}
    if require_chat:
        required.update(_CHAT_REQUIRED)

    values: dict[str, object] = {}
    missing: list[str] = []

    for env_var, field_name in required.items():
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            missing.append(env_var)
        else:
            values[field_name] = raw.strip()

    if missing:
        names = ", ".join(missing)
        raise ConfigError(f"Missing required environment variables: {names}")

    if not require_chat:
        for env_var, field_name in _CHAT_REQUIRED.items():
            values[field_name] = os.environ.get(env_var, "").strip()
        values["allowed_chat_id"] = values["allowed_chat_id"] or "0"

    try:
        values["allowed_chat_id"] = int(str(values["allowed_chat_id"]))
    except ValueError as exc:
        raise ConfigError(
            f"TELEGRAM_ALLOWED_CHAT_ID must be an integer, "
            f"got {values['allowed_chat_id']!r}"
        ) from exc

    for env_var, field_name in _OPTIONAL_STRINGS.items():
        raw = os.environ.get(env_var, "").strip()
        if raw:
            values[field_name] = raw

    for env_var, field_name in _OPTIONAL_INTS.items():
        raw = os.environ.get(env_var, "").strip()
        if raw:
            values[field_name] = _parse_positive_int(env_var, raw)

    utc_offset = str(values.get("utc_offset", Settings.utc_offset))
    try:
        parse_utc_offset(utc_offset)
    except ValueError as exc:
        raise ConfigError(f"UTC_OFFSET must look like -03:00, got {utc_offset!r}") from exc

    return Settings(**values)  # type: ignore[arg-type]


def _parse_positive_int(env_var: str, raw: str) -> int:
    """Parse *raw* as a strictly positive integer or raise ``ConfigError``."""
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{env_var} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{env_var} must be positive, got {value}")
    return value
