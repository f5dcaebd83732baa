"""Shared fixtures for agenda-ai tests."""

from __future__ import annotations

import logging
from collections.abc import Generator

import pytest


@pytest.fixture()
def monkeypatch_env(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set all required environment variables to valid defaults.

    Also patches ``load_dotenv`` so that a real ``.env`` file on disk does not
    override the test values.

    Returns the dict of variables so tests can inspect or override values.
    """
    monkeypatch.setattr("agenda_ai.config.load_dotenv", lambda *_a, **_kw: None)
    env_vars = {
        "GEMINI_API_KEY": "test-gemini-key-12345",
        "TELEGRAM_BOT_TOKEN": "123456:test-token",
        "TELEGRAM_ALLOWED_CHAT_ID": "4242",
        "OWNER_EMAIL": "owner@example.com",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove all agenda-ai-related environment variables.

    Patches ``load_dotenv`` so a real ``.env`` file cannot re-inject values
    that the test explicitly removed.
    """
    monkeypatch.setattr("agenda_ai.config.load_dotenv", lambda *_a, **_kw: None)
    for key in (
        "GEMINI_API_KEY",
        "TELEGRAM_BOT_TOKEN",
        "TELEGRAM_ALLOWED_CHAT_ID",
        "OWNER_EMAIL",
        "CALENDAR_ID",
        "GEMINI_MODEL",
        "TIMEZONE",
        "UTC_OFFSET",
        "GOOGLE_CREDENTIALS_PATH",
        "GOOGLE_TOKEN_PATH",
        "LOG_LEVEL",
        "UNDO_WINDOW_SECONDS",
        "PREVIEW_TTL_SECONDS",
        "DEFAULT_DURATION_MINUTES",
        "LLM_TIMEOUT_SECONDS",
        "CALENDAR_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _reset_root_logger() -> Generator[None, None, None]:
    """Reset the root logger after each test to prevent handler leaks."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
