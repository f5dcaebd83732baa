"""Entry point for ``python -m agenda_ai``.

Uses stdlib :mod:`argparse` for argument parsing.

Subcommands:
    run    -- Default. Start the Telegram bot (long polling).
    parse  -- Parse and validate one message and print the outcome,
              without touching the calendar.

Exit codes:
    0 -- Command completed (for ``parse``: the message was processed,
         whatever the validation outcome).
    1 -- An error occurred (config error, authentication, LLM failure).
    2 -- Argument parsing error (handled by argparse).
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from agenda_ai.calendar.auth import get_calendar_credentials
from agenda_ai.calendar.client import GoogleCalendarClient
from agenda_ai.calendar.exceptions import CalendarAuthError
from agenda_ai.chat.telegram import build_application
from agenda_ai.config import ConfigError, Settings, load_settings
from agenda_ai.exceptions import LLMError
from agenda_ai.llm import GeminiParser
from agenda_ai.log import setup_logging
from agenda_ai.models.validation import Ambiguous, Invalid, ValidationResult
from agenda_ai.validator import validate


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with ``run`` and ``parse`` subcommands."""
    parser = argparse.ArgumentParser(
        prog="agenda-ai",
        description="Create Google Calendar events from Portuguese chat messages.",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- "run" subcommand (default) -----------------------------------
    run_parser = subparsers.add_parser(
        "run",
        help="Start the Telegram bot.",
    )
    run_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug-level logging.",
    )

    # --- "parse" subcommand -------------------------------------------
    parse_parser = subparsers.add_parser(
        "parse",
        help="Parse and validate one message without creating anything.",
    )
    parse_parser.add_argument(
        "text",
        type=str,
        help='The message, e.g. "reunião com João amanhã às 14h".',
    )
    parse_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug-level logging.",
    )

    return parser


def _resolve_command(
    parser: argparse.ArgumentParser,
    argv: list[str],
) -> argparse.Namespace:
    """Parse *argv*, routing to ``run`` when no subcommand is given."""
    if not argv:
        argv = ["run"]
    elif argv[0] in {"-h", "--help"}:
        pass
    elif argv[0] not in {"run", "parse"}:
        argv = ["run", *argv]

    return parser.parse_args(argv)


def _apply_log_level(args: argparse.Namespace, settings: Settings) -> None:
    if not args.verbose:
        setup_logging(settings.log_level)


def _handle_run(args: argparse.Namespace) -> int:
    """Start the bot and block until it is stopped."""
    try:
        settings = load_settings()
        _apply_log_level(args, settings)
    except (ConfigError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        credentials = get_calendar_credentials(settings.credentials_path, settings.token_path)
    except CalendarAuthError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    calendar = GoogleCalendarClient(
        credentials=credentials,
        owner_email=settings.owner_email,
        timezone=settings.timezone,
        utc_offset=settings.utc_offset,
        default_duration_minutes=settings.default_duration_minutes,
    )
    parser = GeminiParser(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        utc_offset=settings.utc_offset,
    )
    application = build_application(settings, parser, calendar)
    application.run_polling()
    return 0


def _handle_parse(args: argparse.Namespace) -> int:
    """Parse and validate ``args.text`` and print the result."""
    try:
        settings = load_settings(require_chat=False)
        _apply_log_level(args, settings)
    except (ConfigError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    parser = GeminiParser(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        utc_offset=settings.utc_offset,
    )
    try:
        candidate = asyncio.run(parser.parse(args.text))
    except LLMError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Parser status: {candidate.status} (confidence {candidate.confidence:.2f})")
    print(format_result(validate(candidate, utc_offset=settings.utc_offset)))
    return 0


def format_result(result: ValidationResult) -> str:
    """Render a validation outcome for the terminal."""
    if isinstance(result, Ambiguous):
        return f"Ambiguous:\n{result.clarification}"
    if isinstance(result, Invalid):
        return f"Invalid:\n{result.clarification or '; '.join(result.errors)}"

    lines = ["Valid:", result.event.model_dump_json(indent=2)]
    if result.warnings:
        lines.append(f"Warnings: {', '.join(result.warnings)}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    """Run the agenda-ai CLI.

    Args:
        argv: Command-line arguments.  Defaults to ``sys.argv[1:]``.

    Returns:
        Exit code: ``0`` on success, ``1`` on error.
    """
    parser = build_parser()
    args = _resolve_command(parser, argv if argv is not None else sys.argv[1:])

    setup_logging("DEBUG" if getattr(args, "verbose", False) else "INFO")

    if args.command == "parse":
        return _handle_parse(args)
    return _handle_run(args)


if __name__ == "__main__":
    raise SystemExit(main())
