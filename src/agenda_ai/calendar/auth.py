"""Credentials for the Google Calendar API.

Two kinds of key files are accepted at ``credentials_path``:

- a **service-account key** (``"type": "service_account"``), used as-is;
- an **OAuth client secrets** file for a Desktop application, used through
  ``google-auth-oauthlib`` with a cached user token.

Usage::

    from agenda_ai.calendar.auth import get_calendar_credentials

    creds = get_calendar_credentials(
        credentials_path=Path("credentials.json"),
        token_path=Path("token.json"),
    )
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from google.auth.credentials import Credentials as BaseCredentials
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from agenda_ai.calendar.exceptions import CalendarAuthError

logger = logging.getLogger(__name__)

SCOPES: list[str] = ["https://www.googleapis.com/auth/calendar"]
"""OAuth 2.0 scopes required to list, create and delete events."""


def get_calendar_credentials(
    credentials_path: Path | str,
    token_path: Path | str,
) -> BaseCredentials:
    """Obtain valid Google Calendar credentials.

    A service-account key at *credentials_path* short-circuits everything
    else.  Otherwise the OAuth strategy is:

    1. **Cached token** -- load ``token_path`` and return if still valid.
    2. **Refresh** -- if the cached token is expired but has a refresh token,
       refresh it, save it and return.
    3. **Browser flow** -- run the ``InstalledAppFlow`` local-server flow.

    Args:
        credentials_path: Service-account key or OAuth client secrets file.
        token_path: Where the cached OAuth user token is stored.

    Returns:
        Credentials with the ``calendar`` scope.

    Raises:
        CalendarAuthError: If the key file is missing or unreadable and no
            valid cached token exists.
    """
    credentials_path = Path(credentials_path)
    token_path = Path(token_path)

    if _is_service_account_key(credentials_path):
        logger.info("Using service-account key from %s", credentials_path)
        try:
            return service_account.Credentials.from_service_account_file(
                str(credentials_path), scopes=SCOPES
            )
        except (ValueError, KeyError) as exc:
            raise CalendarAuthError(f"Invalid service-account key: {exc}") from exc

    creds = _load_cached_token(token_path)

    if creds is not None and creds.valid:
        logger.info("Loaded valid cached token from %s", token_path)
        return creds

    if creds is not None and creds.expired and creds.refresh_token:
        logger.info("Cached token expired, attempting refresh")
        refreshed = _refresh_token(creds)
        if refreshed is not None:
            _save_token(refreshed, token_path)
            return refreshed
        logger.warning("Token refresh failed, falling back to browser flow")

    logger.info("Starting browser-based OAuth flow")
    creds = _run_browser_flow(credentials_path)
    _save_token(creds, token_path)
    return creds


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _is_service_account_key(credentials_path: Path) -> bool:
    """Whether *credentials_path* holds a service-account key."""
    if not credentials_path.exists():
        return False
    try:
        data = json.loads(credentials_path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Cannot read key file %s: %s", credentials_path, exc)
        return False
    return isinstance(data, dict) and data.get("type") == "service_account"


def _load_cached_token(token_path: Path) -> Credentials | None:
    """Load an OAuth user token, or ``None`` if absent or unparseable."""
    if not token_path.exists():
        logger.info("No cached token found at %s", token_path)
        return None

    try:
        return Credentials.from_authorized_user_file(str(token_path), SCOPES)
    except (json.JSONDecodeError, ValueError, KeyError) as exc:
        logger.warning("Failed to parse cached token at %s: %s", token_path, exc)
        return None


def _refresh_token(creds: Credentials) -> Credentials | None:
    """Refresh expired credentials, returning ``None`` on failure."""
    try:
        creds.refresh(Request())
        logger.info("Token refresh succeeded")
        return creds
    except Exception as exc:
        logger.warning("Token refresh failed: %s", exc)
        return None


def _run_browser_flow(credentials_path: Path) -> Credentials:
    """Authenticate through the browser using the OAuth client secrets file.

    Raises:
        CalendarAuthError: If the client secrets file is missing.
    """
    if not credentials_path.exists():
        msg = f"Google credentials file not found: {credentials_path}"
        logger.error(msg)
        raise CalendarAuthError(msg)

    flow = InstalledAppFlow.from_client_secrets_file(
        str(credentials_path),
        scopes=SCOPES,
    )
    creds = flow.run_local_server(port=0)
    logger.info("Browser OAuth flow completed successfully")
    return creds


def _save_token(creds: Credentials, token_path: Path) -> None:
    """Persist an OAuth user token, creating parent directories."""
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json())
    logger.info("Token saved to %s", token_path)
