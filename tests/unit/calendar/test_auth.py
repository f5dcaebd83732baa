"""Tests for Google Calendar credential loading.

Covers :func:`get_calendar_credentials`: the service-account short-circuit
and the OAuth strategy (cached token, refresh, browser flow).
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, create_autospec, patch

import pytest
from google.oauth2.credentials import Credentials

from agenda_ai.calendar.auth import (
    SCOPES,
    _is_service_account_key,
    _run_browser_flow,
    get_calendar_credentials,
)
from agenda_ai.calendar.exceptions import CalendarAuthError

_AUTH = "agenda_ai.calendar.auth"


@pytest.fixture()
def fresh_creds() -> MagicMock:
    creds = create_autospec(Credentials, instance=True)
    creds.valid = True
    creds.to_json.return_value = '{"token": "new"}'
    return creds


@pytest.fixture()
def service_account_file(tmp_path: Path) -> Path:
    path = tmp_path / "sa.json"
    path.write_text(json.dumps({"type": "service_account", "client_email": "bot@x.iam"}))
    return path


class TestServiceAccount:
    def test_service_account_key_is_used_directly(
        self, service_account_file: Path, tmp_token_file: Path
    ) -> None:
        sentinel = MagicMock()

        with patch(
            f"{_AUTH}.service_account.Credentials.from_service_account_file",
            return_value=sentinel,
        ) as mock_from_file, patch(f"{_AUTH}._load_cached_token") as mock_load:
            result = get_calendar_credentials(service_account_file, tmp_token_file)

        mock_from_file.assert_called_once_with(str(service_account_file), scopes=SCOPES)
        mock_load.assert_not_called()
        assert result is sentinel

    def test_broken_service_account_key(
        self, service_account_file: Path, tmp_token_file: Path
    ) -> None:
        with patch(
            f"{_AUTH}.service_account.Credentials.from_service_account_file",
            side_effect=ValueError("missing private_key"),
        ), pytest.raises(CalendarAuthError, match="Invalid service-account key"):
            get_calendar_credentials(service_account_file, tmp_token_file)

    def test_detection(self, tmp_credentials_file: Path, service_account_file: Path, tmp_path: Path) -> None:
        garbage = tmp_path / "garbage.json"
        garbage.write_text("{not json")

        assert _is_service_account_key(service_account_file) is True
        assert _is_service_account_key(tmp_credentials_file) is False
        assert _is_service_account_key(garbage) is False
        assert _is_service_account_key(tmp_path / "missing.json") is False


class TestOAuthStrategy:
    def test_valid_cached_token(
        self, tmp_credentials_file: Path, tmp_token_file: Path, mock_credentials: MagicMock
    ) -> None:
        with patch(f"{_AUTH}._load_cached_token", return_value=mock_credentials) as mock_load, patch(
            f"{_AUTH}._run_browser_flow"
        ) as mock_flow:
            result = get_calendar_credentials(tmp_credentials_file, tmp_token_file)

        mock_load.assert_called_once_with(tmp_token_file)
        mock_flow.assert_not_called()
        assert result is mock_credentials

    def test_expired_token_is_refreshed_and_saved(
        self,
        tmp_credentials_file: Path,
        tmp_token_file: Path,
        mock_expired_credentials: MagicMock,
    ) -> None:
        with patch(
            f"{_AUTH}._load_cached_token", return_value=mock_expired_credentials
        ), patch(
            f"{_AUTH}._refresh_token", return_value=mock_expired_credentials
        ) as mock_refresh, patch(f"{_AUTH}._save_token") as mock_save:
            result = get_calendar_credentials(tmp_credentials_file, tmp_token_file)

        mock_refresh.assert_called_once_with(mock_expired_credentials)
        mock_save.assert_called_once_with(mock_expired_credentials, tmp_token_file)
        assert result is mock_expired_credentials

    def test_failed_refresh_falls_back_to_browser(
        self,
        tmp_credentials_file: Path,
        tmp_token_file: Path,
        mock_expired_credentials: MagicMock,
        fresh_creds: MagicMock,
    ) -> None:
        with patch(
            f"{_AUTH}._load_cached_token", return_value=mock_expired_credentials
        ), patch(f"{_AUTH}._refresh_token", return_value=None), patch(
            f"{_AUTH}._run_browser_flow", return_value=fresh_creds
        ) as mock_flow, patch(f"{_AUTH}._save_token") as mock_save:
            result = get_calendar_credentials(tmp_credentials_file, tmp_token_file)

        mock_flow.assert_called_once_with(tmp_credentials_file)
        mock_save.assert_called_once_with(fresh_creds, tmp_token_file)
        assert result is fresh_creds

    def test_browser_flow_token_written_to_disk(
        self, tmp_credentials_file: Path, tmp_path: Path, fresh_creds: MagicMock
    ) -> None:
        token_path = tmp_path / "nested" / "token.json"

        with patch(f"{_AUTH}._load_cached_token", return_value=None), patch(
            f"{_AUTH}._run_browser_flow", return_value=fresh_creds
        ):
            get_calendar_credentials(tmp_credentials_file, token_path)

        assert token_path.read_text() == '{"token": "new"}'

    def test_missing_key_file_raises(self, tmp_path: Path, tmp_token_file: Path) -> None:
        with patch(f"{_AUTH}._load_cached_token", return_value=None), pytest.raises(
            CalendarAuthError, match="credentials file not found"
        ):
            get_calendar_credentials(tmp_path / "absent.json", tmp_token_file)


class TestBrowserFlow:
    def test_flow_requests_calendar_scope(self, tmp_credentials_file: Path, fresh_creds: MagicMock) -> None:
        flow = MagicMock()
        flow.run_local_server.return_value = fresh_creds

        with patch(
            f"{_AUTH}.InstalledAppFlow.from_client_secrets_file", return_value=flow
        ) as mock_from_secrets:
            result = _run_browser_flow(tmp_credentials_file)

        mock_from_secrets.assert_called_once_with(str(tmp_credentials_file), scopes=SCOPES)
        flow.run_local_server.assert_called_once_with(port=0)
        assert SCOPES == ["https://www.googleapis.com/auth/calendar"]
        assert result is fresh_creds
