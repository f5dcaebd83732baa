"""Tests for calendar exceptions and the async ``@with_retry`` decorator.

| Scenario | Expected |
|---|---|
| HTTP 429 once, then OK | Retries after backoff, succeeds |
| HTTP 429 every time | CalendarRateLimitError after max retries |
| HTTP 401 once | Refreshes credentials, retries, succeeds |
| HTTP 401, refresh fails | CalendarAuthError |
| Credential refresh error inside a call | CalendarAuthError, no retry |
| Network error once (retryable) | Retries, succeeds |
| Network error (not retryable) | CalendarAPIError immediately |
| httplib2 connection error | Treated as a network error |
| HTTP 404 | CalendarNotFoundError, no retry |
| HTTP 500 | CalendarAPIError with status, no retry |
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError
from httplib2 import Response, ServerNotFoundError

from agenda_ai.calendar.exceptions import (
    CalendarAPIError,
    CalendarAuthError,
    CalendarNotFoundError,
    CalendarRateLimitError,
    classify_http_error,
    with_retry,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_http_error(status: int) -> HttpError:
    """Create a ``googleapiclient.errors.HttpError`` with the given status code."""
    resp = Response({"status": str(status)})
    return HttpError(resp, b"simulated error")


class _FakeClient:
    """Stand-in for ``GoogleCalendarClient``: counts refreshes and calls."""

    def __init__(self, outcomes: list[object], *, refresh_error: Exception | None = None) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0
        self.refreshes = 0
        self.refresh_error = refresh_error

    def _refresh_credentials(self) -> None:
        self.refreshes += 1
        if self.refresh_error is not None:
            raise self.refresh_error

    async def _next(self) -> str:
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @with_retry(max_retries=3, base_delay=1.0)
    async def read(self) -> str:
        return await self._next()

    @with_retry(max_retries=3, base_delay=1.0, retry_network=False)
    async def write(self) -> str:
        return await self._next()


@pytest.fixture()
def sleep():
    with patch("agenda_ai.calendar.exceptions.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassifyHttpError:
    @pytest.mark.parametrize(
        ("status", "cls"),
        [
            (404, CalendarNotFoundError),
            (429, CalendarRateLimitError),
            (401, CalendarAuthError),
            (500, CalendarAPIError),
        ],
    )
    def test_mapping(self, status: int, cls: type[CalendarAPIError]) -> None:
        error = classify_http_error(_make_http_error(status))

        assert type(error) is cls
        assert error.status_code == status

    def test_hierarchy(self) -> None:
        for cls in (CalendarAuthError, CalendarRateLimitError, CalendarNotFoundError):
            assert issubclass(cls, CalendarAPIError)


# ---------------------------------------------------------------------------
# Rate limits
# ---------------------------------------------------------------------------


class TestRateLimit:
    async def test_429_then_success(self, sleep: AsyncMock) -> None:
        client = _FakeClient([_make_http_error(429), "ok"])

        assert await client.read() == "ok"
        assert client.calls == 2
        sleep.assert_awaited_once_with(1.0)

    async def test_429_exhausts_retries(self, sleep: AsyncMock) -> None:
        client = _FakeClient([_make_http_error(429)] * 4)

        with pytest.raises(CalendarRateLimitError):
            await client.read()

        assert client.calls == 4
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0, 4.0]

    async def test_429_is_retried_even_for_writes(self, sleep: AsyncMock) -> None:
        client = _FakeClient([_make_http_error(429), "ok"])

        assert await client.write() == "ok"


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class TestAuth:
    async def test_401_refreshes_once(self, sleep: AsyncMock) -> None:
        client = _FakeClient([_make_http_error(401), "ok"])

        assert await client.read() == "ok"
        assert client.refreshes == 1
        sleep.assert_not_awaited()

    async def test_401_twice_raises(self, sleep: AsyncMock) -> None:
        client = _FakeClient([_make_http_error(401), _make_http_error(401)])

        with pytest.raises(CalendarAuthError):
            await client.read()

        assert client.refreshes == 1

    async def test_refresh_failure_raises(self, sleep: AsyncMock) -> None:
        client = _FakeClient([_make_http_error(401)], refresh_error=RuntimeError("revoked"))

        with pytest.raises(CalendarAuthError, match="Token refresh failed"):
            await client.read()

    async def test_credential_error_inside_call_is_not_retried(self, sleep: AsyncMock) -> None:
        client = _FakeClient([RefreshError("invalid_grant"), "ok"])

        with pytest.raises(CalendarAuthError, match="invalid_grant"):
            await client.read()

        assert client.calls == 1
        sleep.assert_not_awaited()


# ---------------------------------------------------------------------------
# Network errors
# ---------------------------------------------------------------------------


class TestNetwork:
    async def test_timeout_retried_for_reads(self, sleep: AsyncMock) -> None:
        client = _FakeClient([TimeoutError("slow"), "ok"])

        assert await client.read() == "ok"
        assert client.calls == 2

    async def test_network_errors_exhaust(self, sleep: AsyncMock) -> None:
        client = _FakeClient([ConnectionResetError("reset")] * 4)

        with pytest.raises(CalendarAPIError, match="after 3 retries"):
            await client.read()

    async def test_httplib2_errors_are_network_errors(self, sleep: AsyncMock) -> None:
        client = _FakeClient([ServerNotFoundError("no dns"), "ok"])

        assert await client.read() == "ok"
        assert client.calls == 2

    async def test_httplib2_errors_on_writes_are_not_retried(self, sleep: AsyncMock) -> None:
        client = _FakeClient([ServerNotFoundError("no dns"), "ok"])

        with pytest.raises(CalendarAPIError, match="no dns"):
            await client.write()

        assert client.calls == 1

    async def test_writes_never_retry_network_errors(self, sleep: AsyncMock) -> None:
        client = _FakeClient([TimeoutError("slow"), "ok"])

        with pytest.raises(CalendarAPIError, match="Network error"):
            await client.write()

        assert client.calls == 1
        sleep.assert_not_awaited()


# ---------------------------------------------------------------------------
# Non-retryable HTTP errors
# ---------------------------------------------------------------------------


class TestNonRetryable:
    async def test_404(self, sleep: AsyncMock) -> None:
        client = _FakeClient([_make_http_error(404), "ok"])

        with pytest.raises(CalendarNotFoundError):
            await client.read()

        assert client.calls == 1

    async def test_500(self, sleep: AsyncMock) -> None:
        client = _FakeClient([_make_http_error(500), "ok"])

        with pytest.raises(CalendarAPIError) as exc_info:
            await client.read()

        assert exc_info.value.status_code == 500
        assert client.calls == 1
