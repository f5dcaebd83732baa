"""Calendar backend exceptions and the async retry decorator.

Exception hierarchy::

    CalendarAPIError           (base for all calendar backend errors)
    +-- CalendarAuthError      (HTTP 401 / credential refresh failures)
    +-- CalendarRateLimitError (HTTP 429)
    +-- CalendarNotFoundError  (HTTP 404)

:func:`with_retry` wraps ``async`` client methods.  Rate limits back off
exponentially, an expired token is refreshed once, and network failures
back off only when the call is safe to repeat (``retry_network=True``).
Event creation is not safe to repeat: a request that timed out may still
have created the event.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])

# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------


class CalendarAPIError(Exception):
    """Base exception for calendar backend errors.

    Attributes:
        status_code: HTTP status code from the API, or ``None`` if the
            error did not come from an HTTP response.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CalendarAuthError(CalendarAPIError):
    """Authentication failed (HTTP 401 or a failed token refresh)."""

    def __init__(self, message: str = "Calendar authentication failed") -> None:
        super().__init__(message, status_code=401)


class CalendarRateLimitError(CalendarAPIError):
    """The backend returned HTTP 429."""

    def __init__(self, message: str = "Calendar API rate limit exceeded") -> None:
        super().__init__(message, status_code=429)


class CalendarNotFoundError(CalendarAPIError):
    """The event or calendar does not exist (HTTP 404)."""

    def __init__(self, message: str = "Calendar resource not found") -> None:
        super().__init__(message, status_code=404)


# ---------------------------------------------------------------------------
# Retry decorator
# ---------------------------------------------------------------------------

_DEFAULT_MAX_RETRIES = 3
_DEFAULT_BASE_DELAY = 1.0  # seconds
_AUTH_RETRY_LIMIT = 1


def classify_http_error(error: HttpError) -> CalendarAPIError:
    """Map an ``HttpError`` to the matching :class:`CalendarAPIError` subclass."""
    status = error.resp.status

    if status == 404:
        return CalendarNotFoundError(str(error))
    if status == 429:
        return CalendarRateLimitError(str(error))
    if status == 401:
        return CalendarAuthError(str(error))
    return CalendarAPIError(str(error), status_code=status)


def with_retry(
    max_retries: int = _DEFAULT_MAX_RETRIES,
    base_delay: float = _DEFAULT_BASE_DELAY,
    retry_network: bool = True,
) -> Callable[[F], F]:
    """Retry an async calendar method on transient failures.

    Retry policy:
    - **HTTP 429**: exponential backoff, up to *max_retries*.
    - **HTTP 401**: call ``self._refresh_credentials()`` when the instance
      has one, then retry once.
    - **Network errors** (``OSError``, ``TimeoutError``,
      ``httplib2.HttpLib2Error``): exponential
      backoff when *retry_network* is true, otherwise raise
      :class:`CalendarAPIError` at once.
    - **HTTP 404**: :class:`CalendarNotFoundError`, no retry.
    - **Credential failures** (``google.auth`` errors raised while the
      request refreshes its token): :class:`CalendarAuthError`, no retry.
    - Other HTTP errors: :class:`CalendarAPIError`, no retry.

    Args:
        max_retries: Maximum retries for rate-limit and network errors.
        base_delay: Initial backoff delay in seconds, doubled per attempt.
        retry_network: Whether network errors may be retried.

    Returns:
        A decorator for ``async def`` methods.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            auth_retries = 0

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)

                except HttpError as exc:
                    cal_error = classify_http_error(exc)

                    if isinstance(cal_error, CalendarNotFoundError):
                        logger.error("Resource not found (404): %s", exc)
                        raise cal_error from exc

                    if isinstance(cal_error, CalendarRateLimitError):
                        if attempt >= max_retries:
                            logger.error(
                                "Rate limit exceeded after %d retries: %s",
                                max_retries,
                                exc,
                            )
                            raise cal_error from exc
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            "Rate limited (429), retrying in %.1fs (attempt %d/%d)",
                            delay,
                            attempt + 1,
                            max_retries,
                        )
                        await asyncio.sleep(delay)
                        continue

                    if isinstance(cal_error, CalendarAuthError):
                        if auth_retries >= _AUTH_RETRY_LIMIT:
                            logger.error("Auth failed after token refresh: %s", exc)
                            raise cal_error from exc
                        auth_retries += 1
                        logger.warning("Auth expired (401), attempting token refresh")
                        instance = args[0] if args else None
                        refresh = getattr(instance, "_refresh_credentials", None)
                        if callable(refresh):
                            try:
                                refresh()
                            except Exception as refresh_exc:
                                logger.error("Token refresh failed: %s", refresh_exc)
                                raise CalendarAuthError(
                                    f"Token refresh failed: {refresh_exc}"
                                ) from refresh_exc
                        else:
                            logger.warning("No _refresh_credentials method available")
                        continue

                    logger.error("Calendar API error (HTTP %s): %s", cal_error.status_code, exc)
                    raise cal_error from exc

                except GoogleAuthError as exc:
                    logger.error("Credential failure: %s", exc)
                    raise CalendarAuthError(f"Credential failure: {exc}") from exc

                except (OSError, TimeoutError, httplib2.HttpLib2Error) as exc:
                    if not retry_network:
                        logger.error("Network error (not retried): %s", exc)
                        raise CalendarAPIError(f"Network error: {exc}") from exc
                    if attempt >= max_retries:
                        logger.error(
                            "Network error after %d retries: %s",
                            max_retries,
                            exc,
                        )
                        raise CalendarAPIError(
                            f"Network error after {max_retries} retries: {exc}"
                        ) from exc
                    delay = base_delay * (2**attempt)
                    logger.warning(
                        "Network error, retrying in %.1fs (attempt %d/%d): %s",
                        delay,
                        attempt + 1,
                        max_retries,
                        exc,
                    )
                    await asyncio.sleep(delay)
                    continue

            raise CalendarAPIError("Retry loop exhausted unexpectedly")  # pragma: no cover

        return wrapper  # type: ignore[return-value]

    return decorator
