"""HTTP GET with bounded retries for registry downloads.

Transient failures (connection errors, timeouts, 5xx, 429) are retried with
exponential backoff; other non-2xx statuses fail on the first attempt.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import requests

from ..constants import Constants
from ..errors import ConfigError, NetworkError
from .logging_utils import Timer, extra_context, is_debug_enabled, redact, safe_url

logger = logging.getLogger(__name__)


class HttpStatusError(Exception):
    """Non-retryable HTTP status (4xx other than 429)."""

    def __init__(self, url: str, status_code: int):
        super().__init__(f"{safe_url(url)} returned status {status_code}")
        self.url = url
        self.status_code = status_code


def is_retryable_status(status_code: int) -> bool:
    """Server errors and rate limiting are worth another attempt."""
    return status_code >= 500 or status_code in Constants.HTTP_RETRYABLE_STATUS


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay after the given 1-based failed attempt."""
    return min(max_delay, base_delay * (2 ** (attempt - 1)))


def build_session() -> requests.Session:
    """Session with the project's User-Agent."""
    session = requests.Session()
    session.headers.update({"User-Agent": Constants.USER_AGENT})
    return session


def fetch_bytes(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    retries: int = Constants.HTTP_RETRY_MAX,
    timeout: float = Constants.REQUEST_TIMEOUT,
    base_delay: float = Constants.HTTP_RETRY_BASE_DELAY_SEC,
    max_delay: float = Constants.HTTP_RETRY_MAX_DELAY_SEC,
    sleep: Callable[[float], None] = time.sleep,
) -> bytes:
    """GET url and return the body, retrying transient failures.

    Args:
        url: Target URL.
        session: requests session to use; a module-level request is made without one.
        retries: Total attempts allowed (>= 1).
        timeout: Per-request timeout in seconds.
        base_delay: Delay after the first failure; doubles per attempt.
        max_delay: Upper bound for a single delay.
        sleep: Injection point for tests.

    Returns:
        bytes: Response body of the first 2xx response.

    Raises:
        HttpStatusError: Non-retryable status, raised without retrying.
        NetworkError: Every attempt failed (message includes the attempt count),
            or the request was malformed and failed without retrying.
    """
    if retries < 1:
        raise ConfigError(f"retries must be at least 1, got {retries}")

    getter = session.get if session is not None else requests.get
    target = safe_url(url)
    last_failure = "no attempt made"

    for attempt in range(1, retries + 1):
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action="GET",
                        target=target,
                        attempt=attempt,
                    ),
                )
            try:
                response = getter(url, timeout=timeout)
            except requests.Timeout:
                last_failure = f"timed out after {timeout} seconds"
                response = None
            except requests.ConnectionError as exc:
                last_failure = f"connection error: {redact(str(exc))}"
                response = None
            except requests.RequestException as exc:
                logger.warning(
                    "HTTP request failed permanently",
                    extra=extra_context(
                        event="http_exception",
                        component="http_client",
                        outcome="permanent_failure",
                        attempt=attempt,
                        target=target,
                    ),
                )
                raise NetworkError(f"Request to {target} failed: {redact(str(exc))}", attempts=attempt) from exc

        if response is not None:
            status = response.status_code
            if 200 <= status < 300:
                logger.debug(
                    "HTTP response ok",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="GET",
                        outcome="success",
                        status_code=status,
                        duration_ms=t.duration_ms(),
                        target=target,
                        attempt=attempt,
                    ),
                )
                return response.content
            if not is_retryable_status(status):
                logger.warning(
                    "HTTP non-retryable status",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        outcome="permanent_failure",
                        status_code=status,
                        target=target,
                    ),
                )
                raise HttpStatusError(url, status)
            last_failure = f"status code {status}"

        logger.warning(
            "Failed fetching %s (try %d of %d): %s",
            target,
            attempt,
            retries,
            last_failure,
            extra=extra_context(
                event="http_exception",
                component="http_client",
                outcome="retry" if attempt < retries else "exhausted",
                attempt=attempt,
                target=target,
            ),
        )
        if attempt < retries:
            sleep(backoff_delay(attempt, base_delay, max_delay))

    raise NetworkError(
        f"Request to {target} failed after {retries} attempts: {last_failure}",
        attempts=retries,
    )
