"""
Resilient remote call wrapper.

Runs one remote lookup with bounded retries and exponential backoff with
jitter. Only throttling (HTTP 429) and server faults (HTTP 5xx) are treated
as transient; permanent errors such as 404 or 403 surface on the first
attempt.
"""

from __future__ import annotations

import asyncio
import logging
import random
import re
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from ..config import DEFAULT_MAX_RETRIES, DEFAULT_BASE_DELAY_SECONDS
from ..errors import RemoteCallFailure

logger = logging.getLogger("effective_membership.graph.retry")

T = TypeVar("T")

_THROTTLE_PATTERN = re.compile(
    r"\b429\b|too\s*many\s*requests|throttl", re.IGNORECASE
)
_SERVER_FAULT_PATTERN = re.compile(
    r"\b5\d\d\b|service\s*unavailable|internal\s*server\s*error|"
    r"bad\s*gateway|gateway\s*time-?out",
    re.IGNORECASE,
)

_STATUS_PREFIX = re.compile(r"^Graph API Error (\d{3})\b")

_sleep = asyncio.sleep


def is_retryable(error: BaseException) -> bool:
    """Return True when the failure looks like throttling or a server fault."""
    if isinstance(error, (httpx.TimeoutException, httpx.TransportError)):
        return True
    message = str(error)
    # Graph errors carry their status up front; the rest of the text (URL,
    # service message) may contain unrelated numbers
    status = _STATUS_PREFIX.match(message)
    if status:
        code = int(status.group(1))
        return code == 429 or 500 <= code <= 599
    return bool(_THROTTLE_PATTERN.search(message) or _SERVER_FAULT_PATTERN.search(message))


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay before the retry that follows a failed 1-based attempt."""
    return base_delay * (2 ** (attempt - 1)) + random.random()


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    description: str = "remote call",
    stats: Optional[Any] = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
) -> T:
    """
    Await ``operation()`` up to ``max_retries`` times in total.

    ``stats.api_calls`` is incremented once per attempt. Raises
    RemoteCallFailure carrying the last underlying error when the failure is
    permanent or the attempts are used up.
    """
    attempts = max(1, max_retries)
    last_error: Optional[BaseException] = None

    for attempt in range(1, attempts + 1):
        if stats is not None:
            stats.api_calls += 1
        try:
            return await operation()
        except Exception as e:
            last_error = e
            if not is_retryable(e):
                logger.debug(f"{description}: non-retryable failure: {e}")
                break
            if attempt >= attempts:
                logger.warning(f"{description}: giving up after {attempt} attempts: {e}")
                break
            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                f"{description}: transient failure (attempt {attempt}/{attempts}), "
                f"retrying in {delay:.1f}s: {e}"
            )
            await _sleep(delay)

    raise RemoteCallFailure(description, attempt, last_error) from last_error
