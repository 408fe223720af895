"""Bounded exponential-backoff retry for upstream Google calls.

Only rate limiting (429) and server errors (5xx) are retried. Everything
else, including other 4xx responses and errors without a status, is
raised to the caller immediately.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from gallery.core.logging import get_logger

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY = 1.0  # seconds

logger = get_logger(__name__)


def get_status_code(error: BaseException) -> int | None:
    """Best-effort HTTP status of an upstream error.

    Understands our own ``GoogleDriveError`` (``status_code``), googleapiclient
    ``HttpError`` (``resp.status``) and httpx ``HTTPStatusError``
    (``response.status_code``).
    """
    status = getattr(error, "status_code", None)
    if status is None:
        for attr in ("resp", "response"):
            resp = getattr(error, attr, None)
            if resp is None:
                continue
            status = getattr(resp, "status", None) or getattr(resp, "status_code", None)
            if status is not None:
                break

    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def is_retryable(error: BaseException) -> bool:
    """Return True for rate-limit and server-side failures."""
    status = get_status_code(error)
    if status is None:
        return False
    return status == 429 or 500 <= status < 600


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    operation_name: str = "drive_call",
) -> T:
    """Run an async operation, retrying transient failures.

    The delay starts at ``initial_delay`` and doubles after every retry.
    No jitter is applied.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt.
        max_retries: Retries allowed after the first attempt.
        initial_delay: Seconds to wait before the first retry.
        operation_name: Label used in log events.

    Returns:
        Result of the first successful attempt.

    Raises:
        The last error, unchanged, once retries are exhausted or when the
        error is not retryable.
    """
    delay = initial_delay
    attempt = 0

    while True:
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e) or attempt >= max_retries:
                if attempt and is_retryable(e):
                    logger.error(
                        "drive_retry_exhausted",
                        operation=operation_name,
                        attempts=attempt + 1,
                        error=str(e),
                    )
                raise

            attempt += 1
            logger.warning(
                "drive_retry_scheduled",
                operation=operation_name,
                status=get_status_code(e),
                attempt=attempt,
                max_retries=max_retries,
                delay_seconds=round(delay, 2),
            )
            await asyncio.sleep(delay)
            delay *= 2
