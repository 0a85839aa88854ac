"""Bounded retry with backoff for fallible page operations."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExhausted(Exception):
    """Raised when every attempt of a retried operation failed."""

    def __init__(self, name: str, attempts: int, last_error: BaseException):
        super().__init__(f"{name} failed after {attempts} attempts: {last_error}")
        self.name = name
        self.attempts = attempts
        self.last_error = last_error


def backoff_delay_ms(attempt: int, delay_ms: int, exponential_backoff: bool) -> int:
    """Delay to wait after failed attempt ``attempt`` (1-based)."""
    if exponential_backoff:
        return delay_ms * 2 ** (attempt - 1)
    return delay_ms


async def _wait(delay_ms: int) -> None:
    await asyncio.sleep(delay_ms / 1000)


async def retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = 3,
    delay_ms: int = 500,
    exponential_backoff: bool = False,
    name: str = "operation",
) -> T:
    """Run ``operation`` until it succeeds or ``retries`` attempts have failed.

    Returns the operation's result. On exhaustion raises RetryExhausted
    carrying the error from the final attempt; callers decide whether to
    degrade or abort.
    """
    retries = max(1, retries)
    last_error: BaseException | None = None

    for attempt in range(1, retries + 1):
        try:
            result = await operation()
            if attempt > 1:
                logger.info("%s succeeded on attempt %d", name, attempt)
            return result
        except Exception as e:
            last_error = e
            logger.warning("%s failed (attempt %d/%d): %s", name, attempt, retries, e)
            if attempt < retries:
                await _wait(backoff_delay_ms(attempt, delay_ms, exponential_backoff))

    logger.error("%s failed after %d attempts: %s", name, retries, last_error)
    raise RetryExhausted(name, retries, last_error)
