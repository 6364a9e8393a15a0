"""
Retry with exponential backoff for data-layer operations.

Only transient store failures (timeouts, connection resets) are retried.
Anything else, and the last transient failure once attempts run out, is
re-raised unchanged.

Retry-safe operations: creating a collection, creating a photo record and
reads. Session writes, deletes and anything that moves files must not be
wrapped, since repeating them after an ambiguous failure is not safe.
"""
import asyncio
import inspect
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Awaitable, Callable, Optional

from memri.config import Settings, settings
from memri.errors import StoreErrorKind, classify_error

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before the retry that follows failed attempt number ``attempt`` (1-based)."""
    return min(base_delay * (2 ** (attempt - 1)), max_delay)


async def with_retry(
    operation: Callable[[], Any],
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    on_retry: Optional[Callable[[], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Any:
    """
    Run ``operation`` and retry it on transient store failures.

    Args:
        operation: Zero-argument callable; may return a value or an awaitable
        max_attempts: Total attempts including the first (default from settings)
        base_delay: Delay after the first failure in seconds
        max_delay: Upper bound for any single delay
        on_retry: Called before each retry, e.g. ``db.rollback``
        sleep: Awaitable sleep, injectable for tests

    Returns:
        Whatever ``operation`` returns
    """
    max_attempts = max_attempts or settings.db_retry_max_attempts
    base_delay = settings.db_retry_base_delay if base_delay is None else base_delay
    max_delay = settings.db_retry_max_delay if max_delay is None else max_delay

    for attempt in range(1, max_attempts + 1):
        try:
            result = operation()
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            kind = classify_error(e)
            logger.error(
                "Database operation failed (attempt %d/%d, %s): %s",
                attempt,
                max_attempts,
                kind.value,
                e,
            )

            if kind is StoreErrorKind.PERMANENT or attempt >= max_attempts:
                raise

            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning("Retrying in %.1fs...", delay)
            if on_retry is not None:
                on_retry()
            await sleep(delay)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt count and backoff bounds for one application."""

    max_attempts: int
    base_delay: float
    max_delay: float

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=app_settings.db_retry_max_attempts,
            base_delay=app_settings.db_retry_base_delay,
            max_delay=app_settings.db_retry_max_delay,
        )

    async def run(
        self,
        operation: Callable[[], Any],
        on_retry: Optional[Callable[[], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> Any:
        return await with_retry(
            operation,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            on_retry=on_retry,
            sleep=sleep,
        )


def retry_on_transient_error(max_attempts=None, base_delay=None, max_delay=None):
    """
    Decorator form of :func:`with_retry` for coroutine functions.

    Args:
        max_attempts: Total attempts including the first
        base_delay: Base delay in seconds for exponential backoff
        max_delay: Cap for a single delay
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            return await with_retry(
                lambda: func(*args, **kwargs),
                max_attempts=max_attempts,
                base_delay=base_delay,
                max_delay=max_delay,
            )

        return wrapper

    return decorator
