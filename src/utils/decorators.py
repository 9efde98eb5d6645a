"""Decorators for retry logic."""

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from config.settings_pydantic import settings
from src.exceptions import NetworkFailureError

P = ParamSpec("P")
T = TypeVar("T")

logger = logging.getLogger("wheelscreener")


def retry(
    max_attempts: int | None = None,
    delay: float | None = None,
    backoff: float = 2.0,
    exceptions: tuple[type[Exception], ...] = (NetworkFailureError,),
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Retry decorator with exponential backoff for coroutine functions.

    Attempts and initial delay are read from settings at call time when not
    given, so tests can shorten them.

    Args:
        max_attempts: Maximum number of attempts.
        delay: Initial delay between retries in seconds.
        backoff: Multiplier for delay after each retry.
        exceptions: Tuple of exceptions to catch and retry on.

    Returns:
        Decorated coroutine function with retry logic.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempts = max(1, max_attempts if max_attempts is not None else settings.retry_attempts)
            current_delay = delay if delay is not None else settings.retry_delay

            for attempt in range(attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt < attempts - 1:
                        logger.warning(
                            f"{func.__name__} failed (attempt {attempt + 1}), "
                            f"retrying in {current_delay}s: {e}",
                        )
                        await asyncio.sleep(current_delay)
                        current_delay *= backoff
                    else:
                        logger.error(f"{func.__name__} failed after {attempts} attempts: {e}")
                        raise

            raise RuntimeError("retry loop exited without a result")

        return wrapper

    return decorator
