"""Retry utilities for ask-finance.

This module provides an async retry decorator with exponential backoff,
used around reasoning-model calls.
"""

import asyncio
import functools
import logging
import random
from typing import Any, Callable

logger = logging.getLogger(__name__)


def async_retry_with_exponential_backoff(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 20.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    should_retry: Callable[[Exception], bool] | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Async decorator for retry with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (including the first)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries
        exponential_base: Base for exponential backoff calculation
        jitter: Whether to add random jitter to delay
        should_retry: Predicate deciding whether an error is worth retrying.
            Defaults to :func:`is_retryable_error`.

    Returns:
        Decorated async function with retry logic
    """
    predicate = should_retry or is_retryable_error

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            current_delay = base_delay

            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    attempt += 1

                    if not predicate(e):
                        raise

                    if attempt >= max_attempts:
                        logger.error(
                            f"Async function {func.__name__} failed after {max_attempts} attempts: {e}"
                        )
                        raise

                    delay = min(current_delay, max_delay)
                    if jitter:
                        delay = delay * (0.5 + random.random())

                    logger.warning(
                        f"Async function {func.__name__} failed (attempt {attempt}/{max_attempts}): {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )

                    await asyncio.sleep(delay)
                    current_delay *= exponential_base

        return wrapper

    return decorator


def is_retryable_error(error: Exception) -> bool:
    """Check if an error is retryable.

    Common retryable errors include:
    - Connection errors
    - Timeout errors
    - Rate limit errors (429)
    - Server errors (5xx)

    Args:
        error: The exception to check

    Returns:
        True if the error is retryable
    """
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        return status_code == 429 or status_code >= 500

    error_type = type(error).__name__.lower()
    error_message = str(error).lower()

    if "connection" in error_type or "connect" in error_message:
        return True

    if "timeout" in error_type or "timed out" in error_message:
        return True

    if "429" in error_message or "rate limit" in error_message:
        return True

    if "temporary" in error_message or "unavailable" in error_message:
        return True

    return False
