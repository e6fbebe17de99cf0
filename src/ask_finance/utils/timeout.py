"""Timeout utilities for ask-finance."""

import asyncio
from typing import Awaitable, TypeVar

T = TypeVar("T")


class TimeoutError(Exception):
    """Exception raised when a timeout occurs."""

    pass


async def wait_with_timeout(coro: Awaitable[T], timeout_seconds: int | float | None) -> T:
    """Wait for a coroutine with an optional timeout.

    Args:
        coro: Coroutine to wait for
        timeout_seconds: Timeout in seconds, or None to wait indefinitely

    Returns:
        Result of the coroutine

    Raises:
        TimeoutError: If timeout is reached
    """
    if timeout_seconds is None:
        return await coro
    try:
        return await asyncio.wait_for(coro, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        raise TimeoutError(f"Operation timed out after {timeout_seconds} seconds")
