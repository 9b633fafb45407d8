"""Retry helpers without external dependencies."""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

_sleep = asyncio.sleep


def backoff_delays(attempts: int, base_delay: float, factor: float) -> list[float]:
    """Delays slept between consecutive attempts."""
    return [base_delay * factor**n for n in range(max(attempts - 1, 0))]


def retry_async(
    *,
    attempts: int = 3,
    base_delay: float = 0.5,
    factor: float = 2.0,
    exceptions: tuple[type[BaseException], ...] = (OSError, asyncio.TimeoutError),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            delays = backoff_delays(attempts, base_delay, factor)
            for attempt in range(attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions:
                    if attempt == attempts - 1:
                        raise
                    await _sleep(delays[attempt])
            raise RuntimeError("retry_async called with attempts < 1")

        return wrapper

    return decorator
