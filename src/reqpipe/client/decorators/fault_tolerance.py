"""Retry with linear backoff."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, TypeVar

import httpx

from reqpipe.client.base import Client, ClientFunc, Decorator

__all__ = ["RetryExecutor", "RetryPolicy", "SleepFunc", "fault_tolerance"]

logger = logging.getLogger(__name__)

T = TypeVar("T")
SleepFunc = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Configuration for retrying failed calls.

    Attributes:
        max_attempts: Total number of attempts, at least 1.
        backoff_s: Base backoff in seconds. The pause after failed attempt
            ``i`` (zero-based) is ``backoff_s * i``.
    """

    max_attempts: int = 1
    backoff_s: float = 0.0

    def __post_init__(self) -> None:
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise TypeError("max_attempts must be an int")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff_s < 0:
            raise ValueError("backoff_s must be >= 0")

    def delay_for(self, attempt: int) -> float:
        """Seconds to pause after the zero-based ``attempt`` failed."""
        return self.backoff_s * attempt


class RetryExecutor:
    """Execute async callables with a retry policy.

    Every ``Exception`` counts as a failed attempt; nothing is classified as
    non-retryable. After the last attempt the last error is re-raised as is.
    ``asyncio.CancelledError`` is not an ``Exception`` and cancels a pending
    backoff immediately.
    """

    def __init__(self, policy: RetryPolicy, sleep: SleepFunc = asyncio.sleep) -> None:
        self._policy = policy
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def execute(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        attempts = self._policy.max_attempts
        for attempt in range(attempts):
            try:
                return await func(*args, **kwargs)
            except Exception as exc:
                if attempt + 1 >= attempts:
                    logger.warning("Attempt %d/%d failed, giving up: %s", attempt + 1, attempts, exc)
                    raise
                delay_s = self._policy.delay_for(attempt)
                logger.warning(
                    "Attempt %d/%d failed, retrying in %.3fs: %s", attempt + 1, attempts, delay_s, exc
                )
            await self._sleep(delay_s)
        raise RuntimeError("retry loop exited without a result")  # pragma: no cover


def _to_seconds(backoff: float | timedelta) -> float:
    if isinstance(backoff, timedelta):
        return backoff.total_seconds()
    return float(backoff)


def fault_tolerance(
    attempts: int,
    backoff: float | timedelta,
    *,
    sleep: SleepFunc = asyncio.sleep,
) -> Decorator:
    """Returns a decorator that retries failed calls with linear backoff.

    Attempts run until the first success, at most ``attempts`` times. Pauses
    between attempts grow as ``0, b, 2b, ...``. Director failures from an
    inner proxy layer are retried like transport failures.

    Args:
        attempts: Maximum number of attempts, at least 1.
        backoff: Base backoff, in seconds or as a timedelta.
        sleep: Awaitable pause, ``asyncio.sleep`` by default.
    """
    policy = RetryPolicy(max_attempts=attempts, backoff_s=_to_seconds(backoff))

    def decorator(client: Client) -> Client:
        executor = RetryExecutor(policy, sleep=sleep)

        async def send(request: httpx.Request) -> httpx.Response:
            return await executor.execute(client.send, request)

        return ClientFunc(send)

    return decorator
