"""Bounded retry for upstream calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from acfun_live_tracker.domain.errors import (
    RetryExhaustedError,
    TransportError,
    UpstreamLogicError,
)

_logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS: tuple[type[Exception], ...] = (TransportError, UpstreamLogicError)


@dataclass
class RetryPolicy:
    """Run a coroutine up to ``attempts`` times with a constant delay.

    Only transport and upstream result errors are retried; parse errors
    repeat on the same input and propagate on the first occurrence.
    """

    attempts: int = 3
    delay_seconds: float = 10
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def run(self, func: Callable[[], Awaitable[T]], *, action: str) -> T:
        """Await ``func`` until it succeeds or attempts run out."""
        attempt = 0
        while True:
            try:
                return await func()
            except RETRYABLE_ERRORS as exc:
                attempt += 1
                _logger.warning(
                    "%s failed (attempt %s/%s): %s",
                    action,
                    attempt,
                    self.attempts,
                    exc,
                )
                if attempt >= self.attempts:
                    raise RetryExhaustedError(action, attempt, exc) from exc
                await self.sleep(self.delay_seconds)
