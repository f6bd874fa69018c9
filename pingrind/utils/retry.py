from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import httpx
import structlog

from pingrind.exceptions import TransientScoreboardError

logger = structlog.get_logger()
T = TypeVar("T")

RETRYABLE = (
    TransientScoreboardError,
    httpx.TimeoutException,
    httpx.ConnectError,
)


async def retry_async(
    coro_factory: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    operation: str = "",
    retry_on: tuple[type[BaseException], ...] = RETRYABLE,
) -> T:
    """Retry an async scoreboard call with exponential backoff.

    Only exceptions listed in ``retry_on`` are retried; the last one is
    re-raised once ``max_attempts`` is exhausted.
    """
    last_exc: BaseException = RuntimeError("no attempts")
    for attempt in range(max(1, max_attempts)):
        try:
            return await coro_factory()
        except retry_on as e:
            last_exc = e
            if attempt >= max_attempts - 1:
                logger.error("scoreboard_call_failed", op=operation,
                             error=str(e), attempts=attempt + 1)
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning("scoreboard_call_retry", op=operation,
                           attempt=attempt + 1, delay=delay, error=str(e))
            await asyncio.sleep(delay)
    raise last_exc
