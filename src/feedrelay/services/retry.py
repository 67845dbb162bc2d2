from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExhausted(Exception):
    """Raised when every attempt of a retried operation failed."""

    def __init__(self, last_error: BaseException, attempts: int) -> None:
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"failed after {attempts} attempts: {last_error}")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    retries: int,
    delay_seconds: float,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    description: str = "operation",
) -> T:
    """Run ``operation`` up to ``retries + 1`` times with a fixed pause between attempts.

    Exceptions outside ``retry_on`` propagate immediately. When the last
    attempt fails, :class:`RetryExhausted` is raised carrying the final error.
    """
    attempts = max(retries, 0) + 1

    for attempt in range(1, attempts + 1):
        logger.debug("%s attempt %s/%s", description, attempt, attempts)
        try:
            return await operation()
        except retry_on as exc:
            logger.warning("%s attempt %s/%s failed: %s", description, attempt, attempts, exc)
            if attempt == attempts:
                raise RetryExhausted(exc, attempts) from exc
            await asyncio.sleep(delay_seconds)
