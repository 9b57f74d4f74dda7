"""
Retry Policy

Single retry-with-backoff abstraction used by every outbound call.

    policy = RetryPolicy(max_attempts=4, initial_delay=1.0)
    result = await policy.call(lambda: client.get(...), description="ranked_keywords")

Delays grow exponentially (initial_delay * exponential_base ** n), are capped
at max_delay and get optional random jitter on top.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx

logger = logging.getLogger(__name__)


# HTTP statuses worth retrying (rate limited / upstream trouble)
RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


def default_retryable(exc: BaseException) -> bool:
    """
    Default retryable-error predicate.

    Transport problems (timeouts, connection resets) are always retried.
    Anything else is retried only if it says it is transient.
    """
    if isinstance(exc, httpx.TransportError):
        return True
    return bool(getattr(exc, "transient", False))


@dataclass
class RetryPolicy:
    """Configuration and execution of retry behavior."""
    max_attempts: int = 4
    initial_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0
    jitter: float = 0.25  # Up to +25% of the delay, randomly
    retryable: Callable[[BaseException], bool] = default_retryable
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number `attempt` (1-based), without jitter."""
        delay = self.initial_delay * (self.exponential_base ** (attempt - 1))
        return min(delay, self.max_delay)

    def _jittered(self, delay: float) -> float:
        if self.jitter <= 0:
            return delay
        return delay + random.uniform(0, delay * self.jitter)

    async def call(
        self,
        func: Callable[[], Awaitable[Any]],
        description: str = "request",
        on_retry: Optional[Callable[[int, BaseException], None]] = None,
    ) -> Any:
        """
        Run `func` until it succeeds, a non-retryable error occurs, or
        attempts run out. The last exception is re-raised unchanged.
        """
        attempts = max(1, self.max_attempts)

        for attempt in range(1, attempts + 1):
            try:
                return await func()
            except Exception as e:
                if attempt >= attempts or not self.retryable(e):
                    raise

                delay = self._jittered(self.delay_for(attempt))
                logger.warning(
                    f"{description} failed (attempt {attempt}/{attempts}): {e}. "
                    f"Retrying in {delay:.2f}s..."
                )
                if on_retry:
                    on_retry(attempt, e)
                await self.sleep(delay)

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            initial_delay=settings.RETRY_INITIAL_DELAY,
            max_delay=settings.RETRY_MAX_DELAY,
        )
