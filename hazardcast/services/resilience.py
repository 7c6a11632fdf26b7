"""
Resilience Patterns — Retry with Backoff + per-client request throttle.

Applied inside every provider client. Throttling is local to a client
instance, so distinct providers never block one another.
"""

import asyncio
import random
import time
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


# ── Retry with Exponential Backoff ─────────────────────────────────────────


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 16.0,
    jitter: float = 0.1,
    retry_on: tuple = (Exception,),
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    operation_name: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Retry an async function with exponential backoff and jitter.

    Strategy: min(base_delay * 2^attempt, max_delay) ± jitter fraction.
    Exceptions outside retry_on, or rejected by should_retry, propagate
    immediately. After max_retries the last exception is re-raised.
    """
    last_exc: Optional[BaseException] = None
    for attempt in range(max_retries + 1):
        try:
            return await fn()
        except retry_on as exc:
            last_exc = exc
            if should_retry is not None and not should_retry(exc):
                raise
            if attempt == max_retries:
                logger.error(
                    "retry_exhausted",
                    operation=operation_name,
                    attempts=attempt + 1,
                    error=str(exc),
                )
                raise
            delay = min(base_delay * (2 ** attempt), max_delay)
            delay = max(0.0, delay + delay * jitter * (2 * random.random() - 1))
            # Honor a provider's Retry-After hint, still bounded by max_delay
            retry_after = getattr(exc, "retry_after_seconds", None)
            if retry_after is not None:
                delay = min(max(delay, float(retry_after)), max_delay)
            logger.warning(
                "retry_attempt",
                operation=operation_name,
                attempt=attempt + 1,
                max_retries=max_retries,
                delay=round(delay, 2),
                error=str(exc),
            )
            await sleep(delay)

    raise last_exc  # Should never reach here


# ── Request Throttle ────────────────────────────────────────────────────────


class RequestThrottle:
    """
    Minimum-interval throttle derived from a requests-per-second budget.

    Before each request, wait() sleeps for whatever remains of the interval
    since the previous request, then records the new request time. State is
    owned by one client and mutated only between suspension points.
    """

    def __init__(
        self,
        requests_per_second: float,
        name: str = "client",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        self.name = name
        self.min_interval = 1.0 / requests_per_second
        self._clock = clock
        self._sleep = sleep
        self._last_request: Optional[float] = None

    @property
    def last_request(self) -> Optional[float]:
        return self._last_request

    async def wait(self) -> float:
        """Delay if needed; returns the seconds slept."""
        now = self._clock()
        slot = now
        if self._last_request is not None:
            slot = max(now, self._last_request + self.min_interval)
        # Reserve the slot before suspending so concurrent callers queue up
        self._last_request = slot
        delay = slot - now
        if delay > 0:
            logger.debug("client_throttled", client=self.name, delay=round(delay, 3))
            await self._sleep(delay)
        return delay
