"""
Async-compatible rate limiter with token bucket algorithm.

Keeps the feed and the aggregator HTTP clients inside their API budgets.
Failed calls are never retried here: a failed fetch or quote is logged by
the caller and the tick or item moves on.
"""

from __future__ import annotations

import asyncio
import time

from postwatch.ca_sniper.utils.logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Token-bucket rate limiter.

    Tokens refill at a constant rate. Each API call consumes one token.
    If no tokens are available, the caller awaits until one is refilled.
    """

    def __init__(self, max_calls: int, period_seconds: float):
        """
        Args:
            max_calls: Maximum calls allowed in the period.
            period_seconds: Length of the rate limit window in seconds.
        """
        self.max_calls = max_calls
        self.period = period_seconds
        self.tokens = max_calls
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until a token is available, then consume it."""
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self.last_refill
            # Refill tokens based on elapsed time
            refill = elapsed * (self.max_calls / self.period)
            self.tokens = min(self.max_calls, self.tokens + refill)
            self.last_refill = now

            if self.tokens < 1:
                wait_time = (1 - self.tokens) * (self.period / self.max_calls)
                logger.info(
                    f"Rate limit reached, waiting {wait_time:.1f}s",
                    extra={"data": {"wait_seconds": wait_time}},
                )
                await asyncio.sleep(wait_time)
                self.tokens = 0
            else:
                self.tokens -= 1
