"""
Shopify API Rate Limiter using a sliding-window queue.

Provides a process-wide scheduler that ensures Shopify REST rate limits
are never exceeded, no matter how many shops are syncing at once.

Scheduler Configuration:
- Rate: 1.8 requests/second (Shopify allows 2), counted over a sliding window
- Concurrency: 2 requests in flight at most
- Admission: strict arrival order (FIFO), no priorities
- Retry: 429 and 5xx are retried with backoff, anything else fails fast

Usage:
    from order_sync.utils.rate_limiter import RateLimitedScheduler

    scheduler = RateLimitedScheduler()
    page = await scheduler.submit(lambda: client.fetch_orders_page(shop))
"""

import asyncio
import logging
import math
import random
from collections import deque
from typing import Any, Awaitable, Callable, Deque, List, Optional, Sequence, TypeVar

from order_sync.core.constants.sync import (
    BACKOFF_JITTER_RATIO,
    DEFAULT_CONCURRENCY,
    DEFAULT_INITIAL_BACKOFF_SECONDS,
    DEFAULT_MAX_BACKOFF_SECONDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RATE_INTERVAL_SECONDS,
    DEFAULT_REQUESTS_PER_SECOND,
)
from order_sync.core.exceptions import RateLimitError, RetryableError

logger = logging.getLogger("rate_limiter")

T = TypeVar("T")
I = TypeVar("I")

RetryCallback = Callable[[int, Exception, float], None]


class RateLimitedScheduler:
    """
    Shared request scheduler for the Shopify REST API.

    Every remote call goes through submit(). The scheduler:
    1. Queues callers in arrival order until a concurrency slot is free
    2. Holds each attempt until the sliding window has room for it
    3. Retries RetryableError with exponential backoff and jitter,
       honouring the server's Retry-After on 429 responses

    All state is owned by one event loop, so asyncio primitives are
    enough to keep concurrent submissions safe.
    """

    def __init__(
        self,
        requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND,
        interval: float = DEFAULT_RATE_INTERVAL_SECONDS,
        concurrency: int = DEFAULT_CONCURRENCY,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF_SECONDS,
        max_backoff: float = DEFAULT_MAX_BACKOFF_SECONDS,
    ):
        """
        Initialize the scheduler.

        Args:
            requests_per_second: Rate ceiling across all callers
            interval: Length of the sliding window in seconds
            concurrency: Maximum operations in flight at once
            max_retries: Retries allowed after the first attempt
            initial_backoff: First backoff delay in seconds
            max_backoff: Upper bound for the exponential delay
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self._interval = interval
        self._interval_cap = max(1, math.floor(requests_per_second * interval))
        self._concurrency = concurrency
        self._max_retries = max_retries
        self._initial_backoff = initial_backoff
        self._max_backoff = max_backoff

        self._slots = asyncio.Semaphore(concurrency)
        self._admission_lock = asyncio.Lock()
        self._window_lock = asyncio.Lock()
        self._window: Deque[float] = deque()
        self._pending = 0
        self._running = 0

        logger.info(
            f"RateLimitedScheduler initialized: cap={self._interval_cap}/{interval}s, "
            f"concurrency={concurrency}, max_retries={max_retries}"
        )

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def interval_cap(self) -> int:
        return self._interval_cap

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def compute_backoff(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """
        Delay before the retry that follows a failed attempt.

        Args:
            attempt: Zero-based index of the attempt that just failed
            retry_after: Server-suggested wait in seconds, used verbatim

        Returns:
            Seconds to sleep
        """
        if retry_after is not None:
            return float(retry_after)
        delay = min(self._initial_backoff * (2 ** attempt), self._max_backoff)
        jitter = random.random() * BACKOFF_JITTER_RATIO * delay
        return delay + jitter

    async def _acquire_slot(self) -> None:
        # The lock hands out semaphore slots in arrival order
        async with self._admission_lock:
            await self._slots.acquire()

    async def _wait_for_window(self) -> None:
        """Block until one more attempt fits in the sliding window."""
        loop = asyncio.get_running_loop()
        async with self._window_lock:
            while True:
                now = loop.time()
                while self._window and now - self._window[0] >= self._interval:
                    self._window.popleft()
                if len(self._window) < self._interval_cap:
                    self._window.append(now)
                    return
                wait_time = self._interval - (now - self._window[0])
                logger.debug(f"Window full, waiting {wait_time:.3f}s")
                await asyncio.sleep(wait_time)

    async def submit(
        self,
        operation: Callable[[], Awaitable[T]],
        on_retry: Optional[RetryCallback] = None,
    ) -> T:
        """
        Run a zero-argument async operation under rate limiting and retry.

        Args:
            operation: Performs one remote call per invocation
            on_retry: Called with (attempt, error, delay) before each backoff

        Returns:
            Whatever the operation returns

        Raises:
            The last RetryableError once the retry budget is spent, or any
            other exception from the operation immediately.
        """
        self._pending += 1
        try:
            await self._acquire_slot()
        finally:
            self._pending -= 1

        self._running += 1
        try:
            return await self._run_with_retry(operation, on_retry)
        finally:
            self._running -= 1
            self._slots.release()

    async def _run_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        on_retry: Optional[RetryCallback],
    ) -> T:
        attempt = 0
        while True:
            await self._wait_for_window()
            try:
                return await operation()
            except RetryableError as e:
                if attempt >= self._max_retries:
                    logger.warning(f"Giving up after {attempt + 1} attempts: {e}")
                    raise

                retry_after = e.retry_after if isinstance(e, RateLimitError) else None
                delay = self.compute_backoff(attempt, retry_after)
                attempt += 1

                if on_retry is not None:
                    on_retry(attempt, e, delay)
                else:
                    logger.info(
                        f"Shopify API request failed (attempt {attempt}/{self._max_retries + 1}), "
                        f"retrying in {delay:.1f}s: {e}"
                    )
                await asyncio.sleep(delay)

    async def submit_batch(
        self,
        items: Sequence[I],
        request_fn: Callable[[I], Awaitable[T]],
        on_error: Optional[Callable[[I, Exception], None]] = None,
    ) -> List[Optional[T]]:
        """
        Submit one operation per item and gather the results.

        Returns:
            Results in input order, None where the operation failed
        """
        async def _one(item: I) -> Optional[T]:
            try:
                return await self.submit(lambda: request_fn(item))
            except Exception as e:
                logger.warning(f"Batch request failed for item={item!r}: {e}")
                if on_error is not None:
                    on_error(item, e)
                return None

        return list(await asyncio.gather(*(_one(item) for item in items)))

    def stats(self) -> dict:
        """
        Get current queue state (for monitoring).

        Returns:
            Dict with queued and in-flight counts plus configuration
        """
        return {
            "pending": self._pending,
            "running": self._running,
            "interval_seconds": self._interval,
            "interval_cap": self._interval_cap,
            "concurrency": self._concurrency,
        }
