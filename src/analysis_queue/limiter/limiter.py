"""Rate limiter guarding the scoring API.

Calls go through :meth:`RateLimiter.schedule`, which admits them in arrival
order subject to three limits: a concurrency cap, a minimum spacing between
starts, and a token reservoir that refills on a fixed interval. Under
sustained overload the limiter leaks: the oldest waiting calls are dropped
with :class:`QueueSaturatedError` instead of letting the backlog grow without
bound.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Any, Awaitable, Callable, Optional, TypeVar

from analysis_queue.config.models import LimiterConfig
from analysis_queue.errors import QueueClosedError, QueueSaturatedError
from analysis_queue.limiter.reservoir import Reservoir
from analysis_queue.models.status import ReservoirStatus

logger = logging.getLogger("analysis_queue.limiter.limiter")

T = TypeVar("T")


class _Waiter:
    """A scheduled call that has not been granted a slot yet."""

    __slots__ = ("future", "enqueued_at")

    def __init__(self, future: asyncio.Future, enqueued_at: float):
        self.future = future
        self.enqueued_at = enqueued_at


class RateLimiter:
    """Concurrency, spacing and reservoir limiter for downstream calls."""

    def __init__(
        self,
        reservoir: Reservoir,
        max_concurrent: int = 1,
        min_spacing: float = 0.0,
        high_water: Optional[int] = None,
        max_wait: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the rate limiter.

        Args:
            reservoir: Token reservoir consumed once per call.
            max_concurrent: Maximum calls running at once.
            min_spacing: Minimum seconds between call starts.
            high_water: Maximum waiting calls before the oldest is dropped.
            max_wait: Seconds a call may wait before it is dropped.
            clock: Monotonic clock; must match the event loop's clock.
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be positive")
        if min_spacing < 0:
            raise ValueError("min_spacing cannot be negative")

        self._reservoir = reservoir
        self._max_concurrent = max_concurrent
        self._min_spacing = min_spacing
        self._high_water = high_water
        self._max_wait = max_wait
        self._clock = clock

        self._waiting: deque[_Waiter] = deque()
        self._running = 0
        self._last_start: Optional[float] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._closed = False

        self._started = 0
        self._dropped = 0

    @classmethod
    def from_config(cls, config: LimiterConfig) -> "RateLimiter":
        """Create a limiter from a :class:`LimiterConfig`."""
        reservoir = Reservoir(
            capacity=config.reservoir_capacity,
            refill_amount=config.refill_amount,
            refill_interval=config.refill_interval_seconds,
            initial_tokens=config.initial_tokens,
        )
        return cls(
            reservoir=reservoir,
            max_concurrent=config.max_concurrent,
            min_spacing=config.min_spacing_seconds,
            high_water=config.high_water,
            max_wait=config.max_wait_seconds,
        )

    @property
    def reservoir(self) -> Reservoir:
        return self._reservoir

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def min_spacing(self) -> float:
        return self._min_spacing

    @property
    def running(self) -> int:
        """Calls currently executing."""
        return self._running

    @property
    def queued(self) -> int:
        """Calls waiting for a slot."""
        return len(self._waiting)

    @property
    def dropped(self) -> int:
        """Calls dropped by the leak strategy since creation."""
        return self._dropped

    @property
    def started(self) -> int:
        """Calls admitted since creation."""
        return self._started

    def status(self) -> ReservoirStatus:
        """Snapshot of the limiter state."""
        return ReservoirStatus(
            capacity=self._reservoir.capacity,
            current=self._reservoir.available(self._clock()),
            queued=self.queued,
            running=self._running,
        )

    async def schedule(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run ``fn`` once a slot and a token are available.

        Args:
            fn: Coroutine function to call.
            *args: Positional arguments for ``fn``.
            **kwargs: Keyword arguments for ``fn``.

        Returns:
            Whatever ``fn`` returns.

        Raises:
            QueueSaturatedError: If the call was dropped while waiting.
            QueueClosedError: If the limiter has been closed.
        """
        if self._closed:
            raise QueueClosedError("Rate limiter is closed")

        loop = asyncio.get_running_loop()
        waiter = _Waiter(loop.create_future(), self._clock())
        self._waiting.append(waiter)
        self._pump()
        self._leak()

        try:
            await waiter.future
        except asyncio.CancelledError:
            if self._was_granted(waiter):
                self._release()
            else:
                self._discard(waiter)
            raise

        try:
            return await fn(*args, **kwargs)
        finally:
            self._release()

    def close(self) -> None:
        """Stop admitting calls and fail everything still waiting."""
        self._closed = True
        self._cancel_timer()
        while self._waiting:
            waiter = self._waiting.popleft()
            if not waiter.future.done():
                waiter.future.set_exception(QueueClosedError("Rate limiter is closed"))

    @staticmethod
    def _was_granted(waiter: _Waiter) -> bool:
        future = waiter.future
        return future.done() and not future.cancelled() and future.exception() is None

    def _discard(self, waiter: _Waiter) -> None:
        try:
            self._waiting.remove(waiter)
        except ValueError:
            pass
        else:
            self._pump()

    def _release(self) -> None:
        self._running -= 1
        self._pump()

    def _drop(self, waiter: _Waiter, reason: str) -> None:
        if waiter.future.done():
            return
        self._dropped += 1
        logger.warning(f"[Limiter] Dropping waiting call ({reason}); {len(self._waiting)} still waiting")
        waiter.future.set_exception(QueueSaturatedError(f"Rate limiter saturated: {reason}"))

    def _leak(self) -> None:
        """Drop the oldest waiting calls while the backlog exceeds high water."""
        if self._high_water is None:
            return
        while len(self._waiting) > self._high_water:
            self._drop(self._waiting.popleft(), f"backlog above {self._high_water}")

    def _expire(self, now: float) -> None:
        """Drop waiting calls that have waited longer than ``max_wait``."""
        if self._max_wait is None:
            return
        while self._waiting and now - self._waiting[0].enqueued_at >= self._max_wait:
            self._drop(self._waiting.popleft(), f"waited over {self._max_wait:g}s")

    def _spacing_delay(self, now: float) -> float:
        if self._last_start is None:
            return 0.0
        return self._last_start + self._min_spacing - now

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm(self, delay: float) -> None:
        self._timer = asyncio.get_running_loop().call_later(delay, self._pump)

    def _pump(self) -> None:
        """Admit as many waiting calls as the limits allow."""
        self._cancel_timer()
        if self._closed:
            return

        now = self._clock()
        self._expire(now)

        while self._waiting and self._running < self._max_concurrent:
            head = self._waiting[0]
            if head.future.done():
                self._waiting.popleft()
                continue

            delay = self._spacing_delay(now)
            if delay <= 0 and not self._reservoir.try_take(now):
                delay = self._reservoir.seconds_until_refill(now)
                logger.debug(f"[Limiter] Reservoir empty, next refill in {delay:.1f}s")
            if delay > 0:
                if self._max_wait is not None:
                    expiry = head.enqueued_at + self._max_wait - now
                    delay = min(delay, max(expiry, 0.0))
                self._arm(delay)
                return

            self._waiting.popleft()
            self._running += 1
            self._started += 1
            self._last_start = now
            head.future.set_result(None)

        # Blocked on concurrency only: still wake up to expire stale waiters
        if self._waiting and self._max_wait is not None:
            expiry = self._waiting[0].enqueued_at + self._max_wait - now
            self._arm(max(expiry, 0.0))
