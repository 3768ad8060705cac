"""Token reservoir with fixed-interval refills.

The reservoir is a pure object: every method takes the current monotonic time
explicitly, so it can be driven by the event loop clock in production and by
plain numbers in tests.
"""

import logging
import math
from typing import Optional

logger = logging.getLogger("analysis_queue.limiter.reservoir")


class Reservoir:
    """Token bucket that refills by a fixed amount on interval boundaries.

    Invariant: ``0 <= current <= capacity`` at all times.
    """

    def __init__(
        self,
        capacity: int,
        refill_amount: int,
        refill_interval: float,
        initial_tokens: Optional[int] = None,
    ):
        """Initialize the reservoir.

        Args:
            capacity: Maximum number of tokens held.
            refill_amount: Tokens added on every refill tick.
            refill_interval: Seconds between refill ticks.
            initial_tokens: Starting token count (defaults to capacity).
        """
        if capacity < 1:
            raise ValueError("capacity must be positive")
        if refill_amount < 0:
            raise ValueError("refill_amount cannot be negative")
        if refill_interval <= 0:
            raise ValueError("refill_interval must be positive")

        start = capacity if initial_tokens is None else initial_tokens
        if not 0 <= start <= capacity:
            raise ValueError("initial_tokens must be within [0, capacity]")

        self._capacity = capacity
        self._refill_amount = refill_amount
        self._refill_interval = refill_interval
        self._tokens = start
        # Anchored on first use so boundaries follow the clock actually in use
        self._anchor: Optional[float] = None

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def current(self) -> int:
        """Token count as of the last refill or take."""
        return self._tokens

    @property
    def refill_amount(self) -> int:
        return self._refill_amount

    @property
    def refill_interval(self) -> float:
        return self._refill_interval

    def refill(self, now: float) -> int:
        """Apply every refill tick that has elapsed up to ``now``.

        Args:
            now: Current monotonic time in seconds.

        Returns:
            The token count after refilling.
        """
        if self._anchor is None:
            self._anchor = now
            return self._tokens

        ticks = math.floor((now - self._anchor) / self._refill_interval)
        if ticks > 0:
            before = self._tokens
            self._tokens = min(self._capacity, self._tokens + ticks * self._refill_amount)
            self._anchor += ticks * self._refill_interval
            if self._tokens != before:
                logger.debug(f"Reservoir refilled {before} -> {self._tokens}")
        return self._tokens

    def try_take(self, now: float) -> bool:
        """Consume one token if one is available.

        Args:
            now: Current monotonic time in seconds.

        Returns:
            True if a token was consumed.
        """
        self.refill(now)
        if self._tokens <= 0:
            return False
        self._tokens -= 1
        return True

    def available(self, now: float) -> int:
        """Token count at ``now``, after applying due refills."""
        return self.refill(now)

    def seconds_until_refill(self, now: float) -> float:
        """Seconds until the next refill tick.

        Args:
            now: Current monotonic time in seconds.

        Returns:
            Delay until the next interval boundary.
        """
        self.refill(now)
        return max(0.0, self._anchor + self._refill_interval - now)
