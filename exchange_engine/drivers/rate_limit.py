"""
Exchange Engine - Fixed-Cadence Rate Limiter.

Before every outbound call:

    wait = max(1ms, next_allowed - now)
    next_allowed = now + wait + min_interval

so no two calls on one driver start closer than `min_interval`,
and a caller never waits longer than it has to.
"""

import logging
from typing import Optional

from ..clock import ClockProtocol, get_clock
from ..config import RateLimitConfig


logger = logging.getLogger(__name__)

MIN_WAIT_SECONDS = 0.001


class FixedCadenceRateLimiter:
    """Serializes call start times on one driver instance."""

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        self._config = config or RateLimitConfig()
        self._clock = clock or get_clock()
        self._next_allowed = self._clock.monotonic()

    @property
    def min_interval(self) -> float:
        return self._config.min_interval_seconds

    def reserve(self) -> float:
        """
        Claim the next slot.

        Returns:
            Seconds the caller must wait before dispatching
        """
        now = self._clock.monotonic()
        wait = max(MIN_WAIT_SECONDS, self._next_allowed - now)
        self._next_allowed = now + wait + self.min_interval
        return wait

    async def acquire(self) -> None:
        """Wait for this caller's slot."""
        wait = self.reserve()
        if wait > self.min_interval:
            logger.debug(f"Rate limited, waiting {wait:.3f}s")
        await self._clock.sleep(wait)
