"""
Exchange Engine - Clock.

============================================================
RESPONSIBILITY
============================================================
A single, mockable source of time and timed waits.

- Rate limiting, retries, the background scheduler and the
  ping-pong auto-balance timer all read time and sleep through
  a clock instance
- SystemClock for production, MockClock for deterministic tests
- UTC only

============================================================
"""

import asyncio
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import List, Optional


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """Abstract interface for time and waiting."""

    @abstractmethod
    def now(self) -> datetime:
        """Get current UTC datetime."""
        pass

    @abstractmethod
    def monotonic(self) -> float:
        """Seconds from an arbitrary, never-decreasing origin."""
        pass

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspend the caller for `seconds`."""
        pass

    def timestamp(self) -> float:
        """Get current Unix timestamp."""
        return self.now().timestamp()


# ============================================================
# SYSTEM CLOCK (PRODUCTION)
# ============================================================

class SystemClock(ClockProtocol):
    """Production clock using actual system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()

    def timestamp(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


# ============================================================
# MOCK CLOCK (TESTING)
# ============================================================

class MockClock(ClockProtocol):
    """
    Mock clock for testing.

    sleep() returns immediately after advancing the clock, and
    every requested delay is recorded in `sleeps`.
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        """
        Initialize mock clock.

        Args:
            initial_time: Starting time (defaults to current UTC)
        """
        self._time = initial_time or datetime.now(timezone.utc)
        self._monotonic = 0.0
        self.sleeps: List[float] = []

    def now(self) -> datetime:
        return self._time

    def monotonic(self) -> float:
        return self._monotonic

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        # still yield so other coroutines get a turn
        await asyncio.sleep(0)

    def set_time(self, new_time: datetime) -> None:
        """Set the current wall-clock time."""
        if new_time.tzinfo is None:
            new_time = new_time.replace(tzinfo=timezone.utc)
        self._time = new_time

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """
        Advance time by the specified amount.

        Args:
            seconds: Number of seconds to advance
            **kwargs: Passed to timedelta (hours, minutes, days, etc.)
        """
        delta = timedelta(seconds=seconds, **kwargs)
        self._time = self._time + delta
        self._monotonic += delta.total_seconds()


# ============================================================
# GLOBAL CLOCK
# ============================================================

_clock: ClockProtocol = SystemClock()


def get_clock() -> ClockProtocol:
    """Get the process-wide default clock."""
    return _clock


def set_clock(clock: ClockProtocol) -> None:
    """Replace the process-wide default clock (tests only)."""
    global _clock
    _clock = clock
