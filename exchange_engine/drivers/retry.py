"""
Exchange Engine - Retry With Backoff.

============================================================
PURPOSE
============================================================
Wraps one venue call and retries it on transient failures.

RULES:
- Only TransientVenueError is retried (429 / 502 / 503, and
  connection resets remapped to 429)
- Everything else propagates immediately
- Bounded: max_attempts, and optionally max_elapsed_seconds
- Delay before retry n is base + step * n

============================================================
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..clock import ClockProtocol, get_clock
from ..config import RetryConfig
from ..errors import TransientVenueError


logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_retries(
    call: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
    clock: Optional[ClockProtocol] = None,
    description: str = "venue call",
) -> T:
    """
    Run `call` until it succeeds or retrying is no longer allowed.

    Args:
        call: Zero-argument coroutine factory (a fresh attempt per call)
        config: Retry policy
        clock: Clock used for waiting and the elapsed ceiling
        description: Used in log messages

    Returns:
        Result of the first successful attempt

    Raises:
        TransientVenueError: Last transient failure once attempts are spent
        Exception: Any non-transient failure, unchanged
    """
    config = config or RetryConfig()
    clock = clock or get_clock()
    started = clock.monotonic()
    attempts = max(1, config.max_attempts)

    for attempt in range(1, attempts + 1):
        try:
            return await call()
        except TransientVenueError as e:
            if attempt >= attempts:
                logger.error(f"{description} failed after {attempt} attempts, not retrying: {e}")
                raise

            delay = config.delay_for(attempt)
            if config.max_elapsed_seconds is not None:
                elapsed = clock.monotonic() - started
                if elapsed + delay > config.max_elapsed_seconds:
                    logger.error(
                        f"{description} failed, retry window of "
                        f"{config.max_elapsed_seconds}s exhausted: {e}"
                    )
                    raise

            logger.warning(
                f"{description} failed with status {e.status} "
                f"(attempt {attempt}/{attempts}), retrying in {delay}s"
            )
            await clock.sleep(delay)

    # unreachable: the loop either returns or raises
    raise RuntimeError(f"{description}: retry loop exited without a result")
