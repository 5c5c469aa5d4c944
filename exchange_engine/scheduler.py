"""
Exchange Engine - Background Scheduler.

============================================================
RESPONSIBILITY
============================================================
Drives every background command of one exchange connection.

LOOP:
    wait = min_polling_delay
    while tasks remain:
        sleep(wait)
        one pass over all tasks (registration order):
            cancelled -> on_cancelled(), FINISHED
            otherwise -> background_execute()
        any ACTIVE  -> wait = min_polling_delay
        else        -> wait = min(wait + 1, max_polling_delay)
        drop FINISHED tasks (and their algo orders)

- Only one loop runs at a time; a second caller returns at once
- A task exception propagates out of the loop after the guard
  is cleared, so the loop can be started again

============================================================
"""

import logging
from typing import List, Optional

from .clock import ClockProtocol, get_clock
from .config import PollingConfig
from .registry import AlgoOrderRegistry
from .types import BackgroundTask, TaskState


logger = logging.getLogger(__name__)

SHORT_WAIT_SECONDS = 0.05


class BackgroundScheduler:
    """Polls background tasks with adaptive backoff."""

    def __init__(
        self,
        algo_orders: AlgoOrderRegistry,
        polling: Optional[PollingConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        self._algo_orders = algo_orders
        self._polling = polling or PollingConfig()
        self._clock = clock or get_clock()
        self._tasks: List[BackgroundTask] = []
        self._running = False

    @property
    def tasks(self) -> List[BackgroundTask]:
        return list(self._tasks)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def min_polling_delay(self) -> int:
        return self._polling.min_polling_delay

    @property
    def max_polling_delay(self) -> int:
        return self._polling.max_polling_delay

    def add(self, task, state: TaskState) -> BackgroundTask:
        item = BackgroundTask(task=task, state=state)
        self._tasks.append(item)
        return item

    async def wait_seconds(self, delay: float) -> None:
        """Sleep; anything under a second is a short yield of 50 ms."""
        await self._clock.sleep(SHORT_WAIT_SECONDS if delay < 1 else delay)

    def next_wait(self, wait_time: int, any_active: bool) -> int:
        if any_active:
            return self.min_polling_delay
        return min(wait_time + 1, self.max_polling_delay)

    async def run(self) -> None:
        """Run until every background task has finished."""
        if self._running:
            logger.info("Another caller is already waiting for background tasks - leaving it to them.")
            return

        self._running = True
        try:
            self._drop_finished()
            wait_time = self.min_polling_delay
            while self._tasks:
                await self.wait_seconds(wait_time)

                any_active = await self.single_pass()
                wait_time = self.next_wait(wait_time, any_active)
                self._drop_finished()
        finally:
            self._running = False

    async def single_pass(self) -> bool:
        """
        Give every task one poll.

        Returns:
            True if any task reported ACTIVE
        """
        any_active = False
        for item in list(self._tasks):
            if self._algo_orders.is_cancelled(item.task.id):
                await item.task.on_cancelled()
                item.state = TaskState.FINISHED
            else:
                item.state = await item.task.background_execute()
                if item.state is TaskState.ACTIVE:
                    any_active = True

            if item.state.is_finished:
                self._algo_orders.end(item.task.id)

        return any_active

    def _drop_finished(self) -> None:
        self._tasks = [item for item in self._tasks if not item.state.is_finished]
