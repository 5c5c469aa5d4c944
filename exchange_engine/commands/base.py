"""
Exchange Engine - Command Base.

============================================================
PURPOSE
============================================================
Contract for state-machine (multi-step) commands.

LIFECYCLE:
    setup(args)          resolve arguments
    execute()            first unit of work -> TaskState
    background_execute() one poll per scheduler tick -> TaskState
    on_cancelled()       called instead of background_execute()
                         once cancellation is seen
    results()            whatever has been achieved so far;
                         safe to call at any time

Commands borrow the exchange through their context and own none
of its state.

============================================================
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable

from ..logging_utils import get_progress_log
from ..sizing import assign_params
from ..types import CommandArg, TaskState


logger = logging.getLogger(__name__)


@dataclass
class CommandContext:
    """What a command runs against."""

    exchange: Any
    """The owning Exchange."""

    symbol: str

    session: str = ""


class ExchangeCommand(ABC):
    """Base class for commands that may keep running in the background."""

    expected_args: Dict[str, str] = {}
    """Parameter names, in positional order, with their defaults."""

    def __init__(self, context: CommandContext):
        self.context = context
        self.id = str(uuid.uuid4())
        self.args: Dict[str, str] = {}
        self.log = get_progress_log()

    @property
    def exchange(self):
        return self.context.exchange

    @property
    def api(self):
        return self.context.exchange.api

    @property
    def symbol(self) -> str:
        return self.context.symbol

    @property
    def session(self) -> str:
        return self.context.session

    def default_args(self) -> Dict[str, str]:
        return dict(self.expected_args)

    async def setup(self, args: Iterable[CommandArg]) -> None:
        self.args = assign_params(self.default_args(), args)

    def has_arg(self, name: str) -> bool:
        return name in self.args

    @abstractmethod
    async def execute(self) -> TaskState:
        """Do the first unit of work."""
        pass

    async def background_execute(self) -> TaskState:
        return TaskState.FINISHED

    async def on_cancelled(self) -> None:
        pass

    def results(self) -> Any:
        return None
