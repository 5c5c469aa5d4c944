"""
Exchange Engine - Command Registry.

============================================================
PURPOSE
============================================================
The allow-list of commands an exchange will run.

Each entry is either
- FUNCTION: a stateless `async handler(context, args)`, or
- TASK: an ExchangeCommand class, run through the task path
  (execute now, maybe keep polling in the background)

Lookup is case-insensitive through a table built once at import.

============================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Type

from .base import ExchangeCommand
from .cancel_orders import cancel_orders
from .limit_order import limit_order
from .market_order import market_order
from .misc import balance, continue_if, notify, stop_if, wait
from .ping_pong import PingPongOrder
from .scaled import scaled_order
from .stop_market import StopMarketOrder


class CommandKind(Enum):
    FUNCTION = "function"
    TASK = "task"


@dataclass(frozen=True)
class CommandSpec:
    """One allow-listed command."""

    name: str
    kind: CommandKind
    handler: Optional[Callable[..., Awaitable]] = None
    factory: Optional[Type[ExchangeCommand]] = None


def _function(name: str, handler) -> CommandSpec:
    return CommandSpec(name=name, kind=CommandKind.FUNCTION, handler=handler)


def _task(name: str, factory: Type[ExchangeCommand]) -> CommandSpec:
    return CommandSpec(name=name, kind=CommandKind.TASK, factory=factory)


COMMANDS: List[CommandSpec] = [
    # Algorithmic orders
    _function("scaledOrder", scaled_order),
    _function("scaled", scaled_order),
    _task("pingPongOrder", PingPongOrder),
    _task("pingPong", PingPongOrder),

    # Regular orders
    _function("limitOrder", limit_order),
    _function("limit", limit_order),
    _function("marketOrder", market_order),
    _function("market", market_order),
    _task("stopMarketOrder", StopMarketOrder),
    _task("stopMarket", StopMarketOrder),

    # Other commands
    _function("cancelOrders", cancel_orders),
    _function("cancel", cancel_orders),
    _function("wait", wait),
    _function("notify", notify),
    _function("balance", balance),
    _function("continue", continue_if),
    _function("stop", stop_if),
]

_LOOKUP: Dict[str, CommandSpec] = {spec.name.lower(): spec for spec in COMMANDS}


def find_command(name: str) -> Optional[CommandSpec]:
    """Allow-listed command for `name` (any case), or None."""
    return _LOOKUP.get(str(name).lower())


def command_names() -> List[str]:
    return [spec.name for spec in COMMANDS]
