"""
Exchange Engine - Commands.

Function-style commands and state-machine tasks, looked up by
name through the registry.
"""

from .base import CommandContext, ExchangeCommand
from .conditions import evaluate_condition
from .ping_pong import PingPongOrder
from .registry import COMMANDS, CommandKind, CommandSpec, command_names, find_command
from .scaled import register_easing, scaled_amounts, scaled_order, scaled_prices
from .stop_market import StopMarketOrder


__all__ = [
    "CommandContext",
    "ExchangeCommand",
    "CommandKind",
    "CommandSpec",
    "COMMANDS",
    "find_command",
    "command_names",
    "evaluate_condition",
    "scaled_order",
    "scaled_amounts",
    "scaled_prices",
    "register_easing",
    "StopMarketOrder",
    "PingPongOrder",
]
