"""
Exchange Engine - Argument and Quantity Parsing.

Pure helpers used by every command: named/positional argument
resolution and the small quantity grammar
(12, 12btc, 12usd, 12% of total, 12%% of available).
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Tuple

from .types import CommandArg
from .utils import ZERO, to_decimal


QUANTITY_PATTERN = re.compile(r"^([0-9]+(\.[0-9]+)?)\s*([a-zA-Z]+|%{1,2})?$")
PERCENTAGE_PATTERN = re.compile(r"^([0-9]+(\.[0-9]+)?)\s*(%{1,2})?$")
TIME_PATTERN = re.compile(r"([0-9]+)(d|h|m|s)?")
SYMBOL_PATTERN = re.compile(r"^(.{3,4})(.{3})")
ABSOLUTE_PRICE_PATTERN = re.compile(r"@([0-9]+(\.[0-9]*)?)")

TIME_UNITS = {"s": 1, "m": 60, "h": 60 * 60, "d": 60 * 60 * 24}


@dataclass(frozen=True)
class Quantity:
    """A number and its units ('' for an absolute asset amount)."""

    value: Decimal
    units: str = ""

    def __str__(self) -> str:
        return f"{self.value}{self.units}"


def assign_params(expected: Dict[str, str], args: Iterable[CommandArg]) -> Dict[str, str]:
    """
    Resolve command arguments.

    Each expected name takes the value of the last argument whose
    name matches (ignoring case), or whose name is empty and whose
    index equals the expected parameter's position. Otherwise the
    default applies.

    Args:
        expected: Ordered map of parameter name to default value
        args: Invocation arguments

    Returns:
        Map of parameter name to resolved value
    """
    args = list(args)
    result = {}
    for position, (name, default) in enumerate(expected.items()):
        value = default
        for arg in args:
            if arg.name.lower() == name.lower() or (arg.name == "" and arg.index == position):
                value = arg.value
        result[name] = value
    return result


def parse_quantity(text: str) -> Quantity:
    """
    Parse an amount with optional units.

    Anything that does not look like a quantity is zero, as that is
    the safest thing to trade.
    """
    match = QUANTITY_PATTERN.match(str(text).strip())
    if not match:
        return Quantity(ZERO, "")
    return Quantity(Decimal(match.group(1)), match.group(3) or "")


def parse_percentage(text: str) -> Decimal:
    """Treat '0.01' and '1%' the same (both 0.01); invalid input is 0."""
    match = PERCENTAGE_PATTERN.match(str(text).strip())
    if not match:
        return ZERO
    value = Decimal(match.group(1))
    return value / 100 if match.group(3) == "%" else value


def parse_absolute_price(text: str):
    """Return the price in '@6250.23', or None."""
    match = ABSOLUTE_PRICE_PATTERN.search(str(text))
    return Decimal(match.group(1)) if match else None


def time_to_seconds(text: str, default: int = 10) -> int:
    """Convert '12', '12s', '12m', '12h' or '12d' to seconds."""
    match = TIME_PATTERN.search(str(text))
    if not match:
        return default
    return int(match.group(1)) * TIME_UNITS.get(match.group(2) or "s", 1)


def split_symbol(symbol: str) -> Tuple[str, str]:
    """
    Split a pair like BTCUSD or BTC-USD into (asset, currency).

    Falls back to btc / usd when the symbol cannot be split.
    """
    lowered = symbol.lower()
    parts = re.split(r"[-/]", lowered)
    if len(parts) >= 2 and parts[0] and parts[1]:
        return parts[0], parts[1]

    match = SYMBOL_PATTERN.match(lowered)
    if match:
        return match.group(1), match.group(2)
    return "btc", "usd"


def parse_bool(text: str) -> bool:
    return str(text).strip().lower() in ("true", "1", "yes")


def parse_side(text: str) -> str:
    """Lower-case side; returns '' for anything but buy or sell."""
    side = str(text).strip().lower()
    return side if side in ("buy", "sell") else ""


__all__ = [
    "Quantity",
    "assign_params",
    "parse_quantity",
    "parse_percentage",
    "parse_absolute_price",
    "time_to_seconds",
    "split_symbol",
    "parse_bool",
    "parse_side",
    "to_decimal",
]
