"""
Exchange Engine - Numeric Utilities.

============================================================
PURPOSE
============================================================
Decimal helpers shared by sizing, ladders and drivers.

All prices and amounts in the engine are Decimal. Venue payloads
arrive as strings or floats and are converted once, at the edge.

============================================================
"""

import random
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP, ROUND_UP, InvalidOperation
from typing import Any


ZERO = Decimal("0")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Convert a venue value to Decimal.

    Floats go through str() so 0.1 stays 0.1.

    Args:
        value: str, int, float or Decimal
        default: Returned when the value cannot be parsed

    Returns:
        Decimal value
    """
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        return default
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default


def _quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def _round(value: Any, places: int, rounding: str) -> Decimal:
    value = to_decimal(value)
    rounded = value.quantize(_quantum(places), rounding=rounding)
    # Normalize the exponent back for negative places (4E+1 -> 40)
    return rounded.quantize(Decimal(1)) if places < 0 else rounded


def round_value(value: Any, places: int = 0) -> Decimal:
    """Round half-up to `places` decimals (negative rounds to tens, hundreds...)."""
    return _round(value, places, ROUND_HALF_UP)


def round_down(value: Any, places: int = 0) -> Decimal:
    """Round towards zero."""
    return _round(value, places, ROUND_DOWN)


def round_up(value: Any, places: int = 0) -> Decimal:
    """Round away from zero."""
    return _round(value, places, ROUND_UP)


def round_significant_figures(value: Any, figures: int) -> Decimal:
    """
    Round to a number of significant figures.

    Args:
        value: Value to round
        figures: Significant figures to keep (>= 1)

    Returns:
        Rounded value
    """
    value = to_decimal(value)
    if value == 0:
        return ZERO
    places = figures - value.adjusted() - 1
    return _round(value, places, ROUND_HALF_UP)


def random_range(low: Any, high: Any) -> Decimal:
    """Random Decimal in [low, high]."""
    low, high = to_decimal(low), to_decimal(high)
    return low + (high - low) * to_decimal(random.random())
