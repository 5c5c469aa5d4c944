"""
Exchange Engine - Conditions.

============================================================
PURPOSE
============================================================
Named true/false tests used by the `continue` and `stop`
commands. Names are case-insensitive; unknown names are false.

CONDITIONS:
- always / true, never / false
- isAfterDate, isOnOrAfterDate, isBeforeDate, isOnOrBeforeDate,
  isSameDate       value YYYY-MM-DD, against today (UTC)
- isAfterTime, isBeforeTime
                   value HH:MM, today (UTC)
- positionLessThan, positionGreaterThan, positionLessThanEq,
  positionGreaterThanEq, positionLong, positionShort,
  positionNone     against the signed position size
- priceLessThan, priceGreaterThan, priceLessThanEq,
  priceGreaterThanEq
                   against the bid/ask midpoint

============================================================
"""

import logging
import operator
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from ..utils import to_decimal
from .base import CommandContext


logger = logging.getLogger(__name__)


SIMPLE_CONDITIONS = {
    "always": True,
    "true": True,
    "never": False,
    "false": False,
}

DATE_CONDITIONS: Dict[str, Callable] = {
    "isafterdate": operator.gt,
    "isonorafterdate": operator.ge,
    "isbeforedate": operator.lt,
    "isonorbeforedate": operator.le,
    "issamedate": operator.eq,
}

TIME_CONDITIONS: Dict[str, Callable] = {
    "isaftertime": operator.gt,
    "isbeforetime": operator.lt,
}

POSITION_CONDITIONS: Dict[str, Callable] = {
    "positionlessthan": lambda position, target: position < target,
    "positiongreaterthan": lambda position, target: position > target,
    "positionlessthaneq": lambda position, target: position <= target,
    "positiongreaterthaneq": lambda position, target: position >= target,
    "positionlong": lambda position, target: position > 0,
    "positionshort": lambda position, target: position < 0,
    "positionnone": lambda position, target: position == 0,
}

PRICE_CONDITIONS: Dict[str, Callable] = {
    "pricelessthan": operator.lt,
    "pricegreaterthan": operator.gt,
    "pricelessthaneq": operator.le,
    "pricegreaterthaneq": operator.ge,
}


def _parse(value: str, fmt: str) -> Optional[datetime]:
    try:
        return datetime.strptime(str(value).strip(), fmt)
    except ValueError:
        return None


def date_condition(condition: str, value: str, now: datetime) -> bool:
    target = _parse(value, "%Y-%m-%d")
    if target is None:
        logger.warning(f"Invalid date '{value}' for {condition}")
        return False
    return DATE_CONDITIONS[condition](now.date(), target.date())


def time_condition(condition: str, value: str, now: datetime) -> bool:
    parsed = _parse(value, "%H:%M")
    if parsed is None:
        logger.warning(f"Invalid time '{value}' for {condition}")
        return False
    now = now.astimezone(timezone.utc)
    target = now.replace(hour=parsed.hour, minute=parsed.minute, second=0, microsecond=0)
    return TIME_CONDITIONS[condition](now, target)


async def evaluate_condition(context: CommandContext, condition: str, value: str = "") -> bool:
    """
    Decide whether a named condition currently holds.

    Args:
        context: Command context (exchange and symbol)
        condition: Condition name
        value: Argument for the condition (date, time, size, price)

    Returns:
        True or False
    """
    ex = context.exchange
    name = str(condition).strip().lower()

    if name in SIMPLE_CONDITIONS:
        return SIMPLE_CONDITIONS[name]

    if name in DATE_CONDITIONS or name in TIME_CONDITIONS:
        now = ex.clock.now()
        ex.log.progress(f"Time and Date is {now.isoformat()}")
        if name in DATE_CONDITIONS:
            return date_condition(name, value, now)
        return time_condition(name, value, now)

    if name in POSITION_CONDITIONS:
        position = await ex.position_size(context.symbol)
        ex.log.progress(f"Current position size is {position}")
        return POSITION_CONDITIONS[name](position, to_decimal(value))

    if name in PRICE_CONDITIONS:
        ticker = await ex.ticker(context.symbol)
        price = ticker.mid
        ex.log.progress(f"Current price is {price}")
        return PRICE_CONDITIONS[name](price, to_decimal(value))

    logger.warning(f"Unknown condition: {condition}")
    return False
