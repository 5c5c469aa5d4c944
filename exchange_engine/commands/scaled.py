"""
Exchange Engine - Scaled Order (Ladder).

============================================================
PURPOSE
============================================================
scaledOrder(from, to, orderCount, amount, side, easing,
            varyAmount, varyPrice, tag, position)

Spreads an amount over `orderCount` limit orders between two
prices.

STEPS:
1. Clamp orderCount to the ladder maximum; nothing to do below 1
2. Resolve side and amount (from a target position if given)
3. Resolve from / to to absolute prices, furthest from the
   book first
4. Cap the total to what funds allow at the most expensive rung
5. Generate amounts and prices, then place rungs one at a time

A failed rung is logged and recorded with order None; the rest
of the ladder is still attempted.

EASING:
Price spacing follows an easing function f(t) on [0, 1]. The
built-ins are linear, easeIn, easeOut and easeInOut (quadratic).
More can be added with register_easing(); unknown names are
linear.

============================================================
"""

import logging
from decimal import Decimal
from typing import Callable, Dict, Iterable, List

from ..sizing import Quantity, assign_params, parse_percentage, parse_side
from ..errors import ValidationError
from ..types import CommandArg, OrderResult, Side
from ..utils import ZERO, random_range, to_decimal
from .base import CommandContext
from .limit_order import place_limit_order


logger = logging.getLogger(__name__)

DEFAULT_MAX_ORDERS = 100


# ============================================================
# EASING
# ============================================================

EasingFunction = Callable[[Decimal], Decimal]


def _linear(t: Decimal) -> Decimal:
    return t


def _ease_in(t: Decimal) -> Decimal:
    return t * t


def _ease_out(t: Decimal) -> Decimal:
    return t * (2 - t)


def _ease_in_out(t: Decimal) -> Decimal:
    if t < Decimal("0.5"):
        return 2 * t * t
    return -1 + (4 - 2 * t) * t


_easings: Dict[str, EasingFunction] = {
    "linear": _linear,
    "easein": _ease_in,
    "easeout": _ease_out,
    "easeinout": _ease_in_out,
}


def register_easing(name: str, fn: EasingFunction) -> None:
    """Add an easing curve; fn maps [0, 1] onto [0, 1]."""
    _easings[name.lower()] = fn


def get_easing(name: str) -> EasingFunction:
    return _easings.get(str(name).lower(), _linear)


# ============================================================
# LADDER GENERATION
# ============================================================

def scaled_amounts(
    count: int,
    total: Decimal,
    vary: Decimal,
    round_asset: Callable[[Decimal], Decimal],
) -> List[Decimal]:
    """
    Split `total` into `count` amounts.

    Each amount is the mean varied randomly by up to +/- `vary`
    (a fraction of the mean), then the set is rescaled to `total`.
    The last rung absorbs rounding so the amounts add up.
    """
    if count < 1:
        return []

    total = to_decimal(total)
    vary = to_decimal(vary)
    mean = total / count
    raw = [mean * (1 + random_range(-vary, vary)) if vary > 0 else mean for _ in range(count)]

    scale = total / sum(raw) if sum(raw) > 0 else ZERO
    amounts = [round_asset(value * scale) for value in raw[:-1]]
    amounts.append(max(ZERO, round_asset(total - sum(amounts, ZERO))))
    return amounts


def scaled_prices(
    count: int,
    from_price: Decimal,
    to_price: Decimal,
    vary: Decimal,
    easing: str,
    round_price: Callable[[Decimal], Decimal],
) -> List[Decimal]:
    """
    `count` prices from `from_price` to `to_price`.

    Spacing follows the easing curve; `vary` moves each price
    randomly by up to that fraction of one step. Prices never
    leave the [from, to] range.
    """
    if count < 1:
        return []

    from_price, to_price = to_decimal(from_price), to_decimal(to_price)
    low, high = min(from_price, to_price), max(from_price, to_price)
    ease = get_easing(easing)
    vary = to_decimal(vary)
    step = abs(to_price - from_price) / (count - 1) if count > 1 else ZERO

    prices = []
    for i in range(count):
        t = Decimal(i) / Decimal(count - 1) if count > 1 else ZERO
        price = from_price + (to_price - from_price) * ease(t)
        if vary > 0 and step > 0:
            price += step * random_range(-vary, vary)
        prices.append(round_price(min(high, max(low, price))))
    return prices


async def scaled_order_size(
    context: CommandContext,
    side: str,
    amount: Quantity,
    from_price: Decimal,
    to_price: Decimal,
    order_count: int,
) -> Decimal:
    """
    Total ladder size the available funds allow.

    Sized at the most expensive rung. Returns 0 when an even
    share per rung would be under the venue minimum.
    """
    ex = context.exchange
    price = max(from_price, to_price)
    details = await ex.order_size_from_amount(context.symbol, side, price, amount)
    if details.order_size == 0 or order_count < 1:
        return ZERO

    if details.order_size / order_count < ex.symbol_data.min_order_size(context.symbol):
        return ZERO
    return details.order_size


# ============================================================
# COMMAND
# ============================================================

async def scaled_order(context: CommandContext, args: Iterable[CommandArg]) -> List[OrderResult]:
    """
    Place a ladder of limit orders.

    Returns:
        One OrderResult per rung (empty when nothing was placed)
    """
    ex = context.exchange
    symbol = context.symbol
    max_orders = getattr(ex.config, "max_ladder_orders", DEFAULT_MAX_ORDERS)

    p = assign_params({
        "from": "0",
        "to": "50",
        "orderCount": "10",
        "amount": "0",
        "side": "buy",
        "easing": "linear",
        "varyAmount": "0",
        "varyPrice": "0",
        "tag": "",
        "position": "",
    }, args)

    ex.log.progress(f"SCALED ORDER - {ex.name}")
    ex.log.progress(p)

    try:
        order_count = min(int(p["orderCount"]), max_orders)
    except ValueError:
        raise ValidationError("orderCount must be a whole number", context={"orderCount": p["orderCount"]})
    vary_amount = parse_percentage(p["varyAmount"])
    vary_price = parse_percentage(p["varyPrice"])

    if order_count < 1:
        ex.log.results("Scaled order not placed, as order count is Zero.")
        return []

    side = parse_side(p["side"])
    if not side and p["position"] == "":
        raise ValidationError("side must be buy or sell", context={"side": p["side"]})

    side, amount = await ex.position_to_amount(symbol, p["position"], side, p["amount"])
    if amount.value == 0:
        ex.log.results("Scaled order not placed, as order size is Zero.")
        return []

    from_price = await ex.offset_to_absolute_price(symbol, side, p["from"])
    to_price = await ex.offset_to_absolute_price(symbol, side, p["to"])

    # furthest from the book first: lowest buy, highest sell
    if (side == Side.BUY.value and from_price > to_price) or (side == Side.SELL.value and from_price < to_price):
        from_price, to_price = to_price, from_price

    if from_price <= 0 or to_price <= 0:
        ex.log.results("Scaled order not placed, as price range goes below zero.")
        return []

    total = await scaled_order_size(context, side, amount, from_price, to_price, order_count)
    if total == 0:
        ex.log.results("Scaled order would result in trying to place orders below min order size. Ignoring.")
        return []

    amounts = scaled_amounts(order_count, total, vary_amount, lambda v: ex.round_asset(symbol, v))
    prices = scaled_prices(order_count, from_price, to_price, vary_price, p["easing"], lambda v: ex.round_price(symbol, v))

    ex.log.progress("Adjusted values based on Available Funds")
    ex.log.progress({"side": side, "from": from_price, "to": to_price, "amount": total, "orderCount": order_count})

    results = []
    for price, rung_amount in zip(prices, amounts):
        try:
            results.append(await place_limit_order(context, side, price, rung_amount, p["tag"]))
        except Exception as e:
            logger.error(f"Error placing a limit order as part of a scaled order - {e}")
            logger.error("Continuing to try and place the rest of the series...")
            results.append(OrderResult(order=None, side=side, price=price, amount=rung_amount, units=""))

    return results
