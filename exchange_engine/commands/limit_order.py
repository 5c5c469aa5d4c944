"""
Exchange Engine - Limit Order Command.

limitOrder(side, offset, amount, tag, position, postOnly, reduceOnly)

Places one limit order, priced from an offset to the current
book (or an absolute '@price') and sized from an amount or a
target position.
"""

import logging
from decimal import Decimal
from typing import Iterable

from ..errors import ValidationError
from ..sizing import assign_params, parse_bool, parse_side
from ..types import CommandArg, OrderResult
from .base import CommandContext


logger = logging.getLogger(__name__)


async def place_limit_order(
    context: CommandContext,
    side: str,
    price: Decimal,
    amount: Decimal,
    tag: str,
    post_only: bool = True,
    reduce_only: bool = False,
) -> OrderResult:
    """
    Place an already sized and priced limit order and record it in the session.

    Raises whatever the driver raises.
    """
    ex = context.exchange
    order = await ex.api.limit_order(context.symbol, amount, price, side, post_only, reduce_only)
    ex.add_to_session(context.session, tag, order)

    ex.log.results(f"Limit order placed at {ex.clock.now():%H:%M:%S}. {side} {amount} at {price}.")
    ex.log.dim(order)
    return OrderResult(order=order, side=side, price=price, amount=amount, units="")


async def limit_order(context: CommandContext, args: Iterable[CommandArg]) -> OrderResult:
    """
    Place a limit order.

    Returns:
        OrderResult; its order is None when the resolved size is zero

    Raises:
        ValidationError: Bad side, negative price or no funds
    """
    ex = context.exchange
    symbol = context.symbol

    p = assign_params({
        "side": "buy",
        "offset": "0",
        "amount": "0",
        "tag": ex.clock.now().isoformat(),
        "position": "",
        "postOnly": "true",
        "reduceOnly": "false",
    }, args)

    ex.log.progress(f"LIMIT ORDER - {ex.name}")
    ex.log.progress(p)

    post_only = parse_bool(p["postOnly"])
    reduce_only = parse_bool(p["reduceOnly"])

    side = parse_side(p["side"])
    if not side:
        raise ValidationError("side must be buy or sell", context={"side": p["side"]})

    side, amount = await ex.position_to_amount(symbol, p["position"], side, p["amount"])
    if amount.value == 0:
        ex.log.results("Limit order not placed, as order size is Zero.")
        return OrderResult(order=None)

    price = await ex.offset_to_absolute_price(symbol, side, p["offset"])
    if price < 0:
        logger.error(f"Order price can not be below zero. calculated as {price}")
        raise ValidationError("Order price below zero not possible.", context={"price": str(price)})

    details = await ex.order_size_from_amount(symbol, side, price, amount)
    if details.order_size == 0:
        raise ValidationError("No funds available or order size is 0")

    return await place_limit_order(context, side, price, details.order_size, p["tag"], post_only, reduce_only)
