"""
Exchange Engine - Market Order Command.

marketOrder(side, amount, position, tag)
"""

import logging
from typing import Iterable

from ..errors import ValidationError
from ..sizing import assign_params, parse_side
from ..types import CommandArg, OrderResult, Side
from .base import CommandContext


logger = logging.getLogger(__name__)


async def market_order(context: CommandContext, args: Iterable[CommandArg]) -> OrderResult:
    """
    Place a market order, sized at the touch (ask for buys, bid for sells).

    Tells the driver when the order uses everything available so
    venues that trade by funds can spend it all.
    """
    ex = context.exchange
    symbol = context.symbol

    p = assign_params({
        "side": "buy",
        "amount": "0",
        "position": "",
        "tag": ex.clock.now().isoformat(),
    }, args)

    ex.log.progress(f"MARKET ORDER - {ex.name}")
    ex.log.progress(p)

    side = parse_side(p["side"])
    if not side:
        raise ValidationError("side must be buy or sell", context={"side": p["side"]})

    side, amount = await ex.position_to_amount(symbol, p["position"], side, p["amount"])
    if amount.value == 0:
        ex.log.results("Market order not placed, as order size is Zero.")
        return OrderResult(order=None)

    ticker = await ex.ticker(symbol)
    price = ticker.ask if side == Side.BUY.value else ticker.bid

    details = await ex.order_size_from_amount(symbol, side, price, amount)
    if details.order_size == 0:
        raise ValidationError("No funds available or order size is 0")

    order = await ex.api.market_order(symbol, details.order_size, side, details.is_all_available)
    ex.add_to_session(context.session, p["tag"], order)

    ex.log.results(f"Market order placed at {ex.clock.now():%H:%M:%S}. {side} {details.order_size}.")
    ex.log.dim(order)
    return OrderResult(order=order, side=side, price=price, amount=details.order_size, units="")
