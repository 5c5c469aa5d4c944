"""
Exchange Engine - Stop Market Order Command.

stopMarketOrder(side, offset, amount, position, trigger, tag)

A buy stop sits `offset` above the ask, a sell stop `offset`
below the bid. The trigger is passed through for `index` and
`mark`; anything else means last price.
"""

import logging
from typing import Dict, Optional

from ..errors import ValidationError
from ..sizing import parse_absolute_price, parse_quantity, parse_side
from ..types import Order, Side, TaskState, TriggerType
from .base import ExchangeCommand


logger = logging.getLogger(__name__)


def resolve_trigger(trigger: str) -> str:
    trigger = str(trigger).strip().lower()
    if trigger in (TriggerType.INDEX.value, TriggerType.MARK.value):
        return trigger
    return TriggerType.LAST.value


class StopMarketOrder(ExchangeCommand):
    """Places a single stop market order; finishes immediately."""

    expected_args = {
        "side": "buy",
        "offset": "0",
        "amount": "0",
        "position": "",
        "trigger": "last",
        "tag": "",
    }

    def __init__(self, context):
        super().__init__(context)
        self.order: Optional[Order] = None

    def default_args(self) -> Dict[str, str]:
        args = super().default_args()
        args["tag"] = self.exchange.clock.now().isoformat()
        return args

    async def stop_price(self, side: str):
        ex = self.exchange
        absolute = parse_absolute_price(self.args["offset"])
        if absolute is not None:
            return ex.round_price(self.symbol, absolute)

        ticker = await ex.ticker(self.symbol)
        offset = parse_quantity(self.args["offset"])
        if side == Side.BUY.value:
            delta = ticker.ask * (offset.value / 100) if offset.units == "%" else offset.value
            return ex.round_price(self.symbol, ticker.ask + delta)

        delta = ticker.bid * (offset.value / 100) if offset.units == "%" else offset.value
        return ex.round_price(self.symbol, ticker.bid - delta)

    async def execute(self) -> TaskState:
        ex = self.exchange
        ex.log.progress(f"STOP MARKET ORDER - {ex.name}")
        ex.log.progress(self.args)

        side = parse_side(self.args["side"])
        if not side:
            raise ValidationError("side must be buy or sell", context={"side": self.args["side"]})

        side, amount = await ex.position_to_amount(self.symbol, self.args["position"], side, self.args["amount"])
        if amount.value == 0:
            raise ValidationError("Stop order not placed, as order size is Zero.")

        price = await self.stop_price(side)
        if price <= 0:
            raise ValidationError("Stop price must be above zero.", context={"price": str(price)})

        details = await ex.order_size_from_amount(self.symbol, side, price, amount)
        if details.order_size == 0:
            raise ValidationError("No funds available or order size is 0")

        trigger = resolve_trigger(self.args["trigger"])
        self.order = await self.api.stop_order(self.symbol, details.order_size, price, side, trigger)
        ex.add_to_session(self.session, self.args["tag"], self.order)

        ex.log.results(f"Stop market order placed. {side} {details.order_size} at {price} ({trigger}).")
        ex.log.dim(self.order)
        return TaskState.FINISHED

    def results(self) -> Optional[Order]:
        return self.order
