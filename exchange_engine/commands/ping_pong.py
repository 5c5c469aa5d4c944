"""
Exchange Engine - Ping Pong Order.

============================================================
PURPOSE
============================================================
pingPongOrder(side, pingFrom, pingTo, pongFrom, pongTo,
              orderCount, pingAmount, pongAmount, endless,
              pingStep, pongStep, autoBalance, autoBalanceEvery,
              trackCeiling, tag)

Two-sided market making. Pings are a ladder on `side`, pongs a
ladder on the other side. Each list is kept sorted with the
order nearest the midpoint first.

The step used to re-quote a side is pingStep/pongStep when given,
else the ladder spacing, else the other side's step, else the
starting distance from the midpoint.

EACH POLL:
1. Ping side: look at the nearest ping.
   - filled: place a replacement one step beyond the furthest
     ping, drop the filled one, and rebalance the pongs when
     autoBalance is `flow`
   - closed but not filled (cancelled elsewhere): drop it
2. Same for the pongs, in endless mode only
3. autoBalance `shuffle`: when nothing happened this poll,
   autoBalanceEvery has passed and exactly one side is empty,
   move the furthest order of the other side one step inside
   its nearest order (if the book has drifted away)
4. autoBalance `track`: while the nearest order is more than a
   step (and less than trackCeiling) away from the midpoint,
   move the furthest order one step inside the nearest

Finishes when both lists are empty (endless) or when the pings
are empty. Cancelling cancels every standing order on both sides.

============================================================
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from ..errors import ValidationError
from ..sizing import parse_bool, parse_side, time_to_seconds
from ..types import OrderResult, Side, TaskState, command_args
from ..utils import ZERO, to_decimal
from .base import ExchangeCommand
from .limit_order import place_limit_order
from .scaled import scaled_order


logger = logging.getLogger(__name__)

PING = "ping"
PONG = "pong"

AUTO_BALANCE_MODES = ("none", "flow", "shuffle", "track")


def sort_entries(entries: List[OrderResult]) -> List[OrderResult]:
    """Drop failed placements; nearest the midpoint first (buys descending, sells ascending)."""
    placed = [entry for entry in entries if entry.order is not None]
    if not placed:
        return []
    descending = placed[0].side == Side.BUY.value
    return sorted(placed, key=lambda entry: entry.price, reverse=descending)


def entry_step(entries: List[OrderResult], fallback: Decimal) -> Decimal:
    """Average spacing of a ladder."""
    if len(entries) < 2:
        return fallback
    return abs(entries[0].price - entries[-1].price) / (len(entries) - 1)


class PingPongOrder(ExchangeCommand):
    """Two-sided market maker run one poll at a time by the scheduler."""

    expected_args = {
        "side": "buy",
        "pingFrom": "0",
        "pingTo": "50",
        "pongFrom": "0",
        "pongTo": "50",
        "orderCount": "10",
        "pingAmount": "0",
        "pongAmount": "0",
        "pingStep": "",
        "pongStep": "",
        "endless": "false",
        "autoBalance": "none",
        "autoBalanceEvery": "10m",
        "trackCeiling": "100",
        "tag": "",
    }

    def __init__(self, context):
        super().__init__(context)
        self.books: Dict[str, List[OrderResult]] = {PING: [], PONG: []}
        self.steps: Dict[str, Decimal] = {PING: ZERO, PONG: ZERO}
        self.spreads: Dict[str, Decimal] = {PING: ZERO, PONG: ZERO}
        self.endless = False
        self.auto_balance = "none"
        self.auto_balance_every = 0
        self.track_ceiling = Decimal("100")
        self.last_auto_balance = 0.0
        self.fills = 0

    @property
    def pings(self) -> List[OrderResult]:
        return self.books[PING]

    @property
    def pongs(self) -> List[OrderResult]:
        return self.books[PONG]

    def default_args(self) -> Dict[str, str]:
        args = super().default_args()
        args["tag"] = self.exchange.clock.now().isoformat()
        return args

    # --------------------------------------------------------
    # SETUP
    # --------------------------------------------------------

    async def execute(self) -> TaskState:
        ex = self.exchange
        ex.log.progress(f"PING PONG ORDER - {ex.name}")
        ex.log.progress(self.args)

        side = parse_side(self.args["side"])
        if not side:
            raise ValidationError("side must be buy or sell", context={"side": self.args["side"]})
        self.args["side"] = side
        pong_side = Side(side).opposite.value

        self.endless = parse_bool(self.args["endless"])
        self.auto_balance = self.args["autoBalance"].strip().lower()
        if self.auto_balance not in AUTO_BALANCE_MODES:
            logger.warning(f"Unknown autoBalance mode {self.auto_balance}, using none")
            self.auto_balance = "none"
        self.auto_balance_every = time_to_seconds(self.args["autoBalanceEvery"])
        self.track_ceiling = to_decimal(self.args["trackCeiling"], Decimal("100"))

        ticker = await ex.ticker(self.symbol)

        tag = self.args["tag"]
        count = self.args["orderCount"]
        pings = await scaled_order(self.context, command_args(**{
            "from": self.args["pingFrom"],
            "to": self.args["pingTo"],
            "orderCount": count,
            "amount": self.args["pingAmount"],
            "side": side,
            "tag": tag,
        }))
        pongs = await scaled_order(self.context, command_args(**{
            "from": self.args["pongFrom"],
            "to": self.args["pongTo"],
            "orderCount": count,
            "amount": self.args["pongAmount"],
            "side": pong_side,
            "tag": tag,
        }))

        self.books[PING] = sort_entries(pings)
        self.books[PONG] = sort_entries(pongs)

        explicit = {PING: self.args["pingStep"], PONG: self.args["pongStep"]}
        for key in (PING, PONG):
            entries = self.books[key]
            self.steps[key] = max(to_decimal(explicit[key]), ZERO) or entry_step(entries, ZERO)
            if entries:
                self.spreads[key] = abs(entries[0].price - ticker.mid)
        if self.steps[PING] == 0:
            self.steps[PING] = self.steps[PONG]
        if self.steps[PONG] == 0:
            self.steps[PONG] = self.steps[PING]
        # one-rung ladders on both sides
        for key in (PING, PONG):
            if self.steps[key] == 0:
                self.steps[key] = self.spreads[key] or self.spreads[PONG if key == PING else PING]

        self.last_auto_balance = ex.clock.monotonic()

        ex.log.progress(
            f"Ping Pong initial orders placed - {len(self.pings)} pings, {len(self.pongs)} pongs."
        )
        if self.is_done():
            return TaskState.FINISHED

        ex.log.progress("Waiting for orders to fill now")
        return TaskState.KEEP_GOING

    def is_done(self) -> bool:
        if self.endless:
            return not self.pings and not self.pongs
        return not self.pings

    # --------------------------------------------------------
    # POLLING
    # --------------------------------------------------------

    async def background_execute(self) -> TaskState:
        ex = self.exchange
        active = False

        if self.pings:
            active = await self.check_nearest(PING, PONG) or active

        if self.endless and self.pongs:
            active = await self.check_nearest(PONG, PING) or active

        could_adjust_pongs = not self.pings and bool(self.pongs)
        could_adjust_pings = not self.pongs and bool(self.pings)
        waited = ex.clock.monotonic() - self.last_auto_balance
        if (
            not active
            and self.auto_balance == "shuffle"
            and waited > self.auto_balance_every
            and (could_adjust_pings or could_adjust_pongs)
        ):
            await self.shuffle(PING if could_adjust_pings else PONG)
            self.last_auto_balance = ex.clock.monotonic()

        if self.auto_balance == "track":
            for key in (PING, PONG):
                if self.books[key]:
                    await self.track(key)

        if self.is_done():
            ex.log.progress("Ping Pong order complete")
            return TaskState.FINISHED

        return TaskState.ACTIVE if active else TaskState.KEEP_GOING

    async def check_nearest(self, key: str, other: str) -> bool:
        """
        Look at the nearest order on one side.

        Returns:
            True if it was filled or found closed
        """
        ex = self.exchange
        entries = sort_entries(self.books[key])
        nearest, furthest = entries[0], entries[-1]

        info = await self.api.order(nearest.order)
        if info.is_filled:
            self.fills += 1
            ex.log.results(f"Ping Pong order: {key} filled - {nearest.side} {nearest.amount} for {nearest.price}")

            step = self.steps[key]
            if furthest.side == Side.BUY.value:
                price = furthest.price - step
            else:
                price = furthest.price + step
            replacement = await self.place(furthest.side, price, furthest.amount)

            entries.pop(0)
            if replacement is not None:
                entries.append(replacement)
            self.books[key] = sort_entries(entries)
            self.books[other] = sort_entries(self.books[other])

            if self.auto_balance == "flow" and self.books[other]:
                await self.shuffle(other)
            return True

        if not info.is_open:
            ex.log.results(f"Ping Pong order: found a cancelled {key} order - discarding")
            entries.pop(0)
            self.books[key] = entries
            return True

        self.books[key] = entries
        return False

    async def place(self, side: str, price: Decimal, amount: Decimal) -> Optional[OrderResult]:
        """Place one replacement order; failures are logged and give None."""
        ex = self.exchange
        price = ex.round_price(self.symbol, price)
        if price <= 0:
            logger.error(f"Ping Pong order: not placing {side} {amount} at {price}")
            return None

        try:
            return await place_limit_order(self.context, side, price, amount, self.args["tag"])
        except Exception as e:
            logger.error(f"Failed to place new limit order in ping pong - ignoring. Tried {side} {amount} at {price}: {e}")
            return None

    async def midpoint_gap(self, key: str) -> Decimal:
        ticker = await self.exchange.ticker(self.symbol)
        return abs(self.books[key][0].price - ticker.mid)

    async def move_furthest_inside(self, key: str) -> None:
        """Cancel the furthest order and re-place it one step inside the nearest."""
        ex = self.exchange
        entries = self.books[key]
        nearest = entries[0]
        furthest = entries.pop()

        await self.api.cancel_orders([furthest.order])
        ex.remove_from_session(self.session, furthest.order)
        ex.log.results(f"Cancelled furthest order from price: {furthest.side} {furthest.amount} at {furthest.price}")

        step = self.steps[key]
        if furthest.side == Side.BUY.value:
            price = nearest.price + step
        else:
            price = nearest.price - step
        replacement = await self.place(furthest.side, price, furthest.amount)
        if replacement is not None:
            entries.append(replacement)
            ex.log.results(f"Replaced with: {furthest.side} {furthest.amount} at {replacement.price}")

        self.books[key] = sort_entries(entries)

    async def shuffle(self, key: str) -> None:
        """Move one order closer when the book has drifted beyond the starting spread."""
        gap = await self.midpoint_gap(key)
        if gap <= self.spreads[key]:
            return

        self.exchange.log.results(f"Auto balance: adjusting {self.books[key][0].side} orders, gap {gap}")
        await self.move_furthest_inside(key)

    async def track(self, key: str) -> None:
        """Follow the midpoint while it stays within the tracking ceiling."""
        gap = await self.midpoint_gap(key)
        step = self.steps[key]
        if step > 0 and step < gap < self.track_ceiling:
            self.exchange.log.results(f"Track: gap {gap} > step {step}, adjusting {self.books[key][0].side} orders")
            await self.move_furthest_inside(key)

    # --------------------------------------------------------
    # CANCELLATION / RESULTS
    # --------------------------------------------------------

    async def on_cancelled(self) -> None:
        ex = self.exchange
        ex.log.progress("Ping Pong order cancelled - stopping")

        for key in (PING, PONG):
            orders = [entry.order for entry in self.books[key]]
            if orders:
                await self.api.cancel_orders(orders)
                for order in orders:
                    ex.remove_from_session(self.session, order)
            self.books[key] = []

    def results(self) -> Dict[str, List[OrderResult]]:
        return {"pings": list(self.pings), "pongs": list(self.pongs)}
