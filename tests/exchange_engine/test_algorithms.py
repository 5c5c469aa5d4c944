"""
Tests for the algorithmic order commands.

============================================================
PURPOSE
============================================================
Verify ladders (scaledOrder) and two-sided market making
(pingPongOrder) against the mock venue.

TEST CATEGORIES:
1. Ladder generation (amounts, prices, easing)
2. scaledOrder command
3. pingPongOrder placement and fills
4. pingPongOrder auto balancing
5. pingPongOrder cancellation and completion

============================================================
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from exchange_engine.clock import MockClock
from exchange_engine.commands.ping_pong import entry_step, sort_entries
from exchange_engine.commands.scaled import register_easing, scaled_amounts, scaled_prices
from exchange_engine.config import EngineConfig
from exchange_engine.drivers import MockDriver
from exchange_engine.drivers.mock import MockConfig
from exchange_engine.errors import TerminalVenueError
from exchange_engine.exchange import Exchange
from exchange_engine.types import Order, OrderResult, TaskState, WalletBalance, command_args
from exchange_engine.utils import round_value


NOON = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
SYMBOL = "BTCUSD"


def make_exchange(config=None):
    driver = MockDriver(MockConfig(
        bid=Decimal("3000"),
        ask=Decimal("3050"),
        balances=[
            WalletBalance("btc", Decimal("10"), Decimal("10")),
            WalletBalance("usd", Decimal("50000"), Decimal("50000")),
        ],
    ))
    return Exchange(driver, clock=MockClock(NOON), config=config)


def round4(value):
    return round_value(value, 4)


def same(value):
    return value


# ============================================================
# LADDER GENERATION
# ============================================================

class TestScaledAmounts:
    """Tests for scaled_amounts."""

    def test_even_split(self):
        """Test an even split adds up exactly."""
        assert scaled_amounts(4, Decimal("1"), Decimal("0"), round4) == [Decimal("0.25")] * 4

    def test_last_rung_absorbs_rounding(self):
        """Test the last amount takes the rounding remainder."""
        amounts = scaled_amounts(3, Decimal("1"), Decimal("0"), round4)
        assert amounts == [Decimal("0.3333"), Decimal("0.3333"), Decimal("0.3334")]

    def test_varied_amounts_keep_total(self):
        """Test randomly varied amounts still add up."""
        amounts = scaled_amounts(10, Decimal("2"), Decimal("0.3"), round4)

        assert len(amounts) == 10
        assert sum(amounts) == Decimal("2")
        assert all(amount > 0 for amount in amounts)

    def test_no_rungs(self):
        """Test a zero count gives nothing."""
        assert scaled_amounts(0, Decimal("1"), Decimal("0"), round4) == []


class TestScaledPrices:
    """Tests for scaled_prices and easing."""

    def test_linear(self):
        """Test linear spacing includes both ends."""
        prices = scaled_prices(5, Decimal("100"), Decimal("200"), Decimal("0"), "linear", same)
        assert prices == [Decimal(p) for p in ("100", "125", "150", "175", "200")]

    def test_ease_in(self):
        """Test quadratic ease-in bunches rungs near the start."""
        prices = scaled_prices(5, Decimal("100"), Decimal("200"), Decimal("0"), "easeIn", same)
        assert prices == [Decimal(p) for p in ("100", "106.25", "125", "156.25", "200")]

    def test_unknown_easing_is_linear(self):
        """Test unknown curve names fall back to linear."""
        prices = scaled_prices(3, Decimal("100"), Decimal("200"), Decimal("0"), "wobble", same)
        assert prices == [Decimal("100"), Decimal("150"), Decimal("200")]

    def test_registered_easing(self):
        """Test custom curves can be registered."""
        register_easing("cubic", lambda t: t * t * t)

        prices = scaled_prices(3, Decimal("100"), Decimal("200"), Decimal("0"), "Cubic", same)

        assert prices == [Decimal("100"), Decimal("112.5"), Decimal("200")]

    def test_varied_prices_stay_in_range(self):
        """Test random variation never leaves [from, to]."""
        for easing in ("linear", "easeIn", "easeOut", "easeInOut"):
            prices = scaled_prices(20, Decimal("3000"), Decimal("2900"), Decimal("0.9"), easing, same)
            assert all(Decimal("2900") <= p <= Decimal("3000") for p in prices)

    def test_single_rung(self):
        """Test one rung sits at the start price."""
        assert scaled_prices(1, Decimal("100"), Decimal("200"), Decimal("0"), "linear", same) == [Decimal("100")]


# ============================================================
# SCALED ORDER
# ============================================================

class TestScaledOrder:
    """Tests for the scaledOrder command."""

    @pytest.mark.asyncio
    async def test_buy_ladder(self):
        """Test a buy ladder spans the range, furthest first, and adds up."""
        ex = make_exchange()

        results = await ex.execute_command(
            SYMBOL, "scaledOrder",
            command_args(**{"from": "0", "to": "100", "orderCount": "10", "amount": "1", "side": "buy"}),
            "s1",
        )

        assert len(results) == 10
        assert all(r.order is not None for r in results)
        assert sum(r.amount for r in results) == Decimal("1")
        assert results[0].price == Decimal("2900")
        assert results[-1].price == Decimal("3000")
        assert all(Decimal("2900") <= r.price <= Decimal("3000") for r in results)
        assert len(ex.api.calls_to("limit_order")) == 10
        assert len(ex.find_in_session("s1")) == 10

    @pytest.mark.asyncio
    async def test_sell_ladder(self):
        """Test a sell ladder runs from highest to lowest."""
        ex = make_exchange()

        results = await ex.execute_command(
            SYMBOL, "scaled",
            command_args(**{"from": "0", "to": "100", "orderCount": "5", "amount": "1", "side": "sell"}),
        )

        assert [r.price for r in results] == [Decimal(p) for p in ("3150", "3125", "3100", "3075", "3050")]
        assert all(r.side == "sell" for r in results)

    @pytest.mark.asyncio
    async def test_varied_ladder(self):
        """Test varied amounts and prices keep the total and bounds."""
        ex = make_exchange()

        results = await ex.execute_command(
            SYMBOL, "scaled",
            command_args(**{
                "from": "0", "to": "100", "orderCount": "8", "amount": "2",
                "side": "buy", "varyAmount": "20%", "varyPrice": "0.5", "easing": "easeOut",
            }),
        )

        assert sum(r.amount for r in results) == Decimal("2")
        assert all(Decimal("2900") <= r.price <= Decimal("3000") for r in results)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overrides", [
        {"orderCount": "0"},
        {"amount": "0"},
        {"amount": "0.0005"},
        {"to": "3500"},
    ])
    async def test_nothing_placed(self, overrides):
        """Test empty counts, sizes below the minimum and negative prices place nothing."""
        ex = make_exchange()
        args = dict({"from": "0", "to": "100", "orderCount": "10", "amount": "1", "side": "buy"}, **overrides)

        results = await ex.execute_command(SYMBOL, "scaled", command_args(**args))

        assert results == []
        assert ex.api.calls_to("limit_order") == []

    @pytest.mark.asyncio
    async def test_order_count_is_capped(self):
        """Test the rung count never exceeds the ladder maximum."""
        ex = make_exchange(EngineConfig(max_ladder_orders=20))

        results = await ex.execute_command(
            SYMBOL, "scaled",
            command_args(**{"from": "0", "to": "100", "orderCount": "150", "amount": "1", "side": "buy"}),
        )

        assert len(results) == 20

    @pytest.mark.asyncio
    async def test_failed_rung_continues(self):
        """Test one rejected rung does not stop the ladder."""
        ex = make_exchange()
        ex.api.fail_next("limit_order", TerminalVenueError("post only rejected", status=400))

        results = await ex.execute_command(
            SYMBOL, "scaled",
            command_args(**{"from": "0", "to": "100", "orderCount": "5", "amount": "1", "side": "buy"}),
        )

        assert len(results) == 5
        assert results[0].order is None
        assert results[0].price == Decimal("2900")
        assert all(r.order is not None for r in results[1:])
        assert len(ex.api.calls_to("limit_order")) == 5

    @pytest.mark.asyncio
    async def test_target_position(self):
        """Test a ladder towards a target position."""
        ex = make_exchange()

        results = await ex.execute_command(
            SYMBOL, "scaled",
            command_args(**{"from": "0", "to": "100", "orderCount": "4", "position": "8"}),
        )

        assert all(r.side == "sell" for r in results)
        assert sum(r.amount for r in results) == Decimal("2")


# ============================================================
# PING PONG
# ============================================================

PING_PONG_ARGS = {
    "side": "buy",
    "pingFrom": "0",
    "pingTo": "40",
    "pongFrom": "0",
    "pongTo": "40",
    "orderCount": "5",
    "pingAmount": "1",
    "pongAmount": "1",
}


async def start_ping_pong(ex, session="s1", **overrides):
    args = dict(PING_PONG_ARGS, **overrides)
    results = await ex.execute_command(SYMBOL, "pingPongOrder", command_args(**args), session)
    task = ex.scheduler.tasks[0].task if ex.scheduler.tasks else None
    return results, task


def prices(entries):
    return [entry.price for entry in entries]


class TestPingPongHelpers:
    """Tests for ladder bookkeeping helpers."""

    @staticmethod
    def entry(side, price):
        return OrderResult(order=Order.build(price, side, 1, 0, True), side=side, price=Decimal(price))

    def test_sort_entries(self):
        """Test buys sort descending, sells ascending, failures dropped."""
        buys = [self.entry("buy", "2900"), self.entry("buy", "3000"), OrderResult(order=None, side="buy", price=Decimal("2950"))]
        sells = [self.entry("sell", "3100"), self.entry("sell", "3050")]

        assert prices(sort_entries(buys)) == [Decimal("3000"), Decimal("2900")]
        assert prices(sort_entries(sells)) == [Decimal("3050"), Decimal("3100")]
        assert sort_entries([]) == []

    def test_entry_step(self):
        """Test the step is the average spacing."""
        entries = [self.entry("buy", p) for p in ("3000", "2990", "2960")]
        assert entry_step(entries, Decimal("0")) == Decimal("20")
        assert entry_step(entries[:1], Decimal("7")) == Decimal("7")


class TestPingPongOrder:
    """Tests for the pingPongOrder command."""

    @pytest.mark.asyncio
    async def test_initial_ladders(self):
        """Test both ladders are placed and the task goes to the background."""
        ex = make_exchange()

        results, task = await start_ping_pong(ex)

        assert prices(results["pings"]) == [Decimal(p) for p in ("3000", "2990", "2980", "2970", "2960")]
        assert prices(results["pongs"]) == [Decimal(p) for p in ("3050", "3060", "3070", "3080", "3090")]
        assert task.steps == {"ping": Decimal("10"), "pong": Decimal("10")}
        assert task.spreads == {"ping": Decimal("25"), "pong": Decimal("25")}
        assert len(ex.algo_orders) == 1
        assert ex.scheduler.tasks[0].state is TaskState.KEEP_GOING

    @pytest.mark.asyncio
    async def test_invalid_side(self):
        """Test a bad side places nothing and registers nothing."""
        ex = make_exchange()

        results, task = await start_ping_pong(ex, side="hold")

        assert results is None
        assert task is None
        assert len(ex.algo_orders) == 0
        assert ex.api.calls_to("limit_order") == []

    @pytest.mark.asyncio
    async def test_side_is_case_insensitive_for_cancellation(self):
        """Test an upper-case side still matches the buy selector."""
        ex = make_exchange()

        _, task = await start_ping_pong(ex, side="BUY")

        assert task.args["side"] == "buy"
        assert ex.cancel_algorithmic_orders("sell") == 0
        assert ex.cancel_algorithmic_orders("buy") == 1
        assert ex.is_algo_order_cancelled(task.id)

    @pytest.mark.asyncio
    async def test_ticker_failure_places_nothing(self):
        """Test a failed ticker lookup stops before any rung is placed."""
        ex = make_exchange()
        ex.api.fail_next("ticker", TerminalVenueError("unavailable", status=400))

        results, task = await start_ping_pong(ex)

        assert results is None
        assert task is None
        assert ex.api.calls_to("limit_order") == []
        assert len(ex.algo_orders) == 0

    @pytest.mark.asyncio
    async def test_ping_fill_is_replaced_beyond_furthest(self):
        """Test a filled ping is replaced one step past the furthest ping."""
        ex = make_exchange()
        _, task = await start_ping_pong(ex)
        ex.api.fill_order(task.pings[0].order.id)

        state = await task.background_execute()

        assert state is TaskState.ACTIVE
        assert prices(task.pings) == [Decimal(p) for p in ("2990", "2980", "2970", "2960", "2950")]
        assert ex.api.calls_to("limit_order")[-1] == (SYMBOL, Decimal("0.2"), Decimal("2950"), "buy", True, False)
        assert task.fills == 1

    @pytest.mark.asyncio
    async def test_single_rung_replacement_moves_away(self):
        """Test a one-rung ladder re-quotes at a new price, not the filled one."""
        ex = make_exchange()
        _, task = await start_ping_pong(ex, orderCount="1")
        filled = task.pings[0]
        ex.api.fill_order(filled.order.id)

        await task.background_execute()

        assert task.steps["ping"] > 0
        assert task.steps["ping"] == task.spreads["ping"]
        assert prices(task.pings) == [filled.price - task.steps["ping"]]
        assert prices(task.pings)[0] != filled.price

    @pytest.mark.asyncio
    async def test_explicit_ping_step(self):
        """Test pingStep overrides the ladder spacing."""
        ex = make_exchange()
        _, task = await start_ping_pong(ex, pingStep="15")
        ex.api.fill_order(task.pings[0].order.id)

        await task.background_execute()

        assert task.steps == {"ping": Decimal("15"), "pong": Decimal("10")}
        assert prices(task.pings)[-1] == Decimal("2945")

    @pytest.mark.asyncio
    async def test_quiet_poll(self):
        """Test nothing happens while no order has moved."""
        ex = make_exchange()
        _, task = await start_ping_pong(ex)
        placed = len(ex.api.calls_to("limit_order"))

        assert await task.background_execute() is TaskState.KEEP_GOING
        assert len(ex.api.calls_to("limit_order")) == placed

    @pytest.mark.asyncio
    async def test_pongs_only_checked_when_endless(self):
        """Test pong fills are handled in endless mode only."""
        ex = make_exchange()
        _, task = await start_ping_pong(ex, endless="true")
        ex.api.fill_order(task.pongs[0].order.id)

        assert await task.background_execute() is TaskState.ACTIVE
        assert prices(task.pongs) == [Decimal(p) for p in ("3060", "3070", "3080", "3090", "3100")]

        ex = make_exchange()
        _, task = await start_ping_pong(ex)
        ex.api.fill_order(task.pongs[0].order.id)

        assert await task.background_execute() is TaskState.KEEP_GOING
        assert prices(task.pongs)[0] == Decimal("3050")

    @pytest.mark.asyncio
    async def test_track_follows_midpoint(self):
        """Test track mode moves the furthest order inside the nearest."""
        ex = make_exchange()
        _, task = await start_ping_pong(ex, autoBalance="track")
        furthest = task.pings[-1].order
        ex.api.set_ticker("3040", "3060")

        state = await task.background_execute()

        assert state is TaskState.KEEP_GOING
        assert prices(task.pings) == [Decimal(p) for p in ("3010", "3000", "2990", "2980", "2970")]
        assert not ex.api.get(furthest.id).is_open
        assert prices(task.pongs)[0] == Decimal("3050")

    @pytest.mark.asyncio
    async def test_track_ceiling(self):
        """Test track mode ignores moves beyond the ceiling."""
        ex = make_exchange()
        _, task = await start_ping_pong(ex, autoBalance="track")
        ex.api.set_ticker("3200", "3250")

        await task.background_execute()

        assert ex.api.calls_to("cancel_orders") == []
        assert prices(task.pings)[0] == Decimal("3000")

    @pytest.mark.asyncio
    async def test_shuffle_when_one_side_empty(self):
        """Test shuffle moves an order in once the interval has passed."""
        ex = make_exchange()
        _, task = await start_ping_pong(ex, pongAmount="0", autoBalance="shuffle", autoBalanceEvery="1m")
        assert task.pongs == []

        # too early
        ex.api.set_ticker("3100", "3150")
        await task.background_execute()
        assert prices(task.pings)[0] == Decimal("3000")

        ex.clock.advance(61)
        await task.background_execute()
        assert prices(task.pings) == [Decimal(p) for p in ("3010", "3000", "2990", "2980", "2970")]

    @pytest.mark.asyncio
    async def test_shuffle_within_spread(self):
        """Test shuffle leaves the book alone inside the starting spread."""
        ex = make_exchange()
        _, task = await start_ping_pong(ex, pongAmount="0", autoBalance="shuffle", autoBalanceEvery="1m")

        ex.clock.advance(61)
        await task.background_execute()

        assert ex.api.calls_to("cancel_orders") == []

    @pytest.mark.asyncio
    async def test_cancel_stops_and_cleans_up(self):
        """Test cancelling flags the task, which cancels its orders and ends."""
        ex = make_exchange()
        _, task = await start_ping_pong(ex)

        await ex.execute_command(SYMBOL, "cancel", command_args(which="all"), "s1")
        await ex.wait_for_background_tasks()

        assert ex.api.open_orders == []
        assert ex.scheduler.tasks == []
        assert len(ex.algo_orders) == 0
        assert task.results() == {"pings": [], "pongs": []}
        assert ex.find_in_session("s1") == []

    @pytest.mark.asyncio
    async def test_on_cancelled_cancels_both_sides(self):
        """Test on_cancelled cancels every standing order."""
        ex = make_exchange()
        _, task = await start_ping_pong(ex)
        ids = [entry.order.id for entry in task.pings + task.pongs]

        ex.cancel_algorithmic_orders("session", session="s1")
        await ex.wait_for_background_tasks()

        cancelled = [args[0] for args in ex.api.calls_to("cancel_order")]
        assert sorted(cancelled) == sorted(ids)
        assert ex.api.open_orders == []

    @pytest.mark.asyncio
    async def test_finishes_when_pings_are_gone(self):
        """Test pings closed elsewhere are discarded until none remain."""
        ex = make_exchange()
        _, task = await start_ping_pong(ex)
        await ex.api.cancel_orders([entry.order for entry in task.pings])

        await ex.wait_for_background_tasks()

        assert task.pings == []
        assert len(task.pongs) == 5
        assert ex.scheduler.tasks == []
        assert len(ex.algo_orders) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
