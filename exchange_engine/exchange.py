"""
Exchange Engine - Exchange Orchestrator.

============================================================
PURPOSE
============================================================
One connection to one venue, shared by any number of sessions.

RESPONSIBILITIES:
- Dispatch named commands (case-insensitive allow-list)
- Run state-machine commands, handing unfinished ones to the
  background scheduler
- Own the session order book and the algo order registry
- Turn amounts, positions and offsets into concrete sizes and
  prices for the venue

ERROR POLICY:
- AbortSequenceError escapes execute_command
- Every other command failure is logged and returns None

============================================================
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .clock import ClockProtocol, get_clock
from .commands.base import CommandContext, ExchangeCommand
from .commands.registry import CommandKind, find_command
from .config import EngineConfig
from .drivers.base import ApiDriver
from .errors import AbortSequenceError, UnknownCommandError
from .logging_utils import get_progress_log
from .registry import AlgoOrderRegistry, SessionOrderBook
from .scheduler import BackgroundScheduler
from .sizing import Quantity, parse_absolute_price, parse_quantity, parse_side, split_symbol
from .symbol_data import SymbolData
from .types import (
    CommandArg,
    Order,
    OrderSizeDetails,
    Side,
    TaskState,
    Ticker,
    WalletBalance,
)
from .utils import ZERO, round_down, round_value, to_decimal


logger = logging.getLogger(__name__)


class Exchange:
    """
    Orchestrator for one venue connection.

    Holds an ApiDriver, never a concrete venue type.
    """

    def __init__(
        self,
        driver: ApiDriver,
        credentials: Optional[Dict[str, Any]] = None,
        config: Optional[EngineConfig] = None,
        clock: Optional[ClockProtocol] = None,
        name: Optional[str] = None,
    ):
        self.api = driver
        self.name = name or driver.name
        self.credentials = credentials or {}
        self.ref_count = 1

        self._config = config or EngineConfig()
        self.clock = clock or get_clock()
        self.log = get_progress_log()

        self.symbol_data = SymbolData(self._config.symbol_defaults)
        self.session_orders = SessionOrderBook()
        self.algo_orders = AlgoOrderRegistry()
        self.scheduler = BackgroundScheduler(self.algo_orders, self._config.polling, self.clock)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def min_polling_delay(self) -> int:
        return self._config.polling.min_polling_delay

    @property
    def max_polling_delay(self) -> int:
        return self._config.polling.max_polling_delay

    # --------------------------------------------------------
    # CONNECTION SHARING
    # --------------------------------------------------------

    def add_reference(self) -> None:
        self.ref_count += 1

    def remove_reference(self) -> int:
        self.ref_count -= 1
        return self.ref_count

    def matches(self, credentials: Dict[str, Any]) -> bool:
        """True if this connection was opened with the same credentials."""
        return credentials == self.credentials

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def init(self) -> None:
        await self.api.init()

    async def terminate(self) -> None:
        self.log.progress(f"{self.name} exchange closing down")
        await self.api.terminate()

    async def add_symbol(self, symbol: str) -> None:
        """Ask the driver about a symbol and remember its metadata."""
        info = await self.api.add_symbol(symbol)
        if info is not None:
            self.symbol_data.update(symbol, info)

    # --------------------------------------------------------
    # ROUNDING
    # --------------------------------------------------------

    def round_price(self, symbol: str, price: Any) -> Decimal:
        """Round a price (in currency units) down to the symbol's precision."""
        return round_down(price, self.symbol_data.price_precision(symbol))

    def round_asset(self, symbol: str, assets: Any) -> Decimal:
        """Round an amount of the asset to the symbol's precision."""
        return round_value(assets, self.symbol_data.asset_precision(symbol))

    # --------------------------------------------------------
    # SESSION ORDERS
    # --------------------------------------------------------

    def add_to_session(self, session: str, tag: str, order: Order) -> None:
        self.session_orders.add(session, tag, order)

    def remove_from_session(self, session: str, order: Order) -> None:
        self.session_orders.remove(session, order)

    def update_in_session(self, session: str, tag: str, old_order: Order, new_order: Order) -> None:
        self.session_orders.update(session, tag, old_order, new_order)

    def find_in_session(self, session: str, tag: Optional[str] = None) -> List[Order]:
        return self.session_orders.find(session, tag)

    # --------------------------------------------------------
    # ALGORITHMIC ORDERS
    # --------------------------------------------------------

    def start_algo_order(self, id: str, side: str, session: str, tag: str) -> None:
        self.algo_orders.start(id, side, session, tag)

    def end_algo_order(self, id: str) -> None:
        self.algo_orders.end(id)

    def is_algo_order_cancelled(self, id: str) -> bool:
        return self.algo_orders.is_cancelled(id)

    def cancel_algorithmic_orders(self, which: str, tag: Optional[str] = None, session: Optional[str] = None) -> int:
        return self.algo_orders.cancel(which, tag, session)

    # --------------------------------------------------------
    # MARKET DATA AND BALANCES
    # --------------------------------------------------------

    async def ticker(self, symbol: str) -> Ticker:
        ticker = await self.api.ticker(symbol)
        self.log.dim(ticker)
        return ticker

    async def wallet_balances(self) -> List[WalletBalance]:
        balances = await self.api.wallet_balances()
        self.log.dim(balances)
        return balances

    def balance_total_asset(self, symbol: str, balances: Iterable[WalletBalance], price: Any) -> Decimal:
        """Portfolio value, in the asset (currency converted at `price`)."""
        asset, currency = split_symbol(symbol)
        price = to_decimal(price)
        total = ZERO
        for item in balances:
            if item.currency == currency and price > 0:
                total += to_decimal(item.amount) / price
            elif item.currency == asset:
                total += to_decimal(item.amount)

        rounded = self.round_asset(symbol, total)
        self.log.results(f"Total @ {price}: {rounded} {asset}")
        return rounded

    def balance_total_fiat(self, symbol: str, balances: Iterable[WalletBalance], price: Any) -> Decimal:
        """Portfolio value, in the currency (asset converted at `price`)."""
        asset, currency = split_symbol(symbol)
        price = to_decimal(price)
        total = ZERO
        for item in balances:
            if item.currency == currency:
                total += to_decimal(item.amount)
            elif item.currency == asset:
                total += to_decimal(item.amount) * price

        rounded = self.round_price(symbol, total)
        self.log.results(f"Total @ {price}: {rounded} {currency}")
        return rounded

    def balance_available_asset(
        self,
        symbol: str,
        balances: Iterable[WalletBalance],
        price: Any,
        side: str,
    ) -> Decimal:
        """
        Tradeable balance on one side, in asset units.

        Buying spends the available currency (converted at `price`);
        selling spends the available asset.
        """
        asset, currency = split_symbol(symbol)
        price = to_decimal(price)
        spendable = ZERO
        for item in balances:
            if side == Side.BUY.value:
                if item.currency == currency and price > 0:
                    spendable += to_decimal(item.available) / price
            elif item.currency == asset:
                spendable += to_decimal(item.available)

        rounded = self.round_asset(symbol, spendable)
        self.log.results(f"Asset balance available @ {price}: {rounded}")
        return rounded

    def calc_order_size(
        self,
        symbol: str,
        side: str,
        amount: Quantity,
        balances: List[WalletBalance],
        price: Any,
    ) -> OrderSizeDetails:
        """
        Work out an order size from a requested amount.

        `%` is a percentage of the total portfolio, `%%` of what is
        available, and currency units are converted at `price`.
        The result is capped to what is available and zeroed when
        under the venue minimum.
        """
        _, currency = split_symbol(symbol)
        price = to_decimal(price)
        total = self.balance_total_asset(symbol, balances, price)
        available = self.balance_available_asset(symbol, balances, price, side)

        order_size = amount.value
        if amount.units == "%":
            order_size = total * (amount.value / 100)
        elif amount.units == "%%":
            order_size = available * (amount.value / 100)
        elif amount.units.lower() == currency:
            order_size = amount.value / price if price > 0 else ZERO

        raw_order_size = order_size
        order_size = min(order_size, available)

        min_order_size = self.symbol_data.min_order_size(symbol)
        if order_size < min_order_size:
            self.log.results(f"Order size {order_size} is below min order size of {min_order_size}")
            order_size = ZERO

        return OrderSizeDetails(
            total=total,
            available=available,
            is_all_available=order_size == available,
            raw_order_size=raw_order_size,
            order_size=self.round_asset(symbol, order_size),
        )

    async def order_size_from_amount(
        self,
        symbol: str,
        side: str,
        order_price: Any,
        amount: Union[str, Quantity],
    ) -> OrderSizeDetails:
        balances = await self.wallet_balances()
        if not isinstance(amount, Quantity):
            amount = parse_quantity(amount)
        return self.calc_order_size(symbol, side, amount, balances, order_price)

    async def offset_to_absolute_price(self, symbol: str, side: str, offset: str) -> Decimal:
        """
        Absolute order price for an offset.

        '@6250' is an absolute price. Otherwise buys sit below the
        bid and sells above the ask, by an amount or a percentage.
        """
        absolute = parse_absolute_price(offset)
        if absolute is not None:
            return self.round_price(symbol, absolute)

        ticker = await self.ticker(symbol)
        quantity = parse_quantity(offset)
        if side == Side.BUY.value:
            current = ticker.bid
            delta = current * (quantity.value / 100) if quantity.units == "%" else quantity.value
            return self.round_price(symbol, current - delta)

        current = ticker.ask
        delta = current * (quantity.value / 100) if quantity.units == "%" else quantity.value
        return self.round_price(symbol, current + delta)

    async def position_to_amount(self, symbol: str, position: str, side: str, amount: str) -> Tuple[str, Quantity]:
        """
        Side and amount needed to trade.

        With no target position the amount is used as given.
        Otherwise the change from the current asset holding to
        `position` decides both side and amount.
        """
        if position == "":
            return side, parse_quantity(amount)

        balances = await self.wallet_balances()
        asset, _ = split_symbol(symbol)
        total = sum((to_decimal(item.amount) for item in balances if item.currency == asset), ZERO)

        change = self.round_asset(symbol, to_decimal(position) - total)
        new_side = Side.SELL.value if change < 0 else Side.BUY.value
        return new_side, Quantity(abs(change), "")

    async def position_size(self, symbol: str) -> Decimal:
        """Signed position: positive long, negative short."""
        side, amount = await self.position_to_amount(symbol, "0", "", "")
        return -amount.value if side == Side.BUY.value else amount.value

    async def wait_seconds(self, delay: float) -> None:
        await self.scheduler.wait_seconds(delay)

    # --------------------------------------------------------
    # COMMAND DISPATCH
    # --------------------------------------------------------

    async def execute_command(
        self,
        symbol: str,
        name: str,
        args: List[CommandArg],
        session: str = "",
    ) -> Any:
        """
        Run a named command.

        Args:
            symbol: Symbol to trade
            name: Command name (case-insensitive)
            args: Invocation arguments
            session: Session issuing the command

        Returns:
            Command result, or None if the command failed

        Raises:
            AbortSequenceError: The enclosing sequence must stop
        """
        try:
            spec = find_command(name)
            if spec is None:
                logger.error(f"Unknown command: {name}")
                raise UnknownCommandError(name)

            context = CommandContext(exchange=self, symbol=symbol, session=session)
            if spec.kind is CommandKind.TASK:
                task = spec.factory(context)
                await task.setup(args)
                return await self.add_task(task)

            return await spec.handler(context, args)

        except AbortSequenceError:
            logger.error(f"{name} FAILED. Stopping all command execution")
            raise
        except Exception as e:
            logger.error(f"{name} FAILED: {e}")
            return None

    async def add_task(self, task: ExchangeCommand) -> Any:
        """
        Start a state-machine command.

        Finished commands return their results straight away;
        others are registered as algo orders and background tasks
        and return what they have achieved so far.
        """
        state = await task.execute()
        if state is TaskState.FINISHED:
            return task.results()

        side = parse_side(task.args.get("side", "")) if task.has_arg("side") else None
        self.start_algo_order(task.id, side or Side.BUY.value, task.session, task.args.get("tag", ""))
        self.scheduler.add(task, state)
        return task.results()

    async def wait_for_background_tasks(self) -> None:
        """Poll background tasks until they have all finished."""
        await self.scheduler.run()
