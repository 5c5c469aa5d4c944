"""
Exchange Engine - Mock Driver.

============================================================
PURPOSE
============================================================
In-memory venue for tests and dry runs.

FEATURES:
- Configurable ticker and balances
- Configurable fill behavior (immediate market fills, manual
  fills for limit orders)
- Error injection per operation and per order cancel
- Full call log for assertions

============================================================
"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set, Tuple

from ..errors import TerminalVenueError
from ..symbol_data import SymbolInfo
from ..types import Order, SideFilter, Ticker, WalletBalance
from ..utils import ZERO, to_decimal
from .base import ApiDriver


logger = logging.getLogger(__name__)


# ============================================================
# MOCK CONFIGURATION
# ============================================================

@dataclass
class MockConfig:
    """Configuration for the mock driver."""

    bid: Decimal = Decimal("3000")
    ask: Decimal = Decimal("3050")
    last_price: Decimal = Decimal("3025")

    balances: List[WalletBalance] = field(default_factory=list)
    """Wallet balances returned by wallet_balances()."""

    symbols: Dict[str, SymbolInfo] = field(default_factory=dict)
    """Symbols add_symbol() knows about (lower-case keys)."""

    immediate_market_fill: bool = True
    """Market orders come back filled."""


# ============================================================
# MOCK DRIVER
# ============================================================

class MockDriver(ApiDriver):
    """
    Mock venue driver.

    Limit and stop orders rest until `fill_order` or
    `cancel_orders` is called.
    """

    name = "mock"

    def __init__(self, config: Optional[MockConfig] = None):
        self._config = config or MockConfig()
        self._ticker = Ticker(self._config.bid, self._config.ask, self._config.last_price)
        self._balances = list(self._config.balances)
        self._orders: Dict[str, Order] = {}
        self._errors: Dict[str, Exception] = {}
        self._cancel_failures: Set[str] = set()
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.initialized = False
        self.terminated = False

    # --------------------------------------------------------
    # TEST CONTROLS
    # --------------------------------------------------------

    def set_ticker(self, bid: Any, ask: Any, last_price: Any = None) -> None:
        bid, ask = to_decimal(bid), to_decimal(ask)
        last = to_decimal(last_price) if last_price is not None else (bid + ask) / 2
        self._ticker = Ticker(bid, ask, last)

    def set_balances(self, balances: List[WalletBalance]) -> None:
        self._balances = list(balances)

    def fail_next(self, operation: str, error: Exception) -> None:
        """Make the next call to `operation` raise `error`."""
        self._errors[operation] = error

    def fail_cancel(self, order_id: str) -> None:
        """Make cancelling this order id fail."""
        self._cancel_failures.add(order_id)

    def fill_order(self, order_id: str, executed: Any = None) -> Order:
        """Fill a resting order (fully unless `executed` is given)."""
        order = self._orders[order_id]
        executed = order.amount if executed is None else to_decimal(executed)
        filled = Order.build(order.id, order.side, order.amount, executed, is_open=executed < order.amount, **order.extra)
        self._orders[order_id] = filled
        return filled

    def get(self, order_id: str) -> Order:
        return self._orders[order_id]

    @property
    def orders(self) -> List[Order]:
        return list(self._orders.values())

    @property
    def open_orders(self) -> List[Order]:
        return [o for o in self._orders.values() if o.is_open]

    def calls_to(self, operation: str) -> List[Tuple[Any, ...]]:
        return [args for name, args in self.calls if name == operation]

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        error = self._errors.pop(operation, None)
        if error is not None:
            raise error

    def _store(self, side: str, amount: Any, executed: Any, is_open: bool, **extra: Any) -> Order:
        order = Order.build(uuid.uuid4().hex, side, amount, executed, is_open, **extra)
        self._orders[order.id] = order
        return order

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def init(self) -> None:
        self._record("init")
        self.initialized = True

    async def terminate(self) -> None:
        self._record("terminate")
        self.terminated = True

    async def add_symbol(self, symbol: str) -> Optional[SymbolInfo]:
        self._record("add_symbol", symbol)
        info = self._config.symbols.get(symbol.lower())
        if info is None:
            logger.error(f"Symbol {symbol} not known to the mock venue.")
        return info

    # --------------------------------------------------------
    # MARKET DATA / ACCOUNT
    # --------------------------------------------------------

    async def ticker(self, symbol: str) -> Ticker:
        self._record("ticker", symbol)
        return self._ticker

    async def wallet_balances(self) -> List[WalletBalance]:
        self._record("wallet_balances")
        return list(self._balances)

    # --------------------------------------------------------
    # ORDERS
    # --------------------------------------------------------

    async def limit_order(self, symbol, amount, price, side, post_only, reduce_only) -> Order:
        self._record("limit_order", symbol, amount, price, side, post_only, reduce_only)
        return self._store(side, amount, ZERO, True, type="limit", price=price, symbol=symbol)

    async def market_order(self, symbol, amount, side, is_everything) -> Order:
        self._record("market_order", symbol, amount, side, is_everything)
        filled = self._config.immediate_market_fill
        return self._store(side, amount, amount if filled else ZERO, not filled, type="market", symbol=symbol)

    async def stop_order(self, symbol, amount, price, side, trigger) -> Order:
        self._record("stop_order", symbol, amount, price, side, trigger)
        return self._store(side, amount, ZERO, True, type="stop_market", price=price, symbol=symbol, trigger=trigger)

    async def active_orders(self, symbol: str, side: str) -> List[Order]:
        self._record("active_orders", symbol, side)
        return [
            o for o in self.open_orders
            if o.extra.get("symbol") == symbol and (side not in (SideFilter.BUY.value, SideFilter.SELL.value) or o.side == side)
        ]

    async def cancel_orders(self, orders: List[Order]) -> None:
        self._record("cancel_orders", [o.id for o in orders])
        for order in orders:
            self.calls.append(("cancel_order", (order.id,)))
            if order.id in self._cancel_failures:
                logger.warning(f"Failed to cancel mock order {order.id}")
                continue

            current = self._orders.get(order.id)
            if current is not None:
                self._orders[order.id] = Order.build(
                    current.id, current.side, current.amount, current.executed, False, **current.extra
                )

    async def order(self, order: Order) -> Order:
        self._record("order", order.id)
        current = self._orders.get(order.id)
        if current is None:
            return Order.build(order.id, order.side, order.amount, executed=0, is_open=False)
        return current

    async def update_order_price(self, order: Order, price) -> Order:
        self._record("update_order_price", order.id, price)
        current = self._orders.get(order.id)
        if current is None:
            raise TerminalVenueError(f"Unknown order {order.id}")
        extra = dict(current.extra, price=price)
        updated = Order.build(current.id, current.side, current.amount, current.executed, current.is_open, **extra)
        self._orders[order.id] = updated
        return updated
