"""
Exchange Engine - API Driver Base.

============================================================
PURPOSE
============================================================
Abstract interface every venue integration implements.

DESIGN PRINCIPLES:
- Exchange-agnostic: the orchestrator only ever holds an ApiDriver
- Every operation is async
- Missing capabilities raise DriverNotImplementedError
- Results are canonical Orders / Tickers / WalletBalances

CONTRACT NOTES:
- cancel_orders attempts every order, even if some fail
- order() may degrade to a best-effort Order built from the
  local reference (not open, not filled) instead of raising
- update_order_price returns a new Order (id may be unchanged)
- add_symbol is called once per symbol before first use and is
  safe to call again

============================================================
"""

import logging
from abc import ABC
from typing import List, Optional

from ..errors import DriverNotImplementedError
from ..symbol_data import SymbolInfo
from ..types import Order, Ticker, WalletBalance


logger = logging.getLogger(__name__)


class ApiDriver(ABC):
    """
    Venue driver interface.

    Concrete drivers override what the venue supports; the defaults
    raise DriverNotImplementedError (lifecycle hooks are no-ops).
    """

    name: str = "none"

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def init(self) -> None:
        """Called once after creation (open sessions, sockets...)."""
        pass

    async def terminate(self) -> None:
        """Called before the driver is discarded."""
        pass

    async def add_symbol(self, symbol: str) -> Optional[SymbolInfo]:
        """
        Validate a symbol and fetch its metadata.

        Returns:
            SymbolInfo, or None when the venue offered none
            (unknown symbols are logged, not raised)
        """
        return None

    # --------------------------------------------------------
    # MARKET DATA / ACCOUNT
    # --------------------------------------------------------

    async def ticker(self, symbol: str) -> Ticker:
        raise DriverNotImplementedError("ticker", self.name)

    async def wallet_balances(self) -> List[WalletBalance]:
        raise DriverNotImplementedError("wallet_balances", self.name)

    # --------------------------------------------------------
    # ORDERS
    # --------------------------------------------------------

    async def limit_order(self, symbol, amount, price, side, post_only, reduce_only) -> Order:
        raise DriverNotImplementedError("limit_order", self.name)

    async def market_order(self, symbol, amount, side, is_everything) -> Order:
        raise DriverNotImplementedError("market_order", self.name)

    async def stop_order(self, symbol, amount, price, side, trigger) -> Order:
        raise DriverNotImplementedError("stop_order", self.name)

    async def active_orders(self, symbol: str, side: str) -> List[Order]:
        raise DriverNotImplementedError("active_orders", self.name)

    async def cancel_orders(self, orders: List[Order]) -> None:
        raise DriverNotImplementedError("cancel_orders", self.name)

    async def order(self, order: Order) -> Order:
        raise DriverNotImplementedError("order", self.name)

    async def update_order_price(self, order: Order, price) -> Order:
        raise DriverNotImplementedError("update_order_price", self.name)
