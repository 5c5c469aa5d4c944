"""
Exchange Engine - Coinbase Driver.

============================================================
PURPOSE
============================================================
Driver for the Coinbase Exchange REST API (spot).

SAFETY FEATURES:
- Fixed-cadence rate limiting (250 ms between calls)
- CB-ACCESS-* HMAC signing on every private call
- Order lookups degrade to a closed, unfilled order instead
  of failing callers that poll a cancelled order

VENUE NOTES:
- No in-place edit: price updates cancel and re-place
- Stops are market orders with stop=loss (sell) or entry (buy)

============================================================
"""

import json
import logging
from typing import Any, Dict, List, Optional

from ..clock import ClockProtocol
from ..config import DriverConfig
from ..errors import ExchangeEngineError, VenueError, venue_error_for_status
from ..symbol_data import SymbolInfo
from ..types import Order, SideFilter, Ticker, WalletBalance
from ..utils import to_decimal
from .http import HttpApiDriver
from .normalize import coinbase_balances, coinbase_order, coinbase_ticker
from .rate_limit import FixedCadenceRateLimiter
from .signing import coinbase_signature


logger = logging.getLogger(__name__)


def _decimal_places(increment: Any, default: int) -> int:
    value = to_decimal(increment, None)
    if value is None or value <= 0:
        return default
    return max(0, -value.normalize().as_tuple().exponent)


class CoinbaseDriver(HttpApiDriver):
    """Coinbase Exchange REST driver."""

    name = "coinbase"
    default_base_url = "https://api.exchange.coinbase.com"
    testnet_base_url = "https://api-public.sandbox.exchange.coinbase.com"

    def __init__(self, config: DriverConfig, clock: Optional[ClockProtocol] = None):
        super().__init__(config, clock)
        self._limiter = FixedCadenceRateLimiter(config.rate_limit, self._clock)

    @property
    def limiter(self) -> FixedCadenceRateLimiter:
        return self._limiter

    # --------------------------------------------------------
    # REQUESTS
    # --------------------------------------------------------

    def _auth_headers(self, method: str, path: str, body: str) -> Dict[str, str]:
        if not self._config.api_key or not self._config.api_secret:
            return {}

        timestamp = str(int(self._clock.timestamp()))
        return {
            "CB-ACCESS-KEY": self._config.api_key,
            "CB-ACCESS-SIGN": coinbase_signature(self._config.api_secret, timestamp, method, path, body),
            "CB-ACCESS-TIMESTAMP": timestamp,
            "CB-ACCESS-PASSPHRASE": self._config.passphrase or "",
        }

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Make one rate-limited, signed request.

        Args:
            method: HTTP method
            path: Path including any query string
            params: Query parameters (appended to the path before signing)
            body: JSON body

        Returns:
            Decoded JSON response
        """
        await self._limiter.acquire()

        if params:
            query = "&".join(f"{k}={v}" for k, v in params.items())
            path = f"{path}?{query}"

        text_body = json.dumps(body) if body is not None else ""
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        headers.update(self._auth_headers(method, path, text_body))

        status, text = await self._send(
            method,
            f"{self._base_url}{path}",
            headers=headers,
            data=text_body or None,
        )

        if status < 200 or status >= 300:
            logger.error(f"Error calling Coinbase API. Status Code: {status}, body: {text}")
            raise venue_error_for_status(status, text)

        try:
            return json.loads(text)
        except ValueError:
            return {"message": text}

    # --------------------------------------------------------
    # SYMBOLS / MARKET DATA
    # --------------------------------------------------------

    async def add_symbol(self, symbol: str) -> Optional[SymbolInfo]:
        products = await self._request("GET", "/products")
        match = next((p for p in products if str(p.get("id", "")).lower() == symbol.lower()), None)
        if match is None:
            logger.error(f"Symbol {symbol} not accessible on Coinbase.")
            return None

        return SymbolInfo(
            min_order_size=to_decimal(match.get("base_min_size"), to_decimal("0.0001")),
            asset_precision=_decimal_places(match.get("base_increment"), 8),
            price_precision=_decimal_places(match.get("quote_increment"), 2),
        )

    async def ticker(self, symbol: str) -> Ticker:
        payload = await self._request("GET", f"/products/{symbol.upper()}/ticker")
        return coinbase_ticker(payload)

    async def wallet_balances(self) -> List[WalletBalance]:
        accounts = await self._request("GET", "/accounts")
        return coinbase_balances(accounts)

    # --------------------------------------------------------
    # ORDERS
    # --------------------------------------------------------

    async def _place(self, params: Dict[str, Any]) -> Order:
        payload = await self._request("POST", "/orders", body=params)
        return coinbase_order(payload)

    async def limit_order(self, symbol, amount, price, side, post_only, reduce_only) -> Order:
        return await self._place({
            "type": "limit",
            "side": side,
            "product_id": symbol,
            "price": str(price),
            "size": str(amount),
            "post_only": bool(post_only),
        })

    async def market_order(self, symbol, amount, side, is_everything) -> Order:
        return await self._place({
            "type": "market",
            "side": side,
            "product_id": symbol,
            "size": str(amount),
        })

    async def stop_order(self, symbol, amount, price, side, trigger) -> Order:
        return await self._place({
            "type": "market",
            "side": side,
            "product_id": symbol,
            "size": str(amount),
            "stop": "loss" if side == "sell" else "entry",
            "stop_price": str(price),
        })

    async def active_orders(self, symbol: str, side: str) -> List[Order]:
        payload = await self._request("GET", "/orders", params={"product_id": symbol})
        orders = [coinbase_order(o) for o in payload]
        if side in (SideFilter.BUY.value, SideFilter.SELL.value):
            orders = [o for o in orders if o.side == side]
        return orders

    async def cancel_orders(self, orders: List[Order]) -> None:
        for order in orders:
            try:
                await self._request("DELETE", f"/orders/{order.id}")
            except Exception as e:
                logger.warning(f"Failed to cancel Coinbase order {order.id}: {e}")

    async def order(self, order: Order) -> Order:
        try:
            payload = await self._request("GET", f"/orders/{order.id}")
        except VenueError as e:
            logger.warning(f"Order {order.id} lookup failed, assuming closed: {e}")
            return Order.build(order.id, order.side, order.amount, executed=0, is_open=False)
        return coinbase_order(payload)

    async def update_order_price(self, order: Order, price) -> Order:
        payload = await self._request("GET", f"/orders/{order.id}")
        await self.cancel_orders([order])

        order_type = payload.get("type")
        if order_type == "limit":
            return await self.limit_order(
                payload.get("product_id"),
                payload.get("size"),
                price,
                payload.get("side"),
                payload.get("post_only", False),
                False,
            )
        if order_type == "market":
            return await self.stop_order(
                payload.get("product_id"),
                payload.get("size"),
                price,
                payload.get("side"),
                "",
            )
        raise ExchangeEngineError(f"Unknown order type {order_type}", context={"order_id": order.id})
