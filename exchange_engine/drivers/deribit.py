"""
Exchange Engine - Deribit Driver.

============================================================
PURPOSE
============================================================
Driver for the Deribit v1 REST API (futures and perpetuals).

SAFETY FEATURES:
- Every request signed with x-deribit-sig
- Retry with linear backoff on 429 / 502 / 503 / resets
- Error payloads ({"error": ..., "message": ...}) are terminal
- Credentials never logged

VENUE NOTES:
- Quantities are whole contracts (rounded down)
- No wallet balances: everything is a contract
- Prices are edited in place, the order id survives

============================================================
"""

import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..errors import TerminalVenueError, venue_error_for_status
from ..symbol_data import SymbolInfo
from ..types import Order, SideFilter, Ticker, TriggerType, WalletBalance
from ..utils import round_down, to_decimal
from .http import HttpApiDriver
from .normalize import deribit_order, deribit_ticker
from .retry import call_with_retries
from .signing import deribit_signature, format_value, params_to_string


logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/api/v1/public"
PRIVATE_PREFIX = "/api/v1/private"


def _decimal_places(value: Any, default: int) -> int:
    value = to_decimal(value, None)
    if value is None or value <= 0:
        return default
    return max(0, -value.normalize().as_tuple().exponent)


class DeribitDriver(HttpApiDriver):
    """Deribit v1 REST driver."""

    name = "deribit"
    default_base_url = "https://www.deribit.com"
    testnet_base_url = "https://test.deribit.com"

    # --------------------------------------------------------
    # REQUESTS
    # --------------------------------------------------------

    async def _request(
        self,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        method: Optional[str] = None,
    ) -> Any:
        """
        Make a signed request, retrying transient failures.

        Public actions default to GET with a query string, private
        actions to POST with a form body.

        Args:
            action: API path, e.g. /api/v1/private/buy
            params: Request parameters
            method: Override the HTTP method

        Returns:
            The `result` member of the response
        """
        if not self._config.api_key or not self._config.api_secret:
            raise TerminalVenueError("missing api key or secret")

        params = dict(params or {})
        method = method or ("GET" if action.startswith(PUBLIC_PREFIX) else "POST")

        url = f"{self._base_url}{action}"
        data = None
        if method == "GET":
            if params:
                url = f"{url}?{params_to_string(params, encode=True)}"
        else:
            data = {key: format_value(value) for key, value in params.items()}

        tstamp = int(self._clock.timestamp() * 1000)
        headers = {
            "x-deribit-sig": deribit_signature(
                self._config.api_key,
                self._config.api_secret,
                action,
                params,
                tstamp,
            ),
        }

        return await call_with_retries(
            lambda: self._call(method, url, headers, data),
            config=self._config.retry,
            clock=self._clock,
            description=f"Deribit {action}",
        )

    async def _call(self, method: str, url: str, headers: Dict[str, str], data: Any) -> Any:
        status, text = await self._send(method, url, headers=headers, data=data)

        if status != 200:
            logger.error(f"Error calling Deribit API. Status Code: {status}, body: {text}")
            raise venue_error_for_status(status, text)

        try:
            payload = json.loads(text)
        except ValueError:
            # not json, so a plain text success
            return {"message": text}

        if isinstance(payload, dict):
            if payload.get("error"):
                raise TerminalVenueError(
                    f"{payload.get('error')} - {payload.get('message')}",
                    status=status,
                    body=payload,
                )
            return payload.get("result")
        return payload

    # --------------------------------------------------------
    # SYMBOLS / MARKET DATA
    # --------------------------------------------------------

    async def add_symbol(self, symbol: str) -> Optional[SymbolInfo]:
        instruments = await self._request(f"{PUBLIC_PREFIX}/getinstruments", {"expired": False})
        match = next(
            (i for i in instruments or [] if str(i.get("instrumentName", "")).lower() == symbol.lower()),
            None,
        )
        if match is None:
            logger.error(f"Symbol {symbol} not accessible on Deribit.")
            return None

        return SymbolInfo(
            min_order_size=to_decimal(match.get("minTradeSize"), Decimal("1")),
            asset_precision=0,
            price_precision=_decimal_places(match.get("tickSize"), 2),
        )

    async def ticker(self, symbol: str) -> Ticker:
        book = await self._request(f"{PUBLIC_PREFIX}/getorderbook", {"instrument": symbol.upper()})
        return deribit_ticker(book)

    async def wallet_balances(self) -> List[WalletBalance]:
        return []

    # --------------------------------------------------------
    # ORDERS
    # --------------------------------------------------------

    async def limit_order(self, symbol, amount, price, side, post_only, reduce_only) -> Order:
        params = {
            "instrument": symbol.upper(),
            "type": "limit",
            "quantity": str(round_down(amount, 0)),
            "price": str(price),
            "time_in_force": "good_till_cancel",
            "postOnly": bool(post_only),
            "reduceOnly": bool(reduce_only),
        }
        info = await self._request(f"{PRIVATE_PREFIX}/{side}", params)
        return deribit_order(info["order"])

    async def market_order(self, symbol, amount, side, is_everything) -> Order:
        params = {
            "instrument": symbol.upper(),
            "type": "market",
            "quantity": str(round_down(amount, 0)),
        }
        info = await self._request(f"{PRIVATE_PREFIX}/{side}", params)
        return deribit_order(info["order"])

    async def stop_order(self, symbol, amount, price, side, trigger) -> Order:
        params = {
            "instrument": symbol.upper(),
            "type": "stop_market",
            "quantity": str(round_down(amount, 0)),
            "stopPx": str(price),
            "execInst": "index_price" if trigger == TriggerType.INDEX.value else "mark_price",
            "time_in_force": "good_till_cancel",
            "reduceOnly": True,
        }
        info = await self._request(f"{PRIVATE_PREFIX}/{side}", params)
        return deribit_order(info["order"])

    async def active_orders(self, symbol: str, side: str) -> List[Order]:
        orders = await self._request(
            f"{PRIVATE_PREFIX}/getopenorders",
            {"instrument": symbol.upper(), "type": "any"},
        )
        if side in (SideFilter.BUY.value, SideFilter.SELL.value):
            orders = [o for o in orders if o.get("direction") == side]
        return [deribit_order(o) for o in orders]

    async def cancel_orders(self, orders: List[Order]) -> None:
        for order in orders:
            try:
                await self._request(f"{PRIVATE_PREFIX}/cancel", {"orderId": order.id})
            except Exception as e:
                logger.warning(f"Failed to cancel Deribit order {order.id}: {e}")

    async def order(self, order: Order) -> Order:
        info = await self._request(f"{PRIVATE_PREFIX}/orderstate", {"orderId": order.id}, "GET")
        return deribit_order(info)

    async def update_order_price(self, order: Order, price) -> Order:
        data = {
            "orderId": order.id,
            "amount": order.extra.get("deribitAmount"),
        }

        order_type = order.extra.get("type")
        if order_type == "stop_market":
            data["stopPx"] = str(price)
        elif order_type == "stop_limit":
            data["stopPx"] = str(price)
            data["price"] = str(price)
        else:
            data["price"] = str(price)

        info = await self._request(f"{PRIVATE_PREFIX}/edit", data)
        return deribit_order(info["order"])

    # --------------------------------------------------------
    # ACCOUNT EXTRAS
    # --------------------------------------------------------

    async def account(self, currency: str) -> Dict[str, Any]:
        return await self._request(f"{PRIVATE_PREFIX}/account", {"currency": currency})

    async def positions(self) -> List[Dict[str, Any]]:
        return await self._request(f"{PRIVATE_PREFIX}/positions", {})
