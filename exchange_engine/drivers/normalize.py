"""
Exchange Engine - Venue Payload Normalization.

Maps raw venue JSON onto the canonical Order / Ticker /
WalletBalance records. Every driver funnels its responses
through here so the Order invariants hold for all venues.
"""

from typing import Any, Dict, List

from ..types import Order, Ticker, WalletBalance
from ..utils import to_decimal


# ============================================================
# COINBASE
# ============================================================

def coinbase_order(payload: Dict[str, Any]) -> Order:
    """Coinbase Exchange order -> Order (status 'open' means open)."""
    return Order.build(
        id=payload.get("id"),
        side=payload.get("side", ""),
        amount=payload.get("size"),
        executed=payload.get("filled_size"),
        is_open=payload.get("status") == "open",
        type=payload.get("type"),
        price=payload.get("price"),
        stop_price=payload.get("stop_price"),
        product_id=payload.get("product_id"),
        post_only=payload.get("post_only", False),
    )


def coinbase_ticker(payload: Dict[str, Any]) -> Ticker:
    return Ticker(
        bid=to_decimal(payload.get("bid")),
        ask=to_decimal(payload.get("ask")),
        last_price=to_decimal(payload.get("price")),
    )


def coinbase_balances(payload: List[Dict[str, Any]]) -> List[WalletBalance]:
    return [
        WalletBalance(
            currency=str(item.get("currency", "")).lower(),
            amount=to_decimal(item.get("balance")),
            available=to_decimal(item.get("available")),
        )
        for item in payload
    ]


# ============================================================
# DERIBIT
# ============================================================

def deribit_is_open(payload: Dict[str, Any]) -> bool:
    """Open, or an untriggered stop market order."""
    state = payload.get("state")
    return state == "open" or (state == "untriggered" and payload.get("type") == "stop_market")


def deribit_order(payload: Dict[str, Any]) -> Order:
    """
    Deribit v1 order -> Order.

    `type`, `price` and `deribitAmount` are kept in extra for
    later in-place edits.
    """
    return Order.build(
        id=payload.get("orderId"),
        side=payload.get("direction", ""),
        amount=payload.get("quantity"),
        executed=payload.get("filledQuantity"),
        is_open=deribit_is_open(payload),
        type=payload.get("type"),
        price=payload.get("price"),
        deribitAmount=payload.get("amount"),
    )


def deribit_ticker(payload: Dict[str, Any]) -> Ticker:
    """Top of a getorderbook response."""
    return Ticker(
        bid=to_decimal(payload["bids"][0]["price"]),
        ask=to_decimal(payload["asks"][0]["price"]),
        last_price=to_decimal(payload.get("last")),
    )
