"""
Exchange Engine - Symbol Metadata.

Per-symbol venue metadata (minimum order size and rounding
precisions), written when a symbol is registered and read by
every sizing and rounding helper.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from .config import SymbolDefaults


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SymbolInfo:
    """Venue metadata for one symbol."""

    min_order_size: Decimal
    """Smallest order the venue accepts, in asset units."""

    asset_precision: int
    """Decimal places for asset quantities."""

    price_precision: int
    """Decimal places (or significant figures, venue dependent) for prices."""


class SymbolData:
    """
    Symbol metadata store owned by one exchange connection.

    Lookups are case-insensitive; unknown symbols get the defaults.
    """

    def __init__(self, defaults: Optional[SymbolDefaults] = None):
        defaults = defaults or SymbolDefaults()
        self._default = SymbolInfo(
            min_order_size=defaults.min_order_size,
            asset_precision=defaults.asset_precision,
            price_precision=defaults.price_precision,
        )
        self._symbols: Dict[str, SymbolInfo] = {}

    def update(self, symbol: str, info: SymbolInfo) -> None:
        logger.debug(f"Symbol data for {symbol}: {info}")
        self._symbols[symbol.lower()] = info

    def get(self, symbol: str) -> SymbolInfo:
        return self._symbols.get(symbol.lower(), self._default)

    def has(self, symbol: str) -> bool:
        return symbol.lower() in self._symbols

    def min_order_size(self, symbol: str) -> Decimal:
        return self.get(symbol).min_order_size

    def asset_precision(self, symbol: str) -> int:
        return self.get(symbol).asset_precision

    def price_precision(self, symbol: str) -> int:
        return self.get(symbol).price_precision
