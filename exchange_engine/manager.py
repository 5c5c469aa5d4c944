"""
Exchange Engine - Exchange Manager.

============================================================
PURPOSE
============================================================
Keeps one Exchange per (venue, credentials) pair and shares it
between every session that asks for it, reference counted.

USAGE
============================================================
```python
manager = ExchangeManager([
    ExchangeEntry("deribit", driver_exchange_factory("deribit")),
])
ex = await manager.open_exchange("deribit", {"key": "...", "secret": "..."})
...
await manager.close_exchange(ex)
```

============================================================
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from .clock import ClockProtocol
from .config import DriverConfig, EngineConfig
from .drivers.factory import create_driver
from .exchange import Exchange


logger = logging.getLogger(__name__)

ExchangeFactory = Callable[[Dict[str, Any]], Exchange]


@dataclass(frozen=True)
class ExchangeEntry:
    """A venue the manager can open."""

    name: str
    factory: ExchangeFactory


def driver_exchange_factory(
    exchange_id: str,
    engine_config: Optional[EngineConfig] = None,
    clock: Optional[ClockProtocol] = None,
) -> ExchangeFactory:
    """
    Factory building an Exchange over the built-in driver for `exchange_id`.

    Credentials use the keys key, secret, passphrase, endpoint and
    testnet.
    """
    def factory(credentials: Dict[str, Any]) -> Exchange:
        config = DriverConfig(
            exchange_id=exchange_id,
            api_key=credentials.get("key"),
            api_secret=credentials.get("secret"),
            passphrase=credentials.get("passphrase"),
            base_url=credentials.get("endpoint"),
            testnet=bool(credentials.get("testnet", False)),
        )
        driver = create_driver(config, clock)
        return Exchange(driver, credentials=credentials, config=engine_config, clock=clock, name=exchange_id)

    return factory


class ExchangeManager:
    """Opens, shares and closes exchange connections."""

    def __init__(self, entries: Iterable[ExchangeEntry]):
        self._entries = list(entries)
        self.opened: List[Exchange] = []

    def find_opened(self, name: str, credentials: Dict[str, Any]) -> Optional[Exchange]:
        return next(
            (ex for ex in self.opened if ex.name == name and ex.matches(credentials)),
            None,
        )

    async def open_exchange(self, name: str, credentials: Dict[str, Any]) -> Optional[Exchange]:
        """
        Get a connection to `name`.

        Returns:
            An existing matching connection (with an extra
            reference), a newly initialized one, or None if the
            venue is unknown
        """
        existing = self.find_opened(name, credentials)
        if existing is not None:
            existing.add_reference()
            return existing

        entry = next((e for e in self._entries if e.name == name), None)
        if entry is None:
            logger.error(f"Unknown exchange: {name}")
            return None

        ex = entry.factory(credentials)
        await ex.init()
        self.opened.append(ex)
        logger.info(f"Opened exchange {name}")
        return ex

    async def close_exchange(self, ex: Optional[Exchange]) -> None:
        """Drop a reference; terminate and forget the connection at zero."""
        if ex is None or ex not in self.opened:
            return

        if ex.remove_reference() <= 0:
            await ex.terminate()
            self.opened = [item for item in self.opened if item is not ex]
            logger.info(f"Closed exchange {ex.name}")
