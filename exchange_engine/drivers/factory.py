"""
Exchange Engine - Driver Factory.

============================================================
PURPOSE
============================================================
Creates ApiDriver instances by exchange id.

FEATURES:
- Centralized driver creation
- Configuration injection (defaults from the environment)
- Registry for additional venues

============================================================
USAGE
============================================================
```python
driver = create_driver(DriverConfig.from_env("deribit"))

register_driver("myvenue", lambda config, clock: MyVenueDriver(config))
```

============================================================
"""

import logging
from typing import Callable, Dict, List, Optional

from ..clock import ClockProtocol
from ..config import DriverConfig
from .base import ApiDriver


logger = logging.getLogger(__name__)

DriverCreator = Callable[[DriverConfig, Optional[ClockProtocol]], ApiDriver]

_creators: Dict[str, DriverCreator] = {}


def register_driver(exchange_id: str, creator: DriverCreator) -> None:
    """Register a creator for an additional venue."""
    _creators[exchange_id.lower()] = creator


def unregister_driver(exchange_id: str) -> None:
    _creators.pop(exchange_id.lower(), None)


def create_driver(
    config: DriverConfig,
    clock: Optional[ClockProtocol] = None,
) -> ApiDriver:
    """
    Create a driver for `config.exchange_id`.

    Args:
        config: Driver configuration
        clock: Clock for rate limiting and retries

    Returns:
        ApiDriver instance

    Raises:
        ValueError: If the exchange is not supported
    """
    exchange_id = config.exchange_id.lower()

    if exchange_id in _creators:
        return _creators[exchange_id](config, clock)

    if exchange_id == "coinbase":
        from .coinbase import CoinbaseDriver
        return CoinbaseDriver(config, clock)

    elif exchange_id == "deribit":
        from .deribit import DeribitDriver
        return DeribitDriver(config, clock)

    elif exchange_id == "mock":
        from .mock import MockDriver
        return MockDriver()

    else:
        raise ValueError(f"Unsupported exchange: {exchange_id}")


def list_supported() -> List[str]:
    """Built-in plus registered exchange ids."""
    return sorted(set(["coinbase", "deribit", "mock"] + list(_creators)))
