"""
Exchange Engine - Configuration.

============================================================
PURPOSE
============================================================
All configuration for drivers and the orchestrator.

CRITICAL CONSTRAINTS:
- Bounded retries only (attempt cap, optional elapsed ceiling)
- Fixed network timeout on every outbound call
- Credentials come from the environment (.env supported)

============================================================
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv


# ============================================================
# RETRY CONFIGURATION
# ============================================================

@dataclass
class RetryConfig:
    """
    Retry-with-backoff for transient venue failures.

    Delay before retry n (1-based) is
    base_delay_seconds + step_delay_seconds * n.
    """

    max_attempts: int = 10
    """Total attempts including the first one."""

    base_delay_seconds: float = 15.0
    """Fixed part of the retry delay."""

    step_delay_seconds: float = 5.0
    """Linear growth of the delay per attempt."""

    max_elapsed_seconds: Optional[float] = None
    """Stop retrying once this much time has passed (None = attempts only)."""

    def delay_for(self, attempt: int) -> float:
        return self.base_delay_seconds + self.step_delay_seconds * attempt


# ============================================================
# RATE LIMIT CONFIGURATION
# ============================================================

@dataclass
class RateLimitConfig:
    """Fixed-cadence rate limiting."""

    min_interval_seconds: float = 0.25
    """Minimum gap between two outbound calls on one driver."""


# ============================================================
# TIMEOUT CONFIGURATION
# ============================================================

@dataclass
class TimeoutConfig:
    """Network timeouts."""

    request_timeout_seconds: float = 10.0
    """Total timeout of one HTTP request."""

    connection_timeout_seconds: float = 5.0
    """Connection establishment timeout."""


# ============================================================
# POLLING CONFIGURATION
# ============================================================

@dataclass
class PollingConfig:
    """Background scheduler backoff bounds, in seconds."""

    min_polling_delay: int = 0
    max_polling_delay: int = 5


# ============================================================
# SYMBOL DEFAULTS
# ============================================================

@dataclass
class SymbolDefaults:
    """Metadata assumed for symbols the venue did not describe."""

    min_order_size: Decimal = Decimal("0.0001")
    asset_precision: int = 4
    price_precision: int = 2


# ============================================================
# DRIVER CONFIGURATION
# ============================================================

@dataclass
class DriverConfig:
    """
    Configuration for one venue driver.

    Credentials can be None for public-only use.
    """

    exchange_id: str
    """coinbase, deribit or mock."""

    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    passphrase: Optional[str] = None

    base_url: Optional[str] = None
    """Override the venue REST endpoint."""

    testnet: bool = False

    retry: RetryConfig = field(default_factory=RetryConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)

    @classmethod
    def from_env(cls, exchange_id: str, **overrides) -> "DriverConfig":
        """
        Create config from environment variables.

        Reads <EXCHANGE>_API_KEY, <EXCHANGE>_API_SECRET,
        <EXCHANGE>_PASSPHRASE, <EXCHANGE>_BASE_URL and
        <EXCHANGE>_TESTNET, after loading a .env file if present.

        Args:
            exchange_id: Exchange identifier
            **overrides: Explicit field values

        Returns:
            DriverConfig
        """
        load_dotenv()
        prefix = exchange_id.upper()

        values = dict(
            exchange_id=exchange_id.lower(),
            api_key=os.environ.get(f"{prefix}_API_KEY"),
            api_secret=os.environ.get(f"{prefix}_API_SECRET"),
            passphrase=os.environ.get(f"{prefix}_PASSPHRASE"),
            base_url=os.environ.get(f"{prefix}_BASE_URL"),
            testnet=os.environ.get(f"{prefix}_TESTNET", "false").lower() in ("1", "true", "yes"),
        )
        values.update(overrides)
        return cls(**values)


# ============================================================
# ENGINE CONFIGURATION
# ============================================================

@dataclass
class EngineConfig:
    """Orchestrator configuration."""

    polling: PollingConfig = field(default_factory=PollingConfig)
    symbol_defaults: SymbolDefaults = field(default_factory=SymbolDefaults)

    max_ladder_orders: int = 100
    """Upper bound on scaled order rungs."""
