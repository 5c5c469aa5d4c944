"""
Exchange Engine Package.

============================================================
PURPOSE
============================================================
Exchange-agnostic trading command engine.

Runs declarative trading commands (limit orders, ladders,
two-sided market making...) against any venue that implements
the ApiDriver contract, either straight away or as background
tasks that are polled, adapted and cancellable.

============================================================
MODULES
============================================================
- types: Orders, tickers, balances, task states
- config: Retry, rate limit, timeout, polling configuration
- errors: Error taxonomy
- clock: Mockable time source
- sizing / utils / symbol_data: Quantity parsing and rounding
- drivers: ApiDriver contract and venue drivers
- commands: Command catalog and the task contract
- registry: Algo order registry and session order book
- scheduler: Background polling with adaptive backoff
- exchange: The per-connection orchestrator
- manager: Shared, reference counted connections

============================================================
"""

# ============================================================
# TYPES
# ============================================================
from .types import (
    Side,
    SideFilter,
    TriggerType,
    TaskState,
    CancelSelector,
    Ticker,
    WalletBalance,
    Order,
    OrderResult,
    OrderSizeDetails,
    SessionOrder,
    AlgoOrder,
    BackgroundTask,
    CommandArg,
    command_args,
)

# ============================================================
# CONFIGURATION
# ============================================================
from .config import (
    RetryConfig,
    RateLimitConfig,
    TimeoutConfig,
    PollingConfig,
    SymbolDefaults,
    DriverConfig,
    EngineConfig,
)

# ============================================================
# ERRORS
# ============================================================
from .errors import (
    ExchangeEngineError,
    DriverNotImplementedError,
    UnknownCommandError,
    ValidationError,
    AbortSequenceError,
    VenueError,
    TransientVenueError,
    TerminalVenueError,
    classify_http_status,
)

# ============================================================
# ENGINE
# ============================================================
from .clock import ClockProtocol, SystemClock, MockClock, get_clock, set_clock
from .drivers import ApiDriver, MockDriver, create_driver
from .exchange import Exchange
from .manager import ExchangeEntry, ExchangeManager, driver_exchange_factory
from .logging_utils import configure_logging, get_progress_log


__all__ = [
    # Types
    "Side",
    "SideFilter",
    "TriggerType",
    "TaskState",
    "CancelSelector",
    "Ticker",
    "WalletBalance",
    "Order",
    "OrderResult",
    "OrderSizeDetails",
    "SessionOrder",
    "AlgoOrder",
    "BackgroundTask",
    "CommandArg",
    "command_args",
    # Config
    "RetryConfig",
    "RateLimitConfig",
    "TimeoutConfig",
    "PollingConfig",
    "SymbolDefaults",
    "DriverConfig",
    "EngineConfig",
    # Errors
    "ExchangeEngineError",
    "DriverNotImplementedError",
    "UnknownCommandError",
    "ValidationError",
    "AbortSequenceError",
    "VenueError",
    "TransientVenueError",
    "TerminalVenueError",
    "classify_http_status",
    # Engine
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "get_clock",
    "set_clock",
    "ApiDriver",
    "MockDriver",
    "create_driver",
    "Exchange",
    "ExchangeEntry",
    "ExchangeManager",
    "driver_exchange_factory",
    "configure_logging",
    "get_progress_log",
]
