"""
Exchange Engine - Venue Drivers.

One ApiDriver implementation per venue, plus the shared rate
limiting, retry and signing disciplines they are built from.
"""

from .base import ApiDriver
from .coinbase import CoinbaseDriver
from .deribit import DeribitDriver
from .factory import create_driver, list_supported, register_driver, unregister_driver
from .http import HttpApiDriver
from .mock import MockConfig, MockDriver
from .rate_limit import FixedCadenceRateLimiter
from .retry import call_with_retries


__all__ = [
    "ApiDriver",
    "HttpApiDriver",
    "CoinbaseDriver",
    "DeribitDriver",
    "MockDriver",
    "MockConfig",
    "FixedCadenceRateLimiter",
    "call_with_retries",
    "create_driver",
    "register_driver",
    "unregister_driver",
    "list_supported",
]
