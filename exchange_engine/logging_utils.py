"""
Exchange Engine - Logging Utilities.

============================================================
PURPOSE
============================================================
- Credential masking for anything a driver logs
- The progress / results channel commands report through

============================================================
SECURITY REQUIREMENTS
============================================================
1. NEVER log raw API keys, secrets or passphrases
2. Mask signature headers
3. The secret is hashed into signatures but never logged

============================================================
"""

import logging
import re
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)

PROGRESS_LOGGER_NAME = "exchange_engine.progress"


# ============================================================
# SENSITIVE DATA PATTERNS
# ============================================================

SENSITIVE_HEADERS = {
    "authorization",
    "cb-access-key",
    "cb-access-sign",
    "cb-access-passphrase",
    "x-deribit-sig",
    "api-key",
    "secret",
    "signature",
}

SENSITIVE_PARAMS = {
    "apikey",
    "api_key",
    "_ackey",
    "_acsec",
    "secret",
    "secret_key",
    "passphrase",
    "signature",
    "sig",
    "token",
}

SENSITIVE_PATTERNS = [
    (re.compile(r'[a-f0-9]{64}', re.IGNORECASE), "***HMAC***"),
]


# ============================================================
# MASKING FUNCTIONS
# ============================================================

def mask_value(value: str, show_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only first few chars.

    Args:
        value: Value to mask
        show_chars: Number of chars to show at start

    Returns:
        Masked value
    """
    if not value or len(value) <= show_chars:
        return "***"
    return f"{value[:show_chars]}...***"


def mask_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Mask sensitive headers."""
    if not headers:
        return {}

    return {
        key: mask_value(str(value)) if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def mask_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Mask sensitive parameters.

    Args:
        params: Request parameters

    Returns:
        Parameters with sensitive values masked
    """
    if not params:
        return {}

    masked = {}
    for key, value in params.items():
        if key.lower() in SENSITIVE_PARAMS:
            masked[key] = mask_value(str(value)) if value else value
        elif isinstance(value, dict):
            masked[key] = mask_params(value)
        elif isinstance(value, str):
            masked_value = value
            for pattern, replacement in SENSITIVE_PATTERNS:
                masked_value = pattern.sub(replacement, masked_value)
            masked[key] = masked_value
        else:
            masked[key] = value
    return masked


# ============================================================
# PROGRESS CHANNEL
# ============================================================

class ProgressLog:
    """
    User-visible progress and results channel.

    progress: what the engine is about to do
    results:  what happened (placements, fills, cancellations)
    dim:      raw payloads, debug only

    This is not an error channel; errors go to module loggers.
    """

    def __init__(self, name: str = PROGRESS_LOGGER_NAME):
        self._logger = logging.getLogger(name)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def progress(self, message: Any) -> None:
        self._logger.info(str(message))

    def results(self, message: Any) -> None:
        self._logger.info(str(message))

    def dim(self, payload: Any) -> None:
        self._logger.debug("%s", payload)


_progress_log: Optional[ProgressLog] = None


def get_progress_log() -> ProgressLog:
    """Get the process-wide progress channel."""
    global _progress_log
    if _progress_log is None:
        _progress_log = ProgressLog()
    return _progress_log


def configure_logging(level: str = "INFO") -> None:
    """Basic console logging for scripts."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
