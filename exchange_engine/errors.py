"""
Exchange Engine - Error Taxonomy.

============================================================
PURPOSE
============================================================
Exceptions raised by drivers, commands and the orchestrator.

EXCEPTION HIERARCHY:
ExchangeEngineError (base)
├── DriverNotImplementedError   capability absent on a driver
├── UnknownCommandError         name not on the allow-list
├── ValidationError             malformed command arguments
├── AbortSequenceError          stop the whole command sequence
└── VenueError                  venue call failed
    ├── TransientVenueError     429 / 502 / 503 / connection reset
    └── TerminalVenueError      anything else, never retried

PROPAGATION:
- AbortSequenceError is the only error that escapes
  Exchange.execute_command
- Everything else is logged and turned into a None result

============================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type


# ============================================================
# HTTP CLASSIFICATION
# ============================================================

TRANSIENT_STATUS_CODES = frozenset({429, 502, 503})
"""HTTP statuses worth retrying."""

CONNECTION_RESET_STATUS = 429
"""Status a connection reset is remapped to (treated as overload)."""


# ============================================================
# BASE EXCEPTION
# ============================================================

class ExchangeEngineError(Exception):
    """
    Base exception for all engine errors.

    Carries a message and a context dict for debugging.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


class DriverNotImplementedError(ExchangeEngineError, NotImplementedError):
    """The driver does not support this operation."""

    def __init__(self, operation: str, driver: str = ""):
        super().__init__(
            f"{operation} not implemented" + (f" by {driver}" if driver else ""),
            context={"operation": operation, "driver": driver},
        )
        self.operation = operation


class UnknownCommandError(ExchangeEngineError):
    """Command name is not on the allow-list."""

    def __init__(self, name: str):
        super().__init__(f"Unknown command: {name}", context={"command": name})
        self.name = name


class ValidationError(ExchangeEngineError):
    """Command arguments are malformed or resolve to something impossible."""
    pass


class AbortSequenceError(ExchangeEngineError):
    """The enclosing command sequence must stop, not just this command."""
    pass


# ============================================================
# VENUE ERRORS
# ============================================================

class VenueError(ExchangeEngineError):
    """A call to the venue failed."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Any = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, context={"status": status}, cause=cause)
        self.status = status
        self.body = body


class TransientVenueError(VenueError):
    """Overload or gateway failure; safe to retry after a delay."""

    retryable = True


class TerminalVenueError(VenueError):
    """Rejected by the venue; retrying will not help."""

    retryable = False


def classify_http_status(status: int) -> Type[VenueError]:
    """
    Pick the error class for a non-success HTTP status.

    Args:
        status: HTTP status code

    Returns:
        TransientVenueError for 429/502/503, TerminalVenueError otherwise
    """
    if status in TRANSIENT_STATUS_CODES:
        return TransientVenueError
    return TerminalVenueError


def venue_error_for_status(status: int, body: Any = None) -> VenueError:
    """Build the classified error for a failed HTTP response."""
    error_class = classify_http_status(status)
    return error_class(f"Venue returned HTTP {status}", status=status, body=body)
