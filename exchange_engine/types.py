"""
Exchange Engine - Types.

============================================================
PURPOSE
============================================================
Venue-independent records shared by drivers, commands and the
orchestrator.

CANONICAL ORDER CONTRACT:
    id, side, amount, remaining, executed, is_filled, is_open

    remaining == amount - executed
    is_filled => remaining == 0

Drivers may attach venue-specific fields in `extra` (original
type, price, product id...) needed to edit or cancel the order
later. Command logic only relies on the canonical fields.

============================================================
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from .utils import ZERO, to_decimal


# ============================================================
# ENUMS
# ============================================================

class Side(str, Enum):
    """Order side."""

    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "Side":
        return Side.SELL if self is Side.BUY else Side.BUY


class SideFilter(str, Enum):
    """Side selector for active order queries."""

    BUY = "buy"
    SELL = "sell"
    ALL = "all"


class TriggerType(str, Enum):
    """Price a stop order triggers on."""

    LAST = "last"
    MARK = "mark"
    INDEX = "index"


class TaskState(Enum):
    """
    State returned by a command after each unit of work.

    KEEP_GOING and ACTIVE both ask for more background polls;
    ACTIVE additionally tells the scheduler something happened
    this tick (fill, cancellation, new order) so it should poll
    again quickly instead of backing off.
    """

    KEEP_GOING = "keep_going"
    ACTIVE = "active"
    FINISHED = "finished"

    @property
    def is_finished(self) -> bool:
        return self is TaskState.FINISHED


class CancelSelector(str, Enum):
    """Which algorithmic orders to cancel."""

    ALL = "all"
    BUY = "buy"
    SELL = "sell"
    TAGGED = "tagged"
    SESSION = "session"


# ============================================================
# MARKET DATA
# ============================================================

@dataclass(frozen=True)
class Ticker:
    """Top of book."""

    bid: Decimal
    ask: Decimal
    last_price: Decimal

    @property
    def mid(self) -> Decimal:
        return (self.bid + self.ask) / 2


@dataclass(frozen=True)
class WalletBalance:
    """Balance of one currency (lower-cased code)."""

    currency: str
    amount: Decimal
    available: Decimal


# ============================================================
# ORDER
# ============================================================

@dataclass
class Order:
    """Canonical, venue-independent order."""

    id: str
    """Opaque venue order id."""

    side: str
    """buy or sell."""

    amount: Decimal
    """Total order size."""

    remaining: Decimal
    """Unfilled size."""

    executed: Decimal
    """Filled size."""

    is_filled: bool
    """amount == executed."""

    is_open: bool
    """Venue still honors the order."""

    extra: Dict[str, Any] = field(default_factory=dict)
    """Venue-specific fields used by the driver that produced the order."""

    @classmethod
    def build(
        cls,
        id: Any,
        side: str,
        amount: Any,
        executed: Any,
        is_open: bool,
        **extra: Any,
    ) -> "Order":
        """
        Build an order keeping the canonical invariants.

        Args:
            id: Venue order id
            side: buy or sell
            amount: Order size
            executed: Filled size
            is_open: Whether the venue still honors the order
            **extra: Venue-specific fields

        Returns:
            Order
        """
        amount = to_decimal(amount)
        executed = to_decimal(executed)
        is_filled = amount == executed and amount > ZERO
        remaining = ZERO if is_filled else amount - executed
        return cls(
            id=str(id),
            side=str(side).lower(),
            amount=amount,
            remaining=remaining,
            executed=executed,
            is_filled=is_filled,
            is_open=is_open,
            extra=dict(extra),
        )

    @property
    def price(self) -> Optional[Decimal]:
        price = self.extra.get("price")
        return None if price is None else to_decimal(price)


# ============================================================
# RESULTS AND BOOKKEEPING
# ============================================================

@dataclass
class OrderResult:
    """Outcome of one placement attempt."""

    order: Optional[Order]
    side: str = ""
    price: Optional[Decimal] = None
    amount: Decimal = ZERO
    units: str = ""


@dataclass(frozen=True)
class OrderSizeDetails:
    """How an order size was derived from the requested amount."""

    total: Decimal
    """Total portfolio value, in asset units."""

    available: Decimal
    """Spendable on this side, in asset units."""

    is_all_available: bool
    """The order uses everything available."""

    raw_order_size: Decimal
    """Requested size before capping and minimum checks."""

    order_size: Decimal
    """Final, rounded size (0 if below the venue minimum)."""


@dataclass
class SessionOrder:
    """A placed order attributed to a session and tag."""

    session: str
    tag: str
    order: Order


@dataclass
class AlgoOrder:
    """One in-flight algorithmic command; `cancelled` is the only mutable field."""

    id: str
    side: str
    session: str
    tag: str
    cancelled: bool = False


@dataclass
class BackgroundTask:
    """A command handed to the scheduler and its last observed state."""

    task: Any
    state: TaskState


@dataclass(frozen=True)
class CommandArg:
    """One argument of a command invocation."""

    name: str
    value: str
    index: int = 0


def command_args(*values: str, **named: str) -> List[CommandArg]:
    """
    Build an argument list.

    Positional values get empty names and their index; keyword
    values are matched by name.
    """
    args = [CommandArg(name="", value=str(v), index=i) for i, v in enumerate(values)]
    args.extend(
        CommandArg(name=k, value=str(v), index=len(values) + i)
        for i, (k, v) in enumerate(named.items())
    )
    return args
