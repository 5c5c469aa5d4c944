"""
Exchange Engine - Order Registries.

============================================================
PURPOSE
============================================================
The two mutable collections an exchange connection owns:

- AlgoOrderRegistry: one entry per running algorithmic command,
  so it can be cancelled out of band
- SessionOrderBook: every order placed, attributed to the
  session and tag that placed it

All mutation goes through these methods. Neither collection is
shared between connections.

============================================================
"""

import logging
from typing import List, Optional

from .types import AlgoOrder, CancelSelector, Order, SessionOrder


logger = logging.getLogger(__name__)


# ============================================================
# ALGORITHMIC ORDERS
# ============================================================

class AlgoOrderRegistry:
    """Running algorithmic commands and their cancellation flags."""

    def __init__(self):
        self._orders: List[AlgoOrder] = []

    def __len__(self) -> int:
        return len(self._orders)

    def __iter__(self):
        return iter(list(self._orders))

    def start(self, id: str, side: str, session: str, tag: str) -> AlgoOrder:
        algo = AlgoOrder(id=id, side=side, session=session, tag=tag)
        self._orders.append(algo)
        logger.debug(f"Algo order started: {algo}")
        return algo

    def end(self, id: str) -> None:
        self._orders = [item for item in self._orders if item.id != id]

    def find(self, id: str) -> Optional[AlgoOrder]:
        return next((item for item in self._orders if item.id == id), None)

    def is_cancelled(self, id: str) -> bool:
        """Cancelled, or no longer registered at all."""
        algo = self.find(id)
        return True if algo is None else algo.cancelled

    def cancel(self, which: str, tag: Optional[str] = None, session: Optional[str] = None) -> int:
        """
        Flag matching algo orders as cancelled.

        Args:
            which: all, buy, sell, tagged or session
            tag: Tag to match for `tagged`
            session: Session to match for `session`

        Returns:
            Number of orders flagged
        """
        which = str(which).lower()
        count = 0
        for item in self._orders:
            matched = (
                which == CancelSelector.ALL.value
                or (which in (CancelSelector.BUY.value, CancelSelector.SELL.value) and item.side == which)
                or (which == CancelSelector.TAGGED.value and item.tag == tag)
                or (which == CancelSelector.SESSION.value and item.session == session)
            )
            if matched:
                item.cancelled = True
                count += 1

        if count:
            logger.info(f"Flagged {count} algorithmic order(s) as cancelled ({which})")
        return count


# ============================================================
# SESSION ORDERS
# ============================================================

class SessionOrderBook:
    """Orders placed by each session, keyed by tag."""

    def __init__(self):
        self._entries: List[SessionOrder] = []

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, session: str, tag: str, order: Order) -> None:
        self._entries.append(SessionOrder(session=session, tag=tag, order=order))

    def remove(self, session: str, order: Order) -> None:
        """Drop an order (matched by identity, then by id)."""
        self._entries = [
            entry for entry in self._entries
            if entry.order is not order and entry.order.id != order.id
        ]

    def update(self, session: str, tag: str, old_order: Order, new_order: Order) -> None:
        """Replace an order; the id may have changed."""
        self.remove(session, old_order)
        self.add(session, tag, new_order)

    def find(self, session: str, tag: Optional[str] = None) -> List[Order]:
        """Orders of a session, optionally only those with `tag`."""
        return [
            entry.order for entry in self._entries
            if entry.session == session and (tag is None or entry.tag == tag)
        ]
