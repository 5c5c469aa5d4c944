"""
Exchange Engine - Cancel Orders Command.

cancelOrders(which, tag)

which: session (default), tagged, all, buy or sell.

Algorithmic orders matching the selector are flagged as
cancelled (they clean up their own child orders on the next
scheduler pass), then matching venue orders are cancelled.
"""

import logging
from typing import Iterable, List

from ..errors import ValidationError
from ..sizing import assign_params
from ..types import CancelSelector, CommandArg, Order
from .base import CommandContext


logger = logging.getLogger(__name__)

SELECTORS = {selector.value for selector in CancelSelector}


async def cancel_orders(context: CommandContext, args: Iterable[CommandArg]) -> List[Order]:
    """
    Cancel orders.

    Returns:
        The orders a cancellation was attempted for
    """
    ex = context.exchange
    p = assign_params({"which": "session", "tag": ""}, args)
    which = p["which"].strip().lower()

    ex.log.progress(f"CANCEL ORDERS - {ex.name}")
    ex.log.progress(p)

    if which not in SELECTORS:
        raise ValidationError(f"Can not cancel '{which}' orders", context={"which": which})

    ex.cancel_algorithmic_orders(which, p["tag"], context.session)

    if which == CancelSelector.SESSION.value:
        orders = ex.find_in_session(context.session)
    elif which == CancelSelector.TAGGED.value:
        orders = ex.find_in_session(context.session, p["tag"])
    else:
        orders = await ex.api.active_orders(context.symbol, which)

    await ex.api.cancel_orders(orders)
    for order in orders:
        ex.remove_from_session(context.session, order)

    ex.log.results(f"Cancelled {len(orders)} order(s) ({which}).")
    return orders
