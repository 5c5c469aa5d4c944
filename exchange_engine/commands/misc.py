"""
Exchange Engine - Utility Commands.

wait(duration), balance(), notify(msg), continue(if, value),
stop(if, value).
"""

import logging
from typing import Any, Dict, Iterable

from ..errors import AbortSequenceError
from ..sizing import assign_params, split_symbol, time_to_seconds
from ..types import CommandArg, Side
from .base import CommandContext
from .conditions import evaluate_condition


logger = logging.getLogger(__name__)


async def wait(context: CommandContext, args: Iterable[CommandArg]) -> int:
    """Pause the command sequence."""
    ex = context.exchange
    p = assign_params({"duration": "10s"}, args)
    seconds = time_to_seconds(p["duration"])

    ex.log.progress(f"Waiting for {seconds} seconds.")
    await ex.wait_seconds(seconds)
    return seconds


async def balance(context: CommandContext, args: Iterable[CommandArg]) -> Dict[str, Any]:
    """Report total and available balances at the current midpoint."""
    ex = context.exchange
    symbol = context.symbol
    asset, currency = split_symbol(symbol)

    ticker = await ex.ticker(symbol)
    balances = await ex.wallet_balances()
    price = ticker.mid

    summary = {
        "asset": asset,
        "currency": currency,
        "price": price,
        "total": ex.balance_total_asset(symbol, balances, price),
        "total_fiat": ex.balance_total_fiat(symbol, balances, price),
        "available_to_buy": ex.balance_available_asset(symbol, balances, price, Side.BUY.value),
        "available_to_sell": ex.balance_available_asset(symbol, balances, price, Side.SELL.value),
    }
    ex.log.results(
        f"Balance: {summary['total']} {asset} ({summary['total_fiat']} {currency}), "
        f"available to buy {summary['available_to_buy']}, to sell {summary['available_to_sell']}"
    )
    return summary


async def notify(context: CommandContext, args: Iterable[CommandArg]) -> str:
    p = assign_params({"msg": ""}, args)
    context.exchange.log.results(p["msg"])
    return p["msg"]


async def continue_if(context: CommandContext, args: Iterable[CommandArg]) -> bool:
    """Carry on only while the condition holds."""
    p = assign_params({"if": "always", "value": ""}, args)
    if not await evaluate_condition(context, p["if"], p["value"]):
        context.exchange.log.results(f"Condition '{p['if']}' is false, stopping.")
        raise AbortSequenceError(f"Continue condition {p['if']} not met", context=dict(p))

    context.exchange.log.progress(f"Condition '{p['if']}' is true, continuing.")
    return True


async def stop_if(context: CommandContext, args: Iterable[CommandArg]) -> bool:
    """Stop the sequence once the condition holds."""
    p = assign_params({"if": "always", "value": ""}, args)
    if await evaluate_condition(context, p["if"], p["value"]):
        context.exchange.log.results(f"Condition '{p['if']}' is true, stopping.")
        raise AbortSequenceError(f"Stop condition {p['if']} met", context=dict(p))

    context.exchange.log.progress(f"Condition '{p['if']}' is false, continuing.")
    return False
