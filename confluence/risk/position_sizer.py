"""Position sizing — pure math, no I/O.

Turns a signal's entry / stop / target into money amounts for a given
account balance.  Two modes:

* ``conservative`` risks a fixed fraction of the balance per trade.
* ``aggressive`` sizes the position so the take-profit returns the whole
  balance (the "double the account" profile), then derives the risk.
"""

import math
from dataclasses import dataclass
from typing import Literal, Optional

from confluence.strategy.models import PriceLevel, Signal, SignalAction

LEVERAGE_TIERS = (10, 20, 25, 50, 100, 200, 500)
CONSERVATIVE_LEVERAGE = 10
DEFAULT_RISK_PCT = 1.0
LIMIT_ORDER_STOP_PCT = 5.0


@dataclass(frozen=True)
class PositionPlan:
    """Money amounts for one trade setup."""

    entry_price: float
    stop_loss_price: float
    take_profit_price: float
    units: float
    risk_amount: float
    return_amount: float
    risk_pct: float  # of balance
    return_pct: float  # of balance
    risk_reward: float
    leverage: int


def suggest_leverage(position_value: float, balance: float) -> int:
    """Smallest common leverage tier that covers *position_value*.

    Returns 1 when the balance alone covers the position, and the rounded
    up ratio when it exceeds every tier.
    """
    if position_value <= balance:
        return 1
    needed = position_value / balance
    for tier in LEVERAGE_TIERS:
        if tier >= needed:
            return tier
    return math.ceil(needed)


def _plan(
    entry: float,
    stop: float,
    target: float,
    balance: float,
    units: float,
    leverage: int,
) -> PositionPlan:
    sl_dist = abs(entry - stop)
    tp_dist = abs(target - entry)
    risk_amount = units * sl_dist
    return_amount = units * tp_dist
    return PositionPlan(
        entry_price=entry,
        stop_loss_price=stop,
        take_profit_price=target,
        units=units,
        risk_amount=risk_amount,
        return_amount=return_amount,
        risk_pct=risk_amount / balance * 100.0,
        return_pct=return_amount / balance * 100.0,
        risk_reward=tp_dist / sl_dist,
        leverage=leverage,
    )


def size_position(
    signal: Signal,
    balance: float,
    mode: Literal["conservative", "aggressive"] = "conservative",
    risk_pct: float = DEFAULT_RISK_PCT,
) -> Optional[PositionPlan]:
    """Size a market entry at the signal's current price.

    Returns ``None`` for hold signals or when the stop or target sits on
    the entry price.

    Raises:
        ValueError: If *balance* or *risk_pct* is non-positive, or *mode*
            is unknown.
    """
    if balance <= 0:
        raise ValueError(f"balance must be positive, got {balance}")
    if risk_pct <= 0:
        raise ValueError(f"risk_pct must be positive, got {risk_pct}")
    if mode not in ("conservative", "aggressive"):
        raise ValueError(f"mode must be 'conservative' or 'aggressive', got '{mode}'")
    if signal.action == SignalAction.HOLD:
        return None

    entry = signal.current_price
    sl_dist = abs(entry - signal.stop_loss)
    tp_dist = abs(signal.take_profit - entry)
    if sl_dist == 0 or tp_dist == 0:
        return None

    if mode == "conservative":
        units = balance * (risk_pct / 100.0) / sl_dist
        leverage = CONSERVATIVE_LEVERAGE
    else:
        units = balance / tp_dist
        leverage = suggest_leverage(units * entry, balance)

    return _plan(entry, signal.stop_loss, signal.take_profit, balance, units, leverage)


def size_limit_order(
    side: Literal["buy", "sell"],
    entry_level: Optional[PriceLevel],
    target_level: Optional[PriceLevel],
    balance: float,
    risk_pct: float = DEFAULT_RISK_PCT,
    stop_pct: float = LIMIT_ORDER_STOP_PCT,
) -> Optional[PositionPlan]:
    """Size a reversal limit order placed at *entry_level*.

    The stop sits *stop_pct* beyond the entry and the target is
    *target_level*.  Returns ``None`` if either level is missing or the
    distances collapse to zero.
    """
    if balance <= 0:
        raise ValueError(f"balance must be positive, got {balance}")
    if side not in ("buy", "sell"):
        raise ValueError(f"side must be 'buy' or 'sell', got '{side}'")
    if entry_level is None or target_level is None:
        return None

    entry = entry_level.value
    factor = stop_pct / 100.0
    stop = entry * (1 - factor) if side == "buy" else entry * (1 + factor)
    sl_dist = abs(entry - stop)
    if sl_dist == 0 or target_level.value == entry:
        return None

    units = balance * (risk_pct / 100.0) / sl_dist
    leverage = suggest_leverage(units * entry, balance)
    return _plan(entry, stop, target_level.value, balance, units, leverage)
