"""Pivot position narrative and pending-order suggestions — pure functions.

Both helpers feed the presentation layer: they read a ``Signal`` and the
day's ``PivotPoints`` and never alter the decision itself.
"""

from dataclasses import dataclass
from typing import Literal, Optional

from confluence.strategy.models import PivotPoints, Signal, SignalAction

# Price within 0.1 % of a pivot counts as "at" the pivot
PIVOT_PROXIMITY_PCT = 0.1


@dataclass(frozen=True)
class PivotPosition:
    """Where price sits relative to the central pivot."""

    status: Literal["above", "below", "around"]
    sought_levels: tuple[str, ...]  # pivots already left behind
    next_target: Optional[tuple[str, float]]
    range_bounds: Optional[tuple[tuple[str, float], tuple[str, float]]] = None


@dataclass(frozen=True)
class PendingOrder:
    side: Literal["buy", "sell"]
    title: str
    level_label: str
    price: float


def _pivot_ladder(pivots: PivotPoints) -> list[tuple[str, float]]:
    ladder = [
        ("R3", pivots.r3), ("R2", pivots.r2), ("R1", pivots.r1),
        ("P", pivots.p),
        ("S1", pivots.s1), ("S2", pivots.s2), ("S3", pivots.s3),
    ]
    return sorted(ladder, key=lambda item: item[1])


def describe_pivot_position(price: float, pivots: PivotPoints) -> PivotPosition:
    """Classify *price* against P and name the next pivot in play.

    Above P: supports below price were sought, the next R above is the
    target.  Below P: the mirror.  Within the proximity band of P the
    bracketing levels are reported instead.
    """
    tolerance = price * PIVOT_PROXIMITY_PCT / 100.0
    ladder = _pivot_ladder(pivots)

    if price > pivots.p + tolerance:
        sought = tuple(
            label for label, value in ladder
            if value < price - tolerance and label.startswith("S")
        )
        target = next(
            ((label, value) for label, value in ladder
             if value > price + tolerance and label.startswith("R")),
            None,
        )
        return PivotPosition("above", sought, target)

    if price < pivots.p - tolerance:
        sought = tuple(
            label for label, value in reversed(ladder)
            if value > price + tolerance and label.startswith("R")
        )
        target = next(
            ((label, value) for label, value in reversed(ladder)
             if value < price - tolerance and label.startswith("S")),
            None,
        )
        return PivotPosition("below", sought, target)

    below = next(
        ((label, value) for label, value in reversed(ladder) if value < price),
        None,
    )
    above = next(
        ((label, value) for label, value in ladder if value > price),
        None,
    )
    bounds = (below, above) if below and above else None
    return PivotPosition("around", (), None, bounds)


def suggest_pending_orders(signal: Signal, pivots: PivotPoints) -> list[PendingOrder]:
    """Limit orders that complement the current signal.

    * Buy → sell limits (take-profit) at the VWAP and Fibonacci targets
      and at R1/R2 above price.
    * Sell → buy limits at the VWAP and Fibonacci targets and at S1/S2
      below price.
    * Hold → reversal limits: buy at S1/S2 below price, sell at R1/R2
      above price.
    """
    price = signal.current_price
    orders: list[PendingOrder] = []

    if signal.action == SignalAction.BUY:
        if signal.vwap_band_target is not None:
            orders.append(PendingOrder(
                "sell", "TP / sell at VWAP target",
                signal.vwap_band_target.label, signal.vwap_band_target.value,
            ))
        if signal.fibo_retracement_target is not None:
            orders.append(PendingOrder(
                "sell", "TP / sell at Fibonacci target",
                signal.fibo_retracement_target.label,
                signal.fibo_retracement_target.value,
            ))
        for label, value in (("R1", pivots.r1), ("R2", pivots.r2)):
            if value > price:
                orders.append(PendingOrder("sell", f"TP / sell at {label}", label, value))

    elif signal.action == SignalAction.SELL:
        if signal.vwap_band_target is not None:
            orders.append(PendingOrder(
                "buy", "TP / buy at VWAP target",
                signal.vwap_band_target.label, signal.vwap_band_target.value,
            ))
        if signal.fibo_retracement_target is not None:
            orders.append(PendingOrder(
                "buy", "TP / buy at Fibonacci target",
                signal.fibo_retracement_target.label,
                signal.fibo_retracement_target.value,
            ))
        for label, value in (("S1", pivots.s1), ("S2", pivots.s2)):
            if value < price:
                orders.append(PendingOrder("buy", f"TP / buy at {label}", label, value))

    else:
        for label, value in (("S1", pivots.s1), ("S2", pivots.s2)):
            if value < price:
                orders.append(
                    PendingOrder("buy", f"Reversal buy limit at {label}", label, value)
                )
        for label, value in (("R1", pivots.r1), ("R2", pivots.r2)):
            if value > price:
                orders.append(
                    PendingOrder("sell", f"Reversal sell limit at {label}", label, value)
                )

    return orders
