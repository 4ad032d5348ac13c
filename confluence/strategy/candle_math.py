"""Candle arithmetic helpers — typical price, VWAP accumulation, dispersion."""

import math

from confluence.strategy.models import CandleData


def typical_price(candle: CandleData) -> float:
    """Return ``(high + low + close) / 3``."""
    return (candle.high + candle.low + candle.close) / 3.0


def is_valid_candle(candle: CandleData) -> bool:
    """True when every OHLCV field is finite and non-negative."""
    values = (candle.open, candle.high, candle.low, candle.close, candle.volume)
    return all(math.isfinite(v) and v >= 0 for v in values)


def vwap(prices: list[float], volumes: list[float]) -> float:
    """Volume-weighted average of *prices*.

    Returns ``0.0`` when the total volume is zero.
    """
    if len(prices) != len(volumes):
        raise ValueError(
            f"prices and volumes differ in length: {len(prices)} != {len(volumes)}"
        )
    total_volume = sum(volumes)
    if total_volume == 0:
        return 0.0
    return sum(p * v for p, v in zip(prices, volumes)) / total_volume


def mean(values: list[float]) -> float:
    if not values:
        raise ValueError("mean of an empty sequence")
    return sum(values) / len(values)


def population_std(values: list[float], centre: float | None = None) -> float:
    """Population standard deviation of *values* about *centre*.

    *centre* defaults to the arithmetic mean of *values*.
    """
    if not values:
        raise ValueError("standard deviation of an empty sequence")
    if centre is None:
        centre = mean(values)
    variance = sum((x - centre) ** 2 for x in values) / len(values)
    return math.sqrt(variance)
