"""Technical indicators — Pivots/Fibonacci, VWAP bands, RSI, Heikin-Ashi.

Pure functions, no I/O.  Insufficient or invalid input yields ``None``
rather than an exception so the caller can skip the cycle.
"""

import math
from typing import Optional

from confluence.strategy.candle_math import (
    is_valid_candle,
    mean,
    population_std,
    typical_price,
    vwap,
)
from confluence.strategy.models import (
    CandleData,
    HeikinAshiCandle,
    HeikinAshiColor,
    PivotPoints,
    VwapBand,
    VwapBandSet,
)

FIBO_RETRACEMENT_RATIOS = (0.5, 0.618, 1.0, 2.0)
FIBO_EXTENSION_RATIOS = (1.0, 2.0)
VWAP_BAND_COUNT = 5


# ── Pivot points ─────────────────────────────────────────────────────────


def calculate_pivot_points(
    high: float, low: float, close: float
) -> Optional[PivotPoints]:
    """Classic floor pivots and Fibonacci levels from one completed period.

    Formulas::

        P  = (H + L + C) / 3          range = H - L
        R1 = 2P - L    S1 = 2P - H
        R2 = P + range S2 = P - range
        R3 = H + 2(P - L)  S3 = L - 2(H - P)

    Fibonacci retracements measure down from the high (buy side) and up
    from the low (sell side) at 50 %, 61.8 %, 100 % and 200 % of the range.
    Extensions project 100 % and 200 % of the range beyond the high (buy)
    and below the low (sell).

    ``high == low`` is legal and collapses every level onto P.

    Returns ``None`` when any input is non-finite or negative, or when
    ``high < low``.
    """
    triple = (high, low, close)
    if not all(math.isfinite(v) and v >= 0 for v in triple):
        return None
    if high < low:
        return None

    p = (high + low + close) / 3.0
    rng = high - low

    ret_buy = [high - rng * r for r in FIBO_RETRACEMENT_RATIOS]
    ret_sell = [low + rng * r for r in FIBO_RETRACEMENT_RATIOS]

    return PivotPoints(
        p=p,
        r1=2 * p - low,
        s1=2 * p - high,
        r2=p + rng,
        s2=p - rng,
        r3=high + 2 * (p - low),
        s3=low - 2 * (high - p),
        fibo_ret_buy_50=ret_buy[0],
        fibo_ret_buy_61=ret_buy[1],
        fibo_ret_buy_100=ret_buy[2],
        fibo_ret_buy_200=ret_buy[3],
        fibo_ret_sell_50=ret_sell[0],
        fibo_ret_sell_61=ret_sell[1],
        fibo_ret_sell_100=ret_sell[2],
        fibo_ret_sell_200=ret_sell[3],
        fibo_ext_buy_100=high + rng * FIBO_EXTENSION_RATIOS[0],
        fibo_ext_buy_200=high + rng * FIBO_EXTENSION_RATIOS[1],
        fibo_ext_sell_100=low - rng * FIBO_EXTENSION_RATIOS[0],
        fibo_ext_sell_200=low - rng * FIBO_EXTENSION_RATIOS[1],
    )


def pivots_from_candles(
    daily: list[CandleData], include_last: bool = False
) -> Optional[PivotPoints]:
    """Pivot points from the last completed daily candle.

    By default the final candle in *daily* is treated as the still-forming
    session and the one before it is used.  Pass ``include_last=True``
    when *daily* only holds completed candles.
    """
    needed = 1 if include_last else 2
    if len(daily) < needed:
        return None
    candle = daily[-1] if include_last else daily[-2]
    if not is_valid_candle(candle):
        return None
    return calculate_pivot_points(candle.high, candle.low, candle.close)


# ── VWAP bands ───────────────────────────────────────────────────────────


def calculate_vwap_bands(candles: list[CandleData]) -> Optional[VwapBandSet]:
    """VWAP with five standard-deviation envelopes for one timeframe.

    Algorithm:
        1. Drop candles with a non-finite or negative field.
        2. typical_i = (high_i + low_i + close_i) / 3
        3. vwap = Σ(typical_i × volume_i) / Σvolume_i  (0 if no volume)
        4. σ = population std-dev of typical_i about their *unweighted*
           arithmetic mean.
        5. band_k = vwap ± k·σ for k in 1..5.

    Returns ``None`` when fewer than two usable candles remain.
    """
    usable = [
        c for c in candles
        if is_valid_candle(c) and math.isfinite(typical_price(c))
    ]
    if len(usable) < 2:
        return None

    typicals = [typical_price(c) for c in usable]
    volumes = [c.volume for c in usable]

    line = vwap(typicals, volumes)
    sigma = population_std(typicals, mean(typicals))

    bands = tuple(
        VwapBand(upper=line + k * sigma, lower=line - k * sigma)
        for k in range(1, VWAP_BAND_COUNT + 1)
    )
    return VwapBandSet(vwap=line, sigma=sigma, bands=bands)


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(closes: list[float], period: int = 14) -> Optional[float]:
    """Latest Wilder-smoothed Relative Strength Index.

    Algorithm (Wilder-smoothed):
        1. delta = close[i] - close[i-1]
        2. Separate gains (positive) and losses (|negative|).
        3. Seed average gain/loss = SMA of first *period* deltas.
        4. Subsequent: avg = (prev_avg × (period-1) + current) / period
        5. RSI = 100 if avg_loss == 0 else 100 - 100 / (1 + avg_gain/avg_loss)

    Returns ``None`` when ``len(closes) <= period`` or a close is not
    finite.
    """
    if period < 1:
        raise ValueError(f"period must be at least 1, got {period}")
    if len(closes) <= period:
        return None
    if not all(math.isfinite(c) for c in closes):
        return None

    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]
    gains = [max(d, 0.0) for d in deltas]
    losses = [abs(min(d, 0.0)) for d in deltas]

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


# ── Heikin-Ashi ──────────────────────────────────────────────────────────


def heikin_ashi_series(candles: list[CandleData]) -> list[HeikinAshiCandle]:
    """Transform raw candles into Heikin-Ashi candles.

    ``ha_close = (O + H + L + C) / 4``; the first ``ha_open`` is the raw
    open, later ones average the previous synthetic open and close.
    Invalid raw candles are skipped without restarting the recursion.
    """
    series: list[HeikinAshiCandle] = []
    for c in candles:
        if not is_valid_candle(c):
            continue
        ha_close = (c.open + c.high + c.low + c.close) / 4.0
        if series:
            prev = series[-1]
            ha_open = (prev.open + prev.close) / 2.0
        else:
            ha_open = c.open
        series.append(
            HeikinAshiCandle(
                time=c.time,
                open=ha_open,
                high=max(c.high, ha_open, ha_close),
                low=min(c.low, ha_open, ha_close),
                close=ha_close,
            )
        )
    return series


def classify_heikin_ashi(candles: list[CandleData]) -> Optional[HeikinAshiColor]:
    """Colour of the most recent Heikin-Ashi candle.

    Returns ``None`` when fewer than two usable candles are available.
    """
    series = heikin_ashi_series(candles)
    if len(series) < 2:
        return None
    last = series[-1]
    if last.close > last.open:
        return HeikinAshiColor.GREEN
    if last.close < last.open:
        return HeikinAshiColor.RED
    return HeikinAshiColor.NEUTRAL
