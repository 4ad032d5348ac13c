"""Level catalogue and selection — pure functions, no I/O.

The catalogue flattens pivots, Fibonacci levels and every VWAP band set
into ``PriceLevel`` records tagged with an explicit category.  The
selector then answers two questions relative to a live price:

* which level has price already reached ("touched") in the trade
  direction, and
* which level is the next target ahead of price.

A level is *touched* when it lies at or behind price: at or below price
for ``Direction.SUPPORT``, at or above price for ``Direction.RESISTANCE``.
Ties on distance resolve to the level that appears first in the input.
"""

from typing import Iterable, Mapping, Optional

from confluence.strategy.models import (
    Direction,
    LevelCategory,
    PivotPoints,
    PriceLevel,
    VwapBandSet,
)

_ORDINALS = {1: "1st", 2: "2nd", 3: "3rd", 4: "4th", 5: "5th"}


def _pivot_levels(pivots: PivotPoints) -> list[PriceLevel]:
    cat = LevelCategory.PIVOT
    return [
        PriceLevel("R3", pivots.r3, cat, "sell"),
        PriceLevel("R2", pivots.r2, cat, "sell"),
        PriceLevel("R1", pivots.r1, cat, "sell"),
        PriceLevel("P", pivots.p, cat, None),
        PriceLevel("S1", pivots.s1, cat, "buy"),
        PriceLevel("S2", pivots.s2, cat, "buy"),
        PriceLevel("S3", pivots.s3, cat, "buy"),
    ]


def _fibo_retracement_levels(pivots: PivotPoints) -> list[PriceLevel]:
    cat = LevelCategory.FIBO_RETRACEMENT
    return [
        PriceLevel("Sell Ret. 200%", pivots.fibo_ret_sell_200, cat, "sell"),
        PriceLevel("Sell Ret. 100%", pivots.fibo_ret_sell_100, cat, "sell"),
        PriceLevel("Sell Ret. 61.8%", pivots.fibo_ret_sell_61, cat, "sell"),
        PriceLevel("Sell Ret. 50%", pivots.fibo_ret_sell_50, cat, "sell"),
        PriceLevel("Buy Ret. 50%", pivots.fibo_ret_buy_50, cat, "buy"),
        PriceLevel("Buy Ret. 61.8%", pivots.fibo_ret_buy_61, cat, "buy"),
        PriceLevel("Buy Ret. 100%", pivots.fibo_ret_buy_100, cat, "buy"),
        PriceLevel("Buy Ret. 200%", pivots.fibo_ret_buy_200, cat, "buy"),
    ]


def _fibo_extension_levels(pivots: PivotPoints) -> list[PriceLevel]:
    cat = LevelCategory.FIBO_EXTENSION
    return [
        PriceLevel("Buy Ext. 100%", pivots.fibo_ext_buy_100, cat, "buy"),
        PriceLevel("Buy Ext. 200%", pivots.fibo_ext_buy_200, cat, "buy"),
        PriceLevel("Sell Ext. 100%", pivots.fibo_ext_sell_100, cat, "sell"),
        PriceLevel("Sell Ext. 200%", pivots.fibo_ext_sell_200, cat, "sell"),
    ]


def vwap_band_levels(timeframe: str, band_set: VwapBandSet) -> list[PriceLevel]:
    """Lower bands 1..5 (buy side) followed by upper bands 1..5 (sell side)."""
    cat = LevelCategory.VWAP_BAND
    tf = timeframe.capitalize()
    lowers = [
        PriceLevel(f"{_ORDINALS[k]} {tf} Lower Band", band.lower, cat, "buy")
        for k, band in enumerate(band_set.bands, start=1)
    ]
    uppers = [
        PriceLevel(f"{_ORDINALS[k]} {tf} Upper Band", band.upper, cat, "sell")
        for k, band in enumerate(band_set.bands, start=1)
    ]
    return lowers + uppers


def build_level_catalog(
    pivots: PivotPoints,
    vwap_sets: Mapping[str, VwapBandSet],
) -> tuple[PriceLevel, ...]:
    """Flatten every computed level into one deterministic sequence.

    Order: pivots (R3 → S3), Fibonacci retracements, Fibonacci
    extensions, then each VWAP band set in *vwap_sets* iteration order.
    """
    levels: list[PriceLevel] = []
    levels.extend(_pivot_levels(pivots))
    levels.extend(_fibo_retracement_levels(pivots))
    levels.extend(_fibo_extension_levels(pivots))
    for timeframe, band_set in vwap_sets.items():
        levels.extend(vwap_band_levels(timeframe, band_set))
    return tuple(levels)


def support_levels(catalog: Iterable[PriceLevel]) -> list[PriceLevel]:
    """S1–S3, every Fibonacci retracement and every lower VWAP band."""
    return [
        lvl for lvl in catalog
        if (lvl.category == LevelCategory.PIVOT and lvl.side == "buy")
        or lvl.category == LevelCategory.FIBO_RETRACEMENT
        or (lvl.category == LevelCategory.VWAP_BAND and lvl.side == "buy")
    ]


def resistance_levels(catalog: Iterable[PriceLevel]) -> list[PriceLevel]:
    """R1–R3, every Fibonacci retracement and every upper VWAP band."""
    return [
        lvl for lvl in catalog
        if (lvl.category == LevelCategory.PIVOT and lvl.side == "sell")
        or lvl.category == LevelCategory.FIBO_RETRACEMENT
        or (lvl.category == LevelCategory.VWAP_BAND and lvl.side == "sell")
    ]


# ── Selection ────────────────────────────────────────────────────────────


def _signed_distance(price: float, level: PriceLevel, direction: Direction) -> float:
    """Distance of *level* behind *price*; negative when it lies ahead."""
    if direction == Direction.SUPPORT:
        return price - level.value
    if direction == Direction.RESISTANCE:
        return level.value - price
    raise ValueError(f"direction must be support or resistance, got '{direction}'")


def _filter(
    levels: Iterable[PriceLevel],
    category: Optional[LevelCategory],
    side: Optional[str],
) -> list[PriceLevel]:
    return [
        lvl for lvl in levels
        if (category is None or lvl.category == category)
        and (side is None or lvl.side == side)
    ]


def _nearest(candidates: list[tuple[float, PriceLevel]]) -> Optional[PriceLevel]:
    # min() keeps the first of equal keys, giving input-order tie-breaks
    if not candidates:
        return None
    return min(candidates, key=lambda pair: pair[0])[1]


def closest_touched_level(
    levels: Iterable[PriceLevel],
    price: float,
    direction: Direction,
    category: Optional[LevelCategory] = None,
) -> Optional[PriceLevel]:
    """Nearest level at or behind *price* in *direction*.

    Returns ``None`` when every candidate lies ahead of price.
    """
    scored: list[tuple[float, PriceLevel]] = []
    for lvl in _filter(levels, category, None):
        dist = _signed_distance(price, lvl, direction)
        if dist >= 0:
            scored.append((dist, lvl))
    return _nearest(scored)


def next_target(
    levels: Iterable[PriceLevel],
    price: float,
    direction: Direction,
    category: Optional[LevelCategory] = None,
    side: Optional[str] = None,
) -> Optional[PriceLevel]:
    """Nearest level strictly ahead of *price* in the expected move.

    For ``Direction.SUPPORT`` (price expected to rise) the target lies
    above price; for ``Direction.RESISTANCE`` below.
    """
    scored: list[tuple[float, PriceLevel]] = []
    for lvl in _filter(levels, category, side):
        dist = _signed_distance(price, lvl, direction)
        if dist < 0:
            scored.append((-dist, lvl))
    return _nearest(scored)


def closest_support(
    levels: Iterable[PriceLevel], price: float
) -> Optional[PriceLevel]:
    """Nearest level strictly below *price*."""
    return next_target(levels, price, Direction.RESISTANCE)


def closest_resistance(
    levels: Iterable[PriceLevel], price: float
) -> Optional[PriceLevel]:
    """Nearest level strictly above *price*."""
    return next_target(levels, price, Direction.SUPPORT)
