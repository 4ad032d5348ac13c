"""Tests for the level catalogue and the touched / target selector."""

import pytest

from confluence.strategy.indicators import calculate_pivot_points
from confluence.strategy.levels import (
    build_level_catalog,
    closest_resistance,
    closest_support,
    closest_touched_level,
    next_target,
    resistance_levels,
    support_levels,
    vwap_band_levels,
)
from confluence.strategy.models import (
    Direction,
    LevelCategory,
    PriceLevel,
    VwapBand,
    VwapBandSet,
)


def _level(label: str, value: float, category=LevelCategory.PIVOT, side=None) -> PriceLevel:
    return PriceLevel(label, value, category, side)


def _band_set(vwap: float, sigma: float) -> VwapBandSet:
    bands = tuple(
        VwapBand(upper=vwap + k * sigma, lower=vwap - k * sigma) for k in range(1, 6)
    )
    return VwapBandSet(vwap=vwap, sigma=sigma, bands=bands)


# ── Catalogue ────────────────────────────────────────────────────────────


class TestLevelCatalog:
    def test_catalog_order_and_size(self):
        pivots = calculate_pivot_points(100.0, 90.0, 95.0)
        catalog = build_level_catalog(
            pivots, {"daily": _band_set(95.0, 2.0), "weekly": _band_set(96.0, 3.0)}
        )
        assert len(catalog) == 7 + 8 + 4 + 10 + 10
        labels = [lvl.label for lvl in catalog]
        assert labels[:7] == ["R3", "R2", "R1", "P", "S1", "S2", "S3"]
        assert labels[7] == "Sell Ret. 200%"
        assert labels[14] == "Buy Ret. 200%"
        assert labels[15:19] == [
            "Buy Ext. 100%", "Buy Ext. 200%", "Sell Ext. 100%", "Sell Ext. 200%",
        ]
        assert labels[19] == "1st Daily Lower Band"
        assert labels[24] == "1st Daily Upper Band"
        assert labels[29] == "1st Weekly Lower Band"
        assert labels[-1] == "5th Weekly Upper Band"

    def test_categories_are_explicit(self):
        pivots = calculate_pivot_points(100.0, 90.0, 95.0)
        catalog = build_level_catalog(pivots, {"daily": _band_set(95.0, 2.0)})
        by_label = {lvl.label: lvl for lvl in catalog}
        assert by_label["S1"].category == LevelCategory.PIVOT
        assert by_label["Buy Ret. 61.8%"].category == LevelCategory.FIBO_RETRACEMENT
        assert by_label["Sell Ext. 200%"].category == LevelCategory.FIBO_EXTENSION
        assert by_label["3rd Daily Lower Band"].category == LevelCategory.VWAP_BAND
        assert by_label["3rd Daily Lower Band"].value == pytest.approx(89.0)
        assert by_label["P"].side is None

    def test_vwap_band_levels_sides(self):
        levels = vwap_band_levels("daily", _band_set(100.0, 1.0))
        assert [lvl.side for lvl in levels] == ["buy"] * 5 + ["sell"] * 5
        assert levels[4].label == "5th Daily Lower Band"
        assert levels[4].value == pytest.approx(95.0)

    def test_support_and_resistance_sets(self):
        pivots = calculate_pivot_points(100.0, 90.0, 95.0)
        catalog = build_level_catalog(pivots, {"daily": _band_set(95.0, 2.0)})
        supports = support_levels(catalog)
        resistances = resistance_levels(catalog)
        assert len(supports) == 3 + 8 + 5
        assert len(resistances) == 3 + 8 + 5
        assert {lvl.label for lvl in supports if lvl.category == LevelCategory.PIVOT} == {
            "S1", "S2", "S3",
        }
        assert all("Upper" not in lvl.label for lvl in supports)
        assert all("Lower" not in lvl.label for lvl in resistances)
        assert not any(lvl.category == LevelCategory.FIBO_EXTENSION for lvl in supports)


# ── Selector ─────────────────────────────────────────────────────────────


class TestClosestTouchedLevel:
    def test_picks_smallest_non_negative_distance(self):
        """Price 100, supports at distance 5, 2, 8 → the one at 2."""
        levels = [_level("A", 95.0), _level("B", 98.0), _level("C", 92.0)]
        picked = closest_touched_level(levels, 100.0, Direction.SUPPORT)
        assert picked.label == "B"

    def test_none_when_all_ahead(self):
        levels = [_level("A", 101.0), _level("B", 105.0)]
        assert closest_touched_level(levels, 100.0, Direction.SUPPORT) is None

    def test_exact_touch_counts(self):
        levels = [_level("A", 100.0), _level("B", 99.0)]
        assert closest_touched_level(levels, 100.0, Direction.SUPPORT).label == "A"

    def test_resistance_mirror(self):
        levels = [_level("A", 95.0), _level("B", 103.0), _level("C", 101.0)]
        picked = closest_touched_level(levels, 100.0, Direction.RESISTANCE)
        assert picked.label == "C"

    def test_tie_breaks_by_input_order(self):
        levels = [_level("first", 98.0), _level("second", 98.0)]
        assert closest_touched_level(levels, 100.0, Direction.SUPPORT).label == "first"
        reordered = list(reversed(levels))
        assert closest_touched_level(reordered, 100.0, Direction.SUPPORT).label == "second"

    def test_category_filter(self):
        levels = [
            _level("pivot", 99.0),
            _level("band", 97.0, LevelCategory.VWAP_BAND, "buy"),
        ]
        picked = closest_touched_level(
            levels, 100.0, Direction.SUPPORT, LevelCategory.VWAP_BAND
        )
        assert picked.label == "band"

    def test_empty_input(self):
        assert closest_touched_level([], 100.0, Direction.SUPPORT) is None

    def test_rejects_unknown_direction(self):
        with pytest.raises(ValueError, match="direction"):
            closest_touched_level([_level("A", 95.0)], 100.0, "sideways")


class TestNextTarget:
    def test_support_target_is_above(self):
        levels = [_level("below", 98.0), _level("far", 110.0), _level("near", 103.0)]
        assert next_target(levels, 100.0, Direction.SUPPORT).label == "near"

    def test_resistance_target_is_below(self):
        levels = [_level("above", 102.0), _level("far", 90.0), _level("near", 97.0)]
        assert next_target(levels, 100.0, Direction.RESISTANCE).label == "near"

    def test_level_at_price_is_not_a_target(self):
        levels = [_level("at", 100.0), _level("above", 104.0)]
        assert next_target(levels, 100.0, Direction.SUPPORT).label == "above"

    def test_side_filter(self):
        levels = [
            _level("Sell Ext. 100%", 101.0, LevelCategory.FIBO_EXTENSION, "sell"),
            _level("Buy Ext. 100%", 110.0, LevelCategory.FIBO_EXTENSION, "buy"),
        ]
        picked = next_target(
            levels, 100.0, Direction.SUPPORT, LevelCategory.FIBO_EXTENSION, "buy"
        )
        assert picked.label == "Buy Ext. 100%"

    def test_none_when_nothing_ahead(self):
        assert next_target([_level("A", 90.0)], 100.0, Direction.SUPPORT) is None


class TestClosestSupportResistance:
    def test_bracket_price(self):
        pivots = calculate_pivot_points(100.0, 90.0, 95.0)
        catalog = build_level_catalog(pivots, {"daily": _band_set(95.0, 2.0)})
        support = closest_support(catalog, 98.0)
        resistance = closest_resistance(catalog, 98.0)
        # 97 is the 1st upper band, 99 the 2nd
        assert support.value == pytest.approx(97.0)
        assert resistance.value == pytest.approx(99.0)
        assert support.value < 98.0 < resistance.value

    def test_strictly_below_and_above(self):
        levels = [_level("at", 100.0), _level("low", 95.0), _level("high", 105.0)]
        assert closest_support(levels, 100.0).label == "low"
        assert closest_resistance(levels, 100.0).label == "high"
