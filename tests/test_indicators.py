"""Deterministic tests for the indicator calculators.

All tests use fixed candle fixtures. Same input = same output, always.
"""

import math

import pytest

from confluence.strategy.candle_math import (
    is_valid_candle,
    population_std,
    typical_price,
    vwap,
)
from confluence.strategy.indicators import (
    calculate_pivot_points,
    calculate_rsi,
    calculate_vwap_bands,
    classify_heikin_ashi,
    heikin_ashi_series,
    pivots_from_candles,
)
from confluence.strategy.models import CandleData, HeikinAshiColor


# ── Candle fixtures ──────────────────────────────────────────────────────


def _make_candle(
    o: float, h: float, l: float, c: float, vol: float = 1000.0, t: int = 0
) -> CandleData:
    return CandleData(time=t, open=o, high=h, low=l, close=c, volume=vol)


def _flat_candle(price: float, vol: float = 1.0) -> CandleData:
    return _make_candle(price, price, price, price, vol)


# ── Candle math ──────────────────────────────────────────────────────────


class TestCandleMath:
    def test_typical_price(self):
        assert typical_price(_make_candle(1, 12, 6, 9)) == pytest.approx(9.0)

    def test_vwap_weighted(self):
        assert vwap([9.0, 11.0], [1.0, 3.0]) == pytest.approx(10.5)

    def test_vwap_zero_volume(self):
        assert vwap([9.0, 11.0], [0.0, 0.0]) == 0.0

    def test_vwap_length_mismatch(self):
        with pytest.raises(ValueError, match="length"):
            vwap([1.0, 2.0], [1.0])

    def test_population_std(self):
        assert population_std([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)

    def test_population_std_empty(self):
        with pytest.raises(ValueError):
            population_std([])

    def test_invalid_candles(self):
        assert is_valid_candle(_make_candle(1, 2, 1, 2))
        assert not is_valid_candle(_make_candle(1, math.nan, 1, 2))
        assert not is_valid_candle(_make_candle(1, 2, 1, 2, vol=-5))
        assert not is_valid_candle(_make_candle(1, math.inf, 1, 2))


# ── Pivot points ─────────────────────────────────────────────────────────


class TestPivotPoints:
    def test_classic_pivots(self):
        """H=100, L=90, C=95 → P=95, R1=100, S1=90, R3=110, S3=80."""
        pp = calculate_pivot_points(100.0, 90.0, 95.0)
        assert pp.p == pytest.approx(95.0)
        assert pp.r1 == pytest.approx(100.0)
        assert pp.s1 == pytest.approx(90.0)
        assert pp.r2 == pytest.approx(105.0)
        assert pp.s2 == pytest.approx(85.0)
        assert pp.r3 == pytest.approx(110.0)
        assert pp.s3 == pytest.approx(80.0)

    def test_fibonacci_levels(self):
        pp = calculate_pivot_points(100.0, 90.0, 95.0)
        assert pp.fibo_ret_buy_50 == pytest.approx(95.0)
        assert pp.fibo_ret_buy_61 == pytest.approx(93.82)
        assert pp.fibo_ret_buy_100 == pytest.approx(90.0)
        assert pp.fibo_ret_buy_200 == pytest.approx(80.0)
        assert pp.fibo_ret_sell_50 == pytest.approx(95.0)
        assert pp.fibo_ret_sell_61 == pytest.approx(96.18)
        assert pp.fibo_ret_sell_100 == pytest.approx(100.0)
        assert pp.fibo_ret_sell_200 == pytest.approx(110.0)
        assert pp.fibo_ext_buy_100 == pytest.approx(110.0)
        assert pp.fibo_ext_buy_200 == pytest.approx(120.0)
        assert pp.fibo_ext_sell_100 == pytest.approx(80.0)
        assert pp.fibo_ext_sell_200 == pytest.approx(70.0)

    @pytest.mark.parametrize(
        "high,low,close",
        [(100.0, 90.0, 95.0), (64_000.0, 61_500.0, 63_900.0), (1.1, 1.05, 1.06)],
    )
    def test_ordering_invariant(self, high, low, close):
        pp = calculate_pivot_points(high, low, close)
        assert pp.s3 < pp.s2 < pp.s1 < pp.p < pp.r1 < pp.r2 < pp.r3

    def test_degenerate_range_collapses_onto_p(self):
        pp = calculate_pivot_points(50.0, 50.0, 50.0)
        assert pp is not None
        for value in (pp.r1, pp.r2, pp.r3, pp.s1, pp.s2, pp.s3,
                      pp.fibo_ret_buy_61, pp.fibo_ext_sell_200):
            assert value == pytest.approx(pp.p)

    @pytest.mark.parametrize(
        "high,low,close",
        [(math.nan, 90.0, 95.0), (100.0, -1.0, 95.0), (90.0, 100.0, 95.0),
         (100.0, 90.0, math.inf)],
    )
    def test_invalid_inputs_return_none(self, high, low, close):
        assert calculate_pivot_points(high, low, close) is None

    def test_from_candles_uses_previous_day(self):
        daily = [_make_candle(92, 100, 90, 95), _make_candle(95, 300, 1, 2)]
        pp = pivots_from_candles(daily)
        assert pp.p == pytest.approx(95.0)

    def test_from_candles_include_last(self):
        daily = [_make_candle(92, 100, 90, 95)]
        assert pivots_from_candles(daily) is None
        assert pivots_from_candles(daily, include_last=True).p == pytest.approx(95.0)

    def test_from_candles_invalid_candle(self):
        daily = [_make_candle(92, math.nan, 90, 95), _make_candle(95, 96, 94, 95)]
        assert pivots_from_candles(daily) is None


# ── VWAP bands ───────────────────────────────────────────────────────────


class TestVwapBands:
    def test_known_bands(self):
        """Typical 9 (vol 1) and 11 (vol 3) → VWAP 10.5, σ 1."""
        bands = calculate_vwap_bands([_flat_candle(9.0, 1.0), _flat_candle(11.0, 3.0)])
        assert bands.vwap == pytest.approx(10.5)
        assert bands.sigma == pytest.approx(1.0)
        assert len(bands.bands) == 5
        assert bands.band(1).upper == pytest.approx(11.5)
        assert bands.band(1).lower == pytest.approx(9.5)
        assert bands.band(5).upper == pytest.approx(15.5)
        assert bands.band(5).lower == pytest.approx(5.5)

    def test_sigma_uses_unweighted_mean(self):
        """σ is measured about the plain mean of typical prices, not VWAP."""
        bands = calculate_vwap_bands([_flat_candle(9.0, 1.0), _flat_candle(11.0, 99.0)])
        assert bands.sigma == pytest.approx(1.0)

    def test_bands_are_symmetric_and_widening(self):
        bands = calculate_vwap_bands(
            [_make_candle(10, 12, 9, 11), _make_candle(11, 13, 10, 12, 500),
             _make_candle(12, 12.5, 10, 10.5, 800)]
        )
        for k in range(1, 6):
            band = bands.band(k)
            assert band.upper - bands.vwap == pytest.approx(bands.vwap - band.lower)
        for k in range(1, 5):
            assert bands.band(k + 1).upper > bands.band(k).upper
            assert bands.band(k + 1).lower < bands.band(k).lower

    def test_equal_typical_prices_collapse(self):
        bands = calculate_vwap_bands([_flat_candle(20.0), _flat_candle(20.0, 7.0)])
        assert bands.sigma == 0.0
        for k in range(1, 6):
            assert bands.band(k).upper == pytest.approx(20.0)
            assert bands.band(k).lower == pytest.approx(20.0)

    def test_zero_volume_gives_zero_vwap(self):
        bands = calculate_vwap_bands([_flat_candle(9.0, 0.0), _flat_candle(11.0, 0.0)])
        assert bands.vwap == 0.0

    def test_insufficient_candles(self):
        assert calculate_vwap_bands([]) is None
        assert calculate_vwap_bands([_flat_candle(10.0)]) is None

    def test_invalid_candles_are_dropped(self):
        candles = [_flat_candle(10.0), _make_candle(10, math.nan, 9, 10)]
        assert calculate_vwap_bands(candles) is None


# ── RSI ──────────────────────────────────────────────────────────────────


class TestRSI:
    def test_strictly_rising_is_100(self):
        closes = [float(i) for i in range(1, 21)]
        assert calculate_rsi(closes, 14) == pytest.approx(100.0)

    def test_strictly_falling_is_0(self):
        closes = [float(i) for i in range(20, 0, -1)]
        assert calculate_rsi(closes, 14) == pytest.approx(0.0)

    def test_flat_series_is_100(self):
        assert calculate_rsi([5.0] * 20, 14) == pytest.approx(100.0)

    def test_bounded(self):
        closes = [10, 11, 10.5, 12, 11, 13, 12.5, 12, 14, 13, 13.5, 15, 14, 14.5, 13, 16]
        rsi = calculate_rsi([float(c) for c in closes], 14)
        assert 0.0 <= rsi <= 100.0

    def test_wilder_smoothing(self):
        """19 losses of 1 then a 4-point gain → RSI ≈ 23.5."""
        closes = [float(c) for c in range(199, 179, -1)] + [184.0]
        # avg_gain = 4/14, avg_loss = 13/14
        expected = 100.0 - 100.0 / (1.0 + 4.0 / 13.0)
        assert calculate_rsi(closes, 14) == pytest.approx(expected)

    def test_insufficient_data(self):
        assert calculate_rsi([1.0] * 14, 14) is None
        assert calculate_rsi([], 14) is None

    def test_non_finite_close(self):
        closes = [float(i) for i in range(20)]
        closes[5] = math.nan
        assert calculate_rsi(closes, 14) is None

    def test_rejects_zero_period(self):
        with pytest.raises(ValueError, match="period"):
            calculate_rsi([1.0, 2.0], 0)


# ── Heikin-Ashi ──────────────────────────────────────────────────────────


class TestHeikinAshi:
    def test_series_recursion(self):
        series = heikin_ashi_series(
            [_make_candle(10, 12, 9, 11), _make_candle(11, 14, 10.5, 13.5)]
        )
        assert len(series) == 2
        assert series[0].open == pytest.approx(10.0)
        assert series[0].close == pytest.approx(10.5)
        assert series[1].open == pytest.approx(10.25)
        assert series[1].close == pytest.approx(12.25)
        assert series[1].high == pytest.approx(14.0)
        assert series[1].low == pytest.approx(10.25)

    def test_green(self):
        candles = [_make_candle(10, 12, 9, 11), _make_candle(11, 14, 10.5, 13.5)]
        assert classify_heikin_ashi(candles) == HeikinAshiColor.GREEN

    def test_red(self):
        candles = [_make_candle(10, 12, 9, 11), _make_candle(11, 11, 8, 8)]
        assert classify_heikin_ashi(candles) == HeikinAshiColor.RED

    def test_neutral(self):
        # Second HA open = (10 + 10) / 2 = 10, HA close = 10
        candles = [_flat_candle(10.0), _flat_candle(10.0)]
        assert classify_heikin_ashi(candles) == HeikinAshiColor.NEUTRAL

    def test_needs_two_candles(self):
        assert classify_heikin_ashi([]) is None
        assert classify_heikin_ashi([_make_candle(10, 12, 9, 11)]) is None

    def test_invalid_candle_skipped_without_reset(self):
        candles = [
            _make_candle(10, 12, 9, 11),
            _make_candle(10, math.nan, 9, 11),
            _make_candle(11, 14, 10.5, 13.5),
        ]
        series = heikin_ashi_series(candles)
        assert len(series) == 2
        assert series[1].open == pytest.approx(10.25)
        assert classify_heikin_ashi(candles) == HeikinAshiColor.GREEN
