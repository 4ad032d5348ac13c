"""Strategy data models — typed representations for indicator and signal outputs."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SignalAction(str, Enum):
    """Discrete recommendation emitted by the decision engine."""

    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class LevelCategory(str, Enum):
    """Family a price level belongs to, fixed when the level is built."""

    PIVOT = "pivot"
    FIBO_RETRACEMENT = "fibo_retracement"
    FIBO_EXTENSION = "fibo_extension"
    VWAP_BAND = "vwap_band"


class Direction(str, Enum):
    """Which side of price counts as "behind" when selecting levels.

    ``SUPPORT`` is used when price is expected to rise (levels below price
    have been passed); ``RESISTANCE`` when price is expected to fall.
    """

    SUPPORT = "support"
    RESISTANCE = "resistance"


class HeikinAshiColor(str, Enum):
    GREEN = "green"
    RED = "red"
    NEUTRAL = "neutral"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


# ── Market data ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CandleData:
    """A single OHLCV bar, oldest-to-newest ordering is the caller's job."""

    time: int  # open time, epoch milliseconds
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class HeikinAshiCandle:
    """A synthetic Heikin-Ashi bar derived from raw candles."""

    time: int
    open: float
    high: float
    low: float
    close: float


# ── Indicator outputs ────────────────────────────────────────────────────


@dataclass(frozen=True)
class PivotPoints:
    """Classic floor pivots plus Fibonacci levels for one completed period."""

    p: float
    r1: float
    r2: float
    r3: float
    s1: float
    s2: float
    s3: float
    # Retracements
    fibo_ret_buy_50: float
    fibo_ret_buy_61: float
    fibo_ret_buy_100: float
    fibo_ret_buy_200: float
    fibo_ret_sell_50: float
    fibo_ret_sell_61: float
    fibo_ret_sell_100: float
    fibo_ret_sell_200: float
    # Extensions
    fibo_ext_buy_100: float
    fibo_ext_buy_200: float
    fibo_ext_sell_100: float
    fibo_ext_sell_200: float


@dataclass(frozen=True)
class VwapBand:
    upper: float
    lower: float


@dataclass(frozen=True)
class VwapBandSet:
    """VWAP line and its five σ-envelopes for a single timeframe."""

    vwap: float
    sigma: float
    bands: tuple[VwapBand, ...]  # index 0 is band 1

    def band(self, k: int) -> VwapBand:
        """Return band *k* (1-based)."""
        return self.bands[k - 1]


@dataclass(frozen=True)
class PriceLevel:
    """A labelled price level.

    ``side`` is ``"buy"`` for levels that act as entries on the long side
    (supports, lower bands, buy-side Fibonacci), ``"sell"`` for the mirror
    set and ``None`` for the central pivot.
    """

    label: str
    value: float
    category: LevelCategory
    side: Optional[str] = None


# ── Sentiment ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Headline:
    title: str
    source: str


@dataclass(frozen=True)
class SentimentHint:
    """Advisory news sentiment; never triggers a signal on its own."""

    overall_sentiment: Sentiment
    summary: str
    headlines: tuple[Headline, ...] = ()


# ── Signal ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EntryRange:
    min: float
    max: float


@dataclass(frozen=True)
class HoldingPeriod:
    period: str
    reason: str
    status: str  # "signal_active" or "no_signal"


@dataclass(frozen=True)
class Signal:
    """Decision engine output for one evaluation cycle."""

    action: SignalAction
    current_price: float
    entry_range: EntryRange
    stop_loss: float
    take_profit: float
    recommended_holding_period: HoldingPeriod
    timestamp: datetime
    reasons: tuple[str, ...] = ()
    trigger_level: Optional[PriceLevel] = None
    touched_vwap_band: Optional[PriceLevel] = None
    vwap_band_target: Optional[PriceLevel] = None
    touched_fibo_retracement: Optional[PriceLevel] = None
    fibo_retracement_target: Optional[PriceLevel] = None
    fibo_extension_target: Optional[PriceLevel] = None
    closest_support: Optional[PriceLevel] = None
    closest_resistance: Optional[PriceLevel] = None
    heikin_ashi_color: Optional[HeikinAshiColor] = None
    rsi: Optional[float] = None
