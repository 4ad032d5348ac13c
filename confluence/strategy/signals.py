"""Signal decision engine — the confluence rule, pure function, no I/O.

Merges RSI, Heikin-Ashi, the level catalogue and an optional news
sentiment hint into one ``Signal``.  Evaluation order:

1. RSI trigger: ``rsi <= oversold`` → buy, ``rsi >= overbought`` → sell,
   otherwise hold.
2. Heikin-Ashi veto: a red candle vetoes a buy, a green candle vetoes a
   sell.  An agreeing colour adds a confirmation reason; on hold the
   colour is advisory only.
3. Optional cooldown: a direction flip inside the dwell window of the
   caller's last action is downgraded to hold.
4. Buy/sell: trigger level plus touched and target levels per category.
5. Sentiment overlay: confirming or cautionary reason, never changes the
   action.
6. Hold: closest support and resistance around price, informational.

The engine never reads the clock and never substitutes defaults for
missing indicators; it returns ``None`` instead.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional

from confluence.strategy.levels import (
    build_level_catalog,
    closest_resistance,
    closest_support,
    closest_touched_level,
    next_target,
    resistance_levels,
    support_levels,
)
from confluence.strategy.models import (
    Direction,
    EntryRange,
    HeikinAshiColor,
    HoldingPeriod,
    LevelCategory,
    PivotPoints,
    PriceLevel,
    Sentiment,
    SentimentHint,
    Signal,
    SignalAction,
    VwapBandSet,
)

logger = logging.getLogger("confluence")


@dataclass(frozen=True)
class SignalPolicy:
    """Thresholds and the fixed-percentage risk model.

    The percentages are a trading-profile choice, not indicator output.
    """

    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0
    stop_loss_pct: float = 5.0
    take_profit_pct: float = 15.0
    buy_entry_band: tuple[float, float] = (0.998, 1.001)
    sell_entry_band: tuple[float, float] = (0.999, 1.002)
    vwap_proximity_pct: float = 1.0


DEFAULT_POLICY = SignalPolicy()


@dataclass(frozen=True)
class CooldownPolicy:
    """Minimum dwell time before the engine may flip direction.

    The caller owns the history and passes the last non-hold action and
    when it was issued; the policy itself holds no state.
    """

    min_dwell_seconds: float

    def blocks(
        self,
        candidate: SignalAction,
        last_action: Optional[SignalAction],
        last_action_at: Optional[datetime],
        now: datetime,
    ) -> bool:
        """True when *candidate* reverses *last_action* too soon."""
        if self.min_dwell_seconds <= 0:
            return False
        if candidate == SignalAction.HOLD or last_action in (None, SignalAction.HOLD):
            return False
        if last_action_at is None or candidate == last_action:
            return False
        elapsed = (now - last_action_at).total_seconds()
        return elapsed < self.min_dwell_seconds


HOLDING_PERIODS: dict[SignalAction, HoldingPeriod] = {
    SignalAction.BUY: HoldingPeriod(
        period="3-7 days",
        reason="Position trade: let price work from the touched support "
               "towards the next band and Fibonacci targets.",
        status="signal_active",
    ),
    SignalAction.SELL: HoldingPeriod(
        period="3-7 days",
        reason="Position trade: let price work from the touched resistance "
               "towards the next band and Fibonacci targets.",
        status="signal_active",
    ),
    SignalAction.HOLD: HoldingPeriod(
        period="Indefinido",
        reason="No active signal; wait for an RSI extreme confirmed by "
               "Heikin-Ashi.",
        status="no_signal",
    ),
}


# ── Helpers ──────────────────────────────────────────────────────────────


def _fmt(value: float) -> str:
    return f"${value:,.2f}"


def _rsi_candidate(
    rsi: float, policy: SignalPolicy
) -> tuple[SignalAction, str]:
    if rsi <= policy.rsi_oversold:
        return SignalAction.BUY, (
            f"RSI {rsi:.1f} at or below {policy.rsi_oversold:g} (oversold)"
        )
    if rsi >= policy.rsi_overbought:
        return SignalAction.SELL, (
            f"RSI {rsi:.1f} at or above {policy.rsi_overbought:g} (overbought)"
        )
    return SignalAction.HOLD, (
        f"RSI {rsi:.1f} inside the neutral zone "
        f"({policy.rsi_oversold:g}-{policy.rsi_overbought:g})"
    )


def _apply_heikin_ashi(
    candidate: SignalAction,
    color: Optional[HeikinAshiColor],
    reasons: list[str],
) -> SignalAction:
    if color is None:
        if candidate != SignalAction.HOLD:
            reasons.append("Heikin-Ashi unavailable; trend not confirmed")
        return candidate

    if candidate == SignalAction.BUY:
        if color == HeikinAshiColor.RED:
            reasons.append(
                "Warning: Heikin-Ashi is red, contradicting the RSI buy "
                "trigger; buy vetoed"
            )
            return SignalAction.HOLD
        if color == HeikinAshiColor.GREEN:
            reasons.append("Heikin-Ashi green confirms the buy trigger")
        else:
            reasons.append("Heikin-Ashi neutral; buy trigger unconfirmed")
        return candidate

    if candidate == SignalAction.SELL:
        if color == HeikinAshiColor.GREEN:
            reasons.append(
                "Warning: Heikin-Ashi is green, contradicting the RSI sell "
                "trigger; sell vetoed"
            )
            return SignalAction.HOLD
        if color == HeikinAshiColor.RED:
            reasons.append("Heikin-Ashi red confirms the sell trigger")
        else:
            reasons.append("Heikin-Ashi neutral; sell trigger unconfirmed")
        return candidate

    reasons.append(f"Heikin-Ashi trend is {color.value} (advisory only)")
    return candidate


def _vwap_proximity_reasons(
    price: float,
    vwap_lines: Mapping[str, float],
    action: SignalAction,
    proximity_pct: float,
    qualifier: str = "",
) -> list[str]:
    role = "support" if action == SignalAction.BUY else "resistance"
    reasons: list[str] = []
    for timeframe, line in vwap_lines.items():
        if line == 0:
            continue
        distance_pct = abs(price - line) / line * 100.0
        if distance_pct < proximity_pct:
            reasons.append(
                f"Price testing {role} at the {qualifier}{timeframe} VWAP "
                f"({_fmt(line)})"
            )
    return reasons


def _sentiment_reason(
    action: SignalAction, hint: SentimentHint
) -> str:
    sentiment = hint.overall_sentiment
    if action == SignalAction.HOLD or sentiment == Sentiment.NEUTRAL:
        return f"News sentiment {sentiment.value}: {hint.summary}"
    agrees = (
        (action == SignalAction.BUY and sentiment == Sentiment.POSITIVE)
        or (action == SignalAction.SELL and sentiment == Sentiment.NEGATIVE)
    )
    if agrees:
        return f"News sentiment {sentiment.value} supports the {action.value}: {hint.summary}"
    return (
        f"Caution: news sentiment {sentiment.value} contradicts the "
        f"{action.value}: {hint.summary}"
    )


def _entry_range(price: float, action: SignalAction, policy: SignalPolicy) -> EntryRange:
    if action == SignalAction.BUY:
        low, high = policy.buy_entry_band
    elif action == SignalAction.SELL:
        low, high = policy.sell_entry_band
    else:
        low, high = 1.0, 1.0
    return EntryRange(min=price * low, max=price * high)


def _risk_levels(
    price: float, action: SignalAction, policy: SignalPolicy
) -> tuple[float, float]:
    sl = policy.stop_loss_pct / 100.0
    tp = policy.take_profit_pct / 100.0
    if action == SignalAction.BUY:
        return price * (1 - sl), price * (1 + tp)
    if action == SignalAction.SELL:
        return price * (1 + sl), price * (1 - tp)
    return price, price


# ── Engine ───────────────────────────────────────────────────────────────


def evaluate_signal(
    current_price: float,
    pivots: Optional[PivotPoints],
    vwap_sets: Mapping[str, VwapBandSet],
    rsi: Optional[float],
    heikin_ashi_color: Optional[HeikinAshiColor],
    timestamp: datetime,
    sentiment: Optional[SentimentHint] = None,
    previous_vwaps: Optional[Mapping[str, float]] = None,
    policy: SignalPolicy = DEFAULT_POLICY,
    cooldown: Optional[CooldownPolicy] = None,
    last_action: Optional[SignalAction] = None,
    last_action_at: Optional[datetime] = None,
) -> Optional[Signal]:
    """Evaluate the confluence rule for one cycle.

    Args:
        current_price: Live price of the instrument.
        pivots: Pivot/Fibonacci levels of the last completed day.
        vwap_sets: Timeframe name → VWAP band set, in display order.
        rsi: Latest RSI value.
        heikin_ashi_color: Colour of the latest Heikin-Ashi candle, or
            ``None`` when it could not be computed.
        timestamp: Evaluation time stamped on the signal.
        sentiment: Latest news sentiment hint, if any.
        previous_vwaps: Timeframe name → VWAP line of the previous
            period (day, week, month).  Only adds proximity reasons.
        policy: Thresholds and risk percentages.
        cooldown: Optional dwell-time policy; needs *last_action* and
            *last_action_at* from the caller.

    Returns:
        ``Signal`` for this cycle, or ``None`` when RSI, pivots or VWAP
        bands are missing or the price is unusable.
    """
    if not math.isfinite(current_price) or current_price <= 0:
        logger.debug("No signal: unusable price %r", current_price)
        return None
    if rsi is None or not math.isfinite(rsi):
        logger.debug("No signal: RSI unavailable")
        return None
    if pivots is None:
        logger.debug("No signal: pivot points unavailable")
        return None
    if not vwap_sets:
        logger.debug("No signal: VWAP bands unavailable")
        return None

    reasons: list[str] = []
    catalog = build_level_catalog(pivots, vwap_sets)

    # 1. RSI trigger
    candidate, rsi_reason = _rsi_candidate(rsi, policy)
    reasons.append(rsi_reason)

    # 2. Heikin-Ashi confirmation / veto
    action = _apply_heikin_ashi(candidate, heikin_ashi_color, reasons)

    # 3. Cooldown
    if cooldown is not None and cooldown.blocks(
        action, last_action, last_action_at, timestamp
    ):
        reasons.append(
            f"Cooldown: last {last_action.value} is younger than "
            f"{cooldown.min_dwell_seconds:g}s; {action.value} deferred"
        )
        action = SignalAction.HOLD

    trigger: Optional[PriceLevel] = None
    touched_band: Optional[PriceLevel] = None
    touched_fibo: Optional[PriceLevel] = None
    band_target: Optional[PriceLevel] = None
    fibo_target: Optional[PriceLevel] = None
    ext_target: Optional[PriceLevel] = None
    support: Optional[PriceLevel] = None
    resistance: Optional[PriceLevel] = None

    # 4. Level confluence
    if action != SignalAction.HOLD:
        if action == SignalAction.BUY:
            direction = Direction.SUPPORT
            candidates = support_levels(catalog)
            ext_side = "buy"
        else:
            direction = Direction.RESISTANCE
            candidates = resistance_levels(catalog)
            ext_side = "sell"

        trigger = closest_touched_level(candidates, current_price, direction)
        touched_band = closest_touched_level(
            candidates, current_price, direction, LevelCategory.VWAP_BAND
        )
        touched_fibo = closest_touched_level(
            candidates, current_price, direction, LevelCategory.FIBO_RETRACEMENT
        )
        band_target = next_target(
            catalog, current_price, direction, LevelCategory.VWAP_BAND
        )
        fibo_target = next_target(
            catalog, current_price, direction, LevelCategory.FIBO_RETRACEMENT
        )
        ext_target = next_target(
            catalog, current_price, direction, LevelCategory.FIBO_EXTENSION, ext_side
        )

        if trigger is not None:
            reasons.append(f"Price near {trigger.label} ({_fmt(trigger.value)})")
        if touched_band is not None and touched_band != trigger:
            reasons.append(
                f"Price touched the {touched_band.label} ({_fmt(touched_band.value)})"
            )
        if touched_fibo is not None and touched_fibo != trigger:
            reasons.append(
                f"Price touched Fibonacci {touched_fibo.label} "
                f"({_fmt(touched_fibo.value)})"
            )
        reasons.extend(
            _vwap_proximity_reasons(
                current_price,
                {tf: bs.vwap for tf, bs in vwap_sets.items()},
                action,
                policy.vwap_proximity_pct,
            )
        )
        if previous_vwaps:
            reasons.extend(
                _vwap_proximity_reasons(
                    current_price,
                    previous_vwaps,
                    action,
                    policy.vwap_proximity_pct,
                    qualifier="previous ",
                )
            )
        if band_target is not None:
            reasons.append(
                f"Next VWAP target is the {band_target.label} ({_fmt(band_target.value)})"
            )
        if fibo_target is not None:
            reasons.append(
                f"Next Fibonacci target is {fibo_target.label} ({_fmt(fibo_target.value)})"
            )
        if ext_target is not None:
            reasons.append(
                f"Extended target (Fibonacci extension) at {ext_target.label} "
                f"({_fmt(ext_target.value)})"
            )

    # 5. Sentiment overlay
    if sentiment is not None:
        reasons.append(_sentiment_reason(action, sentiment))

    # 6. Hold context
    if action == SignalAction.HOLD:
        support = closest_support(catalog, current_price)
        resistance = closest_resistance(catalog, current_price)
        if support is not None and resistance is not None:
            reasons.append(
                f"Price ranging between {support.label} ({_fmt(support.value)}) "
                f"and {resistance.label} ({_fmt(resistance.value)})"
            )

    stop_loss, take_profit = _risk_levels(current_price, action, policy)

    return Signal(
        action=action,
        current_price=current_price,
        entry_range=_entry_range(current_price, action, policy),
        stop_loss=stop_loss,
        take_profit=take_profit,
        recommended_holding_period=HOLDING_PERIODS[action],
        timestamp=timestamp,
        reasons=tuple(reasons),
        trigger_level=trigger,
        touched_vwap_band=touched_band,
        vwap_band_target=band_target,
        touched_fibo_retracement=touched_fibo,
        fibo_retracement_target=fibo_target,
        fibo_extension_target=ext_target,
        closest_support=support,
        closest_resistance=resistance,
        heikin_ashi_color=heikin_ashi_color,
        rsi=rsi,
    )
