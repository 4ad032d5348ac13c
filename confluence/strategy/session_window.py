"""Trading window — London / New York overlap relative to a UTC hour."""

from dataclasses import dataclass
from typing import Literal

from confluence.strategy.models import SignalAction

OVERLAP_START_UTC = 12
OVERLAP_END_UTC = 16
APPROACH_HOURS = 2


@dataclass(frozen=True)
class TradingWindow:
    start: str
    end: str
    status: Literal["in_window", "approaching", "outside"]
    reason: str


def is_in_session(
    utc_hour: int,
    session_start: int = OVERLAP_START_UTC,
    session_end: int = OVERLAP_END_UTC,
) -> bool:
    """Return True if *utc_hour* falls inside [session_start, session_end)."""
    return session_start <= utc_hour < session_end


def trading_window(action: SignalAction, utc_hour: int) -> TradingWindow:
    """Describe the high-liquidity window for *action* at *utc_hour*.

    Raises ``ValueError`` if *utc_hour* is outside 0–23.
    """
    if not 0 <= utc_hour <= 23:
        raise ValueError(f"utc_hour must be within 0-23, got {utc_hour}")

    start = f"{OVERLAP_START_UTC}:00"
    end = f"{OVERLAP_END_UTC}:00"
    overlap = "the London / New York session overlap"

    if is_in_session(utc_hour):
        if action == SignalAction.BUY:
            reason = f"Now: volatility from {overlap} favours the expected rebound from oversold."
        elif action == SignalAction.SELL:
            reason = f"Now: liquidity from {overlap} suits fading the overbought move."
        else:
            reason = f"Peak hours ({overlap}), but indicators say wait for a clearer signal."
        return TradingWindow(start, end, "in_window", reason)

    if OVERLAP_START_UTC - APPROACH_HOURS <= utc_hour < OVERLAP_START_UTC:
        return TradingWindow(
            start, end, "approaching",
            f"High-volatility window opens at {start} UTC; prepare the plan.",
        )

    if utc_hour < OVERLAP_START_UTC:
        reason = f"Off-peak. The next window ({overlap}) opens at {start} UTC."
    else:
        reason = "Today's peak window has passed; trade with caution or wait for tomorrow."
    return TradingWindow(start, end, "outside", reason)
