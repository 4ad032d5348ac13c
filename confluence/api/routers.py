"""Internal API routers — /status, /signal, /levels, /position-size endpoints.

No business logic.  The engine publishes each completed cycle through
``update_snapshot``; endpoints read that snapshot and only derive
presentation helpers from it.
"""

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query

from confluence.risk.position_sizer import size_position
from confluence.strategy.models import PivotPoints, PriceLevel, Signal, VwapBandSet
from confluence.strategy.pivot_analysis import (
    describe_pivot_position,
    suggest_pending_orders,
)
from confluence.strategy.session_window import trading_window

logger = logging.getLogger("confluence")
router = APIRouter()

# ── Shared state (written by the engine) ─────────────────────────────────

_DEFAULT_STATUS: dict = {
    "running": False,
    "symbol": None,
    "status": "awaiting_data",
    "reason": None,
    "cycle_count": 0,
    "last_cycle_at": None,
    "last_signal_at": None,
}

_status: dict = {**_DEFAULT_STATUS}

# Replaced as a whole so readers never see levels from two cycles
_snapshot: Optional[dict] = None


def update_engine_status(**fields) -> None:
    """Update individual fields of the engine status dict."""
    _status.update(fields)


def update_snapshot(
    signal: Signal,
    pivots: PivotPoints,
    vwap_sets: dict[str, VwapBandSet],
    levels: tuple[PriceLevel, ...],
) -> None:
    """Publish the outputs of one completed cycle."""
    global _snapshot  # noqa: PLW0603
    _snapshot = {
        "signal": signal,
        "pivots": pivots,
        "vwap_sets": dict(vwap_sets),
        "levels": levels,
    }
    _status["last_signal_at"] = signal.timestamp.isoformat()


def reset_state() -> None:
    """Clear the published state (used on startup and in tests)."""
    global _snapshot  # noqa: PLW0603
    _snapshot = None
    _status.clear()
    _status.update(_DEFAULT_STATUS)


def _require_snapshot() -> dict:
    if _snapshot is None:
        raise HTTPException(status_code=503, detail="Awaiting data: no signal yet")
    return _snapshot


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/status")
async def get_status():
    """Engine status plus the current trading-window analysis."""
    snap = _snapshot
    now = datetime.now(timezone.utc)
    payload = {**_status}
    if snap is not None:
        payload["trading_window"] = asdict(
            trading_window(snap["signal"].action, now.hour)
        )
    return payload


@router.get("/signal")
async def get_signal():
    """The last valid signal."""
    snap = _require_snapshot()
    return asdict(snap["signal"])


@router.get("/levels")
async def get_levels():
    """Pivot / Fibonacci / VWAP levels, pivot narrative and pending orders."""
    snap = _require_snapshot()
    signal: Signal = snap["signal"]
    pivots: PivotPoints = snap["pivots"]
    return {
        "pivots": asdict(pivots),
        "vwap": {tf: asdict(bs) for tf, bs in snap["vwap_sets"].items()},
        "levels": [asdict(lvl) for lvl in snap["levels"]],
        "pivot_position": asdict(
            describe_pivot_position(signal.current_price, pivots)
        ),
        "pending_orders": [
            asdict(order) for order in suggest_pending_orders(signal, pivots)
        ],
    }


@router.get("/position-size")
async def get_position_size(
    balance: float = Query(..., gt=0),
    mode: Literal["conservative", "aggressive"] = Query("conservative"),
):
    """Money amounts for the current signal and an account *balance*."""
    snap = _require_snapshot()
    plan = size_position(snap["signal"], balance, mode)
    if plan is None:
        return {"plan": None, "reason": "No active signal to size"}
    return {"plan": asdict(plan)}
