"""Confluence — application configuration.

Loads .env variables into a typed config object.
Validates numeric variables and RSI thresholds on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from confluence.strategy.signals import CooldownPolicy, SignalPolicy


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    symbol: str
    binance_base_url: str
    price_poll_seconds: int
    sentiment_poll_seconds: int
    rsi_period: int
    rsi_interval: str
    rsi_oversold: float
    rsi_overbought: float
    stop_loss_pct: float
    take_profit_pct: float
    vwap_daily_limit: int
    vwap_weekly_limit: int
    vwap_monthly_limit: int
    cooldown_seconds: int
    log_level: str
    health_port: int

    def signal_policy(self) -> SignalPolicy:
        """Build the decision-engine policy from the configured thresholds."""
        return SignalPolicy(
            rsi_oversold=self.rsi_oversold,
            rsi_overbought=self.rsi_overbought,
            stop_loss_pct=self.stop_loss_pct,
            take_profit_pct=self.take_profit_pct,
        )

    def cooldown_policy(self) -> CooldownPolicy | None:
        """Return a cooldown policy, or None when disabled (0 seconds)."""
        if self.cooldown_seconds <= 0:
            return None
        return CooldownPolicy(min_dwell_seconds=self.cooldown_seconds)


def _env_number(name: str, default: str, cast):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(
            f"Invalid value for environment variable {name}: {raw!r}"
        ) from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` naming the variable when a number cannot be
    parsed, when the RSI thresholds are not ordered within 0–100, or when
    a VWAP window holds fewer than two candles.
    """
    load_dotenv(dotenv_path=env_path)

    oversold = _env_number("RSI_OVERSOLD", "30", float)
    overbought = _env_number("RSI_OVERBOUGHT", "70", float)
    if not 0 <= oversold < overbought <= 100:
        raise ValueError(
            "RSI_OVERSOLD and RSI_OVERBOUGHT must satisfy "
            f"0 <= oversold < overbought <= 100, got {oversold} and {overbought}"
        )

    rsi_period = _env_number("RSI_PERIOD", "14", int)
    if rsi_period < 1:
        raise ValueError(f"RSI_PERIOD must be at least 1, got {rsi_period}")

    vwap_limits = {
        name: _env_number(name, default, int)
        for name, default in (
            ("VWAP_DAILY_LIMIT", "24"),
            ("VWAP_WEEKLY_LIMIT", "42"),
            ("VWAP_MONTHLY_LIMIT", "30"),
        )
    }
    for name, value in vwap_limits.items():
        if value < 2:
            raise ValueError(f"{name} must be at least 2, got {value}")

    return Config(
        symbol=os.environ.get("SYMBOL", "BTCUSDT"),
        binance_base_url=os.environ.get("BINANCE_BASE_URL", "https://api.binance.com"),
        price_poll_seconds=_env_number("PRICE_POLL_SECONDS", "5", int),
        sentiment_poll_seconds=_env_number("SENTIMENT_POLL_SECONDS", "900", int),
        rsi_period=rsi_period,
        rsi_interval=os.environ.get("RSI_INTERVAL", "1h"),
        rsi_oversold=oversold,
        rsi_overbought=overbought,
        stop_loss_pct=_env_number("STOP_LOSS_PCT", "5.0", float),
        take_profit_pct=_env_number("TAKE_PROFIT_PCT", "15.0", float),
        vwap_daily_limit=vwap_limits["VWAP_DAILY_LIMIT"],
        vwap_weekly_limit=vwap_limits["VWAP_WEEKLY_LIMIT"],
        vwap_monthly_limit=vwap_limits["VWAP_MONTHLY_LIMIT"],
        cooldown_seconds=_env_number("COOLDOWN_SECONDS", "0", int),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        health_port=_env_number("HEALTH_PORT", "8080", int),
    )
