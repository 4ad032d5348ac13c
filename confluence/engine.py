"""Confluence — signal engine (orchestration loop).

Connects the market-data feed, the indicator calculators and the decision
engine into a polling loop.  Two independent cadences run side by side:

* the price loop (seconds) refreshes candles and price and re-evaluates;
* the sentiment loop (minutes) refreshes the news hint.

The price loop always uses whichever sentiment hint is currently held.
A cycle that cannot produce a signal keeps the last valid one.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from confluence.api.routers import update_engine_status, update_snapshot
from confluence.config import Config
from confluence.feeds.sentiment import SentimentProvider
from confluence.strategy.indicators import (
    calculate_rsi,
    calculate_vwap_bands,
    classify_heikin_ashi,
    pivots_from_candles,
)
from confluence.strategy.levels import build_level_catalog
from confluence.strategy.models import (
    CandleData,
    Headline,
    SentimentHint,
    Signal,
    SignalAction,
)
from confluence.strategy.signals import evaluate_signal

logger = logging.getLogger("confluence")

HeadlineSource = Callable[[], Awaitable[list[Headline]]]


def _split_window(
    candles: list[CandleData], limit: int
) -> tuple[list[CandleData], list[CandleData]]:
    """The last *limit* candles and the full window before them.

    The previous window is empty unless all of its candles are present.
    """
    current = candles[-limit:]
    if len(candles) < 2 * limit:
        return current, []
    return current, candles[-2 * limit:-limit]


class SignalEngine:
    """Runs one evaluation per call and keeps the last valid signal.

    Args:
        config: Application configuration.
        feed: A ``BinanceClient`` (or compatible duck-type / mock)
            exposing ``fetch_price`` and ``fetch_candles``.
        sentiment_provider: Optional ``SentimentProvider``.
        headline_source: Coroutine function returning the headlines to
            classify.  Sentiment stays absent without both.
    """

    def __init__(
        self,
        config: Config,
        feed,
        sentiment_provider: Optional[SentimentProvider] = None,
        headline_source: Optional[HeadlineSource] = None,
    ) -> None:
        self._config = config
        self._feed = feed
        self._sentiment_provider = sentiment_provider
        self._headline_source = headline_source
        self._policy = config.signal_policy()
        self._cooldown = config.cooldown_policy()

        self._running: bool = False
        self._cycle_count: int = 0
        self._last_signal: Optional[Signal] = None
        self._sentiment: Optional[SentimentHint] = None
        # Last non-hold action, fed back into the cooldown policy
        self._last_action: Optional[SignalAction] = None
        self._last_action_at: Optional[datetime] = None

    @property
    def last_signal(self) -> Optional[Signal]:
        return self._last_signal

    @property
    def sentiment(self) -> Optional[SentimentHint]:
        return self._sentiment

    def stop(self) -> None:
        """Signal the engine to stop after the current cycle."""
        self._running = False

    # ── Sentiment ────────────────────────────────────────────────────────

    async def refresh_sentiment(self) -> Optional[SentimentHint]:
        """Fetch headlines and classify them.

        Provider failures clear the hint; the engine then runs without
        sentiment until the next successful refresh.
        """
        if self._sentiment_provider is None or self._headline_source is None:
            return None
        try:
            headlines = await self._headline_source()
            self._sentiment = await self._sentiment_provider.analyze(headlines)
            logger.info(
                "Sentiment refreshed: %s", self._sentiment.overall_sentiment.value
            )
        except Exception as exc:
            logger.warning("Sentiment refresh failed (continuing without): %s", exc)
            self._sentiment = None
        return self._sentiment

    # ── Single cycle ─────────────────────────────────────────────────────

    async def _fetch_inputs(
        self,
    ) -> tuple[float, list[CandleData], list[CandleData], list[CandleData], list[CandleData]]:
        # Two windows per timeframe: the current one and the one before it
        symbol = self._config.symbol
        return await asyncio.gather(
            self._feed.fetch_price(symbol),
            self._feed.fetch_candles(
                symbol, "1d", max(2, 2 * self._config.vwap_monthly_limit)
            ),
            self._feed.fetch_candles(symbol, "1h", 2 * self._config.vwap_daily_limit),
            self._feed.fetch_candles(symbol, "4h", 2 * self._config.vwap_weekly_limit),
            self._feed.fetch_candles(
                symbol, self._config.rsi_interval, self._config.rsi_period * 5
            ),
        )

    async def run_once(self, utc_now: Optional[datetime] = None) -> dict:
        """Execute one evaluation cycle.

        Returns a dict describing the outcome:

        - ``{"action": "awaiting_data", "reason": "..."}``
        - ``{"action": "buy" | "sell" | "hold", "price": ...}``

        Args:
            utc_now: Evaluation time.  Defaults to ``datetime.now(UTC)``.
        """
        if utc_now is None:
            utc_now = datetime.now(timezone.utc)

        price, daily, hourly, four_hour, rsi_candles = await self._fetch_inputs()

        pivots = pivots_from_candles(daily)
        vwap_sets = {}
        previous_vwaps = {}
        windows = (
            ("daily", hourly, self._config.vwap_daily_limit),
            ("weekly", four_hour, self._config.vwap_weekly_limit),
            ("monthly", daily, self._config.vwap_monthly_limit),
        )
        for timeframe, candles, limit in windows:
            current, previous = _split_window(candles, limit)
            bands = calculate_vwap_bands(current)
            if bands is not None:
                vwap_sets[timeframe] = bands
            previous_bands = calculate_vwap_bands(previous)
            if previous_bands is not None:
                previous_vwaps[timeframe] = previous_bands.vwap
        rsi = calculate_rsi([c.close for c in rsi_candles], self._config.rsi_period)
        ha_color = classify_heikin_ashi(rsi_candles)

        signal = evaluate_signal(
            current_price=price,
            pivots=pivots,
            vwap_sets=vwap_sets,
            rsi=rsi,
            heikin_ashi_color=ha_color,
            timestamp=utc_now,
            sentiment=self._sentiment,
            previous_vwaps=previous_vwaps or None,
            policy=self._policy,
            cooldown=self._cooldown,
            last_action=self._last_action,
            last_action_at=self._last_action_at,
        )

        if signal is None:
            missing = []
            if pivots is None:
                missing.append("pivots")
            if not vwap_sets:
                missing.append("vwap")
            if rsi is None:
                missing.append("rsi")
            reason = "insufficient data: " + (", ".join(missing) or "price")
            logger.info("No signal this cycle (%s); keeping previous", reason)
            update_engine_status(
                status="awaiting_data",
                last_cycle_at=utc_now.isoformat(),
                cycle_count=self._cycle_count,
                reason=reason,
            )
            return {"action": "awaiting_data", "reason": reason}

        self._last_signal = signal
        if signal.action != SignalAction.HOLD and signal.action != self._last_action:
            self._last_action = signal.action
            self._last_action_at = utc_now

        update_snapshot(
            signal=signal,
            pivots=pivots,
            vwap_sets=vwap_sets,
            levels=build_level_catalog(pivots, vwap_sets),
        )
        update_engine_status(
            status="signal",
            last_cycle_at=utc_now.isoformat(),
            cycle_count=self._cycle_count,
            reason=None,
        )
        return {"action": signal.action.value, "price": price}

    # ── Polling loops ────────────────────────────────────────────────────

    async def _sleep(self, seconds: int) -> None:
        # Interruptible: checks _running every second
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        for _ in range(seconds):
            if not self._running:
                break
            await asyncio.sleep(1)

    async def _price_loop(self, max_cycles: int) -> list[dict]:
        results: list[dict] = []
        cycle = 0
        while self._running:
            cycle += 1
            self._cycle_count += 1
            try:
                result = await self.run_once()
                logger.info("Cycle %d: %s", cycle, result.get("action", "unknown"))
            except Exception as exc:
                logger.error("Cycle %d error: %s", cycle, exc)
                result = {"action": "error", "reason": str(exc)}
                update_engine_status(
                    status="error",
                    last_cycle_at=datetime.now(timezone.utc).isoformat(),
                    cycle_count=self._cycle_count,
                    reason=str(exc),
                )
            results.append(result)

            if max_cycles > 0 and cycle >= max_cycles:
                self.stop()
                break
            await self._sleep(self._config.price_poll_seconds)
        return results

    async def _sentiment_loop(self) -> None:
        while self._running:
            await self._sleep(self._config.sentiment_poll_seconds)
            if self._running:
                await self.refresh_sentiment()

    async def run(self, max_cycles: int = 0) -> list[dict]:
        """Run both loops until stopped.

        Args:
            max_cycles: Stop after this many price cycles (0 = unlimited).

        Returns:
            List of per-cycle result dicts from the price loop.
        """
        self._running = True
        update_engine_status(running=True, symbol=self._config.symbol)
        if self._sentiment_provider is not None and self._headline_source is not None:
            # Seed the hint before the first price cycle
            await self.refresh_sentiment()
            results, _ = await asyncio.gather(
                self._price_loop(max_cycles), self._sentiment_loop()
            )
        else:
            results = await self._price_loop(max_cycles)
        update_engine_status(running=False)
        return results
