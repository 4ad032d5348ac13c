"""Binance public REST API async client.

Fetches the live ticker price and kline (candle) history.  No trading,
no authentication.
"""

import asyncio
import logging
from typing import Optional

import httpx

from confluence.config import Config
from confluence.strategy.models import CandleData

logger = logging.getLogger("confluence")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}


class BinanceClient:
    """Async client wrapping the Binance spot market-data endpoints."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self._base_url = config.binance_base_url.rstrip("/")

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _get_with_retry(self, url: str, **kwargs) -> httpx.Response:
        """GET with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429).  Non-retryable errors are raised immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            final = attempt == _MAX_RETRIES - 1
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(url, timeout=10.0, **kwargs)

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    if final:
                        break
                    delay = _RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        "Binance GET %s returned %d, retry %d/%d in %.1fs",
                        url, resp.status_code, attempt + 1, _MAX_RETRIES, delay,
                    )
                    await asyncio.sleep(delay)
                    continue

                resp.raise_for_status()
                return resp

            except httpx.TransportError as exc:
                last_exc = exc
                if final:
                    break
                delay = _RETRY_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "Binance GET %s transport error (%s), retry %d/%d in %.1fs",
                    url, exc, attempt + 1, _MAX_RETRIES, delay,
                )
                await asyncio.sleep(delay)

        # All retries exhausted: raise the last error
        logger.error("Binance GET %s failed after %d attempts", url, _MAX_RETRIES)
        raise last_exc  # type: ignore[misc]

    # ── Price ────────────────────────────────────────────────────────────

    async def fetch_price(self, symbol: str) -> float:
        """Return the latest traded price for *symbol* (e.g. ``"BTCUSDT"``).

        Raises ``ValueError`` if the payload carries no parsable price.
        """
        url = f"{self._base_url}/api/v3/ticker/price"
        resp = await self._get_with_retry(url, params={"symbol": symbol})
        data = resp.json()
        try:
            return float(data["price"])
        except (KeyError, TypeError, ValueError):
            raise ValueError(f"Malformed ticker payload for {symbol}: {data!r}") from None

    # ── Candle data ──────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        symbol: str,
        interval: str,
        limit: int = 50,
    ) -> list[CandleData]:
        """Fetch kline data.

        Args:
            symbol: e.g. ``"BTCUSDT"``
            interval: e.g. ``"1d"``, ``"4h"``, ``"1h"``
            limit: number of klines to request (max 1000)

        Returns:
            List of ``CandleData`` ordered oldest-first.  The last entry is
            the still-forming candle.
        """
        url = f"{self._base_url}/api/v3/klines"
        params = {"symbol": symbol, "interval": interval, "limit": limit}

        resp = await self._get_with_retry(url, params=params)

        candles: list[CandleData] = []
        for k in resp.json():
            # [openTime, open, high, low, close, volume, closeTime, ...]
            candles.append(
                CandleData(
                    time=int(k[0]),
                    open=float(k[1]),
                    high=float(k[2]),
                    low=float(k[3]),
                    close=float(k[4]),
                    volume=float(k[5]),
                )
            )
        return candles
