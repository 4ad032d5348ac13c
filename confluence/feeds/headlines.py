"""Headline source — a rotating sample of canned BTC news headlines.

Feeds ``KeywordSentimentProvider`` until a live news API is configured.
Each call returns a fresh random subset, so the hint drifts between
sentiment refreshes the way a real feed would.
"""

import random
from typing import Optional, Sequence

from confluence.strategy.models import Headline

DEFAULT_HEADLINES: tuple[Headline, ...] = (
    Headline("Spot Bitcoin ETF logs record inflows, fuelling market optimism", "CoinTelegraph"),
    Headline("Major investment bank announces crypto products for its clients", "Bloomberg Crypto"),
    Headline("Regulators approve legislation that favours crypto adoption for payments", "Financial Times"),
    Headline("Technical analysis points to a golden cross on the daily Bitcoin chart", "TradingView News"),
    Headline("Bitcoin whale moves 10,000 BTC to an exchange, adding selling pressure", "Whale Alert"),
    Headline("US inflation report comes in above expectations, driving risk aversion", "Reuters"),
    Headline("Attackers exploit DeFi protocol vulnerability, stealing millions in crypto", "The Block"),
    Headline("Fed chair signals further rate hikes, weighing on risk markets", "Wall Street Journal"),
    Headline("Bitcoin trading volume falls to the lowest level of the year", "Glassnode Insights"),
    Headline("Bitcoin holds steady in a narrow range as traders await a catalyst", "CoinDesk"),
)


class StaticHeadlineSource:
    """Async callable returning *sample_size* headlines drawn from a pool.

    Args:
        headlines: Pool to sample from.
        sample_size: Headlines per call, capped at the pool size.
        seed: Optional seed for reproducible sampling.
    """

    def __init__(
        self,
        headlines: Sequence[Headline] = DEFAULT_HEADLINES,
        sample_size: int = 4,
        seed: Optional[int] = None,
    ) -> None:
        if sample_size < 1:
            raise ValueError(f"sample_size must be at least 1, got {sample_size}")
        self._headlines = tuple(headlines)
        self._sample_size = min(sample_size, len(self._headlines))
        self._rng = random.Random(seed)

    async def __call__(self) -> list[Headline]:
        return self._rng.sample(self._headlines, self._sample_size)
