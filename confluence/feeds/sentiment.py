"""News sentiment — keyword scoring of headlines into a ``SentimentHint``.

The hint is advisory: the decision engine only adds or contradicts
reasons with it.  Providers are swappable through ``SentimentProvider``.
"""

import logging
import re
from typing import Iterable, Protocol, runtime_checkable

from confluence.strategy.models import Headline, Sentiment, SentimentHint

logger = logging.getLogger("confluence")

# Keywords for sentiment analysis
BULLISH_KEYWORDS = frozenset({
    "surge", "surges", "soar", "soars", "rally", "rallies", "gain", "gains",
    "rise", "rises", "jump", "jumps", "breakout", "record", "inflow",
    "inflows", "approve", "approves", "approved", "adoption", "bullish",
    "optimism", "upgrade", "golden", "high", "highs", "favours", "favors",
})

BEARISH_KEYWORDS = frozenset({
    "fall", "falls", "drop", "drops", "decline", "declines", "crash",
    "crashes", "plunge", "plunges", "sink", "sinks", "selloff", "outflow",
    "outflows", "hack", "hacked", "exploit", "ban", "bans", "bearish",
    "fear", "fears", "inflation", "lawsuit", "pressure", "low", "lows",
})


@runtime_checkable
class SentimentProvider(Protocol):
    """Interface that sentiment back-ends must satisfy."""

    async def analyze(self, headlines: list[Headline]) -> SentimentHint:
        """Classify the overall sentiment of *headlines*."""
        ...


def _tokens(text: str) -> list[str]:
    return re.findall(r"[a-z]+", text.lower())


def score_headline(title: str) -> int:
    """Bullish keyword count minus bearish keyword count."""
    words = _tokens(title)
    bullish = sum(1 for w in words if w in BULLISH_KEYWORDS)
    bearish = sum(1 for w in words if w in BEARISH_KEYWORDS)
    return bullish - bearish


def classify_headlines(
    headlines: Iterable[Headline], threshold: int = 1
) -> SentimentHint:
    """Aggregate per-headline scores into an overall hint.

    A net score of at least *threshold* is positive, at most
    ``-threshold`` negative, anything in between neutral.
    """
    items = tuple(headlines)
    if not items:
        return SentimentHint(Sentiment.NEUTRAL, "No headlines to analyse.", ())

    scores = [score_headline(h.title) for h in items]
    net = sum(scores)
    up = sum(1 for s in scores if s > 0)
    down = sum(1 for s in scores if s < 0)

    if net >= threshold:
        overall = Sentiment.POSITIVE
    elif net <= -threshold:
        overall = Sentiment.NEGATIVE
    else:
        overall = Sentiment.NEUTRAL

    summary = (
        f"{up} of {len(items)} headlines lean bullish, {down} lean bearish "
        f"(net score {net:+d})."
    )
    return SentimentHint(overall, summary, items)


class KeywordSentimentProvider:
    """``SentimentProvider`` backed by :func:`classify_headlines`."""

    def __init__(self, threshold: int = 1) -> None:
        self._threshold = threshold

    async def analyze(self, headlines: list[Headline]) -> SentimentHint:
        hint = classify_headlines(headlines, self._threshold)
        logger.debug("Sentiment %s: %s", hint.overall_sentiment.value, hint.summary)
        return hint
