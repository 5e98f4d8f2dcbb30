"""
Sentiment overlay for trend forecasts.

Recent classified news shifts the linear trend forecast up or down in
proportion to the balance of positive and negative coverage. The overlay is
advisory and is always served next to the unadjusted trend, never instead
of it.

Headlines arriving without a classification can be tagged with a small
keyword scorer before the overlay runs.
"""

import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence

from portfolio_analytics.config import (
    FORECAST_HORIZON,
    FORECAST_WINDOW,
    NEWS_WINDOW_DAYS,
    SENTIMENT_ADJUSTMENT,
)
from portfolio_analytics.forecasting import fit_trend, project
from portfolio_analytics.models import ForecastPoint, NewsItem, PriceObservation, Sentiment
from portfolio_analytics.returns import prepare_price_series

logger = logging.getLogger(__name__)

SENTIMENT_WEIGHTED = "sentiment_weighted"

# ── Keyword dictionaries ─────────────────────────────────────────────

_POSITIVE_KEYWORDS = {
    "surge", "surges", "soar", "soars", "rally", "rallies", "beat", "beats",
    "strong", "growth", "upgrade", "upgraded", "bullish", "record", "gain",
    "gains", "profit", "outperform", "boost", "momentum", "breakout",
    "innovation", "expansion", "optimistic", "buy", "positive", "upside",
    "recovery", "milestone", "jumps", "climbs",
}

_NEGATIVE_KEYWORDS = {
    "crash", "plunge", "plunges", "drop", "drops", "fall", "falls", "decline",
    "loss", "losses", "weak", "bearish", "downgrade", "downgraded", "fear",
    "sell", "warning", "miss", "misses", "lawsuit", "investigation", "fine",
    "layoff", "layoffs", "cut", "cuts", "recession", "bubble", "overvalued",
    "default", "negative", "slump", "tumbles",
}

_WORD = re.compile(r"[a-z']+")


def score_text(text: str) -> float:
    """Score text by keyword presence; returns a value in [-1.0, 1.0]."""
    words = _WORD.findall(text.lower())
    pos_count = sum(1 for word in words if word in _POSITIVE_KEYWORDS)
    neg_count = sum(1 for word in words if word in _NEGATIVE_KEYWORDS)
    total = pos_count + neg_count
    if total == 0:
        return 0.0
    return (pos_count - neg_count) / total


def classify_text(title: str, summary: str = "") -> Sentiment:
    """Classify a headline, counting the title twice so it outweighs the summary."""
    text = f"{title}. {title}. {summary}" if summary else title
    score = score_text(text)
    if score > 0:
        return Sentiment.POSITIVE
    if score < 0:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def classify_news(items: Iterable[NewsItem]) -> List[NewsItem]:
    """Return the items with a keyword classification filled in where missing."""
    return [
        item if item.sentiment is not None
        else replace(item, sentiment=classify_text(item.title, item.summary))
        for item in items
    ]


@dataclass(frozen=True)
class SentimentSummary:
    """Counts of classified news and the derived net score."""
    positive: int
    negative: int
    neutral: int
    unclassified: int

    @property
    def classified(self) -> int:
        return self.positive + self.negative + self.neutral

    @property
    def total(self) -> int:
        return self.classified + self.unclassified

    @property
    def net_score(self) -> float:
        """(positive - negative) / classified, or 0.0 with nothing classified."""
        if self.classified == 0:
            return 0.0
        return (self.positive - self.negative) / self.classified

    @property
    def coverage(self) -> float:
        """Share of news items in the window that carry a classification."""
        if self.total == 0:
            return 0.0
        return self.classified / self.total


def summarize_sentiment(items: Iterable[NewsItem]) -> SentimentSummary:
    counts = {sentiment: 0 for sentiment in Sentiment}
    unclassified = 0
    for item in items:
        if item.sentiment is None:
            unclassified += 1
        else:
            counts[Sentiment(item.sentiment)] += 1
    return SentimentSummary(
        positive=counts[Sentiment.POSITIVE],
        negative=counts[Sentiment.NEGATIVE],
        neutral=counts[Sentiment.NEUTRAL],
        unclassified=unclassified,
    )


def _naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def news_window(
    items: Iterable[NewsItem],
    window_days: int = NEWS_WINDOW_DAYS,
    as_of: Optional[datetime] = None
) -> List[NewsItem]:
    """
    Keep the items published in the ``window_days`` up to ``as_of``.

    ``as_of`` defaults to the most recent publication time among the items.
    Aware and naive datetimes may be mixed; naive values are taken as UTC.
    """
    items = list(items)
    if not items:
        return []
    published = [_naive_utc(item.published_at) for item in items]
    as_of = max(published) if as_of is None else _naive_utc(as_of)
    start = as_of - timedelta(days=window_days)
    return [
        item for item, published_at in zip(items, published)
        if start <= published_at <= as_of
    ]


def forecast_with_sentiment(
    observations: Sequence[PriceObservation],
    news: Iterable[NewsItem],
    horizon: int = FORECAST_HORIZON,
    window: int = FORECAST_WINDOW,
    window_days: int = NEWS_WINDOW_DAYS,
    as_of: Optional[datetime] = None,
    adjustment: float = SENTIMENT_ADJUSTMENT
) -> Optional[List[ForecastPoint]]:
    """
    Adjust the linear trend forecast by recent news sentiment.

    Each predicted price is scaled by ``1 + net_score * adjustment``, so a
    window of purely positive news lifts the trend by ``adjustment`` (5% by
    default). Confidence is the mean of the trend's R² and the share of
    news in the window that is classified.

    Args:
        observations: Price observations for one symbol, in any order.
        news: News items for the same symbol.
        horizon: Number of trading days to project.
        window: Trailing number of price observations used for the fit.
        window_days: Calendar days of news considered.
        as_of: End of the news window; defaults to the latest item.
        adjustment: Maximum proportional shift of the trend.

    Returns:
        Adjusted forecast points (same count as ``forecast_trend``), or None
        when the news window holds no classified items.

    Raises:
        ValueError: If horizon is negative.
    """
    if horizon < 0:
        raise ValueError(f"horizon must not be negative, got {horizon}")

    summary = summarize_sentiment(news_window(news, window_days, as_of))
    if summary.classified == 0:
        logger.debug("No classified news in window; skipping sentiment overlay")
        return None

    prices = prepare_price_series(observations, window=window, finite_only=True)
    fit = fit_trend(prices)
    if fit is None:
        return []

    factor = 1.0 + summary.net_score * adjustment
    confidence = min(1.0, max(0.0, (fit.r_squared + summary.coverage) / 2))

    return [
        replace(
            point,
            predicted_price=max(0.0, point.predicted_price * factor),
            confidence=confidence,
            method=SENTIMENT_WEIGHTED,
        )
        for point in project(fit, horizon)
    ]
