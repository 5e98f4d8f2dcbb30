"""
Financial Data Loader Module.

yfinance-backed implementations of the collaborator interfaces consumed by
the analytics engine. The engine never imports this module; callers that
have no quote/news store of their own can plug these providers into
``AnalyticsEngine``.

Features:
    - Daily OHLCV history converted to PriceObservation records
    - Market index summaries for the tracked indices
    - Recent news headlines (unclassified) as NewsItem records
    - Failed downloads are logged and yield empty results
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pandas as pd
import yfinance as yf

from portfolio_analytics.config import DEFAULT_INDICES
from portfolio_analytics.market import summarize_index
from portfolio_analytics.models import MarketIndexSummary, NewsItem, PriceObservation

logger = logging.getLogger(__name__)


def _optional_float(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


class YFinancePriceProvider:
    """
    Downloads daily price history and index data from Yahoo Finance.

    Attributes:
        indices: Mapping of tracked index symbol to display name.

    Example:
        >>> provider = YFinancePriceProvider()
        >>> history = provider.get_price_history("AAPL", window=120)
        >>> history[-1].close
        189.84
    """

    def __init__(self, indices: Optional[Dict[str, str]] = None) -> None:
        self.indices: Dict[str, str] = indices if indices else dict(DEFAULT_INDICES)

    def _download_history(self, symbol: str, window: int) -> pd.DataFrame:
        """
        Download enough calendar days to cover ``window`` trading days.

        Returns:
            DataFrame of daily bars (may be empty).
        """
        # Five trading days per seven calendar days, plus slack for holidays
        calendar_days = math.ceil(window * 7 / 5) + 10
        end_date = datetime.now()
        start_date = end_date - timedelta(days=calendar_days)

        stock = yf.Ticker(symbol)
        return stock.history(
            start=start_date.strftime("%Y-%m-%d"),
            end=(end_date + timedelta(days=1)).strftime("%Y-%m-%d"),
            auto_adjust=True  # Use adjusted prices
        )

    def get_price_history(self, symbol: str, window: int) -> List[PriceObservation]:
        """
        Fetch up to ``window`` trailing daily observations, oldest first.

        Args:
            symbol: Ticker symbol.
            window: Number of trading days requested.

        Returns:
            List of PriceObservation; empty if the download failed.
        """
        try:
            hist = self._download_history(symbol, window)
        except Exception as e:
            logger.warning(f"Failed to download {symbol}: {str(e)}")
            return []

        if hist is None or hist.empty:
            logger.warning(f"No data available for {symbol}")
            return []

        # Remove timezone info for consistent date comparisons
        if hist.index.tz is not None:
            hist.index = hist.index.tz_localize(None)

        hist = hist.dropna(subset=["Close"]).tail(window)
        observations = [
            PriceObservation(
                date=timestamp.date(),
                close=float(row["Close"]),
                open=_optional_float(row.get("Open")),
                high=_optional_float(row.get("High")),
                low=_optional_float(row.get("Low")),
                volume=_optional_float(row.get("Volume")),
            )
            for timestamp, row in hist.iterrows()
        ]
        logger.info(f"Downloaded {len(observations)} observations for {symbol}")
        return observations

    def get_index_history(self, symbol: str, window: int) -> List[PriceObservation]:
        return self.get_price_history(symbol, window)

    def get_index_summaries(self) -> List[MarketIndexSummary]:
        """Latest close and daily change for every tracked index with data."""
        summaries = []
        for symbol, name in self.indices.items():
            history = self.get_price_history(symbol, window=2)
            if not history:
                continue
            summaries.append(summarize_index(symbol, name, history))
        return summaries


class YFinanceNewsProvider:
    """Fetches recent headlines from Yahoo Finance; items arrive unclassified."""

    def __init__(self, max_items: int = 20) -> None:
        self.max_items = max_items

    @staticmethod
    def _published_at(content: Dict) -> Optional[datetime]:
        # yfinance >= 1.x uses ISO "pubDate"; older releases an epoch field
        if content.get("pubDate"):
            published = pd.Timestamp(content["pubDate"])
            if published.tzinfo is not None:
                published = published.tz_convert("UTC").tz_localize(None)
            return published.to_pydatetime()
        if content.get("providerPublishTime"):
            return datetime.fromtimestamp(
                content["providerPublishTime"], tz=timezone.utc
            ).replace(tzinfo=None)
        return None

    def get_news(self, symbol: str, window_days: int) -> List[NewsItem]:
        """
        Fetch headlines for ``symbol`` published in the trailing ``window_days``.

        Publication times are naive UTC datetimes.
        """
        try:
            news_items = yf.Ticker(symbol).news or []
        except Exception as e:
            logger.warning(f"Failed to fetch news for {symbol}: {str(e)}")
            return []

        cutoff = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=window_days)
        results = []
        for item in news_items[:self.max_items]:
            # yfinance >= 1.x nests data under "content"
            content = item.get("content", item)
            published_at = self._published_at(content)
            if published_at is None or published_at < cutoff:
                continue
            results.append(NewsItem(
                published_at=published_at,
                title=content.get("title", "") or "",
                summary=content.get("summary", "") or "",
            ))
        return results
