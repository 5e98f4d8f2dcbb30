"""
Analytics engine facade.

Wires the pure computations to the collaborators that supply their inputs
(price history, news, market indices) and to the store that keeps each
portfolio's latest optimizer snapshot. The engine itself holds no
per-request state; every call fetches its inputs, computes, and returns.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

import numpy as np

from portfolio_analytics import config
from portfolio_analytics.forecasting import forecast_trend
from portfolio_analytics.market import compare_to_market
from portfolio_analytics.models import (
    ForecastPoint,
    Holding,
    MarketComparison,
    MarketIndexSummary,
    NewsItem,
    OptimizedPortfolioSnapshot,
    PortfolioStatistics,
    PriceObservation,
)
from portfolio_analytics.optimizer import FrontierOptimizer
from portfolio_analytics.sentiment import classify_news, forecast_with_sentiment
from portfolio_analytics.statistics import compute_statistics, validate_holdings

logger = logging.getLogger(__name__)


class PriceHistoryProvider(Protocol):
    def get_price_history(self, symbol: str, window: int) -> Sequence[PriceObservation]:
        """Return up to ``window`` trailing observations, newest- or oldest-first."""


class NewsProvider(Protocol):
    def get_news(self, symbol: str, window_days: int) -> Sequence[NewsItem]:
        """Return news items published in the trailing ``window_days``."""


class MarketIndexProvider(Protocol):
    def get_index_summaries(self) -> Sequence[MarketIndexSummary]:
        ...

    def get_index_history(self, symbol: str, window: int) -> Sequence[PriceObservation]:
        ...


class SnapshotStore(Protocol):
    def get(self, portfolio_id: str) -> Optional[OptimizedPortfolioSnapshot]:
        ...

    def put(self, portfolio_id: str, snapshot: OptimizedPortfolioSnapshot) -> None:
        ...


class InMemorySnapshotStore:
    """Dict-backed snapshot store; each put replaces the previous snapshot."""

    def __init__(self) -> None:
        self._snapshots: Dict[str, OptimizedPortfolioSnapshot] = {}
        self._lock = threading.Lock()

    def get(self, portfolio_id: str) -> Optional[OptimizedPortfolioSnapshot]:
        with self._lock:
            return self._snapshots.get(portfolio_id)

    def put(self, portfolio_id: str, snapshot: OptimizedPortfolioSnapshot) -> None:
        with self._lock:
            self._snapshots[portfolio_id] = snapshot

    def delete(self, portfolio_id: str) -> None:
        with self._lock:
            self._snapshots.pop(portfolio_id, None)


@dataclass
class EngineSettings:
    """Window lengths and tuning knobs used by AnalyticsEngine."""
    statistics_window: int = config.STATISTICS_WINDOW
    forecast_window: int = config.FORECAST_WINDOW
    comparison_window: int = config.COMPARISON_WINDOW
    news_window_days: int = config.NEWS_WINDOW_DAYS
    forecast_horizon: int = config.FORECAST_HORIZON
    sample_count: int = config.DEFAULT_SAMPLE_COUNT
    min_observations: int = config.MIN_OBSERVATIONS
    sentiment_adjustment: float = config.SENTIMENT_ADJUSTMENT
    classify_unlabelled_news: bool = False
    indices: Dict[str, str] = field(default_factory=lambda: dict(config.DEFAULT_INDICES))


class AnalyticsEngine:
    """
    Entry point used by the API layer.

    Example:
        >>> engine = AnalyticsEngine(prices=provider, snapshots=InMemorySnapshotStore())
        >>> stats = engine.compute_statistics([Holding("AAPL", 2), Holding("MSFT", 1)])
        >>> snapshot = engine.run_optimizer("portfolio-1", holdings)
    """

    def __init__(
        self,
        prices: PriceHistoryProvider,
        news: Optional[NewsProvider] = None,
        indices: Optional[MarketIndexProvider] = None,
        snapshots: Optional[SnapshotStore] = None,
        settings: Optional[EngineSettings] = None,
        rng: Optional[np.random.Generator] = None
    ) -> None:
        self.prices = prices
        self.news = news
        self.indices = indices
        self.snapshots = snapshots if snapshots is not None else InMemorySnapshotStore()
        self.settings = settings if settings is not None else EngineSettings()
        self.rng = rng

    def _history(self, symbols: Iterable[str], window: int) -> Dict[str, Sequence[PriceObservation]]:
        return {symbol: self.prices.get_price_history(symbol, window) for symbol in symbols}

    def compute_statistics(self, holdings: Iterable[Holding]) -> PortfolioStatistics:
        holdings = validate_holdings(holdings)
        window = self.settings.statistics_window
        return compute_statistics(
            holdings,
            self._history((h.symbol for h in holdings), window),
            window=window,
            min_observations=self.settings.min_observations,
        )

    def build_frontier(
        self,
        holdings: Iterable[Holding],
        sample_count: Optional[int] = None,
        refine: bool = False
    ) -> OptimizedPortfolioSnapshot:
        """Sample the frontier for a set of holdings without storing it."""
        holdings = validate_holdings(holdings)
        window = self.settings.statistics_window
        if sample_count is None:
            sample_count = self.settings.sample_count
        optimizer = FrontierOptimizer.from_holdings(
            holdings,
            self._history((h.symbol for h in holdings), window),
            window=window,
            min_observations=self.settings.min_observations,
            rng=self.rng,
        )
        return optimizer.build_frontier(
            sample_count=sample_count,
            refine=refine,
        )

    def run_optimizer(
        self,
        portfolio_id: str,
        holdings: Iterable[Holding],
        sample_count: Optional[int] = None,
        refine: bool = False
    ) -> OptimizedPortfolioSnapshot:
        """
        Build a frontier and replace the portfolio's stored snapshot.

        The stored snapshot is only replaced after a successful run; any
        failure propagates and leaves the previous snapshot untouched.
        """
        snapshot = self.build_frontier(holdings, sample_count=sample_count, refine=refine)
        self.snapshots.put(portfolio_id, snapshot)
        logger.info(
            f"Stored optimizer snapshot for portfolio {portfolio_id} "
            f"({len(snapshot.efficient_frontier)} points)"
        )
        return snapshot

    def get_snapshot(self, portfolio_id: str) -> Optional[OptimizedPortfolioSnapshot]:
        return self.snapshots.get(portfolio_id)

    def forecast_trend(self, symbol: str, horizon: Optional[int] = None) -> List[ForecastPoint]:
        window = self.settings.forecast_window
        horizon = self.settings.forecast_horizon if horizon is None else horizon
        return forecast_trend(
            self.prices.get_price_history(symbol, window), horizon=horizon, window=window
        )

    def forecast_with_sentiment(
        self,
        symbol: str,
        horizon: Optional[int] = None,
        as_of: Optional[datetime] = None
    ) -> Optional[List[ForecastPoint]]:
        """Sentiment-adjusted forecast, or None without classified news."""
        if self.news is None:
            return None

        window = self.settings.forecast_window
        window_days = self.settings.news_window_days
        horizon = self.settings.forecast_horizon if horizon is None else horizon

        news = self.news.get_news(symbol, window_days)
        if self.settings.classify_unlabelled_news:
            news = classify_news(news)

        return forecast_with_sentiment(
            self.prices.get_price_history(symbol, window),
            news,
            horizon=horizon,
            window=window,
            window_days=window_days,
            as_of=as_of,
            adjustment=self.settings.sentiment_adjustment,
        )

    def compare_to_market(self, symbol: str) -> MarketComparison:
        if self.indices is None:
            raise RuntimeError("No market index provider configured")

        window = self.settings.comparison_window
        index_history = {
            index_symbol: self.indices.get_index_history(index_symbol, window)
            for index_symbol in self.settings.indices
        }
        return compare_to_market(
            self.prices.get_price_history(symbol, window), index_history, window=window
        )

    def market_overview(self) -> List[MarketIndexSummary]:
        """Index summaries exactly as supplied by the index provider."""
        if self.indices is None:
            return []
        return list(self.indices.get_index_summaries())
