"""
Portfolio Analytics Engine

Pure, stateless analytics for a personal financial dashboard: return
series, portfolio risk/return statistics, a Monte-Carlo sampled efficient
frontier, linear trend forecasts with an optional news-sentiment overlay,
and relative performance against market indices.

Modules:
    - returns: Price series preparation and simple returns
    - mathematics: Shared portfolio maths
    - statistics: Portfolio-level risk/return metrics
    - optimizer: Sampled efficient frontier
    - forecasting: Linear trend forecasts
    - sentiment: News-sentiment overlay and headline classification
    - market: Comparison against market indices
    - engine: Facade wiring the computations to their data sources
    - data_loader: yfinance-backed data sources
"""

from portfolio_analytics.engine import (
    AnalyticsEngine,
    EngineSettings,
    InMemorySnapshotStore,
)
from portfolio_analytics.exceptions import (
    AnalyticsError,
    InsufficientDataError,
    InvalidWeightError,
)
from portfolio_analytics.forecasting import forecast_trend
from portfolio_analytics.market import compare_to_market, summarize_index
from portfolio_analytics.mathematics import QuantMetrics
from portfolio_analytics.models import (
    ForecastPoint,
    FrontierPoint,
    Holding,
    MarketComparison,
    MarketIndexSummary,
    NewsItem,
    OptimizedPortfolioSnapshot,
    PortfolioStatistics,
    PriceObservation,
    Sentiment,
)
from portfolio_analytics.optimizer import FrontierOptimizer, efficient_points
from portfolio_analytics.returns import calculate_returns, prepare_price_series
from portfolio_analytics.sentiment import classify_news, forecast_with_sentiment
from portfolio_analytics.statistics import compute_statistics

__all__ = [
    "AnalyticsEngine",
    "EngineSettings",
    "InMemorySnapshotStore",
    "AnalyticsError",
    "InsufficientDataError",
    "InvalidWeightError",
    "QuantMetrics",
    "FrontierOptimizer",
    "efficient_points",
    "ForecastPoint",
    "FrontierPoint",
    "Holding",
    "MarketComparison",
    "MarketIndexSummary",
    "NewsItem",
    "OptimizedPortfolioSnapshot",
    "PortfolioStatistics",
    "PriceObservation",
    "Sentiment",
    "calculate_returns",
    "prepare_price_series",
    "compute_statistics",
    "forecast_trend",
    "forecast_with_sentiment",
    "classify_news",
    "compare_to_market",
    "summarize_index",
]

__version__ = "1.0.0"
