"""
Data containers exchanged with the analytics engine.

Inputs (price observations, holdings, news items) arrive from external
collaborators; outputs (statistics, frontier snapshots, forecasts, market
comparisons) are plain values handed back to the persistence and
presentation layers. Result types expose ``to_dict()`` so they can be stored
or serialized without the caller knowing their internals.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional


class Sentiment(str, Enum):
    """Classification tag attached to a news item."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class PriceObservation:
    """
    One symbol's prices on one trading day.

    Only ``close`` is required; the remaining fields are carried through
    from the quote provider when available.
    """
    date: date
    close: float
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    volume: Optional[float] = None


@dataclass(frozen=True)
class Holding:
    """A symbol and its user-entered weight within a portfolio."""
    symbol: str
    weight: float


@dataclass(frozen=True)
class NewsItem:
    """A news article; ``sentiment`` is None when it has not been classified."""
    published_at: datetime
    title: str
    summary: str = ""
    sentiment: Optional[Sentiment] = None


@dataclass
class PortfolioStatistics:
    """
    Portfolio-level risk/return metrics computed from daily simple returns.

    Attributes:
        expected_return: Weighted mean daily return.
        variance: Portfolio variance w^T * Σ * w (never negative).
        volatility: Square root of variance.
        sharpe_ratio: expected_return / volatility (0 when volatility is 0).
        weight_sum: Raw sum of the user-entered weights before normalization.
        observation_count: Shortest return series used across holdings.
        mean_returns: Mean daily return per symbol.
        total_value: Weighted sum of latest closes (a diagnostic, not a valuation).
    """
    expected_return: float
    variance: float
    volatility: float
    sharpe_ratio: float
    weight_sum: float
    observation_count: int
    mean_returns: Dict[str, float]
    total_value: float

    def to_dict(self) -> Dict:
        return {
            "expectedReturn": self.expected_return,
            "variance": self.variance,
            "volatility": self.volatility,
            "sharpeRatio": self.sharpe_ratio,
            "weightSum": self.weight_sum,
            "observationCount": self.observation_count,
            "meanReturns": dict(self.mean_returns),
            "totalValue": self.total_value,
        }


@dataclass(frozen=True)
class FrontierPoint:
    """Volatility/return coordinates of one sampled allocation."""
    risk: float
    return_: float
    weights: Dict[str, float] = field(hash=False)

    @property
    def sharpe_ratio(self) -> float:
        return self.return_ / self.risk if self.risk > 0 else 0.0

    def to_dict(self) -> Dict:
        return {
            "risk": self.risk,
            "return": self.return_,
            "weights": dict(self.weights),
        }


@dataclass(frozen=True)
class OptimizedPortfolioSnapshot:
    """
    Result of one optimizer run, stored per portfolio and replaced wholesale
    by the next run.
    """
    max_sharpe_weights: Dict[str, float] = field(hash=False)
    min_variance_weights: Dict[str, float] = field(hash=False)
    efficient_frontier: List[FrontierPoint] = field(hash=False)
    calculated_at: datetime

    def to_dict(self) -> Dict:
        return {
            "maxSharpeWeights": dict(self.max_sharpe_weights),
            "minVarianceWeights": dict(self.min_variance_weights),
            "efficientFrontier": [point.to_dict() for point in self.efficient_frontier],
            "calculatedAt": self.calculated_at.isoformat(),
        }


@dataclass(frozen=True)
class ForecastPoint:
    """One projected trading day."""
    date: date
    predicted_price: float
    confidence: float
    method: str

    def to_dict(self) -> Dict:
        return {
            "date": self.date.isoformat(),
            "predictedPrice": self.predicted_price,
            "confidence": self.confidence,
            "method": self.method,
        }


@dataclass(frozen=True)
class MarketComparison:
    """Trailing company return compared against each tracked index."""
    company_return: float
    market_returns: Dict[str, float] = field(hash=False)
    outperformers: FrozenSet[str] = field(default_factory=frozenset)
    underperformers: FrozenSet[str] = field(default_factory=frozenset)

    def to_dict(self) -> Dict:
        return {
            "companyReturn": self.company_return,
            "marketReturns": dict(self.market_returns),
            "outperformers": sorted(self.outperformers),
            "underperformers": sorted(self.underperformers),
        }


@dataclass(frozen=True)
class MarketIndexSummary:
    """Latest level and daily move of a market index."""
    symbol: str
    name: str
    current_price: float
    change: float
    change_percent: float

    def to_dict(self) -> Dict:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "currentPrice": self.current_price,
            "change": self.change,
            "changePercent": self.change_percent,
        }
