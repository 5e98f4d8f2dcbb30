"""
Portfolio Statistics Module.

Aggregates per-holding return series into portfolio-level risk/return
metrics. Weights are user-entered and need not sum to 1; they are validated
and silently renormalized here.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from portfolio_analytics.config import MIN_OBSERVATIONS, STATISTICS_WINDOW
from portfolio_analytics.exceptions import InsufficientDataError, InvalidWeightError
from portfolio_analytics.mathematics import QuantMetrics
from portfolio_analytics.models import Holding, PortfolioStatistics, PriceObservation
from portfolio_analytics.returns import (
    align_returns,
    calculate_returns,
    prepare_price_series,
)

logger = logging.getLogger(__name__)


def validate_holdings(holdings: Iterable[Holding]) -> List[Holding]:
    """
    Reject invalid weights and merge repeated symbols.

    Args:
        holdings: Holdings as entered by the user.

    Returns:
        One holding per symbol, in first-seen order, with weights summed.

    Raises:
        InvalidWeightError: If any weight is non-positive or non-finite.
    """
    merged: "OrderedDict[str, float]" = OrderedDict()
    for holding in holdings:
        weight = holding.weight
        if weight is None or not np.isfinite(weight) or weight <= 0:
            raise InvalidWeightError(holding.symbol, weight)
        merged[holding.symbol] = merged.get(holding.symbol, 0.0) + float(weight)
    return [Holding(symbol, weight) for symbol, weight in merged.items()]


def collect_returns(
    symbols: Sequence[str],
    price_history: Mapping[str, Sequence[PriceObservation]],
    window: int
) -> Tuple[Dict[str, pd.Series], Dict[str, float]]:
    """
    Build return series and latest closes for each symbol.

    Returns:
        Tuple of ({symbol: returns}, {symbol: latest finite close}).
    """
    returns_by_symbol: Dict[str, pd.Series] = {}
    latest_closes: Dict[str, float] = {}

    for symbol in symbols:
        prices = prepare_price_series(price_history.get(symbol, ()), window=window)
        returns_by_symbol[symbol] = calculate_returns(prices)
        finite = prices[np.isfinite(prices.values)]
        latest_closes[symbol] = float(finite.iloc[-1]) if len(finite) else 0.0

    return returns_by_symbol, latest_closes


def compute_statistics(
    holdings: Iterable[Holding],
    price_history: Mapping[str, Sequence[PriceObservation]],
    window: int = STATISTICS_WINDOW,
    min_observations: int = MIN_OBSERVATIONS
) -> PortfolioStatistics:
    """
    Compute risk/return statistics for a weighted set of holdings.

    Each holding's closes are truncated to the trailing ``window`` and turned
    into simple returns. Holdings with shorter histories are still included;
    ``observation_count`` reports the shortest series used.

    Args:
        holdings: Holdings with raw weights.
        price_history: Price observations per symbol (any order).
        window: Trailing number of price observations per symbol.
        min_observations: Minimum return observations each holding needs.

    Returns:
        PortfolioStatistics for the normalized allocation.

    Raises:
        InvalidWeightError: If a weight is non-positive or non-finite.
        InsufficientDataError: If there are no holdings or any holding has
            fewer than ``min_observations`` returns.
    """
    holdings = validate_holdings(holdings)
    if not holdings:
        raise InsufficientDataError(
            "Portfolio has no holdings.", required=1, available=0
        )

    symbols = [holding.symbol for holding in holdings]
    raw_weights = np.array([holding.weight for holding in holdings], dtype=float)
    weight_sum = float(raw_weights.sum())
    weights = QuantMetrics.normalize_weights(raw_weights)

    returns_by_symbol, latest_closes = collect_returns(symbols, price_history, window)

    observation_count = min(len(series) for series in returns_by_symbol.values())
    if observation_count < min_observations:
        short = [s for s, r in returns_by_symbol.items() if len(r) < min_observations]
        raise InsufficientDataError(
            f"Insufficient price history for {', '.join(short)}: "
            f"need at least {min_observations} returns, have {observation_count}.",
            required=min_observations,
            available=observation_count,
        )

    mean_returns = {
        symbol: float(series.mean()) for symbol, series in returns_by_symbol.items()
    }
    mean_vector = np.array([mean_returns[s] for s in symbols])
    cov_matrix = QuantMetrics.calculate_covariance_matrix(align_returns(returns_by_symbol))

    expected_return = QuantMetrics.portfolio_return(weights, mean_vector)
    variance = QuantMetrics.portfolio_variance(weights, cov_matrix)
    volatility = float(np.sqrt(variance))
    sharpe = QuantMetrics.sharpe_ratio(expected_return, volatility)

    total_value = float(sum(
        weight * latest_closes[symbol] for symbol, weight in zip(symbols, weights)
    ))

    logger.debug(
        f"Statistics for {len(symbols)} holdings over {observation_count} observations: "
        f"return={expected_return:.6f}, volatility={volatility:.6f}"
    )

    return PortfolioStatistics(
        expected_return=expected_return,
        variance=variance,
        volatility=volatility,
        sharpe_ratio=sharpe,
        weight_sum=weight_sum,
        observation_count=observation_count,
        mean_returns=mean_returns,
        total_value=total_value,
    )
