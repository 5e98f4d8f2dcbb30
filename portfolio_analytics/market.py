"""
Market comparison.

Compares a company's trailing return with the returns of tracked market
indices over the same window and classifies each index as beaten or
beating.
"""

import logging
from typing import Mapping, Optional, Sequence

import pandas as pd

from portfolio_analytics.config import COMPARISON_WINDOW, MIN_OBSERVATIONS
from portfolio_analytics.exceptions import InsufficientDataError
from portfolio_analytics.models import MarketComparison, MarketIndexSummary, PriceObservation
from portfolio_analytics.returns import prepare_price_series

logger = logging.getLogger(__name__)


def period_return(prices: pd.Series) -> Optional[float]:
    """
    Simple return from the first to the last close of a series.

    Returns None when fewer than two prices are available or the first
    close is not positive.
    """
    if len(prices) < MIN_OBSERVATIONS:
        return None
    first, last = float(prices.iloc[0]), float(prices.iloc[-1])
    if first <= 0:
        return None
    return (last - first) / first


def compare_to_market(
    company_observations: Sequence[PriceObservation],
    index_observations: Mapping[str, Sequence[PriceObservation]],
    window: int = COMPARISON_WINDOW
) -> MarketComparison:
    """
    Compare the company's trailing return against each index.

    An index lands in ``outperformers`` when the company's return exceeds
    it and in ``underperformers`` when the index's return exceeds the
    company's. Ties go to neither set. Indices with too little history are
    left out of the comparison entirely.

    Args:
        company_observations: Company price observations, in any order.
        index_observations: Price observations keyed by index symbol.
        window: Trailing number of observations compared.

    Returns:
        MarketComparison for the window.

    Raises:
        InsufficientDataError: If the company has fewer than two valid prices
            or a non-positive price at the start of the window.
    """
    company_prices = prepare_price_series(company_observations, window=window, finite_only=True)
    company_return = period_return(company_prices)
    if company_return is None and len(company_prices) >= MIN_OBSERVATIONS:
        raise InsufficientDataError(
            f"Company price at the start of the comparison window is "
            f"{float(company_prices.iloc[0])}; a positive starting price is "
            "needed to compute a return.",
            required=MIN_OBSERVATIONS,
            available=0,
        )
    if company_return is None:
        raise InsufficientDataError(
            f"Need at least {MIN_OBSERVATIONS} company prices to compare with "
            f"the market, have {len(company_prices)}.",
            required=MIN_OBSERVATIONS,
            available=len(company_prices),
        )

    market_returns = {}
    outperformers = set()
    underperformers = set()

    for symbol, observations in index_observations.items():
        index_return = period_return(
            prepare_price_series(observations, window=window, finite_only=True)
        )
        if index_return is None:
            logger.warning(f"Skipping index {symbol}: insufficient price history")
            continue

        market_returns[symbol] = index_return
        if company_return > index_return:
            outperformers.add(symbol)
        elif index_return > company_return:
            underperformers.add(symbol)

    return MarketComparison(
        company_return=company_return,
        market_returns=market_returns,
        outperformers=frozenset(outperformers),
        underperformers=frozenset(underperformers),
    )


def summarize_index(
    symbol: str,
    name: str,
    observations: Sequence[PriceObservation]
) -> MarketIndexSummary:
    """
    Summarize an index's latest close and its move from the prior close.

    ``change_percent`` is expressed in percent (1.5 means +1.5%). Without a
    prior close the change is reported as zero.
    """
    prices = prepare_price_series(observations, finite_only=True)
    current = float(prices.iloc[-1]) if len(prices) else 0.0
    change = 0.0
    change_percent = 0.0
    if len(prices) >= 2:
        previous = float(prices.iloc[-2])
        change = current - previous
        change_percent = change / previous * 100 if previous != 0 else 0.0

    return MarketIndexSummary(
        symbol=symbol,
        name=name,
        current_price=current,
        change=change,
        change_percent=change_percent,
    )
