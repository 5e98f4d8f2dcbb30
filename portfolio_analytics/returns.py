"""
Return Series Module.

Turns raw price observations into chronologically ordered price series and
day-over-day simple returns. Every other component consumes the output of
this module, so all cleaning (ordering, de-duplication, trailing-window
truncation, removal of malformed closes) happens here.

Formula: r_t = (P_t - P_{t-1}) / P_{t-1}
"""

import logging
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd

from portfolio_analytics.models import PriceObservation

logger = logging.getLogger(__name__)


def _empty_series() -> pd.Series:
    return pd.Series(dtype=float, index=pd.DatetimeIndex([]))


def prepare_price_series(
    observations: Iterable[PriceObservation],
    window: Optional[int] = None,
    finite_only: bool = False
) -> pd.Series:
    """
    Build an ascending close-price series from provider observations.

    Providers may hand back observations newest-first or oldest-first, so the
    series is always re-sorted by date. If a date appears twice the later
    observation wins.

    Args:
        observations: Price observations for a single symbol.
        window: Keep only the trailing ``window`` observations.
        finite_only: Drop observations whose close is NaN or infinite.
                     Return calculation leaves them in place instead, so the
                     day after a bad close is excluded rather than bridged.

    Returns:
        Series of closes indexed by a DatetimeIndex, oldest first.
    """
    observations = list(observations)
    if not observations:
        return _empty_series()

    closes = pd.Series(
        [obs.close for obs in observations],
        index=pd.DatetimeIndex(pd.to_datetime([obs.date for obs in observations])),
        dtype=float,
    )
    closes = closes.sort_index(kind="mergesort")
    closes = closes[~closes.index.duplicated(keep="last")]

    if window is not None:
        closes = closes.iloc[-window:] if window > 0 else closes.iloc[:0]

    if finite_only:
        finite = np.isfinite(closes.values)
        if not finite.all():
            logger.debug(f"Dropping {int((~finite).sum())} non-finite closes")
        closes = closes[finite]

    return closes


def calculate_returns(prices: pd.Series) -> pd.Series:
    """
    Calculate simple daily returns from an ascending price series.

    A day is skipped when its prior close is non-finite or non-positive, or
    when its own close is non-finite; skipped days are removed from the
    series, never filled with a placeholder.

    Args:
        prices: Close prices, oldest first.

    Returns:
        Series of at most len(prices) - 1 finite returns. Empty when fewer
        than two prices are available.
    """
    if len(prices) < 2:
        return prices.iloc[:0].astype(float)

    prices = prices.astype(float)
    previous = prices.shift(1)

    with np.errstate(divide="ignore", invalid="ignore"):
        returns = (prices - previous) / previous

    valid = np.isfinite(previous.values) & (previous.values > 0) & np.isfinite(returns.values)
    skipped = len(returns) - 1 - int(valid.sum())
    if skipped > 0:
        logger.debug(f"Skipped {skipped} returns with malformed closes")

    return returns[valid]


def returns_from_observations(
    observations: Iterable[PriceObservation],
    window: Optional[int] = None
) -> pd.Series:
    """Shortcut for ``calculate_returns(prepare_price_series(...))``."""
    return calculate_returns(prepare_price_series(observations, window=window))


def align_returns(returns_by_symbol: Dict[str, pd.Series]) -> pd.DataFrame:
    """
    Align per-symbol return series on their dates.

    Holdings with shorter histories are kept; dates they lack are NaN so
    pairwise statistics only use the days both symbols traded.

    Args:
        returns_by_symbol: Mapping of symbol to return series.

    Returns:
        DataFrame of returns (rows=dates, columns=symbols in mapping order).
    """
    if not returns_by_symbol:
        return pd.DataFrame(dtype=float)

    aligned = pd.concat(returns_by_symbol, axis=1, sort=True)
    return aligned.reindex(columns=list(returns_by_symbol.keys())).astype(float)
