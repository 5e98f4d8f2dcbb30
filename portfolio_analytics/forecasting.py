"""
Trend Forecasting Module.

Fits an ordinary-least-squares line to a trailing price window and
extrapolates it over the next few trading days. The coefficient of
determination (R²) of the fit is reported as the forecast confidence.

Formula: price_t = a + b * t, with t the zero-based day index.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.stats import linregress

from portfolio_analytics.config import FORECAST_HORIZON, FORECAST_WINDOW, MIN_OBSERVATIONS
from portfolio_analytics.models import ForecastPoint, PriceObservation
from portfolio_analytics.returns import prepare_price_series

logger = logging.getLogger(__name__)

LINEAR_REGRESSION = "linear_regression"


@dataclass(frozen=True)
class TrendFit:
    """Fitted trend line over a price window."""
    intercept: float
    slope: float
    r_squared: float
    observation_count: int
    last_date: pd.Timestamp

    def predict(self, index: int) -> float:
        return self.intercept + self.slope * index


def fit_trend(prices: pd.Series) -> Optional[TrendFit]:
    """
    Fit a least-squares line through an ascending price series.

    A perfectly flat series has no variance to explain, so R² is undefined
    (0/0); it is reported as 1.0 because the flat line reproduces every
    observation exactly.

    Args:
        prices: Finite close prices indexed by date, oldest first.

    Returns:
        TrendFit, or None when fewer than two prices are available.
    """
    if len(prices) < MIN_OBSERVATIONS:
        return None

    y = prices.values.astype(float)
    x = np.arange(len(y), dtype=float)

    if np.all(y == y[0]):
        return TrendFit(float(y[0]), 0.0, 1.0, len(y), prices.index[-1])

    result = linregress(x, y)
    r_squared = float(np.clip(result.rvalue ** 2, 0.0, 1.0))

    return TrendFit(
        intercept=float(result.intercept),
        slope=float(result.slope),
        r_squared=r_squared,
        observation_count=len(y),
        last_date=prices.index[-1],
    )


def project(fit: TrendFit, horizon: int, method: str = LINEAR_REGRESSION) -> List[ForecastPoint]:
    """
    Extrapolate a fitted trend over the next ``horizon`` trading days.

    Weekends are skipped when mapping day indices to calendar dates.
    Predicted prices are floored at zero.
    """
    points = []
    last_index = fit.observation_count - 1
    for step in range(1, horizon + 1):
        forecast_date = (fit.last_date + pd.offsets.BDay(step)).date()
        predicted = max(0.0, fit.predict(last_index + step))
        points.append(ForecastPoint(
            date=forecast_date,
            predicted_price=predicted,
            confidence=fit.r_squared,
            method=method,
        ))
    return points


def forecast_trend(
    observations: Sequence[PriceObservation],
    horizon: int = FORECAST_HORIZON,
    window: int = FORECAST_WINDOW
) -> List[ForecastPoint]:
    """
    Forecast the next ``horizon`` trading days from a linear price trend.

    Args:
        observations: Price observations for one symbol, in any order.
        horizon: Number of trading days to project.
        window: Trailing number of observations used for the fit.

    Returns:
        Forecast points ordered by date; empty when fewer than two valid
        prices are available.

    Raises:
        ValueError: If horizon is negative.
    """
    if horizon < 0:
        raise ValueError(f"horizon must not be negative, got {horizon}")

    prices = prepare_price_series(observations, window=window, finite_only=True)
    fit = fit_trend(prices)
    if fit is None:
        logger.debug(f"Not enough prices to forecast ({len(prices)} available)")
        return []

    return project(fit, horizon)
