"""Shared fixtures for the analytics test suite."""

from datetime import date

import numpy as np
import pandas as pd
import pytest

from portfolio_analytics.models import PriceObservation


@pytest.fixture
def make_prices():
    """Build business-day PriceObservations from a list of closes."""

    def _make(closes, start=date(2024, 1, 1)):
        dates = pd.bdate_range(start=start, periods=len(closes))
        return [
            PriceObservation(date=d.date(), close=float(c))
            for d, c in zip(dates, closes)
        ]

    return _make


@pytest.fixture
def random_walk():
    """Build a reproducible random-walk close series."""

    def _walk(n, seed, drift=0.001, vol=0.01, start_price=100.0):
        rng = np.random.default_rng(seed)
        returns = rng.normal(drift, vol, n - 1)
        return list(start_price * np.concatenate([[1.0], np.cumprod(1 + returns)]))

    return _walk
