"""Tests for price series preparation and simple returns."""

from datetime import date

import numpy as np
import pandas as pd
import pytest

from portfolio_analytics.models import PriceObservation
from portfolio_analytics.returns import (
    align_returns,
    calculate_returns,
    prepare_price_series,
    returns_from_observations,
)


class TestPreparePriceSeries:
    """Tests for ordering, de-duplication and truncation."""

    def test_newest_first_is_reordered(self, make_prices):
        """Providers returning newest-first must yield an ascending series."""
        observations = list(reversed(make_prices([100, 101, 102])))

        prices = prepare_price_series(observations)

        assert list(prices.values) == [100.0, 101.0, 102.0]
        assert prices.index.is_monotonic_increasing

    def test_trailing_window(self, make_prices):
        """Only the last ``window`` observations are kept."""
        prices = prepare_price_series(make_prices([1, 2, 3, 4, 5]), window=3)

        assert list(prices.values) == [3.0, 4.0, 5.0]

    def test_duplicate_dates_keep_one(self):
        """At most one observation per date survives."""
        observations = [
            PriceObservation(date=date(2024, 1, 2), close=10.0),
            PriceObservation(date=date(2024, 1, 2), close=11.0),
            PriceObservation(date=date(2024, 1, 3), close=12.0),
        ]

        prices = prepare_price_series(observations)

        assert len(prices) == 2
        assert prices.iloc[0] == 11.0

    def test_finite_only_drops_bad_closes(self, make_prices):
        observations = make_prices([100, np.nan, 102, np.inf, 104])

        prices = prepare_price_series(observations, finite_only=True)

        assert list(prices.values) == [100.0, 102.0, 104.0]

    def test_empty(self):
        prices = prepare_price_series([])
        assert len(prices) == 0
        assert isinstance(prices.index, pd.DatetimeIndex)


class TestCalculateReturns:
    """Tests for simple return calculation."""

    def test_known_series(self, make_prices):
        """Hand-calculated returns for a short series."""
        returns = returns_from_observations(make_prices([100, 102, 101, 105, 110]))

        assert [round(r, 4) for r in returns] == [0.02, -0.0098, 0.0396, 0.0476]
        assert round(returns.mean(), 4) == 0.0244

    def test_length_is_n_minus_one(self, make_prices):
        returns = returns_from_observations(make_prices([10, 11, 12, 13]))
        assert len(returns) == 3

    def test_fewer_than_two_prices_is_empty(self, make_prices):
        assert len(returns_from_observations(make_prices([100]))) == 0
        assert len(returns_from_observations([])) == 0

    def test_non_positive_prior_close_skipped(self, make_prices):
        """A day following a zero or negative close is dropped, not filled."""
        returns = returns_from_observations(make_prices([100, 0, 50, -5, 10, 11]))

        # Valid pairs: 100->0 and 50->-5 and 10->11
        assert len(returns) == 3
        assert np.allclose(returns.values, [-1.0, -1.1, 0.1])

    def test_non_finite_close_skipped(self, make_prices):
        """Neither the NaN day nor the day after it produces a return."""
        returns = returns_from_observations(make_prices([100, 110, np.nan, 120, 132]))

        assert len(returns) == 2
        assert np.allclose(returns.values, [0.1, 0.1])

    def test_all_values_finite(self, make_prices):
        rng = np.random.default_rng(11)
        closes = rng.uniform(-5, 50, 200)
        closes[rng.integers(0, 200, 20)] = np.nan
        closes[rng.integers(0, 200, 5)] = np.inf

        prices = prepare_price_series(make_prices(closes))
        returns = calculate_returns(prices)

        assert len(returns) <= len(prices) - 1
        assert np.isfinite(returns.values).all()

    def test_deterministic(self, make_prices):
        observations = make_prices([100, 103, 99, 101])
        first = returns_from_observations(observations)
        second = returns_from_observations(observations)
        assert first.equals(second)


class TestAlignReturns:
    """Tests for aligning return series across symbols."""

    def test_shorter_series_kept(self, make_prices):
        long_returns = returns_from_observations(make_prices([1, 2, 3, 4, 5]))
        short_returns = returns_from_observations(
            make_prices([10, 11, 12], start=date(2024, 1, 3))
        )

        aligned = align_returns({"LONG": long_returns, "SHORT": short_returns})

        assert list(aligned.columns) == ["LONG", "SHORT"]
        assert len(aligned) == 4
        assert aligned["SHORT"].notna().sum() == 2
        assert aligned.index.is_monotonic_increasing

    def test_empty_mapping(self):
        assert align_returns({}).empty


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
