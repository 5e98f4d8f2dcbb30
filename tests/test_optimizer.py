"""
Tests for the sampled frontier optimizer.

Sampling is randomized, so optimality is asserted against the analytic
two-asset solution within a tolerance rather than exactly.
"""

import logging
from dataclasses import FrozenInstanceError
from datetime import datetime

import numpy as np
import pandas as pd
import pytest

from portfolio_analytics.exceptions import InsufficientDataError, InvalidWeightError
from portfolio_analytics.mathematics import QuantMetrics
from portfolio_analytics.models import FrontierPoint, Holding
from portfolio_analytics.optimizer import FrontierOptimizer, efficient_points

MEAN_RETURNS = np.array([0.001, 0.0015])
COV_MATRIX = np.array([
    [0.0001, 0.00002],
    [0.00002, 0.000225],
])


def analytic_tangency():
    """Unconstrained tangency portfolio (interior for these inputs)."""
    raw = np.linalg.solve(COV_MATRIX, MEAN_RETURNS)
    return raw / raw.sum()


def analytic_min_variance():
    raw = np.linalg.solve(COV_MATRIX, np.ones(2))
    return raw / raw.sum()


def sharpe_of(weights_dict):
    weights = np.array([weights_dict["A"], weights_dict["B"]])
    ret = QuantMetrics.portfolio_return(weights, MEAN_RETURNS)
    vol = QuantMetrics.portfolio_volatility(weights, COV_MATRIX)
    return QuantMetrics.sharpe_ratio(ret, vol)


@pytest.fixture
def optimizer():
    return FrontierOptimizer(
        ["A", "B"], MEAN_RETURNS, COV_MATRIX, rng=np.random.default_rng(42)
    )


class TestAnalyticReference:
    """Sanity checks on the analytic reference solution."""

    def test_tangency_is_long_only(self):
        weights = analytic_tangency()
        assert np.all(weights > 0)
        assert weights == pytest.approx([0.6, 0.4])


class TestBuildFrontier:
    """Tests for the Monte-Carlo frontier."""

    def test_max_sharpe_near_tangency(self, optimizer):
        """Sampled max-Sharpe allocation is within 2% of the analytic optimum."""
        snapshot = optimizer.build_frontier(sample_count=5000)

        best = np.sqrt(MEAN_RETURNS @ np.linalg.solve(COV_MATRIX, MEAN_RETURNS))
        sampled = sharpe_of(snapshot.max_sharpe_weights)

        assert sampled <= best + 1e-12
        assert sampled >= best * 0.98

    def test_min_variance_near_analytic(self, optimizer):
        snapshot = optimizer.build_frontier(sample_count=5000)

        weights = analytic_min_variance()
        best_vol = QuantMetrics.portfolio_volatility(weights, COV_MATRIX)
        sampled = np.array([
            snapshot.min_variance_weights["A"], snapshot.min_variance_weights["B"]
        ])

        assert QuantMetrics.portfolio_volatility(sampled, COV_MATRIX) <= best_vol * 1.01

    def test_frontier_is_full_cloud(self, optimizer):
        snapshot = optimizer.build_frontier(sample_count=250)

        assert len(snapshot.efficient_frontier) == 250
        risks = [point.risk for point in snapshot.efficient_frontier]
        assert all(risk >= 0 for risk in risks)
        assert risks == sorted(risks)

    def test_weights_on_simplex(self, optimizer):
        snapshot = optimizer.build_frontier(sample_count=100)

        for point in snapshot.efficient_frontier:
            assert abs(sum(point.weights.values()) - 1.0) < 1e-9
            assert min(point.weights.values()) >= 0
        assert abs(sum(snapshot.max_sharpe_weights.values()) - 1.0) < 1e-9
        assert abs(sum(snapshot.min_variance_weights.values()) - 1.0) < 1e-9

    def test_calculated_at_is_fresh(self, optimizer):
        before = datetime.now().astimezone()
        snapshot = optimizer.build_frontier(sample_count=10)
        assert snapshot.calculated_at >= before

    def test_seeded_runs_repeat(self):
        first = FrontierOptimizer(
            ["A", "B"], MEAN_RETURNS, COV_MATRIX, rng=np.random.default_rng(5)
        ).build_frontier(sample_count=50)
        second = FrontierOptimizer(
            ["A", "B"], MEAN_RETURNS, COV_MATRIX, rng=np.random.default_rng(5)
        ).build_frontier(sample_count=50)

        assert first.max_sharpe_weights == second.max_sharpe_weights
        assert first.efficient_frontier == second.efficient_frontier

    def test_base_weights_included(self):
        optimizer = FrontierOptimizer(
            ["A", "B"], MEAN_RETURNS, COV_MATRIX,
            base_weights={"A": 3.0, "B": 1.0},
            rng=np.random.default_rng(0),
        )

        snapshot = optimizer.build_frontier(sample_count=1)

        assert len(snapshot.efficient_frontier) == 2
        assert any(
            point.weights["A"] == pytest.approx(0.75)
            for point in snapshot.efficient_frontier
        )

    def test_refine_reaches_tangency(self, optimizer):
        """SLSQP refinement lands on the analytic optimum."""
        snapshot = optimizer.build_frontier(sample_count=20, refine=True)

        tangency = analytic_tangency()
        assert snapshot.max_sharpe_weights["A"] == pytest.approx(tangency[0], abs=1e-3)
        min_var = analytic_min_variance()
        assert snapshot.min_variance_weights["A"] == pytest.approx(min_var[0], abs=1e-3)

    def test_non_positive_sample_count(self, optimizer):
        with pytest.raises(ValueError):
            optimizer.build_frontier(sample_count=0)

    def test_sample_count_capped(self, optimizer, monkeypatch):
        monkeypatch.setattr("portfolio_analytics.optimizer.MAX_SAMPLE_COUNT", 30)
        snapshot = optimizer.build_frontier(sample_count=1000)
        assert len(snapshot.efficient_frontier) == 30

    def test_single_asset_rejected(self):
        with pytest.raises(InsufficientDataError):
            FrontierOptimizer(["A"], np.array([0.001]), np.array([[0.0001]]))


class TestGenerateRandomPortfolios:
    def test_columns(self, optimizer):
        portfolios = optimizer.generate_random_portfolios(20)

        assert list(portfolios.columns) == ["Return", "Volatility", "Sharpe", "A", "B"]
        assert len(portfolios) == 20
        assert np.allclose(portfolios[["A", "B"]].sum(axis=1), 1.0)


class TestFromHoldings:
    """Tests for building an optimizer from holdings and price history."""

    def test_builds_from_history(self, make_prices, random_walk):
        history = {
            "AAA": make_prices(random_walk(60, seed=1)),
            "BBB": make_prices(random_walk(60, seed=2)),
        }

        optimizer = FrontierOptimizer.from_holdings(
            [Holding("AAA", 1), Holding("BBB", 1)], history,
            rng=np.random.default_rng(1),
        )
        snapshot = optimizer.build_frontier(sample_count=200)

        assert optimizer.tickers == ["AAA", "BBB"]
        assert set(snapshot.max_sharpe_weights) == {"AAA", "BBB"}
        assert len(snapshot.efficient_frontier) == 201

    def test_short_history_excluded(self, make_prices, random_walk, caplog):
        history = {
            "AAA": make_prices(random_walk(60, seed=1)),
            "BBB": make_prices(random_walk(60, seed=2)),
            "CCC": make_prices([10.0]),
        }

        with caplog.at_level(logging.WARNING, logger="portfolio_analytics.optimizer"):
            optimizer = FrontierOptimizer.from_holdings(
                [Holding("AAA", 1), Holding("BBB", 1), Holding("CCC", 1)], history
            )

        assert optimizer.tickers == ["AAA", "BBB"]
        assert "CCC" in caplog.text

    def test_fewer_than_two_usable(self, make_prices, random_walk):
        history = {
            "AAA": make_prices(random_walk(60, seed=1)),
            "BBB": make_prices([10.0, 11.0]),
        }

        with pytest.raises(InsufficientDataError) as excinfo:
            FrontierOptimizer.from_holdings([Holding("AAA", 1), Holding("BBB", 1)], history)

        assert "BBB" in str(excinfo.value)

    def test_single_holding(self, make_prices, random_walk):
        history = {"AAA": make_prices(random_walk(60, seed=1))}
        with pytest.raises(InsufficientDataError):
            FrontierOptimizer.from_holdings([Holding("AAA", 1)], history)

    def test_invalid_weight(self, make_prices, random_walk):
        history = {
            "AAA": make_prices(random_walk(60, seed=1)),
            "BBB": make_prices(random_walk(60, seed=2)),
        }
        with pytest.raises(InvalidWeightError):
            FrontierOptimizer.from_holdings([Holding("AAA", 1), Holding("BBB", 0)], history)

    def test_from_returns_matches_statistics(self):
        returns = pd.DataFrame({
            "A": [0.01, -0.02, 0.015, 0.005],
            "B": [0.02, 0.01, -0.01, 0.0],
        })
        optimizer = FrontierOptimizer.from_returns(returns)
        assert np.allclose(optimizer.mean_returns, returns.mean().values)
        assert np.allclose(optimizer.cov_matrix, returns.cov().values)


class TestEfficientPoints:
    """Tests for reducing the sampled cloud to its upper edge."""

    def test_dominated_points_dropped(self):
        points = [
            FrontierPoint(risk=0.3, return_=0.02, weights={}),
            FrontierPoint(risk=0.1, return_=0.01, weights={}),
            FrontierPoint(risk=0.2, return_=0.005, weights={}),
        ]

        kept = efficient_points(points)

        assert [p.risk for p in kept] == [0.1, 0.3]

    def test_max_points(self):
        points = [FrontierPoint(risk=i / 10, return_=i / 100, weights={}) for i in range(10)]
        assert len(efficient_points(points, max_points=4)) == 4


class TestSnapshotValues:
    """Frontier results are hashable, immutable values."""

    def test_points_and_snapshot_hashable(self, optimizer):
        snapshot = optimizer.build_frontier(sample_count=50)

        assert isinstance(hash(snapshot), int)
        assert len({hash(point) for point in snapshot.efficient_frontier}) >= 1

    def test_equal_points_share_hash(self):
        first = FrontierPoint(risk=0.1, return_=0.01, weights={"A": 1.0})
        second = FrontierPoint(risk=0.1, return_=0.01, weights={"A": 1.0})

        assert first == second
        assert hash(first) == hash(second)

    def test_fields_cannot_be_reassigned(self, optimizer):
        snapshot = optimizer.build_frontier(sample_count=10)

        with pytest.raises(FrozenInstanceError):
            snapshot.max_sharpe_weights = {}
        with pytest.raises(FrozenInstanceError):
            snapshot.efficient_frontier[0].risk = 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
