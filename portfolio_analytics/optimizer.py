"""
Frontier Optimization Module.

Traces a risk/return frontier by Monte-Carlo sampling long-only allocations
on the probability simplex, and locates the maximum Sharpe ratio and minimum
variance allocations among the samples.

Key Concepts:
    - Efficient Frontier: The set of portfolios offering the highest expected
      return for each level of risk. Here it is approximated by the sampled
      cloud rather than solved in closed form.
    - Maximum Sharpe Ratio Portfolio: The sample with the highest risk-adjusted
      return (zero risk-free rate).
    - Minimum Variance Portfolio: The sample with the lowest volatility.

Sampling Approach:
    Weights are drawn from a Dirichlet(1, ..., 1) distribution, which is
    uniform on the simplex (non-negative entries summing to 1). Optionally the
    two sampled optima are polished with Sequential Least Squares Programming
    (SLSQP) under the same constraints:
    - Constraint: Sum of weights = 1 (fully invested)
    - Bounds: 0 <= weight <= 1 for each asset (long-only)
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.optimize import minimize, OptimizeResult

from portfolio_analytics.config import (
    DEFAULT_SAMPLE_COUNT,
    FRONTIER_RETURN_TOLERANCE,
    MAX_ITERATIONS,
    MAX_SAMPLE_COUNT,
    MIN_FRONTIER_HOLDINGS,
    MIN_OBSERVATIONS,
    OPTIMIZATION_METHOD,
    OPTIMIZATION_TOLERANCE,
    RISK_FREE_RATE,
    STATISTICS_WINDOW,
    VOLATILITY_EPSILON,
)
from portfolio_analytics.exceptions import InsufficientDataError
from portfolio_analytics.mathematics import QuantMetrics
from portfolio_analytics.models import (
    FrontierPoint,
    Holding,
    OptimizedPortfolioSnapshot,
    PriceObservation,
)
from portfolio_analytics.returns import align_returns
from portfolio_analytics.statistics import collect_returns, validate_holdings

logger = logging.getLogger(__name__)


class FrontierOptimizer:
    """
    Samples allocations to build an OptimizedPortfolioSnapshot.

    The optimizer is stateless apart from its random generator: each call to
    ``build_frontier`` produces a fresh snapshot and never touches a stored
    one.

    Attributes:
        tickers: Symbols in column order.
        n_assets: Number of assets.
        mean_returns: Mean daily return per asset.
        cov_matrix: Pairwise covariance matrix of daily returns.
        risk_free_rate: Daily risk-free rate used for Sharpe ratios.

    Example:
        >>> optimizer = FrontierOptimizer.from_returns(returns_df)
        >>> snapshot = optimizer.build_frontier(sample_count=5000)
        >>> snapshot.max_sharpe_weights
        {'AAPL': 0.61, 'MSFT': 0.39}
    """

    def __init__(
        self,
        tickers: Sequence[str],
        mean_returns: np.ndarray,
        cov_matrix: np.ndarray,
        base_weights: Optional[Mapping[str, float]] = None,
        risk_free_rate: float = RISK_FREE_RATE,
        rng: Optional[np.random.Generator] = None
    ) -> None:
        """
        Initialize the FrontierOptimizer.

        Args:
            tickers: Asset symbols.
            mean_returns: Mean daily return per asset.
            cov_matrix: Covariance matrix of daily returns (n x n).
            base_weights: The portfolio's current allocation; when given it is
                          evaluated as one extra sample.
            risk_free_rate: Daily risk-free rate for Sharpe calculation.
            rng: Random generator; pass a seeded one for reproducible runs.

        Raises:
            InsufficientDataError: If fewer than two assets are supplied.
        """
        self.tickers: List[str] = list(tickers)
        self.n_assets: int = len(self.tickers)
        if self.n_assets < MIN_FRONTIER_HOLDINGS:
            raise InsufficientDataError(
                f"Add at least {MIN_FRONTIER_HOLDINGS} holdings with price history "
                "before running the optimiser.",
                required=MIN_FRONTIER_HOLDINGS,
                available=self.n_assets,
            )

        self.mean_returns: np.ndarray = np.asarray(mean_returns, dtype=float)
        self.cov_matrix: np.ndarray = np.asarray(cov_matrix, dtype=float)
        self.risk_free_rate: float = risk_free_rate
        self.rng: np.random.Generator = rng if rng is not None else np.random.default_rng()

        self._base_weights: Optional[np.ndarray] = None
        if base_weights:
            raw = np.array([base_weights.get(t, 0.0) for t in self.tickers], dtype=float)
            if np.isfinite(raw).all() and raw.sum() > 0:
                self._base_weights = QuantMetrics.normalize_weights(raw)

        # SLSQP constraints and bounds for optional refinement
        self._constraints = [
            {"type": "eq", "fun": lambda w: np.sum(w) - 1}  # Weights sum to 1
        ]
        self._bounds = tuple((0.0, 1.0) for _ in range(self.n_assets))

    @classmethod
    def from_returns(
        cls,
        returns: pd.DataFrame,
        **kwargs
    ) -> "FrontierOptimizer":
        """
        Create an optimizer from aligned daily returns.

        Args:
            returns: DataFrame of daily returns (rows=dates, columns=assets),
                     NaN where an asset has no return on a date.
            **kwargs: Forwarded to the constructor.
        """
        return cls(
            list(returns.columns),
            returns.mean().values,
            QuantMetrics.calculate_covariance_matrix(returns),
            **kwargs
        )

    @classmethod
    def from_holdings(
        cls,
        holdings: Iterable[Holding],
        price_history: Mapping[str, Sequence[PriceObservation]],
        window: int = STATISTICS_WINDOW,
        min_observations: int = MIN_OBSERVATIONS,
        **kwargs
    ) -> "FrontierOptimizer":
        """
        Create an optimizer from a portfolio's holdings and price history.

        Holdings with fewer than ``min_observations`` returns are left out of
        the optimization and logged.

        Raises:
            InvalidWeightError: If a holding weight is invalid.
            InsufficientDataError: If fewer than two holdings remain usable.
        """
        holdings = validate_holdings(holdings)
        symbols = [holding.symbol for holding in holdings]
        returns_by_symbol, _ = collect_returns(symbols, price_history, window)

        usable = {
            symbol: series for symbol, series in returns_by_symbol.items()
            if len(series) >= min_observations
        }
        missing = [symbol for symbol in symbols if symbol not in usable]
        if missing:
            logger.warning(
                f"Excluding {', '.join(missing)} from optimization: "
                f"fewer than {min_observations} returns"
            )

        if len(usable) < MIN_FRONTIER_HOLDINGS:
            raise InsufficientDataError(
                f"Need price history for at least {MIN_FRONTIER_HOLDINGS} holdings "
                f"before building the frontier; {len(usable)} usable"
                + (f" (missing: {', '.join(missing)})." if missing else "."),
                required=MIN_FRONTIER_HOLDINGS,
                available=len(usable),
            )

        base_weights = {h.symbol: h.weight for h in holdings if h.symbol in usable}
        return cls.from_returns(
            align_returns(usable), base_weights=base_weights, **kwargs
        )

    def _sharpe(self, returns: np.ndarray, vols: np.ndarray) -> np.ndarray:
        safe_vols = np.where(vols < VOLATILITY_EPSILON, 1.0, vols)
        return np.where(
            vols < VOLATILITY_EPSILON, 0.0, (returns - self.risk_free_rate) / safe_vols
        )

    def _negative_sharpe(self, weights: np.ndarray) -> float:
        """Negative Sharpe ratio, minimized by SLSQP."""
        port_return = QuantMetrics.portfolio_return(weights, self.mean_returns)
        port_vol = QuantMetrics.portfolio_volatility(weights, self.cov_matrix)
        return -QuantMetrics.sharpe_ratio(port_return, port_vol, self.risk_free_rate)

    def _portfolio_volatility(self, weights: np.ndarray) -> float:
        return QuantMetrics.portfolio_volatility(weights, self.cov_matrix)

    def _sample_weights(self, n_portfolios: int) -> np.ndarray:
        """Draw allocations uniformly from the probability simplex."""
        # Dirichlet(1,...,1) gives uniform random weights on the simplex
        return self.rng.dirichlet(np.ones(self.n_assets), size=n_portfolios)

    def _weights_dict(self, weights: np.ndarray) -> Dict[str, float]:
        return {
            ticker: float(weight) if np.isfinite(weight) else 0.0
            for ticker, weight in zip(self.tickers, weights)
        }

    def generate_random_portfolios(
        self,
        n_portfolios: int = DEFAULT_SAMPLE_COUNT
    ) -> pd.DataFrame:
        """
        Generate random portfolio allocations.

        Args:
            n_portfolios: Number of random portfolios to generate.

        Returns:
            DataFrame with columns: Return, Volatility, Sharpe, and one per ticker.
        """
        weights = self._sample_weights(n_portfolios)
        port_returns, port_vols = QuantMetrics.portfolio_moments(
            weights, self.mean_returns, self.cov_matrix
        )
        results = pd.DataFrame(weights, columns=self.tickers)
        results.insert(0, "Sharpe", self._sharpe(port_returns, port_vols))
        results.insert(0, "Volatility", port_vols)
        results.insert(0, "Return", port_returns)
        return results

    def _refine(self, objective, start: np.ndarray, baseline: float) -> np.ndarray:
        """
        Polish a sampled allocation with SLSQP.

        Returns the polished weights only if they improve on ``baseline``,
        even when SLSQP stops before declaring convergence; otherwise the
        starting sample is kept.
        """
        try:
            result: OptimizeResult = minimize(
                objective,
                start,
                method=OPTIMIZATION_METHOD,
                bounds=self._bounds,
                constraints=self._constraints,
                options={
                    "maxiter": MAX_ITERATIONS,
                    "ftol": OPTIMIZATION_TOLERANCE
                }
            )
        except (ValueError, np.linalg.LinAlgError) as e:
            logger.warning(f"Refinement failed: {e}. Keeping sampled weights.")
            return start

        if not result.success:
            logger.debug(f"Refinement stopped early: {result.message}")

        polished = np.clip(result.x, 0.0, None)
        if not np.isfinite(polished).all() or polished.sum() <= 0:
            return start
        polished = polished / polished.sum()
        if objective(polished) < baseline:
            return polished
        return start

    def build_frontier(
        self,
        sample_count: int = DEFAULT_SAMPLE_COUNT,
        refine: bool = False
    ) -> OptimizedPortfolioSnapshot:
        """
        Sample the opportunity set and build an optimizer snapshot.

        Args:
            sample_count: Number of random allocations to evaluate. Capped at
                          MAX_SAMPLE_COUNT so a run always finishes.
            refine: Polish the max-Sharpe and min-variance samples with SLSQP.

        Returns:
            OptimizedPortfolioSnapshot whose frontier is the full sampled cloud
            ordered by ascending risk.

        Raises:
            ValueError: If sample_count is not positive.
            InsufficientDataError: If no sample produced finite moments.
        """
        if sample_count <= 0:
            raise ValueError(f"sample_count must be positive, got {sample_count}")
        if sample_count > MAX_SAMPLE_COUNT:
            logger.warning(
                f"Capping sample_count {sample_count} at {MAX_SAMPLE_COUNT}"
            )
            sample_count = MAX_SAMPLE_COUNT

        weights = self._sample_weights(sample_count)
        if self._base_weights is not None:
            weights = np.vstack([self._base_weights, weights])

        port_returns, port_vols = QuantMetrics.portfolio_moments(
            weights, self.mean_returns, self.cov_matrix
        )
        finite = np.isfinite(port_returns) & np.isfinite(port_vols)
        weights, port_returns, port_vols = weights[finite], port_returns[finite], port_vols[finite]

        if len(weights) == 0:
            raise InsufficientDataError(
                "Unable to construct the efficient frontier from the available "
                "price history.",
                required=1,
                available=0,
            )

        sharpe_ratios = self._sharpe(port_returns, port_vols)
        max_sharpe = weights[int(np.argmax(sharpe_ratios))]
        min_variance = weights[int(np.argmin(port_vols))]

        if refine:
            max_sharpe = self._refine(
                self._negative_sharpe, max_sharpe, self._negative_sharpe(max_sharpe)
            )
            min_variance = self._refine(
                self._portfolio_volatility, min_variance,
                self._portfolio_volatility(min_variance)
            )

        order = np.argsort(port_vols, kind="mergesort")
        frontier = [
            FrontierPoint(
                risk=float(port_vols[i]),
                return_=float(port_returns[i]),
                weights=self._weights_dict(weights[i]),
            )
            for i in order
        ]

        logger.info(
            f"Sampled {len(frontier)} allocations across {self.n_assets} assets"
        )

        return OptimizedPortfolioSnapshot(
            max_sharpe_weights=self._weights_dict(max_sharpe),
            min_variance_weights=self._weights_dict(min_variance),
            efficient_frontier=frontier,
            calculated_at=datetime.now(timezone.utc),
        )


def efficient_points(
    frontier: Sequence[FrontierPoint],
    tolerance: float = FRONTIER_RETURN_TOLERANCE,
    max_points: Optional[int] = None
) -> List[FrontierPoint]:
    """
    Reduce a sampled cloud to its upper edge.

    Walks the points in order of increasing risk and keeps each one whose
    return is no worse than the best return seen so far (within
    ``tolerance``).

    Args:
        frontier: Sampled frontier points.
        tolerance: Allowed shortfall against the best return so far.
        max_points: Keep at most this many of the lowest-risk points.

    Returns:
        Points on the approximate efficient frontier, ordered by risk.
    """
    kept: List[FrontierPoint] = []
    best_return = -np.inf
    for point in sorted(frontier, key=lambda p: p.risk):
        if point.return_ >= best_return - tolerance:
            kept.append(point)
            best_return = max(best_return, point.return_)

    if max_points is not None:
        kept = kept[:max_points]
    return kept
