"""
Quantitative Metrics Module.

This module provides the Modern Portfolio Theory calculations shared by the
statistics and frontier components. All figures are daily (no annualization)
and Sharpe ratios use a zero risk-free rate unless told otherwise.

Key Formulas:
    - Portfolio Return: R_p = Σ(w_i * r_i)
    - Portfolio Variance: σ²_p = w^T * Σ * w
    - Portfolio Volatility: σ_p = √(σ²_p)
    - Sharpe Ratio: SR = (R_p - R_f) / σ_p
"""

from typing import Tuple

import numpy as np
import pandas as pd

from portfolio_analytics.config import (
    MIN_OBSERVATIONS,
    RISK_FREE_RATE,
    VOLATILITY_EPSILON,
)
from portfolio_analytics.exceptions import InsufficientDataError


class QuantMetrics:
    """
    A collection of static methods for portfolio risk/return metrics.

    All methods are static to allow for easy testing and standalone usage.
    """

    @staticmethod
    def normalize_weights(weights: np.ndarray) -> np.ndarray:
        """
        Scale weights so they sum to 1.

        Args:
            weights: Array of raw (user-entered) weights.

        Returns:
            Array of weights summing to 1.

        Raises:
            InsufficientDataError: If the weights sum to zero or a non-finite value.
        """
        weights = np.asarray(weights, dtype=float)
        total = weights.sum()
        if not np.isfinite(total) or total == 0:
            raise InsufficientDataError(
                f"Cannot normalize weights summing to {total}."
            )
        return weights / total

    @staticmethod
    def portfolio_return(weights: np.ndarray, mean_returns: np.ndarray) -> float:
        """
        Calculate the expected daily portfolio return.

        Formula: R_p = Σ(w_i * r_i)

        Example:
            >>> QuantMetrics.portfolio_return(np.array([0.5, 0.5]), np.array([0.001, 0.003]))
            0.002
        """
        return float(np.dot(weights, mean_returns))

    @staticmethod
    def portfolio_variance(weights: np.ndarray, cov_matrix: np.ndarray) -> float:
        """
        Calculate the portfolio variance w^T * Σ * w.

        A covariance matrix built from pairwise-overlapping dates is not
        guaranteed to be positive semi-definite, so tiny negative results
        are clamped to zero. Non-finite results are reported as zero.
        """
        variance = float(np.dot(weights.T, np.dot(cov_matrix, weights)))
        if not np.isfinite(variance):
            return 0.0
        return max(variance, 0.0)

    @staticmethod
    def portfolio_volatility(weights: np.ndarray, cov_matrix: np.ndarray) -> float:
        """Calculate the portfolio volatility (square root of variance)."""
        return float(np.sqrt(QuantMetrics.portfolio_variance(weights, cov_matrix)))

    @staticmethod
    def sharpe_ratio(
        portfolio_return: float,
        portfolio_volatility: float,
        risk_free_rate: float = RISK_FREE_RATE
    ) -> float:
        """
        Calculate the Sharpe Ratio of a portfolio.

        Formula: SR = (R_p - R_f) / σ_p

        Note:
            Returns 0.0 when volatility is zero; the ratio is undefined there
            and a degenerate portfolio is reported as having no risk-adjusted
            return rather than raising.
        """
        if portfolio_volatility < VOLATILITY_EPSILON:
            return 0.0
        return (portfolio_return - risk_free_rate) / portfolio_volatility

    @staticmethod
    def sample_variance(returns: pd.Series) -> float:
        """Sample variance (ddof=1); zero for fewer than two observations."""
        values = pd.Series(returns, dtype=float).dropna()
        if len(values) < MIN_OBSERVATIONS:
            return 0.0
        return float(values.var(ddof=1))

    @staticmethod
    def calculate_covariance_matrix(returns: pd.DataFrame) -> np.ndarray:
        """
        Calculate the pairwise sample covariance matrix of aligned returns.

        Each off-diagonal entry only uses the dates both symbols have a
        return for; each diagonal entry uses the symbol's full series. Pairs
        sharing fewer than two dates get a covariance of zero.

        Args:
            returns: DataFrame of daily returns (rows=dates, columns=assets),
                     NaN where a symbol has no return on a date.

        Returns:
            Symmetric covariance matrix as numpy array.
        """
        cov_matrix = returns.cov(min_periods=MIN_OBSERVATIONS).fillna(0.0).values
        return (cov_matrix + cov_matrix.T) / 2

    @staticmethod
    def portfolio_moments(
        weights: np.ndarray,
        mean_returns: np.ndarray,
        cov_matrix: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Evaluate return and volatility for many allocations at once.

        Args:
            weights: Matrix of allocations (one row per portfolio).
            mean_returns: Mean daily return per asset.
            cov_matrix: Covariance matrix of daily returns.

        Returns:
            Tuple of (returns, volatilities) arrays, one entry per row.
        """
        port_returns = weights @ mean_returns
        # w @ Σ @ w^T per row
        port_variances = np.einsum("ij,jk,ik->i", weights, cov_matrix, weights)
        port_variances = np.where(np.isfinite(port_variances), port_variances, 0.0)
        port_vols = np.sqrt(np.maximum(port_variances, 0.0))
        return port_returns, port_vols
