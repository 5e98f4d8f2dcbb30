"""
Central configuration for the Portfolio Analytics Engine.

This module contains all tunable parameters: trailing window lengths,
sampling counts for the frontier optimizer, forecast settings and the
market indices tracked for relative-performance comparisons.

Every component accepts these values as keyword defaults, so callers and
tests can override any of them without touching this module.
"""

from typing import Dict

# =============================================================================
# Trailing Windows (daily observations)
# =============================================================================
# Price observations used for portfolio statistics
STATISTICS_WINDOW: int = 120

# Price observations used to fit the trend line
FORECAST_WINDOW: int = 90

# Price observations used for market comparison
COMPARISON_WINDOW: int = 30

# Calendar days of news considered by the sentiment overlay
NEWS_WINDOW_DAYS: int = 14

# =============================================================================
# Data Requirements
# =============================================================================
# Minimum number of observations for returns, regression and statistics
MIN_OBSERVATIONS: int = 2

# Minimum number of holdings with usable history for the optimizer
MIN_FRONTIER_HOLDINGS: int = 2

# =============================================================================
# Financial Constants
# =============================================================================
# Sharpe ratios are computed against a zero risk-free rate
RISK_FREE_RATE: float = 0.0

# Volatility below this value is treated as zero
VOLATILITY_EPSILON: float = 1e-12

# =============================================================================
# Frontier Optimizer
# =============================================================================
# Number of random allocations drawn per optimizer run
DEFAULT_SAMPLE_COUNT: int = 5000

# Hard upper bound so a single run always completes in bounded time
MAX_SAMPLE_COUNT: int = 200_000

# Return tolerance used when reducing the cloud to an efficient curve
FRONTIER_RETURN_TOLERANCE: float = 1e-4

# Optional SLSQP refinement of the sampled optima
OPTIMIZATION_METHOD: str = "SLSQP"
MAX_ITERATIONS: int = 1000
OPTIMIZATION_TOLERANCE: float = 1e-12

# =============================================================================
# Forecasting
# =============================================================================
# Trading days projected past the last observation
FORECAST_HORIZON: int = 5

# Maximum proportional shift applied by a fully one-sided news window
SENTIMENT_ADJUSTMENT: float = 0.05

# =============================================================================
# Market Indices
# =============================================================================
DEFAULT_INDICES: Dict[str, str] = {
    "^GSPC": "S&P 500",
    "^DJI": "Dow Jones Industrial Average",
    "^IXIC": "NASDAQ Composite",
    "^FTSE": "FTSE 100",
}
