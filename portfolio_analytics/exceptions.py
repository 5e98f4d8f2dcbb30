"""Typed failures raised by the analytics engine."""

from typing import Optional


class AnalyticsError(Exception):
    """Base class for every recoverable analytics failure."""


class InsufficientDataError(AnalyticsError, ValueError):
    """
    Raised when fewer observations are available than a computation needs.

    Attributes:
        required: Minimum number of observations (or holdings) needed.
        available: Number actually available.
    """

    def __init__(
        self,
        message: str,
        required: Optional[int] = None,
        available: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.required = required
        self.available = available


class InvalidWeightError(AnalyticsError, ValueError):
    """Raised when a holding weight is non-positive or non-finite."""

    def __init__(self, symbol: str, weight: float) -> None:
        super().__init__(
            f"Holding {symbol} has invalid weight {weight!r}; "
            "weights must be positive finite numbers."
        )
        self.symbol = symbol
        self.weight = weight
