"""
Error types for the trendcast engine.

Training and single-symbol prediction failures are raised to the caller as
one of these types. Batch operations catch them per symbol and report the
failure alongside the other results.
"""


class TrendcastError(Exception):
    """Base class for all trendcast errors."""


class InsufficientHistoryError(TrendcastError, ValueError):
    """Too few candles (or usable examples) for the requested computation."""


class ModelNotFoundError(TrendcastError, LookupError):
    """No trained model is stored for the requested symbol."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"No trained model for {symbol}")


class FeatureExtractionError(TrendcastError, ValueError):
    """Malformed or too-short input to the feature builder."""


class DegenerateNumericError(FeatureExtractionError):
    """A feature value stayed non-finite after the zero-denominator guards."""
