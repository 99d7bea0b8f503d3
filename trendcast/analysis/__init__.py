"""
Analysis package.

Rule-based trend classification and trading signals over the latest
indicator values.
"""

from trendcast.analysis.trend import TradingSignal, TrendClassifier, TrendResult

__all__ = [
    "TradingSignal",
    "TrendClassifier",
    "TrendResult",
]
