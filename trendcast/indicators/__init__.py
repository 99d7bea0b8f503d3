"""
Indicators package.

This package turns candle history into technical indicator series:
- SMA, EMA, RSI, MACD, Bollinger Bands, Stochastic Oscillator, Williams %R
- Offset-carrying series with candle-index alignment helpers

Main components:
- IndicatorEngine: computes individual indicators and the full bundle
- IndicatorSeries / IndicatorBundle: indicator values with their candle offsets
"""

from trendcast.indicators.engine import IndicatorEngine
from trendcast.indicators.series import (
    BollingerSeries,
    IndicatorBundle,
    IndicatorSeries,
    MACDSeries,
    StochasticSeries,
)

__all__ = [
    "IndicatorEngine",
    "IndicatorBundle",
    "IndicatorSeries",
    "MACDSeries",
    "BollingerSeries",
    "StochasticSeries",
]
