"""
Trendcast

A technical-indicator and short-horizon prediction engine for OHLCV candle
data.

This package provides:
- Technical indicators (SMA, EMA, RSI, MACD, Bollinger Bands, Stochastic,
  Williams %R) with explicit candle alignment
- Feature vectors and forward-looking up/down/flat labels
- Per-symbol linear regression models with accuracy and confidence scores
- Rule-based trend voting and trading signals
- A thread-safe in-memory model store

Example:
    >>> from trendcast import AnalysisPipeline
    >>> pipeline = AnalysisPipeline()
    >>> pipeline.train("BTC", candles)
    >>> pipeline.predict("BTC", candles).direction
"""

__version__ = "1.0.0"
__author__ = "Trendcast Team"

# Core components
from trendcast.analysis.trend import TrendClassifier
from trendcast.data.candles import Candle
from trendcast.features.builder import FeatureBuilder
from trendcast.indicators.engine import IndicatorEngine
from trendcast.labeling.labels import LabelGenerator
from trendcast.modeling.predictor import Predictor
from trendcast.modeling.store import ModelStore
from trendcast.modeling.trainer import ModelTrainer
from trendcast.pipeline import AnalysisPipeline
from trendcast.utils.config import ConfigManager

__all__ = [
    "AnalysisPipeline",
    "Candle",
    "ConfigManager",
    "FeatureBuilder",
    "IndicatorEngine",
    "LabelGenerator",
    "ModelStore",
    "ModelTrainer",
    "Predictor",
    "TrendClassifier",
]
