"""
Features package.

Turns candles and indicator series into six-component feature vectors and
feature/label training sets.

Main components:
- FeatureBuilder: feature extraction at a candle position and batch preparation
"""

from trendcast.features.builder import FEATURE_NAMES, FeatureBuilder, vector_frame

__all__ = [
    "FEATURE_NAMES",
    "FeatureBuilder",
    "vector_frame",
]
