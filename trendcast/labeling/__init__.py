"""
Labeling package.

Creates the forward-looking direction target (up 1.0 / down 0.0 / flat 0.5)
from the next candle's return.

Main components:
- LabelGenerator: per-index and vectorized label generation
"""

from trendcast.labeling.labels import LABEL_DOWN, LABEL_FLAT, LABEL_UP, LabelGenerator

__all__ = [
    "LabelGenerator",
    "LABEL_UP",
    "LABEL_DOWN",
    "LABEL_FLAT",
]
