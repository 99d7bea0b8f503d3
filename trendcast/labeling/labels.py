"""
Label generation for the next-candle direction target.

The label for candle ``t`` comes from the return between ``t`` and ``t + 1``:
- return > up_threshold (default 0.02): 1.0 (up)
- return < down_threshold (default -0.02): 0.0 (down)
- otherwise: 0.5 (flat)

The last candle of a sequence has no successor and is never labeled.
"""

import logging
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd

from trendcast.data.candles import CandleInput, to_frame
from trendcast.errors import FeatureExtractionError
from trendcast.utils.config import ConfigManager, resolve_config

logger = logging.getLogger(__name__)

LABEL_UP = 1.0
LABEL_DOWN = 0.0
LABEL_FLAT = 0.5


class LabelGenerator:
    """Generates forward-looking up/down/flat labels."""

    def __init__(self, config: Optional[Union[Dict, ConfigManager]] = None):
        """Initialize label generator.

        Args:
            config: Configuration dict or ConfigManager instance
        """
        self.config = resolve_config(config)

        self.labeling_config = self.config.get('labeling', {})
        self.up_threshold = self.labeling_config.get('up_threshold', 0.02)
        self.down_threshold = self.labeling_config.get('down_threshold', -0.02)

        logger.debug(f"LabelGenerator initialized: up={self.up_threshold}, down={self.down_threshold}")

    def classify_return(self, future_return: float) -> float:
        if future_return > self.up_threshold:
            return LABEL_UP
        if future_return < self.down_threshold:
            return LABEL_DOWN
        return LABEL_FLAT

    def calculate_target(self, candles: pd.DataFrame, index: int) -> float:
        """Label candle ``index`` from the next candle's close.

        Args:
            candles: Candle frame as returned by ``to_frame``
            index: Candle position; must have a successor

        Raises:
            FeatureExtractionError: If there is no next candle or the close is zero
        """
        if index < 0 or index + 1 >= len(candles):
            raise FeatureExtractionError(
                f"Cannot label index {index}: needs a following candle (have {len(candles)})"
            )

        current_price = candles['close'].iat[index]
        future_price = candles['close'].iat[index + 1]
        if current_price == 0:
            raise FeatureExtractionError(f"Zero close at index {index}")

        return self.classify_return((future_price - current_price) / current_price)

    def generate_labels(self, candles: CandleInput) -> pd.Series:
        """Labels for every candle that has a successor.

        Returns:
            Series named ``target`` indexed by candle position (last candle excluded)
        """
        data = to_frame(candles)
        if len(data) < 2:
            return pd.Series(dtype='float64', name='target')

        close = data['close']
        with np.errstate(divide='ignore', invalid='ignore'):
            future_return = (close.shift(-1) - close) / close

        labels = np.select(
            [future_return > self.up_threshold, future_return < self.down_threshold],
            [LABEL_UP, LABEL_DOWN],
            default=LABEL_FLAT,
        )
        result = pd.Series(labels, index=data.index, name='target').iloc[:-1]

        zero_close = (close == 0).iloc[:-1]
        if zero_close.any():
            logger.warning(f"Skipping {int(zero_close.sum())} labels with zero close")
            result = result[~zero_close]

        return result

    def label_distribution(self, labels: pd.Series, symbol: Optional[str] = None) -> Dict[str, Any]:
        """Summarize label counts and warn about degenerate class balance.

        Args:
            labels: Series of labels
            symbol: Symbol name for logging

        Returns:
            Dictionary with counts per class and the share of the rarest class
        """
        name = symbol or 'labels'
        counts = {
            'up': int((labels == LABEL_UP).sum()),
            'down': int((labels == LABEL_DOWN).sum()),
            'flat': int((labels == LABEL_FLAT).sum()),
        }
        total = len(labels)

        present = [count for count in counts.values() if count > 0]
        minority_pct = min(present) / total if present else 0.0

        if len(present) < 2:
            logger.warning(f"Only one class found in labels for {name}: {counts}")
        elif minority_pct < 0.05:
            logger.warning(f"Extreme class imbalance for {name}: {counts} ({minority_pct:.1%} minority class)")
        else:
            logger.debug(f"Label distribution for {name}: {counts}")

        return {'total': total, 'counts': counts, 'minority_pct': minority_pct}
