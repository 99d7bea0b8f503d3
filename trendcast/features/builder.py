"""
Feature vector construction from candles and indicator series.

Each feature vector has six components, in this order:
- rsi: (RSI - 50) / 50, RSI defaulting to 50 when unavailable
- macd: MACD line minus signal line, both defaulting to 0
- sma_ratio: (SMA20 - SMA50) / SMA50, both defaulting to the current close
- volume_trend: current volume against the mean of up to 20 prior candles
- price_momentum: one-step close return
- bollinger_position: where the close sits between the bands (0.5 for
  zero-width bands)

Candle positions are translated to indicator positions through the
series offsets. The candle frame handed in is treated as the tail of the
sequence the indicator bundle was computed from, so a one-candle frame
lines up with the latest indicator values.
"""

import logging
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from trendcast.data.candles import CandleInput, to_frame
from trendcast.errors import DegenerateNumericError, FeatureExtractionError
from trendcast.indicators.engine import IndicatorEngine
from trendcast.indicators.series import IndicatorBundle
from trendcast.labeling.labels import LabelGenerator
from trendcast.utils.config import ConfigManager, resolve_config

logger = logging.getLogger(__name__)

FEATURE_NAMES = [
    'rsi',
    'macd',
    'sma_ratio',
    'volume_trend',
    'price_momentum',
    'bollinger_position',
]


class FeatureBuilder:
    """Builds feature vectors and feature/label training sets."""

    def __init__(self, config: Optional[Union[Dict, ConfigManager]] = None,
                 label_generator: Optional[LabelGenerator] = None):
        """Initialize feature builder.

        Args:
            config: Configuration dict or ConfigManager instance
            label_generator: Optional LabelGenerator (built from config if omitted)
        """
        self.config = resolve_config(config)

        self.features_config = self.config.get('features', {})
        self.warmup = self.features_config.get('warmup', 50)
        self.volume_window = self.features_config.get('volume_window', 20)

        self.label_generator = label_generator or LabelGenerator(self.config)

        logger.debug(f"FeatureBuilder initialized: warmup={self.warmup}, volume_window={self.volume_window}")

    @staticmethod
    def _timeline_start(candles: pd.DataFrame, indicators: IndicatorBundle) -> int:
        start = indicators.candle_count - len(candles)
        if start < 0:
            raise FeatureExtractionError(
                f"Got {len(candles)} candles but indicators cover only {indicators.candle_count}"
            )
        return start

    def _volume_trend(self, candles: pd.DataFrame, index: int) -> float:
        window = candles['volume'].iloc[max(0, index - self.volume_window):index]
        if window.empty:
            return 0.0

        avg_volume = window.mean()
        if avg_volume == 0:
            return 0.0
        return (candles['volume'].iat[index] - avg_volume) / avg_volume

    @staticmethod
    def _price_momentum(candles: pd.DataFrame, index: int) -> float:
        if index == 0:
            return 0.0

        previous_price = candles['close'].iat[index - 1]
        if previous_price == 0:
            return 0.0
        return (candles['close'].iat[index] - previous_price) / previous_price

    def extract_feature_vector(self, candles: pd.DataFrame, indicators: IndicatorBundle,
                               index: int) -> np.ndarray:
        """Build the feature vector for candle position ``index``.

        Args:
            candles: Candle frame (``to_frame`` output), the tail of the
                sequence ``indicators`` was computed from
            indicators: Indicator bundle
            index: Position in ``candles``

        Returns:
            Array of six floats ordered as FEATURE_NAMES

        Raises:
            FeatureExtractionError: If the index or input is invalid
            DegenerateNumericError: If a component is non-finite
        """
        if index < 0 or index >= len(candles):
            raise FeatureExtractionError(f"Index {index} outside {len(candles)} candles")

        position = self._timeline_start(candles, indicators) + index
        current_price = float(candles['close'].iat[index])
        if not current_price > 0:
            raise FeatureExtractionError(f"Non-positive close {current_price} at index {index}")

        rsi = indicators.rsi.at(position, 50.0)
        normalized_rsi = (rsi - 50.0) / 50.0

        macd = indicators.macd.macd.at(position, 0.0)
        macd_signal = indicators.macd.signal.at(position, 0.0)
        macd_diff = macd - macd_signal

        sma20 = indicators.sma20.at(position, current_price)
        sma50 = indicators.sma50.at(position, current_price)
        sma_ratio = (sma20 - sma50) / sma50 if sma50 != 0 else 0.0

        volume_trend = self._volume_trend(candles, index)
        price_momentum = self._price_momentum(candles, index)

        bb_upper = indicators.bollinger.upper.at(position, current_price)
        bb_lower = indicators.bollinger.lower.at(position, current_price)
        bb_width = bb_upper - bb_lower
        bb_position = (current_price - bb_lower) / bb_width if bb_width > 0 else 0.5

        vector = np.array([normalized_rsi, macd_diff, sma_ratio, volume_trend, price_momentum, bb_position])

        if not np.all(np.isfinite(vector)):
            bad = [name for name, value in zip(FEATURE_NAMES, vector) if not np.isfinite(value)]
            raise DegenerateNumericError(f"Non-finite features {bad} at index {index}")

        return vector

    def extract_latest(self, candles: CandleInput, indicators: IndicatorBundle) -> np.ndarray:
        """Feature vector at the last candle of ``candles``."""
        data = to_frame(candles)
        if data.empty:
            raise FeatureExtractionError("No candles to extract features from")
        return self.extract_feature_vector(data, indicators, len(data) - 1)

    def prepare_features(self, candles: CandleInput,
                         indicators: Optional[IndicatorBundle] = None) -> Tuple[pd.DataFrame, pd.Series]:
        """Build the feature/label training set.

        Walks candle positions from ``warmup`` to ``len - 2`` (the last candle
        has no label). Positions whose extraction or labeling fails are skipped.

        Args:
            candles: Candle history
            indicators: Indicator bundle for ``candles`` (computed if omitted)

        Returns:
            Tuple of (features DataFrame with FEATURE_NAMES columns,
            labels Series named ``target``), both indexed by candle position
        """
        data = to_frame(candles)
        if indicators is None:
            indicators = IndicatorEngine(self.config).get_all_indicators(data)

        rows: List[np.ndarray] = []
        targets: List[float] = []
        positions: List[int] = []
        skipped = 0

        for index in range(self.warmup, len(data) - 1):
            try:
                vector = self.extract_feature_vector(data, indicators, index)
                target = self.label_generator.calculate_target(data, index)
            except FeatureExtractionError as e:
                skipped += 1
                logger.debug(f"Skipping index {index}: {e}")
                continue

            rows.append(vector)
            targets.append(target)
            positions.append(index)

        if skipped:
            logger.warning(f"Skipped {skipped} candles during feature extraction")

        candle_index = pd.Index(positions, name='candle_index', dtype='int64')
        features = pd.DataFrame(
            np.array(rows).reshape(-1, len(FEATURE_NAMES)),
            columns=FEATURE_NAMES,
            index=candle_index,
        )
        labels = pd.Series(targets, index=candle_index, name='target', dtype='float64')

        logger.info(f"Prepared {len(features)} feature rows from {len(data)} candles")
        return features, labels


def vector_frame(vector: np.ndarray) -> pd.DataFrame:
    """Wrap one feature vector as a single-row DataFrame with FEATURE_NAMES columns."""
    return pd.DataFrame([np.asarray(vector, dtype=np.float64)], columns=FEATURE_NAMES)
