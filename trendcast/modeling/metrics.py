"""
Evaluation metrics for the per-symbol regression models.

Key features:
- Score classification into up (1.0), down (0.0) and flat (0.5) bands
- Training accuracy as the percentage of correctly banded scores
- Distance-based confidence: how close a new feature vector lies to the
  training set, relative to the average distance
"""

import logging
from typing import Dict, Optional, Union

import numpy as np
import pandas as pd
from sklearn.metrics.pairwise import euclidean_distances

from trendcast.labeling.labels import LABEL_DOWN, LABEL_FLAT, LABEL_UP
from trendcast.utils.config import ConfigManager, resolve_config

logger = logging.getLogger(__name__)

ArrayLike = Union[np.ndarray, pd.Series, pd.DataFrame]


def round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


class ModelMetrics:
    """Accuracy and confidence calculations shared by trainer and predictor."""

    def __init__(self, config: Optional[Union[Dict, ConfigManager]] = None):
        """Initialize metrics calculator.

        Args:
            config: Configuration dict or ConfigManager instance
        """
        self.config = resolve_config(config)

        prediction_config = self.config.get('prediction', {})
        self.bullish_threshold = prediction_config.get('bullish_threshold', 0.6)
        self.bearish_threshold = prediction_config.get('bearish_threshold', 0.4)

    def classify_scores(self, scores: ArrayLike) -> np.ndarray:
        """Map raw regression scores onto the label values."""
        scores = np.asarray(scores, dtype=np.float64).reshape(-1)
        return np.select(
            [scores > self.bullish_threshold, scores < self.bearish_threshold],
            [LABEL_UP, LABEL_DOWN],
            default=LABEL_FLAT,
        )

    def calculate_accuracy(self, scores: ArrayLike, labels: ArrayLike) -> float:
        """Percentage of scores whose band matches the label.

        Args:
            scores: Raw regression outputs
            labels: True labels (1.0 / 0.0 / 0.5)

        Returns:
            Accuracy in [0, 100] (0.0 for an empty set)
        """
        predicted = self.classify_scores(scores)
        actual = np.asarray(labels, dtype=np.float64).reshape(-1)
        if len(predicted) != len(actual):
            raise ValueError(f"Got {len(predicted)} scores for {len(actual)} labels")
        if len(actual) == 0:
            return 0.0

        correct = np.abs(predicted - actual) < 0.1
        return float(correct.mean() * 100.0)

    @staticmethod
    def distances_to_training(vector: ArrayLike, training_features: ArrayLike) -> np.ndarray:
        """Euclidean distance from one feature vector to every training vector."""
        point = np.asarray(vector, dtype=np.float64).reshape(1, -1)
        training = np.asarray(training_features, dtype=np.float64)
        if training.size == 0:
            return np.empty(0)
        return euclidean_distances(point, training.reshape(len(training), -1)).reshape(-1)

    def calculate_confidence(self, vector: ArrayLike, training_features: ArrayLike) -> int:
        """Confidence that ``vector`` lies within the training distribution.

        ``100 - (min_distance / mean_distance) * 50``, clamped to [0, 100] and
        rounded half-up. A zero mean distance (every training vector equals
        ``vector``) gives 100; an empty training set gives 0.
        """
        distances = self.distances_to_training(vector, training_features)
        if len(distances) == 0:
            logger.warning("No training vectors to compare against; confidence 0")
            return 0

        mean_distance = distances.mean()
        if mean_distance == 0:
            return 100

        raw = 100.0 - (distances.min() / mean_distance) * 50.0
        return round_half_up(min(100.0, max(0.0, raw)))
