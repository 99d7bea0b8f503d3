"""
Per-symbol model training.

Key features:
- Minimum history checks before any fitting
- Feature/label preparation through the FeatureBuilder
- Ordinary least squares over all six features, optionally standardized
- Training accuracy scored with the same bands the predictor uses
- Trained models stored (and replaced) in the ModelStore
"""

import logging
import warnings
from typing import Dict, Optional, Union

from sklearn.linear_model import LinearRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from trendcast.data.candles import CandleInput, to_frame
from trendcast.errors import InsufficientHistoryError
from trendcast.features.builder import FeatureBuilder
from trendcast.indicators.engine import IndicatorEngine
from trendcast.indicators.series import IndicatorBundle
from trendcast.modeling.metrics import ModelMetrics
from trendcast.modeling.store import ModelStore, TrainedModel
from trendcast.utils.config import ConfigManager, resolve_config

# Suppress sklearn warnings
warnings.filterwarnings('ignore', category=UserWarning, module='sklearn')

logger = logging.getLogger(__name__)


class ModelTrainer:
    """Trains and stores per-symbol regression models."""

    def __init__(self, config: Optional[Union[Dict, ConfigManager]] = None,
                 store: Optional[ModelStore] = None,
                 engine: Optional[IndicatorEngine] = None,
                 feature_builder: Optional[FeatureBuilder] = None):
        """Initialize model trainer.

        Args:
            config: Configuration dict or ConfigManager instance
            store: ModelStore receiving trained models (a new one if omitted)
            engine: IndicatorEngine used when no indicators are supplied
            feature_builder: FeatureBuilder for feature/label preparation
        """
        self.config = resolve_config(config)

        self.modeling_config = self.config.get('modeling', {})
        self.min_training_candles = self.modeling_config.get('min_training_candles', 100)
        self.min_training_examples = self.modeling_config.get('min_training_examples', 10)
        self.scale_features = self.modeling_config.get('scale_features', True)

        self.store = store if store is not None else ModelStore()
        self.engine = engine or IndicatorEngine(self.config)
        self.feature_builder = feature_builder or FeatureBuilder(self.config)
        self.metrics = ModelMetrics(self.config)

        logger.info("ModelTrainer initialized")

    def get_model_pipeline(self) -> Pipeline:
        """Create the scikit-learn regression pipeline.

        Returns:
            Pipeline with an optional scaler followed by LinearRegression
        """
        steps = []

        if self.scale_features:
            steps.append(('scaler', StandardScaler()))

        steps.append(('model', LinearRegression()))

        logger.debug(f"Created regression pipeline with {len(steps)} steps")
        return Pipeline(steps)

    def train_model(self, symbol: str, candles: CandleInput,
                    indicators: Optional[IndicatorBundle] = None) -> TrainedModel:
        """Train a model for ``symbol`` and store it.

        Args:
            symbol: Asset symbol
            candles: Candle history, ascending by timestamp
            indicators: Indicator bundle for ``candles`` (computed if omitted)

        Returns:
            The stored TrainedModel

        Raises:
            InsufficientHistoryError: If there are too few candles or usable
                feature/label pairs
        """
        data = to_frame(candles)
        if len(data) < self.min_training_candles:
            raise InsufficientHistoryError(
                f"Need at least {self.min_training_candles} candles to train {symbol}, got {len(data)}"
            )

        if indicators is None:
            indicators = self.engine.get_all_indicators(data)

        features, labels = self.feature_builder.prepare_features(data, indicators)
        if len(features) < self.min_training_examples:
            raise InsufficientHistoryError(
                f"Need at least {self.min_training_examples} training examples for {symbol}, "
                f"got {len(features)}"
            )

        self.feature_builder.label_generator.label_distribution(labels, symbol)

        pipeline = self.get_model_pipeline()
        pipeline.fit(features, labels)

        scores = pipeline.predict(features)
        accuracy = self.metrics.calculate_accuracy(scores, labels)

        model = TrainedModel(
            symbol=symbol,
            pipeline=pipeline,
            training_features=features,
            training_labels=labels,
            trained_at=self.store.clock(),
            accuracy=accuracy,
        )
        self.store.put(model)

        logger.info(f"Trained {symbol} on {len(features)} examples: accuracy {accuracy:.1f}%")
        return model
