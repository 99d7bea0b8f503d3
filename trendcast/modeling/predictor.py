"""
Single-symbol inference with a stored model.

The predictor builds the feature vector for the latest candle, scores it
with the symbol's regression pipeline, maps the score onto a direction and
estimates confidence from the vector's distance to the training set.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Union

from trendcast.data.candles import CandleInput, to_frame
from trendcast.features.builder import FeatureBuilder, vector_frame
from trendcast.indicators.engine import IndicatorEngine
from trendcast.indicators.series import IndicatorBundle
from trendcast.modeling.metrics import ModelMetrics
from trendcast.modeling.store import ModelStore
from trendcast.utils.config import ConfigManager, resolve_config

logger = logging.getLogger(__name__)

BULLISH = 'bullish'
BEARISH = 'bearish'
NEUTRAL = 'neutral'


@dataclass(frozen=True)
class Prediction:
    symbol: str
    raw_score: float
    direction: str
    confidence: int
    model_accuracy: float
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['timestamp'] = self.timestamp.isoformat()
        return result


class Predictor:
    """Runs stored models on the latest feature vector."""

    def __init__(self, config: Optional[Union[Dict, ConfigManager]] = None,
                 store: Optional[ModelStore] = None,
                 feature_builder: Optional[FeatureBuilder] = None):
        """Initialize predictor.

        Args:
            config: Configuration dict or ConfigManager instance
            store: ModelStore holding trained models
            feature_builder: FeatureBuilder used for the current vector
        """
        self.config = resolve_config(config)

        prediction_config = self.config.get('prediction', {})
        self.bullish_threshold = prediction_config.get('bullish_threshold', 0.6)
        self.bearish_threshold = prediction_config.get('bearish_threshold', 0.4)

        self.store = store if store is not None else ModelStore()
        self.feature_builder = feature_builder or FeatureBuilder(self.config)
        self.metrics = ModelMetrics(self.config)

    def interpret_score(self, raw_score: float) -> str:
        if raw_score > self.bullish_threshold:
            return BULLISH
        if raw_score < self.bearish_threshold:
            return BEARISH
        return NEUTRAL

    def predict(self, symbol: str, current_candle: CandleInput,
                current_indicators: Optional[IndicatorBundle] = None) -> Prediction:
        """Predict the next-candle direction for ``symbol``.

        Args:
            symbol: Asset symbol with a trained model
            current_candle: The latest candle, or a tail of recent candles
                ending with it (volume trend and momentum need the history)
            current_indicators: Indicator bundle whose timeline ends at the
                latest candle (computed from ``current_candle`` if omitted)

        Returns:
            Prediction record

        Raises:
            ModelNotFoundError: If no model is stored for ``symbol``
            FeatureExtractionError: If the feature vector cannot be built
        """
        model = self.store.get(symbol)

        context = to_frame(current_candle)
        if current_indicators is None:
            current_indicators = IndicatorEngine(self.config).get_all_indicators(context)

        vector = self.feature_builder.extract_latest(context, current_indicators)
        raw_score = float(model.pipeline.predict(vector_frame(vector))[0])

        prediction = Prediction(
            symbol=symbol,
            raw_score=raw_score,
            direction=self.interpret_score(raw_score),
            confidence=self.metrics.calculate_confidence(vector, model.training_features),
            model_accuracy=model.accuracy,
            timestamp=self.store.clock(),
        )

        logger.info(f"Prediction for {symbol}: {prediction.direction} "
                    f"(score {raw_score:.3f}, confidence {prediction.confidence})")
        return prediction
