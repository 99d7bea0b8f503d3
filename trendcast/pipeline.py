"""
Request-level facade over the engine.

``AnalysisPipeline`` wires the indicator engine, feature builder, trainer,
predictor, trend classifier and model store together and exposes the
operations a host application calls: training, single and batch
prediction, trend analysis, multi-symbol comparison, trading signals,
model listing and statistics, feature-weight updates and model cleanup.

Single-symbol operations raise typed errors from ``trendcast.errors``.
Batch operations catch them per symbol, record them with the
ErrorTracker and report the failure next to the other results.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd

from trendcast.analysis.trend import TrendClassifier
from trendcast.data.candles import CandleInput, to_frame
from trendcast.errors import InsufficientHistoryError, TrendcastError
from trendcast.features.builder import FeatureBuilder
from trendcast.indicators.engine import IndicatorEngine
from trendcast.indicators.series import IndicatorBundle
from trendcast.modeling.predictor import Prediction, Predictor
from trendcast.modeling.store import ModelStore
from trendcast.modeling.trainer import ModelTrainer
from trendcast.utils.config import ConfigManager, resolve_config
from trendcast.utils.logging import ErrorTracker, PerformanceLogger

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    """Entry point for training, prediction and trend analysis requests."""

    def __init__(self, config: Optional[Union[Dict, ConfigManager]] = None,
                 store: Optional[ModelStore] = None):
        """Initialize the pipeline and its components.

        Args:
            config: Configuration dict or ConfigManager instance
            store: ModelStore shared with other pipelines (a new one if omitted)
        """
        self.config = resolve_config(config)

        self.store = store if store is not None else ModelStore()
        self.engine = IndicatorEngine(self.config)
        self.feature_builder = FeatureBuilder(self.config)
        self.trainer = ModelTrainer(self.config, self.store, self.engine, self.feature_builder)
        self.predictor = Predictor(self.config, self.store, self.feature_builder)
        self.classifier = TrendClassifier(self.config)

        modeling_config = self.config.get('modeling', {})
        self.feature_weights: Dict[str, float] = dict(modeling_config.get('feature_weights', {}))
        self.model_max_age_hours = modeling_config.get('model_max_age_hours', 24)
        self.context_candles = self.config.get('prediction', {}).get('context_candles', 21)

        self.perf_logger = PerformanceLogger(logger)
        self.error_tracker = ErrorTracker(logger)

        logger.info("AnalysisPipeline initialized")

    @staticmethod
    def _require_candles(candles: CandleInput) -> pd.DataFrame:
        data = to_frame(candles)
        if data.empty:
            raise InsufficientHistoryError("No candles supplied")
        return data

    def compute_indicators(self, candles: CandleInput) -> IndicatorBundle:
        return self.engine.get_all_indicators(candles)

    def train(self, symbol: str, candles: CandleInput) -> Dict[str, Any]:
        """Train (or retrain) the model for ``symbol``.

        Returns:
            Dictionary with symbol, accuracy, features_count and trained_at

        Raises:
            InsufficientHistoryError: If the history is too short to train
        """
        operation = f"training {symbol}"
        self.perf_logger.start_timer(operation)

        try:
            model = self.trainer.train_model(symbol, candles)
        except Exception:
            self.perf_logger.cancel_timer(operation)
            raise

        self.perf_logger.end_timer(operation)
        return {
            'symbol': symbol,
            'accuracy': model.accuracy,
            'features_count': model.features_count,
            'trained_at': model.trained_at.isoformat(),
        }

    def predict(self, symbol: str, candles: CandleInput) -> Prediction:
        """Predict the next-candle direction from recent candles.

        Indicators are computed over the whole history; the predictor sees
        the trailing ``prediction.context_candles`` candles.

        Raises:
            ModelNotFoundError: If ``symbol`` has no trained model
            FeatureExtractionError: If the latest feature vector cannot be built
        """
        self.store.get(symbol)

        data = to_frame(candles)
        indicators = self.engine.get_all_indicators(data)
        context = data.iloc[-self.context_candles:]

        return self.predictor.predict(symbol, context, indicators)

    def predict_batch(self, candles_by_symbol: Mapping[str, CandleInput]) -> List[Dict[str, Any]]:
        """Predict several symbols; failures are reported per symbol."""
        results = []

        for symbol, candles in candles_by_symbol.items():
            try:
                results.append(self.predict(symbol, candles).to_dict())
            except (TrendcastError, ValueError) as e:
                self.error_tracker.log_error(e, {'symbol': symbol}, component='predict_batch')
                results.append({'symbol': symbol, 'error': str(e), 'raw_score': None})

        return results

    @staticmethod
    def _snapshot(indicators: IndicatorBundle, data: pd.DataFrame) -> Dict[str, Any]:
        return {
            'rsi': indicators.rsi.last(),
            'macd': {
                'macd': indicators.macd.macd.last(),
                'signal': indicators.macd.signal.last(),
                'histogram': indicators.macd.histogram.last(),
            },
            'sma20': indicators.sma20.last(),
            'sma50': indicators.sma50.last(),
            'current_price': float(data['close'].iat[-1]),
        }

    def trend(self, candles: CandleInput) -> Dict[str, Any]:
        """Trend classification plus the latest indicator values.

        Raises:
            InsufficientHistoryError: If no candles are supplied
        """
        data = self._require_candles(candles)
        indicators = self.engine.get_all_indicators(data)
        result = self.classifier.analyze_trend(indicators)

        return {**result.to_dict(), 'indicators': self._snapshot(indicators, data)}

    def compare(self, candles_by_symbol: Mapping[str, CandleInput]) -> List[Dict[str, Any]]:
        """Trend rows for several symbols; failures are reported per symbol."""
        comparisons = []

        for symbol, candles in candles_by_symbol.items():
            try:
                data = self._require_candles(candles)
                indicators = self.engine.get_all_indicators(data)
                result = self.classifier.analyze_trend(indicators)
            except (TrendcastError, ValueError) as e:
                self.error_tracker.log_error(e, {'symbol': symbol}, component='compare')
                comparisons.append({'symbol': symbol, 'error': str(e)})
                continue

            comparisons.append({
                'symbol': symbol,
                **result.to_dict(),
                'current_price': float(data['close'].iat[-1]),
                'rsi': indicators.rsi.last(),
                'sma20': indicators.sma20.last(),
                'sma50': indicators.sma50.last(),
            })

        return comparisons

    def signals(self, candles: CandleInput) -> Dict[str, Any]:
        """Trading signals with the trend they were derived alongside."""
        indicators = self.engine.get_all_indicators(self._require_candles(candles))
        return {
            'signals': [signal.to_dict() for signal in self.classifier.generate_signals(indicators)],
            'trend_analysis': self.classifier.analyze_trend(indicators).to_dict(),
        }

    def models(self) -> Dict[str, Dict[str, Any]]:
        return self.store.summary()

    def stats(self) -> Dict[str, Any]:
        return self.store.stats()

    def update_feature_weights(self, weights: Mapping[str, float]) -> Dict[str, float]:
        """Shallow-merge feature weight overrides.

        The weights are kept for configuration compatibility; the fitted
        regression does not read them.

        Returns:
            The merged weights
        """
        unknown = set(weights) - set(self.feature_weights)
        if unknown:
            logger.warning(f"Unknown feature weights: {sorted(unknown)}")

        self.feature_weights = {**self.feature_weights, **weights}
        logger.info(f"Updated feature weights: {self.feature_weights}")
        return dict(self.feature_weights)

    def cleanup(self, max_age_hours: Optional[float] = None) -> List[str]:
        """Evict models older than ``max_age_hours`` (config default 24)."""
        hours = self.model_max_age_hours if max_age_hours is None else max_age_hours
        return self.store.evict_older_than(timedelta(hours=hours))
