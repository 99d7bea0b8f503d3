"""
Tests for the request-level AnalysisPipeline.

Key tests include:
- Training and prediction results
- Batch prediction and comparison report failures per symbol
- Feature-weight updates and model cleanup
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from trendcast.errors import InsufficientHistoryError, ModelNotFoundError
from trendcast.modeling.store import ModelStore
from trendcast.pipeline import AnalysisPipeline

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestTrainingAndPrediction:
    """Test single-symbol requests."""

    def setup_method(self):
        self.now = NOW
        self.store = ModelStore(clock=lambda: self.now)
        self.pipeline = AnalysisPipeline(store=self.store)

    def test_train(self, random_candles):
        result = self.pipeline.train('BTC', random_candles)

        assert result['symbol'] == 'BTC'
        assert 0.0 <= result['accuracy'] <= 100.0
        assert result['features_count'] == len(random_candles) - 51
        assert result['trained_at'] == NOW.isoformat()

    def test_train_insufficient_history(self, random_candles):
        with pytest.raises(InsufficientHistoryError):
            self.pipeline.train('BTC', random_candles.head(80))

        assert self.pipeline.perf_logger.start_times == {}

    def test_predict_untrained(self, random_candles):
        with pytest.raises(ModelNotFoundError):
            self.pipeline.predict('BTC', random_candles)

    def test_predict_passes_trailing_context(self, random_candles):
        self.pipeline.train('BTC', random_candles)

        with patch.object(self.pipeline.predictor, 'predict',
                          wraps=self.pipeline.predictor.predict) as predict:
            prediction = self.pipeline.predict('BTC', random_candles)

        context = predict.call_args[0][1]
        assert len(context) == 21
        assert context['timestamp'].iat[-1] == random_candles['timestamp'].iat[-1]
        assert prediction.direction in ('bullish', 'bearish', 'neutral')

    def test_predict_batch_reports_errors(self, random_candles):
        self.pipeline.train('BTC', random_candles)

        results = self.pipeline.predict_batch({'BTC': random_candles, 'ETH': random_candles})

        assert results[0]['symbol'] == 'BTC'
        assert 'error' not in results[0]
        assert results[1]['symbol'] == 'ETH'
        assert results[1]['raw_score'] is None
        assert 'ETH' in results[1]['error']
        assert self.pipeline.error_tracker.get_error_summary() == {'predict_batch.ModelNotFoundError': 1}

    def test_models_and_stats(self, random_candles):
        self.pipeline.train('BTC', random_candles)

        assert list(self.pipeline.models()) == ['BTC']
        assert self.pipeline.stats()['total_models'] == 1

    def test_cleanup(self, random_candles):
        self.pipeline.train('BTC', random_candles)

        assert self.pipeline.cleanup() == []

        self.now = NOW + timedelta(hours=25)
        assert self.pipeline.cleanup() == ['BTC']
        assert len(self.store) == 0

    def test_cleanup_custom_age(self, random_candles):
        self.pipeline.train('BTC', random_candles)
        self.now = NOW + timedelta(hours=2)

        assert self.pipeline.cleanup(max_age_hours=1) == ['BTC']


class TestTrendRequests:
    """Test trend, comparison and signal requests."""

    def setup_method(self):
        self.pipeline = AnalysisPipeline()

    def test_trend_snapshot(self, rising_candles):
        result = self.pipeline.trend(rising_candles)

        assert result['trend'] == 'bullish'
        assert result['indicators']['current_price'] == rising_candles['close'].iat[-1]
        assert result['indicators']['sma20'] > result['indicators']['sma50']
        assert result['indicators']['rsi'] == 100.0

    def test_trend_without_candles(self):
        with pytest.raises(InsufficientHistoryError):
            self.pipeline.trend([])

    def test_trend_short_history(self, candle_factory):
        result = self.pipeline.trend(candle_factory([100.0, 101.0]))

        assert (result['trend'], result['strength'], result['confidence']) == ('neutral', 0, 0)
        assert result['indicators']['rsi'] is None

    def test_compare_reports_errors(self, rising_candles, falling_candles):
        comparisons = self.pipeline.compare({
            'UP': rising_candles,
            'EMPTY': [],
            'DOWN': falling_candles,
        })

        assert [row['symbol'] for row in comparisons] == ['UP', 'EMPTY', 'DOWN']
        assert comparisons[0]['trend'] == 'bullish'
        assert 'error' in comparisons[1]
        assert comparisons[2]['trend'] == 'bearish'

    def test_signals(self, rising_candles):
        result = self.pipeline.signals(rising_candles)

        assert {'type': 'SELL', 'indicator': 'RSI'}.items() <= result['signals'][0].items()
        assert result['trend_analysis']['trend'] == 'bullish'

    def test_compute_indicators(self, rising_candles):
        assert self.pipeline.compute_indicators(rising_candles).candle_count == 60


class TestFeatureWeights:
    """Test feature-weight configuration."""

    def test_shallow_merge(self):
        pipeline = AnalysisPipeline()

        merged = pipeline.update_feature_weights({'rsi': 0.5})

        assert merged['rsi'] == 0.5
        assert merged['macd'] == 0.25
        assert len(merged) == 6

    def test_weights_do_not_change_training(self, random_candles):
        first = AnalysisPipeline()
        second = AnalysisPipeline()
        second.update_feature_weights({'rsi': 1.0, 'macd': 0.0})

        assert first.train('BTC', random_candles)['accuracy'] == second.train('BTC', random_candles)['accuracy']
