"""
Tests for candle handling, feature extraction and labeling.

Key tests include:
- Candle frame validation and CSV loading
- Feature vectors aligned through series offsets, including single-candle
  context and short-history defaults
- Zero-denominator handling in volume trend, momentum and band position
- Labels use only the next candle and never the last one
"""

import numpy as np
import pandas as pd
import pytest

from trendcast.data.candles import CANDLE_COLUMNS, Candle, load_candles_csv, to_frame
from trendcast.errors import DegenerateNumericError, FeatureExtractionError
from trendcast.features.builder import FEATURE_NAMES, FeatureBuilder, vector_frame
from trendcast.indicators.engine import IndicatorEngine
from trendcast.labeling.labels import LABEL_DOWN, LABEL_FLAT, LABEL_UP, LabelGenerator


class TestCandles:
    """Test candle normalization."""

    def test_candle_records(self):
        candles = [
            Candle(2, 10.0, 11.0, 9.0, 10.5, 100.0),
            {'timestamp': 1, 'open': 9.0, 'high': 10.0, 'low': 8.0, 'close': 9.5, 'volume': 50.0},
        ]
        frame = to_frame(candles)

        assert list(frame.columns) == CANDLE_COLUMNS
        assert frame['timestamp'].tolist() == [1, 2]
        assert list(frame.index) == [0, 1]

    def test_duplicate_timestamps(self, candle_factory):
        data = candle_factory([1.0, 2.0, 3.0])
        data.loc[2, 'timestamp'] = data.loc[1, 'timestamp']

        with pytest.raises(FeatureExtractionError):
            to_frame(data)

    def test_missing_columns(self, candle_factory):
        with pytest.raises(FeatureExtractionError):
            to_frame(candle_factory([1.0, 2.0]).drop(columns=['volume']))

    def test_series_row(self, candle_factory):
        data = candle_factory([1.0, 2.0, 3.0])
        frame = to_frame(data.iloc[-1])

        assert len(frame) == 1
        assert frame['close'].iat[0] == 3.0

    def test_load_csv_with_dates(self, tmp_path):
        csv_path = tmp_path / "btc.csv"
        pd.DataFrame({
            'Date': ['2024-01-02', '2024-01-01'],
            'Open': [2.0, 1.0], 'High': [2.5, 1.5], 'Low': [1.5, 0.5],
            'Close': [2.2, 1.2], 'Volume': [20.0, 10.0],
        }).to_csv(csv_path, index=False)

        frame = load_candles_csv(csv_path)

        assert frame['close'].tolist() == [1.2, 2.2]
        assert frame['timestamp'].iat[0] == 1704067200000

    def test_load_missing_csv(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_candles_csv(tmp_path / "missing.csv")


class TestFeatureExtraction:
    """Test single feature vectors."""

    def setup_method(self):
        self.engine = IndicatorEngine()
        self.builder = FeatureBuilder()

    def test_vector_from_latest_values(self, random_candles):
        bundle = self.engine.get_all_indicators(random_candles)
        vector = self.builder.extract_feature_vector(random_candles, bundle, len(random_candles) - 1)

        assert vector.shape == (len(FEATURE_NAMES),)
        assert vector[0] == pytest.approx((bundle.rsi.last() - 50) / 50)
        assert vector[1] == pytest.approx(bundle.macd.macd.last() - bundle.macd.signal.last())
        assert vector[2] == pytest.approx((bundle.sma20.last() - bundle.sma50.last()) / bundle.sma50.last())

    def test_single_candle_context(self, random_candles):
        bundle = self.engine.get_all_indicators(random_candles)
        vector = self.builder.extract_latest(random_candles.iloc[-1], bundle)

        assert vector[0] == pytest.approx((bundle.rsi.last() - 50) / 50)
        assert vector[3] == 0.0
        assert vector[4] == 0.0

    def test_short_history_defaults(self, candle_factory):
        candles = candle_factory([100.0, 101.0, 102.0, 103.0, 104.0])
        bundle = self.engine.get_all_indicators(candles)
        vector = self.builder.extract_feature_vector(candles, bundle, 4)

        assert vector[0] == 0.0
        assert vector[1] == 0.0
        assert vector[2] == 0.0
        assert vector[3] == 0.0
        assert vector[4] == pytest.approx(1.0 / 103.0)
        assert vector[5] == 0.5

    def test_volume_trend(self, candle_factory):
        candles = candle_factory(np.full(21, 100.0), volumes=[100.0] * 20 + [200.0])
        bundle = self.engine.get_all_indicators(candles)

        assert self.builder.extract_feature_vector(candles, bundle, 20)[3] == pytest.approx(1.0)

    def test_volume_trend_partial_window(self, candle_factory):
        candles = candle_factory([100.0, 100.0, 100.0], volumes=[100.0, 300.0, 400.0])
        bundle = self.engine.get_all_indicators(candles)

        assert self.builder.extract_feature_vector(candles, bundle, 2)[3] == pytest.approx(1.0)

    def test_zero_prior_volume(self, candle_factory):
        candles = candle_factory([100.0, 100.0], volumes=[0.0, 50.0])
        bundle = self.engine.get_all_indicators(candles)

        assert self.builder.extract_feature_vector(candles, bundle, 1)[3] == 0.0

    def test_price_momentum(self, candle_factory):
        candles = candle_factory([100.0, 110.0])
        bundle = self.engine.get_all_indicators(candles)

        assert self.builder.extract_feature_vector(candles, bundle, 1)[4] == pytest.approx(0.1)

    def test_flat_prices_are_finite(self, flat_candles):
        bundle = self.engine.get_all_indicators(flat_candles)
        vector = self.builder.extract_feature_vector(flat_candles, bundle, 99)

        assert np.isfinite(vector).all()
        assert vector[0] == 1.0
        assert vector[5] == pytest.approx(0.5)

    def test_non_finite_feature(self, candle_factory):
        candles = candle_factory([100.0, 101.0], volumes=[100.0, np.inf])
        bundle = self.engine.get_all_indicators(candles)

        with pytest.raises(DegenerateNumericError):
            self.builder.extract_feature_vector(candles, bundle, 1)

    def test_index_out_of_range(self, random_candles):
        bundle = self.engine.get_all_indicators(random_candles)

        with pytest.raises(FeatureExtractionError):
            self.builder.extract_feature_vector(random_candles, bundle, len(random_candles))

    def test_more_candles_than_indicators(self, random_candles):
        bundle = self.engine.get_all_indicators(random_candles.head(50))

        with pytest.raises(FeatureExtractionError):
            self.builder.extract_feature_vector(random_candles, bundle, 10)

    def test_vector_frame(self):
        frame = vector_frame(np.arange(6.0))

        assert list(frame.columns) == FEATURE_NAMES
        assert frame.shape == (1, 6)


class TestPrepareFeatures:
    """Test batch feature/label preparation."""

    def setup_method(self):
        self.engine = IndicatorEngine()
        self.builder = FeatureBuilder()

    def test_warmup_and_last_candle(self, random_candles):
        features, labels = self.builder.prepare_features(random_candles)

        assert list(features.columns) == FEATURE_NAMES
        assert features.index.min() == 50
        assert features.index.max() == len(random_candles) - 2
        assert len(features) == len(labels) == len(random_candles) - 51
        assert np.isfinite(features.to_numpy()).all()

    def test_labels_match_next_candle(self, random_candles):
        features, labels = self.builder.prepare_features(random_candles)
        generator = LabelGenerator()

        for index in labels.index[:10]:
            assert labels[index] == generator.calculate_target(random_candles, index)

    def test_features_use_only_past_data(self, random_candles):
        bundle = self.engine.get_all_indicators(random_candles)
        features, _ = self.builder.prepare_features(random_candles, bundle)

        truncated = random_candles.head(121)
        truncated_features, _ = self.builder.prepare_features(truncated)

        pd.testing.assert_frame_equal(features.loc[50:119], truncated_features.loc[50:119])

    def test_bad_candles_are_skipped(self, random_candles):
        candles = random_candles.copy()
        candles.loc[100, 'close'] = 0.0
        candles.loc[120, 'volume'] = np.inf

        features, labels = self.builder.prepare_features(candles)

        # a non-finite volume poisons the averaging window of the next 20 candles
        skipped = {100} | set(range(120, 141))
        assert skipped.isdisjoint(features.index)
        assert list(features.index) == [i for i in range(50, len(candles) - 1) if i not in skipped]
        assert labels.index.equals(features.index)
        assert np.isfinite(features.to_numpy()).all()

        generator = LabelGenerator()
        for index in (99, 101, 119, 141):
            assert labels[index] == generator.calculate_target(candles, index)

    def test_too_short_yields_empty(self, candle_factory):
        features, labels = self.builder.prepare_features(candle_factory(np.linspace(100, 110, 40)))

        assert features.empty
        assert labels.empty
        assert list(features.columns) == FEATURE_NAMES


class TestLabelGenerator:
    """Test forward-looking labels."""

    def setup_method(self):
        self.generator = LabelGenerator()

    def test_thresholds(self, candle_factory):
        candles = candle_factory([100.0, 103.0, 99.0, 99.5, 99.5])

        assert self.generator.calculate_target(candles, 0) == LABEL_UP
        assert self.generator.calculate_target(candles, 1) == LABEL_DOWN
        assert self.generator.calculate_target(candles, 2) == LABEL_FLAT

    def test_last_candle_has_no_label(self, candle_factory):
        candles = candle_factory([100.0, 101.0])

        with pytest.raises(FeatureExtractionError):
            self.generator.calculate_target(candles, 1)

    def test_generate_labels_matches_targets(self, random_candles):
        labels = self.generator.generate_labels(random_candles)

        assert len(labels) == len(random_candles) - 1
        for index in range(0, len(labels), 25):
            assert labels[index] == self.generator.calculate_target(random_candles, index)

    def test_label_distribution(self, random_candles):
        summary = self.generator.label_distribution(self.generator.generate_labels(random_candles))

        assert summary['total'] == len(random_candles) - 1
        assert sum(summary['counts'].values()) == summary['total']
