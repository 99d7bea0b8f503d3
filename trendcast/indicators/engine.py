"""
Technical indicator engine.

Pure transforms from price (or high/low/close) sequences to offset-carrying
indicator series. No method keeps state between calls or mutates its input,
so computing the same candles twice yields identical bundles.

Indicator sources:
- SMA, Bollinger Bands, raw Stochastic %K and Williams %R come from ``ta``
- EMA, RSI and MACD are computed here: EMA is seeded with the SMA of the
  first window and RSI uses Wilder smoothing seeded with a simple mean,
  neither of which matches the ``ta`` defaults

Zero-denominator policy:
- RSI with zero average loss is 100
- Stochastic %K over a zero high/low range is 50
- Williams %R over a zero high/low range is -50
"""

import logging
import warnings
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from ta.momentum import StochasticOscillator, WilliamsRIndicator
from ta.trend import SMAIndicator
from ta.volatility import BollingerBands

from trendcast.data.candles import CandleInput, to_frame
from trendcast.indicators.series import (
    BollingerSeries,
    IndicatorBundle,
    IndicatorSeries,
    MACDSeries,
    StochasticSeries,
)
from trendcast.utils.config import ConfigManager, resolve_config

# ta divides by zero ranges before our sentinels replace them
warnings.filterwarnings('ignore', category=RuntimeWarning, module='ta')

logger = logging.getLogger(__name__)

STOCHASTIC_ZERO_RANGE = 50.0
WILLIAMS_ZERO_RANGE = -50.0

PriceInput = Union[Sequence[float], np.ndarray, pd.Series]


def _as_array(prices: PriceInput) -> np.ndarray:
    return np.array(prices, dtype=np.float64).reshape(-1)


def _check_period(period: int) -> int:
    if int(period) != period or period < 1:
        raise ValueError(f"Indicator period must be a positive integer, got {period!r}")
    return int(period)


class IndicatorEngine:
    """Computes the standard indicator set from candle history."""

    def __init__(self, config: Optional[Union[dict, ConfigManager]] = None):
        """Initialize indicator engine.

        Args:
            config: Configuration dict or ConfigManager instance
        """
        self.config = resolve_config(config)
        indicators_config = self.config.get('indicators', {})

        self.rsi_period = indicators_config.get('rsi_period', 14)
        self.macd_params = indicators_config.get('macd_params', {'fast': 12, 'slow': 26, 'signal': 9})
        self.bollinger_period = indicators_config.get('bollinger_period', 20)
        self.bollinger_std_dev = indicators_config.get('bollinger_std_dev', 2)
        self.stoch_k_period = indicators_config.get('stoch_k_period', 14)
        self.stoch_d_period = indicators_config.get('stoch_d_period', 3)
        self.williams_period = indicators_config.get('williams_period', 14)

        logger.debug("IndicatorEngine initialized")

    def calculate_sma(self, prices: PriceInput, period: int) -> IndicatorSeries:
        """Simple moving average; empty when fewer than ``period`` prices."""
        period = _check_period(period)
        values = _as_array(prices)
        if len(values) < period:
            return IndicatorSeries.empty(period - 1)

        sma = SMAIndicator(close=pd.Series(values), window=period).sma_indicator()
        return IndicatorSeries(sma.to_numpy()[period - 1:], period - 1)

    def calculate_ema(self, prices: PriceInput, period: int) -> IndicatorSeries:
        """Exponential moving average seeded with the SMA of the first window.

        ema[t] = price[t] * m + ema[t-1] * (1 - m), with m = 2 / (period + 1).
        The first value corresponds to input index ``period - 1``.
        """
        period = _check_period(period)
        values = _as_array(prices)
        if len(values) < period:
            return IndicatorSeries.empty(period - 1)

        multiplier = 2.0 / (period + 1)
        ema = np.empty(len(values) - period + 1)
        ema[0] = values[:period].mean()
        for i in range(period, len(values)):
            ema[i - period + 1] = values[i] * multiplier + ema[i - period] * (1 - multiplier)

        return IndicatorSeries(ema, period - 1)

    @staticmethod
    def _rsi_value(avg_gain: float, avg_loss: float) -> float:
        if avg_loss == 0:
            return 100.0
        rs = avg_gain / avg_loss
        return 100.0 - 100.0 / (1.0 + rs)

    def calculate_rsi(self, prices: PriceInput, period: Optional[int] = None) -> IndicatorSeries:
        """Relative Strength Index with Wilder smoothing.

        The first value uses the simple mean of the first ``period`` deltas and
        sits at price index ``period``; later averages are smoothed as
        ``avg = (avg * (period - 1) + new) / period``.
        """
        period = _check_period(self.rsi_period if period is None else period)
        values = _as_array(prices)
        if len(values) < period + 1:
            return IndicatorSeries.empty(period)

        deltas = np.diff(values)
        gains = np.where(deltas > 0, deltas, 0.0)
        losses = np.where(deltas < 0, -deltas, 0.0)

        avg_gain = gains[:period].mean()
        avg_loss = losses[:period].mean()
        rsi = [self._rsi_value(avg_gain, avg_loss)]

        for i in range(period, len(deltas)):
            avg_gain = (avg_gain * (period - 1) + gains[i]) / period
            avg_loss = (avg_loss * (period - 1) + losses[i]) / period
            rsi.append(self._rsi_value(avg_gain, avg_loss))

        return IndicatorSeries(rsi, period)

    def calculate_macd(self, prices: PriceInput, fast: Optional[int] = None,
                       slow: Optional[int] = None, signal: Optional[int] = None) -> MACDSeries:
        """MACD line, signal line and histogram.

        The fast and slow EMAs are aligned on their tails (the last
        ``min(len_fast, len_slow)`` values of each). All three outputs are
        trimmed to the range where the signal line exists, so they share one
        offset and ``histogram[i] == macd[i] - signal[i]``.
        """
        fast = _check_period(self.macd_params['fast'] if fast is None else fast)
        slow = _check_period(self.macd_params['slow'] if slow is None else slow)
        signal = _check_period(self.macd_params['signal'] if signal is None else signal)
        values = _as_array(prices)

        fast_ema = self.calculate_ema(values, fast)
        slow_ema = self.calculate_ema(values, slow)
        combined_offset = max(fast, slow) - 1 + signal - 1

        if fast_ema.is_empty or slow_ema.is_empty:
            empty = IndicatorSeries.empty(combined_offset)
            return MACDSeries(empty, empty, empty)

        length = min(len(fast_ema), len(slow_ema))
        macd_line = fast_ema.values[-length:] - slow_ema.values[-length:]
        signal_line = self.calculate_ema(macd_line, signal)

        if signal_line.is_empty:
            empty = IndicatorSeries.empty(combined_offset)
            return MACDSeries(empty, empty, empty)

        offset = len(values) - length + signal_line.offset
        trimmed = macd_line[signal_line.offset:]

        return MACDSeries(
            macd=IndicatorSeries(trimmed, offset),
            signal=IndicatorSeries(signal_line.values, offset),
            histogram=IndicatorSeries(trimmed - signal_line.values, offset),
        )

    def calculate_bollinger_bands(self, prices: PriceInput, period: Optional[int] = None,
                                  std_dev: Optional[float] = None) -> BollingerSeries:
        """Bollinger Bands: SMA middle band +/- ``std_dev`` population std devs."""
        period = _check_period(self.bollinger_period if period is None else period)
        std_dev = self.bollinger_std_dev if std_dev is None else std_dev
        values = _as_array(prices)
        if len(values) < period:
            empty = IndicatorSeries.empty(period - 1)
            return BollingerSeries(empty, empty, empty)

        bands = BollingerBands(close=pd.Series(values), window=period, window_dev=std_dev)
        start = period - 1

        return BollingerSeries(
            upper=IndicatorSeries(bands.bollinger_hband().to_numpy()[start:], start),
            middle=IndicatorSeries(bands.bollinger_mavg().to_numpy()[start:], start),
            lower=IndicatorSeries(bands.bollinger_lband().to_numpy()[start:], start),
        )

    @staticmethod
    def _hlc_frame(highs: PriceInput, lows: PriceInput, closes: PriceInput) -> Tuple[pd.Series, pd.Series, pd.Series]:
        high, low, close = _as_array(highs), _as_array(lows), _as_array(closes)
        if not len(high) == len(low) == len(close):
            raise ValueError(
                f"highs, lows and closes must have equal length, got {len(high)}, {len(low)}, {len(close)}"
            )
        return pd.Series(high), pd.Series(low), pd.Series(close)

    @staticmethod
    def _rolling_range(high: pd.Series, low: pd.Series, period: int) -> np.ndarray:
        highest = high.rolling(window=period, min_periods=period).max()
        lowest = low.rolling(window=period, min_periods=period).min()
        return (highest - lowest).to_numpy()[period - 1:]

    def calculate_stochastic(self, highs: PriceInput, lows: PriceInput, closes: PriceInput,
                             k_period: Optional[int] = None, d_period: Optional[int] = None) -> StochasticSeries:
        """Stochastic Oscillator %K over ``k_period`` and %D = SMA(%K, ``d_period``)."""
        k_period = _check_period(self.stoch_k_period if k_period is None else k_period)
        d_period = _check_period(self.stoch_d_period if d_period is None else d_period)
        high, low, close = self._hlc_frame(highs, lows, closes)

        if len(close) < k_period:
            return StochasticSeries(IndicatorSeries.empty(k_period - 1),
                                    IndicatorSeries.empty(k_period + d_period - 2))

        oscillator = StochasticOscillator(high=high, low=low, close=close,
                                          window=k_period, smooth_window=d_period)
        raw_k = oscillator.stoch().to_numpy()[k_period - 1:]
        price_range = self._rolling_range(high, low, k_period)
        k_values = np.where((price_range != 0) & np.isfinite(raw_k), raw_k, STOCHASTIC_ZERO_RANGE)

        k_series = IndicatorSeries(k_values, k_period - 1)
        d_relative = self.calculate_sma(k_values, d_period)
        d_series = IndicatorSeries(d_relative.values, k_series.offset + d_relative.offset)

        return StochasticSeries(k_series, d_series)

    def calculate_williams_r(self, highs: PriceInput, lows: PriceInput, closes: PriceInput,
                             period: Optional[int] = None) -> IndicatorSeries:
        """Williams %R: (highest high - close) / (highest high - lowest low) * -100."""
        period = _check_period(self.williams_period if period is None else period)
        high, low, close = self._hlc_frame(highs, lows, closes)

        if len(close) < period:
            return IndicatorSeries.empty(period - 1)

        raw = WilliamsRIndicator(high=high, low=low, close=close, lbp=period).williams_r().to_numpy()[period - 1:]
        price_range = self._rolling_range(high, low, period)
        values = np.where((price_range != 0) & np.isfinite(raw), raw, WILLIAMS_ZERO_RANGE)

        return IndicatorSeries(values, period - 1)

    def get_all_indicators(self, candles: CandleInput) -> IndicatorBundle:
        """Compute the full indicator bundle for a candle sequence.

        Args:
            candles: DataFrame or sequence of Candle/dicts, ascending by timestamp

        Returns:
            IndicatorBundle with every series present (empty when too short)
        """
        data = to_frame(candles)
        closes = data['close'].to_numpy()
        highs = data['high'].to_numpy()
        lows = data['low'].to_numpy()

        bundle = IndicatorBundle(
            candle_count=len(data),
            sma20=self.calculate_sma(closes, 20),
            sma50=self.calculate_sma(closes, 50),
            ema12=self.calculate_ema(closes, 12),
            ema26=self.calculate_ema(closes, 26),
            rsi=self.calculate_rsi(closes),
            macd=self.calculate_macd(closes),
            bollinger=self.calculate_bollinger_bands(closes),
            stochastic=self.calculate_stochastic(highs, lows, closes),
            williams_r=self.calculate_williams_r(highs, lows, closes),
            volume=IndicatorSeries(data['volume'].to_numpy(), 0),
        )

        logger.debug(f"Computed indicators for {len(data)} candles")
        return bundle
