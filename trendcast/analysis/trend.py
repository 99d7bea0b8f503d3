"""
Rule-based trend classification and trading signals.

Works on the latest indicator values only and needs no trained model.

Voting (weights configurable under ``trend``):
- SMA (weight 2): SMA20 above SMA50 votes bullish, otherwise bearish
- RSI (weight 1): below 30 votes bullish, above 70 bearish; in between it
  still counts toward the total weight without voting
- MACD (weight 1): line above signal votes bullish, otherwise bearish

The bullish weight share decides the trend: above 0.6 bullish, below 0.4
bearish, otherwise neutral.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Union

from trendcast.indicators.series import IndicatorBundle
from trendcast.modeling.metrics import round_half_up
from trendcast.modeling.predictor import BEARISH, BULLISH, NEUTRAL
from trendcast.utils.config import ConfigManager, resolve_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrendResult:
    trend: str
    strength: int
    confidence: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


NO_TREND = TrendResult(trend=NEUTRAL, strength=0, confidence=0)


@dataclass(frozen=True)
class TradingSignal:
    """One indicator-driven BUY/SELL signal."""

    type: str
    indicator: str
    strength: str
    message: str
    value: Union[float, Dict[str, float]]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TrendClassifier:
    """Weighted indicator voting over the latest values."""

    def __init__(self, config: Optional[Union[Dict, ConfigManager]] = None):
        """Initialize trend classifier.

        Args:
            config: Configuration dict or ConfigManager instance
        """
        self.config = resolve_config(config)

        trend_config = self.config.get('trend', {})
        self.sma_weight = trend_config.get('sma_weight', 2)
        self.rsi_weight = trend_config.get('rsi_weight', 1)
        self.macd_weight = trend_config.get('macd_weight', 1)
        self.rsi_oversold = trend_config.get('rsi_oversold', 30)
        self.rsi_overbought = trend_config.get('rsi_overbought', 70)
        self.bullish_ratio = trend_config.get('bullish_ratio', 0.6)
        self.bearish_ratio = trend_config.get('bearish_ratio', 0.4)

    def analyze_trend(self, indicators: IndicatorBundle) -> TrendResult:
        """Classify the trend from the latest indicator values.

        Returns:
            TrendResult; neutral with zero strength and confidence when no
            indicator has enough history
        """
        bullish_weight = 0.0
        total_weight = 0.0

        sma20 = indicators.sma20.last()
        sma50 = indicators.sma50.last()
        if sma20 is not None and sma50 is not None:
            total_weight += self.sma_weight
            if sma20 > sma50:
                bullish_weight += self.sma_weight

        rsi = indicators.rsi.last()
        if rsi is not None:
            total_weight += self.rsi_weight
            if rsi < self.rsi_oversold:
                bullish_weight += self.rsi_weight

        macd = indicators.macd.macd.last()
        signal = indicators.macd.signal.last()
        if macd is not None and signal is not None:
            total_weight += self.macd_weight
            if macd > signal:
                bullish_weight += self.macd_weight

        if total_weight == 0:
            logger.debug("No indicator has enough history for a trend")
            return NO_TREND

        ratio = bullish_weight / total_weight
        if ratio > self.bullish_ratio:
            trend = BULLISH
        elif ratio < self.bearish_ratio:
            trend = BEARISH
        else:
            trend = NEUTRAL

        strength = 50 if trend == NEUTRAL else round_half_up(max(ratio, 1 - ratio) * 100)
        confidence = round_half_up(abs(ratio - 0.5) * 2 * 100)

        logger.debug(f"Trend {trend}: bullish weight {bullish_weight}/{total_weight}")
        return TrendResult(trend=trend, strength=strength, confidence=confidence)

    def generate_signals(self, indicators: IndicatorBundle) -> List[TradingSignal]:
        """Trading signals from RSI extremes, MACD position and SMA crossover."""
        signals = []

        rsi = indicators.rsi.last()
        if rsi is not None:
            if rsi < self.rsi_oversold:
                signals.append(TradingSignal('BUY', 'RSI', 'STRONG', 'RSI shows oversold conditions', rsi))
            elif rsi > self.rsi_overbought:
                signals.append(TradingSignal('SELL', 'RSI', 'STRONG', 'RSI shows overbought conditions', rsi))

        macd = indicators.macd.macd.last()
        signal = indicators.macd.signal.last()
        if macd is not None and signal is not None:
            value = {'macd': macd, 'signal': signal}
            if macd > signal:
                signals.append(TradingSignal('BUY', 'MACD', 'MEDIUM', 'MACD above signal line', value))
            else:
                signals.append(TradingSignal('SELL', 'MACD', 'MEDIUM', 'MACD below signal line', value))

        sma20 = indicators.sma20.last()
        sma50 = indicators.sma50.last()
        if sma20 is not None and sma50 is not None:
            value = {'sma20': sma20, 'sma50': sma50}
            if sma20 > sma50:
                signals.append(TradingSignal('BUY', 'SMA', 'WEAK', 'Short-term SMA above long-term SMA', value))
            else:
                signals.append(TradingSignal('SELL', 'SMA', 'WEAK', 'Short-term SMA below long-term SMA', value))

        return signals
