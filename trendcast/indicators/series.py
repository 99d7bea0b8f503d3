"""
Offset-carrying indicator series.

Indicators with different lookback windows produce arrays of different
lengths. Each ``IndicatorSeries`` records the candle index of its first value
so lookups by candle position never depend on positional coincidence:

    series.values[i]  <->  candle index i + series.offset

All cross-indicator lookups go through ``at``/``last``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np


@dataclass(frozen=True, eq=False)
class IndicatorSeries:
    """Read-only float values starting at candle index ``offset``."""

    values: np.ndarray
    offset: int = 0

    def __post_init__(self):
        values = np.array(self.values, dtype=np.float64).reshape(-1)
        values.setflags(write=False)
        object.__setattr__(self, 'values', values)

    @classmethod
    def empty(cls, offset: int = 0) -> 'IndicatorSeries':
        return cls(np.empty(0), offset)

    def __len__(self) -> int:
        return len(self.values)

    @property
    def is_empty(self) -> bool:
        return len(self.values) == 0

    @property
    def end(self) -> int:
        """Candle index of the last value (``offset - 1`` when empty)."""
        return self.offset + len(self.values) - 1

    def covers(self, candle_index: int) -> bool:
        return self.offset <= candle_index <= self.end

    def at(self, candle_index: int, default: Optional[float] = None) -> Optional[float]:
        """Value at a candle index, or ``default`` outside the series."""
        if not self.covers(candle_index):
            return default
        return float(self.values[candle_index - self.offset])

    def last(self, default: Optional[float] = None) -> Optional[float]:
        if self.is_empty:
            return default
        return float(self.values[-1])

    def tolist(self) -> List[float]:
        return self.values.tolist()

    def equals(self, other: 'IndicatorSeries') -> bool:
        return self.offset == other.offset and np.array_equal(self.values, other.values, equal_nan=True)


@dataclass(frozen=True, eq=False)
class MACDSeries:
    """MACD line, signal line and histogram over their shared range."""

    macd: IndicatorSeries = field(default_factory=IndicatorSeries.empty)
    signal: IndicatorSeries = field(default_factory=IndicatorSeries.empty)
    histogram: IndicatorSeries = field(default_factory=IndicatorSeries.empty)

    def to_dict(self) -> Dict[str, List[float]]:
        return {'macd': self.macd.tolist(), 'signal': self.signal.tolist(),
                'histogram': self.histogram.tolist()}


@dataclass(frozen=True, eq=False)
class BollingerSeries:
    upper: IndicatorSeries = field(default_factory=IndicatorSeries.empty)
    middle: IndicatorSeries = field(default_factory=IndicatorSeries.empty)
    lower: IndicatorSeries = field(default_factory=IndicatorSeries.empty)

    def to_dict(self) -> Dict[str, List[float]]:
        return {'upper': self.upper.tolist(), 'middle': self.middle.tolist(),
                'lower': self.lower.tolist()}


@dataclass(frozen=True, eq=False)
class StochasticSeries:
    k: IndicatorSeries = field(default_factory=IndicatorSeries.empty)
    d: IndicatorSeries = field(default_factory=IndicatorSeries.empty)

    def to_dict(self) -> Dict[str, List[float]]:
        return {'k': self.k.tolist(), 'd': self.d.tolist()}


@dataclass(frozen=True, eq=False)
class IndicatorBundle:
    """Every indicator computed for one candle sequence.

    The shape never changes: a series without enough history is empty rather
    than missing, so callers check ``len``/``is_empty`` instead of presence.
    """

    candle_count: int
    sma20: IndicatorSeries
    sma50: IndicatorSeries
    ema12: IndicatorSeries
    ema26: IndicatorSeries
    rsi: IndicatorSeries
    macd: MACDSeries
    bollinger: BollingerSeries
    stochastic: StochasticSeries
    williams_r: IndicatorSeries
    volume: IndicatorSeries

    def flat_series(self) -> Dict[str, IndicatorSeries]:
        """All series keyed by a dotted name, e.g. ``macd.signal``."""
        return {
            'sma20': self.sma20,
            'sma50': self.sma50,
            'ema12': self.ema12,
            'ema26': self.ema26,
            'rsi': self.rsi,
            'macd.macd': self.macd.macd,
            'macd.signal': self.macd.signal,
            'macd.histogram': self.macd.histogram,
            'bollinger.upper': self.bollinger.upper,
            'bollinger.middle': self.bollinger.middle,
            'bollinger.lower': self.bollinger.lower,
            'stochastic.k': self.stochastic.k,
            'stochastic.d': self.stochastic.d,
            'williams_r': self.williams_r,
            'volume': self.volume,
        }

    def latest(self) -> Dict[str, Optional[float]]:
        """Latest value of every series (None when a series is empty)."""
        return {name: series.last() for name, series in self.flat_series().items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'candle_count': self.candle_count,
            'sma20': self.sma20.tolist(),
            'sma50': self.sma50.tolist(),
            'ema12': self.ema12.tolist(),
            'ema26': self.ema26.tolist(),
            'rsi': self.rsi.tolist(),
            'macd': self.macd.to_dict(),
            'bollinger': self.bollinger.to_dict(),
            'stochastic': self.stochastic.to_dict(),
            'williams_r': self.williams_r.tolist(),
            'volume': self.volume.tolist(),
        }

    def equals(self, other: 'IndicatorBundle') -> bool:
        if self.candle_count != other.candle_count:
            return False
        theirs = other.flat_series()
        return all(series.equals(theirs[name]) for name, series in self.flat_series().items())
