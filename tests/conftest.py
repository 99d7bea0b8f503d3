"""
Shared synthetic candle data for the test suite.
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))


def make_candles(closes, volumes=None, spread=1.0, start=1_700_000_000_000, step=3_600_000):
    """Build an OHLCV frame around the given closes."""
    closes = np.asarray(closes, dtype=float)
    n = len(closes)
    if volumes is None:
        volumes = np.full(n, 1000.0)

    opens = np.roll(closes, 1)
    if n:
        opens[0] = closes[0]

    return pd.DataFrame({
        'timestamp': start + step * np.arange(n, dtype='int64'),
        'open': opens,
        'high': np.maximum(opens, closes) + spread,
        'low': np.minimum(opens, closes) - spread,
        'close': closes,
        'volume': np.asarray(volumes, dtype=float),
    })


def random_closes(n, seed=42, initial_price=100.0):
    """Geometric random walk of close prices."""
    rng = np.random.RandomState(seed)
    returns = rng.normal(0.0005, 0.02, n)
    returns[0] = 0.0
    return initial_price * np.cumprod(1 + returns)


@pytest.fixture
def candle_factory():
    return make_candles


@pytest.fixture
def random_candles():
    rng = np.random.RandomState(7)
    volumes = rng.lognormal(10, 0.5, 200)
    return make_candles(random_closes(200), volumes=volumes)


@pytest.fixture
def rising_candles():
    steps = np.arange(60)
    return make_candles(100.0 + 0.05 * steps ** 2)


@pytest.fixture
def falling_candles():
    steps = np.arange(60)
    return make_candles(200.0 - 0.05 * steps ** 2)


@pytest.fixture
def flat_candles():
    return make_candles(np.full(100, 100.0), spread=0.0)
