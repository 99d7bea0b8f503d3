"""
Candle data model and conversion helpers.

Candles reach the engine either as ``Candle`` records, plain dicts (as handed
over by an exchange client) or a DataFrame. ``to_frame`` normalizes all of
them into a validated OHLCV DataFrame:

- columns: timestamp (epoch ms), open, high, low, close, volume
- ascending by timestamp, no duplicate timestamps
- 0-based RangeIndex, so a row position is a candle index
"""

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Union

import pandas as pd

from trendcast.errors import FeatureExtractionError

logger = logging.getLogger(__name__)

CANDLE_COLUMNS = ['timestamp', 'open', 'high', 'low', 'close', 'volume']
PRICE_COLUMNS = ['open', 'high', 'low', 'close', 'volume']


@dataclass(frozen=True)
class Candle:
    """One OHLCV bar. ``timestamp`` is the open time in epoch milliseconds."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


CandleInput = Union[pd.DataFrame, pd.Series, Candle, Mapping[str, Any],
                    Iterable[Union[Candle, Mapping[str, Any]]]]


def _as_record(candle: Union[Candle, Mapping[str, Any]]) -> Dict[str, Any]:
    if isinstance(candle, Candle):
        return candle.to_dict()
    if isinstance(candle, Mapping):
        return dict(candle)
    raise FeatureExtractionError(f"Unsupported candle type: {type(candle).__name__}")


def to_frame(candles: CandleInput) -> pd.DataFrame:
    """Convert candles into a validated OHLCV DataFrame.

    Args:
        candles: DataFrame, a single Candle/dict, or a sequence of Candle/dicts

    Returns:
        DataFrame with CANDLE_COLUMNS, ascending timestamps and a RangeIndex

    Raises:
        FeatureExtractionError: If columns are missing or timestamps repeat
    """
    if isinstance(candles, pd.DataFrame):
        data = candles.copy()
    elif isinstance(candles, pd.Series):
        data = candles.to_frame().T
    elif isinstance(candles, (Candle, Mapping)):
        data = pd.DataFrame([_as_record(candles)])
    else:
        data = pd.DataFrame([_as_record(c) for c in candles])

    if data.empty:
        return pd.DataFrame({col: pd.Series(dtype='float64') for col in CANDLE_COLUMNS})

    missing = [col for col in CANDLE_COLUMNS if col not in data.columns]
    if missing:
        raise FeatureExtractionError(f"Candles missing required columns: {missing}")

    data = data[CANDLE_COLUMNS].copy()
    data['timestamp'] = data['timestamp'].astype('int64')
    data[PRICE_COLUMNS] = data[PRICE_COLUMNS].astype('float64')

    invalid = data[PRICE_COLUMNS].isna().any(axis=1)
    if invalid.any():
        logger.warning(f"Dropping {int(invalid.sum())} candles with missing prices or volume")
        data = data[~invalid]

    if not data['timestamp'].is_monotonic_increasing:
        logger.warning("Candles were not in ascending timestamp order; sorting")
        data = data.sort_values('timestamp', kind='mergesort')

    if data['timestamp'].duplicated().any():
        duplicates = data.loc[data['timestamp'].duplicated(), 'timestamp'].tolist()
        raise FeatureExtractionError(f"Duplicate candle timestamps: {duplicates[:5]}")

    return data.reset_index(drop=True)


def load_candles_csv(path: Union[str, Path]) -> pd.DataFrame:
    """Load candles from a CSV file.

    Expected CSV format (headers are case-insensitive; ``date`` may replace
    ``timestamp`` and is converted to epoch milliseconds):
        timestamp,open,high,low,close,volume
        1700000000000,100.0,102.0,99.5,101.0,1500.0

    Raises:
        FileNotFoundError: If the file does not exist
        FeatureExtractionError: If required columns are missing
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Candle file not found: {csv_path}")

    data = pd.read_csv(csv_path)
    data.columns = data.columns.str.strip().str.lower().str.replace(' ', '_')

    if 'timestamp' not in data.columns and 'date' in data.columns:
        dates = pd.to_datetime(data['date'], utc=True)
        data['timestamp'] = (dates - pd.Timestamp(0, tz='UTC')) // pd.Timedelta(milliseconds=1)

    frame = to_frame(data)
    logger.info(f"Loaded {len(frame)} candles from {csv_path}")
    return frame
