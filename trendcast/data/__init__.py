"""
Data package: the candle model and the CSV candle loader.
"""

from trendcast.data.candles import CANDLE_COLUMNS, Candle, load_candles_csv, to_frame

__all__ = [
    "CANDLE_COLUMNS",
    "Candle",
    "load_candles_csv",
    "to_frame",
]
