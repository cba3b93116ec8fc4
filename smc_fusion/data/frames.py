"""
DataFrame adapters between pandas OHLCV frames and Candle sequences
"""

import logging
from typing import List, Sequence

import pandas as pd

from smc_fusion.core.exceptions import MarketDataError
from smc_fusion.models.candle import Candle

logger = logging.getLogger(__name__)

OHLC_COLUMNS = ("open", "high", "low", "close")
TIMESTAMP_COLUMNS = ("timestamp", "time", "datetime", "date", "open_time")


def _timestamp_series(frame: pd.DataFrame) -> pd.Series:
    for column in TIMESTAMP_COLUMNS:
        if column in frame.columns:
            values = frame[column]
            if pd.api.types.is_numeric_dtype(values):
                # epoch milliseconds, as exported by most exchanges
                return pd.to_datetime(values, unit="ms", utc=True)
            return pd.to_datetime(values, utc=True)
    if isinstance(frame.index, pd.DatetimeIndex):
        index = frame.index
        index = index.tz_localize("UTC") if index.tz is None else index.tz_convert("UTC")
        return pd.Series(index, index=frame.index)
    raise MarketDataError(
        f"OHLCV frame needs a DatetimeIndex or one of the columns {TIMESTAMP_COLUMNS}"
    )


def candles_from_frame(frame: pd.DataFrame) -> List[Candle]:
    """
    Convert an OHLCV DataFrame into an ordered list of Candles.

    Column names are matched case-insensitively. Timestamps come from a
    timestamp-like column or the DatetimeIndex; rows are sorted by time and
    duplicate timestamps keep the last row. A missing volume column means
    zero volume.

    Args:
        frame: DataFrame with open/high/low/close[/volume] columns

    Returns:
        List of Candle objects in strictly increasing timestamp order

    Raises:
        MarketDataError: If required columns are missing or a row is incoherent
    """
    if frame.empty:
        return []

    frame = frame.rename(columns=lambda c: str(c).strip().lower())
    missing = [c for c in OHLC_COLUMNS if c not in frame.columns]
    if missing:
        raise MarketDataError(f"OHLCV frame is missing columns: {missing}")

    ordered = pd.DataFrame({
        "timestamp": _timestamp_series(frame).reset_index(drop=True),
        "open": frame["open"].astype(float).reset_index(drop=True),
        "high": frame["high"].astype(float).reset_index(drop=True),
        "low": frame["low"].astype(float).reset_index(drop=True),
        "close": frame["close"].astype(float).reset_index(drop=True),
        "volume": (
            frame["volume"].fillna(0).astype(float).reset_index(drop=True)
            if "volume" in frame.columns else 0.0
        ),
    })

    ordered = ordered.dropna(subset=list(OHLC_COLUMNS))
    before = len(ordered)
    ordered = ordered.sort_values("timestamp", kind="stable").drop_duplicates("timestamp", keep="last")
    if len(ordered) != before:
        logger.warning(f"Dropped {before - len(ordered)} duplicate candle rows")

    try:
        return [
            Candle(
                timestamp=row.timestamp.to_pydatetime(),
                open=row.open,
                high=row.high,
                low=row.low,
                close=row.close,
                volume=row.volume,
            )
            for row in ordered.itertuples(index=False)
        ]
    except ValueError as e:
        raise MarketDataError(f"Incoherent candle data: {e}") from e


def frame_from_candles(candles: Sequence[Candle]) -> pd.DataFrame:
    """
    Convert Candles into an OHLCV DataFrame indexed by timestamp.

    Args:
        candles: Sequence of Candle objects

    Returns:
        DataFrame with open/high/low/close/volume columns
    """
    frame = pd.DataFrame(
        [
            {
                "timestamp": c.timestamp,
                "open": c.open,
                "high": c.high,
                "low": c.low,
                "close": c.close,
                "volume": c.volume,
            }
            for c in candles
        ],
        columns=["timestamp", "open", "high", "low", "close", "volume"],
    )
    return frame.set_index("timestamp")


def load_csv(path: str) -> List[Candle]:
    """Read an OHLCV CSV file into Candles."""
    return candles_from_frame(pd.read_csv(path))
