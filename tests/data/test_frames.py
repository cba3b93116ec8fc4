"""
Unit tests for the pandas OHLCV adapters
"""

from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from smc_fusion.core.exceptions import MarketDataError
from smc_fusion.data.frames import candles_from_frame, frame_from_candles, load_csv
from smc_fusion.models.candle import Candle


def create_test_candle(index, close=100.0) -> Candle:
    base_time = datetime(2025, 1, 1, tzinfo=timezone.utc)
    return Candle(
        timestamp=base_time + timedelta(hours=index),
        open=close - 0.2,
        high=close + 0.5,
        low=close - 0.5,
        close=close,
        volume=10.0 * (index + 1),
    )


class TestCandlesFromFrame:
    """Test DataFrame -> Candle conversion"""

    def test_epoch_millisecond_column(self):
        frame = pd.DataFrame({
            "Open_Time": [1735693200000, 1735689600000],
            "Open": [1.1, 1.0],
            "High": [1.3, 1.2],
            "Low": [1.0, 0.9],
            "Close": [1.2, 1.1],
            "Volume": [5, 7],
        })
        candles = candles_from_frame(frame)

        assert [c.close for c in candles] == [1.1, 1.2]
        assert candles[0].timestamp == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert candles[0].volume == 7.0

    def test_naive_datetime_index_is_utc(self):
        index = pd.date_range("2025-01-01", periods=3, freq="60min")
        frame = pd.DataFrame(
            {"open": [1, 2, 3], "high": [2, 3, 4], "low": [0.5, 1.5, 2.5], "close": [1.5, 2.5, 3.5]},
            index=index,
        )
        candles = candles_from_frame(frame)

        assert len(candles) == 3
        assert candles[0].timestamp.tzinfo is not None
        assert all(c.volume == 0.0 for c in candles)

    def test_duplicate_timestamps_keep_last(self):
        frame = pd.DataFrame({
            "timestamp": ["2025-01-01T00:00:00Z", "2025-01-01T00:00:00Z", "2025-01-01T01:00:00Z"],
            "open": [1.0, 1.0, 1.1],
            "high": [1.2, 1.3, 1.2],
            "low": [0.9, 0.9, 1.0],
            "close": [1.1, 1.2, 1.1],
        })
        candles = candles_from_frame(frame)

        assert len(candles) == 2
        assert candles[0].close == 1.2

    def test_missing_columns(self):
        frame = pd.DataFrame({"timestamp": ["2025-01-01"], "open": [1.0], "close": [1.0]})
        with pytest.raises(MarketDataError, match="missing columns"):
            candles_from_frame(frame)

    def test_missing_timestamp(self):
        frame = pd.DataFrame({"open": [1.0], "high": [1.0], "low": [1.0], "close": [1.0]})
        with pytest.raises(MarketDataError, match="DatetimeIndex"):
            candles_from_frame(frame)

    def test_incoherent_row(self):
        frame = pd.DataFrame({
            "timestamp": ["2025-01-01T00:00:00Z"],
            "open": [1.0], "high": [0.9], "low": [0.8], "close": [1.0],
        })
        with pytest.raises(MarketDataError, match="Incoherent"):
            candles_from_frame(frame)

    def test_empty_frame(self):
        assert candles_from_frame(pd.DataFrame()) == []


class TestFrameRoundTrip:
    def test_frame_from_candles(self):
        candles = [create_test_candle(i, 100.0 + i) for i in range(5)]
        frame = frame_from_candles(candles)

        assert list(frame.columns) == ["open", "high", "low", "close", "volume"]
        assert len(frame) == 5
        assert candles_from_frame(frame) == candles

    def test_load_csv(self, tmp_path):
        candles = [create_test_candle(i) for i in range(3)]
        path = tmp_path / "eurusd_1h.csv"
        frame_from_candles(candles).to_csv(path)

        assert load_csv(str(path)) == candles
