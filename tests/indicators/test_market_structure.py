"""
Unit tests for swing points, Break of Structure and Change of Character
"""

from collections import deque
from datetime import datetime, timedelta, timezone

import pytest

from smc_fusion.indicators.market_structure import (
    detect_break_of_structure,
    detect_change_of_character,
    identify_swing_points,
)
from smc_fusion.models.candle import Candle
from smc_fusion.models.structures import (
    Direction,
    StructureKind,
    SwingKind,
    SwingPoint,
    SwingPoints,
)


def create_test_candle(
    index: int, open_price: float, high: float, low: float, close: float, volume: float = 100.0
) -> Candle:
    """Helper to create hourly test candles."""
    base_time = datetime(2025, 1, 1, tzinfo=timezone.utc)
    return Candle(
        timestamp=base_time + timedelta(hours=index),
        open=open_price,
        high=high,
        low=low,
        close=close,
        volume=volume,
    )


def peak_candles():
    """Rise into a single peak at index 5 (high 110), then a steady decline."""
    rows = [
        (100, 101, 99, 100.5),
        (100.5, 102, 100, 101.5),
        (101.5, 103, 101, 102.5),
        (102.5, 105, 102, 104),
        (104, 107, 103, 106),
        (106, 110, 105, 109),
        (109, 109, 106, 107),
        (107, 108, 105, 106),
        (106, 107, 104, 105),
        (105, 106, 103, 104),
        (104, 105, 102, 103),
        (103, 104, 101, 102),
    ]
    return [create_test_candle(i, *row) for i, row in enumerate(rows)]


def flat_candles(count: int, price: float = 100.0):
    return [
        create_test_candle(i, price, price + 0.5, price - 0.5, price) for i in range(count)
    ]


class TestIdentifySwingPoints:
    """Test swing high/low identification"""

    def test_swing_high_detected(self):
        """Peak strictly above every candle in the window is a swing high."""
        swings = identify_swing_points(peak_candles(), lookback=3)

        assert len(swings.highs) == 1
        assert swings.highs[0].index == 5
        assert swings.highs[0].price == 110
        assert swings.highs[0].kind is SwingKind.HIGH

    def test_no_swing_lows_in_one_way_decline(self):
        swings = identify_swing_points(peak_candles(), lookback=3)
        assert swings.lows == []

    def test_equal_extremes_are_not_swings(self):
        """Strict inequality: a flat series has no swing points."""
        swings = identify_swing_points(flat_candles(30), lookback=3)
        assert swings.is_empty

    @pytest.mark.parametrize("count", [0, 1, 5, 10])
    def test_insufficient_candles(self, count):
        """Fewer than 2 * lookback + 1 candles yields no swings."""
        swings = identify_swing_points(flat_candles(count), lookback=5)
        assert swings.highs == []
        assert swings.lows == []

    def test_works_with_deque(self):
        candles = deque(peak_candles(), maxlen=100)
        swings = identify_swing_points(candles, lookback=3)
        assert [s.index for s in swings.highs] == [5]

    def test_swing_low_detected(self):
        """Mirrored valley produces a swing low."""
        rows = [
            (110, 111, 109, 109.5),
            (109.5, 110, 108, 108.5),
            (108.5, 109, 107, 107.5),
            (107.5, 108, 105, 106),
            (106, 107, 103, 104),
            (104, 105, 100, 101),
            (101, 104, 101, 103),
            (103, 105, 102, 104),
            (104, 106, 103, 105),
            (105, 107, 104, 106),
        ]
        candles = [create_test_candle(i, *row) for i, row in enumerate(rows)]
        swings = identify_swing_points(candles, lookback=3)

        assert [(s.index, s.price) for s in swings.lows] == [(5, 100)]


class TestBreakOfStructure:
    """Test BOS detection from consecutive swing points"""

    def test_higher_high_and_lower_low(self):
        swings = SwingPoints(
            highs=[SwingPoint(5, 110.0, SwingKind.HIGH), SwingPoint(15, 115.5, SwingKind.HIGH)],
            lows=[SwingPoint(10, 100.0, SwingKind.LOW), SwingPoint(20, 98.0, SwingKind.LOW)],
        )
        events = detect_break_of_structure([], swings=swings)

        assert [(e.index, e.direction) for e in events] == [
            (15, Direction.BUY),
            (20, Direction.SELL),
        ]
        bullish = events[0]
        assert bullish.kind is StructureKind.BOS
        assert bullish.reference_price == 110.0
        assert bullish.strength == pytest.approx(5.0)
        assert bullish.tag == "BULLISH_BOS"
        assert events[1].strength == pytest.approx(2.0)
        assert events[1].tag == "BEARISH_BOS"

    def test_lower_high_is_not_bos(self):
        swings = SwingPoints(
            highs=[SwingPoint(5, 110.0, SwingKind.HIGH), SwingPoint(15, 109.0, SwingKind.HIGH)],
        )
        assert detect_break_of_structure([], swings=swings) == []

    def test_short_series_has_no_events(self):
        assert detect_break_of_structure(flat_candles(5), lookback=5) == []


class TestChangeOfCharacter:
    """Test CHoCH detection"""

    def test_bullish_choch_after_lower_low(self):
        """Close above the swing high between two lower lows is a bullish CHoCH."""
        candles = flat_candles(30)
        candles[25] = create_test_candle(25, 100, 106.5, 99.5, 106)
        swings = SwingPoints(
            highs=[SwingPoint(15, 105.0, SwingKind.HIGH)],
            lows=[SwingPoint(10, 100.0, SwingKind.LOW), SwingPoint(20, 95.0, SwingKind.LOW)],
        )

        events = detect_change_of_character(candles, swings=swings)

        assert len(events) == 1
        event = events[0]
        assert event.kind is StructureKind.CHOCH
        assert event.direction is Direction.BUY
        assert event.index == 25
        assert event.reference_price == 105.0
        assert event.tag == "BULLISH_CHOCH"

    def test_bearish_choch_after_higher_high(self):
        candles = flat_candles(30)
        candles[27] = create_test_candle(27, 100, 100.5, 93.5, 94)
        swings = SwingPoints(
            highs=[SwingPoint(10, 104.0, SwingKind.HIGH), SwingPoint(20, 108.0, SwingKind.HIGH)],
            lows=[SwingPoint(15, 95.0, SwingKind.LOW)],
        )

        events = detect_change_of_character(candles, swings=swings)

        assert [(e.index, e.direction) for e in events] == [(27, Direction.SELL)]
        assert events[0].reference_price == 95.0

    def test_no_break_means_no_choch(self):
        candles = flat_candles(30)
        swings = SwingPoints(
            highs=[SwingPoint(15, 105.0, SwingKind.HIGH)],
            lows=[SwingPoint(10, 100.0, SwingKind.LOW), SwingPoint(20, 95.0, SwingKind.LOW)],
        )
        assert detect_change_of_character(candles, swings=swings) == []

    def test_no_opposite_swing_between(self):
        candles = flat_candles(30)
        candles[25] = create_test_candle(25, 100, 106.5, 99.5, 106)
        swings = SwingPoints(
            highs=[SwingPoint(22, 105.0, SwingKind.HIGH)],
            lows=[SwingPoint(10, 100.0, SwingKind.LOW), SwingPoint(20, 95.0, SwingKind.LOW)],
        )
        assert detect_change_of_character(candles, swings=swings) == []
