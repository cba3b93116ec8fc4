"""
Unit tests for premium/discount classification
"""

from datetime import datetime, timedelta, timezone

import pytest

from smc_fusion.indicators.premium_discount import calculate_premium_discount
from smc_fusion.models.candle import Candle
from smc_fusion.models.structures import PriceZone


def create_test_candle(index, open_price, high, low, close) -> Candle:
    base_time = datetime(2025, 1, 1, tzinfo=timezone.utc)
    return Candle(
        timestamp=base_time + timedelta(hours=4 * index),
        open=open_price,
        high=high,
        low=low,
        close=close,
    )


def ranged_candles(last_close: float, count: int = 50):
    """Range 100-110 with the final candle closing at `last_close`."""
    candles = [create_test_candle(i, 105, 105.5, 104.5, 105) for i in range(count)]
    candles[0] = create_test_candle(0, 105, 105.5, 100, 105)
    candles[1] = create_test_candle(1, 105, 110, 104.5, 105)
    candles[-1] = create_test_candle(
        count - 1, 105, max(105.5, last_close), min(104.5, last_close), last_close
    )
    return candles


class TestCalculatePremiumDiscount:
    """Test zone classification over the trailing range"""

    def test_premium(self):
        result = calculate_premium_discount(ranged_candles(109.0))

        assert result.zone is PriceZone.PREMIUM
        assert result.high == 110
        assert result.low == 100
        assert result.range == 10
        assert result.equilibrium == pytest.approx(105.0)
        assert result.premium_start == pytest.approx(106.18)
        assert result.discount_end == pytest.approx(103.82)
        assert result.fibonacci["61.8"] == pytest.approx(106.18)

    def test_discount(self):
        assert calculate_premium_discount(ranged_candles(101.0)).zone is PriceZone.DISCOUNT

    def test_equilibrium(self):
        assert calculate_premium_discount(ranged_candles(105.0)).zone is PriceZone.EQUILIBRIUM

    def test_only_trailing_window_counts(self):
        """Extremes older than the lookback are outside the range."""
        candles = [create_test_candle(i, 105, 105.5, 104.5, 105) for i in range(60)]
        candles[0] = create_test_candle(0, 105, 120, 90, 105)
        result = calculate_premium_discount(candles, lookback=50)

        assert result.high == 105.5
        assert result.low == 104.5

    def test_insufficient_candles(self):
        assert calculate_premium_discount(ranged_candles(109.0, count=49)) is None

    def test_zero_range(self):
        candles = [create_test_candle(i, 100, 100, 100, 100) for i in range(50)]
        result = calculate_premium_discount(candles)

        assert result.range == 0
        assert result.zone is PriceZone.EQUILIBRIUM
