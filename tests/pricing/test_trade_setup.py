"""
Unit tests for the liquidity-based trade setup
"""

import pytest

from smc_fusion.models.signals import OrderKind
from smc_fusion.models.structures import (
    Direction,
    LiquidityMap,
    LiquidityZone,
    OrderBlock,
    Polarity,
    TimeframeAnalysis,
    ZoneKind,
    ZoneSide,
)
from smc_fusion.pricing.trade_setup import (
    LiquidityTradeSetup,
    calculate_risk_reward,
    calculate_stop_loss_percent,
)


def below(price: float, index: int) -> LiquidityZone:
    return LiquidityZone(price, index, ZoneSide.BELOW, 50, ZoneKind.SWING_LOW, index)


def above(price: float, index: int) -> LiquidityZone:
    return LiquidityZone(price, index, ZoneSide.ABOVE, 50, ZoneKind.SWING_HIGH, index)


def execution_analysis(below_zones=(), above_zones=(), order_blocks=()) -> TimeframeAnalysis:
    return TimeframeAnalysis(
        timeframe="5m",
        liquidity=LiquidityMap(above=list(above_zones), below=list(below_zones)),
        order_blocks=list(order_blocks),
        candle_count=100,
        last_close=100.0,
    )


@pytest.fixture
def calculator():
    return LiquidityTradeSetup()


class TestRiskReward:
    def test_three_to_one(self):
        assert calculate_risk_reward(1.0850, 1.0820, 1.0940) == 3.0

    def test_stop_on_entry(self):
        assert calculate_risk_reward(1.0850, 1.0850, 1.0940) == 0.0

    def test_stop_loss_percent(self):
        assert calculate_stop_loss_percent(100.0, 98.5) == 1.5


class TestLiquidityTradeSetup:
    """Test stop/target/entry selection"""

    def test_buy_fallbacks(self, calculator):
        setup = calculator.calculate(Direction.BUY, 100.0, execution_analysis())

        assert setup.direction is Direction.BUY
        assert setup.order_kind is OrderKind.MARKET
        assert setup.entry == 100.0
        assert setup.stop_loss == 98.5
        assert setup.take_profit == 103.0
        assert setup.risk_reward == 2.0
        assert setup.stop_loss_percent == 1.5

    def test_sell_fallbacks(self, calculator):
        setup = calculator.calculate(Direction.SELL, 100.0, execution_analysis())

        assert setup.stop_loss == 101.5
        assert setup.take_profit == 97.0
        assert setup.risk_reward == 2.0

    def test_buy_uses_nearest_liquidity(self, calculator):
        analysis = execution_analysis(
            below_zones=[below(97.0, 10), below(98.8, 20), below(99.2, 30)],
            above_zones=[above(103.0, 15), above(101.5, 25)],
        )
        setup = calculator.calculate(Direction.BUY, 100.0, analysis)

        assert setup.stop_loss == 99.2
        assert setup.take_profit == 101.5
        assert setup.risk_reward == 1.88
        assert setup.stop_loss_percent == 0.8

    def test_only_recent_zones_protect_the_stop(self, calculator):
        analysis = execution_analysis(
            below_zones=[below(99.5, 5), below(97.0, 10), below(97.5, 20), below(98.0, 30)]
        )
        setup = calculator.calculate(Direction.BUY, 100.0, analysis)

        assert setup.stop_loss == 98.0

    def test_zones_on_the_wrong_side_are_ignored(self, calculator):
        analysis = execution_analysis(
            below_zones=[below(100.5, 10)],
            above_zones=[above(99.0, 12)],
        )
        setup = calculator.calculate(Direction.BUY, 100.0, analysis)

        assert setup.stop_loss == 98.5
        assert setup.take_profit == 103.0

    def test_limit_entry_at_bullish_order_block(self, calculator):
        block = OrderBlock(
            index=40, high=99.6, low=99.3, open=99.6, close=99.35,
            kind=Polarity.BULLISH, strength=0.9,
        )
        analysis = execution_analysis(below_zones=[below(99.0, 30)], order_blocks=[block])
        setup = calculator.calculate(Direction.BUY, 100.0, analysis)

        assert setup.order_kind is OrderKind.LIMIT
        assert setup.entry == 99.6
        assert setup.stop_loss == 99.0
        assert setup.take_profit == 103.0
        assert setup.risk_reward == 5.67
        assert setup.stop_loss_percent == 0.6

    def test_mitigated_block_is_not_an_entry(self, calculator):
        block = OrderBlock(
            index=40, high=99.6, low=99.3, open=99.6, close=99.35,
            kind=Polarity.BULLISH, strength=0.9, tested=True, mitigated=True,
        )
        analysis = execution_analysis(below_zones=[below(99.0, 30)], order_blocks=[block])

        assert calculator.calculate(Direction.BUY, 100.0, analysis).order_kind is OrderKind.MARKET

    def test_limit_entry_at_bearish_order_block(self, calculator):
        block = OrderBlock(
            index=40, high=100.7, low=100.4, open=100.45, close=100.7,
            kind=Polarity.BEARISH, strength=0.9,
        )
        analysis = execution_analysis(above_zones=[above(101.0, 30)], order_blocks=[block])
        setup = calculator.calculate(Direction.SELL, 100.0, analysis)

        assert setup.order_kind is OrderKind.LIMIT
        assert setup.entry == 100.4
        assert setup.stop_loss == 101.0

    @pytest.mark.parametrize("direction,price", [
        (Direction.NEUTRAL, 100.0),
        (Direction.BUY, 0.0),
    ])
    def test_invalid_input(self, calculator, direction, price):
        with pytest.raises(ValueError):
            calculator.calculate(direction, price, execution_analysis())

    def test_from_validated_params(self):
        params = LiquidityTradeSetup.ParamSchema(stop_fallback_percent=1.0, target_fallback_percent=4.0)
        calculator = LiquidityTradeSetup.from_validated_params(params)

        setup = calculator.calculate(Direction.BUY, 100.0, execution_analysis())
        assert setup.stop_loss == 99.0
        assert setup.take_profit == 104.0
        assert setup.risk_reward == 4.0
