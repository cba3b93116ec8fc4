"""Liquidity-based trade setup calculation."""

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, Field

from smc_fusion.indicators.order_block import find_nearest_order_block
from smc_fusion.models.signals import OrderKind, TradeSetup
from smc_fusion.models.structures import Direction, LiquidityZone, Polarity, TimeframeAnalysis

PRICE_DECIMALS = 5
RATIO_DECIMALS = 2


def calculate_risk_reward(entry: float, stop_loss: float, take_profit: float) -> float:
    """
    Risk:reward = |target - entry| / |entry - stop|, rounded to 2 decimals.

    Returns 0.0 when the stop sits on the entry.
    """
    stop_distance = abs(entry - stop_loss)
    if stop_distance <= 0:
        return 0.0
    return round(abs(take_profit - entry) / stop_distance, RATIO_DECIMALS)


def calculate_stop_loss_percent(entry: float, stop_loss: float) -> float:
    """Stop distance as a percent of entry, rounded to 2 decimals."""
    if entry <= 0:
        return 0.0
    return round(abs(entry - stop_loss) / entry * 100, RATIO_DECIMALS)


@dataclass(frozen=True)
class LiquidityTradeSetup:
    """
    Entry/stop/target from the execution timeframe's liquidity.

    BUY: the stop goes to the nearest of the last `recent_zones` sell-side
    zones under price (fallback: stop_fallback_percent below), the target
    to the nearest buy-side zone over price (fallback: target_fallback_percent
    above). An active bullish order block between the stop and price turns
    the order into a LIMIT at the block's top. SELL mirrors every rule.
    """

    class ParamSchema(BaseModel):
        """Pydantic schema for trade setup parameters."""
        stop_fallback_percent: float = Field(1.5, gt=0.0, le=20.0, description="Fallback stop distance (%)")
        target_fallback_percent: float = Field(3.0, gt=0.0, le=50.0, description="Fallback target distance (%)")
        recent_zones: int = Field(3, ge=1, le=20, description="Latest protective zones considered for the stop")

    @classmethod
    def from_validated_params(cls, params: "LiquidityTradeSetup.ParamSchema") -> "LiquidityTradeSetup":
        """Create instance from Pydantic-validated params."""
        return cls(**params.model_dump())

    stop_fallback_percent: float = 1.5
    target_fallback_percent: float = 3.0
    recent_zones: int = 3

    def calculate(
        self,
        direction: Direction,
        current_price: float,
        analysis: TimeframeAnalysis
    ) -> TradeSetup:
        """
        Build the trade setup for `direction` at `current_price`.

        Args:
            direction: BUY or SELL
            current_price: Latest execution-timeframe close
            analysis: Execution timeframe analysis providing zones and blocks

        Returns:
            TradeSetup with rounded prices and ratios

        Raises:
            ValueError: If direction is not BUY or SELL, or price is not positive
        """
        if direction not in (Direction.BUY, Direction.SELL):
            raise ValueError(f"Trade setup needs a BUY or SELL direction, got {direction}")
        if current_price <= 0:
            raise ValueError(f"Current price must be positive, got {current_price}")

        if direction is Direction.BUY:
            stop_loss = self._nearest_below(analysis.liquidity.below[-self.recent_zones:], current_price)
            if stop_loss is None:
                stop_loss = current_price * (1 - self.stop_fallback_percent / 100)
            take_profit = self._nearest_above(analysis.liquidity.above, current_price)
            if take_profit is None:
                take_profit = current_price * (1 + self.target_fallback_percent / 100)
            candidates = [
                ob for ob in analysis.order_blocks
                if stop_loss < ob.high < current_price
            ]
            block = find_nearest_order_block(candidates, current_price, Polarity.BULLISH)
            entry = block.high if block else current_price
        else:
            stop_loss = self._nearest_above(analysis.liquidity.above[-self.recent_zones:], current_price)
            if stop_loss is None:
                stop_loss = current_price * (1 + self.stop_fallback_percent / 100)
            take_profit = self._nearest_below(analysis.liquidity.below, current_price)
            if take_profit is None:
                take_profit = current_price * (1 - self.target_fallback_percent / 100)
            candidates = [
                ob for ob in analysis.order_blocks
                if current_price < ob.low < stop_loss
            ]
            block = find_nearest_order_block(candidates, current_price, Polarity.BEARISH)
            entry = block.low if block else current_price

        entry = round(entry, PRICE_DECIMALS)
        stop_loss = round(stop_loss, PRICE_DECIMALS)
        take_profit = round(take_profit, PRICE_DECIMALS)

        return TradeSetup(
            direction=direction,
            order_kind=OrderKind.LIMIT if block else OrderKind.MARKET,
            entry=entry,
            stop_loss=stop_loss,
            take_profit=take_profit,
            risk_reward=calculate_risk_reward(entry, stop_loss, take_profit),
            stop_loss_percent=calculate_stop_loss_percent(entry, stop_loss)
        )

    @staticmethod
    def _nearest_below(zones: List[LiquidityZone], price: float) -> Optional[float]:
        prices = [z.price for z in zones if z.price < price]
        return max(prices) if prices else None

    @staticmethod
    def _nearest_above(zones: List[LiquidityZone], price: float) -> Optional[float]:
        prices = [z.price for z in zones if z.price > price]
        return min(prices) if prices else None
