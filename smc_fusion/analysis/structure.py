"""
Single-timeframe structure analysis.

StructureDetector composes every price-action detector over one candle
series into a TimeframeAnalysis: liquidity, order blocks, BOS/CHoCH events,
fair value gaps, premium/discount, manipulation and liquidity voids, then
classifies trend and phase and picks the key institutional level.
"""

import logging
from collections import deque
from typing import List, Optional, Tuple, Union

from smc_fusion.config.settings import DetectorParams
from smc_fusion.detectors.base import BaseDetector
from smc_fusion.detectors.fair_value_gap import detect_fair_value_gaps
from smc_fusion.detectors.manipulation import detect_manipulation
from smc_fusion.indicators.liquidity import detect_liquidity, detect_liquidity_voids
from smc_fusion.indicators.market_structure import (
    detect_break_of_structure,
    detect_change_of_character,
    identify_swing_points,
)
from smc_fusion.indicators.order_block import detect_order_blocks
from smc_fusion.indicators.premium_discount import calculate_premium_discount
from smc_fusion.models.candle import Candle
from smc_fusion.models.structures import (
    Direction,
    KeyLevel,
    MarketPhase,
    Polarity,
    PriceZone,
    TimeframeAnalysis,
    Trend,
)

logger = logging.getLogger(__name__)

BOS_VOTE = 2
CHOCH_VOTE = 3
ORDER_BLOCK_VOTE = 1
ZONE_VOTE = 1
FVG_LEVEL_STRENGTH = 70.0


class StructureDetector(BaseDetector):
    """
    Smart Money structure detector for one timeframe.

    Pure and deterministic: identical candles and parameters always produce
    an identical analysis. Short series never raise; they produce empty
    structures with a NEUTRAL trend and CONSOLIDATION phase.

    Example:
        ```python
        detector = StructureDetector(DetectorParams(swing_lookback=5))
        analysis = detector.analyze(candles_1h, "1h")
        if analysis.trend is Trend.BULLISH and analysis.liquidity.sweeps:
            ...
        ```
    """

    def __init__(self, params: Optional[DetectorParams] = None):
        super().__init__("smart_money_structure")
        self.params = params or DetectorParams()

    @property
    def min_candles(self) -> int:
        """Shortest series for which swing-based structure exists."""
        return 2 * self.params.swing_lookback + 1

    def analyze(
        self,
        candles: Union[List[Candle], deque],
        timeframe: str
    ) -> TimeframeAnalysis:
        """
        Analyze one candle series.

        Args:
            candles: Candles ordered by increasing timestamp
            timeframe: Timeframe label (e.g. '4h')

        Returns:
            TimeframeAnalysis for the series
        """
        candles_list = list(candles)
        p = self.params

        analysis = TimeframeAnalysis(timeframe=timeframe, candle_count=len(candles_list))
        if candles_list:
            analysis.last_close = candles_list[-1].close
            analysis.last_volume = candles_list[-1].volume

        if len(candles_list) < self.min_candles:
            logger.debug(
                f"{timeframe}: {len(candles_list)} candles < {self.min_candles}, "
                f"returning empty structure"
            )
            return analysis

        swings = identify_swing_points(candles_list, p.swing_lookback)
        analysis.swings = swings
        analysis.liquidity = detect_liquidity(
            candles_list, p.swing_lookback, p.equal_tolerance, swings=swings
        )
        analysis.order_blocks = detect_order_blocks(candles_list, p.order_block_min_move)
        analysis.events = sorted(
            detect_break_of_structure(candles_list, swings=swings)
            + detect_change_of_character(candles_list, swings=swings),
            key=lambda e: e.index
        )
        analysis.fvgs = detect_fair_value_gaps(candles_list)
        analysis.premium_discount = calculate_premium_discount(
            candles_list, p.premium_discount_lookback
        )
        analysis.manipulation = detect_manipulation(
            candles_list, p.atr_period, p.manipulation_wick_multiple, p.manipulation_window
        )
        analysis.liquidity_voids = detect_liquidity_voids(candles_list, p.void_body_multiple)

        analysis.trend, analysis.trend_confidence = self.determine_trend(analysis)
        analysis.phase = self.determine_phase(analysis)
        analysis.key_level = self.key_institutional_level(analysis)

        logger.debug(
            f"{timeframe}: trend={analysis.trend.value} "
            f"({analysis.trend_confidence:.0f}%), phase={analysis.phase.value}, "
            f"obs={len(analysis.order_blocks)}, fvgs={len(analysis.fvgs)}, "
            f"sweeps={len(analysis.liquidity.sweeps)}"
        )
        return analysis

    def trend_votes(self, analysis: TimeframeAnalysis) -> Tuple[int, int]:
        """
        Weighted structure vote as (bullish, bearish).

        Recent BOS count 2 each, recent CHoCH 3 each, every active order
        block 1, and a discount (premium) zone 1 for the bulls (bears).
        """
        bullish = 0
        bearish = 0

        for event in analysis.bos_events[-self.params.recent_bos:]:
            if event.is_bullish:
                bullish += BOS_VOTE
            else:
                bearish += BOS_VOTE

        for event in analysis.choch_events[-self.params.recent_choch:]:
            if event.is_bullish:
                bullish += CHOCH_VOTE
            else:
                bearish += CHOCH_VOTE

        for block in analysis.active_order_blocks:
            if block.kind is Polarity.BULLISH:
                bullish += ORDER_BLOCK_VOTE
            else:
                bearish += ORDER_BLOCK_VOTE

        zone = analysis.premium_discount.zone if analysis.premium_discount else None
        if zone is PriceZone.DISCOUNT:
            bullish += ZONE_VOTE
        elif zone is PriceZone.PREMIUM:
            bearish += ZONE_VOTE

        return bullish, bearish

    def determine_trend(self, analysis: TimeframeAnalysis) -> Tuple[Trend, float]:
        """
        Classify the trend from the structure vote.

        Returns:
            (trend, confidence): a side wins only when its vote exceeds the
            other's by more than the configured margin. Confidence is the
            leading side's share of all votes in percent (50 on a tie).
        """
        bullish, bearish = self.trend_votes(analysis)
        total = bullish + bearish
        confidence = 50.0 if total == 0 or bullish == bearish else (
            max(bullish, bearish) / total * 100
        )

        margin = self.params.trend_margin
        if bullish > bearish + margin:
            return Trend.BULLISH, round(confidence, 2)
        if bearish > bullish + margin:
            return Trend.BEARISH, round(confidence, 2)
        return Trend.NEUTRAL, round(confidence, 2)

    @staticmethod
    def determine_phase(analysis: TimeframeAnalysis) -> MarketPhase:
        """Manipulation beats accumulation/distribution, which beat consolidation."""
        if analysis.liquidity.sweeps and analysis.manipulation.detected:
            return MarketPhase.MANIPULATION

        active = analysis.active_order_blocks
        bullish_blocks = sum(1 for ob in active if ob.kind is Polarity.BULLISH)
        bearish_blocks = sum(1 for ob in active if ob.kind is Polarity.BEARISH)

        if bullish_blocks >= 2 and analysis.trend is Trend.BULLISH:
            return MarketPhase.ACCUMULATION
        if bearish_blocks >= 2 and analysis.trend is Trend.BEARISH:
            return MarketPhase.DISTRIBUTION
        return MarketPhase.CONSOLIDATION

    @staticmethod
    def key_institutional_level(analysis: TimeframeAnalysis) -> Optional[KeyLevel]:
        """
        Most recent, then strongest, of the active order blocks, unfilled
        FVGs and equal highs/lows. None when there is no candidate.
        """
        levels: List[KeyLevel] = []

        for block in analysis.active_order_blocks:
            levels.append(KeyLevel(
                kind="ORDER_BLOCK",
                direction=block.kind.direction,
                price=block.midpoint,
                strength=block.strength,
                index=block.index
            ))

        for fvg in analysis.fvgs:
            if not fvg.filled:
                levels.append(KeyLevel(
                    kind="FVG",
                    direction=fvg.kind.direction,
                    price=fvg.midpoint,
                    strength=FVG_LEVEL_STRENGTH,
                    index=fvg.index
                ))

        for zone in analysis.liquidity.equal_highs:
            levels.append(KeyLevel(
                kind="EQUAL_HIGHS",
                direction=Direction.SELL,
                price=zone.price,
                strength=zone.strength,
                index=zone.index
            ))

        for zone in analysis.liquidity.equal_lows:
            levels.append(KeyLevel(
                kind="EQUAL_LOWS",
                direction=Direction.BUY,
                price=zone.price,
                strength=zone.strength,
                index=zone.index
            ))

        if not levels:
            return None

        return max(levels, key=lambda level: (level.index, level.strength))
