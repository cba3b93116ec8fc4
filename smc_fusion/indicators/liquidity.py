"""
Liquidity Analysis
Swing liquidity zones, equal highs/lows, liquidity sweeps and liquidity voids
"""

from collections import deque
from typing import List, Optional, Union

from smc_fusion.indicators.market_structure import identify_swing_points
from smc_fusion.models.candle import Candle
from smc_fusion.models.structures import (
    Direction,
    LiquidityMap,
    LiquiditySweep,
    LiquidityVoid,
    LiquidityZone,
    Polarity,
    SweepKind,
    SwingPoint,
    SwingPoints,
    ZoneKind,
    ZoneSide,
)


def calculate_liquidity_strength(
    candles: List[Candle],
    start_index: int,
    end_index: int
) -> int:
    """
    Relative volume strength of a candle window.

    Strength is 50 when the window trades at the series-average volume and
    saturates at 100 (twice the average). Window bounds are clamped to the
    series.

    Args:
        candles: Full candle series
        start_index: First index of the window (inclusive)
        end_index: Last index of the window (inclusive)

    Returns:
        Strength in [0, 100]; 0 when the series has no volume
    """
    if not candles:
        return 0

    start_index = max(0, start_index)
    end_index = min(len(candles) - 1, end_index)
    if end_index < start_index:
        return 0

    series_avg = sum(c.volume for c in candles) / len(candles)
    if series_avg <= 0:
        return 0

    window = candles[start_index:end_index + 1]
    window_avg = sum(c.volume for c in window) / len(window)

    return min(100, round(50 * window_avg / series_avg))


def _equal_levels(
    candles: List[Candle],
    points: List[SwingPoint],
    tolerance: float,
    side: ZoneSide,
    kind: ZoneKind
) -> List[LiquidityZone]:
    zones: List[LiquidityZone] = []
    for previous, current in zip(points, points[1:]):
        diff = abs(current.price - previous.price) / previous.price
        if diff <= tolerance:
            zones.append(LiquidityZone(
                price=(current.price + previous.price) / 2,
                index=current.index,
                side=side,
                strength=calculate_liquidity_strength(candles, previous.index, current.index),
                kind=kind,
                first_index=previous.index
            ))
    return zones


def detect_liquidity_sweeps(
    candles: Union[List[Candle], deque],
    equal_highs: List[LiquidityZone],
    equal_lows: List[LiquidityZone]
) -> List[LiquiditySweep]:
    """
    Detect sweeps (stop hunts) of equal highs and equal lows.

    Scanning starts after the newer member of each equal pair. The first
    candle whose high pierces an equal-high zone and closes back below it is
    a bearish sweep; the first candle whose low pierces an equal-low zone
    and closes back above it is a bullish sweep. At most one sweep per zone.

    Args:
        candles: List or deque of Candle objects
        equal_highs: Equal-high zones of the same series
        equal_lows: Equal-low zones of the same series

    Returns:
        List of LiquiditySweep objects sorted by index
    """
    candles_list = list(candles)
    sweeps: List[LiquiditySweep] = []

    for zone in equal_highs:
        for i in range(zone.index + 1, len(candles_list)):
            candle = candles_list[i]
            if candle.high > zone.price and candle.close < zone.price:
                sweeps.append(LiquiditySweep(
                    kind=SweepKind.BEARISH_SWEEP,
                    zone_price=zone.price,
                    index=i,
                    direction=Direction.SELL,
                    wick_size=candle.high - candle.close,
                    strength=zone.strength
                ))
                break

    for zone in equal_lows:
        for i in range(zone.index + 1, len(candles_list)):
            candle = candles_list[i]
            if candle.low < zone.price and candle.close > zone.price:
                sweeps.append(LiquiditySweep(
                    kind=SweepKind.BULLISH_SWEEP,
                    zone_price=zone.price,
                    index=i,
                    direction=Direction.BUY,
                    wick_size=candle.close - candle.low,
                    strength=zone.strength
                ))
                break

    sweeps.sort(key=lambda s: s.index)
    return sweeps


def detect_liquidity(
    candles: Union[List[Candle], deque],
    lookback: int = 5,
    equal_tolerance: float = 0.0015,
    swings: Optional[SwingPoints] = None
) -> LiquidityMap:
    """
    Map resting liquidity of a candle series.

    Every swing high contributes a zone above price and every swing low a
    zone below price. Consecutive swing highs (lows) within the relative
    tolerance form an equal-highs (equal-lows) zone at their midpoint.
    Sweeps of the equal zones are detected last.

    Args:
        candles: List or deque of Candle objects
        lookback: Swing detection window (ignored when swings is given)
        equal_tolerance: Max relative difference for equal highs/lows (0.0015 = 0.15%)
        swings: Precomputed swing points of the same series

    Returns:
        LiquidityMap (empty when the series is too short for swings)
    """
    candles_list = list(candles)
    if swings is None:
        swings = identify_swing_points(candles_list, lookback)

    liquidity = LiquidityMap()

    for point in swings.highs:
        liquidity.above.append(LiquidityZone(
            price=point.price,
            index=point.index,
            side=ZoneSide.ABOVE,
            strength=calculate_liquidity_strength(
                candles_list, point.index - lookback, point.index + lookback
            ),
            kind=ZoneKind.SWING_HIGH,
            first_index=point.index
        ))

    for point in swings.lows:
        liquidity.below.append(LiquidityZone(
            price=point.price,
            index=point.index,
            side=ZoneSide.BELOW,
            strength=calculate_liquidity_strength(
                candles_list, point.index - lookback, point.index + lookback
            ),
            kind=ZoneKind.SWING_LOW,
            first_index=point.index
        ))

    liquidity.equal_highs = _equal_levels(
        candles_list, swings.highs, equal_tolerance, ZoneSide.ABOVE, ZoneKind.EQUAL_HIGHS
    )
    liquidity.equal_lows = _equal_levels(
        candles_list, swings.lows, equal_tolerance, ZoneSide.BELOW, ZoneKind.EQUAL_LOWS
    )
    liquidity.sweeps = detect_liquidity_sweeps(
        candles_list, liquidity.equal_highs, liquidity.equal_lows
    )

    return liquidity


def detect_liquidity_voids(
    candles: Union[List[Candle], deque],
    body_multiple: float = 2.0
) -> List[LiquidityVoid]:
    """
    Detect liquidity voids: opening gaps larger than a multiple of the
    average body of the two candles around them.

    Args:
        candles: List or deque of Candle objects
        body_multiple: Gap must exceed this multiple of the average body

    Returns:
        List of LiquidityVoid objects ordered by index
    """
    candles_list = list(candles)
    voids: List[LiquidityVoid] = []

    for i in range(1, len(candles_list)):
        prev = candles_list[i - 1]
        current = candles_list[i]

        gap = abs(current.open - prev.close)
        avg_body = (prev.body_size + current.body_size) / 2

        if gap > 0 and gap > avg_body * body_multiple:
            voids.append(LiquidityVoid(
                index=i,
                top=max(prev.close, current.open),
                bottom=min(prev.close, current.open),
                size=gap,
                kind=Polarity.BULLISH if current.open > prev.close else Polarity.BEARISH
            ))

    return voids
