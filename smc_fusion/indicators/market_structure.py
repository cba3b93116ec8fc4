"""
Market Structure Analysis
Identifies swing points, Break of Structure (BOS), and Change of Character (CHoCH)
"""

from collections import deque
from typing import List, Optional, Union

from smc_fusion.models.candle import Candle
from smc_fusion.models.structures import (
    Direction,
    StructureEvent,
    StructureKind,
    SwingKind,
    SwingPoint,
    SwingPoints,
)


def identify_swing_points(
    candles: Union[List[Candle], deque],
    lookback: int = 5
) -> SwingPoints:
    """
    Identify swing highs and swing lows in price action.

    Index i is a swing high when its high is strictly higher than the high
    of every other candle in [i - lookback, i + lookback]; swing lows use
    the mirrored rule on lows.

    Args:
        candles: List or deque of Candle objects
        lookback: Number of bars on each side that must be exceeded

    Returns:
        SwingPoints with highs and lows ordered by index (both empty when
        fewer than 2 * lookback + 1 candles are supplied)
    """
    swings = SwingPoints()
    candles_list = list(candles)

    if lookback < 1 or len(candles_list) < 2 * lookback + 1:
        return swings

    for i in range(lookback, len(candles_list) - lookback):
        window = [j for j in range(i - lookback, i + lookback + 1) if j != i]
        current = candles_list[i]

        if all(current.high > candles_list[j].high for j in window):
            swings.highs.append(SwingPoint(index=i, price=current.high, kind=SwingKind.HIGH))

        if all(current.low < candles_list[j].low for j in window):
            swings.lows.append(SwingPoint(index=i, price=current.low, kind=SwingKind.LOW))

    return swings


def detect_break_of_structure(
    candles: Union[List[Candle], deque],
    lookback: int = 5,
    swings: Optional[SwingPoints] = None
) -> List[StructureEvent]:
    """
    Detect Break of Structure (BOS) events.

    For each pair of consecutive swing highs, a strictly higher newer high is
    a bullish BOS at the newer swing; for swing lows, a strictly lower newer
    low is a bearish BOS.

    Args:
        candles: List or deque of Candle objects
        lookback: Swing detection window (ignored when swings is given)
        swings: Precomputed swing points of the same series

    Returns:
        List of BOS events sorted by index
    """
    if swings is None:
        swings = identify_swing_points(candles, lookback)

    events: List[StructureEvent] = []

    for prev_high, current_high in zip(swings.highs, swings.highs[1:]):
        if current_high.price > prev_high.price:
            events.append(StructureEvent(
                kind=StructureKind.BOS,
                reference_price=prev_high.price,
                index=current_high.index,
                direction=Direction.BUY,
                strength=(current_high.price - prev_high.price) / prev_high.price * 100
            ))

    for prev_low, current_low in zip(swings.lows, swings.lows[1:]):
        if current_low.price < prev_low.price:
            events.append(StructureEvent(
                kind=StructureKind.BOS,
                reference_price=prev_low.price,
                index=current_low.index,
                direction=Direction.SELL,
                strength=(prev_low.price - current_low.price) / prev_low.price * 100
            ))

    # Highs and lows are scanned separately
    events.sort(key=lambda e: e.index)
    return events


def detect_change_of_character(
    candles: Union[List[Candle], deque],
    lookback: int = 5,
    swings: Optional[SwingPoints] = None
) -> List[StructureEvent]:
    """
    Detect Change of Character (CHoCH) events.

    A downtrend is confirmed by two consecutive swing lows making a lower
    low. The last swing high between them is the level to reclaim; the first
    candle from the newer low onward that closes above it is a bullish
    CHoCH. The bearish case mirrors this with higher highs and the last
    swing low between them.

    Args:
        candles: List or deque of Candle objects
        lookback: Swing detection window (ignored when swings is given)
        swings: Precomputed swing points of the same series

    Returns:
        List of CHoCH events sorted by break index
    """
    candles_list = list(candles)
    if swings is None:
        swings = identify_swing_points(candles_list, lookback)

    events: List[StructureEvent] = []

    for prev_low, current_low in zip(swings.lows, swings.lows[1:]):
        if current_low.price >= prev_low.price:
            continue
        highs_between = [
            h for h in swings.highs if prev_low.index < h.index < current_low.index
        ]
        if not highs_between:
            continue
        level = highs_between[-1].price

        for j in range(current_low.index, len(candles_list)):
            close = candles_list[j].close
            if close > level:
                events.append(StructureEvent(
                    kind=StructureKind.CHOCH,
                    reference_price=level,
                    index=j,
                    direction=Direction.BUY,
                    strength=(close - level) / level * 100
                ))
                break

    for prev_high, current_high in zip(swings.highs, swings.highs[1:]):
        if current_high.price <= prev_high.price:
            continue
        lows_between = [
            low for low in swings.lows if prev_high.index < low.index < current_high.index
        ]
        if not lows_between:
            continue
        level = lows_between[-1].price

        for j in range(current_high.index, len(candles_list)):
            close = candles_list[j].close
            if close < level:
                events.append(StructureEvent(
                    kind=StructureKind.CHOCH,
                    reference_price=level,
                    index=j,
                    direction=Direction.SELL,
                    strength=(level - close) / level * 100
                ))
                break

    events.sort(key=lambda e: e.index)
    return events
