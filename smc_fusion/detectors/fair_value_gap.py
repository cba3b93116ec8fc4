"""
Fair Value Gap (FVG) Detection
Three-candle imbalances and their fill tracking
"""

from collections import deque
from typing import List, Union

from smc_fusion.models.candle import Candle
from smc_fusion.models.structures import FairValueGap, Polarity


def identify_fair_value_gaps(
    candles: Union[List[Candle], deque]
) -> List[FairValueGap]:
    """
    Identify bullish and bearish Fair Value Gaps.

    For every window of three candles, a bullish gap exists when the first
    candle's high is below the third candle's low; a bearish gap exists when
    the third candle's high is below the first candle's low. The gap is
    indexed at the middle candle.

    Args:
        candles: List or deque of Candle objects

    Returns:
        List of FairValueGap objects ordered by index, fill flags unset
    """
    candles_list = list(candles)
    fvgs: List[FairValueGap] = []

    for i in range(2, len(candles_list)):
        first = candles_list[i - 2]
        third = candles_list[i]

        if first.high < third.low:
            fvgs.append(FairValueGap(
                index=i - 1,
                top=third.low,
                bottom=first.high,
                kind=Polarity.BULLISH
            ))
        elif third.high < first.low:
            fvgs.append(FairValueGap(
                index=i - 1,
                top=first.low,
                bottom=third.high,
                kind=Polarity.BEARISH
            ))

    return fvgs


def scan_fair_value_gap_fill(
    candles: Union[List[Candle], deque],
    fvgs: List[FairValueGap]
) -> List[FairValueGap]:
    """
    Update fill flags from price action after each gap.

    Scanning starts after the third candle of the pattern. For a bullish gap
    a candle whose low reaches below the top intrudes (partially filled);
    reaching the midpoint fills it. Bearish gaps mirror this with highs.
    Flags are never cleared and filled gaps are skipped.

    Args:
        candles: Candle series the gaps were detected on (or a longer one)
        fvgs: Gaps to update in place

    Returns:
        The same list, for chaining
    """
    candles_list = list(candles)

    for fvg in fvgs:
        if fvg.filled:
            continue

        midpoint = fvg.midpoint
        for i in range(fvg.index + 2, len(candles_list)):
            candle = candles_list[i]

            if fvg.kind is Polarity.BULLISH:
                if candle.low >= fvg.top:
                    continue
                if candle.low <= midpoint:
                    fvg.mark_filled()
                    break
                fvg.mark_partially_filled()
            else:
                if candle.high <= fvg.bottom:
                    continue
                if candle.high >= midpoint:
                    fvg.mark_filled()
                    break
                fvg.mark_partially_filled()

    return fvgs


def detect_fair_value_gaps(
    candles: Union[List[Candle], deque]
) -> List[FairValueGap]:
    """
    Detect Fair Value Gaps and evaluate their fill state in one call.

    Args:
        candles: List or deque of Candle objects

    Returns:
        List of FairValueGap objects with fill flags set
    """
    candles_list = list(candles)
    return scan_fair_value_gap_fill(candles_list, identify_fair_value_gaps(candles_list))
