"""
Manipulation Detection
Flags abnormal rejection wicks on the latest candle relative to ATR
"""

from collections import deque
from typing import List, Union

import numpy as np

from smc_fusion.models.candle import Candle
from smc_fusion.models.structures import ManipulationFlag, Polarity

MAX_MANIPULATION_CONFIDENCE = 95.0


def calculate_atr(candles: Union[List[Candle], deque], period: int = 14) -> float:
    """
    Average True Range over the last `period` candles.

    Args:
        candles: List or deque of Candle objects
        period: Number of true ranges to average

    Returns:
        ATR value, 0.0 when fewer than period + 1 candles are supplied
    """
    candles_list = list(candles)
    if period < 1 or len(candles_list) < period + 1:
        return 0.0

    recent = candles_list[-(period + 1):]
    highs = np.array([c.high for c in recent[1:]])
    lows = np.array([c.low for c in recent[1:]])
    prev_closes = np.array([c.close for c in recent[:-1]])

    true_ranges = np.maximum.reduce([
        highs - lows,
        np.abs(highs - prev_closes),
        np.abs(lows - prev_closes),
    ])

    return float(np.mean(true_ranges))


def detect_manipulation(
    candles: Union[List[Candle], deque],
    atr_period: int = 14,
    wick_multiple: float = 3.0,
    window: int = 20
) -> ManipulationFlag:
    """
    Detect institutional manipulation on the most recent candle.

    A wick longer than `wick_multiple` x ATR is a rejection: a long upper
    wick is bearish manipulation, a long lower wick bullish. When both
    qualify the longer wick wins. Confidence is 20 points per ATR of wick,
    capped at 95.

    Args:
        candles: List or deque of Candle objects
        atr_period: ATR period
        wick_multiple: Wick/ATR ratio that triggers the flag
        window: Number of trailing candles the ATR is computed from

    Returns:
        ManipulationFlag (not detected when data is insufficient)
    """
    candles_list = list(candles)
    if len(candles_list) < max(window, atr_period + 1):
        return ManipulationFlag()

    recent = candles_list[-window:]
    atr = calculate_atr(recent, atr_period)
    if atr <= 0:
        return ManipulationFlag()

    last = recent[-1]
    upper_ratio = last.upper_wick / atr
    lower_ratio = last.lower_wick / atr

    if max(upper_ratio, lower_ratio) <= wick_multiple:
        return ManipulationFlag()

    if upper_ratio > lower_ratio:
        return ManipulationFlag(
            detected=True,
            kind=Polarity.BEARISH,
            confidence=min(MAX_MANIPULATION_CONFIDENCE, round(upper_ratio * 20, 2)),
            description="Abnormal upper wick: institutional rejection of buyers"
        )

    return ManipulationFlag(
        detected=True,
        kind=Polarity.BULLISH,
        confidence=min(MAX_MANIPULATION_CONFIDENCE, round(lower_ratio * 20, 2)),
        description="Abnormal lower wick: institutional rejection of sellers"
    )
