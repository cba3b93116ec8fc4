"""
Order Block (OB) Identification
Detects the last opposing candle before a strong move and tracks mitigation
"""

from collections import deque
from typing import List, Optional, Union

from smc_fusion.models.candle import Candle
from smc_fusion.models.structures import OrderBlock, Polarity


def identify_order_blocks(
    candles: Union[List[Candle], deque],
    min_move_percent: float = 0.005
) -> List[OrderBlock]:
    """
    Identify bullish and bearish Order Blocks.

    A bullish OB is a down-close candle immediately followed by an up-close
    candle whose body exceeds `min_move_percent` of its open. A bearish OB
    is the mirror: an up-close candle followed by a strong down-close candle.

    Args:
        candles: List or deque of Candle objects
        min_move_percent: Minimum following move as a fraction of its open (0.005 = 0.5%)

    Returns:
        List of OrderBlock objects ordered by index, flags unset
    """
    candles_list = list(candles)
    blocks: List[OrderBlock] = []

    for i in range(len(candles_list) - 1):
        current = candles_list[i]
        following = candles_list[i + 1]

        if following.open <= 0:
            continue

        if current.is_bearish and following.is_bullish:
            move = (following.close - following.open) / following.open
            if move > min_move_percent:
                blocks.append(_block_from(current, i, Polarity.BULLISH, move))

        elif current.is_bullish and following.is_bearish:
            move = (following.open - following.close) / following.open
            if move > min_move_percent:
                blocks.append(_block_from(current, i, Polarity.BEARISH, move))

    return blocks


def _block_from(candle: Candle, index: int, kind: Polarity, move: float) -> OrderBlock:
    return OrderBlock(
        index=index,
        high=candle.high,
        low=candle.low,
        open=candle.open,
        close=candle.close,
        kind=kind,
        strength=round(move * 100, 2)
    )


def scan_order_block_mitigation(
    candles: Union[List[Candle], deque],
    blocks: List[OrderBlock]
) -> List[OrderBlock]:
    """
    Update tested/mitigated flags from price action after each block.

    Scanning starts after the candle that confirmed the block. A candle whose
    range overlaps the block marks it tested; a re-entering candle that
    closes beyond the opposite edge (below the low for bullish blocks, above
    the high for bearish ones) marks it mitigated. Flags are never cleared
    and mitigated blocks are skipped, so re-scanning a longer window keeps
    earlier results.

    Args:
        candles: Candle series the blocks were detected on (or a longer one)
        blocks: Order blocks to update in place

    Returns:
        The same list, for chaining
    """
    candles_list = list(candles)

    for block in blocks:
        if block.mitigated:
            continue

        for i in range(block.index + 2, len(candles_list)):
            candle = candles_list[i]
            if candle.low > block.high or candle.high < block.low:
                continue

            block.mark_tested()

            if block.kind is Polarity.BULLISH and candle.close < block.low:
                block.mark_mitigated()
                break
            if block.kind is Polarity.BEARISH and candle.close > block.high:
                block.mark_mitigated()
                break

    return blocks


def detect_order_blocks(
    candles: Union[List[Candle], deque],
    min_move_percent: float = 0.005
) -> List[OrderBlock]:
    """
    Detect Order Blocks and evaluate their mitigation in one call.

    Args:
        candles: List or deque of Candle objects
        min_move_percent: Minimum following move as a fraction of its open

    Returns:
        List of OrderBlock objects with tested/mitigated flags set
    """
    candles_list = list(candles)
    blocks = identify_order_blocks(candles_list, min_move_percent)
    return scan_order_block_mitigation(candles_list, blocks)


def find_nearest_order_block(
    blocks: List[OrderBlock],
    current_price: float,
    kind: Polarity,
    only_active: bool = True
) -> Optional[OrderBlock]:
    """
    Find the Order Block of the given kind with midpoint closest to price.

    Args:
        blocks: List of OrderBlock objects
        current_price: Current market price
        kind: BULLISH or BEARISH blocks to search
        only_active: If True, ignore mitigated blocks

    Returns:
        Nearest OrderBlock or None if not found
    """
    filtered = [
        ob for ob in blocks
        if ob.kind is kind and (ob.is_active or not only_active)
    ]

    if not filtered:
        return None

    return min(filtered, key=lambda ob: abs(ob.midpoint - current_price))
