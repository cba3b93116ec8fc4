"""
Premium / Discount Zones
Fibonacci position of the latest close within the trailing range
"""

from collections import deque
from typing import List, Optional, Union

from smc_fusion.models.candle import Candle
from smc_fusion.models.structures import PremiumDiscount, PriceZone

FIBONACCI_LEVELS = {
    "0": 0.0,
    "23.6": 0.236,
    "38.2": 0.382,
    "50": 0.5,
    "61.8": 0.618,
    "78.6": 0.786,
    "100": 1.0,
}


def calculate_premium_discount(
    candles: Union[List[Candle], deque],
    lookback: int = 50
) -> Optional[PremiumDiscount]:
    """
    Classify the latest close as PREMIUM, DISCOUNT or EQUILIBRIUM.

    The range is max(high) - min(low) over the trailing `lookback` candles.
    Closes at or above the 61.8% level are premium, at or below 38.2% are
    discount, anything between is equilibrium.

    Args:
        candles: List or deque of Candle objects
        lookback: Number of trailing candles defining the range

    Returns:
        PremiumDiscount, or None when fewer than `lookback` candles exist
    """
    candles_list = list(candles)
    if lookback < 1 or len(candles_list) < lookback:
        return None

    recent = candles_list[-lookback:]
    high = max(c.high for c in recent)
    low = min(c.low for c in recent)
    price_range = high - low
    current_price = candles_list[-1].close

    premium_start = low + price_range * 0.618
    discount_end = low + price_range * 0.382

    if price_range <= 0:
        zone = PriceZone.EQUILIBRIUM
    elif current_price >= premium_start:
        zone = PriceZone.PREMIUM
    elif current_price <= discount_end:
        zone = PriceZone.DISCOUNT
    else:
        zone = PriceZone.EQUILIBRIUM

    return PremiumDiscount(
        high=high,
        low=low,
        range=price_range,
        current_price=current_price,
        equilibrium=low + price_range * 0.5,
        premium_start=premium_start,
        discount_end=discount_end,
        zone=zone,
        fibonacci={label: low + price_range * ratio for label, ratio in FIBONACCI_LEVELS.items()}
    )
