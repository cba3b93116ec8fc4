"""
Candle model shared by every detector.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Candle:
    """
    One OHLCV bar. Series are ordered by strictly increasing timestamp and
    never modified after the data source produces them.

    volume is 0.0 for sources without volume (most spot FX feeds).
    """

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    def __post_init__(self) -> None:
        body_top = max(self.open, self.close)
        body_bottom = min(self.open, self.close)
        if self.high < body_top or self.low > body_bottom:
            raise ValueError(
                f"Incoherent candle at {self.timestamp}: "
                f"O={self.open} H={self.high} L={self.low} C={self.close}"
            )
        if self.volume < 0:
            raise ValueError(f"Negative volume {self.volume} at {self.timestamp}")

    @property
    def body_size(self) -> float:
        return abs(self.close - self.open)

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open

    @property
    def upper_wick(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_wick(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def total_range(self) -> float:
        """High to low, wicks included."""
        return self.high - self.low
