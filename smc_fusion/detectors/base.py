"""
Base detector interface
"""

from abc import ABC, abstractmethod
from typing import Any, List

import pandas as pd

from smc_fusion.data.frames import candles_from_frame
from smc_fusion.models.candle import Candle


class BaseDetector(ABC):
    """
    Abstract base class for structure detectors
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def analyze(self, candles: List[Candle], timeframe: str) -> Any:
        """
        Detect structure from one ordered candle series

        Args:
            candles: Candles ordered by increasing timestamp
            timeframe: Timeframe label of the series

        Returns:
            Detected structure
        """

    def calculate(self, data: pd.DataFrame, timeframe: str = "") -> Any:
        """
        Detect structure from an OHLCV dataframe

        Args:
            data: OHLCV dataframe
            timeframe: Timeframe label of the series

        Returns:
            Detected structure
        """
        return self.analyze(candles_from_frame(data), timeframe)
