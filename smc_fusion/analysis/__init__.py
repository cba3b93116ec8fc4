"""
Structure analysis: per-timeframe detector and multi-timeframe aggregator
"""

from .multi_timeframe import MultiTimeframeAggregator
from .structure import StructureDetector

__all__ = ["MultiTimeframeAggregator", "StructureDetector"]
