"""
Data models package
"""

from .candle import Candle
from .learning import TradeOutcome, TradeResult, WeightState
from .signals import (
    Alignment,
    BiasDirection,
    CorrelationVerdict,
    CriterionCheck,
    Decision,
    DecisionStatus,
    FundamentalBias,
    MultiTimeframeAnalysis,
    OrderKind,
    OverallBias,
    Readiness,
    TechnicalEstimate,
    TradeSetup,
)
from .structures import (
    Direction,
    FairValueGap,
    LiquidityMap,
    LiquiditySweep,
    LiquidityZone,
    MarketPhase,
    OrderBlock,
    StructureEvent,
    SwingPoint,
    TimeframeAnalysis,
    Trend,
)

__all__ = [
    "Candle",
    "Direction",
    "Trend",
    "MarketPhase",
    "SwingPoint",
    "LiquidityZone",
    "LiquiditySweep",
    "LiquidityMap",
    "OrderBlock",
    "FairValueGap",
    "StructureEvent",
    "TimeframeAnalysis",
    "BiasDirection",
    "OverallBias",
    "Alignment",
    "Readiness",
    "MultiTimeframeAnalysis",
    "TechnicalEstimate",
    "FundamentalBias",
    "CorrelationVerdict",
    "CriterionCheck",
    "TradeSetup",
    "OrderKind",
    "Decision",
    "DecisionStatus",
    "TradeOutcome",
    "TradeResult",
    "WeightState",
]
