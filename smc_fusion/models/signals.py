"""
Aggregation and decision data models

Multi-timeframe results, external opinions fed into the fusion engine,
and the approve/reject decision it emits.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from smc_fusion.models.learning import TradeOutcome, TradeResult
from smc_fusion.models.structures import Direction, TimeframeAnalysis, Trend


class BiasDirection(str, Enum):
    """Overall bias of the two coarsest timeframes."""

    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"
    CONFLICTED = "CONFLICTED"

    @property
    def direction(self) -> Direction:
        if self is BiasDirection.BULLISH:
            return Direction.BUY
        if self is BiasDirection.BEARISH:
            return Direction.SELL
        return Direction.NEUTRAL


class DecisionStatus(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class OrderKind(str, Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class CriterionGroup(str, Enum):
    """Where a criterion sits in the gating protocol."""

    VETO = "veto"
    MANDATORY = "mandatory"
    SETUP = "setup"
    CONTEXT = "context"


@dataclass(frozen=True)
class OverallBias:
    direction: BiasDirection
    confidence: float
    description: str


@dataclass(frozen=True)
class Alignment:
    """Majority trend across all analyzed timeframes."""
    aligned: bool
    direction: Trend
    confidence: float


@dataclass(frozen=True)
class Readiness:
    """Structural readiness with every rule reported by name."""
    ready: bool
    rules: Dict[str, bool]
    missing_rules: List[str]


@dataclass
class MultiTimeframeAnalysis:
    """
    Output of one aggregator run.

    Attributes:
        timeframes: Per-timeframe analysis keyed by timeframe label
        order: Configured timeframe labels, coarsest first
        overall_bias: Bias derived from the two coarsest timeframes
        alignment: Majority trend across analyzed timeframes
        readiness: Named structural readiness rules
    """
    timeframes: Dict[str, TimeframeAnalysis]
    order: List[str]
    overall_bias: OverallBias
    alignment: Alignment
    readiness: Readiness

    def get(self, timeframe: str) -> Optional[TimeframeAnalysis]:
        return self.timeframes.get(timeframe)

    @property
    def finest(self) -> Optional[TimeframeAnalysis]:
        return self.timeframes.get(self.order[-1]) if self.order else None

    def finer(self, count: int) -> List[TimeframeAnalysis]:
        """Analyses of the `count` finest configured timeframes, finest first."""
        labels = list(reversed(self.order))[:count]
        return [self.timeframes[tf] for tf in labels if tf in self.timeframes]


@dataclass(frozen=True)
class TechnicalEstimate:
    """
    Probability estimate from the external model ensemble.

    Attributes:
        probability: Confidence in `direction`, 0-100
        direction: BUY or SELL; None when the estimate has no direction
    """
    probability: float = 50.0
    direction: Optional[Direction] = None

    def __post_init__(self) -> None:
        if not 0 <= self.probability <= 100:
            raise ValueError(f"Probability ({self.probability}) must be within [0, 100]")

    @property
    def confidence(self) -> float:
        return self.probability

    @classmethod
    def from_models(
        cls,
        probabilities: Mapping[str, float],
        model_weights: Mapping[str, float],
    ) -> "TechnicalEstimate":
        """
        Blend per-model probabilities of an upward move with learned weights.

        Models without a weight are ignored. The blended up-probability is
        turned into a directional confidence: above 50 means BUY with that
        confidence, below 50 means SELL with the complement.

        Args:
            probabilities: Model name -> probability of an upward move (0-100)
            model_weights: Model name -> ensemble weight

        Returns:
            TechnicalEstimate (neutral when no weighted model is present)
        """
        total_weight = 0.0
        blended = 0.0
        for name, probability in probabilities.items():
            weight = model_weights.get(name)
            if weight is None:
                continue
            blended += probability * weight
            total_weight += weight

        if total_weight <= 0:
            return cls()

        up = blended / total_weight
        if up > 50:
            return cls(probability=round(up, 2), direction=Direction.BUY)
        if up < 50:
            return cls(probability=round(100 - up, 2), direction=Direction.SELL)
        return cls(probability=50.0)


@dataclass(frozen=True)
class FundamentalBias:
    direction: Direction = Direction.NEUTRAL
    confidence: float = 50.0


@dataclass(frozen=True)
class CorrelationVerdict:
    allow: bool = True
    blocking_factors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CriterionCheck:
    """Result of one named gating predicate."""
    name: str
    passed: bool
    detail: str
    group: CriterionGroup


@dataclass(frozen=True)
class TradeSetup:
    """
    Concrete order proposal. Created only on approval.

    Prices are rounded to 5 decimals; risk_reward and stop_loss_percent
    to 2 decimals.
    """
    direction: Direction
    order_kind: OrderKind
    entry: float
    stop_loss: float
    take_profit: float
    risk_reward: float
    stop_loss_percent: float


@dataclass(frozen=True)
class ProbabilityBreakdown:
    overall: float
    technical: float
    structural: float
    fundamental: float


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


@dataclass
class Decision:
    """
    Approve/reject verdict of one fusion cycle.

    Approvals carry direction, setup and probability; rejections carry
    the failed criterion names, recommendations and next steps. Both
    carry the full criteria list.
    """
    status: DecisionStatus
    pair: str
    criteria: List[CriterionCheck] = field(default_factory=list)
    direction: Optional[Direction] = None
    setup: Optional[TradeSetup] = None
    probability: Optional[ProbabilityBreakdown] = None
    confluence_score: int = 0
    failed_criteria: List[str] = field(default_factory=list)
    reason: Optional[str] = None
    recommendations: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    pattern_tags: List[str] = field(default_factory=list)
    originating_timeframe: Optional[str] = None
    technical_confidence: float = 0.0
    justification: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def approved(self) -> bool:
        return self.status is DecisionStatus.APPROVED

    def criterion(self, name: str) -> Optional[CriterionCheck]:
        for check in self.criteria:
            if check.name == name:
                return check
        return None

    def to_outcome(self, result: TradeResult, trade_id: Optional[str] = None) -> TradeOutcome:
        """Build the learner feedback record for a closed trade from this decision."""
        if not self.approved:
            raise ValueError("Only approved decisions produce trade outcomes")
        return TradeOutcome(
            originating_timeframe=self.originating_timeframe or "",
            pattern_tags=list(self.pattern_tags),
            technical_confidence=self.technical_confidence,
            result=result,
            trade_id=trade_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))
