"""Learning report: win rates by timeframe and pattern with recommendations."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence

from smc_fusion.models.learning import TradeOutcome, TradeResult, WeightState

TIMEFRAME_MIN_TRADES = 10
TIMEFRAME_PRIORITY_WIN_RATE = 70.0
TIMEFRAME_REVIEW_WIN_RATE = 40.0

PATTERN_MIN_TRADES = 5
PATTERN_RELIABLE_WIN_RATE = 75.0
PATTERN_AVOID_WIN_RATE = 35.0


@dataclass
class BucketStats:
    trades: int = 0
    wins: int = 0
    losses: int = 0
    breakeven: int = 0
    weight: float = 1.0

    @property
    def win_rate(self) -> float:
        return round(self.wins / self.trades * 100, 2) if self.trades else 0.0

    def add(self, result: TradeResult) -> None:
        self.trades += 1
        if result is TradeResult.WIN:
            self.wins += 1
        elif result is TradeResult.LOSS:
            self.losses += 1
        else:
            self.breakeven += 1

    def to_dict(self) -> Dict[str, Any]:
        return {**asdict(self), "win_rate": self.win_rate}


@dataclass(frozen=True)
class Recommendation:
    kind: str  # POSITIVE or NEGATIVE
    message: str


@dataclass
class LearningReport:
    overall: BucketStats
    timeframes: Dict[str, BucketStats]
    patterns: Dict[str, BucketStats]
    models: Dict[str, float]
    recommendations: List[Recommendation] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall.to_dict(),
            "timeframes": {k: v.to_dict() for k, v in self.timeframes.items()},
            "patterns": {k: v.to_dict() for k, v in self.patterns.items()},
            "models": dict(self.models),
            "recommendations": [asdict(r) for r in self.recommendations],
            "generated_at": self.generated_at.isoformat(),
        }


def build_learning_report(outcomes: Sequence[TradeOutcome], state: WeightState) -> LearningReport:
    """
    Summarize closed outcomes against the current weights.

    PENDING outcomes are skipped. Every known timeframe and pattern appears
    in the report, with zero trades when none cited it.
    """
    closed = [o for o in outcomes if o.result is not TradeResult.PENDING]

    overall = BucketStats()
    timeframes = {tf: BucketStats(weight=w) for tf, w in state.timeframes.items()}
    patterns = {tag: BucketStats(weight=w) for tag, w in state.patterns.items()}

    for outcome in closed:
        overall.add(outcome.result)
        tf = outcome.originating_timeframe
        timeframes.setdefault(tf, BucketStats(weight=state.timeframe_weight(tf))).add(outcome.result)
        for tag in dict.fromkeys(outcome.pattern_tags):
            patterns.setdefault(tag, BucketStats(weight=state.pattern_weight(tag))).add(outcome.result)

    recommendations: List[Recommendation] = []
    for tf, stats in timeframes.items():
        if stats.trades < TIMEFRAME_MIN_TRADES:
            continue
        if stats.win_rate > TIMEFRAME_PRIORITY_WIN_RATE:
            recommendations.append(Recommendation(
                "POSITIVE", f"Timeframe {tf} performing well ({stats.win_rate}% win rate). Prioritize"
            ))
        elif stats.win_rate < TIMEFRAME_REVIEW_WIN_RATE:
            recommendations.append(Recommendation(
                "NEGATIVE", f"Timeframe {tf} underperforming ({stats.win_rate}% win rate). Review the strategy"
            ))

    for tag, stats in patterns.items():
        if stats.trades < PATTERN_MIN_TRADES:
            continue
        if stats.win_rate > PATTERN_RELIABLE_WIN_RATE:
            recommendations.append(Recommendation(
                "POSITIVE", f"Pattern {tag} highly reliable ({stats.win_rate}% win rate)"
            ))
        elif stats.win_rate < PATTERN_AVOID_WIN_RATE:
            recommendations.append(Recommendation(
                "NEGATIVE", f"Pattern {tag} unreliable ({stats.win_rate}% win rate). Avoid"
            ))

    return LearningReport(
        overall=overall,
        timeframes=timeframes,
        patterns=patterns,
        models=dict(state.models),
        recommendations=recommendations,
    )
