"""
Named gating criteria

Each criterion is a predicate over a FusionContext returning
(passed, detail). Criteria are grouped into mandatory checks, setup checks
(need the trade setup) and context checks (external opinions); the gating
policy folds their results into a verdict.
"""

from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

from smc_fusion.config.settings import FusionThresholds
from smc_fusion.decision.confluence import ConfluenceScore
from smc_fusion.models.candle import Candle
from smc_fusion.models.signals import (
    CorrelationVerdict,
    CriterionCheck,
    CriterionGroup,
    FundamentalBias,
    MultiTimeframeAnalysis,
    TechnicalEstimate,
    TradeSetup,
)
from smc_fusion.models.structures import Direction


@dataclass(frozen=True)
class FusionContext:
    """Everything a criterion may look at during one evaluation."""
    mtf: MultiTimeframeAnalysis
    market_data: Mapping[str, Sequence[Candle]]
    technical: TechnicalEstimate
    fundamental: FundamentalBias
    correlation: CorrelationVerdict
    thresholds: FusionThresholds
    direction: Direction
    confluence: ConfluenceScore
    setup: Optional[TradeSetup] = None


Predicate = Callable[[FusionContext], Tuple[bool, str]]


def check_confluence(ctx: FusionContext) -> Tuple[bool, str]:
    minimum = ctx.thresholds.min_confluence
    score = ctx.confluence.score
    return score >= minimum, f"score {score}/{ctx.confluence.maximum} (min {minimum})"


def check_technical_confidence(ctx: FusionContext) -> Tuple[bool, str]:
    minimum = ctx.thresholds.min_technical_confidence
    confidence = ctx.technical.confidence
    return confidence >= minimum, f"{confidence:.1f}% (min {minimum:.0f}%)"


def check_smart_money(ctx: FusionContext) -> Tuple[bool, str]:
    """Alignment confidence, or an order block / BOS / sweep below the coarsest timeframe."""
    confidence = ctx.mtf.alignment.confidence
    if confidence >= ctx.thresholds.min_smart_money_confidence:
        return True, f"alignment {confidence:.0f}%"

    for label in ctx.mtf.order[1:]:
        analysis = ctx.mtf.get(label)
        if analysis is None:
            continue
        if analysis.has_active_order_block:
            return True, f"active order block on {label}"
        if analysis.bos_events:
            return True, f"break of structure on {label}"
        if analysis.liquidity.sweeps:
            return True, f"liquidity sweep on {label}"

    return False, f"alignment {confidence:.0f}% and no structural setup"


def check_not_ranging(ctx: FusionContext) -> Tuple[bool, str]:
    """
    Range of the trailing coarse candles must exceed the ranging threshold.

    Too few coarse candles cannot prove a range and pass.
    """
    lookback = ctx.thresholds.ranging_lookback
    coarse = list(ctx.market_data.get(ctx.mtf.order[0], []))
    if len(coarse) < lookback:
        return True, f"{len(coarse)} {ctx.mtf.order[0]} candles, range not measurable"

    recent = coarse[-lookback:]
    high = max(c.high for c in recent)
    low = min(c.low for c in recent)
    mid = (high + low) / 2
    range_percent = (high - low) / mid * 100 if mid > 0 else 0.0

    passed = range_percent > ctx.thresholds.ranging_min_percent
    return passed, f"{ctx.mtf.order[0]} range {range_percent:.2f}% (min {ctx.thresholds.ranging_min_percent}%)"


def check_stop_loss(ctx: FusionContext) -> Tuple[bool, str]:
    if ctx.setup is None:
        return False, "no trade setup"
    maximum = ctx.thresholds.max_stop_loss_percent
    return (
        ctx.setup.stop_loss_percent <= maximum,
        f"{ctx.setup.stop_loss_percent:.2f}% (max {maximum}%)"
    )


def check_risk_reward(ctx: FusionContext) -> Tuple[bool, str]:
    if ctx.setup is None:
        return False, "no trade setup"
    minimum = ctx.thresholds.min_risk_reward
    return ctx.setup.risk_reward >= minimum, f"{ctx.setup.risk_reward:.2f} (min {minimum})"


def is_fundamental_opposed(
    fundamental: FundamentalBias,
    direction: Direction,
    veto_confidence: float
) -> bool:
    """True when a confident fundamental bias points against `direction`."""
    if fundamental.direction is Direction.NEUTRAL or direction is Direction.NEUTRAL:
        return False
    return fundamental.direction is not direction and fundamental.confidence > veto_confidence


def check_fundamental_not_opposed(ctx: FusionContext) -> Tuple[bool, str]:
    opposed = is_fundamental_opposed(
        ctx.fundamental, ctx.direction, ctx.thresholds.fundamental_veto_confidence
    )
    detail = f"{ctx.fundamental.direction.value} at {ctx.fundamental.confidence:.0f}%"
    return not opposed, detail


def check_correlation_allowed(ctx: FusionContext) -> Tuple[bool, str]:
    factors = ", ".join(ctx.correlation.blocking_factors) or "none"
    return ctx.correlation.allow, f"blocking factors: {factors}"


MANDATORY_CHECKS: List[Tuple[str, Predicate]] = [
    ("confluence", check_confluence),
    ("technical_confidence", check_technical_confidence),
    ("smart_money", check_smart_money),
    ("not_ranging", check_not_ranging),
]

SETUP_CHECKS: List[Tuple[str, Predicate]] = [
    ("stop_loss", check_stop_loss),
    ("risk_reward", check_risk_reward),
]

CONTEXT_CHECKS: List[Tuple[str, Predicate]] = [
    ("fundamental_not_opposed", check_fundamental_not_opposed),
    ("correlation_allowed", check_correlation_allowed),
]


def evaluate_checks(
    checks: Sequence[Tuple[str, Predicate]],
    ctx: FusionContext,
    group: CriterionGroup
) -> List[CriterionCheck]:
    """Run each named predicate against the context."""
    results = []
    for name, predicate in checks:
        passed, detail = predicate(ctx)
        results.append(CriterionCheck(name=name, passed=bool(passed), detail=detail, group=group))
    return results
