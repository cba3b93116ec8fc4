"""
Human-readable recommendations, next steps, warnings and justification text
"""

from typing import List, Optional, Sequence

from smc_fusion.models.signals import (
    CorrelationVerdict,
    FundamentalBias,
    MultiTimeframeAnalysis,
    ProbabilityBreakdown,
    TechnicalEstimate,
    TradeSetup,
)
from smc_fusion.models.structures import Direction

RECOMMENDATIONS = {
    "consecutive_losses": "Trading paused after consecutive losses. Review recent trades before resuming",
    "bias_not_conflicted": "Higher timeframes disagree. Wait for the two coarsest timeframes to align",
    "market_data": "Execution timeframe has no candles. Check the market data feed",
    "trade_direction": "No directional bias and no technical direction. Wait for a clear trend",
    "confluence": "Not enough confluence. Wait for more supporting structure",
    "technical_confidence": "Technical probability too low. Wait for a higher-probability setup",
    "smart_money": "Smart money structure not confirmed. Wait for an order block, BOS or sweep",
    "not_ranging": "Market is ranging on the higher timeframe. Wait for expansion",
    "stop_loss": "Stop loss too wide. Wait for a tighter structural stop",
    "risk_reward": "Risk/reward insufficient. Wait for a better entry point",
    "fundamental_not_opposed": "Fundamentals oppose the trade. Wait for the macro picture to change",
    "correlation_allowed": "Correlated markets do not confirm. Review the blocking factors",
}

NEXT_STEPS = [
    "Keep monitoring all timeframes",
    "Wait for every criterion to line up",
    "Do not force trades without a statistical edge",
    "Re-run the analysis on each new execution-timeframe candle",
]


def build_recommendations(failed_criteria: Sequence[str], technical: TechnicalEstimate) -> List[str]:
    """One recommendation per known failed criterion, in failure order."""
    recommendations = []
    for name in failed_criteria:
        message = RECOMMENDATIONS.get(name)
        if message is None:
            continue
        if name == "technical_confidence":
            message = f"{message} (currently {technical.confidence:.0f}%)"
        recommendations.append(message)
    return recommendations


def build_next_steps(approved: bool, setup: Optional[TradeSetup] = None) -> List[str]:
    if not approved or setup is None:
        return list(NEXT_STEPS)
    return [
        f"Place {setup.order_kind.value} {setup.direction.value} order at {setup.entry}",
        f"Stop loss {setup.stop_loss}, take profit {setup.take_profit}",
        "Move stop to breakeven after 50% of the target distance",
        "Consider a partial close at 2:1",
    ]


def build_warnings(
    correlation: CorrelationVerdict,
    fundamental: FundamentalBias,
    direction: Direction
) -> List[str]:
    """Non-blocking concerns attached to an approval."""
    warnings = [f"Correlation: {factor}" for factor in correlation.blocking_factors]
    if (
        fundamental.direction is not Direction.NEUTRAL
        and fundamental.direction is not direction
    ):
        warnings.append(
            f"Fundamental bias {fundamental.direction.value} "
            f"({fundamental.confidence:.0f}%) leans against the trade"
        )
    return warnings


def build_justification(
    mtf: MultiTimeframeAnalysis,
    setup: TradeSetup,
    probability: ProbabilityBreakdown,
    technical: TechnicalEstimate,
    fundamental: FundamentalBias,
    pattern_tags: Sequence[str]
) -> str:
    """Multi-line justification of an approved trade."""
    lines = [
        f"{setup.direction.value} {setup.order_kind.value} @ {setup.entry} "
        f"(SL {setup.stop_loss}, TP {setup.take_profit}, R:R {setup.risk_reward})",
        f"Overall probability {probability.overall:.0f}%",
        f"Technical: {technical.confidence:.0f}%",
        "Structure:",
    ]
    for label in mtf.order:
        analysis = mtf.get(label)
        trend = analysis.trend.value if analysis else "N/A"
        lines.append(f"- {label}: {trend}")
    lines.append(
        f"- Bias: {mtf.overall_bias.direction.value} ({mtf.overall_bias.confidence:.0f}%), "
        f"alignment {mtf.alignment.confidence:.0f}%"
    )

    finest = mtf.finest
    if finest is not None and finest.liquidity.sweeps:
        sweep = finest.liquidity.sweeps[-1]
        lines.append(f"- Sweep: {sweep.kind.value} at {sweep.zone_price:.5f}")
    if pattern_tags:
        lines.append(f"- Patterns: {', '.join(pattern_tags)}")

    lines.append(
        f"Fundamental: {fundamental.direction.value} ({fundamental.confidence:.0f}%)"
    )
    return "\n".join(lines)
