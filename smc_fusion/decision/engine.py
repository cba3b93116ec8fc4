"""
Decision Fusion Engine

Gates the multi-timeframe structure together with the technical estimate,
fundamental bias and correlation verdict into an APPROVED or REJECTED
decision, and prices the trade on approval.

Gating order:
    1. Vetoes: consecutive-loss ceiling, conflicted bias, missing execution
       candles, no trade direction
    2. Confluence score (0-7)
    3. Mandatory checks folded by the gate policy
    4. Trade setup plus setup and context checks
    5. Overall pass ratio across all criteria
"""

import logging
import threading
from dataclasses import replace
from typing import List, Mapping, Optional, Sequence

from smc_fusion.analysis.multi_timeframe import weighted_alignment_confidence
from smc_fusion.config.settings import FusionThresholds, GatePolicy
from smc_fusion.decision.confluence import ConfluenceScore, calculate_confluence
from smc_fusion.decision.criteria import (
    CONTEXT_CHECKS,
    MANDATORY_CHECKS,
    SETUP_CHECKS,
    FusionContext,
    evaluate_checks,
)
from smc_fusion.decision.policy import apply_mandatory_policy, apply_overall_policy
from smc_fusion.decision.recommendations import (
    build_justification,
    build_next_steps,
    build_recommendations,
    build_warnings,
)
from smc_fusion.models.candle import Candle
from smc_fusion.models.learning import TradeResult, WeightState
from smc_fusion.models.signals import (
    BiasDirection,
    CorrelationVerdict,
    CriterionCheck,
    CriterionGroup,
    Decision,
    DecisionStatus,
    FundamentalBias,
    MultiTimeframeAnalysis,
    ProbabilityBreakdown,
    TechnicalEstimate,
    TradeSetup,
)
from smc_fusion.models.structures import Direction
from smc_fusion.pricing.trade_setup import LiquidityTradeSetup

logger = logging.getLogger(__name__)

TECHNICAL_WEIGHT = 0.40
STRUCTURAL_WEIGHT = 0.35
FUNDAMENTAL_WEIGHT = 0.25

# Feature attribution looks at the two finest timeframes
ATTRIBUTION_TIMEFRAMES = 2


class DecisionFusionEngine:
    """
    Approve/reject gate over structure and external opinions.

    Each evaluation is a pure function of its inputs, apart from the
    consecutive-loss counter which `record_trade_result` maintains.
    """

    def __init__(
        self,
        thresholds: Optional[FusionThresholds] = None,
        policy: Optional[GatePolicy] = None,
        setup_calculator: Optional[LiquidityTradeSetup] = None
    ):
        self.thresholds = thresholds or FusionThresholds()
        self.policy = policy or GatePolicy()
        self.setup_calculator = setup_calculator or LiquidityTradeSetup(
            stop_fallback_percent=self.thresholds.stop_fallback_percent,
            target_fallback_percent=self.thresholds.target_fallback_percent
        )
        self._consecutive_losses = 0
        self._lock = threading.Lock()

    @property
    def consecutive_losses(self) -> int:
        with self._lock:
            return self._consecutive_losses

    def record_trade_result(self, result: TradeResult) -> int:
        """
        Track consecutive losses: LOSS increments, WIN resets, anything
        else leaves the counter unchanged.

        Returns:
            The updated counter
        """
        with self._lock:
            if result is TradeResult.LOSS:
                self._consecutive_losses += 1
            elif result is TradeResult.WIN:
                self._consecutive_losses = 0
            count = self._consecutive_losses

        if count >= self.thresholds.max_consecutive_losses:
            logger.warning(
                f"Consecutive losses at {count}: new signals are paused until a win"
            )
        return count

    def reset_losses(self) -> None:
        with self._lock:
            self._consecutive_losses = 0

    def evaluate(
        self,
        pair: str,
        mtf: MultiTimeframeAnalysis,
        market_data: Mapping[str, Sequence[Candle]],
        technical: Optional[TechnicalEstimate] = None,
        fundamental: Optional[FundamentalBias] = None,
        correlation: Optional[CorrelationVerdict] = None,
        weights: Optional[WeightState] = None
    ) -> Decision:
        """
        Evaluate one pair.

        Args:
            pair: Instrument name (e.g. 'EURUSD')
            mtf: Aggregated multi-timeframe structure
            market_data: Raw candles per timeframe
            technical: Technical estimate (neutral when omitted)
            fundamental: Fundamental bias (neutral when omitted)
            correlation: Correlation verdict (allow when omitted)
            weights: Learned weights for the probability blend (defaults when omitted)

        Returns:
            Decision (never raises for market conditions)
        """
        technical = technical or TechnicalEstimate()
        fundamental = fundamental or FundamentalBias()
        correlation = correlation or CorrelationVerdict()
        weights = weights or WeightState.default()

        # 1. Vetoes
        veto = self._check_vetoes(mtf)
        if veto is not None:
            return self._reject(pair, [veto], technical, veto.detail)

        direction = self._trade_direction(mtf, technical)
        if direction is None:
            check = CriterionCheck(
                "trade_direction", False, "no directional bias or technical direction",
                CriterionGroup.VETO
            )
            return self._reject(pair, [check], technical, check.detail)

        # 2. Confluence
        confluence = calculate_confluence(mtf, technical, self.thresholds)
        ctx = FusionContext(
            mtf=mtf,
            market_data=market_data,
            technical=technical,
            fundamental=fundamental,
            correlation=correlation,
            thresholds=self.thresholds,
            direction=direction,
            confluence=confluence
        )

        # 3. Mandatory checks
        mandatory = evaluate_checks(MANDATORY_CHECKS, ctx, CriterionGroup.MANDATORY)
        for check in mandatory:
            logger.debug(f"{pair} mandatory {check.name}: {check.passed} ({check.detail})")

        verdict = apply_mandatory_policy(mandatory, self.policy)
        if not verdict.passed:
            return self._reject(pair, mandatory, technical, verdict.reason, confluence)

        # 4. Setup and context
        finest = mtf.finest
        setup = self.setup_calculator.calculate(direction, finest.last_close, finest)
        ctx = replace(ctx, setup=setup)
        criteria = (
            mandatory
            + evaluate_checks(SETUP_CHECKS, ctx, CriterionGroup.SETUP)
            + evaluate_checks(CONTEXT_CHECKS, ctx, CriterionGroup.CONTEXT)
        )

        # 5. Overall ratio
        overall = apply_overall_policy(criteria, self.policy)
        logger.info(
            f"{pair} {direction.value}: {overall.reason}, "
            f"R:R {setup.risk_reward}, SL {setup.stop_loss_percent}%"
        )
        if not overall.passed:
            return self._reject(pair, criteria, technical, overall.reason, confluence)

        return self._approve(
            pair, direction, setup, criteria, confluence, mtf, technical, fundamental,
            correlation, weights
        )

    def _check_vetoes(self, mtf: MultiTimeframeAnalysis) -> Optional[CriterionCheck]:
        losses = self.consecutive_losses
        if losses >= self.thresholds.max_consecutive_losses:
            return CriterionCheck(
                "consecutive_losses", False,
                f"paused after {losses} consecutive losses", CriterionGroup.VETO
            )

        if mtf.overall_bias.direction is BiasDirection.CONFLICTED:
            return CriterionCheck(
                "bias_not_conflicted", False, mtf.overall_bias.description, CriterionGroup.VETO
            )

        finest = mtf.finest
        if finest is None or finest.candle_count == 0 or finest.last_close is None:
            label = mtf.order[-1] if mtf.order else "execution"
            return CriterionCheck(
                "market_data", False, f"no {label} candles", CriterionGroup.VETO
            )
        return None

    @staticmethod
    def _trade_direction(
        mtf: MultiTimeframeAnalysis,
        technical: TechnicalEstimate
    ) -> Optional[Direction]:
        """Overall bias direction first, then the technical estimate's."""
        bias_direction = mtf.overall_bias.direction.direction
        if bias_direction in (Direction.BUY, Direction.SELL):
            return bias_direction
        if technical.direction in (Direction.BUY, Direction.SELL):
            return technical.direction
        return None

    @staticmethod
    def pattern_tags(mtf: MultiTimeframeAnalysis, direction: Direction) -> List[str]:
        """
        Structural patterns supporting `direction` on the finest timeframes:
        sweeps, active order blocks, BOS and CHoCH events.
        """
        tags: List[str] = []
        for analysis in mtf.finer(ATTRIBUTION_TIMEFRAMES):
            found = [s.tag for s in analysis.liquidity.sweeps if s.direction is direction]
            found += [ob.tag for ob in analysis.active_order_blocks if ob.kind.direction is direction]
            found += [e.tag for e in analysis.events if e.direction is direction]
            for tag in found:
                if tag not in tags:
                    tags.append(tag)
        return tags

    @staticmethod
    def probability(
        mtf: MultiTimeframeAnalysis,
        technical: TechnicalEstimate,
        fundamental: FundamentalBias,
        direction: Direction,
        weights: WeightState,
        pattern_tags: Sequence[str]
    ) -> ProbabilityBreakdown:
        """
        Blend technical (40%), structural (35%) and fundamental (25%) confidence.

        The structural part is the timeframe-weighted alignment scaled by the
        mean learned weight of the cited patterns, capped at 100. An opposing
        fundamental bias contributes its complement.
        """
        analyses = [mtf.timeframes[tf] for tf in mtf.order if tf in mtf.timeframes]
        structural = weighted_alignment_confidence(analyses, weights)
        if pattern_tags:
            pattern_factor = sum(weights.pattern_weight(t) for t in pattern_tags) / len(pattern_tags)
            structural *= pattern_factor
        structural = min(100.0, structural)

        fundamental_score = fundamental.confidence
        if fundamental.direction not in (Direction.NEUTRAL, direction):
            fundamental_score = 100.0 - fundamental.confidence

        overall = (
            technical.confidence * TECHNICAL_WEIGHT
            + structural * STRUCTURAL_WEIGHT
            + fundamental_score * FUNDAMENTAL_WEIGHT
        )
        return ProbabilityBreakdown(
            overall=round(overall, 2),
            technical=round(technical.confidence, 2),
            structural=round(structural, 2),
            fundamental=round(fundamental_score, 2)
        )

    def _approve(
        self,
        pair: str,
        direction: Direction,
        setup: TradeSetup,
        criteria: List[CriterionCheck],
        confluence: ConfluenceScore,
        mtf: MultiTimeframeAnalysis,
        technical: TechnicalEstimate,
        fundamental: FundamentalBias,
        correlation: CorrelationVerdict,
        weights: WeightState
    ) -> Decision:
        tags = self.pattern_tags(mtf, direction)
        probability = self.probability(mtf, technical, fundamental, direction, weights, tags)

        decision = Decision(
            status=DecisionStatus.APPROVED,
            pair=pair,
            criteria=criteria,
            direction=direction,
            setup=setup,
            probability=probability,
            confluence_score=confluence.score,
            failed_criteria=[c.name for c in criteria if not c.passed],
            reason="Institutional criteria met",
            next_steps=build_next_steps(True, setup),
            warnings=build_warnings(correlation, fundamental, direction),
            pattern_tags=tags,
            originating_timeframe=mtf.order[-1],
            technical_confidence=technical.confidence,
            justification=build_justification(
                mtf, setup, probability, technical, fundamental, tags
            )
        )
        logger.info(
            f"{pair} APPROVED {direction.value} {setup.order_kind.value} @ {setup.entry} "
            f"(probability {probability.overall:.0f}%)"
        )
        return decision

    def _reject(
        self,
        pair: str,
        criteria: List[CriterionCheck],
        technical: TechnicalEstimate,
        reason: str,
        confluence: Optional[ConfluenceScore] = None
    ) -> Decision:
        failed = [c.name for c in criteria if not c.passed]
        logger.info(f"{pair} REJECTED: {reason}")
        return Decision(
            status=DecisionStatus.REJECTED,
            pair=pair,
            criteria=list(criteria),
            confluence_score=confluence.score if confluence else 0,
            failed_criteria=failed,
            reason=reason,
            recommendations=build_recommendations(failed, technical),
            next_steps=build_next_steps(False),
            technical_confidence=technical.confidence
        )
