"""
Signal pipeline orchestrator

Composes StructureDetector -> MultiTimeframeAggregator -> DecisionFusionEngine
for one pair per call, injecting the learner's current weights, and routes
closed-trade outcomes back to the learner.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from smc_fusion.analysis.multi_timeframe import MultiTimeframeAggregator
from smc_fusion.analysis.structure import StructureDetector
from smc_fusion.config.settings import PipelineConfig
from smc_fusion.decision.engine import DecisionFusionEngine
from smc_fusion.learning.learner import AdaptiveWeightLearner
from smc_fusion.learning.store import WeightStore
from smc_fusion.models.candle import Candle
from smc_fusion.models.learning import TradeResult, WeightState
from smc_fusion.models.signals import (
    CorrelationVerdict,
    Decision,
    FundamentalBias,
    TechnicalEstimate,
)
from smc_fusion.utils.logger import PipelineLogger, log_execution_time



@dataclass(frozen=True)
class EvaluationRequest:
    """One pair to evaluate in a batch."""
    pair: str
    market_data: Mapping[str, Sequence[Candle]]
    technical: Optional[TechnicalEstimate] = None
    fundamental: Optional[FundamentalBias] = None
    correlation: Optional[CorrelationVerdict] = None


class SignalPipeline:
    """
    End-to-end signal generation for one or many pairs.

    Evaluations share no mutable state apart from the learner (locked) and
    the engine's consecutive-loss counter (locked), so pairs can be
    evaluated concurrently.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        learner: Optional[AdaptiveWeightLearner] = None
    ):
        """
        Args:
            config: Pipeline configuration (defaults when None)
            learner: Weight learner; an in-memory learner with default
                weights when None
        """
        self.config = config or PipelineConfig()
        self.detector = StructureDetector(self.config.detector)
        self.aggregator = MultiTimeframeAggregator(self.config.timeframes, self.detector)
        self.engine = DecisionFusionEngine(self.config.thresholds, self.config.gate)
        self.learner = learner or AdaptiveWeightLearner(params=self.config.learner)

    @classmethod
    def from_config(cls, config: PipelineConfig, base_dir: Optional[Path] = None) -> "SignalPipeline":
        """Build a pipeline whose learner persists to `config.learner.weights_path`."""
        path = Path(config.learner.weights_path)
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        learner = AdaptiveWeightLearner(store=WeightStore(path), params=config.learner)
        return cls(config, learner)

    @property
    def weights(self) -> WeightState:
        return self.learner.state

    def technical_estimate(self, model_probabilities: Mapping[str, float]) -> TechnicalEstimate:
        """Blend per-model up-move probabilities with the learned model weights."""
        return TechnicalEstimate.from_models(model_probabilities, self.weights.models)

    def evaluate(
        self,
        pair: str,
        market_data: Mapping[str, Sequence[Candle]],
        technical: Optional[TechnicalEstimate] = None,
        fundamental: Optional[FundamentalBias] = None,
        correlation: Optional[CorrelationVerdict] = None
    ) -> Decision:
        """
        Run one full analysis cycle for `pair`.

        Raises:
            MarketDataError: If a configured timeframe is absent from market_data
        """
        with log_execution_time(f"{pair} evaluation"):
            mtf = self.aggregator.analyze(market_data)
            decision = self.engine.evaluate(
                pair,
                mtf,
                market_data,
                technical=technical,
                fundamental=fundamental,
                correlation=correlation,
                weights=self.weights
            )

        PipelineLogger.log_signal("DECISION", {
            "pair": pair,
            "status": decision.status.value,
            "direction": decision.direction.value if decision.direction else None,
            "entry": decision.setup.entry if decision.setup else None,
            "stop_loss": decision.setup.stop_loss if decision.setup else None,
            "take_profit": decision.setup.take_profit if decision.setup else None,
            "probability": decision.probability.overall if decision.probability else None,
            "confluence": decision.confluence_score,
            "failed_criteria": decision.failed_criteria,
        })
        return decision

    async def evaluate_many(self, requests: Sequence[EvaluationRequest]) -> List[Decision]:
        """
        Evaluate several pairs concurrently in worker threads.

        Results keep the order of `requests`. A failing request propagates
        its exception.
        """
        tasks = [
            asyncio.to_thread(
                self.evaluate,
                request.pair,
                request.market_data,
                request.technical,
                request.fundamental,
                request.correlation
            )
            for request in requests
        ]
        return list(await asyncio.gather(*tasks))

    def record_outcome(
        self,
        decision: Decision,
        result: TradeResult,
        trade_id: Optional[str] = None
    ) -> WeightState:
        """
        Feed a closed trade back into the learner and the loss counter.

        The loss counter moves only when the learner applied the outcome, so
        a trade_id delivered more than once (even concurrently) counts once.

        Raises:
            ValueError: If the decision was not approved
        """
        outcome = decision.to_outcome(result, trade_id)
        state, applied = self.learner.apply_outcome(outcome)
        if not applied:
            return state

        losses = self.engine.record_trade_result(result)

        PipelineLogger.log_signal("OUTCOME_RECORDED", {
            "pair": decision.pair,
            "trade_id": trade_id,
            "result": result.value,
            "timeframe": outcome.originating_timeframe,
            "patterns": outcome.pattern_tags,
            "consecutive_losses": losses,
        })
        return state
