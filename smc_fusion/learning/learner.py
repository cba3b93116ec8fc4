"""
Adaptive Weight Learner

Moves timeframe, pattern and model weights toward what coincided with wins
and away from what coincided with losses, within fixed bounds.

Update rules for reward r (+1 WIN, -1 LOSS) and learning rate lr:
    - originating timeframe: w <- clamp(w + r*lr, 0.5, 1.5)
    - every cited pattern:   w <- clamp(w + r*lr, 0.5, 1.5)
    - every model:           w <- clamp(w * (1 + r*lr*confidence/100), 0.1, 0.6),
                             then renormalized to sum 1.0 inside the bounds
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Optional, Tuple

from smc_fusion.config.settings import LearnerParams
from smc_fusion.learning.store import WeightStore
from smc_fusion.learning.weights import clamp, normalize_model_weights
from smc_fusion.models.learning import (
    MODEL_WEIGHT_BOUNDS,
    PATTERN_WEIGHT_BOUNDS,
    TIMEFRAME_WEIGHT_BOUNDS,
    TradeOutcome,
    TradeResult,
    WeightState,
)

logger = logging.getLogger(__name__)


class AdaptiveWeightLearner:
    """
    Owner of the WeightState.

    `learn_from_outcome` is the only mutation path. It runs
    read-modify-normalize-persist as one critical section, so concurrent
    outcomes never overwrite each other's adjustment.
    """

    def __init__(
        self,
        store: Optional[WeightStore] = None,
        params: Optional[LearnerParams] = None,
        state: Optional[WeightState] = None
    ):
        """
        Args:
            store: Persistence target; None keeps the state in memory only
            params: Learner parameters (learning rate, weights path)
            state: Initial state; loaded from the store (or defaults) when None
        """
        self.params = params or LearnerParams()
        self.store = store
        self._lock = threading.Lock()

        if state is not None:
            self._state = state.snapshot()
        elif store is not None:
            self._state = store.load()
        else:
            self._state = WeightState.default()

    @property
    def learning_rate(self) -> float:
        return self.params.learning_rate

    @property
    def state(self) -> WeightState:
        """Independent copy of the current weights."""
        with self._lock:
            return self._state.snapshot()

    def has_applied(self, trade_id: str) -> bool:
        with self._lock:
            return trade_id in self._state.applied_trade_ids

    def learn_from_outcome(self, outcome: TradeOutcome) -> WeightState:
        """
        Apply one closed trade to the weights and persist them.

        PENDING and BREAKEVEN carry no learning signal. An outcome whose
        trade_id was already applied is ignored.

        Args:
            outcome: Closed trade with its feature attribution

        Returns:
            Snapshot of the weights after the update
        """
        state, _ = self.apply_outcome(outcome)
        return state

    def apply_outcome(self, outcome: TradeOutcome) -> Tuple[WeightState, bool]:
        """
        Same as `learn_from_outcome`, also reporting whether the weights changed.

        The replay check and the update happen under one lock, so of several
        concurrent deliveries of one trade_id exactly one reports True.

        Returns:
            (snapshot of the weights, True if this call applied the outcome)
        """
        with self._lock:
            if outcome.result in (TradeResult.PENDING, TradeResult.BREAKEVEN):
                logger.debug(f"No learning signal from {outcome.result.value} outcome")
                return self._state.snapshot(), False

            if outcome.trade_id and outcome.trade_id in self._state.applied_trade_ids:
                logger.warning(f"Outcome for trade {outcome.trade_id} already applied, ignoring replay")
                return self._state.snapshot(), False

            updated = self._apply(self._state.snapshot(), outcome)
            if self.store is not None:
                self.store.save(updated)
            self._state = updated
            return updated.snapshot(), True

    def _apply(self, state: WeightState, outcome: TradeOutcome) -> WeightState:
        reward = outcome.result.reward
        lr = self.learning_rate
        label = outcome.trade_id or outcome.originating_timeframe

        # 1. Originating timeframe
        tf = outcome.originating_timeframe
        old = state.timeframe_weight(tf)
        state.timeframes[tf] = clamp(old + reward * lr, TIMEFRAME_WEIGHT_BOUNDS)
        logger.info(f"[{label}] Timeframe {tf}: {old:.3f} -> {state.timeframes[tf]:.3f}")

        # 2. Every cited pattern, each once
        for tag in dict.fromkeys(outcome.pattern_tags):
            old = state.pattern_weight(tag)
            state.patterns[tag] = clamp(old + reward * lr, PATTERN_WEIGHT_BOUNDS)
            logger.info(f"[{label}] Pattern {tag}: {old:.3f} -> {state.patterns[tag]:.3f}")

        # 3. Models, scaled by the technical confidence at entry
        adjustment = reward * lr * outcome.technical_confidence / 100
        scaled = {
            name: clamp(weight * (1 + adjustment), MODEL_WEIGHT_BOUNDS)
            for name, weight in state.models.items()
        }
        new_models = normalize_model_weights(scaled, MODEL_WEIGHT_BOUNDS)
        changes = ", ".join(
            f"{name} {state.models[name]:.3f} -> {new_models[name]:.3f}" for name in new_models
        )
        logger.info(f"[{label}] Models: {changes}")
        state.models = new_models

        if outcome.trade_id:
            state.remember_trade(outcome.trade_id)
        state.last_updated = datetime.now(timezone.utc)
        return state
