"""
Unit tests for SignalPipeline.

Tests verify:
- Single evaluation end to end from raw candles
- Concurrent batch evaluation keeps request order
- Outcome feedback updates weights and the loss counter once per trade, also under concurrent delivery
- Persistent learner built from configuration
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from smc_fusion.config.settings import LearnerParams, PipelineConfig
from smc_fusion.core.exceptions import MarketDataError
from smc_fusion.models.candle import Candle
from smc_fusion.models.learning import TradeResult
from smc_fusion.models.signals import Decision, DecisionStatus, TechnicalEstimate
from smc_fusion.models.structures import Direction
from smc_fusion.pipeline import EvaluationRequest, SignalPipeline

TIMEFRAMES = ["4h", "1h", "15m", "5m"]


def create_test_candle(index, price=1.0850) -> Candle:
    base_time = datetime(2025, 1, 1, tzinfo=timezone.utc)
    return Candle(
        timestamp=base_time + timedelta(minutes=5 * index),
        open=price,
        high=price + 0.0005,
        low=price - 0.0005,
        close=price,
        volume=250.0,
    )


def flat_market_data(count: int = 60):
    candles = [create_test_candle(i) for i in range(count)]
    return {tf: candles for tf in TIMEFRAMES}


def approved_decision(pair="EURUSD") -> Decision:
    return Decision(
        status=DecisionStatus.APPROVED,
        pair=pair,
        direction=Direction.BUY,
        pattern_tags=["BULLISH_SWEEP", "BULLISH_OB"],
        originating_timeframe="5m",
        technical_confidence=70.0,
    )


@pytest.fixture
def pipeline():
    return SignalPipeline()


class TestEvaluate:
    """Test single-pair evaluation"""

    def test_flat_market_without_direction(self, pipeline):
        decision = pipeline.evaluate("EURUSD", flat_market_data())

        assert decision.status is DecisionStatus.REJECTED
        assert decision.failed_criteria == ["trade_direction"]

    def test_flat_market_lacks_confluence(self, pipeline):
        decision = pipeline.evaluate(
            "EURUSD", flat_market_data(), TechnicalEstimate(70.0, Direction.BUY)
        )

        assert not decision.approved
        assert "confluence" in decision.failed_criteria
        assert decision.recommendations

    def test_missing_timeframe(self, pipeline):
        data = flat_market_data()
        del data["15m"]
        with pytest.raises(MarketDataError):
            pipeline.evaluate("EURUSD", data)

    def test_empty_execution_series(self, pipeline):
        data = flat_market_data()
        data["5m"] = []
        decision = pipeline.evaluate("EURUSD", data, TechnicalEstimate(70.0, Direction.BUY))

        assert decision.failed_criteria == ["market_data"]

    def test_technical_estimate_uses_learned_model_weights(self, pipeline):
        estimate = pipeline.technical_estimate(
            {"random_forest": 70.0, "gradient_boosting": 60.0, "lstm": 80.0}
        )
        assert estimate.direction is Direction.BUY
        assert estimate.probability == pytest.approx(70.0)


class TestEvaluateMany:
    """Test concurrent batch evaluation"""

    @pytest.mark.asyncio
    async def test_results_keep_request_order(self, pipeline):
        requests = [
            EvaluationRequest("EURUSD", flat_market_data()),
            EvaluationRequest("GBPUSD", flat_market_data(), TechnicalEstimate(70.0, Direction.BUY)),
            EvaluationRequest("USDJPY", flat_market_data()),
        ]
        decisions = await pipeline.evaluate_many(requests)

        assert [d.pair for d in decisions] == ["EURUSD", "GBPUSD", "USDJPY"]
        assert decisions[0].failed_criteria == ["trade_direction"]
        assert "confluence" in decisions[1].failed_criteria

    @pytest.mark.asyncio
    async def test_failing_request_propagates(self, pipeline):
        requests = [
            EvaluationRequest("EURUSD", flat_market_data()),
            EvaluationRequest("GBPUSD", {"4h": []}),
        ]
        with pytest.raises(MarketDataError):
            await pipeline.evaluate_many(requests)

    @pytest.mark.asyncio
    async def test_empty_batch(self, pipeline):
        assert await pipeline.evaluate_many([]) == []


class TestRecordOutcome:
    """Test the learning feedback loop"""

    def test_loss_updates_weights_and_counter(self, pipeline):
        state = pipeline.record_outcome(approved_decision(), TradeResult.LOSS, trade_id="t-1")

        assert state.patterns["BULLISH_SWEEP"] == pytest.approx(0.95)
        assert state.patterns["BULLISH_OB"] == pytest.approx(0.95)
        assert state.timeframes["5m"] == pytest.approx(0.95)
        assert pipeline.engine.consecutive_losses == 1
        assert pipeline.weights.patterns["BULLISH_OB"] == pytest.approx(0.95)

    def test_replayed_trade_is_ignored(self, pipeline):
        pipeline.record_outcome(approved_decision(), TradeResult.LOSS, trade_id="t-1")
        state = pipeline.record_outcome(approved_decision(), TradeResult.LOSS, trade_id="t-1")

        assert state.patterns["BULLISH_OB"] == pytest.approx(0.95)
        assert pipeline.engine.consecutive_losses == 1

    def test_concurrent_duplicate_loss_counts_once(self, pipeline):
        barrier = threading.Barrier(2)
        decision = approved_decision()

        def deliver():
            barrier.wait()
            pipeline.record_outcome(decision, TradeResult.LOSS, trade_id="t-dup")

        threads = [threading.Thread(target=deliver) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert pipeline.engine.consecutive_losses == 1
        assert pipeline.weights.patterns["BULLISH_OB"] == pytest.approx(0.95)

    def test_breakeven_leaves_counter(self, pipeline):
        pipeline.record_outcome(approved_decision(), TradeResult.LOSS, trade_id="t-1")
        pipeline.record_outcome(approved_decision(), TradeResult.BREAKEVEN, trade_id="t-2")

        assert pipeline.engine.consecutive_losses == 1

    def test_loss_streak_pauses_signals(self, pipeline):
        for i in range(3):
            pipeline.record_outcome(approved_decision(), TradeResult.LOSS, trade_id=f"t-{i}")

        decision = pipeline.evaluate("EURUSD", flat_market_data(), TechnicalEstimate(70.0, Direction.BUY))
        assert decision.failed_criteria == ["consecutive_losses"]

    def test_rejected_decision_cannot_be_recorded(self, pipeline):
        rejected = Decision(status=DecisionStatus.REJECTED, pair="EURUSD")
        with pytest.raises(ValueError):
            pipeline.record_outcome(rejected, TradeResult.WIN)


class TestFromConfig:
    def test_persistent_learner(self, tmp_path):
        config = PipelineConfig(learner=LearnerParams(weights_path="state/weights.json"))
        pipeline = SignalPipeline.from_config(config, base_dir=tmp_path)
        pipeline.record_outcome(approved_decision(), TradeResult.WIN, trade_id="t-1")

        assert (tmp_path / "state" / "weights.json").exists()

        restarted = SignalPipeline.from_config(config, base_dir=tmp_path)
        assert restarted.weights.patterns["BULLISH_SWEEP"] == pytest.approx(1.05)
        assert restarted.learner.has_applied("t-1")
