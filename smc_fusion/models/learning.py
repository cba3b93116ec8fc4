"""
Learning data models: trade outcomes and the adaptive weight state
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

DEFAULT_TIMEFRAMES = ("4h", "1h", "15m", "5m")

DEFAULT_PATTERNS = (
    "BULLISH_SWEEP",
    "BEARISH_SWEEP",
    "BULLISH_OB",
    "BEARISH_OB",
    "BULLISH_BOS",
    "BEARISH_BOS",
    "BULLISH_CHOCH",
    "BEARISH_CHOCH",
)

DEFAULT_MODEL_WEIGHTS = {
    "random_forest": 0.30,
    "gradient_boosting": 0.35,
    "lstm": 0.35,
}

TIMEFRAME_WEIGHT_BOUNDS = (0.5, 1.5)
PATTERN_WEIGHT_BOUNDS = (0.5, 1.5)
MODEL_WEIGHT_BOUNDS = (0.1, 0.6)

# Replay protection window persisted with the weights
MAX_TRACKED_TRADE_IDS = 1000


class TradeResult(str, Enum):
    WIN = "WIN"
    LOSS = "LOSS"
    BREAKEVEN = "BREAKEVEN"
    PENDING = "PENDING"

    @property
    def reward(self) -> int:
        if self is TradeResult.WIN:
            return 1
        if self is TradeResult.LOSS:
            return -1
        return 0


@dataclass(frozen=True)
class TradeOutcome:
    """
    Closed-trade feedback consumed by the weight learner.

    Attributes:
        originating_timeframe: Timeframe the entry was taken on
        pattern_tags: Structural patterns cited by the decision (e.g. BULLISH_OB)
        technical_confidence: Technical estimate confidence at entry (0-100)
        result: WIN, LOSS, BREAKEVEN or PENDING
        trade_id: Optional identifier used to ignore replays
    """
    originating_timeframe: str
    pattern_tags: List[str]
    technical_confidence: float
    result: TradeResult
    trade_id: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class WeightState:
    """
    The only cross-cycle state of the pipeline.

    Attributes:
        timeframes: Timeframe -> weight in [0.5, 1.5]
        patterns: Pattern tag -> weight in [0.5, 1.5]
        models: Model name -> weight in [0.1, 0.6], summing to 1.0
        last_updated: Time of the last mutation
        applied_trade_ids: Most recent trade ids already learned from
    """
    timeframes: Dict[str, float] = field(
        default_factory=lambda: {tf: 1.0 for tf in DEFAULT_TIMEFRAMES}
    )
    patterns: Dict[str, float] = field(
        default_factory=lambda: {p: 1.0 for p in DEFAULT_PATTERNS}
    )
    models: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_MODEL_WEIGHTS))
    last_updated: datetime = field(default_factory=_utcnow)
    applied_trade_ids: List[str] = field(default_factory=list)

    @classmethod
    def default(cls) -> "WeightState":
        return cls()

    def snapshot(self) -> "WeightState":
        return copy.deepcopy(self)

    def timeframe_weight(self, timeframe: str) -> float:
        return self.timeframes.get(timeframe, 1.0)

    def pattern_weight(self, tag: str) -> float:
        return self.patterns.get(tag, 1.0)

    def remember_trade(self, trade_id: str) -> None:
        self.applied_trade_ids.append(trade_id)
        if len(self.applied_trade_ids) > MAX_TRACKED_TRADE_IDS:
            del self.applied_trade_ids[: len(self.applied_trade_ids) - MAX_TRACKED_TRADE_IDS]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timeframes": dict(self.timeframes),
            "patterns": dict(self.patterns),
            "models": dict(self.models),
            "last_updated": self.last_updated.isoformat(),
            "applied_trade_ids": list(self.applied_trade_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeightState":
        """
        Rebuild a state from its persisted form.

        Raises:
            ValueError: If a mapping is missing, not numeric, or out of bounds
        """
        if not isinstance(data, dict):
            raise ValueError("Weight state must be a JSON object")

        timeframes = _read_weights(data, "timeframes", TIMEFRAME_WEIGHT_BOUNDS)
        patterns = _read_weights(data, "patterns", PATTERN_WEIGHT_BOUNDS)
        models = _read_weights(data, "models", MODEL_WEIGHT_BOUNDS)
        if not models:
            raise ValueError("Weight state has no model weights")
        if abs(sum(models.values()) - 1.0) > 1e-6:
            raise ValueError(f"Model weights sum to {sum(models.values())}, expected 1.0")

        raw_updated = data.get("last_updated")
        last_updated = datetime.fromisoformat(raw_updated) if raw_updated else _utcnow()

        trade_ids = data.get("applied_trade_ids", [])
        if not isinstance(trade_ids, list):
            raise ValueError("applied_trade_ids must be a list")

        return cls(
            timeframes=timeframes,
            patterns=patterns,
            models=models,
            last_updated=last_updated,
            applied_trade_ids=[str(t) for t in trade_ids],
        )


def _read_weights(data: Dict[str, Any], key: str, bounds: tuple) -> Dict[str, float]:
    raw = data.get(key)
    if not isinstance(raw, dict):
        raise ValueError(f"Weight state is missing the '{key}' mapping")

    low, high = bounds
    weights = {}
    for name, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key}.{name} is not numeric: {value!r}")
        if not low - 1e-9 <= value <= high + 1e-9:
            raise ValueError(f"{key}.{name}={value} outside [{low}, {high}]")
        weights[str(name)] = float(value)
    return weights
