"""
Pipeline configuration schemas

Pydantic models validating every tunable of the pipeline. Defaults are the
production thresholds (the BALANCED profile).
"""

from typing import List

from pydantic import BaseModel, Field, field_validator

MANDATORY_CRITERIA = ("confluence", "technical_confidence", "smart_money", "not_ranging")


class DetectorParams(BaseModel):
    """Structure detector parameters."""
    swing_lookback: int = Field(5, ge=1, le=50, description="Bars on each side of a swing point")
    equal_tolerance: float = Field(0.0015, gt=0.0, le=0.05, description="Equal highs/lows relative tolerance")
    premium_discount_lookback: int = Field(50, ge=5, le=1000, description="Trailing candles for the range")
    order_block_min_move: float = Field(0.005, gt=0.0, le=0.1, description="Minimum move after an order block")
    atr_period: int = Field(14, ge=2, le=200, description="ATR period for manipulation")
    manipulation_window: int = Field(20, ge=3, le=500, description="Trailing candles for manipulation ATR")
    manipulation_wick_multiple: float = Field(3.0, gt=0.0, le=20.0, description="Wick/ATR ratio flagging manipulation")
    void_body_multiple: float = Field(2.0, gt=0.0, le=20.0, description="Gap/avg-body ratio for liquidity voids")
    recent_bos: int = Field(3, ge=1, le=20, description="BOS events counted in the trend vote")
    recent_choch: int = Field(2, ge=1, le=20, description="CHoCH events counted in the trend vote")
    trend_margin: int = Field(2, ge=0, le=20, description="Vote margin required to call a trend")


class FusionThresholds(BaseModel):
    """Decision fusion thresholds."""
    min_confluence: int = Field(3, ge=0, le=7, description="Minimum confluence score")
    min_technical_confidence: float = Field(58.0, ge=0.0, le=100.0, description="Minimum technical confidence")
    min_smart_money_confidence: float = Field(50.0, ge=0.0, le=100.0, description="Alignment confidence confirming smart money")
    min_risk_reward: float = Field(2.0, ge=0.5, le=20.0, description="Minimum risk:reward")
    max_stop_loss_percent: float = Field(2.2, gt=0.0, le=20.0, description="Maximum stop distance, percent of entry")
    max_consecutive_losses: int = Field(3, ge=1, le=50, description="Consecutive losses before pausing")
    confluence_alignment_floor: float = Field(40.0, ge=0.0, le=100.0, description="Alignment confidence for a confluence point")
    confluence_volume_floor: float = Field(500.0, ge=0.0, description="Last-candle volume for a confluence point")
    confluence_technical_floor: float = Field(55.0, ge=0.0, le=100.0, description="Technical confidence for a confluence point")
    ranging_lookback: int = Field(20, ge=2, le=500, description="Coarse candles measured for ranging")
    ranging_min_percent: float = Field(0.5, ge=0.0, le=20.0, description="Range percent above which the market trends")
    fundamental_veto_confidence: float = Field(70.0, ge=0.0, le=100.0, description="Opposing fundamental confidence that vetoes")
    stop_fallback_percent: float = Field(1.5, gt=0.0, le=20.0, description="Stop distance without liquidity below/above")
    target_fallback_percent: float = Field(3.0, gt=0.0, le=50.0, description="Target distance without opposing liquidity")


class GatePolicy(BaseModel):
    """How criterion results fold into approve/reject."""
    mandatory_min_passed: int = Field(2, ge=0, le=4, description="Mandatory checks that must pass")
    hard_requirements: List[str] = Field(
        default_factory=lambda: ["confluence"],
        description="Mandatory checks that must pass regardless of the count"
    )
    overall_min_ratio: float = Field(0.5, ge=0.0, le=1.0, description="Share of all criteria that must pass")

    @field_validator("hard_requirements")
    @classmethod
    def _known_criteria(cls, value: List[str]) -> List[str]:
        unknown = [name for name in value if name not in MANDATORY_CRITERIA]
        if unknown:
            raise ValueError(
                f"Unknown hard requirements {unknown}; valid: {', '.join(MANDATORY_CRITERIA)}"
            )
        return value


class LearnerParams(BaseModel):
    """Adaptive weight learner parameters."""
    learning_rate: float = Field(0.05, gt=0.0, le=0.5, description="Fixed learning rate")
    weights_path: str = Field("data/weights.json", description="Persisted weight state file")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    log_level: str = Field("INFO", description="Root log level")
    log_dir: str = Field("logs", description="Directory for log files")

    @field_validator("log_level")
    @classmethod
    def _valid_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {value}")
        return level


class PipelineConfig(BaseModel):
    """Complete pipeline configuration."""
    timeframes: List[str] = Field(
        default_factory=lambda: ["4h", "1h", "15m", "5m"],
        description="Analyzed timeframes, coarsest first"
    )
    profile: str = Field("balanced", description="Threshold profile the config was built from")
    detector: DetectorParams = Field(default_factory=DetectorParams)
    thresholds: FusionThresholds = Field(default_factory=FusionThresholds)
    gate: GatePolicy = Field(default_factory=GatePolicy)
    learner: LearnerParams = Field(default_factory=LearnerParams)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("timeframes")
    @classmethod
    def _enough_timeframes(cls, value: List[str]) -> List[str]:
        if len(value) < 2:
            raise ValueError("At least two timeframes are required (coarsest two form the bias)")
        if len(set(value)) != len(value):
            raise ValueError(f"Duplicate timeframes: {value}")
        return value
