"""
Pipeline configuration: schemas, threshold profiles
"""

from .profiles import DecisionProfile, apply_profile, load_profile_from_name
from .settings import (
    DetectorParams,
    FusionThresholds,
    GatePolicy,
    LearnerParams,
    LoggingSettings,
    PipelineConfig,
)

__all__ = [
    "DecisionProfile",
    "apply_profile",
    "load_profile_from_name",
    "DetectorParams",
    "FusionThresholds",
    "GatePolicy",
    "LearnerParams",
    "LoggingSettings",
    "PipelineConfig",
]
