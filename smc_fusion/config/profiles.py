"""
Decision Threshold Profiles

Pre-configured threshold and gating presets for different signal
frequency targets.

Profiles:
- STRICT: pre-relaxation thresholds, every mandatory check required
- BALANCED: production defaults (recommended)
- RELAXED: loose thresholds (testing only)
"""

import copy
from enum import Enum
from typing import Any, Dict

from smc_fusion.config.settings import MANDATORY_CRITERIA, PipelineConfig


class DecisionProfile(Enum):
    """Decision threshold profiles."""

    STRICT = "strict"
    BALANCED = "balanced"
    RELAXED = "relaxed"


_INFO_KEYS = ("description", "signal_frequency", "use_case")

# Profile parameter definitions
PROFILE_PARAMETERS = {
    DecisionProfile.STRICT: {
        "thresholds": {
            "min_technical_confidence": 62.0,
            "min_smart_money_confidence": 65.0,
            "min_risk_reward": 2.5,
            "max_stop_loss_percent": 1.8,
            "min_confluence": 5,
        },
        "gate": {
            "mandatory_min_passed": 4,
            "hard_requirements": list(MANDATORY_CRITERIA),
        },
        "description": "Strict thresholds - every mandatory check must pass",
        "signal_frequency": "rare",
        "use_case": "Live trading on a small account where every loss hurts",
    },
    DecisionProfile.BALANCED: {
        "thresholds": {
            "min_technical_confidence": 58.0,
            "min_smart_money_confidence": 50.0,
            "min_risk_reward": 2.0,
            "max_stop_loss_percent": 2.2,
            "min_confluence": 3,
        },
        "gate": {
            "mandatory_min_passed": 2,
            "hard_requirements": ["confluence"],
        },
        "description": "Two of four mandatory checks, confluence required",
        "signal_frequency": "regular",
        "use_case": "Default for live signal generation",
    },
    DecisionProfile.RELAXED: {
        "thresholds": {
            "min_technical_confidence": 52.0,
            "min_smart_money_confidence": 40.0,
            "min_risk_reward": 1.5,
            "max_stop_loss_percent": 3.0,
            "min_confluence": 2,
        },
        "gate": {
            "mandatory_min_passed": 2,
            "hard_requirements": [],
        },
        "description": "Loose thresholds, confluence not required",
        "signal_frequency": "frequent",
        "use_case": "Exercising the pipeline on synthetic or quiet data",
    },
}


def get_profile_parameters(profile: DecisionProfile) -> Dict[str, Dict[str, Any]]:
    """
    Threshold and gate overrides for `profile`, deep-copied so callers can
    mutate them.
    """
    try:
        entry = PROFILE_PARAMETERS[profile]
    except KeyError:
        raise ValueError(f"Unknown profile: {profile}") from None
    return {"thresholds": copy.deepcopy(entry["thresholds"]), "gate": copy.deepcopy(entry["gate"])}


def get_profile_info(profile: DecisionProfile) -> Dict[str, str]:
    """Human-readable description, signal frequency and intended use."""
    try:
        entry = PROFILE_PARAMETERS[profile]
    except KeyError:
        raise ValueError(f"Unknown profile: {profile}") from None
    return {key: entry[key] for key in _INFO_KEYS}


def load_profile_from_name(profile_name: str) -> DecisionProfile:
    """
    Resolve a case-insensitive profile name such as "strict" from YAML, the
    environment or the CLI.

    Raises:
        ValueError: If no profile has that name
    """
    try:
        return DecisionProfile(profile_name.strip().lower())
    except ValueError:
        names = ", ".join(p.value for p in DecisionProfile)
        raise ValueError(f"Unknown profile name: {profile_name!r} (expected one of {names})") from None


def apply_profile(config: PipelineConfig, profile: DecisionProfile) -> PipelineConfig:
    """
    Return a copy of `config` with the profile's thresholds and gate policy.

    Settings the profile does not name (detector, learner, logging and the
    remaining thresholds) are kept from `config`.
    """
    overrides = get_profile_parameters(profile)
    thresholds = config.thresholds.model_copy(update=overrides["thresholds"])
    gate = config.gate.model_copy(update=overrides["gate"])
    return config.model_copy(
        update={"thresholds": thresholds, "gate": gate, "profile": profile.value}
    )
