"""
Configuration management with a YAML file and environment overrides
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from smc_fusion.config.profiles import apply_profile, load_profile_from_name
from smc_fusion.config.settings import PipelineConfig
from smc_fusion.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "pipeline_config.yaml"

# Environment variable -> (section, key); section None means top level
ENV_OVERRIDES = {
    "SMC_LOG_LEVEL": ("logging", "log_level"),
    "SMC_LOG_DIR": ("logging", "log_dir"),
    "SMC_WEIGHTS_PATH": ("learner", "weights_path"),
    "SMC_PROFILE": (None, "profile"),
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """
    Loads the pipeline configuration

    Priority: environment > pipeline_config.yaml > profile preset > defaults.
    The profile preset (strict / balanced / relaxed) is applied first so that
    thresholds written explicitly in the YAML file still win.
    """

    def __init__(self, config_dir: str = "configs"):
        path = Path(config_dir)
        if not path.is_absolute():
            # Resolve against the project root regardless of working directory
            path = Path(__file__).resolve().parent.parent.parent / path
        self.config_dir = path
        self._config: Optional[PipelineConfig] = None

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILENAME

    @property
    def config(self) -> PipelineConfig:
        """Loaded configuration (loaded on first access)."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self) -> PipelineConfig:
        """
        Load and validate the configuration

        Returns:
            PipelineConfig with profile, file and environment applied

        Raises:
            ConfigurationError: If the YAML is malformed, the profile is
                unknown, or a value violates the schema
        """
        data = self._read_yaml()
        data = self._apply_env_overrides(data)

        profile_name = data.get("profile", "balanced")
        try:
            profile = load_profile_from_name(str(profile_name))
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        data["profile"] = profile.value

        try:
            base = apply_profile(PipelineConfig(), profile)
            config = PipelineConfig.model_validate(_deep_merge(base.model_dump(), data))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid pipeline configuration: {e}") from e

        logger.debug(
            f"Configuration loaded: profile={config.profile}, timeframes={config.timeframes}"
        )
        return config

    def _read_yaml(self) -> Dict[str, Any]:
        if not self.config_file.exists():
            logger.info(f"No {CONFIG_FILENAME} in {self.config_dir}, using defaults")
            return {}

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse {self.config_file}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"{self.config_file} must contain a mapping, got {type(data).__name__}"
            )
        return data

    @staticmethod
    def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(data)
        for env_var, (section, key) in ENV_OVERRIDES.items():
            value = os.getenv(env_var)
            if not value:
                continue
            if section is None:
                data[key] = value
            else:
                current = data.get(section) or {}
                if not isinstance(current, dict):
                    raise ConfigurationError(f"Section '{section}' must be a mapping")
                data[section] = {**current, key: value}
            logger.debug(f"{env_var} overrides {section + '.' if section else ''}{key}")
        return data
