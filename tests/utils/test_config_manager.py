"""
Unit tests for ConfigManager (YAML file, profile presets, environment overrides)
"""

import pytest

from smc_fusion.core.exceptions import ConfigurationError
from smc_fusion.utils.config_manager import ENV_OVERRIDES, ConfigManager


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host environment variables out of every test"""
    for env_var in ENV_OVERRIDES:
        monkeypatch.delenv(env_var, raising=False)


def write_config(tmp_path, text: str) -> ConfigManager:
    (tmp_path / 'pipeline_config.yaml').write_text(text, encoding='utf-8')
    return ConfigManager(str(tmp_path))


class TestConfigManager:
    """Test configuration loading"""

    def test_missing_file_uses_defaults(self, tmp_path):
        """Verify defaults are used when no YAML file exists"""
        config = ConfigManager(str(tmp_path / 'absent')).load()

        assert config.profile == 'balanced'
        assert config.timeframes == ['4h', '1h', '15m', '5m']
        assert config.thresholds.min_confluence == 3
        assert config.gate.hard_requirements == ['confluence']

    def test_bundled_config_loads(self):
        """Verify the shipped configs/pipeline_config.yaml is valid"""
        manager = ConfigManager()

        assert manager.config_file.exists()
        assert manager.config.profile == 'balanced'
        assert manager.config.detector.swing_lookback == 5

    def test_profile_applied_and_file_values_win(self, tmp_path):
        """Verify explicit thresholds override the profile preset"""
        manager = write_config(tmp_path, (
            "profile: Strict\n"
            "thresholds:\n"
            "  min_confluence: 4\n"
        ))
        config = manager.load()

        assert config.profile == 'strict'
        assert config.thresholds.min_confluence == 4
        assert config.thresholds.min_technical_confidence == 62.0
        assert config.gate.mandatory_min_passed == 4

    def test_empty_file(self, tmp_path):
        """Verify an empty YAML document means defaults"""
        assert write_config(tmp_path, '').load().profile == 'balanced'

    def test_env_overrides(self, tmp_path, monkeypatch):
        """Verify environment variables win over the file"""
        manager = write_config(tmp_path, (
            "profile: balanced\n"
            "logging:\n"
            "  log_level: INFO\n"
            "  log_dir: logs\n"
        ))
        monkeypatch.setenv('SMC_LOG_LEVEL', 'debug')
        monkeypatch.setenv('SMC_PROFILE', 'relaxed')
        monkeypatch.setenv('SMC_WEIGHTS_PATH', '/var/lib/smc/weights.json')

        config = manager.load()

        assert config.logging.log_level == 'DEBUG'
        assert config.logging.log_dir == 'logs'
        assert config.profile == 'relaxed'
        assert config.thresholds.min_confluence == 2
        assert config.learner.weights_path == '/var/lib/smc/weights.json'

    def test_config_is_cached(self, tmp_path):
        """Verify the config property loads once"""
        manager = write_config(tmp_path, "profile: balanced\n")
        assert manager.config is manager.config

    @pytest.mark.parametrize("text,match", [
        ("profile: [unclosed\n", "Failed to parse"),
        ("- just\n- a list\n", "must contain a mapping"),
        ("profile: aggressive\n", "Unknown profile name"),
        ("detector:\n  swing_lookback: 0\n", "Invalid pipeline configuration"),
        ("timeframes: ['4h']\n", "Invalid pipeline configuration"),
    ])
    def test_invalid_configuration(self, tmp_path, text, match):
        """Verify malformed files raise ConfigurationError"""
        with pytest.raises(ConfigurationError, match=match):
            write_config(tmp_path, text).load()
