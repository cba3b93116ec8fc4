"""
Unit tests for the command-line entry point
"""

import argparse
import json
import logging
from datetime import datetime, timedelta, timezone

import pytest

from smc_fusion.data.frames import frame_from_candles
from smc_fusion.main import _parse_data_args, main
from smc_fusion.models.candle import Candle

TIMEFRAMES = ["4h", "1h", "15m", "5m"]


@pytest.fixture
def config_dir(tmp_path):
    """Config directory whose logs and weights stay inside tmp_path"""
    directory = tmp_path / "configs"
    directory.mkdir()
    (directory / "pipeline_config.yaml").write_text(
        "profile: balanced\n"
        "learner:\n"
        f"  weights_path: {tmp_path / 'weights.json'}\n"
        "logging:\n"
        "  log_level: INFO\n"
        f"  log_dir: {tmp_path / 'logs'}\n",
        encoding="utf-8",
    )
    return directory


@pytest.fixture
def csv_args(tmp_path):
    base_time = datetime(2025, 1, 1, tzinfo=timezone.utc)
    candles = [
        Candle(base_time + timedelta(minutes=5 * i), 1.085, 1.0855, 1.0845, 1.085, 300.0)
        for i in range(60)
    ]
    args = []
    for tf in TIMEFRAMES:
        path = tmp_path / f"eurusd_{tf}.csv"
        frame_from_candles(candles).to_csv(path)
        args += ["--data", f"{tf}={path}"]
    return args


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.WARNING)


class TestParseDataArgs:
    def test_pairs(self):
        assert _parse_data_args(["4h=a.csv", " 5m = b.csv "]) == {"4h": "a.csv", "5m": "b.csv"}

    @pytest.mark.parametrize("value", ["4h", "=a.csv", "4h="])
    def test_malformed(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            _parse_data_args([value])


class TestMain:
    """Test exit codes and JSON output"""

    def test_rejected_decision_printed(self, config_dir, csv_args, capsys):
        code = main(["EURUSD", "--config-dir", str(config_dir), *csv_args,
                     "--technical", "70", "--direction", "BUY"])

        assert code == 2
        decision = json.loads(capsys.readouterr().out)
        assert decision["pair"] == "EURUSD"
        assert decision["status"] == "REJECTED"
        assert "confluence" in decision["failed_criteria"]

    def test_missing_timeframe_fails(self, config_dir, csv_args):
        assert main(["EURUSD", "--config-dir", str(config_dir), *csv_args[:6]]) == 1

    def test_unknown_profile_fails(self, config_dir, csv_args):
        assert main(["EURUSD", "--config-dir", str(config_dir), *csv_args, "--profile", "yolo"]) == 1

    def test_malformed_data_argument_fails(self, config_dir):
        assert main(["EURUSD", "--config-dir", str(config_dir), "--data", "4h"]) == 1
