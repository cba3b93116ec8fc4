"""
Unit tests for WeightStore persistence
"""

import json
import logging

import pytest

from smc_fusion.core.exceptions import WeightStateError
from smc_fusion.learning.store import WeightStore
from smc_fusion.models.learning import WeightState


@pytest.fixture
def store(tmp_path):
    return WeightStore(tmp_path / "state" / "weights.json")


class TestWeightStore:
    """Test save/load and corruption handling"""

    def test_missing_file_gives_defaults(self, store):
        assert not store.exists()
        state = store.load()

        assert state.patterns == WeightState.default().patterns
        assert state.models == WeightState.default().models

    def test_missing_file_is_an_error_in_strict_mode(self, store):
        with pytest.raises(WeightStateError, match="not found"):
            store.load_strict()

    def test_save_then_load(self, store):
        state = WeightState.default()
        state.patterns["BULLISH_OB"] = 0.75
        state.timeframes["1h"] = 1.25
        state.remember_trade("t-9")

        store.save(state)
        loaded = store.load_strict()

        assert loaded.patterns["BULLISH_OB"] == 0.75
        assert loaded.timeframes["1h"] == 1.25
        assert loaded.applied_trade_ids == ["t-9"]
        assert loaded.last_updated == state.last_updated

    def test_save_leaves_no_temp_file(self, store):
        store.save(WeightState.default())

        assert store.exists()
        assert [p.name for p in store.path.parent.iterdir()] == ["weights.json"]

    def test_corrupt_json_falls_back(self, store, caplog):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{ not json", encoding="utf-8")

        with caplog.at_level(logging.ERROR):
            state = store.load()

        assert state.patterns["BULLISH_OB"] == 1.0
        assert "Falling back to default weights" in caplog.text

        with pytest.raises(WeightStateError):
            store.load_strict()

    @pytest.mark.parametrize("mutate", [
        lambda d: d["patterns"].update(BULLISH_OB=3.0),
        lambda d: d["models"].update(lstm=0.55),
        lambda d: d.pop("timeframes"),
        lambda d: d["timeframes"].update({"4h": "heavy"}),
    ])
    def test_invalid_contents_rejected(self, store, mutate):
        data = WeightState.default().to_dict()
        mutate(data)
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps(data), encoding="utf-8")

        with pytest.raises(WeightStateError, match="Malformed"):
            store.load_strict()

    def test_trade_id_window(self):
        state = WeightState.default()
        for i in range(1005):
            state.remember_trade(f"t-{i}")

        assert len(state.applied_trade_ids) == 1000
        assert state.applied_trade_ids[0] == "t-5"
