"""
JSON persistence for the adaptive weight state
"""

import json
import logging
import os
from pathlib import Path
from typing import Union

from smc_fusion.core.exceptions import WeightStateError
from smc_fusion.models.learning import WeightState

logger = logging.getLogger(__name__)


class WeightStore:
    """
    Reads and writes the WeightState as one JSON document.

    Writes go to a sibling temp file which then replaces the target, so a
    crash mid-write leaves the previous state intact.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load_strict(self) -> WeightState:
        """
        Load the persisted state.

        Raises:
            WeightStateError: If the file is missing, unreadable, or malformed
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise WeightStateError(f"Weight state not found: {self.path}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise WeightStateError(f"Cannot read weight state {self.path}: {e}") from e

        try:
            return WeightState.from_dict(data)
        except (ValueError, TypeError) as e:
            raise WeightStateError(f"Malformed weight state {self.path}: {e}") from e

    def load(self) -> WeightState:
        """Load the persisted state, falling back to defaults when missing or corrupt."""
        if not self.exists():
            logger.info(f"No weight state at {self.path}, starting from defaults")
            return WeightState.default()

        try:
            state = self.load_strict()
        except WeightStateError as e:
            logger.error(f"{e}. Falling back to default weights")
            return WeightState.default()

        logger.info(f"Weight state loaded from {self.path} (updated {state.last_updated.isoformat()})")
        return state

    def save(self, state: WeightState) -> None:
        """Persist atomically: write a temp file, then replace the target."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self.path)
        logger.debug(f"Weight state saved to {self.path}")
