"""
State Store - Persists per-unit hysteresis state between engine runs.

The whole map is written at the end of a run, never per snapshot.
File format (schema_version 1):

    {
      "schema_version": 1,
      "updated_at": "2025-08-13T10:00:00",
      "units": {
        "U1": {"state": "ACTIVE", "consecutive": 0, "cooldown_left": 0,
               "last_ratio": 0.45, "last_timestamp": "2025-08-13T09:00:00Z"}
      }
    }

An unversioned flat map ``{unit: {state, consecutive, cooldownLeft,
lastRatio, lastTs}}`` is read as schema version 0.
"""

import json
import logging
import os
import tempfile

from datetime import datetime
from pathlib import Path
from typing import Any

from ..exceptions import StateCorruptionError
from ..types import STATE_SCHEMA_VERSION, UnitState

logger = logging.getLogger(__name__)

_LEGACY_KEYS = {
    "cooldownLeft": "cooldown_left",
    "lastRatio": "last_ratio",
    "lastTs": "last_timestamp",
}


class StateStore:
    """
    JSON-file store for the unit state map.

    At most one writer per file is assumed; concurrent runs against the
    same path need an external lock.

    Usage:
        store = StateStore("./artifacts/hysteresis-state.json")
        states = store.load()
        store.save(states)
    """

    def __init__(self, path: str):
        """
        Initialize the state store.

        Args:
            path: Location of the state file
        """
        self.path = Path(path)

    def load(self) -> dict[str, UnitState]:
        """
        Load the persisted state map.

        Returns:
            Mapping of unit_id to UnitState; empty if the file is absent.

        Raises:
            StateCorruptionError: If the file cannot be parsed or holds an
                unsupported schema version or invalid records.
        """
        if not self.path.exists():
            return {}

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StateCorruptionError(f"cannot read state file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StateCorruptionError(f"state file {self.path} must contain an object")

        units = self._extract_units(data)

        states: dict[str, UnitState] = {}
        for unit_id, record in units.items():
            if not isinstance(record, dict):
                raise StateCorruptionError(f"state record for {unit_id!r} is not an object")
            try:
                states[unit_id] = UnitState.from_dict(unit_id, record)
            except (KeyError, TypeError, ValueError) as e:
                raise StateCorruptionError(
                    f"invalid state record for {unit_id!r}: {e}"
                ) from e

        logger.debug(f"Loaded {len(states)} unit states from {self.path}")
        return states

    def save(self, states: dict[str, UnitState]) -> None:
        """
        Overwrite the state file with the full map.

        Writes to a temporary file in the same directory and renames it
        over the target, so readers never see a half-written file.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        document = {
            "schema_version": STATE_SCHEMA_VERSION,
            "updated_at": datetime.now().isoformat(),
            "units": {
                unit_id: states[unit_id].to_dict() for unit_id in sorted(states)
            },
        }

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Saved {len(states)} unit states to {self.path}")

    def _extract_units(self, data: dict[str, Any]) -> dict[str, Any]:
        """Return the unit map, migrating the unversioned layout."""
        if "schema_version" not in data:
            logger.info(f"State file {self.path} has no schema_version, reading as legacy")
            return {
                unit_id: _migrate_legacy_record(record)
                for unit_id, record in data.items()
            }

        version = data["schema_version"]
        if version != STATE_SCHEMA_VERSION:
            raise StateCorruptionError(
                f"unsupported state schema_version {version!r} in {self.path}"
            )

        units = data.get("units", {})
        if not isinstance(units, dict):
            raise StateCorruptionError(f"'units' in {self.path} must be an object")
        return units


def _migrate_legacy_record(record: Any) -> Any:
    if not isinstance(record, dict):
        return record
    migrated = {_LEGACY_KEYS.get(key, key): value for key, value in record.items()}
    # Legacy stall tracking is folded back into ACTIVE
    if migrated.get("state") == "STALLED":
        migrated["state"] = "ACTIVE"
    return migrated
