"""
Core type definitions for Equity Guard.

This module defines all data structures used throughout the system.
Design principles:
- Immutable where possible (frozen dataclasses)
- Explicit validation at construction time
- Serialization/deserialization with explicit methods
- No magic strings - all states are enums

Author: Equity Guard Team
"""

from __future__ import annotations

import logging
import math

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Final

from .exceptions import ConfigurationError, MalformedSnapshotError

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

STATE_SCHEMA_VERSION: Final[int] = 1

PARAMETER_KEYS: Final[tuple[str, ...]] = (
    "T_enter_major",
    "T_enter_standard",
    "T_exit",
    "consecutive_required_standard",
    "cooldown_snapshots_after_exit",
)


# =============================================================================
# ENUMS - Explicit states with no ambiguity
# =============================================================================

class UnitStatus(str, Enum):
    """
    Hysteresis state of a monitored unit.

    Lifecycle: NONE -> CANDIDATE -> ACTIVE -> CLEARED. A unit never
    leaves ACTIVE except through CLEARED.
    """

    NONE = "NONE"
    """No concern recorded."""

    CANDIDATE = "CANDIDATE"
    """Borderline readings are accumulating toward entry."""

    ACTIVE = "ACTIVE"
    """Flagged as under-served."""

    CLEARED = "CLEARED"
    """Recovered; re-entry via the standard path is gated by cooldown."""

    def __str__(self) -> str:
        return self.value

    @property
    def is_flagged(self) -> bool:
        """True if the unit currently counts as under-served."""
        return self == UnitStatus.ACTIVE


class RatioBand(str, Enum):
    """Classification of a single ratio against the entry thresholds."""

    SEVERE = "severe"
    BORDERLINE = "borderline"
    HEALTHY = "healthy"

    def __str__(self) -> str:
        return self.value


class EventType(str, Enum):
    """State transitions that are recorded in the event log."""

    ENTER = "ENTER"
    EXIT = "EXIT"
    REENTER = "REENTER"

    def __str__(self) -> str:
        return self.value


class EventReason(str, Enum):
    """Why a unit entered (or re-entered) ACTIVE."""

    SEVERE = "severe"
    """A single reading below T_enter_major."""

    CONSECUTIVE = "consecutive"
    """Enough consecutive borderline readings to confirm."""

    def __str__(self) -> str:
        return self.value


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True, slots=True)
class HysteresisParams:
    """
    Threshold parameters for the hysteresis decision engine.

    All five numeric fields are required. The exit threshold must sit at or
    above both entry thresholds so that a recovering unit has to cross a
    gap (the hysteresis band) before it is cleared.

    Attributes:
        t_enter_major: Severe threshold; below it a unit is flagged at once
        t_enter_standard: Borderline threshold; below it readings accumulate
        t_exit: Recovery threshold; at or above it an ACTIVE unit clears
        consecutive_required_standard: Borderline readings needed to enter
        cooldown_snapshots_after_exit: Snapshots after exit during which
            the borderline re-entry path is disarmed
        version: Optional label for the parameter set

    Raises:
        ConfigurationError: On any out-of-range or mis-ordered value.
    """

    MIN_THRESHOLD: ClassVar[float] = 0.0
    MAX_THRESHOLD: ClassVar[float] = 1.0

    t_enter_major: float
    t_enter_standard: float
    t_exit: float
    consecutive_required_standard: int
    cooldown_snapshots_after_exit: int
    version: str | None = None

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        self._validate_thresholds()
        self._validate_counters()
        self._validate_ordering()

    def _validate_thresholds(self) -> None:
        thresholds = [
            ("T_enter_major", self.t_enter_major),
            ("T_enter_standard", self.t_enter_standard),
            ("T_exit", self.t_exit),
        ]

        for name, value in thresholds:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{name} must be a number, got {value!r}")
            if not (self.MIN_THRESHOLD <= value <= self.MAX_THRESHOLD):
                raise ConfigurationError(
                    f"{name} must be between {self.MIN_THRESHOLD} and "
                    f"{self.MAX_THRESHOLD}, got {value}"
                )

    def _validate_counters(self) -> None:
        counters = [
            ("consecutive_required_standard", self.consecutive_required_standard, 1),
            ("cooldown_snapshots_after_exit", self.cooldown_snapshots_after_exit, 0),
        ]

        for name, value, minimum in counters:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
            if value < minimum:
                raise ConfigurationError(
                    f"{name} must be at least {minimum}, got {value}"
                )

    def _validate_ordering(self) -> None:
        if not (self.t_enter_major <= self.t_enter_standard <= self.t_exit):
            raise ConfigurationError(
                "thresholds must satisfy T_enter_major <= T_enter_standard <= T_exit, "
                f"got {self.t_enter_major} / {self.t_enter_standard} / {self.t_exit}"
            )

        if self.t_enter_standard == self.t_exit:
            logger.warning(
                "T_enter_standard equals T_exit. The hysteresis band is empty "
                "and units may flap at the threshold."
            )

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the external parameter key names."""
        data: dict[str, Any] = {
            "T_enter_major": self.t_enter_major,
            "T_enter_standard": self.t_enter_standard,
            "T_exit": self.t_exit,
            "consecutive_required_standard": self.consecutive_required_standard,
            "cooldown_snapshots_after_exit": self.cooldown_snapshots_after_exit,
        }
        if self.version is not None:
            data["version"] = self.version
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HysteresisParams:
        """
        Create parameters from a mapping with the external key names.

        Args:
            data: Mapping holding all five parameter keys.

        Returns:
            Validated HysteresisParams.

        Raises:
            ConfigurationError: If a key is missing or a value is invalid.
        """
        missing = [key for key in PARAMETER_KEYS if key not in data]
        if missing:
            raise ConfigurationError(
                f"missing required parameter(s): {', '.join(missing)}"
            )

        version = data.get("version")
        return cls(
            t_enter_major=data["T_enter_major"],
            t_enter_standard=data["T_enter_standard"],
            t_exit=data["T_exit"],
            consecutive_required_standard=data["consecutive_required_standard"],
            cooldown_snapshots_after_exit=data["cooldown_snapshots_after_exit"],
            version=str(version) if version is not None else None,
        )


@dataclass(slots=True)
class UnitState:
    """
    Persisted hysteresis state of one unit.

    Mutable because the engine driver updates the map entry in place after
    each decision. ``consecutive`` is only meaningful while CANDIDATE and
    ``cooldown_left`` only while CLEARED; both are kept at zero otherwise.

    Attributes:
        unit_id: Unique key of the monitored unit
        state: Current hysteresis state
        consecutive: Borderline readings seen in a row
        cooldown_left: Snapshots left before borderline re-entry is armed
        last_ratio: Ratio of the most recent snapshot
        last_timestamp: Timestamp of the most recent snapshot
    """

    unit_id: str
    state: UnitStatus = UnitStatus.NONE
    consecutive: int = 0
    cooldown_left: int = 0
    last_ratio: float | None = None
    last_timestamp: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the state store (unit_id is the map key)."""
        return {
            "state": self.state.value,
            "consecutive": self.consecutive,
            "cooldown_left": self.cooldown_left,
            "last_ratio": self.last_ratio,
            "last_timestamp": self.last_timestamp,
        }

    @classmethod
    def from_dict(cls, unit_id: str, data: dict[str, Any]) -> UnitState:
        """
        Deserialize from a state store record.

        Raises:
            KeyError: If the state field is missing.
            ValueError: If a field value is invalid.
        """
        consecutive = int(data.get("consecutive", 0))
        cooldown_left = int(data.get("cooldown_left", 0))
        if consecutive < 0 or cooldown_left < 0:
            raise ValueError(f"negative counter in state for unit {unit_id!r}")

        last_ratio = data.get("last_ratio")
        return cls(
            unit_id=unit_id,
            state=UnitStatus(data["state"]),
            consecutive=consecutive,
            cooldown_left=cooldown_left,
            last_ratio=float(last_ratio) if last_ratio is not None else None,
            last_timestamp=data.get("last_timestamp"),
        )


@dataclass(frozen=True, slots=True)
class Snapshot:
    """
    A single equity ratio observation for one unit.

    Produced by an external snapshot source and consumed exactly once.

    Attributes:
        unit_id: Unit the observation belongs to
        timestamp: ISO-8601 timestamp, kept as the source wrote it
        ratio: Equity ratio, lower means worse served
    """

    unit_id: str
    timestamp: str
    ratio: float

    @classmethod
    def from_dict(cls, data: Any) -> Snapshot:
        """
        Parse a snapshot record.

        Accepts ``unit``/``ts`` as aliases for ``unit_id``/``timestamp``.

        Raises:
            MalformedSnapshotError: If a field is missing or the ratio is
                not a finite number.
        """
        if not isinstance(data, dict):
            raise MalformedSnapshotError(f"snapshot must be an object, got {type(data).__name__}")

        unit_id = data.get("unit_id", data.get("unit"))
        timestamp = data.get("timestamp", data.get("ts"))
        ratio = data.get("ratio")

        if unit_id is None or unit_id == "":
            raise MalformedSnapshotError("snapshot is missing unit_id")
        if timestamp is None or timestamp == "":
            raise MalformedSnapshotError(f"snapshot for {unit_id!r} is missing timestamp")
        if ratio is None:
            raise MalformedSnapshotError(f"snapshot for {unit_id!r} is missing ratio")
        if isinstance(ratio, bool) or not isinstance(ratio, (int, float)):
            raise MalformedSnapshotError(f"snapshot for {unit_id!r} has non-numeric ratio {ratio!r}")
        try:
            value = float(ratio)
        except OverflowError as e:
            raise MalformedSnapshotError(f"snapshot for {unit_id!r} has out-of-range ratio") from e
        if not math.isfinite(value):
            raise MalformedSnapshotError(f"snapshot for {unit_id!r} has non-finite ratio")

        return cls(unit_id=str(unit_id), timestamp=str(timestamp), ratio=value)

    def to_dict(self) -> dict[str, Any]:
        return {"unit_id": self.unit_id, "timestamp": self.timestamp, "ratio": self.ratio}


@dataclass(frozen=True, slots=True)
class TransitionEvent:
    """
    A recorded state transition. Never mutated once created.

    Attributes:
        unit_id: Unit that transitioned
        timestamp: Timestamp of the snapshot that caused it
        ratio: Ratio of that snapshot
        type: ENTER, EXIT or REENTER
        reason: severe or consecutive for entries, None for EXIT
    """

    unit_id: str
    timestamp: str
    ratio: float
    type: EventType
    reason: EventReason | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the JSONL event log."""
        return {
            "unit_id": self.unit_id,
            "timestamp": self.timestamp,
            "ratio": self.ratio,
            "type": self.type.value,
            "reason": self.reason.value if self.reason else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransitionEvent:
        """
        Deserialize from an event log line.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If the line is not an object or an enum value is unknown.
        """
        if not isinstance(data, dict):
            raise ValueError(f"event must be an object, got {type(data).__name__}")

        reason = data.get("reason")
        return cls(
            unit_id=data["unit_id"],
            timestamp=data["timestamp"],
            ratio=float(data["ratio"]),
            type=EventType(data["type"]),
            reason=EventReason(reason) if reason else None,
        )


@dataclass(frozen=True, slots=True)
class Transition:
    """
    Outcome of one decision step, before it is bound to a unit and time.

    Attributes:
        state: The new unit state
        events: Event kinds emitted by this step as (type, reason) pairs
    """

    state: UnitState
    events: tuple[tuple[EventType, EventReason | None], ...] = ()


@dataclass(slots=True)
class RunSummary:
    """
    Summary of one engine run.

    Attributes:
        snapshots_processed: Snapshots fed through the decision function
        units_touched: Distinct units seen in this batch
        events_emitted: Events appended to the log by this run
        malformed_skipped: Records skipped because they were malformed
        state_recovered: True if a corrupt state store was discarded
    """

    snapshots_processed: int = 0
    units_touched: int = 0
    events_emitted: int = 0
    malformed_skipped: int = 0
    state_recovered: bool = False
    events: list[TransitionEvent] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshots_processed": self.snapshots_processed,
            "units_touched": self.units_touched,
            "events_emitted": self.events_emitted,
            "malformed_skipped": self.malformed_skipped,
            "state_recovered": self.state_recovered,
        }


@dataclass
class GuardConfig:
    """
    Configuration for Equity Guard.

    Configuration can be loaded from:
    - Python code (direct instantiation)
    - JSON or YAML file (via config.load_config)
    - Environment variable pointing to a config file

    Attributes:
        params: Hysteresis thresholds (required)
        state_path: Where the unit state map is persisted
        event_log_path: Where transition events are appended
    """

    params: HysteresisParams
    state_path: str = "./artifacts/hysteresis-state.json"
    event_log_path: str = "./artifacts/hysteresis-events.jsonl"

    def __post_init__(self) -> None:
        if not self.state_path:
            raise ConfigurationError("state_path cannot be empty")
        if not self.event_log_path:
            raise ConfigurationError("event_log_path cannot be empty")

    def to_dict(self) -> dict[str, Any]:
        """Serialize configuration to dictionary."""
        return {
            "parameters": self.params.to_dict(),
            "state_path": self.state_path,
            "event_log_path": self.event_log_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GuardConfig:
        """
        Create configuration from dictionary.

        Parameters may sit under a ``parameters`` key or at the top level.
        """
        raw_params = data.get("parameters", data)
        if not isinstance(raw_params, dict):
            raise ConfigurationError("parameters must be a mapping")

        kwargs: dict[str, Any] = {"params": HysteresisParams.from_dict(raw_params)}
        for key in ("state_path", "event_log_path"):
            if key in data:
                kwargs[key] = str(data[key])
        return cls(**kwargs)
