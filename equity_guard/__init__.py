"""
Equity Guard - Hysteresis-based under-served unit detection.

Ingests periodic equity ratio observations per unit and decides, in a
noise-resistant way, whether each unit should be flagged as under-served.
This is a decision system, not a reporting dashboard.

Quick Start:
    >>> from equity_guard import EquityGuard
    >>> guard = EquityGuard()
    >>> summary = guard.run([{"unit_id": "U1", "timestamp": "2025-08-13T09:00:00Z", "ratio": 0.45}])
    >>> print(summary.events_emitted)

For the pure decision function:
    >>> from equity_guard.decision import decide
    >>> from equity_guard.types import HysteresisParams
    >>> transition = decide(params, None, 0.58, unit_id="U1")

Key Components:
    - EquityGuard: Engine driver (load state, replay, persist)
    - DecisionEngine / decide: Pure hysteresis state machine
    - HysteresisParams: Validated threshold parameters
    - UnitState / TransitionEvent: Persisted state and event records

Design Principles:
    - Debounce: borderline readings must repeat before a unit is flagged
    - Hysteresis: exit threshold sits above the entry thresholds
    - Cooldown: borderline re-entry is disarmed for a while after exit
    - Severe readings always act immediately

Author: Equity Guard Team
Version: 0.1.0
License: MIT
"""

from __future__ import annotations

__version__ = "0.1.0"
__author__ = "Equity Guard Team"
__license__ = "MIT"

# Configuration
from equity_guard.config import load_config, save_config
from equity_guard.exceptions import (
    ConfigurationError,
    MalformedSnapshotError,
    StateCorruptionWarning,
)

# Main orchestrator
from equity_guard.guard import EquityGuard
from equity_guard.types import (
    EventReason,
    EventType,
    GuardConfig,
    HysteresisParams,
    RatioBand,
    RunSummary,
    Snapshot,
    TransitionEvent,
    UnitState,
    UnitStatus,
)

__all__ = [
    # Errors
    "ConfigurationError",
    # Main class
    "EquityGuard",
    "EventReason",
    "EventType",
    # Configuration
    "GuardConfig",
    "HysteresisParams",
    "MalformedSnapshotError",
    "RatioBand",
    "RunSummary",
    "Snapshot",
    "StateCorruptionWarning",
    "TransitionEvent",
    "UnitState",
    # Types - Enums
    "UnitStatus",
    "__author__",
    "__license__",
    # Version info
    "__version__",
    "load_config",
    "save_config",
]
