"""
Invariant Harness - Replays scenarios and flags illegal transitions.

Each scenario is a ratio sequence for a single unit. The harness watches
every step for transitions the state machine must never make:

- ACTIVE_TO_CANDIDATE_ILLEGAL: ACTIVE skipped CLEARED on the way down
- ACTIVE_TO_NONE_ILLEGAL: same, straight to NONE
- COOLDOWN_OVERRANGE: cooldown_left above the configured window
"""

from __future__ import annotations

import json
import logging

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..decision.engine import decide
from ..types import HysteresisParams, UnitState, UnitStatus

logger = logging.getLogger(__name__)

REPORT_VERSION = 1


@dataclass(frozen=True, slots=True)
class Violation:
    index: int
    rule: str

    def to_dict(self) -> dict[str, Any]:
        return {"idx": self.index, "rule": self.rule}


@dataclass
class ScenarioOutcome:
    """Outcome of one harness scenario."""

    scenario_id: str
    description: str
    final_state: UnitStatus
    transitions: list[dict[str, Any]] = field(default_factory=list)
    violations: list[Violation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.scenario_id,
            "description": self.description,
            "final_state": self.final_state.value,
            "transitions": self.transitions,
            "illegal_rules": [v.to_dict() for v in self.violations],
        }


def check_sequence(
    params: HysteresisParams,
    ratios: list[float],
    scenario_id: str = "adhoc",
    description: str = "",
) -> ScenarioOutcome:
    """Replay one ratio sequence, recording transitions and violations."""
    state: UnitState | None = None
    outcome = ScenarioOutcome(
        scenario_id=scenario_id,
        description=description,
        final_state=UnitStatus.NONE,
    )

    for index, ratio in enumerate(ratios):
        previous = state
        transition = decide(params, previous, ratio, unit_id=scenario_id)
        state = transition.state

        if previous is not None and previous.state == UnitStatus.ACTIVE:
            if state.state == UnitStatus.CANDIDATE:
                outcome.violations.append(Violation(index, "ACTIVE_TO_CANDIDATE_ILLEGAL"))
            elif state.state == UnitStatus.NONE:
                outcome.violations.append(Violation(index, "ACTIVE_TO_NONE_ILLEGAL"))

        if state.cooldown_left > params.cooldown_snapshots_after_exit:
            outcome.violations.append(Violation(index, "COOLDOWN_OVERRANGE"))

        for event_type, reason in transition.events:
            outcome.transitions.append({
                "idx": index,
                "ratio": ratio,
                "type": event_type.value,
                "reason": reason.value if reason else None,
            })

    if state is not None:
        outcome.final_state = state.state
    return outcome


def run_harness(params: HysteresisParams, scenarios: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Run every scenario and build a report.

    Args:
        params: Hysteresis parameters
        scenarios: List of {id, description, sequence}

    Returns:
        Report with scenario_count, illegal_transition_events and results
    """
    results = []
    for position, scenario in enumerate(scenarios):
        results.append(check_sequence(
            params,
            [float(r) for r in scenario.get("sequence", [])],
            scenario_id=str(scenario.get("id", f"S{position + 1}")),
            description=str(scenario.get("description", "")),
        ))

    illegal_total = sum(len(r.violations) for r in results)
    if illegal_total:
        logger.warning(f"Harness found {illegal_total} illegal transitions")
    else:
        logger.info(f"Harness passed {len(results)} scenarios")

    return {
        "version": REPORT_VERSION,
        "generated_utc": datetime.now(timezone.utc).isoformat(),
        "scenario_count": len(results),
        "illegal_transition_events": illegal_total,
        "results": [r.to_dict() for r in results],
    }


def load_scenarios(path: str) -> list[dict[str, Any]]:
    """
    Load scenarios from a JSON file holding ``{"scenarios": [...]}`` or a
    bare list.
    """
    with open(Path(path), encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("scenarios", [])
    if not isinstance(data, list):
        raise ValueError(f"scenario file {path} must hold a list of scenarios")

    for position, scenario in enumerate(data, start=1):
        if not isinstance(scenario, dict):
            raise ValueError(f"scenario #{position} in {path} must be an object")
        sequence = scenario.get("sequence", [])
        if not isinstance(sequence, list) or not all(
            isinstance(r, (int, float)) and not isinstance(r, bool) for r in sequence
        ):
            raise ValueError(f"scenario #{position} in {path} must have a numeric sequence")
    return data
