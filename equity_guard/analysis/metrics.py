"""
Metrics - Transition and state statistics over engine output.

Consumed by reporting: how often units enter and leave ACTIVE, how long
they sit in each state, which units are under-served right now, and how
evenly a resource is spread across units (equity index).
"""

from __future__ import annotations

import logging

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import numpy as np

from ..decision.engine import decide
from ..types import (
    EventReason,
    EventType,
    HysteresisParams,
    TransitionEvent,
    UnitState,
    UnitStatus,
)

logger = logging.getLogger(__name__)

EQUITY_INDEX_DECIMALS = 2


@dataclass
class SequenceReplay:
    """
    Result of running one unit's ratio sequence through the engine.

    Attributes:
        states: State after each step
        transitions: (index, ratio, type, reason) for each emitted event
    """

    states: list[UnitState] = field(default_factory=list)
    transitions: list[tuple[int, float, EventType, EventReason | None]] = field(
        default_factory=list
    )

    @property
    def final_state(self) -> UnitStatus:
        if not self.states:
            return UnitStatus.NONE
        return self.states[-1].state


def replay_sequence(
    params: HysteresisParams,
    ratios: Sequence[float],
    unit_id: str = "sequence",
) -> SequenceReplay:
    """Feed a ratio sequence for a single unit from a fresh state."""
    replay = SequenceReplay()
    state: UnitState | None = None
    for index, ratio in enumerate(ratios):
        transition = decide(params, state, ratio, unit_id=unit_id)
        state = transition.state
        replay.states.append(state)
        for event_type, reason in transition.events:
            replay.transitions.append((index, ratio, event_type, reason))
    return replay


def sequence_metrics(params: HysteresisParams, ratios: Sequence[float]) -> dict[str, Any]:
    """
    Transition metrics for one ratio sequence.

    Returns:
        Dictionary with total_snapshots, transitions, enters, reenters,
        exits, final_state, state_durations and state_distribution.
    """
    replay = replay_sequence(params, ratios)
    durations = {status.value: 0 for status in UnitStatus}
    for state in replay.states:
        durations[state.state.value] += 1

    kinds = Counter(event_type for _, _, event_type, _ in replay.transitions)
    total = len(ratios)

    return {
        "total_snapshots": total,
        "transitions": len(replay.transitions),
        "enters": kinds[EventType.ENTER],
        "reenters": kinds[EventType.REENTER],
        "exits": kinds[EventType.EXIT],
        "final_state": replay.final_state.value,
        "state_durations": durations,
        "state_distribution": _fractions(durations, total),
    }


def transition_counts(events: Iterable[TransitionEvent]) -> dict[str, int]:
    """Count logged events by type, including types with no events."""
    counts = {event_type.value: 0 for event_type in EventType}
    for event in events:
        counts[event.type.value] += 1
    return counts


def reason_counts(events: Iterable[TransitionEvent]) -> dict[str, int]:
    """Count entry events by reason."""
    counts = {reason.value: 0 for reason in EventReason}
    for event in events:
        if event.reason is not None:
            counts[event.reason.value] += 1
    return counts


def state_distribution(states: Iterable[UnitState]) -> dict[str, int]:
    """Number of units in each state."""
    counts = {status.value: 0 for status in UnitStatus}
    for state in states:
        counts[state.state.value] += 1
    return counts


def under_served(states: Mapping[str, UnitState]) -> list[dict[str, Any]]:
    """
    Units currently flagged as under-served, ordered by unit id.

    Returns:
        List of {unit_id, state, last_ratio, last_timestamp}
    """
    flagged = [
        {
            "unit_id": unit_id,
            "state": state.state.value,
            "last_ratio": state.last_ratio,
            "last_timestamp": state.last_timestamp,
        }
        for unit_id, state in sorted(states.items())
        if state.state.is_flagged
    ]
    logger.debug(f"{len(flagged)} of {len(states)} units under-served")
    return flagged


def round_half_up(value: float, decimals: int = EQUITY_INDEX_DECIMALS) -> float:
    """Round half away from zero, unlike the built-in banker's rounding."""
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def equity_index(buckets: Mapping[str, float]) -> dict[str, float]:
    """
    Equity index of a distribution across units: 1 - Gini.

    The Gini coefficient is taken from the trapezoidal area under the
    Lorenz curve of the sorted bucket counts. A perfectly even spread
    scores 1.0.

    Args:
        buckets: Mapping of unit -> allocated count

    Returns:
        {"raw": float, "rounded": float}; both 0.0 for an empty or
        all-zero input.
    """
    counts = np.sort(np.asarray(list(buckets.values()), dtype=float))
    total = counts.sum() if counts.size else 0.0
    if total <= 0:
        return {"raw": 0.0, "rounded": 0.0}

    n = counts.size
    cumulative = np.cumsum(counts) / total
    previous = np.concatenate(([0.0], cumulative[:-1]))
    lorenz_area = float(np.sum((previous + cumulative) / 2.0) / n)

    gini = 1.0 - 2.0 * lorenz_area
    raw = 1.0 - gini
    return {"raw": raw, "rounded": round_half_up(raw)}


def _fractions(durations: Mapping[str, int], total: int) -> dict[str, float]:
    if total == 0:
        return {key: 0.0 for key in durations}
    values = np.asarray(list(durations.values()), dtype=float) / total
    return {key: round(float(v), 3) for key, v in zip(durations, values)}
