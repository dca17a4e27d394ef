"""
Decision Engine - The brain of Equity Guard.

This module turns a stream of equity ratios for one unit into explicit
hysteresis states. It is pure: no I/O, no clock, no shared state.

Design Principles:
1. A single noisy reading is NOT enough - borderline values must repeat
2. A severe reading always acts, bypassing debounce and cooldown
3. Exit requires crossing a higher threshold than entry (hysteresis band)
4. After exit, the borderline path stays disarmed for a cooldown window

Transition Matrix:
    | From      | Condition                          | To        | Event              |
    |-----------|------------------------------------|-----------|--------------------|
    | NONE      | severe                             | ACTIVE    | ENTER(severe)      |
    | NONE      | borderline                         | CANDIDATE | -                  |
    | CANDIDATE | severe                             | ACTIVE    | ENTER(severe)      |
    | CANDIDATE | borderline, count reaches required | ACTIVE    | ENTER(consecutive) |
    | CANDIDATE | healthy                            | NONE      | -                  |
    | ACTIVE    | ratio >= T_exit                    | CLEARED   | EXIT               |
    | CLEARED   | severe                             | ACTIVE    | REENTER(severe)    |
    | CLEARED   | cooldown spent, borderline         | CANDIDATE | -                  |

Author: Equity Guard Team
"""

from __future__ import annotations

import logging

from ..types import (
    EventReason,
    EventType,
    HysteresisParams,
    RatioBand,
    Transition,
    UnitState,
    UnitStatus,
)

logger = logging.getLogger(__name__)


# =============================================================================
# PURE FUNCTIONS
# =============================================================================

def classify(params: HysteresisParams, ratio: float) -> RatioBand:
    """
    Classify a ratio against the entry thresholds.

    Intervals are half-open: severe is ``r < T_enter_major``, borderline is
    ``T_enter_major <= r < T_enter_standard``, everything else is healthy.
    NaN fails every comparison and lands in healthy.
    """
    if ratio < params.t_enter_major:
        return RatioBand.SEVERE
    if params.t_enter_major <= ratio < params.t_enter_standard:
        return RatioBand.BORDERLINE
    return RatioBand.HEALTHY


def decide(
    params: HysteresisParams,
    previous: UnitState | None,
    ratio: float,
    unit_id: str | None = None,
) -> Transition:
    """
    Compute the next state of a unit from one new ratio.

    Args:
        params: Validated hysteresis parameters
        previous: Prior state, or None for a unit seen for the first time
        ratio: The new equity ratio
        unit_id: Key for a fresh state when ``previous`` is None

    Returns:
        Transition holding a new UnitState and the emitted event kinds.
        ``previous`` is never modified.
    """
    if previous is None:
        previous = UnitState(unit_id=unit_id or "")

    band = classify(params, ratio)
    state = previous.state
    consecutive = previous.consecutive
    cooldown_left = previous.cooldown_left

    new_state = state
    events: list[tuple[EventType, EventReason | None]] = []

    if state == UnitStatus.NONE:
        if band == RatioBand.SEVERE:
            new_state = UnitStatus.ACTIVE
            events.append((EventType.ENTER, EventReason.SEVERE))
        elif band == RatioBand.BORDERLINE:
            new_state = UnitStatus.CANDIDATE
            consecutive = 1

    elif state == UnitStatus.CANDIDATE:
        if band == RatioBand.SEVERE:
            new_state = UnitStatus.ACTIVE
            events.append((EventType.ENTER, EventReason.SEVERE))
        elif band == RatioBand.BORDERLINE:
            consecutive += 1
            if consecutive >= params.consecutive_required_standard:
                new_state = UnitStatus.ACTIVE
                events.append((EventType.ENTER, EventReason.CONSECUTIVE))
        else:
            # No partial credit
            new_state = UnitStatus.NONE

    elif state == UnitStatus.ACTIVE:
        if ratio >= params.t_exit:
            new_state = UnitStatus.CLEARED
            cooldown_left = params.cooldown_snapshots_after_exit
            events.append((EventType.EXIT, None))

    elif state == UnitStatus.CLEARED:
        # Gate on the cooldown carried into this step, then consume one snapshot
        if band == RatioBand.SEVERE:
            new_state = UnitStatus.ACTIVE
            events.append((EventType.REENTER, EventReason.SEVERE))
        elif cooldown_left == 0 and band == RatioBand.BORDERLINE:
            new_state = UnitStatus.CANDIDATE
            consecutive = 1
        else:
            cooldown_left = max(0, cooldown_left - 1)

    if new_state != UnitStatus.CANDIDATE:
        consecutive = 0
    if new_state != UnitStatus.CLEARED:
        cooldown_left = 0

    return Transition(
        state=UnitState(
            unit_id=previous.unit_id,
            state=new_state,
            consecutive=consecutive,
            cooldown_left=cooldown_left,
            last_ratio=previous.last_ratio,
            last_timestamp=previous.last_timestamp,
        ),
        events=tuple(events),
    )


# =============================================================================
# DECISION ENGINE
# =============================================================================

class DecisionEngine:
    """
    Binds hysteresis parameters to the pure decision function.

    Usage:
        >>> engine = DecisionEngine(params)
        >>> transition = engine.decide(None, 0.45, unit_id="U1")
        >>> print(transition.state.state)
        ACTIVE
    """

    def __init__(self, params: HysteresisParams) -> None:
        """
        Initialize the decision engine.

        Args:
            params: Validated hysteresis parameters
        """
        self._params = params
        logger.debug(
            f"DecisionEngine initialized with thresholds: "
            f"major={params.t_enter_major}, "
            f"standard={params.t_enter_standard}, "
            f"exit={params.t_exit}, "
            f"required={params.consecutive_required_standard}, "
            f"cooldown={params.cooldown_snapshots_after_exit}"
        )

    @property
    def params(self) -> HysteresisParams:
        """Read-only access to parameters."""
        return self._params

    def classify(self, ratio: float) -> RatioBand:
        return classify(self._params, ratio)

    def decide(
        self,
        previous: UnitState | None,
        ratio: float,
        unit_id: str | None = None,
    ) -> Transition:
        """Run one decision step. See :func:`decide`."""
        return decide(self._params, previous, ratio, unit_id=unit_id)

    def explain_state(self, state: UnitState) -> str:
        """
        Generate a human-readable description of a unit's state.

        Args:
            state: The unit state to explain

        Returns:
            Multi-line string explanation
        """
        p = self._params
        lines = [
            "=" * 40,
            "UNIT EQUITY STATUS",
            "=" * 40,
            f"Unit:          {state.unit_id}",
            f"State:         {state.state.value}",
        ]

        if state.last_ratio is not None:
            lines.append(f"Last Ratio:    {state.last_ratio:.4f}")
            lines.append(f"Band:          {self.classify(state.last_ratio).value}")
        if state.last_timestamp:
            lines.append(f"Last Seen:     {state.last_timestamp}")

        lines.append("")
        if state.state == UnitStatus.CANDIDATE:
            lines.append(
                f"Borderline readings: {state.consecutive} of "
                f"{p.consecutive_required_standard} required"
            )
        elif state.state == UnitStatus.ACTIVE:
            lines.append(f"Clears at ratio >= {p.t_exit}")
        elif state.state == UnitStatus.CLEARED:
            lines.append(f"Cooldown snapshots left: {state.cooldown_left}")
        else:
            lines.append("No concern recorded")

        lines.append("=" * 40)

        return "\n".join(lines)
