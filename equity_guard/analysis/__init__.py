"""
Analysis helpers for Equity Guard output.

Metrics over states and events, and the invariant harness.
"""

from .harness import check_sequence, load_scenarios, run_harness
from .metrics import (
    equity_index,
    replay_sequence,
    sequence_metrics,
    state_distribution,
    transition_counts,
    under_served,
)

__all__ = [
    "check_sequence",
    "equity_index",
    "load_scenarios",
    "replay_sequence",
    "run_harness",
    "sequence_metrics",
    "state_distribution",
    "transition_counts",
    "under_served",
]
