"""
Example: Running Equity Guard over a small snapshot batch.

This example demonstrates:
1. Building a configuration in code
2. Replaying snapshots for a few units
3. Inspecting unit states and events
4. Listing under-served units
"""

import json

from equity_guard import EquityGuard, GuardConfig, HysteresisParams
from equity_guard.decision import DecisionEngine


def main():
    # Create configuration
    params = HysteresisParams(
        t_enter_major=0.50,
        t_enter_standard=0.60,
        t_exit=0.65,
        consecutive_required_standard=3,
        cooldown_snapshots_after_exit=1,
    )
    config = GuardConfig(
        params=params,
        state_path="./demo_artifacts/hysteresis-state.json",
        event_log_path="./demo_artifacts/hysteresis-events.jsonl",
    )
    guard = EquityGuard(config)

    print("=== Replaying Snapshots ===")
    snapshots = [
        {"unit_id": "north", "timestamp": "2025-08-13T09:00:00Z", "ratio": 0.58},
        {"unit_id": "south", "timestamp": "2025-08-13T09:00:00Z", "ratio": 0.45},
        {"unit_id": "north", "timestamp": "2025-08-13T10:00:00Z", "ratio": 0.57},
        {"unit_id": "south", "timestamp": "2025-08-13T10:00:00Z", "ratio": 0.70},
        {"unit_id": "north", "timestamp": "2025-08-13T11:00:00Z", "ratio": 0.59},
        {"unit_id": "east", "timestamp": "2025-08-13T11:00:00Z", "ratio": 0.81},
    ]
    summary = guard.run(snapshots)
    print(json.dumps(summary.to_dict(), indent=2))

    for event in summary.events:
        reason = f" ({event.reason.value})" if event.reason else ""
        print(f"{event.timestamp} {event.unit_id}: {event.type.value}{reason}")

    print("\n=== Unit States ===")
    engine = DecisionEngine(params)
    for state in guard.load_states().values():
        print(engine.explain_state(state))

    print("\n=== Under-served ===")
    print(json.dumps(guard.under_served(), indent=2))


if __name__ == "__main__":
    main()
