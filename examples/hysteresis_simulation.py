"""
Example: Simulating a unit whose equity ratio drifts and recovers.

This demonstrates:
1. Healthy operation (NONE)
2. Gradual decline into the borderline band (CANDIDATE, then ACTIVE)
3. Noise near the exit threshold that does not flap the flag
4. Recovery (CLEARED) and a severe relapse (REENTER)
"""

import json

import numpy as np

from equity_guard.analysis import check_sequence, equity_index, sequence_metrics
from equity_guard.config import DEFAULT_PARAMETERS
from equity_guard.types import HysteresisParams


def phase(rng, center, spread, count):
    """Noisy ratios around a center, clipped to [0, 1]."""
    return np.clip(rng.normal(center, spread, count), 0.0, 1.0).tolist()


def main():
    params = HysteresisParams.from_dict(DEFAULT_PARAMETERS)
    rng = np.random.default_rng(42)

    ratios = (
        phase(rng, 0.75, 0.03, 20)
        + phase(rng, 0.56, 0.01, 10)
        + phase(rng, 0.63, 0.01, 20)
        + phase(rng, 0.72, 0.02, 10)
        + phase(rng, 0.40, 0.02, 3)
    )

    print("=" * 60)
    print("TRANSITIONS")
    print("=" * 60)
    outcome = check_sequence(params, ratios, scenario_id="simulated")
    for transition in outcome.transitions:
        reason = f" ({transition['reason']})" if transition["reason"] else ""
        print(f"  step {transition['idx']:>3}: {transition['type']}{reason} at {transition['ratio']:.3f}")
    print(f"Illegal transitions: {len(outcome.violations)}")

    print("\n" + "=" * 60)
    print("METRICS")
    print("=" * 60)
    print(json.dumps(sequence_metrics(params, ratios), indent=2))

    print("\n" + "=" * 60)
    print("EQUITY INDEX OF A SAMPLE ALLOCATION")
    print("=" * 60)
    allocation = {f"unit-{i}": int(n) for i, n in enumerate(rng.poisson(20, 8))}
    print(json.dumps({"allocation": allocation, "equity": equity_index(allocation)}, indent=2))


if __name__ == "__main__":
    main()
