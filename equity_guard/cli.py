"""
Command-line interface for Equity Guard.

Run the hysteresis engine, inspect unit states, and verify parameters.
"""

import argparse
import json
import logging
import sys

from .analysis import (
    load_scenarios,
    run_harness,
    state_distribution,
    transition_counts,
)
from .analysis.metrics import reason_counts
from .config import create_default_config_file, load_config, resolve_config_path
from .exceptions import ConfigurationError
from .guard import EquityGuard
from .integrity import run_integrity_checks


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Equity Guard - Hysteresis-based under-served unit detection"
    )
    parser.add_argument("--config", "-c", help="Path to JSON or YAML config")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    init_parser = subparsers.add_parser("init", help="Create default configuration file")
    init_parser.add_argument("--path", help="Where to write the config")

    # run command
    run_parser = subparsers.add_parser("run", help="Run the engine over a snapshot batch")
    run_parser.add_argument("--snapshots", "-s", required=True, help="Snapshot batch (JSON)")
    run_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # status command
    status_parser = subparsers.add_parser("status", help="Show system status")
    status_parser.add_argument("--unit", "-u", help="Explain a single unit")

    # under-served command
    under_parser = subparsers.add_parser("under-served", help="List units currently flagged")
    under_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # metrics command
    metrics_parser = subparsers.add_parser("metrics", help="Transition and state metrics")
    metrics_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # harness command
    harness_parser = subparsers.add_parser("harness", help="Replay scenarios, check invariants")
    harness_parser.add_argument("--scenarios", required=True, help="Scenario file (JSON)")
    harness_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # verify-params command
    verify_parser = subparsers.add_parser("verify-params", help="Cross-check parameters")
    verify_parser.add_argument("--doc", help="Markdown document stating the parameters")
    verify_parser.add_argument("--manifest", help="Hash manifest locking the config file")
    verify_parser.add_argument("--json", action="store_true", help="Output as JSON")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "init":
        create_default_config_file(args.path or resolve_config_path(args.config))
        return 0

    # Load guard
    try:
        guard = EquityGuard(load_config(args.config))
    except ConfigurationError as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    if args.command == "run":
        try:
            summary = guard.run_file(args.snapshots)
        except (OSError, ValueError) as e:
            print(f"Error reading snapshots: {e}", file=sys.stderr)
            return 1

        if args.json:
            print(json.dumps(summary.to_dict(), indent=2))
        else:
            print(f"Processed {summary.snapshots_processed} snapshots")
            print(f"  Units touched:     {summary.units_touched}")
            print(f"  Events emitted:    {summary.events_emitted}")
            print(f"  Malformed skipped: {summary.malformed_skipped}")
            if summary.state_recovered:
                print("  Warning: state store was corrupt, started from empty state")
            for event in summary.events:
                reason = f" ({event.reason.value})" if event.reason else ""
                print(f"  {event.timestamp} {event.unit_id}: {event.type.value}{reason} ratio={event.ratio:.4f}")

    elif args.command == "status":
        if args.unit:
            state = guard.unit_state(args.unit)
            if state is None:
                print(f"Unit not found: {args.unit}")
                return 1
            print(guard.decision_engine.explain_state(state))
        else:
            print(json.dumps(guard.get_status(), indent=2))

    elif args.command == "under-served":
        units = guard.under_served()
        if args.json:
            print(json.dumps({"total": len(units), "units": units}, indent=2))
        else:
            print(f"Under-served units: {len(units)}")
            for unit in units:
                print(f"  {unit['unit_id']} | ratio={unit['last_ratio']} | {unit['last_timestamp']}")

    elif args.command == "metrics":
        events = guard.events()
        states = guard.load_states()
        report = {
            "transitions": transition_counts(events),
            "entry_reasons": reason_counts(events),
            "state_distribution": state_distribution(states.values()),
            "unit_count": len(states),
        }
        if args.json:
            print(json.dumps(report, indent=2))
        else:
            print(f"Units: {report['unit_count']}")
            for name, count in report["state_distribution"].items():
                print(f"  {name:<10} {count}")
            print("Transitions:")
            for name, count in report["transitions"].items():
                print(f"  {name:<10} {count}")

    elif args.command == "harness":
        try:
            scenarios = load_scenarios(args.scenarios)
        except (OSError, ValueError) as e:
            print(f"Error reading scenarios: {e}", file=sys.stderr)
            return 1

        report = run_harness(guard.config.params, scenarios)
        if args.json:
            print(json.dumps(report, indent=2))
        else:
            print(f"Scenarios: {report['scenario_count']}")
            print(f"Illegal transitions: {report['illegal_transition_events']}")
            for result in report["results"]:
                print(f"  {result['id']} -> {result['final_state']} ({len(result['illegal_rules'])} illegal)")
        if report["illegal_transition_events"]:
            return 1

    elif args.command == "verify-params":
        if not args.doc and not args.manifest:
            print("--doc or --manifest required")
            return 1
        try:
            report = run_integrity_checks(
                guard.config.params,
                document_path=args.doc,
                config_path=resolve_config_path(args.config),
                manifest_path=args.manifest,
            )
        except (OSError, ValueError) as e:
            print(f"Error running integrity checks: {e}", file=sys.stderr)
            return 1

        if args.json:
            print(json.dumps(report.to_dict(), indent=2))
        else:
            print(f"Parameter integrity: {report.status}")
            for check in report.params:
                mark = {True: "ok", False: "MISMATCH", None: "undocumented"}[check.match]
                print(f"  {check.parameter:<32} config={check.config} {mark}")
            if report.lock:
                print(f"  param lock: {report.lock.to_dict()['status']}")
        if not report.passed:
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
