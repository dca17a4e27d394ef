"""
Equity Guard - Main orchestration module.

This is the primary entry point for using Equity Guard. It replays a
batch of snapshots through the decision engine, then persists the unit
state map and appends the emitted events.
"""

import logging
import warnings

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from .analysis.metrics import state_distribution, under_served
from .config import load_config
from .decision import DecisionEngine
from .eventlog import EventLogReader, EventLogWriter
from .exceptions import StateCorruptionError, StateCorruptionWarning
from .snapshots import parse_snapshots, read_snapshot_records
from .storage import StateStore
from .types import (
    GuardConfig,
    RunSummary,
    Snapshot,
    TransitionEvent,
    UnitState,
)

logger = logging.getLogger(__name__)


class EquityGuard:
    """
    Main orchestration class for Equity Guard.

    Usage:
        guard = EquityGuard()

        # Replay a batch of snapshots
        summary = guard.run(snapshots)

        # Units currently flagged
        flagged = guard.under_served()
    """

    def __init__(
        self,
        config: GuardConfig | None = None,
        state_store: StateStore | None = None,
        event_writer: EventLogWriter | None = None,
    ):
        """
        Initialize Equity Guard.

        Args:
            config: Configuration (loads from file if not provided)
            state_store: Store for unit states (defaults to config.state_path)
            event_writer: Event log writer (defaults to config.event_log_path)

        Raises:
            ConfigurationError: If no valid configuration can be loaded.
        """
        self.config = config or load_config()

        # Initialize components
        self.decision_engine = DecisionEngine(self.config.params)
        self.state_store = state_store or StateStore(self.config.state_path)
        self.event_writer = event_writer or EventLogWriter(self.config.event_log_path)
        self.event_reader = EventLogReader(str(self.event_writer.path))

    def run(self, snapshots: Iterable[Snapshot | dict[str, Any]]) -> RunSummary:
        """
        Replay an ordered snapshot batch.

        Snapshots of the same unit must already be in chronological order;
        they are processed exactly in feed order. Raw dict records are
        parsed here and malformed ones are skipped and counted.

        New events are appended before the state map is saved. If the
        append fails the run raises and the persisted state stays at the
        previous run, so no transition is recorded in state without its
        event.

        Args:
            snapshots: Snapshot objects or raw records

        Returns:
            RunSummary for this run
        """
        summary = RunSummary()
        states, summary.state_recovered = self._load_states()
        self._check_event_log()

        touched: set[str] = set()
        new_events: list[TransitionEvent] = []

        parsed, summary.malformed_skipped = parse_snapshots(list(snapshots))
        for snapshot in parsed:
            new_events.extend(self._apply(states, snapshot))
            touched.add(snapshot.unit_id)
            summary.snapshots_processed += 1

        summary.events_emitted = self.event_writer.append(new_events)
        self.state_store.save(states)
        summary.units_touched = len(touched)
        summary.events = new_events

        logger.info(
            f"Processed {summary.snapshots_processed} snapshots: "
            f"units={summary.units_touched}, events={summary.events_emitted}, "
            f"malformed={summary.malformed_skipped}"
        )
        return summary

    def run_file(self, path: str) -> RunSummary:
        """Read a snapshot batch from a JSON file and run it."""
        return self.run(read_snapshot_records(path))

    def _apply(
        self,
        states: dict[str, UnitState],
        snapshot: Snapshot,
    ) -> list[TransitionEvent]:
        """Run one decision step and write the result into the map."""
        previous = states.get(snapshot.unit_id)
        transition = self.decision_engine.decide(
            previous, snapshot.ratio, unit_id=snapshot.unit_id
        )

        current = transition.state
        current.last_ratio = snapshot.ratio
        current.last_timestamp = snapshot.timestamp
        states[snapshot.unit_id] = current

        events = [
            TransitionEvent(
                unit_id=snapshot.unit_id,
                timestamp=snapshot.timestamp,
                ratio=snapshot.ratio,
                type=event_type,
                reason=reason,
            )
            for event_type, reason in transition.events
        ]

        for event in events:
            logger.info(
                f"Unit {event.unit_id}: {event.type.value}"
                f"{f'({event.reason.value})' if event.reason else ''} "
                f"at ratio={event.ratio:.4f}"
            )
        if not events:
            logger.debug(
                f"Unit {snapshot.unit_id}: ratio={snapshot.ratio:.4f} -> {current.state.value}"
            )

        return events

    def _load_states(self) -> tuple[dict[str, UnitState], bool]:
        """Load persisted states, falling back to empty on corruption."""
        try:
            return self.state_store.load(), False
        except StateCorruptionError as e:
            logger.warning(f"Corrupt state store: {e}. Starting from empty state.")
            warnings.warn(
                f"state store discarded: {e}",
                StateCorruptionWarning,
                stacklevel=3,
            )
            return {}, True

    def _check_event_log(self) -> None:
        existing = self.event_reader.count_events()
        if self.event_reader.corrupt_lines:
            logger.warning(
                f"Event log {self.event_reader.path} has "
                f"{self.event_reader.corrupt_lines} corrupt lines; they are skipped on read"
            )
        logger.debug(f"Event log holds {existing} events before this run")

    def load_states(self) -> dict[str, UnitState]:
        """Current persisted unit states (empty if absent or corrupt)."""
        states, _ = self._load_states()
        return states

    def unit_state(self, unit_id: str) -> UnitState | None:
        return self.load_states().get(unit_id)

    def events(self, unit_id: str | None = None) -> list[TransitionEvent]:
        """All logged events, optionally for one unit."""
        return self.event_reader.read_all(unit_id=unit_id)

    def under_served(self) -> list[dict[str, Any]]:
        """Units currently flagged ACTIVE."""
        return under_served(self.load_states())

    def get_status(self) -> dict[str, Any]:
        """
        Get current system status.

        Returns information about:
        - Parameters in force
        - Unit counts per state
        - Event log size
        """
        states = self.load_states()
        return {
            "timestamp": datetime.now().isoformat(),
            "parameters": self.config.params.to_dict(),
            "state_path": str(self.state_store.path),
            "event_log_path": str(self.event_writer.path),
            "unit_count": len(states),
            "state_distribution": state_distribution(states.values()),
            "under_served_count": sum(1 for s in states.values() if s.state.is_flagged),
            "event_count": self.event_reader.count_events(),
        }
