"""
Event Log Reader - Streaming and filtering of the JSONL event log.

Supports:
- Filtering by unit and event type
- Memory-efficient streaming
- Skipping corrupt lines without aborting
"""

import json
import logging

from collections.abc import Generator
from pathlib import Path

from ..types import EventType, TransitionEvent

logger = logging.getLogger(__name__)


class EventLogReader:
    """
    Reads transition events from a JSONL event log.

    Usage:
        reader = EventLogReader("./artifacts/hysteresis-events.jsonl")
        events = reader.read_all(unit_id="U1")
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self.corrupt_lines = 0

    def read_all(
        self,
        unit_id: str | None = None,
        event_type: EventType | None = None,
    ) -> list[TransitionEvent]:
        """Read every matching event into memory."""
        return list(self.stream(unit_id=unit_id, event_type=event_type))

    def stream(
        self,
        unit_id: str | None = None,
        event_type: EventType | None = None,
    ) -> Generator[TransitionEvent, None, None]:
        """
        Stream events in log order.

        Args:
            unit_id: Only yield events for this unit
            event_type: Only yield events of this type
        """
        self.corrupt_lines = 0
        if not self.path.exists():
            return

        with open(self.path, encoding="utf-8", errors="replace") as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue

                try:
                    event = TransitionEvent.from_dict(json.loads(line))
                except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                    self.corrupt_lines += 1
                    logger.warning(
                        f"Skipping corrupt event log line {line_number} in {self.path}"
                    )
                    continue

                if unit_id and event.unit_id != unit_id:
                    continue
                if event_type and event.type != event_type:
                    continue

                yield event

    def count_events(self, unit_id: str | None = None) -> int:
        """Count events without loading all into memory."""
        count = 0
        for _ in self.stream(unit_id=unit_id):
            count += 1
        return count

    def get_latest_event(self, unit_id: str | None = None) -> TransitionEvent | None:
        """Get the most recently appended event."""
        latest = None
        for event in self.stream(unit_id=unit_id):
            latest = event
        return latest
