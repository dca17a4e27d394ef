"""
Event Log Writer - Append-only JSONL logging for transition events.

Design principles:
- Never rewrite history (append mode only)
- Never lose data (flush and fsync after each batch)
- Always replayable (one JSON object per line)
"""

import json
import logging
import os

from collections.abc import Iterable
from pathlib import Path

from ..types import TransitionEvent

logger = logging.getLogger(__name__)


class EventLogWriter:
    """
    Appends transition events to a JSONL file.

    Usage:
        log = EventLogWriter("./artifacts/hysteresis-events.jsonl")
        log.append(events)
    """

    def __init__(self, path: str):
        """
        Initialize the writer.

        Args:
            path: Event log file; created on first append
        """
        self.path = Path(path)

    def append(self, events: Iterable[TransitionEvent]) -> int:
        """
        Append events in order.

        Returns:
            Number of events written.
        """
        lines = [json.dumps(event.to_dict(), separators=(",", ":")) for event in events]
        if not lines:
            return 0

        self.path.parent.mkdir(parents=True, exist_ok=True)
        needs_newline = self._ends_mid_line()
        with open(self.path, "a", encoding="utf-8") as handle:
            if needs_newline:
                logger.warning(f"Event log {self.path} ended mid-line, starting a new line")
                handle.write("\n")
            for line in lines:
                handle.write(line + "\n")

            # Ensure durability
            handle.flush()
            os.fsync(handle.fileno())

        logger.debug(f"Appended {len(lines)} events to {self.path}")
        return len(lines)

    def _ends_mid_line(self) -> bool:
        """True if a previous writer died before finishing its last line."""
        if not self.path.exists() or self.path.stat().st_size == 0:
            return False
        with open(self.path, "rb") as f:
            f.seek(-1, os.SEEK_END)
            return f.read(1) != b"\n"
