"""
Event log subsystem for Equity Guard.

Append-only JSONL logs that are replayable and auditable.
"""

from .reader import EventLogReader
from .writer import EventLogWriter

__all__ = ["EventLogReader", "EventLogWriter"]
