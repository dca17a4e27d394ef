"""
Error taxonomy for Equity Guard.

Three severities:
- ConfigurationError: fatal, aborts a run before any snapshot is touched
- StateCorruptionWarning: recoverable, engine restarts from empty state
- MalformedSnapshotError: per-record, the record is skipped and counted
"""


class ConfigurationError(ValueError):
    """Threshold parameters are missing, out of range, or mis-ordered."""


class MalformedSnapshotError(ValueError):
    """A snapshot record is missing a field or carries an unusable ratio."""


class StateCorruptionError(ValueError):
    """Persisted state could not be read back into unit states."""


class StateCorruptionWarning(UserWarning):
    """Issued when a corrupt state store is discarded and the run starts empty."""
