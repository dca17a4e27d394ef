"""
Snapshot loading for Equity Guard.

Snapshots are produced by an external source; this module only reads a
collected batch from disk and parses individual records.
"""

import json
import logging

from pathlib import Path
from typing import Any

from .exceptions import MalformedSnapshotError
from .types import Snapshot

logger = logging.getLogger(__name__)


def read_snapshot_records(path: str) -> list[Any]:
    """
    Read raw snapshot records from a JSON file.

    The file holds either a list of records or an object with a
    ``snapshots`` list. Records are returned unparsed, in file order, so
    that the engine can count malformed ones individually.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not JSON or has an unexpected shape.
    """
    with open(Path(path), encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("snapshots")
    if not isinstance(data, list):
        raise ValueError(f"snapshot file {path} must hold a list of records")

    logger.debug(f"Read {len(data)} snapshot records from {path}")
    return data


def parse_snapshots(records: list[Any]) -> tuple[list[Snapshot], int]:
    """
    Parse raw records, dropping malformed ones.

    Snapshot instances pass through unchanged.

    Returns:
        Tuple of (parsed snapshots in input order, malformed count)
    """
    snapshots: list[Snapshot] = []
    malformed = 0
    for index, record in enumerate(records):
        if isinstance(record, Snapshot):
            snapshots.append(record)
            continue
        try:
            snapshots.append(Snapshot.from_dict(record))
        except MalformedSnapshotError as e:
            malformed += 1
            logger.warning(f"Skipping malformed snapshot #{index}: {e}")
    return snapshots, malformed
