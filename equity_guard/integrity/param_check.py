"""
Parameter Integrity - Cross-checks configured thresholds against the
documents that publish them.

Two independent checks, both optional and outside the decision path:
1. Document cross-check: regex-extract each parameter's value from a
   markdown methodology document and compare with the config
2. Parameter lock: SHA-256 of the config file against a hash manifest

Each produces rows; an IntegrityReport folds them into PASS/FAIL.
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
import re

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Final

from ..types import PARAMETER_KEYS, HysteresisParams

logger = logging.getLogger(__name__)

MATCH_TOLERANCE: Final[float] = 1e-9

# Parameter name, then up to 16 non-digit separator characters on the same
# line (":", "=", "|", backticks, "is"), then the number.
_VALUE_PATTERN = r"(?<![A-Za-z0-9_]){name}(?![A-Za-z0-9_])[^\d\n-]{{0,16}}?(-?\d+(?:\.\d+)?)"


@dataclass(frozen=True, slots=True)
class ParamCheck:
    """
    Comparison of one parameter against its documented value.

    Attributes:
        parameter: External parameter name (e.g. "T_exit")
        config: Value in the loaded configuration
        documented: Values found in the document, in order of appearance
        match: True if every documented value equals the config value;
            None if the document does not mention the parameter
    """

    parameter: str
    config: float
    documented: tuple[float, ...]
    match: bool | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": "hysteresis",
            "parameter": self.parameter,
            "config": self.config,
            "documented": list(self.documented),
            "match": self.match,
        }


@dataclass(frozen=True, slots=True)
class LockCheck:
    """Result of comparing a config file hash against a manifest."""

    path: str
    actual_hash: str
    manifest_hash: str | None

    @property
    def passed(self) -> bool:
        return self.manifest_hash is not None and self.manifest_hash == self.actual_hash

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "status": "PASS" if self.passed else "FAIL",
            "actualHash": self.actual_hash,
            "manifestHash": self.manifest_hash,
        }


@dataclass
class IntegrityReport:
    """Pass/fail summary of the integrity checks that were run."""

    params: list[ParamCheck] = field(default_factory=list)
    lock: LockCheck | None = None

    @property
    def mismatches(self) -> list[ParamCheck]:
        return [p for p in self.params if p.match is False]

    @property
    def undocumented(self) -> list[str]:
        return [p.parameter for p in self.params if p.match is None]

    @property
    def passed(self) -> bool:
        if self.mismatches:
            return False
        return self.lock is None or self.lock.passed

    @property
    def status(self) -> str:
        return "PASS" if self.passed else "FAIL"

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": 1,
            "generated_utc": datetime.now(timezone.utc).isoformat(),
            "status": self.status,
            "matrix": [p.to_dict() for p in self.params],
            "undocumented": self.undocumented,
            "param_lock": self.lock.to_dict() if self.lock else None,
        }


def extract_documented_values(text: str, parameter: str) -> tuple[float, ...]:
    """Find every value documented for ``parameter`` in ``text``."""
    pattern = re.compile(_VALUE_PATTERN.format(name=re.escape(parameter)))
    return tuple(float(m.group(1)) for m in pattern.finditer(text))


def cross_check_document(params: HysteresisParams, text: str) -> list[ParamCheck]:
    """
    Compare every configured parameter with the values a document states.

    Args:
        params: Loaded hysteresis parameters
        text: Markdown (or any plain text) document

    Returns:
        One ParamCheck per parameter, in canonical key order
    """
    configured = params.to_dict()
    checks: list[ParamCheck] = []

    for parameter in PARAMETER_KEYS:
        value = float(configured[parameter])
        documented = extract_documented_values(text, parameter)
        if documented:
            match = all(
                math.isclose(d, value, rel_tol=0.0, abs_tol=MATCH_TOLERANCE)
                for d in documented
            )
        else:
            match = None

        if match is False:
            logger.warning(
                f"Parameter {parameter}: config={value} but document states {list(documented)}"
            )
        checks.append(ParamCheck(parameter, value, documented, match))

    return checks


def file_sha256(path: str) -> str:
    """Hex SHA-256 of a file's bytes."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def verify_param_lock(config_path: str, manifest_path: str) -> LockCheck:
    """
    Compare the config file hash with its manifest entry.

    The manifest is ``{"files": [{"path": ..., "hash_sha256": ...}]}``.
    Entries are matched on the normalized path, then on file name.

    Raises:
        OSError: If either file cannot be read.
        ValueError: If the manifest is not valid JSON.
    """
    actual = file_sha256(config_path)
    with open(manifest_path, encoding="utf-8") as f:
        manifest = json.load(f)

    target = PurePosixPath(Path(config_path).as_posix())
    entries = manifest.get("files", []) if isinstance(manifest, dict) else []

    entry = next(
        (e for e in entries if PurePosixPath(str(e.get("path", "")).replace("\\", "/")) == target),
        None,
    )
    if entry is None:
        entry = next(
            (e for e in entries if PurePosixPath(str(e.get("path", "")).replace("\\", "/")).name == target.name),
            None,
        )

    lock = LockCheck(
        path=str(config_path),
        actual_hash=actual,
        manifest_hash=entry.get("hash_sha256") if entry else None,
    )
    if not lock.passed:
        logger.warning(f"Parameter lock mismatch for {config_path}")
    return lock


def run_integrity_checks(
    params: HysteresisParams,
    document_path: str | None = None,
    config_path: str | None = None,
    manifest_path: str | None = None,
) -> IntegrityReport:
    """Run whichever checks have their inputs supplied."""
    report = IntegrityReport()

    if document_path:
        text = Path(document_path).read_text(encoding="utf-8")
        report.params = cross_check_document(params, text)

    if config_path and manifest_path:
        report.lock = verify_param_lock(config_path, manifest_path)

    logger.info(f"Integrity check: {report.status}")
    return report
