"""
Tests for parameter integrity checks.
"""

import hashlib
import json

import pytest

from equity_guard.integrity import (
    cross_check_document,
    run_integrity_checks,
    verify_param_lock,
)
from equity_guard.integrity.param_check import extract_documented_values
from equity_guard.types import HysteresisParams


METHODOLOGY = """\
# Hysteresis methodology

| Parameter | Value |
|---|---|
| T_enter_major | 0.50 |
| T_enter_standard | 0.60 |
| `T_exit` | 0.65 |

Debounce uses consecutive_required_standard: 3 readings and
cooldown_snapshots_after_exit = 1 snapshot.
"""


@pytest.fixture
def params():
    return HysteresisParams(
        t_enter_major=0.50,
        t_enter_standard=0.60,
        t_exit=0.65,
        consecutive_required_standard=3,
        cooldown_snapshots_after_exit=1,
    )


class TestDocumentCrossCheck:
    """Tests for regex extraction and comparison."""

    def test_extract_from_table_and_prose(self):
        assert extract_documented_values(METHODOLOGY, "T_exit") == (0.65,)
        assert extract_documented_values(METHODOLOGY, "consecutive_required_standard") == (3.0,)
        assert extract_documented_values(METHODOLOGY, "cooldown_snapshots_after_exit") == (1.0,)

    def test_name_must_stand_alone(self):
        assert extract_documented_values("XT_exit: 0.9", "T_exit") == ()

    def test_all_match(self, params):
        checks = cross_check_document(params, METHODOLOGY)
        assert len(checks) == 5
        assert all(c.match is True for c in checks)

    def test_mismatch(self, params):
        text = METHODOLOGY.replace("| `T_exit` | 0.65 |", "| `T_exit` | 0.70 |")

        checks = {c.parameter: c for c in cross_check_document(params, text)}

        assert checks["T_exit"].match is False
        assert checks["T_exit"].documented == (0.70,)
        assert checks["T_enter_major"].match is True

    def test_undocumented(self, params):
        checks = {c.parameter: c for c in cross_check_document(params, "T_exit: 0.65")}
        assert checks["T_exit"].match is True
        assert checks["T_enter_major"].match is None


class TestParamLock:
    """Tests for the hash manifest check."""

    def write_config(self, tmp_path):
        path = tmp_path / "hysteresis-config-v1.yml"
        path.write_text("parameters:\n  T_exit: 0.65\n")
        return path

    def test_matching_hash_passes(self, tmp_path):
        config = self.write_config(tmp_path)
        digest = hashlib.sha256(config.read_bytes()).hexdigest()
        manifest = tmp_path / "param-hashes.json"
        manifest.write_text(json.dumps({
            "files": [{"path": "config/hysteresis-config-v1.yml", "hash_sha256": digest}]
        }))

        lock = verify_param_lock(str(config), str(manifest))

        assert lock.passed
        assert lock.to_dict()["status"] == "PASS"

    def test_wrong_hash_fails(self, tmp_path):
        config = self.write_config(tmp_path)
        manifest = tmp_path / "param-hashes.json"
        manifest.write_text(json.dumps({
            "files": [{"path": config.name, "hash_sha256": "0" * 64}]
        }))

        assert not verify_param_lock(str(config), str(manifest)).passed

    def test_missing_entry_fails(self, tmp_path):
        config = self.write_config(tmp_path)
        manifest = tmp_path / "param-hashes.json"
        manifest.write_text(json.dumps({"files": []}))

        lock = verify_param_lock(str(config), str(manifest))

        assert lock.manifest_hash is None
        assert not lock.passed


class TestIntegrityReport:
    """Tests for the combined report."""

    def test_report_pass(self, params, tmp_path):
        doc = tmp_path / "methodology.md"
        doc.write_text(METHODOLOGY)

        report = run_integrity_checks(params, document_path=str(doc))

        assert report.status == "PASS"
        assert report.to_dict()["param_lock"] is None

    def test_report_fail_on_mismatch(self, params, tmp_path):
        doc = tmp_path / "methodology.md"
        doc.write_text("T_enter_major: 0.45")

        report = run_integrity_checks(params, document_path=str(doc))

        assert report.status == "FAIL"
        assert [c.parameter for c in report.mismatches] == ["T_enter_major"]
        assert "T_exit" in report.undocumented
