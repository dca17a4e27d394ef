"""
Tests for the state store and the event log.
"""

import json

import pytest

from equity_guard.eventlog import EventLogReader, EventLogWriter
from equity_guard.exceptions import StateCorruptionError
from equity_guard.storage import StateStore
from equity_guard.types import (
    STATE_SCHEMA_VERSION,
    EventReason,
    EventType,
    TransitionEvent,
    UnitState,
    UnitStatus,
)


def make_event(unit_id="U1", event_type=EventType.ENTER, reason=EventReason.SEVERE):
    return TransitionEvent(
        unit_id=unit_id,
        timestamp="2025-08-13T09:00:00Z",
        ratio=0.45,
        type=event_type,
        reason=reason,
    )


class TestStateStore:
    """Tests for StateStore."""

    def test_missing_file_loads_empty(self, tmp_path):
        assert StateStore(str(tmp_path / "state.json")).load() == {}

    def test_round_trip(self, tmp_path):
        store = StateStore(str(tmp_path / "artifacts" / "state.json"))
        states = {
            "U1": UnitState(unit_id="U1", state=UnitStatus.CANDIDATE, consecutive=2,
                            last_ratio=0.58, last_timestamp="t1"),
            "U2": UnitState(unit_id="U2", state=UnitStatus.CLEARED, cooldown_left=1),
        }

        store.save(states)

        assert store.load() == states

    def test_saved_file_has_schema_version(self, tmp_path):
        path = tmp_path / "state.json"
        StateStore(str(path)).save({"U1": UnitState(unit_id="U1")})

        document = json.loads(path.read_text())

        assert document["schema_version"] == STATE_SCHEMA_VERSION
        assert document["units"]["U1"]["state"] == "NONE"
        assert not list(tmp_path.glob("*.tmp"))

    def test_save_overwrites(self, tmp_path):
        store = StateStore(str(tmp_path / "state.json"))
        store.save({"U1": UnitState(unit_id="U1"), "U2": UnitState(unit_id="U2")})
        store.save({"U3": UnitState(unit_id="U3")})
        assert set(store.load()) == {"U3"}

    def test_legacy_unversioned_map(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({
            "U1": {"state": "CLEARED", "consecutive": 0, "cooldownLeft": 2,
                   "lastRatio": 0.7, "lastTs": "t9", "events": []},
            "U2": {"state": "STALLED", "consecutive": 0, "cooldownLeft": 0},
        }))

        states = StateStore(str(path)).load()

        assert states["U1"].cooldown_left == 2
        assert states["U1"].last_ratio == 0.7
        assert states["U1"].last_timestamp == "t9"
        assert states["U2"].state == UnitStatus.ACTIVE

    @pytest.mark.parametrize("content", [
        "{broken",
        "[]",
        json.dumps({"schema_version": 99, "units": {}}),
        json.dumps({"schema_version": 1, "units": []}),
        json.dumps({"schema_version": 1, "units": {"U1": {"state": "BOGUS"}}}),
        json.dumps({"schema_version": 1, "units": {"U1": {"consecutive": 1}}}),
        json.dumps({"schema_version": 1, "units": {"U1": {"state": "NONE", "consecutive": -1}}}),
    ])
    def test_corrupt_content_raises(self, tmp_path, content):
        path = tmp_path / "state.json"
        path.write_text(content)
        with pytest.raises(StateCorruptionError):
            StateStore(str(path)).load()


class TestEventLog:
    """Tests for the JSONL event log."""

    def test_append_and_read(self, tmp_path):
        path = str(tmp_path / "events.jsonl")
        writer = EventLogWriter(path)

        assert writer.append([make_event("U1"), make_event("U2", EventType.EXIT, None)]) == 2
        assert writer.append([make_event("U3")]) == 1

        events = EventLogReader(path).read_all()
        assert [e.unit_id for e in events] == ["U1", "U2", "U3"]
        assert events[1].reason is None

    def test_append_nothing_creates_no_file(self, tmp_path):
        path = tmp_path / "events.jsonl"
        assert EventLogWriter(str(path)).append([]) == 0
        assert not path.exists()

    def test_filters(self, tmp_path):
        path = str(tmp_path / "events.jsonl")
        EventLogWriter(path).append([
            make_event("U1"),
            make_event("U1", EventType.EXIT, None),
            make_event("U2"),
        ])
        reader = EventLogReader(path)

        assert len(reader.read_all(unit_id="U1")) == 2
        assert len(reader.read_all(event_type=EventType.EXIT)) == 1
        assert reader.count_events() == 3
        assert reader.get_latest_event().unit_id == "U2"

    def test_corrupt_lines_skipped(self, tmp_path):
        path = tmp_path / "events.jsonl"
        EventLogWriter(str(path)).append([make_event("U1")])
        with open(path, "a") as f:
            f.write("{garbage\n")
            f.write(json.dumps({"unit_id": "U2"}) + "\n")
        EventLogWriter(str(path)).append([make_event("U3")])

        reader = EventLogReader(str(path))
        events = reader.read_all()

        assert [e.unit_id for e in events] == ["U1", "U3"]
        assert reader.corrupt_lines == 2

    def test_non_object_lines_skipped(self, tmp_path):
        path = tmp_path / "events.jsonl"
        path.write_text('[1, 2]\n42\n"x"\nnull\n')
        EventLogWriter(str(path)).append([make_event("U1")])

        reader = EventLogReader(str(path))

        assert [e.unit_id for e in reader.read_all()] == ["U1"]
        assert reader.corrupt_lines == 4

    def test_torn_last_line_gets_new_line(self, tmp_path):
        path = tmp_path / "events.jsonl"
        path.write_text('{"unit_id": "half')

        EventLogWriter(str(path)).append([make_event("U1")])

        reader = EventLogReader(str(path))
        assert [e.unit_id for e in reader.read_all()] == ["U1"]
        assert reader.corrupt_lines == 1

    def test_missing_log_reads_empty(self, tmp_path):
        assert EventLogReader(str(tmp_path / "none.jsonl")).read_all() == []
