import json
import sys
from dataclasses import replace
from datetime import date

import pytest

from routine_tracker.engine import RoutineEngine
from routine_tracker.errors import ParseError
from routine_tracker.models import AppState, DailyStatRecord, TaskStatus
from routine_tracker.repository import STATE_KEYS
from routine_tracker.snapshot import (
    export_snapshot, backup_filename, write_backup, decode_snapshot_text, merge_snapshot,
)

from conftest import dt_local, make_task


def _state():
    return AppState(
        routine=[
            make_task("a", status=TaskStatus.COMPLETED),
            make_task("b", category="work", days=("mon", "fri"), status=TaskStatus.SKIPPED),
            make_task("c", days=None),
        ],
        streak=2,
        history=[
            DailyStatRecord(date(2026, 2, 14), 3, 3, 1),
            DailyStatRecord(date(2026, 2, 15), 3, 3, 2),
        ],
        last_rollover_date=date(2026, 2, 16),
    )


def _snapshot_of(state):
    return AppState(list(state.routine), state.streak, list(state.history), state.last_rollover_date)


@pytest.fixture
def loaded(repo, lisbon):
    e = RoutineEngine(repo, _state())
    repo.save_state(e.state)
    return e


def test_export_is_independent_of_later_changes(loaded):
    snap = loaded.export_snapshot()
    loaded.mark_done("a")
    loaded.check_and_rollover(dt_local(2026, 2, 17, 0, 0))
    assert snap.streak == 2
    assert snap.routine[0].status == TaskStatus.COMPLETED
    assert len(snap.history) == 2
    assert snap.last_rollover_date == date(2026, 2, 16)


def test_wire_format(loaded):
    data = loaded.export_snapshot().to_dict()
    assert set(data) == {"routine", "streak", "stats", "lastResetDate"}
    assert data["lastResetDate"] == "2026-02-16"
    assert data["stats"][0] == {"date": "2026-02-14", "completed": 3, "total": 3, "streak": 1}
    assert data["routine"][1] == {
        "id": "b", "title": "Task b", "time": "", "category": "work",
        "days": ["mon", "fri"], "reminder": "", "completed": False, "skipped": True,
    }
    assert data["routine"][2]["days"] is None


def test_round_trip_leaves_state_unchanged(loaded):
    before = _snapshot_of(loaded.state)
    applied = loaded.import_snapshot(loaded.export_snapshot().to_json())
    assert applied == ["routine", "streak", "history", "last_rollover_date"]
    assert loaded.state == before


def test_fresh_export_omits_last_reset_date(engine):
    data = engine.export_snapshot().to_dict()
    assert set(data) == {"routine", "streak", "stats"}
    assert "null" not in engine.export_snapshot().to_json()


def test_round_trip_fresh_state(engine):
    before = _snapshot_of(engine.state)
    engine.import_snapshot(engine.export_snapshot().to_json())
    assert engine.state == before


@pytest.mark.parametrize("text", [
    "not json", "", "[1, 2]", '"text"', "{bad",
    pytest.param("[" * 100000 + "]" * 100000, id="deep-nesting"),
    pytest.param(
        '{"streak": ' + "9" * 5000 + "}",
        marks=pytest.mark.skipif(sys.version_info < (3, 11), reason="int digit limit is 3.11+"),
        id="huge-int",
    ),
])
def test_parse_error_merges_nothing(loaded, repo, text):
    before = _snapshot_of(loaded.state)
    stored = {k: repo.get(k) for k in STATE_KEYS.values()}
    with pytest.raises(ParseError):
        loaded.import_snapshot(text)
    assert loaded.state == before
    assert {k: repo.get(k) for k in STATE_KEYS.values()} == stored


def test_streak_only_import(loaded, repo):
    routine_bytes = repo.get(STATE_KEYS["routine"])
    history_bytes = repo.get(STATE_KEYS["history"])
    routine_before = list(loaded.state.routine)
    history_before = list(loaded.state.history)

    assert loaded.import_snapshot('{"streak": 5}') == ["streak"]

    assert loaded.state.streak == 5
    assert loaded.state.routine == routine_before
    assert loaded.state.history == history_before
    assert repo.get(STATE_KEYS["routine"]) == routine_bytes
    assert repo.get(STATE_KEYS["history"]) == history_bytes
    assert repo.load_state().streak == 5


def test_malformed_field_is_skipped_others_apply(loaded, caplog):
    text = json.dumps({"routine": {"not": "a list"}, "streak": 7, "stats": "nope", "lastResetDate": 12})
    with caplog.at_level("WARNING"):
        applied = loaded.import_snapshot(text)
    assert applied == ["streak"]
    assert loaded.state.streak == 7
    assert len(loaded.state.routine) == 3
    assert "routine" in caplog.text


def test_bad_task_entry_skips_whole_routine(loaded):
    text = json.dumps({"routine": [{"id": "x", "title": "ok"}, "junk"]})
    assert loaded.import_snapshot(text) == []
    assert [t.id for t in loaded.state.routine] == ["a", "b", "c"]


@pytest.mark.parametrize("value", [True, -1, 2.5, "3"])
def test_streak_must_be_non_negative_int(loaded, value):
    assert loaded.import_snapshot(json.dumps({"streak": value})) == []
    assert loaded.state.streak == 2


def test_null_fields_are_treated_as_absent(loaded):
    text = json.dumps({"routine": None, "streak": None, "stats": None, "lastResetDate": None})
    assert loaded.import_snapshot(text) == []
    assert loaded.state.last_rollover_date == date(2026, 2, 16)


def test_empty_lists_do_apply(loaded):
    assert loaded.import_snapshot('{"routine": [], "stats": []}') == ["routine", "history"]
    assert loaded.state.routine == []
    assert loaded.state.history == []


def test_legacy_backup_imports(engine):
    legacy = {
        "routine": [
            {"id": "3f2c", "title": "Run", "time": "07:00", "category": "health",
             "days": ["mon", "wed", "fri"], "reminder": "06:45", "completed": True, "skipped": False},
            {"id": "9a1b", "title": "Read", "time": "", "category": "study",
             "reminder": "", "completed": False, "skipped": True},
        ],
        "streak": 3,
        "stats": [
            {"date": "2026-02-15", "completed": 1, "total": 2, "streak": 0},
            {"date": "2026-02-14", "completed": 2, "total": 2, "streak": 3},
        ],
        "lastResetDate": "2026-02-16T00:00:00.000Z",
    }
    engine.import_snapshot(json.dumps(legacy))

    run, read = engine.state.routine
    assert run.status == TaskStatus.COMPLETED
    assert run.days_of_week == ("mon", "wed", "fri")
    assert (run.scheduled_time, run.reminder_time) == ("07:00", "06:45")
    assert read.status == TaskStatus.SKIPPED
    assert read.days_of_week is None
    assert engine.state.streak == 3
    assert [r.date for r in engine.state.history] == [date(2026, 2, 14), date(2026, 2, 15)]
    assert engine.state.last_rollover_date == date(2026, 2, 16)


def test_imported_history_is_bounded_and_clamped(engine):
    stats = [{"date": f"2026-01-{d:02d}", "completed": 5, "total": 3, "streak": d} for d in range(1, 32)]
    engine.import_snapshot(json.dumps({"stats": stats}))
    assert len(engine.state.history) == 30
    assert engine.state.history[0].date == date(2026, 1, 2)
    assert engine.state.history[-1].completed_count == 3


def test_import_from_file(engine, tmp_path):
    p = tmp_path / "backup.json"
    p.write_text("\ufeff" + '{"streak": 9}', encoding="utf-8")
    assert engine.import_snapshot_file(p) == ["streak"]
    assert engine.state.streak == 9


def test_decode_snapshot_text_accepts_bytes():
    assert decode_snapshot_text(b'{"streak": 1}') == {"streak": 1}
    with pytest.raises(ParseError):
        decode_snapshot_text(b"\xff\xfe\x00")


def test_merge_snapshot_ignores_unknown_keys():
    state = _state()
    assert merge_snapshot(state, {"theme": "dark", "streak": 0}) == ["streak"]
    assert state.streak == 0


def test_backup_file(tmp_path, lisbon):
    snap = export_snapshot(_state())
    assert backup_filename(date(2026, 2, 16)) == "routine-tracker-backup-2026-02-16.json"
    p = write_backup(snap, tmp_path / "backups", date(2026, 2, 16))
    assert p.name == "routine-tracker-backup-2026-02-16.json"
    assert json.loads(p.read_text(encoding="utf-8")) == snap.to_dict()


def test_import_then_rollover_keeps_history_ordered(engine):
    engine.import_snapshot(json.dumps({
        "stats": [{"date": "2026-02-20", "completed": 1, "total": 1, "streak": 1}],
        "lastResetDate": "2026-02-18",
    }))
    engine.save_routine([replace(make_task("a"), status=TaskStatus.COMPLETED)])
    rec = engine.check_and_rollover(dt_local(2026, 2, 19, 8, 0))
    assert rec.date == date(2026, 2, 18)
    assert [r.date for r in engine.state.history] == [date(2026, 2, 18)]
