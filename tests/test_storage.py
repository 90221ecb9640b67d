"""Tests for persistence adapters and the typed stats store."""

import json
from datetime import datetime, timezone

import pytest

from trailbadge.errors import StorageError
from trailbadge.stats import UnlockedBadgeRecord, UserStats
from trailbadge.storage import JsonFileStore, MemoryStore, UserStatsStore

WHEN = datetime(2026, 5, 20, 12, 0, tzinfo=timezone.utc)


def _records(*badge_ids) -> dict:
    return {b: UnlockedBadgeRecord(b, WHEN) for b in badge_ids}


# --- Adapters ---

def test_memory_store_read_write_delete():
    store = MemoryStore()
    assert store.read("k") is None
    store.write_many({"k": "1", "j": "2"})
    assert store.read("k") == "1"
    store.delete_many(["k", "missing"])
    assert store.read("k") is None
    assert store.read("j") == "2"


def test_json_file_store_persists_across_instances(tmp_path):
    path = tmp_path / "nested" / "state.json"
    JsonFileStore(path).write_many({"user_stats": json.dumps({"completed_routes": 2})})
    assert json.loads(JsonFileStore(path).read("user_stats")) == {"completed_routes": 2}
    # stored as plain JSON, not double-encoded
    assert json.loads(path.read_text(encoding="utf-8"))["user_stats"]["completed_routes"] == 2


def test_json_file_store_leaves_no_temp_files(tmp_path):
    path = tmp_path / "state.json"
    store = JsonFileStore(path)
    store.write_many({"a": "1"})
    store.write_many({"b": "2"})
    assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


def test_json_file_store_read_corrupt_raises(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{oops", encoding="utf-8")
    with pytest.raises(StorageError):
        JsonFileStore(path).read("user_stats")


def test_json_file_store_write_replaces_corrupt_file(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{oops", encoding="utf-8")
    store = JsonFileStore(path)
    store.write_many({"a": "1"})
    assert store.read("a") == "1"


def test_json_file_store_delete_missing_file_is_noop(tmp_path):
    JsonFileStore(tmp_path / "none.json").delete_many(["a"])
    assert not (tmp_path / "none.json").exists()


# --- Typed store ---

def test_load_defaults_when_empty():
    store = UserStatsStore(MemoryStore())
    assert store.load() == UserStats()
    assert store.load_unlocked() == {}
    assert store.load_progress() == {}


def test_load_falls_back_on_corrupt_stats():
    adapter = MemoryStore()
    adapter.write_many({"user_stats": "{not json"})
    assert UserStatsStore(adapter).load() == UserStats()


def test_load_falls_back_on_invalid_counters():
    adapter = MemoryStore()
    adapter.write_many({"user_stats": json.dumps({"completed_routes": -4})})
    assert UserStatsStore(adapter).load() == UserStats()


def test_load_falls_back_on_unreadable_file(tmp_path):
    path = tmp_path / "state.json"
    path.write_bytes(b"\xff\xfe garbage")
    store = UserStatsStore(JsonFileStore(path))
    assert store.load() == UserStats()
    assert store.load_unlocked() == {}


def test_load_unlocked_skips_bad_records():
    adapter = MemoryStore()
    adapter.write_many({"user_badges": json.dumps([
        {"badge_id": "ok", "unlocked_at": WHEN.isoformat()},
        {"badge_id": "no_time"},
        "junk",
    ])})
    records = UserStatsStore(adapter).load_unlocked()
    assert list(records) == ["ok"]


def test_commit_writes_all_keys_together():
    adapter = MemoryStore()
    store = UserStatsStore(adapter)
    stats = UserStats(completed_routes=1, experience=110)
    store.commit(stats, _records("first_route"), {"first_route": 1.0, "route_master": 0.1})

    assert store.load() == stats
    assert list(store.load_unlocked()) == ["first_route"]
    assert store.load_progress() == {"first_route": 1.0, "route_master": 0.1}


def test_save_only_touches_stats():
    store = UserStatsStore(MemoryStore())
    store.commit(UserStats(), _records("a"), {})
    store.save(UserStats(photos_taken=3))
    assert store.load().photos_taken == 3
    assert list(store.load_unlocked()) == ["a"]


def test_reset_then_load_is_empty(tmp_path):
    store = UserStatsStore(JsonFileStore(tmp_path / "state.json"))
    store.commit(UserStats(completed_routes=9, experience=900), _records("a", "b"), {"a": 1.0})
    store.reset()
    assert store.load() == UserStats()
    assert store.load_unlocked() == {}
    assert store.load_progress() == {}
