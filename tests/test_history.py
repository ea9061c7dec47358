"""
Tests for core/history.py

Uses a temporary SQLite file so the real history DB is never touched.

Run with: pytest tests/test_history.py
"""

import json
import sqlite3

import pytest

import core.history as hist
from core.sanitizer import sanitize_analysis


@pytest.fixture(autouse=True)
def _db(temp_db):
    yield temp_db


def write_raw(db_file, value: str) -> None:
    conn = sqlite3.connect(str(db_file))
    conn.execute(
        "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)", (hist.HISTORY_KEY, value)
    )
    conn.commit()
    conn.close()


def make_record(video_id="dQw4w9WgXcQ", title="Never Gonna Give You Up", **extra):
    return sanitize_analysis({"videoId": video_id, "title": title, "summary": "s", **extra})


class TestSaveAndLoad:
    def test_empty_history(self):
        assert hist.load_all() == []

    def test_save_returns_item_keyed_by_video_id(self):
        item = hist.save(make_record(), thumbnail="https://img/x.jpg", now_ms=1000)
        assert item.id == "dQw4w9WgXcQ"
        assert item.timestamp == 1000
        assert item.thumbnail == "https://img/x.jpg"

    def test_round_trip_keeps_record(self):
        record = make_record(themes=[{"topic": "Loyalty", "details": "d"}])
        hist.save(record, now_ms=1)
        loaded = hist.load_all()
        assert len(loaded) == 1
        assert loaded[0].data == record

    def test_newest_first(self):
        hist.save(make_record("aaaaaaaaaaa", "A"), now_ms=1)
        hist.save(make_record("bbbbbbbbbbb", "B"), now_ms=2)
        assert [item.title for item in hist.load_all()] == ["B", "A"]

    def test_no_video_id_uses_timestamp_key(self):
        item = hist.save(make_record(video_id=None, title="Pasted"), now_ms=1700000000000)
        assert item.id == "local-1700000000000"

    def test_not_found_sentinel_not_used_as_key(self):
        item = hist.save(make_record(video_id="NOT_FOUND"), now_ms=5)
        assert item.id == "local-5"


class TestDedupAndCap:
    def test_same_video_replaces_and_moves_to_front(self):
        hist.save(make_record("aaaaaaaaaaa", "A"), now_ms=1)
        hist.save(make_record("bbbbbbbbbbb", "B"), now_ms=2)
        hist.save(make_record("aaaaaaaaaaa", "A again"), now_ms=3)

        items = hist.load_all()
        assert [item.id for item in items] == ["aaaaaaaaaaa", "bbbbbbbbbbb"]
        assert items[0].title == "A again"

    def test_capped_at_limit(self):
        for i in range(11):
            hist.save(make_record(f"video{i:06d}", f"V{i}"), now_ms=i)
        items = hist.load_all()
        assert len(items) == hist.DEFAULT_LIMIT
        assert items[0].title == "V10"
        assert "V0" not in [item.title for item in items]

    def test_custom_limit(self):
        for i in range(3):
            hist.save(make_record(f"video{i:06d}"), limit=2, now_ms=i)
        assert len(hist.load_all()) == 2


class TestCorruption:
    @pytest.mark.parametrize("raw", ["{not json", '{"a": 1}', '[1, 2]', '"text"'])
    def test_corrupt_value_is_reset(self, raw, _db):
        write_raw(_db, raw)
        assert hist.load_all() == []
        assert hist._read_raw() == "[]"

    def test_stored_records_are_resanitized(self, _db):
        write_raw(_db, json.dumps([{
            "id": "old", "title": "Old", "timestamp": 10, "videoType": "Vlog",
            "data": {"title": "Old", "themes": "not a list"},
        }]))
        items = hist.load_all()
        assert items[0].id == "old"
        assert items[0].data.themes == []
        assert items[0].data.summary == "No summary available."

    def test_entry_without_id_gets_stable_key(self, _db):
        write_raw(_db, json.dumps([{
            "title": "Pasted", "timestamp": 1700000000000, "data": {"title": "Pasted"},
        }]))
        assert hist.load_all()[0].id == "local-1700000000000"
        assert hist.get_by_id("local-1700000000000").title == "Pasted"
        assert hist.delete("local-1700000000000") is True
        assert hist.load_all() == []


class TestLookupAndDelete:
    def test_get_by_id(self):
        hist.save(make_record(), now_ms=1)
        assert hist.get_by_id("dQw4w9WgXcQ").title == "Never Gonna Give You Up"
        assert hist.get_by_id("missing") is None

    def test_delete(self):
        hist.save(make_record(), now_ms=1)
        assert hist.delete("dQw4w9WgXcQ") is True
        assert hist.load_all() == []

    def test_delete_missing_returns_false(self):
        assert hist.delete("missing") is False

    def test_clear(self):
        hist.save(make_record("aaaaaaaaaaa"), now_ms=1)
        hist.save(make_record("bbbbbbbbbbb"), now_ms=2)
        hist.clear()
        assert hist.load_all() == []
