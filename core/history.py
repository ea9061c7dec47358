"""
SQLite-backed analysis history for Video Insight.

Schema
──────
table: kv_store
  key   TEXT PRIMARY KEY
  value TEXT NOT NULL   (JSON)

The whole history is one JSON array of HistoryItem stored under the key
``video_history``, newest first, capped at ``limit`` entries. Items are
keyed by video ID (or ``local-<epoch ms>`` when the record has none); saving
an item with an existing key replaces the old one.

On load, a value that does not parse or is not an array of objects is
discarded wholesale and reset. Every embedded record is re-sanitized so
older stored shapes keep loading.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from core.errors import CorruptStateError
from core.models import AnalysisRecord, HistoryItem
from core.sanitizer import DEFAULT_VIDEO_TYPE, sanitize_analysis
from core.youtube import NOT_FOUND

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "history.db"
HISTORY_KEY = "video_history"
DEFAULT_LIMIT = 10


def _db_path() -> Path:
    """Return the database file path, honouring a DB_PATH env var if set."""
    env = os.getenv("DB_PATH")
    return Path(env) if env else DEFAULT_DB_PATH


@contextmanager
def _connect():
    """Yield a connected sqlite3.Connection, creating the file/dir if needed."""
    path = _db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db() -> None:
    """Create the kv_store table if it doesn't exist yet."""
    with _connect() as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key   TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
    logger.info("History DB initialised at %s", _db_path())


# ── Raw persistence ────────────────────────────────────────────────────────

def _read_raw() -> Optional[str]:
    with _connect() as conn:
        row = conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (HISTORY_KEY,)
        ).fetchone()
    return row["value"] if row else None


def _write(items: list[HistoryItem]) -> None:
    payload = json.dumps([item.model_dump(by_alias=True) for item in items])
    with _connect() as conn:
        conn.execute(
            "INSERT INTO kv_store (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (HISTORY_KEY, payload),
        )


def _parse(raw: str) -> list[HistoryItem]:
    """Decode the stored array, healing each embedded record.

    Raises:
        CorruptStateError: If the value is not a JSON array of objects.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CorruptStateError(f"history is not valid JSON: {exc}") from exc
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise CorruptStateError("history is not an array of objects")

    items: list[HistoryItem] = []
    for entry in data:
        record = sanitize_analysis(entry.get("data"))
        try:
            timestamp = float(entry.get("timestamp") or 0)
            items.append(
                HistoryItem(
                    id=str(entry.get("id") or history_key(record, timestamp)),
                    title=entry.get("title") or record.title,
                    timestamp=timestamp,
                    video_type=entry.get("videoType") or record.video_type,
                    thumbnail=entry.get("thumbnail"),
                    data=record,
                )
            )
        except (ValidationError, TypeError, ValueError) as exc:
            raise CorruptStateError(f"history item is malformed: {exc}") from exc
    return items


# ── Public API ─────────────────────────────────────────────────────────────

def _synthetic_key(now_ms: Optional[float] = None) -> str:
    return f"local-{int(now_ms if now_ms is not None else time.time() * 1000)}"


def history_key(record: AnalysisRecord, now_ms: Optional[float] = None) -> str:
    """Return the dedup key for *record*: its video ID, else a timestamp key."""
    if record.video_id and record.video_id != NOT_FOUND:
        return record.video_id
    return _synthetic_key(now_ms)


def load_all() -> list[HistoryItem]:
    """Return all stored items, newest first. Corrupt state is reset to empty."""
    raw = _read_raw()
    if raw is None:
        return []
    try:
        return _parse(raw)
    except CorruptStateError as exc:
        logger.warning("Discarding corrupt history: %s", exc)
        _write([])
        return []


def save(
    record: AnalysisRecord,
    thumbnail: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
    now_ms: Optional[float] = None,
) -> HistoryItem:
    """Store *record* at the front of the history and return the new item.

    Any existing item with the same key is removed first; the list is then
    truncated to the *limit* most recent items.
    """
    now_ms = now_ms if now_ms is not None else time.time() * 1000
    item = HistoryItem(
        id=history_key(record, now_ms),
        title=record.title,
        timestamp=now_ms,
        video_type=record.video_type or DEFAULT_VIDEO_TYPE,
        thumbnail=thumbnail,
        data=record,
    )

    items = [existing for existing in load_all() if existing.id != item.id]
    items.insert(0, item)
    _write(items[:limit])

    logger.info("Saved history item id=%s title=%r", item.id, item.title)
    return item


def get_by_id(item_id: str) -> Optional[HistoryItem]:
    """Return the stored item with *item_id*, or None."""
    for item in load_all():
        if item.id == item_id:
            return item
    return None


def delete(item_id: str) -> bool:
    """Delete an item by ID. Returns True if something was removed."""
    items = load_all()
    remaining = [item for item in items if item.id != item_id]
    if len(remaining) == len(items):
        return False
    _write(remaining)
    logger.info("Deleted history item id=%s", item_id)
    return True


def clear() -> None:
    """Remove every stored item."""
    _write([])
    logger.info("Cleared history")
