from __future__ import annotations

import json
import sqlite3
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from attestview.core.patterns import PatternType

HISTORY_STORAGE_KEY = "jsonViewerHistory"
PREVIEW_MAX_CHARS = 50


def _json_dumps(obj: Any) -> str:
    """Compact JSON serialization (keys kept in insertion order)."""

    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class HistoryItem:
    """One previously viewed document.

    timestamp is Unix time in milliseconds.
    """

    json: str
    timestamp: int
    pattern_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"json": self.json, "timestamp": self.timestamp}
        if self.pattern_type:
            out["patternType"] = self.pattern_type
        return out

    @classmethod
    def from_dict(cls, data: Any) -> Optional["HistoryItem"]:
        """Rebuild an item from stored data; None for unusable entries."""

        if not isinstance(data, dict) or not isinstance(data.get("json"), str):
            return None
        ts = data.get("timestamp")
        if not isinstance(ts, int) or isinstance(ts, bool):
            return None
        pt = data.get("patternType")
        return cls(json=data["json"], timestamp=ts, pattern_type=pt if isinstance(pt, str) else None)


@dataclass(slots=True)
class HistoryStore:
    """Recently viewed documents, persisted as one JSON array in SQLite.

    The array lives under a fixed storage key in a small key/value table;
    newest entries come first, duplicates (exact raw text) are collapsed and
    the list is capped at ``limit`` entries.

    Notes:
    - Treat all values read from the database as untrusted.
    - Malformed stored history reads as empty.
    """

    db_path: Path
    limit: int = 20
    storage_key: str = HISTORY_STORAGE_KEY

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        if self.limit < 1:
            raise ValueError("limit must be >= 1")

    def connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def init_schema(self) -> None:
        """Create the key/value table if missing."""

        with self.connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def _read_raw(self) -> Optional[str]:
        self.init_schema()
        with self.connect() as con:
            row = con.execute("SELECT value FROM kv WHERE key = ?", (self.storage_key,)).fetchone()
        return row[0] if row else None

    def _write(self, items: List[HistoryItem]) -> None:
        self.init_schema()
        payload = _json_dumps([it.to_dict() for it in items])
        with self.connect() as con:
            con.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (self.storage_key, payload),
            )

    def load(self) -> List[HistoryItem]:
        """Return history, newest first."""

        raw = self._read_raw()
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            return []
        if not isinstance(data, list):
            return []
        items = [HistoryItem.from_dict(d) for d in data]
        return [it for it in items if it is not None]

    def add(
        self,
        raw_json: str,
        *,
        pattern_type: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> HistoryItem:
        """Prepend a document, dropping any earlier entry with identical text."""

        tag = PatternType(pattern_type).value if pattern_type else None
        if tag == PatternType.UNKNOWN.value:
            tag = None
        item = HistoryItem(
            json=raw_json,
            timestamp=int(timestamp) if timestamp is not None else int(time.time() * 1000),
            pattern_type=tag,
        )
        items = [it for it in self.load() if it.json != raw_json]
        items.insert(0, item)
        self._write(items[: self.limit])
        return item

    def remove(self, index: int) -> HistoryItem:
        items = self.load()
        if not 0 <= index < len(items):
            raise IndexError(f"history index out of range: {index}")
        removed = items.pop(index)
        self._write(items)
        return removed

    def clear(self) -> None:
        self._write([])


def preview(item: HistoryItem, *, max_chars: int = PREVIEW_MAX_CHARS) -> str:
    """Single-line preview: compact JSON (or raw text), truncated with '...'."""

    try:
        text = _json_dumps(json.loads(item.json))
    except ValueError:
        text = item.json
    if len(text) > max_chars:
        return text[: max_chars - 3] + "..."
    return text


def format_timestamp(timestamp_ms: int) -> str:
    """Local time-of-day for a history timestamp."""

    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M:%S")
