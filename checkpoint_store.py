"""Append-only SQLite logs for ledger checkpoints and incidents."""

from __future__ import annotations

import json
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from dateutil import parser

from logger import get_logger


@dataclass(frozen=True)
class CheckpointRecord:
    id: int
    feed_id: int
    created_at: datetime
    ledger: Dict[str, int]


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _connect(path: Path | str) -> sqlite3.Connection:
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    # Shared by the feed, ticker and signal threads; access is serialised by a lock.
    return sqlite3.connect(str(path), check_same_thread=False, isolation_level=None)


def encode_ledger(ledger: Dict[str, int]) -> str:
    return json.dumps(ledger, sort_keys=True)


def decode_ledger(text: Optional[str]) -> Dict[str, int]:
    data = json.loads(text or "{}")
    if not isinstance(data, dict):
        raise ValueError(f"Ledger snapshot is not an object: {text!r}")
    return {str(name): int(value) for name, value in data.items()}


class CheckpointStore:
    """Ledger snapshots keyed by feed id; the newest record is the current one."""

    def __init__(self, path: Path | str) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._conn = _connect(path)
        self.logger = get_logger(__name__)
        with self._lock:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS index_reports ("
                "id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "meter_id INTEGER NOT NULL, "
                "created_at TEXT NOT NULL, "
                "indexes TEXT NOT NULL)"
            )

    def append(self, feed_id: int, ledger: Dict[str, int]) -> int:
        """Persist a snapshot and return its sequence number."""
        with self._lock:
            cursor = self._conn.execute(
                "INSERT INTO index_reports (meter_id, created_at, indexes) VALUES (?, ?, ?)",
                (feed_id, _utcnow(), encode_ledger(ledger)),
            )
            seq = cursor.lastrowid
        self.logger.debug("Checkpoint %s for feed %s: %s", seq, feed_id, ledger)
        return seq

    def latest_record(self, feed_id: int) -> Optional[CheckpointRecord]:
        with self._lock:
            row = self._conn.execute(
                "SELECT id, meter_id, created_at, indexes FROM index_reports "
                "WHERE meter_id = ? ORDER BY id DESC LIMIT 1",
                (feed_id,),
            ).fetchone()
        if row is None:
            return None
        seq, meter_id, created_at, indexes = row
        return CheckpointRecord(seq, meter_id, parser.isoparse(created_at), decode_ledger(indexes))

    def get_latest(self, feed_id: int) -> Tuple[Optional[int], Dict[str, int]]:
        """Return ``(sequence_number, ledger)``; ``(None, {})`` when empty."""
        record = self.latest_record(feed_id)
        if record is None:
            return None, {}
        return record.id, record.ledger

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class IncidentLog:
    """Human-readable audit notes, mirrored to the log stream."""

    def __init__(self, path: Path | str) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._conn = _connect(path)
        self.logger = get_logger("incident")
        with self._lock:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS incidents ("
                "id INTEGER PRIMARY KEY, "
                "created_at TEXT NOT NULL, "
                "incident TEXT NOT NULL)"
            )

    def append(self, text: str) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT INTO incidents (created_at, incident) VALUES (?, ?)",
                (_utcnow(), text),
            )
        self.logger.warning(text)

    def recent(self, limit: int = 20) -> List[Dict[str, str]]:
        """Return the newest incidents first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT created_at, incident FROM incidents ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [{"created_at": created_at, "incident": text} for created_at, text in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
