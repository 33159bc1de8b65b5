"""Keyed local persistence for whole-report snapshots.

Three interchangeable backends honour the same async `get`/`put` contract:
an in-memory store (with optional quota), one JSON document per key on disk,
and an embedded SQLite database. A `put` replaces the saved report entirely;
a `get` for an unknown key returns None. Capacity problems surface as
`StorageFull` and never leave a partial write behind.
"""

from __future__ import annotations

import asyncio
import errno
import hashlib
import json
from pathlib import Path
import sqlite3
import time
from typing import Any

from loguru import logger

from core.errors import PersistenceError, StorageFull
from core.models import Report
from infrastructure.settings import setting_int, setting_str

STORE_VERSION = 1
SQLITE_FULL_CODE = 13
_FULL_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


def serialize_report(report: Report) -> str:
    """Encode `report` as compact JSON text."""
    return json.dumps(report.to_dict(), ensure_ascii=False, separators=(",", ":"))


def deserialize_report(text: str) -> Report:
    """Decode JSON text produced by `serialize_report`.

    Raises:
        PersistenceError: if the text is not a JSON object.
    """
    try:
        raw = json.loads(text)
    except (ValueError, TypeError) as ex:
        raise PersistenceError(f"Saved report is corrupt: {ex}") from ex
    if not isinstance(raw, dict):
        raise PersistenceError("Saved report is not a JSON object")
    return Report.from_dict(raw)


class MemoryReportStore:
    """Process-local store; `quota_bytes` emulates a browser storage quota."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._quota = quota_bytes if quota_bytes and quota_bytes > 0 else None
        self._data: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._data)

    def keys(self) -> list[str]:
        """Saved keys in insertion order."""
        return list(self._data)

    def used_bytes(self) -> int:
        """Total UTF-8 size of all saved payloads."""
        return sum(len(v.encode("utf-8")) for v in self._data.values())

    async def get(self, key: str) -> Report | None:
        text = self._data.get(key)
        if text is None:
            return None
        return deserialize_report(text)

    async def put(self, key: str, report: Report) -> None:
        text = serialize_report(report)
        if self._quota is not None:
            previous = self._data.get(key)
            used = self.used_bytes() - (len(previous.encode("utf-8")) if previous else 0)
            needed = len(text.encode("utf-8"))
            if used + needed > self._quota:
                raise StorageFull(
                    f"Quota exceeded: {used + needed} bytes needed, {self._quota} allowed"
                )
        self._data[key] = text


class JsonFileReportStore:
    """One JSON document per key under `directory`, written atomically."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).expanduser()

    def path_for(self, key: str) -> Path:
        """File holding the report saved under `key`."""
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    async def get(self, key: str) -> Report | None:
        return await asyncio.to_thread(self._get_sync, key)

    async def put(self, key: str, report: Report) -> None:
        await asyncio.to_thread(self._put_sync, key, report)

    def _get_sync(self, key: str) -> Report | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except OSError as ex:
            raise PersistenceError(f"Could not read {path}: {ex}") from ex
        except ValueError as ex:
            raise PersistenceError(f"Saved report is corrupt: {path}") from ex
        if not isinstance(payload, dict) or not isinstance(payload.get("report"), dict):
            raise PersistenceError(f"Saved report is malformed: {path}")
        return Report.from_dict(payload["report"])

    def _put_sync(self, key: str, report: Report) -> None:
        path = self.path_for(key)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        document: dict[str, Any] = {
            "version": STORE_VERSION,
            "key": key,
            "updated_at": int(time.time()),
            "report": report.to_dict(),
        }
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(document, ensure_ascii=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as ex:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError:
                pass
            if ex.errno in _FULL_ERRNOS:
                raise StorageFull(f"Disk full while saving {key}") from ex
            raise PersistenceError(f"Could not save {key}: {ex}") from ex


class SqliteReportStore:
    """Embedded SQLite database; each call is its own short transaction."""

    SCHEMA = (
        "CREATE TABLE IF NOT EXISTS reports ("
        " key TEXT PRIMARY KEY,"
        " value TEXT NOT NULL,"
        " updated_at INTEGER NOT NULL)"
    )

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path).expanduser()

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.execute(self.SCHEMA)
        return conn

    async def get(self, key: str) -> Report | None:
        return await asyncio.to_thread(self._get_sync, key)

    async def put(self, key: str, report: Report) -> None:
        await asyncio.to_thread(self._put_sync, key, report)

    def _get_sync(self, key: str) -> Report | None:
        try:
            conn = self._connect()
            try:
                row = conn.execute("SELECT value FROM reports WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as ex:
            raise PersistenceError(f"Could not read {key}: {ex}") from ex
        if row is None:
            return None
        return deserialize_report(row[0])

    def _put_sync(self, key: str, report: Report) -> None:
        text = serialize_report(report)
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        "INSERT OR REPLACE INTO reports (key, value, updated_at) VALUES (?, ?, ?)",
                        (key, text, int(time.time())),
                    )
            finally:
                conn.close()
        except sqlite3.Error as ex:
            if _is_sqlite_full(ex):
                raise StorageFull(f"Database full while saving {key}") from ex
            raise PersistenceError(f"Could not save {key}: {ex}") from ex
        except OSError as ex:
            if ex.errno in _FULL_ERRNOS:
                raise StorageFull(f"Disk full while saving {key}") from ex
            raise PersistenceError(f"Could not save {key}: {ex}") from ex


def _is_sqlite_full(ex: sqlite3.Error) -> bool:
    code = getattr(ex, "sqlite_errorcode", None)
    if code is not None and code & 0xFF == SQLITE_FULL_CODE:
        return True
    return "full" in str(ex).lower()


def create_report_store(settings: object | None = None, base_dir: str | Path | None = None):
    """Build the backend named by `storage.backend` (sqlite, json or memory)."""
    backend = setting_str(settings, "storage.backend", "sqlite").lower()
    root = Path(base_dir) if base_dir else Path.home() / ".photo-report"
    if backend == "memory":
        quota = setting_int(settings, "storage.quota_bytes", 0)
        store: Any = MemoryReportStore(quota_bytes=quota or None)
    elif backend == "json":
        store = JsonFileReportStore(setting_str(settings, "storage.path", str(root / "reports")))
    elif backend == "sqlite":
        store = SqliteReportStore(setting_str(settings, "storage.path", str(root / "reports.db")))
    else:
        raise ValueError(f"Unknown storage backend: {backend}")
    logger.info("Report store: {} ({})", backend, type(store).__name__)
    return store
