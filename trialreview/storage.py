"""Best-effort keyed storage for review state.

Review state lives in named JSON blobs.  Every backend reports the outcome of
a read or write as a :class:`StorageResult` instead of raising: the in-memory
stores stay authoritative for the session when the disk is full, read-only or
corrupt, and callers that care (tests, the CLI) can still inspect what
happened.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .config import ReviewConfig
from .shared.database import Database, fetch_one
from .utils import atomic_write_text, ensure_dir

LOGGER = logging.getLogger(__name__)

_STORAGE_ERRORS = (OSError, sqlite3.Error, ValueError, TypeError)


@dataclass
class StorageResult:
    ok: bool
    key: str
    value: Any = None
    found: bool = False
    error: Optional[str] = None

    @classmethod
    def failure(cls, key: str, exc: BaseException) -> "StorageResult":
        return cls(ok=False, key=key, error=f"{type(exc).__name__}: {exc}")


class KeyValueStorage:
    """Base class: subclasses move raw JSON text in and out of a medium."""

    name = "abstract"

    def _read_raw(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write_raw(self, key: str, text: str) -> None:
        raise NotImplementedError

    def read(self, key: str) -> StorageResult:
        try:
            raw = self._read_raw(key)
            if raw is None:
                return StorageResult(ok=True, key=key)
            return StorageResult(ok=True, key=key, value=json.loads(raw), found=True)
        except _STORAGE_ERRORS as exc:
            LOGGER.warning("Failed to read %s from %s storage: %s", key, self.name, exc, extra={"key": key})
            return StorageResult.failure(key, exc)

    def write(self, key: str, value: Any) -> StorageResult:
        try:
            self._write_raw(key, json.dumps(value, ensure_ascii=False))
            return StorageResult(ok=True, key=key, value=value, found=True)
        except _STORAGE_ERRORS as exc:
            LOGGER.warning("Failed to write %s to %s storage: %s", key, self.name, exc, extra={"key": key})
            return StorageResult.failure(key, exc)


class MemoryStorage(KeyValueStorage):
    """Process-local storage; values are still round-tripped through JSON."""

    name = "memory"

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.blobs: Dict[str, str] = dict(initial or {})

    def _read_raw(self, key: str) -> Optional[str]:
        return self.blobs.get(key)

    def _write_raw(self, key: str, text: str) -> None:
        self.blobs[key] = text


class JSONFileStorage(KeyValueStorage):
    """One ``<key>.json`` file per blob inside ``root``."""

    name = "json"

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def _read_raw(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write_raw(self, key: str, text: str) -> None:
        ensure_dir(self.root)
        atomic_write_text(self.path_for(key), text)


class SQLiteStorage(KeyValueStorage):
    """Blobs stored as rows of a ``kv`` table in a local SQLite file."""

    name = "sqlite"

    def __init__(self, path: Path | str) -> None:
        self.db = Database(path)
        self._schema_ready = False

    def _ensure_schema(self) -> None:
        if not self._schema_ready:
            self.db.ensure_schema()
            self._schema_ready = True

    def _read_raw(self, key: str) -> Optional[str]:
        if not self.db.path.exists():
            # surfaces an unusable state directory before the first write
            self.db.ensure_parent()
            return None
        self._ensure_schema()
        with self.db.transaction() as conn:
            row = fetch_one(conn, "SELECT value FROM kv WHERE key=?", (key,))
        return None if row is None else row["value"]

    def _write_raw(self, key: str, text: str) -> None:
        self._ensure_schema()
        with self.db.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv(key, value, updated_at) VALUES (?,?,?)",
                (key, text, datetime.now(timezone.utc).isoformat()),
            )


def build_storage(config: ReviewConfig) -> KeyValueStorage:
    if config.storage_backend == "memory":
        return MemoryStorage()
    if config.storage_backend == "json":
        return JSONFileStorage(config.state_dir)
    return SQLiteStorage(config.sqlite_path)
