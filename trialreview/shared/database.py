"""Lightweight SQLite helpers for the local review state file."""
from __future__ import annotations

import contextlib
import sqlite3
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence


KV_SCHEMA = """
    CREATE TABLE IF NOT EXISTS kv (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
"""


class Database:
    """A thin wrapper around sqlite3 with sane defaults for a single local client.

    Connections use WAL journaling and NORMAL synchronous writes.  Each
    :meth:`transaction` opens a fresh connection, commits on success and rolls
    back on error; the review state is small enough that connection reuse is
    not worth the bookkeeping.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def ensure_parent(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _apply_pragmas(self, conn: sqlite3.Connection) -> None:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path)
        self._apply_pragmas(conn)
        return conn

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self.connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_schema(self, statements: Sequence[str] = (KV_SCHEMA,)) -> None:
        self.ensure_parent()
        with self.transaction() as conn:
            for statement in statements:
                conn.execute(statement)


def fetch_one(conn: sqlite3.Connection, sql: str, params: Sequence[Any] | None = None) -> Optional[sqlite3.Row]:
    cur = conn.execute(sql, params or [])
    return cur.fetchone()
