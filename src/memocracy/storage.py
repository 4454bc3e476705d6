"""
memocracy.storage — Pluggable persistence backends handed to the core.

The core never owns a database; callers inject one of these backends (or
their own implementation of the abstract interfaces).

Nonce backends:  MemoryNonceBackend, SQLiteNonceBackend
Score backends:  MemoryScoreBackend, SQLiteScoreBackend

Nonce consumption is a single conditional update in every backend: a record
moves from unconsumed to consumed only if it is still unconsumed at the time
of the write, so two concurrent verifications can never both win.
"""

import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


# ─── Records ───────────────────────────────────────────────────────

@dataclass
class NonceRecord:
    id: str
    identity: str
    value: str
    issued_at: datetime
    consumed_at: Optional[datetime] = None

    @property
    def consumed(self) -> bool:
        return self.consumed_at is not None


@dataclass
class ScoreRecord:
    """A persisted score plus the time it was last computed."""
    entity_id: str
    payload: dict
    last_checked_at: datetime


def _ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


# ─── Abstract Backends ─────────────────────────────────────────────

class NonceBackend(ABC):
    """Persistence surface for single-use challenges."""

    @abstractmethod
    def insert(self, record: NonceRecord) -> None: ...

    @abstractmethod
    def invalidate_unconsumed(self, identity: str) -> int:
        """Delete every unconsumed nonce of ``identity``. Returns count."""

    @abstractmethod
    def replace_unconsumed(self, record: NonceRecord) -> int:
        """Atomically drop the unconsumed nonces of ``record.identity`` and insert ``record``.

        Returns how many were dropped. Concurrent callers for one identity
        always leave exactly one unconsumed nonce behind.
        """

    @abstractmethod
    def get_by_value(self, value: str) -> Optional[NonceRecord]: ...

    @abstractmethod
    def consume(self, value: str, identity: str, consumed_at: datetime) -> bool:
        """Mark consumed iff the record exists, belongs to ``identity`` and is unconsumed."""


class ScoreBackend(ABC):
    """Persistence surface for computed scores, keyed by entity id."""

    @abstractmethod
    def save(self, record: ScoreRecord) -> None:
        """Insert or fully overwrite the record for ``record.entity_id``."""

    @abstractmethod
    def load(self, entity_id: str) -> Optional[ScoreRecord]: ...

    @abstractmethod
    def delete(self, entity_id: str) -> bool: ...


# ─── Memory Backends ───────────────────────────────────────────────

class MemoryNonceBackend(NonceBackend):
    """In-memory nonce storage (default, for testing and single-process use)."""

    def __init__(self):
        self._by_value: dict[str, NonceRecord] = {}
        self._lock = threading.Lock()

    def insert(self, record: NonceRecord) -> None:
        with self._lock:
            if record.value in self._by_value:
                raise ValueError("duplicate nonce value")
            self._by_value[record.value] = record

    def invalidate_unconsumed(self, identity: str) -> int:
        with self._lock:
            stale = [
                v for v, r in self._by_value.items()
                if r.identity == identity and r.consumed_at is None
            ]
            for v in stale:
                del self._by_value[v]
            return len(stale)

    def replace_unconsumed(self, record: NonceRecord) -> int:
        with self._lock:
            if record.value in self._by_value:
                raise ValueError("duplicate nonce value")
            stale = [
                v for v, r in self._by_value.items()
                if r.identity == record.identity and r.consumed_at is None
            ]
            for v in stale:
                del self._by_value[v]
            self._by_value[record.value] = record
            return len(stale)

    def get_by_value(self, value: str) -> Optional[NonceRecord]:
        with self._lock:
            record = self._by_value.get(value)
            if record is None:
                return None
            return NonceRecord(record.id, record.identity, record.value,
                               record.issued_at, record.consumed_at)

    def consume(self, value: str, identity: str, consumed_at: datetime) -> bool:
        with self._lock:
            record = self._by_value.get(value)
            if record is None or record.identity != identity or record.consumed_at is not None:
                return False
            record.consumed_at = consumed_at
            return True


class MemoryScoreBackend(ScoreBackend):
    """In-memory score storage."""

    def __init__(self):
        self._store: dict[str, ScoreRecord] = {}
        self._lock = threading.Lock()

    def save(self, record: ScoreRecord) -> None:
        with self._lock:
            self._store[record.entity_id] = ScoreRecord(
                record.entity_id, json.loads(json.dumps(record.payload)), record.last_checked_at,
            )

    def load(self, entity_id: str) -> Optional[ScoreRecord]:
        with self._lock:
            return self._store.get(entity_id)

    def delete(self, entity_id: str) -> bool:
        with self._lock:
            return self._store.pop(entity_id, None) is not None


# ─── SQLite Backends ───────────────────────────────────────────────

class _SQLiteBase:
    """File-based SQLite with WAL mode, thread-safe."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        if db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")

    def close(self):
        self._conn.close()


class SQLiteNonceBackend(_SQLiteBase, NonceBackend):
    def __init__(self, db_path: str = "memocracy.db"):
        super().__init__(db_path)
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS nonces (
                id TEXT PRIMARY KEY,
                identity TEXT NOT NULL,
                value TEXT NOT NULL UNIQUE,
                issued_at TEXT NOT NULL,
                consumed_at TEXT
            )
        """)
        self._conn.execute("CREATE INDEX IF NOT EXISTS idx_nonce_identity ON nonces(identity)")
        self._conn.commit()

    def insert(self, record: NonceRecord) -> None:
        with self._lock:
            try:
                self._conn.execute(
                    "INSERT INTO nonces (id, identity, value, issued_at, consumed_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (record.id, record.identity, record.value, record.issued_at.isoformat(),
                     record.consumed_at.isoformat() if record.consumed_at else None),
                )
            except sqlite3.IntegrityError:
                self._conn.rollback()
                raise ValueError("duplicate nonce value") from None
            self._conn.commit()

    def replace_unconsumed(self, record: NonceRecord) -> int:
        with self._lock:
            # IMMEDIATE takes the write lock up front, so other connections
            # to the same file serialize here too.
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                cur = self._conn.execute(
                    "DELETE FROM nonces WHERE identity = ? AND consumed_at IS NULL",
                    (record.identity,),
                )
                self._conn.execute(
                    "INSERT INTO nonces (id, identity, value, issued_at, consumed_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (record.id, record.identity, record.value, record.issued_at.isoformat(),
                     record.consumed_at.isoformat() if record.consumed_at else None),
                )
            except sqlite3.IntegrityError:
                self._conn.rollback()
                raise ValueError("duplicate nonce value") from None
            except sqlite3.Error:
                self._conn.rollback()
                raise
            self._conn.commit()
            return cur.rowcount

    def invalidate_unconsumed(self, identity: str) -> int:
        with self._lock:
            cur = self._conn.execute(
                "DELETE FROM nonces WHERE identity = ? AND consumed_at IS NULL", (identity,)
            )
            self._conn.commit()
            return cur.rowcount

    def get_by_value(self, value: str) -> Optional[NonceRecord]:
        with self._lock:
            row = self._conn.execute(
                "SELECT id, identity, value, issued_at, consumed_at FROM nonces WHERE value = ?",
                (value,),
            ).fetchone()
        if not row:
            return None
        return NonceRecord(row[0], row[1], row[2], _ts(row[3]), _ts(row[4]))

    def consume(self, value: str, identity: str, consumed_at: datetime) -> bool:
        with self._lock:
            cur = self._conn.execute(
                "UPDATE nonces SET consumed_at = ? "
                "WHERE value = ? AND identity = ? AND consumed_at IS NULL",
                (consumed_at.isoformat(), value, identity),
            )
            self._conn.commit()
            return cur.rowcount == 1


class SQLiteScoreBackend(_SQLiteBase, ScoreBackend):
    def __init__(self, db_path: str = "memocracy.db", table: str = "score_records"):
        super().__init__(db_path)
        if not table.isidentifier():
            raise ValueError(f"invalid table name: {table!r}")
        self._table = table
        self._conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                entity_id TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                last_checked_at TEXT NOT NULL
            )
        """)
        self._conn.commit()

    def save(self, record: ScoreRecord) -> None:
        with self._lock:
            self._conn.execute(
                f"INSERT OR REPLACE INTO {self._table} (entity_id, payload, last_checked_at) "
                "VALUES (?, ?, ?)",
                (record.entity_id, json.dumps(record.payload), record.last_checked_at.isoformat()),
            )
            self._conn.commit()

    def load(self, entity_id: str) -> Optional[ScoreRecord]:
        with self._lock:
            row = self._conn.execute(
                f"SELECT payload, last_checked_at FROM {self._table} WHERE entity_id = ?",
                (entity_id,),
            ).fetchone()
        if not row:
            return None
        return ScoreRecord(entity_id, json.loads(row[0]), _ts(row[1]))

    def delete(self, entity_id: str) -> bool:
        with self._lock:
            cur = self._conn.execute(
                f"DELETE FROM {self._table} WHERE entity_id = ?", (entity_id,)
            )
            self._conn.commit()
            return cur.rowcount > 0


__all__ = [
    "NonceRecord",
    "ScoreRecord",
    "NonceBackend",
    "ScoreBackend",
    "MemoryNonceBackend",
    "MemoryScoreBackend",
    "SQLiteNonceBackend",
    "SQLiteScoreBackend",
]
