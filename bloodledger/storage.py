import sqlite3
import threading
import time
import uuid
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

from .storage_api import (
    COMPOSITE_KEY_NAMESPACE,
    MAX_UNICODE_RUNE,
    KV,
    KeyModification,
    LedgerStore,
    ResultsIterator,
)

logger = logging.getLogger(__name__)


class SQLiteLedgerStore(LedgerStore):
    """
    SQLite-backed world state with an append-only history of every write.

    `state` holds the live value of each key; `history` keeps one row per
    put/delete in commit order. Keys are stored as UTF-8 BLOBs so composite
    keys (which embed NUL separators) compare bytewise.

    All DB access is guarded by an RLock. Writes made inside transaction()
    are committed together; outside of it each write commits on its own.
    """

    def __init__(self, db_path: str = "bloodledger.db"):
        self.db_path = db_path
        self._lock = threading.RLock()
        self._tx: Optional[Tuple[str, float]] = None
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        with self._lock:
            self.conn.execute("PRAGMA journal_mode=WAL;")
            self.conn.execute("PRAGMA synchronous=NORMAL;")

        self._init_tables()

    def _init_tables(self) -> None:
        """Initialize database tables."""
        with self._lock:
            cursor = self.conn.cursor()

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS state (
                    key BLOB PRIMARY KEY,
                    value BLOB NOT NULL
                )
                """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS history (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    key BLOB NOT NULL,
                    tx_id TEXT NOT NULL,
                    value BLOB NOT NULL,
                    timestamp REAL NOT NULL,
                    is_delete BOOLEAN DEFAULT 0
                )
                """
            )

            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_history_key ON history (key, seq)"
            )

            self.conn.commit()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self, tx_id: Optional[str] = None) -> Iterator[str]:
        """
        Group every write in the block into one commit.

        Yields the transaction id stamped on the history rows. An exception
        inside the block rolls back all of its writes. A nested call joins
        the enclosing transaction.
        """
        with self._lock:
            if self._tx is not None:
                yield self._tx[0]
                return

            self._tx = (tx_id or uuid.uuid4().hex, time.time())
            try:
                yield self._tx[0]
                self.conn.commit()
            except Exception:
                self.conn.rollback()
                logger.warning("Rolled back transaction %s", self._tx[0])
                raise
            finally:
                self._tx = None

    def _current_tx(self) -> Tuple[str, float]:
        if self._tx is not None:
            return self._tx
        return uuid.uuid4().hex, time.time()

    def _commit_unless_in_tx(self) -> None:
        if self._tx is None:
            self.conn.commit()

    # ------------------------------------------------------------------
    # Point reads and writes
    # ------------------------------------------------------------------

    def get_state(self, key: str) -> bytes:
        """Return the live value of key, or b"" if it does not exist."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("SELECT value FROM state WHERE key = ?", (_k(key),))
            row = cursor.fetchone()
            return bytes(row["value"]) if row else b""

    def put_state(self, key: str, value: bytes) -> None:
        """Insert or replace key and append the write to its history."""
        if not key:
            raise ValueError("key must not be empty")
        if not value:
            raise ValueError("value must not be empty; use delete_state to remove a key")

        with self._lock:
            tx_id, ts = self._current_tx()
            cursor = self.conn.cursor()
            cursor.execute(
                "INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)",
                (_k(key), bytes(value)),
            )
            cursor.execute(
                """
                INSERT INTO history (key, tx_id, value, timestamp, is_delete)
                VALUES (?, ?, ?, ?, 0)
                """,
                (_k(key), tx_id, bytes(value), ts),
            )
            self._commit_unless_in_tx()

    def delete_state(self, key: str) -> None:
        """
        Remove key. The history row written for the deletion carries the
        last value the key held. Deleting an absent key is a no-op.
        """
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("SELECT value FROM state WHERE key = ?", (_k(key),))
            row = cursor.fetchone()
            if row is None:
                return

            tx_id, ts = self._current_tx()
            cursor.execute("DELETE FROM state WHERE key = ?", (_k(key),))
            cursor.execute(
                """
                INSERT INTO history (key, tx_id, value, timestamp, is_delete)
                VALUES (?, ?, ?, ?, 1)
                """,
                (_k(key), tx_id, bytes(row["value"]), ts),
            )
            self._commit_unless_in_tx()

    # ------------------------------------------------------------------
    # Cursors
    # ------------------------------------------------------------------

    def get_history_for_key(self, key: str) -> ResultsIterator:
        """All past writes of key in commit order."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                SELECT tx_id, value, timestamp, is_delete FROM history
                WHERE key = ? ORDER BY seq
                """,
                (_k(key),),
            )
        return SQLiteHistoryIterator(self._lock, cursor, key)

    def get_state_by_range(self, start_key: str, end_key: str) -> ResultsIterator:
        """
        Live simple keys in [start_key, end_key). An empty end_key means
        no upper bound. Composite (index) keys are never returned.
        """
        if end_key:
            sql = "SELECT key, value FROM state WHERE key >= ? AND key < ? ORDER BY key"
            params: tuple = (_k(start_key), _k(end_key))
        else:
            sql = "SELECT key, value FROM state WHERE key >= ? ORDER BY key"
            params = (_k(start_key),)

        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(sql, params)
        return SQLiteStateIterator(self._lock, cursor, skip_composite=True)

    def get_state_by_partial_composite_key(
        self, object_type: str, attributes: List[str]
    ) -> ResultsIterator:
        """Live composite keys that start with (object_type, *attributes)."""
        prefix = self.create_composite_key(object_type, attributes)
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                "SELECT key, value FROM state WHERE key >= ? AND key < ? ORDER BY key",
                (_k(prefix), _k(prefix + MAX_UNICODE_RUNE)),
            )
        return SQLiteStateIterator(self._lock, cursor, skip_composite=False)

    def close(self) -> None:
        """Close the DB connection."""
        with self._lock:
            self.conn.close()


class SQLiteHistoryIterator(ResultsIterator):
    """Lazily fetches history rows for one key."""

    def __init__(self, lock: threading.RLock, cursor: sqlite3.Cursor, key: str):
        self._lock = lock
        self._cursor = cursor
        self.key = key
        self.closed = False

    def __next__(self) -> KeyModification:
        if self.closed:
            raise StopIteration
        with self._lock:
            row = self._cursor.fetchone()
        if row is None:
            raise StopIteration
        return KeyModification(
            key=self.key,
            tx_id=row["tx_id"],
            value=bytes(row["value"]),
            timestamp=row["timestamp"],
            is_delete=bool(row["is_delete"]),
        )

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            with self._lock:
                self._cursor.close()


class SQLiteStateIterator(ResultsIterator):
    def __init__(self, lock: threading.RLock, cursor: sqlite3.Cursor, skip_composite: bool):
        self._lock = lock
        self._cursor = cursor
        self._skip_composite = skip_composite
        self.closed = False

    def __next__(self) -> KV:
        while not self.closed:
            with self._lock:
                row = self._cursor.fetchone()
            if row is None:
                break
            key = bytes(row["key"]).decode("utf-8")
            if self._skip_composite and key.startswith(COMPOSITE_KEY_NAMESPACE):
                continue
            return KV(key=key, value=bytes(row["value"]))
        raise StopIteration

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            with self._lock:
                self._cursor.close()


def _k(key: str) -> bytes:
    return key.encode("utf-8")
