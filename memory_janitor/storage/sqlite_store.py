# memory_janitor/storage/sqlite_store.py

import logging
import os
import sqlite3
from collections.abc import Iterable

from ..errors import StoreError
from ..models import MemoryItem, QueryResult

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id",
    "content",
    "type",
    "created_at",
    "confidence",
    "chat_id",
    "status",
    "category",
    "importance",
    "stability",
    "access_count",
    "last_used_at",
)


class SqliteStore:
    """
    SQLite-backed item store gateway for MemoryItem.

    Queries return a QueryResult so callers can tell "no rows" apart from
    "the query failed". Mutations raise StoreError on failure.
    """

    def __init__(self, path: str = "~/.memory_janitor/memory.db") -> None:
        self.path = path if path == ":memory:" else os.path.expanduser(path)
        if self.path != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        cur = self.conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS memory (
                id TEXT PRIMARY KEY,
                content TEXT NOT NULL,
                type TEXT NOT NULL,
                created_at TEXT NOT NULL,
                confidence REAL,
                chat_id INTEGER,
                status TEXT NOT NULL DEFAULT 'active',
                category TEXT,
                importance REAL,
                stability REAL,
                access_count INTEGER NOT NULL DEFAULT 0,
                last_used_at TEXT
            );
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_memory_type ON memory(type);")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_memory_status ON memory(status);")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_memory_chat_id ON memory(chat_id);")
        self.conn.commit()

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> MemoryItem:
        return MemoryItem(
            id=row["id"],
            content=row["content"],
            type=row["type"],
            created_at=row["created_at"],
            confidence=row["confidence"] if row["confidence"] is not None else 0.0,
            chat_id=row["chat_id"],
            status=row["status"],
            category=row["category"],
            importance=row["importance"],
            stability=row["stability"],
            access_count=row["access_count"] or 0,
            last_used_at=row["last_used_at"],
        )

    def _query(self, label: str, sql: str, params: Iterable = ()) -> QueryResult:
        try:
            cur = self.conn.cursor()
            cur.execute(sql, tuple(params))
            rows = cur.fetchall()
        except sqlite3.Error as e:
            logger.error("[SqliteStore.%s] query failed: %s", label, e)
            return QueryResult(items=[], error=str(e))
        return QueryResult(items=[self._row_to_item(r) for r in rows])

    # ------------------------------------------------------------------ #
    # Writes used by ingestion tooling and tests
    # ------------------------------------------------------------------ #

    def insert(self, item: MemoryItem) -> None:
        cur = self.conn.cursor()
        cur.execute(
            f"""
            INSERT OR REPLACE INTO memory ({", ".join(_COLUMNS)})
            VALUES ({", ".join("?" for _ in _COLUMNS)})
            """,
            (
                item.id,
                item.content,
                item.type,
                item.created_at,
                item.confidence,
                item.chat_id,
                item.status,
                item.category,
                item.importance,
                item.stability,
                item.access_count,
                item.last_used_at,
            ),
        )
        self.conn.commit()

    def get_by_id(self, item_id: str) -> MemoryItem | None:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM memory WHERE id = ? LIMIT 1;", (item_id,))
        row = cur.fetchone()
        if row is None:
            return None
        return self._row_to_item(row)

    def list_by_ids(self, ids: list[str]) -> list[MemoryItem]:
        if not ids:
            return []
        placeholders = ",".join("?" for _ in ids)
        result = self._query(
            "list_by_ids",
            f"SELECT * FROM memory WHERE id IN ({placeholders});",
            ids,
        )
        return result.items

    # ------------------------------------------------------------------ #
    # Gateway queries
    # ------------------------------------------------------------------ #

    def query_active(self, types: Iterable[str]) -> QueryResult:
        """Active items of the given types, oldest first."""
        types = list(types)
        placeholders = ",".join("?" for _ in types)
        return self._query(
            "query_active",
            f"""
            SELECT * FROM memory
            WHERE type IN ({placeholders})
              AND status = 'active'
            ORDER BY datetime(created_at) ASC, id ASC;
            """,
            types,
        )

    def query_by_type(self, item_type: str, status: str = "active") -> QueryResult:
        return self._query(
            "query_by_type",
            """
            SELECT * FROM memory
            WHERE type = ?
              AND status = ?
            ORDER BY datetime(created_at) ASC;
            """,
            (item_type, status),
        )

    def query_demotion_candidates(self, cutoff_iso: str) -> QueryResult:
        """Active, non-constraint items created before the cutoff."""
        return self._query(
            "query_demotion_candidates",
            """
            SELECT * FROM memory
            WHERE status = 'active'
              AND (category IS NULL OR category != 'constraint')
              AND datetime(created_at) < datetime(?)
            ORDER BY datetime(created_at) ASC;
            """,
            (cutoff_iso,),
        )

    # ------------------------------------------------------------------ #
    # Gateway mutations
    # ------------------------------------------------------------------ #

    def delete(self, ids: list[str]) -> int:
        """Bulk delete of active rows; returns the number the database actually removed."""
        if not ids:
            return 0
        placeholders = ",".join("?" for _ in ids)
        try:
            cur = self.conn.cursor()
            cur.execute(
                f"DELETE FROM memory WHERE status = 'active' AND id IN ({placeholders});",
                ids,
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StoreError(f"delete failed: {e}") from e
        return cur.rowcount

    def update_status(self, ids: list[str], new_status: str) -> int:
        if not ids:
            return 0
        placeholders = ",".join("?" for _ in ids)
        try:
            cur = self.conn.cursor()
            cur.execute(
                f"UPDATE memory SET status = ? WHERE id IN ({placeholders});",
                (new_status, *ids),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StoreError(f"status update to {new_status!r} failed: {e}") from e
        return cur.rowcount

    def close(self) -> None:
        self.conn.close()
