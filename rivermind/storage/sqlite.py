"""
SQLite Document Store — durable persistence for both agents.

Every collection lives in one ``documents`` table with a JSON payload per row.
Filtering and ordering go through SQLite's built-in JSON functions, so range
queries stay bounded on the database side instead of loading a whole
collection into memory.

The store uses synchronous SQLite for simplicity. Each call is its own
transaction; a ``set`` replaces one row, so a reader never sees half of a
document.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Optional, Sequence

import structlog

from rivermind.errors import StoreError, StoreNotInitializedError
from rivermind.storage.base import DocumentStore, Filter, validate_field

logger = structlog.get_logger(__name__)

DOCUMENTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    collection TEXT NOT NULL,
    doc_id TEXT NOT NULL,
    data TEXT NOT NULL,
    UNIQUE (collection, doc_id)
);

CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection);
"""

_SQL_OPS = {"==": "=", "!=": "!=", "<": "<", "<=": "<=", ">": ">", ">=": ">="}


def _json_path(field: str) -> str:
    return f"json_extract(data, '$.{validate_field(field)}')"


def _bind(value: Any) -> Any:
    # json_extract yields 0/1 for JSON booleans.
    if isinstance(value, bool):
        return int(value)
    return value


class SQLiteDocumentStore(DocumentStore):
    """Document store backed by a single SQLite file."""

    def __init__(self, db_path: Path):
        self._db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        logger.info("sqlite_store.initializing", path=str(self._db_path))

    def initialize(self) -> None:
        """Create the database connection and ensure the schema exists."""
        if self._conn is not None:
            logger.debug("sqlite_store.already_initialized", path=str(self._db_path))
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")  # Readers don't block the writer
        self._conn.executescript(DOCUMENTS_SCHEMA)
        self._conn.commit()
        logger.info("sqlite_store.initialized", path=str(self._db_path))

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def _require_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreNotInitializedError(
                "SQLiteDocumentStore is not initialized. Call initialize() first."
            )
        return self._conn

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> tuple[list[sqlite3.Row], int]:
        """Run one statement in its own transaction; return (rows, rowcount)."""
        conn = self._require_connection()
        try:
            with conn:
                cursor = conn.execute(sql, params)
                return cursor.fetchall(), cursor.rowcount
        except sqlite3.Error as e:
            logger.error("sqlite_store.query_failed", error=str(e), sql=sql.split()[0])
            raise StoreError(str(e)) from e

    # -------------------------------------------------------------------------
    # Single-document access
    # -------------------------------------------------------------------------

    def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        rows, _ = self._execute(
            "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
            (collection, doc_id),
        )
        if not rows:
            return None
        return json.loads(rows[0]["data"])

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._execute(
            "INSERT OR REPLACE INTO documents (collection, doc_id, data) VALUES (?, ?, ?)",
            (collection, doc_id, json.dumps(data)),
        )

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        for name in fields:
            validate_field(name)
        conn = self._require_connection()
        try:
            with conn:
                row = conn.execute(
                    "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                    (collection, doc_id),
                ).fetchone()
                if row is None:
                    raise KeyError(f"{collection}/{doc_id}")
                data = json.loads(row["data"])
                data.update(fields)
                conn.execute(
                    "UPDATE documents SET data = ? WHERE collection = ? AND doc_id = ?",
                    (json.dumps(data), collection, doc_id),
                )
        except sqlite3.Error as e:
            logger.error("sqlite_store.update_failed", collection=collection, error=str(e))
            raise StoreError(str(e)) from e

    def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self._execute(
            "INSERT INTO documents (collection, doc_id, data) VALUES (?, ?, ?)",
            (collection, doc_id, json.dumps(data)),
        )
        return doc_id

    def delete(self, collection: str, doc_id: str) -> bool:
        _, rowcount = self._execute(
            "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
            (collection, doc_id),
        )
        return rowcount > 0

    def increment(self, collection: str, doc_id: str, field: str, amount: float = 1) -> None:
        path = f"$.{validate_field(field)}"
        _, rowcount = self._execute(
            "UPDATE documents SET data = json_set(data, ?, "
            "COALESCE(json_extract(data, ?), 0) + ?) "
            "WHERE collection = ? AND doc_id = ?",
            (path, path, amount, collection, doc_id),
        )
        if rowcount == 0:
            raise KeyError(f"{collection}/{doc_id}")

    # -------------------------------------------------------------------------
    # Range queries
    # -------------------------------------------------------------------------

    def query(
        self,
        collection: str,
        *,
        where: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: int,
        offset: int = 0,
    ) -> list[tuple[str, dict[str, Any]]]:
        clauses = ["collection = ?"]
        params: list[Any] = [collection]
        for flt in where:
            if flt.value is None:
                clauses.append(f"{_json_path(flt.field)} IS {'NOT ' if flt.op == '!=' else ''}NULL")
                continue
            clauses.append(f"{_json_path(flt.field)} {_SQL_OPS[flt.op]} ?")
            params.append(_bind(flt.value))

        sql = f"SELECT doc_id, data FROM documents WHERE {' AND '.join(clauses)}"
        if order_by is not None:
            sql += f" ORDER BY {_json_path(order_by)} {'DESC' if descending else 'ASC'}, seq ASC"
        else:
            sql += " ORDER BY seq ASC"
        sql += " LIMIT ? OFFSET ?"
        params.extend([max(0, int(limit)), max(0, int(offset))])

        rows, _ = self._execute(sql, params)
        return [(row["doc_id"], json.loads(row["data"])) for row in rows]
