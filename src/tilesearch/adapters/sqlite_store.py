"""SQLite-backed shard, metadata and document-source store.

Layout:
- ``term_shards`` / ``grid_shards``: one row per shard, payload stored as
  minified JSON (orjson)
- ``documents``: one row per indexed document carrying its metadata JSON plus
  the searchable text and tile list, so the index can be rebuilt from it

Blocking sqlite3 calls run in worker threads via ``anyio.to_thread``.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from pathlib import Path
import sqlite3
import threading
from typing import Any

import anyio
import orjson

from tilesearch.adapters.sqlite_pragmas import apply_connection_pragmas
from tilesearch.adapters.store import DocumentMetadataStore, IndexableDocumentSource, ShardStore
from tilesearch.domain.documents import IndexableDocument, IndexPointer
from tilesearch.errors import MalformedDataError, StorageError
from tilesearch.search.sharding import ShardKind


logger = logging.getLogger(__name__)

_SHARD_TABLES = {
    ShardKind.TERM: "term_shards",
    ShardKind.GRID: "grid_shards",
}

# Names sqlite3 opens as a fresh private database on every connection.
PRIVATE_DATABASES = frozenset({"", ":memory:"})

_SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS term_shards (
        shard INTEGER PRIMARY KEY,
        data BLOB NOT NULL
    );

    CREATE TABLE IF NOT EXISTS grid_shards (
        shard INTEGER PRIMARY KEY,
        data BLOB NOT NULL
    );

    CREATE TABLE IF NOT EXISTS documents (
        doc_id INTEGER PRIMARY KEY,
        text TEXT NOT NULL DEFAULT '',
        zxy TEXT NOT NULL DEFAULT '',
        data BLOB
    );
"""


class SQLiteConnectionPool:
    """Thread-safe pool handing out one connection per worker thread."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._local = threading.local()
        self._lock = threading.Lock()
        self._connections: list[sqlite3.Connection] = []

    @contextmanager
    def get_connection(self):
        """Get a thread-local connection."""
        conn = getattr(self._local, "connection", None)
        if conn is None:
            conn = self._create_connection()
            self._local.connection = conn
        yield conn

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        apply_connection_pragmas(conn)
        with self._lock:
            self._connections.append(conn)
        return conn

    def close_all(self) -> None:
        """Close every connection opened by the pool."""
        with self._lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            try:
                conn.close()
            except sqlite3.Error as err:
                logger.warning("Failed to close SQLite connection for %s: %s", self.db_path, err)
        self._local = threading.local()


class SqliteStore(ShardStore, DocumentMetadataStore, IndexableDocumentSource):
    """SQLite storage following the repository pattern."""

    def __init__(self, db_path: str | Path) -> None:
        if str(db_path) in PRIVATE_DATABASES:
            raise ValueError(f"SqliteStore needs a database file, got {str(db_path)!r}")
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._pool = SQLiteConnectionPool(self.db_path)

    async def prepare_schema(self) -> None:
        await anyio.to_thread.run_sync(self._prepare_schema_sync)

    def _prepare_schema_sync(self) -> None:
        with self._execute() as conn:
            conn.executescript(_SCHEMA_SQL)
        logger.debug("SQLite schema ready at %s", self.db_path)

    async def get_shard(self, kind: ShardKind, shard: int) -> dict[str, Any] | None:
        kind = ShardKind(kind)
        row = await anyio.to_thread.run_sync(self._get_shard_sync, kind, shard)
        if row is None:
            return None
        return _loads(row[0], f"{kind.value} shard {shard}")

    def _get_shard_sync(self, kind: ShardKind, shard: int) -> tuple[Any, ...] | None:
        with self._execute() as conn:
            return conn.execute(f"SELECT data FROM {_SHARD_TABLES[kind]} WHERE shard = ?", (shard,)).fetchone()

    async def put_shard(self, kind: ShardKind, shard: int, payload: dict[str, Any]) -> None:
        data = orjson.dumps(payload)
        await anyio.to_thread.run_sync(self._put_shard_sync, ShardKind(kind), shard, data)

    def _put_shard_sync(self, kind: ShardKind, shard: int, data: bytes) -> None:
        with self._execute() as conn:
            conn.execute(f"REPLACE INTO {_SHARD_TABLES[kind]} (shard, data) VALUES (?, ?)", (shard, data))
            conn.commit()

    async def get_document(self, doc_id: int) -> Any:
        row = await anyio.to_thread.run_sync(self._get_document_sync, doc_id)
        if row is None or row[0] is None:
            return None
        return _loads(row[0], f"document {doc_id}")

    def _get_document_sync(self, doc_id: int) -> tuple[Any, ...] | None:
        with self._execute() as conn:
            return conn.execute("SELECT data FROM documents WHERE doc_id = ?", (doc_id,)).fetchone()

    async def put_document(self, document: IndexableDocument) -> None:
        row = (
            document.id,
            document.text,
            ",".join(str(tile) for tile in document.zxy),
            orjson.dumps(document.doc),
        )
        await anyio.to_thread.run_sync(self._put_document_sync, row)

    def _put_document_sync(self, row: tuple[Any, ...]) -> None:
        with self._execute() as conn:
            conn.execute("REPLACE INTO documents (doc_id, text, zxy, data) VALUES (?, ?, ?, ?)", row)
            conn.commit()

    async def get_indexable_docs(
        self, pointer: IndexPointer
    ) -> tuple[list[IndexableDocument], IndexPointer]:
        rows = await anyio.to_thread.run_sync(self._page_documents_sync, pointer.limit, pointer.offset)
        docs = [
            IndexableDocument(
                id=doc_id,
                text=text or "",
                zxy=zxy or "",
                doc=_loads(data, f"document {doc_id}") if data is not None else None,
            )
            for doc_id, text, zxy, data in rows
        ]
        return docs, pointer.advance()

    def _page_documents_sync(self, limit: int, offset: int) -> list[tuple[Any, ...]]:
        with self._execute() as conn:
            cursor = conn.execute(
                "SELECT doc_id, text, zxy, data FROM documents ORDER BY doc_id LIMIT ? OFFSET ?",
                (limit, offset),
            )
            return cursor.fetchall()

    def close(self) -> None:
        """Close all pooled connections."""
        self._pool.close_all()

    @contextmanager
    def _execute(self):
        try:
            with self._pool.get_connection() as conn:
                yield conn
        except sqlite3.Error as err:
            raise StorageError(f"SQLite operation failed on {self.db_path}: {err}") from err


def _loads(data: bytes | str, what: str) -> Any:
    try:
        return orjson.loads(data)
    except orjson.JSONDecodeError as err:
        raise MalformedDataError(f"Stored {what} is not valid JSON: {err}") from err
