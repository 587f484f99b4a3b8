"""Shared SQLite PRAGMA helpers for consistent performance tuning."""

from __future__ import annotations

import sqlite3


def apply_connection_pragmas(
    conn: sqlite3.Connection,
    *,
    cache_size_kb: int = -16384,
    mmap_size_bytes: int = 134217728,
    temp_store: str = "MEMORY",
    busy_timeout_ms: int | None = 30000,
) -> None:
    """Apply PRAGMAs suited to many small shard reads and replace-writes."""
    if busy_timeout_ms is not None:
        conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms}")
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute(f"PRAGMA cache_size = {cache_size_kb}")
    conn.execute(f"PRAGMA mmap_size = {mmap_size_bytes}")
    conn.execute(f"PRAGMA temp_store = {temp_store}")
