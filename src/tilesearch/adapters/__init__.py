"""Storage collaborators for the tile search engine."""

from tilesearch.adapters.memory_store import MemoryStore
from tilesearch.adapters.sqlite_store import SqliteStore
from tilesearch.adapters.store import DocumentMetadataStore, IndexableDocumentSource, ShardStore


__all__ = [
    "DocumentMetadataStore",
    "IndexableDocumentSource",
    "MemoryStore",
    "ShardStore",
    "SqliteStore",
]
