"""Engine facade wiring the shard cache, writer and search coordinator.

One ``TileSearchEngine`` owns one shard cache. Create a new instance to pick
up changes written to the store by other processes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
import logging
from typing import Any

from tilesearch.adapters.sqlite_store import SqliteStore
from tilesearch.adapters.store import DocumentMetadataStore, IndexableDocumentSource, ShardStore
from tilesearch.config import Settings
from tilesearch.domain.documents import IndexableDocument, IndexPointer, SearchHit
from tilesearch.observability.logging import configure_logging
from tilesearch.observability.metrics import (
    DOCUMENTS_INDEXED,
    ERROR_COUNT,
    INDEX_LATENCY,
    SEARCH_LATENCY,
    track_latency,
)
from tilesearch.observability.tracing import create_span
from tilesearch.search.coordinator import SearchCoordinator
from tilesearch.search.shard_index import GridIndex, ShardIndex, TermIndex
from tilesearch.search.writer import IndexWriter


logger = logging.getLogger(__name__)


class TileSearchEngine:
    """Index documents carrying text and map tiles, and answer free-text queries."""

    def __init__(
        self,
        store: ShardStore,
        *,
        metadata_store: DocumentMetadataStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Shard storage for the term and grid namespaces
            metadata_store: Per-document metadata storage; defaults to ``store``
                when it implements ``DocumentMetadataStore``
            settings: Configuration; loaded from the environment when omitted
        """
        if metadata_store is None:
            if not isinstance(store, DocumentMetadataStore):
                raise TypeError("metadata_store is required when store does not implement DocumentMetadataStore")
            metadata_store = store

        self.settings = settings or Settings()
        self.store = store
        self.metadata_store = metadata_store
        self.shards = ShardIndex(store)
        self.term_index = TermIndex(self.shards, shard_level=self.settings.shard_level)
        self.grid_index = GridIndex(self.shards, shard_level=self.settings.shard_level)
        self.writer = IndexWriter(
            self.term_index,
            self.grid_index,
            metadata_store,
            field_delimiter=self.settings.field_delimiter,
        )
        self.coordinator = SearchCoordinator(self.term_index, self.grid_index)
        self._opened = False
        self._open_lock = asyncio.Lock()

    async def open(self) -> None:
        """Run the store's schema preparation once per engine instance."""
        if self._opened:
            return
        async with self._open_lock:
            if self._opened:
                return
            await self.store.prepare_schema()
            self._opened = True
            logger.info("Opened tile search engine (shard level %d)", self.settings.shard_level)

    async def search(self, query: str) -> list[SearchHit]:
        """Return scored candidates for ``query`` in discovery order."""
        await self.open()
        with create_span("tilesearch.search", attributes={"query.length": len(query)}) as span:
            try:
                with track_latency(SEARCH_LATENCY):
                    hits = await self.coordinator.search(query)
            except Exception as err:
                ERROR_COUNT.inc(error_type=type(err).__name__, operation="search")
                logger.warning("Search failed for %r: %s", query, err)
                raise
            span.set_attribute("search.hits", len(hits))
        return hits

    async def index(self, documents: Iterable[IndexableDocument | Mapping[str, Any]]) -> None:
        """Merge a batch of documents into the index.

        The batch is not atomic: when a write fails, the error is raised but
        shards and metadata already written stay written.
        """
        batch = [_coerce_document(document) for document in documents]
        await self.open()
        with create_span("tilesearch.index", attributes={"index.documents": len(batch)}):
            try:
                with track_latency(INDEX_LATENCY):
                    await self.writer.index(batch)
            except Exception as err:
                ERROR_COUNT.inc(error_type=type(err).__name__, operation="index")
                logger.warning("Indexing %d documents failed: %s", len(batch), err)
                raise
        DOCUMENTS_INDEXED.inc(len(batch), store=type(self.store).__name__)

    async def feature(self, doc_id: int) -> Any:
        """Return the metadata stored for ``doc_id``, or ``None``."""
        await self.open()
        return await self.metadata_store.get_document(doc_id)

    async def index_source(
        self,
        source: IndexableDocumentSource | None = None,
        pointer: IndexPointer | None = None,
    ) -> int:
        """Page through ``source`` (the store by default) indexing every page.

        Returns the number of documents indexed.
        """
        if source is None:
            if not isinstance(self.store, IndexableDocumentSource):
                raise TypeError("source is required when the store is not an IndexableDocumentSource")
            source = self.store
        pointer = pointer or IndexPointer(limit=self.settings.page_limit)

        total = 0
        pages = 0
        while True:
            documents, pointer = await source.get_indexable_docs(pointer)
            if not documents:
                break
            await self.index(documents)
            total += len(documents)
            pages += 1
            logger.debug("Indexed page %d (%d documents, %d total)", pages, len(documents), total)
        logger.info("Indexed %d documents from %d pages", total, pages)
        return total


def _coerce_document(document: IndexableDocument | Mapping[str, Any]) -> IndexableDocument:
    if isinstance(document, IndexableDocument):
        return document
    return IndexableDocument.model_validate(document)


def create_engine(settings: Settings | None = None, *, configure_logs: bool = True) -> TileSearchEngine:
    """Build an engine over the SQLite store named by ``settings.sqlite_path``."""
    settings = settings or Settings()
    if configure_logs:
        configure_logging(settings.log_level, settings.log_json)
    store = SqliteStore(settings.sqlite_path)
    logger.info("Using SQLite index at %s", store.db_path)
    return TileSearchEngine(store, settings=settings)
