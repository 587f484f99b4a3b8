"""Patch building and merging for incremental indexing.

A batch of documents becomes an ``IndexPatch``: for every term the documents
referencing it, for every document its full grid record. Each touched shard
is then merged concurrently:

* term shards take the union of stored and new document ids, so the term
  index only ever grows until it is rebuilt
* grid shards replace each patched document's record wholesale

Metadata writes run alongside the merges. The batch fails with the first
error observed; writes that already landed are not rolled back and
operations still in flight are allowed to finish.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable, Mapping, Sequence
import logging
from typing import Any

from tilesearch.adapters.store import DocumentMetadataStore
from tilesearch.domain.documents import IndexableDocument
from tilesearch.errors import StorageError, TileSearchError
from tilesearch.search.models import GridRecord, IndexPatch
from tilesearch.search.shard_index import GridIndex, TermIndex
from tilesearch.search.sharding import DEFAULT_SHARD_LEVEL, ShardKind, shard_of
from tilesearch.search.terms import DEFAULT_FIELD_DELIMITER, extract_field_terms


logger = logging.getLogger(__name__)


def build_patch(
    documents: Iterable[IndexableDocument],
    *,
    shard_level: int = DEFAULT_SHARD_LEVEL,
    field_delimiter: str = DEFAULT_FIELD_DELIMITER,
) -> IndexPatch:
    """Compute the term and grid deltas for a document batch."""
    patch = IndexPatch()
    for document in documents:
        fields = extract_field_terms(document.text, field_delimiter)
        for field_terms in fields:
            for term in field_terms:
                patch.add_term(shard_of(shard_level, term), term, document.id)
        record = GridRecord(text=tuple(tuple(field_terms) for field_terms in fields), zxy=tuple(document.zxy))
        patch.add_record(shard_of(shard_level, document.id), document.id, record)
    return patch


async def gather_first_error(operations: Iterable[Awaitable[Any]]) -> None:
    """Run ``operations`` concurrently and raise the first failure to complete.

    Nothing is cancelled: every operation is awaited to completion and the
    outcomes of operations failing after the first are discarded.
    """
    tasks = [asyncio.ensure_future(operation) for operation in operations]
    if not tasks:
        return

    failures: list[BaseException] = []

    def _record(task: asyncio.Future) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            failures.append(exc)

    for task in tasks:
        task.add_done_callback(_record)

    await asyncio.wait(tasks)

    if failures:
        if len(failures) > 1:
            logger.debug("Discarding %d failures observed after the first", len(failures) - 1)
        raise failures[0]


class IndexWriter:
    """Merge document batches into the term and grid indexes."""

    def __init__(
        self,
        term_index: TermIndex,
        grid_index: GridIndex,
        metadata_store: DocumentMetadataStore,
        *,
        field_delimiter: str = DEFAULT_FIELD_DELIMITER,
    ) -> None:
        self.term_index = term_index
        self.grid_index = grid_index
        self.metadata_store = metadata_store
        self.field_delimiter = field_delimiter

    async def index(self, documents: Sequence[IndexableDocument]) -> IndexPatch:
        """Index a non-empty batch; returns the applied patch.

        Raises:
            ValueError: ``documents`` is empty
            StorageError: a metadata or shard write failed (partial writes remain)
        """
        if not documents:
            raise ValueError("Cannot index an empty document batch")

        patch = build_patch(
            documents,
            shard_level=self.term_index.shard_level,
            field_delimiter=self.field_delimiter,
        )
        logger.debug(
            "Indexing %d documents into %d term shards and %d grid shards",
            len(documents),
            len(patch.term),
            len(patch.grid),
        )

        operations: list[Awaitable[None]] = [self._put_metadata(document) for document in documents]
        operations.extend(self._merge_term_shard(shard, entries) for shard, entries in patch.term.items())
        operations.extend(self._merge_grid_shard(shard, records) for shard, records in patch.grid.items())
        await gather_first_error(operations)
        return patch

    async def _put_metadata(self, document: IndexableDocument) -> None:
        try:
            await self.metadata_store.put_document(document)
        except TileSearchError:
            raise
        except Exception as err:
            raise StorageError(f"Failed to write metadata for document {document.id}: {err}") from err

    async def _merge_term_shard(self, shard: int, entries: Mapping[int, list[int]]) -> None:
        async with self.term_index.shards.merge_lock(ShardKind.TERM, shard):
            merged = dict(await self.term_index.get_shard(shard))
            for term, doc_ids in entries.items():
                merged[term] = list(dict.fromkeys([*merged.get(term, []), *doc_ids]))
            await self.term_index.put_shard(shard, merged)

    async def _merge_grid_shard(self, shard: int, records: Mapping[int, GridRecord]) -> None:
        async with self.grid_index.shards.merge_lock(ShardKind.GRID, shard):
            merged = dict(await self.grid_index.get_shard(shard))
            merged.update(records)
            await self.grid_index.put_shard(shard, merged)
