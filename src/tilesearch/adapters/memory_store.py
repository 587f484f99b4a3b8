"""In-memory store used by tests and small embedded indexes.

Payloads are kept as serialized JSON bytes so callers never share mutable
state with the store, matching what a persistent backend would do.
"""

from __future__ import annotations

from collections.abc import Iterable
import logging
from typing import Any

import orjson

from tilesearch.adapters.store import DocumentMetadataStore, IndexableDocumentSource, ShardStore
from tilesearch.domain.documents import IndexableDocument, IndexPointer
from tilesearch.errors import MalformedDataError
from tilesearch.search.sharding import ShardKind


logger = logging.getLogger(__name__)


class MemoryStore(ShardStore, DocumentMetadataStore, IndexableDocumentSource):
    """Dictionary-backed implementation of every storage contract.

    ``documents`` seeds the indexable source; nothing is loaded implicitly.
    """

    def __init__(self, documents: Iterable[IndexableDocument | dict[str, Any]] = ()) -> None:
        self._shards: dict[ShardKind, dict[int, bytes]] = {kind: {} for kind in ShardKind}
        self._documents: dict[int, bytes] = {}
        self._indexable = [
            doc if isinstance(doc, IndexableDocument) else IndexableDocument.model_validate(doc) for doc in documents
        ]
        self.schema_prepared = False

    async def prepare_schema(self) -> None:
        self.schema_prepared = True

    async def get_shard(self, kind: ShardKind, shard: int) -> dict[str, Any] | None:
        data = self._shards[ShardKind(kind)].get(shard)
        if data is None:
            return None
        return _loads(data)

    async def put_shard(self, kind: ShardKind, shard: int, payload: dict[str, Any]) -> None:
        self._shards[ShardKind(kind)][shard] = orjson.dumps(payload)

    async def get_document(self, doc_id: int) -> Any:
        data = self._documents.get(doc_id)
        if data is None:
            return None
        return _loads(data)

    async def put_document(self, document: IndexableDocument) -> None:
        self._documents[document.id] = orjson.dumps(document.doc)

    async def get_indexable_docs(
        self, pointer: IndexPointer
    ) -> tuple[list[IndexableDocument], IndexPointer]:
        page = self._indexable[pointer.offset : pointer.offset + pointer.limit]
        return list(page), pointer.advance()

    def shard_ids(self, kind: ShardKind) -> list[int]:
        """Return the ids of every stored shard of ``kind``."""
        return sorted(self._shards[ShardKind(kind)])


def _loads(data: bytes) -> Any:
    try:
        return orjson.loads(data)
    except orjson.JSONDecodeError as err:
        raise MalformedDataError(f"Stored payload is not valid JSON: {err}") from err
