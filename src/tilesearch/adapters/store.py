"""Storage contracts consumed by the engine.

Defines the infrastructure layer following the Repository Pattern. The
engine only talks to these abstractions; concrete stores decide how shard
payloads and metadata are persisted.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from tilesearch.domain.documents import IndexableDocument, IndexPointer
from tilesearch.search.sharding import ShardKind


class ShardStore(ABC):
    """Key/value capability for the ``term`` and ``grid`` shard namespaces."""

    async def prepare_schema(self) -> None:
        """Optional hook creating whatever the store needs before first use."""

        return

    @abstractmethod
    async def get_shard(self, kind: ShardKind, shard: int) -> dict[str, Any] | None:
        """Return the JSON-ready payload of a shard, or ``None`` when absent.

        Raises:
            StorageError: the fetch failed
            MalformedDataError: the stored payload could not be parsed
        """
        raise NotImplementedError

    @abstractmethod
    async def put_shard(self, kind: ShardKind, shard: int, payload: dict[str, Any]) -> None:
        """Replace a shard payload.

        Raises:
            StorageError: the write failed
        """
        raise NotImplementedError


class DocumentMetadataStore(ABC):
    """Per-document metadata keyed by document id."""

    @abstractmethod
    async def get_document(self, doc_id: int) -> Any:
        """Return the stored JSON value, or ``None`` when the document is unknown."""
        raise NotImplementedError

    @abstractmethod
    async def put_document(self, document: IndexableDocument) -> None:
        """Persist ``document.doc`` under ``document.id``."""
        raise NotImplementedError


class IndexableDocumentSource(ABC):
    """Paginated producer of documents to index."""

    @abstractmethod
    async def get_indexable_docs(
        self, pointer: IndexPointer
    ) -> tuple[list[IndexableDocument], IndexPointer]:
        """Return one page plus the pointer to the next page; an empty page ends iteration."""
        raise NotImplementedError
