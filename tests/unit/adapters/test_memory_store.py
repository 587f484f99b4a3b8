"""Unit tests for the in-memory store."""

import pytest

from tilesearch.adapters.memory_store import MemoryStore
from tilesearch.domain.documents import IndexableDocument, IndexPointer
from tilesearch.search.sharding import ShardKind


pytestmark = pytest.mark.unit


@pytest.mark.asyncio
async def test_shard_payloads_are_copied() -> None:
    store = MemoryStore()
    payload = {"1": [1, 2]}

    await store.put_shard(ShardKind.TERM, 1, payload)
    payload["1"].append(3)
    fetched = await store.get_shard(ShardKind.TERM, 1)
    fetched["1"].append(4)

    assert await store.get_shard(ShardKind.TERM, 1) == {"1": [1, 2]}
    assert await store.get_shard(ShardKind.GRID, 1) is None


@pytest.mark.asyncio
async def test_pagination_ends_with_empty_page() -> None:
    store = MemoryStore(
        [
            {"id": 1, "text": "a", "zxy": ["1/0/0"]},
            {"id": 2, "text": "b", "zxy": ["1/0/1"]},
            IndexableDocument(id=3, text="c"),
        ]
    )

    sizes = []
    pointer = IndexPointer(limit=2)
    while True:
        docs, pointer = await store.get_indexable_docs(pointer)
        sizes.append(len(docs))
        if not docs:
            break

    assert sizes == [2, 1, 0]
    assert pointer.offset == 6


@pytest.mark.asyncio
async def test_metadata_round_trip() -> None:
    store = MemoryStore()

    await store.put_document(IndexableDocument(id=5, doc={"name": "Elm", "tags": ["road"]}))

    assert await store.get_document(5) == {"name": "Elm", "tags": ["road"]}
    assert await store.get_document(6) is None


@pytest.mark.asyncio
async def test_prepare_schema_flags_store() -> None:
    store = MemoryStore()
    await store.prepare_schema()
    assert store.schema_prepared
