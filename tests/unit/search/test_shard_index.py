"""Unit tests for the cached shard views."""

from __future__ import annotations

import asyncio

import pytest

from tilesearch.adapters.memory_store import MemoryStore
from tilesearch.errors import MalformedDataError, StorageError
from tilesearch.search.models import GridRecord
from tilesearch.search.shard_index import GridIndex, ShardIndex, TermIndex
from tilesearch.search.sharding import ShardKind
from tilesearch.search.terms import TileCoordinate


pytestmark = pytest.mark.unit


class _CountingStore(MemoryStore):
    def __init__(self, *, delay: float = 0.0) -> None:
        super().__init__()
        self.delay = delay
        self.gets: list[tuple[ShardKind, int]] = []
        self.puts: list[tuple[ShardKind, int]] = []

    async def get_shard(self, kind, shard):
        self.gets.append((kind, shard))
        if self.delay:
            await asyncio.sleep(self.delay)
        return await super().get_shard(kind, shard)

    async def put_shard(self, kind, shard, payload):
        self.puts.append((kind, shard))
        await super().put_shard(kind, shard, payload)


class _BrokenStore(MemoryStore):
    async def get_shard(self, kind, shard):
        raise OSError("disk on fire")

    async def put_shard(self, kind, shard, payload):
        raise OSError("disk on fire")


@pytest.mark.asyncio
async def test_missing_shard_is_empty_and_cached() -> None:
    store = _CountingStore()
    shards = ShardIndex(store)

    assert await shards.get_shard(ShardKind.TERM, 7) == {}
    assert await shards.get_shard(ShardKind.TERM, 7) == {}

    assert store.gets == [(ShardKind.TERM, 7)]
    assert shards.is_cached(ShardKind.TERM, 7)


@pytest.mark.asyncio
async def test_namespaces_are_cached_separately() -> None:
    store = _CountingStore()
    shards = ShardIndex(store)

    await shards.get_shard(ShardKind.TERM, 1)
    await shards.get_shard(ShardKind.GRID, 1)

    assert store.gets == [(ShardKind.TERM, 1), (ShardKind.GRID, 1)]
    assert shards.cached_shard_count == 2


@pytest.mark.asyncio
async def test_concurrent_reads_fetch_once() -> None:
    store = _CountingStore(delay=0.01)
    shards = ShardIndex(store)

    first, second = await asyncio.gather(
        shards.get_shard(ShardKind.TERM, 3),
        shards.get_shard(ShardKind.TERM, 3),
    )

    assert first is second
    assert store.gets == [(ShardKind.TERM, 3)]


@pytest.mark.asyncio
async def test_put_writes_through_and_updates_cache() -> None:
    store = _CountingStore()
    shards = ShardIndex(store)

    await shards.put_shard(ShardKind.TERM, 5, {105: [1, 2]})

    assert await shards.get_shard(ShardKind.TERM, 5) == {105: [1, 2]}
    assert store.gets == []
    assert await store.get_shard(ShardKind.TERM, 5) == {"105": [1, 2]}


@pytest.mark.asyncio
async def test_cache_never_refreshes_within_an_instance() -> None:
    store = MemoryStore()
    shards = ShardIndex(store)
    await shards.get_shard(ShardKind.TERM, 5)

    await store.put_shard(ShardKind.TERM, 5, {"105": [9]})

    assert await shards.get_shard(ShardKind.TERM, 5) == {}
    assert await ShardIndex(store).get_shard(ShardKind.TERM, 5) == {105: [9]}


@pytest.mark.asyncio
async def test_fetch_failure_becomes_storage_error() -> None:
    shards = ShardIndex(_BrokenStore())

    with pytest.raises(StorageError, match="disk on fire"):
        await shards.get_shard(ShardKind.GRID, 1)
    assert not shards.is_cached(ShardKind.GRID, 1)


@pytest.mark.asyncio
async def test_write_failure_leaves_cache_untouched() -> None:
    shards = ShardIndex(_BrokenStore())

    with pytest.raises(StorageError):
        await shards.put_shard(ShardKind.TERM, 1, {1: [1]})
    assert not shards.is_cached(ShardKind.TERM, 1)


@pytest.mark.asyncio
async def test_malformed_payload_propagates() -> None:
    store = MemoryStore()
    await store.put_shard(ShardKind.TERM, 4, {"not-a-term": [1]})

    with pytest.raises(MalformedDataError):
        await ShardIndex(store).get_shard(ShardKind.TERM, 4)


@pytest.mark.asyncio
async def test_term_and_grid_views_route_by_shard_level() -> None:
    store = MemoryStore()
    shards = ShardIndex(store)
    terms = TermIndex(shards, shard_level=1)
    grid = GridIndex(shards, shard_level=1)
    record = GridRecord(text=((1234,),), zxy=(TileCoordinate(2, 1, 1),))

    await terms.put_shard(terms.shard_for(1234), {1234: [77]})
    await grid.put_shard(grid.shard_for(77), {77: record})

    assert terms.shard_for(1234) == 34
    assert grid.shard_for(77) == 77
    assert await terms.document_ids(1234) == [77]
    assert await terms.document_ids(9934) == []
    assert await grid.record(77) == record
    assert await grid.record(177) is None
    assert store.shard_ids(ShardKind.TERM) == [34]
