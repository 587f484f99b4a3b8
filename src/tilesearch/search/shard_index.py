"""Cached TermIndex/GridIndex views over a shard store.

Every engine instance owns one ``ShardIndex``. Shards are decoded once on
first access and kept for the lifetime of the instance: there is no eviction
and no invalidation, so memory grows with the number of distinct shards
touched. Two instances never share cache state; the store is the source of
truth between them.

Cached shard dictionaries are shared. Callers that need to modify one must
copy it and hand the copy to ``put_shard``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
import logging
from typing import Any

from tilesearch.adapters.store import ShardStore
from tilesearch.errors import StorageError, TileSearchError
from tilesearch.observability.metrics import SHARD_CACHE
from tilesearch.search.models import (
    GridRecord,
    GridShard,
    TermShard,
    decode_grid_shard,
    decode_term_shard,
    encode_grid_shard,
    encode_term_shard,
)
from tilesearch.search.sharding import DEFAULT_SHARD_LEVEL, ShardKind, shard_of


logger = logging.getLogger(__name__)

_DECODERS: dict[ShardKind, Callable[[Mapping[str, Any] | None], dict]] = {
    ShardKind.TERM: decode_term_shard,
    ShardKind.GRID: decode_grid_shard,
}

_ENCODERS: dict[ShardKind, Callable[[Mapping], dict[str, Any]]] = {
    ShardKind.TERM: encode_term_shard,
    ShardKind.GRID: encode_grid_shard,
}


class ShardIndex:
    """Read-through, write-through shard cache for both namespaces."""

    def __init__(self, store: ShardStore) -> None:
        self._store = store
        self._cache: dict[tuple[ShardKind, int], dict] = {}
        self._fetch_locks: dict[tuple[ShardKind, int], asyncio.Lock] = {}
        self._merge_locks: dict[tuple[ShardKind, int], asyncio.Lock] = {}

    @property
    def cached_shard_count(self) -> int:
        return len(self._cache)

    def is_cached(self, kind: ShardKind, shard: int) -> bool:
        return (ShardKind(kind), shard) in self._cache

    def merge_lock(self, kind: ShardKind, shard: int) -> asyncio.Lock:
        """Lock serializing read-modify-write cycles on one shard."""
        return self._merge_locks.setdefault((ShardKind(kind), shard), asyncio.Lock())

    async def get_shard(self, kind: ShardKind, shard: int) -> dict:
        """Return a decoded shard, fetching it from the store on first access.

        A shard missing from the store is cached as an empty mapping.
        """
        key = (ShardKind(kind), shard)
        cached = self._cache.get(key)
        if cached is not None:
            SHARD_CACHE.inc(kind=key[0].value, result="hit")
            return cached

        async with self._fetch_locks.setdefault(key, asyncio.Lock()):
            # Another task may have filled the slot while we waited.
            cached = self._cache.get(key)
            if cached is not None:
                SHARD_CACHE.inc(kind=key[0].value, result="hit")
                return cached

            SHARD_CACHE.inc(kind=key[0].value, result="miss")
            try:
                payload = await self._store.get_shard(key[0], shard)
            except TileSearchError:
                raise
            except Exception as err:
                raise StorageError(f"Failed to fetch {key[0].value} shard {shard}: {err}") from err

            decoded = _DECODERS[key[0]](payload)
            self._cache[key] = decoded
            logger.debug("Loaded %s shard %s (%d entries)", key[0].value, shard, len(decoded))
            return decoded

    async def put_shard(self, kind: ShardKind, shard: int, data: dict) -> None:
        """Write a shard through to the store, then publish it to the cache."""
        key = (ShardKind(kind), shard)
        payload = _ENCODERS[key[0]](data)
        try:
            await self._store.put_shard(key[0], shard, payload)
        except TileSearchError:
            raise
        except Exception as err:
            raise StorageError(f"Failed to write {key[0].value} shard {shard}: {err}") from err
        self._cache[key] = data


class TermIndex:
    """Term id -> document ids view over the ``term`` namespace."""

    kind = ShardKind.TERM

    def __init__(self, shards: ShardIndex, *, shard_level: int = DEFAULT_SHARD_LEVEL) -> None:
        self.shards = shards
        self.shard_level = shard_level

    def shard_for(self, term: int) -> int:
        return shard_of(self.shard_level, term)

    async def get_shard(self, shard: int) -> TermShard:
        return await self.shards.get_shard(self.kind, shard)

    async def put_shard(self, shard: int, data: TermShard) -> None:
        await self.shards.put_shard(self.kind, shard, data)

    async def document_ids(self, term: int) -> list[int]:
        """Return the documents referencing ``term`` (empty when unknown)."""
        shard = await self.get_shard(self.shard_for(term))
        return shard.get(term, [])


class GridIndex:
    """Document id -> ``GridRecord`` view over the ``grid`` namespace."""

    kind = ShardKind.GRID

    def __init__(self, shards: ShardIndex, *, shard_level: int = DEFAULT_SHARD_LEVEL) -> None:
        self.shards = shards
        self.shard_level = shard_level

    def shard_for(self, doc_id: int) -> int:
        return shard_of(self.shard_level, doc_id)

    async def get_shard(self, shard: int) -> GridShard:
        return await self.shards.get_shard(self.kind, shard)

    async def put_shard(self, shard: int, data: GridShard) -> None:
        await self.shards.put_shard(self.kind, shard, data)

    async def record(self, doc_id: int) -> GridRecord | None:
        shard = await self.get_shard(self.shard_for(doc_id))
        return shard.get(doc_id)
