"""Deterministic shard routing for term ids and document ids."""

from __future__ import annotations

from enum import Enum


DEFAULT_SHARD_LEVEL = 2


class ShardKind(str, Enum):
    """Shard namespaces held by a shard store."""

    TERM = "term"
    GRID = "grid"


def shard_of(level: int, item_id: int) -> int:
    """Return the shard holding ``item_id``: ``item_id mod 100**level``."""
    if level < 0:
        raise ValueError(f"Shard level must be non-negative: {level}")
    return int(item_id) % (100**level)
