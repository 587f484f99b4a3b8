"""Shardable term/tile search index.

Public entry points:
- ``TileSearchEngine``: index documents and answer free-text queries
- ``Settings``: environment-driven configuration
"""

from tilesearch.config import Settings
from tilesearch.engine import TileSearchEngine, create_engine
from tilesearch.errors import MalformedDataError, StorageError, TileSearchError


__all__ = [
    "MalformedDataError",
    "Settings",
    "StorageError",
    "TileSearchEngine",
    "create_engine",
    "TileSearchError",
]
