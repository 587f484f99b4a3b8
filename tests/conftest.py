"""Shared test fixtures and configuration."""

import os

import pytest

from tilesearch.adapters.memory_store import MemoryStore
from tilesearch.config import Settings
from tilesearch.engine import TileSearchEngine


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Drop any TILESEARCH_* variables leaking in from the host environment."""
    for key in list(os.environ):
        if key.upper().startswith("TILESEARCH_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def engine(memory_store: MemoryStore, settings: Settings) -> TileSearchEngine:
    return TileSearchEngine(memory_store, settings=settings)
