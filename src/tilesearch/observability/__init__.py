"""Logging, metrics and tracing used by the engine."""

from tilesearch.observability.logging import JsonFormatter, configure_logging
from tilesearch.observability.metrics import (
    DOCUMENTS_INDEXED,
    ERROR_COUNT,
    INDEX_LATENCY,
    SEARCH_LATENCY,
    SHARD_CACHE,
    track_latency,
)
from tilesearch.observability.tracing import create_span, use_tracer_provider


__all__ = [
    "DOCUMENTS_INDEXED",
    "ERROR_COUNT",
    "INDEX_LATENCY",
    "SEARCH_LATENCY",
    "SHARD_CACHE",
    "JsonFormatter",
    "configure_logging",
    "create_span",
    "track_latency",
    "use_tracer_provider",
]
