"""Engine metrics.

Each metric is a Prometheus collector on the default registry plus an
OpenTelemetry instrument of the same name on the global meter provider. The
host application decides how either side is exported.
"""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING

from opentelemetry import metrics as otel_metrics
from prometheus_client import Counter, Histogram


if TYPE_CHECKING:
    from collections.abc import Generator


_meter = otel_metrics.get_meter("tilesearch")


class BridgedCounter:
    def __init__(self, name: str, documentation: str, labelnames: list[str]) -> None:
        self.collector = Counter(name, documentation, labelnames)
        self._instrument = _meter.create_counter(name, description=documentation)

    def inc(self, amount: float = 1.0, **labels: str) -> None:
        self.collector.labels(**labels).inc(amount)
        self._instrument.add(amount, labels)


class BridgedHistogram:
    def __init__(self, name: str, documentation: str, labelnames: list[str], buckets: tuple[float, ...]) -> None:
        self.collector = Histogram(name, documentation, labelnames, buckets=buckets)
        self._instrument = _meter.create_histogram(name, unit="s", description=documentation)

    def observe(self, value: float, **labels: str) -> None:
        self.collector.labels(**labels).observe(value)
        self._instrument.record(value, labels)


SEARCH_LATENCY = BridgedHistogram(
    "tilesearch_search_latency_seconds",
    "Search query latency",
    ["status"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

INDEX_LATENCY = BridgedHistogram(
    "tilesearch_index_latency_seconds",
    "Index batch latency",
    ["status"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

SHARD_CACHE = BridgedCounter("tilesearch_shard_cache", "Shard cache lookups by outcome", ["kind", "result"])

DOCUMENTS_INDEXED = BridgedCounter("tilesearch_documents_indexed", "Documents merged into the index", ["store"])

ERROR_COUNT = BridgedCounter("tilesearch_errors", "Failed engine operations", ["error_type", "operation"])


@contextmanager
def track_latency(histogram: BridgedHistogram) -> Generator[None, None, None]:
    """Observe the body's duration on ``histogram``, labelled ``ok`` or ``error``."""
    status = "ok"
    start = time.perf_counter()
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        histogram.observe(time.perf_counter() - start, status=status)
