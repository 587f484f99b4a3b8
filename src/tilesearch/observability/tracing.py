"""Spans around engine operations.

Spans go to the process-wide OpenTelemetry tracer provider, which the host
application configures. ``use_tracer_provider`` routes them to a specific
provider instead.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from opentelemetry import trace


if TYPE_CHECKING:
    from collections.abc import Generator

    from opentelemetry.trace import Span, Tracer, TracerProvider

_TRACER_NAME = "tilesearch"

_tracer_override: dict[str, Tracer | None] = {"tracer": None}


def use_tracer_provider(provider: TracerProvider | None) -> None:
    """Send engine spans to ``provider``; ``None`` goes back to the global provider."""
    _tracer_override["tracer"] = provider.get_tracer(_TRACER_NAME) if provider is not None else None


@contextmanager
def create_span(name: str, attributes: dict[str, Any] | None = None) -> Generator[Span, None, None]:
    """Run the body inside span ``name``; an exception marks the span as failed and propagates."""
    tracer = _tracer_override["tracer"] or trace.get_tracer(_TRACER_NAME)
    with tracer.start_as_current_span(name, attributes=attributes) as span:
        yield span
