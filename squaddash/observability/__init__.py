"""Observability helpers."""

from squaddash.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_cache_refresh,
    record_ingestion,
    record_parser_failure,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_cache_refresh",
    "record_ingestion",
    "record_parser_failure",
]
