"""Observability helpers."""

from sessionview.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_ingestion,
    record_parser_failure,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_ingestion",
    "record_parser_failure",
]
