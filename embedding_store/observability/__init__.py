"""Observability module for metrics."""

from embedding_store.observability.metrics import (
    get_metrics,
    get_metrics_content_type,
    track_embedding_request,
    track_index_retry,
    track_query,
    track_store_operation,
)

__all__ = [
    "get_metrics",
    "get_metrics_content_type",
    "track_embedding_request",
    "track_index_retry",
    "track_query",
    "track_store_operation",
]
