"""Prometheus metrics for the embedding store.

Provides metrics instrumentation for:
- Store operation latency and counts
- Records written to the remote index
- Query result sizes and top scores
- Index client retries
- Embedding model request latency
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)

# Store Metrics
STORE_OPERATION_DURATION = Histogram(
    "embedding_store_operation_duration_seconds",
    "Embedding store operation duration in seconds",
    ["operation", "status"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

STORE_OPERATION_TOTAL = Counter(
    "embedding_store_operations_total",
    "Total embedding store operations",
    ["operation", "status"],
)

STORE_RECORDS_WRITTEN = Counter(
    "embedding_store_records_written_total",
    "Total records upserted to the remote index",
)

# Query Metrics
QUERY_MATCHES_RETURNED = Histogram(
    "embedding_store_query_matches_returned",
    "Number of matches returned per query",
    buckets=[0, 1, 2, 3, 5, 10, 20, 50, 100],
)

QUERY_TOP_SCORE = Histogram(
    "embedding_store_query_top_score",
    "Top relevance score per query",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

# Index Client Metrics
INDEX_REQUEST_RETRIES = Counter(
    "index_request_retries_total",
    "Retried remote index requests",
    ["backend"],
)

# Embedding Metrics
EMBEDDING_REQUEST_DURATION = Histogram(
    "embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["model", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

EMBEDDING_REQUEST_TOTAL = Counter(
    "embedding_requests_total",
    "Total embedding requests",
    ["model", "status"],
)

EMBEDDING_BATCH_SIZE = Histogram(
    "embedding_batch_size",
    "Embedding batch size",
    ["model"],
    buckets=[1, 5, 10, 25, 50, 100, 250, 500],
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST


def track_store_operation(
    operation: str,
    duration: float,
    success: bool = True,
    records: int = 0,
) -> None:
    """Track a store operation.

    Args:
        operation: Operation name (add, add_all, find_relevant, remove_all).
        duration: Operation duration in seconds.
        success: Whether the operation succeeded.
        records: Number of records written, for successful writes.
    """
    status = "success" if success else "error"

    STORE_OPERATION_DURATION.labels(operation=operation, status=status).observe(duration)
    STORE_OPERATION_TOTAL.labels(operation=operation, status=status).inc()

    if success and records:
        STORE_RECORDS_WRITTEN.inc(records)


def track_query(matches_returned: int, top_score: float | None) -> None:
    """Track query result metrics.

    Args:
        matches_returned: Number of matches returned to the caller.
        top_score: Highest relevance score, or None for an empty result.
    """
    QUERY_MATCHES_RETURNED.observe(matches_returned)
    if top_score is not None:
        QUERY_TOP_SCORE.observe(top_score)


def track_index_retry(backend: str) -> None:
    """Count one retried index request."""
    INDEX_REQUEST_RETRIES.labels(backend=backend).inc()


def track_embedding_request(
    model: str,
    duration: float,
    batch_size: int,
    success: bool = True,
) -> None:
    """Track embedding request metrics.

    Args:
        model: Embedding model name.
        duration: Request duration in seconds.
        batch_size: Number of texts in the batch.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    EMBEDDING_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(model=model, status=status).inc()
    EMBEDDING_BATCH_SIZE.labels(model=model).observe(batch_size)
