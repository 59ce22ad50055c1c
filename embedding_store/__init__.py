"""Client-side embedding store over remote vector-search services."""

from embedding_store.embeddings import (
    Embedding,
    EmbeddingModel,
    HTTPEmbeddingModel,
    TextSegment,
    cosine_similarity,
    relevance_score,
)
from embedding_store.exceptions import (
    ConfigurationError,
    EmbeddingModelError,
    EmbeddingStoreError,
    ErrorCode,
    InvalidArgumentError,
    TransportError,
    TransportTimeoutError,
)
from embedding_store.index import (
    InMemoryIndexClient,
    PineconeIndexClient,
    QdrantIndexClient,
    RemoteIndexClient,
)
from embedding_store.store import EmbeddingMatch, EmbeddingStore

__all__ = [
    "ConfigurationError",
    "Embedding",
    "EmbeddingMatch",
    "EmbeddingModel",
    "EmbeddingModelError",
    "EmbeddingStore",
    "EmbeddingStoreError",
    "ErrorCode",
    "HTTPEmbeddingModel",
    "InMemoryIndexClient",
    "InvalidArgumentError",
    "PineconeIndexClient",
    "QdrantIndexClient",
    "RemoteIndexClient",
    "TextSegment",
    "TransportError",
    "TransportTimeoutError",
    "cosine_similarity",
    "relevance_score",
]
