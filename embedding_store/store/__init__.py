"""Embedding store module."""

from embedding_store.store.models import EmbeddingMatch
from embedding_store.store.service import TEXT_SEGMENT_KEY, EmbeddingStore, random_id

__all__ = [
    "TEXT_SEGMENT_KEY",
    "EmbeddingMatch",
    "EmbeddingStore",
    "random_id",
]
