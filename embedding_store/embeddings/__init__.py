"""Embedding types, similarity and the embedding model boundary."""

from embedding_store.embeddings.models import Embedding, MetadataValue, TextSegment
from embedding_store.embeddings.service import EmbeddingModel, HTTPEmbeddingModel
from embedding_store.embeddings.similarity import (
    cosine_from_relevance,
    cosine_similarity,
    relevance_score,
)

__all__ = [
    "Embedding",
    "EmbeddingModel",
    "HTTPEmbeddingModel",
    "MetadataValue",
    "TextSegment",
    "cosine_from_relevance",
    "cosine_similarity",
    "relevance_score",
]
