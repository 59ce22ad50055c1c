"""Remote index clients."""

from embedding_store.index.client import RemoteIndexClient
from embedding_store.index.memory import InMemoryIndexClient
from embedding_store.index.models import IndexRecord, ScoredRecord, UpsertResult
from embedding_store.index.pinecone import PineconeIndexClient
from embedding_store.index.qdrant import QdrantIndexClient

__all__ = [
    "InMemoryIndexClient",
    "IndexRecord",
    "PineconeIndexClient",
    "QdrantIndexClient",
    "RemoteIndexClient",
    "ScoredRecord",
    "UpsertResult",
]
