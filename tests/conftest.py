"""Pytest configuration and shared fixtures."""

import hashlib
from collections.abc import Callable
from uuid import uuid4

import pytest

from embedding_store.config import StoreSettings
from embedding_store.embeddings.models import Embedding
from embedding_store.embeddings.service import EmbeddingModel
from embedding_store.index.memory import InMemoryIndexClient
from embedding_store.store.service import EmbeddingStore


class HashEmbeddingModel(EmbeddingModel):
    """Deterministic embedding model deriving vectors from SHA-256 digests."""

    DIMENSIONS = 32

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return "sha256-test"

    async def embed(self, text: str) -> Embedding:
        """Embed a single text."""
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return Embedding.from_list(byte / 127.5 - 1.0 for byte in digest[: self.DIMENSIONS])

    async def embed_all(self, texts: list[str]) -> list[Embedding]:
        """Embed several texts."""
        return [await self.embed(text) for text in texts]


@pytest.fixture
def embedding_model() -> HashEmbeddingModel:
    """Deterministic embedding model."""
    return HashEmbeddingModel()


@pytest.fixture
def index_client() -> InMemoryIndexClient:
    """Fresh in-memory index."""
    return InMemoryIndexClient()


@pytest.fixture
def store_settings() -> StoreSettings:
    """Store settings with a short default deadline."""
    return StoreSettings(request_timeout=5.0, max_retries=0, retry_backoff=0.0)


@pytest.fixture
def sequential_ids() -> Callable[[], str]:
    """Id generator producing id-1, id-2, ..."""
    counter = 0

    def generate() -> str:
        nonlocal counter
        counter += 1
        return f"id-{counter}"

    return generate


@pytest.fixture
def store(index_client: InMemoryIndexClient, store_settings: StoreSettings) -> EmbeddingStore:
    """Store over the in-memory index, isolated in its own namespace."""
    return EmbeddingStore(index_client, namespace=str(uuid4()), settings=store_settings)
