"""Embedding model interface and HTTP implementation."""

import time
from abc import ABC, abstractmethod

import httpx

from embedding_store.config import EmbeddingSettings, get_settings
from embedding_store.embeddings.models import Embedding
from embedding_store.exceptions import EmbeddingModelError, ErrorCode
from embedding_store.logging_config import get_logger
from embedding_store.observability.metrics import track_embedding_request

logger = get_logger(__name__)


class EmbeddingModel(ABC):
    """Turns text into embeddings.

    The store consumes this boundary; it never implements a model itself.
    """

    @abstractmethod
    async def embed(self, text: str) -> Embedding:
        """Embed a single text.

        Args:
            text: Text to embed.

        Returns:
            The embedding.

        Raises:
            EmbeddingModelError: If embedding fails.
        """
        ...

    @abstractmethod
    async def embed_all(self, texts: list[str]) -> list[Embedding]:
        """Embed several texts, preserving order.

        Args:
            texts: Texts to embed.

        Returns:
            One embedding per text.

        Raises:
            EmbeddingModelError: If embedding fails.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name."""
        ...


class HTTPEmbeddingModel(EmbeddingModel):
    """Embedding model served over HTTP.

    Compatible with OpenAI-style embedding APIs and
    text-embeddings-inference (TEI) servers.
    """

    def __init__(
        self,
        settings: EmbeddingSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP embedding model.

        Args:
            settings: Embedding configuration. Uses defaults if not provided.
            client: HTTP client. Creates new one if not provided.
        """
        self._settings = settings or get_settings().embedding
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=60.0)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._settings.model

    async def embed(self, text: str) -> Embedding:
        """Embed a single text."""
        results = await self.embed_all([text])
        return results[0]

    async def embed_all(self, texts: list[str]) -> list[Embedding]:
        """Embed texts in batches of the configured size."""
        if not texts:
            return []

        client = await self._get_client()
        url = f"{self._settings.base_url}/embeddings"

        embeddings: list[Embedding] = []
        batch_size = self._settings.batch_size

        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]
            embeddings.extend(await self._embed_batch_request(client, url, batch))

        return embeddings

    async def _embed_batch_request(
        self,
        client: httpx.AsyncClient,
        url: str,
        texts: list[str],
    ) -> list[Embedding]:
        """Make embedding request for a batch.

        Raises:
            EmbeddingModelError: If the request fails or the response is malformed.
        """
        payload = {
            "input": texts,
            "model": self._settings.model,
        }

        start = time.perf_counter()
        try:
            response = await client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            track_embedding_request(
                self.model_name, time.perf_counter() - start, len(texts), success=False
            )
            logger.error(
                f"Embedding request failed: {e.response.status_code}",
                extra={"url": url, "status": e.response.status_code},
            )
            raise EmbeddingModelError(
                f"Embedding service returned {e.response.status_code}",
                code=ErrorCode.EMBEDDING_MODEL_ERROR,
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            track_embedding_request(
                self.model_name, time.perf_counter() - start, len(texts), success=False
            )
            logger.error(
                f"Embedding request error: {e}",
                extra={"url": url},
            )
            raise EmbeddingModelError(
                f"Failed to connect to embedding service: {e}",
                code=ErrorCode.EMBEDDING_MODEL_ERROR,
                details={"url": url},
            ) from e

        try:
            data = response.json()["data"]
            embeddings = [Embedding.from_list(item["embedding"]) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise EmbeddingModelError(
                f"Invalid response from embedding service: {e}",
                code=ErrorCode.EMBEDDING_MODEL_ERROR,
                details={"error": str(e)},
            ) from e

        if len(embeddings) != len(texts):
            raise EmbeddingModelError(
                f"Embedding service returned {len(embeddings)} vectors for {len(texts)} texts",
                code=ErrorCode.EMBEDDING_MODEL_ERROR,
                details={"expected": len(texts), "received": len(embeddings)},
            )

        track_embedding_request(self.model_name, time.perf_counter() - start, len(texts))
        return embeddings
