"""Qdrant index client."""

import math
from uuid import NAMESPACE_URL, uuid5

import httpx
from qdrant_client import AsyncQdrantClient
from qdrant_client.http.exceptions import UnexpectedResponse
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PayloadSchemaType,
    PointIdsList,
    PointStruct,
    VectorParams,
)

from embedding_store.config import QdrantSettings, StoreSettings, get_settings
from embedding_store.exceptions import (
    ErrorCode,
    InvalidArgumentError,
    TransportError,
    TransportTimeoutError,
)
from embedding_store.index.client import RemoteIndexClient
from embedding_store.index.models import IndexRecord, ScoredRecord, UpsertResult
from embedding_store.logging_config import get_logger

logger = get_logger(__name__)

NAMESPACE_KEY = "namespace"
EMBEDDING_ID_KEY = "embedding_id"
# Cosine collections normalize stored vectors; the original is kept here
VECTOR_KEY = "embedding_vector"
RESERVED_KEYS = frozenset({NAMESPACE_KEY, EMBEDDING_ID_KEY, VECTOR_KEY})


def point_id(namespace: str, embedding_id: str) -> str:
    """Derive a stable Qdrant point id from a namespaced string id."""
    return str(uuid5(uuid5(NAMESPACE_URL, namespace), embedding_id))


def _is_timeout(error: BaseException) -> bool:
    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return True
    return isinstance(getattr(error, "source", None), httpx.TimeoutException)


class QdrantIndexClient(RemoteIndexClient):
    """Qdrant implementation of the remote index.

    All namespaces share one cosine-distance collection. Each point stores
    its namespace, original string id and unnormalized vector in the
    payload, and queries filter on the namespace.
    """

    def __init__(
        self,
        settings: QdrantSettings,
        store_settings: StoreSettings | None = None,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize the Qdrant client.

        Args:
            settings: Qdrant configuration.
            store_settings: Timeout policy.
            client: Existing client (for testing).
        """
        self._settings = settings
        self._store_settings = store_settings or get_settings().store
        self._client = client
        self._owns_client = client is None

    @property
    def collection(self) -> str:
        """Name of the backing collection."""
        return self._settings.collection_name

    async def _get_client(self) -> AsyncQdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            api_key = None
            if self._settings.api_key:
                api_key = self._settings.api_key.get_secret_value()

            self._client = AsyncQdrantClient(
                url=self._settings.url,
                api_key=api_key,
                timeout=math.ceil(self._store_settings.request_timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the Qdrant client."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    def _timeout(self, timeout: float | None) -> int:
        return math.ceil(timeout if timeout is not None else self._store_settings.request_timeout)

    def _wrap(self, error: Exception, action: str, timeout: int) -> TransportError:
        if _is_timeout(error):
            return TransportTimeoutError(
                f"Qdrant {action} timed out after {timeout}s",
                details={"collection": self.collection, "timeout": timeout},
            )
        code = ErrorCode.TRANSPORT_ERROR
        if isinstance(error, UnexpectedResponse):
            if error.status_code == 404:
                code = ErrorCode.COLLECTION_NOT_FOUND
            elif error.status_code in (401, 403):
                code = ErrorCode.UNAUTHORIZED
            elif error.status_code == 429:
                code = ErrorCode.RATE_LIMITED
        return TransportError(
            f"Failed to {action}: {error}",
            code=code,
            details={"collection": self.collection, "error": str(error)},
        )

    async def ensure_collection(self, dimensions: int) -> bool:
        """Create the backing collection if it does not exist.

        Returns:
            True if the collection was created.
        """
        client = await self._get_client()
        timeout = self._timeout(None)

        try:
            if await client.collection_exists(self.collection):
                return False

            await client.create_collection(
                collection_name=self.collection,
                vectors_config=VectorParams(
                    size=dimensions,
                    distance=Distance.COSINE,
                ),
            )
            await client.create_payload_index(
                collection_name=self.collection,
                field_name=NAMESPACE_KEY,
                field_schema=PayloadSchemaType.KEYWORD,
            )
            logger.info(
                f"Created collection: {self.collection}",
                extra={"dimensions": dimensions},
            )
            return True

        except Exception as e:
            raise self._wrap(e, "create collection", timeout) from e

    async def upsert(
        self,
        namespace: str,
        records: list[IndexRecord],
        timeout: float | None = None,
    ) -> UpsertResult:
        """Upsert records as namespaced points.

        Qdrant applies its client-level timeout to writes; ``timeout`` is
        only used to label a timeout error.
        """
        if not records:
            return UpsertResult(upserted_count=0)

        for record in records:
            clashing = RESERVED_KEYS.intersection(record.metadata)
            if clashing:
                raise InvalidArgumentError(
                    f"Metadata uses reserved keys: {sorted(clashing)}",
                    details={"id": record.id},
                )

        points = [
            PointStruct(
                id=point_id(namespace, record.id),
                vector=record.vector,
                payload={
                    **record.metadata,
                    NAMESPACE_KEY: namespace,
                    EMBEDDING_ID_KEY: record.id,
                    VECTOR_KEY: record.vector,
                },
            )
            for record in records
        ]

        client = await self._get_client()
        request_timeout = self._timeout(timeout)
        try:
            await client.upsert(
                collection_name=self.collection,
                points=points,
                wait=True,
            )
        except Exception as e:
            raise self._wrap(e, "upsert records", request_timeout) from e

        logger.debug(
            f"Upserted {len(points)} records",
            extra={"collection": self.collection, "namespace": namespace},
        )
        return UpsertResult(upserted_count=len(points))

    async def query(
        self,
        namespace: str,
        vector: list[float],
        top_k: int,
        timeout: float | None = None,
    ) -> list[ScoredRecord]:
        """Search within the namespace, returning vectors and payloads."""
        client = await self._get_client()
        request_timeout = self._timeout(timeout)

        try:
            results = await client.query_points(
                collection_name=self.collection,
                query=vector,
                limit=top_k,
                query_filter=Filter(
                    must=[
                        FieldCondition(key=NAMESPACE_KEY, match=MatchValue(value=namespace))
                    ]
                ),
                with_payload=True,
                with_vectors=False,
                timeout=request_timeout,
            )
        except Exception as e:
            raise self._wrap(e, "search", request_timeout) from e

        scored: list[ScoredRecord] = []
        for point in results.points:
            payload = dict(point.payload) if point.payload else {}
            embedding_id = payload.pop(EMBEDDING_ID_KEY, None)
            vector = payload.pop(VECTOR_KEY, None)
            payload.pop(NAMESPACE_KEY, None)
            if embedding_id is None:
                raise TransportError(
                    f"Point {point.id} has no {EMBEDDING_ID_KEY} payload",
                    code=ErrorCode.MALFORMED_RESPONSE,
                    details={"collection": self.collection, "point_id": str(point.id)},
                )
            if point.score is None:
                raise TransportError(
                    f"Point {point.id} has no score",
                    code=ErrorCode.MALFORMED_RESPONSE,
                    details={"collection": self.collection, "point_id": str(point.id)},
                )
            scored.append(
                ScoredRecord(
                    id=str(embedding_id),
                    score=point.score,
                    vector=vector if isinstance(vector, list) else None,
                    metadata=payload,
                )
            )
        return scored

    async def delete(
        self,
        namespace: str,
        ids: list[str],
        timeout: float | None = None,
    ) -> None:
        """Delete namespaced points by string id."""
        if not ids:
            return

        client = await self._get_client()
        request_timeout = self._timeout(timeout)
        try:
            await client.delete(
                collection_name=self.collection,
                points_selector=PointIdsList(
                    points=[point_id(namespace, record_id) for record_id in ids]
                ),
                wait=True,
            )
        except Exception as e:
            raise self._wrap(e, "delete records", request_timeout) from e

        logger.debug(
            f"Deleted {len(ids)} records",
            extra={"collection": self.collection, "namespace": namespace},
        )
