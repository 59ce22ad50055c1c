"""Embedding store over a remote index."""

import asyncio
import math
import time
from collections.abc import Awaitable, Callable, Sequence
from types import TracebackType
from typing import Any, TypeVar
from uuid import uuid4

from embedding_store.config import (
    PineconeSettings,
    QdrantSettings,
    StoreSettings,
    get_settings,
    load_settings,
)
from embedding_store.embeddings.models import Embedding, TextSegment
from embedding_store.embeddings.similarity import relevance_score
from embedding_store.exceptions import (
    ErrorCode,
    InvalidArgumentError,
    TransportError,
    TransportTimeoutError,
)
from embedding_store.index.client import RemoteIndexClient
from embedding_store.index.models import IndexRecord, ScoredRecord
from embedding_store.index.pinecone import PineconeIndexClient
from embedding_store.index.qdrant import QdrantIndexClient
from embedding_store.logging_config import get_logger
from embedding_store.observability.metrics import track_query, track_store_operation
from embedding_store.store.models import EmbeddingMatch

logger = get_logger(__name__)

T = TypeVar("T")

# Metadata key holding the segment text
TEXT_SEGMENT_KEY = "text_segment"

EmbeddingLike = Embedding | Sequence[float]


def random_id() -> str:
    """Default identifier generator."""
    return str(uuid4())


class EmbeddingStore:
    """Stores embeddings in one namespace of a remote index and ranks them.

    The store keeps no records locally; all state lives in the remote index,
    so one instance can be shared by concurrent tasks. Scores returned to
    callers are relevance scores, ``(cosine + 1) / 2``.

    Every operation takes an optional ``timeout`` in seconds (defaulting to
    ``StoreSettings.request_timeout``). A timed-out write raises
    TransportTimeoutError with ``details["outcome"] == "unknown"``.
    The store never retries; retries belong to the index client.
    """

    def __init__(
        self,
        client: RemoteIndexClient,
        namespace: str,
        *,
        id_generator: Callable[[], str] | None = None,
        settings: StoreSettings | None = None,
        owns_client: bool = False,
    ) -> None:
        """Initialize the store.

        Args:
            client: Remote index binding.
            namespace: Namespace every operation targets.
            id_generator: Produces ids for embeddings added without one.
            settings: Timeout defaults.
            owns_client: Close the client when the store is closed.
        """
        if not namespace:
            raise InvalidArgumentError("namespace must not be empty")

        self._client = client
        self._namespace = namespace
        self._id_generator = id_generator or random_id
        self._settings = settings or get_settings().store
        self._owns_client = owns_client

    @classmethod
    def from_pinecone(
        cls,
        settings: PineconeSettings | None = None,
        store_settings: StoreSettings | None = None,
        id_generator: Callable[[], str] | None = None,
    ) -> "EmbeddingStore":
        """Create a store backed by a Pinecone index.

        Settings are read from ``PINECONE_*`` variables when not given.

        Raises:
            ConfigurationError: If required settings are missing.
        """
        settings = settings or load_settings(PineconeSettings)
        store_settings = store_settings or get_settings().store
        return cls(
            PineconeIndexClient(settings, store_settings),
            settings.namespace,
            id_generator=id_generator,
            settings=store_settings,
            owns_client=True,
        )

    @classmethod
    def from_qdrant(
        cls,
        settings: QdrantSettings | None = None,
        store_settings: StoreSettings | None = None,
        id_generator: Callable[[], str] | None = None,
    ) -> "EmbeddingStore":
        """Create a store backed by a Qdrant collection.

        Settings are read from ``QDRANT_*`` variables when not given.

        Raises:
            ConfigurationError: If required settings are missing.
        """
        settings = settings or load_settings(QdrantSettings)
        store_settings = store_settings or get_settings().store
        return cls(
            QdrantIndexClient(settings, store_settings),
            settings.namespace,
            id_generator=id_generator,
            settings=store_settings,
            owns_client=True,
        )

    @property
    def namespace(self) -> str:
        """Namespace targeted by this store."""
        return self._namespace

    async def close(self) -> None:
        """Close the index client if the store owns it."""
        if self._owns_client:
            await self._client.close()

    async def __aenter__(self) -> "EmbeddingStore":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def add(
        self,
        embedding: EmbeddingLike,
        segment: TextSegment | None = None,
        *,
        timeout: float | None = None,
    ) -> str:
        """Store one embedding under a generated id.

        Args:
            embedding: Embedding to store.
            segment: Optional text payload.
            timeout: Deadline in seconds.

        Returns:
            The generated id.

        Raises:
            InvalidArgumentError: If the embedding or segment is malformed.
            TransportError: If the remote call fails.
        """
        embedding_id = self._id_generator()
        await self._upsert("add", [embedding_id], [embedding], [segment], timeout)
        return embedding_id

    async def add_with_id(
        self,
        embedding_id: str,
        embedding: EmbeddingLike,
        segment: TextSegment | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        """Store one embedding under a caller-supplied id.

        An existing record with the same id is overwritten; this is not an
        error.
        """
        if not embedding_id:
            raise InvalidArgumentError("embedding_id must not be empty")
        await self._upsert("add", [embedding_id], [embedding], [segment], timeout)

    async def add_all(
        self,
        embeddings: Sequence[EmbeddingLike],
        segments: Sequence[TextSegment | None] | None = None,
        *,
        timeout: float | None = None,
    ) -> list[str]:
        """Store a batch of embeddings under generated ids.

        Args:
            embeddings: Embeddings to store.
            segments: Optional payloads, paired with embeddings by position.
            timeout: Deadline in seconds.

        Returns:
            One id per embedding, in input order.

        Raises:
            InvalidArgumentError: If segments and embeddings differ in length.
            TransportError: If the remote call fails. No ids are returned and
                the batch may be partially written.
        """
        if segments is not None and len(segments) != len(embeddings):
            raise InvalidArgumentError(
                f"Got {len(embeddings)} embeddings but {len(segments)} segments",
                details={"embeddings": len(embeddings), "segments": len(segments)},
            )
        if not embeddings:
            return []

        ids = [self._id_generator() for _ in embeddings]
        await self._upsert("add_all", ids, embeddings, segments, timeout)
        return ids

    async def add_all_with_ids(
        self,
        ids: Sequence[str],
        embeddings: Sequence[EmbeddingLike],
        segments: Sequence[TextSegment | None] | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        """Store a batch of embeddings under caller-supplied ids.

        Raises:
            InvalidArgumentError: On length mismatch, empty or repeated ids.
            TransportError: If the remote call fails.
        """
        if len(ids) != len(embeddings):
            raise InvalidArgumentError(
                f"Got {len(ids)} ids but {len(embeddings)} embeddings",
                details={"ids": len(ids), "embeddings": len(embeddings)},
            )
        if segments is not None and len(segments) != len(embeddings):
            raise InvalidArgumentError(
                f"Got {len(embeddings)} embeddings but {len(segments)} segments",
                details={"embeddings": len(embeddings), "segments": len(segments)},
            )
        if not all(ids):
            raise InvalidArgumentError("ids must not be empty strings")
        if len(set(ids)) != len(ids):
            raise InvalidArgumentError("ids must be unique within a batch")
        if not ids:
            return

        await self._upsert("add_all", list(ids), embeddings, segments, timeout)

    async def find_relevant(
        self,
        reference: EmbeddingLike,
        max_results: int,
        min_score: float = 0.0,
        *,
        timeout: float | None = None,
    ) -> list[EmbeddingMatch]:
        """Find the stored embeddings most relevant to a reference.

        The top ``max_results`` records are fetched from the index and those
        scoring below ``min_score`` are dropped, so the result is always the
        prefix of the unfiltered result with ``score >= min_score``.
        Matches are ordered by descending score; equal scores keep the
        order the index reported them in.

        Args:
            reference: Query embedding.
            max_results: Maximum number of matches.
            min_score: Minimum relevance score, inclusive.
            timeout: Deadline in seconds.

        Returns:
            Matches ordered by descending relevance.

        Raises:
            InvalidArgumentError: If arguments are malformed.
            TransportError: If the remote call fails or its response is malformed.
        """
        if max_results < 1:
            raise InvalidArgumentError(
                f"max_results must be positive, got {max_results}",
                details={"max_results": max_results},
            )
        if math.isnan(min_score):
            raise InvalidArgumentError("min_score must be a number")

        query = self._as_embedding(reference)
        self._require_nonzero(query)
        deadline = self._deadline(timeout)
        start = time.perf_counter()

        try:
            scored = await self._call(
                self._client.query(self._namespace, query.to_list(), max_results, timeout=deadline),
                "find_relevant",
                deadline,
            )
            matches = self._to_matches(scored, max_results)
        except Exception:
            track_store_operation("find_relevant", time.perf_counter() - start, success=False)
            raise

        relevant = [match for match in matches if match.score >= min_score]

        track_store_operation("find_relevant", time.perf_counter() - start)
        track_query(len(relevant), relevant[0].score if relevant else None)
        logger.debug(
            f"Found {len(relevant)} relevant embeddings",
            extra={
                "namespace": self._namespace,
                "max_results": max_results,
                "min_score": min_score,
                "fetched": len(matches),
            },
        )
        return relevant

    async def remove_all(
        self,
        ids: Sequence[str],
        *,
        timeout: float | None = None,
    ) -> None:
        """Delete embeddings by id. Unknown ids are ignored."""
        if not ids:
            return

        deadline = self._deadline(timeout)
        start = time.perf_counter()
        try:
            await self._call(
                self._client.delete(self._namespace, list(ids), timeout=deadline),
                "remove_all",
                deadline,
                write=True,
            )
        except Exception:
            track_store_operation("remove_all", time.perf_counter() - start, success=False)
            raise

        track_store_operation("remove_all", time.perf_counter() - start)
        logger.debug(
            f"Removed {len(ids)} embeddings",
            extra={"namespace": self._namespace},
        )

    async def _upsert(
        self,
        operation: str,
        ids: list[str],
        embeddings: Sequence[EmbeddingLike],
        segments: Sequence[TextSegment | None] | None,
        timeout: float | None,
    ) -> None:
        vectors = [self._as_embedding(embedding) for embedding in embeddings]
        for position, vector in enumerate(vectors):
            self._require_nonzero(vector, position)
        dimensions = {vector.dimension for vector in vectors}
        if len(dimensions) > 1:
            raise InvalidArgumentError(
                "Embeddings in one batch must share a dimension",
                code=ErrorCode.DIMENSION_MISMATCH,
                details={"dimensions": sorted(dimensions)},
            )

        payloads = segments if segments is not None else [None] * len(vectors)
        records = [
            IndexRecord(id=embedding_id, vector=vector.to_list(), metadata=self._to_metadata(segment))
            for embedding_id, vector, segment in zip(ids, vectors, payloads)
        ]

        deadline = self._deadline(timeout)
        start = time.perf_counter()
        try:
            result = await self._call(
                self._client.upsert(self._namespace, records, timeout=deadline),
                operation,
                deadline,
                write=True,
            )
            if result.upserted_count != len(records):
                raise TransportError(
                    f"Index acknowledged {result.upserted_count} of {len(records)} records",
                    code=ErrorCode.MALFORMED_RESPONSE,
                    details={
                        "namespace": self._namespace,
                        "sent": len(records),
                        "acknowledged": result.upserted_count,
                    },
                )
        except Exception:
            track_store_operation(operation, time.perf_counter() - start, success=False)
            raise

        track_store_operation(operation, time.perf_counter() - start, records=len(records))
        logger.debug(
            f"Stored {len(records)} embeddings",
            extra={"namespace": self._namespace, "operation": operation},
        )

    async def _call(
        self,
        awaitable: Awaitable[T],
        operation: str,
        deadline: float,
        write: bool = False,
    ) -> T:
        """Await a remote call under a deadline."""
        try:
            return await asyncio.wait_for(awaitable, timeout=deadline)
        except TimeoutError as e:
            details: dict[str, Any] = {
                "namespace": self._namespace,
                "operation": operation,
                "timeout": deadline,
            }
            if write:
                details["outcome"] = "unknown"
            logger.error(f"{operation} timed out after {deadline}s", extra=details)
            raise TransportTimeoutError(
                f"{operation} timed out after {deadline}s",
                details=details,
            ) from e
        except TransportTimeoutError as e:
            if write:
                e.details.setdefault("outcome", "unknown")
            raise

    def _deadline(self, timeout: float | None) -> float:
        if timeout is None:
            return self._settings.request_timeout
        if timeout <= 0:
            raise InvalidArgumentError(
                f"timeout must be positive, got {timeout}",
                details={"timeout": timeout},
            )
        return timeout

    @staticmethod
    def _as_embedding(value: EmbeddingLike) -> Embedding:
        if isinstance(value, Embedding):
            return value
        try:
            return Embedding.from_list(value)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(
                f"Malformed embedding: {e}",
                details={"error": str(e)},
            ) from e

    @staticmethod
    def _require_nonzero(vector: Embedding, position: int | None = None) -> None:
        if any(vector.vector):
            return
        details: dict[str, Any] = {"dimension": vector.dimension}
        if position is not None:
            details["position"] = position
        raise InvalidArgumentError(
            "Zero vector has no direction and cannot be ranked by cosine similarity",
            code=ErrorCode.ZERO_VECTOR,
            details=details,
        )

    @staticmethod
    def _to_metadata(segment: TextSegment | None) -> dict[str, Any]:
        if segment is None:
            return {}
        if TEXT_SEGMENT_KEY in segment.metadata:
            raise InvalidArgumentError(
                f"Segment metadata must not use the reserved key {TEXT_SEGMENT_KEY!r}",
            )
        return {**segment.metadata, TEXT_SEGMENT_KEY: segment.text}

    def _to_matches(self, scored: list[ScoredRecord], max_results: int) -> list[EmbeddingMatch]:
        """Validate raw index results and convert them to matches."""
        if len(scored) > max_results:
            raise TransportError(
                f"Index returned {len(scored)} results for top {max_results}",
                code=ErrorCode.MALFORMED_RESPONSE,
                details={"namespace": self._namespace, "requested": max_results},
            )

        matches: list[EmbeddingMatch] = []
        for record in scored:
            if record.vector is None:
                raise TransportError(
                    f"Index result {record.id} has no vector",
                    code=ErrorCode.MALFORMED_RESPONSE,
                    details={"namespace": self._namespace, "id": record.id},
                )
            if not math.isfinite(record.score):
                raise TransportError(
                    f"Index result {record.id} has non-finite score {record.score}",
                    code=ErrorCode.MALFORMED_RESPONSE,
                    details={"namespace": self._namespace, "id": record.id},
                )

            metadata = dict(record.metadata)
            text = metadata.pop(TEXT_SEGMENT_KEY, None)
            try:
                embedded = None if text is None else TextSegment(text=text, metadata=metadata)
                matches.append(
                    EmbeddingMatch(
                        score=relevance_score(record.score),
                        embedding_id=record.id,
                        embedding=Embedding.from_list(record.vector),
                        embedded=embedded,
                    )
                )
            except ValueError as e:
                raise TransportError(
                    f"Index result {record.id} is malformed: {e}",
                    code=ErrorCode.MALFORMED_RESPONSE,
                    details={"namespace": self._namespace, "id": record.id},
                ) from e

        # sort is stable: equal scores keep the index's order
        matches.sort(key=lambda match: match.score, reverse=True)
        return matches
