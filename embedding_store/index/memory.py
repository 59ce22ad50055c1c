"""In-process index client with brute-force cosine ranking.

Intended for tests and local development, not as a production index.
"""

from embedding_store.embeddings.similarity import cosine_similarity
from embedding_store.exceptions import ErrorCode, InvalidArgumentError
from embedding_store.index.client import RemoteIndexClient
from embedding_store.index.models import IndexRecord, ScoredRecord, UpsertResult


class InMemoryIndexClient(RemoteIndexClient):
    """Stores records per namespace in dictionaries.

    Upserting an existing id replaces the record in place, so ties in
    similarity are reported in first-insertion order.
    """

    def __init__(self) -> None:
        self._namespaces: dict[str, dict[str, IndexRecord]] = {}

    async def upsert(
        self,
        namespace: str,
        records: list[IndexRecord],
        timeout: float | None = None,
    ) -> UpsertResult:
        """Store copies of the records.

        Like a remote index, a namespace holds one dimension; records of
        another dimension are rejected before anything is stored.
        """
        bucket = self._namespaces.setdefault(namespace, {})
        stored = next(iter(bucket.values()), None)
        expected = len(stored.vector) if stored else None
        for record in records:
            if expected is None:
                expected = len(record.vector)
            if len(record.vector) != expected:
                raise InvalidArgumentError(
                    f"Record {record.id} has dimension {len(record.vector)}, expected {expected}",
                    code=ErrorCode.DIMENSION_MISMATCH,
                    details={"namespace": namespace, "id": record.id},
                )
        for record in records:
            bucket[record.id] = record.model_copy(deep=True)
        return UpsertResult(upserted_count=len(records))

    async def query(
        self,
        namespace: str,
        vector: list[float],
        top_k: int,
        timeout: float | None = None,
    ) -> list[ScoredRecord]:
        """Rank every record in the namespace against the vector."""
        bucket = self._namespaces.get(namespace, {})
        scored = [
            (cosine_similarity(vector, record.vector), record)
            for record in bucket.values()
        ]
        scored.sort(key=lambda item: item[0], reverse=True)

        return [
            ScoredRecord(
                id=record.id,
                score=score,
                vector=list(record.vector),
                metadata=dict(record.metadata),
            )
            for score, record in scored[:top_k]
        ]

    async def delete(
        self,
        namespace: str,
        ids: list[str],
        timeout: float | None = None,
    ) -> None:
        """Drop the given ids from the namespace."""
        bucket = self._namespaces.get(namespace, {})
        for record_id in ids:
            bucket.pop(record_id, None)

    def count(self, namespace: str) -> int:
        """Number of records stored in a namespace."""
        return len(self._namespaces.get(namespace, {}))
