"""Remote index client interface."""

from abc import ABC, abstractmethod

from embedding_store.index.models import IndexRecord, ScoredRecord, UpsertResult


class RemoteIndexClient(ABC):
    """Binding to a remote vector-search service.

    Implementations hold connection state only. Scores are reported as raw
    cosine similarity; converting them to relevance is the store's job.
    Any retry policy lives in the implementation and must be configurable.
    """

    @abstractmethod
    async def upsert(
        self,
        namespace: str,
        records: list[IndexRecord],
        timeout: float | None = None,
    ) -> UpsertResult:
        """Insert or overwrite records by id.

        Args:
            namespace: Target namespace.
            records: Records to upsert.
            timeout: Request deadline in seconds.

        Returns:
            The backend acknowledgement.

        Raises:
            TransportError: If the remote call fails.
        """
        ...

    @abstractmethod
    async def query(
        self,
        namespace: str,
        vector: list[float],
        top_k: int,
        timeout: float | None = None,
    ) -> list[ScoredRecord]:
        """Find the records closest to a vector.

        Args:
            namespace: Namespace to search.
            vector: Query vector.
            top_k: Maximum results to return.
            timeout: Request deadline in seconds.

        Returns:
            Results ordered by descending similarity, vectors and metadata included.

        Raises:
            TransportError: If the remote call fails.
        """
        ...

    @abstractmethod
    async def delete(
        self,
        namespace: str,
        ids: list[str],
        timeout: float | None = None,
    ) -> None:
        """Delete records by id. Unknown ids are ignored.

        Raises:
            TransportError: If the remote call fails.
        """
        ...

    async def close(self) -> None:
        """Release connections held by the client."""
        return None
