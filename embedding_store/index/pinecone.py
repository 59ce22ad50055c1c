"""Pinecone index client over the REST data plane."""

import asyncio
from typing import Any

import httpx

from embedding_store.config import PineconeSettings, StoreSettings, get_settings
from embedding_store.exceptions import ErrorCode, TransportError, TransportTimeoutError
from embedding_store.index.client import RemoteIndexClient
from embedding_store.index.models import IndexRecord, ScoredRecord, UpsertResult
from embedding_store.logging_config import get_logger
from embedding_store.observability.metrics import track_index_retry

logger = get_logger(__name__)

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


def _error_code(status: int) -> ErrorCode:
    if status in (401, 403):
        return ErrorCode.UNAUTHORIZED
    if status == 429:
        return ErrorCode.RATE_LIMITED
    return ErrorCode.TRANSPORT_ERROR


class PineconeIndexClient(RemoteIndexClient):
    """Pinecone implementation of the remote index.

    Talks to ``https://{index}-{project_id}.svc.{environment}.pinecone.io``.
    Throttled (429), unavailable (5xx) and connection failures are retried
    up to ``StoreSettings.max_retries`` times with exponential backoff.
    Timeouts are never retried.
    """

    BACKEND = "pinecone"

    def __init__(
        self,
        settings: PineconeSettings,
        store_settings: StoreSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Pinecone client.

        Args:
            settings: Index location and credentials.
            store_settings: Timeout and retry policy.
            client: Existing HTTP client (for testing).
        """
        self._settings = settings
        self._store_settings = store_settings or get_settings().store
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._store_settings.request_timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def upsert(
        self,
        namespace: str,
        records: list[IndexRecord],
        timeout: float | None = None,
    ) -> UpsertResult:
        """Upsert records in chunks of ``upsert_batch_size``.

        Every chunk must succeed; a failure part-way leaves earlier chunks
        written and is reported as a failure of the whole call.
        """
        if not records:
            return UpsertResult(upserted_count=0)

        upserted = 0
        batch_size = self._settings.upsert_batch_size

        for i in range(0, len(records), batch_size):
            chunk = records[i : i + batch_size]
            payload = {
                "namespace": namespace,
                "vectors": [self._to_vector(record) for record in chunk],
            }
            data = await self._post("/vectors/upsert", payload, timeout)
            try:
                upserted += int(data["upsertedCount"])
            except (KeyError, TypeError, ValueError) as e:
                raise TransportError(
                    f"Invalid upsert response from Pinecone: {e}",
                    code=ErrorCode.MALFORMED_RESPONSE,
                    details={"namespace": namespace, "response": data},
                ) from e

        logger.debug(
            f"Upserted {upserted} vectors",
            extra={"index": self._settings.index, "namespace": namespace},
        )
        return UpsertResult(upserted_count=upserted)

    async def query(
        self,
        namespace: str,
        vector: list[float],
        top_k: int,
        timeout: float | None = None,
    ) -> list[ScoredRecord]:
        """Query with values and metadata included."""
        payload = {
            "namespace": namespace,
            "vector": vector,
            "topK": top_k,
            "includeValues": True,
            "includeMetadata": True,
        }
        data = await self._post("/query", payload, timeout)

        try:
            return [
                ScoredRecord(
                    id=match["id"],
                    score=match["score"],
                    vector=match.get("values") or None,
                    metadata=match.get("metadata") or {},
                )
                for match in data["matches"]
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(
                f"Invalid query response from Pinecone: {e}",
                code=ErrorCode.MALFORMED_RESPONSE,
                details={"namespace": namespace, "error": str(e)},
            ) from e

    async def delete(
        self,
        namespace: str,
        ids: list[str],
        timeout: float | None = None,
    ) -> None:
        """Delete vectors by id."""
        if not ids:
            return
        await self._post("/vectors/delete", {"namespace": namespace, "ids": ids}, timeout)
        logger.debug(
            f"Deleted {len(ids)} vectors",
            extra={"index": self._settings.index, "namespace": namespace},
        )

    @staticmethod
    def _to_vector(record: IndexRecord) -> dict[str, Any]:
        vector: dict[str, Any] = {"id": record.id, "values": record.vector}
        if record.metadata:
            vector["metadata"] = record.metadata
        return vector

    async def _post(
        self,
        path: str,
        payload: dict[str, Any],
        timeout: float | None,
    ) -> dict[str, Any]:
        """POST to the data plane, retrying per the configured policy.

        Raises:
            TransportTimeoutError: If the request exceeds its deadline.
            TransportError: For any other failure.
        """
        client = await self._get_client()
        url = f"{self._settings.base_url}{path}"
        headers = {"Api-Key": self._settings.api_key.get_secret_value()}
        request_timeout = timeout if timeout is not None else self._store_settings.request_timeout
        max_retries = self._store_settings.max_retries
        attempt = 0

        while True:
            try:
                response = await client.post(
                    url, json=payload, headers=headers, timeout=request_timeout
                )
                response.raise_for_status()
            except httpx.TimeoutException as e:
                logger.error(f"Pinecone request timed out: {path}", extra={"url": url})
                raise TransportTimeoutError(
                    f"Pinecone request timed out after {request_timeout}s",
                    details={"path": path, "timeout": request_timeout},
                ) from e
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status in RETRYABLE_STATUS and attempt < max_retries:
                    await self._backoff(attempt, path, str(status))
                    attempt += 1
                    continue
                logger.error(
                    f"Pinecone request failed: {status}",
                    extra={"url": url, "status": status},
                )
                raise TransportError(
                    f"Pinecone returned {status}",
                    code=_error_code(status),
                    details={"path": path, "status_code": status, "body": e.response.text[:500]},
                ) from e
            except httpx.RequestError as e:
                if attempt < max_retries:
                    await self._backoff(attempt, path, type(e).__name__)
                    attempt += 1
                    continue
                logger.error(f"Pinecone request error: {e}", extra={"url": url})
                raise TransportError(
                    f"Failed to connect to Pinecone: {e}",
                    code=ErrorCode.TRANSPORT_ERROR,
                    details={"path": path},
                ) from e

            try:
                data = response.json()
            except ValueError as e:
                raise TransportError(
                    "Pinecone returned a non-JSON response",
                    code=ErrorCode.MALFORMED_RESPONSE,
                    details={"path": path, "body": response.text[:500]},
                ) from e
            if not isinstance(data, dict):
                raise TransportError(
                    "Pinecone returned an unexpected JSON document",
                    code=ErrorCode.MALFORMED_RESPONSE,
                    details={"path": path},
                )
            return data

    async def _backoff(self, attempt: int, path: str, reason: str) -> None:
        delay = self._store_settings.retry_backoff * (2**attempt)
        logger.warning(
            f"Retrying Pinecone request in {delay:.2f}s",
            extra={"path": path, "attempt": attempt + 1, "reason": reason},
        )
        track_index_retry(self.BACKEND)
        await asyncio.sleep(delay)
