"""Tests for the Pinecone index client."""

import json
from collections.abc import Callable
from unittest.mock import AsyncMock

import httpx
import pytest

from embedding_store.config import PineconeSettings, StoreSettings
from embedding_store.exceptions import ErrorCode, TransportError, TransportTimeoutError
from embedding_store.index.models import IndexRecord
from embedding_store.index.pinecone import PineconeIndexClient

BASE_URL = "https://test-abc123.svc.us-east1-gcp.pinecone.io"

Handler = Callable[[httpx.Request], httpx.Response]


def _settings(**overrides: object) -> PineconeSettings:
    values: dict[str, object] = {
        "api_key": "secret-key",
        "environment": "us-east1-gcp",
        "project_id": "abc123",
        "index": "test",
        "namespace": "ns",
    }
    values.update(overrides)
    return PineconeSettings(**values)


def _store_settings(max_retries: int = 0) -> StoreSettings:
    return StoreSettings(request_timeout=5.0, max_retries=max_retries, retry_backoff=0.0)


def _client(
    handler: Handler,
    settings: PineconeSettings | None = None,
    max_retries: int = 0,
) -> PineconeIndexClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PineconeIndexClient(
        settings or _settings(),
        _store_settings(max_retries),
        client=http_client,
    )


class TestPineconeSettings:
    """Tests for Pinecone settings."""

    def test_base_url(self) -> None:
        """Data plane URL is derived from index, project and environment."""
        assert _settings().base_url == BASE_URL


class TestUpsert:
    """Tests for upserts."""

    @pytest.mark.asyncio
    async def test_upsert_request(self) -> None:
        """Upsert posts vectors with the API key."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"upsertedCount": 2})

        client = _client(handler)
        result = await client.upsert(
            "ns",
            [
                IndexRecord(id="1", vector=[0.1, 0.2], metadata={"text_segment": "hello"}),
                IndexRecord(id="2", vector=[0.3, 0.4]),
            ],
        )

        assert result.upserted_count == 2
        assert len(requests) == 1
        request = requests[0]
        assert str(request.url) == f"{BASE_URL}/vectors/upsert"
        assert request.headers["Api-Key"] == "secret-key"

        body = json.loads(request.content)
        assert body["namespace"] == "ns"
        assert body["vectors"][0] == {
            "id": "1",
            "values": [0.1, 0.2],
            "metadata": {"text_segment": "hello"},
        }
        assert "metadata" not in body["vectors"][1]

    @pytest.mark.asyncio
    async def test_upsert_chunks_large_batches(self) -> None:
        """Batches larger than upsert_batch_size are split."""
        sizes: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            vectors = json.loads(request.content)["vectors"]
            sizes.append(len(vectors))
            return httpx.Response(200, json={"upsertedCount": len(vectors)})

        client = _client(handler, settings=_settings(upsert_batch_size=2))
        records = [IndexRecord(id=str(i), vector=[float(i), 1.0]) for i in range(5)]

        result = await client.upsert("ns", records)

        assert sizes == [2, 2, 1]
        assert result.upserted_count == 5

    @pytest.mark.asyncio
    async def test_upsert_empty_list(self) -> None:
        """Empty upsert makes no request."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("unexpected request")

        result = await _client(handler).upsert("ns", [])

        assert result.upserted_count == 0

    @pytest.mark.asyncio
    async def test_upsert_missing_count(self) -> None:
        """Acknowledgement without a count is malformed."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={})

        with pytest.raises(TransportError) as exc_info:
            await _client(handler).upsert("ns", [IndexRecord(id="1", vector=[1.0])])

        assert exc_info.value.code == ErrorCode.MALFORMED_RESPONSE


class TestQuery:
    """Tests for queries."""

    @pytest.mark.asyncio
    async def test_query_parses_matches(self) -> None:
        """Matches are converted to scored records."""
        captured: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured.update(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "namespace": "ns",
                    "matches": [
                        {
                            "id": "1",
                            "score": 0.98,
                            "values": [0.1, 0.2],
                            "metadata": {"text_segment": "hello"},
                        },
                        {"id": "2", "score": 0.12, "values": [0.3, 0.4]},
                    ],
                },
            )

        results = await _client(handler).query("ns", [0.1, 0.2], top_k=5)

        assert captured == {
            "namespace": "ns",
            "vector": [0.1, 0.2],
            "topK": 5,
            "includeValues": True,
            "includeMetadata": True,
        }
        assert [r.id for r in results] == ["1", "2"]
        assert results[0].score == 0.98
        assert results[0].vector == [0.1, 0.2]
        assert results[0].metadata == {"text_segment": "hello"}
        assert results[1].metadata == {}

    @pytest.mark.asyncio
    async def test_query_without_values(self) -> None:
        """Missing values are reported as no vector."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"matches": [{"id": "1", "score": 0.5}]})

        results = await _client(handler).query("ns", [0.1], top_k=1)

        assert results[0].vector is None

    @pytest.mark.asyncio
    async def test_query_malformed_response(self) -> None:
        """Response without matches is malformed."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"results": []})

        with pytest.raises(TransportError) as exc_info:
            await _client(handler).query("ns", [0.1], top_k=1)

        assert exc_info.value.code == ErrorCode.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_query_non_json_response(self) -> None:
        """Non-JSON body is malformed."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>oops</html>")

        with pytest.raises(TransportError) as exc_info:
            await _client(handler).query("ns", [0.1], top_k=1)

        assert exc_info.value.code == ErrorCode.MALFORMED_RESPONSE


class TestDelete:
    """Tests for deletes."""

    @pytest.mark.asyncio
    async def test_delete_request(self) -> None:
        """Delete posts ids and namespace."""
        bodies: list[dict[str, object]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/vectors/delete"
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={})

        await _client(handler).delete("ns", ["1", "2"])

        assert bodies == [{"namespace": "ns", "ids": ["1", "2"]}]

    @pytest.mark.asyncio
    async def test_delete_empty_list(self) -> None:
        """Deleting nothing makes no request."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("unexpected request")

        await _client(handler).delete("ns", [])


class TestErrors:
    """Tests for error mapping and retries."""

    @pytest.mark.asyncio
    async def test_unauthorized_not_retried(self) -> None:
        """401 maps to UNAUTHORIZED without retrying."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(401, text="bad key")

        with pytest.raises(TransportError) as exc_info:
            await _client(handler, max_retries=3).query("ns", [0.1], top_k=1)

        assert exc_info.value.code == ErrorCode.UNAUTHORIZED
        assert exc_info.value.details["status_code"] == 401
        assert calls == 1

    @pytest.mark.asyncio
    async def test_unavailable_retried(self) -> None:
        """5xx is retried up to max_retries."""
        responses = [
            httpx.Response(503),
            httpx.Response(200, json={"matches": []}),
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        results = await _client(handler, max_retries=1).query("ns", [0.1], top_k=1)

        assert results == []
        assert responses == []

    @pytest.mark.asyncio
    async def test_rate_limited_after_retries(self) -> None:
        """429 surfaces as RATE_LIMITED once retries are exhausted."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(429)

        with pytest.raises(TransportError) as exc_info:
            await _client(handler, max_retries=2).query("ns", [0.1], top_k=1)

        assert exc_info.value.code == ErrorCode.RATE_LIMITED
        assert calls == 3

    @pytest.mark.asyncio
    async def test_no_retries_by_default(self) -> None:
        """With max_retries=0 the first failure is final."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(500)

        with pytest.raises(TransportError):
            await _client(handler).upsert("ns", [IndexRecord(id="1", vector=[1.0])])

        assert calls == 1

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        """httpx timeouts map to TransportTimeoutError and are not retried."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TransportTimeoutError) as exc_info:
            await _client(handler, max_retries=2).query("ns", [0.1], top_k=1, timeout=1.5)

        assert exc_info.value.details["timeout"] == 1.5
        assert calls == 1

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        """Connection failures map to TransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError) as exc_info:
            await _client(handler).query("ns", [0.1], top_k=1)

        assert exc_info.value.code == ErrorCode.TRANSPORT_ERROR
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


class TestLifecycle:
    """Tests for client ownership."""

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        """Owned HTTP client is closed."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        client = PineconeIndexClient(_settings(), _store_settings(), client=mock_client)
        client._owns_client = True

        await client.close()

        mock_client.aclose.assert_called_once()
