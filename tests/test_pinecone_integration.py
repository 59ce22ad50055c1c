"""Live tests against a Pinecone index.

Skipped unless every PINECONE_ connection variable is set. The index
must use cosine similarity with 32 dimensions to match the hash model.
Each test writes to its own fresh namespace.
"""

import asyncio
import os
from collections.abc import AsyncIterator, Awaitable, Callable
from uuid import uuid4

import pytest
import pytest_asyncio

from embedding_store.config import PineconeSettings, StoreSettings, load_settings
from embedding_store.embeddings.models import TextSegment
from embedding_store.embeddings.service import EmbeddingModel
from embedding_store.store.models import EmbeddingMatch
from embedding_store.store.service import EmbeddingStore

REQUIRED_ENV = (
    "PINECONE_API_KEY",
    "PINECONE_ENVIRONMENT",
    "PINECONE_PROJECT_ID",
    "PINECONE_INDEX",
)

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not all(os.environ.get(name) for name in REQUIRED_ENV),
        reason="Pinecone credentials not configured",
    ),
]


@pytest_asyncio.fixture
async def pinecone_store() -> AsyncIterator[EmbeddingStore]:
    """Store over the configured index in a throwaway namespace."""
    settings = load_settings(PineconeSettings, namespace=f"test-{uuid4()}")
    store = EmbeddingStore.from_pinecone(
        settings,
        StoreSettings(request_timeout=30.0, max_retries=3, retry_backoff=1.0),
    )
    async with store:
        yield store


async def _eventually(
    query: Callable[[], Awaitable[list[EmbeddingMatch]]],
    expected: int,
    attempts: int = 20,
) -> list[EmbeddingMatch]:
    """Poll until the index reflects recent writes."""
    matches: list[EmbeddingMatch] = []
    for _ in range(attempts):
        matches = await query()
        if len(matches) >= expected:
            return matches
        await asyncio.sleep(1.0)
    return matches


class TestPineconeStore:
    """Round trips through a live Pinecone index."""

    @pytest.mark.asyncio
    async def test_add_with_segment(
        self, pinecone_store: EmbeddingStore, embedding_model: EmbeddingModel
    ) -> None:
        """Segment text comes back with the match."""
        segment = TextSegment.from_text(str(uuid4()))
        embedding = await embedding_model.embed(segment.text)

        embedding_id = await pinecone_store.add(embedding, segment)

        matches = await _eventually(lambda: pinecone_store.find_relevant(embedding, 10), 1)
        assert len(matches) == 1
        assert matches[0].embedding_id == embedding_id
        assert matches[0].score == pytest.approx(1.0, rel=0.01)
        assert matches[0].embedding == embedding
        assert matches[0].embedded == segment

    @pytest.mark.asyncio
    async def test_min_score(
        self, pinecone_store: EmbeddingStore, embedding_model: EmbeddingModel
    ) -> None:
        """Threshold between two scores keeps only the better match."""
        first = await embedding_model.embed(str(uuid4()))
        second = await embedding_model.embed(str(uuid4()))
        ids = await pinecone_store.add_all([first, second])

        matches = await _eventually(lambda: pinecone_store.find_relevant(first, 10), 2)
        assert [m.embedding_id for m in matches] == ids

        threshold = (matches[0].score + matches[1].score) / 2
        filtered = await pinecone_store.find_relevant(first, 10, min_score=threshold)
        assert [m.embedding_id for m in filtered] == [ids[0]]
