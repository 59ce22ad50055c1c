"""Embedding store result models."""

from pydantic import BaseModel, ConfigDict, Field

from embedding_store.embeddings.models import Embedding, TextSegment


class EmbeddingMatch(BaseModel):
    """A stored embedding returned by a relevance query.

    Attributes:
        score: Relevance in [0, 1]; 1 means same direction as the query.
        embedding_id: Identifier the embedding was stored under.
        embedding: The stored embedding.
        embedded: The stored text segment, if any.
    """

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0.0, le=1.0, description="Relevance score")
    embedding_id: str = Field(description="Stored identifier")
    embedding: Embedding = Field(description="Stored embedding")
    embedded: TextSegment | None = Field(default=None, description="Stored segment")
