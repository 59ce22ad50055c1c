"""Remote index data models."""

from typing import Any

from pydantic import BaseModel, Field


class IndexRecord(BaseModel):
    """A record to store in the remote index.

    Attributes:
        id: Unique identifier within the namespace.
        vector: The embedding vector.
        metadata: Metadata stored with the vector.
    """

    id: str = Field(min_length=1, description="Unique record identifier")
    vector: list[float] = Field(description="Embedding vector")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Metadata payload",
    )


class ScoredRecord(BaseModel):
    """A nearest-neighbour result as reported by the remote index.

    Attributes:
        id: Record identifier.
        score: Raw cosine similarity in [-1, 1].
        vector: Stored vector, when the backend returned it.
        metadata: Stored metadata.
    """

    id: str = Field(description="Record identifier")
    score: float = Field(description="Raw cosine similarity")
    vector: list[float] | None = Field(default=None, description="Stored vector")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Record metadata",
    )


class UpsertResult(BaseModel):
    """Acknowledgement of an upsert."""

    upserted_count: int = Field(ge=0, description="Records acknowledged by the backend")
