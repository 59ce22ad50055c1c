"""Embedding and payload value objects."""

import math
from array import array
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

MetadataValue = str | int | float | bool


class Embedding(BaseModel):
    """An immutable embedding vector.

    Components are stored at float32 precision, which is what embedding
    models produce and what remote indexes persist. A vector read back from
    an index therefore compares equal to the one that was written.

    Attributes:
        vector: The vector components.
    """

    model_config = ConfigDict(frozen=True)

    vector: tuple[float, ...] = Field(description="Vector components")

    @field_validator("vector")
    @classmethod
    def _as_float32(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if not value:
            raise ValueError("embedding vector must not be empty")
        try:
            narrowed = tuple(array("f", value))
        except OverflowError as e:
            raise ValueError(f"embedding component out of float32 range: {e}") from e
        if not all(math.isfinite(x) for x in narrowed):
            raise ValueError("embedding components must be finite")
        return narrowed

    @classmethod
    def from_list(cls, values: Iterable[float]) -> "Embedding":
        """Create an embedding from any iterable of numbers."""
        return cls(vector=tuple(values))

    @property
    def dimension(self) -> int:
        """Number of components."""
        return len(self.vector)

    def to_list(self) -> list[float]:
        """Return the components as a list, e.g. for JSON payloads."""
        return list(self.vector)


class TextSegment(BaseModel):
    """Text payload stored alongside an embedding.

    Attributes:
        text: The embedded text.
        metadata: Flat key/value metadata.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1, description="Segment text")
    metadata: dict[str, MetadataValue] = Field(
        default_factory=dict,
        description="Segment metadata",
    )

    @classmethod
    def from_text(
        cls,
        text: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> "TextSegment":
        """Create a segment from text and optional metadata."""
        return cls(text=text, metadata=dict(metadata or {}))
