"""Cosine similarity and relevance score conversion."""

import math
from collections.abc import Sequence

from embedding_store.embeddings.models import Embedding
from embedding_store.exceptions import ErrorCode, InvalidArgumentError

Vector = Embedding | Sequence[float]


def _components(value: Vector) -> Sequence[float]:
    if isinstance(value, Embedding):
        return value.vector
    return value


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Compute the cosine similarity of two vectors.

    Args:
        a: First vector.
        b: Second vector.

    Returns:
        Similarity in [-1, 1].

    Raises:
        InvalidArgumentError: If lengths differ or either vector has zero norm.
    """
    u = _components(a)
    v = _components(b)

    if len(u) != len(v):
        raise InvalidArgumentError(
            f"Vector lengths differ: {len(u)} != {len(v)}",
            code=ErrorCode.DIMENSION_MISMATCH,
            details={"left": len(u), "right": len(v)},
        )

    dot = math.fsum(x * y for x, y in zip(u, v))
    norm_u = math.sqrt(math.fsum(x * x for x in u))
    norm_v = math.sqrt(math.fsum(y * y for y in v))

    if norm_u == 0.0 or norm_v == 0.0:
        raise InvalidArgumentError(
            "Cosine similarity is undefined for a zero-norm vector",
            code=ErrorCode.ZERO_VECTOR,
        )

    return dot / (norm_u * norm_v)


def relevance_score(cosine: float) -> float:
    """Map cosine similarity in [-1, 1] to a relevance score in [0, 1].

    Rounding can push a cosine slightly past +/-1, so the result is clamped.
    """
    return min(1.0, max(0.0, (cosine + 1.0) / 2.0))


def cosine_from_relevance(score: float) -> float:
    """Inverse of relevance_score()."""
    return 2.0 * score - 1.0
