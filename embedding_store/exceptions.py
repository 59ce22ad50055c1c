"""Embedding store exception hierarchy.

All custom exceptions inherit from EmbeddingStoreError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "EMB-1000"
    CONFIGURATION_ERROR = "EMB-1001"
    INVALID_ARGUMENT = "EMB-1002"
    DIMENSION_MISMATCH = "EMB-1003"
    ZERO_VECTOR = "EMB-1004"

    # Transport errors (2xxx)
    TRANSPORT_ERROR = "EMB-2000"
    TIMEOUT = "EMB-2001"
    RATE_LIMITED = "EMB-2002"
    UNAUTHORIZED = "EMB-2003"
    MALFORMED_RESPONSE = "EMB-2004"
    COLLECTION_NOT_FOUND = "EMB-2005"

    # Embedding model errors (3xxx)
    EMBEDDING_MODEL_ERROR = "EMB-3000"


class EmbeddingStoreError(Exception):
    """Base exception for all embedding store errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a serializable dictionary."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(EmbeddingStoreError):
    """Configuration or environment error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class InvalidArgumentError(EmbeddingStoreError):
    """Caller supplied a malformed argument. Raised locally, never retried."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INVALID_ARGUMENT,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class TransportError(EmbeddingStoreError):
    """Network, authentication or remote service failure."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TRANSPORT_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class TransportTimeoutError(TransportError):
    """Remote call exceeded its deadline.

    For writes the outcome is unknown: the remote service may have
    applied the write before the deadline passed.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.TIMEOUT, details)


class EmbeddingModelError(EmbeddingStoreError):
    """Embedding model service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EMBEDDING_MODEL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)
