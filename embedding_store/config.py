"""Library configuration using Pydantic Settings.

All configuration is loaded from environment variables.
No secrets are hardcoded and credentials have no defaults.
"""

from enum import Enum
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from embedding_store.exceptions import ConfigurationError

SettingsT = TypeVar("SettingsT", bound=BaseSettings)


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class PineconeSettings(BaseSettings):
    """Pinecone index configuration.

    Every connection field is required: a store always targets one
    explicit index and namespace.
    """

    model_config = SettingsConfigDict(env_prefix="PINECONE_")

    api_key: SecretStr = Field(description="Pinecone API key")
    environment: str = Field(description="Pinecone environment, e.g. us-east1-gcp")
    project_id: str = Field(description="Pinecone project identifier")
    index: str = Field(description="Index name")
    namespace: str = Field(description="Namespace within the index")
    upsert_batch_size: int = Field(
        default=100,
        gt=0,
        description="Maximum vectors per upsert request",
    )

    @property
    def base_url(self) -> str:
        """Data plane URL of the configured index."""
        return f"https://{self.index}-{self.project_id}.svc.{self.environment}.pinecone.io"


class QdrantSettings(BaseSettings):
    """Qdrant configuration."""

    model_config = SettingsConfigDict(env_prefix="QDRANT_")

    url: str = Field(
        default="http://localhost:6333",
        description="Qdrant server URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Qdrant API key (optional for local)",
    )
    collection_name: str = Field(
        default="embeddings",
        description="Collection holding all namespaces",
    )
    namespace: str = Field(description="Namespace within the collection")


class EmbeddingSettings(BaseSettings):
    """Embedding model service configuration."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    base_url: str = Field(
        default="http://localhost:8080",
        description="Embedding service base URL",
    )
    model: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        description="Embedding model name",
    )
    batch_size: int = Field(
        default=32,
        gt=0,
        description="Batch size for embedding requests",
    )


class StoreSettings(BaseSettings):
    """Remote call behaviour shared by all index clients."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Default deadline for a remote call in seconds",
    )
    max_retries: int = Field(
        default=0,
        ge=0,
        description="Retries for throttled or unavailable responses",
    )
    retry_backoff: float = Field(
        default=0.5,
        ge=0,
        description="Initial backoff between retries in seconds (doubles each attempt)",
    )


class Settings(BaseSettings):
    """Main library settings.

    Aggregates the sections that have usable defaults. Index sections
    (Pinecone, Qdrant) are constructed on their own because their
    credentials are required.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    # Nested settings
    store: StoreSettings = Field(default_factory=StoreSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached library settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def load_settings(settings_cls: type[SettingsT], **overrides: Any) -> SettingsT:
    """Build a settings section, reporting bad or missing fields.

    Args:
        settings_cls: Settings class to instantiate.
        **overrides: Explicit values taking precedence over the environment.

    Returns:
        The loaded settings.

    Raises:
        ConfigurationError: If a field is missing or invalid.
    """
    try:
        return settings_cls(**overrides)
    except ValidationError as e:
        fields = sorted({".".join(str(part) for part in error["loc"]) for error in e.errors()})
        raise ConfigurationError(
            f"Invalid {settings_cls.__name__}: {', '.join(fields)}",
            details={"fields": fields},
        ) from e
