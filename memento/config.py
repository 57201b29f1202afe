"""
Configuration management for Memento.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="MEMENTO_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Application
    app_name: str = "Memento"
    app_version: str = "1.0.0"
    debug: bool = False

    # Graph store
    store_backend: str = "sqlite"  # "sqlite" or "neo4j"
    database_path: str = "data/memento.db"
    neo4j_uri: Optional[str] = None
    neo4j_user: Optional[str] = None
    neo4j_password: Optional[str] = None
    vector_index_name: str = "entity_embeddings"

    # Embeddings
    embedding_provider: str = "voyage"  # "voyage" or "local"
    voyage_api_key: Optional[str] = None
    voyage_model: str = "voyage-3-large"
    voyage_base_url: str = "https://api.voyageai.com/v1/embeddings"
    voyage_dimension: int = 2048
    embedding_model: str = "all-MiniLM-L6-v2"
    embedding_dimension: int = 384

    # Search defaults
    default_limit: int = 10
    default_rrf_k: int = 60
    default_min_similarity: float = 0.6
    candidate_multiplier: int = 2

    # Timeouts (seconds)
    request_timeout: float = 30.0
    search_timeout: float = 20.0

    # API
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def active_dimension(self) -> int:
        """Dimension of the vectors produced by the configured provider."""
        if self.embedding_provider == "voyage":
            return self.voyage_dimension
        return self.embedding_dimension


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
