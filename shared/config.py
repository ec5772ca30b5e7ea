"""
Configuration module for the chunking service.
Manages environment variables and settings with validation.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache

from .errors import ConfigurationError


@dataclass
class ChunkingConfig:
    """
    Semantic chunking parameters.

    The algorithm functions take all four values explicitly; defaults
    live only here.
    """

    token_limit: int = 200  # Per-chunk ceiling
    batch_token_limit: int = 8000  # Per-embedding-call ceiling
    similarity_threshold: float = 0.9
    min_cluster_size: int = 3

    def validate(self) -> None:
        """Raise ConfigurationError if the parameters are inconsistent."""
        if self.token_limit < 1:
            raise ConfigurationError(f"token_limit must be >= 1, got {self.token_limit}")
        if self.batch_token_limit < self.token_limit:
            raise ConfigurationError(
                f"batch_token_limit ({self.batch_token_limit}) must be >= "
                f"token_limit ({self.token_limit})"
            )
        if not 0 < self.similarity_threshold < 1:
            raise ConfigurationError(
                f"similarity_threshold must be in (0, 1), got {self.similarity_threshold}"
            )
        if self.min_cluster_size < 1:
            raise ConfigurationError(
                f"min_cluster_size must be >= 1, got {self.min_cluster_size}"
            )


@dataclass
class EmbeddingConfig:
    """Embedding provider configuration. One model per chunking run."""

    provider: str = "openai"  # openai | sentence_transformers
    model_name: str = "text-embedding-3-large"
    max_workers: int = 4
    timeout: float = 60.0


@dataclass
class NormalizationConfig:
    """Upstream text normalization."""

    llm_model: str = "gpt-4o-mini"
    min_length: int = 50  # Shorter texts pass through untouched
    whitespace_ratio_threshold: float = 3.0
    use_llm: bool = True


def _chunking_from_env() -> ChunkingConfig:
    return ChunkingConfig(
        token_limit=int(os.getenv("CHUNK_TOKEN_LIMIT", "200")),
        batch_token_limit=int(os.getenv("EMBEDDING_TOKEN_LIMIT", "8000")),
        similarity_threshold=float(os.getenv("SIMILARITY_THRESHOLD", "0.9")),
        min_cluster_size=int(os.getenv("MIN_CLUSTER_SIZE", "3")),
    )


def _embedding_from_env() -> EmbeddingConfig:
    return EmbeddingConfig(
        provider=os.getenv("EMBEDDING_PROVIDER", "openai"),
        model_name=os.getenv("EMBEDDING_MODEL", "text-embedding-3-large"),
        max_workers=int(os.getenv("EMBEDDING_MAX_WORKERS", "4")),
        timeout=float(os.getenv("EMBEDDING_TIMEOUT", "60")),
    )


@dataclass
class Settings:
    """Main application settings loaded from environment."""

    # OpenAI settings
    OPENAI_API_KEY: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))

    # Application settings
    DEBUG: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Nested configs
    chunking: ChunkingConfig = field(default_factory=_chunking_from_env)
    embedding: EmbeddingConfig = field(default_factory=_embedding_from_env)
    normalization: NormalizationConfig = field(default_factory=NormalizationConfig)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
