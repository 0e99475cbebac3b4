import os
from dataclasses import dataclass, field
from functools import lru_cache

import redis
from dotenv import load_dotenv

load_dotenv()


def _env(name: str, default: str | None = None):
    return field(default_factory=lambda: os.getenv(name, default))


def _env_float(name: str, default: str):
    return field(default_factory=lambda: float(os.getenv(name, default)))


def _env_int(name: str, default: str):
    return field(default_factory=lambda: int(os.getenv(name, default)))


EMBEDDING_PROVIDERS = ("openai", "ollama", "local", "none")
CACHE_BACKENDS = ("redis", "memory")

# Default model per provider when EMBEDDING_MODEL is unset
DEFAULT_EMBEDDING_MODELS = {
    "openai": "text-embedding-3-small",
    "ollama": "nomic-embed-text",
    "local": "paraphrase-multilingual-MiniLM-L12-v2",
    "none": "none",
}


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = _env("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = _env("REDIS_PASSWORD")

    # Cache
    cache_backend: str = _env("CACHE_BACKEND", "redis")
    cache_index_name: str = _env("CACHE_INDEX_NAME", "schema_cache")
    cache_similarity_threshold: float = _env_float("CACHE_SIMILARITY_THRESHOLD", "0.85")
    cache_candidate_limit: int = _env_int("CACHE_CANDIDATE_LIMIT", "5")
    cache_max_age_days: int = _env_int("CACHE_MAX_AGE_DAYS", "30")
    cache_max_entries: int = _env_int("CACHE_MAX_ENTRIES", "10000")
    cache_maintenance_interval: float = _env_float("CACHE_MAINTENANCE_INTERVAL", "3600")

    # Pricing of the generation model, averaged over input and output tokens
    cost_per_1k_tokens: float = _env_float("COST_PER_1K_TOKENS", "0.045")

    # Embedding
    embedding_provider: str = _env("EMBEDDING_PROVIDER", "openai")
    embedding_model_override: str | None = _env("EMBEDDING_MODEL")
    # Matryoshka truncation for the local provider: 0 keeps the full vector
    embedding_output_dimension: int = _env_int("EMBEDDING_OUTPUT_DIMENSION", "0")
    embedding_timeout: float = _env_float("EMBEDDING_TIMEOUT", "10.0")

    # Ollama
    ollama_base_url: str = _env("OLLAMA_BASE_URL", "http://localhost:11434")

    # OpenAI
    openai_api_key: str | None = _env("OPENAI_API_KEY")

    log_level: str = _env("LOG_LEVEL", "INFO")

    @property
    def embedding_model(self) -> str:
        """Model identifier for the selected provider."""
        if self.embedding_model_override:
            return self.embedding_model_override
        return DEFAULT_EMBEDDING_MODELS[self.embedding_provider]

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if not 0 <= self.cache_similarity_threshold <= 1:
            raise ValueError("CACHE_SIMILARITY_THRESHOLD must be between 0 and 1")

        if self.cache_candidate_limit < 1:
            raise ValueError("CACHE_CANDIDATE_LIMIT must be at least 1")

        if self.cache_backend not in CACHE_BACKENDS:
            raise ValueError(
                f"CACHE_BACKEND must be one of {list(CACHE_BACKENDS)}, got {self.cache_backend}"
            )

        if self.embedding_provider not in EMBEDDING_PROVIDERS:
            raise ValueError(
                f"EMBEDDING_PROVIDER must be one of {list(EMBEDDING_PROVIDERS)}, "
                f"got {self.embedding_provider}"
            )

        if self.embedding_output_dimension not in [0, 128, 256, 512, 768]:
            raise ValueError(
                f"EMBEDDING_OUTPUT_DIMENSION must be one of [0, 128, 256, 512, 768], "
                f"got {self.embedding_output_dimension}"
            )

        if self.embedding_timeout <= 0:
            raise ValueError("EMBEDDING_TIMEOUT must be positive")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_redis_client(settings: Settings | None = None) -> redis.Redis:
    """Create a Redis client instance."""
    settings = settings or get_settings()
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=False,
    )
