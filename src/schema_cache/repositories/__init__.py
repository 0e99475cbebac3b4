"""Repository layer for data access.

This layer abstracts external dependencies (Redis, embedding APIs) behind
protocol-based interfaces, so implementations can be swapped and tests can
run without a Redis server or an API key.

The local sentence-transformers provider is imported on demand from
``schema_cache.repositories.local_embedding_provider`` because loading it
pulls in torch.
"""

from schema_cache.protocols import ArtifactStore, EmbeddingProvider

from .memory_repository import InMemoryArtifactRepository
from .ollama_embedding_provider import OllamaEmbeddingProvider
from .openai_embedding_provider import OpenAIEmbeddingProvider
from .redis_repository import RedisArtifactRepository

__all__ = [
    "ArtifactStore",
    "EmbeddingProvider",
    "InMemoryArtifactRepository",
    "RedisArtifactRepository",
    "OllamaEmbeddingProvider",
    "OpenAIEmbeddingProvider",
]
