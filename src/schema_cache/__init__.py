"""Schema Cache - semantic caching of LLM-generated database schemas.

Before paying for a schema generation, ask the cache whether a
semantically similar prompt was already served; on a miss, generate and
store the result so the next similar prompt is free.

Layers:
    - protocols: Interface contracts (ArtifactStore, EmbeddingProvider)
    - repositories: Data access implementations (Redis, in-memory, embedding APIs)
    - services: Business logic (SchemaCacheService)
    - dto: Artifacts and report models (public contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from schema_cache import SchemaCacheService, configure_logging

    configure_logging()
    cache = SchemaCacheService.create()

    entry = await cache.find_similar("A blog with posts, comments and tags")
    if entry is None:
        artifact, tokens = await generate(prompt)
        await cache.store(prompt, artifact, tokens)
    ```
"""

from schema_cache.config import Settings, get_redis_client, get_settings
from schema_cache.dto import (
    CacheStats,
    DatabaseSchema,
    EmbeddingStatus,
    PromptUsage,
    SchemaArtifact,
    TemplateArtifact,
)
from schema_cache.embeddings import EmbeddingClient
from schema_cache.entities import CacheEntryEntity, CacheMatchEntity
from schema_cache.errors import (
    ArtifactValidationError,
    EmbeddingUnavailableError,
    SchemaCacheError,
    StoreUnavailableError,
)
from schema_cache.evaluator import CacheEvaluator, QueryPair
from schema_cache.log import configure_logging
from schema_cache.maintenance import CacheMaintenance
from schema_cache.protocols import ArtifactStore, EmbeddingProvider
from schema_cache.repositories import (
    InMemoryArtifactRepository,
    OllamaEmbeddingProvider,
    OpenAIEmbeddingProvider,
    RedisArtifactRepository,
)
from schema_cache.services import SchemaCacheService

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    "get_redis_client",
    "configure_logging",
    # Protocols (interfaces)
    "ArtifactStore",
    "EmbeddingProvider",
    # Services (business logic)
    "SchemaCacheService",
    "EmbeddingClient",
    "CacheMaintenance",
    "CacheEvaluator",
    "QueryPair",
    # Repositories (data access)
    "RedisArtifactRepository",
    "InMemoryArtifactRepository",
    "OpenAIEmbeddingProvider",
    "OllamaEmbeddingProvider",
    # Entities (domain models)
    "CacheEntryEntity",
    "CacheMatchEntity",
    # DTOs (public contracts)
    "SchemaArtifact",
    "TemplateArtifact",
    "DatabaseSchema",
    "CacheStats",
    "EmbeddingStatus",
    "PromptUsage",
    # Errors
    "SchemaCacheError",
    "EmbeddingUnavailableError",
    "StoreUnavailableError",
    "ArtifactValidationError",
]
