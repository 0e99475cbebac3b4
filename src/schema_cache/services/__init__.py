"""Service layer for business logic.

This layer contains the cache orchestration. Services depend on protocols
(interfaces), not concrete implementations, making them testable and
flexible.

Architecture:
    Service -> Repository / EmbeddingClient
    (Business) -> (Data Access)

Usage:
    ```python
    from schema_cache.services import SchemaCacheService

    # Using factory method (recommended)
    cache = SchemaCacheService.create()

    # Or manual creation
    cache = SchemaCacheService(repository=repo, embedding_client=client)
    ```
"""

from .cache_service import SchemaCacheService

__all__ = [
    "SchemaCacheService",
]
