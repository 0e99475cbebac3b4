"""Protocol interfaces for swappable implementations.

Protocols use structural typing, so the service can run against Redis or an
in-memory store, and against OpenAI, Ollama or a local model, without
changing its code.

Usage:
    ```python
    from schema_cache.protocols import ArtifactStore, EmbeddingProvider

    repo: ArtifactStore = RedisArtifactRepository.create()
    repo: ArtifactStore = InMemoryArtifactRepository()
    ```
"""

from .artifact_store import ArtifactStore
from .embedding_provider import EmbeddingProvider

__all__ = [
    "ArtifactStore",
    "EmbeddingProvider",
]
