"""Artifact storage protocol.

Defines the interface for any backend that durably keeps cache entries and
can answer a nearest-neighbour query over their prompt vectors.

Implementations:
- Redis Stack with an HNSW vector index (default)
- In-process dict with a linear numpy scan (development and tests)
"""

from collections.abc import Iterator
from datetime import datetime
from typing import Protocol, runtime_checkable

from schema_cache.entities import CacheEntryEntity, CacheMatchEntity


@runtime_checkable
class ArtifactStore(Protocol):
    """Protocol for cache entry storage backends.

    Every method either succeeds or raises StoreUnavailableError.
    """

    def insert(self, entry: CacheEntryEntity) -> str:
        """Persist a new entry atomically.

        Args:
            entry: The entry to store

        Returns:
            The entry id
        """
        ...

    def get(self, entry_id: str) -> CacheEntryEntity | None:
        """Point lookup by id."""
        ...

    def scan(self) -> Iterator[CacheEntryEntity]:
        """Iterate over a snapshot of every stored entry."""
        ...

    def find_nearest(
        self,
        vector: list[float],
        embedding_model: str,
        limit: int = 5,
    ) -> list[CacheMatchEntity]:
        """Find the entries closest to ``vector``.

        Only entries written by ``embedding_model`` with the same vector
        length are considered. No threshold is applied here.

        Args:
            vector: The query embedding
            embedding_model: Model that produced the query embedding
            limit: Maximum number of candidates

        Returns:
            Candidates with their cosine similarity, best first
        """
        ...

    def find_by_prompt(self, prompt: str) -> list[CacheEntryEntity]:
        """Find entries whose prompt equals ``prompt`` exactly."""
        ...

    def update_hit(self, entry_id: str, score: float, timestamp: datetime) -> bool:
        """Record one hit on an entry.

        Args:
            entry_id: The entry that was served
            score: Similarity recorded for this hit
            timestamp: When the hit happened

        Returns:
            False if the entry no longer exists
        """
        ...

    def delete(self, entry_id: str) -> bool:
        """Delete one entry. Returns True if something was deleted."""
        ...

    def clear(self) -> int:
        """Delete every entry. Returns the number deleted."""
        ...

    def count(self) -> int:
        """Number of stored entries."""
        ...

    def health_check(self) -> bool:
        """Check if the backend is reachable."""
        ...
