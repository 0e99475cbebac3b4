"""Cache match domain entity."""

from dataclasses import dataclass

from .cache_entry import CacheEntryEntity


@dataclass(frozen=True)
class CacheMatchEntity:
    """A candidate returned by a similarity search.

    Attributes:
        entry: The stored entry
        similarity: Cosine similarity to the query (1 = identical)
    """

    entry: CacheEntryEntity
    similarity: float

    @property
    def distance(self) -> float:
        """Cosine distance (0 = identical, 2 = opposite)."""
        return 1.0 - self.similarity
