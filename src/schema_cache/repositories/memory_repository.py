"""In-process implementation of ArtifactStore.

Keeps entries in a dict and answers nearest-neighbour queries with a linear
numpy scan. Suitable for development, threshold evaluation and tests; data
does not survive the process.
"""

import threading
from collections.abc import Iterator
from datetime import datetime

from schema_cache.entities import CacheEntryEntity, CacheMatchEntity
from schema_cache.similarity import rank_entries


class InMemoryArtifactRepository:
    """Dict-backed ArtifactStore.

    The lock only guards the dict itself; scoring runs on a snapshot taken
    under the lock, so readers never block each other during the scan.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntryEntity] = {}
        self._lock = threading.Lock()

    def _snapshot(self) -> list[CacheEntryEntity]:
        with self._lock:
            return list(self._entries.values())

    def insert(self, entry: CacheEntryEntity) -> str:
        with self._lock:
            self._entries[entry.id] = entry
        return entry.id

    def get(self, entry_id: str) -> CacheEntryEntity | None:
        with self._lock:
            return self._entries.get(entry_id)

    def scan(self) -> Iterator[CacheEntryEntity]:
        return iter(self._snapshot())

    def find_nearest(
        self,
        vector: list[float],
        embedding_model: str,
        limit: int = 5,
    ) -> list[CacheMatchEntity]:
        return rank_entries(vector, self._snapshot(), embedding_model, limit=limit)

    def find_by_prompt(self, prompt: str) -> list[CacheEntryEntity]:
        return [e for e in self._snapshot() if e.prompt == prompt]

    def update_hit(self, entry_id: str, score: float, timestamp: datetime) -> bool:
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                return False
            self._entries[entry_id] = entry.with_hit(score, timestamp)
        return True

    def delete(self, entry_id: str) -> bool:
        with self._lock:
            return self._entries.pop(entry_id, None) is not None

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def health_check(self) -> bool:
        return True
