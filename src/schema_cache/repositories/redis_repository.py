"""Redis implementation of ArtifactStore.

This repository uses Redis Stack with vector search capabilities (HNSW index).
It's the default implementation and satisfies the ArtifactStore protocol.

Layout:
    {index}:entry:{id}       hash with every entry field
    {index}:prompt:{sha256}  set of entry ids sharing an exact prompt

One HNSW index exists per vector dimension ("{index}-{dim}d"), all over the
same entry prefix. Redis only indexes a hash in an index whose dimension
matches its vector, so entries written by a model with another dimension are
invisible to that index instead of breaking it.
"""

import hashlib
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

import numpy as np
import redis
from pydantic import ValidationError
from redisvl.index import SearchIndex
from redisvl.query import VectorQuery
from redisvl.query.filter import Tag

from schema_cache.config import Settings, get_redis_client, get_settings
from schema_cache.dto.artifact import dump_artifact, load_artifact
from schema_cache.entities import CacheEntryEntity, CacheMatchEntity
from schema_cache.errors import StoreUnavailableError
from schema_cache.similarity import order_matches

logger = logging.getLogger(__name__)

# Atomic hit accounting; a no-op if the entry was deleted meanwhile
_UPDATE_HIT_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return 0
end
redis.call('HINCRBY', KEYS[1], 'hit_count', 1)
redis.call('HINCRBYFLOAT', KEYS[1], 'similarity_total', ARGV[1])
redis.call('HSET', KEYS[1], 'last_hit_at', ARGV[2])
return 1
"""

_FETCH_BATCH = 100


def prompt_hash(prompt: str) -> str:
    """SHA-256 hex digest of the verbatim prompt."""
    return hashlib.sha256(prompt.encode("utf-8")).hexdigest()


def vector_to_bytes(vector: list[float]) -> bytes:
    return np.asarray(vector, dtype=np.float32).tobytes()


def bytes_to_vector(data: bytes) -> list[float]:
    return np.frombuffer(data, dtype=np.float32).astype(float).tolist()


def _to_timestamp(value: datetime | None) -> str:
    return "" if value is None else repr(value.timestamp())


def _from_timestamp(value: str) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def entry_to_mapping(entry: CacheEntryEntity) -> dict[str, str | bytes]:
    """Convert an entry to the Redis hash mapping."""
    mapping: dict[str, str | bytes] = {
        "id": entry.id,
        "prompt": entry.prompt,
        "prompt_hash": prompt_hash(entry.prompt),
        "artifact": dump_artifact(entry.artifact),
        "embedding_model": entry.embedding_model,
        "dimension": str(entry.dimension),
        "tokens_used": str(entry.tokens_used),
        "hit_count": str(entry.hit_count),
        "similarity_total": repr(entry.similarity_total),
        "created_at": _to_timestamp(entry.created_at),
        "last_hit_at": _to_timestamp(entry.last_hit_at),
    }
    # Entries without an embedding carry no vector field at all
    if entry.has_embedding:
        mapping["prompt_vector"] = vector_to_bytes(entry.embedding)
    return mapping


def mapping_to_entry(raw: dict[bytes, bytes]) -> CacheEntryEntity | None:
    """Convert a raw Redis hash back to an entry.

    Returns None for hashes that are missing or hold an artifact that no
    longer validates.
    """
    if not raw:
        return None

    vector_bytes = raw.get(b"prompt_vector")
    fields = {k.decode(): v.decode() for k, v in raw.items() if k != b"prompt_vector"}

    try:
        return CacheEntryEntity(
            id=fields["id"],
            prompt=fields["prompt"],
            embedding=bytes_to_vector(vector_bytes) if vector_bytes else [],
            embedding_model=fields.get("embedding_model", ""),
            artifact=load_artifact(fields["artifact"]),
            tokens_used=int(fields.get("tokens_used", "0")),
            hit_count=int(fields.get("hit_count", "0")),
            similarity_total=float(fields.get("similarity_total", "0")),
            created_at=_from_timestamp(fields.get("created_at", "")) or datetime.now(timezone.utc),
            last_hit_at=_from_timestamp(fields.get("last_hit_at", "")),
        )
    except (KeyError, ValueError, ValidationError) as e:
        logger.warning("Skipping unreadable cache entry %s: %s", fields.get("id", "?"), e)
        return None


@contextmanager
def _store_errors(operation: str):
    try:
        yield
    except redis.RedisError as e:
        raise StoreUnavailableError(f"Redis {operation} failed: {e}") from e


class RedisArtifactRepository:
    """Redis implementation using HNSW vector indexes.

    This class satisfies the ArtifactStore protocol through structural
    typing - no explicit inheritance needed.

    Uses Redis Stack's vector search with:
    - HNSW (Hierarchical Navigable Small World) algorithm
    - COSINE distance metric
    - A TAG filter on the embedding model, so entries from a retired model
      are never compared with new queries
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        index_name: str | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the Redis artifact repository.

        Indexes are created lazily, on the first insert or query of a given
        vector dimension, so construction never touches the server.

        Args:
            redis_client: Redis client instance. If None, creates default.
            index_name: Base name for keys and indexes. Defaults to settings.
            settings: Settings to read defaults from.
        """
        settings = settings or get_settings()
        self._client = redis_client or get_redis_client(settings)
        self._index_name = index_name or settings.cache_index_name
        self._indexes: dict[int, SearchIndex] = {}
        self._update_hit = self._client.register_script(_UPDATE_HIT_SCRIPT)

    @classmethod
    def create(
        cls,
        index_name: str | None = None,
        settings: Settings | None = None,
    ) -> "RedisArtifactRepository":
        """Factory method to create RedisArtifactRepository with defaults.

        Args:
            index_name: Redis key/index prefix. If None, uses settings.
            settings: Settings instance. If None, uses get_settings().

        Returns:
            Configured RedisArtifactRepository
        """
        return cls(index_name=index_name, settings=settings)

    @property
    def entry_prefix(self) -> str:
        return f"{self._index_name}:entry:"

    def _entry_key(self, entry_id: str) -> str:
        return f"{self.entry_prefix}{entry_id}"

    def _prompt_key(self, prompt: str) -> str:
        return f"{self._index_name}:prompt:{prompt_hash(prompt)}"

    def _ensure_index(self, dimension: int) -> SearchIndex:
        """Ensure the vector index for ``dimension`` exists."""
        index = self._indexes.get(dimension)
        if index is not None:
            return index

        name = f"{self._index_name}-{dimension}d"
        index_schema = {
            "index": {
                "name": name,
                "prefix": self.entry_prefix,
                "storage_type": "hash",
            },
            "fields": [
                {"name": "prompt_hash", "type": "tag"},
                {"name": "embedding_model", "type": "tag"},
                {
                    "name": "prompt_vector",
                    "type": "vector",
                    "attrs": {
                        "dims": dimension,
                        "algorithm": "HNSW",
                        "metric": "COSINE",
                        "datatype": "float32",
                    },
                },
                {"name": "created_at", "type": "numeric"},
            ],
        }

        index = SearchIndex.from_dict(index_schema, redis_client=self._client)

        # Create the index if it doesn't exist
        try:
            index.create(overwrite=False)
            logger.info("Created vector index %s", name)
        except Exception as e:
            if "already exists" in str(e) or "Index already exists" in str(e):
                logger.debug("Using existing vector index %s", name)
            else:
                raise StoreUnavailableError(f"Could not create index {name}: {e}") from e

        self._indexes[dimension] = index
        return index

    def _fetch(self, keys: list[str | bytes]) -> list[CacheEntryEntity]:
        entries: list[CacheEntryEntity] = []
        for start in range(0, len(keys), _FETCH_BATCH):
            pipe = self._client.pipeline(transaction=False)
            for key in keys[start : start + _FETCH_BATCH]:
                pipe.hgetall(key)
            for raw in pipe.execute():
                entry = mapping_to_entry(raw)
                if entry is not None:
                    entries.append(entry)
        return entries

    def insert(self, entry: CacheEntryEntity) -> str:
        """Store an entry as one hash and register it under its prompt hash.

        Both writes go through a MULTI pipeline, so no reader sees a
        half-written entry.
        """
        if entry.has_embedding:
            self._ensure_index(entry.dimension)

        with _store_errors("insert"):
            pipe = self._client.pipeline(transaction=True)
            pipe.hset(self._entry_key(entry.id), mapping=entry_to_mapping(entry))
            pipe.sadd(self._prompt_key(entry.prompt), entry.id)
            pipe.execute()

        return entry.id

    def get(self, entry_id: str) -> CacheEntryEntity | None:
        with _store_errors("get"):
            raw = self._client.hgetall(self._entry_key(entry_id))
        return mapping_to_entry(raw)

    def scan(self) -> Iterator[CacheEntryEntity]:
        """Iterate over a snapshot of every entry.

        The snapshot is read eagerly, so backend errors surface here rather
        than halfway through the caller's loop.
        """
        with _store_errors("scan"):
            keys = list(self._client.scan_iter(match=f"{self.entry_prefix}*", count=500))
            entries = self._fetch(keys)
        return iter(entries)

    def find_nearest(
        self,
        vector: list[float],
        embedding_model: str,
        limit: int = 5,
    ) -> list[CacheMatchEntity]:
        """Find the nearest entries of ``embedding_model`` by cosine distance.

        Args:
            vector: The query embedding vector
            embedding_model: Only entries tagged with this model are searched
            limit: Maximum number of candidates

        Returns:
            Candidates with similarity = 1 - cosine distance. When the search
            fills ``limit``, stored copies of the returned prompts join the
            ranking before it is cut back to ``limit``.
        """
        if not vector:
            return []

        index = self._ensure_index(len(vector))
        query = VectorQuery(
            vector=vector,
            vector_field_name="prompt_vector",
            return_fields=["created_at"],
            num_results=limit,
            filter_expression=Tag("embedding_model") == embedding_model,
        )

        try:
            results = index.query(query)
        except Exception as e:
            raise StoreUnavailableError(f"Vector query failed: {e}") from e

        distances = {
            result["id"]: float(result.get("vector_distance", 2.0)) for result in results
        }

        with _store_errors("fetch"):
            entries = self._fetch(list(distances))

        matches = []
        for entry in entries:
            if not entry.is_comparable(embedding_model, len(vector)):
                continue
            distance = distances.get(self._entry_key(entry.id), 2.0)
            matches.append(CacheMatchEntity(entry=entry, similarity=1.0 - distance))

        if len(results) >= limit:
            matches = order_matches(self._with_duplicates(matches))[:limit]
        return matches

    def _with_duplicates(self, matches: list[CacheMatchEntity]) -> list[CacheMatchEntity]:
        """Add stored copies of the matched prompts that the search cut off.

        Copies of one prompt under one model share a vector and tie on
        similarity; once they outnumber ``limit`` HNSW returns an arbitrary
        subset of them, which may not include the newest.
        """
        seen = {m.entry.id for m in matches}
        widened = list(matches)
        for match in matches:
            for entry in self.find_by_prompt(match.entry.prompt):
                if entry.id in seen:
                    continue
                if entry.embedding_model != match.entry.embedding_model:
                    continue
                if entry.embedding != match.entry.embedding:
                    continue
                seen.add(entry.id)
                widened.append(CacheMatchEntity(entry=entry, similarity=match.similarity))
        return widened

    def find_by_prompt(self, prompt: str) -> list[CacheEntryEntity]:
        """Find entries whose prompt equals ``prompt`` exactly."""
        prompt_key = self._prompt_key(prompt)
        with _store_errors("prompt lookup"):
            ids = [m.decode() for m in self._client.smembers(prompt_key)]
            entries = self._fetch([self._entry_key(i) for i in ids])

            # Drop ids whose hash is gone
            stale = set(ids) - {e.id for e in entries}
            if stale:
                self._client.srem(prompt_key, *stale)

        return [e for e in entries if e.prompt == prompt]

    def update_hit(self, entry_id: str, score: float, timestamp: datetime) -> bool:
        with _store_errors("hit update"):
            updated = self._update_hit(
                keys=[self._entry_key(entry_id)],
                args=[repr(float(score)), _to_timestamp(timestamp)],
            )
        return bool(updated)

    def delete(self, entry_id: str) -> bool:
        """Delete a specific entry and its prompt registration.

        Args:
            entry_id: The entry to delete

        Returns:
            True if deleted, False otherwise
        """
        key = self._entry_key(entry_id)
        with _store_errors("delete"):
            digest = self._client.hget(key, "prompt_hash")
            pipe = self._client.pipeline(transaction=True)
            pipe.delete(key)
            if digest:
                pipe.srem(f"{self._index_name}:prompt:{digest.decode()}", entry_id)
            deleted = pipe.execute()[0]
        return deleted > 0

    def clear(self) -> int:
        """Delete every entry and prompt registration.

        Indexes are kept; they empty out as the hashes disappear.

        Returns:
            Number of entries deleted
        """
        count = 0
        with _store_errors("clear"):
            for key in self._client.scan_iter(match=f"{self._index_name}:*", count=500):
                key_str = key.decode() if isinstance(key, bytes) else key
                removed = self._client.delete(key)
                if key_str.startswith(self.entry_prefix):
                    count += removed
        return count

    def count(self) -> int:
        """Count total entries in the cache."""
        count = 0
        with _store_errors("count"):
            for _ in self._client.scan_iter(match=f"{self.entry_prefix}*", count=500):
                count += 1
        return count

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.warning("Redis health check failed: %s", e)
            return False

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
