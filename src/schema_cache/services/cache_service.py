"""Schema cache service for core business logic.

This service orchestrates cache operations by coordinating the artifact
store (data access) and the embedding client (vector generation).
"""

import logging
from collections import OrderedDict
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from schema_cache import accounting
from schema_cache.config import Settings, get_settings
from schema_cache.dto import CacheStats, EmbeddingStatus, PromptUsage, parse_artifact
from schema_cache.dto.artifact import SchemaArtifact, TemplateArtifact
from schema_cache.embeddings import EmbeddingClient
from schema_cache.entities import CacheEntryEntity, utcnow
from schema_cache.errors import ArtifactValidationError, EmbeddingUnavailableError
from schema_cache.protocols import ArtifactStore
from schema_cache.similarity import select_best

logger = logging.getLogger(__name__)

# Score recorded for a hit served by exact prompt equality
EXACT_MATCH_SCORE = 1.0

# Rounding slack for scores compared to the threshold; a vector's cosine
# with itself can land just below 1.0 (float64 here, float32 in Redis)
SIMILARITY_TOLERANCE = 1e-6

# Query vectors remembered between a miss and the following store
_PENDING_VECTORS_MAX = 256


class SchemaCacheService:
    """Semantic cache in front of schema generation.

    The service depends on PROTOCOLS, not concrete implementations:
    - ArtifactStore: Redis or in-memory
    - EmbeddingClient wrapping OpenAI, Ollama or a local model

    Construct it once at process start and pass it to whatever needs it.

    Example:
        ```python
        cache = SchemaCacheService.create()

        hit = await cache.find_similar(prompt)
        if hit is None:
            artifact, tokens = await generate_schema(prompt)
            await cache.store(prompt, artifact, tokens)
        ```
    """

    def __init__(
        self,
        repository: ArtifactStore,
        embedding_client: EmbeddingClient,
        similarity_threshold: float | None = None,
        candidate_limit: int | None = None,
        cost_per_1k_tokens: float | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the cache service.

        Args:
            repository: Artifact storage backend (required).
            embedding_client: Embedding client (required).
            similarity_threshold: Minimum cosine similarity for a hit (0-1).
                Defaults to settings.
            candidate_limit: Nearest candidates fetched per lookup. Defaults to settings.
            cost_per_1k_tokens: Generation price used for savings. Defaults to settings.
            settings: Settings to read defaults from.
        """
        settings = settings or get_settings()
        self._repository = repository
        self._embeddings = embedding_client
        self._threshold = self._validate_threshold(
            similarity_threshold
            if similarity_threshold is not None
            else settings.cache_similarity_threshold
        )
        self._candidate_limit = candidate_limit or settings.cache_candidate_limit
        self._cost_per_1k = (
            cost_per_1k_tokens if cost_per_1k_tokens is not None else settings.cost_per_1k_tokens
        )
        self._pending: OrderedDict[str, tuple[str, list[float]]] = OrderedDict()

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        repository: ArtifactStore | None = None,
        embedding_client: EmbeddingClient | None = None,
        similarity_threshold: float | None = None,
    ) -> "SchemaCacheService":
        """Factory method wiring the service from settings.

        Args:
            settings: Settings instance. If None, uses get_settings().
            repository: Storage backend. If None, built from CACHE_BACKEND.
            embedding_client: Embedding client. If None, built from EMBEDDING_PROVIDER.
            similarity_threshold: Override the configured threshold.

        Returns:
            Configured SchemaCacheService
        """
        settings = settings or get_settings()

        if repository is None:
            if settings.cache_backend == "memory":
                from schema_cache.repositories import InMemoryArtifactRepository

                repository = InMemoryArtifactRepository()
            else:
                from schema_cache.repositories import RedisArtifactRepository

                repository = RedisArtifactRepository.create(settings=settings)

        return cls(
            repository=repository,
            embedding_client=embedding_client or EmbeddingClient.from_settings(settings),
            similarity_threshold=similarity_threshold,
            settings=settings,
        )

    @staticmethod
    def _validate_threshold(threshold: float) -> float:
        if not 0 <= threshold <= 1:
            raise ValueError("Threshold must be between 0 and 1")
        return float(threshold)

    @staticmethod
    def _validate_prompt(prompt: Any) -> str:
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValueError("Prompt must be a non-empty string")
        return prompt

    def _remember(self, prompt: str, vector: list[float]) -> None:
        self._pending[prompt] = (self._embeddings.get_model(), vector)
        self._pending.move_to_end(prompt)
        while len(self._pending) > _PENDING_VECTORS_MAX:
            self._pending.popitem(last=False)

    def _recall(self, prompt: str) -> list[float] | None:
        remembered = self._pending.pop(prompt, None)
        if remembered is None:
            return None
        model, vector = remembered
        return vector if model == self._embeddings.get_model() else None

    def _record_hit(self, entry: CacheEntryEntity, score: float) -> CacheEntryEntity | None:
        now = utcnow()
        if not self._repository.update_hit(entry.id, score, now):
            # Evicted between lookup and accounting
            return None
        return entry.with_hit(score, now)

    async def find_similar(
        self,
        prompt: str,
        threshold: float | None = None,
    ) -> CacheEntryEntity | None:
        """Find a previously generated artifact for a semantically similar prompt.

        Business logic:
        1. Embed the prompt (exact prompt match if embeddings are unavailable)
        2. Fetch the nearest candidates of the active embedding model
        3. Pick the best one (ties go to the newest entry)
        4. Accept it if its similarity reaches the threshold, and record the hit
        5. Otherwise serve an exact prompt match stored without an embedding
           (written while embeddings were down)

        Args:
            prompt: The prompt to search for
            threshold: Override the default similarity threshold (0-1)

        Returns:
            The matching entry with updated hit counters, or None on a miss

        Raises:
            ValueError: If the prompt is empty or the threshold out of range
            StoreUnavailableError: If the artifact store cannot be read
        """
        self._validate_prompt(prompt)
        threshold = self._threshold if threshold is None else self._validate_threshold(threshold)

        try:
            vector = await self._embeddings.generate_embedding(prompt)
        except EmbeddingUnavailableError as e:
            logger.warning("Embedding unavailable, falling back to exact match: %s", e)
            return self._find_exact(prompt)

        candidates = self._repository.find_nearest(
            vector,
            self._embeddings.get_model(),
            limit=self._candidate_limit,
        )
        best = select_best(candidates)

        if best is None or best.similarity + SIMILARITY_TOLERANCE < threshold:
            logger.debug(
                "Cache miss (best similarity %s, threshold %.3f)",
                f"{best.similarity:.3f}" if best else "n/a",
                threshold,
            )
            unembedded = self._find_exact(prompt, unembedded_only=True)
            if unembedded is not None:
                logger.debug("Cache hit %s (exact match, no embedding)", unembedded.id)
                return unembedded
            self._remember(prompt, vector)
            return None

        logger.debug("Cache hit %s (similarity %.3f)", best.entry.id, best.similarity)
        return self._record_hit(best.entry, min(best.similarity, EXACT_MATCH_SCORE))

    def _find_exact(
        self, prompt: str, unembedded_only: bool = False
    ) -> CacheEntryEntity | None:
        """Most recently created entry whose prompt is exactly ``prompt``.

        With ``unembedded_only`` entries carrying a vector are skipped, so an
        entry of another embedding model is never served this way.
        """
        matches = self._repository.find_by_prompt(prompt)
        if unembedded_only:
            matches = [e for e in matches if not e.has_embedding]
        if not matches:
            return None
        newest = max(matches, key=lambda e: (e.created_at, e.id))
        return self._record_hit(newest, EXACT_MATCH_SCORE)

    async def store(
        self,
        prompt: str,
        artifact: SchemaArtifact | TemplateArtifact | Mapping[str, Any],
        tokens_used: int,
    ) -> CacheEntryEntity:
        """Store a freshly generated artifact.

        Business logic:
        1. Validate prompt, token count and artifact (nothing persisted on failure)
        2. Reuse the vector from a preceding miss, or embed the prompt
        3. Insert a new entry; duplicates of the same prompt are allowed

        Args:
            prompt: The prompt the artifact was generated for
            artifact: The artifact, or a mapping that validates into one
            tokens_used: Tokens the generation cost

        Returns:
            The stored entry

        Raises:
            ArtifactValidationError: If any input is malformed
            StoreUnavailableError: If the artifact store cannot be written
        """
        try:
            self._validate_prompt(prompt)
        except ValueError as e:
            raise ArtifactValidationError(str(e)) from e

        if isinstance(tokens_used, bool) or not isinstance(tokens_used, int) or tokens_used < 0:
            raise ArtifactValidationError(
                f"tokens_used must be a non-negative integer, got {tokens_used!r}"
            )

        try:
            parsed = parse_artifact(artifact)
        except ValidationError as e:
            raise ArtifactValidationError(f"Invalid artifact: {e}") from e

        vector = self._recall(prompt)
        if vector is None:
            try:
                vector = await self._embeddings.generate_embedding(prompt)
            except EmbeddingUnavailableError as e:
                logger.warning("Storing without embedding (exact match only): %s", e)
                vector = None

        entry = CacheEntryEntity.create(
            prompt=prompt,
            artifact=parsed,
            tokens_used=tokens_used,
            embedding=vector,
            embedding_model=self._embeddings.get_model() if vector else "",
        )
        self._repository.insert(entry)
        logger.debug("Stored cache entry %s (%d tokens)", entry.id, tokens_used)
        return entry

    def get_entry(self, entry_id: str) -> CacheEntryEntity | None:
        return self._repository.get(entry_id)

    def invalidate(self, entry_id: str) -> bool:
        """Delete a specific cache entry.

        Args:
            entry_id: The entry to delete

        Returns:
            True if deleted, False otherwise
        """
        return self._repository.delete(entry_id)

    def clear(self) -> int:
        """Clear all cache entries.

        Returns:
            Number of entries deleted
        """
        self._pending.clear()
        return self._repository.clear()

    def calculate_cost_savings(self, tokens: int) -> float:
        """Cost in USD of ``tokens`` generation tokens."""
        return accounting.calculate_cost_savings(tokens, self._cost_per_1k)

    def get_stats(self) -> CacheStats:
        """Aggregate statistics over all stored entries."""
        return accounting.summarize(self._repository.scan(), self._cost_per_1k)

    def get_most_used_prompts(self, limit: int = 10) -> list[PromptUsage]:
        return accounting.most_used(self._repository.scan(), limit=limit)

    def get_embedding_status(self) -> EmbeddingStatus:
        configured = self._embeddings.is_configured()
        return EmbeddingStatus(
            configured=configured,
            model=self._embeddings.get_model(),
            fallback=not configured,
        )

    def is_healthy(self) -> bool:
        """Check if the artifact store is reachable.

        Missing embeddings only degrade lookups, so they do not count.
        """
        return self._repository.health_check()

    async def close(self) -> None:
        await self._embeddings.close()

    def set_threshold(self, threshold: float) -> None:
        """Update the similarity threshold.

        Args:
            threshold: New threshold value (0-1, higher = more strict)
        """
        self._threshold = self._validate_threshold(threshold)

    @property
    def threshold(self) -> float:
        """Get current similarity threshold."""
        return self._threshold

    @property
    def repository(self) -> ArtifactStore:
        """Get the underlying repository (for testing)."""
        return self._repository

    @property
    def embedding_client(self) -> EmbeddingClient:
        """Get the underlying embedding client (for testing)."""
        return self._embeddings
