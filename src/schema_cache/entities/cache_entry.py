"""Cache entry domain entity."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from schema_cache.dto.artifact import SchemaArtifact, TemplateArtifact


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for one served prompt and its generated artifact.

    Entities are snapshots: hit accounting produces a new instance through
    :meth:`with_hit` instead of mutating this one.

    Attributes:
        id: Opaque identifier assigned at creation
        prompt: The original prompt, verbatim
        embedding: Prompt vector; empty when stored without embeddings
        embedding_model: Model that produced ``embedding`` ("" when empty)
        artifact: The generated schema artifact
        tokens_used: Generation cost avoided by every hit
        hit_count: Number of hits resolved to this entry
        similarity_total: Sum of the similarity scores recorded at hit time
        created_at: When the entry was stored
        last_hit_at: When the entry was last returned as a hit
    """

    id: str
    prompt: str
    embedding: list[float]
    embedding_model: str
    artifact: SchemaArtifact | TemplateArtifact
    tokens_used: int
    hit_count: int = 0
    similarity_total: float = 0.0
    created_at: datetime = field(default_factory=utcnow)
    last_hit_at: datetime | None = None

    @classmethod
    def create(
        cls,
        prompt: str,
        artifact: SchemaArtifact | TemplateArtifact,
        tokens_used: int,
        embedding: list[float] | None = None,
        embedding_model: str = "",
    ) -> "CacheEntryEntity":
        """Build a brand new entry with a fresh id and zero hits."""
        vector = list(embedding or [])
        return cls(
            id=uuid.uuid4().hex,
            prompt=prompt,
            embedding=vector,
            embedding_model=embedding_model if vector else "",
            artifact=artifact,
            tokens_used=tokens_used,
        )

    @property
    def dimension(self) -> int:
        return len(self.embedding)

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    @property
    def last_used_at(self) -> datetime:
        """Last hit time, or creation time for never-hit entries."""
        return self.last_hit_at or self.created_at

    @property
    def avg_similarity(self) -> float:
        if self.hit_count == 0:
            return 0.0
        return self.similarity_total / self.hit_count

    def is_comparable(self, embedding_model: str, dimension: int) -> bool:
        """Whether this entry can be scored against a vector of that model and size."""
        return (
            self.has_embedding
            and self.embedding_model == embedding_model
            and self.dimension == dimension
        )

    def with_hit(self, score: float, timestamp: datetime) -> "CacheEntryEntity":
        """Return a copy with one more hit recorded."""
        return replace(
            self,
            hit_count=self.hit_count + 1,
            similarity_total=self.similarity_total + score,
            last_hit_at=timestamp,
        )
