"""Pytest fixtures for schema_cache tests.

Provides:
- Deterministic embedding providers (bag-of-words hashing plus unconfigured,
  failing, flaky and slow variants), so no test needs a network or a model
  download
- An in-memory repository and a wired SchemaCacheService
- Sample artifacts

Usage:
    async def test_something(cache, schema_artifact):
        await cache.store("A blog", schema_artifact, 100)
"""

import asyncio
import hashlib
import re
from typing import Any

import numpy as np
import pytest

from schema_cache.config import Settings
from schema_cache.dto import SchemaArtifact, TemplateArtifact
from schema_cache.embeddings import EmbeddingClient
from schema_cache.repositories import InMemoryArtifactRepository
from schema_cache.services import SchemaCacheService

# === Mock embedding providers ===


class BagOfWordsProvider:
    """Hashes each lowercase word into one of ``dimension`` buckets.

    Prompts sharing most of their words get a high cosine similarity;
    prompts sharing none get 0.0. Identical prompts always get 1.0.
    """

    def __init__(self, dimension: int = 128, model_name: str = "bow-test") -> None:
        self._dimension = dimension
        self._model_name = model_name
        self.calls: list[str] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def is_configured(self) -> bool:
        return True

    def vector(self, text: str) -> list[float]:
        vec = np.zeros(self._dimension)
        for word in re.findall(r"\w+", text.lower()):
            bucket = int(hashlib.sha256(word.encode()).hexdigest(), 16) % self._dimension
            vec[bucket] += 1.0
        return vec.tolist()

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return self.vector(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed(t) for t in texts]

    async def close(self) -> None:
        pass


class UnconfiguredProvider(BagOfWordsProvider):
    """Provider without credentials; must never be called."""

    @property
    def is_configured(self) -> bool:
        return False

    async def embed(self, text: str) -> list[float]:
        raise AssertionError("unconfigured provider was called")


class FailingProvider(BagOfWordsProvider):
    """Configured provider whose API always errors."""

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        raise ConnectionError("embedding API unreachable")


class FlakyProvider(BagOfWordsProvider):
    """Configured provider that errors while ``failing`` is set."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.failing = True

    async def embed(self, text: str) -> list[float]:
        if self.failing:
            self.calls.append(text)
            raise ConnectionError("embedding API unreachable")
        return await super().embed(text)


class SlowProvider(BagOfWordsProvider):
    """Configured provider that answers after ``delay`` seconds."""

    def __init__(self, delay: float = 1.0, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.delay = delay

    async def embed(self, text: str) -> list[float]:
        await asyncio.sleep(self.delay)
        return await super().embed(text)


class EmptyVectorProvider(BagOfWordsProvider):
    async def embed(self, text: str) -> list[float]:
        return []


# === Settings and wiring ===


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the developer's environment."""
    return Settings(
        cache_backend="memory",
        cache_similarity_threshold=0.85,
        cache_candidate_limit=5,
        cache_max_age_days=30,
        cache_max_entries=100,
        cost_per_1k_tokens=0.045,
        embedding_provider="none",
        embedding_timeout=1.0,
    )


@pytest.fixture
def provider() -> BagOfWordsProvider:
    return BagOfWordsProvider()


@pytest.fixture
def repository() -> InMemoryArtifactRepository:
    return InMemoryArtifactRepository()


def make_cache(
    settings: Settings,
    repository: InMemoryArtifactRepository,
    provider: Any,
    timeout: float = 1.0,
) -> SchemaCacheService:
    return SchemaCacheService(
        repository=repository,
        embedding_client=EmbeddingClient(provider, timeout=timeout),
        settings=settings,
    )


@pytest.fixture
def cache(settings, repository, provider) -> SchemaCacheService:
    """Cache wired to the bag-of-words provider and an in-memory store."""
    return make_cache(settings, repository, provider)


# === Sample artifacts ===


@pytest.fixture
def schema_payload() -> dict[str, Any]:
    """A generated blog schema as plain JSON-like data."""
    return {
        "database_schema": {
            "tables": [
                {
                    "name": "posts",
                    "description": "Blog posts",
                    "columns": [
                        {"name": "id", "type": "uuid", "primary": True},
                        {"name": "title", "type": "text", "required": True},
                        {"name": "published_at", "type": "timestamp"},
                    ],
                    "indexes": [{"name": "posts_published_idx", "columns": ["published_at"]}],
                    "policies": [
                        {"name": "public read", "operation": "SELECT", "using": "true"}
                    ],
                },
                {
                    "name": "comments",
                    "columns": [
                        {"name": "id", "type": "uuid", "primary": True},
                        {
                            "name": "post_id",
                            "type": "uuid",
                            "references": "posts.id",
                            "on_delete": "CASCADE",
                        },
                        {"name": "body", "type": "text"},
                    ],
                },
            ],
            "relationships": [
                {"from": "comments.post_id", "to": "posts.id", "type": "one-to-many"}
            ],
        },
        "sql": "CREATE TABLE posts (id uuid PRIMARY KEY, title text NOT NULL);",
        "metadata": {
            "model_used": "gpt-4o",
            "description": "Blog with comments",
            "business_type": "blog",
            "features": ["comments"],
        },
    }


@pytest.fixture
def schema_artifact(schema_payload) -> SchemaArtifact:
    return SchemaArtifact.model_validate(schema_payload)


@pytest.fixture
def template_artifact(schema_payload) -> TemplateArtifact:
    return TemplateArtifact(
        template_slug="supabase-auth",
        database_schema=schema_payload["database_schema"],
        sql="CREATE TABLE profiles (id uuid PRIMARY KEY);",
        rls_policies="ALTER TABLE profiles ENABLE ROW LEVEL SECURITY;",
    )
