"""Embedding client used by the cache service.

Wraps one EmbeddingProvider and gives the cache a single failure mode:
whatever goes wrong (no configuration, network error, timeout, empty
vector) surfaces as EmbeddingUnavailableError, which the service answers
with an exact prompt match.

The client is Configured or Unconfigured, decided once at construction.
An Unconfigured client never touches the network. A Configured client that
fails a call stays Configured; the failure only affects that call.
"""

import asyncio
import logging
import math

from schema_cache.config import Settings, get_settings
from schema_cache.errors import EmbeddingUnavailableError
from schema_cache.protocols import EmbeddingProvider

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """Timeout-bounded, failure-normalising wrapper around an EmbeddingProvider."""

    def __init__(
        self,
        provider: EmbeddingProvider | None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the embedding client.

        Args:
            provider: The provider to wrap. None means no embeddings at all.
            timeout: Per-call timeout in seconds. None disables the timeout.
        """
        self._provider = provider
        self._timeout = timeout
        self._configured = provider is not None and bool(provider.is_configured)

        if not self._configured:
            logger.warning(
                "Embedding provider not configured; cache lookups use exact prompt match"
            )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "EmbeddingClient":
        """Build the provider named by EMBEDDING_PROVIDER and wrap it."""
        settings = settings or get_settings()
        provider: EmbeddingProvider | None

        if settings.embedding_provider == "openai":
            from schema_cache.repositories import OpenAIEmbeddingProvider

            provider = OpenAIEmbeddingProvider.create(settings)
        elif settings.embedding_provider == "ollama":
            from schema_cache.repositories import OllamaEmbeddingProvider

            provider = OllamaEmbeddingProvider.create(settings)
        elif settings.embedding_provider == "local":
            from schema_cache.repositories.local_embedding_provider import (
                LocalEmbeddingProvider,
            )

            provider = LocalEmbeddingProvider.create(settings)
        else:
            provider = None

        return cls(provider, timeout=settings.embedding_timeout)

    def is_configured(self) -> bool:
        return self._configured

    def get_model(self) -> str:
        """Identifier of the active embedding model ("none" without a provider)."""
        if self._provider is None:
            return "none"
        return self._provider.model_name

    @property
    def provider(self) -> EmbeddingProvider | None:
        """Get the underlying provider (for testing)."""
        return self._provider

    async def _call(self, coro, what: str):
        try:
            if self._timeout is None:
                return await coro
            return await asyncio.wait_for(coro, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise EmbeddingUnavailableError(
                f"{what} timed out after {self._timeout}s"
            ) from e
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise EmbeddingUnavailableError(f"{what} failed: {e}") from e

    def _check(self, vector: list[float]) -> list[float]:
        if not vector:
            raise EmbeddingUnavailableError("Provider returned an empty embedding")
        if not all(math.isfinite(x) for x in vector):
            raise EmbeddingUnavailableError("Provider returned a non-finite embedding")
        expected = self._provider.dimension
        if len(vector) != expected:
            raise EmbeddingUnavailableError(
                f"Provider returned {len(vector)} dimensions, expected {expected}"
            )
        return [float(x) for x in vector]

    async def generate_embedding(self, text: str) -> list[float]:
        """Embed one text.

        Raises:
            EmbeddingUnavailableError: If unconfigured or the call fails
        """
        if not self._configured:
            raise EmbeddingUnavailableError("Embedding provider not configured")

        vector = await self._call(self._provider.embed(text), "Embedding")
        return self._check(vector)

    async def generate_batch_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Embed many texts, in input order.

        Raises:
            EmbeddingUnavailableError: If unconfigured or the call fails
        """
        if not self._configured:
            raise EmbeddingUnavailableError("Embedding provider not configured")
        if not texts:
            return []

        vectors = await self._call(self._provider.embed_batch(texts), "Batch embedding")
        if len(vectors) != len(texts):
            raise EmbeddingUnavailableError(
                f"Expected {len(texts)} embeddings, got {len(vectors)}"
            )
        return [self._check(v) for v in vectors]

    async def close(self) -> None:
        if self._provider is not None:
            await self._provider.close()
