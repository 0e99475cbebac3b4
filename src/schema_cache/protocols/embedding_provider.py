"""Embedding provider protocol.

Defines the interface for any embedding generation service that can
convert text to vector embeddings.

Implementations:
- OpenAI embeddings API (default)
- Ollama local API
- sentence-transformers running in-process
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for embedding generation services.

    Any type that implements these members satisfies the protocol, no
    explicit inheritance needed.
    """

    @property
    def dimension(self) -> int:
        """Return the dimension of the embedding vectors."""
        ...

    @property
    def model_name(self) -> str:
        """Return the name/identifier of the model.

        Entries are tagged with it so a model change can be detected.
        """
        ...

    @property
    def is_configured(self) -> bool:
        """Whether the credentials/configuration needed to embed are present."""
        ...

    async def embed(self, text: str) -> list[float]:
        """Generate embedding vector for a single text."""
        ...

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts, in input order."""
        ...

    async def close(self) -> None:
        """Release network clients, if any."""
        ...
