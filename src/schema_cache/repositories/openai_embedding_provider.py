"""OpenAI embeddings API provider.

The default provider. It is configured when an API key is available; without
one the cache runs in exact-match mode.

Models:
- text-embedding-3-small (1536 dims, default)
- text-embedding-3-large (3072 dims)
- text-embedding-ada-002 (1536 dims)
"""

from openai import AsyncOpenAI

from schema_cache.config import Settings, get_settings

# Inputs are clipped to stay under the model's token limit
MAX_INPUT_CHARS = 8000
# Inputs per embeddings.create call
BATCH_SIZE = 100


class OpenAIEmbeddingProvider:
    """OpenAI implementation of EmbeddingProvider protocol.

    This class satisfies the EmbeddingProvider protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        provider = OpenAIEmbeddingProvider.create()
        if provider.is_configured:
            vector = await provider.embed("A blog with posts and comments")
        ```
    """

    MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        timeout: float | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize the OpenAI embedding provider.

        Args:
            api_key: OpenAI API key. Without one the provider is unconfigured.
            model_name: Embedding model. Defaults to text-embedding-3-small.
            timeout: Request timeout in seconds.
            client: Pre-built client (mainly for tests).
        """
        self._api_key = api_key
        self._model_name = model_name or "text-embedding-3-small"
        self._timeout = timeout
        self._client = client
        self._dimension: int | None = None

    @classmethod
    def create(cls, settings: Settings | None = None) -> "OpenAIEmbeddingProvider":
        """Factory method to create OpenAIEmbeddingProvider from settings."""
        settings = settings or get_settings()
        return cls(
            api_key=settings.openai_api_key,
            model_name=settings.embedding_model,
            timeout=settings.embedding_timeout,
        )

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy-load the async OpenAI client."""
        if self._client is None:
            if not self._api_key:
                raise RuntimeError("OpenAI client not configured. Set OPENAI_API_KEY.")
            self._client = AsyncOpenAI(api_key=self._api_key, timeout=self._timeout)
        return self._client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self._api_key)

    @property
    def dimension(self) -> int:
        """Get the embedding vector dimension (1536 for unknown models)."""
        if self._dimension is None:
            self._dimension = self.MODEL_DIMENSIONS.get(self._model_name, 1536)
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    async def embed(self, text: str) -> list[float]:
        """Generate embedding vector for a single text.

        Raises:
            openai.OpenAIError: If the API request fails
        """
        response = await self.client.embeddings.create(
            model=self._model_name,
            input=text[:MAX_INPUT_CHARS],
        )
        vector = list(response.data[0].embedding)
        self._dimension = len(vector)
        return vector

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for many texts, BATCH_SIZE inputs per request."""
        vectors: list[list[float]] = []
        for start in range(0, len(texts), BATCH_SIZE):
            batch = [t[:MAX_INPUT_CHARS] for t in texts[start : start + BATCH_SIZE]]
            response = await self.client.embeddings.create(model=self._model_name, input=batch)
            # The API tags each vector with its input position
            ordered = sorted(response.data, key=lambda d: d.index)
            vectors.extend(list(d.embedding) for d in ordered)
        if vectors:
            self._dimension = len(vectors[0])
        return vectors

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.close()
            self._client = None
