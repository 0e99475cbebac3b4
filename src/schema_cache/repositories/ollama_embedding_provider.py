"""Ollama embedding provider.

Talks to a local Ollama server over HTTP (``POST /api/embed``), so prompts
never leave the machine and no API key is needed. Pull the model first:
``ollama pull nomic-embed-text``.

Common embedding models:
- nomic-embed-text (768 dims, default)
- mxbai-embed-large (1024 dims)
- all-minilm (384 dims)
"""

import httpx

from schema_cache.config import Settings, get_settings

DEFAULT_MODEL = "nomic-embed-text"


class OllamaEmbeddingProvider:
    """EmbeddingProvider backed by an Ollama server.

    Satisfies the EmbeddingProvider protocol structurally. The provider
    counts as configured whenever a base URL is set; whether the server is
    actually up is only discovered on the first request.

    Example:
        ```python
        provider = OllamaEmbeddingProvider(base_url="http://localhost:11434")
        vector = await provider.embed("Inventory tracking for a bakery")
        ```
    """

    # Used for `dimension` until the first response reveals the real size
    KNOWN_DIMENSIONS = {
        "nomic-embed-text": 768,
        "embeddinggemma": 768,
        "mxbai-embed-large": 1024,
        "all-minilm": 384,
    }

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            model_name: Ollama model tag. Defaults to nomic-embed-text.
            base_url: Server URL, e.g. http://localhost:11434. Empty means unconfigured.
            timeout: Per-request timeout in seconds.
            client: HTTP client to use instead of a lazily created one.
        """
        self._model_name = model_name or DEFAULT_MODEL
        self._base_url = (base_url or "").rstrip("/")
        self._timeout = timeout
        self._client = client
        self._observed_dimension: int | None = None

    @classmethod
    def create(cls, settings: Settings | None = None) -> "OllamaEmbeddingProvider":
        settings = settings or get_settings()
        return cls(
            model_name=settings.embedding_model,
            base_url=settings.ollama_base_url,
            timeout=settings.embedding_timeout,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url)

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimension(self) -> int:
        if self._observed_dimension is not None:
            return self._observed_dimension
        base_tag = self._model_name.split(":", 1)[0]
        return self.KNOWN_DIMENSIONS.get(base_tag, 768)

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def _request(self, inputs: str | list[str]) -> list[list[float]]:
        """Call /api/embed and return one vector per input.

        Raises:
            RuntimeError: If the server cannot be reached or answers with an error
            ValueError: If the response carries no embeddings
        """
        try:
            response = await self._http().post(
                f"{self._base_url}/api/embed",
                json={"model": self._model_name, "input": inputs},
            )
            response.raise_for_status()
        except httpx.ConnectError as e:
            raise RuntimeError(
                f"Ollama API error: cannot reach {self._base_url} (is `ollama serve` running?)"
            ) from e
        except httpx.HTTPStatusError as e:
            hint = ""
            if e.response.status_code == 404:
                hint = f" (try: ollama pull {self._model_name})"
            raise RuntimeError(f"Ollama API error: {e}{hint}") from e
        except httpx.HTTPError as e:
            raise RuntimeError(f"Ollama API error: {e}") from e

        body = response.json()
        vectors = body.get("embeddings")
        if not vectors and "embedding" in body:
            # Pre-0.3 servers return a single vector
            vectors = [body["embedding"]]
        if not vectors:
            raise ValueError(f"Ollama response has no embeddings: {body}")

        self._observed_dimension = len(vectors[0])
        return vectors

    async def embed(self, text: str) -> list[float]:
        return (await self._request(text))[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        vectors = await self._request(texts)
        if len(vectors) != len(texts):
            raise ValueError(f"Expected {len(texts)} embeddings, got {len(vectors)}")
        return vectors

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
