"""Local sentence-transformers embedding provider.

Runs the model in-process, so no API calls or keys are required. Models
trained with Matryoshka Representation Learning (e.g. EmbeddingGemma) can
be truncated to a smaller output dimension.
"""

import asyncio
import logging
import time

import numpy as np
from sentence_transformers import SentenceTransformer

from schema_cache.config import Settings, get_settings

logger = logging.getLogger(__name__)


class LocalEmbeddingProvider:
    """Local sentence-transformers implementation of EmbeddingProvider.

    This class satisfies the EmbeddingProvider protocol through structural
    typing - no explicit inheritance needed.

    Default model: paraphrase-multilingual-MiniLM-L12-v2 (384 dimensions).
    Encoding is CPU/GPU bound, so it runs in a worker thread to keep the
    event loop responsive.
    """

    def __init__(
        self,
        model_name: str | None = None,
        output_dimension: int | None = None,
        batch_size: int = 32,
    ) -> None:
        """Initialize the local embedding provider.

        Args:
            model_name: Name of the sentence-transformers model.
            output_dimension: Truncate vectors to this many dimensions
                (Matryoshka). None or 0 keeps the full vector.
            batch_size: Batch size for encoding.
        """
        self._model_name = model_name or "paraphrase-multilingual-MiniLM-L12-v2"
        self._output_dimension = output_dimension or None
        self._batch_size = batch_size
        self._model: SentenceTransformer | None = None
        self._dimension: int | None = None

    @classmethod
    def create(cls, settings: Settings | None = None) -> "LocalEmbeddingProvider":
        """Factory method to create LocalEmbeddingProvider from settings."""
        settings = settings or get_settings()
        return cls(
            model_name=settings.embedding_model,
            output_dimension=settings.embedding_output_dimension,
        )

    @property
    def model(self) -> SentenceTransformer:
        """Lazy-load the embedding model."""
        if self._model is None:
            logger.info("Loading embedding model: %s", self._model_name)
            start_time = time.time()
            self._model = SentenceTransformer(self._model_name, trust_remote_code=True)
            logger.info("Model loaded in %.2fs", time.time() - start_time)
        return self._model

    @property
    def is_configured(self) -> bool:
        return bool(self._model_name)

    @property
    def dimension(self) -> int:
        """Get the embedding vector dimension."""
        if self._output_dimension:
            return self._output_dimension
        if self._dimension is None:
            self._dimension = len(self._encode(["test"])[0])
        return self._dimension

    @property
    def model_name(self) -> str:
        """Model name, suffixed with the truncated dimension when truncating."""
        if self._output_dimension:
            return f"{self._model_name}@{self._output_dimension}"
        return self._model_name

    def _truncate(self, embeddings: np.ndarray) -> np.ndarray:
        if not self._output_dimension:
            return embeddings
        return embeddings[..., : self._output_dimension]

    def _encode(self, texts: list[str]) -> list[list[float]]:
        embeddings = self.model.encode(
            texts,
            batch_size=self._batch_size,
            show_progress_bar=False,
            normalize_embeddings=True,
        )
        vectors = self._truncate(np.asarray(embeddings)).tolist()
        if vectors:
            self._dimension = len(vectors[0])
        return vectors

    async def embed(self, text: str) -> list[float]:
        """Generate embedding vector for a single text."""
        return (await asyncio.to_thread(self._encode, [text]))[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts efficiently."""
        if not texts:
            return []
        return await asyncio.to_thread(self._encode, texts)

    async def close(self) -> None:
        self._model = None
