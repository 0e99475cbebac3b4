"""
Tests for EmbeddingClient and the embedding providers.

No test touches the network or downloads a model: providers get mocked
clients and a fake sentence-transformers model.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import numpy as np
import pytest

from conftest import (
    BagOfWordsProvider,
    EmptyVectorProvider,
    FailingProvider,
    SlowProvider,
    UnconfiguredProvider,
)
from schema_cache.config import Settings
from schema_cache.embeddings import EmbeddingClient
from schema_cache.errors import EmbeddingUnavailableError
from schema_cache.protocols import EmbeddingProvider
from schema_cache.repositories import OllamaEmbeddingProvider, OpenAIEmbeddingProvider
from schema_cache.repositories.openai_embedding_provider import BATCH_SIZE, MAX_INPUT_CHARS


class TestEmbeddingClient:
    @pytest.mark.asyncio
    async def test_generate_embedding(self):
        provider = BagOfWordsProvider()
        client = EmbeddingClient(provider, timeout=1.0)

        vector = await client.generate_embedding("orders and customers")

        assert vector == provider.vector("orders and customers")
        assert client.is_configured() is True
        assert client.get_model() == "bow-test"

    @pytest.mark.asyncio
    async def test_batch_keeps_order(self):
        provider = BagOfWordsProvider()
        client = EmbeddingClient(provider)

        vectors = await client.generate_batch_embeddings(["one", "two", "three"])

        assert vectors == [provider.vector(t) for t in ["one", "two", "three"]]

    @pytest.mark.asyncio
    async def test_batch_of_nothing(self):
        assert await EmbeddingClient(BagOfWordsProvider()).generate_batch_embeddings([]) == []

    @pytest.mark.asyncio
    async def test_unconfigured_raises_without_calling_provider(self):
        client = EmbeddingClient(UnconfiguredProvider())

        with pytest.raises(EmbeddingUnavailableError, match="not configured"):
            await client.generate_embedding("anything")
        with pytest.raises(EmbeddingUnavailableError):
            await client.generate_batch_embeddings(["anything"])

        assert client.is_configured() is False

    @pytest.mark.asyncio
    async def test_no_provider(self):
        client = EmbeddingClient(None)

        assert client.is_configured() is False
        assert client.get_model() == "none"
        with pytest.raises(EmbeddingUnavailableError):
            await client.generate_embedding("anything")
        await client.close()

    @pytest.mark.asyncio
    async def test_provider_error_is_wrapped(self):
        client = EmbeddingClient(FailingProvider())

        with pytest.raises(EmbeddingUnavailableError) as exc_info:
            await client.generate_embedding("anything")

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert client.is_configured() is True

    @pytest.mark.asyncio
    async def test_timeout(self):
        client = EmbeddingClient(SlowProvider(delay=1.0), timeout=0.01)

        with pytest.raises(EmbeddingUnavailableError, match="timed out"):
            await client.generate_embedding("anything")

    @pytest.mark.asyncio
    async def test_empty_vector_is_unavailable(self):
        client = EmbeddingClient(EmptyVectorProvider())

        with pytest.raises(EmbeddingUnavailableError, match="empty"):
            await client.generate_embedding("anything")

    @pytest.mark.asyncio
    async def test_non_finite_vector_is_unavailable(self):
        provider = BagOfWordsProvider()
        provider.embed = AsyncMock(return_value=[1.0, float("nan")])
        client = EmbeddingClient(provider)

        with pytest.raises(EmbeddingUnavailableError, match="non-finite"):
            await client.generate_embedding("anything")

    @pytest.mark.asyncio
    async def test_vector_of_wrong_dimension_is_unavailable(self):
        provider = BagOfWordsProvider(dimension=8)
        provider.embed = AsyncMock(return_value=[0.5] * 4)
        client = EmbeddingClient(provider)

        with pytest.raises(EmbeddingUnavailableError, match="expected 8"):
            await client.generate_embedding("anything")

    @pytest.mark.asyncio
    async def test_batch_vector_of_wrong_dimension_is_unavailable(self):
        provider = BagOfWordsProvider(dimension=8)
        provider.embed_batch = AsyncMock(return_value=[[0.5] * 8, [0.5] * 3])
        client = EmbeddingClient(provider)

        with pytest.raises(EmbeddingUnavailableError, match="3 dimensions"):
            await client.generate_batch_embeddings(["a", "b"])

    @pytest.mark.asyncio
    async def test_batch_count_mismatch(self):
        provider = BagOfWordsProvider()
        provider.embed_batch = AsyncMock(return_value=[[1.0]])
        client = EmbeddingClient(provider)

        with pytest.raises(EmbeddingUnavailableError, match="Expected 2"):
            await client.generate_batch_embeddings(["a", "b"])


class TestFromSettings:
    def test_none_provider(self):
        client = EmbeddingClient.from_settings(Settings(embedding_provider="none"))

        assert client.provider is None
        assert client.is_configured() is False

    def test_openai_without_key_is_unconfigured(self):
        client = EmbeddingClient.from_settings(
            Settings(embedding_provider="openai", openai_api_key=None)
        )

        assert isinstance(client.provider, OpenAIEmbeddingProvider)
        assert client.is_configured() is False
        assert client.get_model() == "text-embedding-3-small"

    def test_openai_with_key_is_configured(self):
        client = EmbeddingClient.from_settings(
            Settings(embedding_provider="openai", openai_api_key="sk-test")
        )

        assert client.is_configured() is True

    def test_ollama(self):
        client = EmbeddingClient.from_settings(
            Settings(embedding_provider="ollama", ollama_base_url="http://ollama:11434/")
        )

        assert isinstance(client.provider, OllamaEmbeddingProvider)
        assert client.get_model() == "nomic-embed-text"

    def test_model_override(self):
        client = EmbeddingClient.from_settings(
            Settings(
                embedding_provider="ollama",
                embedding_model_override="mxbai-embed-large",
            )
        )

        assert client.get_model() == "mxbai-embed-large"


class TestOpenAIProvider:
    def _client(self, vectors):
        data = [SimpleNamespace(index=i, embedding=v) for i, v in enumerate(vectors)]
        client = MagicMock()
        client.embeddings.create = AsyncMock(return_value=SimpleNamespace(data=data))
        client.close = AsyncMock()
        return client

    def test_satisfies_protocol(self):
        assert isinstance(OpenAIEmbeddingProvider(api_key="sk-test"), EmbeddingProvider)

    def test_client_requires_key(self):
        with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
            OpenAIEmbeddingProvider().client

    def test_dimensions(self):
        assert OpenAIEmbeddingProvider().dimension == 1536
        assert OpenAIEmbeddingProvider(model_name="text-embedding-3-large").dimension == 3072

    @pytest.mark.asyncio
    async def test_embed_clips_input(self):
        client = self._client([[0.1, 0.2]])
        provider = OpenAIEmbeddingProvider(client=client)

        vector = await provider.embed("x" * 20000)

        assert vector == [0.1, 0.2]
        sent = client.embeddings.create.call_args.kwargs["input"]
        assert len(sent) == MAX_INPUT_CHARS
        assert provider.dimension == 2

    @pytest.mark.asyncio
    async def test_embed_batch_orders_by_index(self):
        client = MagicMock()
        shuffled = [
            SimpleNamespace(index=1, embedding=[2.0]),
            SimpleNamespace(index=0, embedding=[1.0]),
        ]
        client.embeddings.create = AsyncMock(return_value=SimpleNamespace(data=shuffled))
        provider = OpenAIEmbeddingProvider(client=client)

        assert await provider.embed_batch(["a", "b"]) == [[1.0], [2.0]]

    @pytest.mark.asyncio
    async def test_embed_batch_chunks_requests(self):
        client = MagicMock()

        async def create(model, input):
            return SimpleNamespace(
                data=[SimpleNamespace(index=i, embedding=[float(i)]) for i in range(len(input))]
            )

        client.embeddings.create = AsyncMock(side_effect=create)
        provider = OpenAIEmbeddingProvider(client=client)

        vectors = await provider.embed_batch(["t"] * (BATCH_SIZE + 5))

        assert len(vectors) == BATCH_SIZE + 5
        assert client.embeddings.create.await_count == 2

    @pytest.mark.asyncio
    async def test_close(self):
        client = self._client([])
        provider = OpenAIEmbeddingProvider(client=client)

        await provider.close()

        client.close.assert_awaited_once()


class TestOllamaProvider:
    def _provider(self, handler):
        transport = httpx.MockTransport(handler)
        return OllamaEmbeddingProvider(
            base_url="http://ollama:11434",
            client=httpx.AsyncClient(transport=transport),
        )

    @pytest.mark.asyncio
    async def test_embed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/embed"
            return httpx.Response(200, json={"embeddings": [[0.5, 0.5, 0.0]]})

        provider = self._provider(handler)

        assert await provider.embed("menu and orders") == [0.5, 0.5, 0.0]
        assert provider.dimension == 3
        await provider.close()

    @pytest.mark.asyncio
    async def test_legacy_single_embedding_response(self):
        provider = self._provider(lambda r: httpx.Response(200, json={"embedding": [1.0]}))

        assert await provider.embed("x") == [1.0]
        await provider.close()

    @pytest.mark.asyncio
    async def test_http_error_becomes_runtime_error(self):
        provider = self._provider(lambda r: httpx.Response(404, json={"error": "model not found"}))

        with pytest.raises(RuntimeError, match="Ollama API error"):
            await provider.embed("x")
        await provider.close()

    @pytest.mark.asyncio
    async def test_batch_count_mismatch(self):
        provider = self._provider(lambda r: httpx.Response(200, json={"embeddings": [[1.0]]}))

        with pytest.raises(ValueError, match="Expected 2"):
            await provider.embed_batch(["a", "b"])
        await provider.close()

    def test_unconfigured_without_base_url(self):
        assert OllamaEmbeddingProvider(base_url="").is_configured is False


class TestLocalProvider:
    @pytest.fixture
    def fake_model(self, monkeypatch):
        from schema_cache.repositories import local_embedding_provider

        model = MagicMock()
        model.encode.side_effect = lambda texts, **kwargs: np.ones((len(texts), 8)) / np.sqrt(8)
        monkeypatch.setattr(local_embedding_provider, "SentenceTransformer", lambda *a, **k: model)
        return model

    @pytest.mark.asyncio
    async def test_full_vector(self, fake_model):
        from schema_cache.repositories.local_embedding_provider import LocalEmbeddingProvider

        provider = LocalEmbeddingProvider(model_name="tiny")

        vector = await provider.embed("orders")

        assert len(vector) == 8
        assert provider.dimension == 8
        assert provider.model_name == "tiny"

    @pytest.mark.asyncio
    async def test_truncated_vector_gets_its_own_model_name(self, fake_model):
        from schema_cache.repositories.local_embedding_provider import LocalEmbeddingProvider

        provider = LocalEmbeddingProvider(model_name="tiny", output_dimension=4)

        vectors = await provider.embed_batch(["a", "b"])

        assert [len(v) for v in vectors] == [4, 4]
        assert provider.dimension == 4
        assert provider.model_name == "tiny@4"
