"""
Unit tests for gptcli/memory/embeddings.py

Tests the OpenAI embedding service with a mocked client and the
document embedding helper.
"""

import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from openai import OpenAIError

from gptcli.errors import InvalidArgumentError, ProviderError
from gptcli.memory.document import Document, chunk_text
from gptcli.memory.embeddings import (
    LocalEmbeddingService,
    OpenAIEmbeddingService,
    create_embedding_service,
    embed_documents,
)
from tests.fixtures import FakeEmbedder


class TestOpenAIEmbeddingService:
    """Tests for OpenAIEmbeddingService."""

    def test_defaults(self):
        service = OpenAIEmbeddingService(api_key="test-key")

        assert service.model == "text-embedding-ada-002"
        assert service.dimension is None  # Unknown until the first response
        assert service._client is None  # Lazy loaded

    def test_requested_dimensions(self):
        service = OpenAIEmbeddingService(
            api_key="test-key", model="text-embedding-3-large", dimensions=1024
        )

        assert service.dimension == 1024

    def test_non_positive_dimensions_rejected(self):
        with pytest.raises(InvalidArgumentError):
            OpenAIEmbeddingService(api_key="test-key", dimensions=0)

    @pytest.mark.asyncio
    async def test_embed(self, mock_openai_embeddings):
        service = OpenAIEmbeddingService(api_key="test-key", base_url="http://localhost:8000/v1")

        vector = await service.embed("hello")

        assert vector == [0.0, 5.0]
        assert service.dimension == 2
        mock_openai_embeddings.assert_called_once_with(
            api_key="test-key", base_url="http://localhost:8000/v1"
        )

    @pytest.mark.asyncio
    async def test_embed_batch_preserves_order(self, mock_openai_embeddings):
        service = OpenAIEmbeddingService(api_key="test-key")

        vectors = await service.embed_batch(["a", "bb", "ccc"])

        assert vectors == [[0.0, 1.0], [1.0, 2.0], [2.0, 3.0]]

    @pytest.mark.asyncio
    async def test_dimensions_sent_when_requested(self, mock_openai_embeddings):
        service = OpenAIEmbeddingService(
            api_key="test-key", model="text-embedding-3-small", dimensions=256
        )

        await service.embed("hello")

        call_kwargs = mock_openai_embeddings.return_value.embeddings.create.call_args.kwargs
        assert call_kwargs["dimensions"] == 256

    @pytest.mark.asyncio
    async def test_embed_batch_empty(self, mock_openai_embeddings):
        service = OpenAIEmbeddingService(api_key="test-key")

        assert await service.embed_batch([]) == []
        mock_openai_embeddings.return_value.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_api_error_becomes_provider_error(self, mock_openai_embeddings):
        mock_openai_embeddings.return_value.embeddings.create = AsyncMock(
            side_effect=OpenAIError("rate limited")
        )
        service = OpenAIEmbeddingService(api_key="test-key")

        with pytest.raises(ProviderError, match="rate limited"):
            await service.embed("hello")


class TestLocalEmbeddingService:
    """Tests for LocalEmbeddingService with a stand-in model object."""

    @pytest.mark.asyncio
    async def test_embed_batch(self):
        service = LocalEmbeddingService()
        service._model = MagicMock()
        service._model.encode.return_value.tolist.return_value = [[0.1, 0.2], [0.3, 0.4]]
        service._model.get_sentence_embedding_dimension.return_value = 2

        vectors = await service.embed_batch(["a", "b"])

        assert vectors == [[0.1, 0.2], [0.3, 0.4]]
        assert service.dimension == 2
        service._model.encode.assert_called_once_with(["a", "b"], convert_to_numpy=True)

    def test_dimension_unknown_before_load(self):
        assert LocalEmbeddingService().dimension is None

    @pytest.mark.asyncio
    async def test_unknown_model_becomes_provider_error(self):
        module = MagicMock()
        module.SentenceTransformer.side_effect = OSError("text-embedding-ada-002 is not a valid model")
        service = LocalEmbeddingService("text-embedding-ada-002")

        with patch.dict(sys.modules, {"sentence_transformers": module}):
            with pytest.raises(ProviderError, match="Could not load local embedding model"):
                await service.embed_batch(["hello"])


class TestCreateEmbeddingService:
    """Tests for the factory."""

    def test_openai(self):
        service = create_embedding_service("openai", api_key="key", model="text-embedding-3-small")

        assert isinstance(service, OpenAIEmbeddingService)
        assert service.model == "text-embedding-3-small"

    def test_openai_requires_key(self):
        with pytest.raises(ValueError, match="API key"):
            create_embedding_service("openai")

    def test_local(self):
        service = create_embedding_service("local")

        assert isinstance(service, LocalEmbeddingService)
        assert service.model_name == "all-MiniLM-L6-v2"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown embedding provider"):
            create_embedding_service("bogus")


class TestEmbedDocuments:
    """Tests for embed_documents."""

    @pytest.mark.asyncio
    async def test_fills_every_vector_in_order(self):
        docs = chunk_text("abcdefghijklmno", 5)
        embedder = FakeEmbedder({"abcde": [1.0, 0.0], "fghij": [0.0, 1.0], "klmno": [1.0, 1.0]})

        result = await embed_documents(embedder, docs)

        assert result is docs
        assert [d.embedding for d in docs] == [[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]]

    @pytest.mark.asyncio
    async def test_batches(self):
        docs = chunk_text("x" * 10, 1)
        embedder = FakeEmbedder()

        await embed_documents(embedder, docs, batch_size=4)

        assert [len(b) for b in embedder.batches] == [4, 4, 2]

    @pytest.mark.asyncio
    async def test_already_embedded_documents_skipped(self):
        done = Document(text="done", embedding=[0.0, 1.0])
        pending = Document(text="pending")
        embedder = FakeEmbedder()

        await embed_documents(embedder, [done, pending])

        assert embedder.batches == [["pending"]]
        assert done.embedding == [0.0, 1.0]
        assert pending.embedding == [1.0, 0.0]

    @pytest.mark.asyncio
    async def test_vector_count_mismatch(self):
        embedder = FakeEmbedder()
        embedder.embed_batch = AsyncMock(return_value=[[1.0]])

        with pytest.raises(ProviderError):
            await embed_documents(embedder, chunk_text("abcd", 2))
