"""
Embedding services.

Turns chunk text into vectors, either through the OpenAI embeddings
endpoint (or any OpenAI-compatible server) or a local
sentence-transformers model.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Literal

from openai import AsyncOpenAI, OpenAIError

from ..errors import InvalidArgumentError, ProviderError
from .document import Document

logger = logging.getLogger("gptcli.memory.embeddings")

DEFAULT_OPENAI_MODEL = "text-embedding-ada-002"
DEFAULT_LOCAL_MODEL = "all-MiniLM-L6-v2"


class EmbeddingService(ABC):
    """Produces one vector per input text."""

    @property
    @abstractmethod
    def dimension(self) -> int | None:
        """Vector length, or None until the first vector has been produced."""
        pass

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts; result order matches ``texts``."""
        pass

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]


class OpenAIEmbeddingService(EmbeddingService):
    """Embeddings from the OpenAI API."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_OPENAI_MODEL,
        dimensions: int | None = None,
        base_url: str | None = None,
    ):
        """
        Args:
            api_key: OpenAI API key
            model: Embedding model name
            dimensions: Shortened output size (text-embedding-3 models only).
                        None keeps the model's native size.
            base_url: Optional OpenAI-compatible endpoint
        """
        if dimensions is not None and dimensions <= 0:
            raise InvalidArgumentError(f"dimensions must be positive, got {dimensions}")

        self.api_key = api_key
        self.model = model
        self.dimensions = dimensions
        self.base_url = base_url or None
        self._client: AsyncOpenAI | None = None
        self._observed_dimension: int | None = None

    @property
    def dimension(self) -> int | None:
        return self.dimensions or self._observed_dimension

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        request = {"model": self.model, "input": texts}
        if self.dimensions is not None:
            request["dimensions"] = self.dimensions

        try:
            response = await self._get_client().embeddings.create(**request)
        except OpenAIError as e:
            logger.error(f"OpenAI embedding request failed: {e}")
            raise ProviderError(str(e)) from e

        # The API tags each vector with its input position
        vectors = [item.embedding for item in sorted(response.data, key=lambda d: d.index)]
        if vectors:
            self._observed_dimension = len(vectors[0])
        logger.debug(f"Embedded {len(texts)} texts with {self.model}")
        return vectors


class LocalEmbeddingService(EmbeddingService):
    """Embeddings from a sentence-transformers model on this machine."""

    def __init__(self, model_name: str = DEFAULT_LOCAL_MODEL):
        self.model_name = model_name
        self._model = None

    @property
    def dimension(self) -> int | None:
        if self._model is None:
            return None
        return self._model.get_sentence_embedding_dimension()

    def _load_model(self):
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as e:
                raise ProviderError(
                    "Local embeddings need sentence-transformers: pip install 'gptcli[local]'"
                ) from e
            logger.info(f"Loading local embedding model {self.model_name}")
            try:
                self._model = SentenceTransformer(self.model_name)
            except OSError as e:
                raise ProviderError(
                    f"Could not load local embedding model {self.model_name}: {e}"
                ) from e
        return self._model

    def _encode(self, texts: list[str]) -> list[list[float]]:
        return self._load_model().encode(texts, convert_to_numpy=True).tolist()

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        # Model inference blocks; keep it off the event loop
        return await asyncio.to_thread(self._encode, texts)


def create_embedding_service(
    provider: Literal["openai", "local"] = "openai",
    api_key: str = "",
    model: str = "",
    dimensions: int | None = None,
    base_url: str = "",
) -> EmbeddingService:
    """
    Build the embedding service named by ``provider``.

    An empty ``model`` selects the provider's default model.
    """
    if provider == "local":
        return LocalEmbeddingService(model or DEFAULT_LOCAL_MODEL)

    if provider != "openai":
        raise ValueError(f"Unknown embedding provider: {provider}")
    if not api_key:
        raise ValueError("OpenAI API key required for openai embedding provider")
    return OpenAIEmbeddingService(
        api_key,
        model=model or DEFAULT_OPENAI_MODEL,
        dimensions=dimensions,
        base_url=base_url,
    )


async def embed_documents(
    service: EmbeddingService,
    documents: list[Document],
    batch_size: int = 64,
) -> list[Document]:
    """
    Assign an embedding to every document that has none yet.

    Documents are sent in batches; order is preserved.

    Raises:
        ProviderError: If the service returns the wrong number of vectors.
    """
    pending = [d for d in documents if not d.is_embedded]
    for start in range(0, len(pending), batch_size):
        batch = pending[start:start + batch_size]
        vectors = await service.embed_batch([d.text for d in batch])
        if len(vectors) != len(batch):
            raise ProviderError(
                f"Embedding service returned {len(vectors)} vectors for {len(batch)} texts"
            )
        for document, vector in zip(batch, vectors):
            document.assign_embedding(vector)
        logger.info(f"Embedded {start + len(batch)}/{len(pending)} documents")

    return documents
