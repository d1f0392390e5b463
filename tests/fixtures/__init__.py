"""
Test fixtures and fake collaborators for gptcli tests.
"""

from types import SimpleNamespace

from gptcli.llm.base import ChatMessage, GenerationParams, LLMProvider, LLMResponse
from gptcli.memory.document import Document
from gptcli.memory.embeddings import EmbeddingService


def make_document(
    text: str = "The quick brown fox",
    embedding: list[float] | None = None,
    source: str | None = None,
) -> Document:
    """Create a sample Document for testing."""
    return Document(text=text, embedding=list(embedding or [1.0, 0.0]), source=source)


def make_documents(vectors: list[list[float]]) -> list[Document]:
    """Create one document per vector, named doc-0, doc-1, ..."""
    return [make_document(text=f"doc-{i}", embedding=v) for i, v in enumerate(vectors)]


def make_stream_chunk(content: str | None, model: str = "gpt-3.5-turbo"):
    """Create an object shaped like an OpenAI streaming chunk."""
    return SimpleNamespace(
        model=model,
        choices=[SimpleNamespace(delta=SimpleNamespace(content=content))],
    )


async def make_stream(*contents: str | None, error: Exception | None = None):
    """Async iterator of streaming chunks, optionally failing at the end."""
    for content in contents:
        yield make_stream_chunk(content)
    if error is not None:
        raise error


class FakeProvider(LLMProvider):
    """
    Scripted completion provider.

    Each call consumes the next script entry: a list of content fragments,
    or an error string for an unsuccessful response.
    """

    def __init__(self, *scripts: list[str] | str):
        self.scripts = list(scripts)
        self.calls: list[list[ChatMessage]] = []

    @property
    def provider_name(self) -> str:
        return "Fake"

    @property
    def model_name(self) -> str:
        return "fake-model"

    def is_configured(self) -> bool:
        return True

    def _next(self, messages: list[ChatMessage]):
        self.calls.append(list(messages))
        return self.scripts.pop(0)

    async def complete(self, messages: list[ChatMessage], params: GenerationParams) -> LLMResponse:
        script = self._next(messages)
        if isinstance(script, str):
            return LLMResponse.failure(script, model=self.model_name)
        return LLMResponse(content="".join(script), model=self.model_name)

    async def stream(self, messages: list[ChatMessage], params: GenerationParams):
        script = self._next(messages)
        if isinstance(script, str):
            yield LLMResponse.failure(script, model=self.model_name)
            return
        for fragment in script:
            yield LLMResponse(content=fragment, model=self.model_name)


class FakeEmbedder(EmbeddingService):
    """Embedding service backed by a text -> vector lookup table."""

    def __init__(self, vectors: dict[str, list[float]] | None = None, default: list[float] | None = None):
        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0]
        self.batches: list[list[str]] = []

    @property
    def dimension(self) -> int:
        return len(self.default)

    async def embed(self, text: str) -> list[float]:
        return list(self.vectors.get(text, self.default))

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.batches.append(list(texts))
        return [list(self.vectors.get(t, self.default)) for t in texts]
