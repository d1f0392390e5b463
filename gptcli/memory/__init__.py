"""
Embedding memory.

Text is chunked into Documents, embedded, saved as JSON and later
searched by cosine similarity to inject relevant context into a chat.
"""

from .document import Document, chunk_stream, chunk_text
from .embeddings import (
    EmbeddingService,
    LocalEmbeddingService,
    OpenAIEmbeddingService,
    create_embedding_service,
    embed_documents,
)
from .search import SearchResult, cosine_similarity, find_most_similar, rank
from . import store

__all__ = [
    "Document",
    "chunk_stream",
    "chunk_text",
    "EmbeddingService",
    "LocalEmbeddingService",
    "OpenAIEmbeddingService",
    "create_embedding_service",
    "embed_documents",
    "SearchResult",
    "cosine_similarity",
    "find_most_similar",
    "rank",
    "store",
]
