"""
Linear-scan similarity search over in-memory documents.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from ..errors import InvalidArgumentError
from .document import Document

logger = logging.getLogger("gptcli.memory.search")


@dataclass
class SearchResult:
    """A document and its cosine similarity to the query."""
    document: Document
    similarity: float  # -1 to 1, higher is more similar


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0.0 when either vector has zero magnitude.
    """
    if len(a) != len(b):
        raise InvalidArgumentError(f"Vector dimensions differ: {len(a)} != {len(b)}")

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def rank(documents: Sequence[Document], query: Sequence[float]) -> list[SearchResult]:
    """Score every embedded document, highest similarity first (stable)."""
    if not documents or not query:
        return []

    results = [
        SearchResult(document=doc, similarity=cosine_similarity(doc.embedding, query))
        for doc in documents
        if doc.is_embedded
    ]
    # sort() is stable, so equal scores keep collection order
    results.sort(key=lambda r: r.similarity, reverse=True)
    return results


def find_most_similar(
    documents: Sequence[Document],
    query: Sequence[float],
    limit: int = 3,
) -> list[Document]:
    """
    Return up to ``limit`` documents ranked by cosine similarity to ``query``.

    An empty collection, an empty query or a non-positive limit returns [].
    """
    if limit <= 0:
        return []

    results = rank(documents, query)[:limit]
    for result in results:
        logger.debug(f"Match {result.similarity:.4f}: {result.document.text[:60]!r}")
    return [r.document for r in results]
