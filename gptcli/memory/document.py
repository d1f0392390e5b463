"""
Documents and text chunking.

A Document is the unit that gets embedded, stored and retrieved: a
bounded slice of source text plus its embedding vector once one has
been assigned.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import BinaryIO, TextIO

from ..errors import InvalidArgumentError

logger = logging.getLogger("gptcli.memory.document")

DEFAULT_CHUNK_SIZE = 1024


@dataclass
class Document:
    """A chunk of text and (once embedded) its vector."""
    text: str
    embedding: list[float] = field(default_factory=list)
    source: str | None = None  # file name or "stdin"

    def __post_init__(self):
        if not self.text:
            raise InvalidArgumentError("Document text must not be empty")

    @property
    def is_embedded(self) -> bool:
        return bool(self.embedding)

    @property
    def dimension(self) -> int:
        return len(self.embedding)

    def assign_embedding(self, vector: list[float]) -> None:
        """Populate the vector. Allowed exactly once."""
        if self.embedding:
            raise InvalidArgumentError("Document already has an embedding")
        if not vector:
            raise InvalidArgumentError("Embedding vector must not be empty")
        self.embedding = [float(v) for v in vector]


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    source: str | None = None,
) -> list[Document]:
    """
    Split text into Documents of at most ``chunk_size`` characters.

    Splitting is on raw character count, not on word or sentence
    boundaries; the final chunk may be shorter.

    Raises:
        InvalidArgumentError: If chunk_size is not positive.
    """
    if chunk_size <= 0:
        raise InvalidArgumentError(f"chunk_size must be positive, got {chunk_size}")

    documents = [
        Document(text=text[i:i + chunk_size], source=source)
        for i in range(0, len(text), chunk_size)
    ]
    logger.debug(
        f"Chunked {len(text)} characters into {len(documents)} documents "
        f"(expected {math.ceil(len(text) / chunk_size)})"
    )
    return documents


def chunk_stream(
    stream: TextIO | BinaryIO,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    source: str | None = None,
) -> list[Document]:
    """
    Read a whole stream and chunk it.

    The stream is read to completion in memory; binary streams are
    decoded as UTF-8.
    """
    if chunk_size <= 0:
        raise InvalidArgumentError(f"chunk_size must be positive, got {chunk_size}")

    try:
        data = stream.read()
        if isinstance(data, bytes):
            data = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidArgumentError(f"Input from {source or 'stream'} is not valid UTF-8: {e}") from e
    return chunk_text(data, chunk_size, source=source)
