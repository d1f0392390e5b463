"""
Embedding file storage.

Documents are persisted as a JSON array, one object per chunk, in order:

    [{"text": "...", "embedding": [0.1, ...], "source": "notes.txt"}, ...]

``source`` is only written when set. Files written by the older .NET
tool use capitalised keys (``Text`` / ``Embedding``) and load as well.
"""

import json
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import IO, Any

from ..errors import CorruptDataError, NotFoundError, StoreIOError
from .document import Document

logger = logging.getLogger("gptcli.memory.store")


def _document_to_dict(document: Document) -> dict[str, Any]:
    data: dict[str, Any] = {"text": document.text, "embedding": document.embedding}
    if document.source is not None:
        data["source"] = document.source
    return data


def _dict_to_document(item: Any, index: int) -> Document:
    if not isinstance(item, dict):
        raise CorruptDataError(f"Entry {index} is not an object")

    text = item.get("text", item.get("Text"))
    if not isinstance(text, str) or not text:
        raise CorruptDataError(f"Entry {index} has a missing or empty text field")

    embedding = item.get("embedding", item.get("Embedding"))
    if not isinstance(embedding, list):
        raise CorruptDataError(f"Entry {index} has a missing embedding field")
    for value in embedding:
        # bool is an int subclass but never a vector component
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise CorruptDataError(f"Entry {index} has a non-numeric embedding value: {value!r}")

    source = item.get("source")
    if source is not None and not isinstance(source, str):
        raise CorruptDataError(f"Entry {index} has a non-string source")

    return Document(text=text, embedding=[float(v) for v in embedding], source=source)


def _check_dimensions(documents: list[Document], origin: str) -> None:
    dimensions = {d.dimension for d in documents if d.is_embedded}
    if len(dimensions) > 1:
        raise CorruptDataError(
            f"Mixed embedding dimensions in {origin}: {sorted(dimensions)}"
        )


def dumps(documents: Iterable[Document]) -> str:
    """Serialize documents to the JSON embedding format."""
    return json.dumps([_document_to_dict(d) for d in documents], ensure_ascii=False)


def save(documents: Iterable[Document], destination: str | os.PathLike | IO[str]) -> None:
    """Write documents to a path or an open text file."""
    payload = dumps(documents)
    if isinstance(destination, (str, os.PathLike)):
        try:
            Path(destination).write_text(payload, encoding="utf-8")
        except OSError as e:
            raise StoreIOError(f"Could not write embeddings to {destination}: {e}") from e
        logger.info(f"Saved embeddings to {destination}")
    else:
        try:
            destination.write(payload)
        except OSError as e:
            raise StoreIOError(f"Could not write embeddings to stream: {e}") from e


def loads(data: str | bytes, origin: str = "<string>") -> list[Document]:
    """
    Parse the JSON embedding format.

    Raises:
        CorruptDataError: If the data is not a list of well-formed documents.
    """
    try:
        parsed = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CorruptDataError(f"Could not parse embeddings from {origin}: {e}") from e

    if not isinstance(parsed, list):
        raise CorruptDataError(f"Expected a JSON array of documents in {origin}")

    documents = [_dict_to_document(item, i) for i, item in enumerate(parsed)]
    _check_dimensions(documents, origin)
    return documents


def load(source: str | os.PathLike | IO) -> list[Document]:
    """
    Load documents from a path or an open file.

    Raises:
        NotFoundError: If a path does not exist.
        StoreIOError: If the source could not be read.
        CorruptDataError: If the content could not be parsed.
    """
    if isinstance(source, (str, os.PathLike)):
        path = Path(source)
        if not path.exists():
            raise NotFoundError(f"Embedding file not found: {path}")
        try:
            data = path.read_bytes()
        except OSError as e:
            raise StoreIOError(f"Could not read embedding file {path}: {e}") from e
        origin = str(path)
    else:
        try:
            data = source.read()
        except OSError as e:
            raise StoreIOError(f"Could not read embedding stream: {e}") from e
        origin = getattr(source, "name", "<stream>")

    documents = loads(data, origin=str(origin))
    logger.debug(f"Loaded {len(documents)} documents from {origin}")
    return documents


def _directory_files(directory: Path) -> list[Path]:
    if not directory.exists():
        raise NotFoundError(f"Embedding directory not found: {directory}")
    if not directory.is_dir():
        raise NotFoundError(f"Not a directory: {directory}")
    try:
        return sorted(p for p in directory.iterdir() if p.is_file())
    except OSError as e:
        raise StoreIOError(f"Could not list embedding directory {directory}: {e}") from e


def load_many(
    files: Iterable[str | os.PathLike] = (),
    directories: Iterable[str | os.PathLike] = (),
) -> list[Document]:
    """
    Load and concatenate every file and every directory's files.

    Files are loaded in the order given, then each directory's immediate
    files (non-recursive) in sorted order. Any missing, unreadable or
    corrupt source aborts the whole load; a partial working set is never
    returned.
    """
    sources = [Path(f) for f in files]
    for directory in directories:
        sources.extend(_directory_files(Path(directory)))

    documents: list[Document] = []
    for path in sources:
        # Each source is parsed in full before it is merged
        documents.extend(load(path))

    _check_dimensions(documents, "loaded embedding sources")
    logger.info(f"Loaded {len(documents)} documents from {len(sources)} embedding files")
    return documents
