"""Sliding-window text chunking.

Text is cut into windows of ``chunk_size`` characters; each window starts
``chunk_size - chunk_overlap`` characters after the previous one, so adjacent
chunks share ``chunk_overlap`` characters. A window starts at every multiple
of the step below the text length, except a trailing window that would lie
entirely inside the previous chunk's overlap. That gives
``max(1, ceil((len(text) - chunk_overlap) / step))`` chunks for non-empty
text, never more than ``ceil(len(text) / step)``; the last one may be shorter.
Dropping the first ``chunk_overlap`` characters of every chunk after the
first and concatenating gives back the input unchanged.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class TextChunk:
    """A chunk of text with its position index."""
    index: int
    content: str
    char_count: int
    # Offset of the chunk's first character in the source text
    start: int = 0


def _validate(chunk_size: int, chunk_overlap: int) -> None:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if chunk_overlap < 0:
        raise ValueError(f"chunk_overlap must not be negative, got {chunk_overlap}")
    if chunk_overlap >= chunk_size:
        raise ValueError(
            f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})"
        )


def iter_chunks(
    text: str,
    chunk_size: int = 4000,
    chunk_overlap: int = 200,
) -> Iterator[TextChunk]:
    """Lazily yield overlapping chunks of ``text``.

    Raises:
        ValueError: If the size parameters are inconsistent.
    """
    _validate(chunk_size, chunk_overlap)
    step = chunk_size - chunk_overlap
    length = len(text)
    start = 0
    index = 0
    while start < length:
        # The previous chunk already covers the rest of the text
        if index > 0 and start + chunk_overlap >= length:
            break
        content = text[start:start + chunk_size]
        yield TextChunk(index=index, content=content, char_count=len(content), start=start)
        start += step
        index += 1


def chunk_text(
    text: str,
    chunk_size: int = 4000,
    chunk_overlap: int = 200,
) -> list[TextChunk]:
    """Split text into overlapping chunks.

    Args:
        text: The input text to chunk. Expected to be normalized already.
        chunk_size: Maximum characters per chunk.
        chunk_overlap: Characters shared by adjacent chunks.

    Returns:
        List of TextChunk objects in source order. Empty text gives ``[]``.
    """
    return list(iter_chunks(text, chunk_size, chunk_overlap))


def merge_chunks(chunks: list[TextChunk], chunk_overlap: int) -> str:
    """Rebuild the source text from chunks produced with ``chunk_overlap``."""
    if not chunks:
        return ""
    parts = [chunks[0].content]
    parts.extend(c.content[chunk_overlap:] for c in chunks[1:])
    return "".join(parts)
