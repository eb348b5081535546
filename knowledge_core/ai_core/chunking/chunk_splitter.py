"""
Chunk Splitting

Splits oversized document text into overlapping chunks, preferring to cut at
paragraph breaks or list/heading markers near the window boundary.
"""

import re
import logging
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 20000
DEFAULT_OVERLAP = 1000
BREAK_SEARCH_WINDOW = 500

# Cut position is match.end(), so a marker line opens the next chunk
_BREAK_PATTERN = re.compile(
    r"\n[ \t]*\n"  # blank-line paragraph break
    r"|\n(?=[ \t]*#{1,6}\s)"  # markdown heading
    r"|\n(?=[ \t]*[-*+•]\s)"  # bullet
    r"|\n(?=[ \t]*\d{1,3}[.)、]\s?)"  # numbered list
)


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice ``text[start_index:end_index]`` of the document."""

    text: str
    start_index: int
    end_index: int

    def __len__(self) -> int:
        return self.end_index - self.start_index


def _find_break(text: str, window_start: int, window_end: int) -> Optional[int]:
    cut = None
    for match in _BREAK_PATTERN.finditer(text, window_start, window_end):
        if match.end() < window_end:
            cut = match.end()
    return cut


def split_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> List[Chunk]:
    """
    Split text into overlapping, paragraph-aware chunks.

    Chunks cover ``[0, len(text))`` without gaps. Consecutive chunks overlap
    by at most ``overlap`` characters. Each chunk starts at least one character
    after the previous one, so the loop terminates even when
    ``overlap >= chunk_size``.

    Args:
        text: Cleaned document text
        chunk_size: Maximum chunk length
        overlap: Characters repeated at the start of the next chunk

    Returns:
        List of chunks in document order
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    overlap = max(overlap, 0)

    length = len(text)
    if length <= chunk_size:
        return [Chunk(text=text, start_index=0, end_index=length)]

    chunks: List[Chunk] = []
    start = 0
    while start < length:
        end = min(start + chunk_size, length)
        if end < length:
            window_start = max(start + 1, end - BREAK_SEARCH_WINDOW)
            cut = _find_break(text, window_start, end)
            if cut is not None and cut > start:
                end = cut

        chunks.append(Chunk(text=text[start:end], start_index=start, end_index=end))
        if end >= length:
            break
        start = max(end - overlap, start + 1)

    logger.debug(
        f"Split {length} chars into {len(chunks)} chunks "
        f"(chunk_size={chunk_size}, overlap={overlap})"
    )
    return chunks
