"""
Tests for paragraph-aware chunk splitting
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest

from knowledge_core.ai_core.chunking.chunk_splitter import split_text


def _paragraphs(count: int, size: int = 90) -> str:
    return "\n\n".join(f"Paragraph {i}: " + "a" * size for i in range(count))


def test_short_text_is_single_chunk():
    text = "A short note that fits in one window."

    chunks = split_text(text, chunk_size=100, overlap=10)

    assert len(chunks) == 1
    assert chunks[0].text == text
    assert chunks[0].start_index == 0
    assert chunks[0].end_index == len(text)


def test_chunks_cover_text_without_gaps():
    text = _paragraphs(40)

    chunks = split_text(text, chunk_size=500, overlap=50)

    assert len(chunks) > 1
    assert chunks[0].start_index == 0
    assert chunks[-1].end_index == len(text)
    for previous, current in zip(chunks, chunks[1:]):
        assert current.start_index <= previous.end_index
        assert previous.end_index - current.start_index <= 50
        assert current.start_index > previous.start_index
    for chunk in chunks:
        assert len(chunk.text) <= 500
        assert chunk.text == text[chunk.start_index : chunk.end_index]


def test_prefers_paragraph_breaks():
    text = _paragraphs(40)

    chunks = split_text(text, chunk_size=500, overlap=0)

    for chunk in chunks[:-1]:
        assert chunk.text.endswith("\n\n")


def test_cuts_before_list_markers():
    lines = [f"- item number {i} " + "b" * 40 for i in range(60)]
    text = "\n".join(lines)

    chunks = split_text(text, chunk_size=400, overlap=0)

    for chunk in chunks[1:]:
        assert chunk.text.startswith("- item number")


def test_hard_cut_without_break_points():
    text = "x" * 1050

    chunks = split_text(text, chunk_size=500, overlap=100)

    assert [c.start_index for c in chunks] == [0, 400, 800]
    assert chunks[-1].end_index == 1050


def test_overlap_larger_than_chunk_terminates():
    text = "y" * 30

    chunks = split_text(text, chunk_size=10, overlap=50)

    assert chunks[-1].end_index == 30
    starts = [c.start_index for c in chunks]
    assert starts == sorted(set(starts))


def test_invalid_chunk_size():
    with pytest.raises(ValueError):
        split_text("anything", chunk_size=0)
