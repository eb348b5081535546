"""
Tests for pairwise knowledge similarity scoring
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest

from knowledge_core.ai_core.similarity.similarity_engine import (
    SimilarityEngine,
    fast_path_score,
    parse_score,
    tag_score,
    token_overlap_score,
)
from knowledge_core.errors import (
    GenerationNetworkError,
    MissingCredentialError,
    ResponseFormatError,
)
from knowledge_core.models.knowledge import KnowledgeCategory
from tests.fakes import FakeGenerator, make_item


def test_tag_score():
    assert tag_score(["a", "b"], ["a", "b"]) == 100
    assert tag_score(["a", "b"], ["a", "c", "d"]) == pytest.approx(100 / 3)
    assert tag_score([], []) == 0
    assert tag_score(["a"], []) == 0


def test_fast_path_score_is_rescaled():
    assert fast_path_score(100, 100) == pytest.approx(100)
    assert fast_path_score(0, 100) == pytest.approx(100 / 3)
    assert fast_path_score(0, 0) == 0


def test_parse_score():
    assert parse_score("85") == 85
    assert parse_score("Similarity: 72/100") == 72
    assert parse_score("150") == 100
    with pytest.raises(ResponseFormatError):
        parse_score("very similar")


def test_token_overlap_score():
    assert token_overlap_score("deploy the service", "deploy the service") == 100
    assert token_overlap_score("alpha beta", "gamma delta") == 0
    assert token_overlap_score("", "anything here") == 0


@pytest.mark.asyncio
async def test_fast_path_skips_generation():
    generator = FakeGenerator(["10"])
    engine = SimilarityEngine(generator, fast_path_threshold=70)
    a = make_item("a", tags=["deploy", "ci"], category=KnowledgeCategory.WORK)
    b = make_item("b", tags=["deploy", "ci"], category=KnowledgeCategory.WORK)

    score = await engine.similarity(a, b)

    assert generator.calls == []
    assert score >= 70
    assert score == 100


@pytest.mark.asyncio
async def test_semantic_score_from_generator():
    generator = FakeGenerator(["80"])
    engine = SimilarityEngine(generator, fast_path_threshold=70)
    a = make_item("a", tags=["deploy"], category=KnowledgeCategory.WORK)
    b = make_item("b", tags=["travel"], category=KnowledgeCategory.LEISURE)

    score = await engine.similarity(a, b, credential_override="secret")

    assert len(generator.calls) == 1
    assert generator.options[0].credential_override == "secret"
    assert generator.options[0].max_tokens == 50
    assert score == 56  # 80 * 0.7


@pytest.mark.asyncio
async def test_generation_failure_uses_neutral_score():
    generator = FakeGenerator([GenerationNetworkError("timeout")])
    engine = SimilarityEngine(generator, fast_path_threshold=70)
    a = make_item("a", tags=["x"], category=KnowledgeCategory.WORK)
    b = make_item("b", tags=["y"], category=KnowledgeCategory.LIFE)

    score = await engine.similarity(a, b)

    assert score == 35  # 50 * 0.7


@pytest.mark.asyncio
async def test_unparsable_response_uses_neutral_score():
    engine = SimilarityEngine(FakeGenerator(["quite similar"]), fast_path_threshold=70)
    a = make_item("a", category=KnowledgeCategory.WORK)
    b = make_item("b", category=KnowledgeCategory.LIFE)

    assert await engine.similarity(a, b) == 35


@pytest.mark.asyncio
async def test_missing_credential_falls_back_to_token_overlap():
    generator = FakeGenerator([MissingCredentialError("no key")])
    engine = SimilarityEngine(generator, fast_path_threshold=70)
    a = make_item("a", title="Release", content="checklist", category=KnowledgeCategory.WORK)
    b = make_item("b", title="Release", content="checklist", category=KnowledgeCategory.LIFE)

    score = await engine.similarity(a, b)

    assert score == 70  # identical text -> overlap 100, weighted 0.7


@pytest.mark.asyncio
async def test_score_always_in_range():
    engine = SimilarityEngine(FakeGenerator(["100"]), fast_path_threshold=101)
    a = make_item("a", tags=["t"], category=KnowledgeCategory.WORK)
    b = make_item("b", tags=["t"], category=KnowledgeCategory.WORK)

    score = await engine.similarity(a, b)

    assert 0 <= score <= 100
    assert score == 100
