"""
Tests for per-document knowledge extraction

Chunks are processed sequentially; a failing chunk is skipped while
credential failures abort the document.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import json

import pytest

from knowledge_core.ai_core.chunking.chunk_splitter import split_text
from knowledge_core.ai_core.extraction.knowledge_extractor import KnowledgeExtractor
from knowledge_core.config import Settings
from knowledge_core.errors import CredentialError, GenerationNetworkError
from tests.fakes import FakeGenerator


def _reply(title: str, tags=None) -> str:
    return json.dumps(
        [{"title": title, "content": f"Details about {title}", "tags": tags or ["project"]}]
    )


@pytest.fixture
def settings():
    return Settings(
        chunk_size=200, chunk_overlap=20, chunk_delay_ms=0, min_clean_length=10
    )


@pytest.fixture
def long_document():
    return "\n\n".join(
        f"Section {i}: the deployment runbook covers step {i} in detail " + "z" * 40
        for i in range(8)
    )


@pytest.mark.asyncio
async def test_single_chunk_document(settings):
    generator = FakeGenerator([_reply("Deploy window")])
    extractor = KnowledgeExtractor(generator, settings)

    drafts = await extractor.extract_from_content(
        "Deploys happen on Tuesdays after the standup.", "doc-1", source_page=2
    )

    assert len(generator.calls) == 1
    assert [d.title for d in drafts] == ["Deploy window"]
    assert drafts[0].source_item_id == "doc-1"
    assert drafts[0].source_page == 2
    assert generator.options[0].max_tokens == settings.extraction_max_tokens


@pytest.mark.asyncio
async def test_multi_chunk_document_in_order(settings, long_document):
    expected_chunks = len(
        split_text(long_document, settings.chunk_size, settings.chunk_overlap)
    )
    assert expected_chunks > 1

    generator = FakeGenerator(lambda messages: _reply(f"Chunk item {len(generator.calls)}"))
    extractor = KnowledgeExtractor(generator, settings)

    drafts = await extractor.extract_from_content(long_document, "doc-2")

    assert len(generator.calls) == expected_chunks
    assert [d.title for d in drafts] == [
        f"Chunk item {i}" for i in range(1, expected_chunks + 1)
    ]
    assert all(d.source_item_id == "doc-2" for d in drafts)


@pytest.mark.asyncio
async def test_failing_chunk_is_skipped(settings, long_document):
    def replies(messages):
        if len(generator.calls) == 2:
            return GenerationNetworkError("connection reset")
        return _reply(f"Item {len(generator.calls)}")

    generator = FakeGenerator(replies)
    extractor = KnowledgeExtractor(generator, settings)

    drafts = await extractor.extract_from_content(long_document, "doc-3")

    titles = [d.title for d in drafts]
    assert "Item 2" not in titles
    assert titles[0] == "Item 1"
    assert len(titles) == len(generator.calls) - 1


@pytest.mark.asyncio
async def test_rate_limit_reply_skips_only_that_chunk(settings, long_document):
    def replies(messages):
        if len(generator.calls) == 1:
            return "Rate limit exceeded, please retry later."
        return _reply(f"Item {len(generator.calls)}")

    generator = FakeGenerator(replies)
    extractor = KnowledgeExtractor(generator, settings)

    drafts = await extractor.extract_from_content(long_document, "doc-4")

    assert "Item 1" not in [d.title for d in drafts]
    assert len(drafts) == len(generator.calls) - 1


@pytest.mark.asyncio
async def test_credential_error_aborts_document(settings, long_document):
    generator = FakeGenerator([_reply("First"), CredentialError("401 Unauthorized")])
    extractor = KnowledgeExtractor(generator, settings)

    with pytest.raises(CredentialError):
        await extractor.extract_from_content(long_document, "doc-5")

    assert len(generator.calls) == 2


@pytest.mark.asyncio
async def test_auth_reply_text_aborts_document(settings):
    generator = FakeGenerator(["Authentication failed: invalid API key"])
    extractor = KnowledgeExtractor(generator, settings)

    with pytest.raises(CredentialError):
        await extractor.extract_from_content("Some meeting notes to extract.", "doc-6")


@pytest.mark.asyncio
async def test_blank_content_makes_no_calls(settings):
    generator = FakeGenerator([_reply("unused")])
    extractor = KnowledgeExtractor(generator, settings)

    assert await extractor.extract_from_content("", "doc-7") == []
    assert await extractor.extract_from_content("   \n\n  ", "doc-7") == []
    assert generator.calls == []


@pytest.mark.asyncio
async def test_credential_override_is_forwarded(settings):
    generator = FakeGenerator([_reply("Scoped")])
    extractor = KnowledgeExtractor(generator, settings)

    await extractor.extract_from_content(
        "Short note about the project kickoff.", "doc-8", credential_override="per-call"
    )

    assert generator.options[0].credential_override == "per-call"
