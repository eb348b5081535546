"""
Tests for response repair parsing

Covers the repair strategies, service-error detection and draft validation.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest

from knowledge_core.ai_core.parsing.response_parser import (
    apply_repairs,
    detect_service_error,
    locate_items,
    parse_response,
)
from knowledge_core.errors import CredentialError, RateLimitError


def test_parses_clean_array():
    response = (
        '[{"title": "Deploy window", "content": "Deploys happen on Tuesdays.", '
        '"summary": "Tuesday deploys", "keyConclusions": ["No Friday deploys"], '
        '"confidence": 85, "tags": ["project", "delivery"]}]'
    )

    drafts = parse_response(response, source_item_id="doc-1")

    assert len(drafts) == 1
    draft = drafts[0]
    assert draft.title == "Deploy window"
    assert draft.key_conclusions == ["No Friday deploys"]
    assert draft.confidence == 85
    assert draft.tags == ["project", "delivery"]
    assert draft.source_item_id == "doc-1"


def test_array_wrapped_in_prose():
    response = (
        "Sure! Here is what I found:\n"
        '[{"title": "Backups", "content": "Nightly backups run at 2am."}]\n'
        "Let me know if you need anything else."
    )

    drafts = parse_response(response)

    assert [d.title for d in drafts] == ["Backups"]


def test_repairs_raw_newline_inside_string():
    response = '[{"title": "Runbook", "content": "Step one\nStep two", "tags": ["ops"]}]'

    drafts = parse_response(response)

    assert len(drafts) == 1
    assert drafts[0].content == "Step one\nStep two"


def test_repairs_pretty_printed_with_stray_tabs():
    response = '[\n  {\n\t"title": "On-call",\n\t"content": "Rotate weekly"\n  }\n]'

    drafts = parse_response(response)

    assert drafts[0].title == "On-call"
    assert drafts[0].content == "Rotate weekly"


def test_single_object_is_wrapped():
    response = 'Result: {"title": "Single", "content": "Only one item here."}'

    drafts = parse_response(response)

    assert len(drafts) == 1
    assert drafts[0].title == "Single"


def test_garbage_yields_empty_list():
    assert parse_response("I could not find any knowledge in this text.") == []
    assert parse_response("[not json at all") == []
    assert parse_response("") == []
    assert parse_response("   ") == []


def test_entries_without_title_or_content_are_dropped():
    response = (
        '[{"title": "Kept", "content": "Has both fields"},'
        ' {"title": "   ", "content": "Blank title"},'
        ' {"content": "Missing title"},'
        ' "not an object"]'
    )

    drafts = parse_response(response)

    assert [d.title for d in drafts] == ["Kept"]


def test_confidence_and_tags_are_normalised():
    response = (
        '[{"title": "A", "content": "a", "confidence": 150, '
        '"tags": ["t1", "t2", "t3", "t4", "t5", "t6", "t7"]},'
        ' {"title": "B", "content": "b", "confidence": "high"},'
        ' {"title": "C", "content": "c", "confidence": 0}]'
    )

    drafts = parse_response(response)

    assert drafts[0].confidence == 100
    assert drafts[0].tags == ["t1", "t2", "t3", "t4", "t5"]
    assert drafts[1].confidence == 70
    assert drafts[2].confidence == 0


def test_source_page_is_stamped():
    response = '[{"title": "Paged", "content": "From page three", "sourcePage": 9}]'

    drafts = parse_response(response, source_item_id="doc-7", source_page=3)

    assert drafts[0].source_page == 3
    assert drafts[0].source_item_id == "doc-7"


def test_auth_message_raises_credential_error():
    with pytest.raises(CredentialError):
        parse_response("Error: Invalid API key provided. Please check your settings.")


def test_rate_limit_message_raises_rate_limit_error():
    with pytest.raises(RateLimitError):
        parse_response("429 Too Many Requests: please slow down")


def test_keywords_inside_extracted_content_are_not_errors():
    response = (
        '[{"title": "API rate limit policy", '
        '"content": "Clients that hit the rate limit get 429 Too Many Requests."}]'
    )

    drafts = parse_response(response)

    assert drafts[0].title == "API rate limit policy"


def test_detect_service_error_passes_clean_text():
    detect_service_error('Here are the items: [{"title": "x", "content": "y"}]')


def test_apply_repairs_returns_none_when_unrecoverable():
    assert apply_repairs('{"title": "broken", ') is None


def test_single_object_with_array_fields_is_wrapped():
    response = (
        '{"title": "Single", "content": "Only one item.", '
        '"keyConclusions": ["Page the secondary"], "tags": ["ops", "oncall"]}'
    )

    drafts = parse_response(response)

    assert len(drafts) == 1
    assert drafts[0].title == "Single"
    assert drafts[0].tags == ["ops", "oncall"]
    assert drafts[0].key_conclusions == ["Page the secondary"]


def test_items_array_nested_in_wrapper_object():
    response = '{"items": [{"title": "Nested", "content": "Inside a wrapper", "tags": ["a"]}]}'

    drafts = parse_response(response)

    assert [d.title for d in drafts] == ["Nested"]


def test_locate_items_skips_inner_tag_array():
    text = 'Answer: {"title": "T", "content": "C", "tags": ["x", "y"]}'

    items, span = locate_items(text)

    assert items == [{"title": "T", "content": "C", "tags": ["x", "y"]}]
    assert text[span[0] : span[1]].startswith('{"title"')


def test_json_error_body_with_auth_message_raises_credential_error():
    response = (
        '{"error": {"message": "Incorrect API key provided", '
        '"type": "invalid_request_error"}}'
    )

    with pytest.raises(CredentialError):
        parse_response(response)


def test_json_error_body_with_quota_message_raises_rate_limit_error():
    response = '{"error": {"code": "insufficient_quota", "message": "You exceeded your quota"}}'

    with pytest.raises(RateLimitError):
        parse_response(response)


def test_detect_service_error_scans_whole_text_without_items_span():
    with pytest.raises(CredentialError):
        detect_service_error('{"detail": "Unauthorized"}')
