"""Prompts package."""

from knowledge_core.ai_core.prompts.extraction import (
    EXTRACTION_SYSTEM_PROMPT,
    EXTRACTION_USER_PROMPT_TEMPLATE,
    build_extraction_messages,
)
from knowledge_core.ai_core.prompts.similarity import (
    SIMILARITY_SYSTEM_PROMPT,
    build_similarity_messages,
)

__all__ = [
    "EXTRACTION_SYSTEM_PROMPT",
    "EXTRACTION_USER_PROMPT_TEMPLATE",
    "build_extraction_messages",
    "SIMILARITY_SYSTEM_PROMPT",
    "build_similarity_messages",
]
