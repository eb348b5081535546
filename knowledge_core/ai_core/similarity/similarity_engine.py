"""
Knowledge Item Similarity

Scores pairwise similarity (0-100) between two knowledge items for graph
construction and related-item recommendation.

Score = semantic * 0.7 + tag overlap * 0.2 + category match * 0.1, where the
semantic part comes from a generation call unless the cheap tag/category
estimate is already conclusive.
"""

import re
import logging
from typing import Optional, Sequence

from knowledge_core.ai_core.generation.text_generator import (
    GenerationOptions,
    TextGenerator,
)
from knowledge_core.ai_core.prompts.similarity import build_similarity_messages
from knowledge_core.config import get_settings
from knowledge_core.errors import MissingCredentialError, ResponseFormatError
from knowledge_core.models.knowledge import KnowledgeItem

logger = logging.getLogger(__name__)

SEMANTIC_WEIGHT = 0.7
TAG_WEIGHT = 0.2
CATEGORY_WEIGHT = 0.1
NEUTRAL_SEMANTIC_SCORE = 50.0
MAX_COMPARE_CHARS = 2000


def tag_score(tags_a: Sequence[str], tags_b: Sequence[str]) -> float:
    """Shared tags over the larger tag set, scaled to 0-100."""
    set_a, set_b = set(tags_a or []), set(tags_b or [])
    if not set_a and not set_b:
        return 0.0
    return len(set_a & set_b) / max(len(set_a), len(set_b)) * 100


def category_score(a: KnowledgeItem, b: KnowledgeItem) -> float:
    if a.category and b.category and a.category == b.category:
        return 100.0
    return 0.0


def fast_path_score(tag: float, category: float) -> float:
    """Tag/category estimate rescaled to 0-100 (its weights sum to 0.3)."""
    return (tag * TAG_WEIGHT + category * CATEGORY_WEIGHT) / (
        TAG_WEIGHT + CATEGORY_WEIGHT
    )


def compare_text(item: KnowledgeItem) -> str:
    return f"{item.title} {item.content}"[:MAX_COMPARE_CHARS]


def token_overlap_score(text_a: str, text_b: str) -> float:
    """Shared-token ratio used when no generation credential exists."""
    words_a = [w for w in text_a.lower().split() if len(w) > 1]
    words_b = [w for w in text_b.lower().split() if len(w) > 1]
    if not words_a or not words_b:
        return 0.0
    vocabulary_b = set(words_b)
    common = sum(1 for w in words_a if w in vocabulary_b)
    return min(max(common / max(len(words_a), len(words_b)) * 100, 0.0), 100.0)


def parse_score(response: str) -> float:
    match = re.search(r"\d+", response or "")
    if not match:
        raise ResponseFormatError(f"No score in similarity response: {response[:50]!r}")
    return float(min(max(int(match.group(0)), 0), 100))


class SimilarityEngine:
    """
    Cost-aware similarity scorer.

    Unambiguous pairs (shared tags, same category) skip the generation call.
    A single pair never raises.
    """

    def __init__(
        self,
        generator: TextGenerator,
        fast_path_threshold: Optional[float] = None,
    ):
        settings = get_settings()
        self.generator = generator
        self.fast_path_threshold = (
            settings.similarity_fast_path_threshold
            if fast_path_threshold is None
            else fast_path_threshold
        )
        self.max_tokens = settings.similarity_max_tokens
        self.temperature = settings.similarity_temperature
        self.timeout_ms = settings.generation_timeout_ms

    async def similarity(
        self,
        a: KnowledgeItem,
        b: KnowledgeItem,
        credential_override: Optional[str] = None,
    ) -> int:
        """
        Score the similarity of two items.

        Args:
            a: First item
            b: Second item
            credential_override: Optional per-call generation credential

        Returns:
            Integer score in [0, 100]
        """
        tags = tag_score(a.tags, b.tags)
        category = category_score(a, b)

        fast = fast_path_score(tags, category)
        if fast >= self.fast_path_threshold:
            semantic = min(100.0, fast * 1.2)
            logger.debug(f"Fast path for {a.id} <-> {b.id} (estimate {fast:.1f})")
        else:
            semantic = await self._semantic_score(a, b, credential_override)

        score = round(
            semantic * SEMANTIC_WEIGHT + tags * TAG_WEIGHT + category * CATEGORY_WEIGHT
        )
        return int(min(max(score, 0), 100))

    async def _semantic_score(
        self,
        a: KnowledgeItem,
        b: KnowledgeItem,
        credential_override: Optional[str],
    ) -> float:
        text_a, text_b = compare_text(a), compare_text(b)
        options = GenerationOptions(
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            timeout_ms=self.timeout_ms,
            credential_override=credential_override,
        )
        try:
            response = await self.generator.generate(
                build_similarity_messages(text_a, text_b), options
            )
            return parse_score(response)
        except MissingCredentialError:
            logger.info("No generation credential, using token overlap for similarity")
            return token_overlap_score(text_a, text_b)
        except Exception as e:
            logger.warning(
                f"Semantic similarity failed for {a.id} <-> {b.id}, using neutral score: {e}"
            )
            return NEUTRAL_SEMANTIC_SCORE
