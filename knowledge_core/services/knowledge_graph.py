"""
Knowledge Graph & Related Items Service

Consumers of the SimilarityEngine over already-persisted items:
- Graph construction over a bounded neighbourhood with a pair-keyed cache
- Related-item lookup within one collection
"""

import asyncio
import logging
from typing import Dict, List, Optional

from knowledge_core.ai_core.similarity.similarity_engine import (
    NEUTRAL_SEMANTIC_SCORE,
    SimilarityEngine,
)
from knowledge_core.config import Settings, get_settings
from knowledge_core.models.knowledge import (
    GraphEdge,
    GraphNode,
    KnowledgeGraph,
    KnowledgeItem,
    KnowledgeStatus,
    RelatedItem,
)
from knowledge_core.services.repository import KnowledgeRepository, SimilarityCache

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 100
NODE_CONTENT_CHARS = 200


def content_preview(content: str) -> str:
    if len(content) > PREVIEW_CHARS:
        return content[:PREVIEW_CHARS] + "..."
    return content


class KnowledgeGraphService:
    """
    Builds similarity graphs and related-item recommendations.
    """

    def __init__(
        self,
        engine: SimilarityEngine,
        repository: KnowledgeRepository,
        cache: Optional[SimilarityCache] = None,
        settings: Optional[Settings] = None,
    ):
        self.engine = engine
        self.repository = repository
        self.cache = cache
        self.settings = settings or get_settings()

    async def build_graph(
        self,
        items: List[KnowledgeItem],
        min_similarity: int = 60,
        max_edges: int = 50,
        use_cache: bool = True,
        credential_override: Optional[str] = None,
    ) -> KnowledgeGraph:
        """
        Build a similarity graph over the given items.

        Each item is compared only with the next ``graph_window - 1`` items
        in list order, which keeps the number of pairs roughly linear. Scores
        are read from and written to the cache when enabled, so repeated
        builds only pay for new pairs.

        Args:
            items: Items to place in the graph (typically newest first)
            min_similarity: Minimum score for an edge
            max_edges: Keep only the strongest edges
            use_cache: Read/write the similarity cache
            credential_override: Optional per-call generation credential

        Returns:
            KnowledgeGraph with nodes, edges sorted by similarity and
            per-category node counts
        """
        nodes = [
            GraphNode(
                id=item.id,
                title=item.title,
                content=item.content[:NODE_CONTENT_CHARS],
                status=item.status,
                confidence=item.confidence,
                tags=item.tags,
                category=item.category,
                created_at=item.created_at,
            )
            for item in items
        ]

        categories: Dict[str, int] = {}
        for node in nodes:
            categories[node.category.value] = categories.get(node.category.value, 0) + 1

        window = max(2, self.settings.graph_window)
        edges: List[GraphEdge] = []
        computed = 0

        for i, first in enumerate(items):
            for second in items[i + 1 : min(i + window, len(items))]:
                score = None
                if use_cache and self.cache is not None:
                    score = await self._cached(first.id, second.id)

                if score is None:
                    score = await self.engine.similarity(
                        first, second, credential_override
                    )
                    computed += 1
                    if use_cache and self.cache is not None:
                        await self._store(first.id, second.id, score)

                if score >= min_similarity:
                    edges.append(
                        GraphEdge(source=first.id, target=second.id, similarity=score)
                    )

        edges.sort(key=lambda edge: edge.similarity, reverse=True)
        logger.info(
            f"Built graph: {len(nodes)} nodes, {len(edges)} edges "
            f"({computed} new similarity computations)"
        )
        return KnowledgeGraph(
            nodes=nodes, edges=edges[:max_edges], categories=categories
        )

    async def build_graph_for_collection(
        self,
        collection_id: Optional[str] = None,
        limit: int = 100,
        **kwargs,
    ) -> KnowledgeGraph:
        """Graph over the newest confirmed items (optionally of one collection)."""
        items = await self.repository.list_items(
            collection_id=collection_id,
            status=KnowledgeStatus.CONFIRMED,
            limit=limit,
        )
        return await self.build_graph(items, **kwargs)

    async def _cached(self, a_id: str, b_id: str) -> Optional[int]:
        try:
            return await self.cache.get(a_id, b_id)
        except Exception as e:
            logger.warning(f"Failed to read similarity cache: {e}")
            return None

    async def _store(self, a_id: str, b_id: str, score: int) -> None:
        try:
            await self.cache.set(a_id, b_id, score)
        except Exception as e:
            logger.warning(f"Failed to write similarity cache: {e}")

    async def related_items(
        self,
        item_id: str,
        limit: int = 5,
        min_similarity: int = 60,
        credential_override: Optional[str] = None,
    ) -> List[RelatedItem]:
        """
        Recommend items related to ``item_id`` from the same collection.

        Candidates are the newest confirmed items of that collection. Scores
        are computed concurrently; a failing pair falls back to a neutral
        score instead of failing the query.

        Returns:
            Up to ``limit`` items scoring at least ``min_similarity``, best first
        """
        current = await self.repository.get_item(item_id)
        if current is None:
            return []

        candidates = await self.repository.list_items(
            collection_id=current.collection_id,
            status=KnowledgeStatus.CONFIRMED,
            exclude_id=item_id,
            limit=self.settings.related_candidate_limit,
        )
        if not candidates:
            return []

        scores = await asyncio.gather(
            *(
                self.engine.similarity(current, candidate, credential_override)
                for candidate in candidates
            ),
            return_exceptions=True,
        )

        scored = []
        for candidate, score in zip(candidates, scores):
            if isinstance(score, BaseException):
                logger.warning(
                    f"Similarity failed for {item_id} <-> {candidate.id}: {score}"
                )
                score = int(NEUTRAL_SEMANTIC_SCORE)
            if score >= min_similarity:
                scored.append((candidate, score))

        scored.sort(key=lambda pair: pair[1], reverse=True)
        return [
            RelatedItem(
                id=item.id,
                title=item.title,
                content_preview=content_preview(item.content),
                summary=item.summary,
                collection_id=item.collection_id,
                similarity_score=score,
            )
            for item, score in scored[:limit]
        ]
