"""
Knowledge Item Models

This module defines the data models for extracted knowledge items, their
classification configuration and the similarity-derived views built on top
of persisted items.
"""

from datetime import datetime, timezone
from typing import List, Optional, Dict, Any
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CONFIDENCE = 70
MAX_TAGS = 5


class KnowledgeCategory(str, Enum):
    """Fixed top-level knowledge categories."""

    WORK = "work"  # Default / baseline category
    LEARNING = "learning"
    LEISURE = "leisure"
    LIFE = "life"


class KnowledgeStatus(str, Enum):
    """Review status of a persisted knowledge item."""

    PENDING = "pending"  # AI-derived items start here
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


def _clamp_confidence(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if number != number:  # NaN
        return DEFAULT_CONFIDENCE
    return int(round(min(max(number, 0), 100)))


class ItemDraft(BaseModel):
    """
    A knowledge item parsed from one chunk's model output, before persistence.

    Accepts both the camelCase keys the model is asked to emit and snake_case.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = Field(..., min_length=1, description="Short descriptive title")
    content: str = Field(..., min_length=1, description="Detailed content")
    summary: Optional[str] = Field(None, description="Short summary")
    key_conclusions: List[str] = Field(
        default_factory=list, alias="keyConclusions", description="Key conclusions"
    )
    confidence: int = Field(
        DEFAULT_CONFIDENCE, description="AI confidence score (0 to 100)"
    )
    tags: List[str] = Field(default_factory=list, description="At most 5 tags")
    source_excerpt: Optional[str] = Field(
        None, alias="sourceExcerpt", description="Excerpt from the source text"
    )
    source_item_id: Optional[str] = Field(
        None, alias="sourceItemId", description="Originating document id"
    )
    source_page: Optional[int] = Field(
        None, alias="sourcePage", description="Originating page, if known"
    )

    @field_validator("title", "content", mode="before")
    @classmethod
    def _strip_required(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("summary", "source_excerpt", mode="before")
    @classmethod
    def _strip_optional(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("key_conclusions", mode="before")
    @classmethod
    def _coerce_conclusions(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [str(v) for v in value if v is not None]

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: Any) -> int:
        return _clamp_confidence(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        tags = [str(t).strip() for t in value if t is not None and str(t).strip()]
        return tags[:MAX_TAGS]

    @field_validator("source_page", mode="before")
    @classmethod
    def _coerce_page(cls, value: Any) -> Optional[int]:
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            return None


class KnowledgeItem(ItemDraft):
    """
    A persisted knowledge item.
    Draft fields plus classification, ownership and review metadata.
    """

    id: str = Field(..., description="Knowledge item id")
    collection_id: Optional[str] = Field(
        None, description="Knowledge collection the item belongs to"
    )
    category: KnowledgeCategory = Field(
        KnowledgeCategory.WORK, description="Top-level category"
    )
    subcategory_id: Optional[str] = Field(None, description="Matched subcategory")
    status: KnowledgeStatus = Field(
        KnowledgeStatus.PENDING, description="Status: pending, confirmed, rejected"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When item was created",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When item was last updated",
    )
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_draft(
        cls,
        draft: ItemDraft,
        item_id: str,
        collection_id: Optional[str],
        category: KnowledgeCategory,
        subcategory_id: Optional[str] = None,
        status: KnowledgeStatus = KnowledgeStatus.PENDING,
    ) -> "KnowledgeItem":
        """
        Build a persisted item from a draft.

        Re-validates the draft fields, so a draft with blank title or content
        raises pydantic.ValidationError here.
        """
        data = draft.model_dump()
        data.update(
            id=item_id,
            collection_id=collection_id,
            category=category,
            subcategory_id=subcategory_id,
            status=status,
        )
        return cls.model_validate(data)


class Subcategory(BaseModel):
    """Keyword configuration for one subcategory. Read-only for the classifier."""

    id: str
    category: KnowledgeCategory
    name: str
    keywords: List[str] = Field(default_factory=list)
    order_index: int = 0


class Classification(BaseModel):
    """Result of classifying an item's tags."""

    category: KnowledgeCategory
    subcategory_id: Optional[str] = None


class RelatedItem(BaseModel):
    """A related-knowledge recommendation."""

    id: str
    title: str
    content_preview: str
    summary: Optional[str] = None
    collection_id: Optional[str] = None
    similarity_score: int = Field(..., ge=0, le=100)


class GraphNode(BaseModel):
    id: str
    title: str
    content: str
    status: KnowledgeStatus
    confidence: int
    tags: List[str] = Field(default_factory=list)
    category: KnowledgeCategory
    created_at: datetime


class GraphEdge(BaseModel):
    source: str
    target: str
    similarity: int
    type: str = "similarity"


class KnowledgeGraph(BaseModel):
    """Similarity graph over persisted knowledge items."""

    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)
    categories: Dict[str, int] = Field(
        default_factory=dict, description="Node count by category"
    )
