# Shared data models
from knowledge_core.models.knowledge import (
    KnowledgeCategory,
    KnowledgeStatus,
    ItemDraft,
    KnowledgeItem,
    Subcategory,
    Classification,
    RelatedItem,
    KnowledgeGraph,
)
from knowledge_core.models.task import (
    TaskStatus,
    ExtractionStage,
    ExtractionTask,
    ProgressUpdate,
    ProgressSample,
    ExtractionResult,
    SaveBatchResult,
)

__all__ = [
    "KnowledgeCategory",
    "KnowledgeStatus",
    "ItemDraft",
    "KnowledgeItem",
    "Subcategory",
    "Classification",
    "RelatedItem",
    "KnowledgeGraph",
    "TaskStatus",
    "ExtractionStage",
    "ExtractionTask",
    "ProgressUpdate",
    "ProgressSample",
    "ExtractionResult",
    "SaveBatchResult",
]
