"""
Extraction Task Models

State of one batch-extraction job, the partial updates merged into it and
the aggregate result returned by the orchestrator.
"""

import time
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ExtractionStage(str, Enum):
    """Per-document stages, plus the two terminal markers."""

    PARSING = "parsing"
    EXTRACTING = "extracting"
    SUMMARIZING = "summarizing"
    SAVING = "saving"
    FAILED = "failed"
    COMPLETED = "completed"


class ProgressSample(BaseModel):
    """One point of progress history, used for ETA."""

    progress: float
    timestamp: float = Field(default_factory=time.time, description="Epoch seconds")


class ItemPreview(BaseModel):
    """Short preview of a saved (or about-to-be-saved) item."""

    id: Optional[str] = None
    title: str
    content: str


class ProgressUpdate(BaseModel):
    """
    Partial update for an ExtractionTask.

    Only fields explicitly passed to the constructor are merged; omitted
    fields keep their current value in the task.
    """

    status: Optional[TaskStatus] = None
    stage: Optional[ExtractionStage] = None
    total_items: Optional[int] = None
    processed_items: Optional[int] = None
    extracted_count: Optional[int] = None
    current_doc_index: Optional[int] = None
    progress: Optional[float] = None
    knowledge_item_ids: Optional[List[str]] = None
    recent_items: Optional[List[ItemPreview]] = None
    error: Optional[str] = None


class ExtractionTask(BaseModel):
    """Mutable state of one batch-extraction job, polled until terminal."""

    task_id: str
    status: TaskStatus = TaskStatus.PROCESSING
    stage: ExtractionStage = ExtractionStage.PARSING
    total_items: int = 0
    processed_items: int = 0
    extracted_count: int = 0
    current_doc_index: int = 0
    progress: float = Field(0, ge=0, le=100)
    knowledge_item_ids: List[str] = Field(default_factory=list)
    recent_items: List[ItemPreview] = Field(default_factory=list)
    progress_history: List[ProgressSample] = Field(default_factory=list)
    start_time: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class ExtractionResult(BaseModel):
    """Final aggregate of a batch extraction."""

    total_items: int = 0
    processed_items: int = 0
    extracted_count: int = 0
    knowledge_item_ids: List[str] = Field(default_factory=list)


class SaveFailure(BaseModel):
    index: int
    title: Optional[str] = None
    reason: str


class SaveBatchResult(BaseModel):
    """Outcome of saving a list of drafts in bounded, all-settled batches."""

    saved_ids: List[str] = Field(default_factory=list)
    failures: List[SaveFailure] = Field(default_factory=list)
