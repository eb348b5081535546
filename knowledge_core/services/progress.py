"""
Extraction Progress Tracking

Weighted multi-stage progress, ETA from recent progress velocity, and the
additive merge rule for partial task updates.
"""

import time
import logging
from typing import Dict, List, Optional, Sequence

from knowledge_core.models.task import (
    ExtractionStage,
    ExtractionTask,
    ProgressSample,
    ProgressUpdate,
)

logger = logging.getLogger(__name__)

STAGE_WEIGHTS: Dict[ExtractionStage, float] = {
    ExtractionStage.PARSING: 0.20,
    ExtractionStage.EXTRACTING: 0.40,
    ExtractionStage.SUMMARIZING: 0.20,
    ExtractionStage.SAVING: 0.20,
}
STAGE_ORDER: List[ExtractionStage] = list(STAGE_WEIGHTS)

MIN_ACTIVE_PROGRESS = 5
ETA_WINDOW = 5
HISTORY_LIMIT = 20
MAX_ETA_SECONDS = 3600


def stage_progress(stage: ExtractionStage, fraction: float = 0.0) -> float:
    """
    Progress (0-1) of one document that is ``fraction`` of the way through
    ``stage``: completed stage weights plus the current stage's share.
    """
    if stage not in STAGE_WEIGHTS:
        return 0.0
    fraction = min(max(fraction, 0.0), 1.0)
    completed = sum(STAGE_WEIGHTS[s] for s in STAGE_ORDER[: STAGE_ORDER.index(stage)])
    return completed + STAGE_WEIGHTS[stage] * fraction


def batch_progress(
    completed_documents: int,
    total_documents: int,
    stage: Optional[ExtractionStage] = None,
    fraction: float = 0.0,
) -> int:
    """
    Overall progress (0-100) of a multi-document batch.

    Fully completed documents count whole; the current document contributes
    its stage progress scaled by ``1 / total_documents``. Floored at 5 so a
    running job never reports a bare 0%.
    """
    if total_documents <= 0:
        return 100
    base = completed_documents / total_documents * 100
    current = 0.0
    if stage is not None and completed_documents < total_documents:
        current = stage_progress(stage, fraction) / total_documents * 100
    return int(min(100, max(MIN_ACTIVE_PROGRESS, round(base + current))))


def estimate_eta(
    history: Sequence[ProgressSample], current_progress: float
) -> Optional[int]:
    """
    Estimate seconds remaining from the last five progress samples.

    Averages seconds-per-percent over consecutive sample pairs whose progress
    and time both increased, then multiplies by the remaining percent.

    Returns:
        Seconds remaining, or None if there is not enough history, progress
        is 0 or complete, or the estimate falls outside [0, 3600]
    """
    if len(history) < 2 or current_progress <= 0 or current_progress >= 100:
        return None

    recent = list(history)[-ETA_WINDOW:]
    rates = []
    for prev, curr in zip(recent, recent[1:]):
        progress_delta = curr.progress - prev.progress
        time_delta = curr.timestamp - prev.timestamp
        if progress_delta > 0 and time_delta > 0:
            rates.append(time_delta / progress_delta)

    if not rates:
        return None

    eta = round((100 - current_progress) * (sum(rates) / len(rates)))
    if eta < 0 or eta > MAX_ETA_SECONDS:
        return None
    return int(eta)


def merge_update(
    task: ExtractionTask,
    update: ProgressUpdate,
    now: Optional[float] = None,
) -> ExtractionTask:
    """
    Merge a partial update into a task, returning a new task.

    Only fields explicitly set on ``update`` are applied. An update that omits
    ``knowledge_item_ids`` keeps the accumulated list; one that supplies a list
    replaces it. Reported progress does not go backwards while processing.
    """
    now = time.time() if now is None else now
    changes = {
        field: getattr(update, field)
        for field in update.model_fields_set
        if getattr(update, field) is not None
    }

    if "progress" in changes:
        progress = min(max(float(changes["progress"]), 0.0), 100.0)
        if not task.is_terminal:
            progress = max(progress, task.progress)
        changes["progress"] = progress
        history = list(task.progress_history)
        history.append(ProgressSample(progress=progress, timestamp=now))
        changes["progress_history"] = history[-HISTORY_LIMIT:]

    if "knowledge_item_ids" in changes:
        changes["knowledge_item_ids"] = list(changes["knowledge_item_ids"])

    changes["updated_at"] = now
    return task.model_copy(update=changes)
