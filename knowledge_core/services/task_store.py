"""
Extraction task store.

Process-local, in-memory task table keyed by task id. Extraction logic only
depends on the ``TaskStore`` protocol, so a shared/durable backend can be
swapped in without touching it.
"""

import threading
import time
from typing import Dict, Optional, Protocol

from knowledge_core.models.task import ExtractionTask, ProgressUpdate
from knowledge_core.services.progress import merge_update


class TaskStore(Protocol):
    def get(self, task_id: str) -> Optional[ExtractionTask]: ...

    def set(self, task: ExtractionTask) -> None: ...

    def merge(self, task_id: str, update: ProgressUpdate) -> Optional[ExtractionTask]: ...

    def delete(self, task_id: str) -> None: ...


class InMemoryTaskStore:
    """Task table with read-merge-write under a lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._tasks: Dict[str, ExtractionTask] = {}

    def get(self, task_id: str) -> Optional[ExtractionTask]:
        with self._lock:
            return self._tasks.get(task_id)

    def set(self, task: ExtractionTask) -> None:
        with self._lock:
            self._tasks[task.task_id] = task

    def merge(self, task_id: str, update: ProgressUpdate) -> Optional[ExtractionTask]:
        """Apply a partial update. Unknown task ids are ignored."""
        with self._lock:
            current = self._tasks.get(task_id)
            if current is None:
                return None
            merged = merge_update(current, update)
            self._tasks[task_id] = merged
            return merged

    def delete(self, task_id: str) -> None:
        with self._lock:
            self._tasks.pop(task_id, None)

    def expire(self, max_age_seconds: float, now: Optional[float] = None) -> int:
        """
        Drop terminal tasks not updated for ``max_age_seconds``.

        Returns:
            Number of tasks removed
        """
        now = time.time() if now is None else now
        with self._lock:
            stale = [
                task_id
                for task_id, task in self._tasks.items()
                if task.is_terminal and now - task.updated_at > max_age_seconds
            ]
            for task_id in stale:
                del self._tasks[task_id]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)
