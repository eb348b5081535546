"""
Tests for the in-memory extraction task store
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import threading

from knowledge_core.models.task import ExtractionTask, ProgressUpdate, TaskStatus
from knowledge_core.services.task_store import InMemoryTaskStore


def test_set_get_delete():
    store = InMemoryTaskStore()
    store.set(ExtractionTask(task_id="t1", total_items=2))

    assert store.get("t1").total_items == 2
    assert len(store) == 1

    store.delete("t1")
    store.delete("t1")

    assert store.get("t1") is None
    assert len(store) == 0


def test_merge_unknown_task_is_ignored():
    store = InMemoryTaskStore()

    assert store.merge("missing", ProgressUpdate(progress=50)) is None
    assert store.get("missing") is None


def test_merge_keeps_accumulated_ids():
    store = InMemoryTaskStore()
    store.set(ExtractionTask(task_id="t1"))

    store.merge("t1", ProgressUpdate(knowledge_item_ids=["ki-1", "ki-2"]))
    store.merge("t1", ProgressUpdate(processed_items=1, progress=50))

    task = store.get("t1")
    assert task.knowledge_item_ids == ["ki-1", "ki-2"]
    assert task.processed_items == 1
    assert task.progress == 50


def test_concurrent_merges_are_not_lost():
    store = InMemoryTaskStore()
    store.set(ExtractionTask(task_id="t1"))

    def bump(value):
        store.merge("t1", ProgressUpdate(progress=value))

    threads = [threading.Thread(target=bump, args=(i,)) for i in range(1, 51)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    task = store.get("t1")
    assert len(task.progress_history) == 20
    assert task.progress == 50


def test_expire_drops_only_stale_terminal_tasks():
    store = InMemoryTaskStore()
    store.set(ExtractionTask(task_id="done", status=TaskStatus.COMPLETED, updated_at=100.0))
    store.set(ExtractionTask(task_id="fresh", status=TaskStatus.COMPLETED, updated_at=950.0))
    store.set(ExtractionTask(task_id="running", updated_at=100.0))

    removed = store.expire(max_age_seconds=300, now=1000.0)

    assert removed == 1
    assert store.get("done") is None
    assert store.get("fresh") is not None
    assert store.get("running") is not None
