"""
Extraction Orchestrator Service

Drives batch extraction across many documents and runs it as a background
job whose state is polled through the task store.

Per document: parsing -> extracting -> summarizing -> saving. Documents are
processed one after another; a failing document is logged, counted as
processed and skipped.
"""

import asyncio
import logging
import uuid
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from knowledge_core.ai_core.classification.classifier import Classifier
from knowledge_core.ai_core.extraction.knowledge_extractor import KnowledgeExtractor
from knowledge_core.config import Settings, get_settings
from knowledge_core.errors import (
    ExtractionAbortedError,
    ItemValidationError,
    PersistenceError,
)
from knowledge_core.models.knowledge import ItemDraft, KnowledgeItem
from knowledge_core.models.task import (
    ExtractionResult,
    ExtractionStage,
    ExtractionTask,
    ItemPreview,
    ProgressUpdate,
    SaveBatchResult,
    SaveFailure,
    TaskStatus,
)
from knowledge_core.services.knowledge_graph import content_preview
from knowledge_core.services.progress import batch_progress
from knowledge_core.services.repository import KnowledgeRepository, new_item_id
from knowledge_core.services.task_store import TaskStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressUpdate], None]
RECENT_ITEMS = 5


def _preview(item_id: Optional[str], title: str, content: str) -> ItemPreview:
    return ItemPreview(id=item_id, title=title, content=content_preview(content))


class ExtractionOrchestrator:
    """
    Batch extraction across documents with per-document failure isolation.
    """

    def __init__(
        self,
        extractor: KnowledgeExtractor,
        repository: KnowledgeRepository,
        settings: Optional[Settings] = None,
    ):
        self.extractor = extractor
        self.repository = repository
        self.settings = settings or get_settings()

    async def save_drafts(
        self,
        drafts: List[ItemDraft],
        collection_id: Optional[str],
        classifier: Optional[Classifier] = None,
    ) -> SaveBatchResult:
        """
        Persist drafts in bounded concurrent batches.

        Each batch is joined all-settled, so one failing save does not drop
        its siblings. Failures are recorded, not raised.

        Args:
            drafts: Drafts to persist
            collection_id: Target knowledge collection
            classifier: Classifier to use (loaded from the repository if None)

        Returns:
            SaveBatchResult with saved ids (in draft order) and failures
        """
        if classifier is None:
            classifier = Classifier(await self.repository.list_subcategories())

        result = SaveBatchResult()
        batch_size = max(1, self.settings.save_batch_size)

        for start in range(0, len(drafts), batch_size):
            batch = drafts[start : start + batch_size]
            outcomes = await asyncio.gather(
                *(self._save_one(draft, collection_id, classifier) for draft in batch),
                return_exceptions=True,
            )
            for offset, (draft, outcome) in enumerate(zip(batch, outcomes)):
                if isinstance(outcome, BaseException):
                    logger.warning(
                        f"Failed to save item '{draft.title}': {outcome}"
                    )
                    result.failures.append(
                        SaveFailure(
                            index=start + offset, title=draft.title, reason=str(outcome)
                        )
                    )
                else:
                    result.saved_ids.append(outcome)

        return result

    async def _save_one(
        self,
        draft: ItemDraft,
        collection_id: Optional[str],
        classifier: Classifier,
    ) -> str:
        classification = classifier.classify(draft.tags)
        try:
            item = KnowledgeItem.from_draft(
                draft,
                item_id=new_item_id(),
                collection_id=collection_id,
                category=classification.category,
                subcategory_id=classification.subcategory_id,
            )
        except ValidationError as e:
            raise ItemValidationError(
                f"Item '{draft.title}' is missing required fields"
            ) from e

        try:
            return await self.repository.create_item(item)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to persist item: {e}") from e

    async def extract_from_documents(
        self,
        document_ids: List[str],
        target_collection_id: Optional[str],
        credential_override: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ExtractionResult:
        """
        Extract knowledge from several documents, one after another.

        Args:
            document_ids: Source document ids
            target_collection_id: Collection new items are saved into
            credential_override: Optional per-call generation credential
            on_progress: Receives partial task updates

        Returns:
            ExtractionResult with counts and all persisted item ids

        Raises:
            ExtractionAbortedError: If the very first document cannot be read
        """
        report = on_progress or (lambda update: None)
        total = len(document_ids)
        result = ExtractionResult(total_items=total)
        recent: List[ItemPreview] = []

        report(
            ProgressUpdate(
                stage=ExtractionStage.PARSING,
                total_items=total,
                processed_items=0,
                extracted_count=0,
                current_doc_index=0,
                progress=batch_progress(0, total),
            )
        )

        classifier = Classifier(await self.repository.list_subcategories())

        for index, document_id in enumerate(document_ids):
            doc_number = index + 1
            current_stage = ExtractionStage.PARSING

            def stage_update(stage: ExtractionStage, fraction: float, **extra):
                nonlocal current_stage
                current_stage = stage
                report(
                    ProgressUpdate(
                        stage=stage,
                        processed_items=result.processed_items,
                        extracted_count=result.extracted_count,
                        current_doc_index=doc_number,
                        progress=batch_progress(
                            result.processed_items, total, stage, fraction
                        ),
                        **extra,
                    )
                )

            try:
                # Stage 1: parsing
                stage_update(ExtractionStage.PARSING, 0.5)
                try:
                    content = await self.repository.get_document_content(document_id)
                except PersistenceError as e:
                    if index == 0:
                        raise ExtractionAbortedError(
                            f"Cannot read document {document_id}: {e}"
                        ) from e
                    raise

                if not content or not content.strip():
                    logger.warning(f"Document {document_id} missing or empty, skipping")
                    result.processed_items += 1
                    continue

                # Stage 2: extracting
                stage_update(ExtractionStage.EXTRACTING, 0.3)
                drafts = await self.extractor.extract_from_content(
                    content, document_id, None, credential_override
                )

                # Stage 3: summarizing
                stage_update(
                    ExtractionStage.SUMMARIZING,
                    0.5,
                    recent_items=[_preview(None, d.title, d.content) for d in drafts][
                        -RECENT_ITEMS:
                    ],
                )

                # Stage 4: saving
                saved_before = result.extracted_count
                stage_update(ExtractionStage.SAVING, 0.0)
                batch_size = max(1, self.settings.save_batch_size)
                for start in range(0, len(drafts), batch_size):
                    batch = drafts[start : start + batch_size]
                    saved = await self.save_drafts(batch, target_collection_id, classifier)
                    result.knowledge_item_ids.extend(saved.saved_ids)
                    result.extracted_count += len(saved.saved_ids)
                    for item_id in saved.saved_ids:
                        item = await self.repository.get_item(item_id)
                        if item:
                            recent.append(_preview(item.id, item.title, item.content))
                    recent = recent[-RECENT_ITEMS:]
                    stage_update(
                        ExtractionStage.SAVING,
                        min(1.0, (start + len(batch)) / len(drafts)),
                        knowledge_item_ids=list(result.knowledge_item_ids),
                        recent_items=list(recent),
                    )

                if result.extracted_count > saved_before:
                    await self._mark_extracted(document_id)

                result.processed_items += 1
                logger.info(
                    f"Document {doc_number}/{total} ({document_id}) done: "
                    f"{result.extracted_count - saved_before} item(s) saved"
                )

            except ExtractionAbortedError:
                raise
            except Exception as e:
                logger.error(
                    f"Extraction failed for document {document_id} "
                    f"during {current_stage.value}: {e}",
                    exc_info=True,
                )
                result.processed_items += 1
                report(
                    ProgressUpdate(
                        stage=current_stage,
                        processed_items=result.processed_items,
                        extracted_count=result.extracted_count,
                        current_doc_index=doc_number,
                        progress=batch_progress(result.processed_items, total),
                    )
                )
                continue

            if result.processed_items < total:
                stage_update(ExtractionStage.PARSING, 0.1)

        report(
            ProgressUpdate(
                stage=ExtractionStage.SAVING,
                processed_items=result.processed_items,
                extracted_count=result.extracted_count,
                current_doc_index=result.processed_items,
                progress=100,
                knowledge_item_ids=list(result.knowledge_item_ids),
            )
        )
        logger.info(
            f"Batch extraction complete: {result.extracted_count} item(s) from "
            f"{result.processed_items}/{total} document(s)"
        )
        return result

    async def _mark_extracted(self, document_id: str) -> None:
        try:
            await self.repository.mark_document_extracted(document_id)
        except Exception as e:
            logger.warning(f"Failed to mark document {document_id} as extracted: {e}")


class ExtractionJobRunner:
    """
    Runs batch extractions as background asyncio tasks.

    ``start`` returns a task id immediately; callers poll the task store.
    There is no mid-flight cancellation: ``discard`` only drops the record.
    """

    def __init__(self, orchestrator: ExtractionOrchestrator, task_store: TaskStore):
        self.orchestrator = orchestrator
        self.task_store = task_store
        self._jobs: Dict[str, asyncio.Task] = {}

    def start(
        self,
        document_ids: List[str],
        target_collection_id: Optional[str],
        credential_override: Optional[str] = None,
    ) -> str:
        """
        Create a task record and schedule the extraction on the running loop.

        Returns:
            The new task id
        """
        task_id = f"ext-{uuid.uuid4().hex[:8]}"
        self.task_store.set(
            ExtractionTask(task_id=task_id, total_items=len(document_ids))
        )
        job = asyncio.get_running_loop().create_task(
            self.run(task_id, document_ids, target_collection_id, credential_override)
        )
        self._jobs[task_id] = job
        job.add_done_callback(lambda _job: self._jobs.pop(task_id, None))
        logger.info(f"Started extraction {task_id} for {len(document_ids)} document(s)")
        return task_id

    async def run(
        self,
        task_id: str,
        document_ids: List[str],
        target_collection_id: Optional[str],
        credential_override: Optional[str] = None,
    ) -> Optional[ExtractionTask]:
        """Run one extraction to completion and record its terminal state."""
        try:
            result = await self.orchestrator.extract_from_documents(
                document_ids,
                target_collection_id,
                credential_override=credential_override,
                on_progress=lambda update: self.task_store.merge(task_id, update),
            )
        except Exception as e:
            logger.error(f"Extraction {task_id} failed: {e}", exc_info=True)
            return self.task_store.merge(
                task_id,
                ProgressUpdate(
                    status=TaskStatus.FAILED,
                    stage=ExtractionStage.FAILED,
                    error="Extraction failed",
                ),
            )

        if not result.knowledge_item_ids:
            logger.warning(f"Extraction {task_id} completed without any saved items")

        return self.task_store.merge(
            task_id,
            ProgressUpdate(
                status=TaskStatus.COMPLETED,
                stage=ExtractionStage.COMPLETED,
                total_items=result.total_items,
                processed_items=result.processed_items,
                extracted_count=result.extracted_count,
                knowledge_item_ids=result.knowledge_item_ids,
                progress=100,
            ),
        )

    async def wait(self, task_id: str) -> None:
        job = self._jobs.get(task_id)
        if job is not None:
            await asyncio.gather(job, return_exceptions=True)

    def discard(self, task_id: str) -> None:
        """Stop tracking a task. A running job continues until it finishes."""
        self.task_store.delete(task_id)
