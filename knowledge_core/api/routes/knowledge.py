"""
Knowledge Extraction API Routes

1. POST /api/knowledge/extract - Start a background batch extraction
2. GET /api/knowledge/extract/{task_id}/status - Poll extraction state + ETA
3. DELETE /api/knowledge/extract/{task_id} - Discard a task record
4. GET /api/knowledge/items/{item_id}/related - Related knowledge items
5. GET /api/knowledge/graph - Similarity graph over confirmed items
6. POST /api/knowledge/documents - Register source document content
7. GET /api/knowledge/documents/{document_id} - Document extraction state
8. PUT /api/knowledge/items/{item_id} - Confirm or reject a knowledge item
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from typing import Optional, List
import logging

from knowledge_core.models.knowledge import (
    KnowledgeGraph,
    KnowledgeItem,
    KnowledgeStatus,
    RelatedItem,
)
from knowledge_core.models.task import ItemPreview
from knowledge_core.services.progress import estimate_eta
from knowledge_core.services.runtime import Runtime, get_runtime

logger = logging.getLogger(__name__)
router = APIRouter()


class ExtractRequest(BaseModel):
    """Request model for starting an extraction."""

    document_ids: List[str] = Field(..., min_length=1, description="Source documents")
    collection_id: Optional[str] = Field(None, description="Target knowledge collection")
    credential: Optional[str] = Field(
        None, description="Optional generation credential for this job"
    )


class ExtractStartResponse(BaseModel):
    task_id: str
    status: str
    total_items: int


class ExtractStatusResponse(BaseModel):
    task_id: str
    status: str
    stage: str
    total_items: int
    processed_items: int
    extracted_count: int
    current_doc_index: int
    progress: float
    knowledge_item_ids: List[str]
    recent_items: List[ItemPreview]
    eta_seconds: Optional[int] = None
    error: Optional[str] = None


class DocumentRequest(BaseModel):
    """Request model for registering a source document."""

    document_id: str = Field(..., min_length=1)
    content: str = Field(..., description="Raw document text")


class DocumentStateResponse(BaseModel):
    document_id: str
    knowledge_extracted: bool


class ItemStatusRequest(BaseModel):
    status: KnowledgeStatus


@router.post("/extract", response_model=ExtractStartResponse)
async def start_extraction(
    request: ExtractRequest, runtime: Runtime = Depends(get_runtime)
):
    """
    Start extracting knowledge from the given documents.

    Returns immediately with a task id; poll the status endpoint for progress.
    """
    logger.info(
        f"Extraction request: {len(request.document_ids)} document(s), "
        f"collection={request.collection_id}"
    )
    task_id = runtime.runner.start(
        request.document_ids, request.collection_id, request.credential
    )
    return ExtractStartResponse(
        task_id=task_id, status="processing", total_items=len(request.document_ids)
    )


@router.get("/extract/{task_id}/status", response_model=ExtractStatusResponse)
async def extraction_status(task_id: str, runtime: Runtime = Depends(get_runtime)):
    task = runtime.task_store.get(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Extraction task not found")

    eta = None
    if not task.is_terminal:
        eta = estimate_eta(task.progress_history, task.progress)

    return ExtractStatusResponse(
        task_id=task.task_id,
        status=task.status.value,
        stage=task.stage.value,
        total_items=task.total_items,
        processed_items=task.processed_items,
        extracted_count=task.extracted_count,
        current_doc_index=task.current_doc_index,
        progress=task.progress,
        knowledge_item_ids=task.knowledge_item_ids,
        recent_items=task.recent_items,
        eta_seconds=eta,
        error=task.error,
    )


@router.delete("/extract/{task_id}")
async def discard_extraction(task_id: str, runtime: Runtime = Depends(get_runtime)):
    """Stop tracking a task. A running job is not interrupted."""
    runtime.runner.discard(task_id)
    return {"task_id": task_id, "discarded": True}


@router.get("/items/{item_id}/related", response_model=List[RelatedItem])
async def related_items(
    item_id: str,
    limit: int = Query(5, ge=1, le=50),
    min_similarity: int = Query(60, ge=0, le=100),
    credential: Optional[str] = Query(None),
    runtime: Runtime = Depends(get_runtime),
):
    return await runtime.graph.related_items(item_id, limit, min_similarity, credential)


@router.get("/graph", response_model=KnowledgeGraph)
async def knowledge_graph(
    collection_id: Optional[str] = Query(None),
    min_similarity: int = Query(60, ge=0, le=100),
    limit: int = Query(100, ge=1, le=500),
    max_edges: int = Query(50, ge=0),
    use_cache: bool = Query(True),
    credential: Optional[str] = Query(None),
    runtime: Runtime = Depends(get_runtime),
):
    return await runtime.graph.build_graph_for_collection(
        collection_id,
        limit=limit,
        min_similarity=min_similarity,
        max_edges=max_edges,
        use_cache=use_cache,
        credential_override=credential,
    )


@router.post("/documents", response_model=DocumentStateResponse)
async def register_document(
    request: DocumentRequest, runtime: Runtime = Depends(get_runtime)
):
    """Store document content so it can be extracted by id."""
    await runtime.repository.save_document(request.document_id, request.content)
    logger.info(
        f"Registered document {request.document_id} ({len(request.content)} chars)"
    )
    return DocumentStateResponse(
        document_id=request.document_id,
        knowledge_extracted=await runtime.repository.is_document_extracted(
            request.document_id
        ),
    )


@router.get("/documents/{document_id}", response_model=DocumentStateResponse)
async def document_state(document_id: str, runtime: Runtime = Depends(get_runtime)):
    if await runtime.repository.get_document_content(document_id) is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return DocumentStateResponse(
        document_id=document_id,
        knowledge_extracted=await runtime.repository.is_document_extracted(document_id),
    )


@router.put("/items/{item_id}", response_model=KnowledgeItem)
async def update_item_status(
    item_id: str, request: ItemStatusRequest, runtime: Runtime = Depends(get_runtime)
):
    """Move a knowledge item between pending, confirmed and rejected."""
    item = await runtime.repository.update_item_status(item_id, request.status)
    if item is None:
        raise HTTPException(status_code=404, detail="Knowledge item not found")
    logger.info(f"Knowledge item {item_id} marked {request.status.value}")
    return item
