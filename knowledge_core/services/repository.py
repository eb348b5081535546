"""
Persistence capability.

The core reads documents and subcategory configuration and writes knowledge
items only through ``KnowledgeRepository``. Relational storage lives outside
the core; ``InMemoryKnowledgeRepository`` backs the API process and tests.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

from knowledge_core.errors import PersistenceError
from knowledge_core.models.knowledge import (
    KnowledgeItem,
    KnowledgeStatus,
    Subcategory,
)

logger = logging.getLogger(__name__)


def new_item_id() -> str:
    return f"ki-{uuid.uuid4().hex[:8]}"


DOCUMENT_SUFFIXES = (".txt", ".md")


def load_documents(path: Optional[str]) -> Dict[str, str]:
    """
    Read source documents from a directory.

    Args:
        path: Directory holding .txt or .md files. Empty disables loading

    Returns:
        Document content keyed by file stem
    """
    if not path:
        return {}
    directory = Path(path)
    if not directory.is_dir():
        logger.warning(f"Documents directory not found: {directory}")
        return {}

    documents = {}
    for file_path in sorted(directory.iterdir()):
        if file_path.is_file() and file_path.suffix.lower() in DOCUMENT_SUFFIXES:
            documents[file_path.stem] = file_path.read_text(encoding="utf-8")
    logger.info(f"Loaded {len(documents)} document(s) from {directory}")
    return documents


@dataclass
class SourceDocument:
    id: str
    raw_content: Optional[str] = None
    knowledge_extracted: bool = False


class KnowledgeRepository(Protocol):
    async def create_item(self, item: KnowledgeItem) -> str: ...

    async def get_item(self, item_id: str) -> Optional[KnowledgeItem]: ...

    async def list_items(
        self,
        collection_id: Optional[str] = None,
        status: Optional[KnowledgeStatus] = None,
        exclude_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[KnowledgeItem]: ...

    async def get_document_content(self, document_id: str) -> Optional[str]: ...

    async def save_document(self, document_id: str, content: str) -> None: ...

    async def list_subcategories(self) -> List[Subcategory]: ...

    async def mark_document_extracted(self, document_id: str) -> None: ...

    async def is_document_extracted(self, document_id: str) -> bool: ...

    async def update_item_status(
        self, item_id: str, status: KnowledgeStatus
    ) -> Optional[KnowledgeItem]: ...


class InMemoryKnowledgeRepository:
    """Dict-backed repository. Items are listed newest first."""

    def __init__(
        self,
        documents: Optional[Dict[str, str]] = None,
        subcategories: Optional[List[Subcategory]] = None,
    ):
        self.documents: Dict[str, SourceDocument] = {
            doc_id: SourceDocument(id=doc_id, raw_content=content)
            for doc_id, content in (documents or {}).items()
        }
        self.items: Dict[str, KnowledgeItem] = {}
        self.subcategories: List[Subcategory] = list(subcategories or [])

    def add_document(self, document_id: str, content: Optional[str]) -> None:
        self.documents[document_id] = SourceDocument(id=document_id, raw_content=content)

    async def create_item(self, item: KnowledgeItem) -> str:
        if item.id in self.items:
            raise PersistenceError(f"Knowledge item {item.id} already exists")
        self.items[item.id] = item
        return item.id

    async def get_item(self, item_id: str) -> Optional[KnowledgeItem]:
        return self.items.get(item_id)

    async def list_items(
        self,
        collection_id: Optional[str] = None,
        status: Optional[KnowledgeStatus] = None,
        exclude_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[KnowledgeItem]:
        matches = [
            item
            for item in self.items.values()
            if (collection_id is None or item.collection_id == collection_id)
            and (status is None or item.status == status)
            and item.id != exclude_id
        ]
        matches.sort(key=lambda item: item.created_at, reverse=True)
        return matches[:limit] if limit is not None else matches

    async def get_document_content(self, document_id: str) -> Optional[str]:
        document = self.documents.get(document_id)
        return document.raw_content if document else None

    async def save_document(self, document_id: str, content: str) -> None:
        self.add_document(document_id, content)

    async def list_subcategories(self) -> List[Subcategory]:
        return list(self.subcategories)

    async def mark_document_extracted(self, document_id: str) -> None:
        document = self.documents.get(document_id)
        if document is None:
            raise PersistenceError(f"Document {document_id} not found")
        document.knowledge_extracted = True

    async def is_document_extracted(self, document_id: str) -> bool:
        document = self.documents.get(document_id)
        return bool(document and document.knowledge_extracted)

    async def update_item_status(
        self, item_id: str, status: KnowledgeStatus
    ) -> Optional[KnowledgeItem]:
        item = self.items.get(item_id)
        if item is None:
            return None
        updated = item.model_copy(
            update={"status": status, "updated_at": datetime.now(timezone.utc)}
        )
        self.items[item_id] = updated
        return updated


class SimilarityCache(Protocol):
    async def get(self, a_id: str, b_id: str) -> Optional[int]: ...

    async def set(self, a_id: str, b_id: str, score: int) -> None: ...


class InMemorySimilarityCache:
    """Similarity scores keyed by the unordered item pair."""

    def __init__(self):
        self._scores: Dict[Tuple[str, str], int] = {}

    @staticmethod
    def _key(a_id: str, b_id: str) -> Tuple[str, str]:
        return (a_id, b_id) if a_id <= b_id else (b_id, a_id)

    async def get(self, a_id: str, b_id: str) -> Optional[int]:
        return self._scores.get(self._key(a_id, b_id))

    async def set(self, a_id: str, b_id: str, score: int) -> None:
        self._scores[self._key(a_id, b_id)] = score

    def __len__(self) -> int:
        return len(self._scores)
