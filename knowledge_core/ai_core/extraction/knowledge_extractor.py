"""
Knowledge Extraction Module

Extracts knowledge item drafts from one document's content:
1. Clean boilerplate from the raw text
2. Split oversized text into overlapping chunks
3. For each chunk (sequentially, rate-limited): generate, repair-parse, validate
"""

import asyncio
import logging
from typing import List, Optional

from knowledge_core.ai_core.chunking.chunk_splitter import Chunk, split_text
from knowledge_core.ai_core.generation.text_generator import (
    GenerationOptions,
    TextGenerator,
)
from knowledge_core.ai_core.parsing.response_parser import parse_response
from knowledge_core.ai_core.preprocessing.content_cleaner import clean_content
from knowledge_core.ai_core.prompts.extraction import build_extraction_messages
from knowledge_core.config import Settings, get_settings
from knowledge_core.errors import (
    ChunkProcessingError,
    ContentEmptyError,
    CredentialError,
)
from knowledge_core.models.knowledge import ItemDraft

logger = logging.getLogger(__name__)


class KnowledgeExtractor:
    """
    Extracts knowledge item drafts from document content.
    """

    def __init__(self, generator: TextGenerator, settings: Optional[Settings] = None):
        """
        Args:
            generator: Text-generation capability
            settings: Optional settings override (defaults to get_settings())
        """
        self.generator = generator
        self.settings = settings or get_settings()

    async def extract_from_content(
        self,
        content: str,
        source_document_id: str,
        source_page: Optional[int] = None,
        credential_override: Optional[str] = None,
    ) -> List[ItemDraft]:
        """
        Extract knowledge item drafts from one document's content.

        Chunks are processed strictly one after another with a fixed delay
        between calls. A failing chunk contributes nothing; the remaining
        chunks are still processed.

        Args:
            content: Raw document text
            source_document_id: Id stamped on every draft as source_item_id
            source_page: Optional page stamped on every draft
            credential_override: Optional per-call generation credential

        Returns:
            Validated drafts from all chunks, in document order. Empty if the
            content is blank.

        Raises:
            CredentialError: If the generation service rejects or lacks
                credentials; aborts the whole document
        """
        try:
            chunks = self._prepare_chunks(content)
        except ContentEmptyError:
            logger.info(f"Document {source_document_id} has no content, skipping")
            return []

        logger.info(
            f"Extracting from document {source_document_id}: {len(chunks)} chunk(s)"
        )

        drafts: List[ItemDraft] = []
        for index, chunk in enumerate(chunks):
            if index > 0:
                await asyncio.sleep(self.settings.chunk_delay_ms / 1000)
            try:
                drafts.extend(
                    await self._extract_chunk(
                        chunk,
                        index,
                        len(chunks),
                        source_document_id,
                        source_page,
                        credential_override,
                    )
                )
            except CredentialError:
                raise
            except ChunkProcessingError as e:
                logger.warning(
                    f"Skipping chunk {e.chunk_index + 1}/{len(chunks)} of "
                    f"document {source_document_id}: {e}"
                )

        logger.info(
            f"Extracted {len(drafts)} item(s) from document {source_document_id}"
        )
        return drafts

    def _prepare_chunks(self, content: str) -> List[Chunk]:
        if not content or not content.strip():
            raise ContentEmptyError("Document content is empty")
        cleaned = clean_content(content, self.settings.min_clean_length)
        if not cleaned.text.strip():
            raise ContentEmptyError("Document is empty after cleaning")
        return split_text(
            cleaned.text, self.settings.chunk_size, self.settings.chunk_overlap
        )

    async def _extract_chunk(
        self,
        chunk: Chunk,
        index: int,
        total: int,
        source_document_id: str,
        source_page: Optional[int],
        credential_override: Optional[str],
    ) -> List[ItemDraft]:
        """
        Run one generation call for a chunk and parse its response.

        Raises:
            CredentialError: Re-raised unchanged
            ChunkProcessingError: For any other failure
        """
        options = GenerationOptions(
            max_tokens=self.settings.extraction_max_tokens,
            temperature=self.settings.extraction_temperature,
            timeout_ms=self.settings.generation_timeout_ms,
            credential_override=credential_override,
        )
        try:
            response = await self.generator.generate(
                build_extraction_messages(chunk.text, index, total), options
            )
            return parse_response(response, source_document_id, source_page)
        except CredentialError:
            raise
        except Exception as e:
            raise ChunkProcessingError(str(e), chunk_index=index) from e
