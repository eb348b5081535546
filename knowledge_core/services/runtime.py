"""
Process-wide service wiring.

Builds the default collaborators once: gen_ai_hub text generator, in-memory
repository seeded with the configured subcategories and source documents,
in-memory task store and similarity cache.
"""

from dataclasses import dataclass
from functools import lru_cache

from knowledge_core.ai_core.classification.classifier import load_subcategories
from knowledge_core.ai_core.extraction.knowledge_extractor import KnowledgeExtractor
from knowledge_core.ai_core.generation.text_generator import (
    GenAIHubTextGenerator,
    TextGenerator,
)
from knowledge_core.ai_core.similarity.similarity_engine import SimilarityEngine
from knowledge_core.config import get_settings
from knowledge_core.services.extraction_orchestrator import (
    ExtractionJobRunner,
    ExtractionOrchestrator,
)
from knowledge_core.services.knowledge_graph import KnowledgeGraphService
from knowledge_core.services.repository import (
    InMemoryKnowledgeRepository,
    InMemorySimilarityCache,
    KnowledgeRepository,
    load_documents,
)
from knowledge_core.services.task_store import InMemoryTaskStore, TaskStore


@dataclass
class Runtime:
    repository: KnowledgeRepository
    task_store: TaskStore
    runner: ExtractionJobRunner
    graph: KnowledgeGraphService


def build_runtime(
    generator: TextGenerator,
    repository: KnowledgeRepository,
    task_store: TaskStore,
) -> Runtime:
    settings = get_settings()
    extractor = KnowledgeExtractor(generator, settings)
    orchestrator = ExtractionOrchestrator(extractor, repository, settings)
    return Runtime(
        repository=repository,
        task_store=task_store,
        runner=ExtractionJobRunner(orchestrator, task_store),
        graph=KnowledgeGraphService(
            SimilarityEngine(generator),
            repository,
            cache=InMemorySimilarityCache(),
            settings=settings,
        ),
    )


@lru_cache
def get_runtime() -> Runtime:
    settings = get_settings()
    repository = InMemoryKnowledgeRepository(
        documents=load_documents(settings.documents_dir),
        subcategories=load_subcategories(settings.subcategories_file or None),
    )
    return build_runtime(GenAIHubTextGenerator(settings), repository, InMemoryTaskStore())
