"""
Test doubles for the text-generation and persistence capabilities.
"""

from typing import Callable, List, Optional, Union

from knowledge_core.ai_core.generation.text_generator import GenerationOptions
from knowledge_core.models.knowledge import KnowledgeCategory, KnowledgeItem, KnowledgeStatus
from knowledge_core.services.repository import InMemoryKnowledgeRepository

Reply = Union[str, Exception]


class FakeGenerator:
    """
    Scripted TextGenerator.

    ``replies`` is either a list consumed in order (the last entry repeats)
    or a callable receiving the messages. Exceptions are raised, not returned.
    """

    def __init__(self, replies: Union[List[Reply], Callable[[list], Reply]]):
        self.replies = replies
        self.calls: List[list] = []
        self.options: List[GenerationOptions] = []

    async def generate(self, messages, options: GenerationOptions) -> str:
        self.calls.append(messages)
        self.options.append(options)
        if callable(self.replies):
            reply = self.replies(messages)
        else:
            reply = self.replies[min(len(self.calls), len(self.replies)) - 1]
        if isinstance(reply, Exception):
            raise reply
        return reply


class FailingRepository(InMemoryKnowledgeRepository):
    """Repository whose create_item fails for titles listed in ``fail_titles``."""

    def __init__(self, fail_titles=(), **kwargs):
        super().__init__(**kwargs)
        self.fail_titles = set(fail_titles)

    async def create_item(self, item):
        if item.title in self.fail_titles:
            raise RuntimeError(f"disk full while saving {item.title}")
        return await super().create_item(item)


def make_item(
    item_id: str,
    title: str = "Item",
    content: str = "Some content",
    tags: Optional[List[str]] = None,
    category: KnowledgeCategory = KnowledgeCategory.WORK,
    collection_id: Optional[str] = "col-1",
    status: KnowledgeStatus = KnowledgeStatus.CONFIRMED,
) -> KnowledgeItem:
    return KnowledgeItem(
        id=item_id,
        title=title,
        content=content,
        tags=tags or [],
        category=category,
        collection_id=collection_id,
        status=status,
    )
