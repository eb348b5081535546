"""
Knowledge Item Classification

Assigns one of the fixed top-level categories and an optional subcategory
to an item, by weighted overlap between its tags and each subcategory's
keywords.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import yaml

from knowledge_core.models.knowledge import (
    Classification,
    KnowledgeCategory,
    Subcategory,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = KnowledgeCategory.WORK
MIN_SUBCATEGORY_SCORE = 0.1
DEFAULT_SUBCATEGORIES_FILE = (
    Path(__file__).resolve().parent.parent.parent / "data" / "subcategories.yaml"
)

# Used only when no subcategories are configured. Exact match only.
TAG_TO_CATEGORY: Dict[str, KnowledgeCategory] = {
    **{
        tag: KnowledgeCategory.WORK
        for tag in (
            "工作", "职场", "职业", "业务", "项目", "管理", "团队", "领导", "会议", "报告",
            "work", "career", "business", "project", "management", "team", "meeting",
        )
    },
    **{
        tag: KnowledgeCategory.LEARNING
        for tag in (
            "学习", "教育", "课程", "培训", "知识", "技能", "阅读", "研究", "学术", "考试", "笔记",
            "learning", "education", "course", "training", "skill", "reading", "research",
        )
    },
    **{
        tag: KnowledgeCategory.LEISURE
        for tag in (
            "娱乐", "游戏", "电影", "音乐", "旅行", "旅游", "运动", "健身", "美食", "购物", "兴趣", "爱好",
            "entertainment", "game", "movie", "music", "travel", "sports", "hobby",
        )
    },
    **{
        tag: KnowledgeCategory.LIFE
        for tag in (
            "生活", "家庭", "健康", "医疗", "养生", "理财", "投资", "房产", "装修", "育儿",
            "情感", "人际关系", "社交",
            "life", "family", "health", "finance", "investment", "parenting",
        )
    },
}


def keyword_score(tags: Sequence[str], keywords: Sequence[str]) -> float:
    """
    Weighted tag/keyword overlap, normalised by ``len(keywords) + len(tags)``.

    +2 for each exact match, +1 for each substring match in either direction.
    """
    if not tags or not keywords:
        return 0.0

    total = 0
    for tag in tags:
        for keyword in keywords:
            if tag == keyword:
                total += 2
            elif tag in keyword or keyword in tag:
                total += 1
    return total / (len(keywords) + len(tags))


def category_from_tags(tags: Sequence[str]) -> KnowledgeCategory:
    """Majority vote over the static tag table, defaulting to WORK."""
    counts = {category: 0 for category in KnowledgeCategory}
    for tag in tags:
        category = TAG_TO_CATEGORY.get(tag)
        if category:
            counts[category] += 1

    best = max(counts, key=lambda c: counts[c])
    return best if counts[best] > 0 else DEFAULT_CATEGORY


def load_subcategories(path: Optional[str] = None) -> List[Subcategory]:
    """
    Load subcategory configuration from YAML.

    Args:
        path: YAML file path. Defaults to the bundled data/subcategories.yaml

    Returns:
        Subcategories in declared order
    """
    file_path = Path(path) if path else DEFAULT_SUBCATEGORIES_FILE
    if not file_path.exists():
        logger.warning(f"Subcategory file not found: {file_path}")
        return []

    with open(file_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    subcategories = []
    for index, entry in enumerate(data.get("subcategories", [])):
        entry.setdefault("order_index", index)
        subcategories.append(Subcategory.model_validate(entry))
    return subcategories


class Classifier:
    """
    Keyword-vector classifier over a read-only subcategory configuration.
    """

    def __init__(self, subcategories: Optional[Sequence[Subcategory]] = None):
        self.subcategories: List[Subcategory] = list(subcategories or [])

    def classify(self, tags: Optional[Sequence[str]]) -> Classification:
        """
        Classify an item by its tags.

        Args:
            tags: The item's tags (may be empty)

        Returns:
            Classification with a category that is always one of
            KnowledgeCategory, and a subcategory id when one applies
        """
        tags = [t for t in (tags or []) if t]

        if not self.subcategories:
            return Classification(category=category_from_tags(tags))

        best: Optional[Subcategory] = None
        best_score = 0.0
        for subcategory in self.subcategories:
            score = keyword_score(tags, subcategory.keywords)
            if score > best_score:
                best_score = score
                best = subcategory

        if best is not None and best_score >= MIN_SUBCATEGORY_SCORE:
            return Classification(category=best.category, subcategory_id=best.id)

        logger.debug(
            f"Low classification score ({best_score:.2f}) for tags {tags}, "
            f"using default category"
        )
        return self._default()

    def _default(self) -> Classification:
        for subcategory in self.subcategories:
            if subcategory.category == DEFAULT_CATEGORY:
                return Classification(
                    category=DEFAULT_CATEGORY, subcategory_id=subcategory.id
                )
        return Classification(category=DEFAULT_CATEGORY)
