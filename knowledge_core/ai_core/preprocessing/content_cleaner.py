"""
Content Preprocessing

Strips recurring boilerplate (disclaimer banners, export notices, duplicated
titles, blank-line runs) from raw document text before extraction.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Tuple

from knowledge_core.config import get_settings

logger = logging.getLogger(__name__)

MIN_CLEAN_LENGTH = 100

# (name, pattern, replacement) applied in order
BOILERPLATE_PATTERNS: List[Tuple[str, Pattern, str]] = [
    (
        "disclaimer_banner",
        re.compile(
            r"^[ \t]*(?:disclaimer:.*|this (?:document|content|material) is (?:provided )?for "
            r"(?:reference|informational purposes) only.*|本文档?仅供(?:参考|学习交流).*|免责声明[:：].*)$",
            re.IGNORECASE | re.MULTILINE,
        ),
        "",
    ),
    (
        "export_notice",
        re.compile(
            r"^[ \t]*(?:this (?:content|section|page|table|image|attachment) cannot be exported.*|"
            r"\[?(?:content|image|table) (?:could not|cannot) be exported\]?.*|"
            r"该内容(?:暂)?(?:无法|不支持)导出.*|此内容(?:无法|不支持)导出.*)$",
            re.IGNORECASE | re.MULTILINE,
        ),
        "",
    ),
    (
        "duplicate_title",
        re.compile(r"^([^\n]{1,200})\n(?:[ \t]*\n)*\1$", re.MULTILINE),
        r"\1",
    ),
    (
        "blank_line_run",
        re.compile(r"\n(?:[ \t]*\n){2,}"),
        "\n\n",
    ),
]


@dataclass
class CleaningResult:
    """Cleaned text plus a per-pattern log of removed characters."""

    text: str
    original_length: int
    removed: Dict[str, int] = field(default_factory=dict)
    reverted: bool = False

    @property
    def removed_total(self) -> int:
        return sum(self.removed.values())


def clean_content(text: str, min_length: Optional[int] = None) -> CleaningResult:
    """
    Remove known boilerplate patterns from raw document text.

    If cleaning leaves less than ``min_length`` characters while the original
    had at least that many, the cleaning is considered over-aggressive and
    the original text is returned instead.

    Args:
        text: Raw document text
        min_length: Minimum viable length (defaults to settings.min_clean_length)

    Returns:
        CleaningResult with the text to use downstream
    """
    if min_length is None:
        min_length = get_settings().min_clean_length

    text = text or ""
    cleaned = text
    removed: Dict[str, int] = {}

    for name, pattern, replacement in BOILERPLATE_PATTERNS:
        before = len(cleaned)
        cleaned = pattern.sub(replacement, cleaned)
        delta = before - len(cleaned)
        if delta > 0:
            removed[name] = removed.get(name, 0) + delta

    cleaned = cleaned.strip()

    if len(cleaned) < min_length <= len(text):
        logger.warning(
            f"Cleaning reduced content from {len(text)} to {len(cleaned)} chars, "
            f"keeping original text"
        )
        return CleaningResult(
            text=text, original_length=len(text), removed=removed, reverted=True
        )

    if removed:
        logger.debug(f"Removed boilerplate: {removed}")

    return CleaningResult(text=cleaned, original_length=len(text), removed=removed)
