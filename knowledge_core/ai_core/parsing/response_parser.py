"""
Response Repair Parsing

Turns a free-form model response into validated ItemDrafts.

The model is asked for a JSON array but frequently returns one wrapped in
prose, with raw newlines inside string values, or as a single object. Repair
strategies are plain ``str -> Any`` functions tried in order; the first one
that yields parsed JSON wins.
"""

import json
import re
import logging
from typing import Any, Callable, List, Optional, Tuple

from pydantic import ValidationError

from knowledge_core.errors import CredentialError, RateLimitError
from knowledge_core.models.knowledge import ItemDraft

logger = logging.getLogger(__name__)

# Phrases checked before any parse attempt (lowercased substring match)
CREDENTIAL_PHRASES = (
    "invalid api key",
    "incorrect api key",
    "api key not configured",
    "api key is not configured",
    "authentication failed",
    "authentication error",
    "unauthorized",
    "invalid_api_key",
    "未配置deepseek api key",
    "api key无效",
    "认证失败",
)

RATE_LIMIT_PHRASES = (
    "rate limit",
    "rate_limit",
    "too many requests",
    "quota exceeded",
    "insufficient_quota",
    "insufficient balance",
    "余额不足",
    "请求过于频繁",
)

_CONTROL_ESCAPES = {
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\f": "\\f",
    "\b": "\\b",
}


# Repair strategies


def parse_strict(text: str) -> Any:
    return json.loads(text)


def collapse_structural_whitespace(text: str) -> Any:
    """Drop newlines/whitespace adjacent to structural tokens, then parse."""
    repaired = re.sub(r"\n\s*(?=[}\]])", "", text)
    repaired = re.sub(r"(?<=[{\[])\s*\n", "", repaired)
    repaired = re.sub(r",\s*\n\s*", ", ", repaired)
    repaired = re.sub(r":\s*\n\s*", ": ", repaired)
    return json.loads(repaired)


def escape_controls_in_strings(text: str) -> Any:
    """
    Scan character by character, tracking string literals.

    Control characters inside a string are escaped; the same characters
    outside strings are dropped.
    """
    out = []
    in_string = False
    escape_next = False

    for char in text:
        if escape_next:
            out.append(char)
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            out.append(char)
            continue
        if char == '"':
            in_string = not in_string
            out.append(char)
            continue
        if char in _CONTROL_ESCAPES:
            if in_string:
                out.append(_CONTROL_ESCAPES[char])
            continue
        out.append(char)

    return json.loads("".join(out))


def escape_all_controls(text: str) -> Any:
    """Blanket-escape every unescaped control character."""
    repaired = text
    for char, escaped in _CONTROL_ESCAPES.items():
        repaired = re.sub(r"(?<!\\)" + re.escape(char), lambda _m, e=escaped: e, repaired)
    return json.loads(repaired)


REPAIR_STRATEGIES: List[Tuple[str, Callable[[str], Any]]] = [
    ("strict", parse_strict),
    ("collapse_whitespace", collapse_structural_whitespace),
    ("escape_in_strings", escape_controls_in_strings),
    ("escape_all", escape_all_controls),
]


def apply_repairs(candidate: str) -> Optional[Any]:
    """
    Fold the repair strategies over a JSON candidate.

    Returns:
        Parsed JSON from the first successful strategy, or None
    """
    errors = []
    for name, strategy in REPAIR_STRATEGIES:
        try:
            parsed = strategy(candidate)
        except (ValueError, RecursionError) as e:
            errors.append(f"{name}: {e}")
            continue
        if name != "strict":
            logger.info(f"JSON repaired with strategy '{name}'")
        return parsed

    logger.debug(f"All repair strategies failed: {errors}")
    return None


def _span(text: str, open_char: str, close_char: str) -> Optional[Tuple[int, int]]:
    start = text.find(open_char)
    end = text.rfind(close_char)
    if start == -1 or end <= start:
        return None
    return start, end + 1


def _is_item(value: Any) -> bool:
    return isinstance(value, dict) and ("title" in value or "content" in value)


def locate_items(text: str) -> Tuple[List[Any], Optional[Tuple[int, int]]]:
    """
    Find the JSON candidate holding the extracted entries.

    The outermost ``[...]`` span is used when it opens before the first
    ``{`` or parses to a list containing objects. Otherwise a lone object
    with a title or content is wrapped in a list, so the arrays nested
    inside a single item (tags, conclusions) are never mistaken for the
    item list.

    Returns:
        (raw entries, span of the candidate in ``text``); ([], None) if
        nothing usable was found
    """
    object_start = text.find("{")
    array_span = _span(text, "[", "]")
    if array_span:
        parsed = apply_repairs(text[array_span[0] : array_span[1]])
        leading = object_start == -1 or array_span[0] < object_start
        if isinstance(parsed, list) and (
            leading or any(isinstance(entry, dict) for entry in parsed)
        ):
            return parsed, array_span

    object_span = _span(text, "{", "}")
    if object_span:
        parsed = apply_repairs(text[object_span[0] : object_span[1]])
        if _is_item(parsed):
            return [parsed], object_span

    return [], None


def detect_service_error(
    text: str, items_span: Optional[Tuple[int, int]] = None
) -> None:
    """
    Raise a typed error if the response itself reports an auth or quota problem.

    Only ``items_span`` (the located knowledge items) is skipped, so extracted
    content that merely mentions rate limits is not misread while JSON error
    bodies from the provider are still scanned.

    Args:
        text: Raw response text
        items_span: Span of parsed knowledge items to ignore, if any

    Raises:
        CredentialError: Authentication / API key phrases found
        RateLimitError: Rate-limit / quota phrases found
    """
    if items_span is None:
        outside = text
    else:
        outside = text[: items_span[0]] + " " + text[items_span[1] :]
    lowered = outside.lower()

    for phrase in CREDENTIAL_PHRASES:
        if phrase in lowered:
            raise CredentialError(f"Generation service reported: {outside.strip()[:200]}")
    for phrase in RATE_LIMIT_PHRASES:
        if phrase in lowered:
            raise RateLimitError(f"Generation service reported: {outside.strip()[:200]}")


def validate_drafts(
    raw_items: List[Any],
    source_item_id: Optional[str] = None,
    source_page: Optional[int] = None,
) -> List[ItemDraft]:
    """
    Validate raw parsed entries against the ItemDraft schema.

    Entries that are not objects or lack a non-blank title/content are
    dropped with a logged reason.
    """
    drafts = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            logger.warning(f"Dropping entry {index}: not an object")
            continue
        data = dict(raw)
        if source_item_id is not None:
            data["source_item_id"] = source_item_id
            data.pop("sourceItemId", None)
        if source_page is not None:
            data["source_page"] = source_page
            data.pop("sourcePage", None)
        try:
            drafts.append(ItemDraft.model_validate(data))
        except ValidationError as e:
            fields = ", ".join(
                str(err["loc"][0]) for err in e.errors() if err.get("loc")
            )
            logger.warning(f"Dropping entry {index}: invalid fields ({fields})")
    return drafts


def parse_response(
    raw_response: str,
    source_item_id: Optional[str] = None,
    source_page: Optional[int] = None,
) -> List[ItemDraft]:
    """
    Parse a model response into validated item drafts.

    Never raises on malformed structure: unrecoverable responses yield [].

    Args:
        raw_response: Text returned by the generation call
        source_item_id: Originating document id stamped on every draft
        source_page: Originating page stamped on every draft

    Returns:
        List of validated ItemDrafts

    Raises:
        CredentialError: If the response reports an authentication problem
        RateLimitError: If the response reports a rate-limit/quota problem
    """
    if not raw_response or not raw_response.strip():
        return []

    raw_items, span = locate_items(raw_response)
    items_found = any(_is_item(entry) for entry in raw_items)
    detect_service_error(raw_response, span if items_found else None)

    if not raw_items:
        logger.warning(
            f"Could not parse extraction response: {raw_response[:200]!r}"
        )
        return []

    return validate_drafts(raw_items, source_item_id, source_page)
