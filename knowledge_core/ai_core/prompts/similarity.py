"""Prompts for semantic similarity scoring."""

from textwrap import dedent

SIMILARITY_SYSTEM_PROMPT = dedent(
    """
    You are a similarity assessment expert. Rate the semantic similarity of two knowledge items on a scale from 0 to 100.
    Return ONLY the number, no other text.
    """
).strip()

SIMILARITY_USER_PROMPT_TEMPLATE = dedent(
    """
    Knowledge item 1: {first}

    Knowledge item 2: {second}

    Rate the semantic similarity of these two knowledge items (0-100):
    """
).strip()


def build_similarity_messages(first: str, second: str):
    return [
        {"role": "system", "content": SIMILARITY_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": SIMILARITY_USER_PROMPT_TEMPLATE.format(
                first=first, second=second
            ),
        },
    ]
