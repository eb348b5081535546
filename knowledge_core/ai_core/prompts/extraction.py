"""
Prompts for Knowledge Extraction

The model is asked for a bare JSON array of knowledge items. The response
parser tolerates prose around the array and unescaped control characters.
"""

from textwrap import dedent

EXTRACTION_SYSTEM_PROMPT = dedent(
    """
    You are a knowledge extraction expert. Extract the key knowledge items from the document content provided by the user.

    **Requirements:**
    1. Extract core concepts, key points, rules and methods
    2. Each item must be self-contained, complete and meaningful
    3. Give each item a concise title and a detailed description
    4. Rate your confidence in each item from 0 to 100
    5. List 2-5 key conclusions per item
    6. Add 2-5 relevant tags per item

    **Output format (JSON array):**
    [
      {{
        "title": "Item title",
        "content": "Detailed item content",
        "summary": "Short summary (optional)",
        "keyConclusions": ["Conclusion 1", "Conclusion 2"],
        "confidence": 85,
        "tags": ["tag1", "tag2"],
        "sourceExcerpt": "Excerpt from the original text"
      }}
    ]

    Return ONLY the JSON array, no other text.
    """
).strip()

EXTRACTION_USER_PROMPT_TEMPLATE = dedent(
    """
    Extract the key knowledge items from the following document content{part_note}:

    {content}
    """
).strip()


def build_extraction_messages(content: str, part: int = 0, total_parts: int = 1):
    """Build the chat messages for one extraction call."""
    part_note = f" (part {part + 1} of {total_parts})" if total_parts > 1 else ""
    return [
        {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT.format()},
        {
            "role": "user",
            "content": EXTRACTION_USER_PROMPT_TEMPLATE.format(
                part_note=part_note, content=content
            ),
        },
    ]
