"""
Prompt construction for schema-driven JSON extraction.

The model is asked for one JSON object whose keys are the field titles and
whose values are equal-length arrays, one array position per repeated item.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, List

from .errors import ValidationError
from .schemas import SENTINEL, ExtractionSchema

ELLIPSIS_MARKER = "\n..."


@dataclass(frozen=True)
class TruncatedText:
    """Document text clipped to a character budget."""
    original_length: int
    shown_prefix: str

    @classmethod
    def clip(cls, text: str, max_chars: int) -> "TruncatedText":
        text = text or ""
        return cls(original_length=len(text), shown_prefix=text[: max(0, max_chars)])

    @property
    def truncated(self) -> bool:
        return self.original_length > len(self.shown_prefix)

    @property
    def dropped_chars(self) -> int:
        return self.original_length - len(self.shown_prefix)

    def render(self) -> str:
        if self.truncated:
            return self.shown_prefix + ELLIPSIS_MARKER
        return self.shown_prefix


@dataclass(frozen=True)
class PromptPayload:
    system: str
    user: str
    document: TruncatedText

    def messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


def build_extraction_prompt(
    schema: ExtractionSchema,
    document_text: str,
    max_text_chars: int = 12000,
) -> PromptPayload:
    """
    Build system and user prompts for JSON extraction.

    Args:
        schema: Validated extraction schema (at least one field)
        document_text: Full text of the document
        max_text_chars: Max characters to include from the document

    Returns:
        PromptPayload with both messages and the clipped document
    """
    if not isinstance(schema, ExtractionSchema):
        schema = ExtractionSchema.from_fields(schema)
    if not schema.fields:
        raise ValidationError("Cannot build a prompt for an empty schema")

    document = TruncatedText.clip(document_text, max_text_chars)
    keys = json.dumps(schema.titles, ensure_ascii=False)
    example = json.dumps(
        {title: ["...", "..."] for title in schema.titles},
        ensure_ascii=False,
    )

    system_prompt = f"""You are a precise data extraction assistant. Extract the requested fields from the document and answer with structured JSON.

OUTPUT FORMAT:
- Output exactly ONE JSON object and nothing else (no prose, no code fences)
- The keys must be exactly these field titles, in this order: {keys}
- Every value must be an array of strings
- All arrays must have the same length
- Position i of every array describes the same item (the same question, line item or record)
- When a value for an item is not found in the document, use "{SENTINEL}"

EXAMPLE OUTPUT FORMAT:
{example}"""

    user_prompt = f"""FIELDS TO EXTRACT:
{schema.get_field_descriptions()}

DOCUMENT:
---
{document.render()}
---"""

    return PromptPayload(system=system_prompt, user=user_prompt, document=document)
