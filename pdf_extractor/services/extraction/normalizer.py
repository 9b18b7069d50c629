"""
Response normalization.

Turns whatever the model returned into a rectangular, schema-complete
columnar dataset. Parsing is an explicit tagged step (Parsed | Malformed);
normalize() collapses Malformed into the default dataset and never raises.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

from .schemas import SENTINEL, ColumnarDataset, ExtractionSchema, FieldInput

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class Parsed:
    data: Dict[str, Any]


@dataclass(frozen=True)
class Malformed:
    raw_text: str
    reason: str


ParseOutcome = Union[Parsed, Malformed]


def _candidates(raw_text: str) -> List[str]:
    text = raw_text.strip()
    found = [text]
    fence = _FENCE_PATTERN.search(text)
    if fence:
        found.append(fence.group(1).strip())
    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        found.append(text[start:end + 1])
    return found


def parse_response(raw_text: Optional[str]) -> ParseOutcome:
    """Parse raw model output into a JSON object, or report why it is malformed."""
    if not raw_text or not raw_text.strip():
        return Malformed(raw_text=raw_text or "", reason="empty response")

    reason = "no JSON object found"
    for candidate in _candidates(raw_text):
        try:
            data = json.loads(candidate)
        except ValueError as e:
            reason = f"invalid JSON: {e}"
            continue
        if isinstance(data, dict):
            return Parsed(data=data)
        reason = f"expected a JSON object, got {type(data).__name__}"
    return Malformed(raw_text=raw_text, reason=reason)


def default_dataset(schema: Union[ExtractionSchema, Iterable[FieldInput]]) -> ColumnarDataset:
    """One sentinel row for every schema field."""
    return {title: [SENTINEL] for title in _schema_of(schema).titles}


def _schema_of(schema: Union[ExtractionSchema, Iterable[FieldInput]]) -> ExtractionSchema:
    if isinstance(schema, ExtractionSchema):
        return schema
    return ExtractionSchema.filtered(schema)


def _coerce_cell(value: Any) -> str:
    if value is None:
        return SENTINEL
    if isinstance(value, str):
        return value if value.strip() else SENTINEL
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _coerce_column(value: Any) -> List[str]:
    if not isinstance(value, list):
        return [SENTINEL]
    return [_coerce_cell(cell) for cell in value]


def repair(data: Dict[str, Any], schema: Union[ExtractionSchema, Iterable[FieldInput]]) -> ColumnarDataset:
    """Make a parsed object schema-complete and rectangular by sentinel padding."""
    titles = _schema_of(schema).titles
    dataset: ColumnarDataset = {}

    for title in titles:
        if title in data:
            dataset[title] = _coerce_column(data[title])
        else:
            dataset[title] = [SENTINEL]
    for key, value in data.items():
        key = str(key)
        if key not in dataset:
            dataset[key] = _coerce_column(value)

    if not dataset:
        return dataset

    row_count = max(1, max(len(column) for column in dataset.values()))
    for key, column in dataset.items():
        if len(column) < row_count:
            column.extend([SENTINEL] * (row_count - len(column)))
    return dataset


def normalize(raw_text: Optional[str], schema: Union[ExtractionSchema, Iterable[FieldInput]]) -> ColumnarDataset:
    """
    Normalize a raw model response into a columnar dataset.

    Args:
        raw_text: Raw LLM response
        schema: The extraction schema (or raw field list) the response answers

    Returns:
        Dataset whose keys cover every schema title and whose columns all have
        the same length (at least 1 when there is any column).
    """
    outcome = parse_response(raw_text)
    if isinstance(outcome, Malformed):
        logger.warning(f"Model response could not be parsed ({outcome.reason}); using default dataset")
        return default_dataset(schema)

    dataset = repair(outcome.data, schema)
    missing = [t for t in _schema_of(schema).titles if t not in outcome.data]
    if missing:
        logger.info(f"Model response omitted fields {missing}; filled with sentinel")
    return dataset
