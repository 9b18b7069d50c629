"""
User-defined extraction schemas.

A schema is an ordered list of fields. Each field serves two purposes:
1. Prompt Generation: telling the LLM what to extract
2. Table Definition: naming one column of the resulting dataset
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Union

from .errors import ValidationError

SENTINEL = "정보 없음"

ColumnarDataset = Dict[str, List[str]]
RowRecord = Dict[str, str]


@dataclass(frozen=True)
class FieldSpec:
    """Specification for a single extraction field."""
    title: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "description": self.description}

    @classmethod
    def from_any(cls, raw: Union["FieldSpec", Mapping[str, Any]]) -> "FieldSpec":
        if isinstance(raw, FieldSpec):
            return raw
        return cls(
            title=str(raw.get("title") or "").strip(),
            description=str(raw.get("description") or "").strip(),
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.title) and bool(self.description)


FieldInput = Union[FieldSpec, Mapping[str, Any]]


@dataclass(frozen=True)
class ExtractionSchema:
    """
    Ordered, filtered set of fields for one extraction request.

    Attributes:
        fields: Fields with both a title and a description, in user order
    """
    fields: tuple[FieldSpec, ...]

    @classmethod
    def filtered(cls, raw_fields: Iterable[FieldInput]) -> "ExtractionSchema":
        """Keep only complete fields. Never raises."""
        kept = []
        for raw in raw_fields or ():
            try:
                spec = FieldSpec.from_any(raw)
            except AttributeError:
                continue
            if spec.is_complete:
                kept.append(spec)
        return cls(fields=tuple(kept))

    @classmethod
    def from_fields(cls, raw_fields: Iterable[FieldInput]) -> "ExtractionSchema":
        """Build a schema that is valid for extraction or raise ValidationError."""
        schema = cls.filtered(raw_fields)
        if not schema.fields:
            raise ValidationError("At least one field with a title and description is required")
        seen = set()
        for spec in schema.fields:
            if spec.title in seen:
                raise ValidationError(f"Duplicate field title: {spec.title}")
            seen.add(spec.title)
        return schema

    @property
    def titles(self) -> List[str]:
        return [f.title for f in self.fields]

    def get_field_descriptions(self) -> str:
        """Generate field descriptions for the LLM prompt."""
        return "\n".join(f"{f.title}: {f.description}" for f in self.fields)

    def to_list(self) -> List[Dict[str, str]]:
        return [f.to_dict() for f in self.fields]
