from __future__ import annotations

import json
from typing import Any, Iterable, List, Optional, Set, Tuple

from fastapi import UploadFile

from ..dependencies import settings
from ..services.extraction.errors import ValidationError
from ..services.extraction.schemas import ExtractionSchema

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def parse_fields_form(raw: Optional[str]) -> ExtractionSchema:
    if not raw or not raw.strip():
        raise ValidationError("At least one field with a title and description is required")
    try:
        fields: Any = json.loads(raw)
    except ValueError as e:
        raise ValidationError(f"'fields' must be a JSON list: {e}") from e
    if not isinstance(fields, list):
        raise ValidationError("'fields' must be a JSON list")
    return ExtractionSchema.from_fields(fields)


async def read_upload(file: UploadFile) -> Tuple[str, bytes]:
    """Read an upload under its submitted name. Empty content is left to the session."""
    display_name = (file.filename or "").strip() or "upload.pdf"
    content = await file.read()
    await file.close()
    limit = settings.max_upload_bytes
    if len(content) > limit:
        raise ValidationError(f"File '{display_name}' exceeds the {limit / (1024 * 1024):g}MB upload limit")
    return display_name, content


def distinct_names(names: Iterable[str]) -> List[str]:
    """Suffix repeated file names with ' (2)', ' (3)'... so result keys stay one per file."""
    seen: Set[str] = set()
    out: List[str] = []
    for name in names:
        candidate = name
        counter = 1
        while candidate in seen:
            counter += 1
            candidate = f"{name} ({counter})"
        seen.add(candidate)
        out.append(candidate)
    return out


def collect_uploads(*groups: Optional[List[UploadFile]]) -> List[UploadFile]:
    uploads: List[UploadFile] = []
    for group in groups:
        if group:
            uploads.extend(group)
    return uploads
