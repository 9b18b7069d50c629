"""
Spreadsheet export.

One sheet per processed file: header row of field titles, one row per
extracted item, column widths sized to the longest header or cell.
"""

from __future__ import annotations

import io
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Set, Union

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from .errors import ValidationError
from .schemas import ColumnarDataset, RowRecord
from .transpose import column_widths, to_rows

logger = logging.getLogger(__name__)

MAX_SHEET_NAME = 31
ERROR_PREFIX = "Error:"
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")

ResultValue = Union[ColumnarDataset, str, None]


@dataclass
class Sheet:
    name: str
    headers: List[str]
    rows: List[RowRecord]
    widths: List[int]


def sheet_name(file_name: str) -> str:
    cleaned = _INVALID_SHEET_CHARS.sub("_", file_name or "")
    return cleaned[:MAX_SHEET_NAME] or "Sheet"


def unique_sheet_name(file_name: str, taken: Set[str]) -> str:
    """Clipped sheet name that differs (case-insensitively) from every name in taken."""
    base = sheet_name(file_name)
    name = base
    counter = 1
    while name.lower() in taken:
        counter += 1
        suffix = f"~{counter}"
        name = base[:MAX_SHEET_NAME - len(suffix)] + suffix
    taken.add(name.lower())
    return name


def _as_dataset(result: ResultValue) -> Optional[ColumnarDataset]:
    if result is None:
        return None
    if isinstance(result, str):
        if result.startswith(ERROR_PREFIX):
            return None
        parsed: Any = json.loads(result)
    else:
        parsed = result
    if not isinstance(parsed, dict):
        return None
    return parsed


def build_sheet(file_name: str, dataset: Mapping[str, List[str]], name: Optional[str] = None) -> Sheet:
    headers = list(dataset.keys())
    rows = to_rows(dataset)
    return Sheet(
        name=name or sheet_name(file_name),
        headers=headers,
        rows=rows,
        widths=column_widths(rows, headers),
    )


def build_sheets(results: Mapping[str, ResultValue]) -> List[Sheet]:
    """Build sheets from a result map, skipping error entries."""
    sheets: List[Sheet] = []
    taken: Set[str] = set()
    for file_name, result in results.items():
        try:
            dataset = _as_dataset(result)
        except ValueError:
            logger.warning(f"Skipping {file_name}: stored result is not valid JSON")
            continue
        if dataset is None:
            logger.info(f"Skipping {file_name}: no dataset to export")
            continue
        sheets.append(build_sheet(file_name, dataset, unique_sheet_name(file_name, taken)))
    return sheets


def write_workbook(sheets: List[Sheet]) -> bytes:
    """Serialize sheets into xlsx bytes."""
    if not sheets:
        raise ValidationError("No extraction results to export")

    wb = Workbook()
    wb.remove(wb.active)
    for sheet in sheets:
        ws = wb.create_sheet(title=sheet.name)
        ws.append(sheet.headers)
        for row in sheet.rows:
            ws.append([row.get(key, "") for key in sheet.headers])
        for idx, width in enumerate(sheet.widths, start=1):
            ws.column_dimensions[get_column_letter(idx)].width = width

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def export_results(results: Mapping[str, ResultValue]) -> bytes:
    return write_workbook(build_sheets(results))
