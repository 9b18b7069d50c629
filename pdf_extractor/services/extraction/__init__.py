"""
Schema-driven table extraction.

This module provides:
- ExtractionSchema / FieldSpec for user-defined fields
- Prompt construction and response normalization into columnar datasets
- Row/column transposition and spreadsheet export
- ExtractionSession for batch processing with per-file isolation
"""

from .errors import EmptyDocumentError, ExtractionError, ModelCallError, ValidationError
from .normalizer import normalize
from .schemas import SENTINEL, ExtractionSchema, FieldSpec
from .session import BatchResult, ExtractionSession, FileOutcome, FileState
from .transpose import to_columns, to_rows

__all__ = [
    "SENTINEL",
    "BatchResult",
    "EmptyDocumentError",
    "ExtractionError",
    "ExtractionSchema",
    "ExtractionSession",
    "FieldSpec",
    "FileOutcome",
    "FileState",
    "ModelCallError",
    "ValidationError",
    "normalize",
    "to_columns",
    "to_rows",
]
