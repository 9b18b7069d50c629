"""Error taxonomy for the extraction pipeline."""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for extraction pipeline errors."""


class ValidationError(ExtractionError):
    """Rejected before any I/O: empty schema, empty template name, no files."""


class EmptyDocumentError(ExtractionError):
    """Text extraction produced no usable content."""


class ModelCallError(ExtractionError):
    """The completion call failed (transport, auth, quota or response shape)."""
