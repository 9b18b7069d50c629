"""
API routes for table extraction.

Provides endpoints to:
- Extract a table from one uploaded PDF
- Extract tables from a batch of PDFs (per-file isolation, submission order)
- Export result maps as an xlsx workbook
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from fastapi.responses import JSONResponse

from ..dependencies import get_session
from ..schemas import BatchEntry, BatchResponse, ExportRequest, ExtractFailure, ExtractSuccess
from ..services.extraction.errors import ValidationError
from ..services.extraction.export import export_results
from ..services.extraction.session import ErrorKind, ExtractionSession, FileOutcome
from ..services.extraction.transpose import to_rows
from ..utils.files import attachment_header
from .helpers import XLSX_MEDIA_TYPE, collect_uploads, distinct_names, parse_fields_form, read_upload

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["extraction"])

_FAILURE_STATUS = {
    ErrorKind.EMPTY_DOCUMENT: 422,
    ErrorKind.MODEL_CALL: 502,
}


def _batch_entry(outcome: FileOutcome) -> BatchEntry:
    if outcome.ok:
        return BatchEntry(success=True, dataset=outcome.dataset)
    return BatchEntry(success=False, error=outcome.render(), details=outcome.error.kind.value)


@router.post("/extract")
async def extract_single(
    file: Optional[UploadFile] = File(None),
    pdf: Optional[UploadFile] = File(None),
    fields: Optional[str] = Form(None),
    session: ExtractionSession = Depends(get_session),
) -> JSONResponse:
    """Extract one document. Archives the result to history on success."""
    upload = file or pdf
    if upload is None:
        raise ValidationError("No file selected")
    schema = parse_fields_form(fields)
    file_name, content = await read_upload(upload)

    batch = await session.run_batch([(file_name, content)], schema)
    outcome = batch.outcomes[0]
    if outcome.ok:
        body = ExtractSuccess(fileName=file_name, dataset=outcome.dataset, rows=to_rows(outcome.dataset))
        return JSONResponse(status_code=200, content=body.model_dump())

    failure = ExtractFailure(error=outcome.error.message, details=outcome.error.kind.value)
    return JSONResponse(status_code=_FAILURE_STATUS[outcome.error.kind], content=failure.model_dump())


@router.post("/extract/batch", response_model=BatchResponse)
async def extract_batch(
    files: Optional[List[UploadFile]] = File(None),
    file: Optional[UploadFile] = File(None),
    fields: Optional[str] = Form(None),
    session: ExtractionSession = Depends(get_session),
) -> BatchResponse:
    """Extract several documents against one schema; one failing file never aborts the rest."""
    uploads = collect_uploads(files, [file] if file else None)
    if not uploads:
        raise ValidationError("No file selected")
    schema = parse_fields_form(fields)

    read = [await read_upload(upload) for upload in uploads]
    names = distinct_names(name for name, _ in read)
    payload = [(name, content) for name, (_, content) in zip(names, read)]

    batch = await session.run_batch(payload, schema)
    results = {}
    for outcome in batch.outcomes:
        results[outcome.file_name] = _batch_entry(outcome)
    return BatchResponse(
        results=results,
        order=[o.file_name for o in batch.outcomes],
        succeeded=batch.succeeded,
        failed=batch.failed,
    )


@router.post("/export")
async def export_workbook(request: ExportRequest) -> Response:
    """Build an xlsx workbook with one sheet per successful result."""
    content = export_results(request.results)
    logger.info(f"Exported workbook with {len(request.results)} result entries")
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers=attachment_header("extracted_data.xlsx"),
    )
