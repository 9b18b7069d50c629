from __future__ import annotations

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..dependencies import get_store
from ..persistence import ExtractionStore, HistoryItem
from ..schemas import DeleteResponse, HistoryDetail, HistoryOut
from ..services.extraction.export import ERROR_PREFIX, export_results
from ..services.extraction.transpose import to_rows
from ..utils.files import attachment_header
from .helpers import XLSX_MEDIA_TYPE

router = APIRouter(prefix="/api/history", tags=["history"])


def _require(store: ExtractionStore, item_id: str) -> HistoryItem:
    item = store.get_history(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"History item '{item_id}' not found")
    return item


@router.get("", response_model=List[HistoryOut])
async def list_history(
    q: Optional[str] = Query(default=None),
    store: ExtractionStore = Depends(get_store),
) -> List[HistoryOut]:
    """Most recent first; q filters by file name or field list, case-insensitively."""
    return [HistoryOut(**item.to_dict()) for item in store.search_history(q)]


@router.get("/{item_id}", response_model=HistoryDetail)
async def get_history_item(item_id: str, store: ExtractionStore = Depends(get_store)) -> HistoryDetail:
    item = _require(store, item_id)
    detail = HistoryDetail(**item.to_dict())
    if item.result.startswith(ERROR_PREFIX):
        detail.error = item.result
        return detail
    try:
        dataset = json.loads(item.result)
    except ValueError:
        detail.error = f"{ERROR_PREFIX} stored result is not valid JSON"
        return detail
    if isinstance(dataset, dict):
        detail.dataset = dataset
        detail.rows = to_rows(dataset)
    return detail


@router.get("/{item_id}/export")
async def export_history_item(item_id: str, store: ExtractionStore = Depends(get_store)) -> Response:
    item = _require(store, item_id)
    content = export_results({item.file_name: item.result})
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers=attachment_header("extracted_data.xlsx"),
    )


@router.delete("/{item_id}", response_model=DeleteResponse)
async def delete_history_item(item_id: str, store: ExtractionStore = Depends(get_store)) -> DeleteResponse:
    if not await store.delete_history(item_id):
        raise HTTPException(status_code=404, detail=f"History item '{item_id}' not found")
    return DeleteResponse(deleted=True, id=item_id)
