from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response

from ..dependencies import get_store
from ..persistence import ExtractionStore, Template
from ..schemas import DeleteResponse, FieldModel, TemplateCreate, TemplateOut
from ..utils.files import attachment_header

router = APIRouter(prefix="/api/templates", tags=["templates"])


def _template_out(template: Template) -> TemplateOut:
    return TemplateOut(**template.to_dict())


def _require(store: ExtractionStore, template_id: str) -> Template:
    template = store.get_template(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail=f"Template '{template_id}' not found")
    return template


@router.get("", response_model=List[TemplateOut])
async def list_templates(store: ExtractionStore = Depends(get_store)) -> List[TemplateOut]:
    return [_template_out(t) for t in store.list_templates()]


@router.post("", response_model=TemplateOut, status_code=201)
async def save_template(
    request: TemplateCreate,
    store: ExtractionStore = Depends(get_store),
) -> TemplateOut:
    template = await store.save_template(request.name, [f.model_dump() for f in request.fields])
    return _template_out(template)


@router.get("/{template_id}", response_model=List[FieldModel])
async def load_template(template_id: str, store: ExtractionStore = Depends(get_store)) -> List[FieldModel]:
    """Fields of a saved template, in order, ready to become the active schema."""
    _require(store, template_id)
    return [FieldModel(**f.to_dict()) for f in store.load_template(template_id)]


@router.get("/{template_id}/download")
async def download_template(template_id: str, store: ExtractionStore = Depends(get_store)) -> Response:
    template = _require(store, template_id)
    return Response(
        content=template.content,
        media_type="application/json; charset=utf-8",
        headers=attachment_header(f"{template.name}.json"),
    )


@router.delete("/{template_id}", response_model=DeleteResponse)
async def delete_template(template_id: str, store: ExtractionStore = Depends(get_store)) -> DeleteResponse:
    if not await store.delete_template(template_id):
        raise HTTPException(status_code=404, detail=f"Template '{template_id}' not found")
    return DeleteResponse(deleted=True, id=template_id)
