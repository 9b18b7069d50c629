from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..dependencies import get_store, settings
from ..persistence import ExtractionStore

router = APIRouter(prefix="/api", tags=["system"])


def _settings_snapshot() -> Dict[str, Dict[str, Any]]:
    return {
        "llm": {
            "base_url": settings.llm_base_url,
            "model": settings.llm_model,
            "temperature": settings.llm_temperature,
            "max_tokens": settings.llm_max_tokens,
            "json_mode": settings.llm_json_mode,
            "configured": bool(settings.llm_api_key or settings.llm_base_url),
        },
        "extraction": {
            "max_document_chars": settings.max_document_chars,
            "max_upload_bytes": settings.max_upload_bytes,
            "batch_concurrency": settings.batch_concurrency,
        },
        "storage": {
            "data_dir": str(settings.data_dir),
            "store_path": str(settings.store_path),
        },
    }


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/settings")
async def settings_snapshot() -> Dict[str, Dict[str, Any]]:
    return _settings_snapshot()


@router.get("/status")
async def system_status(store: ExtractionStore = Depends(get_store)) -> Dict[str, Any]:
    return {
        "templates": len(store.list_templates()),
        "history": len(store.list_history()),
        "llm_configured": bool(settings.llm_api_key or settings.llm_base_url),
    }
