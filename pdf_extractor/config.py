from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class AppSettings:
    data_dir: Path
    store_path: Path
    templates_key: str
    history_key: str
    frontend_origin: str
    llm_base_url: str
    llm_api_key: str
    llm_model: str
    llm_temperature: float
    llm_max_tokens: Optional[int]
    llm_json_mode: bool
    max_document_chars: int
    max_upload_bytes: int
    batch_concurrency: int
    log_level: str


def _int_env(name: str, default: str) -> int:
    return int(os.environ.get(name, default) or default)


def _float_env(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw or default)
    except (TypeError, ValueError):
        return float(default)


def _str_env(name: str, default: str = "") -> str:
    return (os.environ.get(name, default) or default).strip()


def _bool_env(name: str, default: bool) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    v = val.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _optional_int_env(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def load_settings() -> AppSettings:
    data_dir = Path(os.environ.get("DATA_DIR", "./app_data"))
    store_path = Path(os.environ.get("STORE_PATH") or (data_dir / "extractor_store.db"))

    data_dir.mkdir(parents=True, exist_ok=True)

    return AppSettings(
        data_dir=data_dir,
        store_path=store_path,
        templates_key="extractionTemplates",
        history_key="extractionHistory",
        frontend_origin=f"http://localhost:{os.environ.get('FRONTEND_PORT', '5173')}",
        llm_base_url=_str_env("LLM_BASE_URL"),
        llm_api_key=_str_env("LLM_API_KEY") or _str_env("OPENAI_API_KEY"),
        llm_model=_str_env("LLM_MODEL", "gpt-4o-mini"),
        llm_temperature=_float_env("LLM_TEMPERATURE", "0.1"),
        llm_max_tokens=_optional_int_env("LLM_MAX_TOKENS"),
        llm_json_mode=_bool_env("LLM_JSON_MODE", False),
        max_document_chars=_int_env("MAX_DOCUMENT_CHARS", "12000"),
        max_upload_bytes=_int_env("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)),
        batch_concurrency=max(1, _int_env("BATCH_CONCURRENCY", "1")),
        log_level=_str_env("LOG_LEVEL", "INFO").upper(),
    )
