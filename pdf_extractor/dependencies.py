from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException

from .config import load_settings
from .logging_config import configure_logging
from .persistence import ExtractionStore, KeyValueStore
from .services.extraction.session import Completer, ExtractionSession, TextExtractor
from .services.llm import CompletionClient
from .services.pdf_text import extract_pdf_text

settings = load_settings()
configure_logging(settings.log_level)

extraction_store = ExtractionStore(
    KeyValueStore(settings.store_path),
    templates_key=settings.templates_key,
    history_key=settings.history_key,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await extraction_store.init()
    yield
    await extraction_store.close()


async def get_store() -> ExtractionStore:
    await extraction_store.init()
    return extraction_store


def get_text_extractor() -> TextExtractor:
    return extract_pdf_text


def get_completer() -> Completer:
    if not settings.llm_api_key and not settings.llm_base_url:
        raise HTTPException(status_code=500, detail="LLM not configured")
    client = CompletionClient(
        model=settings.llm_model,
        api_key=settings.llm_api_key or "not-needed",
        base_url=settings.llm_base_url or None,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        json_mode=settings.llm_json_mode,
    )
    return client.complete


def get_session(
    store: ExtractionStore = Depends(get_store),
    extract_text: TextExtractor = Depends(get_text_extractor),
    complete: Completer = Depends(get_completer),
) -> ExtractionSession:
    return ExtractionSession(
        store,
        extract_text,
        complete,
        max_text_chars=settings.max_document_chars,
        concurrency=settings.batch_concurrency,
    )
