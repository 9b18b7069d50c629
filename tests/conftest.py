import os
import tempfile

os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="pdf_extractor_test_"))
os.environ.setdefault("LLM_API_KEY", "test-llm-api-key")

import json
from typing import Dict, List, Optional

import pytest
import pytest_asyncio

from pdf_extractor.persistence import ExtractionStore, KeyValueStore
from pdf_extractor.services.extraction.errors import ModelCallError
from pdf_extractor.services.extraction.prompts import PromptPayload

SCHEMA_FIELDS = [
    {"title": "Question", "description": "the question text"},
    {"title": "Answer", "description": "the correct answer"},
]


class FakeCompleter:
    """Answers by matching a marker in the document text; raises for failing markers."""

    def __init__(self, responses: Optional[Dict[str, str]] = None, failures: Optional[Dict[str, str]] = None):
        self.responses = responses or {}
        self.failures = failures or {}
        self.payloads: List[PromptPayload] = []

    async def __call__(self, payload: PromptPayload) -> str:
        self.payloads.append(payload)
        for marker, message in self.failures.items():
            if marker in payload.user:
                raise ModelCallError(message)
        for marker, response in self.responses.items():
            if marker in payload.user:
                return response
        return json.dumps({"Question": ["Q1"], "Answer": ["A1"]})


def fake_extract_text(content: bytes) -> str:
    return content.decode("utf-8")


@pytest.fixture
def schema_fields():
    return [dict(f) for f in SCHEMA_FIELDS]


@pytest.fixture
def completer():
    return FakeCompleter()


@pytest_asyncio.fixture
async def store(tmp_path):
    kv = KeyValueStore(tmp_path / "store.db")
    extraction_store = ExtractionStore(kv)
    await extraction_store.init()
    yield extraction_store
    await extraction_store.close()
