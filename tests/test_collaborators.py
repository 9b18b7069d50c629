from types import SimpleNamespace

import fitz
import pytest
from openai import OpenAIError

from pdf_extractor.services.extraction.errors import ModelCallError
from pdf_extractor.services.extraction.prompts import build_extraction_prompt
from pdf_extractor.services.llm import CompletionClient
from pdf_extractor.services.pdf_text import extract_pdf_text

from conftest import SCHEMA_FIELDS


class FakeCompletions:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.response


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _response(*contents):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=c)) for c in contents])


def _payload():
    return build_extraction_prompt(SCHEMA_FIELDS, "document text")


@pytest.mark.asyncio
async def test_completion_client_sends_messages_and_returns_content():
    completions = FakeCompletions(response=_response('{"Question": ["q"]}'))
    client = CompletionClient(model="test-model", api_key="k", json_mode=True, max_tokens=500, client=_client(completions))

    assert await client.complete(_payload()) == '{"Question": ["q"]}'
    call = completions.calls[0]
    assert call["model"] == "test-model"
    assert [m["role"] for m in call["messages"]] == ["system", "user"]
    assert call["response_format"] == {"type": "json_object"}
    assert call["max_tokens"] == 500


@pytest.mark.asyncio
async def test_completion_client_maps_errors_to_model_call_error():
    failing = CompletionClient(model="m", api_key="k", client=_client(FakeCompletions(error=OpenAIError("quota"))))
    with pytest.raises(ModelCallError, match="quota"):
        await failing.complete(_payload())

    empty = CompletionClient(model="m", api_key="k", client=_client(FakeCompletions(response=_response())))
    with pytest.raises(ModelCallError, match="no choices"):
        await empty.complete(_payload())


def test_extract_pdf_text_reads_every_page():
    doc = fitz.open()
    for text in ("First page", "Second page"):
        page = doc.new_page()
        page.insert_text((72, 72), text)
    content = doc.tobytes()
    doc.close()

    text = extract_pdf_text(content)
    assert "First page" in text
    assert "Second page" in text
    assert text.index("First page") < text.index("Second page")
