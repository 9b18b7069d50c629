import pytest

from pdf_extractor.services.extraction.errors import ValidationError
from pdf_extractor.services.extraction.prompts import ELLIPSIS_MARKER, TruncatedText, build_extraction_prompt
from pdf_extractor.services.extraction.schemas import SENTINEL, ExtractionSchema, FieldSpec


def test_from_fields_drops_incomplete_fields_and_keeps_order():
    schema = ExtractionSchema.from_fields([
        {"title": "B", "description": "second"},
        {"title": "", "description": "no title"},
        {"title": "A", "description": ""},
        {"title": " C ", "description": " third "},
    ])
    assert schema.titles == ["B", "C"]
    assert schema.fields[1] == FieldSpec(title="C", description="third")


def test_from_fields_rejects_empty_schema():
    with pytest.raises(ValidationError):
        ExtractionSchema.from_fields([{"title": "", "description": ""}])
    with pytest.raises(ValidationError):
        ExtractionSchema.from_fields([])


def test_from_fields_rejects_duplicate_titles():
    with pytest.raises(ValidationError):
        ExtractionSchema.from_fields([
            {"title": "A", "description": "one"},
            {"title": "A", "description": "two"},
        ])


def test_filtered_never_raises():
    assert ExtractionSchema.filtered([{"title": "", "description": "x"}, "junk"]).fields == ()


def test_prompt_lists_titles_sentinel_and_document(schema_fields):
    schema = ExtractionSchema.from_fields(schema_fields)
    payload = build_extraction_prompt(schema, "Q1. What is 2+2?", max_text_chars=100)

    assert '["Question", "Answer"]' in payload.system
    assert SENTINEL in payload.system
    assert "Question: the question text\nAnswer: the correct answer" in payload.user
    assert payload.user.index("Answer: the correct answer") < payload.user.index("Q1. What is 2+2?")
    assert not payload.document.truncated
    assert [m["role"] for m in payload.messages()] == ["system", "user"]


def test_prompt_truncates_document_with_marker(schema_fields):
    payload = build_extraction_prompt(schema_fields, "x" * 50, max_text_chars=10)

    assert payload.document.truncated
    assert payload.document.original_length == 50
    assert payload.document.dropped_chars == 40
    assert ("x" * 10 + ELLIPSIS_MARKER) in payload.user
    assert "x" * 11 not in payload.user


def test_prompt_rejects_schema_without_fields():
    with pytest.raises(ValidationError):
        build_extraction_prompt([{"title": "A", "description": ""}], "text")


def test_truncated_text_render_without_truncation():
    clip = TruncatedText.clip("short", 100)
    assert clip.render() == "short"
    assert clip.dropped_chars == 0
