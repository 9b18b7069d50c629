import json

import pytest

from pdf_extractor.persistence import ExtractionStore, KeyValueStore
from pdf_extractor.services.extraction.errors import ValidationError
from pdf_extractor.services.extraction.schemas import FieldSpec

FIELDS = [
    {"title": "문항", "description": "문제 번호와 내용"},
    {"title": "정답", "description": "정답 보기"},
]


@pytest.mark.asyncio
async def test_template_round_trip_preserves_field_order(store):
    template = await store.save_template("N1", FIELDS)

    assert store.load_template(template.id) == [
        FieldSpec(title="문항", description="문제 번호와 내용"),
        FieldSpec(title="정답", description="정답 보기"),
    ]
    assert [t.name for t in store.list_templates()] == ["N1"]


@pytest.mark.asyncio
async def test_save_template_validates_name_and_fields(store):
    with pytest.raises(ValidationError):
        await store.save_template("", FIELDS)
    with pytest.raises(ValidationError):
        await store.save_template("empty", [{"title": "", "description": ""}])
    assert store.list_templates() == []


@pytest.mark.asyncio
async def test_save_template_keeps_only_complete_fields(store):
    template = await store.save_template("partial", FIELDS + [{"title": "x", "description": ""}])
    assert [f.title for f in template.fields] == ["문항", "정답"]


@pytest.mark.asyncio
async def test_template_ids_are_unique_and_delete_works(store):
    first = await store.save_template("one", FIELDS)
    second = await store.save_template("two", FIELDS)
    assert first.id != second.id

    assert await store.delete_template(first.id) is True
    assert await store.delete_template(first.id) is False
    assert [t.id for t in store.list_templates()] == [second.id]
    with pytest.raises(KeyError):
        store.load_template(first.id)


@pytest.mark.asyncio
async def test_history_is_most_recent_first(store):
    await store.append_history("t1.pdf", FIELDS, "{}", timestamp=1)
    await store.append_history("t2.pdf", FIELDS, "{}", timestamp=2)
    await store.append_history("t3.pdf", FIELDS, "{}", timestamp=3)

    assert [h.timestamp for h in store.list_history()] == [3, 2, 1]


@pytest.mark.asyncio
async def test_history_search_matches_file_name_or_fields(store):
    await store.append_history("Invoice_March.pdf", [{"title": "Total", "description": "sum"}], "{}")
    await store.append_history("exam.pdf", FIELDS, "{}")

    assert [h.file_name for h in store.search_history("invoice")] == ["Invoice_March.pdf"]
    assert [h.file_name for h in store.search_history("정답 보기")] == ["exam.pdf"]
    assert [h.file_name for h in store.search_history("TOTAL")] == ["Invoice_March.pdf"]
    assert len(store.search_history("")) == 2
    assert store.search_history("nothing-matches") == []
    assert len(store.list_history()) == 2


@pytest.mark.asyncio
async def test_delete_history_item(store):
    item = await store.append_history("a.pdf", FIELDS, "{}")
    assert await store.delete_history(item.id) is True
    assert store.get_history(item.id) is None
    assert await store.delete_history(item.id) is False


@pytest.mark.asyncio
async def test_collections_survive_reload(tmp_path):
    path = tmp_path / "store.db"
    first = ExtractionStore(KeyValueStore(path))
    await first.init()
    template = await first.save_template("saved", FIELDS)
    await first.append_history("a.pdf", FIELDS, '{"문항": ["1"]}', timestamp=42)

    second = ExtractionStore(KeyValueStore(path))
    await second.init()

    assert second.load_template(template.id) == first.load_template(template.id)
    item = second.list_history()[0]
    assert (item.file_name, item.timestamp, item.result) == ("a.pdf", 42, '{"문항": ["1"]}')


@pytest.mark.asyncio
async def test_stored_encoding_is_plain_json_arrays(tmp_path):
    kv = KeyValueStore(tmp_path / "store.db")
    store = ExtractionStore(kv)
    await store.init()
    await store.append_history("a.pdf", FIELDS, "{}", timestamp=7)

    raw = json.loads(await kv.get("extractionHistory"))
    assert raw[0]["fileName"] == "a.pdf"
    assert raw[0]["timestamp"] == 7
    assert raw[0]["fields"][0] == {"title": "문항", "description": "문제 번호와 내용"}


@pytest.mark.asyncio
async def test_malformed_stored_data_starts_empty(tmp_path):
    kv = KeyValueStore(tmp_path / "store.db")
    await kv.set("extractionTemplates", "{not json")
    await kv.set("extractionHistory", json.dumps({"not": "a list"}))

    store = ExtractionStore(kv)
    await store.init()

    assert store.list_templates() == []
    assert store.list_history() == []
    await store.save_template("fresh", FIELDS)
    assert len(json.loads(await kv.get("extractionTemplates"))) == 1
