"""Async SQLite-backed key-value store plus the Template and History collections."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import aiosqlite

from .services.extraction.errors import ValidationError
from .services.extraction.schemas import ExtractionSchema, FieldInput, FieldSpec

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds")


def _fields_to_list(fields: Iterable[FieldSpec]) -> List[Dict[str, str]]:
    return [f.to_dict() for f in fields]


def _fields_from_list(raw: Any) -> List[FieldSpec]:
    if not isinstance(raw, list):
        return []
    return [FieldSpec.from_any(item) for item in raw if isinstance(item, dict)]


class KeyValueStore:
    """Text values under string keys, one row per key."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._init_lock = asyncio.Lock()
        self._initialized = False

    async def init(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return

            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(self.db_path)
            try:
                await conn.execute("PRAGMA journal_mode=WAL;")
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                    """
                )
                await conn.commit()
            finally:
                await conn.close()
            self._initialized = True

    async def get(self, key: str) -> Optional[str]:
        await self.init()
        conn = await aiosqlite.connect(self.db_path)
        try:
            cur = await conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = await cur.fetchone()
            await cur.close()
            return row[0] if row else None
        finally:
            await conn.close()

    async def set(self, key: str, value: str) -> None:
        await self.init()
        conn = await aiosqlite.connect(self.db_path)
        try:
            await conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                """,
                (key, value, _utc_now()),
            )
            await conn.commit()
        finally:
            await conn.close()


@dataclass(frozen=True)
class Template:
    id: str
    name: str
    fields: tuple[FieldSpec, ...]

    @property
    def content(self) -> str:
        return json.dumps(
            {"name": self.name, "fields": _fields_to_list(self.fields)},
            ensure_ascii=False,
            indent=2,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "fields": _fields_to_list(self.fields)}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Template":
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name") or ""),
            fields=tuple(_fields_from_list(raw.get("fields"))),
        )


@dataclass(frozen=True)
class HistoryItem:
    id: str
    timestamp: int
    file_name: str
    fields: tuple[FieldSpec, ...]
    result: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "fileName": self.file_name,
            "fields": _fields_to_list(self.fields),
            "result": self.result,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "HistoryItem":
        return cls(
            id=str(raw["id"]),
            timestamp=int(raw.get("timestamp") or 0),
            file_name=str(raw.get("fileName") or ""),
            fields=tuple(_fields_from_list(raw.get("fields"))),
            result=str(raw.get("result") or ""),
        )

    def fields_json(self) -> str:
        return json.dumps(_fields_to_list(self.fields), ensure_ascii=False, separators=(",", ":"))


class _ClockIds:
    """Millisecond-clock ids, bumped forward so none repeats within the process."""

    def __init__(self) -> None:
        self._last = 0

    def next(self) -> int:
        now = int(time.time() * 1000)
        self._last = now if now > self._last else self._last + 1
        return self._last


@dataclass
class _Collections:
    templates: List[Template] = field(default_factory=list)
    history: List[HistoryItem] = field(default_factory=list)


class ExtractionStore:
    """
    Owns the Template and History collections for the process lifetime.

    Both collections are loaded once by init() and every mutation rewrites the
    whole collection under its key. Malformed stored data loads as empty.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        templates_key: str = "extractionTemplates",
        history_key: str = "extractionHistory",
    ) -> None:
        self.kv = kv
        self.templates_key = templates_key
        self.history_key = history_key
        self._data = _Collections()
        self._ids = _ClockIds()
        self._lock = asyncio.Lock()
        self._loaded = False

    async def init(self) -> None:
        if self._loaded:
            return
        await self.kv.init()
        self._data.templates = await self._load(self.templates_key, Template.from_dict)
        self._data.history = await self._load(self.history_key, HistoryItem.from_dict)
        self._loaded = True
        logger.info(
            f"Store loaded: {len(self._data.templates)} templates, {len(self._data.history)} history items"
        )

    async def close(self) -> None:
        if not self._loaded:
            return
        async with self._lock:
            await self._write_templates()
            await self._write_history()

    async def _load(self, key: str, parse) -> list:
        raw = await self.kv.get(key)
        if raw is None:
            return []
        try:
            items = json.loads(raw)
            if not isinstance(items, list):
                raise ValueError(f"expected a JSON array, got {type(items).__name__}")
            return [parse(item) for item in items]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Stored collection '{key}' is malformed ({e}); starting empty")
            return []

    async def _write_templates(self) -> None:
        payload = json.dumps([t.to_dict() for t in self._data.templates], ensure_ascii=False)
        await self.kv.set(self.templates_key, payload)

    async def _write_history(self) -> None:
        payload = json.dumps([h.to_dict() for h in self._data.history], ensure_ascii=False)
        await self.kv.set(self.history_key, payload)

    # Templates

    def list_templates(self) -> List[Template]:
        return list(self._data.templates)

    def get_template(self, template_id: str) -> Optional[Template]:
        for template in self._data.templates:
            if template.id == template_id:
                return template
        return None

    def load_template(self, template_id: str) -> List[FieldSpec]:
        template = self.get_template(template_id)
        if template is None:
            raise KeyError(template_id)
        return list(template.fields)

    async def save_template(self, name: str, fields: Iterable[FieldInput]) -> Template:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Template name is required")
        schema = ExtractionSchema.from_fields(fields)

        async with self._lock:
            template = Template(id=str(self._ids.next()), name=name, fields=schema.fields)
            self._data.templates = [*self._data.templates, template]
            await self._write_templates()
        logger.info(f"Saved template {template.id} ({name}) with {len(template.fields)} fields")
        return template

    async def delete_template(self, template_id: str) -> bool:
        async with self._lock:
            remaining = [t for t in self._data.templates if t.id != template_id]
            if len(remaining) == len(self._data.templates):
                return False
            self._data.templates = remaining
            await self._write_templates()
        return True

    # History

    def list_history(self) -> List[HistoryItem]:
        return list(self._data.history)

    def get_history(self, item_id: str) -> Optional[HistoryItem]:
        for item in self._data.history:
            if item.id == item_id:
                return item
        return None

    def search_history(self, term: Optional[str]) -> List[HistoryItem]:
        needle = (term or "").lower()
        if not needle:
            return self.list_history()
        return [
            item
            for item in self._data.history
            if needle in item.file_name.lower() or needle in item.fields_json().lower()
        ]

    async def append_history(
        self,
        file_name: str,
        fields: Iterable[FieldInput],
        result: str,
        timestamp: Optional[int] = None,
    ) -> HistoryItem:
        async with self._lock:
            item_id = self._ids.next()
            item = HistoryItem(
                id=str(item_id),
                timestamp=timestamp if timestamp is not None else item_id,
                file_name=file_name,
                fields=tuple(FieldSpec.from_any(f) for f in fields),
                result=result,
            )
            self._data.history = [item, *self._data.history]
            await self._write_history()
        logger.debug(f"Archived {file_name} as history item {item.id}")
        return item

    async def delete_history(self, item_id: str) -> bool:
        async with self._lock:
            remaining = [h for h in self._data.history if h.id != item_id]
            if len(remaining) == len(self._data.history):
                return False
            self._data.history = remaining
            await self._write_history()
        return True
