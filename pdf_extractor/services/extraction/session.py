"""
Per-request extraction session.

Each file runs PENDING -> PARSING -> CALLING -> NORMALIZING -> SUCCEEDED|FAILED.
Per-file failures become FileOutcome errors and never abort the batch.
Successful files are archived to history in submission order.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .errors import EmptyDocumentError, ModelCallError, ValidationError
from .normalizer import normalize
from .prompts import PromptPayload, build_extraction_prompt
from .schemas import ColumnarDataset, ExtractionSchema, FieldInput

if TYPE_CHECKING:
    from ...persistence import ExtractionStore

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Error: "

TextExtractor = Callable[[bytes], Union[str, Awaitable[str]]]
Completer = Callable[[PromptPayload], Awaitable[str]]


class FileState(str, Enum):
    PENDING = "pending"
    PARSING = "parsing"
    CALLING = "calling"
    NORMALIZING = "normalizing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ErrorKind(str, Enum):
    EMPTY_DOCUMENT = "EmptyDocument"
    MODEL_CALL = "ModelCallError"


@dataclass(frozen=True)
class FileError:
    kind: ErrorKind
    message: str


@dataclass
class FileOutcome:
    """Result of extracting one file: a dataset or an error, never both."""
    file_name: str
    state: FileState = FileState.PENDING
    raw_model_text: Optional[str] = None
    dataset: Optional[ColumnarDataset] = None
    error: Optional[FileError] = None
    states: List[FileState] = field(default_factory=lambda: [FileState.PENDING])

    @property
    def ok(self) -> bool:
        return self.state is FileState.SUCCEEDED and self.dataset is not None

    def advance(self, state: FileState) -> None:
        self.state = state
        self.states.append(state)

    def fail(self, kind: ErrorKind, message: str) -> "FileOutcome":
        self.error = FileError(kind=kind, message=message)
        self.advance(FileState.FAILED)
        return self

    def render(self) -> Union[ColumnarDataset, str]:
        """Dataset on success, otherwise the 'Error: <message>' text."""
        if self.ok:
            return self.dataset
        message = self.error.message if self.error else "not processed"
        return f"{ERROR_PREFIX}{message}"

    def serialized_result(self) -> str:
        rendered = self.render()
        if isinstance(rendered, str):
            return rendered
        return json.dumps(rendered, ensure_ascii=False)


@dataclass
class BatchResult:
    outcomes: List[FileOutcome]

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded

    def as_result_map(self) -> Dict[str, Union[ColumnarDataset, str]]:
        return {o.file_name: o.render() for o in self.outcomes}


class ExtractionSession:
    """
    Orchestrates text extraction, the model call and normalization per file.

    Args:
        store: Store receiving one history item per successful file (optional)
        extract_text: PDF bytes -> text; sync callables run in a worker thread
        complete: Prompt payload -> raw model text
        max_text_chars: Document budget for the prompt
        concurrency: 1 processes files strictly one after another; higher
            values overlap calls while keeping results in submission order
    """

    def __init__(
        self,
        store: Optional["ExtractionStore"],
        extract_text: TextExtractor,
        complete: Completer,
        *,
        max_text_chars: int = 12000,
        concurrency: int = 1,
    ) -> None:
        self.store = store
        self.extract_text = extract_text
        self.complete = complete
        self.max_text_chars = max_text_chars
        self.concurrency = max(1, int(concurrency))

    async def _read_text(self, content: bytes) -> str:
        if inspect.iscoroutinefunction(self.extract_text):
            return await self.extract_text(content)
        result = await asyncio.to_thread(self.extract_text, content)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def process_file(self, file_name: str, content: bytes, schema: ExtractionSchema) -> FileOutcome:
        outcome = FileOutcome(file_name=file_name)

        outcome.advance(FileState.PARSING)
        try:
            text = await self._read_text(content)
            if not text or not text.strip():
                raise EmptyDocumentError(f"No text could be extracted from {file_name}")
        except EmptyDocumentError as e:
            logger.warning(f"{file_name}: {e}")
            return outcome.fail(ErrorKind.EMPTY_DOCUMENT, str(e))
        except Exception as e:
            logger.exception(f"Text extraction failed for {file_name}: {e}")
            return outcome.fail(ErrorKind.EMPTY_DOCUMENT, f"Could not read {file_name}: {e}")

        outcome.advance(FileState.CALLING)
        payload = build_extraction_prompt(schema, text, self.max_text_chars)
        if payload.document.truncated:
            logger.info(
                f"{file_name}: document clipped to {self.max_text_chars} chars "
                f"({payload.document.dropped_chars} dropped)"
            )
        try:
            raw = await self.complete(payload)
        except ModelCallError as e:
            logger.warning(f"Model call failed for {file_name}: {e}")
            return outcome.fail(ErrorKind.MODEL_CALL, str(e))
        except Exception as e:
            logger.exception(f"Extraction failed for {file_name}: {e}")
            return outcome.fail(ErrorKind.MODEL_CALL, str(e))

        outcome.raw_model_text = raw
        outcome.advance(FileState.NORMALIZING)
        outcome.dataset = normalize(raw, schema)
        outcome.advance(FileState.SUCCEEDED)
        return outcome

    async def run_batch(
        self,
        files: Sequence[Tuple[str, bytes]],
        schema: Union[ExtractionSchema, Iterable[FieldInput]],
    ) -> BatchResult:
        """
        Extract every file against one schema.

        Raises:
            ValidationError: no files, or no usable field in the schema
        """
        if not files:
            raise ValidationError("No file selected")
        if not isinstance(schema, ExtractionSchema):
            schema = ExtractionSchema.from_fields(schema)
        elif not schema.fields:
            raise ValidationError("At least one field with a title and description is required")

        slots: List[Optional[FileOutcome]] = [None] * len(files)

        if self.concurrency == 1:
            for idx, (file_name, content) in enumerate(files):
                slots[idx] = await self.process_file(file_name, content, schema)
        else:
            semaphore = asyncio.Semaphore(self.concurrency)

            async def _run(idx: int, file_name: str, content: bytes) -> None:
                async with semaphore:
                    slots[idx] = await self.process_file(file_name, content, schema)

            await asyncio.gather(*(_run(i, name, data) for i, (name, data) in enumerate(files)))

        outcomes = [o for o in slots if o is not None]
        for outcome in outcomes:
            if outcome.ok:
                logger.info(f"Successfully extracted {outcome.file_name}")
                await self._archive(outcome, schema)
            else:
                logger.warning(f"Failed to extract {outcome.file_name}: {outcome.error.message}")
        return BatchResult(outcomes=outcomes)

    async def _archive(self, outcome: FileOutcome, schema: ExtractionSchema) -> None:
        if self.store is None:
            return
        try:
            await self.store.append_history(outcome.file_name, schema.fields, outcome.serialized_result())
        except Exception as e:
            logger.exception(f"Could not archive {outcome.file_name} to history: {e}")
