from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

PDF_MEDIA_TYPE = "application/pdf"
ZIP_MEDIA_TYPE = "application/zip"


class ErrorCode(str, Enum):
    WRONG_TYPE = "wrong_type"
    TOO_LARGE = "too_large"
    TOO_MANY_FILES = "too_many_files"
    INDEX_OUT_OF_BOUNDS = "index_out_of_bounds"
    DUPLICATE_INPUT = "duplicate_input"
    INSUFFICIENT_INPUTS = "insufficient_inputs"
    INVALID_INPUT = "invalid_input"
    INVALID_RANGE = "invalid_range"
    DECODE_OR_COPY_FAILURE = "decode_or_copy_failure"
    BUSY = "busy"
    SESSION_CLOSED = "session_closed"
    ARTIFACT_RELEASED = "artifact_released"


class OperationKind(str, Enum):
    MERGE = "merge"
    SPLIT_ALL = "split_all"
    EXTRACT_RANGE = "extract_range"


@dataclass(frozen=True)
class CandidateFile:
    name: str
    content: bytes
    mime_type: str | None = None


@dataclass(frozen=True)
class InputDocument:
    doc_id: str
    name: str
    size_bytes: int
    mime_type: str
    content: bytes = field(repr=False)


@dataclass(frozen=True)
class Merge:
    kind = OperationKind.MERGE


@dataclass(frozen=True)
class SplitAll:
    kind = OperationKind.SPLIT_ALL


@dataclass(frozen=True)
class ExtractRange:
    """Inclusive 1-based page range.

    Bounds may arrive as raw form text; they are parsed and checked against
    the page count only when the operation runs.
    """

    start: int | str
    end: int | str
    kind = OperationKind.EXTRACT_RANGE


OperationSpec = Union[Merge, SplitAll, ExtractRange]


@dataclass(frozen=True)
class OutputDocument:
    name: str
    content: bytes = field(repr=False)
    page_count: int


@dataclass(frozen=True)
class InputFailure:
    position: int
    input_name: str
    doc_id: str
    message: str


@dataclass(frozen=True)
class CompositionFailure:
    code: ErrorCode
    message: str
    doc_id: str | None = None


@dataclass(frozen=True)
class CompositionResult:
    operation: OperationKind
    outputs: list[OutputDocument] = field(default_factory=list)
    per_input_errors: dict[int, InputFailure] = field(default_factory=dict)
    failure: CompositionFailure | None = None

    @property
    def succeeded(self) -> bool:
        return self.failure is None and not self.per_input_errors

    @property
    def total_pages(self) -> int:
        return sum(output.page_count for output in self.outputs)


@dataclass(frozen=True)
class ErrorReport:
    code: ErrorCode
    message: str
    position: int | None = None
    input_name: str | None = None


@dataclass(frozen=True)
class InputView:
    doc_id: str
    name: str
    position: int
    size_bytes: int
    has_error: bool
