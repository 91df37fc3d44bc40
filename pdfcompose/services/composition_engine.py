"""Page composition for merge, split and range extraction.

All three operations share one flow: decode sources, copy pages into fresh
destination documents, serialize. Failures never escape :meth:`run`; they
come back on the :class:`CompositionResult`.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Sequence

import fitz  # type: ignore[import-untyped]

from pdfcompose.adapters.pymupdf_adapter import PyMuPdfAdapter
from pdfcompose.domain.errors import (
    CompositionError,
    DecodeOrCopyFailure,
    InsufficientInputsError,
    InvalidInputError,
    InvalidRangeError,
    PdfComposeError,
)
from pdfcompose.domain.models import (
    CompositionFailure,
    CompositionResult,
    ExtractRange,
    InputDocument,
    InputFailure,
    Merge,
    OperationKind,
    OperationSpec,
    OutputDocument,
    SplitAll,
)

logger = logging.getLogger(__name__)


def split_output_name(page_number: int) -> str:
    return f"split-file-{page_number}.pdf"


def extract_output_name(start: int, end: int) -> str:
    return f"split-file-{start}-{end}.pdf"


def _describe(exc: Exception) -> str:
    if isinstance(exc, PdfComposeError):
        return exc.message
    return str(exc) or exc.__class__.__name__


def _parse_page_number(value: int | str) -> int:
    if isinstance(value, bool):
        raise InvalidRangeError()
    if isinstance(value, int):
        return value
    if isinstance(value, str) and re.fullmatch(r"\s*[0-9]+\s*", value):
        return int(value)
    raise InvalidRangeError()


class CompositionEngine:
    def __init__(self, adapter: PyMuPdfAdapter) -> None:
        self.adapter = adapter
        self._handlers: dict[type, Callable[..., CompositionResult]] = {
            Merge: self._merge,
            SplitAll: self._split_all,
            ExtractRange: self._extract_range,
        }

    def run(self, inputs: Sequence[InputDocument], spec: OperationSpec) -> CompositionResult:
        handler = self._handlers.get(type(spec))
        if handler is None:
            raise TypeError(f"Unsupported operation: {spec!r}")

        logger.info("Running %s over %d input(s)", spec.kind.value, len(inputs))
        try:
            result = handler(inputs, spec)
        except CompositionError as exc:
            logger.warning("%s failed: %s", spec.kind.value, exc.message)
            return CompositionResult(
                operation=spec.kind,
                failure=CompositionFailure(code=exc.code, message=exc.message, doc_id=exc.doc_id),
            )

        if result.per_input_errors:
            logger.warning(
                "%s discarded: %d input(s) failed", spec.kind.value, len(result.per_input_errors)
            )
        else:
            logger.info(
                "%s produced %d output(s), %d page(s)",
                spec.kind.value,
                len(result.outputs),
                result.total_pages,
            )
        return result

    def _build_output(self, source: fitz.Document, page_indices: list[int], name: str) -> OutputDocument:
        destination = self.adapter.create_empty()
        try:
            pages = self.adapter.copy_pages(source, page_indices)
            self.adapter.append_pages(destination, pages)
            return OutputDocument(
                name=name,
                content=self.adapter.serialize(destination),
                page_count=self.adapter.page_count(destination),
            )
        finally:
            self.adapter.close(destination)

    def _append_document(self, destination: fitz.Document, document: InputDocument) -> None:
        source = self.adapter.decode(document.content)
        try:
            pages = self.adapter.copy_pages(source, range(self.adapter.page_count(source)))
            self.adapter.append_pages(destination, pages)
        finally:
            self.adapter.close(source)

    @staticmethod
    def _single_input(inputs: Sequence[InputDocument]) -> InputDocument:
        if len(inputs) != 1:
            raise InvalidInputError(f"Expected exactly one PDF file, got {len(inputs)}.")
        return inputs[0]

    def _decode_single(self, document: InputDocument) -> fitz.Document:
        try:
            return self.adapter.decode(document.content)
        except Exception as exc:
            raise InvalidInputError(
                f"{document.name} could not be read: {_describe(exc)}", doc_id=document.doc_id
            ) from exc

    def _merge(self, inputs: Sequence[InputDocument], spec: Merge) -> CompositionResult:
        if len(inputs) < 2:
            raise InsufficientInputsError()

        failures: dict[int, InputFailure] = {}
        destination = self.adapter.create_empty()
        try:
            for position, document in enumerate(inputs, start=1):
                try:
                    self._append_document(destination, document)
                except Exception as exc:
                    error = DecodeOrCopyFailure(
                        position,
                        document.name,
                        f"{document.name} could not be merged: {_describe(exc)}",
                        doc_id=document.doc_id,
                    )
                    logger.warning("Input %d (%s) failed: %s", position, document.name, error.message)
                    failures[position] = InputFailure(
                        position=position,
                        input_name=document.name,
                        doc_id=document.doc_id,
                        message=error.message,
                    )

            if failures:
                return CompositionResult(operation=OperationKind.MERGE, per_input_errors=failures)

            try:
                output = OutputDocument(
                    name="merged.pdf",
                    content=self.adapter.serialize(destination),
                    page_count=self.adapter.page_count(destination),
                )
            except Exception as exc:
                raise InvalidInputError(f"Unable to write merged PDF: {_describe(exc)}") from exc
        finally:
            self.adapter.close(destination)

        return CompositionResult(operation=OperationKind.MERGE, outputs=[output])

    def _split_all(self, inputs: Sequence[InputDocument], spec: SplitAll) -> CompositionResult:
        document = self._single_input(inputs)
        source = self._decode_single(document)
        try:
            outputs = [
                self._build_output(source, [index], split_output_name(index + 1))
                for index in range(self.adapter.page_count(source))
            ]
        except Exception as exc:
            raise InvalidInputError(
                f"An error occurred while splitting {document.name}: {_describe(exc)}",
                doc_id=document.doc_id,
            ) from exc
        finally:
            self.adapter.close(source)

        return CompositionResult(operation=OperationKind.SPLIT_ALL, outputs=outputs)

    def _extract_range(
        self, inputs: Sequence[InputDocument], spec: ExtractRange
    ) -> CompositionResult:
        document = self._single_input(inputs)
        start = _parse_page_number(spec.start)
        end = _parse_page_number(spec.end)
        if start < 1 or end < start:
            raise InvalidRangeError()

        source = self._decode_single(document)
        try:
            total_pages = self.adapter.page_count(source)
            if end > total_pages:
                raise InvalidRangeError(
                    f"Page range exceeds total number of pages ({total_pages})."
                )
            try:
                output = self._build_output(
                    source, list(range(start - 1, end)), extract_output_name(start, end)
                )
            except Exception as exc:
                raise InvalidInputError(
                    f"An error occurred while extracting from {document.name}: {_describe(exc)}",
                    doc_id=document.doc_id,
                ) from exc
        finally:
            self.adapter.close(source)

        return CompositionResult(operation=OperationKind.EXTRACT_RANGE, outputs=[output])
