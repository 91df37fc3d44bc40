from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, cast

import fitz  # type: ignore[import-untyped]

from pdfcompose.domain.errors import ParsingError


@dataclass(frozen=True)
class PageHandle:
    source: fitz.Document
    page_index: int


class PyMuPdfAdapter:
    @staticmethod
    def _optimized_bytes(document: fitz.Document) -> bytes:
        return cast(
            bytes,
            document.tobytes(
                garbage=4,
                clean=True,
                deflate=True,
                deflate_images=True,
                deflate_fonts=True,
            ),
        )

    def decode(self, pdf_bytes: bytes) -> fitz.Document:
        try:
            document = fitz.open(stream=pdf_bytes, filetype="pdf")
        except Exception as exc:
            raise ParsingError("Unable to open PDF") from exc
        if document.needs_pass:
            document.close()
            raise ParsingError("PDF is encrypted and cannot be processed without a password")
        if document.page_count < 1:
            document.close()
            raise ParsingError("PDF has no pages")
        return document

    def create_empty(self) -> fitz.Document:
        return fitz.open()

    def page_count(self, document: fitz.Document) -> int:
        return int(document.page_count)

    def copy_pages(self, source: fitz.Document, page_indices: Iterable[int]) -> list[PageHandle]:
        total = self.page_count(source)
        handles: list[PageHandle] = []
        for index in page_indices:
            if index < 0 or index >= total:
                raise ParsingError(f"Page index {index} is outside 0-{total - 1}")
            handles.append(PageHandle(source=source, page_index=index))
        return handles

    def append_pages(self, destination: fitz.Document, pages: list[PageHandle]) -> None:
        if not pages:
            return

        runs: list[tuple[fitz.Document, int, int]] = []
        run_source = pages[0].source
        run_start = pages[0].page_index
        run_end = pages[0].page_index
        for page in pages[1:]:
            if page.source is run_source and page.page_index == run_end + 1:
                run_end = page.page_index
                continue
            runs.append((run_source, run_start, run_end))
            run_source = page.source
            run_start = page.page_index
            run_end = page.page_index
        runs.append((run_source, run_start, run_end))

        try:
            for source, from_page, to_page in runs:
                destination.insert_pdf(source, from_page=from_page, to_page=to_page)
        except Exception as exc:
            raise ParsingError("Unable to copy pages") from exc

    def serialize(self, document: fitz.Document) -> bytes:
        try:
            return self._optimized_bytes(document)
        except Exception as exc:
            raise ParsingError("Unable to write PDF") from exc

    @staticmethod
    def close(document: fitz.Document | None) -> None:
        if document is not None and not document.is_closed:
            document.close()

    def render_page_thumbnail(self, pdf_bytes: bytes, page_index: int, zoom: float = 0.45) -> bytes:
        try:
            with fitz.open(stream=pdf_bytes, filetype="pdf") as document:
                page = document[page_index]
                matrix = fitz.Matrix(zoom, zoom)
                pixmap = page.get_pixmap(matrix=matrix, alpha=False)
                return cast(bytes, pixmap.tobytes("png"))
        except Exception as exc:
            raise ParsingError("Unable to render page thumbnail") from exc
