from __future__ import annotations

import uuid
from typing import Callable

import fitz
import pytest

from pdfcompose.adapters.pymupdf_adapter import PyMuPdfAdapter
from pdfcompose.domain.models import PDF_MEDIA_TYPE, InputDocument
from pdfcompose.infrastructure.config import AppConfig


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    def _make(page_count: int, label: str = "doc") -> bytes:
        document = fitz.open()
        try:
            for number in range(1, page_count + 1):
                page = document.new_page()
                page.insert_text((72, 72), f"{label} page {number}")
            return document.tobytes(deflate=True, garbage=3)
        finally:
            document.close()

    return _make


@pytest.fixture
def make_input() -> Callable[..., InputDocument]:
    def _make(name: str, content: bytes) -> InputDocument:
        return InputDocument(
            doc_id=str(uuid.uuid4()),
            name=name,
            size_bytes=len(content),
            mime_type=PDF_MEDIA_TYPE,
            content=content,
        )

    return _make


@pytest.fixture
def corrupt_pdf_bytes() -> bytes:
    return b"%PDF-1.4\nthis file was truncated before any objects\n"


@pytest.fixture
def adapter() -> PyMuPdfAdapter:
    return PyMuPdfAdapter()


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        max_file_size_mb=100,
        max_input_count=100,
        log_level="INFO",
        merged_file_name="merged.pdf",
        split_archive_name="split-pages.zip",
        split_page_downloads=False,
    )


@pytest.fixture
def page_texts() -> Callable[[bytes], list[str]]:
    def _texts(pdf_bytes: bytes) -> list[str]:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as document:
            return [page.get_text("text").strip() for page in document]

    return _texts
