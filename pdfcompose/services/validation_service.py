from __future__ import annotations

import mimetypes
import uuid

from pdfcompose.domain.errors import TooLargeError, TooManyFilesError, WrongTypeError
from pdfcompose.domain.models import PDF_MEDIA_TYPE, CandidateFile, InputDocument
from pdfcompose.infrastructure.config import AppConfig


class ValidationService:
    """Admits a batch of uploads as a whole or rejects it as a whole.

    Only the declared media type, byte size and resulting input count are
    checked; document content is left to the composition step.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    @staticmethod
    def _media_type(candidate: CandidateFile) -> str | None:
        if candidate.mime_type:
            return candidate.mime_type.split(";", 1)[0].strip().lower()
        guessed, _ = mimetypes.guess_type(candidate.name)
        return guessed

    def validate(
        self, candidates: list[CandidateFile], current_count: int
    ) -> list[InputDocument]:
        for candidate in candidates:
            if self._media_type(candidate) != PDF_MEDIA_TYPE:
                raise WrongTypeError(f"{candidate.name} is not a PDF file. All files must be PDFs.")

        for candidate in candidates:
            if len(candidate.content) > self.config.max_file_size_bytes:
                raise TooLargeError(
                    f"{candidate.name} exceeds per-file limit of {self.config.max_file_size_mb} MB"
                )

        if current_count + len(candidates) > self.config.max_input_count:
            raise TooManyFilesError(
                f"Cannot load {len(candidates)} more file(s); "
                f"limit is {self.config.max_input_count} files"
            )

        return [
            InputDocument(
                doc_id=str(uuid.uuid4()),
                name=candidate.name,
                size_bytes=len(candidate.content),
                mime_type=PDF_MEDIA_TYPE,
                content=candidate.content,
            )
            for candidate in candidates
        ]
