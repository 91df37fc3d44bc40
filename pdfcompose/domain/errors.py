from __future__ import annotations

from pdfcompose.domain.models import ErrorCode


class PdfComposeError(Exception):
    code: ErrorCode | None = None
    default_message = "An unknown PDF composition error occurred."

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ParsingError(PdfComposeError):
    default_message = "Unable to read PDF."


class ValidationError(PdfComposeError):
    default_message = "Invalid input files."


class WrongTypeError(ValidationError):
    code = ErrorCode.WRONG_TYPE
    default_message = "All files must be PDFs."


class TooLargeError(ValidationError):
    code = ErrorCode.TOO_LARGE
    default_message = "File exceeds the per-file size limit."


class TooManyFilesError(ValidationError):
    code = ErrorCode.TOO_MANY_FILES
    default_message = "Too many files selected."


class RegistryError(PdfComposeError):
    default_message = "Invalid input list operation."


class IndexOutOfBoundsError(RegistryError):
    code = ErrorCode.INDEX_OUT_OF_BOUNDS
    default_message = "Position is outside the input list."


class DuplicateInputError(RegistryError):
    code = ErrorCode.DUPLICATE_INPUT
    default_message = "Input is already loaded."


class CompositionError(PdfComposeError):
    default_message = "An error occurred while processing the PDFs."

    def __init__(self, message: str = "", doc_id: str | None = None) -> None:
        super().__init__(message)
        self.doc_id = doc_id


class InsufficientInputsError(CompositionError):
    code = ErrorCode.INSUFFICIENT_INPUTS
    default_message = "Please select at least two PDF files to merge."


class InvalidInputError(CompositionError):
    code = ErrorCode.INVALID_INPUT
    default_message = "Please upload a single valid PDF file."


class InvalidRangeError(CompositionError):
    code = ErrorCode.INVALID_RANGE
    default_message = "Invalid page range specified."


class DecodeOrCopyFailure(CompositionError):
    code = ErrorCode.DECODE_OR_COPY_FAILURE
    default_message = "Unable to read or copy pages from PDF."

    def __init__(
        self, position: int, input_name: str, message: str = "", doc_id: str | None = None
    ) -> None:
        super().__init__(message, doc_id=doc_id)
        self.position = position
        self.input_name = input_name


class SessionError(PdfComposeError):
    default_message = "Session is unavailable."


class BusyError(SessionError):
    code = ErrorCode.BUSY
    default_message = "An operation is already in progress."


class SessionClosedError(SessionError):
    code = ErrorCode.SESSION_CLOSED
    default_message = "This session has been closed. Start a new one."


class ArtifactReleasedError(PdfComposeError):
    code = ErrorCode.ARTIFACT_RELEASED
    default_message = "Download is no longer available."
