from __future__ import annotations

from pdfcompose.domain.errors import DuplicateInputError, IndexOutOfBoundsError
from pdfcompose.domain.models import InputDocument, InputFailure


class InputRegistry:
    """Ordered pending inputs for one operation.

    Errors from the last run are keyed by ``doc_id`` so they stay attached to
    the same document when the list is reordered.
    """

    def __init__(self) -> None:
        self._documents: list[InputDocument] = []
        self._errors: dict[str, InputFailure] = {}

    def __len__(self) -> int:
        return len(self._documents)

    def add(self, documents: list[InputDocument]) -> None:
        known = {item.doc_id for item in self._documents}
        for document in documents:
            if document.doc_id in known:
                raise DuplicateInputError(f"{document.name} is already loaded.")
            known.add(document.doc_id)
        self._documents.extend(documents)

    def remove(self, doc_id: str) -> None:
        self._documents = [item for item in self._documents if item.doc_id != doc_id]
        self._errors.pop(doc_id, None)

    def reorder(self, from_index: int, to_index: int) -> None:
        size = len(self._documents)
        if not (0 <= from_index < size and 0 <= to_index < size):
            raise IndexOutOfBoundsError(
                f"Cannot move item {from_index} to {to_index}; list has {size} item(s)."
            )
        document = self._documents.pop(from_index)
        self._documents.insert(to_index, document)

    def clear(self) -> None:
        self._documents = []
        self._errors = {}

    def snapshot(self) -> tuple[InputDocument, ...]:
        return tuple(self._documents)

    def get(self, doc_id: str) -> InputDocument | None:
        return next((item for item in self._documents if item.doc_id == doc_id), None)

    def position_of(self, doc_id: str) -> int | None:
        for index, item in enumerate(self._documents):
            if item.doc_id == doc_id:
                return index
        return None

    def record_error(self, doc_id: str, failure: InputFailure) -> None:
        if self.position_of(doc_id) is not None:
            self._errors[doc_id] = failure

    def error_for(self, doc_id: str) -> InputFailure | None:
        return self._errors.get(doc_id)

    def errors(self) -> dict[str, InputFailure]:
        return dict(self._errors)

    def clear_errors(self) -> None:
        self._errors = {}
