from __future__ import annotations

from pdfcompose.domain.models import InputFailure
from pdfcompose.services.input_registry import InputRegistry


class ReorderController:
    def __init__(self, registry: InputRegistry) -> None:
        self.registry = registry

    def move(self, from_index: int, to_index: int) -> None:
        self.registry.reorder(from_index, to_index)

    def move_up(self, doc_id: str) -> None:
        position = self.registry.position_of(doc_id)
        if position is None or position == 0:
            return
        self.registry.reorder(position, position - 1)

    def move_down(self, doc_id: str) -> None:
        position = self.registry.position_of(doc_id)
        if position is None or position == len(self.registry) - 1:
            return
        self.registry.reorder(position, position + 1)

    def errors_by_position(self) -> dict[int, InputFailure]:
        """Map current 1-based positions to the errors of the documents now there."""
        errors = self.registry.errors()
        return {
            index + 1: errors[document.doc_id]
            for index, document in enumerate(self.registry.snapshot())
            if document.doc_id in errors
        }
