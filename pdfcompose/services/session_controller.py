"""Per-user state for one composition workflow.

The session is the only writer of its input registry and the only layer
that turns composition failures into user-facing reports. A run cannot be
cancelled once started.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from types import TracebackType
from typing import Iterator

from pdfcompose.adapters.pymupdf_adapter import PyMuPdfAdapter
from pdfcompose.domain.errors import BusyError, IndexOutOfBoundsError, SessionClosedError
from pdfcompose.domain.models import (
    CandidateFile,
    CompositionResult,
    ErrorCode,
    ErrorReport,
    InputDocument,
    InputFailure,
    InputView,
    OperationSpec,
)
from pdfcompose.infrastructure.artifact_store import Artifact, ArtifactStore
from pdfcompose.infrastructure.config import AppConfig
from pdfcompose.services.composition_engine import CompositionEngine
from pdfcompose.services.input_registry import InputRegistry
from pdfcompose.services.packaging_service import PackagingService
from pdfcompose.services.reorder_controller import ReorderController
from pdfcompose.services.validation_service import ValidationService

logger = logging.getLogger(__name__)


class SessionController:
    def __init__(
        self,
        validation_service: ValidationService,
        engine: CompositionEngine,
        packaging_service: PackagingService,
        registry: InputRegistry | None = None,
    ) -> None:
        self.validation_service = validation_service
        self.engine = engine
        self.packaging_service = packaging_service
        self.registry = registry if registry is not None else InputRegistry()
        self.reorder_controller = ReorderController(self.registry)
        self._lock = threading.Lock()
        self._result: CompositionResult | None = None
        self._artifacts: list[Artifact] = []
        self._errors: list[ErrorReport] = []
        self._closed = False

    @classmethod
    def build(
        cls,
        config: AppConfig | None = None,
        adapter: PyMuPdfAdapter | None = None,
        store: ArtifactStore | None = None,
    ) -> SessionController:
        config = config or AppConfig()
        return cls(
            validation_service=ValidationService(config),
            engine=CompositionEngine(adapter or PyMuPdfAdapter()),
            packaging_service=PackagingService(store or ArtifactStore(), config),
        )

    def __enter__(self) -> SessionController:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def processing(self) -> bool:
        return self._lock.locked()

    @property
    def result(self) -> CompositionResult | None:
        return self._result

    @property
    def artifacts(self) -> list[Artifact]:
        return list(self._artifacts)

    @property
    def errors(self) -> list[ErrorReport]:
        return list(self._errors)

    @property
    def inputs(self) -> list[InputView]:
        errors = self.registry.errors()
        return [
            InputView(
                doc_id=document.doc_id,
                name=document.name,
                position=index + 1,
                size_bytes=document.size_bytes,
                has_error=document.doc_id in errors,
            )
            for index, document in enumerate(self.registry.snapshot())
        ]

    @contextmanager
    def _exclusive(self, action: str) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            logger.warning("Rejected %s: another operation is running", action)
            raise BusyError()
        try:
            yield
        finally:
            self._lock.release()

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError()

    def add_files(self, candidates: list[CandidateFile]) -> list[InputDocument]:
        self._ensure_open()
        with self._exclusive("input change"):
            documents = self.validation_service.validate(candidates, len(self.registry))
            self.registry.add(documents)
        if documents:
            logger.info("Added %d input(s); %d loaded", len(documents), len(self.registry))
        return documents

    def replace_files(self, candidates: list[CandidateFile]) -> list[InputDocument]:
        """Swap the whole input set for ``candidates``.

        The batch is validated before anything is discarded, so a rejected
        upload leaves the current inputs and downloads in place.
        """
        self._ensure_open()
        with self._exclusive("input change"):
            documents = self.validation_service.validate(candidates, 0)
            self._reset()
            self.registry.add(documents)
        logger.info("Replaced inputs with %d file(s)", len(documents))
        return documents

    def remove_input(self, doc_id: str) -> None:
        with self._exclusive("input change"):
            self.registry.remove(doc_id)

    def reorder_input(self, from_index: int, to_index: int) -> None:
        with self._exclusive("input change"):
            self.reorder_controller.move(from_index, to_index)

    def move_input_up(self, doc_id: str) -> None:
        with self._exclusive("input change"):
            self.reorder_controller.move_up(doc_id)

    def move_input_down(self, doc_id: str) -> None:
        with self._exclusive("input change"):
            self.reorder_controller.move_down(doc_id)

    def rename_artifact(self, index: int, name: str) -> None:
        if not 0 <= index < len(self._artifacts):
            raise IndexOutOfBoundsError(f"No download at position {index}.")
        self._artifacts[index].rename(name)

    def submit(self, spec: OperationSpec) -> CompositionResult:
        self._ensure_open()
        try:
            with self._exclusive(spec.kind.value):
                self._release_artifacts()
                self._result = None
                self._errors = []
                self.registry.clear_errors()

                result = self.engine.run(self.registry.snapshot(), spec)
                self._record_errors(result)
                if result.succeeded:
                    self._artifacts = self.packaging_service.package(result.outputs, spec)
                self._result = result
                return result
        finally:
            # close() may have arrived mid-run; checked after the lock is released
            if self._closed:
                self.close()

    def clear(self) -> None:
        with self._exclusive("clear"):
            self._reset()

    def close(self) -> None:
        """Release every download and drop the inputs. Safe to call more than once.

        When a run is in progress the session is marked closed and the run
        releases whatever it produced before returning.
        """
        self._closed = True
        if not self._lock.acquire(blocking=False):
            logger.debug("Session closed while an operation is running")
            return
        try:
            self._reset()
        finally:
            self._lock.release()

    def _reset(self) -> None:
        self._release_artifacts()
        self.registry.clear()
        self._result = None
        self._errors = []

    def _release_artifacts(self) -> None:
        if not self._artifacts:
            return
        for artifact in self._artifacts:
            artifact.release()
        logger.debug("Released %d artifact(s)", len(self._artifacts))
        self._artifacts = []

    def _record_errors(self, result: CompositionResult) -> None:
        if result.per_input_errors:
            count = len(result.per_input_errors)
            self._errors.append(
                ErrorReport(
                    code=ErrorCode.DECODE_OR_COPY_FAILURE,
                    message=(
                        f"An error occurred while merging the PDFs: {count} file(s) could not be "
                        "read. Remove or replace them and try again."
                    ),
                )
            )
            for position in sorted(result.per_input_errors):
                failure = result.per_input_errors[position]
                self.registry.record_error(failure.doc_id, failure)
                self._errors.append(
                    ErrorReport(
                        code=ErrorCode.DECODE_OR_COPY_FAILURE,
                        message=failure.message,
                        position=failure.position,
                        input_name=failure.input_name,
                    )
                )

        failure = result.failure
        if failure is None:
            return

        position: int | None = None
        input_name: str | None = None
        if failure.doc_id is not None:
            index = self.registry.position_of(failure.doc_id)
            document = self.registry.get(failure.doc_id)
            if index is not None and document is not None:
                position = index + 1
                input_name = document.name
                self.registry.record_error(
                    failure.doc_id,
                    InputFailure(
                        position=position,
                        input_name=input_name,
                        doc_id=failure.doc_id,
                        message=failure.message,
                    ),
                )
        self._errors.append(
            ErrorReport(
                code=failure.code,
                message=failure.message,
                position=position,
                input_name=input_name,
            )
        )
