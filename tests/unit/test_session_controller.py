import io
import zipfile

import pytest

from pdfcompose.adapters.pymupdf_adapter import PyMuPdfAdapter
from pdfcompose.domain.errors import (
    ArtifactReleasedError,
    BusyError,
    IndexOutOfBoundsError,
    SessionClosedError,
    TooLargeError,
    TooManyFilesError,
    WrongTypeError,
)
from pdfcompose.domain.models import (
    PDF_MEDIA_TYPE,
    CandidateFile,
    CompositionResult,
    ErrorCode,
    ExtractRange,
    Merge,
    OperationKind,
    SplitAll,
)
from pdfcompose.infrastructure.artifact_store import ArtifactStore
from pdfcompose.infrastructure.config import AppConfig
from pdfcompose.services.composition_engine import CompositionEngine
from pdfcompose.services.packaging_service import PackagingService
from pdfcompose.services.session_controller import SessionController
from pdfcompose.services.validation_service import ValidationService


def _pdf(name: str, content: bytes) -> CandidateFile:
    return CandidateFile(name=name, content=content, mime_type=PDF_MEDIA_TYPE)


@pytest.fixture
def store() -> ArtifactStore:
    return ArtifactStore()


@pytest.fixture
def session(config: AppConfig, store: ArtifactStore) -> SessionController:
    return SessionController.build(config, store=store)


@pytest.mark.unit
def test_merge_submit_packages_single_artifact(session, store, make_pdf, page_texts) -> None:
    session.add_files([_pdf("a.pdf", make_pdf(2, "a")), _pdf("b.pdf", make_pdf(3, "b"))])

    result = session.submit(Merge())

    assert result.succeeded
    assert session.errors == []
    (artifact,) = session.artifacts
    assert artifact.name == "merged.pdf"
    assert len(page_texts(artifact.read())) == 5
    assert store.outstanding == 1
    assert not session.processing


@pytest.mark.unit
def test_new_run_releases_previous_artifacts(session, store, make_pdf) -> None:
    session.add_files([_pdf("a.pdf", make_pdf(1)), _pdf("b.pdf", make_pdf(1))])
    session.submit(Merge())
    (first,) = session.artifacts

    session.submit(Merge())

    assert first.released
    with pytest.raises(ArtifactReleasedError):
        first.read()
    assert store.outstanding == 1


@pytest.mark.unit
def test_failed_run_releases_previous_artifacts(session, store, make_pdf) -> None:
    (document,) = session.add_files([_pdf("a.pdf", make_pdf(3))])
    session.submit(ExtractRange(start=1, end=2))
    assert store.outstanding == 1

    result = session.submit(ExtractRange(start=1, end=9))

    assert result.failure is not None
    assert session.artifacts == []
    assert store.outstanding == 0
    assert [report.code for report in session.errors] == [ErrorCode.INVALID_RANGE]
    assert session.registry.error_for(document.doc_id) is None


@pytest.mark.unit
def test_merge_failure_reports_positions_and_flags_inputs(
    session, store, make_pdf, corrupt_pdf_bytes
) -> None:
    session.add_files(
        [
            _pdf("a.pdf", make_pdf(1)),
            _pdf("b.pdf", make_pdf(1)),
            _pdf("broken.pdf", corrupt_pdf_bytes),
            _pdf("d.pdf", make_pdf(1)),
        ]
    )

    result = session.submit(Merge())

    assert not result.succeeded
    assert session.artifacts == []
    assert store.outstanding == 0
    positioned = [report for report in session.errors if report.position is not None]
    assert [(report.position, report.input_name) for report in positioned] == [(3, "broken.pdf")]
    assert all(report.code == ErrorCode.DECODE_OR_COPY_FAILURE for report in session.errors)
    assert [view.has_error for view in session.inputs] == [False, False, True, False]


@pytest.mark.unit
def test_error_flag_follows_document_after_reorder(session, make_pdf, corrupt_pdf_bytes) -> None:
    session.add_files(
        [
            _pdf("a.pdf", make_pdf(1)),
            _pdf("b.pdf", make_pdf(1)),
            _pdf("broken.pdf", corrupt_pdf_bytes),
        ]
    )
    session.submit(Merge())

    session.reorder_input(2, 0)

    flagged = [view.name for view in session.inputs if view.has_error]
    assert flagged == ["broken.pdf"]
    assert session.inputs[0].name == "broken.pdf"
    assert session.reorder_controller.errors_by_position()[1].input_name == "broken.pdf"


@pytest.mark.unit
def test_remove_by_id_after_reorder_removes_correct_document(session, make_pdf) -> None:
    documents = session.add_files(
        [_pdf(name, make_pdf(1)) for name in ("a.pdf", "b.pdf", "c.pdf")]
    )
    session.reorder_input(0, 2)
    session.move_input_up(documents[1].doc_id)

    session.remove_input(documents[0].doc_id)

    assert [view.name for view in session.inputs] == ["b.pdf", "c.pdf"]
    assert [view.position for view in session.inputs] == [1, 2]


@pytest.mark.unit
def test_reorder_out_of_range_leaves_inputs_unchanged(session, make_pdf) -> None:
    session.add_files([_pdf("a.pdf", make_pdf(1)), _pdf("b.pdf", make_pdf(1))])

    with pytest.raises(IndexOutOfBoundsError):
        session.reorder_input(0, 5)

    assert [view.name for view in session.inputs] == ["a.pdf", "b.pdf"]


@pytest.mark.unit
def test_rejected_upload_leaves_inputs_unchanged(session, make_pdf) -> None:
    session.add_files([_pdf("a.pdf", make_pdf(1))])

    with pytest.raises(WrongTypeError):
        session.add_files(
            [_pdf("b.pdf", make_pdf(1)), CandidateFile("c.png", b"x", mime_type="image/png")]
        )

    assert [view.name for view in session.inputs] == ["a.pdf"]


@pytest.mark.unit
def test_split_submit_builds_archive(session, make_pdf) -> None:
    session.add_files([_pdf("doc.pdf", make_pdf(3))])

    session.submit(SplitAll())

    (archive_artifact,) = session.artifacts
    assert archive_artifact.name == "split-pages.zip"
    with zipfile.ZipFile(io.BytesIO(archive_artifact.read()), "r") as archive:
        assert archive.namelist() == ["split-file-1.pdf", "split-file-2.pdf", "split-file-3.pdf"]


@pytest.mark.unit
def test_single_input_failure_flags_that_input(session, corrupt_pdf_bytes) -> None:
    (document,) = session.add_files([_pdf("broken.pdf", corrupt_pdf_bytes)])

    session.submit(SplitAll())

    (report,) = session.errors
    assert report.code == ErrorCode.INVALID_INPUT
    assert report.position == 1
    assert report.input_name == "broken.pdf"
    assert session.registry.error_for(document.doc_id) is not None


@pytest.mark.unit
def test_rename_artifact(session, make_pdf) -> None:
    session.add_files([_pdf("doc.pdf", make_pdf(4))])
    session.submit(ExtractRange(start="2", end="3"))

    session.rename_artifact(0, "chapter.pdf")

    assert session.artifacts[0].name == "chapter.pdf"
    with pytest.raises(IndexOutOfBoundsError):
        session.rename_artifact(1, "other.pdf")


@pytest.mark.unit
def test_clear_is_idempotent_and_releases_everything(
    session, store, make_pdf, corrupt_pdf_bytes
) -> None:
    session.add_files([_pdf("a.pdf", make_pdf(1)), _pdf("b.pdf", make_pdf(1))])
    session.submit(Merge())
    (artifact,) = session.artifacts

    session.clear()
    session.clear()

    assert session.inputs == []
    assert session.artifacts == []
    assert session.errors == []
    assert session.result is None
    assert artifact.released
    assert store.outstanding == 0


@pytest.mark.unit
def test_context_manager_releases_artifacts_on_teardown(config, store, make_pdf) -> None:
    with SessionController.build(config, store=store) as session:
        session.add_files([_pdf("doc.pdf", make_pdf(2))])
        session.submit(SplitAll())
        assert store.outstanding == 1

    assert store.outstanding == 0


@pytest.mark.unit
def test_upload_over_count_limit_leaves_inputs_unchanged(store, make_pdf) -> None:
    session = SessionController.build(AppConfig(max_input_count=2), store=store)
    session.add_files([_pdf("a.pdf", make_pdf(1))])

    with pytest.raises(TooManyFilesError):
        session.add_files([_pdf("b.pdf", make_pdf(1)), _pdf("c.pdf", make_pdf(1))])

    assert [view.name for view in session.inputs] == ["a.pdf"]


@pytest.mark.unit
def test_replace_files_swaps_inputs_and_drops_old_downloads(session, store, make_pdf) -> None:
    (old,) = session.add_files([_pdf("old.pdf", make_pdf(3))])
    session.submit(SplitAll())
    (archive_artifact,) = session.artifacts

    (new,) = session.replace_files([_pdf("new.pdf", make_pdf(2))])

    assert [view.name for view in session.inputs] == ["new.pdf"]
    assert session.registry.get(old.doc_id) is None
    assert session.registry.get(new.doc_id) is not None
    assert archive_artifact.released
    assert session.artifacts == []
    assert session.result is None
    assert store.outstanding == 0


@pytest.mark.unit
def test_rejected_replacement_keeps_current_input_and_downloads(store, make_pdf) -> None:
    small = SessionController.build(AppConfig(max_file_size_mb=1), store=store)
    small.add_files([_pdf("a.pdf", make_pdf(2))])
    small.submit(SplitAll())

    with pytest.raises(TooLargeError):
        small.replace_files([_pdf("huge.pdf", b"%PDF" + b"0" * (2 * 1024 * 1024))])
    with pytest.raises(WrongTypeError):
        small.replace_files([CandidateFile("notes.txt", b"x", mime_type="text/plain")])

    assert [view.name for view in small.inputs] == ["a.pdf"]
    (archive_artifact,) = small.artifacts
    assert not archive_artifact.released
    assert store.outstanding == 1


@pytest.mark.unit
def test_closed_session_rejects_new_work(session, make_pdf) -> None:
    session.close()
    session.close()

    with pytest.raises(SessionClosedError):
        session.add_files([_pdf("a.pdf", make_pdf(1))])
    with pytest.raises(SessionClosedError):
        session.submit(SplitAll())


class _ReentrantEngine(CompositionEngine):
    def __init__(self) -> None:
        super().__init__(PyMuPdfAdapter())
        self.session: SessionController | None = None
        self.nested_errors: dict[str, Exception] = {}

    def run(self, inputs, spec) -> CompositionResult:
        assert self.session is not None
        assert self.session.processing
        session = self.session
        attempts = {
            "submit": lambda: session.submit(spec),
            "clear": session.clear,
            "add_files": lambda: session.add_files(
                [CandidateFile("late.pdf", b"%PDF-1.4", mime_type=PDF_MEDIA_TYPE)]
            ),
            "replace_files": lambda: session.replace_files(
                [CandidateFile("late.pdf", b"%PDF-1.4", mime_type=PDF_MEDIA_TYPE)]
            ),
            "remove_input": lambda: session.remove_input(inputs[0].doc_id),
            "reorder_input": lambda: session.reorder_input(1, 0),
            "move_input_up": lambda: session.move_input_up(inputs[1].doc_id),
            "move_input_down": lambda: session.move_input_down(inputs[0].doc_id),
        }
        for name, attempt in attempts.items():
            try:
                attempt()
            except BusyError as exc:
                self.nested_errors[name] = exc
        return super().run(inputs, spec)


class _ClosingEngine(CompositionEngine):
    def __init__(self) -> None:
        super().__init__(PyMuPdfAdapter())
        self.session: SessionController | None = None

    def run(self, inputs, spec) -> CompositionResult:
        assert self.session is not None
        self.session.close()
        return super().run(inputs, spec)


def _session_with(engine, config: AppConfig, store: ArtifactStore) -> SessionController:
    session = SessionController(
        validation_service=ValidationService(config),
        engine=engine,
        packaging_service=PackagingService(store, config),
    )
    engine.session = session
    return session


@pytest.mark.unit
def test_changes_while_processing_are_rejected(
    config: AppConfig, store: ArtifactStore, make_pdf
) -> None:
    engine = _ReentrantEngine()
    session = _session_with(engine, config, store)
    session.add_files([_pdf("a.pdf", make_pdf(1, "a")), _pdf("b.pdf", make_pdf(1, "b"))])

    result = session.submit(Merge())

    assert sorted(engine.nested_errors) == [
        "add_files",
        "clear",
        "move_input_down",
        "move_input_up",
        "remove_input",
        "reorder_input",
        "replace_files",
        "submit",
    ]
    assert all(isinstance(exc, BusyError) for exc in engine.nested_errors.values())
    assert result.succeeded
    assert [view.name for view in session.inputs] == ["a.pdf", "b.pdf"]
    assert not session.processing
    assert session.submit(Merge()).succeeded


@pytest.mark.unit
def test_close_during_run_releases_what_the_run_produced(
    config: AppConfig, store: ArtifactStore, make_pdf
) -> None:
    engine = _ClosingEngine()
    session = _session_with(engine, config, store)
    session.add_files([_pdf("a.pdf", make_pdf(1)), _pdf("b.pdf", make_pdf(1))])

    result = session.submit(Merge())

    assert result.succeeded
    assert session.artifacts == []
    assert session.inputs == []
    assert session.result is None
    assert store.outstanding == 0
    assert not session.processing
