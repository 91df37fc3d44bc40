from __future__ import annotations

import io
import logging
import zipfile

from pdfcompose.domain.models import (
    PDF_MEDIA_TYPE,
    ZIP_MEDIA_TYPE,
    ExtractRange,
    Merge,
    OperationSpec,
    OutputDocument,
    SplitAll,
)
from pdfcompose.infrastructure.artifact_store import Artifact, ArtifactStore
from pdfcompose.infrastructure.config import AppConfig

logger = logging.getLogger(__name__)


class PackagingService:
    def __init__(self, store: ArtifactStore, config: AppConfig) -> None:
        self.store = store
        self.config = config

    @staticmethod
    def build_zip(outputs: list[OutputDocument]) -> bytes:
        """Bundle outputs into a ZIP, one entry per output, in the given order.

        Entry names are the outputs' own names. Two outputs with the same name
        is a caller bug and raises :class:`ValueError`.
        """
        buffer = io.BytesIO()
        written: set[str] = set()
        with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
            for output in outputs:
                if output.name in written:
                    raise ValueError(f"Duplicate archive entry: {output.name}")
                written.add(output.name)
                archive.writestr(output.name, output.content)
        return buffer.getvalue()

    def package(self, outputs: list[OutputDocument], spec: OperationSpec) -> list[Artifact]:
        if not outputs:
            return []

        artifacts: list[Artifact] = []
        try:
            if isinstance(spec, SplitAll):
                artifacts.append(
                    Artifact(
                        self.store,
                        self.config.split_archive_name,
                        self.build_zip(outputs),
                        ZIP_MEDIA_TYPE,
                    )
                )
                if self.config.split_page_downloads:
                    for output in outputs:
                        artifacts.append(
                            Artifact(self.store, output.name, output.content, PDF_MEDIA_TYPE)
                        )
            elif isinstance(spec, Merge):
                artifacts.append(
                    Artifact(
                        self.store,
                        self.config.merged_file_name,
                        outputs[0].content,
                        PDF_MEDIA_TYPE,
                    )
                )
            elif isinstance(spec, ExtractRange):
                artifacts.append(
                    Artifact(self.store, outputs[0].name, outputs[0].content, PDF_MEDIA_TYPE)
                )
            else:
                raise TypeError(f"Unsupported operation: {spec!r}")
        except BaseException:
            for artifact in artifacts:
                artifact.release()
            raise

        logger.info(
            "Packaged %d output(s) into %s",
            len(outputs),
            ", ".join(artifact.name for artifact in artifacts),
        )
        return artifacts
