"""In-memory download handles for generated files.

Every issued handle holds its bytes until it is revoked. Callers wrap
handles in :class:`Artifact` and release them when a newer run supersedes
them or the session is cleared, so repeated runs do not accumulate buffers.
"""

from __future__ import annotations

import logging
import threading
import uuid
from types import TracebackType

from pdfcompose.domain.errors import ArtifactReleasedError

logger = logging.getLogger(__name__)


class ArtifactStore:
    def __init__(self) -> None:
        self._buffers: dict[str, tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def issue(self, data: bytes, media_type: str) -> str:
        handle = str(uuid.uuid4())
        with self._lock:
            self._buffers[handle] = (data, media_type)
        logger.debug("Issued handle %s (%d bytes, %s)", handle, len(data), media_type)
        return handle

    def read(self, handle: str) -> bytes:
        with self._lock:
            entry = self._buffers.get(handle)
        if entry is None:
            raise ArtifactReleasedError()
        return entry[0]

    def revoke(self, handle: str) -> None:
        with self._lock:
            removed = self._buffers.pop(handle, None)
        if removed is not None:
            logger.debug("Revoked handle %s", handle)

    def is_live(self, handle: str) -> bool:
        with self._lock:
            return handle in self._buffers

    @property
    def outstanding(self) -> int:
        with self._lock:
            return len(self._buffers)


class Artifact:
    """A named, downloadable buffer backed by an :class:`ArtifactStore` handle.

    The name is a label chosen by the user; it is not checked against the
    content type.
    """

    def __init__(self, store: ArtifactStore, name: str, data: bytes, media_type: str) -> None:
        self._store = store
        self.name = name
        self.media_type = media_type
        self.size_bytes = len(data)
        self.handle = store.issue(data, media_type)

    def __repr__(self) -> str:
        return f"Artifact(name={self.name!r}, media_type={self.media_type!r}, released={self.released})"

    def __enter__(self) -> Artifact:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.release()

    @property
    def released(self) -> bool:
        return not self._store.is_live(self.handle)

    def read(self) -> bytes:
        return self._store.read(self.handle)

    def rename(self, name: str) -> None:
        cleaned = name.strip()
        if cleaned:
            self.name = cleaned

    def release(self) -> None:
        self._store.revoke(self.handle)
