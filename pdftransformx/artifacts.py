"""Output-kind detection and a time-bounded in-memory artifact store."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Generic, Optional, TypeVar

from .config import DEFAULT_ARTIFACT_TTL
from .core.utils import get_logger

LOGGER = get_logger("pdftransformx.artifacts")

ZIP_MAGIC = b"PK"
ZIP_SIGNATURES = (0x03, 0x01, 0x05)
DOCX_MARKER = b"[Content_Types].xml"

ValueT = TypeVar("ValueT")


class ArtifactKind(str, Enum):
    PDF = "pdf"
    ZIP = "zip"
    DOCX = "docx"

    @property
    def media_type(self) -> str:
        return {
            ArtifactKind.PDF: "application/pdf",
            ArtifactKind.ZIP: "application/zip",
            ArtifactKind.DOCX: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        }[self]

    @property
    def extension(self) -> str:
        return f".{self.value}"


def detect_artifact_kind(data: bytes) -> ArtifactKind:
    """Classify ``data`` from its bytes alone.

    ``PK`` followed by a local-header, central-directory or end-of-directory
    signature byte is an archive, reclassified as DOCX when the stream
    contains ``[Content_Types].xml``. Anything else is a PDF.
    """

    if len(data) >= 3 and data[:2] == ZIP_MAGIC and data[2] in ZIP_SIGNATURES:
        if DOCX_MARKER in data:
            return ArtifactKind.DOCX
        return ArtifactKind.ZIP
    return ArtifactKind.PDF


@dataclass(frozen=True)
class TransformedArtifact:
    data: bytes
    kind: ArtifactKind
    name: str
    created_at: float = field(default_factory=time.time)


@dataclass
class _Entry(Generic[ValueT]):
    value: ValueT
    expires_at: float


class ArtifactStore(Generic[ValueT]):
    """Thread-safe keyed store whose entries expire after a TTL.

    Expired entries are invisible to :meth:`get` immediately and are removed
    by :meth:`sweep`, which the optional background thread calls periodically.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_ARTIFACT_TTL,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, _Entry[ValueT]] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def put(self, key: str, value: ValueT, ttl: float | None = None) -> None:
        lifetime = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = _Entry(value, self._clock() + lifetime)

    def get(self, key: str) -> Optional[ValueT]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.value

    def pop(self, key: str) -> Optional[ValueT]:
        """Remove and return ``key`` if it is present and not expired."""

        with self._lock:
            entry = self._entries.pop(key, None)
        if entry is None or entry.expires_at <= self._clock():
            return None
        return entry.value

    def sweep(self) -> int:
        """Drop every expired entry and return how many were removed."""

        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            LOGGER.debug("Swept %s expired artifact(s)", len(expired))
        return len(expired)

    def start_sweeper(self, interval: float = 60.0) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()

        def run() -> None:
            while not self._stop.wait(interval):
                self.sweep()

        self._sweeper = threading.Thread(target=run, name="artifact-sweeper", daemon=True)
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None


__all__ = [
    "ArtifactKind",
    "ArtifactStore",
    "TransformedArtifact",
    "detect_artifact_kind",
]
