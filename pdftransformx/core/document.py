"""Mutable document model backed by :class:`pypdf.PdfWriter`."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Callable, Iterable, Iterator, Sequence

from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from pypdf.generic import RectangleObject

from ..exceptions import PageRangeError, UnsupportedOperationError, ValidationError
from .drawing import render_overlay
from .geometry import Box
from .utils import get_logger, resolve_path

LOGGER = get_logger("pdftransformx.document")

ALLOWED_ROTATIONS = (90, 180, 270, -90)


def _clean_metadata(metadata) -> dict[str, str]:
    if not metadata:
        return {}
    return {
        key: str(value)
        for key, value in metadata.items()
        if isinstance(key, str) and value is not None
    }


def open_reader(data: bytes, *, password: str | None = None) -> PdfReader:
    """Open ``data`` with pypdf, unlocking owner-only protection when possible."""

    try:
        reader = PdfReader(io.BytesIO(data))
    except (PdfReadError, ValueError, OSError) as exc:
        raise ValidationError(f"Unable to read PDF: {exc}") from exc

    if reader.is_encrypted:
        candidate = password if password is not None else ""
        try:
            status = reader.decrypt(candidate)
        except Exception as exc:  # pragma: no cover - pypdf crypto errors vary
            raise ValidationError("Unable to open encrypted PDF") from exc
        if status == 0:
            raise ValidationError(
                "Document is password protected; add a remove_password rule with the current password"
            )
        LOGGER.debug("Opened encrypted document with %s password", "supplied" if password else "empty")
    return reader


class Document:
    """Ordered, mutable page sequence owned by a single transformation."""

    def __init__(self, writer: PdfWriter, metadata: dict[str, str] | None = None) -> None:
        self._writer = writer
        self.metadata: dict[str, str] = dict(metadata or {})

    @classmethod
    def load(cls, data: bytes, *, password: str | None = None) -> "Document":
        reader = open_reader(data, password=password)
        writer = PdfWriter()
        writer.clone_reader_document_root(reader)
        document = cls(writer, _clean_metadata(reader.metadata))
        LOGGER.debug("Loaded document with %s page(s)", document.page_count)
        return document

    @classmethod
    def from_path(cls, path: str | Path, *, password: str | None = None) -> "Document":
        source = resolve_path(path)
        if not source.exists():
            raise ValidationError(f"PDF file not found: {source}")
        return cls.load(source.read_bytes(), password=password)

    @property
    def writer(self) -> PdfWriter:
        return self._writer

    @property
    def page_count(self) -> int:
        return len(self._writer.pages)

    def page(self, index: int) -> PageObject:
        return self._writer.pages[index]

    def media_box(self, index: int) -> Box:
        box = self.page(index).mediabox
        return Box(float(box.left), float(box.bottom), float(box.width), float(box.height))

    def page_size(self, index: int) -> tuple[float, float]:
        box = self.media_box(index)
        return box.width, box.height

    def crop_box(self, index: int) -> Box:
        box = self.page(index).cropbox
        return Box(float(box.left), float(box.bottom), float(box.width), float(box.height))

    def rotation(self, index: int) -> int:
        return int(self.page(index).rotation) % 360

    # -- page selection -------------------------------------------------

    def to_indices(self, pages: Iterable[int]) -> list[int]:
        """Translate 1-based page numbers into validated 0-based indices."""

        numbers = list(pages)
        invalid = [number for number in numbers if not 1 <= int(number) <= self.page_count]
        if invalid:
            raise PageRangeError(invalid, self.page_count)
        return [int(number) - 1 for number in numbers]

    def select(self, pages: Sequence[int] | None) -> list[int]:
        """Return 0-based indices for ``pages`` or every page when ``None``."""

        if not pages:
            return list(range(self.page_count))
        return self.to_indices(pages)

    # -- structural mutation --------------------------------------------

    def set_rotation(self, index: int, angle: int) -> None:
        if angle not in ALLOWED_ROTATIONS:
            allowed = ", ".join(str(value) for value in ALLOWED_ROTATIONS)
            raise UnsupportedOperationError(
                f"Invalid rotation angle: {angle}. Only {allowed} degrees are supported."
            )
        self.page(index).rotation = angle % 360

    def set_crop_box(self, index: int, box: Box) -> None:
        page = self.page(index)
        page.cropbox = RectangleObject([box.x, box.y, box.x + box.width, box.y + box.height])

    def remove_pages(self, indices: Iterable[int]) -> None:
        """Remove 0-based ``indices``, highest first so earlier indices stay valid."""

        for index in sorted(set(indices), reverse=True):
            del self._writer.pages[index]

    def rebuild(self, indices: Sequence[int]) -> None:
        """Replace the page sequence with ``indices`` of the current document.

        Pages are copied into an empty writer in the requested order, then the
        writer is swapped in. An index may appear more than once.
        """

        snapshot = self.to_bytes()
        pool: list[tuple[PdfReader, set[int]]] = []
        target = PdfWriter()
        for index in indices:
            for reader, used in pool:
                if index not in used:
                    break
            else:
                reader, used = PdfReader(io.BytesIO(snapshot)), set()
                pool.append((reader, used))
            used.add(index)
            target.add_page(reader.pages[index])
        self._writer = target

    def subsets(self, groups: Iterable[Sequence[int]]) -> Iterator[bytes]:
        """Yield one serialized document per index group without touching this one.

        The document is serialized once and every group is copied from the same
        reader.
        """

        reader = PdfReader(io.BytesIO(self.to_bytes()))
        for indices in groups:
            writer = PdfWriter()
            for index in indices:
                writer.add_page(reader.pages[index])
            if self.metadata:
                writer.add_metadata(self.metadata)
            stream = io.BytesIO()
            writer.write(stream)
            yield stream.getvalue()

    def insert_blank_pages(self, index: int, count: int, width: float, height: float) -> None:
        for offset in range(count):
            self._writer.insert_blank_page(width=width, height=height, index=index + offset)

    # -- content ----------------------------------------------------------

    def merge_overlay(self, index: int, overlay: PageObject, *, under: bool = False) -> None:
        self.page(index).merge_page(overlay, over=not under)

    def draw(
        self,
        index: int,
        painter: Callable[..., None],
        *,
        under: bool = False,
    ) -> None:
        """Render ``painter(canvas, width, height)`` onto page ``index`` through an overlay."""

        box = self.media_box(index)
        self.merge_overlay(index, render_overlay(box, painter), under=under)

    def extract_text(self) -> str:
        """Serialize and extract the plain text of every page."""

        reader = PdfReader(io.BytesIO(self.to_bytes()))
        return "\n".join(page.extract_text() or "" for page in reader.pages)

    def to_bytes(self) -> bytes:
        if self.metadata:
            self._writer.add_metadata(self.metadata)
        stream = io.BytesIO()
        self._writer.write(stream)
        return stream.getvalue()


def describe_pdf(data: bytes) -> tuple[int | None, bool]:
    """Return ``(page_count, encrypted)``; the count is ``None`` while locked."""

    try:
        reader = PdfReader(io.BytesIO(data))
    except (PdfReadError, ValueError, OSError) as exc:
        raise ValidationError(f"Unable to read PDF: {exc}") from exc
    if reader.is_encrypted and reader.decrypt("") == 0:
        return None, True
    return len(reader.pages), bool(reader.is_encrypted)


__all__ = ["Document", "ALLOWED_ROTATIONS", "describe_pdf", "open_reader"]
