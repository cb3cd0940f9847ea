"""Split a document into independent sub-documents bundled in a ZIP archive."""

from __future__ import annotations

import io
import math
from dataclasses import dataclass
from typing import List
from zipfile import ZIP_DEFLATED, ZipFile

from ..core.document import Document
from ..core.rules import SplitPdf
from ..core.utils import get_logger
from ..exceptions import ValidationError

LOGGER = get_logger("pdftransformx.split")


@dataclass(frozen=True)
class Chunk:
    """Pages of one output document, as 0-based indices, plus its file name."""

    name: str
    indices: tuple[int, ...]


def _pdf_name(name: str) -> str:
    return name if name.lower().endswith(".pdf") else f"{name}.pdf"


def _unique_name(name: str, chunks: List[Chunk]) -> str:
    """Suffix ``name`` with ``_2``, ``_3`` ... until no earlier chunk uses it."""

    taken = {chunk.name for chunk in chunks}
    stem, suffix = name[:-4], name[-4:]
    candidate, number = name, 1
    while candidate in taken:
        number += 1
        candidate = f"{stem}_{number}{suffix}"
    return candidate


def plan_chunks(rule: SplitPdf, page_count: int) -> List[Chunk]:
    """Compute the chunks produced by ``rule`` for a document of ``page_count`` pages."""

    chunks: List[Chunk] = []
    if rule.split_by == "page_count":
        size = rule.pages_per_split
        for number in range(1, math.ceil(page_count / size) + 1):
            start = (number - 1) * size + 1
            end = min(number * size, page_count)
            chunks.append(
                Chunk(
                    _pdf_name(f"split_{number}_pages_{start}-{end}"),
                    tuple(range(start - 1, end)),
                )
            )
    elif rule.split_by == "individual_pages":
        chunks.extend(Chunk(_pdf_name(f"page_{number}"), (number - 1,)) for number in range(1, page_count + 1))
    else:
        for split_range in rule.split_ranges:
            start, end = split_range.start, split_range.end
            if start < 1 or end > page_count or start > end:
                LOGGER.warning(
                    "Skipping invalid range %s-%s for a %s page document",
                    start,
                    end,
                    page_count,
                )
                continue
            name = _unique_name(_pdf_name(split_range.name or f"pages_{start}-{end}"), chunks)
            chunks.append(Chunk(name, tuple(range(start - 1, end))))
    return chunks


def split_document(document: Document, rule: SplitPdf) -> bytes:
    """Return a deflated ZIP archive with one PDF per chunk."""

    chunks = plan_chunks(rule, document.page_count)
    if not chunks:
        raise ValidationError("No documents created")

    buffer = io.BytesIO()
    with ZipFile(buffer, "w", compression=ZIP_DEFLATED) as archive:
        for chunk, data in zip(chunks, document.subsets(chunk.indices for chunk in chunks)):
            LOGGER.info("Writing %s with %s page(s)", chunk.name, len(chunk.indices))
            archive.writestr(chunk.name, data)
    return buffer.getvalue()


__all__ = ["Chunk", "plan_chunks", "split_document"]
