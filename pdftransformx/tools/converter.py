"""Text-reflow conversion of PDFs into DOCX documents with python-docx.

Only the extracted text is carried over; layout, images and tables are not
reconstructed.
"""

from __future__ import annotations

import io
import re
from dataclasses import dataclass
from typing import List

import docx
from pypdf.errors import PdfReadError

from ..core.document import Document
from ..core.rules import ConvertToWord
from ..core.utils import get_logger, time_block

LOGGER = get_logger("pdftransformx.convert")

MAX_BLOCK_CHARS = 800
DEFAULT_TITLE = "Converted PDF Document"

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_BLANK_LINE = re.compile(r"\n\s*\n")
_SENTENCE_BOUNDARY = re.compile(r"(?<=\.)\s+(?=[A-Z])")
_WHITESPACE = re.compile(r"\s+")

EMPTY_TEXT_CAUSES = (
    "The PDF contains only scanned images or graphics without a text layer.",
    "The PDF is password protected or restricts text extraction.",
    "The text uses a non-standard or embedded font encoding.",
)


def clean_text(text: str) -> str:
    """Strip control characters and collapse runs of whitespace."""
    return _WHITESPACE.sub(" ", _CONTROL_CHARS.sub("", text)).strip()


def _merge_sentences(sentences: List[str], limit: int) -> List[str]:
    blocks: List[str] = []
    current = ""
    for sentence in sentences:
        candidate = f"{current} {sentence}".strip() if current else sentence
        if current and len(candidate) > limit:
            blocks.append(current)
            current = sentence
        else:
            current = candidate
    if current:
        blocks.append(current)
    return blocks


def segment_text(text: str, limit: int = MAX_BLOCK_CHARS) -> List[str]:
    """Split ``text`` into paragraphs.

    Blank lines separate paragraphs. When that yields a single block longer
    than ``limit``, sentences are re-merged greedily into blocks under it.
    """

    text = _CONTROL_CHARS.sub("", text)
    blocks = [clean_text(block) for block in _BLANK_LINE.split(text)]
    blocks = [block for block in blocks if block]
    if len(blocks) == 1 and len(blocks[0]) > limit:
        sentences = [part.strip() for part in _SENTENCE_BOUNDARY.split(blocks[0]) if part.strip()]
        return _merge_sentences(sentences, limit)
    return blocks


@dataclass(frozen=True)
class ConversionSummary:
    page_count: int
    paragraphs: int
    characters: int


def _metadata_line(rule: ConvertToWord, page_count: int) -> str:
    parts = [
        f"Pages: {page_count}",
        f"Quality: {rule.conversion_quality}",
        f"Layout preserved: {'yes' if rule.preserve_layout else 'no'}",
    ]
    if rule.extract_images:
        parts.append("Images: requested")
    if rule.convert_tables:
        parts.append("Tables: requested")
    return " | ".join(parts)


def _explain_empty(document, page_count: int) -> None:
    document.add_paragraph(
        f"No extractable text was found in this {page_count} page PDF. Possible causes:"
    )
    for cause in EMPTY_TEXT_CAUSES:
        document.add_paragraph(cause, style="List Bullet")
    document.add_paragraph("Try running OCR on the document before converting it.")


def build_docx(text: str, rule: ConvertToWord, *, page_count: int, title: str | None = None) -> bytes:
    """Synthesize a DOCX document from extracted ``text``."""

    title = title or DEFAULT_TITLE
    document = docx.Document()
    document.core_properties.title = title
    document.core_properties.author = "pdftransformx"
    document.core_properties.comments = _metadata_line(rule, page_count)

    if rule.include_headers:
        document.add_heading(title, level=1)
        document.add_paragraph(_metadata_line(rule, page_count)).runs[0].italic = True

    paragraphs = segment_text(text)
    if not paragraphs:
        _explain_empty(document, page_count)
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)

    summary = ConversionSummary(page_count, len(paragraphs), sum(len(item) for item in paragraphs))
    if rule.include_footers:
        document.add_paragraph(
            f"Conversion summary: {summary.paragraphs} paragraph(s), "
            f"{summary.characters} character(s) from {summary.page_count} page(s)."
        ).runs[0].italic = True

    buffer = io.BytesIO()
    document.save(buffer)
    LOGGER.info("Built DOCX with %s paragraph(s)", summary.paragraphs)
    return buffer.getvalue()


def convert_document(document: Document, rule: ConvertToWord) -> bytes:
    """Convert a loaded document; text extraction errors yield the empty-text document."""

    if rule.word_format == "doc":
        LOGGER.info("Legacy .doc output requested; producing DOCX")
    with time_block(LOGGER, "PDF to DOCX conversion"):
        try:
            text = document.extract_text()
        except (PdfReadError, ValueError, KeyError, TypeError) as exc:
            LOGGER.warning("Text extraction failed: %s", exc)
            text = ""
        return build_docx(
            text,
            rule,
            page_count=document.page_count,
            title=document.metadata.get("/Title"),
        )


__all__ = [
    "MAX_BLOCK_CHARS",
    "ConversionSummary",
    "build_docx",
    "clean_text",
    "convert_document",
    "segment_text",
]
