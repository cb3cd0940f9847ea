"""Handlers for free-form annotations and interactive editor overlays.

Annotations and edits arrive in top-left-origin UI coordinates and are flipped
into PDF space with :func:`ui_to_pdf_y` before drawing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from reportlab.lib.utils import simpleSplit

from ..core.colors import BLACK, RGB, parse_color
from ..core.document import Document
from ..core.drawing import BOLD_FONT, DEFAULT_FONT, draw_image, draw_text, fill_rect, load_image, text_width
from ..core.geometry import Box, ui_to_pdf_y
from ..core.rules import Annotation, Edit, EditPdf, TextAnnotation
from ..core.utils import get_logger
from .common.interfaces import BaseHandler
from .common.pipeline import register_handler

LOGGER = get_logger("pdftransformx.tools.annotations")

NOTE_FILL: RGB = (1.0, 0.95, 0.6)
HIGHLIGHT_FILL: RGB = (1.0, 1.0, 0.0)
HIGHLIGHT_OPACITY = 0.35
DEFAULT_FONT_SIZE = 12.0
PADDING = 4.0


@dataclass(frozen=True)
class OverlayItem:
    """Normalised drawing instruction shared by annotations and edits."""

    kind: str
    box: Box
    content: str = ""
    color: RGB = BLACK
    font_size: float = DEFAULT_FONT_SIZE
    fill: RGB | None = None
    border: RGB | None = None
    border_width: float = 1.0
    opacity: float = 1.0
    bold: bool = False
    image: str | None = None


def _wrapped(pdf_canvas, item: OverlayItem, font: str) -> None:
    lines = simpleSplit(item.content, font, item.font_size, max(item.box.width - 2 * PADDING, 1))
    y = item.box.y + item.box.height - PADDING - item.font_size
    for line in lines:
        if y < item.box.y:
            break
        draw_text(pdf_canvas, line, item.box.x + PADDING, y, size=item.font_size, color=item.color, font=font)
        y -= item.font_size * 1.2


def _arrow(pdf_canvas, item: OverlayItem) -> None:
    x1, y1 = item.box.x, item.box.y + item.box.height
    x2, y2 = item.box.x + item.box.width, item.box.y
    angle = math.atan2(y2 - y1, x2 - x1)
    head = max(item.border_width * 4, 8)
    pdf_canvas.line(x1, y1, x2, y2)
    for offset in (math.pi / 7, -math.pi / 7):
        pdf_canvas.line(
            x2,
            y2,
            x2 - head * math.cos(angle + offset),
            y2 - head * math.sin(angle + offset),
        )


def paint_item(pdf_canvas, item: OverlayItem) -> None:
    """Draw a single overlay item."""

    font = BOLD_FONT if item.bold else DEFAULT_FONT
    box = item.box
    pdf_canvas.saveState()
    pdf_canvas.setStrokeColorRGB(*(item.border or item.color))
    pdf_canvas.setLineWidth(item.border_width)

    if item.kind == "redaction":
        fill_rect(pdf_canvas, box, BLACK)
    elif item.kind == "highlight":
        fill_rect(pdf_canvas, box, item.fill or HIGHLIGHT_FILL, opacity=HIGHLIGHT_OPACITY * item.opacity)
        if item.content:
            _wrapped(pdf_canvas, item, font)
    elif item.kind in {"sticky_note", "note"}:
        fill_rect(pdf_canvas, box, item.fill or NOTE_FILL, opacity=item.opacity)
        pdf_canvas.rect(box.x, box.y, box.width, box.height, stroke=1, fill=0)
        _wrapped(pdf_canvas, item, font)
    elif item.kind == "shape":
        if item.fill is not None:
            fill_rect(pdf_canvas, box, item.fill, opacity=item.opacity)
        pdf_canvas.rect(box.x, box.y, box.width, box.height, stroke=1, fill=0)
    elif item.kind == "arrow":
        _arrow(pdf_canvas, item)
    elif item.kind == "image" and item.image:
        draw_image(pdf_canvas, load_image(item.image), box, opacity=item.opacity)
    else:
        if item.fill is not None:
            fill_rect(pdf_canvas, box, item.fill, opacity=item.opacity)
        draw_text(pdf_canvas, item.content, box.x, box.y, size=item.font_size, color=item.color, opacity=item.opacity, font=font)
        if item.kind in {"underline", "strikethrough"}:
            length = text_width(item.content, item.font_size, font)
            line_y = box.y + (item.font_size * 0.35 if item.kind == "strikethrough" else 0.0)
            pdf_canvas.setStrokeColorRGB(*item.color)
            pdf_canvas.line(box.x, line_y, box.x + length, line_y)
    pdf_canvas.restoreState()


def _default_size(content: str, font_size: float, width: float | None, height: float | None) -> tuple[float, float]:
    return (
        float(width) if width else text_width(content, font_size) + 2 * PADDING,
        float(height) if height else font_size + 2 * PADDING,
    )


def annotation_item(annotation: Annotation, page_height: float) -> OverlayItem:
    font_size = float(annotation.font_size or DEFAULT_FONT_SIZE)
    width, height = _default_size(annotation.content, font_size, annotation.width, annotation.height)
    color = parse_color(annotation.color, BLACK)
    box = Box(annotation.x, ui_to_pdf_y(page_height, annotation.y, height), width, height)
    fill = color if annotation.type == "highlight" and annotation.color else None
    return OverlayItem(
        kind=annotation.type,
        box=box,
        content=annotation.content,
        color=BLACK if annotation.type == "highlight" else color,
        font_size=font_size,
        fill=fill,
    )


def edit_item(edit: Edit, page_height: float) -> OverlayItem:
    style = edit.style
    font_size = float(style.font_size or DEFAULT_FONT_SIZE)
    width, height = _default_size(edit.content or "", font_size, edit.width, edit.height)
    return OverlayItem(
        kind=edit.type,
        box=Box(edit.x, ui_to_pdf_y(page_height, edit.y, height), width, height),
        content=edit.content or "",
        color=parse_color(style.color, BLACK),
        font_size=font_size,
        fill=parse_color(style.background_color) if style.background_color else None,
        border=parse_color(style.border_color) if style.border_color else None,
        border_width=float(style.border_width or 1.0),
        opacity=1.0 if style.opacity is None else float(style.opacity),
        bold=style.bold,
        image=edit.image_data,
    )


def _paint_all(items: list[OverlayItem]):
    def paint(pdf_canvas, _width, _height):
        for item in items:
            paint_item(pdf_canvas, item)

    return paint


@register_handler("text_annotation")
class TextAnnotationHandler(BaseHandler[TextAnnotation]):
    def apply(self, document: Document, rule: TextAnnotation) -> None:
        targeted = document.select(rule.page_numbers())
        per_page: dict[int, list[Annotation]] = {}
        for annotation in rule.annotations:
            pages = document.to_indices([annotation.page]) if annotation.page else targeted
            for index in pages:
                per_page.setdefault(index, []).append(annotation)

        for index, annotations in sorted(per_page.items()):
            _, height = document.page_size(index)
            document.draw(index, _paint_all([annotation_item(item, height) for item in annotations]))
        LOGGER.debug("Drew %s annotation(s) on %s page(s)", len(rule.annotations), len(per_page))


@register_handler("edit_pdf")
class EditPdfHandler(BaseHandler[EditPdf]):
    def apply(self, document: Document, rule: EditPdf) -> None:
        per_page: dict[int, list[Edit]] = {}
        for edit in rule.edits:
            (index,) = document.to_indices([edit.page])
            per_page.setdefault(index, []).append(edit)

        for index, edits in sorted(per_page.items()):
            _, height = document.page_size(index)
            document.draw(index, _paint_all([edit_item(edit, height) for edit in edits]))
        LOGGER.debug("Applied %s edit(s)", len(rule.edits))
