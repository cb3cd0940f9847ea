"""reportlab overlay rendering, font metrics and image decoding."""

from __future__ import annotations

import base64
import binascii
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from PIL import Image, UnidentifiedImageError
from pypdf import PageObject, PdfReader
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from ..exceptions import ValidationError
from .colors import BLACK, RGB
from .geometry import Box

DEFAULT_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"

Painter = Callable[[canvas.Canvas, float, float], None]


def render_overlay(box: Box, painter: Painter) -> PageObject:
    """Draw with ``painter(canvas, width, height)`` and return the overlay page.

    The canvas origin is moved to the media box corner so painters work in
    page-relative coordinates.
    """

    buffer = io.BytesIO()
    pdf_canvas = canvas.Canvas(buffer, pagesize=(box.x + box.width, box.y + box.height))
    pdf_canvas.translate(box.x, box.y)
    painter(pdf_canvas, box.width, box.height)
    pdf_canvas.showPage()
    pdf_canvas.save()
    buffer.seek(0)
    return PdfReader(buffer).pages[0]


def text_width(text: str, size: float, font: str = DEFAULT_FONT) -> float:
    return pdfmetrics.stringWidth(text, font, size)


def text_height(size: float, font: str = DEFAULT_FONT) -> float:
    ascent, descent = pdfmetrics.getAscentDescent(font, size)
    return ascent - descent


def draw_text(
    pdf_canvas: canvas.Canvas,
    text: str,
    x: float,
    y: float,
    *,
    size: float,
    color: RGB = BLACK,
    opacity: float = 1.0,
    rotation: float = 0.0,
    font: str = DEFAULT_FONT,
) -> None:
    """Draw ``text`` whose bounding box has its bottom-left corner at ``(x, y)``.

    A non-zero ``rotation`` turns the text about the centre of that box.
    """

    ascent, descent = pdfmetrics.getAscentDescent(font, size)
    width = pdfmetrics.stringWidth(text, font, size)
    height = ascent - descent
    pdf_canvas.saveState()
    pdf_canvas.setFont(font, size)
    pdf_canvas.setFillColorRGB(*color)
    pdf_canvas.setFillAlpha(opacity)
    pdf_canvas.translate(x + width / 2, y + height / 2)
    if rotation:
        pdf_canvas.rotate(rotation)
    pdf_canvas.drawString(-width / 2, -height / 2 - descent, text)
    pdf_canvas.restoreState()


def fill_rect(
    pdf_canvas: canvas.Canvas,
    box: Box,
    color: RGB = BLACK,
    *,
    opacity: float = 1.0,
) -> None:
    pdf_canvas.saveState()
    pdf_canvas.setFillColorRGB(*color)
    pdf_canvas.setFillAlpha(opacity)
    pdf_canvas.rect(box.x, box.y, box.width, box.height, stroke=0, fill=1)
    pdf_canvas.restoreState()


@dataclass(frozen=True)
class ImageAsset:
    """Decoded raster image ready to be placed on a canvas."""

    reader: ImageReader
    width: int
    height: int


def _decode_source(source: str | bytes) -> bytes:
    if isinstance(source, bytes):
        return source
    if source.startswith("data:"):
        _, _, payload = source.partition(",")
        source = payload
    else:
        candidate = Path(source).expanduser()
        try:
            if len(source) < 1024 and candidate.is_file():
                return candidate.read_bytes()
        except OSError:
            pass
    try:
        return base64.b64decode(source, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Image must be a data URL, base64 payload or existing file path") from exc


def load_image(source: str | bytes) -> ImageAsset:
    """Decode ``source`` (data URL, base64 payload, raw bytes or file path)."""

    data = _decode_source(source)
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            converted = image.convert("RGBA") if image.mode not in {"RGB", "RGBA", "L"} else image.copy()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValidationError("Unsupported or corrupt image data") from exc
    return ImageAsset(ImageReader(converted), converted.width, converted.height)


def draw_image(pdf_canvas: canvas.Canvas, asset: ImageAsset, box: Box, *, opacity: float = 1.0) -> None:
    pdf_canvas.saveState()
    pdf_canvas.setFillAlpha(opacity)
    pdf_canvas.drawImage(asset.reader, box.x, box.y, box.width, box.height, mask="auto")
    pdf_canvas.restoreState()


__all__ = [
    "DEFAULT_FONT",
    "BOLD_FONT",
    "Painter",
    "render_overlay",
    "text_width",
    "text_height",
    "draw_text",
    "fill_rect",
    "ImageAsset",
    "load_image",
    "draw_image",
]
