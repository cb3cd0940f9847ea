"""Cosmetic handlers that stamp overlay content onto pages."""

from __future__ import annotations

import math
from datetime import datetime

from ..core.colors import BLACK, GREY, WHITE, parse_color
from ..core.document import Document
from ..core.drawing import (
    DEFAULT_FONT,
    draw_image,
    draw_text,
    fill_rect,
    load_image,
    text_height,
    text_width,
)
from ..core.geometry import DEFAULT_MARGIN, Box, resolve_anchor, scaled_size
from ..core.rules import (
    AddBackground,
    AddBorder,
    AddHeaderFooter,
    AddImage,
    AddPageNumbers,
    AddWatermark,
)
from ..core.utils import get_logger
from .common.interfaces import BaseHandler
from .common.pipeline import register_handler

LOGGER = get_logger("pdftransformx.tools.overlays")

WATERMARK_SIZE_RATIO = 0.1
WATERMARK_CENTER_ROTATION = 45.0


def place_text(
    text: str,
    position: str,
    page_width: float,
    page_height: float,
    size: float,
    *,
    margin: float = DEFAULT_MARGIN,
    font: str = DEFAULT_FONT,
) -> tuple[float, float]:
    """Resolve an anchor for ``text`` using its measured width and height."""

    return resolve_anchor(
        position,
        page_width,
        page_height,
        text_width(text, size, font),
        text_height(size, font),
        margin=margin,
    )


@register_handler("add_watermark")
class WatermarkHandler(BaseHandler[AddWatermark]):
    def apply(self, document: Document, rule: AddWatermark) -> None:
        color = parse_color(rule.font_color, GREY)
        if rule.rotation is not None:
            rotation = rule.rotation
        else:
            rotation = WATERMARK_CENTER_ROTATION if rule.position == "center" else 0.0

        for index in document.select(rule.page_numbers()):
            width, height = document.page_size(index)
            size = rule.font_size or min(width, height) * WATERMARK_SIZE_RATIO
            x, y = place_text(rule.text, rule.position, width, height, size)

            def paint(pdf_canvas, _w, _h, x=x, y=y, size=size):
                draw_text(
                    pdf_canvas,
                    rule.text,
                    x,
                    y,
                    size=size,
                    color=color,
                    opacity=rule.opacity,
                    rotation=rotation,
                )

            document.draw(index, paint)
        LOGGER.debug("Watermarked document with %r at %s", rule.text, rule.position)


@register_handler("add_page_numbers")
class PageNumbersHandler(BaseHandler[AddPageNumbers]):
    def label(self, rule: AddPageNumbers, index: int, total: int) -> str:
        number = rule.start_number + index
        return rule.format.replace("{n}", str(number)).replace("{total}", str(total))

    def apply(self, document: Document, rule: AddPageNumbers) -> None:
        color = parse_color(rule.font_color, BLACK)
        total = document.page_count
        for index in document.select(rule.page_numbers()):
            width, height = document.page_size(index)
            label = self.label(rule, index, total)
            x, y = place_text(label, rule.position, width, height, rule.font_size)
            document.draw(
                index,
                lambda pdf_canvas, _w, _h, x=x, y=y, label=label: draw_text(
                    pdf_canvas, label, x, y, size=rule.font_size, color=color
                ),
            )


@register_handler("add_header_footer")
class HeaderFooterHandler(BaseHandler[AddHeaderFooter]):
    def items(self, rule: AddHeaderFooter, index: int, total: int) -> list[tuple[str, str]]:
        items: list[tuple[str, str]] = []
        if rule.header_text:
            items.append((rule.header_text, "top-center"))
        if rule.footer_text:
            items.append((rule.footer_text, "bottom-center"))
        if rule.include_page_number:
            items.append((f"Page {index + 1} of {total}", "bottom-right"))
        if rule.include_date:
            items.append((datetime.now().strftime("%Y-%m-%d"), "top-right"))
        return items

    def apply(self, document: Document, rule: AddHeaderFooter) -> None:
        color = parse_color(rule.font_color, BLACK)
        total = document.page_count
        for index in document.select(rule.page_numbers()):
            if rule.different_first_page and index == 0:
                continue
            width, height = document.page_size(index)
            placed = [
                (text, *place_text(text, position, width, height, rule.font_size))
                for text, position in self.items(rule, index, total)
            ]

            def paint(pdf_canvas, _w, _h, placed=placed):
                for text, x, y in placed:
                    draw_text(pdf_canvas, text, x, y, size=rule.font_size, color=color)

            document.draw(index, paint)


@register_handler("add_border")
class BorderHandler(BaseHandler[AddBorder]):
    DASHES = {"solid": None, "dashed": (6, 3), "dotted": (1, 2)}

    def apply(self, document: Document, rule: AddBorder) -> None:
        color = parse_color(rule.border_color, BLACK)
        dash = self.DASHES[rule.border_style]

        def paint(pdf_canvas, width, height):
            inset = rule.border_margin + rule.border_width / 2
            pdf_canvas.saveState()
            pdf_canvas.setStrokeColorRGB(*color)
            pdf_canvas.setLineWidth(rule.border_width)
            if dash:
                pdf_canvas.setDash(*dash)
            box_width = max(width - 2 * inset, 1)
            box_height = max(height - 2 * inset, 1)
            if rule.border_radius:
                pdf_canvas.roundRect(inset, inset, box_width, box_height, rule.border_radius, stroke=1, fill=0)
            else:
                pdf_canvas.rect(inset, inset, box_width, box_height, stroke=1, fill=0)
            pdf_canvas.restoreState()

        for index in document.select(rule.page_numbers()):
            document.draw(index, paint)


def _background_boxes(scale: str, natural: tuple[float, float], page: tuple[float, float]) -> list[Box]:
    image_width, image_height = natural
    width, height = page
    if scale == "stretch":
        return [Box(0, 0, width, height)]
    if scale == "tile":
        columns = math.ceil(width / image_width)
        rows = math.ceil(height / image_height)
        return [
            Box(column * image_width, row * image_height, image_width, image_height)
            for row in range(rows)
            for column in range(columns)
        ]
    ratios = (width / image_width, height / image_height)
    factor = max(ratios) if scale == "fill" else min(ratios)
    drawn_width, drawn_height = image_width * factor, image_height * factor
    return [Box((width - drawn_width) / 2, (height - drawn_height) / 2, drawn_width, drawn_height)]


@register_handler("add_background")
class BackgroundHandler(BaseHandler[AddBackground]):
    """Paint a color and/or image beneath the existing page content."""

    def apply(self, document: Document, rule: AddBackground) -> None:
        color = parse_color(rule.background_color, WHITE) if rule.background_color else None
        asset = load_image(rule.background_image) if rule.background_image else None

        for index in document.select(rule.page_numbers()):
            page_size = document.page_size(index)
            boxes = (
                _background_boxes(rule.background_scale, (asset.width, asset.height), page_size)
                if asset
                else []
            )

            def paint(pdf_canvas, width, height, boxes=boxes):
                if color is not None:
                    fill_rect(pdf_canvas, Box(0, 0, width, height), color, opacity=rule.background_opacity)
                if asset is not None:
                    pdf_canvas.saveState()
                    clip = pdf_canvas.beginPath()
                    clip.rect(0, 0, width, height)
                    pdf_canvas.clipPath(clip, stroke=0, fill=0)
                    for box in boxes:
                        draw_image(pdf_canvas, asset, box, opacity=rule.background_opacity)
                    pdf_canvas.restoreState()

            document.draw(index, paint, under=True)


@register_handler("add_image")
class ImageHandler(BaseHandler[AddImage]):
    def apply(self, document: Document, rule: AddImage) -> None:
        asset = load_image(rule.image_file)
        for index in document.select(rule.page_numbers()):
            width, height = document.page_size(index)
            drawn_width, drawn_height = scaled_size(
                asset.width,
                asset.height,
                rule.image_width,
                rule.image_height,
                (width, height),
                keep_aspect=rule.maintain_aspect_ratio,
            )
            x, y = resolve_anchor(rule.position, width, height, drawn_width, drawn_height)
            box = Box(x, y, drawn_width, drawn_height)
            document.draw(
                index,
                lambda pdf_canvas, _w, _h, box=box: draw_image(pdf_canvas, asset, box, opacity=rule.opacity),
            )
        LOGGER.debug("Placed %sx%s image at %s", asset.width, asset.height, rule.position)
