"""Handlers that change the page set or page geometry."""

from __future__ import annotations

from pypdf import Transformation
from pypdf.generic import RectangleObject

from ..core.document import Document
from ..core.geometry import PAGE_SIZES, Box, preset_box
from ..core.rules import (
    AddBlankPages,
    CropPages,
    ExtractPages,
    PasswordProtect,
    RearrangePages,
    RemovePages,
    ResizePages,
    RotatePages,
)
from ..core.utils import get_logger
from ..exceptions import PageRangeError, ValidationError
from .common.interfaces import BaseHandler
from .common.pipeline import register_handler

LOGGER = get_logger("pdftransformx.tools.pages")


@register_handler("remove_pages")
class RemovePagesHandler(BaseHandler[RemovePages]):
    def apply(self, document: Document, rule: RemovePages) -> None:
        indices = document.to_indices(rule.pages)
        LOGGER.debug("Removing pages %s", sorted({index + 1 for index in indices}))
        document.remove_pages(indices)


@register_handler("rotate_pages")
class RotatePagesHandler(BaseHandler[RotatePages]):
    def apply(self, document: Document, rule: RotatePages) -> None:
        for index in document.select(rule.pages):
            document.set_rotation(index, rule.angle)
        LOGGER.debug("Rotated pages %s by %s degrees", rule.pages or "all", rule.angle)


@register_handler("extract_pages")
class ExtractPagesHandler(BaseHandler[ExtractPages]):
    def apply(self, document: Document, rule: ExtractPages) -> None:
        start, end = rule.page_range.start, rule.page_range.end
        total = document.page_count
        if start < 1 or end > total or start > end:
            raise PageRangeError(
                [start, end],
                total,
                f"Invalid page range {start}-{end}: expected 1 <= start <= end <= {total}",
            )
        LOGGER.debug("Extracting pages %s-%s", start, end)
        document.rebuild(list(range(start - 1, end)))


@register_handler("rearrange_pages")
class RearrangePagesHandler(BaseHandler[RearrangePages]):
    def apply(self, document: Document, rule: RearrangePages) -> None:
        indices = document.to_indices(rule.page_order)
        LOGGER.debug("Rearranging pages into order %s", list(rule.page_order))
        document.rebuild(indices)


@register_handler("add_blank_pages")
class AddBlankPagesHandler(BaseHandler[AddBlankPages]):
    def _insert_index(self, document: Document, rule: AddBlankPages) -> int:
        if rule.insert_position == "beginning":
            return 0
        if rule.insert_position == "end":
            return document.page_count
        (index,) = document.to_indices([rule.target_page_number])
        return index + 1 if rule.insert_position == "after_page" else index

    def _size(self, document: Document, rule: AddBlankPages, insert_at: int) -> tuple[float, float]:
        if rule.blank_page_size == "custom":
            return float(rule.custom_width), float(rule.custom_height)
        if rule.blank_page_size in PAGE_SIZES:
            return PAGE_SIZES[rule.blank_page_size]
        reference = min(max(insert_at - 1, 0), document.page_count - 1)
        return document.page_size(reference)

    def apply(self, document: Document, rule: AddBlankPages) -> None:
        insert_at = self._insert_index(document, rule)
        width, height = self._size(document, rule, insert_at)
        LOGGER.debug(
            "Inserting %s blank page(s) of %.1fx%.1f at index %s",
            rule.blank_page_count,
            width,
            height,
            insert_at,
        )
        document.insert_blank_pages(insert_at, rule.blank_page_count, width, height)


def _clip(box: Box, media: Box) -> Box:
    left = max(box.x, media.x)
    bottom = max(box.y, media.y)
    right = min(box.x + box.width, media.x + media.width)
    top = min(box.y + box.height, media.y + media.height)
    if right - left <= 0 or top - bottom <= 0:
        raise ValidationError("Crop area lies outside the page")
    return Box(left, bottom, right - left, top - bottom)


@register_handler("crop_pages")
class CropPagesHandler(BaseHandler[CropPages]):
    """Set the crop box from an explicit box, four margins or a preset.

    Exactly one selection is honoured, preferring the box, then margins.
    """

    def crop_area(self, media: Box, rule: CropPages) -> Box:
        if rule.crop_box is not None:
            box = rule.crop_box
            return _clip(Box(media.x + box.x, media.y + box.y, box.width, box.height), media)
        if rule.crop_margins is not None:
            margins = rule.crop_margins
            width = media.width - margins.left - margins.right
            height = media.height - margins.top - margins.bottom
            if width <= 0 or height <= 0:
                raise ValidationError("Crop margins leave no visible area")
            return Box(media.x + margins.left, media.y + margins.bottom, width, height)
        area = preset_box(rule.crop_preset, media.width, media.height)
        return Box(media.x + area.x, media.y + area.y, area.width, area.height)

    def apply(self, document: Document, rule: CropPages) -> None:
        for index in document.select(rule.page_numbers()):
            document.set_crop_box(index, self.crop_area(document.media_box(index), rule))


@register_handler("resize_pages")
class ResizePagesHandler(BaseHandler[ResizePages]):
    def target_size(self, width: float, height: float, rule: ResizePages) -> tuple[float, float]:
        if rule.resize_mode == "scale":
            return width * rule.scale_factor, height * rule.scale_factor
        if rule.resize_mode == "custom_dimensions" or rule.target_size == "custom":
            return float(rule.new_width), float(rule.new_height)
        return PAGE_SIZES[rule.target_size]

    def apply(self, document: Document, rule: ResizePages) -> None:
        for index in document.select(rule.page_numbers()):
            media = document.media_box(index)
            new_width, new_height = self.target_size(media.width, media.height, rule)
            scale_x = new_width / media.width
            scale_y = new_height / media.height
            offset_x = offset_y = 0.0
            if rule.maintain_content_aspect_ratio:
                scale_x = scale_y = min(scale_x, scale_y)
                offset_x = (new_width - media.width * scale_x) / 2
                offset_y = (new_height - media.height * scale_y) / 2

            page = document.page(index)
            page.add_transformation(
                Transformation()
                .translate(-media.x, -media.y)
                .scale(scale_x, scale_y)
                .translate(offset_x, offset_y)
            )
            page.mediabox = RectangleObject([0, 0, new_width, new_height])
            page.cropbox = RectangleObject([0, 0, new_width, new_height])
        LOGGER.debug("Resized pages using mode %s", rule.resize_mode)


@register_handler("password_protect")
class PasswordProtectHandler(BaseHandler[PasswordProtect]):
    """Accepted for compatibility; the document is left unencrypted."""

    def apply(self, document: Document, rule: PasswordProtect) -> None:
        LOGGER.warning("password_protect is not implemented; the document is returned without encryption")
