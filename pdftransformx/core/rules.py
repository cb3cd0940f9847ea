"""Transformation rule model.

Every rule kind is a frozen dataclass registered under its wire ``type``.
:func:`parse_rules` turns the JSON-like payload (camelCase keys) into rule
instances, applies the legacy aliases and validates field values.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable, Mapping

from ..exceptions import UnsupportedOperationError, ValidationError
from .document import ALLOWED_ROTATIONS
from .geometry import ANCHORS
from .utils import get_logger

LOGGER = get_logger("pdftransformx.rules")

RULE_TYPES: dict[str, type["Rule"]] = {}

TYPE_ALIASES = {
    "watermark": "add_watermark",
    "text-replace": "redact_text",
    "extract-pages": "extract_pages",
    "add_text_annotation": "text_annotation",
}

COMPRESSION_LEVELS = ("low", "medium", "high", "maximum", "custom")
SPLIT_MODES = ("page_count", "page_ranges", "individual_pages")
INSERT_POSITIONS = ("beginning", "end", "after_page", "before_page")
BLANK_PAGE_SIZES = ("same_as_original", "a4", "letter", "legal", "custom")
CROP_PRESETS = ("a4", "letter", "legal", "square", "custom")
BORDER_STYLES = ("solid", "dashed", "dotted")
BACKGROUND_SCALES = ("fit", "fill", "stretch", "tile")
RESIZE_MODES = ("scale", "fit_to_size", "custom_dimensions")
RESIZE_TARGETS = ("a4", "letter", "legal", "custom")
ANNOTATION_TYPES = ("text", "sticky_note", "highlight", "underline", "strikethrough")
EDIT_TYPES = ("text", "image", "highlight", "note", "shape", "arrow", "redaction")
TARGETS = ("all", "pages", "range")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _check_choice(name: str, value: Any, choices: Iterable[str]) -> None:
    choices = tuple(choices)
    if value not in choices:
        raise ValidationError(f"'{name}' must be one of {', '.join(choices)}; got {value!r}")


def _check_between(name: str, value: float | None, low: float, high: float) -> None:
    if value is None:
        return
    if not isinstance(value, (int, float)) or isinstance(value, bool) or not low <= value <= high:
        raise ValidationError(f"'{name}' must be between {low} and {high}; got {value!r}")


def _check_number(name: str, value: Any, *, required: bool = False, integer: bool = False) -> None:
    if value is None:
        if required:
            raise ValidationError(f"'{name}' is required")
        return
    kinds = int if integer else (int, float)
    if isinstance(value, bool) or not isinstance(value, kinds):
        raise ValidationError(f"'{name}' must be a number; got {value!r}")


def _check_pages(name: str, pages: Iterable[Any] | None, *, required: bool = False) -> None:
    if pages is None:
        if required:
            raise ValidationError(f"'{name}' is required")
        return
    items = list(pages)
    if required and not items:
        raise ValidationError(f"'{name}' must contain at least one page")
    for item in items:
        if isinstance(item, bool) or not isinstance(item, int) or item < 1:
            raise ValidationError(f"'{name}' must contain positive integers; got {item!r}")


def _check_geometry(label: str, item: Any) -> None:
    _check_number(f"{label}.x", item.x, required=True)
    _check_number(f"{label}.y", item.y, required=True)
    _check_number(f"{label}.width", item.width)
    _check_number(f"{label}.height", item.height)


# -- nested value types -------------------------------------------------------


@dataclass(frozen=True)
class PageRange:
    start: int
    end: int


@dataclass(frozen=True)
class SplitRange:
    start: int
    end: int
    name: str | None = None


@dataclass(frozen=True)
class CropBox:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Margins:
    top: float = 0.0
    bottom: float = 0.0
    left: float = 0.0
    right: float = 0.0


@dataclass(frozen=True)
class Annotation:
    """Overlay note with top-left-origin UI coordinates."""

    id: str
    type: str
    content: str
    x: float
    y: float
    width: float | None = None
    height: float | None = None
    color: str | None = None
    font_size: float | None = None
    page: int | None = None


@dataclass(frozen=True)
class EditStyle:
    font_size: float | None = None
    font_family: str | None = None
    color: str | None = None
    background_color: str | None = None
    border_color: str | None = None
    border_width: float | None = None
    opacity: float | None = None
    bold: bool = False
    italic: bool = False
    underline: bool = False


@dataclass(frozen=True)
class Edit:
    """Positioned edit from the interactive editor, top-left UI origin."""

    id: str
    type: str
    page: int
    x: float
    y: float
    width: float | None = None
    height: float | None = None
    content: str | None = None
    style: EditStyle = field(default_factory=EditStyle)
    image_data: str | None = None


def _build(cls: type, payload: Mapping[str, Any], label: str):
    if not isinstance(payload, Mapping):
        raise ValidationError(f"'{label}' must be an object")
    names = {item.name for item in dataclasses.fields(cls)}
    kwargs = {}
    for key, value in payload.items():
        name = snake_case(str(key))
        if name in names:
            kwargs[name] = value
    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise ValidationError(f"Invalid '{label}': {exc}") from exc


# -- rule kinds ---------------------------------------------------------------


def rule_type(name: str):
    def decorator(cls: type["Rule"]) -> type["Rule"]:
        cls.type = name
        RULE_TYPES[name] = cls
        return cls

    return decorator


@dataclass(frozen=True, kw_only=True)
class Rule:
    """Base class of all transformation rules."""

    type: ClassVar[str] = ""
    nested: ClassVar[dict[str, type]] = {}

    def validate(self) -> None:  # pragma: no cover - overridden where needed
        """Raise :class:`ValidationError` for out-of-contract field values."""


@dataclass(frozen=True, kw_only=True)
class PageTargetedRule(Rule):
    """Cosmetic rule that applies to every page or to a ``pages`` subset."""

    target: str = "all"
    pages: tuple[int, ...] | None = None

    def validate(self) -> None:
        _check_choice("target", self.target, TARGETS)
        _check_pages("pages", self.pages)

    def page_numbers(self) -> tuple[int, ...] | None:
        if self.target == "all":
            return None
        return self.pages or None


@rule_type("remove_pages")
@dataclass(frozen=True, kw_only=True)
class RemovePages(Rule):
    pages: tuple[int, ...] = ()

    def validate(self) -> None:
        _check_pages("pages", self.pages, required=True)


@rule_type("rotate_pages")
@dataclass(frozen=True, kw_only=True)
class RotatePages(Rule):
    pages: tuple[int, ...] | None = None
    angle: int = 90

    def validate(self) -> None:
        _check_pages("pages", self.pages)
        if self.angle not in ALLOWED_ROTATIONS:
            allowed = ", ".join(str(value) for value in ALLOWED_ROTATIONS)
            raise UnsupportedOperationError(
                f"Invalid rotation angle: {self.angle}. Only {allowed} degrees are supported."
            )


@rule_type("add_watermark")
@dataclass(frozen=True, kw_only=True)
class AddWatermark(PageTargetedRule):
    text: str = "WATERMARK"
    position: str = "center"
    opacity: float = 0.3
    font_size: float | None = None
    font_color: str | None = None
    rotation: float | None = None

    def validate(self) -> None:
        super().validate()
        _check_choice("position", self.position, ANCHORS)
        _check_between("opacity", self.opacity, 0, 1)
        _check_between("fontSize", self.font_size, 8, 200)
        if not self.text:
            raise ValidationError("'text' must not be empty")


@rule_type("compress")
@dataclass(frozen=True, kw_only=True)
class Compress(Rule):
    compression_level: str = "medium"
    target_file_size: int | None = None
    image_quality: int | None = None

    def validate(self) -> None:
        _check_choice("compressionLevel", self.compression_level, COMPRESSION_LEVELS)
        _check_between("targetFileSize", self.target_file_size, 10, 50000)
        _check_between("imageQuality", self.image_quality, 10, 100)


@rule_type("redact_text")
@dataclass(frozen=True, kw_only=True)
class RedactText(Rule):
    redact_words: tuple[str, ...] = ()

    def validate(self) -> None:
        if not self.redact_words or not all(isinstance(word, str) and word.strip() for word in self.redact_words):
            raise ValidationError("'redactWords' must contain at least one non-empty phrase")


@rule_type("add_page_numbers")
@dataclass(frozen=True, kw_only=True)
class AddPageNumbers(PageTargetedRule):
    position: str = "bottom-center"
    font_size: float = 12
    font_color: str | None = None
    format: str = "{n}"
    start_number: int = 1

    def validate(self) -> None:
        super().validate()
        _check_choice("position", self.position, ANCHORS)
        _check_between("fontSize", self.font_size, 6, 72)


@rule_type("rearrange_pages")
@dataclass(frozen=True, kw_only=True)
class RearrangePages(Rule):
    page_order: tuple[int, ...] = ()

    def validate(self) -> None:
        _check_pages("pageOrder", self.page_order, required=True)


@rule_type("extract_pages")
@dataclass(frozen=True, kw_only=True)
class ExtractPages(Rule):
    page_range: PageRange | None = None
    nested: ClassVar[dict[str, type]] = {"page_range": PageRange}

    def validate(self) -> None:
        if self.page_range is None:
            raise ValidationError("'pageRange' is required for extract_pages")
        _check_number("pageRange.start", self.page_range.start, required=True, integer=True)
        _check_number("pageRange.end", self.page_range.end, required=True, integer=True)


@rule_type("split_pdf")
@dataclass(frozen=True, kw_only=True)
class SplitPdf(Rule):
    split_by: str = "page_count"
    pages_per_split: int = 1
    split_ranges: tuple[SplitRange, ...] = ()
    nested: ClassVar[dict[str, type]] = {"split_ranges": SplitRange}

    def validate(self) -> None:
        _check_choice("splitBy", self.split_by, SPLIT_MODES)
        if self.split_by == "page_count" and (
            not isinstance(self.pages_per_split, int) or self.pages_per_split < 1
        ):
            raise ValidationError("'pagesPerSplit' must be a positive integer")
        if self.split_by == "page_ranges" and not self.split_ranges:
            raise ValidationError("'splitRanges' must contain at least one range")
        for split_range in self.split_ranges:
            _check_number("splitRanges[].start", split_range.start, required=True, integer=True)
            _check_number("splitRanges[].end", split_range.end, required=True, integer=True)


@rule_type("add_image")
@dataclass(frozen=True, kw_only=True)
class AddImage(PageTargetedRule):
    image_file: str | None = None
    position: str = "center"
    image_width: float | None = None
    image_height: float | None = None
    maintain_aspect_ratio: bool = True
    opacity: float = 1.0

    def validate(self) -> None:
        super().validate()
        if not self.image_file:
            raise ValidationError("'imageFile' is required for add_image")
        _check_choice("position", self.position, ANCHORS)
        _check_between("opacity", self.opacity, 0, 1)


@rule_type("add_header_footer")
@dataclass(frozen=True, kw_only=True)
class AddHeaderFooter(PageTargetedRule):
    header_text: str | None = None
    footer_text: str | None = None
    include_page_number: bool = False
    include_date: bool = False
    different_first_page: bool = False
    font_size: float = 10
    font_color: str | None = None

    def validate(self) -> None:
        super().validate()
        _check_between("fontSize", self.font_size, 6, 72)
        if not (self.header_text or self.footer_text or self.include_page_number or self.include_date):
            raise ValidationError("add_header_footer needs header text, footer text, a page number or a date")


@rule_type("add_blank_pages")
@dataclass(frozen=True, kw_only=True)
class AddBlankPages(Rule):
    insert_position: str = "end"
    target_page_number: int | None = None
    blank_page_count: int = 1
    blank_page_size: str = "same_as_original"
    custom_width: float | None = None
    custom_height: float | None = None

    def validate(self) -> None:
        _check_choice("insertPosition", self.insert_position, INSERT_POSITIONS)
        _check_choice("blankPageSize", self.blank_page_size, BLANK_PAGE_SIZES)
        _check_between("blankPageCount", self.blank_page_count, 1, 50)
        if self.insert_position in {"after_page", "before_page"}:
            _check_pages("targetPageNumber", [self.target_page_number] if self.target_page_number else None, required=True)
        if self.blank_page_size == "custom" and not (self.custom_width and self.custom_height):
            raise ValidationError("'customWidth' and 'customHeight' are required for a custom blank page size")


@rule_type("crop_pages")
@dataclass(frozen=True, kw_only=True)
class CropPages(PageTargetedRule):
    crop_box: CropBox | None = None
    crop_margins: Margins | None = None
    crop_preset: str | None = None
    nested: ClassVar[dict[str, type]] = {"crop_box": CropBox, "crop_margins": Margins}

    def validate(self) -> None:
        super().validate()
        if self.crop_preset is not None:
            _check_choice("cropPreset", self.crop_preset, CROP_PRESETS)
        if self.crop_box is None and self.crop_margins is None and self.crop_preset in (None, "custom"):
            raise ValidationError("crop_pages needs one of 'cropBox', 'cropMargins' or 'cropPreset'")


@rule_type("add_background")
@dataclass(frozen=True, kw_only=True)
class AddBackground(PageTargetedRule):
    background_color: str | None = None
    background_image: str | None = None
    background_opacity: float = 1.0
    background_scale: str = "fit"

    def validate(self) -> None:
        super().validate()
        _check_between("backgroundOpacity", self.background_opacity, 0, 1)
        _check_choice("backgroundScale", self.background_scale, BACKGROUND_SCALES)
        if not (self.background_color or self.background_image):
            raise ValidationError("add_background needs 'backgroundColor' or 'backgroundImage'")


@rule_type("text_annotation")
@dataclass(frozen=True, kw_only=True)
class TextAnnotation(PageTargetedRule):
    annotations: tuple[Annotation, ...] = ()
    nested: ClassVar[dict[str, type]] = {"annotations": Annotation}

    def validate(self) -> None:
        super().validate()
        if not self.annotations:
            raise ValidationError("'annotations' must contain at least one annotation")
        for annotation in self.annotations:
            _check_choice("annotations[].type", annotation.type, ANNOTATION_TYPES)
            _check_between("annotations[].fontSize", annotation.font_size, 6, 72)
            _check_geometry("annotations[]", annotation)


@rule_type("add_border")
@dataclass(frozen=True, kw_only=True)
class AddBorder(PageTargetedRule):
    border_color: str = "#000000"
    border_width: float = 2
    border_style: str = "solid"
    border_radius: float = 0
    border_margin: float = 20

    def validate(self) -> None:
        super().validate()
        _check_between("borderWidth", self.border_width, 1, 20)
        _check_choice("borderStyle", self.border_style, BORDER_STYLES)


@rule_type("resize_pages")
@dataclass(frozen=True, kw_only=True)
class ResizePages(PageTargetedRule):
    resize_mode: str = "scale"
    scale_factor: float = 1.0
    target_size: str = "a4"
    new_width: float | None = None
    new_height: float | None = None
    maintain_content_aspect_ratio: bool = True

    def validate(self) -> None:
        super().validate()
        _check_choice("resizeMode", self.resize_mode, RESIZE_MODES)
        _check_choice("targetSize", self.target_size, RESIZE_TARGETS)
        _check_between("scaleFactor", self.scale_factor, 0.1, 10)
        custom = self.resize_mode == "custom_dimensions" or (
            self.resize_mode == "fit_to_size" and self.target_size == "custom"
        )
        if custom and not (self.new_width and self.new_height):
            raise ValidationError("'newWidth' and 'newHeight' are required for custom dimensions")


@rule_type("password_protect")
@dataclass(frozen=True, kw_only=True)
class PasswordProtect(Rule):
    user_password: str | None = None
    owner_password: str | None = None
    permissions: Mapping[str, bool] | None = None


@rule_type("remove_password")
@dataclass(frozen=True, kw_only=True)
class RemovePassword(Rule):
    current_password: str | None = None
    remove_user_password: bool = True
    remove_owner_password: bool = True

    def validate(self) -> None:
        if not self.current_password:
            raise ValidationError("'currentPassword' is required for remove_password")


@rule_type("edit_pdf")
@dataclass(frozen=True, kw_only=True)
class EditPdf(Rule):
    edits: tuple[Edit, ...] = ()
    nested: ClassVar[dict[str, type]] = {"edits": Edit}

    def validate(self) -> None:
        if not self.edits:
            raise ValidationError("'edits' must contain at least one edit")
        for edit in self.edits:
            _check_choice("edits[].type", edit.type, EDIT_TYPES)
            _check_pages("edits[].page", [edit.page], required=True)
            _check_geometry("edits[]", edit)


@rule_type("convert_to_word")
@dataclass(frozen=True, kw_only=True)
class ConvertToWord(Rule):
    word_format: str = "docx"
    conversion_quality: str = "medium"
    preserve_layout: bool = True
    extract_images: bool = False
    convert_tables: bool = False
    ocr_language: str | None = None
    include_headers: bool = True
    include_footers: bool = True
    retain_formatting: bool = True

    def validate(self) -> None:
        _check_choice("wordFormat", self.word_format, ("docx", "doc"))
        _check_choice("conversionQuality", self.conversion_quality, ("low", "medium", "high"))


@rule_type("merge_pdfs")
@dataclass(frozen=True, kw_only=True)
class MergePdfs(Rule):
    merge_files: tuple[str, ...] = ()


# -- parsing ------------------------------------------------------------------


def _normalise_payload(payload: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
    raw_type = payload.get("type")
    if not isinstance(raw_type, str) or not raw_type:
        raise ValidationError("Each transformation rule needs a 'type'")

    data = {snake_case(str(key)): value for key, value in payload.items() if key != "type"}
    kind = TYPE_ALIASES.get(raw_type, raw_type)

    if raw_type == "extract-pages" and data.get("pages") and "page_range" not in data:
        pages = list(data["pages"])
        data["page_range"] = {"start": min(pages), "end": max(pages)}
    if raw_type == "text-replace" and data.get("find") and "redact_words" not in data:
        data["redact_words"] = [data["find"]]
    if kind == "compress" and data.get("level") and "compression_level" not in data:
        data["compression_level"] = data["level"]
    return kind, data


def _coerce(name: str, value: Any, nested: Mapping[str, type]) -> Any:
    if name in nested:
        nested_cls = nested[name]
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            return tuple(_build_nested(nested_cls, item, name) for item in value)
        return _build_nested(nested_cls, value, name)
    if isinstance(value, list):
        return tuple(value)
    return value


def _build_nested(cls: type, payload: Any, label: str):
    if cls is Edit and isinstance(payload, Mapping) and isinstance(payload.get("style"), Mapping):
        payload = dict(payload)
        payload["style"] = _build(EditStyle, payload["style"], "style")
    return _build(cls, payload, label)


def parse_rule(payload: Mapping[str, Any]) -> Rule:
    """Build a typed rule from a JSON-like mapping."""

    if not isinstance(payload, Mapping):
        raise ValidationError("Each transformation rule must be an object")
    kind, data = _normalise_payload(payload)
    try:
        cls = RULE_TYPES[kind]
    except KeyError as exc:
        raise UnsupportedOperationError(f"Unsupported transformation type: {kind}") from exc

    fields = {item.name for item in dataclasses.fields(cls)}
    nested = cls.nested
    kwargs = {name: _coerce(name, value, nested) for name, value in data.items() if name in fields}
    ignored = sorted(set(data) - fields)
    if ignored:
        LOGGER.debug("Ignoring fields %s for rule %s", ignored, kind)

    try:
        rule = cls(**kwargs)
    except TypeError as exc:
        raise ValidationError(f"Invalid fields for {kind}: {exc}") from exc
    rule.validate()
    return rule


def parse_rules(payloads: Iterable[Mapping[str, Any]] | None) -> list[Rule]:
    """Parse a non-empty rule list."""

    items = list(payloads or [])
    if not items:
        raise ValidationError("At least one transformation rule is required")
    return [parse_rule(item) for item in items]


def rule_of(rules: Iterable[Rule], cls: type[Rule]) -> Rule | None:
    """Return the first rule of kind ``cls`` if present."""

    for rule in rules:
        if isinstance(rule, cls):
            return rule
    return None


__all__ = [
    "RULE_TYPES",
    "TYPE_ALIASES",
    "Rule",
    "PageTargetedRule",
    "PageRange",
    "SplitRange",
    "CropBox",
    "Margins",
    "Annotation",
    "Edit",
    "EditStyle",
    "RemovePages",
    "RotatePages",
    "AddWatermark",
    "Compress",
    "RedactText",
    "AddPageNumbers",
    "RearrangePages",
    "ExtractPages",
    "SplitPdf",
    "AddImage",
    "AddHeaderFooter",
    "AddBlankPages",
    "CropPages",
    "AddBackground",
    "TextAnnotation",
    "AddBorder",
    "ResizePages",
    "PasswordProtect",
    "RemovePassword",
    "EditPdf",
    "ConvertToWord",
    "MergePdfs",
    "parse_rule",
    "parse_rules",
    "rule_of",
    "snake_case",
]
