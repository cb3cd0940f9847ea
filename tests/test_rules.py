from __future__ import annotations

import pytest

from pdftransformx.core.rules import (
    AddWatermark,
    Compress,
    EditPdf,
    ExtractPages,
    MergePdfs,
    RedactText,
    RotatePages,
    SplitPdf,
    TextAnnotation,
    parse_rule,
    parse_rules,
    rule_of,
)
from pdftransformx.exceptions import UnsupportedOperationError, ValidationError


def test_camel_case_fields_are_mapped() -> None:
    rule = parse_rule({"type": "split_pdf", "splitBy": "page_count", "pagesPerSplit": 2})
    assert isinstance(rule, SplitPdf)
    assert rule.pages_per_split == 2


def test_empty_rule_list_is_rejected() -> None:
    with pytest.raises(ValidationError, match="At least one transformation rule is required"):
        parse_rules([])


def test_unknown_kind_is_unsupported() -> None:
    with pytest.raises(UnsupportedOperationError):
        parse_rule({"type": "teleport_pages"})


def test_missing_type_is_a_validation_error() -> None:
    with pytest.raises(ValidationError):
        parse_rule({"pages": [1]})


@pytest.mark.parametrize("angle", [45, 0, 360])
def test_rotation_outside_right_angles_lists_allowed_set(angle: int) -> None:
    with pytest.raises(UnsupportedOperationError, match="90, 180, 270, -90"):
        parse_rule({"type": "rotate_pages", "pages": [1], "angle": angle})


def test_rotation_accepts_negative_quarter_turn() -> None:
    rule = parse_rule({"type": "rotate_pages", "pages": [1, 2], "angle": -90})
    assert isinstance(rule, RotatePages)
    assert rule.pages == (1, 2)


def test_watermark_alias() -> None:
    rule = parse_rule({"type": "watermark", "text": "DRAFT", "position": "top-left", "opacity": 0.5})
    assert isinstance(rule, AddWatermark)
    assert rule.opacity == 0.5


def test_watermark_opacity_range() -> None:
    with pytest.raises(ValidationError):
        parse_rule({"type": "add_watermark", "text": "DRAFT", "opacity": 1.5})


def test_extract_pages_alias_converts_page_list_to_range() -> None:
    rule = parse_rule({"type": "extract-pages", "pages": [4, 2, 3]})
    assert isinstance(rule, ExtractPages)
    assert (rule.page_range.start, rule.page_range.end) == (2, 4)


def test_text_replace_alias_becomes_redaction() -> None:
    rule = parse_rule({"type": "text-replace", "find": "secret"})
    assert isinstance(rule, RedactText)
    assert rule.redact_words == ("secret",)


def test_level_alias_for_compression() -> None:
    rule = parse_rule({"type": "compress", "level": "high"})
    assert isinstance(rule, Compress)
    assert rule.compression_level == "high"


def test_compression_target_range() -> None:
    with pytest.raises(ValidationError):
        parse_rule({"type": "compress", "compressionLevel": "custom", "targetFileSize": 5})


def test_nested_annotations_are_typed() -> None:
    rule = parse_rule(
        {
            "type": "add_text_annotation",
            "annotations": [
                {"id": "a1", "type": "sticky_note", "content": "Check", "x": 10, "y": 20, "fontSize": 14}
            ],
        }
    )
    assert isinstance(rule, TextAnnotation)
    assert rule.annotations[0].font_size == 14


def test_edit_style_is_parsed() -> None:
    rule = parse_rule(
        {
            "type": "edit_pdf",
            "edits": [
                {
                    "id": "e1",
                    "type": "shape",
                    "page": 1,
                    "x": 5,
                    "y": 5,
                    "width": 50,
                    "height": 30,
                    "style": {"borderColor": "#ff0000", "borderWidth": 3},
                }
            ],
        }
    )
    assert isinstance(rule, EditPdf)
    assert rule.edits[0].style.border_color == "#ff0000"


def test_split_ranges_are_required_for_range_mode() -> None:
    with pytest.raises(ValidationError):
        parse_rule({"type": "split_pdf", "splitBy": "page_ranges"})


def test_remove_password_requires_current_password() -> None:
    with pytest.raises(ValidationError):
        parse_rule({"type": "remove_password"})


def test_merge_pdfs_is_parsed() -> None:
    rule = parse_rule({"type": "merge_pdfs", "mergeFiles": ["a", "b"]})
    assert isinstance(rule, MergePdfs)


def test_rule_of_returns_first_match() -> None:
    rules = parse_rules(
        [
            {"type": "compress", "compressionLevel": "low"},
            {"type": "compress", "compressionLevel": "high"},
        ]
    )
    assert rule_of(rules, Compress).compression_level == "low"
    assert rule_of(rules, SplitPdf) is None


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "extract_pages", "pageRange": {"start": "1", "end": 2}},
        {"type": "extract_pages", "pageRange": {"start": 1, "end": 2.5}},
        {"type": "split_pdf", "splitBy": "page_ranges", "splitRanges": [{"start": "a", "end": 2}]},
        {
            "type": "text_annotation",
            "annotations": [{"id": "a", "type": "text", "content": "x", "x": "10", "y": 20}],
        },
        {
            "type": "edit_pdf",
            "edits": [{"id": "e", "type": "text", "page": 1, "x": 0, "y": 0, "width": "wide"}],
        },
    ],
)
def test_non_numeric_coordinates_are_rejected(payload: dict) -> None:
    with pytest.raises(ValidationError):
        parse_rule(payload)
