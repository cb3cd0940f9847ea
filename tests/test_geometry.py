from __future__ import annotations

import pytest

from pdftransformx.core.colors import BLACK, parse_color
from pdftransformx.core.geometry import (
    DEFAULT_MARGIN,
    Box,
    preset_box,
    resolve_anchor,
    scaled_size,
    ui_to_pdf_y,
)
from pdftransformx.exceptions import UnsupportedOperationError, ValidationError


def test_center_anchor_uses_item_size() -> None:
    x, y = resolve_anchor("center", 600, 800, 100, 20)
    assert (x, y) == (250, 390)


def test_right_anchor_aligns_right_edge_to_margin() -> None:
    x, y = resolve_anchor("bottom-right", 600, 800, 100, 20)
    assert x + 100 == 600 - DEFAULT_MARGIN
    assert y == DEFAULT_MARGIN


def test_top_center_anchor() -> None:
    x, y = resolve_anchor("top-center", 600, 800, 50, 10, margin=30)
    assert x == 275
    assert y == 800 - 10 - 30


def test_unknown_anchor_is_rejected() -> None:
    with pytest.raises(UnsupportedOperationError):
        resolve_anchor("middle", 600, 800, 10, 10)


def test_ui_coordinates_are_flipped() -> None:
    assert ui_to_pdf_y(792, 100, 20) == 672


def test_square_preset_is_centred() -> None:
    assert preset_box("square", 600, 800) == Box(0, 100, 600, 600)


def test_preset_is_clipped_to_media_box() -> None:
    box = preset_box("legal", 400, 400)
    assert box == Box(0, 0, 400, 400)


def test_scaled_size_keeps_ratio_for_single_dimension() -> None:
    assert scaled_size(200, 100, 50, None, (600, 800)) == (50.0, 25.0)
    assert scaled_size(200, 100, None, 50, (600, 800)) == (100.0, 50.0)


def test_scaled_size_fits_eighty_percent_of_bounds() -> None:
    width, height = scaled_size(1000, 500, None, None, (500, 800))
    assert width == pytest.approx(400)
    assert height == pytest.approx(200)


def test_small_assets_are_not_enlarged() -> None:
    assert scaled_size(40, 20, None, None, (500, 800)) == (40, 20)


@pytest.mark.parametrize(
    "value, expected",
    [("#ff0000", (1.0, 0.0, 0.0)), ("#0f0", (0.0, 1.0, 0.0)), (None, BLACK)],
)
def test_parse_color(value, expected) -> None:
    assert parse_color(value) == pytest.approx(expected)


def test_parse_color_rejects_garbage() -> None:
    with pytest.raises(ValidationError):
        parse_color("red-ish")
