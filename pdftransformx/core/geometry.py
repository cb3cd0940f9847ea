"""Page geometry helpers: anchor positions, page-size presets and UI coordinates."""

from __future__ import annotations

from typing import NamedTuple

from ..exceptions import UnsupportedOperationError

DEFAULT_MARGIN = 20.0
FIT_FRACTION = 0.8

ANCHORS = (
    "top-left",
    "top-center",
    "top-right",
    "center-left",
    "center",
    "center-right",
    "bottom-left",
    "bottom-center",
    "bottom-right",
)

PAGE_SIZES: dict[str, tuple[float, float]] = {
    "a4": (595.28, 841.89),
    "letter": (612.0, 792.0),
    "legal": (612.0, 1008.0),
}


class Box(NamedTuple):
    """Rectangle in PDF user space with a bottom-left origin."""

    x: float
    y: float
    width: float
    height: float


def _split_anchor(position: str) -> tuple[str, str]:
    if position not in ANCHORS:
        raise UnsupportedOperationError(
            f"Unsupported position {position!r}. Allowed positions: {', '.join(ANCHORS)}"
        )
    if position == "center":
        return "center", "center"
    vertical, horizontal = position.split("-")
    return vertical, horizontal


def resolve_anchor(
    position: str,
    page_width: float,
    page_height: float,
    item_width: float,
    item_height: float,
    *,
    margin: float = DEFAULT_MARGIN,
) -> tuple[float, float]:
    """Return the bottom-left corner at which an item should be drawn.

    ``*-center`` anchors centre the item using its measured width and
    ``*-right`` anchors align its right edge to the margin, so text is never
    placed by bare corner coordinates.
    """

    vertical, horizontal = _split_anchor(position)

    if horizontal == "left":
        x = margin
    elif horizontal == "right":
        x = page_width - item_width - margin
    else:
        x = (page_width - item_width) / 2

    if vertical == "top":
        y = page_height - item_height - margin
    elif vertical == "bottom":
        y = margin
    else:
        y = (page_height - item_height) / 2

    return x, y


def ui_to_pdf_y(page_height: float, y_ui: float, element_height: float) -> float:
    """Flip a top-left-origin UI ``y`` into bottom-left PDF space."""
    return page_height - y_ui - element_height


def preset_box(preset: str, media_width: float, media_height: float) -> Box:
    """Centre a named preset inside the media box, clipped to it."""

    key = preset.lower()
    if key == "square":
        side = min(media_width, media_height)
        width, height = side, side
    elif key in PAGE_SIZES:
        width, height = PAGE_SIZES[key]
        width = min(width, media_width)
        height = min(height, media_height)
    else:
        allowed = ", ".join([*PAGE_SIZES, "square"])
        raise UnsupportedOperationError(f"Unsupported page preset {preset!r}. Allowed presets: {allowed}")
    return Box((media_width - width) / 2, (media_height - height) / 2, width, height)


def scaled_size(
    natural_width: float,
    natural_height: float,
    width: float | None,
    height: float | None,
    bounds: tuple[float, float],
    *,
    keep_aspect: bool = True,
) -> tuple[float, float]:
    """Resolve the drawn size of an asset.

    A single given dimension scales the other from the natural ratio. With
    neither given the asset is shrunk to fit within 80% of ``bounds``.
    """

    ratio = natural_width / natural_height if natural_height else 1.0
    if width and height:
        return float(width), float(height)
    if width:
        return float(width), float(width) / ratio if keep_aspect else float(natural_height)
    if height:
        return float(height) * ratio if keep_aspect else float(natural_width), float(height)

    max_width = bounds[0] * FIT_FRACTION
    max_height = bounds[1] * FIT_FRACTION
    scale = min(1.0, max_width / natural_width, max_height / natural_height)
    return natural_width * scale, natural_height * scale


__all__ = [
    "ANCHORS",
    "PAGE_SIZES",
    "DEFAULT_MARGIN",
    "Box",
    "resolve_anchor",
    "ui_to_pdf_y",
    "preset_box",
    "scaled_size",
]
