"""Color parsing helpers."""

from __future__ import annotations

import re

from ..exceptions import ValidationError

RGB = tuple[float, float, float]

BLACK: RGB = (0.0, 0.0, 0.0)
WHITE: RGB = (1.0, 1.0, 1.0)
GREY: RGB = (0.5, 0.5, 0.5)

_HEX_PATTERN = re.compile(r"^#?(?P<hex>[0-9A-Fa-f]{3}|[0-9A-Fa-f]{6})$")


def parse_color(value: str | None, default: RGB = BLACK) -> RGB:
    """Convert ``#rrggbb`` (or ``#rgb``) into an RGB triple in ``[0, 1]``."""

    if value is None or value == "":
        return default
    match = _HEX_PATTERN.match(value.strip())
    if not match:
        raise ValidationError(f"Invalid color {value!r}: expected a hex value such as '#ff0000'")
    digits = match.group("hex")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return tuple(int(digits[i : i + 2], 16) / 255.0 for i in (0, 2, 4))  # type: ignore[return-value]


__all__ = ["RGB", "BLACK", "WHITE", "GREY", "parse_color"]
