"""Heuristic, position-blind redaction.

Text positions are never resolved. The engine only checks whether each phrase
occurs anywhere in the extracted text and then blacks out pseudo-random areas
of every page: zone-weighted grids for found phrases, a few boxes in fixed
bands for absent ones. Coverage is approximate: a phrase may stay visible and unrelated text may be covered.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Sequence

from pypdf.errors import PdfReadError

from ..core.colors import BLACK
from ..core.document import Document
from ..core.drawing import fill_rect
from ..core.geometry import Box
from ..core.rules import RedactText
from ..core.utils import get_logger
from .common.interfaces import BaseHandler
from .common.pipeline import register_handler

_LOGGER = get_logger("pdftransformx.redact")

BOX_HEIGHT = 15.0
LINE_PITCH = 18.0
SLOT_GAP = 15.0
CHAR_WIDTH = 8.0
MIN_BOX_WIDTH = 40.0
JITTER = 5.0
ZONE_MARGIN = 20.0

COMPREHENSIVE = "comprehensive"
SAFETY = "safety"
EMERGENCY = "emergency"


@dataclass(frozen=True)
class Zone:
    """Horizontal page band as fractions of the page height, from the top."""

    name: str
    top: float
    bottom: float
    density: float = 0.0
    max_boxes: int = 0


COMPREHENSIVE_ZONES = (
    Zone("header", 0.0, 0.15, density=0.15),
    Zone("body", 0.15, 0.85, density=0.25),
    Zone("footer", 0.85, 1.0, density=0.10),
)

SAFETY_BANDS = (
    Zone("title", 0.05, 0.15, max_boxes=3),
    Zone("mid", 0.35, 0.65, max_boxes=8),
    Zone("bottom", 0.85, 0.95, max_boxes=2),
)

EMERGENCY_REGIONS = (
    Zone("upper", 0.1, 0.45, max_boxes=4),
    Zone("lower", 0.55, 0.9, max_boxes=4),
)


def box_width(phrase: str) -> float:
    return max(len(phrase) * CHAR_WIDTH, MIN_BOX_WIDTH)


def _zone_bounds(zone: Zone, width: float, height: float) -> Box:
    """Return the zone rectangle in PDF coordinates, inset by a side margin."""

    top = height * (1 - zone.top)
    bottom = height * (1 - zone.bottom)
    return Box(ZONE_MARGIN, bottom, max(width - 2 * ZONE_MARGIN, 0.0), top - bottom)


def _clamp(box: Box, width: float, height: float) -> Box:
    x = min(max(box.x, 0.0), max(width - box.width, 0.0))
    y = min(max(box.y, 0.0), max(height - box.height, 0.0))
    return Box(x, y, box.width, box.height)


def zone_boxes(zone: Zone, phrase: str, width: float, height: float, rng: random.Random) -> list[Box]:
    """Place density-weighted boxes on a line/slot grid inside ``zone``."""

    area = _zone_bounds(zone, width, height)
    item_width = box_width(phrase)
    lines = math.floor(area.height / LINE_PITCH)
    slots = math.floor(area.width / (item_width + SLOT_GAP))
    count = math.floor(slots * lines * zone.density)
    boxes = []
    for _ in range(count):
        line = rng.randrange(lines)
        slot = rng.randrange(slots)
        x = area.x + slot * (item_width + SLOT_GAP) + rng.uniform(-JITTER, JITTER)
        y = area.y + area.height - (line + 1) * LINE_PITCH + rng.uniform(-JITTER, JITTER)
        boxes.append(_clamp(Box(x, y, item_width, BOX_HEIGHT), width, height))
    return boxes


def band_boxes(
    band: Zone,
    item_width: float,
    width: float,
    height: float,
    rng: random.Random,
    count: int,
) -> list[Box]:
    """Scatter ``count`` boxes at random positions inside ``band``."""

    area = _zone_bounds(band, width, height)
    boxes = []
    for _ in range(count):
        x = area.x + rng.uniform(0, max(area.width - item_width, 0.0))
        y = area.y + rng.uniform(0, max(area.height - BOX_HEIGHT, 0.0))
        boxes.append(_clamp(Box(x, y, item_width, BOX_HEIGHT), width, height))
    return boxes


def plan_comprehensive(phrases: Sequence[str], width: float, height: float, rng: random.Random) -> list[Box]:
    boxes: list[Box] = []
    for phrase in phrases:
        for zone in COMPREHENSIVE_ZONES:
            boxes.extend(zone_boxes(zone, phrase, width, height, rng))
    return boxes


def plan_safety(phrases: Sequence[str], width: float, height: float, rng: random.Random) -> list[Box]:
    boxes: list[Box] = []
    for phrase in phrases:
        item_width = box_width(phrase)
        for band in SAFETY_BANDS:
            boxes.extend(band_boxes(band, item_width, width, height, rng, rng.randint(1, band.max_boxes)))
    return boxes


def plan_emergency(width: float, height: float, rng: random.Random) -> list[Box]:
    boxes: list[Box] = []
    for region in EMERGENCY_REGIONS:
        boxes.extend(band_boxes(region, MIN_BOX_WIDTH * 2, width, height, rng, region.max_boxes))
    return boxes


def detect_mode(document: Document, phrases: Sequence[str]) -> dict[str, str]:
    """Map every phrase to its redaction mode.

    A phrase found anywhere in the extracted text is redacted comprehensively,
    an absent one gets safety bands. Every phrase is in emergency mode when the
    text cannot be extracted.
    """

    try:
        text = document.extract_text().lower()
    except (PdfReadError, ValueError, KeyError, TypeError) as exc:
        _LOGGER.warning("Text extraction failed, applying emergency redaction: %s", exc)
        return {phrase: EMERGENCY for phrase in phrases}
    return {phrase: COMPREHENSIVE if phrase.lower() in text else SAFETY for phrase in phrases}


def plan_page(modes: dict[str, str], width: float, height: float, rng: random.Random) -> list[Box]:
    if EMERGENCY in modes.values():
        return plan_emergency(width, height, rng)
    boxes: list[Box] = []
    for phrase, mode in modes.items():
        if mode == COMPREHENSIVE:
            boxes.extend(plan_comprehensive([phrase], width, height, rng))
        else:
            boxes.extend(plan_safety([phrase], width, height, rng))
    return boxes


def redact(document: Document, phrases: Sequence[str], rng: random.Random) -> list[tuple[int, Box]]:
    """Black out zone-weighted areas on every page; return ``(page, box)`` pairs.

    Redaction is best effort. The underlying text stays in the content stream.
    """

    modes = detect_mode(document, phrases)
    for phrase, mode in modes.items():
        _LOGGER.info("Redacting %r in %s mode", phrase, mode)

    drawn: list[tuple[int, Box]] = []
    for index in range(document.page_count):
        width, height = document.page_size(index)
        boxes = plan_page(modes, width, height, rng)
        if not boxes:
            continue

        def paint(pdf_canvas, _w, _h, boxes=boxes):
            for box in boxes:
                fill_rect(pdf_canvas, box, BLACK)

        document.draw(index, paint)
        drawn.extend((index, box) for box in boxes)
    _LOGGER.debug("Drew %s redaction box(es)", len(drawn))
    return drawn


@register_handler("redact_text")
class RedactTextHandler(BaseHandler[RedactText]):
    def apply(self, document: Document, rule: RedactText) -> None:
        boxes = redact(document, [phrase.strip() for phrase in rule.redact_words], self.context.rng)
        self.context.record("redactions", boxes)


__all__ = [
    "COMPREHENSIVE",
    "SAFETY",
    "EMERGENCY",
    "Zone",
    "box_width",
    "zone_boxes",
    "plan_comprehensive",
    "plan_safety",
    "plan_emergency",
    "detect_mode",
    "plan_page",
    "redact",
]
