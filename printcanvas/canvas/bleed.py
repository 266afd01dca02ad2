from __future__ import annotations

from typing import List, NamedTuple, Optional, Tuple

from printcanvas.core.objects import BleedArea, Point, Rect
from printcanvas.core.state import CANVAS_SIZE

SIDES = ("top", "right", "bottom", "left")


class BleedMargins(NamedTuple):
    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0


class BleedCheck(NamedTuple):
    valid: bool
    side: Optional[str] = None
    message: str = ""


def bleed_values(bleed_area: Optional[BleedArea]) -> BleedMargins:
    if bleed_area is None:
        return BleedMargins()
    if bleed_area.mode == "uniform":
        v = bleed_area.value or 0.0
        return BleedMargins(v, v, v, v)
    return BleedMargins(bleed_area.top or 0.0, bleed_area.right or 0.0,
                        bleed_area.bottom or 0.0, bleed_area.left or 0.0)


def bleed_bounds(print_area: Rect, bleed_area: Optional[BleedArea]) -> Rect:
    """Print area grown outward by the bleed margins (the print area itself without bleed)."""
    m = bleed_values(bleed_area)
    return Rect(print_area.x - m.left, print_area.y - m.top,
                print_area.width + m.left + m.right, print_area.height + m.top + m.bottom)


def check_bleed_area_bounds(print_area: Rect, bleed_area: Optional[BleedArea],
                            canvas_size: float = CANVAS_SIZE) -> BleedCheck:
    """Report the first side on which the bleed leaves the logical canvas."""
    if bleed_area is None:
        return BleedCheck(True)
    m = bleed_values(bleed_area)
    if print_area.x - m.left < 0:
        return BleedCheck(False, "left", "Bleed area exceeds the canvas left edge")
    if print_area.y - m.top < 0:
        return BleedCheck(False, "top", "Bleed area exceeds the canvas top edge")
    if print_area.right + m.right > canvas_size:
        return BleedCheck(False, "right", "Bleed area exceeds the canvas right edge")
    if print_area.bottom + m.bottom > canvas_size:
        return BleedCheck(False, "bottom", "Bleed area exceeds the canvas bottom edge")
    return BleedCheck(True)


def max_bleed_value(print_area: Rect, side: str, canvas_size: float = CANVAS_SIZE) -> float:
    if side == "top":
        return print_area.y
    if side == "right":
        return canvas_size - print_area.right
    if side == "bottom":
        return canvas_size - print_area.bottom
    if side == "left":
        return print_area.x
    return 0.0


def constrain_bleed_area(print_area: Rect, bleed_area: Optional[BleedArea],
                         canvas_size: float = CANVAS_SIZE) -> Optional[BleedArea]:
    if bleed_area is None:
        return None
    limits = {s: max_bleed_value(print_area, s, canvas_size) for s in SIDES}
    if bleed_area.mode == "uniform":
        return BleedArea("uniform", value=min(bleed_area.value or 0.0, min(limits.values())))
    return BleedArea(
        "separate",
        top=min(bleed_area.top or 0.0, limits["top"]),
        right=min(bleed_area.right or 0.0, limits["right"]),
        bottom=min(bleed_area.bottom or 0.0, limits["bottom"]),
        left=min(bleed_area.left or 0.0, limits["left"]),
    )


def _convert(bleed_area: Optional[BleedArea], factor: float) -> Optional[BleedArea]:
    if bleed_area is None:
        return None
    if bleed_area.mode == "uniform":
        return BleedArea("uniform", value=bleed_area.value * factor)
    return BleedArea("separate", top=bleed_area.top * factor, right=bleed_area.right * factor,
                     bottom=bleed_area.bottom * factor, left=bleed_area.left * factor)


def bleed_to_percentage(bleed_area: Optional[BleedArea],
                        canvas_size: float = CANVAS_SIZE) -> Optional[BleedArea]:
    """Logical units to percent of the canvas size (storage format)."""
    return _convert(bleed_area, 100.0 / canvas_size)


def bleed_from_percentage(bleed_area: Optional[BleedArea],
                          canvas_size: float = CANVAS_SIZE) -> Optional[BleedArea]:
    return _convert(bleed_area, canvas_size / 100.0)


def crop_mark_segments(bounds: Rect, length: float = 10.0,
                       offset: float = 5.0) -> List[Tuple[Point, Point]]:
    """Eight trim-mark line segments, two per corner, just outside ``bounds``."""
    x, y, w, h = bounds.x, bounds.y, bounds.width, bounds.height
    segs = []
    for cx, sx in ((x, -1), (x + w, 1)):
        for cy, sy in ((y, -1), (y + h, 1)):
            # horizontal mark
            segs.append((Point(cx + sx * offset, cy), Point(cx + sx * (offset + length), cy)))
            # vertical mark
            segs.append((Point(cx, cy + sy * offset), Point(cx, cy + sy * (offset + length))))
    return segs
