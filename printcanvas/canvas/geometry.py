"""Rotation, mask and unit helpers shared by the interactive controllers and
the offline renderers.

All angles are degrees, clockwise on screen (y axis pointing down). Element
positions are centers in logical canvas units.
"""
from __future__ import annotations

import math
from typing import Callable, Optional, Sequence, Tuple, Union

from printcanvas.core.objects import (
    Bounds,
    DesignElement,
    ImageElement,
    Mask,
    PhysicalSize,
    Point,
    Rect,
    TextElement,
)
from printcanvas.core.state import (
    CANVAS_SIZE,
    DPI_PRINT,
    MIN_ELEMENT_SIZE,
    MM_PER_INCH,
    PRINT_SCALE,
)

PointLike = Union[Point, Sequence[float]]
TextMeasure = Callable[..., float]


def _xy(p: PointLike) -> Tuple[float, float]:
    if isinstance(p, Point):
        return float(p.x), float(p.y)
    return float(p[0]), float(p[1])


def rotate_vector(dx: float, dy: float, rotation_deg: float) -> Tuple[float, float]:
    """Rotate a vector clockwise (screen coordinates) by ``rotation_deg``."""
    if not rotation_deg:
        return float(dx), float(dy)
    rad = math.radians(rotation_deg)
    c, s = math.cos(rad), math.sin(rad)
    return dx * c - dy * s, dx * s + dy * c


def rotated_bounds(center: PointLike, size: PointLike, rotation_deg: float) -> Bounds:
    """Axis-aligned bounds of a ``size`` rectangle rotated about ``center``."""
    cx, cy = _xy(center)
    w, h = _xy(size)
    hw, hh = w / 2.0, h / 2.0
    corners = []
    for lx, ly in ((-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh)):
        rx, ry = rotate_vector(lx, ly, rotation_deg)
        corners.append(Point(cx + rx, cy + ry))
    return Bounds.from_points(corners)


def rotated_size(width: float, height: float, rotation_deg: float) -> Tuple[float, float]:
    """Return (bw, bh) of the axis-aligned box around a rotated rectangle."""
    rad = math.radians(rotation_deg or 0.0)
    c, s = abs(math.cos(rad)), abs(math.sin(rad))
    return width * c + height * s, width * s + height * c


def _mask_offset(width: float, height: float, mask: Mask) -> Tuple[float, float]:
    return mask.x - width / 2.0, mask.y - height / 2.0


def mask_center(element: DesignElement) -> Point:
    """Absolute canvas position of the visible (mask) center.

    Falls back to the element center when the element has no mask. This is
    the pivot for rotation and resize of cropped images.
    """
    if not isinstance(element, ImageElement) or not element.masked:
        return Point(element.x, element.y)
    ox, oy = _mask_offset(element.width, element.height, element.mask)
    rx, ry = rotate_vector(ox, oy, element.rotation)
    return Point(element.x + rx, element.y + ry)


def position_for_mask_center(pivot: PointLike, element_size: PointLike, mask: Optional[Mask],
                             rotation_deg: float) -> Point:
    """Element center that puts the rotated mask center exactly on ``pivot``."""
    px, py = _xy(pivot)
    if mask is None:
        return Point(px, py)
    w, h = _xy(element_size)
    ox, oy = _mask_offset(w, h, mask)
    rx, ry = rotate_vector(ox, oy, rotation_deg)
    return Point(px - rx, py - ry)


def mask_to_absolute(element: ImageElement) -> Rect:
    """Unrotated canvas rectangle of the mask, centered at :func:`mask_center`."""
    if not element.masked:
        return Rect(element.x - element.width / 2.0, element.y - element.height / 2.0,
                    element.width, element.height)
    c = mask_center(element)
    m = element.mask
    return Rect(c.x - m.width / 2.0, c.y - m.height / 2.0, m.width, m.height)


def clamp_mask(mask: Mask, width: float, height: float,
               min_size: float = MIN_ELEMENT_SIZE) -> Mask:
    """Keep a mask inside its element: size within [min, element], center reachable."""
    mw = min(max(mask.width, min(min_size, width)), width)
    mh = min(max(mask.height, min(min_size, height)), height)
    mx = min(max(mask.x, mw / 2.0), width - mw / 2.0)
    my = min(max(mask.y, mh / 2.0), height - mh / 2.0)
    return Mask(mx, my, mw, mh)


def rendered_size(element: ImageElement) -> Tuple[float, float]:
    """Drawn size of an image: its original size times the free-transform scale."""
    base_w = element.original_width or (element.width / (element.scale_x or 1.0))
    base_h = element.original_height or (element.height / (element.scale_y or 1.0))
    return base_w * (element.scale_x or 1.0), base_h * (element.scale_y or 1.0)


def shape_cover_size(container_w: float, container_h: float, ratio: float) -> Tuple[float, float]:
    """Size of an image with aspect ``ratio`` covering a shape's container."""
    if not ratio or ratio <= 0:
        ratio = 1.0
    scale = max(container_w / ratio, float(container_h))
    return scale * ratio, scale


def clamp_image_offset(offset: PointLike, container_w: float, container_h: float,
                       ratio: float) -> Point:
    """Keep a shape image's pan offset within the part that overflows the container."""
    ox, oy = _xy(offset)
    iw, ih = shape_cover_size(container_w, container_h, ratio)
    max_x = max(0.0, (iw - container_w) / 2.0)
    max_y = max(0.0, (ih - container_h) / 2.0)
    return Point(max(-max_x, min(max_x, ox)), max(-max_y, min(max_y, oy)))


def estimate_text_width(text: str, font_size: float) -> float:
    # average glyph advance of a proportional sans font
    return len(text or "") * float(font_size) * 0.6


def bounding_size(element: DesignElement, measure: Optional[TextMeasure] = None) -> Tuple[float, float]:
    """Unrotated on-canvas size of an element.

    Images report their box. Text is measured with ``measure(content,
    font_size, font_family, font_weight, font_style)`` when given, else with
    a metric estimate, and padded the same way the editor pads its input box.
    """
    if isinstance(element, ImageElement):
        return float(element.width), float(element.height)
    if isinstance(element, TextElement):
        h = float(element.font_size) * 1.2
        if not element.content:
            return 20.0, h
        if measure is not None:
            w = measure(element.content, element.font_size, element.font_family,
                        element.font_weight, element.font_style)
        else:
            w = estimate_text_width(element.content, element.font_size)
        return float(max(20, math.ceil(w) + 16)), h
    raise TypeError(f"Unsupported element type: {type(element).__name__}")


def point_in_element(px: float, py: float, element: DesignElement,
                     measure: Optional[TextMeasure] = None) -> bool:
    """Rotation-aware hit test against the element's visible region."""
    if isinstance(element, ImageElement) and element.masked:
        c = mask_center(element)
        w, h = element.mask.width, element.mask.height
    else:
        c = Point(element.x, element.y)
        w, h = bounding_size(element, measure)
    lx, ly = rotate_vector(px - c.x, py - c.y, -element.rotation)
    return -w / 2.0 <= lx <= w / 2.0 and -h / 2.0 <= ly <= h / 2.0


# --- Units -------------------------------------------------------------------

def mm_to_px(mm: Optional[float], dpi: float = DPI_PRINT) -> float:
    if mm is None:
        return 0.0
    return mm * dpi / MM_PER_INCH


def px_to_mm(px: Optional[float], dpi: float = DPI_PRINT) -> float:
    if px is None:
        return 0.0
    return px * MM_PER_INCH / dpi


def canvas_px_size(physical: Optional[PhysicalSize], dpi: float = DPI_PRINT) -> Tuple[int, int]:
    """Pixel size of the full canvas when printed at ``dpi``."""
    if physical is None:
        return 0, 0
    return int(round(mm_to_px(physical.width_mm, dpi))), int(round(mm_to_px(physical.height_mm, dpi)))


def display_scale(physical: Optional[PhysicalSize], display_size: float = CANVAS_SIZE,
                  dpi: float = DPI_PRINT) -> float:
    if physical is None:
        return 1.0
    w, h = canvas_px_size(physical, dpi)
    largest = max(w, h)
    return display_size / largest if largest else 1.0


def display_to_mm(point: PointLike, physical: Optional[PhysicalSize],
                  display_size: float = CANVAS_SIZE) -> Point:
    if physical is None or point is None:
        return Point(0.0, 0.0)
    x, y = _xy(point)
    return Point(x * physical.width_mm / display_size, y * physical.height_mm / display_size)


def mm_to_display(point: PointLike, physical: Optional[PhysicalSize],
                  display_size: float = CANVAS_SIZE) -> Point:
    if physical is None or point is None:
        return Point(0.0, 0.0)
    x, y = _xy(point)
    return Point(x * display_size / physical.width_mm, y * display_size / physical.height_mm)


def rect_mm_to_display(rect: Optional[Rect], physical: Optional[PhysicalSize],
                       display_size: float = CANVAS_SIZE) -> Rect:
    if rect is None or physical is None:
        return Rect(0.0, 0.0, 0.0, 0.0)
    sx = display_size / physical.width_mm
    sy = display_size / physical.height_mm
    return Rect(rect.x * sx, rect.y * sy, rect.width * sx, rect.height * sy)


def rect_display_to_mm(rect: Optional[Rect], physical: Optional[PhysicalSize],
                       display_size: float = CANVAS_SIZE) -> Rect:
    if rect is None or physical is None:
        return Rect(0.0, 0.0, 0.0, 0.0)
    sx = physical.width_mm / display_size
    sy = physical.height_mm / display_size
    return Rect(rect.x * sx, rect.y * sy, rect.width * sx, rect.height * sy)


def logical_rect_to_mm(rect: Rect, physical: Optional[PhysicalSize],
                       canvas_size: float = CANVAS_SIZE) -> Rect:
    """Logical canvas rectangle to millimeters on the physical product."""
    return rect_display_to_mm(rect, physical, canvas_size)


def logical_rect_to_px(rect: Rect, physical: Optional[PhysicalSize], dpi: float = DPI_PRINT,
                       canvas_size: float = CANVAS_SIZE) -> Rect:
    mm = logical_rect_to_mm(rect, physical, canvas_size)
    return Rect(mm_to_px(mm.x, dpi), mm_to_px(mm.y, dpi),
                mm_to_px(mm.width, dpi), mm_to_px(mm.height, dpi))


def output_scale_factor(output_width: float, physical: Optional[PhysicalSize],
                        dpi: float = DPI_PRINT, fallback: float = PRINT_SCALE,
                        canvas_size: float = CANVAS_SIZE) -> float:
    """Pixels per logical unit for an output ``output_width`` units wide.

    With a physical size the factor is derived from the DPI pixel width of
    the output region; without one the fixed ``fallback`` multiplier is used.
    """
    if physical is None or not physical.width_mm or output_width <= 0:
        return float(fallback)
    width_mm = output_width * physical.width_mm / canvas_size
    return mm_to_px(width_mm, dpi) / output_width
