"""Affine mapping between design space and a product background image.

The bleed rectangle is scaled about the design-space center and then
translated so its own center lands at ``(center_x%, center_y%)`` of the
background's display size. Both spaces are squares of ``display_size``.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from printcanvas.core.objects import BleedAreaMapping, Point, Product, Rect
from printcanvas.core.state import (
    CANVAS_SIZE,
    MAPPING_MAX_SCALE,
    MAPPING_MIN_SCALE,
    MAPPING_TOLERANCE_PX,
)
from .bleed import bleed_bounds

logger = logging.getLogger(__name__)


@dataclass
class MappedBounds:
    x: float
    y: float
    width: float
    height: float
    center_x: float
    center_y: float
    corners: List[Point] = field(default_factory=list)

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


@dataclass
class MappingTransform:
    """Translate/scale pair for drawing design space onto the background."""

    translate_x: float = 0.0
    translate_y: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    origin_x: float = 0.0
    origin_y: float = 0.0


def _scale(mapping: BleedAreaMapping) -> float:
    return float(mapping.scale) if mapping.scale else 1.0


def _offset(product: Product, mapping: BleedAreaMapping, display_size: float) -> Tuple[float, float]:
    """Normalized translation that moves the scaled bleed center onto the target."""
    s = _scale(mapping)
    c = bleed_bounds(product.print_area, product.bleed_area).center
    ncx = (c.x / display_size - 0.5) * s + 0.5
    ncy = (c.y / display_size - 0.5) * s + 0.5
    return float(mapping.center_x) / 100.0 - ncx, float(mapping.center_y) / 100.0 - ncy


def design_to_background(x: float, y: float, product: Optional[Product],
                         mapping: Optional[BleedAreaMapping],
                         display_size: float = CANVAS_SIZE) -> Point:
    if product is None or mapping is None:
        return Point(x, y)
    s = _scale(mapping)
    ox, oy = _offset(product, mapping, display_size)
    nx = (x / display_size - 0.5) * s + 0.5 + ox
    ny = (y / display_size - 0.5) * s + 0.5 + oy
    return Point(nx * display_size, ny * display_size)


def background_to_design(x: float, y: float, product: Optional[Product],
                         mapping: Optional[BleedAreaMapping],
                         display_size: float = CANVAS_SIZE) -> Point:
    """Inverse of :func:`design_to_background`: untranslate, unscale, denormalize."""
    if product is None or mapping is None:
        return Point(x, y)
    s = _scale(mapping)
    ox, oy = _offset(product, mapping, display_size)
    nx = (x / display_size - ox - 0.5) / s + 0.5
    ny = (y / display_size - oy - 0.5) / s + 0.5
    return Point(nx * display_size, ny * display_size)


def mapped_bleed_bounds(product: Optional[Product], mapping: Optional[BleedAreaMapping],
                        display_size: float = CANVAS_SIZE) -> MappedBounds:
    """Axis-aligned box around the four mapped corners of the bleed rectangle."""
    if product is None or mapping is None:
        return MappedBounds(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)
    rect = bleed_bounds(product.print_area, product.bleed_area)
    corners = [design_to_background(p.x, p.y, product, mapping, display_size) for p in rect.corners()]
    xs = [p.x for p in corners]
    ys = [p.y for p in corners]
    x0, y0 = min(xs), min(ys)
    w, h = max(xs) - x0, max(ys) - y0
    return MappedBounds(x0, y0, w, h, x0 + w / 2.0, y0 + h / 2.0, corners)


def mapping_transform(product: Optional[Product], mapping: Optional[BleedAreaMapping],
                      display_size: float = CANVAS_SIZE) -> MappingTransform:
    if product is None or mapping is None:
        return MappingTransform()
    c = bleed_bounds(product.print_area, product.bleed_area).center
    s = _scale(mapping)
    return MappingTransform(
        translate_x=(float(mapping.center_x) / 100.0 - c.x / display_size) * display_size,
        translate_y=(float(mapping.center_y) / 100.0 - c.y / display_size) * display_size,
        scale_x=s,
        scale_y=s,
        origin_x=c.x,
        origin_y=c.y,
    )


def _is_number(v) -> bool:
    return isinstance(v, Real) and not isinstance(v, bool) and not math.isnan(v)


def validate_mapping(mapping: Optional[BleedAreaMapping], product: Optional[Product],
                     display_size: float = CANVAS_SIZE) -> List[str]:
    """Every reason the mapping is unusable; an empty list means valid."""
    if mapping is None or product is None:
        return []
    errors: List[str] = []
    ranges_ok = True
    if not _is_number(mapping.center_x) or not 0 <= mapping.center_x <= 100:
        errors.append("centerX must be between 0 and 100%")
        ranges_ok = False
    if not _is_number(mapping.center_y) or not 0 <= mapping.center_y <= 100:
        errors.append("centerY must be between 0 and 100%")
        ranges_ok = False
    if not _is_number(mapping.scale) or not 0 < mapping.scale <= MAPPING_MAX_SCALE:
        errors.append(f"scale must be greater than 0 and at most {MAPPING_MAX_SCALE:g}")
        ranges_ok = False
    if not ranges_ok and not all(_is_number(v) for v in (mapping.center_x, mapping.center_y, mapping.scale)):
        return errors

    b = mapped_bleed_bounds(product, mapping, display_size)
    tol = MAPPING_TOLERANCE_PX
    if b.x < -tol:
        errors.append(f"Bleed area exceeds the background on the left by {abs(b.x):.1f}px")
    if b.y < -tol:
        errors.append(f"Bleed area exceeds the background on the top by {abs(b.y):.1f}px")
    if b.x + b.width > display_size + tol:
        errors.append(f"Bleed area exceeds the background on the right by "
                      f"{b.x + b.width - display_size:.1f}px")
    if b.y + b.height > display_size + tol:
        errors.append(f"Bleed area exceeds the background on the bottom by "
                      f"{b.y + b.height - display_size:.1f}px")
    return errors


def is_valid_mapping(mapping: Optional[BleedAreaMapping], product: Optional[Product],
                     display_size: float = CANVAS_SIZE) -> bool:
    return not validate_mapping(mapping, product, display_size)


def _clamp(v, lo: float, hi: float, default: float) -> float:
    if not _is_number(v):
        return default
    return max(lo, min(hi, float(v)))


def constrain_mapping(mapping: Optional[BleedAreaMapping], product: Optional[Product],
                      display_size: float = CANVAS_SIZE) -> Optional[BleedAreaMapping]:
    """Clamp center and scale into range.

    The mapped bleed box may still leave the background afterwards; that is
    logged, and callers must re-validate.
    """
    if mapping is None or product is None:
        return mapping
    constrained = BleedAreaMapping(
        center_x=_clamp(mapping.center_x, 0.0, 100.0, 50.0),
        center_y=_clamp(mapping.center_y, 0.0, 100.0, 50.0),
        scale=_clamp(mapping.scale, MAPPING_MIN_SCALE, MAPPING_MAX_SCALE, 1.0),
        enabled=mapping.enabled,
    )
    errors = validate_mapping(constrained, product, display_size)
    if errors:
        logger.warning("Constrained mapping still out of bounds: %s", "; ".join(errors))
    return constrained


def distance_to_mapping_center(x: float, y: float, product: Optional[Product],
                               mapping: Optional[BleedAreaMapping],
                               display_size: float = CANVAS_SIZE) -> float:
    b = mapped_bleed_bounds(product, mapping, display_size)
    return math.hypot(x - b.center_x, y - b.center_y)


def point_in_mapped_bleed_area(x: float, y: float, product: Optional[Product],
                               mapping: Optional[BleedAreaMapping],
                               display_size: float = CANVAS_SIZE) -> bool:
    b = mapped_bleed_bounds(product, mapping, display_size)
    return b.x <= x <= b.x + b.width and b.y <= y <= b.y + b.height


def validate_background_image_url(url) -> Optional[str]:
    """Return an error message, or None when ``url`` is an absolute http(s) URL."""
    if not url:
        return "Background image URL must not be empty"
    if not isinstance(url, str):
        return "Background image URL must be a string"
    if not (url.startswith("http://") or url.startswith("https://")):
        return f"Background image URL must be absolute (http:// or https://): {url}"
    try:
        parsed = urlparse(url)
    except ValueError:
        return f"Invalid background image URL: {url}"
    if not parsed.netloc:
        return f"Invalid background image URL: {url}"
    return None
