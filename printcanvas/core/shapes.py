from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from PIL import Image, ImageDraw


SHAPE_CATEGORIES = {
    "basic": "Basic shapes",
    "polygon": "Polygons",
    "special": "Special shapes",
}


@dataclass(frozen=True)
class ShapeClip:
    """Decorative clip shape applied to a square image element.

    Outlines are stored normalized to the unit square so the same definition
    can clip an element at any output size.
    """

    id: str
    name: str
    category: str
    kind: str = "polygon"  # 'polygon', 'ellipse' or 'rounded'
    points: Tuple[Tuple[float, float], ...] = field(default_factory=tuple)
    radii: Tuple[float, float] = (0.5, 0.5)
    corner: float = 0.0

    def outline(self, width: float, height: float) -> List[Tuple[float, float]]:
        return [(px * width, py * height) for px, py in self.points]

    def mask(self, width: int, height: int) -> Image.Image:
        """Return an 'L' mode image, 255 inside the shape."""
        w = max(1, int(width))
        h = max(1, int(height))
        m = Image.new("L", (w, h), 0)
        draw = ImageDraw.Draw(m)
        if self.kind == "ellipse":
            rx, ry = self.radii[0] * w, self.radii[1] * h
            cx, cy = w / 2.0, h / 2.0
            draw.ellipse([cx - rx, cy - ry, cx + rx, cy + ry], fill=255)
        elif self.kind == "rounded":
            r = self.corner * min(w, h)
            draw.rounded_rectangle([0, 0, w - 1, h - 1], radius=r, fill=255)
        else:
            draw.polygon(self.outline(w, h), fill=255)
        return m


def _pct(*pairs: Tuple[float, float]) -> Tuple[Tuple[float, float], ...]:
    return tuple((x / 100.0, y / 100.0) for x, y in pairs)


def _heart_points(steps: int = 72) -> Tuple[Tuple[float, float], ...]:
    pts = []
    for i in range(steps):
        t = 2.0 * math.pi * i / steps
        x = 16.0 * math.sin(t) ** 3
        y = 13.0 * math.cos(t) - 5.0 * math.cos(2 * t) - 2.0 * math.cos(3 * t) - math.cos(4 * t)
        pts.append((x, y))
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    x0, x1, y0, y1 = min(xs), max(xs), min(ys), max(ys)
    # curve y grows upward, image y grows downward
    return tuple(((x - x0) / (x1 - x0), (y1 - y) / (y1 - y0)) for x, y in pts)


SHAPE_CLIPS: Dict[str, ShapeClip] = {
    s.id: s
    for s in (
        ShapeClip("circle", "Circle", "basic", kind="ellipse", radii=(0.5, 0.5)),
        ShapeClip("ellipse", "Ellipse", "basic", kind="ellipse", radii=(0.5, 0.4)),
        ShapeClip("triangle", "Triangle", "basic", points=_pct((50, 0), (0, 100), (100, 100))),
        ShapeClip("triangleDown", "Inverted triangle", "basic", points=_pct((0, 0), (100, 0), (50, 100))),
        ShapeClip("diamond", "Diamond", "basic", points=_pct((50, 0), (100, 50), (50, 100), (0, 50))),
        ShapeClip("pentagon", "Pentagon", "polygon",
                  points=_pct((50, 0), (100, 38), (82, 100), (18, 100), (0, 38))),
        ShapeClip("hexagon", "Hexagon", "polygon",
                  points=_pct((25, 0), (75, 0), (100, 50), (75, 100), (25, 100), (0, 50))),
        ShapeClip("octagon", "Octagon", "polygon",
                  points=_pct((30, 0), (70, 0), (100, 30), (100, 70), (70, 100), (30, 100), (0, 70), (0, 30))),
        ShapeClip("star", "Star", "special",
                  points=_pct((50, 0), (61, 35), (98, 35), (68, 57), (79, 91),
                              (50, 70), (21, 91), (32, 57), (2, 35), (39, 35))),
        ShapeClip("heart", "Heart", "special", points=_heart_points()),
        ShapeClip("speechBubble", "Speech bubble", "special",
                  points=_pct((0, 0), (100, 0), (100, 70), (30, 70), (15, 100), (20, 70), (0, 70))),
        ShapeClip("roundedRect", "Rounded rectangle", "special", kind="rounded", corner=0.15),
    )
}


def get_shape(shape_id: Optional[str]) -> Optional[ShapeClip]:
    if not shape_id:
        return None
    return SHAPE_CLIPS.get(shape_id)


def shapes_by_category() -> Dict[str, List[ShapeClip]]:
    return {cat: [s for s in SHAPE_CLIPS.values() if s.category == cat] for cat in SHAPE_CATEGORIES}
