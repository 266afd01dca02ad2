from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

from .state import (
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_IMAGE_SIZE,
    DEFAULT_TEXT_COLOR,
)


def new_element_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Point:
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass
class Rect:
    """Axis-aligned rectangle described by its top-left corner and size."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2.0, self.y + self.height / 2.0)

    def corners(self) -> List[Point]:
        """Return corners clockwise starting at the top-left."""
        return [
            Point(self.x, self.y),
            Point(self.right, self.y),
            Point(self.right, self.bottom),
            Point(self.x, self.bottom),
        ]

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rect":
        return cls(
            float(data.get("x", 0) or 0),
            float(data.get("y", 0) or 0),
            float(data.get("width", 0) or 0),
            float(data.get("height", 0) or 0),
        )


@dataclass
class Bounds:
    """Axis-aligned bounding box as returned by the rotation helpers."""

    left: float
    top: float
    right: float
    bottom: float
    width: float
    height: float

    @classmethod
    def from_points(cls, points: List[Point]) -> "Bounds":
        xs = [p.x for p in points]
        ys = [p.y for p in points]
        left, right = min(xs), max(xs)
        top, bottom = min(ys), max(ys)
        return cls(left, top, right, bottom, right - left, bottom - top)

    @property
    def center(self) -> Point:
        return Point(self.left + self.width / 2.0, self.top + self.height / 2.0)

    def to_rect(self) -> Rect:
        return Rect(self.left, self.top, self.width, self.height)


@dataclass
class Mask:
    """Crop rectangle in the element's local, unrotated frame.

    ``x``/``y`` is the rectangle's center measured from the element's
    top-left corner; ``width``/``height`` is the visible region size.
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x - self.width / 2.0

    @property
    def top(self) -> float:
        return self.y - self.height / 2.0

    @property
    def right(self) -> float:
        return self.x + self.width / 2.0

    @property
    def bottom(self) -> float:
        return self.y + self.height / 2.0

    def scaled(self, sx: float, sy: float) -> "Mask":
        return Mask(self.x * sx, self.y * sy, self.width * sx, self.height * sy)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Mask"]:
        if not data:
            return None
        return cls(
            float(data.get("x", 0) or 0),
            float(data.get("y", 0) or 0),
            float(data.get("width", 0) or 0),
            float(data.get("height", 0) or 0),
        )


@dataclass
class DesignElement:
    """State shared by every element placed on the design canvas.

    Position is the element center in logical canvas units, rotation is in
    degrees clockwise. Stacking order is the element's index in the scene,
    there is no z field.
    """

    kind: ClassVar[str] = ""

    id: str = field(default_factory=new_element_id)
    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0
    layer_name: Optional[str] = None
    is_from_template: bool = False

    @property
    def center(self) -> Point:
        return Point(self.x, self.y)

    def field_names(self) -> List[str]:
        return [f.name for f in fields(self)]

    def _common_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.kind,
            "x": self.x,
            "y": self.y,
            "rotation": self.rotation,
            "isFromTemplate": self.is_from_template,
        }
        if self.layer_name:
            data["layerName"] = self.layer_name
        return data

    def to_dict(self) -> Dict[str, Any]:
        return self._common_dict()


@dataclass
class TextElement(DesignElement):
    kind: ClassVar[str] = "text"

    content: str = ""
    font_size: float = DEFAULT_FONT_SIZE
    color: str = DEFAULT_TEXT_COLOR
    font_family: str = DEFAULT_FONT_FAMILY
    font_weight: str = "normal"
    font_style: str = "normal"

    def to_dict(self) -> Dict[str, Any]:
        data = self._common_dict()
        data.update({
            "content": self.content,
            "fontSize": self.font_size,
            "color": self.color,
            "fontFamily": self.font_family,
            "fontWeight": self.font_weight,
            "fontStyle": self.font_style,
        })
        return data


@dataclass
class ImageElement(DesignElement):
    """Image placed on the canvas.

    ``width``/``height`` describe the full (possibly partially masked) image
    box. ``scale_x``/``scale_y`` record free-transform deformation relative to
    ``original_width``/``original_height``. ``bitmap`` is a runtime-only
    decoded ``PIL.Image`` and is never serialized.
    """

    kind: ClassVar[str] = "image"

    url: str = ""
    width: float = DEFAULT_IMAGE_SIZE
    height: float = DEFAULT_IMAGE_SIZE
    opacity: float = 1.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    original_width: Optional[float] = None
    original_height: Optional[float] = None
    has_mask: bool = False
    mask: Optional[Mask] = None
    shape_clip: Optional[str] = None
    original_image_ratio: Optional[float] = None
    image_offset: Optional[Point] = None
    bitmap: Any = field(default=None, repr=False, compare=False)

    @property
    def masked(self) -> bool:
        return bool(self.has_mask and self.mask is not None)

    @property
    def aspect_ratio(self) -> float:
        return float(self.width) / float(self.height) if self.height else 1.0

    def to_dict(self) -> Dict[str, Any]:
        data = self._common_dict()
        data.update({
            "url": self.url,
            "width": self.width,
            "height": self.height,
            "opacity": self.opacity,
            "scaleX": self.scale_x,
            "scaleY": self.scale_y,
            "hasMask": self.masked,
            "mask": self.mask.to_dict() if self.masked else None,
        })
        if self.original_width is not None:
            data["originalWidth"] = self.original_width
        if self.original_height is not None:
            data["originalHeight"] = self.original_height
        if self.shape_clip:
            clip: Dict[str, Any] = {"id": self.shape_clip}
            if self.original_image_ratio is not None:
                clip["originalImageRatio"] = self.original_image_ratio
            if self.image_offset is not None:
                clip["imageOffset"] = {"x": self.image_offset.x, "y": self.image_offset.y}
            data["shapeClip"] = clip
        return data


Element = Union[TextElement, ImageElement]


def _float(data: Dict[str, Any], key: str, default: float) -> float:
    val = data.get(key)
    if val is None or val == "":
        return float(default)
    return float(val)


def _optional_float(data: Dict[str, Any], key: str) -> Optional[float]:
    val = data.get(key)
    if val is None or val == "":
        return None
    return float(val)


def element_from_dict(data: Dict[str, Any]) -> Element:
    """Build a typed element from a persisted camelCase record.

    Missing fields get the same defaults the editor applies when sanitizing
    records loaded from storage.
    """
    kind = str(data.get("type", ""))
    common = dict(
        id=str(data.get("id") or new_element_id()),
        x=_float(data, "x", 0.0),
        y=_float(data, "y", 0.0),
        rotation=_float(data, "rotation", 0.0),
        layer_name=data.get("layerName") or None,
        is_from_template=bool(data.get("isFromTemplate", False)),
    )
    if kind == "text":
        return TextElement(
            content=str(data.get("content", "") or ""),
            font_size=_float(data, "fontSize", DEFAULT_FONT_SIZE),
            color=str(data.get("color") or DEFAULT_TEXT_COLOR),
            font_family=str(data.get("fontFamily") or DEFAULT_FONT_FAMILY),
            font_weight=str(data.get("fontWeight") or "normal"),
            font_style=str(data.get("fontStyle") or "normal"),
            **common,
        )
    if kind == "image":
        mask = Mask.from_dict(data.get("mask"))
        shape = data.get("shapeClip")
        ratio, offset = None, None
        if isinstance(shape, dict):
            ratio = _optional_float(shape, "originalImageRatio")
            raw = shape.get("imageOffset")
            if isinstance(raw, dict):
                offset = Point(_float(raw, "x", 0.0), _float(raw, "y", 0.0))
            shape = shape.get("id") or shape.get("shapeId")
        return ImageElement(
            url=str(data.get("url", "") or ""),
            width=_float(data, "width", DEFAULT_IMAGE_SIZE),
            height=_float(data, "height", DEFAULT_IMAGE_SIZE),
            opacity=_float(data, "opacity", 1.0),
            scale_x=_float(data, "scaleX", 1.0),
            scale_y=_float(data, "scaleY", 1.0),
            original_width=_optional_float(data, "originalWidth"),
            original_height=_optional_float(data, "originalHeight"),
            has_mask=bool(data.get("hasMask", False)) and mask is not None,
            mask=mask,
            shape_clip=shape or None,
            original_image_ratio=ratio,
            image_offset=offset,
            **common,
        )
    raise ValueError(f"Unknown design element type: {kind!r}")


@dataclass
class BleedArea:
    """Outward print-bleed margin around the print area.

    ``mode`` is "uniform" (``value`` on every side) or "separate" (four
    independent margins).
    """

    mode: str = "uniform"
    value: float = 0.0
    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        if self.mode == "uniform":
            return {"mode": "uniform", "value": self.value}
        return {"mode": "separate", "top": self.top, "right": self.right,
                "bottom": self.bottom, "left": self.left}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["BleedArea"]:
        if not data:
            return None
        mode = str(data.get("mode") or "uniform")
        return cls(
            mode=mode,
            value=_float(data, "value", 0.0),
            top=_float(data, "top", 0.0),
            right=_float(data, "right", 0.0),
            bottom=_float(data, "bottom", 0.0),
            left=_float(data, "left", 0.0),
        )


@dataclass
class BleedAreaMapping:
    """Affine placement of the bleed rectangle onto a background image.

    ``center_x``/``center_y`` are percentages of the background display size,
    ``scale`` multiplies design space about its center.
    """

    center_x: float = 50.0
    center_y: float = 50.0
    scale: float = 1.0
    enabled: bool = True

    @classmethod
    def default(cls) -> "BleedAreaMapping":
        return cls(50.0, 50.0, 1.0, True)

    def to_dict(self) -> Dict[str, Any]:
        return {"centerX": self.center_x, "centerY": self.center_y,
                "scale": self.scale, "enabled": self.enabled}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["BleedAreaMapping"]:
        if not data:
            return None
        return cls(
            center_x=data.get("centerX", 50.0),
            center_y=data.get("centerY", 50.0),
            scale=data.get("scale", 1.0),
            enabled=bool(data.get("enabled", True)),
        )


@dataclass
class PhysicalSize:
    """Real-world size of the full logical canvas in millimeters."""

    width_mm: float
    height_mm: float

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["PhysicalSize"]:
        if not data:
            return None
        w = data.get("widthMm")
        h = data.get("heightMm")
        if not w or not h:
            return None
        return cls(float(w), float(h))


@dataclass
class DisplayDesignArea:
    """Placement of the print area on a 2D product's display image."""

    center_x: float
    center_y: float
    scale: float

    def bounds(self, print_area: Rect) -> Rect:
        w = print_area.width * self.scale
        h = print_area.height * self.scale
        return Rect(self.center_x - w / 2.0, self.center_y - h / 2.0, w, h)


DEFAULT_PRINT_AREA = (50.0, 50.0, 200.0, 150.0)


@dataclass
class Product:
    """Product fields the canvas engine reads; everything else is opaque."""

    print_area: Rect = field(default_factory=lambda: Rect(*DEFAULT_PRINT_AREA))
    type: str = "2D"
    title: str = ""
    bleed_area: Optional[BleedArea] = None
    bleed_area_mapping: Optional[BleedAreaMapping] = None
    physical_size: Optional[PhysicalSize] = None
    mockup_image: Optional[str] = None
    glb_url: Optional[str] = None
    background_image: Optional[str] = None
    display_image: Optional[str] = None
    display_image_design_area: Optional[DisplayDesignArea] = None

    @property
    def is_3d(self) -> bool:
        return str(self.type).upper() == "3D"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        pa = data.get("printArea")
        print_area = Rect.from_dict(pa) if pa else Rect(*DEFAULT_PRINT_AREA)
        glb = data.get("glbUrl") or (data.get("model3D") or {}).get("glbUrl")
        bg = data.get("productBackgroundImage")
        if isinstance(bg, dict):
            bg = bg.get("url")
        dida = data.get("displayImageDesignArea")
        display_area = None
        if isinstance(dida, dict):
            try:
                display_area = DisplayDesignArea(float(dida["centerX"]), float(dida["centerY"]),
                                                 float(dida["scale"]))
            except (KeyError, TypeError, ValueError):
                display_area = None
        return cls(
            print_area=print_area,
            type=str(data.get("type") or "2D"),
            title=str(data.get("title") or ""),
            bleed_area=BleedArea.from_dict(data.get("bleedArea")),
            bleed_area_mapping=BleedAreaMapping.from_dict(data.get("bleedAreaMapping")),
            physical_size=PhysicalSize.from_dict(data.get("physicalSize")),
            mockup_image=data.get("mockupImage") or data.get("image"),
            glb_url=glb or None,
            background_image=bg or None,
            display_image=data.get("displayImage") or None,
            display_image_design_area=display_area,
        )


def parse_hex_rgba(hex_str: str, default: Tuple[int, int, int, int] = (255, 255, 255, 255),
                   alpha: int = 255) -> Tuple[int, int, int, int]:
    """Parse ``#rrggbb`` (or ``#rgb``) into an RGBA tuple."""
    s = str(hex_str or "").strip()
    if s.startswith("#") and len(s) == 4:
        s = "#" + "".join(ch * 2 for ch in s[1:])
    if s.startswith("#") and len(s) == 7:
        try:
            return (int(s[1:3], 16), int(s[3:5], 16), int(s[5:7], 16), alpha)
        except ValueError:
            return default
    return default
