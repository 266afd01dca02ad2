from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from printcanvas.core.objects import Element, ImageElement, Mask, Point, TextElement
from printcanvas.core.state import DEFAULT_CONFIG, EngineConfig
from .geometry import (
    TextMeasure,
    bounding_size,
    mask_center,
    position_for_mask_center,
    rotate_vector,
)
from .scene import DesignScene, InteractionMode
from .viewport import ScreenRect, ViewportController

logger = logging.getLogger(__name__)

RESIZE_HANDLES = ("nw", "ne", "sw", "se")
ROTATE_HANDLE = "rotate"
ROTATE_HANDLE_OFFSET = 20.0
PRIMARY_BUTTON = 0


@dataclass
class _Gesture:
    """Values captured at pointer-down; every move is computed from these."""

    mode: InteractionMode
    element_id: str
    handle: Optional[str] = None
    offset: Point = field(default_factory=lambda: Point(0.0, 0.0))
    pivot: Point = field(default_factory=lambda: Point(0.0, 0.0))
    width: float = 0.0
    height: float = 0.0
    mask: Optional[Mask] = None
    rotation: float = 0.0
    original_size: Tuple[float, float] = (0.0, 0.0)
    font_size: float = 0.0
    distance: float = 0.0


class CanvasSelection:
    """Pointer state machine for drag, resize and rotate of design elements.

    Pointer positions are converted with the viewport before any geometry, so
    gestures stay correct under zoom and pan. The pivot of resize and rotate
    is the visible (mask) center, which keeps cropped images from drifting.
    """

    def __init__(self, scene: DesignScene, viewport: ViewportController,
                 config: Optional[EngineConfig] = None,
                 measure: Optional[TextMeasure] = None) -> None:
        self.scene = scene
        self.viewport = viewport
        self.config = config or scene.config or DEFAULT_CONFIG
        self.measure = measure
        self._free_transform = False
        self._gesture: Optional[_Gesture] = None

    # --- State ---
    @property
    def state(self) -> InteractionMode:
        return self._gesture.mode if self._gesture else InteractionMode.IDLE

    @property
    def free_transform(self) -> bool:
        return self._free_transform

    def set_free_transform(self, enabled: bool) -> None:
        self._free_transform = bool(enabled)

    def toggle_free_transform(self) -> bool:
        self._free_transform = not self._free_transform
        sel = self.scene.selected
        if self._free_transform and isinstance(sel, ImageElement) and sel.shape_clip:
            logger.debug("Free transform has no effect on shape-clipped element %s", sel.id)
        return self._free_transform

    # --- Pointer events ---
    def pointer_down(self, element_id: str, client_x: float, client_y: float,
                     container: ScreenRect, handle: Optional[str] = None,
                     button: int = PRIMARY_BUTTON) -> bool:
        """Select an element and start a gesture on it.

        Returns False when no gesture started (non-primary button or locked
        element; locked elements are still selected).
        """
        if button != PRIMARY_BUTTON:
            return False
        el = self.scene.get(element_id)
        self.scene.select(element_id)
        if self.scene.is_locked(element_id):
            logger.debug("Element %s is locked, selection only", element_id)
            return False

        p = self.viewport.screen_to_canvas(client_x, client_y, container)
        if handle is None:
            g = _Gesture(InteractionMode.DRAGGING, element_id,
                         offset=Point(p.x - el.x, p.y - el.y))
        elif handle == ROTATE_HANDLE:
            g = _Gesture(InteractionMode.ROTATING, element_id, handle=handle,
                         pivot=mask_center(el))
        elif handle in RESIZE_HANDLES:
            g = self._resize_gesture(el, handle, p)
        else:
            raise ValueError(f"Unknown handle {handle!r}")

        self.scene.begin_interaction(g.mode, element_id)
        self._gesture = g
        return True

    def _resize_gesture(self, el: Element, handle: str, p: Point) -> _Gesture:
        pivot = mask_center(el)
        g = _Gesture(InteractionMode.RESIZING, el.id, handle=handle, pivot=pivot,
                     rotation=el.rotation)
        if isinstance(el, ImageElement):
            g.width = el.width
            g.height = el.height
            g.mask = Mask(el.mask.x, el.mask.y, el.mask.width, el.mask.height) if el.masked else None
            g.original_size = (el.original_width or el.width, el.original_height or el.height)
        elif isinstance(el, TextElement):
            g.font_size = el.font_size
            g.distance = p.distance_to(pivot)
        return g

    def pointer_move(self, client_x: float, client_y: float, container: ScreenRect) -> bool:
        g = self._gesture
        if g is None:
            return False
        el = self.scene.find(g.element_id)
        if el is None:
            self.pointer_up()
            return False
        p = self.viewport.screen_to_canvas(client_x, client_y, container)
        if g.mode is InteractionMode.DRAGGING:
            self.scene.update_element(el.id, x=p.x - g.offset.x, y=p.y - g.offset.y)
        elif g.mode is InteractionMode.ROTATING:
            self._rotate(el, g, p)
        elif isinstance(el, ImageElement):
            self._resize_image(el, g, p)
        elif isinstance(el, TextElement):
            self._resize_text(el, g, p)
        return True

    def pointer_up(self) -> None:
        if self._gesture is not None:
            self.scene.end_interaction()
        self._gesture = None

    # --- Gestures ---
    def _rotate(self, el: Element, g: _Gesture, p: Point) -> None:
        angle = math.degrees(math.atan2(p.y - g.pivot.y, p.x - g.pivot.x)) + 90.0
        if isinstance(el, ImageElement) and el.masked:
            pos = position_for_mask_center(g.pivot, (el.width, el.height), el.mask, angle)
            self.scene.update_element(el.id, rotation=angle, x=pos.x, y=pos.y)
        else:
            self.scene.update_element(el.id, rotation=angle)

    def _resize_image(self, el: ImageElement, g: _Gesture, p: Point) -> None:
        min_size = self.config.min_element_size
        # delta in the element's unrotated frame
        dx, dy = rotate_vector(p.x - g.pivot.x, p.y - g.pivot.y, -g.rotation)

        if g.mask is not None:
            box_w, box_h = g.mask.width, g.mask.height
        else:
            box_w, box_h = g.width, g.height

        free = self._free_transform
        if free and el.shape_clip:
            free = False
        if free:
            new_w = max(min_size, abs(dx) * 2.0)
            new_h = max(min_size, abs(dy) * 2.0)
        else:
            aspect = box_w / box_h if box_h else 1.0
            if abs(dx) > abs(dy * aspect):
                new_w = max(min_size, abs(dx) * 2.0)
                new_h = new_w / aspect
            else:
                new_h = max(min_size, abs(dy) * 2.0)
                new_w = new_h * aspect
            short = min(new_w, new_h)
            if short < min_size:
                new_w *= min_size / short
                new_h *= min_size / short

        sx = new_w / box_w if box_w else 1.0
        sy = new_h / box_h if box_h else 1.0
        width = g.width * sx
        height = g.height * sy
        orig_w, orig_h = g.original_size
        changes = dict(
            width=width,
            height=height,
            scale_x=width / orig_w if orig_w else 1.0,
            scale_y=height / orig_h if orig_h else 1.0,
            original_width=orig_w,
            original_height=orig_h,
        )
        if g.mask is not None:
            mask = g.mask.scaled(sx, sy)
            pos = position_for_mask_center(g.pivot, (width, height), mask, g.rotation)
            changes.update(mask=mask, has_mask=True, x=pos.x, y=pos.y)
        self.scene.update_element(el.id, **changes)

    def _resize_text(self, el: TextElement, g: _Gesture, p: Point) -> None:
        if g.distance <= 1e-9:
            # pointer went down on the pivot itself, restart the reference
            g.distance = p.distance_to(g.pivot)
            return
        ratio = p.distance_to(g.pivot) / g.distance
        size = g.font_size * ratio
        size = max(self.config.min_font_size, min(self.config.max_font_size, size))
        self.scene.update_element(el.id, font_size=size)

    # --- Handles ---
    def handle_positions(self, element: Element) -> Dict[str, Point]:
        """Canvas positions of the resize corners and the rotate knob."""
        c = mask_center(element)
        if isinstance(element, ImageElement) and element.masked:
            w, h = element.mask.width, element.mask.height
        else:
            w, h = bounding_size(element, self.measure)
        local = {
            "nw": (-w / 2.0, -h / 2.0),
            "ne": (w / 2.0, -h / 2.0),
            "sw": (-w / 2.0, h / 2.0),
            "se": (w / 2.0, h / 2.0),
            ROTATE_HANDLE: (0.0, -h / 2.0 - ROTATE_HANDLE_OFFSET),
        }
        out = {}
        for name, (lx, ly) in local.items():
            rx, ry = rotate_vector(lx, ly, element.rotation)
            out[name] = Point(c.x + rx, c.y + ry)
        return out
