from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from printcanvas.core.objects import Point
from printcanvas.core.state import DEFAULT_CONFIG, EngineConfig

logger = logging.getLogger(__name__)

MIDDLE_BUTTON = 1


@dataclass
class ScreenRect:
    """On-screen container rectangle (client pixels) hosting the canvas."""

    left: float
    top: float
    width: float
    height: float


class ViewportController:
    """Zoom and pan state of the interactive view.

    Zoom is centered on the pointer, pan follows a middle-button drag (or any
    drag while drag mode is on). The two never run at the same time. Nothing
    here is persisted with the design.
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or DEFAULT_CONFIG
        self.zoom: float = 1.0
        self.pan: Point = Point(0.0, 0.0)
        self.is_panning: bool = False
        self._pan_start = Point(0.0, 0.0)
        self._pan_origin = Point(0.0, 0.0)

    def _clamp_zoom(self, z: float) -> float:
        z = max(self.config.min_zoom, min(self.config.max_zoom, z))
        return round(z, 6)

    # --- Zoom ---
    def on_wheel(self, delta_y: float, client_x: float, client_y: float, container: ScreenRect) -> bool:
        """Zoom one step keeping the canvas point under the pointer in place."""
        if self.is_panning:
            return False
        step = -self.config.zoom_step if delta_y > 0 else self.config.zoom_step
        new_zoom = self._clamp_zoom(self.zoom + step)
        if new_zoom == self.zoom:
            return False
        mx = client_x - container.left - container.width / 2.0
        my = client_y - container.top - container.height / 2.0
        ratio = new_zoom / self.zoom
        self.pan = Point(mx - (mx - self.pan.x) * ratio, my - (my - self.pan.y) * ratio)
        self.zoom = new_zoom
        logger.debug("Zoom %.2f pan (%.1f, %.1f)", self.zoom, self.pan.x, self.pan.y)
        return True

    def zoom_in(self) -> None:
        self.zoom = self._clamp_zoom(self.zoom + self.config.zoom_step)

    def zoom_out(self) -> None:
        self.zoom = self._clamp_zoom(self.zoom - self.config.zoom_step)

    def on_key(self, key: str) -> bool:
        """Keyboard shortcuts: '0' resets, '+'/'=' and '-' step the zoom."""
        if key == "0":
            self.reset()
        elif key in ("+", "="):
            self.zoom_in()
        elif key == "-":
            self.zoom_out()
        else:
            return False
        return True

    # --- Pan ---
    def begin_pan(self, client_x: float, client_y: float, button: int = MIDDLE_BUTTON,
                  drag_mode: bool = False) -> bool:
        if button != MIDDLE_BUTTON and not drag_mode:
            return False
        self.is_panning = True
        self._pan_start = Point(client_x, client_y)
        self._pan_origin = Point(self.pan.x, self.pan.y)
        return True

    def pan_to(self, client_x: float, client_y: float) -> None:
        if not self.is_panning:
            return
        self.pan = Point(self._pan_origin.x + (client_x - self._pan_start.x),
                         self._pan_origin.y + (client_y - self._pan_start.y))

    def end_pan(self) -> None:
        self.is_panning = False

    def reset(self) -> None:
        self.zoom = 1.0
        self.pan = Point(0.0, 0.0)
        self.is_panning = False

    def set_viewport(self, zoom: float = 1.0, pan_x: float = 0.0, pan_y: float = 0.0) -> None:
        """Apply a stored default view (e.g. when switching products)."""
        self.zoom = self._clamp_zoom(zoom)
        self.pan = Point(float(pan_x), float(pan_y))
        self.is_panning = False

    # --- Coordinate conversion ---
    def screen_to_canvas(self, client_x: float, client_y: float, container: ScreenRect) -> Point:
        """Client pixel position to logical canvas units.

        Undoes, in order: container offset, canvas center, pan, zoom, then
        rescales the container size to the logical canvas size.
        """
        cx = container.width / 2.0
        cy = container.height / 2.0
        rx = client_x - container.left
        ry = client_y - container.top
        rx = (rx - cx - self.pan.x) / self.zoom + cx
        ry = (ry - cy - self.pan.y) / self.zoom + cy
        size = self.config.canvas_size
        return Point(rx / container.width * size, ry / container.height * size)

    def canvas_to_screen(self, x: float, y: float, container: ScreenRect) -> Point:
        size = self.config.canvas_size
        cx = container.width / 2.0
        cy = container.height / 2.0
        rx = x / size * container.width
        ry = y / size * container.height
        rx = (rx - cx) * self.zoom + self.pan.x + cx
        ry = (ry - cy) * self.zoom + self.pan.y + cy
        return Point(rx + container.left, ry + container.top)
