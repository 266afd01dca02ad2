from __future__ import annotations

import logging
from typing import Optional

from printcanvas.core.errors import InteractionStateError
from printcanvas.core.objects import ImageElement, Point
from .geometry import clamp_image_offset
from .scene import DesignScene, InteractionMode

logger = logging.getLogger(__name__)


class ShapeAdjustController:
    """Pans the bitmap inside a shape-clipped image.

    The image is drawn cover-fitted into the element box; the offset moves it
    by at most half of the overflow on each axis. Nothing is written to the
    element until :meth:`apply`.
    """

    def __init__(self, scene: DesignScene) -> None:
        self.scene = scene
        self.element_id: Optional[str] = None
        self.offset = Point(0.0, 0.0)

    @property
    def is_adjusting(self) -> bool:
        return self.element_id is not None

    def _element(self) -> ImageElement:
        if self.element_id is None:
            raise InteractionStateError("No shape adjustment in progress")
        return self.scene.get(self.element_id)

    def start_adjust(self, element_id: str) -> bool:
        el = self.scene.get(element_id)
        if not isinstance(el, ImageElement):
            logger.warning("Only image elements can be adjusted (got %s)", el.kind)
            return False
        if not el.shape_clip:
            logger.warning("Image %s has no shape clip to adjust", element_id)
            return False
        self.scene.begin_interaction(InteractionMode.SHAPE_ADJUSTING, element_id)
        self.element_id = element_id
        current = el.image_offset or Point(0.0, 0.0)
        self.offset = Point(current.x, current.y)
        logger.debug("Shape adjust started on %s at %s", element_id, self.offset)
        return True

    def update_offset(self, x: float, y: float) -> Point:
        el = self._element()
        self.offset = clamp_image_offset((x, y), el.width, el.height, el.original_image_ratio or 1.0)
        return self.offset

    def drag(self, dx: float, dy: float) -> Point:
        return self.update_offset(self.offset.x + dx, self.offset.y + dy)

    def reset_offset(self) -> None:
        if self.is_adjusting:
            self.offset = Point(0.0, 0.0)

    def apply(self) -> Optional[Point]:
        if not self.is_adjusting:
            return None
        el = self._element()
        offset = Point(self.offset.x, self.offset.y)
        self.scene.update_element(el.id, image_offset=offset)
        logger.info("Applied shape offset on %s: %s", el.id, offset)
        self._finish()
        return offset

    def cancel(self) -> None:
        if self.is_adjusting:
            self._finish()

    def _finish(self) -> None:
        self.scene.end_interaction()
        self.element_id = None
        self.offset = Point(0.0, 0.0)
