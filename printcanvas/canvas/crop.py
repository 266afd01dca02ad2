from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from printcanvas.core.errors import InteractionStateError
from printcanvas.core.objects import ImageElement, Mask, Rect
from printcanvas.core.state import DEFAULT_CONFIG, EngineConfig
from .geometry import clamp_mask
from .scene import DesignScene, InteractionMode

logger = logging.getLogger(__name__)

CROP_HANDLES = ("move", "n", "s", "e", "w", "ne", "nw", "se", "sw")


class CropState(Enum):
    NONE = "none"
    CROPPING = "cropping"
    APPLIED = "applied"
    CANCELLED = "cancelled"


class CropController:
    """Crop-overlay session that commits its rectangle as an element mask.

    While cropping, the element's rotation is zeroed so the crop rectangle
    lives in an unrotated frame; the original rotation is restored when the
    session ends, whichever way it ends.
    """

    def __init__(self, scene: DesignScene, config: Optional[EngineConfig] = None) -> None:
        self.scene = scene
        self.config = config or scene.config or DEFAULT_CONFIG
        self.state = CropState.NONE
        self.element_id: Optional[str] = None
        self.rect: Optional[Mask] = None
        self._rotation = 0.0
        self._start_pos = (0.0, 0.0)
        self._start_size = (0.0, 0.0)

    @property
    def is_cropping(self) -> bool:
        return self.state is CropState.CROPPING

    def _element(self) -> ImageElement:
        if not self.is_cropping or self.element_id is None:
            raise InteractionStateError("No crop session in progress")
        return self.scene.get(self.element_id)

    def start_crop(self, element_id: str) -> bool:
        el = self.scene.get(element_id)
        if not isinstance(el, ImageElement):
            logger.warning("Only image elements can be cropped (got %s)", el.kind)
            return False
        self.scene.begin_interaction(InteractionMode.CROPPING, element_id)

        self.element_id = element_id
        self._rotation = el.rotation
        self._start_pos = (el.x, el.y)
        self._start_size = (el.width, el.height)
        if el.masked:
            initial = Mask(el.mask.x, el.mask.y, el.mask.width, el.mask.height)
        else:
            initial = Mask(el.width / 2.0, el.height / 2.0, el.width, el.height)
        self.rect = clamp_mask(initial, el.width, el.height, self.config.min_element_size)
        self.state = CropState.CROPPING
        if el.rotation:
            self.scene.update_element(element_id, rotation=0.0)
        logger.debug("Crop started on %s with %s", element_id, self.rect)
        return True

    def update_rect(self, rect: Mask) -> Mask:
        """Replace the in-progress rectangle, clamped to the element."""
        w, h = self._start_size
        self._element()
        self.rect = clamp_mask(rect, w, h, self.config.min_element_size)
        return self.rect

    def drag_handle(self, handle: str, dx: float, dy: float) -> Mask:
        """Move the whole rectangle or one of its edges/corners by (dx, dy)."""
        if handle not in CROP_HANDLES:
            raise ValueError(f"Unknown crop handle {handle!r}")
        self._element()
        r = self.rect
        min_size = self.config.min_element_size
        w, h, x, y = r.width, r.height, r.x, r.y
        if handle == "move":
            x += dx
            y += dy
        else:
            if "e" in handle:
                w = max(min_size, r.width + dx)
                x = r.x + dx / 2.0
            if "w" in handle:
                w = max(min_size, r.width - dx)
                x = r.x + dx / 2.0
            if "s" in handle:
                h = max(min_size, r.height + dy)
                y = r.y + dy / 2.0
            if "n" in handle:
                h = max(min_size, r.height - dy)
                y = r.y + dy / 2.0
        return self.update_rect(Mask(x, y, w, h))

    def overlay_rect(self) -> Optional[Rect]:
        """Absolute canvas rectangle of the crop box, for drawing the overlay."""
        if not self.is_cropping or self.rect is None:
            return None
        sx, sy = self._start_pos
        sw, sh = self._start_size
        left = sx - sw / 2.0 + self.rect.left
        top = sy - sh / 2.0 + self.rect.top
        return Rect(left, top, self.rect.width, self.rect.height)

    def apply(self) -> Optional[Mask]:
        """Commit the crop rectangle as the element's mask.

        The rectangle was captured against the element's position at crop
        start; it is turned into an absolute position and then re-expressed
        against wherever the element is now.
        """
        if not self.is_cropping:
            return None
        el = self._element()
        sx, sy = self._start_pos
        sw, sh = self._start_size
        abs_x = sx - sw / 2.0 + self.rect.x
        abs_y = sy - sh / 2.0 + self.rect.y
        mask = Mask(abs_x - (el.x - el.width / 2.0), abs_y - (el.y - el.height / 2.0),
                    self.rect.width, self.rect.height)
        mask = clamp_mask(mask, el.width, el.height, self.config.min_element_size)
        self.scene.update_element(el.id, has_mask=True, mask=mask, rotation=self._rotation)
        logger.info("Applied crop on %s: %s", el.id, mask)
        self._finish(CropState.APPLIED)
        return mask

    def reset(self) -> None:
        """Drop the element's mask entirely, restoring the full image."""
        if not self.is_cropping:
            return
        el = self._element()
        self.scene.update_element(el.id, has_mask=False, mask=None, rotation=self._rotation)
        self._finish(CropState.NONE)

    def cancel(self) -> None:
        if not self.is_cropping:
            return
        el = self.scene.find(self.element_id)
        if el is not None:
            self.scene.update_element(el.id, rotation=self._rotation)
        self._finish(CropState.CANCELLED)

    def _finish(self, state: CropState) -> None:
        self.scene.end_interaction()
        self.state = state
        self.element_id = None
        self.rect = None
