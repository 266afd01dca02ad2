from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from printcanvas.core.errors import ResourceLoadError
from printcanvas.core.objects import Element, ImageElement, Mask, Point
from printcanvas.core.state import ASPECT_EPSILON
from .geometry import mask_center
from .images import ImageLoader
from .scene import DesignScene
from .viewport import ScreenRect, ViewportController

logger = logging.getLogger(__name__)


@dataclass
class CoverFit:
    """Result of fitting an image into a target box without distortion.

    ``width``/``height`` is the new element box; when the aspect ratios
    differ ``mask`` is the target box centered in it.
    """

    width: float
    height: float
    needs_mask: bool
    mask: Optional[Mask] = None


def cover_fit(image_w: float, image_h: float, target_w: float, target_h: float,
              tolerance: float = ASPECT_EPSILON) -> CoverFit:
    """Scale an image just enough to fill the target box, cropping overflow."""
    if image_w <= 0 or image_h <= 0:
        raise ValueError(f"Invalid image size {image_w}x{image_h}")
    if target_w <= 0 or target_h <= 0:
        raise ValueError(f"Invalid target size {target_w}x{target_h}")
    image_ratio = float(image_w) / float(image_h)
    target_ratio = float(target_w) / float(target_h)

    if abs(image_ratio - target_ratio) <= tolerance * target_ratio:
        return CoverFit(float(target_w), float(target_h), False, None)
    if image_ratio > target_ratio:
        h = float(target_h)
        w = h * image_ratio
    else:
        w = float(target_w)
        h = w / image_ratio
    return CoverFit(w, h, True, Mask(w / 2.0, h / 2.0, float(target_w), float(target_h)))


@dataclass
class DropResult:
    """Outcome of dropping an image URL on the canvas.

    ``replaced_id`` is set when an existing image was replaced; otherwise the
    caller adds a new image at ``point``.
    """

    point: Point
    replaced_id: Optional[str] = None

    @property
    def replaced(self) -> bool:
        return self.replaced_id is not None


class ImageReplacer:
    """Replaces an image element's content with a cover fit of a new image."""

    def __init__(self, scene: DesignScene, loader: ImageLoader) -> None:
        self.scene = scene
        self.loader = loader
        self.replacing_id: Optional[str] = None
        self.preview_id: Optional[str] = None
        self.preview_url: Optional[str] = None

    @property
    def is_replacing(self) -> bool:
        return self.replacing_id is not None

    def _replaceable(self, el: Optional[Element]) -> bool:
        if not isinstance(el, ImageElement):
            logger.warning("Only image elements can be replaced")
            return False
        if el.is_from_template:
            logger.warning("Template element %s cannot be replaced", el.id)
            return False
        return True

    # --- Replace mode ---
    def start_replace_mode(self, element_id: str) -> bool:
        el = self.scene.find(element_id)
        if not self._replaceable(el):
            return False
        self.replacing_id = element_id
        logger.debug("Replace mode on %s", element_id)
        return True

    def cancel_replace_mode(self) -> None:
        self.replacing_id = None
        self.clear_preview()

    async def execute_replace(self, url: str, target_id: Optional[str] = None) -> bool:
        """Swap in ``url`` once its natural size is known.

        Without ``target_id`` the element chosen by replace mode is used and
        the mode is left afterwards, whatever the outcome. A load failure
        leaves the element untouched.
        """
        via_mode = target_id is None
        element_id = target_id or self.replacing_id
        if element_id is None:
            logger.warning("No replace target")
            return False
        el = self.scene.find(element_id)
        if not self._replaceable(el):
            if via_mode:
                self.cancel_replace_mode()
            return False

        try:
            image_w, image_h = await self.loader.dimensions(url)
        except ResourceLoadError:
            logger.exception("Replacement image could not be loaded")
            if via_mode:
                self.cancel_replace_mode()
            return False

        # the element may have been removed or edited during the load
        el = self.scene.find(element_id)
        if not isinstance(el, ImageElement):
            if via_mode:
                self.cancel_replace_mode()
            return False

        if el.shape_clip:
            # the shape keeps its box; the new bitmap is cover-fitted inside it when drawn
            self.scene.update_element(element_id, url=url, bitmap=None,
                                      original_image_ratio=image_w / float(image_h),
                                      image_offset=None)
            logger.info("Replaced shape image %s (%dx%d)", element_id, image_w, image_h)
            if via_mode:
                self.cancel_replace_mode()
            return True

        if el.masked:
            center = mask_center(el)
            target_w, target_h = el.mask.width, el.mask.height
        else:
            center = Point(el.x, el.y)
            target_w, target_h = el.width, el.height

        fit = cover_fit(image_w, image_h, target_w, target_h)
        self.scene.update_element(
            element_id,
            url=url,
            bitmap=None,
            x=center.x,
            y=center.y,
            width=fit.width,
            height=fit.height,
            has_mask=fit.needs_mask,
            mask=fit.mask,
            scale_x=1.0,
            scale_y=1.0,
            original_width=fit.width,
            original_height=fit.height,
        )
        logger.info("Replaced image %s (%dx%d -> %.1fx%.1f, mask=%s)",
                    element_id, image_w, image_h, fit.width, fit.height, fit.needs_mask)
        if via_mode:
            self.cancel_replace_mode()
        return True

    # --- Drag and drop ---
    def resolve_drop_target(self, x: float, y: float) -> Optional[ImageElement]:
        """Topmost non-template image under a canvas point."""
        return self.scene.hit_test(x, y, skip_template=True, images_only=True)

    def drag_over(self, url: str, client_x: float, client_y: float, container: ScreenRect,
                  viewport: ViewportController) -> Optional[str]:
        p = viewport.screen_to_canvas(client_x, client_y, container)
        target = self.resolve_drop_target(p.x, p.y)
        if target is None:
            self.clear_preview()
            return None
        self.set_preview(target.id, url)
        return target.id

    async def drop(self, url: str, client_x: float, client_y: float, container: ScreenRect,
                   viewport: ViewportController) -> DropResult:
        p = viewport.screen_to_canvas(client_x, client_y, container)
        target = self.resolve_drop_target(p.x, p.y)
        self.clear_preview()
        if target is not None and await self.execute_replace(url, target.id):
            return DropResult(p, target.id)
        return DropResult(p)

    # --- Hover preview ---
    def set_preview(self, element_id: str, url: str) -> None:
        el = self.scene.find(element_id)
        if not isinstance(el, ImageElement):
            return
        self.preview_id = element_id
        self.preview_url = url

    def clear_preview(self) -> None:
        self.preview_id = None
        self.preview_url = None

    def display_url(self, element: Element) -> Optional[str]:
        if not isinstance(element, ImageElement):
            return None
        if self.preview_id == element.id and self.preview_url:
            return self.preview_url
        return element.url
