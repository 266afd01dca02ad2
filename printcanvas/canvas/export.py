from __future__ import annotations

import base64
import logging
from io import BytesIO
from typing import Callable, Iterable, Optional, Sequence

from PIL import Image, ImageChops, ImageDraw

from printcanvas.core.errors import ResourceLoadError
from printcanvas.core.objects import (
    DesignElement,
    ImageElement,
    Point,
    Product,
    Rect,
    TextElement,
    parse_hex_rgba,
)
from printcanvas.core.shapes import get_shape
from printcanvas.core.state import (
    DEFAULT_BG_COLOR,
    DEFAULT_CONFIG,
    SNAPSHOT_JPEG_QUALITY,
    SNAPSHOT_SIZE,
    EngineConfig,
)
from .bleed import bleed_bounds, crop_mark_segments
from .fonts import FontResolver
from .geometry import clamp_image_offset, output_scale_factor, rendered_size, shape_cover_size
from .images import ImageLoader, placeholder

logger = logging.getLogger(__name__)

ElementFilter = Callable[[DesignElement], bool]
TRANSPARENT = (0, 0, 0, 0)
WHITE = (255, 255, 255, 255)


def image_to_data_url(image: Image.Image, fmt: str = "JPEG", quality: int = SNAPSHOT_JPEG_QUALITY) -> str:
    """Encode an image as a base64 data URL (JPEG is flattened onto white)."""
    buf = BytesIO()
    fmt = fmt.upper()
    if fmt == "JPEG":
        if image.mode != "RGB":
            base = Image.new("RGBA", image.size, WHITE)
            base.alpha_composite(image.convert("RGBA"))
            image = base.convert("RGB")
        image.save(buf, format="JPEG", quality=int(quality))
        mime = "image/jpeg"
    else:
        image.save(buf, format="PNG")
        mime = "image/png"
    return f"data:{mime};base64,{base64.b64encode(buf.getvalue()).decode('ascii')}"


def is_white(color: Optional[str]) -> bool:
    return not color or str(color).strip().lower() in ("#ffffff", "#fff")


def paste_rgba(canvas: Image.Image, img: Image.Image, left: int, top: int) -> None:
    """Alpha-composite ``img`` onto ``canvas`` at any offset, clipping to the canvas."""
    x0, y0 = max(0, left), max(0, top)
    x1 = min(canvas.width, left + img.width)
    y1 = min(canvas.height, top + img.height)
    if x1 <= x0 or y1 <= y0:
        return
    part = img.crop((x0 - left, y0 - top, x1 - left, y1 - top))
    canvas.alpha_composite(part, (x0, y0))


def _scale_alpha(img: Image.Image, factor: float) -> Image.Image:
    if factor >= 1.0:
        return img
    factor = max(0.0, factor)
    r, g, b, a = img.split()
    a = a.point(lambda v: int(round(v * factor)))
    return Image.merge("RGBA", (r, g, b, a))


class Compositor:
    """Offline renderer of a design scene at an arbitrary scale.

    The same per-element routine (:meth:`draw_elements`) backs print files,
    test exports, 2D snapshots and the 3D UV texture. Elements draw in list
    order, each image awaited before the next element is touched.
    """

    def __init__(self, loader: Optional[ImageLoader] = None, fonts: Optional[FontResolver] = None,
                 config: Optional[EngineConfig] = None, placeholder_for_missing: bool = False) -> None:
        self.loader = loader or ImageLoader()
        self.fonts = fonts or FontResolver()
        self.config = config or DEFAULT_CONFIG
        self.placeholder_for_missing = placeholder_for_missing

    # --- Output geometry ---
    def output_bounds(self, product: Product, use_bleed: bool = False) -> Rect:
        if use_bleed and product.bleed_area is not None:
            return bleed_bounds(product.print_area, product.bleed_area)
        pa = product.print_area
        return Rect(pa.x, pa.y, pa.width, pa.height)

    def scale_for(self, product: Product, bounds: Rect, fallback: Optional[float] = None) -> float:
        fb = self.config.print_scale if fallback is None else fallback
        return output_scale_factor(bounds.width, product.physical_size, self.config.dpi, fb,
                                   self.config.canvas_size)

    # --- Shared drawing routine ---
    async def draw_elements(self, canvas: Image.Image, elements: Iterable[DesignElement],
                            origin: Point, scale: float,
                            skip: Optional[ElementFilter] = None) -> int:
        """Draw elements onto ``canvas`` where ``origin`` maps to pixel (0, 0).

        Returns the number of elements drawn. An element whose resource fails
        is skipped (or replaced by a placeholder) and the rest still render.
        """
        drawn = 0
        for el in elements:
            if el is None or (skip is not None and skip(el)):
                continue
            cx = (el.x - origin.x) * scale
            cy = (el.y - origin.y) * scale
            if isinstance(el, TextElement):
                if self._draw_text(canvas, el, cx, cy, scale):
                    drawn += 1
            elif isinstance(el, ImageElement):
                bitmap = el.bitmap
                if bitmap is None:
                    try:
                        bitmap = await self.loader.load(el.url)
                    except ResourceLoadError:
                        logger.exception("Skipping image element %s", el.id)
                        if not self.placeholder_for_missing:
                            continue
                        w, h = rendered_size(el)
                        bitmap = placeholder(int(round(w * scale)), int(round(h * scale)))
                self._draw_image(canvas, el, bitmap, cx, cy, scale)
                drawn += 1
        return drawn

    def _draw_text(self, canvas: Image.Image, el: TextElement, cx: float, cy: float, scale: float) -> bool:
        text = self.fonts.shape(el.content or "")
        if not text.strip():
            return False
        font = self.fonts.font(el.font_family, el.font_size * scale, el.font_weight, el.font_style)
        fill = parse_hex_rgba(el.color, default=(0, 0, 0, 255))

        probe = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
        bb = probe.textbbox((0, 0), text, font=font)
        tw = max(1, bb[2] - bb[0])
        th = max(1, bb[3] - bb[1])
        pad = max(8, int(getattr(font, "size", 16)) // 2)

        temp = Image.new("RGBA", (tw + pad * 2, th + pad * 2), TRANSPARENT)
        ImageDraw.Draw(temp).text((pad - bb[0], pad - bb[1]), text, font=font, fill=fill)

        if abs(float(el.rotation)) > 1e-6:
            # element rotation is clockwise, PIL rotates counter-clockwise
            temp = temp.rotate(-float(el.rotation), expand=True, resample=Image.BICUBIC,
                               fillcolor=TRANSPARENT)
        bbox = temp.getchannel("A").getbbox()
        if not bbox:
            return False
        temp = temp.crop(bbox)
        paste_rgba(canvas, temp, int(round(cx - temp.width / 2.0)), int(round(cy - temp.height / 2.0)))
        return True

    def _draw_image(self, canvas: Image.Image, el: ImageElement, bitmap: Image.Image,
                    cx: float, cy: float, scale: float) -> None:
        w, h = rendered_size(el)
        rw, rh = w * scale, h * scale
        pw, ph = max(1, int(round(rw))), max(1, int(round(rh)))
        img = bitmap.convert("RGBA") if bitmap.mode != "RGBA" else bitmap
        shape = get_shape(el.shape_clip)
        if shape is not None:
            img = self._cover_shape_image(el, img, pw, ph, scale)
        else:
            img = img.resize((pw, ph), Image.LANCZOS)

        # visible region: mask edges as fractions of the full box, applied to the drawn size
        left, top, right, bottom = 0, 0, pw, ph
        if el.masked and el.width and el.height:
            m = el.mask
            left = int(round(m.left / el.width * pw))
            top = int(round(m.top / el.height * ph))
            right = pw - int(round((1.0 - m.right / el.width) * pw))
            bottom = ph - int(round((1.0 - m.bottom / el.height) * ph))
        if el.masked or shape is not None:
            clip = Image.new("L", (pw, ph), 0)
            if right > left and bottom > top:
                if shape is not None:
                    clip.paste(shape.mask(right - left, bottom - top), (left, top))
                else:
                    ImageDraw.Draw(clip).rectangle([left, top, right - 1, bottom - 1], fill=255)
            img = img.copy()
            img.putalpha(ImageChops.multiply(img.getchannel("A"), clip))

        img = _scale_alpha(img, float(el.opacity if el.opacity is not None else 1.0))

        if abs(float(el.rotation)) > 1e-6:
            img = img.rotate(-float(el.rotation), expand=True, resample=Image.BICUBIC,
                             fillcolor=TRANSPARENT)
        paste_rgba(canvas, img, int(round(cx - img.width / 2.0)), int(round(cy - img.height / 2.0)))

    @staticmethod
    def _cover_shape_image(el: ImageElement, img: Image.Image, pw: int, ph: int,
                           scale: float) -> Image.Image:
        """Cover-fit the bitmap into the shape box, panned by the element's image offset."""
        ratio = el.original_image_ratio or (img.width / float(img.height) if img.height else 1.0)
        cw, ch = shape_cover_size(pw, ph, ratio)
        cw, ch = max(pw, int(round(cw))), max(ph, int(round(ch)))
        offset = clamp_image_offset(el.image_offset or (0.0, 0.0), el.width, el.height, ratio)
        left = int(round((cw - pw) / 2.0 - offset.x * scale))
        top = int(round((ch - ph) / 2.0 - offset.y * scale))
        left = max(0, min(cw - pw, left))
        top = max(0, min(ch - ph, top))
        return img.resize((cw, ch), Image.LANCZOS).crop((left, top, left + pw, top + ph))

    # --- Entry points ---
    async def render(self, product: Product, elements: Sequence[DesignElement],
                     background_color: str = DEFAULT_BG_COLOR, use_bleed: bool = False,
                     crop_marks: bool = False, scale: Optional[float] = None,
                     fallback_scale: Optional[float] = None) -> Image.Image:
        bounds = self.output_bounds(product, use_bleed)
        s = scale if scale is not None else self.scale_for(product, bounds, fallback_scale)
        size = (max(1, int(round(bounds.width * s))), max(1, int(round(bounds.height * s))))
        canvas = Image.new("RGBA", size, TRANSPARENT)
        if not is_white(background_color):
            canvas.paste(parse_hex_rgba(background_color), (0, 0, size[0], size[1]))

        logger.info("Rendering %d elements at %.2fx into %dx%d", len(elements), s, size[0], size[1])
        await self.draw_elements(canvas, elements, Point(bounds.x, bounds.y), s)

        if crop_marks and use_bleed:
            pa = product.print_area
            rel = Rect((pa.x - bounds.x) * s, (pa.y - bounds.y) * s, pa.width * s, pa.height * s)
            draw = ImageDraw.Draw(canvas)
            for a, b in crop_mark_segments(rel, 10 * s, 5 * s):
                draw.line([(a.x, a.y), (b.x, b.y)], fill=(0, 0, 0, 255), width=max(1, int(round(s))))
        return canvas

    async def render_print_file(self, product: Product, elements: Sequence[DesignElement],
                                background_color: str = DEFAULT_BG_COLOR, use_bleed: bool = False,
                                crop_marks: bool = False, scale: Optional[float] = None) -> bytes:
        """PNG print file tagged with the print DPI."""
        img = await self.render(product, elements, background_color, use_bleed, crop_marks, scale,
                                fallback_scale=self.config.print_scale)
        buf = BytesIO()
        img.save(buf, format="PNG", dpi=(self.config.dpi, self.config.dpi))
        return buf.getvalue()

    async def export_design_image(self, product: Product, elements: Sequence[DesignElement],
                                  background_color: str = DEFAULT_BG_COLOR) -> bytes:
        """Quick PNG export of the print area at the fixed export scale."""
        img = await self.render(product, elements, background_color, scale=self.config.export_scale)
        buf = BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()

    async def generate_2d_snapshot(self, product: Optional[Product], elements: Sequence[DesignElement],
                                   background_color: str = DEFAULT_BG_COLOR,
                                   width: int = SNAPSHOT_SIZE, height: int = SNAPSHOT_SIZE) -> Optional[str]:
        """JPEG data URL of the design placed on the product mockup, or None."""
        if product is None or product.is_3d:
            logger.warning("2D snapshot requested for a non-2D product")
            return None
        try:
            return await self._snapshot_2d(product, elements, background_color, width, height)
        except Exception:
            logger.exception("Failed to generate 2D snapshot")
            return None

    async def _snapshot_2d(self, product: Product, elements: Sequence[DesignElement],
                           background_color: str, width: int, height: int) -> str:
        canvas = Image.new("RGBA", (width, height), WHITE)
        area = product.display_image_design_area
        use_display = bool(product.display_image and area is not None)
        bg_url = product.display_image if use_display else product.mockup_image
        if bg_url:
            try:
                bg = await self.loader.load(bg_url)
                ratio = bg.width / float(bg.height)
                if ratio > width / float(height):
                    dw, dh = width, width / ratio
                else:
                    dw, dh = height * ratio, height
                fitted = bg.resize((max(1, int(round(dw))), max(1, int(round(dh)))), Image.LANCZOS)
                paste_rgba(canvas, fitted, int(round((width - dw) / 2.0)), int(round((height - dh) / 2.0)))
            except ResourceLoadError:
                logger.warning("Product background %s could not be loaded", bg_url)

        pa = product.print_area
        draw_area = area.bounds(pa) if use_display else Rect(pa.x, pa.y, pa.width, pa.height)
        s = width / float(self.config.canvas_size)
        clip_box = (int(round(draw_area.x * s)), int(round(draw_area.y * s)),
                    int(round(draw_area.right * s)), int(round(draw_area.bottom * s)))
        if background_color:
            fill = Image.new("RGBA", canvas.size, TRANSPARENT)
            fill.paste(parse_hex_rgba(background_color), clip_box)
            canvas.alpha_composite(fill)

        if elements and pa.width and pa.height:
            # print-area percentages land on the draw area
            k = draw_area.width / pa.width
            origin = Point(pa.x - draw_area.x / k, pa.y - draw_area.y * pa.height / draw_area.height)
            layer = Image.new("RGBA", canvas.size, TRANSPARENT)
            await self.draw_elements(layer, elements, origin, s * k)
            clip = Image.new("L", canvas.size, 0)
            clip.paste(255, clip_box)
            layer.putalpha(ImageChops.multiply(layer.getchannel("A"), clip))
            canvas.alpha_composite(layer)

        return image_to_data_url(canvas, "JPEG", SNAPSHOT_JPEG_QUALITY)
