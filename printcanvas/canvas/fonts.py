from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import arabic_reshaper
from bidi.algorithm import get_display
from PIL import ImageFont

from printcanvas.core.state import DEFAULT_FONT_FAMILY, FONTS_PATH

logger = logging.getLogger(__name__)

FontType = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]


def _variant_suffix(weight: str, style: str) -> str:
    bold = str(weight).lower() in ("bold", "bolder", "600", "700", "800", "900")
    italic = str(style).lower() in ("italic", "oblique")
    if bold and italic:
        return "BoldItalic"
    if bold:
        return "Bold"
    if italic:
        return "Italic"
    return ""


class FontResolver:
    """Maps CSS-like font families onto TrueType files for Pillow.

    ``fonts.json`` in the fonts directory maps a family name (optionally
    "Family Bold" / "Family Italic") to a file stem; unmapped families are
    looked up by file name, then Pillow's scalable default font is used.
    """

    def __init__(self, fonts_path: Optional[Union[str, Path]] = None) -> None:
        self.fonts_path = Path(fonts_path) if fonts_path else FONTS_PATH
        self._fonts_map = self._load_fonts_map()
        self._cache: Dict[Tuple[str, str, str, int], FontType] = {}

    def _load_fonts_map(self) -> dict:
        mp_path = self.fonts_path / "fonts.json"
        try:
            if mp_path.exists():
                with open(mp_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        return data
        except (OSError, ValueError):
            logger.exception("Failed to load fonts mapping")
        return {}

    def families(self) -> List[str]:
        return sorted(self._fonts_map.keys())

    def _file_for_stem(self, stem: str) -> Optional[Path]:
        for ext in (".ttf", ".otf", ".ttc"):
            fp = self.fonts_path / f"{stem}{ext}"
            if fp.exists():
                return fp
        return None

    def resolve(self, family: str, weight: str = "normal", style: str = "normal") -> Optional[Path]:
        family = family or DEFAULT_FONT_FAMILY
        suffix = _variant_suffix(weight, style)
        stems: List[str] = []
        if suffix:
            mapped = self._fonts_map.get(f"{family} {suffix}")
            if mapped:
                stems.append(str(mapped))
        mapped = self._fonts_map.get(family)
        if mapped:
            if suffix:
                stems.append(f"{mapped}-{suffix}")
            stems.append(str(mapped))
        compact = family.replace(" ", "")
        if suffix:
            stems.append(f"{compact}-{suffix}")
        stems.append(compact)
        for stem in stems:
            fp = self._file_for_stem(stem)
            if fp is not None:
                return fp
        return None

    def font(self, family: str, size: float, weight: str = "normal", style: str = "normal") -> FontType:
        px = max(1, int(round(size)))
        key = (family or "", str(weight), str(style), px)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        font: Optional[FontType] = None
        path = self.resolve(family, weight, style)
        if path is not None:
            try:
                font = ImageFont.truetype(str(path), px)
            except OSError:
                logger.exception("Failed to open font file %s", path)
        if font is None:
            font = ImageFont.load_default(size=px)
        self._cache[key] = font
        return font

    @staticmethod
    def shape(text: str) -> str:
        """Reshape Arabic letters and reorder bidirectional runs for drawing."""
        if not text:
            return ""
        return get_display(arabic_reshaper.reshape(text))

    def measure(self, text: str, size: float, family: str = DEFAULT_FONT_FAMILY,
                weight: str = "normal", style: str = "normal") -> float:
        """Advance width of ``text`` in pixels at ``size``."""
        if not text:
            return 0.0
        font = self.font(family, size, weight, style)
        return float(font.getlength(self.shape(text)))
