import os
from pathlib import Path
from dataclasses import dataclass


CANVAS_SIZE = 400  # logical design space, independent of the product's real size

# Viewport
MIN_ZOOM = 0.5
MAX_ZOOM = 3.0
ZOOM_STEP = 0.1

# Elements
MIN_ELEMENT_SIZE = 20
MIN_FONT_SIZE = 2
MAX_FONT_SIZE = 792
DEFAULT_FONT_SIZE = 24
DEFAULT_FONT_FAMILY = "Arial"
DEFAULT_TEXT_COLOR = "#000000"
DEFAULT_BG_COLOR = "#ffffff"
DEFAULT_IMAGE_SIZE = 100
DUPLICATE_OFFSET = 20

# Output
DPI_PRINT = 300
MM_PER_INCH = 25.4
EXPORT_SCALE = 3   # test export and UV texture
PRINT_SCALE = 8    # print files for products without a physical size
SNAPSHOT_JPEG_QUALITY = 85
SNAPSHOT_SIZE = 400

# Bleed mapping
MAPPING_MAX_SCALE = 5.0
MAPPING_MIN_SCALE = 0.1
MAPPING_TOLERANCE_PX = 1.0

# Floating tolerance for aspect-ratio comparisons
ASPECT_EPSILON = 1e-6

FONTS_PATH = Path(os.environ.get("PRINTCANVAS_FONTS", Path.cwd() / "_internal" / "fonts"))


@dataclass
class EngineConfig:
    """Tunables threaded through every controller and geometry helper."""
    canvas_size: float = CANVAS_SIZE
    min_zoom: float = MIN_ZOOM
    max_zoom: float = MAX_ZOOM
    zoom_step: float = ZOOM_STEP
    min_element_size: float = MIN_ELEMENT_SIZE
    min_font_size: float = MIN_FONT_SIZE
    max_font_size: float = MAX_FONT_SIZE
    dpi: int = DPI_PRINT
    export_scale: float = EXPORT_SCALE
    print_scale: float = PRINT_SCALE


DEFAULT_CONFIG = EngineConfig()
