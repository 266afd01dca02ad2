from .core.state import CANVAS_SIZE, DEFAULT_CONFIG, EngineConfig
from .core.objects import (
    BleedArea,
    BleedAreaMapping,
    ImageElement,
    Mask,
    PhysicalSize,
    Product,
    Rect,
    TextElement,
    element_from_dict,
)

__version__ = "1.0.0"
