from .viewport import ViewportController
from .scene import DesignScene, InteractionMode
from .selection import CanvasSelection
from .crop import CropController
from .shape_adjust import ShapeAdjustController
from .replace import ImageReplacer, cover_fit
from .images import ImageLoader
from .fonts import FontResolver
from .export import Compositor, image_to_data_url
from .snapshot3d import SoftwareRenderer, generate_3d_snapshot, generate_uv_texture
