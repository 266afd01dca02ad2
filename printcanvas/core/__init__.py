from .state import *  # noqa: F401,F403
from .errors import (
    ElementNotFoundError,
    InteractionStateError,
    PrintCanvasError,
    ResourceLoadError,
)
from .log import setup_logging
