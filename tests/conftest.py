import sys
from pathlib import Path

import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).parent.parent))

from printcanvas.canvas.fonts import FontResolver
from printcanvas.canvas.images import ImageLoader
from printcanvas.canvas.scene import DesignScene
from printcanvas.canvas.viewport import ScreenRect, ViewportController
from printcanvas.core.objects import ImageElement, Product, Rect, TextElement

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)
GREEN = (0, 255, 0, 255)


@pytest.fixture
def product():
    return Product(print_area=Rect(50, 50, 200, 150), title="Tee")


@pytest.fixture
def loader():
    ld = ImageLoader()
    ld.register("mem://red", Image.new("RGBA", (100, 100), RED))
    ld.register("mem://blue", Image.new("RGBA", (100, 100), BLUE))
    ld.register("mem://wide", Image.new("RGBA", (200, 100), GREEN))
    ld.register("mem://tall", Image.new("RGBA", (100, 300), GREEN))
    ld.register("mem://mockup", Image.new("RGBA", (400, 400), (255, 255, 255, 255)))
    return ld


@pytest.fixture
def fonts(tmp_path):
    return FontResolver(tmp_path)


@pytest.fixture
def image_element():
    return ImageElement(id="img", x=150, y=125, width=100, height=100, url="mem://red",
                        original_width=100, original_height=100)


@pytest.fixture
def text_element():
    return TextElement(id="txt", x=150, y=125, content="Hi", font_size=24)


@pytest.fixture
def scene(image_element, text_element):
    return DesignScene([image_element, text_element])


@pytest.fixture
def container():
    return ScreenRect(0, 0, 400, 400)


@pytest.fixture
def viewport():
    return ViewportController()
