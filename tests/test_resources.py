import asyncio
import base64
import json
from io import BytesIO
from unittest.mock import Mock

import pytest
import requests
from PIL import Image

from printcanvas.canvas.fonts import FontResolver
from printcanvas.canvas.images import ImageLoader, placeholder
from printcanvas.core.errors import ResourceLoadError


def _png_bytes(size=(3, 2), color=(10, 20, 30, 255)):
    buf = BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


def test_load_data_url():
    url = "data:image/png;base64," + base64.b64encode(_png_bytes()).decode("ascii")
    img = asyncio.run(ImageLoader().load(url))
    assert img.size == (3, 2)
    assert img.mode == "RGBA"


def test_load_relative_path(tmp_path):
    (tmp_path / "a.png").write_bytes(_png_bytes((5, 4)))
    loader = ImageLoader(base_path=tmp_path)
    assert asyncio.run(loader.dimensions("a.png")) == (5, 4)


def test_load_http_through_session():
    session = Mock()
    session.get.return_value = Mock(content=_png_bytes((7, 7)), raise_for_status=Mock())
    loader = ImageLoader(session=session, timeout=5)
    img = asyncio.run(loader.load("https://cdn.example.com/a.png"))
    assert img.size == (7, 7)
    session.get.assert_called_once_with("https://cdn.example.com/a.png", timeout=5)
    asyncio.run(loader.load("https://cdn.example.com/a.png"))
    assert session.get.call_count == 1


def test_http_error_is_resource_error():
    session = Mock()
    response = Mock()
    response.raise_for_status.side_effect = requests.HTTPError("404")
    session.get.return_value = response
    with pytest.raises(ResourceLoadError):
        asyncio.run(ImageLoader(session=session).load("https://cdn.example.com/missing.png"))


def test_undecodable_bytes(tmp_path):
    (tmp_path / "bad.png").write_bytes(b"definitely not an image")
    with pytest.raises(ResourceLoadError):
        asyncio.run(ImageLoader(base_path=tmp_path).load("bad.png"))


def test_empty_url():
    with pytest.raises(ResourceLoadError):
        asyncio.run(ImageLoader().load(""))


def test_placeholder_size():
    img = placeholder(0, 12)
    assert img.size == (1, 12)


def test_font_fallback_measures(tmp_path):
    fonts = FontResolver(tmp_path)
    assert fonts.measure("", 12) == 0
    assert fonts.measure("abc", 24) > 0
    assert fonts.font("Arial", 24) is fonts.font("Arial", 24)


def test_font_resolution_from_mapping(tmp_path):
    (tmp_path / "fonts.json").write_text(json.dumps({"Brand": "BrandSans"}), encoding="utf-8")
    (tmp_path / "BrandSans.ttf").write_bytes(b"")
    (tmp_path / "BrandSans-Bold.ttf").write_bytes(b"")
    fonts = FontResolver(tmp_path)
    assert fonts.families() == ["Brand"]
    assert fonts.resolve("Brand").name == "BrandSans.ttf"
    assert fonts.resolve("Brand", weight="bold").name == "BrandSans-Bold.ttf"
    assert fonts.resolve("Brand", style="italic").name == "BrandSans.ttf"
    assert fonts.resolve("Unknown") is None


def test_shape_keeps_latin_text():
    assert FontResolver.shape("Hello") == "Hello"
    assert FontResolver.shape("") == ""


def test_cache_evicts_least_recently_used(tmp_path):
    for name in ("a", "b", "c"):
        (tmp_path / f"{name}.png").write_bytes(_png_bytes((2, 2)))
    loader = ImageLoader(base_path=tmp_path, cache_size=2)
    loader.register("mem://kept", Image.new("RGBA", (1, 1)))
    first = asyncio.run(loader.load("a.png"))
    asyncio.run(loader.load("b.png"))
    assert asyncio.run(loader.load("a.png")) is first
    asyncio.run(loader.load("c.png"))
    assert list(loader._cache) == ["a.png", "c.png"]
    assert asyncio.run(loader.load("mem://kept")).size == (1, 1)
    loader.clear_cache()
    assert not loader._cache
    assert asyncio.run(loader.load("mem://kept")).size == (1, 1)
