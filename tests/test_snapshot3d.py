import asyncio
from unittest.mock import Mock, patch

import numpy as np
import pytest
import trimesh
from PIL import Image

from printcanvas.canvas.export import Compositor
from printcanvas.canvas.snapshot3d import (
    SoftwareRenderer,
    TextureMapping,
    generate_3d_snapshot,
    generate_uv_texture,
    load_meshes,
)
from printcanvas.core.errors import ResourceLoadError
from printcanvas.core.objects import ImageElement, Product, Rect


def _textured_box(size=0.4):
    box = trimesh.creation.box(extents=(size, size, size))
    uv = np.full((len(box.vertices), 2), 0.5)
    box.visual = trimesh.visual.TextureVisuals(uv=uv)
    return box


@pytest.fixture
def compositor(loader, fonts):
    return Compositor(loader, fonts)


@pytest.fixture
def mug():
    return Product(type="3D", print_area=Rect(50, 50, 200, 150), glb_url="mem://mug.glb")


def test_uv_texture_layout(compositor, mug):
    inside = ImageElement(id="in", x=150, y=125, url="mem://red")
    outside = ImageElement(id="out", x=255, y=125, url="mem://red")
    tex = asyncio.run(generate_uv_texture(mug, [inside, outside], "#00ff00", compositor))
    assert tex.size == (600, 600)
    r, g, b, _ = tex.getpixel((300, 225))
    assert r > 250 and g < 5 and b < 5
    assert tex.getpixel((10, 10)) == (0, 255, 0, 255)
    assert tex.getpixel((10, 500)) == (255, 255, 255, 255)
    assert tex.getpixel((500, 225)) == (0, 255, 0, 255)


def test_texture_mapping_flips_v():
    u, v = TextureMapping().apply(np.array([0.25]), np.array([0.25]))
    assert u[0] == pytest.approx(0.25)
    assert v[0] == pytest.approx(-0.25)


def test_renderer_draws_textured_mesh():
    renderer = SoftwareRenderer(64, 64, supersample=1)
    img = renderer.render([_textured_box()], Image.new("RGB", (8, 8), (255, 0, 0)))
    assert img.size == (64, 64)
    px = np.asarray(img).astype(int)
    covered = np.any(px != 245, axis=2)
    assert covered.any()
    assert (px[..., 0] - px[..., 1])[covered].max() > 50
    renderer.dispose()
    assert renderer._depth is None


def test_renderer_without_uvs_is_untextured():
    renderer = SoftwareRenderer(32, 32, supersample=1)
    img = renderer.render([trimesh.creation.box(extents=(0.4, 0.4, 0.4))], None)
    px = np.asarray(img).astype(int)
    covered = np.any(px != 245, axis=2)
    assert covered.any()
    assert np.abs(px[..., 0] - px[..., 2])[covered].max() <= 2


def test_load_meshes_flattens_scene():
    scene = trimesh.Scene()
    scene.add_geometry(trimesh.creation.box(), node_name="a",
                       transform=trimesh.transformations.translation_matrix([1.0, 0.0, 0.0]))
    scene.add_geometry(trimesh.creation.box(), node_name="b")
    loader = Mock()
    loader.read_bytes.return_value = b"glb"
    with patch("printcanvas.canvas.snapshot3d.trimesh.load", return_value=scene):
        meshes = load_meshes("mem://mug.glb", loader)
    assert len(meshes) == 2
    centers = sorted(round(float(m.bounds.mean(axis=0)[0]), 6) for m in meshes)
    assert centers == [0.0, 1.0]


def test_load_meshes_parse_error():
    loader = Mock()
    loader.read_bytes.return_value = b"not a mesh"
    with patch("printcanvas.canvas.snapshot3d.trimesh.load", side_effect=ValueError("bad")):
        with pytest.raises(ResourceLoadError):
            load_meshes("mem://mug.glb", loader)


def test_snapshot_requires_3d_product(compositor, product):
    assert asyncio.run(generate_3d_snapshot(product, [], compositor=compositor)) is None
    no_url = Product(type="3D")
    assert asyncio.run(generate_3d_snapshot(no_url, [], compositor=compositor)) is None
    assert asyncio.run(generate_3d_snapshot(None, [])) is None


def test_snapshot_returns_jpeg(compositor, mug, image_element):
    with patch("printcanvas.canvas.snapshot3d.load_meshes", return_value=[_textured_box()]):
        url = asyncio.run(generate_3d_snapshot(mug, [image_element], width=48, height=48,
                                               compositor=compositor))
    assert url.startswith("data:image/jpeg;base64,")


def test_snapshot_mesh_failure_returns_none(compositor, mug):
    with patch("printcanvas.canvas.snapshot3d.load_meshes",
               side_effect=ResourceLoadError("mem://mug.glb", "404")):
        assert asyncio.run(generate_3d_snapshot(mug, [], compositor=compositor)) is None
