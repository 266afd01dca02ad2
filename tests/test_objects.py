import pytest

from printcanvas.core.objects import (
    BleedArea,
    BleedAreaMapping,
    ImageElement,
    Mask,
    Point,
    Product,
    Rect,
    TextElement,
    element_from_dict,
    parse_hex_rgba,
)
from printcanvas.core.shapes import SHAPE_CLIPS, get_shape, shapes_by_category


def test_text_from_dict_applies_defaults():
    el = element_from_dict({"type": "text", "id": "t1", "content": "Hello"})
    assert isinstance(el, TextElement)
    assert el.id == "t1"
    assert el.font_size == 24
    assert el.font_family == "Arial"
    assert el.color == "#000000"
    assert el.rotation == 0


def test_image_from_dict_reads_mask_and_shape():
    el = element_from_dict({
        "type": "image", "id": "i1", "url": "a.png", "x": 10, "y": 20,
        "width": 200, "height": 100, "hasMask": True,
        "mask": {"x": 100, "y": 50, "width": 100, "height": 100},
        "shapeClip": {"id": "circle"},
    })
    assert isinstance(el, ImageElement)
    assert el.masked
    assert el.mask == Mask(100, 50, 100, 100)
    assert el.shape_clip == "circle"


def test_shape_clip_keeps_ratio_and_offset():
    el = element_from_dict({
        "type": "image", "width": 100, "height": 100, "originalWidth": "100", "originalHeight": "100",
        "shapeClip": {"id": "circle", "originalImageRatio": "1.5", "imageOffset": {"x": 12, "y": "-4"}},
    })
    assert el.shape_clip == "circle"
    assert el.original_width == 100.0
    assert isinstance(el.original_height, float)
    assert el.original_image_ratio == 1.5
    assert el.image_offset == Point(12.0, -4.0)
    assert el.to_dict()["shapeClip"] == {
        "id": "circle", "originalImageRatio": 1.5, "imageOffset": {"x": 12.0, "y": -4.0},
    }


def test_has_mask_without_mask_is_not_masked():
    el = element_from_dict({"type": "image", "hasMask": True})
    assert not el.masked


def test_unknown_type_raises():
    with pytest.raises(ValueError):
        element_from_dict({"type": "sticker"})


def test_image_to_dict_is_camel_case():
    el = ImageElement(id="i", url="u", width=50, height=40, scale_x=2.0, original_width=25,
                      has_mask=True, mask=Mask(25, 20, 30, 30), shape_clip="star")
    data = el.to_dict()
    assert data["type"] == "image"
    assert data["scaleX"] == 2.0
    assert data["originalWidth"] == 25
    assert data["mask"] == {"x": 25, "y": 20, "width": 30, "height": 30}
    assert data["shapeClip"] == {"id": "star"}
    assert "bitmap" not in data


def test_mask_edges():
    m = Mask(50, 40, 20, 10)
    assert (m.left, m.top, m.right, m.bottom) == (40, 35, 60, 45)
    assert m.scaled(2, 3) == Mask(100, 120, 40, 30)


def test_rect_corners_clockwise():
    pts = Rect(0, 0, 10, 5).corners()
    assert [(p.x, p.y) for p in pts] == [(0, 0), (10, 0), (10, 5), (0, 5)]


def test_product_from_dict():
    p = Product.from_dict({
        "type": "3D",
        "printArea": {"x": 10, "y": 20, "width": 100, "height": 80},
        "model3D": {"glbUrl": "https://cdn.example.com/mug.glb"},
        "bleedArea": {"mode": "uniform", "value": 5},
        "bleedAreaMapping": {"centerX": 40, "centerY": 60, "scale": 1.5},
        "physicalSize": {"widthMm": 300, "heightMm": 300},
        "productBackgroundImage": {"url": "https://cdn.example.com/bg.png"},
    })
    assert p.is_3d
    assert p.print_area == Rect(10, 20, 100, 80)
    assert p.glb_url.endswith("mug.glb")
    assert p.bleed_area == BleedArea("uniform", value=5)
    assert p.bleed_area_mapping == BleedAreaMapping(40, 60, 1.5, True)
    assert p.physical_size.width_mm == 300
    assert p.background_image.endswith("bg.png")


def test_product_defaults_print_area():
    p = Product.from_dict({})
    assert p.print_area == Rect(50, 50, 200, 150)
    assert not p.is_3d


def test_parse_hex_rgba():
    assert parse_hex_rgba("#ff8000") == (255, 128, 0, 255)
    assert parse_hex_rgba("#fff") == (255, 255, 255, 255)
    assert parse_hex_rgba("red", default=(1, 2, 3, 4)) == (1, 2, 3, 4)


def test_shape_masks():
    circle = get_shape("circle")
    m = circle.mask(100, 100)
    assert m.getpixel((50, 50)) == 255
    assert m.getpixel((0, 0)) == 0
    tri = get_shape("triangle").mask(100, 100)
    assert tri.getpixel((50, 90)) == 255
    assert tri.getpixel((2, 2)) == 0


def test_shapes_by_category_covers_all():
    grouped = shapes_by_category()
    assert sum(len(v) for v in grouped.values()) == len(SHAPE_CLIPS)
    assert get_shape(None) is None
    assert get_shape("nope") is None
