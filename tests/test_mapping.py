import pytest

from printcanvas.canvas.mapping import (
    background_to_design,
    constrain_mapping,
    design_to_background,
    distance_to_mapping_center,
    is_valid_mapping,
    mapped_bleed_bounds,
    mapping_transform,
    point_in_mapped_bleed_area,
    validate_background_image_url,
    validate_mapping,
)
from printcanvas.core.objects import BleedArea, BleedAreaMapping, Product, Rect


@pytest.fixture
def centered():
    return Product(print_area=Rect(100, 100, 200, 200))


def test_identity_mapping(centered):
    b = mapped_bleed_bounds(centered, BleedAreaMapping.default())
    assert (b.x, b.y, b.width, b.height) == (
        pytest.approx(100), pytest.approx(100), pytest.approx(200), pytest.approx(200))
    assert is_valid_mapping(BleedAreaMapping.default(), centered)
    t = mapping_transform(centered, BleedAreaMapping.default())
    assert t.translate_x == pytest.approx(0)
    assert t.translate_y == pytest.approx(0)


def test_off_center_mapping_violates_left_and_top(centered):
    errors = validate_mapping(BleedAreaMapping(10, 10, 1.0), centered)
    assert len(errors) == 2
    assert "left by 60.0px" in errors[0]
    assert "top by 60.0px" in errors[1]


def test_mapping_round_trip(product):
    product.bleed_area = BleedArea("uniform", value=8)
    mapping = BleedAreaMapping(35, 62, 0.7)
    p = design_to_background(123, 45, product, mapping)
    back = background_to_design(p.x, p.y, product, mapping)
    assert back.x == pytest.approx(123)
    assert back.y == pytest.approx(45)


def test_bleed_center_lands_on_target(product):
    mapping = BleedAreaMapping(30, 70, 0.5)
    b = mapped_bleed_bounds(product, mapping)
    assert b.center_x == pytest.approx(120)
    assert b.center_y == pytest.approx(280)
    assert b.width == pytest.approx(100)
    assert distance_to_mapping_center(120, 280, product, mapping) == pytest.approx(0)
    assert point_in_mapped_bleed_area(120, 280, product, mapping)
    assert not point_in_mapped_bleed_area(0, 0, product, mapping)


def test_range_errors(centered):
    errors = validate_mapping(BleedAreaMapping(150, -1, 0), centered)
    assert any("centerX" in e for e in errors)
    assert any("centerY" in e for e in errors)
    assert any("scale" in e for e in errors)


def test_non_numeric_values(centered):
    mapping = BleedAreaMapping("abc", 50, None)
    errors = validate_mapping(mapping, centered)
    assert any("centerX" in e for e in errors)
    fixed = constrain_mapping(mapping, centered)
    assert fixed.center_x == 50
    assert fixed.scale == 1.0


def test_constrain_clamps_and_is_idempotent(centered):
    once = constrain_mapping(BleedAreaMapping(150, -20, 9), centered)
    assert (once.center_x, once.center_y, once.scale) == (100, 0, 5.0)
    assert constrain_mapping(once, centered) == once


def test_constrain_keeps_zero_as_a_value(centered):
    out = constrain_mapping(BleedAreaMapping(0, 0, 0), centered)
    assert (out.center_x, out.center_y) == (0, 0)
    assert out.scale == pytest.approx(0.1)


def test_missing_inputs():
    assert validate_mapping(None, None) == []
    assert constrain_mapping(None, Product()) is None
    p = design_to_background(10, 20, None, None)
    assert (p.x, p.y) == (10, 20)


def test_background_url_validation():
    assert validate_background_image_url("https://cdn.example.com/bg.png") is None
    assert validate_background_image_url("") is not None
    assert validate_background_image_url("/uploads/bg.png") is not None
    assert validate_background_image_url("https://") is not None
    assert validate_background_image_url(42) is not None
