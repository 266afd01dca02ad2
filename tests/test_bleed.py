import pytest

from printcanvas.canvas.bleed import (
    bleed_bounds,
    bleed_from_percentage,
    bleed_to_percentage,
    bleed_values,
    check_bleed_area_bounds,
    constrain_bleed_area,
    crop_mark_segments,
    max_bleed_value,
)
from printcanvas.core.objects import BleedArea, Point, Rect

PRINT_AREA = Rect(50, 50, 200, 150)


def test_uniform_values():
    assert bleed_values(BleedArea("uniform", value=10)) == (10, 10, 10, 10)
    assert bleed_values(None) == (0, 0, 0, 0)


def test_separate_values():
    m = bleed_values(BleedArea("separate", top=1, right=2, bottom=3, left=4))
    assert (m.top, m.right, m.bottom, m.left) == (1, 2, 3, 4)


def test_bleed_bounds_grow_outward():
    assert bleed_bounds(PRINT_AREA, BleedArea("uniform", value=10)) == Rect(40, 40, 220, 170)
    assert bleed_bounds(PRINT_AREA, None) == PRINT_AREA


def test_check_bounds_reports_side():
    bleed = BleedArea("uniform", value=10)
    assert check_bleed_area_bounds(PRINT_AREA, bleed).valid
    left = check_bleed_area_bounds(Rect(5, 50, 200, 150), bleed)
    assert not left.valid
    assert left.side == "left"
    right = check_bleed_area_bounds(Rect(50, 50, 345, 150), bleed)
    assert right.side == "right"
    bottom = check_bleed_area_bounds(Rect(50, 50, 100, 345), bleed)
    assert bottom.side == "bottom"


def test_max_values():
    assert max_bleed_value(PRINT_AREA, "top") == 50
    assert max_bleed_value(PRINT_AREA, "right") == 150
    assert max_bleed_value(PRINT_AREA, "bottom") == 200
    assert max_bleed_value(PRINT_AREA, "diagonal") == 0


def test_constrain_uniform_uses_tightest_side():
    out = constrain_bleed_area(PRINT_AREA, BleedArea("uniform", value=100))
    assert out.value == 50
    assert check_bleed_area_bounds(PRINT_AREA, out).valid


def test_constrain_separate_per_side():
    out = constrain_bleed_area(PRINT_AREA, BleedArea("separate", top=80, right=80, bottom=80, left=10))
    assert (out.top, out.right, out.bottom, out.left) == (50, 80, 80, 10)


def test_percentage_round_trip():
    pct = bleed_to_percentage(BleedArea("uniform", value=10))
    assert pct.value == pytest.approx(2.5)
    assert bleed_from_percentage(pct).value == pytest.approx(10)
    assert bleed_to_percentage(None) is None


def test_crop_marks():
    segs = crop_mark_segments(Rect(10, 10, 100, 50), length=10, offset=5)
    assert len(segs) == 8
    assert segs[0] == (Point(5, 10), Point(-5, 10))
    assert segs[1] == (Point(10, 5), Point(10, -5))
