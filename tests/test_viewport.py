import pytest

from printcanvas.canvas.viewport import ScreenRect, ViewportController


def test_screen_canvas_round_trip():
    vp = ViewportController()
    vp.set_viewport(1.7, 13, -8)
    box = ScreenRect(30, 40, 800, 600)
    s = vp.canvas_to_screen(123, 321, box)
    p = vp.screen_to_canvas(s.x, s.y, box)
    assert p.x == pytest.approx(123)
    assert p.y == pytest.approx(321)


def test_identity_view_maps_container_to_canvas(container):
    vp = ViewportController()
    p = vp.screen_to_canvas(200, 100, container)
    assert (p.x, p.y) == (pytest.approx(200), pytest.approx(100))


def test_wheel_zoom_keeps_point_under_pointer():
    vp = ViewportController()
    box = ScreenRect(10, 20, 400, 400)
    before = vp.screen_to_canvas(300, 150, box)
    assert vp.on_wheel(-1, 300, 150, box)
    assert vp.zoom == pytest.approx(1.1)
    after = vp.screen_to_canvas(300, 150, box)
    assert after.x == pytest.approx(before.x)
    assert after.y == pytest.approx(before.y)


def test_wheel_clamped_at_max(container):
    vp = ViewportController()
    vp.set_viewport(3.0)
    assert not vp.on_wheel(-1, 100, 100, container)
    assert vp.zoom == 3.0


def test_wheel_ignored_while_panning(container):
    vp = ViewportController()
    vp.begin_pan(10, 10)
    assert not vp.on_wheel(-1, 100, 100, container)
    assert vp.zoom == 1.0


def test_pan_requires_middle_button_or_drag_mode():
    vp = ViewportController()
    assert not vp.begin_pan(0, 0, button=0)
    assert vp.begin_pan(0, 0, button=0, drag_mode=True)
    vp.pan_to(15, -5)
    assert (vp.pan.x, vp.pan.y) == (15, -5)
    vp.end_pan()
    vp.pan_to(100, 100)
    assert (vp.pan.x, vp.pan.y) == (15, -5)


def test_keyboard_shortcuts():
    vp = ViewportController()
    assert vp.on_key("+")
    assert vp.zoom == pytest.approx(1.1)
    vp.on_key("-")
    vp.on_key("-")
    assert vp.zoom == pytest.approx(0.9)
    vp.on_key("0")
    assert vp.zoom == 1.0
    assert not vp.on_key("x")


def test_zoom_out_floor():
    vp = ViewportController()
    for _ in range(20):
        vp.zoom_out()
    assert vp.zoom == 0.5
