import pytest

from printcanvas.canvas.scene import DesignScene, InteractionMode
from printcanvas.canvas.shape_adjust import ShapeAdjustController
from printcanvas.core.errors import InteractionStateError
from printcanvas.core.objects import ImageElement, Point, TextElement


@pytest.fixture
def shape_scene():
    el = ImageElement(id="s", x=100, y=100, width=100, height=100, shape_clip="circle",
                      original_image_ratio=3.0)
    return DesignScene([el, TextElement(id="t", content="x")])


@pytest.fixture
def adjust(shape_scene):
    return ShapeAdjustController(shape_scene)


def test_start_requires_shape_image(adjust, scene):
    assert not adjust.start_adjust("t")
    plain = ShapeAdjustController(scene)
    assert not plain.start_adjust("img")
    assert not plain.is_adjusting


def test_offset_clamped_to_overflow(adjust, shape_scene):
    assert adjust.start_adjust("s")
    assert shape_scene.mode is InteractionMode.SHAPE_ADJUSTING
    assert adjust.update_offset(250, 30) == Point(100, 0)
    assert adjust.drag(-40, 0) == Point(60, 0)


def test_apply_writes_offset(adjust, shape_scene):
    adjust.start_adjust("s")
    adjust.update_offset(-20, 0)
    assert adjust.apply() == Point(-20, 0)
    assert shape_scene.get("s").image_offset == Point(-20, 0)
    assert shape_scene.mode is InteractionMode.IDLE
    assert not adjust.is_adjusting


def test_cancel_and_reset_leave_element(adjust, shape_scene):
    shape_scene.update_element("s", image_offset=Point(30, 0))
    adjust.start_adjust("s")
    assert adjust.offset == Point(30, 0)
    adjust.reset_offset()
    assert adjust.offset == Point(0, 0)
    adjust.cancel()
    assert shape_scene.get("s").image_offset == Point(30, 0)
    assert shape_scene.mode is InteractionMode.IDLE


def test_update_without_session_raises(adjust):
    with pytest.raises(InteractionStateError):
        adjust.update_offset(1, 1)
    assert adjust.apply() is None
