import pytest

from printcanvas.canvas.crop import CropController, CropState
from printcanvas.canvas.scene import InteractionMode
from printcanvas.core.errors import InteractionStateError
from printcanvas.core.objects import Mask, Rect


@pytest.fixture
def crop(scene):
    scene.update_element("img", rotation=30)
    return CropController(scene)


def test_text_cannot_be_cropped(crop, scene):
    assert not crop.start_crop("txt")
    assert scene.mode is InteractionMode.IDLE


def test_start_zeroes_rotation(crop, scene):
    assert crop.start_crop("img")
    assert crop.is_cropping
    assert scene.mode is InteractionMode.CROPPING
    assert scene.get("img").rotation == 0
    assert crop.rect == Mask(50, 50, 100, 100)


def test_start_uses_existing_mask(crop, scene):
    scene.update_element("img", mask=Mask(30, 40, 60, 80))
    crop.start_crop("img")
    assert crop.rect == Mask(30, 40, 60, 80)


def test_drag_edge_and_apply(crop, scene):
    crop.start_crop("img")
    rect = crop.drag_handle("e", -40, 0)
    assert rect == Mask(30, 50, 60, 100)
    assert crop.overlay_rect() == Rect(100, 75, 60, 100)
    mask = crop.apply()
    el = scene.get("img")
    assert mask == Mask(30, 50, 60, 100)
    assert el.masked
    assert el.mask == mask
    assert el.rotation == 30
    assert crop.state is CropState.APPLIED
    assert scene.mode is InteractionMode.IDLE


def test_drag_corner_respects_min_size(crop):
    crop.start_crop("img")
    rect = crop.drag_handle("nw", 95, 95)
    assert rect.width == 20
    assert rect.height == 20


def test_move_is_clamped_to_element(crop):
    crop.start_crop("img")
    crop.drag_handle("e", -50, 0)
    rect = crop.drag_handle("move", 500, 0)
    assert rect.x == 75


def test_update_rect_clamps(crop):
    crop.start_crop("img")
    assert crop.update_rect(Mask(90, 50, 50, 50)) == Mask(75, 50, 50, 50)


def test_apply_after_element_moved(crop, scene):
    crop.start_crop("img")
    crop.drag_handle("e", -40, 0)
    scene.update_element("img", x=140)
    mask = crop.apply()
    assert mask.x == pytest.approx(40)


def test_cancel_restores_rotation_only(crop, scene):
    crop.start_crop("img")
    crop.drag_handle("e", -40, 0)
    crop.cancel()
    el = scene.get("img")
    assert el.rotation == 30
    assert not el.masked
    assert crop.state is CropState.CANCELLED
    assert scene.mode is InteractionMode.IDLE


def test_reset_removes_mask(crop, scene):
    scene.update_element("img", mask=Mask(30, 40, 60, 80))
    crop.start_crop("img")
    crop.reset()
    el = scene.get("img")
    assert not el.masked
    assert el.mask is None
    assert el.rotation == 30


def test_edits_outside_session_raise(crop):
    with pytest.raises(InteractionStateError):
        crop.drag_handle("move", 1, 1)
    assert crop.apply() is None


def test_crop_blocked_during_other_gesture(crop, scene):
    scene.begin_interaction(InteractionMode.DRAGGING, "txt")
    with pytest.raises(InteractionStateError):
        crop.start_crop("img")


def test_unknown_handle(crop):
    crop.start_crop("img")
    with pytest.raises(ValueError):
        crop.drag_handle("middle", 1, 1)
