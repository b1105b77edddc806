"""Tests for the zoom/rotate view transform."""

from PIL import Image

from oncolite.view import ViewTransform


def test_defaults():
    view = ViewTransform()
    assert view.scale == 1.0
    assert view.rotation == 0
    assert view.css() == "scale(1) rotate(0deg)"


def test_zoom_in_steps_by_tenth():
    view = ViewTransform()
    for _ in range(3):
        view.zoom_in()
    assert view.scale == 1.3


def test_zoom_out_never_below_minimum():
    """Zooming out stops at 0.1, however many times it is pressed."""
    view = ViewTransform()
    for _ in range(25):
        view.zoom_out()
        assert view.scale >= 0.1
    assert view.scale == 0.1


def test_zoom_round_trip_lands_on_exact_tenths():
    view = ViewTransform()
    for _ in range(9):
        view.zoom_out()
    for _ in range(9):
        view.zoom_in()
    assert view.scale == 1.0


def test_rotation_is_unbounded():
    """Rotation keeps counting past 360; display wraps it."""
    view = ViewTransform()
    for _ in range(5):
        view.rotate_right()
    assert view.rotation == 450
    assert view.display_rotation == 90

    for _ in range(7):
        view.rotate_left()
    assert view.rotation == -180
    assert view.display_rotation == 180


def test_css_string():
    view = ViewTransform()
    view.zoom_in()
    view.rotate_left()
    assert view.css() == "scale(1.1) rotate(-90deg)"


def test_apply_rotates_and_scales():
    image = Image.new("RGB", (40, 20), (0, 0, 0))
    view = ViewTransform()
    view.rotate_right()
    view.zoom_out()
    view.zoom_out()

    out = view.apply(image)

    # 90 degrees swaps width and height, then scaled by 0.8
    assert out.size == (16, 32)
    assert image.size == (40, 20)


def test_apply_identity_returns_copy():
    image = Image.new("RGB", (10, 10))
    out = ViewTransform().apply(image)
    assert out is not image
    assert out.size == image.size
