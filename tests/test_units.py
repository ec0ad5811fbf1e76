import pytest
from reportlab.lib.pagesizes import A4

from quotedoc.units import POINTS_PER_MM, to_native_length, to_native_point, to_native_rect, to_native_y

PAGE_H = A4[1]


def test_inch_is_72_points():
    assert to_native_length(25.4) == pytest.approx(72.0)


def test_a4_matches_reportlab_page_size():
    assert to_native_length(210) == pytest.approx(A4[0], abs=0.01)
    assert to_native_length(297) == pytest.approx(A4[1], abs=0.01)


def test_y_axis_is_flipped():
    assert to_native_y(0, PAGE_H) == pytest.approx(PAGE_H)
    assert to_native_y(297, PAGE_H) == pytest.approx(0.0, abs=0.01)


def test_point_conversion():
    x, y = to_native_point(20, 10, PAGE_H)
    assert x == pytest.approx(20 * POINTS_PER_MM)
    assert y == pytest.approx(PAGE_H - 10 * POINTS_PER_MM)


def test_rect_anchored_at_bottom_left():
    x, y, w, h = to_native_rect(20, 65, 170, 28, PAGE_H)
    assert x == pytest.approx(to_native_length(20))
    assert y == pytest.approx(PAGE_H - to_native_length(93))
    assert w == pytest.approx(to_native_length(170))
    assert h == pytest.approx(to_native_length(28))
