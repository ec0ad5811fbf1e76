"""Millimetre design grid -> PDF points.

Layout code works in millimetres measured from the top-left corner of the page
(y grows downward). PDF space is in points measured from the bottom-left corner
(y grows upward). Every drawing call converts through here exactly once.
"""
from typing import Tuple

POINTS_PER_MM = 72.0 / 25.4


def to_native_length(mm: float) -> float:
    return float(mm) * POINTS_PER_MM


def to_native_y(y_mm: float, page_height: float) -> float:
    """``page_height`` is already in points."""
    return page_height - to_native_length(y_mm)


def to_native_point(x_mm: float, y_mm: float, page_height: float) -> Tuple[float, float]:
    return to_native_length(x_mm), to_native_y(y_mm, page_height)


def to_native_rect(x_mm: float, top_mm: float, width_mm: float, height_mm: float,
                   page_height: float) -> Tuple[float, float, float, float]:
    """Top-left anchored mm box -> (x, y, w, h) anchored at its bottom-left corner in points."""
    return (
        to_native_length(x_mm),
        to_native_y(top_mm + height_mm, page_height),
        to_native_length(width_mm),
        to_native_length(height_mm),
    )
