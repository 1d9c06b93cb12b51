#!/usr/bin/env python3
"""
Tests for the letterbox transform between image pixels and the square canvas
"""

import math

import pytest

from shot_detection.core.coordinate_system import (
    IDENTITY_TRANSFORM,
    BoundingBox,
    DisplayTransform,
    compute_transform,
)
from shot_detection.utils.geometry_utils import Point2D


def test_wide_image_letterboxes_vertically():
    """200x100 image on a 100px canvas fills the width"""
    t = compute_transform(200, 100, 100)

    assert t.scale_x == pytest.approx(0.5)
    assert t.scale_y == pytest.approx(0.5)
    assert t.offset_x == 0
    assert t.offset_y == pytest.approx(25)


def test_tall_image_letterboxes_horizontally():
    """100x200 image on a 100px canvas fills the height"""
    t = compute_transform(100, 200, 100)

    assert t.scale_x == pytest.approx(0.5)
    assert t.scale_y == pytest.approx(0.5)
    assert t.offset_x == pytest.approx(25)
    assert t.offset_y == 0


def test_square_image_fills_canvas():
    t = compute_transform(100, 100, 350)

    assert t.scale_x == pytest.approx(3.5)
    assert (t.offset_x, t.offset_y) == (0, 0)


@pytest.mark.parametrize("width, height, side", [
    (None, 100, 350),
    (200, None, 350),
    (0, 100, 350),
    (200, -5, 350),
    (200, 100, 0),
    (float('nan'), 100, 350),
    (float('inf'), 100, 350),
])
def test_missing_metadata_gives_identity(width, height, side):
    t = compute_transform(width, height, side)

    assert t == IDENTITY_TRANSFORM
    assert t.is_identity


@pytest.mark.parametrize("width, height, side", [
    (200, 100, 100),
    (100, 200, 100),
    (4032, 3024, 350),
    (3024, 4032, 350),
    (1, 1000, 350),
    (777, 777, 123.5),
])
def test_scale_is_uniform(width, height, side):
    t = compute_transform(width, height, side)
    assert t.scale_x == t.scale_y


@pytest.mark.parametrize("width, height, side", [
    (200, 100, 100),
    (100, 200, 100),
    (4032, 3024, 350),
    (3024, 4032, 350),
])
def test_round_trip(width, height, side):
    """inverse(forward(p)) == p for points inside the image"""
    t = compute_transform(width, height, side)

    for fx, fy in [(0, 0), (1, 1), (0.5, 0.25), (0.9, 0.1), (0.33, 0.77)]:
        p = Point2D(fx * width, fy * height)
        back = t.to_image(t.to_display(p))
        assert back.x == pytest.approx(p.x)
        assert back.y == pytest.approx(p.y)


def test_image_fits_inside_canvas():
    t = compute_transform(4032, 3024, 350)
    width, height = t.displayed_size(4032, 3024)

    assert width == pytest.approx(350)
    assert height == pytest.approx(350 * 3024 / 4032)
    assert t.offset_y + height == pytest.approx(350 - t.offset_y)


def test_forward_mapping_uses_offsets():
    t = compute_transform(200, 100, 100)

    d = t.to_display((100, 50))
    assert d.to_tuple() == pytest.approx((50, 50))

    corner = t.to_display((0, 0))
    assert corner.to_tuple() == pytest.approx((0, 25))


def test_transform_is_memoized():
    assert compute_transform(640, 480, 350) is compute_transform(640, 480, 350)


def test_lengths_convert_with_scale():
    t = DisplayTransform(scale_x=0.5, scale_y=0.5, offset_x=0, offset_y=25)

    assert t.image_length(30) == pytest.approx(60)
    assert t.display_length(60) == pytest.approx(30)


def test_to_image_rejects_non_points():
    with pytest.raises(ValueError):
        IDENTITY_TRANSFORM.to_image("not a point")


def test_bounding_box_square():
    box = BoundingBox.square(Point2D(100, 50), 30)

    assert box.as_tuple() == (85, 35, 115, 65)
    assert box.width == 30 and box.height == 30
    assert box.center == Point2D(100, 50)
    assert box.contains(Point2D(85, 65))
    assert not box.contains(Point2D(84.9, 50))


def test_point_distance():
    assert Point2D(0, 0).distance_to(Point2D(3, 4)) == 5
    assert not Point2D(math.nan, 0).is_finite()
