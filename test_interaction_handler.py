#!/usr/bin/env python3
"""
Tests for tap resolution: add/remove modes, tolerance, tie-break and marker taps
"""

from unittest.mock import Mock

import pytest

from shot_detection.core.annotation_store import AnnotationStore
from shot_detection.core.coordinate_system import IDENTITY_TRANSFORM, compute_transform
from shot_detection.core.interaction_handler import (
    AddAt,
    EditMode,
    InteractionHandler,
    NoOp,
    RemoveAt,
    marker_at,
    resolve_marker_tap,
    resolve_tap,
)
from shot_detection.utils.geometry_utils import Point2D


def seeded_store(*centers):
    store = AnnotationStore()
    store.seed([
        {'bbox': [x - 5, y - 5, x + 5, y + 5], 'center': [x, y], 'confidence': 0.8}
        for x, y in centers
    ])
    return store


# ============================================================================
# Add mode
# ============================================================================

def test_add_mode_inverse_maps_tap():
    t = compute_transform(200, 100, 100)

    action = resolve_tap((50, 50), EditMode.ADD, t, [])

    assert isinstance(action, AddAt)
    assert action.image_point.to_tuple() == pytest.approx((100, 50))


def test_add_mode_has_no_proximity_check():
    store = seeded_store((10, 10))

    action = resolve_tap((10, 10), EditMode.ADD, IDENTITY_TRANSFORM, store.annotations)

    assert action == AddAt(Point2D(10, 10))


def test_add_mode_accepts_letterbox_taps():
    """200x100 image on a 100px canvas leaves 25px bands above and below"""
    t = compute_transform(200, 100, 100)

    action = resolve_tap((50, 10), EditMode.ADD, t, [])

    assert isinstance(action, AddAt)
    assert action.image_point.to_tuple() == pytest.approx((100, -30))


# ============================================================================
# Remove mode
# ============================================================================

def test_remove_first_match_wins():
    """Points at indices 2 and 5 both within tolerance: index 2 is removed"""
    store = seeded_store((0, 0), (500, 500))
    store.add((100, 100))   # index 2
    store.add((300, 300))
    store.add((400, 400))
    store.add((105, 100))   # index 5, closer to the tap

    action = resolve_tap((104, 100), EditMode.REMOVE, IDENTITY_TRANSFORM, store.annotations)

    assert action == RemoveAt(2)


def test_remove_tolerance_is_strict():
    store = seeded_store((0, 0))

    assert isinstance(resolve_tap((30, 0), EditMode.REMOVE, IDENTITY_TRANSFORM, store.annotations), NoOp)
    assert resolve_tap((29.9, 0), EditMode.REMOVE, IDENTITY_TRANSFORM, store.annotations) == RemoveAt(0)


def test_remove_tolerance_scales_to_image_space():
    """30 display px at scale 0.5 covers 60 image px"""
    t = compute_transform(200, 100, 100)
    store = seeded_store((100, 50))

    tap = t.to_display((150, 50))
    assert resolve_tap(tap, EditMode.REMOVE, t, store.annotations) == RemoveAt(0)

    far_tap = t.to_display((161, 50))
    assert isinstance(resolve_tap(far_tap, EditMode.REMOVE, t, store.annotations), NoOp)


def test_remove_with_nothing_nearby():
    store = seeded_store((0, 0), (100, 100))

    action = resolve_tap((50, 50), EditMode.REMOVE, IDENTITY_TRANSFORM, store.annotations)
    assert isinstance(action, NoOp)


@pytest.mark.parametrize("tap", [None, (1,), "ab", (float('nan'), 1.0), {'x': 1}, (1, 2, 3)])
@pytest.mark.parametrize("mode", [EditMode.ADD, EditMode.REMOVE])
def test_malformed_tap_is_noop(tap, mode):
    store = seeded_store((1, 1))

    action = resolve_tap(tap, mode, IDENTITY_TRANSFORM, store.annotations)

    assert isinstance(action, NoOp)
    assert len(store) == 1


# ============================================================================
# Marker taps
# ============================================================================

def test_marker_hit_box():
    store = seeded_store((100, 100))

    assert marker_at((119, 119), IDENTITY_TRANSFORM, store.annotations) == 0
    assert marker_at((121, 100), IDENTITY_TRANSFORM, store.annotations) is None
    assert marker_at(None, IDENTITY_TRANSFORM, store.annotations) is None


def test_overlapping_markers_resolve_to_topmost():
    store = seeded_store((100, 100), (110, 100))

    assert marker_at((105, 100), IDENTITY_TRANSFORM, store.annotations) == 1


def test_marker_tap_bypasses_distance_search():
    store = seeded_store((0, 0), (1000, 1000))

    assert resolve_marker_tap(1, EditMode.REMOVE, store.annotations) == RemoveAt(1)


@pytest.mark.parametrize("index", [2, -1, True, None, "0"])
def test_marker_tap_invalid_index(index):
    store = seeded_store((0, 0), (10, 10))

    assert isinstance(resolve_marker_tap(index, EditMode.REMOVE, store.annotations), NoOp)


def test_marker_tap_ignored_in_add_mode():
    store = seeded_store((0, 0))

    assert isinstance(resolve_marker_tap(0, EditMode.ADD, store.annotations), NoOp)


# ============================================================================
# InteractionHandler
# ============================================================================

def test_handler_applies_actions():
    store = seeded_store((0, 0))
    handler = InteractionHandler(store)
    resolved = Mock()
    handler.add_callback('tap_resolved', resolved)

    handler.handle_tap((50, 50), IDENTITY_TRANSFORM)
    assert len(store) == 2
    assert store[1].is_manual

    handler.set_mode(EditMode.REMOVE)
    handler.handle_tap((1, 1), IDENTITY_TRANSFORM)
    assert [a.id for a in store] == [store[0].id]
    assert store[0].is_manual

    assert [type(c.args[0]) for c in resolved.call_args_list] == [AddAt, RemoveAt]


def test_mode_changes_only_explicitly():
    store = seeded_store((0, 0))
    handler = InteractionHandler(store)
    changed = Mock()
    handler.add_callback('mode_changed', changed)

    handler.handle_tap((5, 5), IDENTITY_TRANSFORM)
    handler.handle_marker_tap(0)
    assert handler.mode == EditMode.ADD
    changed.assert_not_called()

    handler.set_mode(EditMode.REMOVE)
    handler.set_mode(EditMode.REMOVE)
    assert handler.mode == EditMode.REMOVE
    changed.assert_called_once_with(EditMode.ADD, EditMode.REMOVE)


def test_handler_marker_tap_removes():
    store = seeded_store((0, 0), (5, 5))
    handler = InteractionHandler(store, mode=EditMode.REMOVE)

    action = handler.handle_marker_tap(1)

    assert action == RemoveAt(1)
    assert [a.id for a in store] == ['ai-0']
