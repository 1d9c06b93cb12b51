#!/usr/bin/env python3
"""
Tests for the annotation store: seeding, manual adds, removal and history
"""

from unittest.mock import Mock

import numpy as np
import pytest

from shot_detection.core.annotation_store import AnnotationStore, PointAnnotation
from shot_detection.utils.error_handling import AnnotationStoreError
from shot_detection.utils.geometry_utils import Point2D


def detection(x, y, confidence=0.9, half=10):
    return {
        'bbox': [x - half, y - half, x + half, y + half],
        'center': [x, y],
        'confidence': confidence,
    }


@pytest.fixture
def store():
    s = AnnotationStore(clock=lambda: 1700000000.0)
    s.seed([detection(10, 10), detection(50, 50, 0.5), detection(90, 90, 0.2)])
    return s


# ============================================================================
# Seeding
# ============================================================================

def test_seed_marks_detections_non_manual(store):
    assert len(store) == 3
    assert [a.id for a in store] == ['ai-0', 'ai-1', 'ai-2']
    assert not any(a.is_manual for a in store)
    assert store[1].confidence == 0.5
    assert store[1].center == Point2D(50, 50)


def test_seed_twice_requires_reset(store):
    with pytest.raises(AnnotationStoreError):
        store.seed([detection(1, 1)])

    store.reset()
    store.seed([detection(1, 1)])
    assert len(store) == 1


def test_seed_refuses_to_overwrite_manual_points():
    s = AnnotationStore()
    s.add((5, 5))

    with pytest.raises(AnnotationStoreError):
        s.seed([detection(1, 1), detection(2, 2)])

    assert [a.is_manual for a in s] == [True]

    s.undo()
    with pytest.raises(AnnotationStoreError):
        s.seed([detection(1, 1)])

    s.reset()
    s.seed([detection(1, 1)])
    assert [a.id for a in s] == ['ai-0']


def test_seed_accepts_objects():
    obj = Mock(bbox=(0, 0, 2, 2), center=(1, 1), confidence=0.7)
    s = AnnotationStore()
    s.seed([obj])

    assert s[0].bbox.as_tuple() == (0, 0, 2, 2)


def test_malformed_detection_rejected():
    s = AnnotationStore()
    with pytest.raises(AnnotationStoreError):
        s.seed([{'center': [1, 2], 'confidence': 0.5}])

    assert len(s) == 0
    assert not s.is_seeded


# ============================================================================
# Add
# ============================================================================

def test_add_appends_manual_point(store):
    before = len(store)
    added = store.add((120, 80))

    assert len(store) == before + 1
    assert store[len(store) - 1] is added
    assert added.is_manual
    assert added.confidence == 1.0
    assert added.bbox.as_tuple() == (105, 65, 135, 95)


def test_add_allows_stacked_points(store):
    store.add((5, 5))
    store.add((5, 5))

    assert len(store) == 5


def test_manual_ids_are_unique_within_same_millisecond(store):
    ids = [store.add((i, i)).id for i in range(5)]

    assert len(set(ids)) == 5
    assert all(i.startswith('manual-') for i in ids)
    assert not set(ids) & {'ai-0', 'ai-1', 'ai-2'}


# ============================================================================
# Remove
# ============================================================================

@pytest.mark.parametrize("index", [3, 100, -1, -3])
def test_remove_out_of_range_is_noop(store, index):
    version = store.version

    assert store.remove_at(index) is None
    assert len(store) == 3
    assert store.version == version


def test_remove_keeps_other_ids(store):
    removed = store.remove_at(1)

    assert removed.id == 'ai-1'
    assert [a.id for a in store] == ['ai-0', 'ai-2']


def test_remove_accepts_integer_like_indices(store):
    assert store.remove_at(np.int64(1)).id == 'ai-1'
    assert store.remove_at(True) is None
    assert store.remove_at(1.0) is None
    assert store.remove_at('0') is None
    assert [a.id for a in store] == ['ai-0', 'ai-2']


def test_reset_empties_regardless_of_provenance(store):
    store.add((1, 1))
    store.reset()

    assert len(store) == 0
    assert not store.is_seeded


# ============================================================================
# Change notification
# ============================================================================

def test_mutations_bump_version_and_notify(store):
    callback = Mock()
    store.add_callback('annotations_changed', callback)

    v0 = store.version
    store.add((1, 1))
    v1 = store.version
    store.remove_at(0)
    v2 = store.version

    assert v0 < v1 < v2
    assert [c.args[1] for c in callback.call_args_list] == ['add', 'remove']


def test_failing_callback_does_not_break_mutation(store):
    store.add_callback('annotations_changed', Mock(side_effect=RuntimeError("boom")))

    store.add((1, 1))
    assert len(store) == 4


def test_annotations_snapshot_is_immutable(store):
    snapshot = store.annotations
    store.add((1, 1))

    assert isinstance(snapshot, tuple)
    assert len(snapshot) == 3


# ============================================================================
# Undo / redo
# ============================================================================

def test_undo_redo(store):
    assert not store.can_undo

    store.remove_at(0)
    store.add((1, 1))

    assert store.undo()
    assert len(store) == 2
    assert store.undo()
    assert [a.id for a in store] == ['ai-0', 'ai-1', 'ai-2']
    assert not store.undo()

    assert store.redo()
    assert [a.id for a in store] == ['ai-1', 'ai-2']


def test_new_edit_discards_redo_branch(store):
    store.add((1, 1))
    store.undo()
    store.add((2, 2))

    assert not store.can_redo
    assert store[3].center == Point2D(2, 2)


def test_history_is_bounded():
    s = AnnotationStore(history_limit=3)
    s.seed([])
    for i in range(5):
        s.add((i, i))

    undone = 0
    while s.undo():
        undone += 1

    assert undone == 2
    assert len(s) == 3


# ============================================================================
# Edit summary
# ============================================================================

def test_edit_counts(store):
    assert not store.has_changes
    assert store.edit_counts() == {'added': 0, 'removed': 0}

    store.remove_at(0)
    store.add((1, 1))

    assert store.has_changes
    assert store.edit_counts() == {'added': 1, 'removed': 1}


def test_record_shape():
    annotation = PointAnnotation(
        id='ai-0', center=Point2D(1, 2),
        bbox=AnnotationStore().add((1, 2)).bbox,
        confidence=0.8, is_manual=False,
    )

    assert annotation.to_record() == {
        'center': [1, 2],
        'bbox': [-14, -13, 16, 17],
        'confidence': 0.8,
        'is_manual': False,
    }
