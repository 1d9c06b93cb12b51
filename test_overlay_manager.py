#!/usr/bin/env python3
"""
Tests for marker building and snapshot rendering
"""

import base64
import io

import pytest
from PIL import Image

from shot_detection.business.confidence_classifier import ConfidenceTier, classify_all
from shot_detection.config import get_tier_colors, get_visualization_config
from shot_detection.core.annotation_store import AnnotationStore
from shot_detection.core.coordinate_system import IDENTITY_TRANSFORM, compute_transform
from shot_detection.core.overlay_manager import build_markers, load_image, render_snapshot


@pytest.fixture
def annotations():
    store = AnnotationStore()
    store.seed([
        {'bbox': [10, 10, 30, 30], 'center': [20, 20], 'confidence': 0.95},
        {'bbox': [100, 40, 120, 60], 'center': [110, 50], 'confidence': 0.3},
    ])
    store.add((150, 80))
    return store.annotations


def encoded_image(width=200, height=100, fmt='JPEG'):
    buffer = io.BytesIO()
    Image.new('RGB', (width, height), (200, 200, 200)).save(buffer, format=fmt)
    return base64.b64encode(buffer.getvalue()).decode('ascii')


def test_tier_colors():
    colors = get_tier_colors()

    assert colors == {
        'manual': '#10B981',
        'high': '#10B981',
        'medium': '#F59E0B',
        'low': '#EF4444',
    }


def test_visualization_overrides_merge():
    config = get_visualization_config('high_contrast', markers={'ring_alpha': 0.5})

    assert config['markers']['ring_alpha'] == 0.5
    assert config['markers']['ring_linewidth'] == 3.5
    assert get_visualization_config()['markers']['ring_alpha'] == 0.9


def test_build_markers(annotations):
    t = compute_transform(200, 100, 100)
    markers = build_markers(annotations, t, classify_all(annotations))

    assert [m.tier for m in markers] == ['high', 'low', 'manual']
    assert [m.color for m in markers] == ['#10B981', '#EF4444', '#10B981']
    assert markers[1].center.to_tuple() == pytest.approx((55, 50))
    assert markers[2].is_manual
    assert markers[0].hit_box.as_tuple() == pytest.approx((-10, 15, 30, 55))


def test_build_markers_requires_one_tier_per_annotation(annotations):
    with pytest.raises(ValueError):
        build_markers(annotations, IDENTITY_TRANSFORM, [ConfidenceTier.HIGH])


def test_load_image_variants():
    data = encoded_image(fmt='PNG')

    assert load_image(data).size == (200, 100)
    assert load_image('data:image/png;base64,' + data).size == (200, 100)
    assert load_image(base64.b64decode(data)).size == (200, 100)


@pytest.mark.parametrize("bad", ["%%%not-base64%%%", base64.b64encode(b"not an image").decode()])
def test_load_image_rejects_garbage(bad):
    with pytest.raises(ValueError):
        load_image(bad)


def test_render_snapshot(annotations):
    t = compute_transform(200, 100, 350)
    snapshot = render_snapshot(encoded_image(), annotations, t, classify_all(annotations),
                               max_pair=(0, 2), canvas_side=350)

    image = Image.open(io.BytesIO(base64.b64decode(snapshot)))
    assert image.format == 'JPEG'
    assert image.size == (350, 350)


def test_render_snapshot_derives_transform_from_image(annotations):
    snapshot = render_snapshot(encoded_image(400, 300), annotations, IDENTITY_TRANSFORM,
                               classify_all(annotations), canvas_side=200)

    image = Image.open(io.BytesIO(base64.b64decode(snapshot)))
    assert image.size == (200, 200)
