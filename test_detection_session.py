#!/usr/bin/env python3
"""
Tests for the editing session: loading, tapping, derived values and saving
"""

from unittest.mock import Mock

import pytest

from shot_detection.business.api_integration import DetectionSource, PersistenceSink
from shot_detection.business.detection_session import DetectionSession, SessionStatus
from shot_detection.config import get_analysis_settings
from shot_detection.core.interaction_handler import AddAt, EditMode, NoOp, RemoveAt
from shot_detection.models import ResultPayload
from shot_detection.utils.error_handling import AnnotationStoreError, ServiceError


def response_body():
    return {
        'success': True,
        'detections': [
            {'bbox': [90, 40, 110, 60], 'center': [100, 50], 'confidence': 0.9},
            {'bbox': [150, 40, 170, 60], 'center': [160, 50], 'confidence': 0.45},
        ],
        'metadata': {'processed_width': 200, 'processed_height': 100},
        'scale_info': {'cm_per_pixel': 0.1},
    }


@pytest.fixture
def source():
    mock = Mock(spec=DetectionSource)
    mock.detect.return_value = response_body()
    return mock


@pytest.fixture
def sink():
    mock = Mock(spec=PersistenceSink)
    mock.save_result.return_value = {'id': 'result-1'}
    return mock


@pytest.fixture
def session(source, sink):
    settings = get_analysis_settings(canvas_side=100)
    s = DetectionSession(source, sink, settings=settings, session_id='sess-9')
    assert s.analyze_image(b'jpeg-bytes', 'target.jpg')
    return s


# ============================================================================
# Loading
# ============================================================================

def test_analyze_loads_annotations(session, source):
    source.detect.assert_called_once_with(b'jpeg-bytes', 'target.jpg')
    assert session.status == SessionStatus.EDITING
    assert len(session.store) == 2
    assert session.image_size == (200, 100)
    assert session.transform.scale_x == pytest.approx(0.5)
    assert session.transform.offset_y == pytest.approx(25)


def test_analysis_failure_keeps_store_empty(sink):
    failing = Mock(spec=DetectionSource)
    failing.detect.side_effect = ServiceError("HTTP 503", status_code=503)
    errors = Mock()
    s = DetectionSession(failing, sink)
    s.add_callback('error_occurred', errors)

    assert not s.analyze_image(b'x')
    assert s.status == SessionStatus.ERROR
    assert s.last_error
    assert len(s.store) == 0
    errors.assert_called_once()


def test_malformed_response_is_an_error(sink):
    bad = Mock(spec=DetectionSource)
    bad.detect.return_value = {'detections': [{'center': [1, 1]}]}
    s = DetectionSession(bad, sink)

    assert not s.analyze_image(b'x')
    assert s.status == SessionStatus.ERROR
    assert not s.store.is_seeded


def test_load_twice_requires_retake(session):
    with pytest.raises(AnnotationStoreError):
        session.load_response(response_body())

    session.retake()
    session.load_response(response_body())
    assert session.status == SessionStatus.EDITING


def test_reanalyze_keeps_edits(session, source):
    session.handle_tap((10, 40))

    assert not session.analyze_image(b'other-bytes')
    assert source.detect.call_count == 1
    assert session.status == SessionStatus.EDITING
    assert len(session.store) == 3

    with pytest.raises(AnnotationStoreError):
        session.load_response(response_body())
    assert session.status == SessionStatus.EDITING
    assert session.save(bullets_fired=5)


# ============================================================================
# Editing
# ============================================================================

def test_tap_adds_then_removes(session):
    action = session.handle_tap((50, 50))

    assert isinstance(action, AddAt)
    assert action.image_point.to_tuple() == pytest.approx((100, 50))
    assert len(session.store) == 3

    session.set_mode(EditMode.REMOVE)
    assert session.handle_tap((50, 50)) == RemoveAt(0)
    assert len(session.store) == 2
    assert session.mode == EditMode.REMOVE


def test_marker_tap(session):
    session.set_mode(EditMode.REMOVE)
    index = session.marker_at(session.markers[1].center)

    assert index == 1
    assert session.handle_marker_tap(index) == RemoveAt(1)
    assert [a.id for a in session.store] == ['ai-0']


def test_taps_ignored_when_not_editing(sink):
    s = DetectionSession(Mock(spec=DetectionSource), sink)

    assert isinstance(s.handle_tap((1, 1)), NoOp)
    assert isinstance(s.handle_marker_tap(0), NoOp)
    assert not s.undo()


def test_undo_redo(session):
    session.handle_tap((10, 40))
    assert len(session.store) == 3

    assert session.undo()
    assert len(session.store) == 2
    assert session.redo()
    assert len(session.store) == 3


# ============================================================================
# Derived values
# ============================================================================

def test_summary(session):
    summary = session.summary

    assert summary['count'] == 2
    assert summary['group_size_px'] == pytest.approx(60)
    assert summary['group_size_cm'] == pytest.approx(6)
    assert summary['quality_label'] == "Good"
    assert summary['tiers']['high'] == 1
    assert summary['tiers']['medium'] == 1
    assert not summary['has_changes']


def test_analysis_recomputed_once_per_edit(session):
    runs = session.statistics['analysis_runs']

    session.analysis
    session.summary
    session.analysis
    assert session.statistics['analysis_runs'] == runs + 1

    session.handle_tap((10, 40))
    session.analysis
    session.summary
    assert session.statistics['analysis_runs'] == runs + 2


def test_projection_never_stale(session):
    before = session.analysis.group_size_px

    session.handle_tap((0, 50))   # image (0, 50)

    assert session.analysis.group_size_px == pytest.approx(160)
    assert before == pytest.approx(60)
    assert len(session.markers) == 3
    assert session.markers[2].tier == 'manual'


def test_payload_label_matches_summary(source, sink):
    settings = get_analysis_settings(canvas_side=100, excellent_group_cm=1,
                                     good_group_cm=2, fair_group_cm=3)
    s = DetectionSession(source, sink, settings=settings)
    assert s.analyze_image(b'x')

    assert s.summary['quality_label'] == "Wide spread"
    assert s.build_payload().summary.quality_label == "Wide spread"


def test_markers_in_display_space(session):
    markers = session.markers

    assert markers[0].center.to_tuple() == pytest.approx((50, 50))
    assert markers[0].color == '#10B981'
    assert markers[1].color == '#F59E0B'
    assert markers[0].hit_box.width == pytest.approx(40)


# ============================================================================
# Saving
# ============================================================================

def test_save_success(session, sink):
    completed = Mock()
    session.add_callback('save_completed', completed)
    session.handle_tap((10, 40))

    assert session.save(edited_image_base64='ZWRpdA==', bullets_fired=5)

    assert session.status == SessionStatus.SAVED
    payload = sink.save_result.call_args.args[0]
    assert isinstance(payload, ResultPayload)
    assert payload.session_id == 'sess-9'
    assert len(payload.annotations) == 3
    assert payload.training_data.edits.added == 1
    assert payload.hits_total == 3
    assert session.last_save_result == {'id': 'result-1'}
    completed.assert_called_once_with(payload)


def test_save_failure_keeps_edits(session, sink):
    sink.save_result.side_effect = ServiceError("Connection error")
    session.handle_tap((10, 40))

    assert not session.save()

    assert session.status == SessionStatus.EDITING
    assert session.last_error
    assert len(session.store) == 3
    assert session.statistics['saves_failed'] == 1

    sink.save_result.side_effect = None
    assert session.save()
    assert session.status == SessionStatus.SAVED
    assert session.last_error is None


def test_save_only_while_editing(session, sink):
    assert session.save()
    assert not session.save()
    assert sink.save_result.call_count == 1


def test_save_without_sink_raises(source):
    s = DetectionSession(source, None)
    s.analyze_image(b'x')

    with pytest.raises(Exception, match="No persistence sink"):
        s.save()


def test_cancel_discards_everything(session):
    session.handle_tap((10, 40))
    session.cancel()

    assert session.status == SessionStatus.IDLE
    assert len(session.store) == 0
    assert session.response is None
    assert session.transform.is_identity
    assert session.analysis is None
