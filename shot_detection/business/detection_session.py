"""
Detection Session Component
This module owns the editing state for one photographed target: the
detection response, the annotation store, the display transform and the
derived projections every view renders from.

Preview, editor and summary views all read from the same session, so the
group size they display is always computed by the same code from the same
annotations.
"""

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..config import AnalysisSettings, get_analysis_settings
from ..core import overlay_manager
from ..core.annotation_store import AnnotationStore
from ..core.coordinate_system import IDENTITY_TRANSFORM, DisplayTransform, compute_transform
from ..core.interaction_handler import EditMode, InteractionHandler, NoOp, TapAction
from ..core.overlay_manager import Marker
from ..models import AnalyzeResponse, ResultPayload
from ..utils.error_handling import ErrorHandlingSystem, ShotDetectionError
from .api_integration import DetectionSource, PersistenceSink
from .confidence_classifier import ConfidenceTier, TierBreakdown, classify_all, tier_breakdown
from .data_processor import build_result_payload, parse_detection_response
from .group_analyzer import GroupAnalysis, analyze, quality_label

logger = logging.getLogger(__name__)

class SessionStatus(Enum):
    """Lifecycle states of a detection session."""
    IDLE = "idle"              # Nothing loaded
    ANALYZING = "analyzing"    # Waiting on the detection service
    EDITING = "editing"        # Annotations loaded and editable
    SAVING = "saving"          # Waiting on the persistence service
    SAVED = "saved"
    ERROR = "error"            # Analysis failed

class DetectionSession:
    """
    Single owner of the annotation editing state.
    Derived values are memoized per store version.
    """

    def __init__(self,
                 detection_source: Optional[DetectionSource] = None,
                 persistence_sink: Optional[PersistenceSink] = None,
                 settings: Optional[AnalysisSettings] = None,
                 error_handler: Optional[ErrorHandlingSystem] = None,
                 session_id: Optional[str] = None,
                 preset: str = 'default'):
        """
        Initialize the session.

        Args:
            detection_source: Service turning an image into detections
            persistence_sink: Service storing the final result
            settings: Analysis settings (shared defaults when omitted)
            error_handler: Error record keeper
            session_id: Training session the result belongs to
            preset: Visualization preset for markers and snapshots
        """
        self.settings = settings or get_analysis_settings()
        self.detection_source = detection_source
        self.persistence_sink = persistence_sink
        self.error_handler = error_handler or ErrorHandlingSystem()
        self.session_id = session_id
        self.preset = preset

        self.store = AnnotationStore(
            manual_bbox_size=self.settings.manual_bbox_size,
            history_limit=self.settings.history_limit,
        )
        self.interaction = InteractionHandler(
            self.store,
            tolerance_px=self.settings.tap_tolerance_px,
            hit_box_px=self.settings.marker_hit_box_px,
        )

        # Session state
        self.status: SessionStatus = SessionStatus.IDLE
        self.response: Optional[AnalyzeResponse] = None
        self.image_size: Tuple[Optional[float], Optional[float]] = (None, None)
        self.transform: DisplayTransform = IDENTITY_TRANSFORM
        self.last_error: Optional[str] = None
        self.last_save_result: Optional[Mapping[str, Any]] = None

        # Memoized projections: name -> (cache key, value)
        self._projections: Dict[str, Tuple[Any, Any]] = {}

        self.status_lock = threading.Lock()

        self.statistics: Dict[str, Any] = {
            'analyses_requested': 0,
            'analysis_runs': 0,
            'saves_attempted': 0,
            'saves_failed': 0,
            'last_analysis_time': 0.0,
        }

        self.callbacks: Dict[str, List[Callable]] = {
            'status_changed': [],
            'annotations_changed': [],
            'save_completed': [],
            'error_occurred': [],
        }

        self.store.add_callback('annotations_changed', self._on_annotations_changed)

        logger.info("DetectionSession initialized")

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def analyze_image(self, image_bytes: bytes, filename: Optional[str] = None) -> bool:
        """
        Send an image to the detection service and load the result.

        Returns:
            True when the annotations were loaded; on failure the status is
            ERROR, last_error holds a user-facing message and the store is
            left untouched. False without any change when annotations are
            already loaded (retake() first)
        """
        if self.detection_source is None:
            raise ShotDetectionError("No detection source configured")

        if self.store.is_seeded or len(self.store):
            logger.warning(f"Analysis ignored in status {self.status.value}: annotations already loaded")
            return False

        self.statistics['analyses_requested'] += 1
        self._set_status(SessionStatus.ANALYZING)
        start_time = time.time()

        try:
            raw = self.detection_source.detect(image_bytes, filename)
            self.load_response(raw)
        except Exception as e:
            record = self.error_handler.handle_error(
                e, component='DetectionSession', operation='analyze_image',
                user_action='analyze target photo',
            )
            self.last_error = record.user_friendly_message
            self._set_status(SessionStatus.ERROR)
            self._trigger_callbacks('error_occurred', record)
            return False
        finally:
            self.statistics['last_analysis_time'] = time.time() - start_time

        return True

    def load_response(self, raw: Any) -> AnalyzeResponse:
        """
        Parse a detection response, seed the store and compute the transform.

        Raises:
            DetectionResponseError: if the response is malformed
            AnnotationStoreError: if annotations are already loaded (retake first)
        """
        response = parse_detection_response(raw)
        self.store.seed(response.detections)

        self.response = response
        self.image_size = response.metadata.dimensions()
        self.transform = compute_transform(self.image_size[0], self.image_size[1],
                                           self.settings.canvas_side)
        self.last_error = None
        self._set_status(SessionStatus.EDITING)
        return response

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    @property
    def mode(self) -> EditMode:
        return self.interaction.mode

    def set_mode(self, mode: EditMode):
        self.interaction.set_mode(mode)

    def handle_tap(self, display_point: Any) -> TapAction:
        """Apply a canvas tap in the current mode."""
        if not self._editable():
            return NoOp("session is not editable")
        return self.interaction.handle_tap(display_point, self.transform)

    def handle_marker_tap(self, index: Any) -> TapAction:
        """Apply a direct tap on a rendered marker."""
        if not self._editable():
            return NoOp("session is not editable")
        return self.interaction.handle_marker_tap(index)

    def marker_at(self, display_point: Any) -> Optional[int]:
        return self.interaction.marker_at(display_point, self.transform)

    def undo(self) -> bool:
        return self._editable() and self.store.undo()

    def redo(self) -> bool:
        return self._editable() and self.store.redo()

    def _editable(self) -> bool:
        if self.status != SessionStatus.EDITING:
            logger.debug(f"Edit ignored in status {self.status.value}")
            return False
        return True

    # ------------------------------------------------------------------
    # Derived projections
    # ------------------------------------------------------------------

    @property
    def cm_per_pixel(self) -> Optional[float]:
        return self.response.cm_per_pixel if self.response else None

    @property
    def analysis(self) -> Optional[GroupAnalysis]:
        """Group geometry for the current annotations."""
        return self._projection('analysis', self._run_analysis)

    @property
    def tiers(self) -> List[ConfidenceTier]:
        return self._projection('tiers', lambda: classify_all(self.store.annotations, self.settings))

    @property
    def tier_breakdown(self) -> TierBreakdown:
        return self._projection('tier_breakdown', lambda: tier_breakdown(self.store.annotations, self.settings))

    @property
    def markers(self) -> List[Marker]:
        """Display-space markers in rendering order."""
        return self._projection('markers', lambda: overlay_manager.build_markers(
            self.store.annotations,
            self.transform,
            self.tiers,
            radius=self.settings.marker_radius,
            hit_box_px=self.settings.marker_hit_box_px,
            preset=self.preset,
        ))

    @property
    def summary(self) -> Dict[str, Any]:
        """Values shown on the result card."""
        def build():
            analysis = self.analysis
            group_size_cm = analysis.group_size_cm if analysis else None
            return {
                'count': len(self.store),
                'tiers': self.tier_breakdown.to_dict(),
                'group_size_px': analysis.group_size_px if analysis else None,
                'group_size_cm': group_size_cm,
                'tightest_pair_px': analysis.min_pair.distance_px if analysis else None,
                'tightest_pair_cm': analysis.min_pair.distance_cm if analysis else None,
                'quality_label': quality_label(group_size_cm, self.settings),
                'has_scale': self.cm_per_pixel is not None,
                'has_changes': self.store.has_changes,
                'edits': self.store.edit_counts(),
                'can_undo': self.store.can_undo,
                'can_redo': self.store.can_redo,
            }
        return self._projection('summary', build)

    def _run_analysis(self) -> Optional[GroupAnalysis]:
        self.statistics['analysis_runs'] += 1
        return analyze(self.store.annotations, self.cm_per_pixel)

    def _projection(self, name: str, compute: Callable[[], Any]) -> Any:
        key = (self.store.version, self.transform, self.cm_per_pixel)
        cached = self._projections.get(name)
        if cached is not None and cached[0] == key:
            return cached[1]
        value = compute()
        self._projections[name] = (key, value)
        return value

    def _on_annotations_changed(self, store: AnnotationStore, reason: str):
        self._projections.clear()
        self._trigger_callbacks('annotations_changed', reason)

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def build_payload(self, edited_image_base64: Optional[str] = None,
                      bullets_fired: Optional[int] = None) -> ResultPayload:
        """Build the persistence payload from the current annotations."""
        return build_result_payload(
            self.store.annotations,
            self.response,
            edits=self.store.edit_counts(),
            has_changes=self.store.has_changes,
            breakdown=self.tier_breakdown,
            analysis=self.analysis,
            edited_image_base64=edited_image_base64,
            bullets_fired=bullets_fired,
            session_id=self.session_id,
            settings=self.settings,
        )

    def render_snapshot(self) -> Optional[str]:
        """Render the edited markers over the analyzed image, as base64 JPEG."""
        image = self.response.display_image_base64 if self.response else None
        if image is None:
            return None
        analysis = self.analysis
        return overlay_manager.render_snapshot(
            image,
            self.store.annotations,
            self.transform,
            self.tiers,
            max_pair=analysis.max_pair.indices if analysis else None,
            canvas_side=self.settings.canvas_side,
            preset=self.preset,
            marker_radius=self.settings.marker_radius,
        )

    def save(self, edited_image_base64: Optional[str] = None,
             bullets_fired: Optional[int] = None,
             include_snapshot: bool = False) -> bool:
        """
        Hand the corrected annotations to the persistence service.

        Args:
            edited_image_base64: Snapshot rendered by the caller
            bullets_fired: Shots fired; caps the reported hit counts
            include_snapshot: Render a snapshot when none is given

        Returns:
            True on success. On failure the session returns to EDITING with
            last_error set and the annotations kept, so the user can retry.
        """
        if self.persistence_sink is None:
            raise ShotDetectionError("No persistence sink configured")

        with self.status_lock:
            if self.status != SessionStatus.EDITING:
                logger.warning(f"Save ignored in status {self.status.value}")
                return False
            self.status = SessionStatus.SAVING
        self._trigger_callbacks('status_changed', SessionStatus.SAVING)

        self.statistics['saves_attempted'] += 1

        try:
            if edited_image_base64 is None and include_snapshot:
                edited_image_base64 = self.render_snapshot()
            payload = self.build_payload(edited_image_base64, bullets_fired)
            self.last_save_result = self.persistence_sink.save_result(payload)
        except Exception as e:
            self.statistics['saves_failed'] += 1
            record = self.error_handler.handle_error(
                e, component='DetectionSession', operation='save',
                user_action='save corrected detections',
            )
            self.last_error = record.user_friendly_message
            self._set_status(SessionStatus.EDITING)
            self._trigger_callbacks('error_occurred', record)
            return False

        self.last_error = None
        logger.info(f"Saved {len(payload.annotations)} annotations")
        self._set_status(SessionStatus.SAVED)
        self._trigger_callbacks('save_completed', payload)
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def retake(self):
        """Discard the current target so a new photo can be analyzed."""
        self.store.reset()
        self.response = None
        self.image_size = (None, None)
        self.transform = IDENTITY_TRANSFORM
        self.last_error = None
        self.last_save_result = None
        self._projections.clear()
        self._set_status(SessionStatus.IDLE)
        logger.info("Detection session reset")

    def cancel(self):
        """Abandon the flow; nothing is saved."""
        self.retake()

    def _set_status(self, status: SessionStatus):
        with self.status_lock:
            if self.status == status:
                return
            old_status = self.status
            self.status = status
        logger.debug(f"Session status: {old_status.value} -> {status.value}")
        self._trigger_callbacks('status_changed', status)

    def get_statistics(self) -> Dict[str, Any]:
        stats = dict(self.statistics)
        stats['status'] = self.status.value
        stats['annotation_count'] = len(self.store)
        return stats

    def add_callback(self, event_type: str, callback: Callable):
        """
        Add a callback for session events.

        Args:
            event_type: 'status_changed', 'annotations_changed', 'save_completed' or 'error_occurred'
            callback: Callback function
        """
        if event_type in self.callbacks:
            self.callbacks[event_type].append(callback)
        else:
            logger.warning(f"Unknown callback event type: {event_type}")

    def _trigger_callbacks(self, event_type: str, *args, **kwargs):
        """Trigger all callbacks for a specific event type."""
        for callback in self.callbacks.get(event_type, []):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in {event_type} callback: {e}")
