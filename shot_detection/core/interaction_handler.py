"""
Interaction Handler Component
This module resolves canvas taps into annotation edits.

A tap is first reduced to an action (AddAt, RemoveAt or NoOp) by pure
functions, then applied to the AnnotationStore by InteractionHandler. The
edit mode is only ever changed through set_mode().
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from ..utils.geometry_utils import GeometryUtils, Point2D
from .annotation_store import AnnotationStore, PointAnnotation
from .coordinate_system import DisplayTransform

logger = logging.getLogger(__name__)

DEFAULT_TAP_TOLERANCE_PX = 30.0
DEFAULT_MARKER_HIT_BOX_PX = 40.0

class EditMode(Enum):
    """Editing modes for the annotation canvas."""
    ADD = "add"          # Tap places a manual point
    REMOVE = "remove"    # Tap deletes a nearby point

@dataclass(frozen=True)
class AddAt:
    """Add a manual annotation at an image-space point."""
    image_point: Point2D

@dataclass(frozen=True)
class RemoveAt:
    """Remove the annotation at a position in the store."""
    index: int

@dataclass(frozen=True)
class NoOp:
    """Tap resolved to nothing."""
    reason: str = ""

TapAction = Union[AddAt, RemoveAt, NoOp]

def _display_point(value: Any) -> Optional[Point2D]:
    """Parse a tap position; None when it is missing or not finite."""
    if value is None:
        return None
    try:
        point = Point2D.from_value(value)
    except ValueError:
        return None
    return point if point.is_finite() else None

def resolve_tap(display_point: Any,
                mode: EditMode,
                transform: DisplayTransform,
                annotations: Sequence[PointAnnotation],
                tolerance_px: float = DEFAULT_TAP_TOLERANCE_PX) -> TapAction:
    """
    Resolve a tap on the canvas into an action.

    Args:
        display_point: Tap position in display pixels, as Point2D or (x, y)
        mode: Current edit mode
        transform: Image-to-display transform
        annotations: Current annotations in insertion order
        tolerance_px: Remove radius in display pixels

    Returns:
        AddAt in ADD mode; in REMOVE mode RemoveAt for the first annotation
        (insertion order) strictly inside the tolerance, otherwise NoOp
    """
    point = _display_point(display_point)
    if point is None:
        logger.warning(f"Ignoring malformed tap: {display_point!r}")
        return NoOp("malformed tap")

    image_point = transform.to_image(point)

    if mode == EditMode.ADD:
        return AddAt(image_point)

    if mode == EditMode.REMOVE:
        # Tolerance is fixed on screen, so convert it back into image pixels
        radius = transform.image_length(tolerance_px)
        index = GeometryUtils.first_within(image_point, [a.center for a in annotations], radius)
        if index < 0:
            logger.debug(f"No annotation within {radius:.1f}px of ({image_point.x:.1f}, {image_point.y:.1f})")
            return NoOp("no annotation within tolerance")
        return RemoveAt(index)

    logger.warning(f"Unknown edit mode: {mode!r}")
    return NoOp("unknown mode")

def marker_at(display_point: Any,
              transform: DisplayTransform,
              annotations: Sequence[PointAnnotation],
              hit_box_px: float = DEFAULT_MARKER_HIT_BOX_PX) -> Optional[int]:
    """
    Find the marker whose square touch target contains a display point.

    When touch targets overlap the topmost marker, i.e. the one rendered
    last, wins.

    Returns:
        Index of the hit marker, or None
    """
    point = _display_point(display_point)
    if point is None:
        return None

    half = hit_box_px / 2
    for index in range(len(annotations) - 1, -1, -1):
        center = transform.to_display(annotations[index].center)
        if abs(point.x - center.x) <= half and abs(point.y - center.y) <= half:
            return index
    return None

def resolve_marker_tap(index: Any, mode: EditMode, annotations: Sequence[PointAnnotation]) -> TapAction:
    """
    Resolve a direct tap on a rendered marker.

    In REMOVE mode the marker is removed without a distance search.
    """
    if mode != EditMode.REMOVE:
        return NoOp("marker taps only act in remove mode")
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(annotations):
        logger.warning(f"Ignoring marker tap with invalid index {index!r}")
        return NoOp("invalid marker index")
    return RemoveAt(index)

class InteractionHandler:
    """
    Applies tap actions to an AnnotationStore.
    Owns the current edit mode.
    """

    def __init__(self, store: AnnotationStore,
                 tolerance_px: float = DEFAULT_TAP_TOLERANCE_PX,
                 hit_box_px: float = DEFAULT_MARKER_HIT_BOX_PX,
                 mode: EditMode = EditMode.ADD):
        """
        Initialize the interaction handler.

        Args:
            store: Store receiving the edits
            tolerance_px: Remove radius in display pixels
            hit_box_px: Side of each marker's touch target in display pixels
            mode: Initial edit mode
        """
        self.store = store
        self.tolerance_px = tolerance_px
        self.hit_box_px = hit_box_px
        self._mode = mode

        self.callbacks: Dict[str, List[Callable]] = {
            'tap_resolved': [],
            'mode_changed': [],
        }

    @property
    def mode(self) -> EditMode:
        return self._mode

    def set_mode(self, mode: EditMode):
        """Switch the edit mode."""
        if not isinstance(mode, EditMode):
            mode = EditMode(mode)
        if mode == self._mode:
            return
        old_mode = self._mode
        self._mode = mode
        logger.info(f"Edit mode changed: {old_mode.value} -> {mode.value}")
        self._trigger_callbacks('mode_changed', old_mode, mode)

    def handle_tap(self, display_point: Any, transform: DisplayTransform) -> TapAction:
        """Resolve a tap on empty canvas and apply it to the store."""
        action = resolve_tap(display_point, self._mode, transform,
                             self.store.annotations, self.tolerance_px)
        return self.apply(action)

    def handle_marker_tap(self, index: Any) -> TapAction:
        """Apply a direct tap on the marker at ``index``."""
        action = resolve_marker_tap(index, self._mode, self.store.annotations)
        return self.apply(action)

    def marker_at(self, display_point: Any, transform: DisplayTransform) -> Optional[int]:
        """Index of the marker whose touch target contains ``display_point``."""
        return marker_at(display_point, transform, self.store.annotations, self.hit_box_px)

    def apply(self, action: TapAction) -> TapAction:
        """Mutate the store according to ``action``."""
        if isinstance(action, AddAt):
            self.store.add(action.image_point)
        elif isinstance(action, RemoveAt):
            self.store.remove_at(action.index)

        self._trigger_callbacks('tap_resolved', action)
        return action

    def add_callback(self, event_type: str, callback: Callable):
        """
        Add a callback for interaction events.

        Args:
            event_type: Type of event ('tap_resolved', 'mode_changed')
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
