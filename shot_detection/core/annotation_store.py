"""
Annotation Store Component
This module holds the ordered set of point annotations being edited.

Detected points are seeded once from the detection service; manual points are
appended by user taps. Every mutation bumps ``version`` and notifies
``annotations_changed`` listeners so derived state (group geometry, tiers,
markers) is recomputed from the new set.
"""

import logging
import operator
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from ..utils.error_handling import AnnotationStoreError
from ..utils.geometry_utils import Point2D, PointLike
from .coordinate_system import BoundingBox

logger = logging.getLogger(__name__)

MANUAL_BBOX_SIZE = 30.0
DEFAULT_HISTORY_LIMIT = 50

@dataclass(frozen=True)
class PointAnnotation:
    """A single detected or manually added bullet hole, in image pixel space."""
    id: str
    center: Point2D
    bbox: BoundingBox
    confidence: float
    is_manual: bool

    def to_record(self) -> Dict[str, Any]:
        """Reduce to the persisted shape."""
        return {
            'center': [self.center.x, self.center.y],
            'bbox': list(self.bbox.as_tuple()),
            'confidence': self.confidence,
            'is_manual': self.is_manual,
        }

def _field(detection: Any, name: str) -> Any:
    if isinstance(detection, Mapping):
        return detection[name]
    return getattr(detection, name)

def annotation_from_detection(index: int, detection: Any) -> PointAnnotation:
    """
    Build a non-manual annotation from a detection entry.

    Args:
        index: Position of the detection in the service response
        detection: Mapping or object exposing bbox, center and confidence

    Raises:
        AnnotationStoreError: if the entry is missing fields or malformed
    """
    try:
        center = Point2D.from_value(_field(detection, 'center'))
        x1, y1, x2, y2 = (float(v) for v in _field(detection, 'bbox'))
        confidence = float(_field(detection, 'confidence'))
    except (KeyError, AttributeError, TypeError, ValueError) as e:
        raise AnnotationStoreError(f"Malformed detection at index {index}: {e}") from e

    return PointAnnotation(
        id=f"ai-{index}",
        center=center,
        bbox=BoundingBox(x1, y1, x2, y2),
        confidence=confidence,
        is_manual=False,
    )

class AnnotationStore:
    """
    Insertion-ordered annotation set with unique ids.
    Mutations are serialized through a single lock.
    """

    def __init__(self, manual_bbox_size: float = MANUAL_BBOX_SIZE,
                 history_limit: int = DEFAULT_HISTORY_LIMIT,
                 clock: Callable[[], float] = time.time):
        """
        Initialize an empty store.

        Args:
            manual_bbox_size: Side of the synthesized bbox for manual points
            history_limit: Maximum number of undo snapshots kept
            clock: Time source used to mint manual ids
        """
        self.manual_bbox_size = manual_bbox_size
        self.history_limit = max(1, history_limit)
        self._clock = clock

        self._annotations: List[PointAnnotation] = []
        self._seeded: bool = False
        self._seeded_count: int = 0
        self._version: int = 0
        self._last_manual_token: int = 0

        # Undo/redo snapshots
        self._history: List[Tuple[PointAnnotation, ...]] = [()]
        self._history_index: int = 0

        self._lock = threading.RLock()

        self.callbacks: Dict[str, List[Callable]] = {
            'annotations_changed': [],
        }

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def annotations(self) -> Tuple[PointAnnotation, ...]:
        """Immutable snapshot of the current sequence."""
        with self._lock:
            return tuple(self._annotations)

    @property
    def version(self) -> int:
        """Counter bumped on every mutation."""
        return self._version

    @property
    def is_seeded(self) -> bool:
        return self._seeded

    @property
    def seeded_count(self) -> int:
        return self._seeded_count

    def __len__(self) -> int:
        with self._lock:
            return len(self._annotations)

    def __iter__(self) -> Iterator[PointAnnotation]:
        return iter(self.annotations)

    def __getitem__(self, index: int) -> PointAnnotation:
        with self._lock:
            return self._annotations[index]

    def index_of(self, annotation_id: str) -> int:
        """Position of the annotation with ``annotation_id``, or -1."""
        with self._lock:
            for index, annotation in enumerate(self._annotations):
                if annotation.id == annotation_id:
                    return index
        return -1

    @property
    def manual_count(self) -> int:
        with self._lock:
            return sum(1 for a in self._annotations if a.is_manual)

    @property
    def has_changes(self) -> bool:
        """True when the set differs from what the detection service returned."""
        return len(self._annotations) != self._seeded_count or self.manual_count > 0

    def edit_counts(self) -> Dict[str, int]:
        """
        Summarize the user's corrections.

        Returns:
            Dictionary with 'added' (manual points) and 'removed' (detected points deleted)
        """
        added = self.manual_count
        return {
            'added': added,
            'removed': self._seeded_count - len(self._annotations) + added,
        }

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def seed(self, detections: Iterable[Any]) -> Tuple[PointAnnotation, ...]:
        """
        Replace the set with detections from the detection service.

        Args:
            detections: Entries exposing bbox, center and confidence

        Returns:
            The seeded annotations

        Raises:
            AnnotationStoreError: if the store was already seeded or edited
                (call reset() first) or an entry is malformed
        """
        with self._lock:
            if self._seeded:
                raise AnnotationStoreError("Store already seeded; reset() before seeding again")
            if self._annotations or len(self._history) > 1:
                raise AnnotationStoreError("Store holds manual edits; reset() before seeding")

            seeded = [annotation_from_detection(i, d) for i, d in enumerate(detections)]

            self._annotations = seeded
            self._seeded = True
            self._seeded_count = len(seeded)
            self._history = [tuple(seeded)]
            self._history_index = 0
            self._version += 1
            snapshot = tuple(seeded)

        logger.info(f"Annotation store seeded with {len(snapshot)} detections")
        self._trigger_callbacks('annotations_changed', self, 'seed')
        return snapshot

    def add(self, point: PointLike) -> PointAnnotation:
        """
        Append a manual annotation centered at ``point`` (image space).

        Returns:
            The new annotation
        """
        center = Point2D.from_value(point)

        with self._lock:
            annotation = PointAnnotation(
                id=self._next_manual_id(),
                center=center,
                bbox=BoundingBox.square(center, self.manual_bbox_size),
                confidence=1.0,
                is_manual=True,
            )
            self._annotations.append(annotation)
            self._commit()

        logger.debug(f"Added manual annotation {annotation.id} at ({center.x:.1f}, {center.y:.1f})")
        self._trigger_callbacks('annotations_changed', self, 'add')
        return annotation

    def remove_at(self, index: int) -> Optional[PointAnnotation]:
        """
        Delete the annotation at ``index``.

        Accepts any integer type (numpy integers included). Out-of-range
        indices (negative included) are ignored.

        Returns:
            The removed annotation, or None when nothing was removed
        """
        try:
            position = None if isinstance(index, bool) else operator.index(index)
        except TypeError:
            position = None

        with self._lock:
            if position is None or not 0 <= position < len(self._annotations):
                logger.warning(f"remove_at ignored: index {index!r} out of range (size {len(self._annotations)})")
                return None

            removed = self._annotations.pop(position)
            self._commit()

        logger.debug(f"Removed annotation {removed.id} from index {position}")
        self._trigger_callbacks('annotations_changed', self, 'remove')
        return removed

    def reset(self):
        """Empty the store regardless of provenance; a new seed() is allowed afterwards."""
        with self._lock:
            self._annotations = []
            self._seeded = False
            self._seeded_count = 0
            self._history = [()]
            self._history_index = 0
            self._version += 1

        logger.info("Annotation store reset")
        self._trigger_callbacks('annotations_changed', self, 'reset')

    # ------------------------------------------------------------------
    # Undo / redo
    # ------------------------------------------------------------------

    @property
    def can_undo(self) -> bool:
        return self._history_index > 0

    @property
    def can_redo(self) -> bool:
        return self._history_index < len(self._history) - 1

    def undo(self) -> bool:
        """Restore the previous snapshot. Returns False when there is nothing to undo."""
        with self._lock:
            if not self.can_undo:
                return False
            self._history_index -= 1
            self._restore(self._history[self._history_index])

        self._trigger_callbacks('annotations_changed', self, 'undo')
        return True

    def redo(self) -> bool:
        """Re-apply an undone snapshot. Returns False when there is nothing to redo."""
        with self._lock:
            if not self.can_redo:
                return False
            self._history_index += 1
            self._restore(self._history[self._history_index])

        self._trigger_callbacks('annotations_changed', self, 'redo')
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_manual_id(self) -> str:
        token = int(self._clock() * 1000)
        if token <= self._last_manual_token:
            token = self._last_manual_token + 1
        self._last_manual_token = token
        return f"manual-{token}"

    def _commit(self):
        """Record the current sequence as a new history entry (lock held)."""
        history = self._history[:self._history_index + 1]
        history.append(tuple(self._annotations))
        if len(history) > self.history_limit:
            del history[:len(history) - self.history_limit]
        self._history = history
        self._history_index = len(history) - 1
        self._version += 1

    def _restore(self, snapshot: Tuple[PointAnnotation, ...]):
        self._annotations = list(snapshot)
        self._version += 1

    def add_callback(self, event_type: str, callback: Callable):
        """
        Add a callback for store events.

        Args:
            event_type: Type of event ('annotations_changed')
            callback: Called as callback(store, reason)
        """
        if event_type in self.callbacks:
            self.callbacks[event_type].append(callback)
        else:
            logger.warning(f"Unknown callback event type: {event_type}")

    def remove_callback(self, event_type: str, callback: Callable):
        if event_type in self.callbacks and callback in self.callbacks[event_type]:
            self.callbacks[event_type].remove(callback)

    def _trigger_callbacks(self, event_type: str, *args, **kwargs):
        """Trigger all callbacks for a specific event type."""
        for callback in self.callbacks.get(event_type, []):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in {event_type} callback: {e}")
