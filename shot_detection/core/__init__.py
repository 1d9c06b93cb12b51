"""
Core Components Package for Shot Detection
This package provides coordinate mapping, annotation state, tap handling and marker rendering.
"""

from .coordinate_system import (
    BoundingBox,
    DisplayTransform,
    IDENTITY_TRANSFORM,
    compute_transform,
)
from .annotation_store import (
    AnnotationStore,
    PointAnnotation,
    annotation_from_detection,
)
from .interaction_handler import (
    InteractionHandler,
    EditMode,
    AddAt,
    RemoveAt,
    NoOp,
    resolve_tap,
    resolve_marker_tap,
    marker_at,
)
from .overlay_manager import (
    Marker,
    build_markers,
    load_image,
    render_snapshot,
)

__all__ = [
    # Coordinate System
    'BoundingBox',
    'DisplayTransform',
    'IDENTITY_TRANSFORM',
    'compute_transform',

    # Annotation Store
    'AnnotationStore',
    'PointAnnotation',
    'annotation_from_detection',

    # Interaction Handling
    'InteractionHandler',
    'EditMode',
    'AddAt',
    'RemoveAt',
    'NoOp',
    'resolve_tap',
    'resolve_marker_tap',
    'marker_at',

    # Overlay Management
    'Marker',
    'build_markers',
    'load_image',
    'render_snapshot',
]
