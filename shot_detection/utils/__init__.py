"""
Utilities Package for Shot Detection
This package provides error handling and geometry helpers.
"""

from .error_handling import (
    ErrorHandlingSystem,
    ErrorSeverity,
    ErrorCategory,
    ErrorContext,
    ErrorRecord,
    ShotDetectionError,
    AnnotationStoreError,
    DetectionResponseError,
    ServiceError,
)
from .geometry_utils import (
    GeometryUtils,
    Point2D,
)

__all__ = [
    # Error Handling
    'ErrorHandlingSystem',
    'ErrorSeverity',
    'ErrorCategory',
    'ErrorContext',
    'ErrorRecord',
    'ShotDetectionError',
    'AnnotationStoreError',
    'DetectionResponseError',
    'ServiceError',

    # Geometry Utils
    'GeometryUtils',
    'Point2D',
]
