"""
Shot Detection Package
This package turns bullet-hole detections on a photographed paper target into
an editable annotation set and the group-size figures derived from it.

## Package Structure

### Configuration (config/)
- analysis_config.py: Canvas, tap tolerance, tier and quality thresholds (pydantic-settings)
- visualization_config.py: Tier colors and marker styling presets
- api_config.py: Detection and persistence service endpoints

### Core Components (core/)
- coordinate_system.py: Letterbox transform between image pixels and the square canvas
- annotation_store.py: Ordered annotation set with undo/redo
- interaction_handler.py: Tap resolution in add/remove mode
- overlay_manager.py: Display markers and snapshot rendering

### Business Logic (business/)
- confidence_classifier.py: Manual/high/medium/low tiers
- group_analyzer.py: Furthest pair (group size) and closest pair
- data_processor.py: Response validation and result payloads
- api_integration.py: Detection and persistence clients
- detection_session.py: Editing session shared by every view

### Utilities (utils/)
- error_handling.py: Exception types and user-facing error records
- geometry_utils.py: Point type and distance helpers

## Usage

```python
from shot_detection import DetectionSession, DetectionClient, PersistenceClient, EditMode

session = DetectionSession(DetectionClient(), PersistenceClient(), session_id="abc")
session.analyze_image(image_bytes, "target.jpg")

session.set_mode(EditMode.REMOVE)
session.handle_tap((120.0, 80.0))

print(session.summary['group_size_cm'], session.summary['quality_label'])
session.save(bullets_fired=10, include_snapshot=True)
```
"""

# Main components
from .core import (
    AnnotationStore,
    DisplayTransform,
    InteractionHandler,
    PointAnnotation,
    compute_transform,
    resolve_tap,
)
from .business import (
    DetectionClient,
    DetectionSession,
    PersistenceClient,
    analyze,
    build_result_payload,
    classify,
    parse_detection_response,
    quality_label,
)
from .utils import ErrorHandlingSystem, GeometryUtils, Point2D

# Configuration
from .config import (
    AnalysisSettings,
    get_analysis_settings,
    get_visualization_config,
    get_api_config,
)
from .logging_config import init_logging

# Types and Enums
from .core import EditMode, AddAt, RemoveAt, NoOp
from .business import ConfidenceTier, SessionStatus
from .utils import (
    ShotDetectionError,
    AnnotationStoreError,
    DetectionResponseError,
    ServiceError,
)

__version__ = "1.0.0"

__all__ = [
    # Core Components
    'AnnotationStore',
    'DisplayTransform',
    'InteractionHandler',
    'PointAnnotation',
    'compute_transform',
    'resolve_tap',

    # Business Logic
    'DetectionClient',
    'DetectionSession',
    'PersistenceClient',
    'analyze',
    'build_result_payload',
    'classify',
    'parse_detection_response',
    'quality_label',

    # Utilities
    'ErrorHandlingSystem',
    'GeometryUtils',
    'Point2D',
    'init_logging',

    # Configuration
    'AnalysisSettings',
    'get_analysis_settings',
    'get_visualization_config',
    'get_api_config',

    # Enums and Types
    'EditMode',
    'AddAt',
    'RemoveAt',
    'NoOp',
    'ConfidenceTier',
    'SessionStatus',
    'ShotDetectionError',
    'AnnotationStoreError',
    'DetectionResponseError',
    'ServiceError',
]
