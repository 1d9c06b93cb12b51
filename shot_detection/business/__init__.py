"""
Business Logic Package for Shot Detection
This package provides classification, group analysis, payload building, service clients and the editing session.
"""

from .confidence_classifier import (
    ConfidenceTier,
    TierBreakdown,
    classify,
    classify_all,
    tier_breakdown,
)
from .group_analyzer import (
    GroupAnalysis,
    PairResult,
    analyze,
    quality_label,
)
from .data_processor import (
    normalize_metadata,
    parse_detection_response,
    build_result_payload,
)
from .api_integration import (
    APIResponse,
    DetectionClient,
    DetectionSource,
    PersistenceClient,
    PersistenceSink,
    ServiceClient,
)
from .detection_session import (
    DetectionSession,
    SessionStatus,
)

__all__ = [
    # Confidence Classification
    'ConfidenceTier',
    'TierBreakdown',
    'classify',
    'classify_all',
    'tier_breakdown',

    # Group Analysis
    'GroupAnalysis',
    'PairResult',
    'analyze',
    'quality_label',

    # Data Processing
    'normalize_metadata',
    'parse_detection_response',
    'build_result_payload',

    # API Integration
    'APIResponse',
    'DetectionClient',
    'DetectionSource',
    'PersistenceClient',
    'PersistenceSink',
    'ServiceClient',

    # Session
    'DetectionSession',
    'SessionStatus',
]
