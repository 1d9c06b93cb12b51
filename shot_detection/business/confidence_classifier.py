"""
Confidence Classifier
This module maps annotations to rendering tiers.

Tiers only drive colors and statistics; they never affect geometry.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from ..config import AnalysisSettings, get_analysis_settings
from ..core.annotation_store import PointAnnotation

logger = logging.getLogger(__name__)

class ConfidenceTier(Enum):
    """Rendering tiers for annotations."""
    MANUAL = "manual"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

@dataclass(frozen=True)
class TierBreakdown:
    """Counts of annotations per tier."""
    total: int = 0
    manual: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    @property
    def scoring_hits(self) -> int:
        """Points counted as hits inside the scoring area: manual and high confidence."""
        return self.manual + self.high

    def to_dict(self) -> Dict[str, int]:
        return {
            'total': self.total,
            'manual': self.manual,
            'high': self.high,
            'medium': self.medium,
            'low': self.low,
            'scoring_hits': self.scoring_hits,
        }

def classify(annotation: PointAnnotation, settings: Optional[AnalysisSettings] = None) -> ConfidenceTier:
    """
    Classify one annotation.

    Args:
        annotation: Annotation to classify
        settings: Threshold source; defaults to the shared settings

    Returns:
        MANUAL for manual points, otherwise LOW below the low threshold,
        MEDIUM below the medium threshold and HIGH above
    """
    if annotation.is_manual:
        return ConfidenceTier.MANUAL

    settings = settings or get_analysis_settings()
    if annotation.confidence < settings.low_confidence_threshold:
        return ConfidenceTier.LOW
    if annotation.confidence < settings.medium_confidence_threshold:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.HIGH

def classify_all(annotations: Iterable[PointAnnotation],
                 settings: Optional[AnalysisSettings] = None) -> List[ConfidenceTier]:
    settings = settings or get_analysis_settings()
    return [classify(a, settings) for a in annotations]

def tier_breakdown(annotations: Iterable[PointAnnotation],
                   settings: Optional[AnalysisSettings] = None) -> TierBreakdown:
    """Count annotations per tier."""
    counts: Dict[ConfidenceTier, int] = {tier: 0 for tier in ConfidenceTier}
    total = 0
    for tier in classify_all(annotations, settings):
        counts[tier] += 1
        total += 1

    return TierBreakdown(
        total=total,
        manual=counts[ConfidenceTier.MANUAL],
        high=counts[ConfidenceTier.HIGH],
        medium=counts[ConfidenceTier.MEDIUM],
        low=counts[ConfidenceTier.LOW],
    )
