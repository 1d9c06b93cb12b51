"""
Group Geometry Analyzer
This module computes group size (furthest pair) and tightest pair over the
current annotations, with optional conversion to centimeters.

Every call recomputes from scratch over all unordered pairs. Shot counts are
small (tens, rarely a few hundred), so the quadratic pair scan is vectorized
with numpy instead of using a hull or sweep-line structure.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from ..config import AnalysisSettings, get_analysis_settings
from ..core.annotation_store import PointAnnotation
from ..utils.geometry_utils import GeometryUtils, Point2D

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class PairResult:
    """A pair of annotations and the distance between their centers."""
    indices: Tuple[int, int]
    ids: Tuple[str, str]
    distance_px: float
    distance_cm: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'indices': list(self.indices),
            'ids': list(self.ids),
            'distance_px': self.distance_px,
            'distance_cm': self.distance_cm,
        }

@dataclass(frozen=True)
class GroupAnalysis:
    """Derived geometry for an annotation set of at least two points."""
    max_pair: PairResult
    min_pair: PairResult
    count: int
    avg_distance_px: float
    spread_x_px: float
    spread_y_px: float
    center_of_mass: Point2D
    avg_distance_cm: Optional[float] = None
    spread_x_cm: Optional[float] = None
    spread_y_cm: Optional[float] = None

    @property
    def group_size_px(self) -> float:
        return self.max_pair.distance_px

    @property
    def group_size_cm(self) -> Optional[float]:
        return self.max_pair.distance_cm

    def to_dict(self) -> Dict[str, Any]:
        return {
            'max_pair': self.max_pair.to_dict(),
            'min_pair': self.min_pair.to_dict(),
            'count': self.count,
            'avg_distance_px': self.avg_distance_px,
            'spread_x_px': self.spread_x_px,
            'spread_y_px': self.spread_y_px,
            'center_of_mass': list(self.center_of_mass.to_tuple()),
            'avg_distance_cm': self.avg_distance_cm,
            'spread_x_cm': self.spread_x_cm,
            'spread_y_cm': self.spread_y_cm,
        }

def _usable_scale(cm_per_pixel: Optional[float]) -> Optional[float]:
    if cm_per_pixel is None:
        return None
    try:
        value = float(cm_per_pixel)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value

def _to_cm(distance_px: float, cm_per_pixel: Optional[float]) -> Optional[float]:
    return distance_px * cm_per_pixel if cm_per_pixel is not None else None

def analyze(annotations: Sequence[PointAnnotation],
            cm_per_pixel: Optional[float] = None) -> Optional[GroupAnalysis]:
    """
    Compute furthest and closest pairs over the annotation centers.

    Pairs are scanned in (i, j) order with i < j, ascending i then j; ties
    keep the first pair encountered.

    Args:
        annotations: Current annotations
        cm_per_pixel: Physical scale; missing or non-positive means no
            conversion and every *_cm field is None

    Returns:
        GroupAnalysis, or None with fewer than two annotations
    """
    if len(annotations) < 2:
        return None

    scale = _usable_scale(cm_per_pixel)
    points = GeometryUtils.as_array(a.center for a in annotations)
    i_idx, j_idx, distances = GeometryUtils.pairwise_distances(points)

    # argmax/argmin return the first occurrence, which is the first pair in scan order
    def pair_at(k: int) -> PairResult:
        i, j = int(i_idx[k]), int(j_idx[k])
        distance = float(distances[k])
        return PairResult(
            indices=(i, j),
            ids=(annotations[i].id, annotations[j].id),
            distance_px=distance,
            distance_cm=_to_cm(distance, scale),
        )

    max_pair = pair_at(int(np.argmax(distances)))
    min_pair = pair_at(int(np.argmin(distances)))

    low, high = GeometryUtils.bounding_box(points)
    avg_distance = float(distances.mean())
    spread_x = high.x - low.x
    spread_y = high.y - low.y

    return GroupAnalysis(
        max_pair=max_pair,
        min_pair=min_pair,
        count=len(annotations),
        avg_distance_px=avg_distance,
        spread_x_px=spread_x,
        spread_y_px=spread_y,
        center_of_mass=GeometryUtils.centroid(points),
        avg_distance_cm=_to_cm(avg_distance, scale),
        spread_x_cm=_to_cm(spread_x, scale),
        spread_y_cm=_to_cm(spread_y, scale),
    )

def quality_label(distance_cm: Optional[float],
                  settings: Optional[AnalysisSettings] = None) -> Optional[str]:
    """
    Label a group size in centimeters.

    Returns:
        "Excellent", "Good", "Fair" or "Wide spread"; None without a distance
    """
    if distance_cm is None:
        return None

    settings = settings or get_analysis_settings()
    if distance_cm <= settings.excellent_group_cm:
        return "Excellent"
    if distance_cm <= settings.good_group_cm:
        return "Good"
    if distance_cm <= settings.fair_group_cm:
        return "Fair"
    return "Wide spread"
