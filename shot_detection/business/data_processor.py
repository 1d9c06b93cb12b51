"""
Data Processor Component
This module validates detection service responses and builds the payload
handed to the persistence service.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from ..config import AnalysisSettings
from ..core.annotation_store import PointAnnotation
from ..models import (
    AnalyzeResponse,
    AnnotationRecord,
    EditCounts,
    ImageMetadata,
    ResultPayload,
    ResultSummary,
    TrainingData,
)
from ..utils.error_handling import DetectionResponseError
from .confidence_classifier import TierBreakdown, tier_breakdown
from .group_analyzer import GroupAnalysis, analyze, quality_label

logger = logging.getLogger(__name__)

def normalize_metadata(raw: Union[ImageMetadata, Mapping[str, Any], None]) -> Tuple[Optional[float], Optional[float]]:
    """
    Reduce either metadata shape to (image_width, image_height).

    Args:
        raw: ImageMetadata, a metadata dictionary, or None

    Returns:
        Tuple of width and height; each None when missing or non-positive
    """
    if raw is None:
        return None, None
    if not isinstance(raw, ImageMetadata):
        try:
            raw = ImageMetadata.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Unreadable image metadata, treating as absent: {e.error_count()} errors")
            return None, None
    return raw.dimensions()

def parse_detection_response(raw: Union[AnalyzeResponse, Mapping[str, Any]]) -> AnalyzeResponse:
    """
    Validate a detection service response.

    Args:
        raw: Decoded JSON body (or an already parsed response)

    Returns:
        AnalyzeResponse

    Raises:
        DetectionResponseError: if the body is malformed or reports failure
    """
    if isinstance(raw, AnalyzeResponse):
        response = raw
    else:
        if not isinstance(raw, Mapping):
            raise DetectionResponseError(f"Expected a JSON object, got {type(raw).__name__}")
        try:
            response = AnalyzeResponse.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Detection response failed validation: {e}")
            raise DetectionResponseError(f"Malformed detection response: {e.error_count()} invalid fields") from e

    if not response.success:
        message = (response.model_extra or {}).get('error') or "Detection service reported failure"
        raise DetectionResponseError(str(message))

    width, height = response.metadata.dimensions()
    logger.info(
        f"Parsed detection response: {len(response.detections)} detections, "
        f"image={width}x{height}, cm_per_pixel={response.cm_per_pixel}"
    )
    return response

def _cap(value: int, limit: Optional[int]) -> Optional[int]:
    if limit is None:
        return None
    return min(value, limit)

def build_result_payload(annotations: Sequence[PointAnnotation],
                         response: Optional[AnalyzeResponse] = None,
                         *,
                         edits: Optional[Dict[str, int]] = None,
                         has_changes: bool = False,
                         breakdown: Optional[TierBreakdown] = None,
                         analysis: Optional[GroupAnalysis] = None,
                         edited_image_base64: Optional[str] = None,
                         bullets_fired: Optional[int] = None,
                         session_id: Optional[str] = None,
                         settings: Optional[AnalysisSettings] = None) -> ResultPayload:
    """
    Build the persistence payload from the final annotation set.

    Args:
        annotations: Final, user-corrected annotations
        response: Detection response the annotations were seeded from
        edits: Added/removed counts of the user's corrections
        has_changes: Whether the user changed the detected set
        breakdown: Precomputed tier counts (computed when omitted)
        analysis: Precomputed group analysis (computed when omitted)
        edited_image_base64: Rendered snapshot of the edited markers
        bullets_fired: Shots fired; caps the reported hit counts
        session_id: Training session the result belongs to
        settings: Tier and quality thresholds (global defaults when omitted)

    Returns:
        ResultPayload ready for serialization
    """
    cm_per_pixel = response.cm_per_pixel if response else None
    if breakdown is None:
        breakdown = tier_breakdown(annotations, settings)
    if analysis is None:
        analysis = analyze(annotations, cm_per_pixel)

    records = [AnnotationRecord(**a.to_record()) for a in annotations]
    group_size_cm = analysis.group_size_cm if analysis else None

    summary = ResultSummary(
        **breakdown.to_dict(),
        group_size_cm=group_size_cm,
        group_size_px=analysis.group_size_px if analysis else None,
        tightest_pair_cm=analysis.min_pair.distance_cm if analysis else None,
        quality_label=quality_label(group_size_cm, settings),
    )

    training_data = None
    if has_changes:
        training_data = TrainingData(
            original_image_base64=response.original_image_base64 if response else None,
            edited_image_base64=edited_image_base64,
            original_detections=[d.model_dump() for d in response.detections] if response else [],
            final_detections=records,
            edits=EditCounts(**(edits or {})),
        )

    scanned_image = edited_image_base64 or (response.annotated_image_base64 if response else None)

    payload = ResultPayload(
        session_id=session_id or (response.session_id if response else None),
        annotations=records,
        summary=summary,
        bullets_fired=bullets_fired,
        hits_total=_cap(breakdown.total, bullets_fired),
        hits_inside_scoring=_cap(breakdown.scoring_hits, bullets_fired),
        dispersion_cm=group_size_cm,
        scanned_image_base64=scanned_image,
        training_data=training_data,
    )

    logger.info(
        f"Built result payload: {len(records)} annotations, group_size_cm={group_size_cm}, "
        f"training_data={'yes' if training_data else 'no'}"
    )
    return payload
