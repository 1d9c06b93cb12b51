from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Detection(BaseModel):
    """Single candidate bullet hole returned by the detection service"""
    model_config = ConfigDict(extra="ignore")

    bbox: Tuple[float, float, float, float] = Field(
        ..., description="Bounding box (x1, y1, x2, y2) in analyzed-image pixels"
    )
    center: Tuple[float, float] = Field(
        ..., description="Center (x, y) in analyzed-image pixels"
    )
    confidence: float = Field(..., ge=0.0, le=1.0)
    class_name: Optional[str] = None


class ImageMetadata(BaseModel):
    """
    Analyzed image dimensions.
    The legacy endpoint reports width/height; the document endpoint reports
    processed_width/processed_height.
    """
    model_config = ConfigDict(extra="allow")

    width: Optional[float] = None
    height: Optional[float] = None
    processed_width: Optional[float] = None
    processed_height: Optional[float] = None

    def dimensions(self) -> Tuple[Optional[float], Optional[float]]:
        """
        (image_width, image_height); a complete processed_* pair takes
        precedence, non-positive values become None
        """
        if self.processed_width is not None and self.processed_height is not None:
            width, height = self.processed_width, self.processed_height
        else:
            width, height = self.width, self.height
        return (
            width if width is not None and width > 0 else None,
            height if height is not None and height > 0 else None,
        )


class ScaleInfo(BaseModel):
    """Physical calibration of the photographed target"""
    model_config = ConfigDict(extra="allow")

    cm_per_pixel: Optional[float] = None
    mm_per_pixel: Optional[float] = None
    pixels_per_cm: Optional[float] = None
    pixels_per_mm: Optional[float] = None
    page_format: Optional[str] = None
    calibration_note: Optional[str] = None

    @property
    def usable_cm_per_pixel(self) -> Optional[float]:
        """cm_per_pixel when positive, otherwise None"""
        if self.cm_per_pixel is not None and self.cm_per_pixel > 0:
            return self.cm_per_pixel
        return None


class AnalyzeResponse(BaseModel):
    """Detection service response (legacy and document endpoints)"""
    model_config = ConfigDict(extra="allow")

    success: bool = True
    session_id: Optional[str] = None
    filename: Optional[str] = None
    detections: List[Detection] = Field(default_factory=list)
    metadata: ImageMetadata = Field(default_factory=ImageMetadata)
    scale_info: Optional[ScaleInfo] = None
    original_image_base64: Optional[str] = None
    annotated_image_base64: Optional[str] = None
    rectified_image_base64: Optional[str] = None
    processing_time_s: Optional[float] = None

    @property
    def display_image_base64(self) -> Optional[str]:
        """Image the detections refer to: the rectified page when present"""
        return self.rectified_image_base64 or self.original_image_base64

    @property
    def cm_per_pixel(self) -> Optional[float]:
        return self.scale_info.usable_cm_per_pixel if self.scale_info else None


class AnnotationRecord(BaseModel):
    """Annotation as handed to the persistence service"""
    center: Tuple[float, float]
    bbox: Tuple[float, float, float, float]
    confidence: float
    is_manual: bool


class EditCounts(BaseModel):
    added: int = 0
    removed: int = 0


class TrainingData(BaseModel):
    """Correction data, present only when the user changed the detections"""
    original_image_base64: Optional[str] = None
    edited_image_base64: Optional[str] = None
    original_detections: List[Dict[str, Any]] = Field(default_factory=list)
    final_detections: List[AnnotationRecord] = Field(default_factory=list)
    edits: EditCounts = Field(default_factory=EditCounts)


class ResultSummary(BaseModel):
    total: int
    manual: int
    high: int
    medium: int
    low: int
    scoring_hits: int
    group_size_cm: Optional[float] = Field(
        None, description="max_pair.distance_cm; null without a scale or with fewer than 2 points"
    )
    group_size_px: Optional[float] = None
    tightest_pair_cm: Optional[float] = None
    quality_label: Optional[str] = None


class ResultPayload(BaseModel):
    """Body posted to the persistence service on save"""
    session_id: Optional[str] = None
    annotations: List[AnnotationRecord]
    summary: ResultSummary
    bullets_fired: Optional[int] = None
    hits_total: Optional[int] = None
    hits_inside_scoring: Optional[int] = None
    dispersion_cm: Optional[float] = None
    scanned_image_base64: Optional[str] = None
    training_data: Optional[TrainingData] = None
