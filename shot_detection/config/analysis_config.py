"""
Analysis Configuration Module
Tunable parameters for the annotation editor and group-size analysis.

Values can be supplied through environment variables prefixed with
``SHOT_DETECTION_`` (e.g. ``SHOT_DETECTION_CANVAS_SIDE=360``).
"""

from functools import lru_cache
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalysisSettings(BaseSettings):
    """
    Editor and analysis configuration.
    Loaded from keyword overrides and SHOT_DETECTION_* environment variables.
    """

    # Display surface
    canvas_side: float = Field(
        350.0,
        gt=0,
        description="Side length of the square display canvas (display px)"
    )
    marker_radius: float = Field(
        12.0,
        gt=0,
        description="Radius of a rendered marker ring (display px)"
    )

    # Tap handling
    tap_tolerance_px: float = Field(
        30.0,
        gt=0,
        description="Remove-mode tap tolerance radius (display px)"
    )
    marker_hit_box_px: float = Field(
        40.0,
        gt=0,
        description="Side of the square touch target centered on each marker (display px)"
    )
    manual_bbox_size: float = Field(
        30.0,
        gt=0,
        description="Side of the synthesized bbox for manual points (image px)"
    )

    # Confidence tiers
    low_confidence_threshold: float = Field(
        0.4,
        ge=0.0, le=1.0,
        description="Scores below this are LOW"
    )
    medium_confidence_threshold: float = Field(
        0.6,
        ge=0.0, le=1.0,
        description="Scores below this (and not LOW) are MEDIUM"
    )

    # Group quality labels (cm, inclusive upper bounds)
    excellent_group_cm: float = Field(5.0, gt=0)
    good_group_cm: float = Field(10.0, gt=0)
    fair_group_cm: float = Field(20.0, gt=0)

    # Editing history
    history_limit: int = Field(
        50,
        ge=1,
        description="Maximum number of undo snapshots kept"
    )

    model_config = SettingsConfigDict(
        env_prefix="SHOT_DETECTION_",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def _check_threshold_order(self) -> "AnalysisSettings":
        if not self.validate_confidence_thresholds():
            raise ValueError("low_confidence_threshold must not exceed medium_confidence_threshold")
        if not self.validate_quality_thresholds():
            raise ValueError("quality thresholds must be strictly increasing")
        return self

    def validate_confidence_thresholds(self) -> bool:
        """
        Check tier threshold ordering.

        Returns:
            bool: True when LOW < MEDIUM boundary ordering holds
        """
        return self.low_confidence_threshold <= self.medium_confidence_threshold

    def validate_quality_thresholds(self) -> bool:
        """
        Check group quality label ordering.

        Returns:
            bool: True when excellent < good < fair
        """
        return self.excellent_group_cm < self.good_group_cm < self.fair_group_cm


@lru_cache(maxsize=1)
def _default_settings() -> AnalysisSettings:
    return AnalysisSettings()


def get_analysis_settings(**overrides: Any) -> AnalysisSettings:
    """
    Get analysis settings with optional overrides.

    Args:
        **overrides: Field overrides applied on top of the environment

    Returns:
        AnalysisSettings instance (shared when no overrides are given)
    """
    if not overrides:
        return _default_settings()
    return AnalysisSettings(**overrides)
