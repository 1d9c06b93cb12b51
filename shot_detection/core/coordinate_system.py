"""
Coordinate System Component
This module maps points between the analyzed image's pixel space and the square display canvas.

The image is letterboxed into the canvas: it is scaled uniformly to fill one
dimension and centered along the other. Annotation geometry is always stored
in image space; display coordinates are derived through a DisplayTransform.
"""

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from ..utils.geometry_utils import Point2D, PointLike

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class BoundingBox:
    """Represents a rectangular bounding box in image pixel coordinates."""
    x_min: float
    y_min: float
    x_max: float
    y_max: float

    @property
    def width(self) -> float:
        """Get bounding box width."""
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        """Get bounding box height."""
        return self.y_max - self.y_min

    @property
    def center(self) -> Point2D:
        """Get center point of bounding box."""
        return Point2D((self.x_min + self.x_max) / 2, (self.y_min + self.y_max) / 2)

    def contains(self, point: Point2D) -> bool:
        """Check if point is inside bounding box."""
        return (self.x_min <= point.x <= self.x_max and
                self.y_min <= point.y <= self.y_max)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x_min, self.y_min, self.x_max, self.y_max)

    @classmethod
    def square(cls, center: Point2D, size: float) -> 'BoundingBox':
        """Square box of side ``size`` centered on ``center``."""
        half = size / 2
        return cls(center.x - half, center.y - half, center.x + half, center.y + half)

@dataclass(frozen=True)
class DisplayTransform:
    """
    Uniform scale plus letterbox offset from image space to display space.

    scale_x and scale_y are always equal; both are kept so callers can
    read whichever axis they are working on.
    """
    scale_x: float = 1.0
    scale_y: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    @property
    def is_identity(self) -> bool:
        return (self.scale_x == 1.0 and self.scale_y == 1.0 and
                self.offset_x == 0.0 and self.offset_y == 0.0)

    def to_display(self, point: PointLike) -> Point2D:
        """Forward mapping: image pixel -> display canvas."""
        p = Point2D.from_value(point)
        return Point2D(p.x * self.scale_x + self.offset_x,
                       p.y * self.scale_y + self.offset_y)

    def to_image(self, point: PointLike) -> Point2D:
        """Inverse mapping: display canvas -> image pixel."""
        p = Point2D.from_value(point)
        return Point2D((p.x - self.offset_x) / self.scale_x,
                       (p.y - self.offset_y) / self.scale_y)

    def display_length(self, image_length: float) -> float:
        """Convert an image-space length to display pixels."""
        return image_length * self.scale_x

    def image_length(self, display_length: float) -> float:
        """Convert a display-space length to image pixels."""
        return display_length / self.scale_x

    def displayed_size(self, image_width: float, image_height: float) -> Tuple[float, float]:
        """Size the image occupies on the canvas, letterbox excluded."""
        return image_width * self.scale_x, image_height * self.scale_y

IDENTITY_TRANSFORM = DisplayTransform()

def _is_positive(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0

@lru_cache(maxsize=64)
def compute_transform(image_width: Optional[float],
                      image_height: Optional[float],
                      canvas_side: float) -> DisplayTransform:
    """
    Compute the letterboxed transform from image pixels to a square canvas.

    Args:
        image_width: Analyzed image width in pixels (None when unknown)
        image_height: Analyzed image height in pixels (None when unknown)
        canvas_side: Side length of the square display canvas

    Returns:
        DisplayTransform; the identity transform when any input is missing
        or non-positive, so a render frame before metadata arrives still works
    """
    if not (_is_positive(image_width) and _is_positive(image_height) and _is_positive(canvas_side)):
        logger.debug(
            f"Identity transform for image={image_width}x{image_height} canvas={canvas_side}"
        )
        return IDENTITY_TRANSFORM

    image_aspect = image_width / image_height

    if image_aspect > 1:
        # Wider than tall: fill width, letterbox top/bottom
        scale = canvas_side / image_width
        displayed_height = canvas_side / image_aspect
        offset_x = 0.0
        offset_y = (canvas_side - displayed_height) / 2
    else:
        # Taller than (or as tall as) wide: fill height, letterbox sides
        scale = canvas_side / image_height
        displayed_width = canvas_side * image_aspect
        offset_x = (canvas_side - displayed_width) / 2
        offset_y = 0.0

    return DisplayTransform(scale_x=scale, scale_y=scale, offset_x=offset_x, offset_y=offset_y)
