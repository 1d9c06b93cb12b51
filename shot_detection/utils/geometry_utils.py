"""
Geometry Utilities
This module provides the point type and distance helpers shared by the editor and the analyzer.
"""

import math
import logging
from typing import Iterable, List, Sequence, Tuple, Union
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class Point2D:
    """2D point with basic geometric operations."""
    x: float
    y: float

    def __add__(self, other: 'Point2D') -> 'Point2D':
        return Point2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other: 'Point2D') -> 'Point2D':
        return Point2D(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> 'Point2D':
        return Point2D(self.x * scalar, self.y * scalar)

    def distance_to(self, other: 'Point2D') -> float:
        """Calculate Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def to_tuple(self) -> Tuple[float, float]:
        """Convert to tuple."""
        return (self.x, self.y)

    @classmethod
    def from_value(cls, value: Union['Point2D', Sequence[float]]) -> 'Point2D':
        """
        Build a point from a Point2D or an (x, y) sequence.

        Raises:
            ValueError: if the value is not a two-element numeric pair
        """
        if isinstance(value, Point2D):
            return value
        try:
            x, y = value
            return cls(float(x), float(y))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Expected an (x, y) pair, got {value!r}") from e

PointLike = Union[Point2D, Sequence[float]]

class GeometryUtils:
    """Utility class for geometric calculations."""

    @staticmethod
    def as_array(points: Iterable[PointLike]) -> np.ndarray:
        """
        Stack points into an (N, 2) float array.

        Args:
            points: Point2D objects or (x, y) pairs

        Returns:
            Array of shape (N, 2); (0, 2) when empty
        """
        coords = [Point2D.from_value(p).to_tuple() for p in points]
        if not coords:
            return np.empty((0, 2), dtype=float)
        return np.asarray(coords, dtype=float)

    @staticmethod
    def pairwise_distances(points: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Distances for every unordered pair (i < j).

        Pairs are listed in row-major order: ascending i, then ascending j.

        Args:
            points: Array of shape (N, 2)

        Returns:
            Tuple of (i_indices, j_indices, distances)
        """
        i_idx, j_idx = np.triu_indices(len(points), k=1)
        deltas = points[i_idx] - points[j_idx]
        distances = np.hypot(deltas[:, 0], deltas[:, 1])
        return i_idx, j_idx, distances

    @staticmethod
    def bounding_box(points: np.ndarray) -> Tuple[Point2D, Point2D]:
        """
        Get the axis-aligned bounding box of a point set.

        Returns:
            Tuple of (min_point, max_point)
        """
        if len(points) == 0:
            return Point2D(0.0, 0.0), Point2D(0.0, 0.0)
        mins = points.min(axis=0)
        maxs = points.max(axis=0)
        return Point2D(float(mins[0]), float(mins[1])), Point2D(float(maxs[0]), float(maxs[1]))

    @staticmethod
    def centroid(points: np.ndarray) -> Point2D:
        """Mean position of a non-empty point set."""
        mean = points.mean(axis=0)
        return Point2D(float(mean[0]), float(mean[1]))

    @staticmethod
    def first_within(target: Point2D, points: Sequence[Point2D], radius: float) -> int:
        """
        Index of the first point strictly closer than ``radius`` to ``target``.

        Returns:
            Index in scan order, or -1 when none qualifies
        """
        for index, point in enumerate(points):
            if point.distance_to(target) < radius:
                return index
        return -1
