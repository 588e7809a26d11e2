"""Shared contract for RANSAC shape primitives.

The detector drives every primitive through the same calls:

    construct -> compute_inliers (conforming) -> largest_connected_component
    -> compute_inliers (supporting) -> compute_shape_size

and later reads descriptors through shape_data / shape_points / shape_size.
Point and normal arrays are always passed in per call and never stored.
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import numpy as np
from scipy.spatial import ConvexHull, QhullError

from .config import PrimitiveConfig

logger = logging.getLogger(__name__)


class ShapeKind(str, enum.Enum):
    """Discriminant tag the detector dispatches on."""

    PLANE = "plane"


def convex_hull(points: np.ndarray, center: np.ndarray) -> np.ndarray:
    """Hull of frame-aligned 3D points around an interior *center*.

    Points are expressed in a frame whose first axis is the plane normal, so
    the hull is taken over coordinates 1 and 2 and the vertices are returned
    counter-clockwise around *center*. Inputs Qhull rejects (fewer than three
    points, collinear points) keep every point, ordered by angle.
    """
    points = np.asarray(points, dtype=float).reshape(-1, 3)
    if len(points) == 0:
        return points.copy()

    planar = points[:, 1:3]
    try:
        vertices = ConvexHull(planar).vertices
    except (QhullError, ValueError) as e:
        logger.debug(f"ConvexHull failed ({e}), ordering all {len(points)} points by angle")
        vertices = np.arange(len(points))

    rel = planar[vertices] - np.asarray(center, dtype=float)[1:3]
    order = np.argsort(np.arctan2(rel[:, 1], rel[:, 0]), kind="stable")
    return points[vertices[order]]


class BasePrimitive(ABC):
    """Abstract base for shape primitives.

    Subclasses own only small derived state (model parameters, inlier index
    sets, footprint descriptors). Index sets are int64 numpy arrays.
    """

    shape: ClassVar[ShapeKind]

    def __init__(
        self,
        config: PrimitiveConfig | None = None,
        color: tuple[int, int, int] | None = None,
        object_id: int = -1,
    ):
        self.config = config or PrimitiveConfig()
        if color is None:
            color = tuple(int(c) for c in np.random.default_rng().integers(0, 256, 3))
        self.color = color
        self.object_id = object_id
        self.supporting_inds = []
        self.conforming_inds = []

    @property
    def supporting_inds(self) -> np.ndarray:
        """Final inlier indices (after connectivity filtering)."""
        return self._supporting_inds

    @supporting_inds.setter
    def supporting_inds(self, inds) -> None:
        self._supporting_inds = np.asarray(inds, dtype=np.int64).ravel()

    @property
    def conforming_inds(self) -> np.ndarray:
        """Loose inlier indices (before connectivity filtering)."""
        return self._conforming_inds

    @conforming_inds.setter
    def conforming_inds(self, inds) -> None:
        self._conforming_inds = np.asarray(inds, dtype=np.int64).ravel()

    @property
    def current_connectedness_res(self) -> float:
        return self.config.current_connectedness_res

    @property
    def connectedness_res(self) -> float:
        return self.config.connectedness_res

    @abstractmethod
    def points_required(self) -> int:
        """Size of the minimal sample."""
        ...

    @abstractmethod
    def construct(
        self,
        points: np.ndarray,
        normals: np.ndarray,
        inlier_threshold: float,
        angle_threshold: float,
    ) -> bool:
        """Fit the model to a minimal sample. False means discard the sample."""
        ...

    @abstractmethod
    def compute_inliers(
        self,
        points: np.ndarray,
        normals: np.ndarray,
        indices: np.ndarray,
        inlier_threshold: float,
        angle_threshold: float,
    ) -> np.ndarray:
        """Return the subsequence of *indices* consistent with the model."""
        ...

    @abstractmethod
    def distance_to_pt(self, pt: np.ndarray) -> float:
        ...

    @abstractmethod
    def shape_size(self) -> float:
        """Scalar used to rank primitives."""
        ...

    @abstractmethod
    def shape_data(self) -> np.ndarray:
        """Flat fixed-length numeric descriptor."""
        ...

    @abstractmethod
    def shape_points(self) -> np.ndarray:
        """Boundary points of the fitted shape."""
        ...

    def get_shape(self) -> ShapeKind:
        return self.shape

    def instantiate(self) -> BasePrimitive:
        """New empty primitive of the same kind and configuration."""
        return type(self)(config=self.config)

    def draw(self, viewer: Any = None) -> None:
        """Rendering hook, implemented by viewers outside this package."""
        return None
