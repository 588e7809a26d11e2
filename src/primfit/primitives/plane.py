"""Plane primitive for RANSAC shape detection.

A candidate plane is built from three oriented samples, scored against the
cloud, reduced to its largest spatially connected patch and summarized by a
footprint: the convex hull of the support projected into the plane and the
minimum-area rectangle around it.

Two rasters are involved and they use different cell sizes:
  - connectivity filtering: cells of ``current_connectedness_res``
  - footprint extraction:   cells of ``2 * connectedness_res``
"""

from __future__ import annotations

import logging
from typing import ClassVar

import numpy as np

from primfit.utils.geometry import (
    half_turn,
    normalize,
    plane_basis,
    plane_from_points,
    project_to_plane,
    qvec2rotmat,
    rotmat2qvec,
)
from ._raster import find_blobs, grid_shape, raster_hull, to_grid
from .base import BasePrimitive, ShapeKind, convex_hull
from .config import PrimitiveConfig
from .enclosing_box import find_smallest_enclosing_box

logger = logging.getLogger(__name__)

SHAPE_DATA_SIZE = 13


def _as_rows(arr: np.ndarray, name: str, rows: int | None = None) -> np.ndarray:
    arr = np.asarray(arr, dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 3 or (rows is not None and arr.shape[0] != rows):
        expected = f"({rows}, 3)" if rows is not None else "(N, 3)"
        raise ValueError(f"{name} must have shape {expected}, got {arr.shape}")
    return arr


def _perpendicular(normal: np.ndarray) -> np.ndarray:
    """Any unit vector orthogonal to *normal*."""
    ref = np.array([1.0, 0.0, 0.0])
    if abs(np.dot(normal, ref)) > 0.9:
        ref = np.array([0.0, 1.0, 0.0])
    return normalize(np.cross(normal, ref))


class PlanePrimitive(BasePrimitive):
    """Plane ``n . x + d = 0`` with its in-plane basis and footprint.

    Attributes:
        equation: (nx, ny, nz, d), unit normal.
        basis: 3x2 orthonormal in-plane axes. Depends on sample order, so it
            is not stable across re-fits of the same plane.
        center: footprint rectangle center, on the plane.
        extents: footprint rectangle sides along rotation columns 1 and 2.
        rotation: frame whose columns are the normal and the rectangle axes.
        convex_hull: (M, 3) footprint boundary, on the plane.
        has_footprint: False until a footprint has been computed, and again
            after a failed footprint computation.
    """

    shape: ClassVar[ShapeKind] = ShapeKind.PLANE

    def __init__(
        self,
        config: PrimitiveConfig | None = None,
        color: tuple[int, int, int] | None = None,
        object_id: int = -1,
    ):
        super().__init__(config=config, color=color, object_id=object_id)
        self.equation = np.zeros(4)
        self.basis = np.zeros((3, 2))
        self.center = np.zeros(3)
        self.extents = np.zeros(2)
        self.rotation = np.eye(3)
        self.convex_hull = np.empty((0, 3))
        self.has_footprint = False

    def __repr__(self) -> str:
        n = np.round(self.equation, 4).tolist()
        return (
            f"PlanePrimitive(equation={n}, supporting={len(self.supporting_inds)}, "
            f"extents={np.round(self.extents, 4).tolist()})"
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def normal(self) -> np.ndarray:
        return self.equation[:3]

    @property
    def is_constructed(self) -> bool:
        return bool(np.any(self.equation[:3] != 0))

    @property
    def quaternion(self) -> np.ndarray:
        """Orientation as a unit quaternion in (x, y, z, w) order."""
        w, x, y, z = rotmat2qvec(self.rotation)
        return np.array([x, y, z, w])

    def _require_plane(self) -> None:
        if not self.is_constructed:
            raise ValueError("PlanePrimitive used before construct() or merge_planes()")

    # ------------------------------------------------------------------
    # Fitting
    # ------------------------------------------------------------------

    def points_required(self) -> int:
        return 3

    def construct(
        self,
        points: np.ndarray,
        normals: np.ndarray,
        inlier_threshold: float,
        angle_threshold: float,
    ) -> bool:
        """Fit the plane through three samples (one per row).

        The normal is turned towards the first measured normal. Fails on a
        degenerate triple or when any measured normal is more than
        *angle_threshold* radians away from the fitted one. The inlier
        threshold is not used here. A successful fit drops the inlier sets
        and footprint of any earlier plane.
        """
        points = _as_rows(points, "points", rows=3)
        normals = _as_rows(normals, "normals", rows=3)

        plane = plane_from_points(points[0], points[1], points[2], normals[0])
        if plane is None:
            logger.debug("Rejected sample: points do not span a plane")
            return False
        normal, d = plane

        angles = np.arccos(np.clip(normals @ normal, -1.0, 1.0))
        if not np.all(angles <= angle_threshold):
            logger.debug(
                f"Rejected sample: normal deviation {np.degrees(np.max(angles)):.1f} deg "
                f"> {np.degrees(angle_threshold):.1f} deg"
            )
            return False

        self.equation = np.append(normal, d)
        self.basis = plane_basis(normal, points[1] - points[0])
        self.rotation = np.column_stack([normal, self.basis])
        self.center = points.mean(axis=0)
        self._clear_footprint()
        self.supporting_inds = []
        self.conforming_inds = []
        return True

    def compute_inliers(
        self,
        points: np.ndarray,
        normals: np.ndarray,
        indices: np.ndarray,
        inlier_threshold: float,
        angle_threshold: float,
    ) -> np.ndarray:
        """Indices within *inlier_threshold* of the plane whose normals agree.

        Only normals on the same side as the plane normal count; anti-parallel
        normals are rejected. Input order is preserved.
        """
        self._require_plane()
        indices = np.asarray(indices, dtype=np.int64).ravel()
        if len(indices) == 0:
            return indices.copy()

        n = self.normal
        dist = np.abs(points[indices] @ n + self.equation[3])
        alignment = normals[indices] @ n
        mask = (dist < inlier_threshold) & (alignment > np.cos(angle_threshold))
        return indices[mask]

    def largest_connected_component(self, points: np.ndarray) -> np.ndarray:
        """Conforming indices that fall in the largest connected raster blob.

        Footprints smaller than ``min_component_cells`` on either side are
        returned unfiltered.
        """
        self._require_plane()
        inds = self.conforming_inds
        if len(inds) == 0:
            return inds.copy()

        cells, minpt, maxpt = to_grid(points[inds], self.basis, 1.0 / self.current_connectedness_res)
        width, height = grid_shape(minpt, maxpt)
        min_cells = self.config.min_component_cells
        if width < min_cells or height < min_cells:
            logger.debug(f"Connectivity raster {width}x{height} below {min_cells} cells, not filtering")
            return inds.copy()

        rel = cells - minpt
        occupancy = np.zeros((height, width), dtype=np.uint8)
        occupancy[rel[:, 1], rel[:, 0]] = 1

        labels, largest = find_blobs(occupancy)
        keep = labels[rel[:, 1], rel[:, 0]] == largest
        logger.debug(f"Largest component keeps {int(keep.sum())}/{len(inds)} conforming points")
        return inds[keep]

    # ------------------------------------------------------------------
    # Footprint
    # ------------------------------------------------------------------

    def _clear_footprint(self) -> None:
        self.extents = np.zeros(2)
        self.convex_hull = np.empty((0, 3))
        self.has_footprint = False

    def compute_shape_size(self, points: np.ndarray) -> bool:
        """Compute hull, rectangle center, extents and frame from the support.

        Returns False when the support yields no footprint; hull and extents
        are then cleared and ``has_footprint`` is False.
        """
        self._require_plane()
        inds = self.supporting_inds
        if len(inds) == 0:
            logger.warning("No supporting points, footprint not computed")
            self._clear_footprint()
            return False

        res = self.connectedness_res
        cells, minpt, maxpt = to_grid(points[inds], self.basis, 0.5 / res)
        hull = raster_hull(cells, minpt, maxpt)
        if hull is None:
            self._clear_footprint()
            return False

        box = find_smallest_enclosing_box(hull)
        cell = 2.0 * res

        self.center = project_to_plane(cell * self.basis @ (minpt + box.center), self.equation)
        self.extents = cell * np.abs(box.lengths)
        self.rotation = np.column_stack([
            normalize(self.normal),
            normalize(self.basis @ box.axes[:, 0]),
            normalize(self.basis @ box.axes[:, 1]),
        ])
        self.convex_hull = project_to_plane(cell * (minpt + hull) @ self.basis.T, self.equation)
        self.has_footprint = True
        return True

    # ------------------------------------------------------------------
    # Descriptors
    # ------------------------------------------------------------------

    def distance_to_pt(self, pt: np.ndarray) -> float:
        return float(abs(np.dot(pt, self.normal) + self.equation[3]))

    def direction_and_center(self) -> tuple[np.ndarray, np.ndarray]:
        return self.normal.copy(), self.center.copy()

    def shape_size(self) -> float:
        return float(self.extents[1])

    def shape_data(self) -> np.ndarray:
        """equation (4), extents (2), center (3), quaternion x, y, z, w (4)."""
        return np.concatenate([self.equation, self.extents, self.center, self.quaternion])

    def shape_points(self) -> np.ndarray:
        return self.convex_hull.copy()

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def switch_direction(self) -> None:
        """Flip the normal; the frame turns half way round its second axis."""
        self.equation = -self.equation
        turn = half_turn(self.rotation[:, 1])
        self.rotation = turn @ self.rotation
        self.basis = turn @ self.basis

    def merge_planes(self, other1: PlanePrimitive, other2: PlanePrimitive) -> None:
        """Make this primitive the union of two planes.

        The in-plane axes follow *other1*. Conforming indices are not carried
        over; extents are the span of the merged hull along the frame axes.
        """
        other1._require_plane()
        other2._require_plane()
        v_p, c_p = other1.direction_and_center()
        v_q, c_q = other2.direction_and_center()
        center = 0.5 * (c_p + c_q)
        v = normalize(v_p + v_q if np.dot(v_p, v_q) > 0 else v_p - v_q)
        d = -float(np.dot(v, center))

        data = other1.shape_data()
        x, y, z, w = data[9:13]
        R_p = qvec2rotmat([w, x, y, z])
        axis = R_p[:, 1] - np.dot(v, R_p[:, 1]) * v
        if np.linalg.norm(axis) < 1e-9:
            axis = _perpendicular(v)
        R = np.empty((3, 3))
        R[:, 0] = v
        R[:, 1] = normalize(axis)
        R[:, 2] = normalize(np.cross(v, R[:, 1]))

        points = np.vstack([other1.shape_points(), other2.shape_points()])
        local = points @ R
        hull = convex_hull(local, local.mean(axis=0)) if len(local) else local
        dist = hull[:, 0] + d
        hull[:, 0] -= dist

        self.equation = np.append(v, d)
        self.rotation = R
        self.basis = R[:, 1:3].copy()
        self.center = center
        self.convex_hull = hull @ R.T
        self.extents = np.ptp(hull[:, 1:3], axis=0) if len(hull) else np.zeros(2)
        self.has_footprint = len(hull) > 0
        self.color = other1.color
        self.object_id = other1.object_id
        self.supporting_inds = np.union1d(other1.supporting_inds, other2.supporting_inds)
        self.conforming_inds = []
        logger.debug(
            f"Merged planes: {len(other1.supporting_inds)} + {len(other2.supporting_inds)} "
            f"supporting points, {len(hull)} hull vertices"
        )
