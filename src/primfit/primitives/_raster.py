"""Rasterization of in-plane point footprints (OpenCV contours and blobs)."""

from __future__ import annotations

import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def to_grid(points: np.ndarray, basis: np.ndarray, scale: float) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Project (N, 3) points onto the plane basis and quantize to cells.

    Returns ``(cells, minpt, maxpt)`` with cells as (N, 2) ints (x, y).
    """
    cells = np.floor(scale * (points @ basis)).astype(np.int64)
    return cells, cells.min(axis=0), cells.max(axis=0)


def grid_shape(minpt: np.ndarray, maxpt: np.ndarray) -> tuple[int, int]:
    """(width, height) in cells of the inclusive box [minpt, maxpt]."""
    width, height = (1 + maxpt - minpt).tolist()
    return int(width), int(height)


def raster_hull(cells: np.ndarray, minpt: np.ndarray, maxpt: np.ndarray) -> np.ndarray | None:
    """Convex hull of the occupied region, in cells relative to *minpt*.

    Boxes two cells thin or thinner use their four corners. Otherwise the
    longest contour of the occupancy image is taken as the outer boundary.
    Returns None when the image has no contour.
    """
    width, height = grid_shape(minpt, maxpt)
    if width <= 2 or height <= 2:
        return np.array([[0, 0], [0, height - 1], [width - 1, height - 1], [width - 1, 0]])

    # one empty cell of margin so boundary cells are traced, not clipped
    binary = np.zeros((height + 2, width + 2), dtype=np.uint8)
    rel = cells - minpt
    binary[rel[:, 1] + 1, rel[:, 0] + 1] = 255

    contours, _ = cv2.findContours(
        binary, cv2.RETR_TREE, cv2.CHAIN_APPROX_SIMPLE, offset=(-1, -1)
    )
    if not contours:
        logger.warning(f"No contours found! Height: {height}, width: {width}")
        return None

    longest = max(contours, key=len)
    hull = cv2.convexHull(longest, clockwise=False)
    return hull.reshape(-1, 2).astype(np.int64)


def find_blobs(occupancy: np.ndarray) -> tuple[np.ndarray, int]:
    """Label 8-connected blobs of non-zero cells.

    Returns ``(labels, largest)`` where labels has the grid's shape and
    *largest* is the label with the most cells (0 if the grid is empty).
    """
    binary = (occupancy != 0).astype(np.uint8)
    num, labels, stats, _ = cv2.connectedComponentsWithStats(binary, connectivity=8)
    if num <= 1:
        return labels, 0
    largest = 1 + int(np.argmax(stats[1:, cv2.CC_STAT_AREA]))
    return labels, largest
