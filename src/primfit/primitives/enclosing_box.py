"""Minimum-area enclosing rectangle of a 2D polygon (rotating calipers).

The smallest enclosing rectangle always has one side collinear with a side of
the convex hull, so every hull edge is tried as the rectangle base and the
one with the smallest area is kept. O(n^2), hulls here are small.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

_MIN_EDGE = 1e-12


@dataclass
class EnclosingBox:
    """Rectangle in the polygon's 2D frame.

    ``axes`` columns are the base edge direction and its left normal,
    ``lengths`` is (width, height) with height signed along the second axis.
    """

    center: np.ndarray = field(default_factory=lambda: np.zeros(2))
    axes: np.ndarray = field(default_factory=lambda: np.eye(2))
    lengths: np.ndarray = field(default_factory=lambda: np.zeros(2))

    @property
    def area(self) -> float:
        return float(abs(self.lengths[0] * self.lengths[1]))


def find_smallest_enclosing_box(points_2d: np.ndarray) -> EnclosingBox:
    """Find the minimum-area rectangle over the edges of a cyclic polygon.

    For edge i -> i+1 the width is the projection span along the edge and the
    height is the signed projection of largest magnitude along its normal,
    both measured from vertex i. Zero-length edges are skipped; with no
    usable edge the result is a zero-size box at the first vertex.
    """
    pts = np.asarray(points_2d, dtype=float).reshape(-1, 2)
    n = len(pts)
    if n == 0:
        return EnclosingBox()

    best: EnclosingBox | None = None
    areamin = np.inf
    for i in range(n):
        vec = pts[(i + 1) % n] - pts[i]
        length = np.linalg.norm(vec)
        if length < _MIN_EDGE:
            continue
        vec = vec / length
        ovec = np.array([-vec[1], vec[0]])

        rel = pts - pts[i]
        proj = rel @ vec
        oproj = rel @ ovec
        widthmin, widthmax = proj.min(), proj.max()
        heightmax = oproj[np.argmax(np.abs(oproj))]

        width = widthmax - widthmin
        area = abs(heightmax) * width
        if area < areamin:
            areamin = area
            best = EnclosingBox(
                center=pts[i] + 0.5 * ((widthmin + widthmax) * vec + heightmax * ovec),
                axes=np.column_stack([vec, ovec]),
                lengths=np.array([width, heightmax]),
            )

    if best is None:
        return EnclosingBox(center=pts[0].copy())
    return best
