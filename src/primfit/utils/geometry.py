"""3D geometry utilities: plane math, in-plane bases, rotations."""

from __future__ import annotations

import logging

import numpy as np

logger = logging.getLogger(__name__)

# Sine of the sample angle below which the triple counts as collinear or repeated.
DEGENERATE_EPS = 1e-12


def normalize(v: np.ndarray) -> np.ndarray:
    """Return v / |v|. Zero vectors give non-finite components, callers check."""
    v = np.asarray(v, dtype=float)
    with np.errstate(invalid="ignore", divide="ignore"):
        return v / np.linalg.norm(v)


def plane_from_points(
    p0: np.ndarray,
    p1: np.ndarray,
    p2: np.ndarray,
    reference_normal: np.ndarray,
) -> tuple[np.ndarray, float] | None:
    """Plane through three points, oriented to agree with *reference_normal*.

    Returns ``(normal, d)`` with ``normal . x + d = 0`` on the plane, or None
    when the triple does not span a plane.
    """
    p0 = np.asarray(p0, dtype=float)
    e1 = np.asarray(p1, dtype=float) - p0
    e2 = np.asarray(p2, dtype=float) - p0
    cross = np.cross(e1, e2)
    norm = np.linalg.norm(cross)
    if not np.isfinite(norm) or norm <= DEGENERATE_EPS * np.linalg.norm(e1) * np.linalg.norm(e2):
        return None
    normal = cross / norm
    if np.dot(normal, reference_normal) < 0:
        normal = -normal
    d = -float(np.dot(normal, p0))
    if not (np.all(np.isfinite(normal)) and np.isfinite(d)):
        return None
    return normal, d


def plane_basis(normal: np.ndarray, first_direction: np.ndarray) -> np.ndarray:
    """Build a 3x2 orthonormal basis of the plane.

    Column 0 follows *first_direction*, column 1 is ``normal x column 0``,
    so (col0, col1, normal) is right-handed.
    """
    basis = np.empty((3, 2))
    basis[:, 0] = normalize(first_direction)
    basis[:, 1] = normalize(np.cross(normal, basis[:, 0]))
    return basis


def project_to_plane(points: np.ndarray, equation: np.ndarray) -> np.ndarray:
    """Move point(s) along the plane normal until they lie on the plane."""
    points = np.asarray(points, dtype=float)
    n = equation[:3]
    dist = points @ n + equation[3]
    return points - np.multiply.outer(dist, n)


def half_turn(axis: np.ndarray) -> np.ndarray:
    """Rotation by pi about a unit *axis*."""
    u = normalize(axis)
    return 2.0 * np.outer(u, u) - np.eye(3)


def qvec2rotmat(qvec: list[float] | np.ndarray) -> np.ndarray:
    """Convert quaternion (w, x, y, z) to 3x3 rotation matrix."""
    w, x, y, z = normalize(qvec)
    return np.array([
        [1 - 2*y*y - 2*z*z, 2*x*y - 2*w*z, 2*x*z + 2*w*y],
        [2*x*y + 2*w*z, 1 - 2*x*x - 2*z*z, 2*y*z - 2*w*x],
        [2*x*z - 2*w*y, 2*y*z + 2*w*x, 1 - 2*x*x - 2*y*y],
    ])


def rotmat2qvec(R: np.ndarray) -> np.ndarray:
    """Convert 3x3 rotation matrix to unit quaternion (w, x, y, z), w >= 0."""
    trace = R[0, 0] + R[1, 1] + R[2, 2]
    if trace > 0:
        s = 0.5 / np.sqrt(trace + 1.0)
        w = 0.25 / s
        x = (R[2, 1] - R[1, 2]) * s
        y = (R[0, 2] - R[2, 0]) * s
        z = (R[1, 0] - R[0, 1]) * s
    elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])
        w = (R[2, 1] - R[1, 2]) / s
        x = 0.25 * s
        y = (R[0, 1] + R[1, 0]) / s
        z = (R[0, 2] + R[2, 0]) / s
    elif R[1, 1] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])
        w = (R[0, 2] - R[2, 0]) / s
        x = (R[0, 1] + R[1, 0]) / s
        y = 0.25 * s
        z = (R[1, 2] + R[2, 1]) / s
    else:
        s = 2.0 * np.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])
        w = (R[1, 0] - R[0, 1]) / s
        x = (R[0, 2] + R[2, 0]) / s
        y = (R[1, 2] + R[2, 1]) / s
        z = 0.25 * s
    qvec = normalize(np.array([w, x, y, z]))
    if qvec[0] < 0:
        qvec = -qvec
    return qvec
