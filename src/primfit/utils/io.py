"""I/O utilities: oriented point clouds from PLY / NPZ files."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

logger = logging.getLogger(__name__)

NORMAL_PROPERTIES = ("nx", "ny", "nz")


def _unit_rows(normals: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(normals, axis=1, keepdims=True)
    norms[norms < 1e-12] = 1.0
    return normals / norms


def read_ply_oriented(path: Path) -> tuple[np.ndarray, np.ndarray]:
    """Read positions and normals from a PLY vertex element."""
    from plyfile import PlyData

    plydata = PlyData.read(str(path))
    vertex = plydata["vertex"]
    prop_names = {p.name for p in vertex.properties}
    missing = [name for name in NORMAL_PROPERTIES if name not in prop_names]
    if missing:
        raise ValueError(f"PLY file has no normals ({', '.join(missing)} missing): {path}")

    points = np.column_stack([vertex[c].astype(np.float64) for c in ("x", "y", "z")])
    normals = np.column_stack([vertex[c].astype(np.float64) for c in NORMAL_PROPERTIES])
    return points, normals


def write_ply_oriented(path: Path, points: np.ndarray, normals: np.ndarray) -> None:
    """Write positions and normals as a binary PLY."""
    from plyfile import PlyData, PlyElement

    fields = [("x", "f8"), ("y", "f8"), ("z", "f8"), ("nx", "f8"), ("ny", "f8"), ("nz", "f8")]
    vertex_data = np.empty(len(points), dtype=fields)
    for i, name in enumerate(("x", "y", "z")):
        vertex_data[name] = points[:, i]
    for i, name in enumerate(NORMAL_PROPERTIES):
        vertex_data[name] = normals[:, i]
    PlyData([PlyElement.describe(vertex_data, "vertex")]).write(str(path))


def load_oriented_cloud(path: Path) -> tuple[np.ndarray, np.ndarray]:
    """Load an (N, 3) point array and matching unit normals.

    Supports ``.ply`` (x, y, z, nx, ny, nz vertex properties) and ``.npz``
    (``points`` and ``normals`` arrays).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Point cloud not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".ply":
        points, normals = read_ply_oriented(path)
    elif suffix == ".npz":
        with np.load(path) as data:
            if "points" not in data or "normals" not in data:
                raise ValueError(f"NPZ file needs 'points' and 'normals' arrays: {path}")
            points = np.asarray(data["points"], dtype=np.float64)
            normals = np.asarray(data["normals"], dtype=np.float64)
    else:
        raise ValueError(f"Unsupported point cloud format '{path.suffix}': {path}")

    if points.ndim != 2 or points.shape[1] != 3 or normals.shape != points.shape:
        raise ValueError(
            f"Expected (N, 3) points and normals, got {points.shape} and {normals.shape}"
        )

    logger.info(f"Loaded {len(points)} oriented points from {path.name}")
    return points, _unit_rows(normals)
