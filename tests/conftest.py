"""Shared pytest fixtures for primfit tests."""

from pathlib import Path

import numpy as np
import pytest


def make_patch(
    x_range: tuple[float, float],
    y_range: tuple[float, float],
    spacing: float = 0.05,
    z: float = 0.0,
) -> np.ndarray:
    """Grid of points on z = const, offset by half a spacing from the range start."""
    nx = int(round((x_range[1] - x_range[0]) / spacing))
    ny = int(round((y_range[1] - y_range[0]) / spacing))
    xs = x_range[0] + spacing * (0.5 + np.arange(nx))
    ys = y_range[0] + spacing * (0.5 + np.arange(ny))
    gx, gy = np.meshgrid(xs, ys, indexing="ij")
    return np.column_stack([gx.ravel(), gy.ravel(), np.full(gx.size, z)])


def up_normals(n: int) -> np.ndarray:
    return np.tile([0.0, 0.0, 1.0], (n, 1))


@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    """Create a temporary data root with standard directory structure."""
    for subdir in ["raw", "interim/s01_plane_candidate", "processed"]:
        (tmp_path / subdir).mkdir(parents=True, exist_ok=True)
    return tmp_path


@pytest.fixture
def xy_sample() -> tuple[np.ndarray, np.ndarray]:
    """Minimal sample spanning the z = 0 plane, normals up."""
    points = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    return points, up_normals(3)


@pytest.fixture
def rectangle_cloud() -> tuple[np.ndarray, np.ndarray]:
    """Dense 4 x 6 rectangle on z = 0 (cell centers of a 0.1 grid)."""
    points = make_patch((0.0, 4.1), (0.0, 6.1), spacing=0.1)
    return points, up_normals(len(points))


@pytest.fixture
def two_cluster_cloud() -> tuple[np.ndarray, np.ndarray, int]:
    """A 2 x 2 patch and a 1 x 1 patch on z = 0 with a 0.5 gap between them.

    Returns points, normals and the number of points in the larger patch
    (which comes first).
    """
    big = make_patch((0.0, 2.0), (0.0, 2.0))
    small = make_patch((2.5, 3.5), (0.0, 1.0))
    points = np.vstack([big, small])
    return points, up_normals(len(points)), len(big)


@pytest.fixture
def cloud_npz(data_root: Path, two_cluster_cloud) -> Path:
    """two_cluster_cloud plus a vertical wall at x = 4, saved as .npz."""
    points, normals, _ = two_cluster_cloud
    wall = make_patch((0.0, 1.0), (0.0, 1.0))[:, [2, 0, 1]] + np.array([4.0, 0.0, 0.0])
    wall_normals = np.tile([1.0, 0.0, 0.0], (len(wall), 1))
    path = data_root / "raw" / "cloud.npz"
    np.savez(path, points=np.vstack([points, wall]), normals=np.vstack([normals, wall_normals]))
    return path
