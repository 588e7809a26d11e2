"""Tests for primfit.utils.geometry: plane math and rotations."""

import math

import numpy as np
import pytest

from primfit.utils.geometry import (
    half_turn,
    plane_basis,
    plane_from_points,
    project_to_plane,
    qvec2rotmat,
    rotmat2qvec,
)


class TestQuaternionConversion:
    def test_identity(self):
        """Identity quaternion (1,0,0,0) -> identity rotation."""
        R = qvec2rotmat([1, 0, 0, 0])
        np.testing.assert_allclose(R, np.eye(3), atol=1e-10)

    def test_90deg_z(self):
        angle = math.pi / 2
        R = qvec2rotmat([math.cos(angle / 2), 0, 0, math.sin(angle / 2)])
        expected = np.array([
            [0, -1, 0],
            [1, 0, 0],
            [0, 0, 1],
        ], dtype=float)
        np.testing.assert_allclose(R, expected, atol=1e-10)

    def test_roundtrip(self):
        qvec = np.array([0.5, 0.5, 0.5, 0.5])
        qvec2 = rotmat2qvec(qvec2rotmat(qvec))
        np.testing.assert_allclose(qvec2, qvec, atol=1e-10)

    def test_half_turn_quaternion_has_zero_w(self):
        """A pi rotation goes through the non-trace branches."""
        R = half_turn(np.array([0.0, 1.0, 0.0]))
        qvec = rotmat2qvec(R)
        assert qvec[0] == pytest.approx(0.0, abs=1e-10)
        np.testing.assert_allclose(np.abs(qvec[1:]), [0.0, 1.0, 0.0], atol=1e-10)
        np.testing.assert_allclose(qvec2rotmat(qvec), R, atol=1e-10)

    def test_unnormalized_input(self):
        R = qvec2rotmat([2.0, 0.0, 0.0, 0.0])
        np.testing.assert_allclose(R, np.eye(3), atol=1e-10)


class TestPlaneFromPoints:
    def test_xy_plane(self):
        normal, d = plane_from_points([0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1])
        np.testing.assert_allclose(normal, [0, 0, 1], atol=1e-12)
        assert d == pytest.approx(0.0)

    def test_flips_towards_reference(self):
        normal, d = plane_from_points([0, 0, 2], [1, 0, 2], [0, 1, 2], [0, 0, -1])
        np.testing.assert_allclose(normal, [0, 0, -1], atol=1e-12)
        assert d == pytest.approx(2.0)

    def test_collinear_returns_none(self):
        assert plane_from_points([0, 0, 0], [1, 1, 1], [2, 2, 2], [0, 0, 1]) is None

    def test_repeated_point_returns_none(self):
        assert plane_from_points([1, 2, 3], [1, 2, 3], [0, 1, 0], [0, 0, 1]) is None

    def test_non_finite_returns_none(self):
        assert plane_from_points([0, 0, np.nan], [1, 0, 0], [0, 1, 0], [0, 0, 1]) is None

    @pytest.mark.parametrize("scale", [1e-7, 1.0, 1e6])
    def test_degeneracy_is_scale_free(self, scale: float):
        normal, _ = plane_from_points([0, 0, 0], [scale, 0, 0], [0, scale, 0], [0, 0, 1])
        np.testing.assert_allclose(normal, [0, 0, 1], atol=1e-12)
        assert plane_from_points([0, 0, 0], [scale, 0, 0], [2 * scale, 0, 0], [0, 0, 1]) is None


class TestPlaneBasis:
    def test_orthonormal_and_in_plane(self):
        normal = np.array([1.0, 1.0, 1.0]) / math.sqrt(3)
        basis = plane_basis(normal, np.array([1.0, -1.0, 0.0]))
        np.testing.assert_allclose(basis.T @ basis, np.eye(2), atol=1e-12)
        np.testing.assert_allclose(basis.T @ normal, [0, 0], atol=1e-12)

    def test_right_handed(self):
        normal = np.array([0.0, 0.0, 1.0])
        basis = plane_basis(normal, np.array([2.0, 0.0, 0.0]))
        np.testing.assert_allclose(np.cross(basis[:, 0], basis[:, 1]), normal, atol=1e-12)


class TestProjectToPlane:
    def test_single_point(self):
        eq = np.array([0.0, 0.0, 1.0, -1.0])  # z = 1
        np.testing.assert_allclose(project_to_plane([3.0, 4.0, 7.0], eq), [3.0, 4.0, 1.0])

    def test_many_points(self):
        eq = np.array([1.0, 0.0, 0.0, 2.0])  # x = -2
        pts = np.array([[0.0, 1.0, 2.0], [5.0, -1.0, 0.0]])
        out = project_to_plane(pts, eq)
        np.testing.assert_allclose(out[:, 0], [-2.0, -2.0])
        np.testing.assert_allclose(out[:, 1:], pts[:, 1:])


class TestHalfTurn:
    def test_involution(self):
        M = half_turn(np.array([1.0, 2.0, 2.0]))
        np.testing.assert_allclose(M @ M, np.eye(3), atol=1e-12)
        assert np.linalg.det(M) == pytest.approx(1.0)

    def test_reverses_perpendicular(self):
        M = half_turn(np.array([0.0, 1.0, 0.0]))
        np.testing.assert_allclose(M @ [1.0, 0.0, 0.0], [-1.0, 0.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(M @ [0.0, 1.0, 0.0], [0.0, 1.0, 0.0], atol=1e-12)
