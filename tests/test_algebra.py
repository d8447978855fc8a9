"""Tests for the matrix algebra module.

This module tests the adjugate and product helpers and the Gauss-Jordan
inversion, including pivoting and singular input.
"""

import sys
import unittest
from pathlib import Path

import numpy as np
from scipy import linalg

# Add parent directory to path
sys.path.append(str(Path(__file__).resolve().parent.parent))

from droste import algebra
from droste.errors import SingularMatrixError


class TestAlgebra(unittest.TestCase):
    """Test primitive matrix operations."""

    def setUp(self):
        """Set up well-conditioned random test matrices."""
        rng = np.random.default_rng(42)
        self.m3 = rng.uniform(-2, 2, size=(3, 3)) + 3 * np.eye(3)
        self.m4 = rng.uniform(-1, 1, size=(4, 4)) + 4 * np.eye(4)

    def test_adjugate(self):
        """m @ adj(m) equals det(m) * I."""
        adj = algebra.adjugate(self.m3)
        det = np.linalg.det(self.m3)

        np.testing.assert_allclose(self.m3 @ adj, det * np.eye(3), atol=1e-10)
        np.testing.assert_allclose(adj @ self.m3, det * np.eye(3), atol=1e-10)

    def test_adjugate_singular(self):
        """The adjugate of a singular matrix annihilates it."""
        singular = np.array([
            [1.0, 2.0, 3.0],
            [2.0, 4.0, 6.0],
            [0.0, 1.0, 1.0],
        ])
        adj = algebra.adjugate(singular)

        np.testing.assert_allclose(singular @ adj, np.zeros((3, 3)), atol=1e-12)
        self.assertTrue(np.all(np.isfinite(adj)))

    def test_products(self):
        """3x3 products match numpy."""
        other = self.m3.T + 1.0
        v = np.array([1.0, -2.0, 0.5])

        np.testing.assert_allclose(algebra.multiply3x3(self.m3, other), self.m3 @ other)
        np.testing.assert_allclose(algebra.multiply_vec(self.m3, v), self.m3 @ v)

        with self.assertRaises(ValueError):
            algebra.multiply3x3(self.m4, self.m4)
        with self.assertRaises(ValueError):
            algebra.multiply_vec(self.m3, np.ones(4))

    def test_invert(self):
        """Inverse matches scipy and round-trips."""
        inv = algebra.invert(self.m4)

        np.testing.assert_allclose(inv, linalg.inv(self.m4), rtol=1e-10, atol=1e-12)
        np.testing.assert_allclose(self.m4 @ inv, np.eye(4), atol=1e-12)
        np.testing.assert_allclose(algebra.invert(inv), self.m4, rtol=1e-10, atol=1e-12)

    def test_invert_needs_pivoting(self):
        """A zero leading entry is handled by swapping rows."""
        m = np.array([
            [0.0, 1.0, 0.0, 0.0],
            [1.0, 0.0, 0.0, 0.0],
            [0.0, 0.0, 0.0, 2.0],
            [0.0, 0.0, 4.0, 0.0],
        ])
        expected = np.array([
            [0.0, 1.0, 0.0, 0.0],
            [1.0, 0.0, 0.0, 0.0],
            [0.0, 0.0, 0.0, 0.25],
            [0.0, 0.0, 0.5, 0.0],
        ])

        np.testing.assert_allclose(algebra.invert(m), expected, atol=1e-15)

    def test_invert_small_scale(self):
        """The pivot tolerance is relative to the matrix scale."""
        m = 1e-6 * np.eye(4)
        np.testing.assert_allclose(algebra.invert(m), 1e6 * np.eye(4))

    def test_invert_singular(self):
        """Singular matrices raise instead of producing NaN."""
        rank_deficient = np.array([
            [1.0, 2.0, 3.0, 4.0],
            [2.0, 4.0, 6.0, 8.0],
            [0.0, 1.0, 0.0, 1.0],
            [1.0, 0.0, 1.0, 0.0],
        ])
        nearly_singular = np.diag([1.0, 1.0, 1.0, 1e-15])

        for m in (rank_deficient, nearly_singular, np.zeros((4, 4))):
            with self.assertRaises(SingularMatrixError):
                algebra.invert(m)

    def test_invert_non_finite(self):
        m = np.eye(4)
        m[1, 2] = np.nan
        with self.assertRaises(SingularMatrixError):
            algebra.invert(m)

    def test_invert_non_square(self):
        with self.assertRaises(ValueError):
            algebra.invert(np.ones((3, 4)))

    def test_invert_general_size(self):
        """Inversion works for any square size."""
        m = np.array([[2.0, 1.0], [1.0, 1.0]])
        np.testing.assert_allclose(algebra.invert(m), [[1.0, -1.0], [-1.0, 2.0]], atol=1e-15)

    def test_identity(self):
        np.testing.assert_array_equal(algebra.identity(), np.eye(4))
        np.testing.assert_array_equal(algebra.identity(3), np.eye(3))


if __name__ == "__main__":
    unittest.main()
