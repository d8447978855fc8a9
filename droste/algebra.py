"""Primitive matrix operations for planar projective geometry.

This module implements the small set of linear algebra routines the rest of
the package is built on: the 3x3 adjugate (an inverse up to scale, computed
without division), 3x3 products, and a general NxN Gauss-Jordan inversion
with partial pivoting that refuses singular input instead of producing
NaN or Inf coefficients.
"""

from __future__ import annotations

import logging

import numpy as np

from droste.errors import SingularMatrixError

logger = logging.getLogger(__name__)

# Relative pivot tolerance used by invert()
DEFAULT_PIVOT_EPS = 1e-12


def _as_matrix(m: np.ndarray, shape: tuple[int, int], name: str = "matrix") -> np.ndarray:
    """Convert input to a float64 array and check its shape."""
    arr = np.asarray(m, dtype=np.float64)
    if arr.shape != shape:
        raise ValueError(f"Expected {name} of shape {shape}, got shape {arr.shape}")
    return arr


def identity(n: int = 4) -> np.ndarray:
    """Return the nxn identity matrix as float64."""
    return np.eye(n, dtype=np.float64)


def adjugate(m: np.ndarray) -> np.ndarray:
    """Compute the adjugate of a 3x3 matrix.

    The adjugate is the transpose of the cofactor matrix, so that
    ``m @ adjugate(m) == det(m) * I``. It is used in place of the inverse
    wherever the overall scale does not matter, which postpones any division
    to a final normalization step.

    For a singular ``m`` the result is still defined, but anything derived
    from it will be degenerate; callers must check for that themselves.

    Args:
        m: 3x3 matrix

    Returns:
        3x3 adjugate matrix
    """
    m = _as_matrix(m, (3, 3))
    a, b, c = m[0]
    d, e, f = m[1]
    g, h, i = m[2]

    return np.array([
        [e * i - f * h, c * h - b * i, b * f - c * e],
        [f * g - d * i, a * i - c * g, c * d - a * f],
        [d * h - e * g, b * g - a * h, a * e - b * d],
    ])


def multiply3x3(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Multiply two 3x3 matrices (``a @ b``)."""
    return _as_matrix(a, (3, 3), "a") @ _as_matrix(b, (3, 3), "b")


def multiply_vec(m: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Multiply a 3x3 matrix by a 3-vector."""
    m = _as_matrix(m, (3, 3))
    v = np.asarray(v, dtype=np.float64)
    if v.shape != (3,):
        raise ValueError(f"Expected vector of shape (3,), got shape {v.shape}")
    return m @ v


def invert(m: np.ndarray, eps: float = DEFAULT_PIVOT_EPS) -> np.ndarray:
    """Invert a square matrix with Gauss-Jordan elimination.

    The matrix is augmented with the identity, ``[m | I]``, and reduced
    column by column. At every step the row with the largest remaining
    pivot magnitude is swapped into place (partial pivoting). When even
    that pivot is within ``eps`` of zero, relative to the largest entry of
    the input, the matrix is treated as singular.

    Args:
        m: NxN matrix
        eps: Relative pivot tolerance

    Returns:
        NxN inverse of m

    Raises:
        SingularMatrixError: If a pivot is zero or numerically negligible,
            or if m contains NaN/Inf values
        ValueError: If m is not square
    """
    m = np.asarray(m, dtype=np.float64)
    if m.ndim != 2 or m.shape[0] != m.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {m.shape}")

    if not np.all(np.isfinite(m)):
        raise SingularMatrixError("Cannot invert a matrix with non-finite coefficients")

    n = m.shape[0]
    scale = np.max(np.abs(m)) if m.size else 0.0
    tolerance = eps * scale

    # Build the augmented matrix [m | I]
    aug = np.hstack((m.copy(), identity(n)))

    for k in range(n):
        # Partial pivoting: bring the largest candidate pivot to row k
        pivot_row = k + int(np.argmax(np.abs(aug[k:, k])))
        pivot = aug[pivot_row, k]

        if abs(pivot) <= tolerance or pivot == 0.0:
            raise SingularMatrixError(
                f"Matrix is singular: pivot {pivot:.3e} at column {k} "
                f"(tolerance {tolerance:.3e})"
            )

        if pivot_row != k:
            aug[[k, pivot_row]] = aug[[pivot_row, k]]
            logger.debug(f"Swapped rows {k} and {pivot_row} (pivot={pivot:.5f})")

        # Normalize the pivot row
        aug[k] /= pivot

        # Eliminate column k from every other row
        for i in range(n):
            if i != k:
                aug[i] -= aug[i, k] * aug[k]

    inverse = aug[:, n:]

    logger.debug(f"Inverted {n}x{n} matrix (scale={scale:.5f})")
    return inverse
