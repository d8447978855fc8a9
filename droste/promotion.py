"""Conversion between 3x3 planar and 4x4 homogeneous transforms.

A planar homography is embedded in 4x4 homogeneous space with the z axis
held at identity, so the transform acts only in the x-y plane:

    [[t0, t1, t2],        [[t0, t1, 0, t2],
     [t3, t4, t5],   ->    [t3, t4, 0, t5],
     [t6, t7, t8]]         [ 0,  0, 1,  0],
                           [t6, t7, 0, t8]]

CSS ``matrix3d()`` takes the same 16 values in column-major order.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

# Positions of the 3x3 rows/columns inside the 4x4 matrix (x, y, w)
_PLANAR_AXES = [0, 1, 3]


def promote(m: np.ndarray) -> np.ndarray:
    """Embed a 3x3 projective matrix in a 4x4 homogeneous transform.

    Args:
        m: 3x3 projective matrix

    Returns:
        4x4 matrix with z row and column equal to (0, 0, 1, 0)
    """
    m = np.asarray(m, dtype=np.float64)
    if m.shape != (3, 3):
        raise ValueError(f"Expected 3x3 matrix, got shape {m.shape}")

    out = np.zeros((4, 4), dtype=np.float64)
    out[np.ix_(_PLANAR_AXES, _PLANAR_AXES)] = m
    out[2, 2] = 1.0
    return out


def demote(m: np.ndarray) -> np.ndarray:
    """Extract the 3x3 projective matrix from a promoted 4x4 transform.

    Args:
        m: 4x4 matrix produced by promote()

    Returns:
        3x3 projective matrix
    """
    m = np.asarray(m, dtype=np.float64)
    if m.shape != (4, 4):
        raise ValueError(f"Expected 4x4 matrix, got shape {m.shape}")

    return m[np.ix_(_PLANAR_AXES, _PLANAR_AXES)].copy()


def to_matrix3d(m: np.ndarray) -> list[float]:
    """Flatten a 4x4 transform in column-major (CSS matrix3d) order."""
    m = np.asarray(m, dtype=np.float64)
    if m.shape != (4, 4):
        raise ValueError(f"Expected 4x4 matrix, got shape {m.shape}")
    return m.T.ravel().tolist()


def from_matrix3d(values: Sequence[float]) -> np.ndarray:
    """Build a 4x4 transform from 16 column-major (CSS matrix3d) values."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.size != 16:
        raise ValueError(f"Expected 16 values, got {arr.size}")
    return arr.reshape(4, 4).T.copy()


def css_matrix3d(m: np.ndarray, precision: int = 10) -> str:
    """Format a 4x4 transform as a CSS ``matrix3d(...)`` string.

    Args:
        m: 4x4 transform
        precision: Significant digits per coefficient

    Returns:
        CSS transform function string
    """
    values = ",".join(f"{v:.{precision}g}" for v in to_matrix3d(m))
    return f"matrix3d({values})"
