"""Four-point homography estimation.

This module solves for the unique projective transform that maps the
corners of a canvas rectangle onto four arbitrary destination points. Each
set of four points is first expressed as a "basis" matrix that sends the
projective basis (e1, e2, e3, e1+e2+e3) onto those points; the homography
is then the destination basis composed with the inverse of the source
basis. Adjugates stand in for inverses so that no division happens until
the final normalization.
"""

from __future__ import annotations

import itertools
import logging
from typing import Sequence, Tuple

import numpy as np

from droste.algebra import adjugate, multiply3x3, multiply_vec
from droste.errors import DegenerateQuadrilateralError
from droste.promotion import promote

logger = logging.getLogger(__name__)

# Relative tolerance for collinearity and normalization checks
DEGENERACY_EPS = 1e-9


def as_points(points: Sequence[Sequence[float]]) -> np.ndarray:
    """Convert four 2D points to a 4x2 float array.

    Args:
        points: Four (x, y) pairs

    Returns:
        4x2 array of points
    """
    pts = np.asarray(points, dtype=np.float64)
    if pts.shape != (4, 2):
        raise ValueError(f"Expected four 2D points (4x2), got shape {pts.shape}")
    return pts


def canvas_corners(width: float, height: float) -> np.ndarray:
    """Return the canvas corners in point order (0,0), (w,0), (0,h), (w,h)."""
    return np.array([
        [0.0, 0.0],
        [width, 0.0],
        [0.0, height],
        [width, height],
    ])


def check_general_position(points: np.ndarray, eps: float = DEGENERACY_EPS) -> None:
    """Check that no three of four points are collinear or coincident.

    The area of every triangle formed by three of the points is compared
    against the squared extent of the point set.

    Args:
        points: 4x2 array of points
        eps: Relative area tolerance

    Raises:
        DegenerateQuadrilateralError: If any triple is (nearly) collinear
    """
    pts = as_points(points)

    if not np.all(np.isfinite(pts)):
        raise DegenerateQuadrilateralError("Points contain non-finite coordinates")

    extent = np.max(pts.max(axis=0) - pts.min(axis=0))
    tolerance = eps * extent * extent

    for i, j, k in itertools.combinations(range(4), 3):
        u = pts[j] - pts[i]
        v = pts[k] - pts[i]
        area = 0.5 * abs(u[0] * v[1] - u[1] * v[0])
        if area <= tolerance:
            raise DegenerateQuadrilateralError(
                f"Points {i}, {j} and {k} are collinear or coincident "
                f"(triangle area {area:.3e})"
            )


def basis_to_points(points: np.ndarray) -> np.ndarray:
    """Compute the matrix mapping the projective basis onto four points.

    With M = [[x1, x2, x3], [y1, y2, y3], [1, 1, 1]], the homogeneous weights
    v = adj(M) @ [x4, y4, 1] express the fourth point as a combination of the
    first three. Scaling the columns of M by v gives B with B @ e_i equal to
    point i (up to scale) and B @ [1, 1, 1] equal to point 4.

    Args:
        points: 4x2 array of points

    Returns:
        3x3 basis matrix
    """
    pts = as_points(points)

    M = np.vstack((pts[:3].T, np.ones(3)))
    v = multiply_vec(adjugate(M), np.array([pts[3, 0], pts[3, 1], 1.0]))

    return multiply3x3(M, np.diag(v))


def general_2d_projection(src_points: np.ndarray, dst_points: np.ndarray) -> np.ndarray:
    """Compute the (unnormalized) homography mapping src_points to dst_points.

    Args:
        src_points: 4x2 array of source points
        dst_points: 4x2 array of destination points

    Returns:
        3x3 homography, defined up to scale
    """
    S = basis_to_points(src_points)
    D = basis_to_points(dst_points)
    return multiply3x3(D, adjugate(S))


def compute_homography(
    width: float,
    height: float,
    p0: Sequence[float],
    p1: Sequence[float],
    p2: Sequence[float],
    p3: Sequence[float],
) -> np.ndarray:
    """Compute the homography taking the canvas rectangle onto a quadrilateral.

    The canvas corners (0,0), (width,0), (0,height), (width,height) are
    mapped onto p0, p1, p2, p3 respectively. The result is normalized so
    its bottom-right coefficient is exactly 1.

    Args:
        width: Canvas width in pixels
        height: Canvas height in pixels
        p0: Destination of the top-left corner
        p1: Destination of the top-right corner
        p2: Destination of the bottom-left corner
        p3: Destination of the bottom-right corner

    Returns:
        3x3 normalized homography

    Raises:
        DegenerateQuadrilateralError: If the canvas has no area, or the
            destination points are collinear or coincident
    """
    if not (width > 0 and height > 0):
        raise DegenerateQuadrilateralError(
            f"Canvas must have positive size, got {width}x{height}"
        )

    dst = as_points([p0, p1, p2, p3])
    check_general_position(dst)

    T = general_2d_projection(canvas_corners(width, height), dst)

    # Normalize so that T[2, 2] == 1
    norm = T[2, 2]
    if not np.isfinite(norm) or abs(norm) <= DEGENERACY_EPS * np.max(np.abs(T)):
        raise DegenerateQuadrilateralError(
            f"Homography cannot be normalized (t8={norm:.3e})"
        )
    T = T / norm
    T[2, 2] = 1.0

    if not np.all(np.isfinite(T)):
        raise DegenerateQuadrilateralError("Homography has non-finite coefficients")

    logger.debug(
        f"Homography for {width:.1f}x{height:.1f} canvas: "
        f"condition={np.linalg.cond(T):.2f}"
    )
    return T


def compute_transform(width: float, height: float, points: Sequence[Sequence[float]]) -> np.ndarray:
    """Compute the 4x4 transform taking the canvas onto four points.

    Args:
        width: Canvas width in pixels
        height: Canvas height in pixels
        points: Four destination points, in canvas corner order

    Returns:
        4x4 promoted homography
    """
    p0, p1, p2, p3 = as_points(points)
    return promote(compute_homography(width, height, p0, p1, p2, p3))


def project_point(m: np.ndarray, x: float, y: float) -> Tuple[float, float]:
    """Apply a 3x3 homography to a point, including the perspective divide.

    Args:
        m: 3x3 homography
        x: Point x coordinate
        y: Point y coordinate

    Returns:
        Transformed (x, y)
    """
    v = multiply_vec(m, np.array([x, y, 1.0]))
    if v[2] == 0:
        raise DegenerateQuadrilateralError(f"Point ({x}, {y}) maps to infinity")
    return float(v[0] / v[2]), float(v[1] / v[2])
