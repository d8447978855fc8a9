"""Editing rules for the four destination points.

Pure functions implementing the point edit modes used when a handle is
dragged: free movement, mirrored movement (the diagonally opposite point
moves symmetrically about the canvas centre), and aspect lock (the quad
stays a rotated, uniformly scaled copy of the canvas, driven by the 0-3
diagonal). Also holds the helpers that place example points on a canvas.
"""

from __future__ import annotations

import enum
import math
from typing import Optional, Sequence, Tuple

import numpy as np

from droste.homography import as_points

DEFAULT_FRACTIONS = (0.2, 0.2, 0.8, 0.2, 0.2, 0.8, 0.8, 0.8)


class EditMode(enum.Enum):
    """How dragging one point moves the others."""

    FREE = "free"
    MIRROR = "mirror"
    ASPECT_LOCK = "aspect_lock"


def counter_point(index: int) -> int:
    """Return the index of the point diagonally opposite to index."""
    if index not in (0, 1, 2, 3):
        raise ValueError(f"Point index must be 0-3, got {index}")
    return 3 - index


def polar_to_cartesian(distance: float, angle: float) -> Tuple[float, float]:
    return distance * math.cos(angle), distance * math.sin(angle)


def cartesian_to_polar(x: float, y: float) -> Tuple[float, float]:
    return math.hypot(x, y), math.atan2(y, x)


def move_free(points: np.ndarray, index: int, x: float, y: float) -> np.ndarray:
    """Move one point, leaving the others untouched."""
    counter_point(index)
    new_points = as_points(points).copy()
    new_points[index] = (x, y)
    return new_points


def move_mirror(
    points: np.ndarray, index: int, x: float, y: float, width: float, height: float
) -> np.ndarray:
    """Move one point and mirror its counter point through the canvas centre."""
    new_points = move_free(points, index, x, y)
    new_points[counter_point(index)] = (width - x, height - y)
    return new_points


def move_aspect_lock(
    points: np.ndarray, index: int, x: float, y: float, width: float, height: float
) -> np.ndarray:
    """Move point 0 or 3 and rebuild points 1 and 2 to keep the canvas aspect.

    The diagonal from point 0 to point 3 fixes rotation and scale; points 1
    and 2 are placed where the canvas corners (width, 0) and (0, height)
    land under that similarity.

    Args:
        points: 4x2 array of points
        index: Moved point, 0 or 3
        x: New x coordinate
        y: New y coordinate
        width: Canvas width
        height: Canvas height

    Returns:
        New 4x2 array of points
    """
    if index not in (0, 3):
        raise ValueError(f"Only points 0 and 3 can be moved in aspect lock mode, got {index}")

    new_points = move_free(points, index, x, y)
    origin = new_points[0]

    axis_distance, axis_angle = cartesian_to_polar(*(new_points[3] - origin))
    canvas_diagonal, diagonal_angle = cartesian_to_polar(width, height)
    scale = axis_distance / canvas_diagonal

    # Corner (width, 0) sits at angle 0, corner (0, height) at pi/2
    dx, dy = polar_to_cartesian(scale * width, axis_angle - diagonal_angle)
    new_points[1] = (origin[0] + dx, origin[1] + dy)

    dx, dy = polar_to_cartesian(scale * height, axis_angle + math.pi / 2 - diagonal_angle)
    new_points[2] = (origin[0] + dx, origin[1] + dy)

    return new_points


def move_point(
    mode: EditMode,
    points: np.ndarray,
    index: int,
    x: float,
    y: float,
    width: float,
    height: float,
) -> np.ndarray:
    """Move a point according to the given edit mode."""
    mode = EditMode(mode)
    if mode is EditMode.MIRROR:
        return move_mirror(points, index, x, y, width, height)
    if mode is EditMode.ASPECT_LOCK:
        return move_aspect_lock(points, index, x, y, width, height)
    return move_free(points, index, x, y)


def points_from_fractions(fractions: Sequence[float], width: float, height: float) -> np.ndarray:
    """Place four points from eight canvas-relative coordinates.

    Args:
        fractions: x0, y0, x1, y1, x2, y2, x3, y3 as fractions of the canvas
        width: Canvas width
        height: Canvas height

    Returns:
        4x2 array of pixel coordinates
    """
    values = np.asarray(fractions, dtype=np.float64)
    if values.shape != (8,):
        raise ValueError(f"Expected 8 fractions, got shape {values.shape}")
    return values.reshape(4, 2) * np.array([width, height])


def jitter_fractions(
    fractions: Sequence[float], rng: Optional[np.random.Generator] = None
) -> np.ndarray:
    """Randomize example fractions while keeping them away from the centre.

    Each value is perturbed by up to +/-0.1 and then pushed halfway towards
    the nearer canvas edge.
    """
    if rng is None:
        rng = np.random.default_rng()

    values = np.asarray(fractions, dtype=np.float64)
    values = values + rng.uniform(-0.1, 0.1, size=values.shape)
    return np.where(values < 0.5, values / 2, (values + 1) / 2)


def fit_canvas(viewport_width: float, viewport_height: float, ratio: float) -> Tuple[float, float]:
    """Largest (width, height) with width/height == ratio inside the viewport."""
    if ratio <= 0:
        raise ValueError(f"Aspect ratio must be positive, got {ratio}")
    size = min(viewport_height, viewport_width / ratio)
    return size * ratio, size
