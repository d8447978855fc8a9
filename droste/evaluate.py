"""Evaluation utilities for Droste transforms.

This module measures how well a homography reproduces its destination
points, how well conditioned the transforms are, and how long each stage
of a run takes.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Sequence

import numpy as np

from droste.algebra import identity, invert
from droste.homography import as_points, canvas_corners, project_point

logger = logging.getLogger(__name__)


def corner_errors(
    m: np.ndarray, width: float, height: float, points: Sequence[Sequence[float]]
) -> np.ndarray:
    """Distance between each projected canvas corner and its destination.

    Args:
        m: 3x3 homography
        width: Canvas width
        height: Canvas height
        points: Four destination points

    Returns:
        Array of four distances in pixels
    """
    dst = as_points(points)
    projected = np.array([project_point(m, x, y) for x, y in canvas_corners(width, height)])
    return np.linalg.norm(projected - dst, axis=1)


def corner_rmse(
    m: np.ndarray, width: float, height: float, points: Sequence[Sequence[float]]
) -> float:
    """Root mean squared corner reprojection error in pixels."""
    errors = corner_errors(m, width, height, points)
    rmse = float(np.sqrt(np.mean(errors**2)))

    logger.debug(f"Corner reprojection RMSE: {rmse:.3e} px (max {errors.max():.3e} px)")
    return rmse


def inversion_residual(m: np.ndarray) -> float:
    """Largest deviation of m @ invert(m) from the identity."""
    m = np.asarray(m, dtype=np.float64)
    return float(np.max(np.abs(m @ invert(m) - identity(m.shape[0]))))


def stack_scales(stack: List[np.ndarray]) -> np.ndarray:
    """Approximate linear scale of each nesting level.

    Uses the square root of the absolute determinant of the planar 2x2 block
    after normalization, which is the area scale of an affine level.
    """
    scales = []
    for m in stack:
        w = m[3, 3] if m[3, 3] != 0 else 1.0
        block = m[:2, :2] / w
        scales.append(np.sqrt(abs(np.linalg.det(block))))
    return np.array(scales)


class Timer:
    """Utility class for timing operations with context manager support."""

    def __init__(self, name: str = "Timer", logger: Optional[logging.Logger] = None):
        """Initialize timer.

        Args:
            name: Timer name for logging
            logger: Logger to use (if None, uses module logger)
        """
        self.name = name
        self.logger = logger or logging.getLogger(__name__)
        self.start_time = None
        self.end_time = None

    def start(self) -> None:
        self.start_time = time.perf_counter()
        self.end_time = None

    def stop(self) -> float:
        """Stop the timer and return elapsed time in seconds."""
        if self.start_time is None:
            self.logger.warning(f"{self.name}: Timer stopped without being started")
            return 0.0

        self.end_time = time.perf_counter()
        elapsed = self.end_time - self.start_time
        self.logger.debug(f"{self.name}: {elapsed:.4f}s")
        return elapsed

    def __enter__(self) -> "Timer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    @property
    def elapsed(self) -> float:
        """Elapsed time in seconds, up to now if the timer is still running."""
        if self.start_time is None:
            return 0.0

        end = self.end_time if self.end_time is not None else time.perf_counter()
        return end - self.start_time


class DrosteMetrics:
    """Class for calculating and storing metrics of a Droste run."""

    def __init__(self):
        self.metrics = {
            "canvas": None,
            "depth": 0,
            "corner_rmse_px": None,
            "inversion_residual": None,
            "innermost_scale": None,
            "n_frames": 0,
            "runtime_s": 0.0,
            "stage_timings": {},
        }

    def update(self, metric_name: str, value) -> None:
        self.metrics[metric_name] = value

    def update_stage_timing(self, stage_name: str, time_s: float) -> None:
        self.metrics["stage_timings"][stage_name] = time_s

    def compute_transform_metrics(
        self,
        base3: np.ndarray,
        base4: np.ndarray,
        stack: List[np.ndarray],
        width: float,
        height: float,
        points: Sequence[Sequence[float]],
    ) -> None:
        """Compute accuracy metrics for a base transform and its stack.

        Args:
            base3: 3x3 homography
            base4: 4x4 promoted homography
            stack: Transform stack built from base4
            width: Canvas width
            height: Canvas height
            points: Destination points of the homography
        """
        self.metrics["canvas"] = [float(width), float(height)]
        self.metrics["depth"] = len(stack)
        self.metrics["corner_rmse_px"] = corner_rmse(base3, width, height, points)
        self.metrics["inversion_residual"] = inversion_residual(base4)
        self.metrics["innermost_scale"] = float(stack_scales(stack)[-1])

    def to_dict(self) -> Dict:
        return self.metrics.copy()

    def summary(self) -> str:
        """Generate a human-readable summary of metrics."""
        lines = ["Droste Metrics:"]

        if self.metrics["canvas"] is not None:
            width, height = self.metrics["canvas"]
            lines.append(f"  Canvas: {width:.0f}x{height:.0f}")

        lines.append(f"  Depth: {self.metrics['depth']}")

        if self.metrics["corner_rmse_px"] is not None:
            lines.append(f"  Corner RMSE: {self.metrics['corner_rmse_px']:.3e} px")

        if self.metrics["inversion_residual"] is not None:
            lines.append(f"  Inversion residual: {self.metrics['inversion_residual']:.3e}")

        if self.metrics["innermost_scale"] is not None:
            lines.append(f"  Innermost scale: {self.metrics['innermost_scale']:.3e}")

        lines.append(f"  Animation frames: {self.metrics['n_frames']}")
        lines.append(f"  Total runtime: {self.metrics['runtime_s']:.2f}s")

        if self.metrics["stage_timings"]:
            lines.append("  Stage timings:")
            for stage, time_s in self.metrics["stage_timings"].items():
                lines.append(f"    {stage}: {time_s:.2f}s")

        return "\n".join(lines)
