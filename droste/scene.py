"""Droste scene: points, canvas and depth with their derived transforms.

The scene is the glue between an interactive front end and the transform
engine. It validates every edit, keeps the last valid base transform and
stack when an edit is rejected, only rebuilds the stack when its inputs
change, and forwards base changes to the zoom animation.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from droste.animation import AnimationInterpolator
from droste.compose import SUPPORTED_DEPTHS, build_stack, validate_depth
from droste.controls import EditMode, move_point
from droste.errors import DrosteError
from droste.homography import as_points, compute_transform

logger = logging.getLogger(__name__)


class DrosteScene:
    """Current Droste configuration and its cached transforms."""

    def __init__(
        self,
        width: float,
        height: float,
        points: Sequence[Sequence[float]],
        depth: int = 32,
        allowed_depths: Optional[Iterable[int]] = SUPPORTED_DEPTHS,
        interpolator: Optional[AnimationInterpolator] = None,
    ):
        """Initialize the scene.

        Args:
            width: Canvas width in pixels
            height: Canvas height in pixels
            points: Four destination points
            depth: Number of nesting levels
            allowed_depths: Accepted depths, or None for any positive depth
            interpolator: Animation driven by this scene's base transform

        Raises:
            DrosteError: If the initial configuration is invalid
        """
        self.allowed_depths = None if allowed_depths is None else tuple(allowed_depths)
        self.interpolator = interpolator or AnimationInterpolator()

        self._width = float(width)
        self._height = float(height)
        self._points = as_points(points).copy()
        self._depth = validate_depth(depth, self.allowed_depths)

        self._base: Optional[np.ndarray] = None
        self._stack: List[np.ndarray] = []
        self._stack_key: Optional[Tuple] = None
        self.rebuilds = 0

        self._update(self._width, self._height, self._points, self._depth)

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def points(self) -> np.ndarray:
        return self._points.copy()

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def base(self) -> np.ndarray:
        """4x4 base transform of the last valid configuration."""
        return self._base.copy()

    @property
    def stack(self) -> List[np.ndarray]:
        """Transform stack of the last valid configuration."""
        return [m.copy() for m in self._stack]

    def _update(self, width: float, height: float, points: np.ndarray, depth: int) -> None:
        """Recompute derived transforms, committing only if everything succeeds."""
        key = (width, height, points.tobytes(), depth)
        if key == self._stack_key:
            return

        base = compute_transform(width, height, points)
        stack = build_stack(base, depth, self.allowed_depths)

        base_changed = self._base is None or not np.array_equal(base, self._base)

        self._width, self._height = width, height
        self._points = points
        self._depth = depth
        self._base = base
        self._stack = stack
        self._stack_key = key
        self.rebuilds += 1

        if base_changed:
            try:
                self.interpolator.set_base(base)
            except DrosteError:
                logger.warning("Animation disabled for the current transform")

    def _apply(self, width: float, height: float, points: np.ndarray, depth: int) -> None:
        try:
            self._update(width, height, points, depth)
        except DrosteError as e:
            logger.warning(f"Rejected scene update, keeping last valid transform: {e}")
            raise

    def set_points(self, points: Sequence[Sequence[float]]) -> None:
        """Replace all four destination points."""
        self._apply(self._width, self._height, as_points(points).copy(), self._depth)

    def move_point(self, index: int, x: float, y: float, mode: EditMode = EditMode.FREE) -> None:
        """Drag one point using the given edit mode."""
        points = move_point(mode, self._points, index, x, y, self._width, self._height)
        self._apply(self._width, self._height, points, self._depth)

    def set_depth(self, depth: int) -> None:
        """Change the number of nesting levels."""
        try:
            depth = validate_depth(depth, self.allowed_depths)
        except DrosteError as e:
            logger.warning(f"Rejected depth change: {e}")
            raise
        self._apply(self._width, self._height, self._points, depth)

    def resize(self, width: float, height: float) -> None:
        """Resize the canvas, scaling the points with it."""
        scale = np.array([width / self._width, height / self._height])
        self._apply(float(width), float(height), self._points * scale, self._depth)
