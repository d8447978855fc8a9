"""Looping zoom animation through the Droste nesting.

The interpolator blends, coefficient by coefficient, between the identity
and the inverse of the base transform. Sweeping the progress scalar over
[0, 1) zooms by exactly one nesting level; wrapping it modulo 1 makes the
loop seamless.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
from typing import Iterator, Optional, Union

import numpy as np

from droste.algebra import identity, invert
from droste.errors import SingularMatrixError

logger = logging.getLogger(__name__)

DEFAULT_STEP = 0.009


class AnimationMode(enum.Enum):
    """Animation commands accepted from the outside."""

    OFF = "OFF"
    ZOOM_IN = "ZOOM_IN"
    ZOOM_OUT = "ZOOM_OUT"

    @classmethod
    def parse(cls, value: Union["AnimationMode", str]) -> "AnimationMode":
        """Parse a mode from an enum member or a name such as "in" or "ZOOM_OUT"."""
        if isinstance(value, cls):
            return value
        # YAML reads an unquoted OFF as False
        if value is None or value is False:
            return cls.OFF

        name = str(value).strip().upper()
        aliases = {"IN": cls.ZOOM_IN, "OUT": cls.ZOOM_OUT, "NONE": cls.OFF}
        if name in aliases:
            return aliases[name]
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"Unknown animation mode: {value!r}") from None


@dataclasses.dataclass
class AnimationState:
    """Current animation mode and progress in [0, 1)."""

    mode: AnimationMode = AnimationMode.OFF
    progress: float = 0.0


def interpolate(target: np.ndarray, progress: float) -> np.ndarray:
    """Blend linearly between the identity and target.

    This is a plain coefficient-space blend, out = target*p + I*(1-p), not an
    interpolation of the underlying projective transform.

    Args:
        target: 4x4 target transform
        progress: Blend factor, 0 gives the identity and 1 gives target

    Returns:
        4x4 interpolated transform
    """
    target = np.asarray(target, dtype=np.float64)
    return target * progress + identity(target.shape[0]) * (1.0 - progress)


class AnimationInterpolator:
    """Frame-driven zoom animation state machine.

    The interpolator owns the animation state and the cached target matrix;
    only its own methods mutate them. Mode changes come from set_mode(), and
    tick() advances the animation by one frame.
    """

    def __init__(self, step: float = DEFAULT_STEP):
        """Initialize the interpolator in the OFF state.

        Args:
            step: Progress advanced per frame, in (0, 1)
        """
        if not 0.0 < step < 1.0:
            raise ValueError(f"Animation step must be in (0, 1), got {step}")

        self.step = step
        self._state = AnimationState()
        self._base: Optional[np.ndarray] = None
        self._target: Optional[np.ndarray] = None

    @property
    def state(self) -> AnimationState:
        """Snapshot of the current animation state."""
        return dataclasses.replace(self._state)

    @property
    def mode(self) -> AnimationMode:
        return self._state.mode

    @property
    def target(self) -> Optional[np.ndarray]:
        """Copy of the cached target matrix, or None if no base is set."""
        return None if self._target is None else self._target.copy()

    def set_base(self, base: np.ndarray) -> None:
        """Set the base transform and recompute the animation target.

        The target is the inverse of the base; it is only recomputed when
        the base actually changes.

        Args:
            base: 4x4 promoted homography

        Raises:
            SingularMatrixError: If the base cannot be inverted. The
                animation is switched OFF before the error propagates.
        """
        base = np.asarray(base, dtype=np.float64)
        if self._base is not None and np.array_equal(base, self._base):
            return

        try:
            target = invert(base)
        except SingularMatrixError as e:
            logger.error(f"Cannot animate singular transform: {e}")
            self._base = None
            self._target = None
            self.set_mode(AnimationMode.OFF)
            raise

        self._base = base.copy()
        self._target = target
        logger.debug("Animation target updated")

    def set_mode(self, mode: Union[AnimationMode, str]) -> None:
        """Switch animation mode.

        Entering OFF resets progress to 0, so the next frame is the identity.

        Args:
            mode: New mode, as an AnimationMode or its name
        """
        mode = AnimationMode.parse(mode)
        if mode is self._state.mode:
            return

        logger.info(f"Animation {self._state.mode.name} -> {mode.name}")
        self._state.mode = mode
        if mode is AnimationMode.OFF:
            self._state.progress = 0.0

    def tick(self) -> np.ndarray:
        """Advance the animation by one frame.

        Returns:
            4x4 transform for the animated layer
        """
        if self._state.mode is AnimationMode.OFF or self._target is None:
            return identity(4)

        if self._state.mode is AnimationMode.ZOOM_OUT:
            p = self._state.progress + self.step
        else:
            p = self._state.progress - self.step

        # Wrap into [0, 1)
        if p >= 1.0:
            p -= 1.0
        elif p < 0.0:
            p += 1.0
            # -1e-17 + 1.0 rounds to 1.0
            if p >= 1.0:
                p = 0.0
        self._state.progress = p

        return interpolate(self._target, p)

    def frames(self, n_frames: int) -> Iterator[np.ndarray]:
        """Yield the transforms of the next n_frames ticks."""
        for _ in range(n_frames):
            yield self.tick()
