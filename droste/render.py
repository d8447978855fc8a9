"""Reference raster renderer for Droste transform stacks.

Renders with OpenCV what a browser would render with CSS matrix3d layers:
one warped copy of the source image per stack level, later levels drawn on
top, and an optional animated transform applied to the whole composite.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from droste.animation import AnimationInterpolator
from droste.promotion import demote

logger = logging.getLogger(__name__)


def _border_value(background: Sequence[float], image: np.ndarray) -> Tuple[float, ...]:
    channels = 1 if image.ndim == 2 else image.shape[2]
    values = tuple(float(v) for v in background)
    if len(values) == 1:
        values = values * channels
    return values[:channels]


def warp_layer(
    image: np.ndarray,
    transform: np.ndarray,
    size: Optional[Tuple[int, int]] = None,
    background: Sequence[float] = (0, 0, 0),
) -> np.ndarray:
    """Warp an image by a 4x4 promoted homography.

    Args:
        image: Source image (HxW or HxWxC)
        transform: 4x4 promoted homography in pixel coordinates
        size: Output (width, height), defaults to the image size
        background: Fill value outside the warped image

    Returns:
        Warped image
    """
    if size is None:
        size = (image.shape[1], image.shape[0])

    return cv2.warpPerspective(
        image,
        demote(transform),
        size,
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=_border_value(background, image),
    )


def render_stack(
    image: np.ndarray,
    stack: List[np.ndarray],
    background: Sequence[float] = (0, 0, 0),
) -> np.ndarray:
    """Composite one warped copy of image per stack level.

    Args:
        image: Source image, already at canvas size
        stack: Transform stack from build_stack()
        background: Canvas fill colour

    Returns:
        Composite image with the same shape and dtype as image
    """
    h, w = image.shape[:2]
    source = image.astype(np.float32)
    coverage = np.ones((h, w), dtype=np.float32)

    fill = np.asarray(_border_value(background, image), dtype=np.float32)
    canvas = np.empty_like(source)
    canvas[...] = fill if image.ndim == 3 else fill[0]

    for level, transform in enumerate(stack):
        layer = warp_layer(source, transform, (w, h))
        alpha = warp_layer(coverage, transform, (w, h))
        if image.ndim == 3:
            alpha = alpha[..., np.newaxis]

        # Edge pixels of layer are already weighted by coverage
        canvas = canvas * (1.0 - alpha) + layer

        # Levels smaller than a pixel add nothing
        if alpha.max() == 0:
            logger.debug(f"Stopped compositing at level {level}: layer is empty")
            break

    if np.issubdtype(image.dtype, np.integer):
        info = np.iinfo(image.dtype)
        canvas = np.clip(np.rint(canvas), info.min, info.max)

    return canvas.astype(image.dtype)


def render_frame(
    composite: np.ndarray,
    transform: np.ndarray,
    background: Sequence[float] = (0, 0, 0),
) -> np.ndarray:
    """Apply an animated 4x4 transform to a rendered composite."""
    return warp_layer(composite, transform, background=background)


def render_animation(
    image: np.ndarray,
    stack: List[np.ndarray],
    interpolator: AnimationInterpolator,
    n_frames: int,
    background: Sequence[float] = (0, 0, 0),
) -> Iterator[np.ndarray]:
    """Render successive frames of the zoom animation.

    Args:
        image: Source image, already at canvas size
        stack: Transform stack from build_stack()
        interpolator: Animation driving the top-level transform
        n_frames: Number of frames to render
        background: Canvas fill colour

    Yields:
        One rendered frame per animation tick
    """
    composite = render_stack(image, stack, background)
    for transform in interpolator.frames(n_frames):
        yield render_frame(composite, transform, background)
