"""Visualization utilities for Droste transforms.

This module draws the outlines of the nested copies produced by a transform
stack, optionally over the rendered image, so the geometry of the recursion
can be inspected without a browser.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import cv2
import matplotlib.pyplot as plt
import numpy as np

from droste.homography import canvas_corners, project_point
from droste.promotion import demote

logger = logging.getLogger(__name__)

# Corner order around the quad outline (point indices 0, 1, 3, 2)
_OUTLINE_ORDER = [0, 1, 3, 2, 0]


def level_outlines(stack: List[np.ndarray], width: float, height: float) -> np.ndarray:
    """Project the canvas outline through every stack level.

    Args:
        stack: Transform stack from build_stack()
        width: Canvas width
        height: Canvas height

    Returns:
        Array of shape (depth, 5, 2) with closed outline polygons
    """
    corners = canvas_corners(width, height)
    outlines = []
    for transform in stack:
        m = demote(transform)
        projected = np.array([project_point(m, x, y) for x, y in corners])
        outlines.append(projected[_OUTLINE_ORDER])
    return np.array(outlines)


def plot_nesting(
    stack: List[np.ndarray],
    width: float,
    height: float,
    output_path: str,
    image: Optional[np.ndarray] = None,
    max_levels: int = 32,
) -> None:
    """Create and save a plot of the nested quad outlines.

    Args:
        stack: Transform stack from build_stack()
        width: Canvas width
        height: Canvas height
        output_path: Path to save the figure
        image: Optional BGR image drawn underneath the outlines
        max_levels: Maximum number of levels to draw
    """
    outlines = level_outlines(stack[:max_levels], width, height)

    fig, ax = plt.subplots(figsize=(8, 8 * height / width))

    if image is not None:
        if image.ndim == 3:
            ax.imshow(cv2.cvtColor(image, cv2.COLOR_BGR2RGB), extent=(0, width, height, 0))
        else:
            ax.imshow(image, cmap="gray", extent=(0, width, height, 0))

    for i, outline in enumerate(outlines):
        color = plt.cm.viridis(i / max(1, len(outlines) - 1))
        ax.plot(outline[:, 0], outline[:, 1], "-", color=color, linewidth=1)

    # Mark the destination points of the base transform
    if len(outlines) > 1:
        ax.plot(outlines[1][:4, 0], outlines[1][:4, 1], "o", color="red", markersize=5)

    ax.set_xlim(0, width)
    ax.set_ylim(height, 0)
    ax.set_aspect("equal")
    ax.set_title(f"Droste nesting ({len(stack)} levels)")
    ax.axis("off")

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Nesting visualization saved to {output_path}")
