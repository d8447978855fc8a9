"""Recursive composition of the Droste transform.

Builds the ordered stack of nested transforms: level 0 is the untouched
canvas, and every following level applies the base homography once more,
producing progressively smaller copies when the base contracts.
"""

from __future__ import annotations

import logging
import numbers
from typing import Iterable, List, Optional

import numpy as np

from droste.algebra import identity, multiply3x3
from droste.errors import InvalidDepthError
from droste.promotion import demote, promote

logger = logging.getLogger(__name__)

SUPPORTED_DEPTHS = (2, 8, 16, 32, 72, 128, 256)
EXPENSIVE_DEPTH = 256


def validate_depth(depth: int, allowed_depths: Optional[Iterable[int]] = SUPPORTED_DEPTHS) -> int:
    """Validate a recursion depth.

    Args:
        depth: Requested number of nesting levels
        allowed_depths: Accepted values, or None to accept any positive depth

    Returns:
        The depth as a plain int

    Raises:
        InvalidDepthError: If depth is not a positive integer in allowed_depths
    """
    if isinstance(depth, bool) or not isinstance(depth, numbers.Integral):
        raise InvalidDepthError(f"Depth must be an integer, got {depth!r}")

    depth = int(depth)
    if depth < 1:
        raise InvalidDepthError(f"Depth must be at least 1, got {depth}")

    if allowed_depths is not None:
        allowed = tuple(allowed_depths)
        if depth not in allowed:
            raise InvalidDepthError(f"Depth {depth} is not one of {allowed}")

    return depth


def build_stack(
    base: np.ndarray,
    depth: int,
    allowed_depths: Optional[Iterable[int]] = SUPPORTED_DEPTHS,
) -> List[np.ndarray]:
    """Build the stack of nested transforms.

    stack[0] is the identity and stack[i] is stack[i-1] followed by one more
    application of base. The products are taken on the 3x3 planar matrices
    and promoted back, one multiplication per level.

    Args:
        base: 4x4 promoted homography
        depth: Number of nesting levels
        allowed_depths: Accepted depths, or None to accept any positive depth

    Returns:
        List of depth 4x4 transforms
    """
    depth = validate_depth(depth, allowed_depths)

    if depth >= EXPENSIVE_DEPTH:
        logger.warning(f"Depth {depth} is expensive to render")

    base3 = demote(base)
    stack = [identity(4)]
    for _ in range(1, depth):
        stack.append(promote(multiply3x3(demote(stack[-1]), base3)))

    logger.debug(f"Built transform stack with {len(stack)} levels")
    return stack


def compose_power(base: np.ndarray, n: int) -> np.ndarray:
    """Apply a 4x4 promoted homography n times in sequence.

    Args:
        base: 4x4 promoted homography
        n: Number of applications (0 gives the identity)

    Returns:
        4x4 transform equal to base composed with itself n times
    """
    if n < 0:
        raise ValueError(f"Power must be non-negative, got {n}")

    base3 = demote(base)
    result = identity(3)
    for _ in range(n):
        result = multiply3x3(result, base3)
    return promote(result)
