"""Droste effect creation from four-point projective transforms.

A Python project that warps a rectangular image into an arbitrary
quadrilateral and nests it infinitely inside itself, exposing the projective
linear algebra (homography solving, matrix inversion, recursive composition
and zoom interpolation) in clean, documented code.
"""

from __future__ import annotations

from droste.errors import (
    DegenerateQuadrilateralError,
    DrosteError,
    InvalidDepthError,
    SingularMatrixError,
)

__version__ = "0.1.0"

__all__ = [
    "DegenerateQuadrilateralError",
    "DrosteError",
    "InvalidDepthError",
    "SingularMatrixError",
    "__version__",
]
