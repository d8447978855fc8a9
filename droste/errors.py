"""Exceptions raised by the projective transform engine."""

from __future__ import annotations


class DrosteError(Exception):
    """Base class for all errors raised by the droste package."""


class DegenerateQuadrilateralError(DrosteError, ValueError):
    """Raised when four points cannot define a projective transform.

    Happens when three of the destination points are collinear, two of them
    coincide, or the canvas rectangle itself has no area.
    """


class SingularMatrixError(DrosteError, ArithmeticError):
    """Raised when a matrix has no usable inverse (zero or tiny pivot)."""


class InvalidDepthError(DrosteError, ValueError):
    """Raised when a recursion depth is outside the supported set."""
