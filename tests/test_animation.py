"""Tests for the zoom animation interpolator.

This module tests the OFF/ZOOM_IN/ZOOM_OUT state machine, progress
wrapping, the coefficient blend and the handling of singular transforms.
"""

import sys
import unittest
from pathlib import Path
from unittest import mock

import numpy as np
from scipy import linalg

# Add parent directory to path
sys.path.append(str(Path(__file__).resolve().parent.parent))

from droste import animation, homography
from droste.algebra import invert
from droste.animation import AnimationInterpolator, AnimationMode
from droste.errors import SingularMatrixError
from droste.promotion import promote


class TestAnimation(unittest.TestCase):
    """Test the animation state machine."""

    def setUp(self):
        """Set up a base transform and an interpolator with a coarse step."""
        self.base = homography.compute_transform(
            200, 150, [(30, 20), (170, 30), (20, 120), (160, 130)]
        )
        self.target = linalg.inv(self.base)

        self.anim = AnimationInterpolator(step=0.25)
        self.anim.set_base(self.base)

    def test_initial_state(self):
        """A new interpolator is OFF at progress 0 and yields the identity."""
        anim = AnimationInterpolator()

        self.assertEqual(anim.state, animation.AnimationState(AnimationMode.OFF, 0.0))
        self.assertEqual(anim.step, animation.DEFAULT_STEP)
        self.assertIsNone(anim.target)
        np.testing.assert_array_equal(anim.tick(), np.eye(4))

    def test_target_is_inverse(self):
        np.testing.assert_allclose(self.anim.target, self.target, rtol=1e-10, atol=1e-12)

    def test_interpolate_boundaries(self):
        """p=0 gives the identity, p=1 gives the target, p=0.5 the midpoint."""
        np.testing.assert_array_equal(animation.interpolate(self.target, 0.0), np.eye(4))
        np.testing.assert_allclose(animation.interpolate(self.target, 1.0), self.target)
        np.testing.assert_allclose(
            animation.interpolate(self.target, 0.5), (self.target + np.eye(4)) / 2
        )

    def test_off_yields_identity(self):
        for _ in range(3):
            np.testing.assert_array_equal(self.anim.tick(), np.eye(4))
        self.assertEqual(self.anim.state.progress, 0.0)

    def test_zoom_out(self):
        """ZOOM_OUT advances progress and blends towards the target."""
        self.anim.set_mode(AnimationMode.ZOOM_OUT)

        frame = self.anim.tick()
        self.assertAlmostEqual(self.anim.state.progress, 0.25)
        np.testing.assert_allclose(frame, animation.interpolate(self.anim.target, 0.25))

        frame = self.anim.tick()
        self.assertAlmostEqual(self.anim.state.progress, 0.5)
        np.testing.assert_allclose(frame, animation.interpolate(self.anim.target, 0.5))

    def test_zoom_out_wraps(self):
        """Progress wraps from 1 back to 0, returning to the identity."""
        self.anim.set_mode(AnimationMode.ZOOM_OUT)
        frames = list(self.anim.frames(5))

        # 0.25, 0.5, 0.75, then wrap to 0.0, then 0.25 again
        self.assertAlmostEqual(self.anim.state.progress, 0.25)
        np.testing.assert_allclose(frames[3], np.eye(4), atol=1e-12)
        np.testing.assert_allclose(frames[4], frames[0])

        # Closer to the target just before the wrap than halfway
        before_wrap = np.abs(frames[2] - self.anim.target).max()
        halfway = np.abs(frames[1] - self.anim.target).max()
        self.assertLess(before_wrap, halfway)

    def test_zoom_in_wraps(self):
        """ZOOM_IN steps backwards from 0 to just below 1."""
        self.anim.set_mode("ZOOM_IN")

        frame = self.anim.tick()
        self.assertAlmostEqual(self.anim.state.progress, 0.75)
        np.testing.assert_allclose(frame, animation.interpolate(self.anim.target, 0.75))

        list(self.anim.frames(3))
        self.assertAlmostEqual(self.anim.state.progress, 0.0)
        self.assertGreaterEqual(self.anim.state.progress, 0.0)
        self.assertLess(self.anim.state.progress, 1.0)

    def test_progress_stays_in_range(self):
        """Accumulated rounding never pushes progress out of [0, 1)."""
        for mode, step in ((AnimationMode.ZOOM_OUT, 0.01), (AnimationMode.ZOOM_IN, 0.01),
                           (AnimationMode.ZOOM_IN, 0.1)):
            anim = AnimationInterpolator(step=step)
            anim.set_base(self.base)
            anim.set_mode(mode)
            for _ in range(1000):
                anim.tick()
                self.assertGreaterEqual(anim.state.progress, 0.0)
                self.assertLess(anim.state.progress, 1.0)

    def test_off_resets(self):
        """Switching OFF resets progress and the next frame is the identity."""
        self.anim.set_mode(AnimationMode.ZOOM_OUT)
        list(self.anim.frames(2))

        self.anim.set_mode(AnimationMode.OFF)
        self.assertEqual(self.anim.state.progress, 0.0)
        np.testing.assert_array_equal(self.anim.tick(), np.eye(4))

        self.anim.set_mode(AnimationMode.ZOOM_OUT)
        self.anim.tick()
        self.assertAlmostEqual(self.anim.state.progress, 0.25)

    def test_direction_change_keeps_progress(self):
        self.anim.set_mode(AnimationMode.ZOOM_OUT)
        list(self.anim.frames(2))

        self.anim.set_mode(AnimationMode.ZOOM_IN)
        self.assertAlmostEqual(self.anim.state.progress, 0.5)
        self.anim.tick()
        self.assertAlmostEqual(self.anim.state.progress, 0.25)

    def test_state_is_snapshot(self):
        state = self.anim.state
        self.anim.set_mode(AnimationMode.ZOOM_OUT)
        self.anim.tick()

        self.assertIs(state.mode, AnimationMode.OFF)
        self.assertEqual(state.progress, 0.0)

    def test_parse_mode(self):
        self.assertIs(AnimationMode.parse("in"), AnimationMode.ZOOM_IN)
        self.assertIs(AnimationMode.parse("OUT"), AnimationMode.ZOOM_OUT)
        self.assertIs(AnimationMode.parse("zoom_out"), AnimationMode.ZOOM_OUT)
        self.assertIs(AnimationMode.parse("Off"), AnimationMode.OFF)
        self.assertIs(AnimationMode.parse(AnimationMode.ZOOM_IN), AnimationMode.ZOOM_IN)

        with self.assertRaises(ValueError):
            AnimationMode.parse("sideways")

    def test_target_cached(self):
        """The inverse is only recomputed when the base changes."""
        with mock.patch("droste.animation.invert", wraps=invert) as inv:
            self.anim.set_base(self.base.copy())
            self.assertEqual(inv.call_count, 0)

            other = homography.compute_transform(200, 150, [(0, 0), (150, 0), (0, 100), (150, 100)])
            self.anim.set_base(other)
            self.assertEqual(inv.call_count, 1)

    def test_singular_base_fails_safe(self):
        """A singular base switches the animation OFF and reports the error."""
        self.anim.set_mode(AnimationMode.ZOOM_OUT)
        self.anim.tick()

        singular = promote(np.array([
            [1.0, 2.0, 3.0],
            [2.0, 4.0, 6.0],
            [0.0, 0.0, 1.0],
        ]))
        with self.assertLogs("droste.animation", level="ERROR"):
            with self.assertRaises(SingularMatrixError):
                self.anim.set_base(singular)

        self.assertIs(self.anim.mode, AnimationMode.OFF)
        self.assertEqual(self.anim.state.progress, 0.0)
        self.assertIsNone(self.anim.target)
        np.testing.assert_array_equal(self.anim.tick(), np.eye(4))

    def test_invalid_step(self):
        for step in (0.0, -0.01, 1.0, 2.0):
            with self.assertRaises(ValueError):
                AnimationInterpolator(step=step)


if __name__ == "__main__":
    unittest.main()
