#!/usr/bin/env python3
"""
Droste Creator

This script renders a Droste image from a picture and four destination
points: it solves the four-point homography, builds the recursive transform
stack, renders the nested composite and, optionally, the frames of the
looping zoom animation.
"""

from __future__ import annotations

import argparse
import datetime
import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np
import yaml
from tqdm import tqdm

# Add parent directory to path
sys.path.append(str(Path(__file__).resolve().parent.parent))

from droste import compose, controls, evaluate, promotion, render, visualise
from droste.animation import AnimationInterpolator, AnimationMode
from droste.scene import DrosteScene


# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
    handlers=[
        logging.StreamHandler(),
    ],
)
logger = logging.getLogger("droste")


def load_config(config_path: Optional[str] = None) -> Dict:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"

    with open(config_path, "r") as f:
        config = yaml.safe_load(f)

    return config


def make_checkerboard(width: int, height: int, cells: int = 8) -> np.ndarray:
    """Generate a colourful checkerboard test image.

    Args:
        width: Image width
        height: Image height
        cells: Number of cells along the longer side

    Returns:
        HxWx3 uint8 BGR image
    """
    cell = max(1, max(width, height) // cells)
    ys, xs = np.mgrid[0:height, 0:width]
    checker = ((xs // cell + ys // cell) % 2).astype(np.uint8)

    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[..., 0] = (xs * 255 // max(1, width - 1)).astype(np.uint8)
    image[..., 1] = (ys * 255 // max(1, height - 1)).astype(np.uint8)
    image[..., 2] = 200 * checker + 55

    # Frame the picture so the nesting is easy to follow
    cv2.rectangle(image, (0, 0), (width - 1, height - 1), (255, 255, 255), max(2, cell // 8))
    return image


def read_image(image_path: Optional[str], max_size: Tuple[int, int]) -> np.ndarray:
    """Read an image and fit it inside max_size, keeping its aspect ratio.

    Args:
        image_path: Path to the image, or None for a generated test image
        max_size: Maximum (width, height) of the canvas

    Returns:
        BGR image at canvas size
    """
    max_width, max_height = max_size

    if image_path is None:
        logger.info("No input image given, using a generated checkerboard")
        return make_checkerboard(int(max_width * 3 / 4), int(max_height))

    logger.info(f"Reading image from {image_path}")
    image = cv2.imread(str(image_path))
    if image is None:
        raise FileNotFoundError(f"Failed to read image {image_path}")

    height, width = image.shape[:2]
    canvas_width, canvas_height = controls.fit_canvas(max_width, max_height, width / height)
    size = (max(1, int(round(canvas_width))), max(1, int(round(canvas_height))))

    if size != (width, height):
        image = cv2.resize(image, size, interpolation=cv2.INTER_AREA)
        logger.info(f"Resized image from {width}x{height} to {size[0]}x{size[1]}")

    return image


def resolve_points(config: Dict, width: float, height: float) -> np.ndarray:
    """Place the destination points on the canvas from the configuration."""
    fractions = config["points"]["fractions"]

    if config["points"].get("jitter", False):
        rng = np.random.default_rng(config["points"].get("seed"))
        fractions = controls.jitter_fractions(fractions, rng)

    return controls.points_from_fractions(fractions, width, height)


def save_results(
    output_dir: str,
    image: np.ndarray,
    stack: List[np.ndarray],
    points: np.ndarray,
    metrics: Optional[Dict] = None,
) -> None:
    """Save the rendered image and transforms to the output directory.

    Args:
        output_dir: Path to output directory
        image: Rendered Droste composite
        stack: Transform stack
        points: Destination points
        metrics: Run metrics (optional)
    """
    logger.info(f"Saving results to {output_dir}")
    os.makedirs(output_dir, exist_ok=True)

    cv2.imwrite(os.path.join(output_dir, "droste.png"), image)

    with open(os.path.join(output_dir, "stack.npy"), "wb") as f:
        np.save(f, np.array(stack))

    transforms = {
        "points": points.tolist(),
        "matrix3d": [promotion.css_matrix3d(m) for m in stack],
    }
    with open(os.path.join(output_dir, "transforms.json"), "w") as f:
        json.dump(transforms, f, indent=2)

    if metrics is not None:
        with open(os.path.join(output_dir, "report.json"), "w") as f:
            json.dump(metrics, f, indent=2)

    logger.info("Results saved successfully")


def run_droste(
    output_dir: str,
    image_path: Optional[str] = None,
    depth: Optional[int] = None,
    animation: Optional[str] = None,
    n_frames: Optional[int] = None,
    visualise_results: bool = False,
    config_path: Optional[str] = None,
) -> Dict:
    """Render a Droste image and, optionally, its zoom animation.

    Args:
        output_dir: Path to output directory
        image_path: Path to the source image (None for a test image)
        depth: Number of nesting levels (overrides config)
        animation: Animation mode (overrides config)
        n_frames: Number of animation frames to render (overrides config)
        visualise_results: Whether to save an outline plot of the nesting
        config_path: Path to configuration file

    Returns:
        Dictionary of run metrics
    """
    run_timer = evaluate.Timer("Droste")
    run_timer.start()

    os.makedirs(output_dir, exist_ok=True)

    # Set up file logging
    file_handler = logging.FileHandler(os.path.join(output_dir, "log.txt"))
    file_handler.setFormatter(logging.Formatter("[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"))
    logging.getLogger().addHandler(file_handler)

    try:
        config = load_config(config_path)

        # Update configuration with command-line arguments
        if image_path is not None:
            config["io"]["input_image"] = image_path
        if depth is not None:
            config["droste"]["depth"] = depth
        if animation is not None:
            config["animation"]["mode"] = animation
        if n_frames is not None:
            config["animation"]["frames"] = n_frames
        config["io"]["output_dir"] = output_dir

        metrics = evaluate.DrosteMetrics()
        background = config["render"]["background"]

        # === Stage 1: Read Image ===
        with evaluate.Timer("Read Image") as timer:
            image = read_image(
                config["io"]["input_image"],
                (config["canvas"]["max_width"], config["canvas"]["max_height"]),
            )
            metrics.update_stage_timing("read_image", timer.elapsed)

        height, width = image.shape[:2]
        logger.info(f"Canvas size: {width}x{height}")

        # === Stage 2: Transforms ===
        with evaluate.Timer("Transforms") as timer:
            points = resolve_points(config, width, height)
            allowed = compose.SUPPORTED_DEPTHS if config["droste"].get("strict_depth", True) else None
            interpolator = AnimationInterpolator(step=config["animation"]["step"])
            scene = DrosteScene(
                width, height, points,
                depth=config["droste"]["depth"],
                allowed_depths=allowed,
                interpolator=interpolator,
            )
            base3 = promotion.demote(scene.base)
            metrics.update_stage_timing("transforms", timer.elapsed)

        logger.info(f"Base transform:\n{base3}")
        metrics.compute_transform_metrics(base3, scene.base, scene.stack, width, height, scene.points)

        # === Stage 3: Render Composite ===
        with evaluate.Timer("Render") as timer:
            composite = render.render_stack(image, scene.stack, background)
            metrics.update_stage_timing("render", timer.elapsed)

        # === Stage 4: Animation Frames (optional) ===
        frame_count = int(config["animation"]["frames"])
        interpolator.set_mode(config["animation"]["mode"])
        if frame_count > 0 and interpolator.target is None:
            logger.warning("No animation target, skipping animation frames")
        elif frame_count > 0 and interpolator.mode is not AnimationMode.OFF:
            frames_dir = os.path.join(output_dir, "frames")
            os.makedirs(frames_dir, exist_ok=True)

            with evaluate.Timer("Animation") as timer:
                frames = interpolator.frames(frame_count)
                for i, transform in enumerate(tqdm(frames, total=frame_count, desc="Rendering frames")):
                    frame = render.render_frame(composite, transform, background)
                    cv2.imwrite(os.path.join(frames_dir, f"frame_{i:04d}.png"), frame)
                metrics.update_stage_timing("animation", timer.elapsed)

            metrics.update("n_frames", frame_count)

        if visualise_results:
            visualise.plot_nesting(
                scene.stack, width, height,
                os.path.join(output_dir, "nesting.png"),
                image=composite,
            )

        # === Stage 5: Save Results ===
        metrics.update("runtime_s", run_timer.elapsed)
        metrics_dict = metrics.to_dict()
        metrics_dict["datetime"] = datetime.datetime.now().isoformat()
        save_results(output_dir, composite, scene.stack, scene.points, metrics_dict)

        logger.info("\n" + metrics.summary())
        return metrics_dict
    finally:
        logging.getLogger().removeHandler(file_handler)
        file_handler.close()


def main():
    """Main function to parse arguments and render the Droste image."""
    parser = argparse.ArgumentParser(description="Droste Creator")
    parser.add_argument(
        "--image", "-i", dest="image_path", default=None,
        help="Path to the source image (default: generated checkerboard)"
    )
    parser.add_argument(
        "--output", "-o", dest="output_dir", default="results/run1",
        help="Path to output directory"
    )
    parser.add_argument(
        "--depth", "-d", dest="depth", type=int, default=None,
        help="Number of nesting levels"
    )
    parser.add_argument(
        "--animation", "-a", dest="animation", default=None,
        choices=[mode.name for mode in AnimationMode],
        help="Zoom animation mode"
    )
    parser.add_argument(
        "--frames", "-n", dest="n_frames", type=int, default=None,
        help="Number of animation frames to render"
    )
    parser.add_argument(
        "--visualise", "-v", dest="visualise", action="store_true",
        help="Save a plot of the nested outlines"
    )
    parser.add_argument(
        "--config", "-c", dest="config_path", default=None,
        help="Path to configuration file"
    )

    args = parser.parse_args()

    try:
        run_droste(
            args.output_dir,
            args.image_path,
            args.depth,
            args.animation,
            args.n_frames,
            args.visualise,
            args.config_path,
        )
    except Exception as e:
        logger.exception(f"Error rendering Droste image: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
