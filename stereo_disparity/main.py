"""
Main entry point for the Stereo Disparity Pipeline

Reads a rectified image pair, runs the pipeline and writes the normalized
disparity map (and optionally the depth edge mask).
"""

import argparse
import logging
import sys
from pathlib import Path

import cv2
import numpy as np

from stereo_disparity.exceptions import (
    InputUnreadableError, OutputWriteFailureError, StereoPipelineError
)
from stereo_disparity.pipeline import DisparityPipeline
from stereo_disparity.utils.config_manager import ConfigManager


def read_grayscale(path: str) -> np.ndarray:
    """Read an image file as 8-bit grayscale."""
    if not Path(path).is_file():
        raise InputUnreadableError(f"Image file not found: {path}")

    image = cv2.imread(path, cv2.IMREAD_GRAYSCALE)
    if image is None:
        raise InputUnreadableError(f"Image file could not be decoded: {path}")

    return image


def write_image(path: str, image: np.ndarray) -> None:
    """Write an image, creating the parent directory if needed."""
    output_path = Path(path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        written = cv2.imwrite(str(output_path), image)
    except (OSError, cv2.error) as e:
        raise OutputWriteFailureError(f"Could not write {path}: {e}") from e

    if not written:
        raise OutputWriteFailureError(f"Could not write {path}")


def main(argv=None):
    """Main entry point for the stereo disparity pipeline."""
    parser = argparse.ArgumentParser(
        description="Dense disparity and depth edges from a rectified grayscale stereo pair"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file"
    )

    parser.add_argument(
        "--left",
        type=str,
        required=True,
        help="Left rectified image"
    )

    parser.add_argument(
        "--right",
        type=str,
        required=True,
        help="Right rectified image"
    )

    parser.add_argument(
        "--output",
        type=str,
        default="out/disparity_map.jpg",
        help="Output path for the normalized disparity map"
    )

    parser.add_argument(
        "--edges-output",
        type=str,
        help="Optional output path for the depth edge mask"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s"
    )

    try:
        config = ConfigManager(args.config)
        print(f"Loaded configuration from: {config.config_path}")

        left_image = read_grayscale(args.left)
        right_image = read_grayscale(args.right)

        pipeline = DisparityPipeline(config)
        result = pipeline.run(left_image, right_image)

        write_image(args.output, result.disparity_visual)
        if args.edges_output:
            write_image(args.edges_output, result.edges)
    except (StereoPipelineError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    min_val, max_val = result.disparity_range
    print("Stereo Disparity Pipeline")
    print("=" * 50)
    print(f"Disparity range: min = {min_val:.3f}, max = {max_val:.3f}")
    print(f"Consistent pixels: {result.confidence.consistency_ratio:.3f}")
    print(f"Processing time: {result.processing_time:.2f}s")
    print(f"Disparity map written to: {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
