"""
Disparity Pipeline Controller

Runs matching for both reference sides, the consistency check, WLS refinement,
normalization and edge extraction as one invoke-and-produce computation.
"""

import time
import cv2
import numpy as np
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple
import logging

from .data_models import PipelineResult
from .disparity import SGBMEstimator, ConsistencyChecker, EdgeAwareRefiner
from .exceptions import (
    DimensionMismatchError, InputUnreadableError, InvalidConfigurationError, pipeline_stage
)
from .postprocessing import PostProcessor, EdgeDetector
from .utils.config_manager import ConfigManager


class DisparityPipeline:
    """Image pair -> normalized disparity map and depth edges."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize the pipeline and all of its stages.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        self.estimator = SGBMEstimator(self.config)
        self.consistency_checker = ConsistencyChecker(self.config)
        self.refiner = EdgeAwareRefiner(self.config)
        self.post_processor = PostProcessor(self.config)
        self.edge_detector = EdgeDetector(self.config)

        self.parallel = bool(self.config.get_pipeline_params().get('parallel', True))

    def run(self, left_image: np.ndarray, right_image: np.ndarray) -> PipelineResult:
        """
        Run the full pipeline.

        Args:
            left_image: Left rectified image
            right_image: Right rectified image

        Returns:
            PipelineResult with the visual disparity, edges and intermediates
        """
        start_time = time.time()

        left_gray, right_gray = self._validate_inputs(left_image, right_image)

        # Both reference directions are independent
        if self.parallel:
            with ThreadPoolExecutor(max_workers=2) as executor:
                left_future = executor.submit(self.estimator.compute_disparity, left_gray, right_gray, 'left')
                right_future = executor.submit(self.estimator.compute_disparity, left_gray, right_gray, 'right')
                left_disparity = left_future.result()
                right_disparity = right_future.result()
        else:
            left_disparity = self.estimator.compute_disparity(left_gray, right_gray, 'left')
            right_disparity = self.estimator.compute_disparity(left_gray, right_gray, 'right')

        with pipeline_stage("consistency"):
            confidence = self.consistency_checker.check(left_disparity, right_disparity)

        with pipeline_stage("refinement"):
            refined = self.refiner.refine(left_disparity, confidence, left_gray)

        with pipeline_stage("post_processing"):
            visual, disparity_range = self.post_processor.process(refined)

        with pipeline_stage("edge_detection"):
            edges = self.edge_detector.detect(visual)

        processing_time = time.time() - start_time
        self.logger.info(f"Pipeline finished in {processing_time:.3f}s: "
                         f"{left_disparity.valid_ratio:.3f} valid, "
                         f"{confidence.consistency_ratio:.3f} consistent")

        return PipelineResult(
            disparity_visual=visual,
            edges=edges,
            refined_disparity=refined,
            left_disparity=left_disparity,
            right_disparity=right_disparity,
            confidence=confidence,
            disparity_range=disparity_range,
            processing_time=processing_time
        )

    def _validate_inputs(self,
                         left_image: Optional[np.ndarray],
                         right_image: Optional[np.ndarray]) -> Tuple[np.ndarray, np.ndarray]:
        """
        Check the image pair before any stage runs.

        Args:
            left_image: Left image
            right_image: Right image

        Returns:
            Tuple of grayscale (left, right)
        """
        images = []
        for name, image in (('left', left_image), ('right', right_image)):
            if image is None or not isinstance(image, np.ndarray) or image.size == 0:
                raise InputUnreadableError(f"{name} image is missing or empty")

            if image.dtype == np.float64:
                image = image.astype(np.float32)

            if len(image.shape) == 3 and image.shape[2] == 3:
                image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
            elif len(image.shape) != 2:
                raise InputUnreadableError(f"{name} image must be grayscale or BGR, got shape {image.shape}")

            images.append(image)

        left_gray, right_gray = images

        if left_gray.shape != right_gray.shape:
            raise DimensionMismatchError(f"Left and right images must have same dimensions: "
                                         f"{left_gray.shape} vs {right_gray.shape}")

        start, stop = self.estimator.cost_builder.valid_column_range(left_gray.shape[1])
        if start >= stop:
            raise InvalidConfigurationError(f"Disparity search range {self.estimator.get_disparity_range()} "
                                            f"leaves no matchable column in an image {left_gray.shape[1]} pixels wide")

        return left_gray, right_gray
