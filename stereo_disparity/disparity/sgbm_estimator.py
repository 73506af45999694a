"""
Semi-Global Block Matching (SGBM) Disparity Estimator

Chains cost volume construction, semi-global aggregation and disparity selection
for either reference side.
"""

import cv2
import numpy as np
from typing import Optional, Tuple, Dict, Any
import logging

from ..data_models import DisparityMap
from ..exceptions import DimensionMismatchError, pipeline_stage
from ..utils.config_manager import ConfigManager
from .cost_volume_builder import CostVolumeBuilder
from .sgm_aggregator import SemiGlobalAggregator
from .disparity_selector import DisparitySelector


class SGBMEstimator:
    """Semi-global block matching disparity estimator."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize SGBM estimator.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        self.cost_builder = CostVolumeBuilder(self.config)
        self.aggregator = SemiGlobalAggregator(self.config)
        self.selector = DisparitySelector(self.config)

        self.min_disparity = self.cost_builder.min_disparity
        self.num_disparities = self.cost_builder.num_disparities
        self.block_size = self.cost_builder.block_size

        self.logger.info(f"SGBM estimator initialized: {self.num_disparities} disparities, block_size={self.block_size}")

    def compute_disparity(self,
                          left_image: np.ndarray,
                          right_image: np.ndarray,
                          reference: str = 'left') -> DisparityMap:
        """
        Compute a disparity map with the given image as reference.

        The right-referenced map is computed on horizontally mirrored images,
        where matching the right image against the left one becomes a
        left-referenced search, and mirrored back. Its disparities are
        positive: right pixel x corresponds to left pixel x + d.

        Args:
            left_image: Left rectified grayscale image
            right_image: Right rectified grayscale image
            reference: 'left' or 'right'

        Returns:
            DisparityMap referenced to the requested side
        """
        if left_image.shape != right_image.shape:
            raise DimensionMismatchError("Left and right images must have same dimensions")

        left_gray = self._to_grayscale(left_image)
        right_gray = self._to_grayscale(right_image)

        if reference == 'left':
            disparity = self._match(left_gray, right_gray, reference)
        elif reference == 'right':
            mirrored = self._match(self._mirror(right_gray), self._mirror(left_gray), reference)
            disparity = DisparityMap(
                values=self._mirror(mirrored.values),
                min_disparity=mirrored.min_disparity,
                num_disparities=mirrored.num_disparities,
                reference=reference
            )
        else:
            raise ValueError(f"Unknown reference side: {reference}")

        self.logger.debug(f"Computed {reference} disparity map: "
                          f"{np.count_nonzero(disparity.valid_mask)} valid pixels")

        return disparity

    def _match(self, reference_image: np.ndarray, target_image: np.ndarray, reference: str) -> DisparityMap:
        with pipeline_stage(f"cost_volume[{reference}]"):
            cost_volume = self.cost_builder.build(reference_image, target_image)

        with pipeline_stage(f"aggregation[{reference}]"):
            aggregated = self.aggregator.aggregate(cost_volume)
        del cost_volume

        with pipeline_stage(f"selection[{reference}]"):
            return self.selector.select(aggregated, reference)

    @staticmethod
    def _mirror(image: np.ndarray) -> np.ndarray:
        return np.ascontiguousarray(image[:, ::-1])

    @staticmethod
    def _to_grayscale(image: np.ndarray) -> np.ndarray:
        if len(image.shape) == 3:
            return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        return image

    def get_disparity_range(self) -> Tuple[int, int]:
        """
        Get the current disparity range.

        Returns:
            Tuple of (min_disparity, max_disparity), max exclusive
        """
        return self.min_disparity, self.min_disparity + self.num_disparities

    def validate_disparity_map(self, disparity: DisparityMap) -> Dict[str, Any]:
        """
        Validate disparity map quality.

        Args:
            disparity: Selected disparity map

        Returns:
            Validation metrics
        """
        valid_mask = disparity.valid_mask
        valid_pixels = int(np.count_nonzero(valid_mask))
        total_pixels = disparity.values.size

        metrics = {
            'valid_pixel_ratio': valid_pixels / total_pixels,
            'total_pixels': total_pixels,
            'valid_pixels': valid_pixels,
            'mean_disparity': 0.0,
            'std_disparity': 0.0,
            'min_disparity': 0.0,
            'max_disparity': 0.0
        }

        if valid_pixels > 0:
            valid_disparities = disparity.values[valid_mask].astype(np.float32)
            metrics.update({
                'mean_disparity': float(np.mean(valid_disparities)),
                'std_disparity': float(np.std(valid_disparities)),
                'min_disparity': float(np.min(valid_disparities)),
                'max_disparity': float(np.max(valid_disparities))
            })

        return metrics
