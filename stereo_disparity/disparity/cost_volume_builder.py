"""
Block-Matching Cost Volume Builder

Computes per-pixel, per-candidate-disparity matching costs over a square block.
"""

import cv2
import numpy as np
from typing import Optional, Tuple
import logging

from ..data_models import CostVolume
from ..exceptions import DimensionMismatchError
from ..utils.config_manager import ConfigManager


class CostVolumeBuilder:
    """Builds SAD or Birchfield-Tomasi cost volumes from a pre-filtered image pair."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize cost volume builder.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        sgbm_config = self.config.get_sgbm_params()

        self.min_disparity = sgbm_config.get('min_disparity', 0)
        self.num_disparities = sgbm_config.get('num_disparities', 256)
        self.block_size = sgbm_config.get('block_size', 5)

        # Bias/gain normalization
        self.pre_filter_cap = sgbm_config.get('pre_filter_cap', 31)
        self.pre_filter_size = sgbm_config.get('pre_filter_size', 9)

        self.cost_metric = sgbm_config.get('cost_metric', 'sad')

        self.logger.info(f"Cost volume builder initialized: {self.num_disparities} disparities from "
                         f"{self.min_disparity}, block_size={self.block_size}, metric={self.cost_metric}")

    @property
    def max_cost(self) -> float:
        """Largest possible block cost; used for out-of-bounds candidates."""
        return float(2 * self.pre_filter_cap * self.block_size * self.block_size)

    def valid_column_range(self, width: int) -> Tuple[int, int]:
        """
        Columns whose whole search range maps inside an image of the given width.

        Args:
            width: Image width in pixels

        Returns:
            Tuple of (start, stop), empty when start >= stop
        """
        max_disparity = self.min_disparity + self.num_disparities - 1
        start = max(0, max_disparity)
        stop = min(width, width + self.min_disparity)
        return start, stop

    def build(self, reference: np.ndarray, target: np.ndarray) -> CostVolume:
        """
        Build the cost volume with `reference` as the primary image.

        Reference pixel (y, x) is compared with target pixel (y, x - d).

        Args:
            reference: Reference grayscale image
            target: Target grayscale image

        Returns:
            CostVolume of shape (H, W, num_disparities)
        """
        if reference.shape != target.shape:
            raise DimensionMismatchError("Reference and target images must have same dimensions")

        height, width = reference.shape
        ref = self._prefilter(reference)
        tgt = self._prefilter(target)

        if self.cost_metric == 'bt':
            ref_low, ref_high = self._half_sample_bounds(ref)
            tgt_low, tgt_high = self._half_sample_bounds(tgt)

        costs = np.empty((height, width, self.num_disparities), dtype=np.float32)
        columns = np.arange(width)

        for index in range(self.num_disparities):
            d = self.min_disparity + index

            if self.cost_metric == 'bt':
                shifted = self._shift(tgt, d)
                # Reference sample against the target's half-pixel interval and vice versa
                forward = np.maximum(0.0, np.maximum(ref - self._shift(tgt_high, d),
                                                     self._shift(tgt_low, d) - ref))
                backward = np.maximum(0.0, np.maximum(shifted - ref_high, ref_low - shifted))
                pixel_cost = np.minimum(forward, backward)
            else:
                pixel_cost = np.abs(ref - self._shift(tgt, d))

            block_cost = cv2.boxFilter(pixel_cost, -1, (self.block_size, self.block_size),
                                       normalize=False, borderType=cv2.BORDER_REPLICATE)

            out_of_bounds = (columns - d < 0) | (columns - d >= width)
            block_cost[:, out_of_bounds] = self.max_cost
            costs[:, :, index] = block_cost

        start, stop = self.valid_column_range(width)

        # Zero on flat reference blocks, whatever the target looks like
        texture = cv2.boxFilter(np.abs(ref), -1, (self.block_size, self.block_size),
                                normalize=False, borderType=cv2.BORDER_REPLICATE)

        self.logger.debug(f"Built cost volume {costs.shape}, valid columns [{start}, {stop})")

        return CostVolume(
            costs=costs,
            min_disparity=self.min_disparity,
            max_cost=self.max_cost,
            valid_x_start=start,
            valid_x_stop=stop,
            texture=texture
        )

    def _prefilter(self, image: np.ndarray) -> np.ndarray:
        """
        Subtract the local mean and clip to [-pre_filter_cap, pre_filter_cap].

        Args:
            image: Input grayscale image

        Returns:
            Normalized float32 image
        """
        image_float = image.astype(np.float32)
        local_mean = cv2.blur(image_float, (self.pre_filter_size, self.pre_filter_size),
                              borderType=cv2.BORDER_REPLICATE)
        return np.clip(image_float - local_mean, -self.pre_filter_cap, self.pre_filter_cap)

    @staticmethod
    def _half_sample_bounds(image: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Min and max of each pixel and its two linearly interpolated half-pixel neighbours."""
        padded = np.pad(image, ((0, 0), (1, 1)), mode='edge')
        left_half = 0.5 * (padded[:, :-2] + image)
        right_half = 0.5 * (padded[:, 2:] + image)
        low = np.minimum(image, np.minimum(left_half, right_half))
        high = np.maximum(image, np.maximum(left_half, right_half))
        return low, high

    @staticmethod
    def _shift(image: np.ndarray, d: int) -> np.ndarray:
        """Column x of the result holds column x - d of the image (edge replicated)."""
        if d == 0:
            return image
        width = image.shape[1]
        columns = np.clip(np.arange(width) - d, 0, width - 1)
        return image[:, columns]
