"""
Winner-Take-All Disparity Selector

Picks the minimum-cost disparity per pixel and rejects ambiguous matches and speckles.
"""

import cv2
import numpy as np
from typing import Optional
import logging

from ..data_models import CostVolume, DisparityMap
from ..utils.config_manager import ConfigManager


class DisparitySelector:
    """Selects disparities with uniqueness and speckle filtering."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize disparity selector.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        sgbm_config = self.config.get_sgbm_params()

        # Required margin (percent) between best and second-best cost
        self.uniqueness_ratio = sgbm_config.get('uniqueness_ratio', 5)

        # Speckle filtering; a window of 0 disables it
        self.speckle_window_size = sgbm_config.get('speckle_window_size', 25)
        self.speckle_range = sgbm_config.get('speckle_range', 4)

        # Reference blocks with at most this much pre-filtered texture cannot be matched
        self.texture_threshold = float(sgbm_config.get('texture_threshold', 10))

        self.logger.info(f"Disparity selector initialized: uniqueness_ratio={self.uniqueness_ratio}, "
                         f"texture_threshold={self.texture_threshold:g}, "
                         f"speckle_window_size={self.speckle_window_size}, speckle_range={self.speckle_range}")

    def select(self, cost_volume: CostVolume, reference: str = 'left') -> DisparityMap:
        """
        Select one disparity per pixel from an aggregated cost volume.

        Args:
            cost_volume: Aggregated costs
            reference: Reference side the volume was built for

        Returns:
            DisparityMap with invalid cells set to min_disparity - 1
        """
        costs = cost_volume.costs
        height, width, num_disparities = costs.shape
        invalid_value = cost_volume.min_disparity - 1

        best_index = np.argmin(costs, axis=2)
        best_cost = np.take_along_axis(costs, best_index[..., None], axis=2)[..., 0]

        # Second best is taken outside the +-1 neighbourhood of the winner
        candidates = np.arange(num_disparities)
        far = np.abs(candidates[None, None, :] - best_index[..., None]) > 1
        second_cost = np.where(far, costs, np.inf).min(axis=2)

        margin = second_cost - best_cost
        ambiguous = (margin * 100 < self.uniqueness_ratio * best_cost) | (margin == 0)

        values = (best_index + cost_volume.min_disparity).astype(np.int16)
        values[ambiguous] = invalid_value
        if cost_volume.texture is not None:
            values[cost_volume.texture <= self.texture_threshold] = invalid_value
        values[:, :cost_volume.valid_x_start] = invalid_value
        values[:, cost_volume.valid_x_stop:] = invalid_value

        unique_pixels = np.count_nonzero(values != invalid_value)

        if self.speckle_window_size > 1:
            # Regions of up to window - 1 pixels are speckles
            values, _ = cv2.filterSpeckles(values, invalid_value, self.speckle_window_size - 1,
                                           self.speckle_range)

        disparity = DisparityMap(
            values=values,
            min_disparity=cost_volume.min_disparity,
            num_disparities=num_disparities,
            reference=reference
        )

        self.logger.debug(f"Selected {reference} disparity: {unique_pixels} unique, "
                          f"{np.count_nonzero(disparity.valid_mask)} after speckle filtering "
                          f"of {values.size} pixels")

        return disparity
