"""
Disparity Post-Processor

Converts refined disparity to float, blurs it and rescales it to the 8-bit display range.
"""

import cv2
import numpy as np
from typing import Optional, Tuple
import logging

from ..utils.config_manager import ConfigManager


class PostProcessor:
    """Gaussian smoothing and min/max normalization of refined disparity."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize post-processor.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        post_config = self.config.get_postprocess_params()

        # Float conversion scale and bias
        self.alpha = float(post_config.get('alpha', 1.0))
        self.beta = float(post_config.get('beta', 0.0))

        # Gaussian blur; a sigma of 0 is derived from the kernel size
        self.kernel_size = (post_config.get('kernel_width', 3), post_config.get('kernel_height', 3))
        self.sigma_x = float(post_config.get('sigma_x', 0.0))
        self.sigma_y = float(post_config.get('sigma_y', 0.0))

        # Fold negative disparities (negative min_disparity) onto their magnitude
        self.absolute_difference = post_config.get('absolute_difference', True)

        self.logger.info(f"Post-processor initialized: kernel={self.kernel_size}, "
                         f"sigma=({self.sigma_x}, {self.sigma_y})")

    def process(self, disparity: np.ndarray) -> Tuple[np.ndarray, Tuple[float, float]]:
        """
        Produce the 8-bit disparity visualization.

        Args:
            disparity: Refined disparity map

        Returns:
            Tuple of (uint8 map in [0, 255], (min, max) before rescaling)
        """
        disparity_float = disparity.astype(np.float32) * np.float32(self.alpha) + np.float32(self.beta)

        blurred = cv2.GaussianBlur(disparity_float, self.kernel_size, self.sigma_x,
                                   sigmaY=self.sigma_y, borderType=cv2.BORDER_DEFAULT)

        if self.absolute_difference:
            blurred = cv2.absdiff(blurred, np.zeros_like(blurred))

        return self.normalize(blurred)

    def normalize(self, disparity: np.ndarray) -> Tuple[np.ndarray, Tuple[float, float]]:
        """
        Linearly rescale so the minimum maps to 0 and the maximum to 255.

        Args:
            disparity: Float disparity map

        Returns:
            Tuple of (uint8 map, (min, max) before rescaling)
        """
        min_val, max_val, _, _ = cv2.minMaxLoc(disparity)
        self.logger.info(f"Disparity range: min = {min_val}, max = {max_val}")

        if max_val <= min_val:
            # Constant map; nothing to stretch
            return np.zeros(disparity.shape, dtype=np.uint8), (min_val, max_val)

        visual = cv2.normalize(disparity, None, 0, 255, cv2.NORM_MINMAX, cv2.CV_8U)

        return visual, (min_val, max_val)
