"""
Depth Edge Detector

Extracts binary depth-discontinuity edges from the normalized disparity map.
"""

import cv2
import numpy as np
from typing import Optional
import logging

from ..utils.config_manager import ConfigManager


class EdgeDetector:
    """Canny edge detection on the 8-bit disparity visualization."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize edge detector.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        edge_config = self.config.get_edge_params()

        # Hysteresis thresholds and Sobel aperture
        self.threshold1 = float(edge_config.get('threshold1', 100.0))
        self.threshold2 = float(edge_config.get('threshold2', 200.0))
        self.aperture_size = edge_config.get('aperture_size', 3)
        self.l2_gradient = bool(edge_config.get('l2_gradient', False))

    def detect(self, disparity_visual: np.ndarray) -> np.ndarray:
        """
        Detect depth edges.

        Args:
            disparity_visual: Normalized 8-bit disparity map

        Returns:
            Edge mask (uint8, 255 on edges, 0 elsewhere)
        """
        if disparity_visual.dtype != np.uint8:
            raise ValueError("Edge detection expects an 8-bit disparity map")

        edges = cv2.Canny(disparity_visual, self.threshold1, self.threshold2,
                          apertureSize=self.aperture_size, L2gradient=self.l2_gradient)

        self.logger.debug(f"Detected {np.count_nonzero(edges)} edge pixels")

        return edges
