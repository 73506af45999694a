"""
Left-Right Consistency Checker

Cross-validates left- and right-referenced disparity maps and derives a confidence map.
"""

import numpy as np
from typing import Optional, Dict, Any
import logging

from ..data_models import DisparityMap, ConfidenceMap
from ..exceptions import DimensionMismatchError
from ..utils.config_manager import ConfigManager


class ConsistencyChecker:
    """Left-Right Consistency checker producing per-pixel confidence."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize consistency checker.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        lrc_config = self.config.get_lrc_params()

        # Maximum allowed left/right difference in pixels; negative disables the check
        self.max_diff = lrc_config.get('disp12_max_diff', 1)

        # Confidence given to valid pixels that fail the check
        self.low_confidence = float(lrc_config.get('low_confidence', 0.1))

        self.logger.info(f"Consistency checker initialized: disp12_max_diff={self.max_diff}, "
                         f"low_confidence={self.low_confidence}")

    def check(self, left_disparity: DisparityMap, right_disparity: DisparityMap) -> ConfidenceMap:
        """
        Perform the left-right consistency check.

        Disparity values are left untouched; failing pixels only lose confidence.

        Args:
            left_disparity: Left-referenced disparity map
            right_disparity: Right-referenced disparity map

        Returns:
            ConfidenceMap for the left map
        """
        if left_disparity.values.shape != right_disparity.values.shape:
            raise DimensionMismatchError("Left and right disparity maps must have same dimensions")

        height, width = left_disparity.values.shape
        valid_left = left_disparity.valid_mask

        if self.max_diff < 0:
            consistency_mask = valid_left.copy()
        else:
            consistency_mask = np.zeros((height, width), dtype=bool)

            left_values = left_disparity.values.astype(np.int32)
            right_x = np.arange(width)[None, :] - left_values
            candidates = valid_left & (right_x >= 0) & (right_x < width)

            if np.any(candidates):
                ys, xs = np.nonzero(candidates)
                rx = right_x[ys, xs]

                right_values = right_disparity.values[ys, rx].astype(np.int32)
                right_valid = right_disparity.valid_mask[ys, rx]

                consistent = right_valid & (np.abs(left_values[ys, xs] - right_values) <= self.max_diff)
                consistency_mask[ys[consistent], xs[consistent]] = True

        confidence = np.zeros((height, width), dtype=np.float32)
        confidence[valid_left] = self.low_confidence
        confidence[consistency_mask] = 1.0

        metrics = self._compute_metrics(valid_left, consistency_mask)

        self.logger.debug(f"LRC check: {metrics['consistent_pixels']}/{metrics['valid_left_pixels']} pixels consistent "
                          f"({metrics['consistency_ratio']:.3f})")

        return ConfidenceMap(
            values=confidence,
            consistent_mask=consistency_mask,
            consistency_ratio=metrics['consistency_ratio'],
            error_rate=metrics['error_rate']
        )

    @staticmethod
    def _compute_metrics(valid_left: np.ndarray, consistency_mask: np.ndarray) -> Dict[str, Any]:
        total_valid_left = int(np.count_nonzero(valid_left))
        total_consistent = int(np.count_nonzero(consistency_mask))

        return {
            'total_pixels': valid_left.size,
            'valid_left_pixels': total_valid_left,
            'consistent_pixels': total_consistent,
            'consistency_ratio': total_consistent / total_valid_left if total_valid_left > 0 else 0.0,
            'error_rate': 1.0 - (total_consistent / total_valid_left) if total_valid_left > 0 else 1.0
        }
