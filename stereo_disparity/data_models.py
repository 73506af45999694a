"""
Data Models for Stereo Disparity Pipeline

Defines all data structures passed between pipeline stages.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np


@dataclass
class CostVolume:
    """Matching costs indexed by (row, column, disparity - min_disparity)."""
    costs: np.ndarray  # H x W x D float32
    min_disparity: int
    max_cost: float  # cost assigned to candidates outside the target image
    valid_x_start: int  # first column whose whole search range is in bounds
    valid_x_stop: int  # one past the last such column
    texture: Optional[np.ndarray] = None  # H x W block sum of |pre-filtered reference|

    @property
    def num_disparities(self) -> int:
        return self.costs.shape[2]

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.costs.shape


@dataclass
class DisparityMap:
    """Whole-pixel disparity map with a sentinel for invalid cells."""
    values: np.ndarray  # H x W int16
    min_disparity: int
    num_disparities: int
    reference: str  # "left" or "right"

    @property
    def invalid_value(self) -> int:
        return self.min_disparity - 1

    @property
    def valid_mask(self) -> np.ndarray:
        return self.values != self.invalid_value

    @property
    def valid_ratio(self) -> float:
        return float(np.count_nonzero(self.valid_mask)) / self.values.size


@dataclass
class ConfidenceMap:
    """Per-pixel reliability derived from the left-right consistency check."""
    values: np.ndarray  # H x W float32 in [0, 1]
    consistent_mask: np.ndarray  # H x W bool
    consistency_ratio: float
    error_rate: float


@dataclass
class PipelineResult:
    """Results from a full pipeline run."""
    disparity_visual: np.ndarray  # H x W uint8, 0-255
    edges: np.ndarray  # H x W uint8, 0 or 255
    refined_disparity: np.ndarray  # H x W float32
    left_disparity: DisparityMap
    right_disparity: DisparityMap
    confidence: ConfidenceMap
    disparity_range: Tuple[float, float]  # pre-normalization (min, max)
    processing_time: float
