"""
Stereo Disparity Pipeline

Fast, approximate depth from a passive, rectified grayscale stereo pair.

This package implements:
- Block-matching cost volumes with bias/gain pre-filtering (SAD or Birchfield-Tomasi)
- Semi-global cost aggregation over 4 or 8 dynamic-programming paths
- Winner-take-all selection with uniqueness and speckle filtering
- Left-right consistency checking producing a confidence map
- Edge-aware weighted least squares refinement guided by the left image
- Min/max normalization to 8 bit and Canny depth-edge extraction
"""

__version__ = "1.0.0"
__author__ = "Stereo Disparity Team"

from .disparity import (
    CostVolumeBuilder, SemiGlobalAggregator, DisparitySelector,
    SGBMEstimator, ConsistencyChecker, EdgeAwareRefiner
)
from .postprocessing import PostProcessor, EdgeDetector
from .pipeline import DisparityPipeline
from .data_models import CostVolume, DisparityMap, ConfidenceMap, PipelineResult
from .exceptions import (
    StereoPipelineError, InputUnreadableError, DimensionMismatchError,
    InvalidConfigurationError, ComputeFailureError, OutputWriteFailureError
)

__all__ = [
    # Disparity
    'CostVolumeBuilder', 'SemiGlobalAggregator', 'DisparitySelector',
    'SGBMEstimator', 'ConsistencyChecker', 'EdgeAwareRefiner',
    # Post-processing
    'PostProcessor', 'EdgeDetector',
    # Pipeline
    'DisparityPipeline',
    # Data Models
    'CostVolume', 'DisparityMap', 'ConfidenceMap', 'PipelineResult',
    # Errors
    'StereoPipelineError', 'InputUnreadableError', 'DimensionMismatchError',
    'InvalidConfigurationError', 'ComputeFailureError', 'OutputWriteFailureError'
]
