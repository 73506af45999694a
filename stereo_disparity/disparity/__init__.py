"""
Disparity Estimation Module

Implements semi-global matching with left-right consistency checking and WLS refinement.
"""

from .cost_volume_builder import CostVolumeBuilder
from .sgm_aggregator import SemiGlobalAggregator
from .disparity_selector import DisparitySelector
from .sgbm_estimator import SGBMEstimator
from .consistency_checker import ConsistencyChecker
from .wls_refiner import EdgeAwareRefiner

__all__ = [
    'CostVolumeBuilder', 'SemiGlobalAggregator', 'DisparitySelector',
    'SGBMEstimator', 'ConsistencyChecker', 'EdgeAwareRefiner'
]
