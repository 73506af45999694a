"""
Post-Processing Module

Normalizes refined disparity for display and extracts depth edges.
"""

from .post_processor import PostProcessor
from .edge_detector import EdgeDetector

__all__ = ['PostProcessor', 'EdgeDetector']
