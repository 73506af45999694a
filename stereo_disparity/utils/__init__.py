"""
Utility Functions and Helpers

Common utilities for the stereo disparity pipeline.
"""

from .config_manager import ConfigManager

__all__ = ['ConfigManager']
