"""
Pytest configuration and fixtures for stereo disparity tests.
"""

import pytest
import numpy as np

from stereo_disparity.data_models import DisparityMap
from stereo_disparity.utils.config_manager import ConfigManager


# Search range small enough for synthetic test images
SMALL_SEARCH = {
    'sgbm.num_disparities': 16,
    'sgbm.max_workers': 2,
}


def make_square_scene(height=60, width=96, shift=6, square=24, x0=48, y0=18, seed=0):
    """
    Random-texture background at zero disparity with a textured square shifted by `shift`.

    Returns:
        Tuple of (left, right) uint8 images
    """
    rng = np.random.default_rng(seed)
    background = rng.integers(0, 256, (height, width), dtype=np.uint8)
    patch = rng.integers(0, 256, (square, square), dtype=np.uint8)

    left = background.copy()
    left[y0:y0 + square, x0:x0 + square] = patch

    right = background.copy()
    right[y0:y0 + square, x0 - shift:x0 - shift + square] = patch

    return left, right


def make_disparity_map(values, min_disparity=0, num_disparities=16, reference='left'):
    """Wrap an array as a DisparityMap."""
    return DisparityMap(
        values=np.asarray(values, dtype=np.int16),
        min_disparity=min_disparity,
        num_disparities=num_disparities,
        reference=reference
    )


@pytest.fixture
def config_manager():
    """Fixture providing a configuration manager sized for synthetic images."""
    return ConfigManager(overrides=SMALL_SEARCH)


@pytest.fixture
def make_config():
    """Fixture providing a factory for configurations with extra overrides."""
    def _make(overrides=None):
        values = dict(SMALL_SEARCH)
        values.update(overrides or {})
        return ConfigManager(overrides=values)
    return _make


@pytest.fixture
def square_scene():
    """Fixture providing the shifted-square stereo pair and its geometry."""
    geometry = {'shift': 6, 'square': 24, 'x0': 48, 'y0': 18}
    left, right = make_square_scene(**geometry)
    return left, right, geometry


@pytest.fixture
def textured_image():
    """Fixture providing a seeded random-texture grayscale image."""
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, (40, 64), dtype=np.uint8)
