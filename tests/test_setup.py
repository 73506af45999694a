"""
Test basic setup and imports.
"""

import pytest
import numpy as np
import cv2
import scipy.sparse
import yaml
from stereo_disparity.utils.config_manager import ConfigManager


def test_opencv_import():
    """Test that OpenCV is properly installed and working."""
    assert cv2.__version__ is not None

    # Test basic OpenCV functionality
    img = np.zeros((100, 100, 3), dtype=np.uint8)
    gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    assert gray.shape == (100, 100)

    # Speckle filtering works on 16-bit signed maps
    disparity = np.zeros((10, 10), dtype=np.int16)
    disparity[4, 4] = 9
    filtered, _ = cv2.filterSpeckles(disparity, -1, 4, 2)
    assert filtered[4, 4] == -1


def test_scipy_import():
    """Test that SciPy sparse matrices are available."""
    matrix = scipy.sparse.diags([np.ones(5)], [0], format='csc')
    assert matrix.shape == (5, 5)


def test_yaml_import():
    """Test that PyYAML round-trips a mapping."""
    assert yaml.safe_load(yaml.dump({'wls': {'lambda': 500.0}})) == {'wls': {'lambda': 500.0}}


def test_config_manager():
    """Test that configuration manager works."""
    config = ConfigManager()

    # Test getting values
    assert config.get('sgbm.num_disparities') == 256
    assert config.get('wls.lambda') == 500.0

    # Test setting values
    config.set('sgbm.block_size', 7)
    assert config.get('sgbm.block_size') == 7


def test_project_structure():
    """Test that project structure is correctly set up."""
    from stereo_disparity import __version__
    assert __version__ == "1.0.0"

    # Test that modules can be imported
    from stereo_disparity.data_models import DisparityMap
    from stereo_disparity.pipeline import DisparityPipeline

    # Test data model creation
    disparity = DisparityMap(
        values=np.array([[-1, 0], [3, 5]], dtype=np.int16),
        min_disparity=0,
        num_disparities=16,
        reference='left'
    )

    assert disparity.invalid_value == -1
    assert disparity.valid_ratio == 0.75
    assert DisparityPipeline is not None


@pytest.mark.skipif(not hasattr(cv2, 'ximgproc'), reason="opencv-contrib ximgproc not available")
def test_ximgproc_available():
    """Test that the contrib fast global smoother is usable."""
    guide = np.zeros((8, 8), dtype=np.uint8)
    src = np.ones((8, 8), dtype=np.float32)
    smoothed = cv2.ximgproc.fastGlobalSmootherFilter(guide, src, 10.0, 1.5)
    assert smoothed.shape == (8, 8)
