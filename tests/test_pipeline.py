"""
Integration Tests for the Disparity Pipeline

Tests the complete workflow: matching (both references) -> consistency -> WLS -> normalization -> edges
"""

import pytest
import numpy as np

from stereo_disparity.data_models import PipelineResult
from stereo_disparity.exceptions import (
    ComputeFailureError, DimensionMismatchError, InputUnreadableError, InvalidConfigurationError
)
from stereo_disparity.pipeline import DisparityPipeline


class TestDisparityPipeline:
    """Integration test suite for the disparity pipeline."""

    @pytest.fixture
    def pipeline(self, config_manager):
        """Fixture providing a complete pipeline."""
        return DisparityPipeline(config_manager)

    @pytest.fixture
    def square_result(self, pipeline, square_scene):
        left, right, geometry = square_scene
        return pipeline.run(left, right), geometry

    def test_complete_pipeline(self, square_result, square_scene):
        """Test the outputs of a full run."""
        result, _ = square_result
        left, _, _ = square_scene

        assert isinstance(result, PipelineResult)
        assert result.disparity_visual.shape == left.shape
        assert result.disparity_visual.dtype == np.uint8
        assert result.disparity_visual.min() == 0
        assert result.disparity_visual.max() == 255
        assert result.edges.shape == left.shape
        assert set(np.unique(result.edges)) <= {0, 255}
        assert result.refined_disparity.dtype == np.float32
        assert result.left_disparity.reference == 'left'
        assert result.right_disparity.reference == 'right'
        assert result.processing_time >= 0

    def test_square_recovered(self, square_result):
        """Test that the refined map places the square at its disparity."""
        result, geometry = square_result
        x0, y0, shift = geometry['x0'], geometry['y0'], geometry['shift']

        interior = result.refined_disparity[y0 + 4:y0 + 20, x0 + 4:x0 + 20]
        background = result.refined_disparity[y0 + 4:y0 + 20, 16:36]

        assert abs(np.median(interior) - shift) < 0.5
        assert abs(np.median(background)) < 0.5
        assert result.disparity_range[0] >= 0.0
        assert result.disparity_range[1] >= shift - 0.5

    def test_mostly_consistent(self, square_result):
        """Test that textured synthetic input passes the consistency check almost everywhere."""
        result, _ = square_result

        assert result.confidence.consistency_ratio > 0.8
        assert result.confidence.error_rate == pytest.approx(1.0 - result.confidence.consistency_ratio)

    def test_edges_follow_square_boundary(self, square_result):
        """Test that depth edges lie on the square's vertical boundaries."""
        result, geometry = square_result
        x0, y0, square = geometry['x0'], geometry['y0'], geometry['square']
        rows = slice(y0 + 4, y0 + square - 4)

        left_band = result.edges[rows, x0 - 8:x0 + 3]
        right_band = result.edges[rows, x0 + square - 4:x0 + square + 4]
        interior = result.edges[rows, x0 + 6:x0 + square - 6]

        assert np.count_nonzero(np.any(left_band, axis=1)) >= 0.8 * left_band.shape[0]
        assert np.count_nonzero(np.any(right_band, axis=1)) >= 0.8 * right_band.shape[0]
        assert np.count_nonzero(interior) <= 0.02 * interior.size

    def test_refinement_stays_close_at_consistent_pixels(self, square_result):
        """Test that refinement keeps consistent pixels near their matched disparity."""
        result, geometry = square_result
        consistent = result.confidence.consistent_mask

        deviation = np.abs(result.refined_disparity[consistent]
                           - result.left_disparity.values[consistent].astype(np.float32))

        assert np.count_nonzero(consistent) > 0
        assert deviation.max() <= geometry['shift']
        assert np.percentile(deviation, 99) < 0.5

    @pytest.mark.parametrize("uniform_side", ['left', 'right'])
    def test_one_uniform_image_fails_refinement(self, pipeline, textured_image, uniform_side):
        """Test that a uniform image on either side leaves nothing to refine."""
        uniform = np.full_like(textured_image, 128)
        pair = (uniform, textured_image) if uniform_side == 'left' else (textured_image, uniform)

        with pytest.raises(ComputeFailureError) as exc_info:
            pipeline.run(*pair)

        assert exc_info.value.stage == "refinement"

    def test_identical_images_flat_output(self, pipeline, textured_image):
        """Test that a pair with zero disparity everywhere yields a flat map and no edges."""
        result = pipeline.run(textured_image, textured_image)

        np.testing.assert_allclose(result.refined_disparity, 0.0, atol=1e-4)
        assert np.all(result.disparity_visual == 0)
        assert not np.any(result.edges)

    def test_textureless_pair_fails_refinement(self, pipeline):
        """Test that uniform images leave nothing to refine."""
        left = np.full((40, 64), 128, dtype=np.uint8)
        right = np.full((40, 64), 90, dtype=np.uint8)

        with pytest.raises(ComputeFailureError) as exc_info:
            pipeline.run(left, right)

        assert exc_info.value.stage == "refinement"

    def test_deterministic(self, pipeline, square_scene):
        """Test that repeated runs are bit-identical."""
        left, right, _ = square_scene

        first = pipeline.run(left, right)
        second = pipeline.run(left, right)

        np.testing.assert_array_equal(first.disparity_visual, second.disparity_visual)
        np.testing.assert_array_equal(first.edges, second.edges)
        np.testing.assert_array_equal(first.refined_disparity, second.refined_disparity)

    def test_parallel_matches_sequential(self, make_config, square_scene):
        """Test that running both references concurrently changes nothing."""
        left, right, _ = square_scene

        parallel = DisparityPipeline(make_config({'pipeline.parallel': True})).run(left, right)
        sequential = DisparityPipeline(make_config({'pipeline.parallel': False,
                                                    'sgbm.max_workers': 1})).run(left, right)

        np.testing.assert_array_equal(parallel.left_disparity.values, sequential.left_disparity.values)
        np.testing.assert_array_equal(parallel.right_disparity.values, sequential.right_disparity.values)
        np.testing.assert_array_equal(parallel.disparity_visual, sequential.disparity_visual)

    def test_color_input(self, pipeline, square_scene):
        """Test that BGR images give the same result as their grayscale versions."""
        left, right, _ = square_scene

        gray_result = pipeline.run(left, right)
        color_result = pipeline.run(np.dstack([left] * 3), np.dstack([right] * 3))

        np.testing.assert_array_equal(gray_result.disparity_visual, color_result.disparity_visual)

    def test_float_input(self, pipeline, square_scene):
        """Test that floating-point images on the 0-255 scale are accepted."""
        left, right, _ = square_scene

        gray_result = pipeline.run(left, right)
        float_result = pipeline.run(left.astype(np.float64), right.astype(np.float64))

        np.testing.assert_array_equal(gray_result.left_disparity.values, float_result.left_disparity.values)

    def test_mismatched_dimensions(self, pipeline):
        """Test error handling for images of different sizes."""
        with pytest.raises(DimensionMismatchError, match="same dimensions"):
            pipeline.run(np.zeros((40, 64), np.uint8), np.zeros((40, 60), np.uint8))

    @pytest.mark.parametrize("bad_image", [
        None,
        np.zeros((0, 0), dtype=np.uint8),
        np.zeros(64, dtype=np.uint8),
        np.zeros((40, 64, 4), dtype=np.uint8),
    ])
    def test_unreadable_input(self, pipeline, textured_image, bad_image):
        """Test that missing or malformed images are rejected before any stage runs."""
        with pytest.raises(InputUnreadableError):
            pipeline.run(bad_image, textured_image)

    def test_search_range_wider_than_image(self, pipeline):
        """Test that an image too narrow for the search range is a configuration error."""
        image = np.random.default_rng(0).integers(0, 256, (20, 12), dtype=np.uint8)

        with pytest.raises(InvalidConfigurationError):
            pipeline.run(image, image)
