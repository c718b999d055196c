"""
Tests for halftone application and the contrast/brightness pass.
"""

import numpy as np
import pytest

from conftest import solid
from sdf_halftone.buffer import PixelBuffer
from sdf_halftone.errors import HalftoneCancelled, UnknownHalftoneMethod
from sdf_halftone.halftone import (BAYER_8, BAYER_THRESHOLDS, adjust_contrast_brightness,
                                   apply_halftone, bayer_matrix, diffuse_error, tile_row)
from sdf_halftone.noise import generate_noise


@pytest.fixture
def noise_pattern():
    return generate_noise(32, 32, scale=8.0, seed=4)


class TestBayer:

    def test_eight_by_eight_is_a_permutation(self):
        assert BAYER_8.shape == (8, 8)
        assert sorted(BAYER_8.ravel().tolist()) == list(range(64))

    def test_first_order(self):
        assert bayer_matrix(1).tolist() == [[0, 2], [3, 1]]

    def test_second_order(self):
        assert bayer_matrix(2).tolist() == [
            [0, 8, 2, 10],
            [12, 4, 14, 6],
            [3, 11, 1, 9],
            [15, 7, 13, 5],
        ]

    def test_thresholds_scale_ranks(self):
        assert BAYER_THRESHOLDS[0, 0] == 0.0
        assert BAYER_THRESHOLDS.max() == pytest.approx(63 / 64 * 255)


class TestThreshold:

    def test_output_is_binary(self, gradient, noise_pattern):
        result = apply_halftone(gradient, noise_pattern, 'threshold')
        assert set(np.unique(result.gray).tolist()) <= {0, 255}
        assert (result.width, result.height) == (gradient.width, gradient.height)

    def test_black_where_source_below_pattern(self):
        pattern = np.full((10, 10), 50, dtype=np.uint8)
        pattern[:, 5:] = 200
        result = apply_halftone(solid(10, 10, 100), PixelBuffer.from_gray(pattern), 'threshold')
        assert np.all(result.gray[:, :5] == 255)
        assert np.all(result.gray[:, 5:] == 0)

    def test_small_pattern_tiles(self):
        checker = PixelBuffer.from_gray(np.array([[0, 255], [255, 0]], dtype=np.uint8))
        result = apply_halftone(solid(6, 4, 128), checker, 'threshold')
        ys, xs = np.mgrid[0:4, 0:6]
        expected = np.where((xs + ys) % 2 == 0, 255, 0)
        assert np.array_equal(result.gray, expected)

    def test_tile_row_wraps(self):
        pattern = np.arange(6, dtype=np.uint8).reshape(2, 3)
        assert tile_row(pattern, 7, 3).tolist() == [3, 4, 5, 3, 4, 5, 3]

    def test_needs_pattern(self, gradient):
        with pytest.raises(ValueError):
            apply_halftone(gradient, None, 'threshold')


class TestBlend:

    def test_black_pattern_gives_black(self, gradient):
        result = apply_halftone(gradient, solid(8, 8, 0), 'blend')
        assert np.all(result.gray == 0)

    def test_never_brighter_than_source(self, gradient, noise_pattern):
        result = apply_halftone(gradient, noise_pattern, 'blend')
        assert np.all(result.gray.astype(int) <= gradient.gray.astype(int))


class TestFloydSteinberg:

    def test_preserves_mean(self):
        result = apply_halftone(solid(64, 64, 64), None, 'floyd-steinberg')
        assert set(np.unique(result.gray).tolist()) <= {0, 255}
        assert abs(result.gray.mean() / 255.0 - 0.25) < 0.03

    def test_pattern_ignored(self, gradient, noise_pattern):
        a = apply_halftone(gradient, None, 'floyd-steinberg')
        b = apply_halftone(gradient, noise_pattern, 'floyd-steinberg')
        assert a.data == b.data

    def test_error_spreads_to_neighbours(self):
        luma = np.zeros((3, 3))
        diffuse_error(luma, 1, 1, 16.0)
        assert luma.tolist() == [
            [0.0, 0.0, 0.0],
            [0.0, 0.0, 7.0],
            [3.0, 5.0, 1.0],
        ]

    def test_error_dropped_past_edges(self):
        luma = np.zeros((2, 2))
        diffuse_error(luma, 1, 1, 16.0)
        assert np.all(luma == 0.0)
        diffuse_error(luma, 0, 0, 16.0)
        assert luma.tolist() == [[0.0, 7.0], [5.0, 1.0]]


class TestOrdered:

    def test_black_stays_black(self):
        result = apply_halftone(solid(16, 16, 0), None, 'ordered')
        assert np.all(result.gray == 0)

    def test_white_stays_white(self):
        result = apply_halftone(solid(16, 16, 255), None, 'ordered')
        assert np.all(result.gray == 255)

    def test_mid_gray_ratio(self):
        result = apply_halftone(solid(8, 8, 128), None, 'ordered')
        assert int((result.gray == 255).sum()) == 33


class TestContrastBrightness:

    def test_contrast(self):
        buffer = solid(4, 4, 200)
        adjust_contrast_brightness(buffer, contrast=50)
        assert np.all(buffer.gray == 235)

    def test_brightness(self):
        buffer = solid(4, 4, 100)
        adjust_contrast_brightness(buffer, brightness=20)
        assert np.all(buffer.gray == 151)

    def test_neutral_is_noop(self):
        buffer = solid(4, 4, 77)
        adjust_contrast_brightness(buffer)
        assert np.all(buffer.gray == 77)

    def test_alpha_untouched(self):
        buffer = solid(4, 4, 100)
        adjust_contrast_brightness(buffer, contrast=-40, brightness=-30)
        assert np.all(buffer.pixels[:, :, 3] == 255)

    @pytest.mark.parametrize("kwargs", [{'contrast': 101}, {'brightness': -150}])
    def test_out_of_range(self, kwargs):
        with pytest.raises(ValueError):
            adjust_contrast_brightness(solid(2, 2, 0), **kwargs)

    def test_full_darkening_after_halftone(self, gradient, noise_pattern):
        result = apply_halftone(gradient, noise_pattern, 'threshold', brightness=-100)
        assert np.all(result.gray == 0)


class TestApplyHalftone:

    def test_unknown_method(self, gradient):
        with pytest.raises(UnknownHalftoneMethod, match="Unknown halftone method: sepia"):
            apply_halftone(gradient, None, 'sepia')

    @pytest.mark.parametrize("method", ['threshold', 'blend', 'floyd-steinberg', 'ordered'])
    def test_source_not_modified(self, gradient, noise_pattern, method):
        before = gradient.pixels.copy()
        apply_halftone(gradient, noise_pattern, method, contrast=30, brightness=10)
        assert np.array_equal(gradient.pixels, before)

    def test_progress_per_row(self, gradient, noise_pattern):
        seen = []
        apply_halftone(gradient, noise_pattern, 'threshold', progress=seen.append)
        assert len(seen) == gradient.height
        assert seen[-1] == 1.0

    @pytest.mark.parametrize("method", ['threshold', 'floyd-steinberg'])
    def test_cancelled(self, gradient, noise_pattern, cancelled, method):
        with pytest.raises(HalftoneCancelled):
            apply_halftone(gradient, noise_pattern, method, cancel=cancelled)
