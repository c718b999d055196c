"""
Tests for the darkness analyzer and its overlay/plot output.
"""

import subprocess
import sys

import numpy as np
import pytest

from conftest import solid
from sdf_halftone.analysis import (AnalysisResult, DarknessStats, analyze_darkness, circular_mask,
                                   composite_overlay, format_stats, mask_spans, plot_darkness_map,
                                   radius_from_inches, render_overlay)
from sdf_halftone.buffer import PixelBuffer
from sdf_halftone.errors import AnalysisCancelled
from sdf_halftone.noise import generate_random


def checkerboard(width, height):
    ys, xs = np.mgrid[0:height, 0:width]
    return PixelBuffer.from_gray(np.where((xs + ys) % 2 == 0, 0, 255).astype(np.uint8))


def reference_darkness(buffer, radius):
    """Direct per-sample count over the circular mask."""
    dark = buffer.luma() < 128
    h, w = dark.shape
    stride = max(1, radius // 4)
    mask = circular_mask(radius)
    out = []
    for cy in range(0, h, stride):
        row = []
        for cx in range(0, w, stride):
            xs = cx + mask[:, 0]
            ys = cy + mask[:, 1]
            inside = (xs >= 0) & (xs < w) & (ys >= 0) & (ys < h)
            row.append(dark[ys[inside], xs[inside]].mean())
        out.append(row)
    return np.array(out)


class TestMask:

    def test_radius_two(self):
        assert len(circular_mask(2)) == 13

    @pytest.mark.parametrize("radius", range(0, 11))
    def test_spans_match_mask(self, radius):
        assert sum(2 * half + 1 for _, half in mask_spans(radius)) == len(circular_mask(radius))

    def test_radius_from_inches(self):
        assert radius_from_inches(0.125, 300) == 37.5


class TestAnalyzeDarkness:

    def test_all_white_is_too_light(self, white):
        result = analyze_darkness(white, 4)
        assert result.stats.mean_darkness == 0.0
        assert result.stats.too_light == result.samples_wide * result.samples_high
        assert result.stats.percent_too_light == 100.0

    def test_all_black_is_too_dark(self, black):
        result = analyze_darkness(black, 4)
        assert result.stats.mean_darkness == pytest.approx(1.0)
        assert result.stats.percent_too_dark == 100.0
        assert result.stats.balanced == 0

    def test_grid_dimensions(self, white):
        result = analyze_darkness(white, 8)
        assert result.stride == 2
        assert (result.samples_wide, result.samples_high) == (20, 15)
        assert result.darkness.shape == (15, 20)

    def test_small_radius_stride_one(self, white):
        result = analyze_darkness(white, 2)
        assert result.stride == 1
        assert result.darkness.shape == (30, 40)

    def test_radius_rounds_half_up(self, white):
        assert analyze_darkness(white, 2.5).radius == 3

    def test_matches_direct_count(self):
        buffer = generate_random(30, 25, 'binary', seed=12)
        result = analyze_darkness(buffer, 5)
        assert np.allclose(result.darkness, reference_darkness(buffer, 5), atol=1e-6)

    def test_counts_add_up(self):
        buffer = generate_random(30, 25, 'uniform', seed=3)
        stats = analyze_darkness(buffer, 3).stats
        total = stats.too_dark + stats.too_light + stats.balanced
        assert total == 30 * 25
        assert stats.percent_too_dark + stats.percent_too_light + stats.percent_balanced == \
            pytest.approx(100.0)

    def test_checkerboard_is_balanced(self):
        result = analyze_darkness(checkerboard(20, 20), 2)
        assert result.stats.balanced == 400

    def test_buffer_not_modified(self, gradient):
        before = gradient.pixels.copy()
        analyze_darkness(gradient, 6)
        assert np.array_equal(gradient.pixels, before)

    @pytest.mark.parametrize("upper,lower", [(0.3, 0.7), (1.2, 0.3), (0.7, -0.1)])
    def test_invalid_thresholds(self, white, upper, lower):
        with pytest.raises(ValueError):
            analyze_darkness(white, 4, upper, lower)

    def test_negative_radius(self, white):
        with pytest.raises(ValueError):
            analyze_darkness(white, -1)

    def test_progress_cadence(self, white):
        seen = []
        analyze_darkness(white, 2, progress=seen.append)
        # 1200 samples in chunks of 12, then the final 1.0
        assert len(seen) == 101
        assert seen[0] == 0.0
        assert seen[-1] == 1.0
        assert seen == sorted(seen)

    def test_cancelled(self, white, cancelled):
        with pytest.raises(AnalysisCancelled):
            analyze_darkness(white, 4, cancel=cancelled)


class TestOverlay:

    def test_too_dark_is_red(self, black):
        overlay = render_overlay(analyze_darkness(black, 4), black.width, black.height)
        assert np.all(overlay.pixels[:, :, 0] == 255)
        assert np.all(overlay.pixels[:, :, 1] == 0)
        assert np.all(overlay.pixels[:, :, 3] == 128)

    def test_too_light_is_green(self, white):
        overlay = render_overlay(analyze_darkness(white, 4), white.width, white.height)
        assert np.all(overlay.pixels[:, :, 0] == 0)
        assert np.all(overlay.pixels[:, :, 1] == 255)
        assert np.all(overlay.pixels[:, :, 3] == 128)

    def test_balanced_is_clear(self):
        board = checkerboard(20, 20)
        overlay = render_overlay(analyze_darkness(board, 2), 20, 20)
        assert np.all(overlay.pixels[:, :, 3] == 0)

    def test_alpha_scales_past_threshold(self):
        """Alpha grows with the distance past each threshold, half way = 64."""
        result = AnalysisResult(
            darkness=np.array([[0.85, 0.15, 0.5]], dtype=np.float32),
            stats=DarknessStats(0.5, 1, 1, 1, 100 / 3, 100 / 3, 100 / 3),
            stride=1,
            radius=0,
            upper_threshold=0.7,
            lower_threshold=0.3,
        )
        pixels = render_overlay(result, 3, 1).pixels[0]
        assert pixels[0].tolist() == [255, 0, 0, 64]
        assert pixels[1, :3].tolist() == [0, 255, 0]
        assert pixels[1, 3] in (63, 64)
        assert pixels[2, 3] == 0

    def test_composite_keeps_base(self, black):
        overlay = render_overlay(analyze_darkness(black, 4), black.width, black.height)
        before = black.pixels.copy()
        combined = composite_overlay(black, overlay)
        assert np.array_equal(black.pixels, before)
        assert np.all(combined.pixels[:, :, 3] == 255)
        assert np.all(combined.pixels[:, :, 0] > 100)
        assert np.all(combined.pixels[:, :, 1] == 0)


class TestReporting:

    def test_format_stats(self, black):
        text = format_stats(analyze_darkness(black, 4).stats)
        assert "Mean darkness: 100.0%" in text
        assert "Too dark:" in text
        assert "Balanced:" in text

    def test_plot_written(self, gradient, tmp_path):
        path = tmp_path / "map.png"
        plot_darkness_map(analyze_darkness(gradient, 8), path)
        assert path.exists()
        assert path.stat().st_size > 0

    def test_plot_single_sample(self, tmp_path):
        path = tmp_path / "one.png"
        result = analyze_darkness(solid(10, 10, 0), 40)
        assert result.darkness.shape == (1, 1)
        plot_darkness_map(result, path)
        assert path.exists()

    def test_plot_leaves_pyplot_alone(self, gradient, tmp_path):
        import matplotlib.pyplot as plt

        before = plt.get_fignums()
        plot_darkness_map(analyze_darkness(gradient, 8), tmp_path / "map.png")
        assert plt.get_fignums() == before

    def test_import_keeps_matplotlib_backend(self):
        code = (
            "import matplotlib\n"
            "matplotlib.use('svg')\n"
            "import sdf_halftone\n"
            "print(matplotlib.get_backend())\n"
        )
        out = subprocess.run([sys.executable, "-c", code], capture_output=True, text=True,
                             check=True)
        assert out.stdout.strip() == 'svg'
