"""
Print-quality darkness analysis of pattern fields.

A circular window is swept over a strided grid of sample points. Each
sample records the fraction of dark pixels (luma < 128) inside the window,
clipped at the image edge, and is classified against two thresholds:

    darkness > upper   too dark    (ink will fill in)
    darkness < lower   too light
    otherwise          balanced

The stride is max(1, radius // 4), so larger windows are sampled more
coarsely. render_overlay() turns a result into a red/green tint that can be
composited over the pattern without touching it.
"""

import math
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from matplotlib.figure import Figure
from PIL import Image

from .buffer import PixelBuffer
from .errors import AnalysisCancelled
from .progress import CancelToken, ProgressCallback, ProgressReporter, checkpoint

DARK_LUMA = 128
PROGRESS_STEPS = 100
OVERLAY_MAX_ALPHA = 128


@dataclass
class DarknessStats:
    mean_darkness: float
    too_dark: int
    too_light: int
    balanced: int
    percent_too_dark: float
    percent_too_light: float
    percent_balanced: float


@dataclass
class AnalysisResult:
    darkness: np.ndarray  # (samples_high, samples_wide) float32 in [0, 1]
    stats: DarknessStats
    stride: int
    radius: int
    upper_threshold: float
    lower_threshold: float

    @property
    def samples_wide(self) -> int:
        return self.darkness.shape[1]

    @property
    def samples_high(self) -> int:
        return self.darkness.shape[0]


def radius_from_inches(inches: float, dpi: float) -> float:
    return inches * dpi


def circular_mask(radius: int) -> np.ndarray:
    """(dx, dy) offsets of every pixel with dx^2 + dy^2 <= radius^2."""
    r = int(radius)
    dy, dx = np.mgrid[-r:r + 1, -r:r + 1]
    inside = dx * dx + dy * dy <= r * r
    return np.stack([dx[inside], dy[inside]], axis=1)


def mask_spans(radius: int) -> list[tuple[int, int]]:
    """
    The circular mask as one horizontal span per row: (dy, half_width).

    Row dy covers dx in [-half_width, half_width], the same pixel set as
    circular_mask().
    """
    r = int(radius)
    spans = []
    for dy in range(-r, r + 1):
        half = math.isqrt(r * r - dy * dy)
        spans.append((dy, half))
    return spans


def analyze_darkness(buffer: PixelBuffer, radius_pixels: float, upper_threshold: float = 0.7,
                     lower_threshold: float = 0.3,
                     progress: ProgressCallback | None = None,
                     cancel: CancelToken | None = None) -> AnalysisResult:
    """
    Local ink-coverage analysis.

    Args:
        buffer: Pattern to analyse (read only)
        radius_pixels: Window radius; rounded to the nearest integer
        upper_threshold: Darkness above which a sample is too dark
        lower_threshold: Darkness below which a sample is too light
        progress: Called about PROGRESS_STEPS times across the sample grid
        cancel: Polled at the same checkpoints

    Raises:
        AnalysisCancelled: the cancel token was set; no partial result
    """
    if not 0.0 <= lower_threshold <= upper_threshold <= 1.0:
        raise ValueError(
            f"thresholds must satisfy 0 <= lower <= upper <= 1 "
            f"(got lower={lower_threshold}, upper={upper_threshold})")
    if radius_pixels < 0:
        raise ValueError(f"radius must be >= 0, got {radius_pixels}")

    report = ProgressReporter(progress)
    width, height = buffer.width, buffer.height
    radius = int(math.floor(radius_pixels + 0.5))
    stride = max(1, radius // 4)
    samples_wide = math.ceil(width / stride)
    samples_high = math.ceil(height / stride)
    total = samples_wide * samples_high
    interval = max(1, total // PROGRESS_STEPS)

    spans = mask_spans(radius)
    dark = (buffer.luma() < DARK_LUMA).astype(np.int64)
    # Row prefix sums: dark pixels in columns [a, b] of row y = P[y, b+1] - P[y, a]
    prefix = np.zeros((height, width + 1), dtype=np.int64)
    np.cumsum(dark, axis=1, out=prefix[:, 1:])

    darkness = np.empty(total, dtype=np.float32)
    tally = {'too_dark': 0, 'too_light': 0, 'balanced': 0, 'sum': 0.0}

    for lo in range(0, total, interval):
        checkpoint(cancel, AnalysisCancelled)
        report(lo / total)
        hi = min(lo + interval, total)
        index = np.arange(lo, hi)
        cx = (index % samples_wide) * stride
        cy = (index // samples_wide) * stride

        dark_count = np.zeros(hi - lo, dtype=np.int64)
        pixel_count = np.zeros(hi - lo, dtype=np.int64)
        for dy, half in spans:
            y = cy + dy
            valid = (y >= 0) & (y < height)
            if not valid.any():
                continue
            left = np.clip(cx - half, 0, width)
            right = np.clip(cx + half + 1, 0, width)
            rows = np.where(valid, y, 0)
            dark_count += np.where(valid, prefix[rows, right] - prefix[rows, left], 0)
            pixel_count += np.where(valid, right - left, 0)

        ratio = np.where(pixel_count > 0, dark_count / np.maximum(pixel_count, 1), 0.0)
        darkness[lo:hi] = ratio
        too_dark = ratio > upper_threshold
        too_light = ~too_dark & (ratio < lower_threshold)
        tally['too_dark'] += int(too_dark.sum())
        tally['too_light'] += int(too_light.sum())
        tally['balanced'] += int((~too_dark & ~too_light).sum())
        tally['sum'] += float(ratio.sum())

    report(1.0)
    stats = DarknessStats(
        mean_darkness=tally['sum'] / total,
        too_dark=tally['too_dark'],
        too_light=tally['too_light'],
        balanced=tally['balanced'],
        percent_too_dark=tally['too_dark'] / total * 100,
        percent_too_light=tally['too_light'] / total * 100,
        percent_balanced=tally['balanced'] / total * 100,
    )
    return AnalysisResult(
        darkness=darkness.reshape(samples_high, samples_wide),
        stats=stats,
        stride=stride,
        radius=radius,
        upper_threshold=upper_threshold,
        lower_threshold=lower_threshold,
    )


# ============================================================================
# Visualisation
# ============================================================================

def render_overlay(result: AnalysisResult, width: int, height: int) -> PixelBuffer:
    """
    Red/green tint over the full-resolution pixel grid.

    Each pixel takes the sample of its enclosing grid cell. Too-dark samples
    are red and too-light samples green, with alpha growing with the distance
    past the threshold up to OVERLAY_MAX_ALPHA; balanced samples are clear.
    """
    overlay = PixelBuffer.blank(width, height)
    sy = np.arange(height) // result.stride
    sx = np.arange(width) // result.stride
    inside_y = sy < result.samples_high
    inside_x = sx < result.samples_wide
    d = np.zeros((height, width), dtype=np.float64)
    d[np.ix_(inside_y, inside_x)] = result.darkness[np.ix_(sy[inside_y], sx[inside_x])]
    covered = inside_y[:, None] & inside_x[None, :]

    upper = result.upper_threshold
    lower = result.lower_threshold
    with np.errstate(divide='ignore', invalid='ignore'):
        dark_intensity = np.minimum(1.0, (d - upper) / (1.0 - upper))
        light_intensity = np.minimum(1.0, (lower - d) / lower)
    too_dark = covered & (d > upper)
    too_light = covered & ~too_dark & (d < lower)

    pixels = overlay.pixels
    pixels[too_dark, 0] = 255
    pixels[too_dark, 3] = np.floor(dark_intensity[too_dark] * OVERLAY_MAX_ALPHA).astype(np.uint8)
    pixels[too_light, 1] = 255
    pixels[too_light, 3] = np.floor(light_intensity[too_light] * OVERLAY_MAX_ALPHA).astype(np.uint8)
    return overlay


def composite_overlay(base: PixelBuffer, overlay: PixelBuffer) -> PixelBuffer:
    """Source-over composite into a new buffer; base is not modified."""
    combined = Image.alpha_composite(base.to_image(), overlay.to_image())
    return PixelBuffer.from_image(combined)


def format_stats(stats: DarknessStats) -> str:
    return "\n".join([
        f"Mean darkness: {stats.mean_darkness * 100:.1f}%",
        f"Too dark:      {stats.percent_too_dark:.1f}% ({stats.too_dark} samples)",
        f"Too light:     {stats.percent_too_light:.1f}% ({stats.too_light} samples)",
        f"Balanced:      {stats.percent_balanced:.1f}% ({stats.balanced} samples)",
    ])


def plot_darkness_map(result: AnalysisResult, output_path: Path, title: str = 'Darkness'):
    """
    Heat map of the sample grid with the two threshold contours.

    Draws on a standalone Figure so the caller's pyplot state and backend
    are left alone.
    """
    fig = Figure(figsize=(8, 8 * result.samples_high / max(1, result.samples_wide)))
    ax = fig.subplots()
    im = ax.imshow(result.darkness, cmap='RdYlGn_r', vmin=0.0, vmax=1.0,
                   interpolation='nearest')
    if result.samples_wide > 1 and result.samples_high > 1:
        ax.contour(result.darkness, levels=[result.lower_threshold, result.upper_threshold],
                   colors=['green', 'red'], linewidths=1.0)
    ax.set_title(f"{title} (radius {result.radius}px, stride {result.stride})")
    ax.axis('off')
    fig.colorbar(im, ax=ax, fraction=0.046, pad=0.04, label='dark fraction')
    fig.savefig(output_path, dpi=150, bbox_inches='tight')
