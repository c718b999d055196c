"""
Apply a pattern field to a photograph as a halftone screen.

The source is reduced to luma and quantised with one of four methods:

    threshold         black where luma < pattern (pattern tiled over the image)
    blend             floor(luma * pattern / 255)
    floyd-steinberg   error diffusion at a fixed 128 threshold, pattern unused
    ordered           white where luma > 8x8 Bayer threshold, pattern unused

An optional linear contrast/brightness pass runs on the halftoned result.
"""

import numpy as np

from .buffer import PixelBuffer
from .errors import HalftoneCancelled, UnknownHalftoneMethod
from .progress import CancelToken, ProgressCallback, ProgressReporter, checkpoint

METHODS = ('threshold', 'blend', 'floyd-steinberg', 'ordered')
BAYER_ORDER = 3


# Order in which the four pixels of a 2x2 cell switch on as luma rises
BAYER_BASE = np.array([[0, 2], [3, 1]], dtype=np.int64)


def bayer_matrix(n: int) -> np.ndarray:
    """
    Switch-on order of a 2^n x 2^n ordered-dither tile, 0 .. 4^n - 1.

    Each doubling places four copies of the previous tile, scaled by 4, in
    the quadrants named by BAYER_BASE. The result holds ranks, not gray
    levels; BAYER_THRESHOLDS rescales them to 0-255.
    """
    m = np.zeros((1, 1), dtype=np.int64)
    for _ in range(n):
        m = np.tile(4 * m, (2, 2)) + np.kron(BAYER_BASE, np.ones_like(m))
    return m


BAYER_8 = bayer_matrix(BAYER_ORDER)
BAYER_THRESHOLDS = BAYER_8 / 64.0 * 255.0

# Floyd-Steinberg neighbours as (dx, dy, share of the quantisation error)
FS_WEIGHTS = (
    (1, 0, 7.0 / 16.0),
    (-1, 1, 3.0 / 16.0),
    (0, 1, 5.0 / 16.0),
    (1, 1, 1.0 / 16.0),
)


def tile_row(pattern: np.ndarray, width: int, y: int) -> np.ndarray:
    """Row y of the pattern repeated (modulo indexing) to cover `width` columns."""
    ph, pw = pattern.shape
    row = pattern[y % ph]
    return row[np.arange(width) % pw]


def diffuse_error(luma: np.ndarray, x: int, y: int, err: float):
    """Push the error of pixel (x, y) onto its unvisited neighbours; edges drop their share."""
    h, w = luma.shape
    for dx, dy, share in FS_WEIGHTS:
        nx, ny = x + dx, y + dy
        if 0 <= nx < w and ny < h:
            luma[ny, nx] += err * share


def adjust_contrast_brightness(buffer: PixelBuffer, contrast: float = 0.0, brightness: float = 0.0):
    """
    Linear contrast around 128 and brightness offset, in place on RGB.

    contrast and brightness are percentages in [-100, 100].
    """
    if not -100 <= contrast <= 100:
        raise ValueError(f"contrast must be in [-100, 100], got {contrast}")
    if not -100 <= brightness <= 100:
        raise ValueError(f"brightness must be in [-100, 100], got {brightness}")
    if contrast == 0 and brightness == 0:
        return
    factor = (259.0 * (contrast + 255.0)) / (255.0 * (259.0 - contrast))
    rgb = buffer.pixels[:, :, :3].astype(np.float64)
    rgb = factor * (rgb - 128.0) + 128.0 + brightness * 2.55
    buffer.pixels[:, :, :3] = np.clip(np.round(rgb), 0, 255).astype(np.uint8)


def apply_halftone(source: PixelBuffer, pattern: PixelBuffer | None, method: str = 'threshold',
                   contrast: float = 0.0, brightness: float = 0.0,
                   progress: ProgressCallback | None = None,
                   cancel: CancelToken | None = None) -> PixelBuffer:
    """
    Halftone `source` into a new opaque grayscale buffer.

    Args:
        source: Photograph to screen (read only)
        pattern: Grayscale pattern field; tiled when smaller than the source.
                 Only threshold and blend read it.
        method: One of METHODS
        contrast, brightness: Post-pass settings in [-100, 100]
        progress: Called once per scanline
        cancel: Polled before every scanline

    Raises:
        UnknownHalftoneMethod: method is not recognised
        HalftoneCancelled: the cancel token was set
    """
    if method not in METHODS:
        raise UnknownHalftoneMethod(method)
    if method in ('threshold', 'blend') and pattern is None:
        raise ValueError(f"{method} halftoning needs a pattern")

    report = ProgressReporter(progress)
    width, height = source.width, source.height
    out = np.empty((height, width), dtype=np.uint8)
    pattern_gray = pattern.gray if pattern is not None else None

    if method == 'floyd-steinberg':
        buf = source.luma()
        for y in range(height):
            checkpoint(cancel, HalftoneCancelled)
            for x in range(width):
                old = buf[y, x]
                new = 0.0 if old < 128.0 else 255.0
                out[y, x] = int(new)
                diffuse_error(buf, x, y, old - new)
            report((y + 1) / height)
    else:
        xs = np.arange(width)
        for y in range(height):
            checkpoint(cancel, HalftoneCancelled)
            gray = source.row_luma(y)
            if method == 'threshold':
                out[y] = np.where(gray < tile_row(pattern_gray, width, y), 0, 255)
            elif method == 'blend':
                values = tile_row(pattern_gray, width, y).astype(np.float64)
                out[y] = np.floor(gray * values / 255.0).astype(np.uint8)
            else:
                threshold = BAYER_THRESHOLDS[y % 8, xs % 8]
                out[y] = np.where(gray > threshold, 255, 0)
            report((y + 1) / height)

    result = PixelBuffer.from_gray(out)
    adjust_contrast_brightness(result, contrast, brightness)
    return result
