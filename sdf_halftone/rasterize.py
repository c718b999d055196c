"""
Distance-field rasterisation of curve polylines.

Each output pixel stores the distance from its centre to the nearest segment
of the polyline, normalised by cell_size * line_width and clamped, as gray:
0 on the curve, 255 at or beyond the normalising distance.
"""

import numpy as np

from .buffer import PixelBuffer
from .curves import CURVES, generate_curve
from .errors import GenerationCancelled
from .progress import CancelToken, ProgressCallback, ProgressReporter, checkpoint

# Segments evaluated per numpy pass; bounds the (width x block) temporaries
SEGMENT_BLOCK = 2048


def row_distances(px: np.ndarray, py: float, start: np.ndarray, delta: np.ndarray,
                  length_sq: np.ndarray) -> np.ndarray:
    """
    Minimum distance from each (px[i], py) to a set of segments.

    start/delta are (m, 2) arrays, length_sq the squared segment lengths.
    Zero-length segments collapse to a point distance.
    """
    best = np.full(px.shape, np.inf)
    safe_len = np.where(length_sq > 0, length_sq, 1.0)
    for lo in range(0, len(start), SEGMENT_BLOCK):
        hi = lo + SEGMENT_BLOCK
        x1 = start[lo:hi, 0]
        y1 = start[lo:hi, 1]
        dx = delta[lo:hi, 0]
        dy = delta[lo:hi, 1]
        rx = px[:, None] - x1[None, :]
        ry = py - y1[None, :]
        t = (rx * dx + ry * dy) / safe_len[lo:hi]
        t = np.where(length_sq[lo:hi] > 0, np.clip(t, 0.0, 1.0), 0.0)
        ex = rx - t * dx
        ey = ry - t * dy
        best = np.minimum(best, (ex * ex + ey * ey).min(axis=1))
    return np.sqrt(best)


def rasterize(points: np.ndarray, width: int, height: int, line_width: float, cell_size: float,
              offset: tuple[float, float] = (0.0, 0.0),
              progress: ProgressCallback | None = None,
              cancel: CancelToken | None = None) -> PixelBuffer:
    """
    Rasterise a polyline into a grayscale distance field.

    Args:
        points: Ordered (n, 2) curve points in curve space
        width, height: Output size in pixels
        line_width: Multiplier on cell_size giving the distance mapped to white
        cell_size: Pitch of the curve's grid cells in curve space
        offset: Curve-space origin in pixel space (centring)
        progress: Called with the fraction of rows done
        cancel: Polled before every row

    Raises:
        GenerationCancelled: the token was set at a row boundary
    """
    points = np.asarray(points, dtype=np.float64)
    max_dist = cell_size * line_width
    if max_dist <= 0:
        raise ValueError(f"line width and cell size must be positive (got {line_width}, {cell_size})")

    report = ProgressReporter(progress)
    start = points[:-1]
    delta = points[1:] - points[:-1]
    length_sq = (delta ** 2).sum(axis=1)
    seg_top = np.minimum(points[:-1, 1], points[1:, 1])
    seg_bottom = np.maximum(points[:-1, 1], points[1:, 1])

    ox, oy = offset
    px = np.arange(width, dtype=np.float64) + 0.5 - ox
    gray = np.empty((height, width), dtype=np.uint8)

    for y in range(height):
        checkpoint(cancel, GenerationCancelled)
        py = y + 0.5 - oy
        # Segments more than max_dist away vertically can only produce white
        near = (seg_top - max_dist <= py) & (seg_bottom + max_dist >= py)
        if near.any():
            dist = row_distances(px, py, start[near], delta[near], length_sq[near])
            normalized = np.clip(dist / max_dist, 0.0, 1.0)
            gray[y] = np.floor(normalized * 255).astype(np.uint8)
        else:
            gray[y] = 255
        report((y + 1) / height)

    return PixelBuffer.from_gray(gray)


def render_curve(kind: str, width: int, height: int, iterations: int, line_width: float,
                 progress: ProgressCallback | None = None,
                 cancel: CancelToken | None = None) -> PixelBuffer:
    """Generate a curve in a square of the smaller dimension and rasterise it centred."""
    family = CURVES[kind]
    size = min(width, height)
    points = generate_curve(kind, iterations, size)
    offset = ((width - size) / 2, (height - size) / 2)
    return rasterize(points, width, height, line_width, family.cell_size(size, iterations),
                     offset=offset, progress=progress, cancel=cancel)
