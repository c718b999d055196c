"""
Ben-Day dot grid fields.

Gray encodes the distance to the nearest dot centre of a square or
hexagonal lattice: 0 at a centre, 255 at the farthest point of the lattice
cell. The shape option only rescales that distance (square by sqrt(2),
diamond by 1.4) rather than computing a per-shape distance; values past the
cell edge clamp to white.
"""

import math

import numpy as np

from .buffer import PixelBuffer
from .errors import GenerationCancelled
from .progress import CancelToken, ProgressCallback, ProgressReporter, checkpoint

SHAPE_FACTORS = {
    'circle': 1.0,
    'square': math.sqrt(2.0),
    'diamond': 1.4,
}
GRID_TYPES = ('square', 'hexagonal')


def js_round(v: np.ndarray) -> np.ndarray:
    """Round half up (toward +inf) instead of numpy's half-to-even."""
    return np.floor(v + 0.5)


def square_grid_distance(x: np.ndarray, y: float, spacing: float) -> np.ndarray:
    gx = js_round(x / spacing) * spacing
    gy = js_round(np.asarray(y / spacing)) * spacing
    return np.hypot(x - gx, y - gy)


def hex_grid_distance(x: np.ndarray, y: float, spacing: float) -> np.ndarray:
    """
    Distance to the nearest centre of a hexagonal lattice.

    Rows are spacing * sqrt(3)/2 apart and odd rows shift by spacing / 2, so
    every centre has six neighbours at `spacing`. The nearest centre is found
    by checking the 3x3 rows/columns around the rounded candidate.
    """
    row_pitch = spacing * math.sqrt(3.0) / 2.0
    row = int(js_round(np.asarray(y / row_pitch)))
    best = np.full(x.shape, np.inf)
    for r in (row - 1, row, row + 1):
        shift = (r % 2) * spacing / 2.0
        col = js_round((x - shift) / spacing)
        cy = r * row_pitch
        for dc in (-1, 0, 1):
            cx = (col + dc) * spacing + shift
            best = np.minimum(best, np.hypot(x - cx, y - cy))
    return best


def max_cell_distance(spacing: float, grid_type: str) -> float:
    """Centre-to-corner distance of one lattice cell."""
    if grid_type == 'hexagonal':
        return spacing / math.sqrt(3.0)
    return spacing / math.sqrt(2.0)


def generate_benday(width: int, height: int, spacing: float = 20.0, shape: str = 'circle',
                    grid_type: str = 'square', dot_size: float | None = None,
                    progress: ProgressCallback | None = None,
                    cancel: CancelToken | None = None) -> PixelBuffer:
    """
    Dot-grid distance field.

    Args:
        spacing: Distance between neighbouring dot centres in pixels
        shape: 'circle', 'square' or 'diamond' (distance scale factor only)
        grid_type: 'square' or 'hexagonal'
        dot_size: Optional 0-1 steepness; when set the normalised distance
                  is raised to 0.5 + 1.5 * dot_size before mapping to gray
    """
    if spacing <= 0:
        raise ValueError(f"spacing must be positive, got {spacing}")
    if shape not in SHAPE_FACTORS:
        raise ValueError(f"Unknown dot shape: {shape}")
    if grid_type not in GRID_TYPES:
        raise ValueError(f"Unknown grid type: {grid_type}")

    report = ProgressReporter(progress)
    factor = SHAPE_FACTORS[shape]
    max_dist = max_cell_distance(spacing, grid_type)
    distance = hex_grid_distance if grid_type == 'hexagonal' else square_grid_distance
    xs = np.arange(width, dtype=np.float64)
    gray = np.empty((height, width), dtype=np.uint8)

    for y in range(height):
        checkpoint(cancel, GenerationCancelled)
        normalized = np.clip(distance(xs, float(y), spacing) * factor / max_dist, 0.0, 1.0)
        if dot_size is not None:
            normalized = normalized ** (0.5 + dot_size * 1.5)
        gray[y] = np.floor(normalized * 255).astype(np.uint8)
        report((y + 1) / height)

    return PixelBuffer.from_gray(gray)
