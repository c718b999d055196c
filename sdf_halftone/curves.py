"""
Space-filling curve generators.

Each generator maps (iterations, size) to an ordered (n, 2) float array of
points inside a size x size square; consecutive points are the segments of
the curve polyline. Output is fully deterministic.

    hilbert  2^n x 2^n grid, index -> (x, y) bit decomposition    4^n points
    peano    3^n x 3^n grid, recursive 3x3 serpentine             9^n points
    gosper   L-system flowsnake, turtle at 60 degrees             7^n + 1 points
    zorder   2^n x 2^n grid sorted by Morton code                 4^n points
"""

import math
from typing import Callable, NamedTuple

import numpy as np

from .errors import InsufficientCurveData


# ============================================================================
# Hilbert
# ============================================================================

def hilbert_d2xy(order: int, d: int) -> tuple[int, int]:
    """Cell (x, y) visited at index d of a Hilbert curve on a 2^order grid."""
    x = y = 0
    t = d
    s = 1
    n = 1 << order
    while s < n:
        rx = 1 & (t >> 1)
        ry = 1 & (t ^ rx)
        if ry == 0:
            if rx == 1:
                x = s - 1 - x
                y = s - 1 - y
            x, y = y, x
        x += s * rx
        y += s * ry
        t >>= 2
        s <<= 1
    return x, y


def hilbert_points(iterations: int, size: float) -> np.ndarray:
    n = 1 << iterations
    cell = size / n
    cells = np.array([hilbert_d2xy(iterations, d) for d in range(n * n)], dtype=np.float64)
    return (cells + 0.5) * cell


# ============================================================================
# Peano
# ============================================================================

# Base serpentine: column 0 upwards, column 1 downwards, column 2 upwards.
# Entries are (column, row, mirror mask of the sub-square).
_PEANO_BASE = (
    (0, 0, 0), (0, 1, 1), (0, 2, 0),
    (1, 2, 2), (1, 1, 3), (1, 0, 2),
    (2, 0, 0), (2, 1, 1), (2, 2, 0),
)

MIRROR_COLS = 1
MIRROR_ROWS = 2


def _mirror_table(mirror: int) -> tuple[tuple[int, int, int], ...]:
    table = []
    for col, row, sub in _PEANO_BASE:
        if mirror & MIRROR_COLS:
            col = 2 - col
        if mirror & MIRROR_ROWS:
            row = 2 - row
        table.append((col, row, sub ^ mirror))
    return tuple(table)


# Indexed by mirror mask 0-3
PEANO_TABLES = tuple(_mirror_table(m) for m in range(4))


def _peano_recursive(iteration: int, x: float, y: float, size: float, mirror: int, out: list):
    if iteration == 0:
        out.append((x + size / 2, y + size / 2))
        return
    step = size / 3
    for col, row, sub in PEANO_TABLES[mirror]:
        _peano_recursive(iteration - 1, x + col * step, y + row * step, step, sub, out)


def peano_points(iterations: int, size: float) -> np.ndarray:
    out: list[tuple[float, float]] = []
    _peano_recursive(iterations, 0.0, 0.0, float(size), 0, out)
    return np.array(out, dtype=np.float64)


# ============================================================================
# Gosper (flowsnake)
# ============================================================================

GOSPER_AXIOM = 'A'
GOSPER_RULES = {
    'A': 'A-B--B+A++AA+B-',
    'B': '+A-BB--B-A++A+B',
}
GOSPER_TURN = 60.0
GOSPER_PADDING = 0.9


def gosper_lsystem(iterations: int) -> str:
    current = GOSPER_AXIOM
    for _ in range(iterations):
        current = ''.join(GOSPER_RULES.get(c, c) for c in current)
    return current


def turtle_points(program: str, step: float = 1.0, turn: float = GOSPER_TURN) -> np.ndarray:
    """Interpret A/B as forward moves and +/- as left/right turns."""
    x = y = 0.0
    angle = 0.0
    out = [(x, y)]
    for c in program:
        if c in 'AB':
            rad = math.radians(angle)
            x += math.cos(rad) * step
            y += math.sin(rad) * step
            out.append((x, y))
        elif c == '+':
            angle += turn
        elif c == '-':
            angle -= turn
    return np.array(out, dtype=np.float64)


def fit_to_square(points: np.ndarray, size: float, padding: float = GOSPER_PADDING) -> np.ndarray:
    """Uniformly scale the bounding box into size x size, centred, with padding."""
    lo = points.min(axis=0)
    extent = points.max(axis=0) - lo
    # A straight run has zero extent on one axis; scale by the other one
    nonzero = extent[extent > 0]
    if nonzero.size == 0:
        return np.full_like(points, size / 2)
    scale = float(np.min(size / nonzero)) * padding
    offset = (size - extent * scale) / 2
    return (points - lo) * scale + offset


def gosper_points(iterations: int, size: float) -> np.ndarray:
    program = gosper_lsystem(iterations)
    return fit_to_square(turtle_points(program), size)


# ============================================================================
# Z-order (Morton)
# ============================================================================

def morton_encode(x: int, y: int) -> int:
    """Interleave bits: x in even positions, y in odd positions."""
    code = 0
    for i in range(max(x.bit_length(), y.bit_length())):
        code |= ((x >> i) & 1) << (2 * i)
        code |= ((y >> i) & 1) << (2 * i + 1)
    return code


def zorder_points(iterations: int, size: float) -> np.ndarray:
    n = 1 << iterations
    cell = size / n
    cells = sorted(((x, y) for y in range(n) for x in range(n)), key=lambda c: morton_encode(*c))
    return (np.array(cells, dtype=np.float64) + 0.5) * cell


# ============================================================================
# Registry
# ============================================================================

class CurveFamily(NamedTuple):
    name: str
    generate: Callable[[int, float], np.ndarray]
    # Per-level subdivision factor along one side; cell pitch is size / factor^n
    factor: float
    default_iterations: int

    def cell_size(self, size: float, iterations: int) -> float:
        return size / self.factor ** iterations

    def expected_points(self, iterations: int) -> int:
        if self.name == 'gosper':
            return 7 ** iterations + 1
        return int(round(self.factor ** (2 * iterations)))


CURVES: dict[str, CurveFamily] = {
    'hilbert': CurveFamily('hilbert', hilbert_points, 2.0, 5),
    'peano': CurveFamily('peano', peano_points, 3.0, 4),
    'gosper': CurveFamily('gosper', gosper_points, math.sqrt(7.0), 4),
    'zorder': CurveFamily('zorder', zorder_points, 2.0, 5),
}


def generate_curve(kind: str, iterations: int, size: float) -> np.ndarray:
    """
    Ordered curve points for `kind` at the given depth inside a size x size square.

    Raises InsufficientCurveData when the depth yields fewer than two points.
    """
    family = CURVES[kind]
    if iterations < 0:
        raise ValueError(f"iterations must be >= 0, got {iterations}")
    points = family.generate(int(iterations), float(size))
    if len(points) < 2:
        raise InsufficientCurveData(
            f"Not enough points generated for {kind} curve "
            f"({len(points)} at iterations={iterations})")
    return points
