"""
Random and gradient-noise pattern fields.

Random fields draw one Mulberry32 value per pixel (two for the normal
distribution). Noise fields sum octaves of 2D simplex noise whose
permutation table is shuffled from the same generator, so a fixed seed gives
byte-identical output.
"""

import math

import numpy as np

from .buffer import PixelBuffer
from .errors import GenerationCancelled
from .prng import Mulberry32
from .progress import CancelToken, ProgressCallback, ProgressReporter, checkpoint

# Pixels between progress/cancel checkpoints for random fields
RANDOM_CHUNK = 10000

DISTRIBUTIONS = ('uniform', 'normal', 'binary')
NORMAL_MEAN = 128.0
NORMAL_STD = 50.0


def random_values(rng: Mulberry32, count: int, distribution: str) -> np.ndarray:
    """Next `count` gray values for the given distribution."""
    if distribution == 'binary':
        return np.where(rng.random(count) < 0.5, 0, 255).astype(np.uint8)
    if distribution == 'normal':
        values = np.floor(rng.gaussian(count, NORMAL_MEAN, NORMAL_STD) + 0.5)
        return np.clip(values, 0, 255).astype(np.uint8)
    # uniform, also the fallback for unrecognised names
    return np.floor(rng.random(count) * 256).astype(np.uint8)


def generate_random(width: int, height: int, distribution: str = 'uniform', seed: int | None = None,
                    progress: ProgressCallback | None = None,
                    cancel: CancelToken | None = None) -> PixelBuffer:
    """
    Independent per-pixel random field.

    Without a seed the generator is clock-seeded and output is not
    reproducible.
    """
    rng = Mulberry32(seed)
    report = ProgressReporter(progress)
    total = width * height
    flat = np.empty(total, dtype=np.uint8)

    for lo in range(0, total, RANDOM_CHUNK):
        checkpoint(cancel, GenerationCancelled)
        hi = min(lo + RANDOM_CHUNK, total)
        flat[lo:hi] = random_values(rng, hi - lo, distribution)
        if hi % RANDOM_CHUNK == 0:
            report(hi / total)

    report(1.0)
    return PixelBuffer.from_gray(flat.reshape(height, width))


# ============================================================================
# Simplex noise
# ============================================================================

F2 = 0.5 * (math.sqrt(3.0) - 1.0)
G2 = (3.0 - math.sqrt(3.0)) / 6.0

# First two components of the 12 simplex edge gradients
GRAD3 = np.array([
    [1, 1], [-1, 1], [1, -1], [-1, -1],
    [1, 0], [-1, 0], [1, 0], [-1, 0],
    [0, 1], [0, -1], [0, 1], [0, -1],
], dtype=np.float64)


class SimplexNoise:
    """2D simplex noise over numpy arrays, output roughly in [-1, 1]."""

    def __init__(self, rng: Mulberry32):
        p = np.arange(256, dtype=np.int64)
        for i in range(255, 0, -1):
            j = int(math.floor(rng.next() * (i + 1)))
            p[i], p[j] = p[j], p[i]
        self.perm = np.concatenate([p, p])
        self.perm_mod12 = self.perm % 12

    def _corner(self, x: np.ndarray, y: np.ndarray, gi: np.ndarray) -> np.ndarray:
        t = 0.5 - x * x - y * y
        g = GRAD3[gi]
        contribution = (t * t) * (t * t) * (g[..., 0] * x + g[..., 1] * y)
        return np.where(t < 0, 0.0, contribution)

    def noise2d(self, xin: np.ndarray, yin: np.ndarray) -> np.ndarray:
        xin = np.asarray(xin, dtype=np.float64)
        yin = np.asarray(yin, dtype=np.float64)
        s = (xin + yin) * F2
        i = np.floor(xin + s).astype(np.int64)
        j = np.floor(yin + s).astype(np.int64)
        t = (i + j) * G2
        x0 = xin - (i - t)
        y0 = yin - (j - t)

        upper = x0 > y0
        i1 = upper.astype(np.int64)
        j1 = 1 - i1

        x1 = x0 - i1 + G2
        y1 = y0 - j1 + G2
        x2 = x0 - 1.0 + 2.0 * G2
        y2 = y0 - 1.0 + 2.0 * G2

        ii = i & 255
        jj = j & 255
        perm = self.perm
        gi0 = self.perm_mod12[ii + perm[jj]]
        gi1 = self.perm_mod12[ii + i1 + perm[jj + j1]]
        gi2 = self.perm_mod12[ii + 1 + perm[jj + 1]]

        n = self._corner(x0, y0, gi0) + self._corner(x1, y1, gi1) + self._corner(x2, y2, gi2)
        return 70.0 * n


def generate_noise(width: int, height: int, scale: float = 1.0, octaves: int = 4,
                   persistence: float = 0.5, seed: int | None = None,
                   progress: ProgressCallback | None = None,
                   cancel: CancelToken | None = None) -> PixelBuffer:
    """
    Multi-octave simplex noise field.

    Octave k has amplitude persistence^k and frequency (scale * 0.01) * 2^k;
    the sum is divided by the total amplitude and mapped from [-1, 1] to
    [0, 255].
    """
    if octaves < 1:
        raise ValueError(f"octaves must be >= 1, got {octaves}")
    noise = SimplexNoise(Mulberry32(seed))
    report = ProgressReporter(progress)
    base_frequency = scale * 0.01
    xs = np.arange(width, dtype=np.float64)
    gray = np.empty((height, width), dtype=np.uint8)

    amplitudes = [persistence ** k for k in range(octaves)]
    max_value = sum(amplitudes)

    for y in range(height):
        checkpoint(cancel, GenerationCancelled)
        value = np.zeros(width)
        frequency = base_frequency
        for amplitude in amplitudes:
            value += noise.noise2d(xs * frequency, np.full(width, y * frequency)) * amplitude
            frequency *= 2.0
        normalized = (value / max_value + 1.0) / 2.0
        gray[y] = np.floor(np.clip(normalized, 0.0, 1.0) * 255).astype(np.uint8)
        report((y + 1) / height)

    return PixelBuffer.from_gray(gray)
