"""
Seeded Mulberry32 generator.

State is a 32-bit counter advanced by 0x6D2B79F5 per draw; each output is a
bit-mix of the counter. Because the mix only depends on the counter, a block
of draws can be computed in one vectorised pass (see Mulberry32.random).
"""

import itertools
import math
import time

import numpy as np

GOLDEN = 0x6D2B79F5
MASK32 = 0xFFFFFFFF

_clock_nonce = itertools.count(1)


def clock_seed() -> int:
    """Seed from the wall clock, distinct for calls within the same tick."""
    return (time.time_ns() ^ (next(_clock_nonce) * 0x9E3779B9)) & MASK32


def mulberry32_mix(state: np.ndarray) -> np.ndarray:
    """Mulberry32 output function applied to an array of uint32 states."""
    t = state.astype(np.uint64)
    t = ((t ^ (t >> np.uint64(15))) * (t | np.uint64(1))) & np.uint64(MASK32)
    t = t ^ ((t + (((t ^ (t >> np.uint64(7))) * (t | np.uint64(61))) & np.uint64(MASK32))) & np.uint64(MASK32))
    return ((t ^ (t >> np.uint64(14))) & np.uint64(MASK32)).astype(np.uint32)


class Mulberry32:
    """Deterministic [0, 1) generator; unseeded instances are clock-seeded."""

    def __init__(self, seed: int | None = None):
        self.seed = (clock_seed() if seed is None else int(seed)) & MASK32
        self.state = self.seed

    def reset(self, seed: int):
        self.seed = int(seed) & MASK32
        self.state = self.seed

    def random(self, count: int) -> np.ndarray:
        """Next `count` values in [0, 1), identical to `count` calls of next()."""
        steps = np.arange(1, count + 1, dtype=np.uint64)
        states = ((np.uint64(self.state) + steps * np.uint64(GOLDEN)) & np.uint64(MASK32))
        self.state = (self.state + count * GOLDEN) & MASK32
        return mulberry32_mix(states).astype(np.float64) / 4294967296.0

    def next(self) -> float:
        return float(self.random(1)[0])

    def next_int(self, lo: int, hi: int) -> int:
        """Integer in [lo, hi)."""
        return int(math.floor(self.next() * (hi - lo))) + lo

    def gaussian(self, count: int, mean: float = 0.0, std: float = 1.0) -> np.ndarray:
        """
        Box-Muller normals, one per pair of consecutive draws.

        u1 is floored at the smallest positive draw so a zero never reaches log.
        """
        u = self.random(2 * count).reshape(count, 2)
        u1 = np.maximum(u[:, 0], 1.0 / 4294967296.0)
        z0 = np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u[:, 1])
        return z0 * std + mean

    def next_gaussian(self, mean: float = 0.0, std: float = 1.0) -> float:
        return float(self.gaussian(1, mean, std)[0])
