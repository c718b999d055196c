"""
Pattern kinds, their parameter records and the generation entry point.

The set of kinds is closed: four curve families rasterised as distance
fields and three procedural fields. generate_pattern() dispatches on the
kind through a fixed table.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Callable, Mapping

from .benday import GRID_TYPES, SHAPE_FACTORS, generate_benday
from .buffer import PixelBuffer
from .curves import CURVES
from .errors import UnknownPatternKind
from .noise import generate_noise, generate_random
from .progress import CancelToken, ProgressCallback
from .rasterize import render_curve


class PatternKind(str, Enum):
    HILBERT = 'hilbert'
    PEANO = 'peano'
    GOSPER = 'gosper'
    ZORDER = 'zorder'
    RANDOM = 'random'
    NOISE = 'noise'
    BENDAY = 'benday'

    @classmethod
    def parse(cls, value) -> "PatternKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnknownPatternKind(value) from None

    @property
    def is_curve(self) -> bool:
        return self.value in CURVES


@dataclass(frozen=True)
class CurveParams:
    iterations: int = 5
    line_width: float = 2.0

    def __post_init__(self):
        if self.line_width <= 0:
            raise ValueError(f"line_width must be positive, got {self.line_width}")


@dataclass(frozen=True)
class RandomParams:
    distribution: str = 'uniform'
    seed: int | None = None


@dataclass(frozen=True)
class NoiseParams:
    scale: float = 1.0
    octaves: int = 4
    persistence: float = 0.5
    seed: int | None = None

    def __post_init__(self):
        if not 1 <= self.octaves <= 8:
            raise ValueError(f"octaves must be in [1, 8], got {self.octaves}")
        if not 0.0 <= self.persistence <= 1.0:
            raise ValueError(f"persistence must be in [0, 1], got {self.persistence}")


@dataclass(frozen=True)
class BendayParams:
    spacing: float = 20.0
    shape: str = 'circle'
    grid_type: str = 'square'
    dot_size: float | None = None

    def __post_init__(self):
        if self.shape not in SHAPE_FACTORS:
            raise ValueError(f"shape must be one of {sorted(SHAPE_FACTORS)}, got {self.shape!r}")
        if self.grid_type not in GRID_TYPES:
            raise ValueError(f"grid_type must be one of {list(GRID_TYPES)}, got {self.grid_type!r}")


PatternParams = CurveParams | RandomParams | NoiseParams | BendayParams


def default_params(kind) -> PatternParams:
    kind = PatternKind.parse(kind)
    if kind.is_curve:
        return CurveParams(iterations=CURVES[kind.value].default_iterations)
    return {
        PatternKind.RANDOM: RandomParams,
        PatternKind.NOISE: NoiseParams,
        PatternKind.BENDAY: BendayParams,
    }[kind]()


def params_from_dict(kind, values: Mapping[str, Any]) -> PatternParams:
    """Build the kind's parameter record from loose key/value settings."""
    base = default_params(kind)
    known = {f.name for f in fields(base)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown parameters for {PatternKind.parse(kind).value}: {sorted(unknown)}")
    merged = {f.name: getattr(base, f.name) for f in fields(base)}
    merged.update({k: v for k, v in values.items() if v is not None})
    return type(base)(**merged)


def _curve(kind: PatternKind) -> Callable[..., PixelBuffer]:
    def generate(width, height, params: CurveParams, progress, cancel):
        return render_curve(kind.value, width, height, params.iterations, params.line_width,
                            progress=progress, cancel=cancel)
    return generate


def _random(width, height, params: RandomParams, progress, cancel):
    return generate_random(width, height, params.distribution, params.seed,
                           progress=progress, cancel=cancel)


def _noise(width, height, params: NoiseParams, progress, cancel):
    return generate_noise(width, height, params.scale, params.octaves, params.persistence,
                          params.seed, progress=progress, cancel=cancel)


def _benday(width, height, params: BendayParams, progress, cancel):
    return generate_benday(width, height, params.spacing, params.shape, params.grid_type,
                           params.dot_size, progress=progress, cancel=cancel)


GENERATORS: dict[PatternKind, tuple[type, Callable[..., PixelBuffer]]] = {
    PatternKind.HILBERT: (CurveParams, _curve(PatternKind.HILBERT)),
    PatternKind.PEANO: (CurveParams, _curve(PatternKind.PEANO)),
    PatternKind.GOSPER: (CurveParams, _curve(PatternKind.GOSPER)),
    PatternKind.ZORDER: (CurveParams, _curve(PatternKind.ZORDER)),
    PatternKind.RANDOM: (RandomParams, _random),
    PatternKind.NOISE: (NoiseParams, _noise),
    PatternKind.BENDAY: (BendayParams, _benday),
}


def generate_pattern(kind, width: int, height: int, params: PatternParams | None = None,
                     progress: ProgressCallback | None = None,
                     cancel: CancelToken | None = None,
                     invert: bool = False) -> PixelBuffer:
    """
    Generate a grayscale pattern field.

    Args:
        kind: One of hilbert, peano, gosper, zorder, random, noise, benday
        width, height: Output size in pixels
        params: Parameter record for the kind (defaults when None)
        progress: Called with monotonically non-decreasing values in [0, 1]
        cancel: Polled at every checkpoint
        invert: Flip the field (255 - value)

    Raises:
        UnknownPatternKind: kind is not recognised
        InsufficientCurveData: a curve depth yields fewer than two points
        GenerationCancelled: the cancel token was set
    """
    kind = PatternKind.parse(kind)
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid pattern size {width}x{height}")
    params_type, generate = GENERATORS[kind]
    if params is None:
        params = default_params(kind)
    elif not isinstance(params, params_type):
        raise TypeError(f"{kind.value} expects {params_type.__name__}, got {type(params).__name__}")

    buffer = generate(width, height, params, progress, cancel)
    if invert:
        buffer.pixels[:, :, :3] = 255 - buffer.pixels[:, :, :3]
    return buffer
