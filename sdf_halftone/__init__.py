"""
Signed-distance-field halftone patterns.

Space-filling curves, noise and dot grids rendered as grayscale distance
fields, applied to photographs as halftone screens, and checked for
print-quality with a local darkness analysis.
"""

from .analysis import (AnalysisResult, DarknessStats, analyze_darkness, composite_overlay,
                       render_overlay)
from .buffer import PixelBuffer
from .curves import generate_curve
from .errors import (AnalysisCancelled, GenerationCancelled, HalftoneCancelled, HalftoneError,
                     InsufficientCurveData, OperationCancelled, SlotBusy, UnknownHalftoneMethod,
                     UnknownPatternKind)
from .halftone import adjust_contrast_brightness, apply_halftone
from .patterns import (BendayParams, CurveParams, NoiseParams, PatternKind, RandomParams,
                       generate_pattern)
from .progress import CancelToken
from .rasterize import rasterize
from .slots import OperationSlot, PatternStudio

__version__ = '0.1.0'
