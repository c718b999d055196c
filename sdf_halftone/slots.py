"""
Background execution slots.

Pattern generation, halftone application and darkness analysis each get
their own slot. A slot runs at most one unit of work at a time on a
single-worker thread pool, so the three kinds of work can overlap with each
other but never with themselves. Each unit gets a fresh CancelToken.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Callable

from .analysis import AnalysisResult, analyze_darkness
from .buffer import PixelBuffer
from .errors import SlotBusy
from .halftone import apply_halftone
from .patterns import generate_pattern
from .progress import CancelToken, ProgressCallback


class OperationSlot:
    def __init__(self, name: str):
        self.name = name
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"sdf-{name}")
        self._lock = Lock()
        self._future: Future | None = None
        self._token: CancelToken | None = None

    @property
    def busy(self) -> bool:
        return self._future is not None and not self._future.done()

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        """
        Run fn(*args, cancel=token, **kwargs) in the slot.

        Raises SlotBusy if the previous unit has not finished.
        """
        with self._lock:
            if self.busy:
                raise SlotBusy(f"{self.name} already in progress")
            self._token = CancelToken()
            self._future = self._executor.submit(fn, *args, cancel=self._token, **kwargs)
            return self._future

    def cancel(self):
        if self._token is not None:
            self._token.cancel()

    def shutdown(self, wait: bool = True):
        self.cancel()
        self._executor.shutdown(wait=wait)


class PatternStudio:
    """The three independent slots behind an interactive session."""

    def __init__(self):
        self.generation = OperationSlot('generation')
        self.halftone = OperationSlot('halftone')
        self.analysis = OperationSlot('analysis')

    def generate(self, kind, width: int, height: int, params=None,
                 progress: ProgressCallback | None = None, invert: bool = False) -> "Future[PixelBuffer]":
        return self.generation.submit(generate_pattern, kind, width, height, params,
                                      progress=progress, invert=invert)

    def apply(self, source: PixelBuffer, pattern: PixelBuffer | None, method: str = 'threshold',
              contrast: float = 0.0, brightness: float = 0.0,
              progress: ProgressCallback | None = None) -> "Future[PixelBuffer]":
        return self.halftone.submit(apply_halftone, source, pattern, method, contrast, brightness,
                                    progress=progress)

    def analyze(self, buffer: PixelBuffer, radius_pixels: float, upper_threshold: float = 0.7,
                lower_threshold: float = 0.3,
                progress: ProgressCallback | None = None) -> "Future[AnalysisResult]":
        return self.analysis.submit(analyze_darkness, buffer, radius_pixels, upper_threshold,
                                    lower_threshold, progress=progress)

    def cancel_generation(self):
        self.generation.cancel()

    def cancel_halftone(self):
        self.halftone.cancel()

    def cancel_analysis(self):
        self.analysis.cancel()

    def shutdown(self, wait: bool = True):
        for slot in (self.generation, self.halftone, self.analysis):
            slot.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.shutdown()
