"""
Exceptions raised by the pattern, halftone and analysis operations.

Cancellation is an expected outcome, not a defect: callers should catch
OperationCancelled separately from the other HalftoneError subclasses.
"""


class HalftoneError(Exception):
    """Base class for every failure raised by sdf_halftone."""


class OperationCancelled(HalftoneError):
    """The caller's cancel token was observed set at a checkpoint."""

    message = "Operation cancelled"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class GenerationCancelled(OperationCancelled):
    message = "Generation cancelled"


class HalftoneCancelled(OperationCancelled):
    message = "Halftone cancelled"


class AnalysisCancelled(OperationCancelled):
    message = "Analysis cancelled"


class InsufficientCurveData(HalftoneError):
    """A curve generator produced fewer than two points."""


class UnknownPatternKind(HalftoneError, ValueError):
    def __init__(self, kind):
        super().__init__(f"Unknown pattern type: {kind}")
        self.kind = kind


class UnknownHalftoneMethod(HalftoneError, ValueError):
    def __init__(self, method):
        super().__init__(f"Unknown halftone method: {method}")
        self.method = method


class SlotBusy(HalftoneError):
    """An operation slot already has a unit of work in flight."""
