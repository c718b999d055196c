"""
Cooperative cancellation and progress reporting.

Every long-running operation takes an optional ``progress`` callable
(invoked with a float in [0, 1]) and an optional ``cancel`` token. The token
is polled at the operation's checkpoints (row, pixel-count or sample-count
boundaries); once it is set the operation raises its cancellation error and
returns nothing.
"""

from typing import Callable

ProgressCallback = Callable[[float], None]


class CancelToken:
    """Shared flag set by the caller, only read by the operation."""

    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def reset(self):
        self.cancelled = False

    def __repr__(self):
        return f"CancelToken(cancelled={self.cancelled})"


def checkpoint(cancel: CancelToken | None, exc_type: type[Exception]):
    """Raise exc_type if the token has been set."""
    if cancel is not None and cancel.cancelled:
        raise exc_type()


class ProgressReporter:
    """
    Forwards progress to an optional callback.

    Values are clamped to [0, 1] and a value lower than the last one sent is
    dropped, so the callback only ever sees a non-decreasing sequence.
    """

    def __init__(self, callback: ProgressCallback | None):
        self.callback = callback
        self.last = 0.0

    def __call__(self, value: float):
        if self.callback is None:
            return
        value = min(1.0, max(0.0, float(value)))
        if value < self.last:
            return
        self.last = value
        self.callback(value)
