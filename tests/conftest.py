"""Shared fixtures for the pattern, halftone and analysis tests."""

import numpy as np
import pytest

from sdf_halftone.buffer import PixelBuffer


def solid(width, height, value):
    return PixelBuffer.from_gray(np.full((height, width), value, dtype=np.uint8))


@pytest.fixture
def white():
    return solid(40, 30, 255)


@pytest.fixture
def black():
    return solid(40, 30, 0)


@pytest.fixture
def gradient():
    """64x48 horizontal ramp 0 -> 252."""
    ramp = np.tile(np.arange(64, dtype=np.uint8) * 4, (48, 1))
    return PixelBuffer.from_gray(ramp)


@pytest.fixture
def cancelled():
    from sdf_halftone.progress import CancelToken

    token = CancelToken()
    token.cancel()
    return token
