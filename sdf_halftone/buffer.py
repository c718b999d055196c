"""
RGBA pixel buffer shared by every pattern, halftone and analysis operation.

A buffer is a (height, width, 4) uint8 numpy array. Grayscale fields keep
R = G = B and an opaque alpha; only overlays use alpha.
"""

from dataclasses import dataclass

import numpy as np
from PIL import Image

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


@dataclass
class PixelBuffer:
    pixels: np.ndarray

    def __post_init__(self):
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"Expected (height, width, 4) pixels, got shape {self.pixels.shape}")
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {self.pixels.dtype}")

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def data(self) -> bytes:
        """Flat R,G,B,A byte sequence, row-major."""
        return self.pixels.tobytes()

    @property
    def gray(self) -> np.ndarray:
        """R channel, which carries the value of a grayscale field."""
        return self.pixels[:, :, 0]

    @classmethod
    def blank(cls, width: int, height: int) -> "PixelBuffer":
        """Fully transparent black buffer."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid buffer size {width}x{height}")
        return cls(np.zeros((height, width, 4), dtype=np.uint8))

    @classmethod
    def from_gray(cls, gray: np.ndarray) -> "PixelBuffer":
        """Build an opaque grayscale buffer from a 2D array of 0-255 values."""
        gray = np.asarray(gray)
        if gray.ndim != 2:
            raise ValueError(f"Expected a 2D gray array, got shape {gray.shape}")
        h, w = gray.shape
        pixels = np.empty((h, w, 4), dtype=np.uint8)
        pixels[:, :, :3] = np.clip(gray, 0, 255).astype(np.uint8)[:, :, None]
        pixels[:, :, 3] = 255
        return cls(pixels)

    @classmethod
    def from_image(cls, img: Image.Image) -> "PixelBuffer":
        return cls(np.array(img.convert('RGBA'), dtype=np.uint8))

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels, mode='RGBA')

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.pixels.copy())

    def luma(self) -> np.ndarray:
        """Perceptual brightness 0.299R + 0.587G + 0.114B as float64."""
        return self.pixels[:, :, :3].astype(np.float64) @ LUMA_WEIGHTS

    def row_luma(self, y: int) -> np.ndarray:
        return self.pixels[y, :, :3].astype(np.float64) @ LUMA_WEIGHTS


def load_buffer(path) -> PixelBuffer:
    with Image.open(path) as img:
        return PixelBuffer.from_image(img)


def save_buffer(buffer: PixelBuffer, path, grayscale: bool = False):
    """Save as PNG; grayscale=True writes a single-channel 'L' image."""
    if grayscale:
        Image.fromarray(buffer.gray.copy(), mode='L').save(path)
    else:
        buffer.to_image().save(path)
