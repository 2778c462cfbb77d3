"""
Test Configuration
==================

Pytest fixtures and synthetic images for CaptureCam.
"""

from typing import Optional

import numpy as np
import pytest

from capturecam.camera.decoder import encode_png
from capturecam.camera.frame import Frame


def solid(width: int, height: int, color=(128, 128, 128)) -> np.ndarray:
    """Uniform RGB image."""
    pixels = np.empty((height, width, 3), dtype=np.uint8)
    pixels[:] = color
    return pixels


def checkerboard(width: int, height: int, square: int = 8) -> np.ndarray:
    """Black/white RGB checkerboard."""
    ys, xs = np.indices((height, width))
    board = (((ys // square) + (xs // square)) % 2 * 255).astype(np.uint8)
    return np.repeat(board[:, :, None], 3, axis=2)


class StaticSource:
    """
    VideoSource returning the same frame every time.

    pixels=None simulates a camera that is not ready. still overrides
    what capture_still() returns.
    """

    def __init__(self, pixels: Optional[np.ndarray], still: Optional[bytes] = None) -> None:
        self.pixels = pixels
        self.still = still
        self.started = False
        self.reads = 0

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.started = False

    def read_frame(self) -> Optional[Frame]:
        self.reads += 1
        if self.pixels is None:
            return None
        return Frame(pixels=self.pixels.copy())

    def capture_still(self) -> Optional[bytes]:
        if self.still is not None:
            return self.still
        if self.pixels is None:
            return None
        return encode_png(self.pixels)

    def get_metrics(self) -> dict:
        return {"backend": "static", "reads": self.reads}


@pytest.fixture
def sharp_pixels() -> np.ndarray:
    """320x240 checkerboard; squares survive the 160px downscale."""
    return checkerboard(320, 240, square=8)


@pytest.fixture
def flat_pixels() -> np.ndarray:
    """Featureless mid-gray image (sharpness 0)."""
    return solid(320, 240, (128, 128, 128))


@pytest.fixture
def dark_pixels() -> np.ndarray:
    return solid(320, 240, (0, 0, 0))


@pytest.fixture
def sharp_png(sharp_pixels) -> bytes:
    return encode_png(sharp_pixels)


@pytest.fixture
def flat_png(flat_pixels) -> bytes:
    return encode_png(flat_pixels)
