"""
Frame Data Model
=================

In-memory bitmap passed between the camera and the quality pipeline.

Design Rules:
    - Pixels are RGB (H, W, 3) or RGBA (H, W, 4), dtype uint8
    - The pixel buffer is made read-only on construction
    - Stages derive new arrays or scalars, never write back into a frame
"""

import time
from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Single frame from a live video source.

    Attributes:
        pixels: RGB or RGBA samples, shape (H, W, C), dtype uint8
        timestamp: UNIX timestamp when the frame was read
    """

    pixels: np.ndarray
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        """Validate shape and freeze the pixel buffer."""
        if self.pixels.ndim != 3 or self.pixels.shape[2] not in (3, 4):
            raise ValueError(f"Frame pixels must be (H, W, 3|4), got {self.pixels.shape}")
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Frame pixels must be uint8, got {self.pixels.dtype}")
        if self.pixels.shape[0] == 0 or self.pixels.shape[1] == 0:
            raise ValueError("Frame must have non-zero width and height")
        self.pixels.setflags(write=False)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def channels(self) -> int:
        return int(self.pixels.shape[2])

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixels."""
        return (
            f"Frame({self.width}x{self.height}x{self.channels}, "
            f"timestamp={self.timestamp:.3f})"
        )
