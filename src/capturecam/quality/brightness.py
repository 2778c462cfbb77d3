"""
Brightness Sampler
==================

Mean luminance of a downsampled live frame.

The frame is shrunk to a small fixed grid (64x48 by default) before the
luminance pass so a poll costs the same regardless of camera resolution.
"""

import logging
from typing import Optional

import cv2

from capturecam.camera.frame import Frame
from capturecam.camera.source import FrameUnavailable
from capturecam.config import BrightnessConfig
from capturecam.quality.luminance import luminance


logger = logging.getLogger(__name__)


class BrightnessSampler:
    """
    Compute BrightnessScore values in [0, 255] from live frames.

    Attributes:
        config: Sample grid size and floors
    """

    def __init__(self, config: Optional[BrightnessConfig] = None) -> None:
        self.config = config or BrightnessConfig()
        self._sample_count: int = 0

        logger.info(
            f"BrightnessSampler initialized: "
            f"grid={self.config.sample_width}x{self.config.sample_height}, "
            f"floor={self.config.floor}"
        )

    def sample(self, frame: Optional[Frame]) -> float:
        """
        Mean luminance of the downsampled frame.

        Raises:
            FrameUnavailable: If no frame was provided
        """
        if frame is None:
            raise FrameUnavailable("No live frame available")

        small = cv2.resize(
            frame.pixels,
            (self.config.sample_width, self.config.sample_height),
            interpolation=cv2.INTER_AREA,
        )
        self._sample_count += 1
        # Weighted sums of 255 can land a hair above 255
        return min(255.0, float(luminance(small).mean()))

    def is_too_dark(self, brightness: float) -> bool:
        return brightness < self.config.floor

    def status_label(self, brightness: Optional[float]) -> str:
        """UI label: 'low-light' below the floor, 'dim' below dim_below, else 'ready'."""
        if brightness is None:
            return "ready"
        if self.is_too_dark(brightness):
            return "low-light"
        if brightness < self.config.dim_below:
            return "dim"
        return "ready"

    @property
    def sample_count(self) -> int:
        return self._sample_count
