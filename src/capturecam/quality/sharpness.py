"""
Sharpness Estimator
===================

Blur score for a captured still: variance of a 3x3 Laplacian response.

Algorithm:
    1. Decode the still and downscale to a fixed width (160 px default),
       height = round(h / w * width)
    2. Convert to luminance (0.299 R + 0.587 G + 0.114 B)
    3. Convolve [[0, 1, 0], [1, -4, 1], [0, 1, 0]] over interior pixels
       only, so the sample count is (w - 2)(h - 2)
    4. variance = mean(r²) - mean(r)²

Low variance means few edges, i.e. a blurry or featureless image. Only a
floor is enforced; arbitrarily sharp images always pass.
"""

import asyncio
import logging
import math
from typing import Optional

import cv2
import numpy as np

from capturecam.camera.decoder import decode_image
from capturecam.config import SharpnessConfig
from capturecam.quality.luminance import luminance


logger = logging.getLogger(__name__)


BLUR_MESSAGE = "Too blurry, hold your phone steady and try again"


class BlurRejected(Exception):
    """Raised when a still scores below the sharpness floor."""

    def __init__(self, score: float, floor: float) -> None:
        super().__init__(f"Sharpness {score:.2f} below floor {floor:.2f}")
        self.score = score
        self.floor = floor
        self.user_message = BLUR_MESSAGE


def laplacian_variance(gray: np.ndarray) -> float:
    """
    Variance of the 4-neighbour Laplacian over interior pixels.

    Args:
        gray: (H, W) luminance plane, float

    Returns:
        Variance >= 0; 0.0 when the plane has no interior pixels
    """
    if gray.ndim != 2:
        raise ValueError(f"Expected 2D luminance plane, got {gray.shape}")
    if gray.shape[0] < 3 or gray.shape[1] < 3:
        return 0.0

    g = gray.astype(np.float64, copy=False)
    response = (
        g[:-2, 1:-1]
        + g[1:-1, :-2]
        - 4.0 * g[1:-1, 1:-1]
        + g[1:-1, 2:]
        + g[2:, 1:-1]
    )

    mean = response.mean()
    variance = float((response * response).mean() - mean * mean)
    # mean(r²) - mean(r)² can dip just below zero in floating point
    return max(0.0, variance)


class SharpnessEstimator:
    """
    Compute SharpnessScore values for captured stills.

    Attributes:
        config: Sample width and blur floor
    """

    def __init__(self, config: Optional[SharpnessConfig] = None) -> None:
        self.config = config or SharpnessConfig()
        logger.info(
            f"SharpnessEstimator initialized: "
            f"sample_width={self.config.sample_width}, floor={self.config.floor}"
        )

    def sample_size(self, width: int, height: int) -> tuple:
        """Downscaled (width, height), height rounded half-up."""
        target_w = self.config.sample_width
        target_h = max(1, int(math.floor(height / width * target_w + 0.5)))
        return target_w, target_h

    def score(self, pixels: np.ndarray) -> float:
        """
        Score decoded RGB(A) pixels.

        Args:
            pixels: (H, W, 3|4) uint8 array

        Returns:
            Laplacian variance of the downscaled luminance
        """
        height, width = pixels.shape[:2]
        size = self.sample_size(width, height)

        if size != (width, height):
            pixels = cv2.resize(pixels, size, interpolation=cv2.INTER_AREA)

        return laplacian_variance(luminance(pixels))

    async def estimate(self, still: bytes) -> float:
        """
        Decode an encoded still and score it.

        Decoding and scoring run off the event loop.

        Raises:
            DecodeFailure: If the still cannot be decoded
        """
        pixels = await asyncio.to_thread(decode_image, still)
        score = await asyncio.to_thread(self.score, pixels)
        logger.debug(f"Sharpness score: {score:.2f}")
        return score

    def check(self, score: float) -> None:
        """
        Enforce the blur floor.

        Raises:
            BlurRejected: If score is below the floor
        """
        if score < self.config.floor:
            raise BlurRejected(score, self.config.floor)
