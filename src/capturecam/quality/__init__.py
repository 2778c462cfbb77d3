"""
Quality Module
==============

Frame-quality gates for the capture pipeline.

Components:
    - BrightnessSampler: Mean luminance of live frames (floor-only gate)
    - SharpnessEstimator: Laplacian-variance blur score of stills (floor-only gate)
"""

from capturecam.quality.luminance import LUMA_WEIGHTS, luminance
from capturecam.quality.brightness import BrightnessSampler
from capturecam.quality.sharpness import (
    BLUR_MESSAGE,
    BlurRejected,
    SharpnessEstimator,
    laplacian_variance,
)

__all__ = [
    "LUMA_WEIGHTS",
    "luminance",
    "BrightnessSampler",
    "SharpnessEstimator",
    "BlurRejected",
    "BLUR_MESSAGE",
    "laplacian_variance",
]
