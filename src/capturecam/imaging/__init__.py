"""
Imaging Module
==============

Fixed-size, fixed-ratio normalization of accepted stills.
"""

from capturecam.imaging.normalizer import (
    CropBox,
    FrameNormalizer,
    NormalizedArtifact,
    RenderingUnavailable,
)

__all__ = [
    "CropBox",
    "FrameNormalizer",
    "NormalizedArtifact",
    "RenderingUnavailable",
]
