"""
Luminance
=========

Shared RGB → luminance conversion for brightness and sharpness scoring.

Formula:
    Y = 0.299 R + 0.587 G + 0.114 B

Alpha is ignored. Output is float64 so no rounding happens before the
final scalar comparison.
"""

import numpy as np


LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


def luminance(pixels: np.ndarray) -> np.ndarray:
    """
    Convert RGB(A) samples to a luminance plane.

    Args:
        pixels: (H, W, 3) or (H, W, 4) array

    Returns:
        (H, W) float64 luminance in [0, 255]
    """
    if pixels.ndim != 3 or pixels.shape[2] < 3:
        raise ValueError(f"Expected (H, W, 3|4) pixels, got {pixels.shape}")
    return pixels[..., :3].astype(np.float64) @ LUMA_WEIGHTS
