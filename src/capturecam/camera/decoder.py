"""
Image Decoder
=============

Decoding and encoding between encoded image bytes and RGB(A) arrays.

Design Rules:
    - This is the ONLY place in the codebase that calls cv2.imdecode/imencode
    - Arrays handed to the pipeline are RGB or RGBA, never BGR
    - Fails fast on corrupt input with DecodeFailure
"""

import base64
import binascii
import logging

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class DecodeFailure(Exception):
    """Raised when an encoded image cannot be decoded."""
    pass


class EncodeFailure(Exception):
    """Raised when an array cannot be encoded."""
    pass


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode PNG/JPEG/WEBP bytes to an RGB or RGBA array.

    Args:
        data: Encoded image bytes

    Returns:
        np.ndarray (H, W, 3) RGB or (H, W, 4) RGBA, dtype=uint8

    Raises:
        DecodeFailure: If decoding fails or the image is invalid
    """
    if not data:
        raise DecodeFailure("Empty image data")

    nparr = np.frombuffer(data, np.uint8)
    try:
        decoded = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise DecodeFailure(f"cv2.imdecode failed: {e}") from e

    if decoded is None:
        raise DecodeFailure("cv2.imdecode returned None")

    if decoded.dtype != np.uint8:
        # 16-bit PNGs
        decoded = (decoded / 257).astype(np.uint8)

    if decoded.ndim == 2:
        return cv2.cvtColor(decoded, cv2.COLOR_GRAY2RGB)
    if decoded.ndim == 3 and decoded.shape[2] == 3:
        return cv2.cvtColor(decoded, cv2.COLOR_BGR2RGB)
    if decoded.ndim == 3 and decoded.shape[2] == 4:
        return cv2.cvtColor(decoded, cv2.COLOR_BGRA2RGBA)

    raise DecodeFailure(f"Invalid image shape: {decoded.shape}")


def decode_base64_image(image_b64: str) -> np.ndarray:
    """
    Decode a base64 string (optionally a data URL) to an RGB(A) array.

    Raises:
        DecodeFailure: If the base64 payload or the image is invalid
    """
    if image_b64.startswith("data:"):
        _, _, image_b64 = image_b64.partition(",")
    try:
        data = base64.b64decode(image_b64, validate=True)
    except binascii.Error as e:
        raise DecodeFailure(f"Base64 decode failed: {e}") from e
    return decode_image(data)


def encode_png(pixels: np.ndarray) -> bytes:
    """
    Encode an RGB(A) array as PNG.

    Raises:
        EncodeFailure: If OpenCV cannot encode the array
    """
    if pixels.ndim == 3 and pixels.shape[2] == 4:
        bgr = cv2.cvtColor(pixels, cv2.COLOR_RGBA2BGRA)
    elif pixels.ndim == 3 and pixels.shape[2] == 3:
        bgr = cv2.cvtColor(pixels, cv2.COLOR_RGB2BGR)
    else:
        raise EncodeFailure(f"Cannot encode array of shape {pixels.shape}")

    try:
        ok, buf = cv2.imencode(".png", bgr)
    except cv2.error as e:
        raise EncodeFailure(f"cv2.imencode failed: {e}") from e
    if not ok:
        raise EncodeFailure("cv2.imencode returned False")
    return buf.tobytes()
