"""
Frame Normalizer
================

Center-crop a still to the output aspect ratio, then scale it to the
fixed output size (1024x585 by default) and encode as PNG.

Algorithm:
    R  = W / H,  Rs = src_w / src_h
    Rs > R  → crop width to src_h * R, centered horizontally
    Rs <= R → crop height to src_w / R, centered vertically
    Map the crop box onto W x H in a single affine step

The result is never letterboxed and never stretched beyond that one
crop-then-scale step. An input already at W x H maps through the
identity transform.
"""

import asyncio
import base64
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import cv2
import numpy as np

from capturecam.camera.decoder import EncodeFailure, decode_image, encode_png
from capturecam.config import OutputConfig


logger = logging.getLogger(__name__)


class RenderingUnavailable(Exception):
    """Raised when the normalized image cannot be rendered or encoded."""
    pass


@dataclass(frozen=True, slots=True)
class CropBox:
    """Source region (floats, pixels) that is scaled onto the output."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class NormalizedArtifact:
    """
    Fixed-size encoded image produced by the pipeline.

    Attributes:
        data: PNG bytes
        width: Output width (always the configured width)
        height: Output height (always the configured height)
        media_type: MIME type of data
        created_at: UNIX timestamp of normalization
    """

    data: bytes
    width: int
    height: int
    media_type: str = "image/png"
    created_at: float = field(default_factory=time.time)

    @property
    def size(self) -> int:
        return len(self.data)

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"

    def __repr__(self) -> str:
        return (
            f"NormalizedArtifact({self.width}x{self.height}, "
            f"{self.media_type}, {self.size} bytes)"
        )


class FrameNormalizer:
    """
    Produce NormalizedArtifacts of constant dimensions from any still.

    Attributes:
        config: Output width and height
    """

    def __init__(self, config: Optional[OutputConfig] = None) -> None:
        self.config = config or OutputConfig()
        logger.info(
            f"FrameNormalizer initialized: "
            f"{self.config.width}x{self.config.height} "
            f"(ratio {self.target_ratio:.4f})"
        )

    @property
    def target_ratio(self) -> float:
        return self.config.width / self.config.height

    def crop_box(self, src_w: int, src_h: int) -> CropBox:
        """
        Centered crop of the source matching the output aspect ratio.

        Ratios are compared by cross-multiplication so integer sizes
        never round the wrong way.
        """
        if src_w <= 0 or src_h <= 0:
            raise ValueError(f"Invalid source size {src_w}x{src_h}")

        out_w, out_h = self.config.width, self.config.height

        if src_w * out_h > src_h * out_w:
            # Source is wider: crop left/right
            crop_w = src_h * out_w / out_h
            return CropBox(x=(src_w - crop_w) / 2, y=0.0, width=crop_w, height=float(src_h))

        # Source is taller or equal: crop top/bottom
        crop_h = src_w * out_h / out_w
        return CropBox(x=0.0, y=(src_h - crop_h) / 2, width=float(src_w), height=crop_h)

    def render(self, pixels: np.ndarray) -> np.ndarray:
        """
        Crop and scale decoded pixels to the output size.

        Raises:
            RenderingUnavailable: If OpenCV cannot produce the output
        """
        src_h, src_w = pixels.shape[:2]
        box = self.crop_box(src_w, src_h)
        out_w, out_h = self.config.width, self.config.height

        scale_x = out_w / box.width
        scale_y = out_h / box.height

        # Pixel-center aligned: dst + 0.5 = s * (src + 0.5 - box_origin)
        matrix = np.array(
            [
                [scale_x, 0.0, scale_x * (0.5 - box.x) - 0.5],
                [0.0, scale_y, scale_y * (0.5 - box.y) - 0.5],
            ],
            dtype=np.float64,
        )

        try:
            rendered = cv2.warpAffine(
                pixels,
                matrix,
                (out_w, out_h),
                flags=cv2.INTER_LINEAR,
                borderMode=cv2.BORDER_REPLICATE,
            )
        except cv2.error as e:
            raise RenderingUnavailable(f"cv2.warpAffine failed: {e}") from e

        if rendered is None or rendered.shape[:2] != (out_h, out_w):
            raise RenderingUnavailable(f"Unexpected render output for {src_w}x{src_h} source")

        return rendered

    def normalize_pixels(self, pixels: np.ndarray) -> NormalizedArtifact:
        """
        Render and encode decoded pixels.

        Raises:
            RenderingUnavailable: If rendering or PNG encoding fails
        """
        rendered = self.render(pixels)
        try:
            data = encode_png(rendered)
        except EncodeFailure as e:
            raise RenderingUnavailable(str(e)) from e

        return NormalizedArtifact(
            data=data,
            width=self.config.width,
            height=self.config.height,
        )

    async def normalize(self, still: bytes) -> NormalizedArtifact:
        """
        Decode, crop, scale and encode a still off the event loop.

        Raises:
            DecodeFailure: If the still cannot be decoded
            RenderingUnavailable: If the artifact cannot be produced
        """
        pixels = await asyncio.to_thread(decode_image, still)
        artifact = await asyncio.to_thread(self.normalize_pixels, pixels)
        logger.info(
            f"Normalized {pixels.shape[1]}x{pixels.shape[0]} still to {artifact!r}"
        )
        return artifact
