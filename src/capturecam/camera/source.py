"""
Video Sources
=============

Live camera abstraction consumed by the capture controller.

Components:
    - VideoSource: Protocol every backend implements
    - MockVideoSource: Deterministic synthetic business-card frames
    - OpenCVVideoSource: Local device via cv2.VideoCapture
    - StreamVideoSource: Remote streamer via FrameConsumer + FrameBuffer

Design Rules:
    - read_frame() returns None while the source is not ready; callers skip
    - capture_still() returns an encoded PNG of the current frame
    - The controller owns the source for its whole lifetime
"""

import asyncio
import logging
import math
import time
from typing import Optional, Protocol

import cv2
import numpy as np

from capturecam.camera.buffer import FrameBuffer
from capturecam.camera.consumer import FrameConsumer
from capturecam.camera.decoder import encode_png
from capturecam.camera.frame import Frame
from capturecam.config import CameraConfig


logger = logging.getLogger(__name__)


class FrameUnavailable(Exception):
    """Raised when the live source has no frame ready yet."""
    pass


class VideoSource(Protocol):
    """
    Protocol for live video backends.

    Implemented by:
        - MockVideoSource (tests, demos)
        - OpenCVVideoSource (USB / built-in cameras)
        - StreamVideoSource (frames pushed over WebSocket)
    """

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    def read_frame(self) -> Optional[Frame]:
        """Return the current frame, or None if not ready."""
        ...

    def capture_still(self) -> Optional[bytes]:
        """Return the current frame encoded as PNG, or None if not ready."""
        ...

    def get_metrics(self) -> dict:
        ...


class _StillMixin:
    """capture_still() in terms of read_frame()."""

    def capture_still(self) -> Optional[bytes]:
        frame = self.read_frame()
        if frame is None:
            return None
        return encode_png(frame.pixels)


class MockVideoSource(_StillMixin):
    """
    Deterministic mock camera.

    Renders a light business card with dark text bars on a mid-gray desk.
    A slow sinusoidal exposure drift keeps brightness samples moving
    without ever changing the structure of the frame.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        exposure: Multiplier applied to every sample (0 = black)
        warmup_frames: Number of initial reads that return None
    """

    def __init__(
        self,
        width: int = 640,
        height: int = 480,
        exposure: float = 1.0,
        warmup_frames: int = 0,
        drift_amplitude: float = 4.0,
        drift_period: int = 40,
    ) -> None:
        self.width = width
        self.height = height
        self.exposure = exposure
        self.warmup_frames = warmup_frames
        self.drift_amplitude = drift_amplitude
        self.drift_period = drift_period

        self._template = self._render_card(width, height)
        self._read_count: int = 0

        logger.info(
            f"MockVideoSource initialized: {width}x{height}, exposure={exposure}"
        )

    @staticmethod
    def _render_card(width: int, height: int) -> np.ndarray:
        """Draw the static card scene as float32 RGB."""
        scene = np.full((height, width, 3), 96.0, dtype=np.float32)

        card_w = int(width * 0.7)
        card_h = int(card_w / 1.75)
        x0 = (width - card_w) // 2
        y0 = (height - card_h) // 2
        scene[y0:y0 + card_h, x0:x0 + card_w] = (236.0, 234.0, 228.0)

        # Name line, then three shorter detail lines
        bar_h = max(2, card_h // 14)
        lines = [(0.18, 0.55), (0.42, 0.40), (0.56, 0.45), (0.70, 0.35)]
        for top_frac, len_frac in lines:
            ty = y0 + int(card_h * top_frac)
            tx = x0 + int(card_w * 0.08)
            scene[ty:ty + bar_h, tx:tx + int(card_w * len_frac)] = (30.0, 32.0, 40.0)

        return scene

    async def start(self) -> None:
        self._read_count = 0

    async def stop(self) -> None:
        pass

    def read_frame(self) -> Optional[Frame]:
        self._read_count += 1
        if self._read_count <= self.warmup_frames:
            return None

        phase = (2 * math.pi * self._read_count) / self.drift_period
        drift = self.drift_amplitude * math.sin(phase)

        pixels = np.clip(self._template * self.exposure + drift * self.exposure, 0, 255)
        return Frame(pixels=pixels.astype(np.uint8))

    def get_metrics(self) -> dict:
        return {
            "backend": "mock",
            "reads": self._read_count,
            "exposure": self.exposure,
        }


class OpenCVVideoSource(_StillMixin):
    """
    Local camera through cv2.VideoCapture.

    The device is opened in start() off the event loop, because
    VideoCapture construction can block for a second or more.
    """

    def __init__(self, device_index: int = 0, width: int = 1920, height: int = 1080) -> None:
        self.device_index = device_index
        self.requested_width = width
        self.requested_height = height

        self._capture: Optional[cv2.VideoCapture] = None
        self._read_count: int = 0
        self._failed_reads: int = 0

        logger.info(f"OpenCVVideoSource created for device {device_index}")

    async def start(self) -> None:
        self._capture = await asyncio.to_thread(self._open)

    def _open(self) -> cv2.VideoCapture:
        capture = cv2.VideoCapture(self.device_index)
        if not capture.isOpened():
            logger.error(f"Camera device {self.device_index} could not be opened")
            return capture

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.requested_width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.requested_height)
        capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        logger.info(
            f"Camera opened: "
            f"{int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))}x"
            f"{int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))}"
        )
        return capture

    async def stop(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info("Camera released")

    def read_frame(self) -> Optional[Frame]:
        if self._capture is None or not self._capture.isOpened():
            return None

        self._read_count += 1
        ok, bgr = self._capture.read()
        if not ok or bgr is None:
            self._failed_reads += 1
            return None

        return Frame(pixels=cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB))

    def get_metrics(self) -> dict:
        return {
            "backend": "opencv",
            "device_index": self.device_index,
            "opened": bool(self._capture is not None and self._capture.isOpened()),
            "reads": self._read_count,
            "failed_reads": self._failed_reads,
        }


class StreamVideoSource(_StillMixin):
    """
    Camera frames pushed by a remote streamer over WebSocket.

    The FrameConsumer fills a drop-oldest FrameBuffer; read_frame()
    drains it and keeps the newest frame so a slow poller always sees
    the freshest image. The kept frame is only served while the stream
    is connected and for at most max_frame_age_ms after it arrived.
    """

    def __init__(
        self,
        url: str,
        reconnect_backoff_ms: int = 500,
        max_queue_size: int = 8,
        max_frame_age_ms: int = 2000,
    ) -> None:
        self.buffer = FrameBuffer(maxsize=max_queue_size)
        self.consumer = FrameConsumer(
            url=url,
            buffer=self.buffer,
            reconnect_backoff_ms=reconnect_backoff_ms,
        )
        self.max_frame_age = max_frame_age_ms / 1000.0
        self._task: Optional[asyncio.Task] = None
        self._latest: Optional[Frame] = None
        self._latest_at: float = 0.0
        self._stale_reads: int = 0

    async def start(self) -> None:
        self._task = asyncio.create_task(self.consumer.run(), name="camera_stream")

    async def stop(self) -> None:
        await self.consumer.stop()
        if self._task is not None:
            try:
                await asyncio.wait_for(self._task, timeout=5.0)
            except asyncio.TimeoutError:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
            self._task = None
        self._latest = None
        self.buffer.clear()

    def read_frame(self) -> Optional[Frame]:
        newest = self.buffer.latest()
        if newest is not None:
            self._latest = newest
            # Arrival time, not the sender's clock
            self._latest_at = time.monotonic()

        if self._latest is None:
            return None
        if not self.consumer.connected:
            return None
        if time.monotonic() - self._latest_at > self.max_frame_age:
            self._stale_reads += 1
            return None
        return self._latest

    def get_metrics(self) -> dict:
        return {
            "backend": "stream",
            "connected": self.consumer.connected,
            "stale_reads": self._stale_reads,
            **self.consumer.metrics.to_dict(),
            "buffer": self.buffer.metrics(),
        }


def create_video_source(config: CameraConfig) -> VideoSource:
    """
    Create the video source selected in config.

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = config.backend

    if backend == "mock":
        logger.info("Using MockVideoSource")
        return MockVideoSource()

    if backend == "opencv":
        logger.info(f"Using OpenCVVideoSource: device={config.device_index}")
        return OpenCVVideoSource(
            device_index=config.device_index,
            width=config.width,
            height=config.height,
        )

    if backend == "stream":
        logger.info(f"Using StreamVideoSource: url={config.stream_url}")
        return StreamVideoSource(
            url=config.stream_url,
            reconnect_backoff_ms=config.reconnect_backoff_ms,
            max_queue_size=config.max_queue_size,
            max_frame_age_ms=config.max_frame_age_ms,
        )

    raise ValueError(f"Unknown camera backend: {backend}")
