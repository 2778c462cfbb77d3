"""
Frame Consumer
==============

WebSocket client for camera frames pushed by a remote streamer
(phone browser relay, IP camera bridge).

Accepted messages:
    - Text: CameraFrameMessage JSON with a base64 image
    - Binary: a raw encoded PNG/JPEG/WEBP image, stamped on arrival

Design Rules:
    - Corrupt messages are counted and skipped, never fatal
    - Reconnects with a fixed backoff until stopped or out of attempts
    - Decoded frames go into a drop-oldest FrameBuffer
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from typing import Optional, Union

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, InvalidHandshake

from capturecam.camera.buffer import FrameBuffer
from capturecam.camera.decoder import DecodeFailure, decode_base64_image, decode_image
from capturecam.camera.frame import Frame
from capturecam.models.input import CameraFrameMessage


logger = logging.getLogger(__name__)


# Errors after which the stream is worth reconnecting to
RECONNECTABLE_ERRORS = (OSError, asyncio.TimeoutError, ConnectionClosed, InvalidHandshake)

MAX_MESSAGE_BYTES = 16 * 1024 * 1024


@dataclass(slots=True)
class FrameConsumerMetrics:
    """Counters for the /metrics endpoint."""

    frames_received: int = 0
    reconnect_count: int = 0
    last_timestamp: float = 0.0
    parse_errors: int = 0
    decode_errors: int = 0
    out_of_order: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class FrameConsumer:
    """
    Feeds a FrameBuffer from a camera WebSocket.

    Example:
        buffer = FrameBuffer(maxsize=8)
        consumer = FrameConsumer(url="ws://phone.local:8000/ws/camera", buffer=buffer)

        task = asyncio.create_task(consumer.run())
        ...
        await consumer.stop()
        await task
    """

    def __init__(
        self,
        url: str,
        buffer: FrameBuffer,
        reconnect_backoff_ms: int = 500,
        max_reconnect_attempts: int = 0,
    ) -> None:
        """
        Args:
            url: WebSocket URL of the camera streamer
            buffer: FrameBuffer receiving decoded frames
            reconnect_backoff_ms: Wait between reconnect attempts
            max_reconnect_attempts: Give up after this many (0 = never)
        """
        self.url = url
        self.buffer = buffer
        self.reconnect_backoff_ms = reconnect_backoff_ms
        self.max_reconnect_attempts = max_reconnect_attempts

        self.metrics = FrameConsumerMetrics()

        self._websocket = None
        self._connected = False
        self._running = False
        self._stop_event = asyncio.Event()

    @property
    def connected(self) -> bool:
        return self._connected

    async def run(self) -> None:
        """Consume until stop() is called or reconnect attempts run out."""
        self._running = True
        self._stop_event.clear()
        logger.info(f"Camera stream consumer connecting to {self.url}")

        while self._running:
            try:
                await self._consume_connection()
            except RECONNECTABLE_ERRORS as e:
                self._connected = False
                if not self._running:
                    break
                logger.error(f"Camera stream connection error: {e}")
                if not await self._backoff():
                    break

        logger.info("Camera stream consumer stopped")

    async def _backoff(self) -> bool:
        """
        Wait before the next reconnect.

        Returns:
            False if the consumer should give up instead
        """
        attempts = self.metrics.reconnect_count
        if 0 < self.max_reconnect_attempts <= attempts:
            logger.error(f"Giving up after {attempts} reconnect attempts")
            return False

        self.metrics.reconnect_count += 1
        delay = self.reconnect_backoff_ms / 1000.0
        logger.info(f"Reconnect #{self.metrics.reconnect_count} in {delay:.1f}s")

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        # stop() was called during the wait
        return False

    async def stop(self) -> None:
        """Exit the run loop and close any open connection."""
        self._running = False
        self._stop_event.set()

        websocket = self._websocket
        if websocket is not None:
            await websocket.close()
        self._connected = False

    async def _consume_connection(self) -> None:
        async with websockets.connect(
            self.url,
            ping_interval=20,
            ping_timeout=10,
            close_timeout=5,
            max_size=MAX_MESSAGE_BYTES,
        ) as ws:
            self._websocket = ws
            self._connected = True
            logger.info(f"Camera stream connected: {self.url}")

            try:
                async for raw in ws:
                    if not self._running:
                        break
                    self._accept(self.parse_message(raw))
            except ConnectionClosedOK:
                logger.info("Camera stream closed by peer")
            finally:
                self._connected = False
                self._websocket = None

    def _accept(self, frame: Optional[Frame]) -> None:
        if frame is None:
            return
        self.buffer.put(frame)
        self.metrics.frames_received += 1
        self.metrics.last_timestamp = frame.timestamp

    def parse_message(self, raw: Union[str, bytes]) -> Optional[Frame]:
        """
        Turn one WebSocket message into a Frame.

        Returns:
            Decoded Frame, or None if the message was rejected
        """
        if isinstance(raw, (bytes, bytearray)):
            return self._parse_binary(bytes(raw))

        try:
            message = CameraFrameMessage.model_validate_json(raw)
        except ValidationError as e:
            self.metrics.parse_errors += 1
            logger.error(f"Invalid camera frame message: {e.error_count()} errors")
            return None

        try:
            pixels = decode_base64_image(message.image)
        except DecodeFailure as e:
            self.metrics.decode_errors += 1
            logger.error(f"Camera frame decode failed: {e}")
            return None

        if message.timestamp < self.metrics.last_timestamp:
            self.metrics.out_of_order += 1
            logger.warning(
                f"Out-of-order camera frame: {message.timestamp:.3f} "
                f"after {self.metrics.last_timestamp:.3f}"
            )

        return Frame(pixels=pixels, timestamp=message.timestamp)

    def _parse_binary(self, data: bytes) -> Optional[Frame]:
        try:
            pixels = decode_image(data)
        except DecodeFailure as e:
            self.metrics.decode_errors += 1
            logger.error(f"Binary camera frame decode failed: {e}")
            return None
        return Frame(pixels=pixels, timestamp=time.time())
