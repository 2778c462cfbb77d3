"""
Frame Buffer
============

Bounded drop-oldest queue between a frame producer and the video source.

Design Rules:
    - Fixed maximum size; a put on a full buffer evicts the oldest frame
    - put() never blocks, so a slow reader cannot stall the stream
    - Readers normally only want the newest frame, see latest()
"""

import asyncio
import logging
from collections import deque
from typing import Deque, Optional

from capturecam.camera.frame import Frame


logger = logging.getLogger(__name__)


class FrameBuffer:
    """
    Bounded frame queue for a single event loop.

    Example:
        buffer = FrameBuffer(maxsize=8)

        # Producer
        buffer.put(frame)

        # Live preview wants only the freshest frame
        frame = buffer.latest()
    """

    def __init__(self, maxsize: int = 8) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._frames: Deque[Frame] = deque(maxlen=maxsize)
        self._available = asyncio.Event()
        self._dropped_count = 0
        self._total_put = 0

    @property
    def maxsize(self) -> int:
        return self._frames.maxlen

    @property
    def size(self) -> int:
        return len(self._frames)

    @property
    def dropped_count(self) -> int:
        """Frames evicted to make room."""
        return self._dropped_count

    def put(self, frame: Frame) -> bool:
        """
        Append a frame, evicting the oldest when full.

        Returns:
            True if nothing was evicted
        """
        self._total_put += 1
        evicting = len(self._frames) == self._frames.maxlen
        if evicting:
            self._dropped_count += 1
            logger.debug(f"Frame buffer full, evicted oldest (total {self._dropped_count})")

        self._frames.append(frame)
        self._available.set()
        return not evicting

    async def get(self, timeout: Optional[float] = None) -> Optional[Frame]:
        """
        Oldest buffered frame, waiting up to timeout seconds for one.

        Returns:
            The frame, or None on timeout
        """
        while not self._frames:
            self._available.clear()
            try:
                await asyncio.wait_for(self._available.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                return None
        return self._frames.popleft()

    def latest(self) -> Optional[Frame]:
        """Drain the buffer and return the newest frame, if any."""
        if not self._frames:
            return None
        newest = self._frames[-1]
        self._frames.clear()
        return newest

    def clear(self) -> int:
        """Discard all frames, returning how many there were."""
        count = len(self._frames)
        self._frames.clear()
        return count

    def metrics(self) -> dict:
        return {
            "size": self.size,
            "maxsize": self.maxsize,
            "dropped_count": self._dropped_count,
            "total_put": self._total_put,
        }
