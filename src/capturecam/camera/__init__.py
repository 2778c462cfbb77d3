"""
Camera Module
=============

Live video ingestion for CaptureCam.

This module provides:
    - Frame: Immutable RGB(A) bitmap passed to the quality pipeline
    - decode_image / encode_png: The only encode/decode boundary
    - FrameBuffer: Drop-oldest bounded queue
    - FrameConsumer: WebSocket client for remote camera streamers
    - VideoSource backends: mock, OpenCV device, WebSocket stream

Example:
    from capturecam.camera import MockVideoSource

    source = MockVideoSource()
    await source.start()
    frame = source.read_frame()
"""

from capturecam.camera.frame import Frame
from capturecam.camera.decoder import DecodeFailure, EncodeFailure, decode_image, encode_png
from capturecam.camera.buffer import FrameBuffer
from capturecam.camera.consumer import FrameConsumer, FrameConsumerMetrics
from capturecam.camera.source import (
    FrameUnavailable,
    MockVideoSource,
    OpenCVVideoSource,
    StreamVideoSource,
    VideoSource,
    create_video_source,
)


__all__ = [
    "Frame",
    "DecodeFailure",
    "EncodeFailure",
    "decode_image",
    "encode_png",
    "FrameBuffer",
    "FrameConsumer",
    "FrameConsumerMetrics",
    "FrameUnavailable",
    "VideoSource",
    "MockVideoSource",
    "OpenCVVideoSource",
    "StreamVideoSource",
    "create_video_source",
]
