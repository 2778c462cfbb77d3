"""
Camera Module Tests
===================

Frames, the decode boundary, the drop-oldest buffer, stream message
parsing and the mock source.
"""

import asyncio
import base64
import json

import numpy as np
import pytest

from capturecam.camera import (
    DecodeFailure,
    EncodeFailure,
    Frame,
    FrameBuffer,
    FrameConsumer,
    MockVideoSource,
    StreamVideoSource,
    create_video_source,
    decode_image,
    encode_png,
)
from capturecam.camera.decoder import decode_base64_image
from capturecam.capture import CaptureController
from capturecam.config import CameraConfig
from capturecam.models import CameraFrameMessage, CaptureState, ReasonCode

from conftest import checkerboard, solid


class TestFrame:
    """Tests for Frame validation."""

    def test_dimensions(self):
        frame = Frame(pixels=solid(64, 48))
        assert (frame.width, frame.height, frame.channels) == (64, 48, 3)
        assert "64x48x3" in repr(frame)

    def test_pixels_are_read_only(self):
        frame = Frame(pixels=solid(4, 4))
        with pytest.raises(ValueError):
            frame.pixels[0, 0] = 1

    @pytest.mark.parametrize(
        "pixels",
        [
            np.zeros((4, 4), dtype=np.uint8),
            np.zeros((4, 4, 2), dtype=np.uint8),
            np.zeros((4, 4, 3), dtype=np.float32),
            np.zeros((0, 4, 3), dtype=np.uint8),
        ],
    )
    def test_invalid_pixels(self, pixels):
        with pytest.raises(ValueError):
            Frame(pixels=pixels)


class TestDecoder:
    """Tests for the encode/decode boundary."""

    def test_png_round_trip_keeps_rgb_order(self):
        pixels = solid(8, 8, (255, 0, 0))
        decoded = decode_image(encode_png(pixels))
        assert np.array_equal(decoded, pixels)

    def test_rgba_round_trip(self):
        rgba = np.zeros((8, 8, 4), dtype=np.uint8)
        rgba[..., 1] = 200
        rgba[..., 3] = 128
        assert np.array_equal(decode_image(encode_png(rgba)), rgba)

    def test_garbage_raises(self):
        with pytest.raises(DecodeFailure):
            decode_image(b"not an image at all")

    def test_empty_raises(self):
        with pytest.raises(DecodeFailure):
            decode_image(b"")

    def test_data_url(self):
        data = base64.b64encode(encode_png(solid(4, 4))).decode("ascii")
        decoded = decode_base64_image(f"data:image/png;base64,{data}")
        assert decoded.shape == (4, 4, 3)

    def test_invalid_base64(self):
        with pytest.raises(DecodeFailure):
            decode_base64_image("!!!not-base64!!!")

    def test_encode_rejects_gray(self):
        with pytest.raises(EncodeFailure):
            encode_png(np.zeros((4, 4), dtype=np.uint8))


class TestFrameBuffer:
    """Tests for the drop-oldest buffer."""

    def test_drop_oldest(self):
        buffer = FrameBuffer(maxsize=2)
        frames = [Frame(pixels=solid(4, 4), timestamp=float(t)) for t in (1, 2, 3)]

        assert buffer.put(frames[0]) is True
        assert buffer.put(frames[1]) is True
        assert buffer.put(frames[2]) is False

        assert buffer.dropped_count == 1
        assert buffer.size == 2

    def test_latest_drains(self):
        buffer = FrameBuffer(maxsize=4)
        for t in (1, 2, 3):
            buffer.put(Frame(pixels=solid(4, 4), timestamp=float(t)))

        assert buffer.latest().timestamp == 3.0
        assert buffer.size == 0
        assert buffer.latest() is None

    def test_get_timeout(self):
        buffer = FrameBuffer()
        assert asyncio.run(buffer.get(timeout=0.01)) is None

    def test_metrics(self):
        buffer = FrameBuffer(maxsize=1)
        buffer.put(Frame(pixels=solid(4, 4)))
        buffer.put(Frame(pixels=solid(4, 4)))
        assert buffer.metrics() == {
            "size": 1,
            "maxsize": 1,
            "dropped_count": 1,
            "total_put": 2,
        }


class TestFrameConsumerParsing:
    """Tests for FrameConsumer.parse_message."""

    @pytest.fixture
    def consumer(self):
        return FrameConsumer(url="ws://localhost:9/ws/camera", buffer=FrameBuffer())

    def test_valid_message(self, consumer):
        image = base64.b64encode(encode_png(solid(16, 8))).decode("ascii")
        raw = json.dumps({"timestamp": 1707321234.5, "image": image})

        frame = consumer.parse_message(raw)

        assert frame.width == 16
        assert frame.timestamp == 1707321234.5

    def test_invalid_json(self, consumer):
        assert consumer.parse_message("{not json") is None
        assert consumer.metrics.parse_errors == 1

    def test_missing_field(self, consumer):
        assert consumer.parse_message(json.dumps({"timestamp": 1.0})) is None
        assert consumer.metrics.parse_errors == 1

    def test_undecodable_image(self, consumer):
        raw = json.dumps({
            "timestamp": 1.0,
            "image": base64.b64encode(b"junk").decode("ascii"),
        })
        assert consumer.parse_message(raw) is None
        assert consumer.metrics.decode_errors == 1

    def test_binary_message(self, consumer):
        frame = consumer.parse_message(encode_png(solid(12, 6)))
        assert (frame.width, frame.height) == (12, 6)
        assert frame.timestamp > 0

    def test_binary_garbage(self, consumer):
        assert consumer.parse_message(b"\x00\x01\x02") is None
        assert consumer.metrics.decode_errors == 1

    def test_out_of_order_counted(self, consumer):
        image = base64.b64encode(encode_png(solid(4, 4))).decode("ascii")
        consumer.metrics.last_timestamp = 100.0
        frame = consumer.parse_message(json.dumps({"timestamp": 50.0, "image": image}))
        assert frame is not None
        assert consumer.metrics.out_of_order == 1

    def test_metrics_dict(self, consumer):
        assert consumer.metrics.to_dict()["frames_received"] == 0

    def test_message_schema(self):
        message = CameraFrameMessage.model_validate({"timestamp": 2.0, "image": "abc"})
        assert message.image == "abc"


class TestMockVideoSource:
    """Tests for MockVideoSource."""

    def test_frame_shape(self):
        frame = MockVideoSource(width=320, height=240).read_frame()
        assert (frame.width, frame.height) == (320, 240)

    def test_warmup(self):
        source = MockVideoSource(warmup_frames=2)
        assert source.read_frame() is None
        assert source.read_frame() is None
        assert source.read_frame() is not None

    def test_exposure_zero_is_black(self):
        frame = MockVideoSource(exposure=0.0).read_frame()
        assert frame.pixels.max() == 0

    def test_capture_still_is_png(self):
        still = MockVideoSource(width=320, height=240).capture_still()
        assert still.startswith(b"\x89PNG")
        assert decode_image(still).shape == (240, 320, 3)

    def test_metrics(self):
        source = MockVideoSource()
        source.read_frame()
        assert source.get_metrics()["reads"] == 1


class TestSourceFactory:
    """Tests for create_video_source."""

    def test_mock(self):
        assert isinstance(create_video_source(CameraConfig(backend="mock")), MockVideoSource)

    def test_stream(self):
        source = create_video_source(CameraConfig(backend="stream", stream_url="ws://localhost:9/x"))
        assert isinstance(source, StreamVideoSource)
        assert source.read_frame() is None

    def test_stream_keeps_latest_frame(self):
        source = StreamVideoSource(url="ws://localhost:9/x")
        source.consumer._connected = True
        source.buffer.put(Frame(pixels=checkerboard(8, 8, square=2), timestamp=5.0))
        assert source.read_frame().timestamp == 5.0
        # Buffer drained, but the last frame is still served
        assert source.read_frame().timestamp == 5.0

    def test_stream_disconnected_serves_nothing(self):
        source = StreamVideoSource(url="ws://localhost:9/x")
        source.buffer.put(Frame(pixels=checkerboard(320, 240, square=8), timestamp=5.0))

        assert source.read_frame() is None
        assert source.capture_still() is None

        controller = CaptureController(source=source)
        assert controller.poll_once() is None
        result = asyncio.run(controller.capture())
        assert result.reason_code == ReasonCode.FRAME_UNAVAILABLE
        assert controller.state == CaptureState.LIVE

    def test_stream_stale_frame_expires(self):
        source = StreamVideoSource(url="ws://localhost:9/x", max_frame_age_ms=50)
        source.consumer._connected = True
        source.buffer.put(Frame(pixels=checkerboard(8, 8, square=2), timestamp=5.0))
        assert source.read_frame() is not None

        source._latest_at -= 1.0

        assert source.read_frame() is None
        assert source.get_metrics()["stale_reads"] == 1

    def test_stream_stop_discards_frame(self):
        source = StreamVideoSource(url="ws://localhost:9/x")
        source.consumer._connected = True
        source.buffer.put(Frame(pixels=checkerboard(8, 8, square=2)))
        assert source.read_frame() is not None

        asyncio.run(source.stop())
        source.consumer._connected = True

        assert source.read_frame() is None

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_video_source(CameraConfig(backend="firewire"))
