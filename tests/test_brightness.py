"""
Brightness Sampler Tests
========================

Mean-luminance sampling and the low-light gate.
"""

import numpy as np
import pytest

from capturecam.camera import Frame, FrameUnavailable, MockVideoSource
from capturecam.config import BrightnessConfig
from capturecam.quality import BrightnessSampler, luminance

from conftest import checkerboard, solid


class TestLuminance:
    """Tests for the Rec. 601 luma weighting."""

    def test_primary_weights(self):
        pixels = np.array([[[255, 0, 0], [0, 255, 0], [0, 0, 255]]], dtype=np.uint8)
        luma = luminance(pixels)
        assert luma[0, 0] == pytest.approx(0.299 * 255)
        assert luma[0, 1] == pytest.approx(0.587 * 255)
        assert luma[0, 2] == pytest.approx(0.114 * 255)

    def test_alpha_is_ignored(self):
        rgba = np.zeros((2, 2, 4), dtype=np.uint8)
        rgba[..., 3] = 255
        assert np.all(luminance(rgba) == 0.0)


class TestBrightnessSampler:
    """Tests for BrightnessSampler."""

    def test_black_frame_scores_zero(self):
        sampler = BrightnessSampler()
        assert sampler.sample(Frame(pixels=solid(640, 480, (0, 0, 0)))) == 0.0

    def test_white_frame_scores_255(self):
        sampler = BrightnessSampler()
        score = sampler.sample(Frame(pixels=solid(640, 480, (255, 255, 255))))
        assert score == pytest.approx(255.0)

    def test_score_is_resolution_independent(self):
        """Same content at two resolutions gives the same mean."""
        sampler = BrightnessSampler()
        small = sampler.sample(Frame(pixels=checkerboard(128, 96, square=16)))
        large = sampler.sample(Frame(pixels=checkerboard(1280, 960, square=160)))
        assert small == pytest.approx(127.5, abs=0.5)
        assert large == pytest.approx(127.5, abs=0.5)

    def test_missing_frame_raises(self):
        sampler = BrightnessSampler()
        with pytest.raises(FrameUnavailable):
            sampler.sample(None)

    def test_sample_count(self):
        sampler = BrightnessSampler()
        frame = Frame(pixels=solid(64, 48))
        sampler.sample(frame)
        sampler.sample(frame)
        assert sampler.sample_count == 2

    def test_floor_is_strict(self):
        sampler = BrightnessSampler(BrightnessConfig(floor=25))
        assert sampler.is_too_dark(24.9)
        assert not sampler.is_too_dark(25.0)

    @pytest.mark.parametrize(
        "brightness,label",
        [
            (None, "ready"),
            (0.0, "low-light"),
            (24.9, "low-light"),
            (25.0, "dim"),
            (79.9, "dim"),
            (80.0, "ready"),
            (255.0, "ready"),
        ],
    )
    def test_status_label(self, brightness, label):
        assert BrightnessSampler().status_label(brightness) == label


class TestMockSourceSampling:
    """Sampling frames read from the mock camera."""

    def test_mock_source_is_bright_enough(self):
        sampler = BrightnessSampler()
        score = sampler.sample(MockVideoSource().read_frame())
        assert score > sampler.config.floor

    def test_unexposed_mock_source_is_dark(self):
        sampler = BrightnessSampler()
        score = sampler.sample(MockVideoSource(exposure=0.0).read_frame())
        assert score == 0.0
        assert sampler.is_too_dark(score)

    def test_warming_up_source_raises(self):
        sampler = BrightnessSampler()
        with pytest.raises(FrameUnavailable):
            sampler.sample(MockVideoSource(warmup_frames=1).read_frame())
