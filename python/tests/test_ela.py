"""Tests for error level analysis."""

import numpy as np
import pytest

from pixelprobe import load_image
from pixelprobe.ela import (
    ELA_CAVEATS,
    ELA_QUALITY,
    ErrorLevelAnalyzer,
    JpegReencoder,
    error_level_stats,
)
from pixelprobe.exceptions import ReencodeError
from pixelprobe.types import CheckStatus


class _IdentityReencoder:
    def reencode(self, image, quality):
        return np.array(image.pixels)


class _FailingReencoder:
    def reencode(self, image, quality):
        raise ReencodeError("encoder unavailable")


class _RecordingReencoder(JpegReencoder):
    def __init__(self):
        self.qualities = []

    def reencode(self, image, quality):
        self.qualities.append(quality)
        return super().reencode(image, quality)


class TestErrorLevelStats:
    def test_identical_buffers(self):
        a = np.full((4, 4, 4), 50, dtype=np.uint8)
        stats = error_level_stats(a, a.copy())
        assert stats['mean'] == 0.0
        assert stats['max'] == 0.0
        assert stats['std'] == 0.0

    def test_alpha_ignored(self):
        a = np.zeros((2, 2, 4), dtype=np.uint8)
        b = a.copy()
        b[..., 3] = 255
        b[0, 0, :3] = (30, 60, 90)
        stats = error_level_stats(a, b)
        assert stats['diff'][0, 0] == 60.0
        assert stats['max'] == 60.0
        assert stats['mean'] == 15.0

    def test_symmetry(self):
        rng = np.random.default_rng(11)
        a = rng.integers(0, 256, size=(16, 16, 4), dtype=np.uint8)
        b = rng.integers(0, 256, size=(16, 16, 4), dtype=np.uint8)
        ab = error_level_stats(a, b)
        ba = error_level_stats(b, a)
        np.testing.assert_array_equal(ab['diff'], ba['diff'])
        assert ab['mean'] == ba['mean']
        assert ab['max'] == ba['max']
        assert ab['std'] == ba['std']

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            error_level_stats(np.zeros((2, 2, 4)), np.zeros((2, 3, 4)))


class TestJpegReencoder:
    def test_roundtrip_shape(self, sample_jpeg_bytes):
        image = load_image(sample_jpeg_bytes, "a.jpg", "image/jpeg")
        out = JpegReencoder().reencode(image, 0.9)
        assert out.shape == image.pixels.shape
        assert out.dtype == np.uint8


class TestErrorLevelAnalyzer:
    def test_not_applicable_for_png(self, sample_png_bytes):
        image = load_image(sample_png_bytes, "a.png", "image/png")
        result = ErrorLevelAnalyzer().analyze(image)
        assert result.status == CheckStatus.INFO
        assert result.summary == "ELA not applicable (non-JPEG)"
        assert result.confidence == 0.3
        assert result.details["Format"] == "image/png"

    def test_jpeg_analysis(self, sample_jpeg_bytes):
        reencoder = _RecordingReencoder()
        image = load_image(sample_jpeg_bytes, "a.jpg", "image/jpeg")
        result = ErrorLevelAnalyzer(reencoder).analyze(image)
        assert reencoder.qualities == [ELA_QUALITY / 100]
        assert result.status in (CheckStatus.INFO, CheckStatus.WARN)
        assert result.confidence == 0.4
        assert result.details["Re-encode Quality"] == 90
        assert result.notes == ELA_CAVEATS
        assert result.overlay.shape == (96, 128, 4)

    def test_identity_round_trip_is_uniform(self, sample_jpeg_bytes):
        image = load_image(sample_jpeg_bytes, "a.jpg", "image/jpeg")
        result = ErrorLevelAnalyzer(_IdentityReencoder()).analyze(image)
        assert result.status == CheckStatus.INFO
        assert result.details["Max Difference"] == 0.0
        assert result.details["Variance"] == 0.0

    def test_reencode_failure_is_downgraded(self, sample_jpeg_bytes):
        image = load_image(sample_jpeg_bytes, "a.jpg", "image/jpeg")
        result = ErrorLevelAnalyzer(_FailingReencoder()).analyze(image)
        assert result.status == CheckStatus.INFO
        assert result.summary == "ELA analysis failed"
        assert result.confidence == 0.1
        assert "encoder unavailable" in result.details["Error"]

    def test_high_variance_warns(self, sample_jpeg_bytes):
        class _Inverting:
            def reencode(self, image, quality):
                out = np.array(image.pixels)
                out[: out.shape[0] // 2, :, :3] = 255 - out[: out.shape[0] // 2, :, :3]
                return out

        image = load_image(sample_jpeg_bytes, "a.jpg", "image/jpeg")
        result = ErrorLevelAnalyzer(_Inverting()).analyze(image)
        assert result.status == CheckStatus.WARN
        assert result.details["Variance"] > 20
