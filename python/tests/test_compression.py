"""Tests for the compression analyzer."""

import numpy as np
import pytest

from pixelprobe import load_image
from pixelprobe.compression import (
    CompressionAnalyzer,
    estimate_jpeg_quality,
    quality_from_dc_coefficient,
    quality_level,
)
from pixelprobe.types import CheckStatus

from conftest import encode


def _dqt_stream(q0, padding=100):
    """SOI + one 8-bit DQT segment whose DC coefficient is q0."""
    segment = b"\xff\xdb\x00\x43\x00" + bytes([q0]) + b"\x01" * 63
    return b"\xff\xd8" + segment + b"\x00" * padding


@pytest.fixture()
def analyzer():
    return CompressionAnalyzer()


class TestQualityEstimate:
    @pytest.mark.parametrize("q0,expected", [
        (1, 98),
        (2, 96),
        (5, 90),
        (10, 100),
        (40, 100),
        (60, 80),
        (90, 20),
        (120, 1),
    ])
    def test_dc_mapping(self, q0, expected):
        assert quality_from_dc_coefficient(q0) == expected

    def test_always_in_range(self):
        for q0 in range(1, 256):
            assert 1 <= quality_from_dc_coefficient(q0) <= 100

    def test_synthetic_stream(self):
        assert estimate_jpeg_quality(_dqt_stream(8)) == 84

    def test_zero_dc_skipped(self):
        assert estimate_jpeg_quality(_dqt_stream(0)) is None

    def test_marker_too_close_to_end(self):
        assert estimate_jpeg_quality(_dqt_stream(8, padding=0)) is None

    def test_no_marker(self):
        assert estimate_jpeg_quality(b"\xff\xd8" + b"\x00" * 200) is None

    @pytest.mark.parametrize("quality", [30, 75, 95])
    def test_pillow_jpegs_in_range(self, gradient_rgb, quality):
        estimate = estimate_jpeg_quality(encode(gradient_rgb, "JPEG", quality=quality))
        assert estimate is not None
        assert 1 <= estimate <= 100

    @pytest.mark.parametrize("quality,level", [(95, "High"), (80, "Good"), (60, "Medium"), (20, "Low")])
    def test_levels(self, quality, level):
        assert quality_level(quality) == level


class TestJpegQualityCheck:
    def test_gray_q95(self, analyzer, gray_jpeg_q95):
        image = load_image(gray_jpeg_q95, "gray.jpg", "image/jpeg")
        result = analyzer.check_jpeg_quality(image)
        assert result.status == CheckStatus.INFO
        assert result.details["Quality Estimate"] == 96
        assert result.details["Quality Level"] == "High"
        assert result.summary == "Estimated quality: 96%"

    def test_low_quality_warns(self, analyzer, gradient_rgb):
        image = load_image(encode(gradient_rgb, "JPEG", quality=10), "low.jpg", "image/jpeg")
        result = analyzer.check_jpeg_quality(image)
        assert result.status == CheckStatus.WARN
        assert result.details["Quality Estimate"] == 40

    def test_skipped_for_png(self, analyzer, sample_png_bytes):
        image = load_image(sample_png_bytes, "a.png", "image/png")
        assert analyzer.check_jpeg_quality(image) is None
        assert analyzer.check_double_compression(image) is None
        assert [r.id for r in analyzer.analyze(image)] == ["uniform-areas"]

    def test_analyze_order_for_jpeg(self, analyzer, sample_jpeg_bytes):
        image = load_image(sample_jpeg_bytes, "a.jpg", "image/jpeg")
        ids = [r.id for r in analyzer.analyze(image)]
        assert ids == ["jpeg-quality", "double-compression", "uniform-areas"]


class TestDoubleCompression:
    def test_flat_image_has_no_boundaries(self):
        assert CompressionAnalyzer.block_boundary_strength(np.full((64, 64), 90.0)) == 0.0

    def test_too_small(self):
        assert CompressionAnalyzer.block_boundary_strength(np.zeros((8, 64))) == 0.0

    def test_strength_in_range(self):
        rng = np.random.default_rng(7)
        strength = CompressionAnalyzer.block_boundary_strength(rng.random((64, 64)) * 255)
        assert 0.0 <= strength <= 1.0

    def test_grid_pattern_is_strong(self):
        rng = np.random.default_rng(3)
        gray = rng.random((64, 64)) * 2
        gray[::8, :] += 100
        gray[:, ::8] += 100
        assert CompressionAnalyzer.block_boundary_strength(gray) == 1.0

    def test_result_shape(self, analyzer, sample_jpeg_bytes):
        image = load_image(sample_jpeg_bytes, "a.jpg", "image/jpeg")
        result = analyzer.check_double_compression(image)
        assert result.name == "Compression Artifacts (Experimental)"
        assert result.status in (CheckStatus.INFO, CheckStatus.WARN)
        assert 0.0 <= result.details["Block Boundary Strength"] <= 1.0


class TestUniformAreas:
    def test_gray_q95_is_uniform(self, analyzer, gray_jpeg_q95):
        image = load_image(gray_jpeg_q95, "gray.jpg", "image/jpeg")
        result = analyzer.check_uniform_areas(image)
        assert result.status == CheckStatus.WARN
        assert result.details["Blocks Analyzed"] == 9
        assert result.details["Uniform Ratio"] == 1.0
        assert result.overlay.shape == (50, 50, 4)

    def test_noise_is_textured(self, analyzer, noise_image):
        result = analyzer.check_uniform_areas(noise_image)
        assert result.status == CheckStatus.OK
        assert result.details["Uniform Ratio"] == 0.0

    def test_too_small_for_blocks(self, analyzer):
        analysis = analyzer.analyze_uniformity(np.zeros((20, 20)))
        assert analysis == {'uniform_ratio': 0.0, 'total_blocks': 0, 'uniform_map': None}

    def test_overlay_colours(self):
        overlay = CompressionAnalyzer.uniform_areas_overlay(40, 40, np.array([[1.0, 0.0], [0.0, 1.0]]))
        assert overlay[0, 0].tolist() == [255, 0, 0, 200]
        assert overlay[0, 20].tolist() == [0, 128, 255, 0]
        # remainder outside the block grid stays transparent
        assert overlay[35, 35].tolist() == [0, 0, 0, 0]
