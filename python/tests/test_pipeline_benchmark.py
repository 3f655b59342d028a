"""
Scenario benchmark for the forensic pipeline.

Runs the full pipeline over programmatically generated images:
1. Clean captures (smooth natural-looking content, camera EXIF)
2. Manipulated images (copy-move edits, editor software tags, heavy recompression)

Goal: manipulated images must surface at least one warning-level signal,
while clean captures must not be flagged as suspicious.
"""

import io

import cv2
import numpy as np
import pytest
from PIL import Image

from pixelprobe import ForensicPipeline, OverallStatus
from pixelprobe.types import CheckStatus


# ---------------------------------------------------------------------------
# Helpers: generate clean / manipulated test images
# ---------------------------------------------------------------------------

def _encode_jpg(img_array: np.ndarray, quality: int = 92) -> bytes:
    """Encode a numpy BGR array to JPEG bytes."""
    ok, buf = cv2.imencode('.jpg', img_array, [cv2.IMWRITE_JPEG_QUALITY, quality])
    assert ok, "JPEG encoding failed"
    return buf.tobytes()


def _encode_png(img_array: np.ndarray) -> bytes:
    ok, buf = cv2.imencode('.png', img_array)
    assert ok, "PNG encoding failed"
    return buf.tobytes()


def _with_exif(jpeg: bytes, software: str = None) -> bytes:
    img = Image.open(io.BytesIO(jpeg))
    exif = Image.Exif()
    exif[0x010F] = "Canon"
    exif[0x0110] = "EOS 5D Mark IV"
    if software:
        exif[0x0131] = software
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=92, exif=exif)
    return buf.getvalue()


def generate_textured_scene(width: int = 384, height: int = 288, seed: int = 0) -> np.ndarray:
    """Smooth colour field with mild sensor-like noise."""
    rng = np.random.default_rng(seed)
    y, x = np.mgrid[0:height, 0:width].astype(np.float64)
    base = np.stack([
        120 + 60 * np.sin(x / 40.0),
        110 + 50 * np.cos(y / 35.0),
        100 + 40 * np.sin((x + y) / 55.0),
    ], axis=-1)
    noisy = base + rng.normal(0, 6, base.shape)
    return np.clip(noisy, 0, 255).astype(np.uint8)


def generate_copy_move(width: int = 384, height: int = 288) -> np.ndarray:
    """Noise-textured scene with several blocks duplicated far away."""
    rng = np.random.default_rng(42)
    img = rng.integers(0, 256, (height, width, 3), dtype=np.uint8)
    for i in range(12):
        sy, sx = 16 * (i % 3), 16 * (i // 3) * 2
        img[sy + 192:sy + 224, sx + 192:sx + 224] = img[sy:sy + 32, sx:sx + 32]
    return img


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def bench_pipeline():
    return ForensicPipeline(max_workers=2)


@pytest.fixture(scope="module")
def clean_capture():
    return _with_exif(_encode_jpg(generate_textured_scene()))


# ---------------------------------------------------------------------------
# Benchmarks
# ---------------------------------------------------------------------------


class TestCleanCaptures:
    def test_not_suspicious(self, bench_pipeline, clean_capture):
        report = bench_pipeline.analyze_bytes(clean_capture, "IMG_0001.jpg", "image/jpeg")
        assert report.overall_status != OverallStatus.SUSPICIOUS

    def test_camera_metadata_recognised(self, bench_pipeline, clean_capture):
        report = bench_pipeline.analyze_bytes(clean_capture, "IMG_0001.jpg", "image/jpeg")
        checks = {c.id: c for c in report.checks}
        assert checks["exif-presence"].status == CheckStatus.OK
        assert checks["editing-software"].status != CheckStatus.WARN


class TestManipulatedImages:
    def test_editor_tag_flagged(self, bench_pipeline):
        raw = _with_exif(_encode_jpg(generate_textured_scene(seed=1)), software="Adobe Photoshop CC")
        report = bench_pipeline.analyze_bytes(raw, "edited.jpg", "image/jpeg")
        assert report.overall_status in (OverallStatus.REVIEW, OverallStatus.SUSPICIOUS)

    def test_copy_move_flagged(self, bench_pipeline):
        raw = _encode_png(generate_copy_move())
        report = bench_pipeline.analyze_bytes(raw, "copy_move.png", "image/png")
        clone = {c.id: c for c in report.checks}["clone-detection"]
        assert clone.details["Matches Found"] > 10
        assert clone.status == CheckStatus.WARN

    def test_heavy_recompression_flagged(self, bench_pipeline):
        raw = _encode_jpg(generate_textured_scene(seed=2), quality=8)
        report = bench_pipeline.analyze_bytes(raw, "resaved.jpg", "image/jpeg")
        checks = {c.id: c for c in report.checks}
        assert checks["jpeg-quality"].status == CheckStatus.WARN
        assert report.overall_status != OverallStatus.CLEAN

    def test_renamed_file_flagged(self, bench_pipeline):
        raw = _encode_jpg(generate_textured_scene(seed=3))
        report = bench_pipeline.analyze_bytes(raw, "screenshot.png", "image/png")
        assert {c.id: c for c in report.checks}["file-type"].status == CheckStatus.WARN
