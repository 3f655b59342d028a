"""
Compression and encoding checks.

1. JPEG quality estimate from the quantization tables (DQT segment)
2. Double compression hint from 8x8 block boundaries (experimental)
3. Uniform area analysis over 16x16 blocks
"""
import logging
import math
from typing import Dict, List, Optional

import numpy as np

from .sniffer import JPEG
from .types import CheckResult, CheckStatus, ImageBuffer
from .utils import mean, to_grayscale

logger = logging.getLogger(__name__)

DQT_MARKER = b"\xff\xdb"
# Marker (2) + length (2) + Pq/Tq (1) + 64 coefficients; the scan stops this
# far from the end of the buffer.
DQT_SCAN_MARGIN = 70
MIN_DQT_LENGTH = 67

JPEG_BLOCK = 8
UNIFORM_BLOCK = 16


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def quality_from_dc_coefficient(q0: int) -> int:
    """Map the DC quantization coefficient to an approximate quality percentage."""
    if q0 < 2:
        quality = 98
    elif q0 < 10:
        quality = 100 - q0 * 2
    elif q0 < 50:
        quality = _round_half_up(5000 / q0)
    else:
        quality = 200 - q0 * 2
    return max(1, min(100, quality))


def estimate_jpeg_quality(raw: bytes) -> Optional[int]:
    """Estimate JPEG quality from the first usable luminance quantization table.

    Returns:
        Quality in [1, 100], or None when no DQT segment holding a standard
        8x8 table with a non-zero DC coefficient is found.
    """
    limit = len(raw) - DQT_SCAN_MARGIN
    pos = raw.find(DQT_MARKER, 0)
    while 0 <= pos < limit:
        length = (raw[pos + 2] << 8) | raw[pos + 3]
        if length >= MIN_DQT_LENGTH:
            # Skip marker, length and the precision/table-id byte
            q0 = raw[pos + 5]
            if q0 != 0:
                return quality_from_dc_coefficient(q0)
        pos = raw.find(DQT_MARKER, pos + 1)
    return None


def quality_level(quality: int) -> str:
    if quality >= 90:
        return "High"
    if quality >= 75:
        return "Good"
    if quality >= 50:
        return "Medium"
    return "Low"


class CompressionAnalyzer:
    """Compression artifact checks over the raw stream and decoded pixels."""

    THRESHOLDS = {
        'quality_low': 50,
        'quality_medium': 75,
        'quality_good': 90,
        'boundary_strong': 0.7,
        'boundary_moderate': 0.4,
        'uniform_block_std': 3.0,
        'uniform_ratio_warn': 0.3,
        'uniform_ratio_info': 0.1,
    }

    def analyze(self, image: ImageBuffer) -> List[CheckResult]:
        """Run every compression check that applies to the image, in order."""
        results = []
        for check in (self.check_jpeg_quality, self.check_double_compression):
            result = check(image)
            if result is not None:
                results.append(result)
        results.append(self.check_uniform_areas(image))
        return results

    def check_jpeg_quality(self, image: ImageBuffer) -> Optional[CheckResult]:
        if image.detected_mime != JPEG:
            return None

        quality = estimate_jpeg_quality(image.raw_bytes)
        if quality is None:
            logger.debug(f"{image.filename}: no usable DQT segment")
            return CheckResult(
                id="jpeg-quality",
                name="JPEG Quality Analysis",
                status=CheckStatus.INFO,
                summary="Could not determine JPEG quality",
                details={"Format": "JPEG", "Quality Estimate": None},
                confidence=0.3,
                notes="Unable to extract quantization tables from this JPEG file.",
            )

        status = CheckStatus.INFO
        if quality < self.THRESHOLDS['quality_low']:
            status = CheckStatus.WARN
            notes = ("Low quality JPEG. Heavy compression may obscure forensic analysis "
                     "and suggests multiple resaves.")
        elif quality < self.THRESHOLDS['quality_medium']:
            notes = "Medium quality JPEG. Some compression artifacts may be present."
        elif quality < self.THRESHOLDS['quality_good']:
            notes = "Good quality JPEG. Minimal compression artifacts expected."
        else:
            notes = "High quality JPEG. Very little compression artifact expected."

        return CheckResult(
            id="jpeg-quality",
            name="JPEG Quality Analysis",
            status=status,
            summary=f"Estimated quality: {quality}%",
            details={
                "Format": "JPEG",
                "Quality Estimate": quality,
                "Quality Level": quality_level(quality),
            },
            confidence=0.6,
            notes=notes,
        )

    def check_double_compression(self, image: ImageBuffer) -> Optional[CheckResult]:
        """Experimental: pronounced 8x8 block boundaries hint at recompression."""
        if image.detected_mime != JPEG:
            return None

        strength = self.block_boundary_strength(to_grayscale(image.pixels))

        status = CheckStatus.INFO
        if strength > self.THRESHOLDS['boundary_strong']:
            status = CheckStatus.WARN
            summary = "Strong block boundary artifacts detected"
            notes = ("EXPERIMENTAL: Pronounced 8×8 block boundaries may indicate double "
                     "JPEG compression or heavy editing. However, this can also occur in "
                     "low-quality JPEGs or after certain processing operations. Use with "
                     "caution.")
        elif strength > self.THRESHOLDS['boundary_moderate']:
            summary = "Moderate block boundaries present"
            notes = ("Some JPEG block boundaries are visible, which is normal for JPEG "
                     "compression. May indicate moderate compression quality.")
        else:
            summary = "Block boundaries within normal range"
            notes = ("JPEG block boundaries are minimal, suggesting either high quality "
                     "compression or non-JPEG source.")

        return CheckResult(
            id="double-compression",
            name="Compression Artifacts (Experimental)",
            status=status,
            summary=summary,
            details={
                "Block Boundary Strength": round(strength, 3),
                "Analysis Type": "8×8 DCT Block Analysis",
            },
            confidence=0.4,
            notes=notes,
        )

    @staticmethod
    def block_boundary_strength(gray: np.ndarray) -> float:
        """Ratio of gradient energy on 8x8 block edges to block centres, scaled to [0, 1].

        The gradient at (x, y) is |I(x,y) - I(x-1,y)| + |I(x,y) - I(x,y-1)|,
        sampled over interior pixels. Boundary samples lie on a row or column
        divisible by 8; interior samples sit at offset (4, 4) in each block.
        """
        h, w = gray.shape
        if h < 2 * JPEG_BLOCK or w < 2 * JPEG_BLOCK:
            return 0.0

        centre = gray[1:-1, 1:-1]
        gradient = np.abs(centre - gray[1:-1, :-2]) + np.abs(centre - gray[:-2, 1:-1])

        ys = np.arange(1, h - 1)
        xs = np.arange(1, w - 1)
        on_boundary = (ys % JPEG_BLOCK == 0)[:, None] | (xs % JPEG_BLOCK == 0)[None, :]
        in_centre = (ys % JPEG_BLOCK == 4)[:, None] & (xs % JPEG_BLOCK == 4)[None, :]

        boundary = gradient[on_boundary]
        inner = gradient[in_centre]
        if boundary.size == 0 or inner.size == 0:
            return 0.0

        inner_mean = mean(inner)
        ratio = mean(boundary) / inner_mean if inner_mean > 0 else 0.0
        return min(1.0, max(0.0, (ratio - 0.8) / 1.2))

    def check_uniform_areas(self, image: ImageBuffer) -> CheckResult:
        analysis = self.analyze_uniformity(to_grayscale(image.pixels))
        ratio = analysis['uniform_ratio']
        overlay = self.uniform_areas_overlay(image.height, image.width, analysis['uniform_map'])

        if ratio > self.THRESHOLDS['uniform_ratio_warn']:
            status = CheckStatus.WARN
            summary = f"Large uniform areas detected ({ratio * 100:.0f}%)"
            notes = ("Significant portions of the image have very uniform color/texture. "
                     "This can indicate editing (cloning, filling) but is also common in "
                     "images with solid backgrounds, sky, or simple graphics.")
        elif ratio > self.THRESHOLDS['uniform_ratio_info']:
            status = CheckStatus.INFO
            summary = f"Some uniform areas present ({ratio * 100:.0f}%)"
            notes = ("Some uniform regions detected. This is often normal, especially in "
                     "images with simple backgrounds.")
        else:
            status = CheckStatus.OK
            summary = "Natural texture variation throughout"
            notes = ("The image shows typical texture variation without suspicious uniform "
                     "regions.")

        return CheckResult(
            id="uniform-areas",
            name="Uniform Area Analysis",
            status=status,
            summary=summary,
            details={
                "Uniform Ratio": round(ratio, 3),
                "Blocks Analyzed": analysis['total_blocks'],
                "Analysis": "Texture variance per block",
            },
            confidence=0.5,
            notes=notes,
            overlay=overlay,
        )

    def analyze_uniformity(self, gray: np.ndarray) -> Dict[str, object]:
        """Per-block luminance deviation over 16x16 blocks.

        Returns a dict with ``uniform_ratio``, ``total_blocks`` and
        ``uniform_map`` (per-block score ``max(0, 1 - std / 10)``, or None
        when fewer than 2x2 blocks fit).
        """
        h, w = gray.shape
        blocks_x = w // UNIFORM_BLOCK
        blocks_y = h // UNIFORM_BLOCK
        if blocks_x < 2 or blocks_y < 2:
            return {'uniform_ratio': 0.0, 'total_blocks': 0, 'uniform_map': None}

        tiles = gray[:blocks_y * UNIFORM_BLOCK, :blocks_x * UNIFORM_BLOCK].reshape(
            blocks_y, UNIFORM_BLOCK, blocks_x, UNIFORM_BLOCK
        )
        block_std = tiles.std(axis=(1, 3))
        uniform_blocks = int(np.count_nonzero(block_std < self.THRESHOLDS['uniform_block_std']))
        total_blocks = blocks_x * blocks_y

        return {
            'uniform_ratio': uniform_blocks / total_blocks,
            'total_blocks': total_blocks,
            'uniform_map': np.maximum(0.0, 1.0 - block_std / 10.0),
        }

    @staticmethod
    def uniform_areas_overlay(height: int, width: int,
                              uniform_map: Optional[np.ndarray]) -> np.ndarray:
        """Colour each block from blue (textured) to red (uniform)."""
        overlay = np.zeros((height, width, 4), dtype=np.uint8)
        if uniform_map is None:
            return overlay

        score = uniform_map
        block_rgba = np.stack([
            np.floor(score * 255),
            np.floor((1 - score) * 128),
            np.floor((1 - score) * 255),
            np.floor(score * 200),
        ], axis=-1).astype(np.uint8)

        blocks_y, blocks_x = score.shape
        filled = np.repeat(np.repeat(block_rgba, UNIFORM_BLOCK, axis=0), UNIFORM_BLOCK, axis=1)
        overlay[:blocks_y * UNIFORM_BLOCK, :blocks_x * UNIFORM_BLOCK] = filled
        return overlay
