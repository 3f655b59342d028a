"""
Error Level Analysis (ELA).

Compares the decoded image with a copy re-encoded at a fixed JPEG quality.
ELA is prone to false positives and must never be read as evidence on its
own; the result always carries the caveats below.
"""
import io
import logging
from typing import Optional

import numpy as np
from PIL import Image

from .exceptions import ReencodeError
from .sniffer import JPEG
from .types import CheckResult, CheckStatus, ImageBuffer
from .utils import to_heatmap

logger = logging.getLogger(__name__)

ELA_QUALITY = 90
ELA_VARIANCE_WARN = 20.0

ELA_CAVEATS = """⚠️ IMPORTANT CAVEATS:

• ELA results are highly prone to false positives
• Previously compressed/resaved images will show varied ELA regardless of editing
• Social media reuploads typically produce noisy ELA results
• Solid colors and smooth gradients naturally show different error levels than textured areas
• ELA cannot definitively prove or disprove image manipulation
• Use ELA as ONE data point among many, never as sole evidence

The overlay shows areas of higher error (potential edits) in warm colors. Look for unusual patterns that don't correspond to the image content, but interpret with extreme caution."""


class JpegReencoder:
    """JPEG encode/decode round trip backed by Pillow."""

    def reencode(self, image: ImageBuffer, quality: float) -> np.ndarray:
        """Re-encode the pixel buffer as JPEG and decode it again.

        Args:
            image: Source image
            quality: JPEG quality as a fraction in (0, 1]

        Returns:
            RGBA uint8 array with the same shape as ``image.pixels``
        """
        try:
            rgb = Image.fromarray(np.array(image.pixels)).convert("RGB")
            buffer = io.BytesIO()
            rgb.save(buffer, format="JPEG", quality=int(round(quality * 100)))
            buffer.seek(0)
            with Image.open(buffer) as decoded:
                return np.array(decoded.convert("RGBA"))
        except (OSError, ValueError) as e:
            raise ReencodeError(f"JPEG round trip failed: {e}") from e


def error_level_stats(original: np.ndarray, recompressed: np.ndarray) -> dict:
    """Per-pixel mean absolute RGB difference and its summary statistics.

    Returns a dict with ``diff`` (height x width), ``mean``, ``max`` and
    ``std`` (population). Symmetric in its two arguments.
    """
    if original.shape != recompressed.shape:
        raise ValueError(
            f"re-encoded buffer shape {recompressed.shape} differs from {original.shape}"
        )
    a = original[..., :3].astype(np.float64)
    b = recompressed[..., :3].astype(np.float64)
    diff = np.abs(a - b).sum(axis=2) / 3
    return {
        'diff': diff,
        'mean': float(diff.mean()),
        'max': float(diff.max()),
        'std': float(diff.std()),
    }


class ErrorLevelAnalyzer:
    """Error level analysis over an injected re-encoder."""

    def __init__(self, reencoder: Optional[JpegReencoder] = None):
        self.reencoder = reencoder or JpegReencoder()

    def analyze(self, image: ImageBuffer) -> CheckResult:
        detected = image.detected_mime
        if detected != JPEG:
            return CheckResult(
                id="ela",
                name="Error Level Analysis",
                status=CheckStatus.INFO,
                summary="ELA not applicable (non-JPEG)",
                details={
                    "Format": detected or "Unknown",
                    "Note": "ELA is designed for JPEG images",
                },
                confidence=0.3,
                notes=("Error Level Analysis is most meaningful for JPEG images. For PNG or "
                       "other formats, the analysis would not provide useful results."),
            )

        try:
            recompressed = self.reencoder.reencode(image, ELA_QUALITY / 100)
            stats = error_level_stats(image.pixels, recompressed)
        except Exception as e:
            logger.warning(f"Error level analysis failed: {e}")
            return CheckResult(
                id="ela",
                name="Error Level Analysis",
                status=CheckStatus.INFO,
                summary="ELA analysis failed",
                details={"Error": str(e) or type(e).__name__},
                confidence=0.1,
                notes=("Could not perform Error Level Analysis. This may be due to image "
                       "format issues or encoder limitations."),
            )

        max_diff = stats['max']
        scale = 255 / max_diff if max_diff > 0 else 1
        scaled = np.minimum(stats['diff'] * scale * 2, 255)
        overlay = to_heatmap(scaled, normalize=False)

        if stats['std'] > ELA_VARIANCE_WARN:
            status = CheckStatus.WARN
            summary = "ELA shows notable variation (review recommended)"
        else:
            status = CheckStatus.INFO
            summary = "ELA shows relatively uniform error levels"

        return CheckResult(
            id="ela",
            name="Error Level Analysis",
            status=status,
            summary=summary,
            details={
                "Re-encode Quality": ELA_QUALITY,
                "Average Difference": round(stats['mean'], 2),
                "Max Difference": round(max_diff, 2),
                "Variance": round(stats['std'], 2),
            },
            confidence=0.4,
            notes=ELA_CAVEATS,
            overlay=overlay,
        )
