"""Heuristics for spotting images that were re-shared through social platforms."""
from typing import List, Optional

from .sniffer import JPEG
from .types import CheckResult, CheckStatus, ExifData, ImageBuffer

# Order matters: the first entry that matches (exactly or nearly) wins.
SOCIAL_MEDIA_DIMENSIONS = [
    (2048, "Facebook/Instagram"),
    (1080, "Instagram"),
    (1200, "Twitter"),
    (1280, "Twitter/Telegram"),
    (1600, "Various"),
    (4096, "Twitter 4K"),
]

NEAR_DIMENSION_PX = 10
MAX_SCORE = 8


def check_social_media_hint(image: ImageBuffer, exif: Optional[ExifData],
                            jpeg_quality: Optional[int]) -> CheckResult:
    """Score platform fingerprints: stripped EXIF, resize targets, recompression, crops."""
    signals: List[str] = []
    score = 0

    if not exif:
        signals.append("No EXIF metadata (stripped by most platforms)")
        score += 2

    width, height = image.width, image.height
    max_dim = max(width, height)
    for target, platform in SOCIAL_MEDIA_DIMENSIONS:
        if max_dim == target:
            signals.append(f"Max dimension {target}px (common for {platform})")
            score += 2
            break
        if abs(max_dim - target) < NEAR_DIMENSION_PX:
            signals.append(f"Max dimension ~{target}px (close to {platform} limit)")
            score += 1
            break

    if image.detected_mime == JPEG and jpeg_quality is not None:
        if jpeg_quality < 85:
            signals.append(f"JPEG quality ~{jpeg_quality}% (social platforms often recompress)")
            score += 1
        if jpeg_quality < 70:
            score += 1

    aspect = width / height
    if abs(aspect - 1.0) < 0.01:
        signals.append("Square aspect ratio (1:1) - common on Instagram")
        score += 1
    if abs(aspect - 0.8) < 0.02 or abs(aspect - 1.25) < 0.02:
        signals.append("4:5 or 5:4 aspect ratio - common on Instagram")
        score += 1
    if abs(aspect - 1.778) < 0.02 or abs(aspect - 0.5625) < 0.02:
        signals.append("16:9 aspect ratio - common for video thumbnails")
        score += 1

    if score >= 4:
        status, summary, confidence = (
            CheckStatus.INFO, "Likely re-shared through social media", 0.7)
    elif score >= 2:
        status, summary, confidence = (
            CheckStatus.INFO, "Some signs of possible social media sharing", 0.5)
    else:
        status, summary, confidence = (
            CheckStatus.OK, "No strong indicators of social media reupload", 0.4)

    details = {
        "Detection Score": f"{score}/{MAX_SCORE}",
        "Signals Found": len(signals),
    }
    for idx, signal in enumerate(signals, start=1):
        details[f"Signal {idx}"] = signal

    if score >= 2:
        notes = ("This image shows characteristics commonly associated with social media "
                 "reuploads. Social platforms typically strip metadata, resize images, and "
                 "recompress them. This is informational only and doesn't indicate "
                 "manipulation.")
    else:
        notes = ("No strong indicators that this image has been shared through social media. "
                 "The metadata and dimensions don't match common social media patterns.")

    return CheckResult(
        id="social-media-hint",
        name="Social Media Detection",
        status=status,
        summary=summary,
        details=details,
        confidence=confidence,
        notes=notes,
    )
