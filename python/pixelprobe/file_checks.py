"""File and container level checks: signature, properties, animation."""
from typing import List, Optional

import numpy as np

from .sniffer import GIF, WEBP, file_extension, is_animated_gif, is_animated_webp, mime_for_extension
from .types import CheckResult, CheckStatus, ImageBuffer
from .utils import format_file_size

THUMBNAIL_MAX_DIMENSION = 100
HIGH_RESOLUTION_MIN_DIMENSION = 8000


def check_file_type(image: ImageBuffer) -> CheckResult:
    """Compare the sniffed signature with the declared type and the extension."""
    detected = image.detected_mime
    declared = image.declared_mime
    extension = file_extension(image.filename) if image.filename else ""
    expected_from_ext = mime_for_extension(image.filename) if extension else None

    status = CheckStatus.OK
    if not detected:
        status = CheckStatus.WARN
        summary = "Could not verify file type from magic bytes"
        notes = ("The file signature could not be recognized. This may indicate a "
                 "corrupted or unusual file format.")
    elif declared and detected != declared:
        status = CheckStatus.WARN
        summary = f"File signature ({detected}) differs from declared type ({declared})"
        notes = ("This mismatch could indicate the file was renamed or modified. "
                 "Not necessarily suspicious, but worth noting.")
    elif expected_from_ext and detected != expected_from_ext:
        status = CheckStatus.WARN
        summary = f"File extension (.{extension}) doesn't match actual type ({detected})"
        notes = ("The file extension may have been changed. The actual content "
                 "appears to be a different format.")
    else:
        summary = f"File type verified: {detected}"
        notes = "File signature matches the expected format."

    return CheckResult(
        id="file-type",
        name="File Type Detection",
        status=status,
        summary=summary,
        details={
            "Detected Type": detected or "Unknown",
            "Declared Type": declared or "None",
            "Extension": extension or "None",
            "Match": detected == declared,
        },
        confidence=0.95 if detected else 0.5,
        notes=notes,
    )


def has_alpha_channel(pixels: np.ndarray) -> bool:
    """True if any pixel is not fully opaque."""
    return bool(np.any(pixels[..., 3] < 255))


def check_file_properties(image: ImageBuffer) -> CheckResult:
    width, height = image.width, image.height

    if width < THUMBNAIL_MAX_DIMENSION or height < THUMBNAIL_MAX_DIMENSION:
        notes = "Very small image dimensions. May be a thumbnail or icon."
    elif width > HIGH_RESOLUTION_MIN_DIMENSION or height > HIGH_RESOLUTION_MIN_DIMENSION:
        notes = "Very high resolution image."
    else:
        notes = "Standard image dimensions."

    return CheckResult(
        id="file-properties",
        name="File Properties",
        status=CheckStatus.INFO,
        summary=f"{width}×{height} px, {format_file_size(image.file_size)}",
        details={
            "Width": width,
            "Height": height,
            "File Size": format_file_size(image.file_size),
            "Aspect Ratio": round(width / height, 2),
            "Has Alpha": has_alpha_channel(image.pixels),
            "Megapixels": round(width * height / 1_000_000, 2),
        },
        confidence=1.0,
        notes=notes,
    )


def check_animation(image: ImageBuffer) -> Optional[CheckResult]:
    """Animation detection for GIF and WebP; None for every other format."""
    detected = image.detected_mime
    if detected == GIF:
        animated = is_animated_gif(image.raw_bytes)
        fmt = "GIF"
    elif detected == WEBP:
        animated = is_animated_webp(image.raw_bytes)
        fmt = "WebP"
    else:
        return None

    if not animated:
        return CheckResult(
            id="animation",
            name="Animation Detection",
            status=CheckStatus.OK,
            summary=f"Static {fmt} image (not animated)",
            details={"Format": fmt, "Animated": False},
            confidence=0.9,
            notes="Single-frame image detected.",
        )

    return CheckResult(
        id="animation",
        name="Animation Detection",
        status=CheckStatus.WARN,
        summary=f"Animated {fmt} detected",
        details={"Format": fmt, "Animated": True},
        confidence=0.9,
        notes=("Animated images have limited forensic analysis support. Only the "
               "first frame is analyzed. Forensic checks may not reflect the full content."),
    )


def run_file_checks(image: ImageBuffer) -> List[CheckResult]:
    results = [check_file_type(image), check_file_properties(image)]
    animation = check_animation(image)
    if animation is not None:
        results.append(animation)
    return results
