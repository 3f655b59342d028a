"""
Metadata and EXIF checks.

The EXIF record is extracted once per run by a MetadataExtractor and handed to
the checks below. The default extractor is built on Pillow; callers may inject
any object exposing ``extract(raw) -> Optional[dict]``.
"""
import io
import logging
import math
import re
from datetime import datetime
from typing import Any, List, Optional

from PIL import ExifTags, Image

from .types import CheckResult, CheckStatus, ExifData

logger = logging.getLogger(__name__)

EDITING_SOFTWARE = [
    "photoshop",
    "adobe",
    "gimp",
    "snapseed",
    "lightroom",
    "capture one",
    "affinity",
    "pixelmator",
    "paint.net",
    "corel",
    "photoscape",
    "fotor",
    "picasa",
    "instagram",
    "vsco",
    "facetune",
    "meitu",
    "beautycam",
    "snow",
    "b612",
    "remini",
    "faceapp",
    "airbrush",
]

CAMERA_KEYWORDS = ["camera", "dcim", "photo", "imaging"]

PICK_TAGS = {
    "Make", "Model", "Software", "DateTime", "DateTimeOriginal",
    "ExposureTime", "FNumber", "ISO", "ImageWidth", "ImageHeight",
    "Orientation", "ColorSpace", "Flash", "FocalLength", "WhiteBalance",
    "ExposureMode", "MeteringMode", "Artist", "Copyright",
}

# Pillow tag names that differ from the record keys we expose
TAG_ALIASES = {
    "ISOSpeedRatings": "ISO",
    "PhotographicSensitivity": "ISO",
}

_EXIF_DATE_RE = re.compile(r"^(\d{4}):(\d{2}):(\d{2})")


def _scalar(value: Any) -> Any:
    """Reduce a Pillow tag value to a plain scalar, or None if it has no scalar form."""
    if isinstance(value, str):
        value = value.strip("\x00").strip()
        return value or None
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, (tuple, list)) and len(value) == 1:
        return _scalar(value[0])
    try:
        number = float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    # Pillow reads a zero-denominator rational as NaN
    return number if math.isfinite(number) else None


def _gps_to_degrees(dms: Any, ref: Any) -> Optional[float]:
    try:
        degrees, minutes, seconds = (float(v) for v in dms)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    decimal = degrees + minutes / 60 + seconds / 3600
    if not math.isfinite(decimal):
        return None
    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    if ref in ("S", "W"):
        decimal = -decimal
    return decimal


class MetadataExtractor:
    """Default EXIF extractor backed by Pillow."""

    def extract(self, raw: bytes) -> Optional[ExifData]:
        """Extract a flat EXIF record from raw image bytes.

        Never raises: any parsing failure is logged and yields None.
        """
        try:
            with Image.open(io.BytesIO(raw)) as img:
                exif = img.getexif()
                record: ExifData = {}
                self._collect(exif, ExifTags.TAGS, record)
                self._collect(exif.get_ifd(ExifTags.IFD.Exif), ExifTags.TAGS, record)

                gps = {
                    ExifTags.GPSTAGS.get(tag, tag): value
                    for tag, value in exif.get_ifd(ExifTags.IFD.GPSInfo).items()
                }
                if "GPSLatitude" in gps and "GPSLongitude" in gps:
                    lat = _gps_to_degrees(gps["GPSLatitude"], gps.get("GPSLatitudeRef"))
                    lon = _gps_to_degrees(gps["GPSLongitude"], gps.get("GPSLongitudeRef"))
                    if lat is not None and lon is not None:
                        record["GPSLatitude"] = lat
                        record["GPSLongitude"] = lon
        except Exception as e:
            logger.warning(f"EXIF extraction failed: {e}")
            return None

        return record or None

    @staticmethod
    def _collect(ifd, names, record: ExifData) -> None:
        for tag, value in ifd.items():
            name = names.get(tag)
            name = TAG_ALIASES.get(name, name)
            if name not in PICK_TAGS or name in record:
                continue
            scalar = _scalar(value)
            if scalar is not None:
                record[name] = scalar


def format_exif_date(value: Any) -> str:
    """Render an EXIF date ("2023:01:15 14:30:00") with dashes in the date part."""
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    return _EXIF_DATE_RE.sub(r"\1-\2-\3", str(value))


def format_exposure(seconds: float) -> str:
    if not math.isfinite(seconds) or seconds <= 0:
        return "Unknown"
    if seconds >= 1:
        return f"{seconds:g}s"
    return f"1/{round(1 / seconds)}s"


def build_exif_summary(exif: ExifData) -> str:
    parts: List[str] = []

    make, model = exif.get("Make"), exif.get("Model")
    if make and model:
        parts.append(f"{make} {model}")
    elif make or model:
        parts.append(str(make or model))

    date = exif.get("DateTimeOriginal") or exif.get("DateTime")
    if isinstance(date, datetime):
        parts.append(date.date().isoformat())
    elif isinstance(date, str):
        parts.append(date.split(" ")[0].replace(":", "-"))

    if not parts:
        return "EXIF data present"
    return " • ".join(parts)


def check_exif_presence(exif: Optional[ExifData]) -> CheckResult:
    if not exif:
        return CheckResult(
            id="exif-presence",
            name="EXIF Metadata",
            status=CheckStatus.INFO,
            summary="No EXIF metadata found",
            details={"EXIF Present": False},
            confidence=0.8,
            notes=("Missing EXIF is common after social media uploads, screenshots, or "
                   "intentional stripping. This is not necessarily suspicious, but original "
                   "camera photos typically contain EXIF data."),
        )

    details = {"EXIF Present": True}
    if exif.get("Make"):
        details["Camera Make"] = str(exif["Make"])
    if exif.get("Model"):
        details["Camera Model"] = str(exif["Model"])
    if exif.get("Software"):
        details["Software"] = str(exif["Software"])
    if exif.get("DateTime"):
        details["Date/Time"] = format_exif_date(exif["DateTime"])
    if exif.get("DateTimeOriginal"):
        details["Original Date"] = format_exif_date(exif["DateTimeOriginal"])
    if exif.get("ExposureTime"):
        details["Exposure"] = format_exposure(float(exif["ExposureTime"]))
    if exif.get("FNumber"):
        details["Aperture"] = f"f/{float(exif['FNumber']):g}"
    if exif.get("ISO"):
        details["ISO"] = exif["ISO"]

    has_gps = exif.get("GPSLatitude") is not None and exif.get("GPSLongitude") is not None
    details["GPS Data"] = "Present" if has_gps else "None"

    return CheckResult(
        id="exif-presence",
        name="EXIF Metadata",
        status=CheckStatus.OK,
        summary=build_exif_summary(exif),
        details=details,
        confidence=0.9,
        notes=("EXIF data is present. This suggests the image may be closer to its "
               "original form, though EXIF can be modified or copied."),
    )


def check_editing_software(exif: Optional[ExifData]) -> CheckResult:
    software_tag = (exif or {}).get("Software")
    if not software_tag:
        return CheckResult(
            id="editing-software",
            name="Editing Software Detection",
            status=CheckStatus.INFO,
            summary="No software tag in metadata",
            details={"Software Tag": "Not present"},
            confidence=0.6,
            notes=("The absence of a software tag doesn't mean the image wasn't edited. "
                   "Many tools don't add metadata, and metadata can be stripped."),
        )

    software_tag = str(software_tag)
    software = software_tag.lower()
    matched = [editor for editor in EDITING_SOFTWARE if editor in software]

    if matched:
        return CheckResult(
            id="editing-software",
            name="Editing Software Detection",
            status=CheckStatus.WARN,
            summary=f"Editing software detected: {software_tag}",
            details={
                "Software Tag": software_tag,
                "Known Editors Found": ", ".join(matched),
            },
            confidence=0.7,
            notes=("The software tag indicates this image was processed by image editing "
                   "software. This doesn't mean malicious editing occurred; many "
                   "photographers use editing software for legitimate purposes like color "
                   "correction or cropping."),
        )

    likely_camera = any(kw in software for kw in CAMERA_KEYWORDS)
    if likely_camera:
        notes = ("The software tag appears to be from a camera or device, not a known "
                 "image editor.")
    else:
        notes = ("The software tag is present but doesn't match known editing software. "
                 "This could be camera software, an unknown editor, or other processing "
                 "software.")

    return CheckResult(
        id="editing-software",
        name="Editing Software Detection",
        status=CheckStatus.OK,
        summary=f"Software: {software_tag}",
        details={
            "Software Tag": software_tag,
            "Type": "Camera/Device Software" if likely_camera else "Unknown Software",
        },
        confidence=0.7,
        notes=notes,
    )


def run_metadata_checks(exif: Optional[ExifData]) -> List[CheckResult]:
    return [check_exif_presence(exif), check_editing_software(exif)]
