"""Decode raw image bytes into an ImageBuffer."""
import io
import logging
import mimetypes
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .exceptions import UnsupportedFormatError
from .sniffer import EXTENSION_TO_MIME, detect_file_type, mime_for_extension
from .types import ImageBuffer

logger = logging.getLogger(__name__)

SUPPORTED_MIME_TYPES = set(EXTENSION_TO_MIME.values())


def load_image(raw: bytes, filename: str, declared_mime: Optional[str] = None) -> ImageBuffer:
    """Validate and decode an image.

    Args:
        raw: Raw file bytes
        filename: Original file name (used for the extension check)
        declared_mime: MIME type claimed by the source, if any

    Returns:
        ImageBuffer holding the first frame as RGBA

    Raises:
        UnsupportedFormatError: if the type is unsupported, the signature is
            unrecognised, or decoding fails
    """
    declared_mime = declared_mime or ""
    if declared_mime not in SUPPORTED_MIME_TYPES and mime_for_extension(filename) is None:
        raise UnsupportedFormatError(
            "Unsupported file format. Please use JPG, PNG, GIF, or WebP.",
            filename=filename,
        )

    detected = detect_file_type(raw)
    if detected is None:
        raise UnsupportedFormatError(
            "Could not verify file type. The file may be corrupted or in an unsupported format.",
            filename=filename,
        )

    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.seek(0)
            pixels = np.array(img.convert("RGBA"))
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise UnsupportedFormatError(
            f"Failed to decode image: {e}", filename=filename, detected_type=detected
        ) from e

    height, width = pixels.shape[:2]
    if width == 0 or height == 0:
        raise UnsupportedFormatError("Image has no pixels", filename=filename,
                                     detected_type=detected)

    pixels.setflags(write=False)
    logger.debug(f"Loaded {filename}: {width}x{height} {detected}")
    return ImageBuffer(
        filename=filename,
        declared_mime=declared_mime,
        file_size=len(raw),
        width=width,
        height=height,
        pixels=pixels,
        raw_bytes=bytes(raw),
    )


def load_image_file(path: Union[str, Path]) -> ImageBuffer:
    """Read an image from disk, guessing the declared type from its extension."""
    path = Path(path)
    declared_mime, _ = mimetypes.guess_type(path.name)
    return load_image(path.read_bytes(), path.name, declared_mime)
