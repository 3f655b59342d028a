"""Magic-byte format detection and container-level animation detection."""
from typing import Optional

JPEG = "image/jpeg"
PNG = "image/png"
GIF = "image/gif"
WEBP = "image/webp"

# Each entry: (mime, prefix, (offset, bytes) required further in, or None)
FILE_SIGNATURES = [
    (JPEG, b"\xff\xd8\xff", None),
    (PNG, b"\x89PNG\r\n\x1a\n", None),
    (GIF, b"GIF8", None),
    (WEBP, b"RIFF", (8, b"WEBP")),
]

EXTENSION_TO_MIME = {
    "jpg": JPEG,
    "jpeg": JPEG,
    "png": PNG,
    "gif": GIF,
    "webp": WEBP,
}

GRAPHIC_CONTROL_EXTENSION = b"\x21\xf9"
WEBP_ANIM_CHUNK = b"ANIM"


def detect_file_type(raw: bytes) -> Optional[str]:
    """Detect the image format from magic bytes.

    Returns:
        The MIME type of the first matching signature, or None when the
        buffer matches none of them.
    """
    for mime, prefix, extra in FILE_SIGNATURES:
        if not raw.startswith(prefix):
            continue
        if extra is not None:
            offset, marker = extra
            if raw[offset:offset + len(marker)] != marker:
                continue
        return mime
    return None


def file_extension(filename: str) -> str:
    """Lower-cased text after the last dot, or "" when the name has none."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def mime_for_extension(filename: str) -> Optional[str]:
    """MIME type implied by the file extension, if it is a supported one."""
    return EXTENSION_TO_MIME.get(file_extension(filename))


def is_animated_gif(raw: bytes) -> bool:
    """True when more than one Graphic Control Extension marker is present."""
    return raw.count(GRAPHIC_CONTROL_EXTENSION, 0, max(0, len(raw) - 2)) > 1


def is_animated_webp(raw: bytes) -> bool:
    """True when the container holds an ANIM chunk."""
    return raw.find(WEBP_ANIM_CHUNK, 0, max(0, len(raw) - 1)) != -1
