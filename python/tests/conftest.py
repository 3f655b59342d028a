"""Shared pytest fixtures for pixelprobe tests."""

import io

import numpy as np
import pytest
from PIL import Image

from pixelprobe import ForensicPipeline, load_image
from pixelprobe.types import ImageBuffer


def encode(arr, fmt, **save_kwargs):
    """Encode an RGB/RGBA uint8 array with Pillow and return the bytes."""
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


def make_buffer(width, height, raw=b"", filename="image.png", declared_mime="image/png",
                fill=0):
    """ImageBuffer with a constant pixel array and arbitrary raw bytes."""
    pixels = np.full((height, width, 4), fill, dtype=np.uint8)
    pixels[..., 3] = 255
    return ImageBuffer(
        filename=filename,
        declared_mime=declared_mime,
        file_size=len(raw),
        width=width,
        height=height,
        pixels=pixels,
        raw_bytes=raw,
    )


# ---------------------------------------------------------------------------
# Pipeline fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def pipeline():
    """Fresh single-threaded pipeline."""
    return ForensicPipeline()


# ---------------------------------------------------------------------------
# Sample content fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def gradient_rgb():
    """128x96 RGB gradient array."""
    y, x = np.mgrid[0:96, 0:128]
    arr = np.stack([x * 2, y * 2, np.full_like(x, 128)], axis=-1)
    return arr.astype(np.uint8)


@pytest.fixture()
def sample_jpeg_bytes(gradient_rgb):
    """Synthetic JPEG buffer (gradient image, quality 90)."""
    return encode(gradient_rgb, "JPEG", quality=90)


@pytest.fixture()
def sample_png_bytes(gradient_rgb):
    """Synthetic PNG buffer (gradient image)."""
    return encode(gradient_rgb, "PNG")


@pytest.fixture()
def gray_jpeg_q95():
    """50x50 uniform mid-gray JPEG saved at quality 95."""
    arr = np.full((50, 50, 3), 128, dtype=np.uint8)
    return encode(arr, "JPEG", quality=95)


@pytest.fixture()
def noise_rgb():
    """Seeded 256x256 RGB noise."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(256, 256, 3), dtype=np.uint8)


@pytest.fixture()
def noise_image(noise_rgb):
    """Noise decoded from a lossless PNG."""
    return load_image(encode(noise_rgb, "PNG"), "noise.png", "image/png")


@pytest.fixture()
def cloned_noise_image(noise_rgb):
    """Noise with a 32x32 block copied from (32, 32) to (160, 160)."""
    arr = noise_rgb.copy()
    arr[160:192, 160:192] = arr[32:64, 32:64]
    return load_image(encode(arr, "PNG"), "cloned.png", "image/png")


@pytest.fixture()
def animated_gif_bytes():
    """Three-frame animated GIF."""
    frames = [Image.new("RGB", (32, 32), color=c) for c in ("red", "green", "blue")]
    buf = io.BytesIO()
    frames[0].save(buf, format="GIF", save_all=True, append_images=frames[1:], duration=100, loop=0)
    return buf.getvalue()


@pytest.fixture()
def exif_jpeg_bytes(gradient_rgb):
    """JPEG carrying Make, Model and Software EXIF tags."""
    img = Image.fromarray(gradient_rgb)
    exif = Image.Exif()
    exif[0x010F] = "Canon"
    exif[0x0110] = "EOS R5"
    exif[0x0131] = "Adobe Photoshop 2023"
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=90, exif=exif)
    return buf.getvalue()
