#!/usr/bin/env python3
"""
Generate sample images for pixelprobe testing.

Writes clean originals plus manipulated variants (copy-move, editor tag,
heavy recompression, mismatched extension, stripped re-share) under
test-data/.
"""
import io
import os

import numpy as np
from PIL import Image, ImageDraw


def create_scene(width, height, seed=0):
    """Smooth colour field with mild sensor-like noise."""
    rng = np.random.default_rng(seed)
    y, x = np.mgrid[0:height, 0:width].astype(np.float64)
    base = np.stack([
        120 + 60 * np.sin(x / 80.0),
        110 + 50 * np.cos(y / 70.0),
        100 + 40 * np.sin((x + y) / 110.0),
    ], axis=-1)
    noisy = base + rng.normal(0, 6, base.shape)
    return Image.fromarray(np.clip(noisy, 0, 255).astype(np.uint8))


def camera_exif(software=None):
    exif = Image.Exif()
    exif[0x010F] = "Canon"
    exif[0x0110] = "EOS 5D Mark IV"
    exif[0x0132] = "2024:05:01 12:30:00"
    if software:
        exif[0x0131] = software
    return exif


def create_original(filename, width=1600, height=1200):
    """Camera-like JPEG with EXIF."""
    create_scene(width, height).save(filename, quality=92, exif=camera_exif())
    print(f"Created {filename}")


def create_copy_move(filename, width=1024, height=768):
    """Scene with a textured patch stamped into a second location."""
    img = create_scene(width, height, seed=1)
    draw = ImageDraw.Draw(img)
    for i in range(0, 160, 8):
        draw.line([(100 + i, 100), (100, 100 + i)], fill=(30, 30, 30), width=2)
    patch = img.crop((96, 96, 288, 288))
    img.paste(patch, (640, 448))
    img.save(filename)
    print(f"Created {filename}")


def create_edited(filename):
    """Original re-saved with an editor software tag."""
    create_scene(1200, 900, seed=2).save(
        filename, quality=90, exif=camera_exif(software="Adobe Photoshop 25.0")
    )
    print(f"Created {filename}")


def create_recompressed(filename):
    """Several low-quality resaves."""
    img = create_scene(1080, 1080, seed=3)
    for quality in (70, 55, 40):
        buf = io.BytesIO()
        img.save(buf, format="JPEG", quality=quality)
        buf.seek(0)
        img = Image.open(buf)
        img.load()
    img.save(filename, format="JPEG", quality=35)
    print(f"Created {filename}")


def create_renamed(filename):
    """JPEG content saved under a .png name."""
    create_scene(800, 600, seed=4).save(filename, format="JPEG", quality=90)
    print(f"Created {filename}")


def create_transparent(filename, width=512, height=512):
    """PNG with transparency."""
    img = Image.new('RGBA', (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.ellipse([156, 156, 356, 356], fill=(255, 100, 100, 230), outline='black', width=3)
    img.save(filename)
    print(f"Created {filename}")


# Create directories
os.makedirs('test-data/original', exist_ok=True)
os.makedirs('test-data/manipulated', exist_ok=True)

print("Generating sample test images...")
print("=" * 50)

create_original('test-data/original/camera-landscape.jpg')
create_transparent('test-data/original/sample-transparent.png')
create_copy_move('test-data/manipulated/copy-move.png')
create_edited('test-data/manipulated/photoshop-tag.jpg')
create_recompressed('test-data/manipulated/recompressed.jpg')
create_renamed('test-data/manipulated/renamed-jpeg.png')

print("=" * 50)
print("✓ All sample images created successfully!")
print("\nYou can now:")
print("  1. Analyze an image: pixelprobe analyze test-data/original/camera-landscape.jpg")
print("  2. Export JSON: pixelprobe analyze test-data/manipulated/copy-move.png -o report.json")
print("  3. Deep clone scan: pixelprobe clone-scan test-data/manipulated/copy-move.png")
