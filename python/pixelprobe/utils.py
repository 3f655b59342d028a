"""Numeric primitives shared by the forensic checks."""
from typing import Sequence, Union

import cv2
import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

ArrayLike = Union[np.ndarray, Sequence[float]]

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

_HASH_MULTIPLIER = 31
_HASH_MASK = np.uint64(0xFFFFFFFF)


def to_grayscale(pixels: np.ndarray) -> np.ndarray:
    """Convert an RGBA (or RGB) uint8 buffer to float64 luminance."""
    rgb = pixels[..., :3].astype(np.float64)
    return (
        LUMA_WEIGHTS[0] * rgb[..., 0]
        + LUMA_WEIGHTS[1] * rgb[..., 1]
        + LUMA_WEIGHTS[2] * rgb[..., 2]
    )


def mean(values: ArrayLike) -> float:
    """Arithmetic mean, 0 for an empty input."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def standard_deviation(values: ArrayLike) -> float:
    """Population standard deviation, 0 for an empty input."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return 0.0
    return float(arr.std())


def _zero_border(arr: np.ndarray) -> np.ndarray:
    arr[0, :] = 0
    arr[-1, :] = 0
    arr[:, 0] = 0
    arr[:, -1] = 0
    return arr


def apply_laplacian(gray: np.ndarray) -> np.ndarray:
    """Absolute 4-neighbour Laplacian response.

    Uses the kernel [[0, 1, 0], [1, -4, 1], [0, 1, 0]]. Border pixels have
    no full neighbourhood and are left at zero.
    """
    h, w = gray.shape
    if h < 3 or w < 3:
        return np.zeros((h, w), dtype=np.float64)
    lap = cv2.Laplacian(np.ascontiguousarray(gray, dtype=np.float64), cv2.CV_64F, ksize=1)
    return _zero_border(np.abs(lap))


def sobel_magnitude(gray: np.ndarray) -> np.ndarray:
    """Gradient magnitude sqrt(gx^2 + gy^2) from 3x3 Sobel kernels, zero border."""
    h, w = gray.shape
    if h < 3 or w < 3:
        return np.zeros((h, w), dtype=np.float64)
    src = np.ascontiguousarray(gray, dtype=np.float64)
    gx = cv2.Sobel(src, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(src, cv2.CV_64F, 0, 1, ksize=3)
    return _zero_border(np.sqrt(gx * gx + gy * gy))


def to_heatmap(values: np.ndarray, normalize: bool = True) -> np.ndarray:
    """Map a 2-D array of non-negative values to an RGBA heatmap.

    Colours run blue -> cyan -> green -> yellow -> red. When normalising,
    values are divided by the larger of 1 and the array maximum; either way
    they are capped at 1 before colouring. Alpha grows with intensity.
    """
    values = np.asarray(values, dtype=np.float64)
    max_val = 1.0
    if normalize and values.size:
        max_val = max(1.0, float(values.max()))
    n = np.minimum(values / max_val, 1.0)

    band0 = n < 0.25
    band1 = (n >= 0.25) & (n < 0.5)
    band2 = (n >= 0.5) & (n < 0.75)
    band3 = n >= 0.75

    r = np.select(
        [band0, band1, band2, band3],
        [0.0, 0.0, np.floor((n - 0.5) * 4 * 255), 255.0],
    )
    g = np.select(
        [band0, band1, band2, band3],
        [np.floor(n * 4 * 255), 255.0, 255.0, np.floor((1 - (n - 0.75) * 4) * 255)],
    )
    b = np.select(
        [band0, band1, band2, band3],
        [255.0, np.floor((1 - (n - 0.25) * 4) * 255), 0.0, 0.0],
    )
    a = np.floor(n * 200) + 55

    heatmap = np.stack([r, g, b, a], axis=-1)
    return np.clip(heatmap, 0, 255).astype(np.uint8)


def _hash_weights(length: int) -> np.ndarray:
    weights = []
    w = 1
    for _ in range(length):
        weights.append(w)
        w = (w * _HASH_MULTIPLIER) & 0xFFFFFFFF
    return np.array(weights[::-1], dtype=np.uint64)


def hash_blocks(gray: np.ndarray, block_size: int, step: int,
                blocks_x: int, blocks_y: int) -> np.ndarray:
    """Coarse content hash for a grid of sampled blocks.

    Each luminance value is floored and quantised to 16 levels, then the
    block is folded row-major as ``h = h * 31 + q`` modulo 2**32.

    Returns:
        uint64 array of shape (blocks_y, blocks_x); entry (by, bx) is the
        hash of the block whose top-left corner is (bx * step, by * step).
    """
    quantized = (np.floor(gray) // 16).astype(np.uint64)
    windows = sliding_window_view(quantized, (block_size, block_size))
    weights = _hash_weights(block_size * block_size)

    hashes = np.zeros((blocks_y, blocks_x), dtype=np.uint64)
    for by in range(blocks_y):
        row = windows[by * step, : blocks_x * step : step]
        flat = row.reshape(blocks_x, block_size * block_size)
        hashes[by] = np.dot(flat, weights) & _HASH_MASK
    return hashes


def format_file_size(num_bytes: int) -> str:
    """Format a byte count as B, KB or MB."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f} KB"
    return f"{num_bytes / (1024 * 1024):.2f} MB"
