"""
Pixel-level consistency checks.

1. Noise/texture inconsistency mapping (Laplacian energy per block)
2. Edge inconsistency (Sobel magnitude outliers)
3. Clone detection (coarse block hashing)
"""
import logging
from typing import Callable, Dict, List

import numpy as np
from scipy.spatial.distance import pdist

from .types import CheckResult, CheckStatus, ImageBuffer, Region
from .utils import (
    apply_laplacian,
    hash_blocks,
    mean,
    sobel_magnitude,
    standard_deviation,
    to_grayscale,
    to_heatmap,
)

logger = logging.getLogger(__name__)

Colormap = Callable[[np.ndarray], np.ndarray]

NOISE_BLOCK = 32
NOISE_MIN_BLOCKS = 3

# (block size, sampling step) per scan mode
CLONE_SCAN_QUICK = (32, 16)
CLONE_SCAN_DEEP = (16, 8)
CLONE_MIN_POSITIONS = 4


def deduplicate_regions(regions: List[Region], margin: int) -> List[Region]:
    """Drop regions whose corner lies within ``margin`` of a kept region on both axes."""
    unique: List[Region] = []
    for region in regions:
        if not any(
            abs(region.x - kept.x) < margin and abs(region.y - kept.y) < margin
            for kept in unique
        ):
            unique.append(region)
    return unique


class PixelAnalyzer:
    """Pixel consistency engine.

    Args:
        colormap: Function turning a 2-D value array into an RGBA overlay.
            It only affects the overlays, never status, summary or details.
    """

    THRESHOLDS = {
        'noise_z_score': 2.5,
        'noise_outlier_warn': 0.15,
        'noise_outlier_info': 0.05,
        'edge_sigma': 3.0,
        'edge_ratio_info': 0.02,
        'clone_matches_warn': 10,
    }

    def __init__(self, colormap: Colormap = to_heatmap):
        self.colormap = colormap

    def analyze(self, image: ImageBuffer, deep_clone_scan: bool = False) -> List[CheckResult]:
        return [
            self.check_noise_consistency(image),
            self.check_edge_inconsistency(image),
            self.check_clone_detection(image, deep=deep_clone_scan),
        ]

    def check_noise_consistency(self, image: ImageBuffer) -> CheckResult:
        """Find blocks whose Laplacian energy deviates from the image-wide norm."""
        width, height = image.width, image.height
        blocks_x = width // NOISE_BLOCK
        blocks_y = height // NOISE_BLOCK

        if blocks_x < NOISE_MIN_BLOCKS or blocks_y < NOISE_MIN_BLOCKS:
            return CheckResult(
                id="noise-consistency",
                name="Noise Consistency Analysis",
                status=CheckStatus.INFO,
                summary="Image too small for reliable noise analysis",
                details={"Analysis": "Skipped - insufficient resolution"},
                confidence=0.2,
                notes="The image is too small to perform meaningful noise consistency analysis.",
            )

        laplacian = apply_laplacian(to_grayscale(image.pixels))
        tiles = laplacian[:blocks_y * NOISE_BLOCK, :blocks_x * NOISE_BLOCK].reshape(
            blocks_y, NOISE_BLOCK, blocks_x, NOISE_BLOCK
        )
        energies = tiles.mean(axis=(1, 3))

        mean_energy = mean(energies)
        std_energy = standard_deviation(energies)
        if std_energy > 0:
            z_scores = np.abs(energies - mean_energy) / std_energy
        else:
            z_scores = np.zeros_like(energies)

        outliers = [
            Region(
                x=int(bx) * NOISE_BLOCK,
                y=int(by) * NOISE_BLOCK,
                width=NOISE_BLOCK,
                height=NOISE_BLOCK,
                label=f"Z-score: {z_scores[by, bx]:.1f}",
            )
            for by, bx in np.argwhere(z_scores > self.THRESHOLDS['noise_z_score'])
        ]

        total_blocks = blocks_x * blocks_y
        outlier_ratio = len(outliers) / total_blocks

        if outlier_ratio > self.THRESHOLDS['noise_outlier_warn']:
            status = CheckStatus.WARN
            summary = f"Significant noise inconsistencies detected ({len(outliers)} regions)"
            notes = ("Multiple regions show significantly different noise/texture "
                     "characteristics. This could indicate editing, compositing, or different "
                     "image sources. However, it can also occur naturally at boundaries "
                     "between textured and smooth areas.")
        elif outlier_ratio > self.THRESHOLDS['noise_outlier_info']:
            status = CheckStatus.INFO
            summary = f"Some noise variation detected ({len(outliers)} regions)"
            notes = ("A few regions show different noise characteristics. This is often "
                     "normal and can occur at natural boundaries in images.")
        else:
            status = CheckStatus.OK
            summary = "Noise characteristics appear consistent"
            notes = ("The image shows relatively uniform noise characteristics throughout, "
                     "which is expected for unedited photos.")

        return CheckResult(
            id="noise-consistency",
            name="Noise Consistency Analysis",
            status=status,
            summary=summary,
            details={
                "Blocks Analyzed": total_blocks,
                "Outlier Blocks": len(outliers),
                "Outlier Ratio": round(outlier_ratio, 3),
                "Mean Energy": round(mean_energy, 2),
                "Std Dev": round(std_energy, 2),
            },
            confidence=0.6,
            notes=notes,
            overlay=self.colormap(laplacian),
            regions=outliers,
        )

    def check_edge_inconsistency(self, image: ImageBuffer) -> CheckResult:
        """Count unusually strong edges that might mark composited boundaries.

        Only an informational tier exists above the threshold.
        """
        edges = sobel_magnitude(to_grayscale(image.pixels))

        positive = edges[edges > 0]
        mean_edge = mean(positive)
        std_edge = standard_deviation(positive)
        threshold = mean_edge + self.THRESHOLDS['edge_sigma'] * std_edge
        strong_ratio = int(np.count_nonzero(edges > threshold)) / (image.width * image.height)

        if strong_ratio > self.THRESHOLDS['edge_ratio_info']:
            status = CheckStatus.INFO
            summary = "Contains sharp edges worth reviewing"
            notes = ("The image contains notable sharp edges. Sharp edges can indicate "
                     "artificial boundaries from editing, but are also common in "
                     "high-contrast photos, text, or graphics.")
        else:
            status = CheckStatus.OK
            summary = "Edge characteristics appear natural"
            notes = "Edge distribution appears typical for a natural photograph."

        return CheckResult(
            id="edge-consistency",
            name="Edge Analysis",
            status=status,
            summary=summary,
            details={
                "Mean Edge Strength": round(mean_edge, 2),
                "Strong Edge Ratio": round(strong_ratio, 4),
            },
            confidence=0.5,
            notes=notes,
            overlay=self.colormap(edges),
        )

    def check_clone_detection(self, image: ImageBuffer, deep: bool = False) -> CheckResult:
        """Look for identical coarse block hashes at well-separated positions."""
        block_size, step = CLONE_SCAN_DEEP if deep else CLONE_SCAN_QUICK
        blocks_x = (image.width - block_size) // step
        blocks_y = (image.height - block_size) // step

        if blocks_x < CLONE_MIN_POSITIONS or blocks_y < CLONE_MIN_POSITIONS:
            return CheckResult(
                id="clone-detection",
                name="Clone Detection",
                status=CheckStatus.INFO,
                summary="Image too small for clone analysis",
                details={"Analysis": "Skipped - insufficient resolution"},
                confidence=0.2,
                notes="The image is too small to perform meaningful clone detection.",
            )

        hashes = hash_blocks(to_grayscale(image.pixels), block_size, step, blocks_x, blocks_y)
        ys, xs = np.divmod(np.arange(blocks_x * blocks_y), blocks_x)
        coords = np.column_stack([xs * step, ys * step])

        candidates = self._duplicate_candidates(hashes.ravel(), coords, block_size * 2)
        regions = [
            Region(x=int(coords[i, 0]), y=int(coords[i, 1]), width=block_size, height=block_size)
            for i in candidates
        ]
        matches = deduplicate_regions(regions, block_size)
        logger.debug(f"Clone scan: {len(candidates)} candidate positions, {len(matches)} unique")

        if len(matches) > self.THRESHOLDS['clone_matches_warn']:
            status = CheckStatus.WARN
            summary = f"Potential cloned regions detected ({len(matches)} matches)"
            notes = ("Multiple similar regions found that are spatially separated. This "
                     "could indicate copy-paste editing. However, patterns, textures, and "
                     "repeated elements in scenes can cause false positives.")
        elif matches:
            status = CheckStatus.INFO
            summary = f"Some similar regions found ({len(matches)} matches)"
            notes = ("A few similar regions were detected. This is often caused by natural "
                     "patterns or textures in the image.")
        else:
            status = CheckStatus.OK
            summary = "No obvious cloned regions detected"
            notes = ("No significantly similar regions found. This doesn't guarantee no "
                     "cloning occurred, as sophisticated edits may not be detected.")

        return CheckResult(
            id="clone-detection",
            name="Clone Detection (Deep Scan)" if deep else "Clone Detection",
            status=status,
            summary=summary,
            details={
                "Scan Type": "Deep (slower, more thorough)" if deep else "Quick",
                "Block Size": block_size,
                "Matches Found": len(matches),
                "Blocks Analyzed": blocks_x * blocks_y,
            },
            confidence=0.6 if deep else 0.4,
            notes=notes,
            regions=matches,
        )

    @staticmethod
    def _duplicate_candidates(hashes: np.ndarray, coords: np.ndarray,
                              min_distance: float) -> np.ndarray:
        """Indices of block positions that share a hash with a distant block.

        Buckets are visited in order of first appearance and, within a
        bucket, pairs (i, j) with i < j in lexicographic order; both members
        of every pair farther apart than ``min_distance`` are emitted. A
        position seen again later can never survive de-duplication, so only
        its first occurrence is returned.
        """
        buckets: Dict[int, List[int]] = {}
        for index, value in enumerate(hashes.tolist()):
            buckets.setdefault(value, []).append(index)

        sequence = []
        for members in buckets.values():
            if len(members) < 2:
                continue
            members = np.asarray(members)
            distances = pdist(coords[members].astype(np.float64))
            first, second = np.triu_indices(len(members), k=1)
            far = distances > min_distance
            pairs = np.column_stack([members[first[far]], members[second[far]]])
            sequence.append(pairs.ravel())

        if not sequence:
            return np.empty(0, dtype=np.intp)
        candidates = np.concatenate(sequence)
        _, first_seen = np.unique(candidates, return_index=True)
        return candidates[np.sort(first_seen)]
