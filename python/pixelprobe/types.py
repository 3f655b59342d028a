"""Type definitions for pixelprobe."""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import cached_property
from threading import Event
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np


DetailValue = Union[str, int, float, bool, None]
ExifData = Dict[str, Any]
ProgressCallback = Callable[[str, int], None]


class CheckStatus(Enum):
    """Outcome of a single forensic check."""
    OK = "ok"
    WARN = "warn"
    FAIL = "fail"
    INFO = "info"


class OverallStatus(Enum):
    """Verdict derived from the status counts of a report."""
    CLEAN = "clean"
    REVIEW = "review"
    SUSPICIOUS = "suspicious"


@dataclass
class Region:
    """Rectangle of interest in source-pixel coordinates."""
    x: int
    y: int
    width: int
    height: int
    label: Optional[str] = None


@dataclass
class CheckResult:
    """Result of one forensic check.

    ``overlay`` is an RGBA raster with the same height and width as the
    analysed image. Reports loaded back from an export carry the export
    placeholder string instead.
    """
    id: str
    name: str
    status: CheckStatus
    summary: str
    details: Dict[str, DetailValue] = field(default_factory=dict)
    confidence: float = 0.0
    notes: str = ""
    overlay: Optional[Union[np.ndarray, str]] = None
    regions: Optional[List[Region]] = None

    def __post_init__(self):
        self.confidence = min(1.0, max(0.0, float(self.confidence)))


@dataclass(frozen=True, eq=False)
class ImageBuffer:
    """Read-only snapshot of one image for the lifetime of an analysis run."""
    filename: str
    declared_mime: str
    file_size: int
    width: int
    height: int
    pixels: np.ndarray
    raw_bytes: bytes

    def __post_init__(self):
        if self.pixels.shape != (self.height, self.width, 4):
            raise ValueError(
                f"pixel buffer shape {self.pixels.shape} does not match "
                f"{self.width}x{self.height} RGBA"
            )
        # a read-only view still shares memory with its writable owner
        if self.pixels.flags.writeable or self.pixels.base is not None:
            pixels = self.pixels.copy()
            pixels.setflags(write=False)
            object.__setattr__(self, "pixels", pixels)

    @cached_property
    def detected_mime(self) -> Optional[str]:
        from .sniffer import detect_file_type
        return detect_file_type(self.raw_bytes)


@dataclass
class ReportSummary:
    """Status counts over the checks of a report."""
    ok_count: int = 0
    warn_count: int = 0
    fail_count: int = 0
    info_count: int = 0

    @property
    def total(self) -> int:
        return self.ok_count + self.warn_count + self.fail_count + self.info_count


@dataclass
class Report:
    """Complete forensic report for one image."""
    filename: str
    file_size: int
    width: int
    height: int
    mime_type: str
    timestamp: datetime
    checks: List[CheckResult] = field(default_factory=list)
    overall_status: OverallStatus = OverallStatus.CLEAN
    summary: ReportSummary = field(default_factory=ReportSummary)
    sha256: Optional[str] = None


@dataclass
class AnalysisOptions:
    """Options for a single pipeline run."""
    deep_clone_scan: bool = False
    on_progress: Optional[ProgressCallback] = None
    cancel_event: Optional[Event] = None
