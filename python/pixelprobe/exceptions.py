"""
Exception hierarchy for pixelprobe.

Only UnsupportedFormatError and AnalysisCancelledError ever reach the caller
of the pipeline. Failures inside a single check are downgraded to an
informational result at that check's boundary.
"""
from typing import Optional


class PixelProbeError(Exception):
    """Base exception for all pixelprobe errors.

    Attributes:
        message: Human-readable error description
        details: Additional error context
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class UnsupportedFormatError(PixelProbeError):
    """Raised when an input cannot be sniffed or decoded as a supported image."""

    def __init__(self, message: str, filename: Optional[str] = None,
                 detected_type: Optional[str] = None):
        details = {}
        if filename:
            details["filename"] = filename
        if detected_type:
            details["detected_type"] = detected_type
        super().__init__(message, details)
        self.filename = filename
        self.detected_type = detected_type


class ReencodeError(PixelProbeError):
    """Raised when the JPEG round trip used by error-level analysis fails."""


class AnalysisCancelledError(PixelProbeError):
    """Raised at a stage boundary when the caller cancelled the run."""

    def __init__(self, stage: str):
        super().__init__("Analysis cancelled", {"stage": stage})
        self.stage = stage
