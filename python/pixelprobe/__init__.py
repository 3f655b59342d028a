"""
pixelprobe - Python Implementation

Image forensics triage: heuristic checks over file structure, metadata,
compression and pixel statistics that flag images worth a closer look.
"""

from .pipeline import ForensicPipeline, Stage, analyze_image
from .loader import load_image, load_image_file
from .report import (
    derive_overall_status,
    export_report,
    export_report_json,
    report_from_json,
    status_message,
    summarize,
)
from .types import (
    AnalysisOptions,
    CheckResult,
    CheckStatus,
    ImageBuffer,
    OverallStatus,
    Region,
    Report,
    ReportSummary,
)
from .exceptions import (
    AnalysisCancelledError,
    PixelProbeError,
    ReencodeError,
    UnsupportedFormatError,
)

__version__ = "0.0.1"
__all__ = [
    "ForensicPipeline",
    "Stage",
    "analyze_image",
    "load_image",
    "load_image_file",
    "derive_overall_status",
    "export_report",
    "export_report_json",
    "report_from_json",
    "status_message",
    "summarize",
    "AnalysisOptions",
    "CheckResult",
    "CheckStatus",
    "ImageBuffer",
    "OverallStatus",
    "Region",
    "Report",
    "ReportSummary",
    "AnalysisCancelledError",
    "PixelProbeError",
    "ReencodeError",
    "UnsupportedFormatError",
]
