"""Report aggregation, verdicts and the JSON export format."""
import json
from datetime import datetime
from typing import Any, Dict, Iterable

from .types import (
    CheckResult,
    CheckStatus,
    OverallStatus,
    Region,
    Report,
    ReportSummary,
)

OVERLAY_PLACEHOLDER = "[Overlay data not included in export]"

SUSPICIOUS_WARN_COUNT = 3

STATUS_MESSAGES = {
    OverallStatus.CLEAN: "No strong signs of editing",
    OverallStatus.REVIEW: "Some signals worth reviewing",
    OverallStatus.SUSPICIOUS: "Multiple anomalies detected",
}


def summarize(checks: Iterable[CheckResult]) -> ReportSummary:
    summary = ReportSummary()
    for check in checks:
        if check.status == CheckStatus.OK:
            summary.ok_count += 1
        elif check.status == CheckStatus.WARN:
            summary.warn_count += 1
        elif check.status == CheckStatus.FAIL:
            summary.fail_count += 1
        else:
            summary.info_count += 1
    return summary


def derive_overall_status(summary: ReportSummary) -> OverallStatus:
    """Verdict from the status counts alone.

    Any failure or three or more warnings is suspicious; a single warning
    asks for review. Info results never influence the verdict.
    """
    if summary.fail_count > 0 or summary.warn_count >= SUSPICIOUS_WARN_COUNT:
        return OverallStatus.SUSPICIOUS
    if summary.warn_count > 0:
        return OverallStatus.REVIEW
    return OverallStatus.CLEAN


def status_message(status: OverallStatus) -> str:
    return STATUS_MESSAGES[status]


def _region_to_dict(region: Region) -> Dict[str, Any]:
    data = {"x": region.x, "y": region.y, "width": region.width, "height": region.height}
    if region.label is not None:
        data["label"] = region.label
    return data


def _check_to_dict(check: CheckResult) -> Dict[str, Any]:
    data = {
        "id": check.id,
        "name": check.name,
        "status": check.status.value,
        "summary": check.summary,
        "details": dict(check.details),
        "confidence": check.confidence,
        "notes": check.notes,
    }
    if check.overlay is not None:
        data["overlay"] = OVERLAY_PLACEHOLDER
    if check.regions is not None:
        data["regions"] = [_region_to_dict(r) for r in check.regions]
    return data


def export_report(report: Report) -> Dict[str, Any]:
    """Convert a report into a JSON-serialisable dict.

    Overlay rasters are replaced by ``OVERLAY_PLACEHOLDER``; every other
    field, including regions, is carried over verbatim.
    """
    return {
        "filename": report.filename,
        "file_size": report.file_size,
        "dimensions": {"width": report.width, "height": report.height},
        "mime_type": report.mime_type,
        "sha256": report.sha256,
        "timestamp": report.timestamp.isoformat(),
        "overall_status": report.overall_status.value,
        "status_message": status_message(report.overall_status),
        "summary": {
            "ok": report.summary.ok_count,
            "warn": report.summary.warn_count,
            "fail": report.summary.fail_count,
            "info": report.summary.info_count,
        },
        "checks": [_check_to_dict(c) for c in report.checks],
    }


def export_report_json(report: Report, indent: int = 2) -> str:
    return json.dumps(export_report(report), indent=indent, ensure_ascii=False)


def report_from_dict(data: Dict[str, Any]) -> Report:
    """Rebuild a Report from :func:`export_report` output.

    Overlays stay as the placeholder string; the rasters are not recoverable.
    """
    checks = []
    for item in data.get("checks", []):
        regions = item.get("regions")
        checks.append(CheckResult(
            id=item["id"],
            name=item["name"],
            status=CheckStatus(item["status"]),
            summary=item["summary"],
            details=dict(item.get("details", {})),
            confidence=item.get("confidence", 0.0),
            notes=item.get("notes", ""),
            overlay=item.get("overlay"),
            regions=[Region(**r) for r in regions] if regions is not None else None,
        ))

    counts = data.get("summary", {})
    return Report(
        filename=data["filename"],
        file_size=data["file_size"],
        width=data["dimensions"]["width"],
        height=data["dimensions"]["height"],
        mime_type=data["mime_type"],
        timestamp=datetime.fromisoformat(data["timestamp"]),
        checks=checks,
        overall_status=OverallStatus(data["overall_status"]),
        summary=ReportSummary(
            ok_count=counts.get("ok", 0),
            warn_count=counts.get("warn", 0),
            fail_count=counts.get("fail", 0),
            info_count=counts.get("info", 0),
        ),
        sha256=data.get("sha256"),
    )


def report_from_json(text: str) -> Report:
    return report_from_dict(json.loads(text))
