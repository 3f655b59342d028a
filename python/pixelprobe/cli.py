"""Command-line interface for pixelprobe."""
import argparse
import json
import logging
import sys
from pathlib import Path

from .exceptions import PixelProbeError
from .loader import load_image_file
from .pipeline import ForensicPipeline
from .report import export_report, export_report_json, status_message
from .types import AnalysisOptions, CheckResult, CheckStatus, OverallStatus, Report
from .utils import format_file_size

STATUS_ICONS = {
    CheckStatus.OK: "✓",
    CheckStatus.WARN: "⚠",
    CheckStatus.FAIL: "✗",
    CheckStatus.INFO: "ℹ",
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load(path_arg: str):
    path = Path(path_arg)
    if not path.exists():
        print(f"Error: File not found: {path_arg}", file=sys.stderr)
        sys.exit(1)
    try:
        return load_image_file(path)
    except PixelProbeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _print_check(check: CheckResult) -> None:
    print(f"  {STATUS_ICONS[check.status]} {check.name}: {check.summary}")
    for key, value in check.details.items():
        print(f"      {key}: {value}")
    if check.regions:
        print(f"      Regions: {len(check.regions)}")


def print_report(report: Report) -> None:
    print(f"\n{'='*60}")
    print("  Image Forensics Report")
    print(f"{'='*60}\n")
    print(f"File: {report.filename}")
    print(f"Size: {format_file_size(report.file_size)}")
    print(f"Dimensions: {report.width}x{report.height}")
    print(f"Type: {report.mime_type}")
    print(f"SHA-256: {report.sha256}")
    print(f"\nVerdict: {report.overall_status.value.upper()} - "
          f"{status_message(report.overall_status)}")
    print(f"  {report.summary.ok_count} ok, {report.summary.warn_count} warn, "
          f"{report.summary.fail_count} fail, {report.summary.info_count} info")

    print("\nChecks:")
    for check in report.checks:
        _print_check(check)

    print(f"\n{'='*60}\n")


def analyze_command(args):
    """Analyze an image command."""
    _configure_logging(args.verbose)
    image = _load(args.file)

    pipeline = ForensicPipeline(max_workers=args.workers)
    try:
        report = pipeline.analyze(image, AnalysisOptions(deep_clone_scan=args.deep))
    except PixelProbeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.output:
        Path(args.output).write_text(export_report_json(report), encoding="utf-8")

    if args.json:
        print(json.dumps(export_report(report), indent=2, ensure_ascii=False))
    else:
        print_report(report)
        if args.output:
            print(f"Report saved to: {Path(args.output).resolve()}")

    sys.exit(1 if report.overall_status == OverallStatus.SUSPICIOUS else 0)


def clone_scan_command(args):
    """Deep clone scan command."""
    _configure_logging(args.verbose)
    image = _load(args.file)

    result = ForensicPipeline().deep_clone_scan(image)

    if args.json:
        print(json.dumps({
            "id": result.id,
            "name": result.name,
            "status": result.status.value,
            "summary": result.summary,
            "details": result.details,
            "regions": [
                {"x": r.x, "y": r.y, "width": r.width, "height": r.height}
                for r in result.regions or []
            ],
        }, indent=2))
    else:
        print()
        _print_check(result)
        for region in result.regions or []:
            print(f"      ({region.x}, {region.y}) {region.width}x{region.height}")
        print()

    sys.exit(0)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="pixelprobe",
        description="Image forensics triage: file, metadata, compression and pixel checks"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Run every forensic check on an image")
    analyze_parser.add_argument("file", help="Image file to analyze")
    analyze_parser.add_argument("-j", "--json", action="store_true", help="Output as JSON")
    analyze_parser.add_argument("-d", "--deep", action="store_true", help="Use the deep clone scan")
    analyze_parser.add_argument("-w", "--workers", type=int, default=1, help="Number of threads for metadata and ELA (default: 1)")
    analyze_parser.add_argument("-o", "--output", help="Write the JSON report to this path")
    analyze_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    analyze_parser.set_defaults(func=analyze_command)

    # Clone scan command
    clone_parser = subparsers.add_parser("clone-scan", help="Run only the deep clone scan")
    clone_parser.add_argument("file", help="Image file to scan")
    clone_parser.add_argument("-j", "--json", action="store_true", help="Output as JSON")
    clone_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    clone_parser.set_defaults(func=clone_scan_command)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
