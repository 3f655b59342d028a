import os
import sys
from pathlib import Path

# Add python directory to path to import pixelprobe
sys.path.append(os.path.join(os.path.dirname(__file__), '../python'))

from pixelprobe import AnalysisOptions, ForensicPipeline, export_report_json, load_image_file
from pixelprobe.report import status_message


def main():
    print("--- Image Forensics Triage (Python) ---")

    # Paths
    base_dir = Path(__file__).parent.parent
    if len(sys.argv) > 1:
        image_path = Path(sys.argv[1])
    else:
        image_path = base_dir / "test-data" / "original" / "camera-landscape.jpg"

    if not image_path.exists():
        print("Test data not found! Run scripts/generate-test-data.py first.")
        print(f"Image: {image_path}")
        sys.exit(1)

    image = load_image_file(image_path)
    print(f"Analyzing image: {image_path.name}")
    print(f"Image size: {image.file_size} bytes, {image.width}x{image.height}")

    options = AnalysisOptions(
        deep_clone_scan=True,
        on_progress=lambda message, percent: print(f"  [{percent:3d}%] {message}"),
    )
    report = ForensicPipeline(max_workers=2).analyze(image, options)

    print(f"\nVerdict: {report.overall_status.value} - {status_message(report.overall_status)}")
    for check in report.checks:
        print(f"  {check.status.value:5s} {check.name}: {check.summary}")

    print("\nJSON export:")
    print(export_report_json(report))


if __name__ == "__main__":
    main()
