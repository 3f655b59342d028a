"""
Forensic analysis pipeline.

Runs the checks stage by stage in a fixed order, reports progress, and
assembles the final report. Metadata extraction and the ELA re-encode are
independent of everything else and can run on a thread pool.
"""
import concurrent.futures
import functools
import hashlib
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .compression import CompressionAnalyzer
from .ela import ErrorLevelAnalyzer, JpegReencoder
from .exceptions import AnalysisCancelledError
from .file_checks import check_animation, check_file_properties, check_file_type
from .loader import load_image
from .metadata import MetadataExtractor, check_editing_software, check_exif_presence
from .pixel import Colormap, PixelAnalyzer
from .social import check_social_media_hint
from .types import (
    AnalysisOptions,
    CheckResult,
    CheckStatus,
    ExifData,
    ImageBuffer,
    Report,
)
from .report import derive_overall_status, summarize
from .utils import to_heatmap

logger = logging.getLogger(__name__)

COMPLETE_MESSAGE = "Analysis complete"
COMPLETE_PERCENT = 100


class Stage(Enum):
    """Pipeline stages in execution order, with their progress checkpoints."""
    FILE = ("Analyzing file structure...", 10)
    METADATA = ("Extracting metadata...", 25)
    COMPRESSION = ("Analyzing compression...", 40)
    PIXEL = ("Analyzing pixel consistency...", 55)
    ELA = ("Performing Error Level Analysis...", 75)
    SOCIAL = ("Checking for social media patterns...", 90)

    @property
    def message(self) -> str:
        return self.value[0]

    @property
    def percent(self) -> int:
        return self.value[1]


def failed_check(check_id: str, name: str, error: Exception) -> CheckResult:
    """Informational stand-in for a check that raised."""
    return CheckResult(
        id=check_id,
        name=name,
        status=CheckStatus.INFO,
        summary="Check could not be completed",
        details={"Error": str(error) or type(error).__name__},
        confidence=0.1,
        notes="This check failed to run. Its absence does not indicate manipulation.",
    )


class ForensicPipeline:
    """Runs every forensic check over an image and builds a report.

    Args:
        metadata_extractor: Object with ``extract(raw) -> Optional[dict]``
        reencoder: JPEG round trip used by error-level analysis
        max_workers: Threads for metadata extraction and ELA. With 1 they
            run inline.
        colormap: Overlay colouring for the pixel checks
    """

    def __init__(self, metadata_extractor: Optional[MetadataExtractor] = None,
                 reencoder: Optional[JpegReencoder] = None,
                 max_workers: int = 1,
                 colormap: Colormap = to_heatmap):
        self.metadata_extractor = metadata_extractor or MetadataExtractor()
        self.compression = CompressionAnalyzer()
        self.pixel = PixelAnalyzer(colormap=colormap)
        self.ela = ErrorLevelAnalyzer(reencoder or JpegReencoder())
        self._max_workers = max(1, max_workers)

    def analyze(self, image: ImageBuffer, options: Optional[AnalysisOptions] = None) -> Report:
        """Run all stages over a decoded image.

        Raises:
            AnalysisCancelledError: if ``options.cancel_event`` is set when a
                stage is about to start
        """
        if options is None:
            options = AnalysisOptions()

        if self._max_workers > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                try:
                    return self._run(image, options, executor)
                except AnalysisCancelledError:
                    executor.shutdown(wait=False, cancel_futures=True)
                    raise
        return self._run(image, options, None)

    def _run(self, image: ImageBuffer, options: AnalysisOptions,
             executor: Optional[concurrent.futures.Executor]) -> Report:
        exif_result = self._schedule(executor, self._extract_metadata, image)
        ela_result = self._schedule(
            executor, self._run_check, "ela", "Error Level Analysis", self.ela.analyze, image
        )

        checks: List[CheckResult] = []

        self._enter(Stage.FILE, options)
        checks.extend(self._run_checks(image, [
            ("file-type", "File Type Detection", check_file_type),
            ("file-properties", "File Properties", check_file_properties),
            ("animation", "Animation Detection", check_animation),
        ]))

        self._enter(Stage.METADATA, options)
        exif = exif_result()
        checks.extend(self._run_checks(exif, [
            ("exif-presence", "EXIF Metadata", check_exif_presence),
            ("editing-software", "Editing Software Detection", check_editing_software),
        ]))

        self._enter(Stage.COMPRESSION, options)
        compression_checks = self._run_checks(image, [
            ("jpeg-quality", "JPEG Quality Analysis", self.compression.check_jpeg_quality),
            ("double-compression", "Compression Artifacts (Experimental)",
             self.compression.check_double_compression),
            ("uniform-areas", "Uniform Area Analysis", self.compression.check_uniform_areas),
        ])
        checks.extend(compression_checks)
        jpeg_quality = self._jpeg_quality(compression_checks)

        self._enter(Stage.PIXEL, options)
        checks.extend(self._run_checks(image, [
            ("noise-consistency", "Noise Consistency Analysis",
             self.pixel.check_noise_consistency),
            ("edge-consistency", "Edge Analysis", self.pixel.check_edge_inconsistency),
            ("clone-detection", "Clone Detection",
             functools.partial(self.pixel.check_clone_detection, deep=options.deep_clone_scan)),
        ]))

        self._enter(Stage.ELA, options)
        checks.append(ela_result())

        self._enter(Stage.SOCIAL, options)
        social = self._run_check(
            "social-media-hint", "Social Media Detection",
            check_social_media_hint, image, exif, jpeg_quality,
        )
        checks.append(social)

        summary = summarize(checks)
        report = Report(
            filename=image.filename,
            file_size=image.file_size,
            width=image.width,
            height=image.height,
            mime_type=image.declared_mime or image.detected_mime or "unknown",
            timestamp=datetime.now(timezone.utc),
            checks=checks,
            overall_status=derive_overall_status(summary),
            summary=summary,
            sha256=hashlib.sha256(image.raw_bytes).hexdigest(),
        )
        self._progress(options, COMPLETE_MESSAGE, COMPLETE_PERCENT)
        logger.debug(f"{image.filename}: {report.overall_status.value} "
                     f"({summary.warn_count} warn, {summary.fail_count} fail)")
        return report

    def analyze_bytes(self, raw: bytes, filename: str, declared_mime: Optional[str] = None,
                      options: Optional[AnalysisOptions] = None) -> Report:
        """Decode and analyse raw bytes.

        Only UnsupportedFormatError and AnalysisCancelledError propagate.
        """
        image = load_image(raw, filename, declared_mime)
        return self.analyze(image, options)

    def deep_clone_scan(self, image: ImageBuffer) -> CheckResult:
        """Run the slower, finer clone scan on its own."""
        return self._run_check(
            "clone-detection", "Clone Detection (Deep Scan)",
            functools.partial(self.pixel.check_clone_detection, deep=True), image,
        )

    def _extract_metadata(self, image: ImageBuffer) -> Optional[ExifData]:
        try:
            return self.metadata_extractor.extract(image.raw_bytes)
        except Exception as e:
            logger.warning(f"EXIF extraction failed: {e}")
            return None

    def _run_checks(self, subject, checks: List[Tuple[str, str, Callable]]) -> List[CheckResult]:
        results = []
        for check_id, name, fn in checks:
            result = self._run_check(check_id, name, fn, subject)
            if result is not None:
                results.append(result)
        return results

    @staticmethod
    def _run_check(check_id: str, name: str, fn: Callable, *args) -> Optional[CheckResult]:
        try:
            return fn(*args)
        except Exception as e:
            logger.exception(f"Check {check_id} failed")
            return failed_check(check_id, name, e)

    @staticmethod
    def _schedule(executor: Optional[concurrent.futures.Executor],
                  fn: Callable, *args) -> Callable[[], object]:
        if executor is None:
            return functools.partial(fn, *args)
        return executor.submit(fn, *args).result

    @staticmethod
    def _jpeg_quality(compression_checks: List[CheckResult]) -> Optional[int]:
        for check in compression_checks:
            if check.id == "jpeg-quality":
                quality = check.details.get("Quality Estimate")
                return quality if isinstance(quality, int) else None
        return None

    def _enter(self, stage: Stage, options: AnalysisOptions) -> None:
        if options.cancel_event is not None and options.cancel_event.is_set():
            logger.debug(f"Cancelled before stage {stage.name}")
            raise AnalysisCancelledError(stage.name.lower())
        logger.debug(f"Stage {stage.name}")
        self._progress(options, stage.message, stage.percent)

    @staticmethod
    def _progress(options: AnalysisOptions, message: str, percent: int) -> None:
        if options.on_progress is not None:
            options.on_progress(message, percent)


def analyze_image(raw: bytes, filename: str, declared_mime: Optional[str] = None,
                  options: Optional[AnalysisOptions] = None, max_workers: int = 1) -> Report:
    """Analyse raw image bytes with a default pipeline."""
    return ForensicPipeline(max_workers=max_workers).analyze_bytes(
        raw, filename, declared_mime, options
    )
