"""
Track generation: validate a request, split it into windows, sample each
window from the history service, and build a PMTiles archive.

Stages:
- validation (fails fast, before any I/O)
- segmentation into fixed-size windows
- sequential per-window sampling and feature assembly
- staging + conversion

Failures come back as a `TrackOutcome` carrying a `TrackError`; only
unexpected exceptions are caught here, and they are reported as INTERNAL.
"""

from __future__ import annotations
from pathlib import Path

from pmcharts.config import TrackConfig
from pmcharts.storage.history import HistoryProvider
from pmcharts.tracks.assembler import FeatureAssembler
from pmcharts.tracks.builder import ArchiveBuilder
from pmcharts.tracks.calendar import RESOLUTIONS
from pmcharts.tracks.convert import TileConverter
from pmcharts.tracks.sampler import TrackSampler
from pmcharts.tracks.segmenter import segment
from pmcharts.tracks.types import TrackError, TrackErrorKind, TrackOutcome, TrackRequest
from pmcharts.utils.log import get_logger
from pmcharts.utils.timeutil import parse_iso

logger = get_logger(__name__)


def _invalid(message: str) -> TrackError:
    return TrackError(TrackErrorKind.VALIDATION, message)


def validate_request(
    start_date: str | None,
    end_date: str | None,
    resolution: str | None,
) -> TrackRequest | TrackError:
    """
    Check presence, resolution label, date syntax and ordering.

    Returns the immutable request, or a VALIDATION error describing the
    first problem found.
    """
    if not start_date or not end_date or not resolution:
        return _invalid("Missing required parameters: startDate, endDate, resolution")
    if resolution not in RESOLUTIONS:
        return _invalid(
            f"Invalid resolution {resolution!r}. Must be one of: {', '.join(RESOLUTIONS)}"
        )
    try:
        start = parse_iso(start_date)
        end = parse_iso(end_date)
    except ValueError:
        return _invalid("Invalid date format. Use ISO 8601 format.")
    if start >= end:
        return _invalid("Start date must be before end date")
    return TrackRequest(start, end, resolution, start_date, end_date)


class TrackPipeline:
    """
    Runs one track-generation request end to end.

    `history` may be None when no history service is configured; every run
    then fails with UNAVAILABLE before touching any window.
    """
    def __init__(
        self,
        history: HistoryProvider | None,
        converter: TileConverter,
        chart_dir: Path,
        cfg: TrackConfig | None = None,
    ) -> None:
        self.history = history
        self.converter = converter
        self.chart_dir = chart_dir
        self.cfg = cfg or TrackConfig()

    async def run(
        self,
        start_date: str | None,
        end_date: str | None,
        resolution: str | None,
    ) -> TrackOutcome:
        checked = validate_request(start_date, end_date, resolution)
        if isinstance(checked, TrackError):
            logger.warning("Rejected track request: %s", checked.message)
            return TrackOutcome(error=checked)
        request = checked

        if self.history is None:
            logger.error("History API not available")
            return TrackOutcome(
                request=request,
                error=TrackError(TrackErrorKind.UNAVAILABLE, "History API not available"),
            )

        logger.info(
            "Generating track: %s to %s, resolution=%s",
            request.start_text, request.end_text, request.resolution,
        )
        try:
            windows = segment(request.start, request.end, request.resolution)
            sampler = TrackSampler(self.history, self.cfg)
            collection = await FeatureAssembler(sampler).assemble(windows, request.resolution)
            builder = ArchiveBuilder(self.converter, self.cfg.max_zoom)
            result = await builder.build(collection, self.chart_dir, request.start_text, request.end_text)
        except Exception as exc:
            logger.exception("Track generation failed")
            return TrackOutcome(
                request=request,
                error=TrackError(TrackErrorKind.INTERNAL, f"Failed to generate track: {exc}"),
            )

        logger.info("Track ready: %s (%d features)", result.filename, result.feature_count)
        return TrackOutcome(request=request, result=result)
