# pmcharts/tracks/assembler.py

from pmcharts.tracks.sampler import TrackSampler
from pmcharts.tracks.types import FeatureCollection, NoData, TimeWindow, TrackFeature
from pmcharts.utils.log import get_logger

logger = get_logger(__name__)


class FeatureAssembler:
    """
    Collect one feature per window that produced lines.

    Windows are sampled one after another, in order, so the collection is
    chronological and the history service sees one query at a time.
    """
    def __init__(self, sampler: TrackSampler) -> None:
        self.sampler = sampler

    async def assemble(self, windows: list[TimeWindow], resolution: str) -> FeatureCollection:
        logger.info("Processing %d time windows", len(windows))
        collection = FeatureCollection()
        skipped = 0
        for window in windows:
            outcome = await self.sampler.sample(window)
            if isinstance(outcome, NoData) or not outcome.lines:
                skipped += 1
                continue
            collection.append(TrackFeature(
                start=window.start,
                end=window.end,
                resolution=resolution,
                point_count=outcome.point_count,
                lines=outcome.lines,
            ))
        logger.info("Assembled %d features (%d windows without data)", len(collection), skipped)
        return collection
