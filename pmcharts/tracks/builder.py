"""
Write the track FeatureCollection to a staging GeoJSON file and convert it
into a PMTiles archive.

On conversion failure the staging file is kept and returned instead, so the
caller always ends up with usable output.
"""

import asyncio
import json
import os
import uuid
from pathlib import Path

from pmcharts.tracks.convert import TileConverter
from pmcharts.tracks.types import ArchiveResult, FeatureCollection
from pmcharts.utils.log import get_logger

logger = get_logger(__name__)

STAGING_EXT = ".geojson"
ARCHIVE_EXT = ".pmtiles"


def staging_name(start_text: str, end_text: str) -> str:
    """
    `track_{start}_to_{end}.geojson`, with colons (unsafe in filenames)
    replaced by dashes.
    """
    start = start_text.replace(":", "-")
    end = end_text.replace(":", "-")
    return f"track_{start}_to_{end}{STAGING_EXT}"


def archive_name(staging: str) -> str:
    return staging.removesuffix(STAGING_EXT) + ARCHIVE_EXT


def _write_atomic(path: Path, text: str) -> None:
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, path)
    finally:
        tmp.unlink(missing_ok=True)


class ArchiveBuilder:
    """
    Stage, convert, clean up.

    Parameters
    ----------
    converter
        Tile converter used for the GeoJSON → PMTiles step.
    max_zoom
        Single target zoom level requested from the converter.
    """
    def __init__(self, converter: TileConverter, max_zoom: int = 17) -> None:
        self.converter = converter
        self.max_zoom = max_zoom

    async def build(
        self,
        collection: FeatureCollection,
        target_dir: Path,
        start_text: str,
        end_text: str,
    ) -> ArchiveResult:
        staged = staging_name(start_text, end_text)
        staged_path = target_dir / staged
        payload = json.dumps(collection.to_geojson(), indent=2)
        await asyncio.to_thread(_write_atomic, staged_path, payload)
        logger.info("Generated track GeoJSON: %s with %d features", staged_path, len(collection))

        converted = archive_name(staged)
        result = await self.converter.convert(target_dir, staged, converted, self.max_zoom)
        if not result.ok:
            logger.error("Failed to convert to PMTiles, keeping %s: %s", staged, result.describe())
            return ArchiveResult(filename=staged, feature_count=len(collection))

        await asyncio.to_thread(staged_path.unlink, missing_ok=True)
        logger.info("Removed temporary GeoJSON file: %s", staged_path)
        return ArchiveResult(filename=converted, feature_count=len(collection))
