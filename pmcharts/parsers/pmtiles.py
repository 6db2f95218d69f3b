"""
PMTiles chart discovery: find `.pmtiles` archives in a directory and describe
each one from its header and metadata, read through the `pmtiles` library.
"""

from pathlib import Path
from typing import Callable, Optional, BinaryIO

from pmtiles.reader import Reader

from pmcharts.utils.validate import ChartProvider, ChartV1, ChartV2
from pmcharts.utils.log import get_logger

logger = get_logger(__name__)

PMTILES_PREFIX = "/pmtiles/"
API_ROUTE_PREFIX = {
    1: "/signalk/v1/api/resources",
    2: "/signalk/v2/api/resources",
}
BASE_PATH_TOKEN = "~basePath~"

# tile_type enum name -> chart `format` field
TILE_FORMATS = {
    "MVT": "pbf",
    "PNG": "png",
    "JPEG": "jpg",
    "WEBP": "webp",
    "AVIF": "avif",
}


class ChartReadError(Exception):
    """Raised when a file cannot be read as a PMTiles archive."""


def _file_source(f: BinaryIO) -> Callable[[int, int], bytes]:
    def get_bytes(offset: int, length: int) -> bytes:
        f.seek(offset)
        return f.read(length)
    return get_bytes


def _vector_layers(metadata: dict) -> list[str]:
    layers = metadata.get("vector_layers") or []
    return [layer["id"] for layer in layers if isinstance(layer, dict) and "id" in layer]


def open_pmtiles_file(chart_dir: Path, filename: str, url_base: str) -> ChartProvider:
    """
    Build a chart descriptor for `chart_dir/filename`.

    Parameters
    ----------
    chart_dir
        Directory holding the archive.
    filename
        Archive file name; its stem becomes the chart identifier.
    url_base
        External base URL used to build the tile URL.

    Raises
    ------
    ChartReadError
        If the file is not a readable PMTiles archive, or its header and
        metadata do not describe a chart.
    """
    path = chart_dir / filename
    identifier = path.stem
    try:
        with open(path, "rb") as f:
            if f.read(7) != b"PMTiles":
                raise ChartReadError(f"{filename} is not a PMTiles archive")
            reader = Reader(_file_source(f))
            header = reader.header()
            metadata = reader.metadata() or {}
        return _describe(path, identifier, header, metadata, url_base)
    except ChartReadError:
        raise
    except Exception as exc:
        raise ChartReadError(f"cannot read {filename}: {exc}") from exc


def _describe(path: Path, identifier: str, header: dict, metadata: dict, url_base: str) -> ChartProvider:
    if not isinstance(metadata, dict):
        raise ChartReadError(f"{path.name} has non-object metadata")
    layers = _vector_layers(metadata)
    tile_type = header.get("tile_type")
    fmt: Optional[str] = TILE_FORMATS.get(getattr(tile_type, "name", ""), None)
    url = f"{url_base.rstrip('/')}{PMTILES_PREFIX}{identifier}"
    bounds = [
        header["min_lon_e7"] / 1e7,
        header["min_lat_e7"] / 1e7,
        header["max_lon_e7"] / 1e7,
        header["max_lat_e7"] / 1e7,
    ]

    return ChartProvider(
        identifier=identifier,
        name=metadata.get("name") or identifier,
        description=metadata.get("description") or "",
        file_path=str(path),
        v1=ChartV1(tilemapUrl=url, chartLayers=layers),
        v2=ChartV2(url=url, layers=layers),
        bounds=bounds,
        minzoom=header.get("min_zoom"),
        maxzoom=header.get("max_zoom"),
        format=fmt,
        layers=layers,
    )


def scan_for_charts(chart_dir: Path, url_base: str) -> dict[str, ChartProvider]:
    """
    Describe every `.pmtiles` file in `chart_dir`, in file-name order.

    Unreadable archives are logged and skipped; an unreadable directory is
    logged and yields no charts.
    """
    try:
        entries = sorted(chart_dir.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        logger.error("Error reading charts directory %s: %s", chart_dir, exc)
        return {}

    charts: dict[str, ChartProvider] = {}
    for entry in entries:
        if entry.suffix.lower() != ".pmtiles" or not entry.is_file():
            continue
        try:
            chart = open_pmtiles_file(chart_dir, entry.name, url_base)
        except ChartReadError as exc:
            logger.warning("Skipping chart: %s", exc)
            continue
        charts[chart.identifier] = chart
    logger.info("Found %d charts in %s", len(charts), chart_dir)
    return charts


def clean_chart_provider(provider: ChartProvider, version: int = 1) -> dict:
    """
    Public view of a chart: internal fields dropped, the v1 or v2 block
    merged into the top level with the API prefix substituted.
    """
    data = provider.model_dump(exclude={"file_path", "file_format", "v1", "v2"}, exclude_none=True)
    prefix = API_ROUTE_PREFIX[version]
    if version == 1 and provider.v1 is not None:
        v = provider.v1.model_dump()
        v["tilemapUrl"] = v["tilemapUrl"].replace(BASE_PATH_TOKEN, prefix)
        data.update(v)
    elif version == 2 and provider.v2 is not None:
        v = provider.v2.model_dump()
        v["url"] = v["url"].replace(BASE_PATH_TOKEN, prefix) if v["url"] else ""
        data.update(v)
    return data
