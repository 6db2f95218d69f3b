"""Shared fakes for the history service and the tile converter."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from pmtiles.tile import Compression, TileType, zxy_to_tileid
from pmtiles.writer import Writer

from pmcharts.storage.history import HistoryError, HistoryQuery
from pmcharts.tracks.convert import ConversionResult, TileConverter

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def rows_at(seconds, start=T0, lon=10.0, lat=50.0):
    """History rows at the given offsets (s) from `start`, one valid position each."""
    return [
        ((start + timedelta(seconds=s)).isoformat().replace("+00:00", "Z"), [lon + i * 0.001, lat + i * 0.001])
        for i, s in enumerate(seconds)
    ]


class FakeHistory:
    """
    Answers queries from a callable `(query, index) -> rows`; raising inside
    the callable simulates a failed query.
    """

    def __init__(self, responder):
        self.responder = responder
        self.queries: list[HistoryQuery] = []

    async def get_values(self, query):
        self.queries.append(query)
        return self.responder(query, len(self.queries) - 1)


class FakeConverter(TileConverter):
    """Returns a canned result; on success it writes a placeholder archive."""

    def __init__(self, result=None):
        self.result = result or ConversionResult(exit_code=0)
        self.calls = []

    def command(self, chart_dir, input_name, output_name, max_zoom):
        return ["fake-tippecanoe", input_name, output_name, str(max_zoom)]

    async def convert(self, chart_dir: Path, input_name, output_name, max_zoom):
        self.calls.append((chart_dir, input_name, output_name, max_zoom))
        if self.result.ok:
            (chart_dir / output_name).write_bytes(b"")
        return self.result


def failing_history(message="history offline"):
    def responder(query, index):
        raise HistoryError(message)
    return FakeHistory(responder)


@pytest.fixture
def chart_dir(tmp_path):
    d = tmp_path / "charts"
    d.mkdir()
    return d


def write_pmtiles(path, name="Harbour", layers=("track",)):
    with open(path, "wb") as f:
        writer = Writer(f)
        writer.write_tile(zxy_to_tileid(0, 0, 0), b"\x1a\x00")
        writer.finalize(
            {
                "tile_type": TileType.MVT,
                "tile_compression": Compression.NONE,
                "min_zoom": 0,
                "max_zoom": 14,
                "min_lon_e7": int(-10.5 * 1e7),
                "min_lat_e7": int(50.25 * 1e7),
                "max_lon_e7": int(-9.5 * 1e7),
                "max_lat_e7": int(51.75 * 1e7),
                "center_zoom": 7,
                "center_lon_e7": int(-10.0 * 1e7),
                "center_lat_e7": int(51.0 * 1e7),
            },
            {
                "name": name,
                "description": "test chart",
                "vector_layers": [{"id": layer, "fields": {}} for layer in layers],
            },
        )
