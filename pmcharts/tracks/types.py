# pmcharts/tracks/types.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Union

from pmcharts.utils.timeutil import to_iso_z

# [longitude, latitude] pairs, at least two per line
LineSegment = List[List[float]]

# (timestamp, value) row as returned by the history service
DataRow = tuple[Any, Any]


@dataclass(frozen=True)
class TrackRequest:
    """
    Validated track-generation request.

    Parameters
    ----------
    start : datetime
        Inclusive start of the requested range (UTC).
    end : datetime
        Exclusive end of the requested range (UTC).
    resolution : str
        One of `hour`, `day`, `week`, `month`, `year`.
    start_text, end_text : str
        The timestamps as received; staging filenames are derived from them.
    """
    start: datetime
    end: datetime
    resolution: str
    start_text: str
    end_text: str

@dataclass(frozen=True)
class TimeWindow:
    """
    Half-open sub-interval `[start, end)` of a requested range.
    """
    start: datetime
    end: datetime

@dataclass(frozen=True)
class PositionSample:
    ts: datetime
    lon: float
    lat: float

@dataclass
class WindowSample:
    """
    Lines produced for one window plus the raw row count the service returned.
    """
    window: TimeWindow
    lines: list[LineSegment]
    point_count: int

@dataclass
class NoData:
    """
    Marker for a window whose query failed; the run continues without it.
    """
    window: TimeWindow
    reason: str

SampleOutcome = Union[WindowSample, NoData]

@dataclass
class TrackFeature:
    """
    One window's lines with descriptive metadata.
    """
    start: datetime
    end: datetime
    resolution: str
    point_count: int
    lines: list[LineSegment]

    def to_geojson(self) -> dict:
        return {
            "type": "Feature",
            "properties": {
                "startTime": to_iso_z(self.start),
                "endTime": to_iso_z(self.end),
                "resolution": self.resolution,
                "pointCount": self.point_count,
            },
            "geometry": {
                "type": "MultiLineString",
                "coordinates": self.lines,
            },
        }

@dataclass
class FeatureCollection:
    """
    Chronologically ordered, append-only list of track features.
    """
    features: list[TrackFeature] = field(default_factory=list)

    def append(self, feature: TrackFeature) -> None:
        self.features.append(feature)

    def __len__(self) -> int:
        return len(self.features)

    def to_geojson(self) -> dict:
        return {
            "type": "FeatureCollection",
            "features": [f.to_geojson() for f in self.features],
        }

@dataclass(frozen=True)
class ArchiveResult:
    """
    `filename` is the converted archive, or the staged GeoJSON when
    conversion failed.
    """
    filename: str
    feature_count: int

class TrackErrorKind(Enum):
    VALIDATION = "validation"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"

@dataclass(frozen=True)
class TrackError:
    kind: TrackErrorKind
    message: str

@dataclass(frozen=True)
class TrackOutcome:
    """
    Result of one pipeline run: exactly one of `result` or `error` is set.
    """
    request: TrackRequest | None = None
    result: ArchiveResult | None = None
    error: TrackError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
