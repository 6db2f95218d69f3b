"""
Turn history rows for one time window into gap-broken polylines.

A gap longer than `max_gap` between consecutive valid samples means the
vessel was stationary or offline; the path is split there rather than
bridged with a straight line.
"""

from __future__ import annotations
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from pmcharts.config import TrackConfig
from pmcharts.storage.history import HistoryProvider, HistoryQuery
from pmcharts.tracks.types import DataRow, LineSegment, NoData, PositionSample, SampleOutcome, TimeWindow, WindowSample
from pmcharts.utils.log import get_logger
from pmcharts.utils.timeutil import parse_iso, to_iso_z

logger = get_logger(__name__)


def _is_coord(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _parse_ts(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if _is_coord(value):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            return parse_iso(value)
        except (ValueError, OverflowError):
            return None
    return None


def parse_row(row: DataRow) -> PositionSample | None:
    """
    Convert a `(timestamp, [lon, lat])` row into a sample, or None when the
    position is missing or not numeric.
    """
    if not isinstance(row, (list, tuple)) or len(row) < 2:
        return None
    ts_raw, position = row[0], row[1]
    if not isinstance(position, (list, tuple)) or len(position) < 2:
        return None
    lon, lat = position[0], position[1]
    if not (_is_coord(lon) and _is_coord(lat)):
        return None
    ts = _parse_ts(ts_raw)
    if ts is None:
        return None
    return PositionSample(ts, float(lon), float(lat))


def build_lines(rows: Iterable[DataRow], max_gap: timedelta) -> list[LineSegment]:
    """
    Split time-ordered rows into line segments.

    Invalid rows are skipped without touching the current segment. A new
    segment starts whenever the time since the previous valid sample
    exceeds `max_gap`. Segments with fewer than two points are dropped.
    """
    lines: list[LineSegment] = []
    current: LineSegment = []
    last_ts: datetime | None = None

    for row in rows:
        sample = parse_row(row)
        if sample is None:
            continue
        if last_ts is not None and sample.ts - last_ts > max_gap:
            if len(current) >= 2:
                lines.append(current)
            current = []
        current.append([sample.lon, sample.lat])
        last_ts = sample.ts

    if len(current) >= 2:
        lines.append(current)
    return lines


class TrackSampler:
    """
    Fetch and convert one window at a time. Never raises: a failed query
    comes back as `NoData`.
    """
    def __init__(self, history: HistoryProvider, cfg: TrackConfig) -> None:
        self.history = history
        self.cfg = cfg

    async def sample(self, window: TimeWindow) -> SampleOutcome:
        query = HistoryQuery(
            start=window.start,
            end=window.end,
            resolution_s=self.cfg.sampling_resolution_s,
            path=self.cfg.path,
            aggregate=self.cfg.aggregate,
            context=self.cfg.context,
        )
        try:
            rows = list(await self.history.get_values(query) or [])
            lines = build_lines(rows, timedelta(seconds=self.cfg.max_gap_s))
        except Exception as exc:
            logger.warning("Error fetching data for window %s: %s", to_iso_z(window.start), exc)
            return NoData(window, str(exc))

        logger.debug(
            "Window %s: %d rows, %d lines", to_iso_z(window.start), len(rows), len(lines)
        )
        return WindowSample(window, lines, len(rows))
