# pmcharts/tracks/segmenter.py

from datetime import datetime, timedelta

from pmcharts.tracks.calendar import duration_of
from pmcharts.tracks.types import TimeWindow


def segment(start: datetime, end: datetime, resolution: str) -> list[TimeWindow]:
    """
    Partition `[start, end)` into contiguous windows of the resolution's
    duration; the last window is truncated to `end`.

    Returns an empty list when `start >= end`.
    """
    step = timedelta(milliseconds=duration_of(resolution))
    windows: list[TimeWindow] = []
    cursor = start
    while cursor < end:
        # stepping by what is left keeps the sum within datetime range
        window_end = cursor + min(step, end - cursor)
        windows.append(TimeWindow(cursor, window_end))
        cursor = window_end
    return windows
