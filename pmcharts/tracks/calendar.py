# pmcharts/tracks/calendar.py

"""
Fixed window durations per resolution label.

Month and year are approximations (30 and 365 days), not calendar-aware.
"""

HOUR_MS = 60 * 60 * 1000
DAY_MS  = 24 * HOUR_MS

DURATIONS_MS: dict[str, int] = {
    "hour":  HOUR_MS,
    "day":   DAY_MS,
    "week":  7 * DAY_MS,
    "month": 30 * DAY_MS,
    "year":  365 * DAY_MS,
}

RESOLUTIONS: tuple[str, ...] = tuple(DURATIONS_MS)


def duration_of(resolution: str) -> int:
    """
    Window duration in milliseconds for `resolution`.

    Unknown labels fall back to one day; callers validate labels upstream.
    """
    return DURATIONS_MS.get(resolution, DAY_MS)
