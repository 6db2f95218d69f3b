# pmcharts/utils/timeutil.py

"""
Timestamp parsing and formatting shared by the pipeline and the history client.
"""

from datetime import datetime, timezone


def parse_iso(text: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    A trailing `Z` is accepted and naive timestamps are taken as UTC.

    Raises
    ------
    ValueError
        If the text is not a valid ISO-8601 timestamp.
    """
    s = text.strip()
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso_z(dt: datetime) -> str:
    """
    Format as `YYYY-MM-DDTHH:MM:SS.mmmZ`, the form the history API and
    browsers emit.
    """
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
