"""
Client for the Signal K history API, the source of past vessel positions.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import requests

from pmcharts.tracks.types import DataRow
from pmcharts.utils.log import get_logger
from pmcharts.utils.timeutil import to_iso_z

logger = get_logger(__name__)

HISTORY_VALUES_PATH = "/signalk/v2/api/history/values"


class HistoryError(Exception):
    """Raised when the history service cannot answer a query."""


@dataclass(frozen=True)
class HistoryQuery:
    """
    One history lookup: a time range sampled at `resolution_s` seconds for
    a single path, aggregated per sample with `aggregate`.
    """
    start: datetime
    end: datetime
    resolution_s: int
    path: str
    aggregate: str
    context: str = "vessels.self"

    def params(self) -> dict[str, str | int]:
        return {
            "from": to_iso_z(self.start),
            "to": to_iso_z(self.end),
            "context": self.context,
            "paths": f"{self.path}:{self.aggregate}",
            "resolution": self.resolution_s,
        }


class HistoryProvider(Protocol):
    async def get_values(self, query: HistoryQuery) -> list[DataRow]:
        ...


class SignalKHistoryClient:
    """
    Query `GET {base_url}/signalk/v2/api/history/values`.

    The blocking HTTP call runs in a worker thread so the event loop stays
    free while a window is fetched.
    """

    def __init__(self, base_url: str, timeout: float = 30.0, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    async def get_values(self, query: HistoryQuery) -> list[DataRow]:
        return await asyncio.to_thread(self._fetch, query)

    def _fetch(self, query: HistoryQuery) -> list[DataRow]:
        url = self.base_url + HISTORY_VALUES_PATH
        logger.debug("GET %s %s", url, query.params())
        try:
            resp = self.session.get(url, params=query.params(), timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.RequestException as exc:
            raise HistoryError(f"history query failed: {exc}") from exc
        except ValueError as exc:
            raise HistoryError(f"history response is not JSON: {exc}") from exc

        if not isinstance(body, dict):
            raise HistoryError("history response is not an object")
        data = body.get("data") or []
        if not isinstance(data, list):
            raise HistoryError("history response 'data' is not a list")
        return [(row[0], row[1]) for row in data if isinstance(row, (list, tuple)) and len(row) >= 2]
