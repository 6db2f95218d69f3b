from types import MappingProxyType
from typing import Mapping

from pmcharts.utils.validate import ChartProvider
from pmcharts.utils.log import get_logger

logger = get_logger(__name__)


class ChartRegistry:
    """
    Charts currently being served, keyed by identifier.

    Each scan replaces the whole snapshot with a new read-only mapping;
    readers holding an older snapshot keep a consistent view.
    """

    def __init__(self) -> None:
        self._snapshot: Mapping[str, ChartProvider] = MappingProxyType({})

    def snapshot(self) -> Mapping[str, ChartProvider]:
        return self._snapshot

    def get(self, identifier: str) -> ChartProvider | None:
        return self._snapshot.get(identifier)

    def replace(self, charts: Mapping[str, ChartProvider]) -> None:
        """
        Swap in a fresh snapshot built from `charts`.
        """
        self._snapshot = MappingProxyType(dict(charts))
        logger.info("Chart registry now holds %d charts", len(self._snapshot))

    def __len__(self) -> int:
        return len(self._snapshot)
