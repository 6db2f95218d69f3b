# pmcharts/config.py

import os
from dataclasses import dataclass
from pathlib import Path

from pmcharts.utils.log import get_logger

logger = get_logger(__name__)

DEFAULT_CHART_PATH = Path.home() / ".signalk" / "charts" / "pmtiles"


@dataclass
class TrackConfig:
    """
    Tunables for the track-generation pipeline.

    Attributes
    ----------
    sampling_resolution_s
        Sub-sampling resolution (s) requested from the history service.
    max_gap_s
        Largest gap (s) between consecutive samples before a line is broken.
    max_zoom
        Single target zoom level for the tile conversion.
    path
        Signal K path holding the vessel position.
    aggregate
        Aggregation method applied by the history service per sample.
    context
        Signal K context whose history is queried.
    """
    sampling_resolution_s: int = 10
    max_gap_s:             int = 120
    max_zoom:              int = 17
    path:                  str = "navigation.position"
    aggregate:             str = "average"
    context:               str = "vessels.self"


@dataclass
class ServerConfig:
    """
    Runtime settings for the chart server and the CLI.

    Attributes
    ----------
    chart_path
        Directory scanned for `.pmtiles` archives; generated tracks land here.
    history_url
        Base URL of the Signal K server providing the history API.
        None means the history capability is absent.
    converter
        Which tile converter to use: "docker" or "local".
    docker_image
        Image used by the Docker converter.
    tippecanoe_bin
        Binary used by the local converter.
    host, port
        Bind address for `pmcharts serve`.
    url_base
        External base URL advertised in chart descriptors.
    """
    chart_path:     Path
    history_url:    str | None = None
    converter:      str = "docker"
    docker_image:   str = "versatiles/versatiles-tippecanoe:latest"
    tippecanoe_bin: str = "tippecanoe"
    host:           str = "127.0.0.1"
    port:           int = 3000
    url_base:       str | None = None

    @classmethod
    def from_env(cls, **overrides):
        """Build a config from PMCHARTS_* environment variables, then apply overrides."""
        values = {
            "chart_path": Path(os.environ.get("PMCHARTS_CHART_PATH", DEFAULT_CHART_PATH)),
            "history_url": os.environ.get("PMCHARTS_HISTORY_URL") or None,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        values["chart_path"] = Path(values["chart_path"])
        return cls(**values)

    @property
    def base_url(self) -> str:
        return self.url_base or f"http://localhost:{self.port}"


def resolve_chart_path(chart_path: Path) -> Path:
    """
    Make sure the chart directory exists, creating it when missing.
    """
    chart_path = chart_path.expanduser().resolve()
    if not chart_path.is_dir():
        logger.warning("Chart path %s not found, creating it", chart_path)
        chart_path.mkdir(parents=True, exist_ok=True)
    return chart_path
