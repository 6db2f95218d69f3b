#!/usr/bin/env python3
"""
CLI entry point for pmcharts.

Defines the following commands:
  pmcharts serve [--chart-path DIR] [--history-url URL] [--port 3000]
  pmcharts scan [--chart-path DIR]
  pmcharts track START END [--resolution day] [--chart-path DIR] [--history-url URL]
  pmcharts version
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace
from importlib.metadata import PackageNotFoundError, version as _get_version

import uvicorn

from pmcharts.config import ServerConfig, TrackConfig, resolve_chart_path
from pmcharts.parsers.pmtiles import scan_for_charts
from pmcharts.server import create_app
from pmcharts.storage.history import SignalKHistoryClient
from pmcharts.tracks.calendar import RESOLUTIONS
from pmcharts.tracks.convert import make_converter
from pmcharts.tracks.pipeline import TrackPipeline
from pmcharts.utils.log import get_logger

logger = get_logger(__name__)


def _config(args: Namespace) -> ServerConfig:
    return ServerConfig.from_env(
        chart_path=args.chart_path,
        history_url=getattr(args, "history_url", None),
        converter=getattr(args, "converter", None),
        port=getattr(args, "port", None),
        host=getattr(args, "host", None),
        url_base=getattr(args, "url_base", None),
    )


def serve(config: ServerConfig) -> None:
    """
    Spin up FastAPI+Uvicorn to serve the chart directory.
    """
    logger.info("Serve: chart_path=%s, port=%d", config.chart_path, config.port)
    app = create_app(config)
    uvicorn.run(app, host=config.host, port=config.port)


def scan(config: ServerConfig) -> None:
    """
    List the charts that `serve` would expose.
    """
    chart_path = resolve_chart_path(config.chart_path)
    for identifier, chart in scan_for_charts(chart_path, config.base_url).items():
        logger.info("%s: %s (z%s-z%s)", identifier, chart.name, chart.minzoom, chart.maxzoom)


def track(config: ServerConfig, start: str, end: str, resolution: str) -> int:
    """
    Generate a track archive without starting the server.

    Returns
    -------
    int
        Process exit code: 0 on success, 1 otherwise.
    """
    logger.info("Track: %s to %s, resolution=%s", start, end, resolution)
    chart_path = resolve_chart_path(config.chart_path)
    history = SignalKHistoryClient(config.history_url) if config.history_url else None
    converter = make_converter(config.converter, config.docker_image, config.tippecanoe_bin)
    pipeline = TrackPipeline(history, converter, chart_path, TrackConfig())
    outcome = asyncio.run(pipeline.run(start, end, resolution))
    if not outcome.ok:
        logger.error("%s: %s", outcome.error.kind.value, outcome.error.message)
        return 1
    logger.info(
        "Wrote %s (%d features)",
        chart_path / outcome.result.filename, outcome.result.feature_count,
    )
    return 0


def version() -> None:
    """
    Print the installed pmcharts package version.
    """
    try:
        ver = _get_version("pmcharts")
    except PackageNotFoundError:
        ver = "unknown"
    logger.info("pmcharts version %s", ver)


def parse_args(argv: list[str] | None = None) -> Namespace:
    """
    Parse command-line arguments and return the populated namespace.
    """
    parser = ArgumentParser(prog="pmcharts")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: ArgumentParser) -> None:
        p.add_argument("--chart-path", type=str, help="Directory holding .pmtiles charts.")

    def add_history(p: ArgumentParser) -> None:
        p.add_argument("--history-url", type=str, help="Base URL of the Signal K server.")
        p.add_argument(
            "--converter", choices=["docker", "local"], help="How to run tippecanoe."
        )

    # pmcharts serve
    p = subparsers.add_parser("serve", help="Serve charts via FastAPI + Uvicorn.")
    add_common(p)
    add_history(p)
    p.add_argument("--host", type=str, help="Interface to bind.")
    p.add_argument("--port", type=int, help="Port number to serve on.")
    p.add_argument("--url-base", type=str, help="External base URL for chart links.")

    # pmcharts scan
    p = subparsers.add_parser("scan", help="List charts in the chart directory.")
    add_common(p)

    # pmcharts track
    p = subparsers.add_parser("track", help="Generate a vessel track archive.")
    p.add_argument("start", type=str, help="ISO8601 start time.")
    p.add_argument("end", type=str, help="ISO8601 end time.")
    p.add_argument("--resolution", choices=RESOLUTIONS, default="day", help="Window size.")
    add_common(p)
    add_history(p)

    # pmcharts version
    subparsers.add_parser("version", help="Show pmcharts version and exit.")

    return parser.parse_args(argv)


def main() -> None:
    """
    Entry point: dispatch to the selected subcommand.
    """
    args = parse_args()
    match args.command:
        case "serve":
            serve(_config(args))
        case "scan":
            scan(_config(args))
        case "track":
            sys.exit(track(_config(args), args.start, args.end, args.resolution))
        case "version":
            version()
        case _:
            sys.exit(1)


if __name__ == "__main__":
    main()
