# pmcharts/server.py
"""
FastAPI server exposing PMTiles charts and vessel track generation.
"""

import asyncio
from dataclasses import replace

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import FileResponse, JSONResponse, PlainTextResponse

from pmcharts.config import ServerConfig, TrackConfig, resolve_chart_path
from pmcharts.parsers.pmtiles import API_ROUTE_PREFIX, PMTILES_PREFIX, clean_chart_provider, scan_for_charts
from pmcharts.storage.history import HistoryProvider, SignalKHistoryClient
from pmcharts.storage.registry import ChartRegistry
from pmcharts.tracks.convert import TileConverter, make_converter
from pmcharts.tracks.pipeline import TrackPipeline
from pmcharts.tracks.types import TrackErrorKind
from pmcharts.utils.log import get_logger
from pmcharts.utils.validate import TrackRequestBody, TrackResponse

logger = get_logger(__name__)

ERROR_STATUS = {
    TrackErrorKind.VALIDATION: 400,
    TrackErrorKind.UNAVAILABLE: 503,
    TrackErrorKind.INTERNAL: 500,
}


async def rescan(app: FastAPI) -> int:
    """
    Rescan the chart directory and swap the registry snapshot.
    """
    config: ServerConfig = app.state.config
    charts = await asyncio.to_thread(scan_for_charts, config.chart_path, config.base_url)
    app.state.registry.replace(charts)
    return len(charts)


def create_app(
    config: ServerConfig,
    history: HistoryProvider | None = None,
    converter: TileConverter | None = None,
    track_cfg: TrackConfig | None = None,
) -> FastAPI:
    """
    Build a FastAPI instance serving the charts found in `config.chart_path`.

    `history` defaults to a Signal K client when `config.history_url` is set;
    without either, track generation answers 503.
    """
    config = replace(config, chart_path=resolve_chart_path(config.chart_path))
    if history is None and config.history_url:
        history = SignalKHistoryClient(config.history_url)
    if converter is None:
        converter = make_converter(config.converter, config.docker_image, config.tippecanoe_bin)

    app = FastAPI()
    app.state.config = config
    app.state.registry = ChartRegistry()
    app.state.pipeline = TrackPipeline(history, converter, config.chart_path, track_cfg)
    app.state.registry.replace(scan_for_charts(config.chart_path, config.base_url))
    logger.info("Chart path: %s", config.chart_path)

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Malformed bodies are client errors: 400 with an `error` message.
        """
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
            for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {problems}"})

    @app.get("/api/status", response_class=JSONResponse)
    async def status(request: Request) -> JSONResponse:
        return JSONResponse(
            status_code=200,
            content={"status": "ok", "charts": len(request.app.state.registry)},
        )

    @app.post("/api/rescan", response_class=JSONResponse)
    async def post_rescan(request: Request) -> JSONResponse:
        count = await rescan(request.app)
        return JSONResponse(status_code=200, content={"charts": count})

    def _list_charts(request: Request, version: int) -> JSONResponse:
        charts = request.app.state.registry.snapshot()
        return JSONResponse(
            status_code=200,
            content={k: clean_chart_provider(p, version) for k, p in charts.items()},
        )

    def _get_chart(request: Request, identifier: str, version: int):
        provider = request.app.state.registry.get(identifier)
        if provider is None:
            return PlainTextResponse("Not found", status_code=404)
        return JSONResponse(status_code=200, content=clean_chart_provider(provider, version))

    @app.get(API_ROUTE_PREFIX[1] + "/charts")
    async def list_charts_v1(request: Request) -> JSONResponse:
        return _list_charts(request, 1)

    @app.get(API_ROUTE_PREFIX[1] + "/charts/{identifier}")
    async def get_chart_v1(request: Request, identifier: str):
        return _get_chart(request, identifier, 1)

    @app.get(API_ROUTE_PREFIX[2] + "/charts")
    async def list_charts_v2(request: Request) -> JSONResponse:
        return _list_charts(request, 2)

    @app.get(API_ROUTE_PREFIX[2] + "/charts/{identifier}")
    async def get_chart_v2(request: Request, identifier: str):
        return _get_chart(request, identifier, 2)

    @app.get(PMTILES_PREFIX)
    async def list_pmtiles(request: Request) -> JSONResponse:
        return JSONResponse(status_code=200, content=list(request.app.state.registry.snapshot()))

    @app.get(PMTILES_PREFIX + "{identifier}")
    async def get_pmtiles(request: Request, identifier: str):
        """
        Serve the archive itself; clients read tiles with range requests.
        """
        provider = request.app.state.registry.get(identifier)
        if provider is None:
            return PlainTextResponse("Not found", status_code=404)
        return FileResponse(provider.file_path, media_type="application/octet-stream")

    @app.post(PMTILES_PREFIX + "track")
    async def generate_track(request: Request, body: TrackRequestBody) -> JSONResponse:
        """
        Build a track archive for `[startDate, endDate)` at `resolution`.
        """
        outcome = await request.app.state.pipeline.run(body.startDate, body.endDate, body.resolution)
        if not outcome.ok:
            return JSONResponse(
                status_code=ERROR_STATUS[outcome.error.kind],
                content={"error": outcome.error.message},
            )
        await rescan(request.app)
        response = TrackResponse(
            success=True,
            filename=outcome.result.filename,
            features=outcome.result.feature_count,
            startDate=outcome.request.start_text,
            endDate=outcome.request.end_text,
            resolution=outcome.request.resolution,
        )
        return JSONResponse(status_code=200, content=response.model_dump())

    return app
