"""
Pydantic schemas for HTTP payloads and chart descriptors.
"""

from typing import Optional
from pydantic import BaseModel


class ChartV1(BaseModel):
    """
    Resources API v1 block of a chart descriptor.
    """
    tilemapUrl: str
    chartLayers: list[str]

class ChartV2(BaseModel):
    """
    Resources API v2 block of a chart descriptor.
    """
    url: str
    layers: list[str]

class ChartProvider(BaseModel):
    """
    One servable PMTiles archive found in the chart directory.

    `file_path` and `file_format` are internal and are stripped before the
    descriptor leaves the server.
    """
    identifier: str
    name: str
    description: str
    type: str = "tilelayer"
    scale: int = 250000
    file_path: str
    file_format: str = "pmtiles"
    v1: Optional[ChartV1] = None
    v2: Optional[ChartV2] = None
    bounds: Optional[list[float]] = None
    minzoom: Optional[int] = None
    maxzoom: Optional[int] = None
    format: Optional[str] = None
    layers: Optional[list[str]] = None

class TrackRequestBody(BaseModel):
    """
    Inbound track-generation request. Fields are checked by the pipeline so
    that missing values produce a descriptive 400 rather than a schema error.
    """
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    resolution: Optional[str] = None

class TrackResponse(BaseModel):
    """
    Outcome of a successful track-generation run.
    """
    success: bool
    filename: str
    features: int
    startDate: str
    endDate: str
    resolution: str
