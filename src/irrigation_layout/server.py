"""FastAPI server exposing the layout engine."""

from __future__ import annotations

import csv
import io
import logging
import os
from functools import lru_cache
from typing import Iterable

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from .config import TopologyTolerances
from .crops import read_crop_table
from .curves import build_curve
from .layout import build_layout
from .metrics import summarize_zones
from .models import (
    ConnectionPoint,
    Coordinate,
    CropParameters,
    CurveMode,
    FieldSnapshot,
    LayoutResult,
    Obstacle,
    PathSegment,
    Pipe,
    PipeType,
    TopologyResult,
    Zone,
    ZoneSummary,
)
from .sampler import effective_spacing_for_radius, sample_points_async
from .segments import compute_segments
from .topology import analyze, enforce_tier_constraints, zone_members, zone_pipe_stats

logger = logging.getLogger(__name__)

app = FastAPI(title="Irrigation Layout", version="0.1.0")

CROP_TABLE_ENV = "IRRIGATION_CROP_TABLE"


class CurveRequest(BaseModel):
    anchors: list[Coordinate]
    mode: CurveMode = CurveMode.SPLINE
    tension: float | None = Field(default=None, ge=0, le=1)
    segments: int | None = Field(default=None, ge=1)


class CurveResponse(BaseModel):
    path: list[Coordinate]
    length_m: float
    segments: list[PathSegment]


class SampleRequest(BaseModel):
    """Either ``spacing`` in meters or a sprinkler ``radius_m`` must be given."""

    boundary: list[Coordinate]
    obstacles: list[Obstacle] = Field(default_factory=list)
    spacing: float | None = Field(default=None, gt=0)
    radius_m: float | None = Field(default=None, gt=0)
    overlap: float = Field(default=0.0, ge=0, lt=1)
    rotation_deg: float = 0.0
    buffer_ratio: float | None = Field(default=None, ge=0)
    row_spacing: float | None = Field(default=None, gt=0)


class SampleResponse(BaseModel):
    count: int
    points: list[Coordinate]


class TopologyRequest(BaseModel):
    pipes: list[Pipe]
    zones: list[Zone] = Field(default_factory=list)
    sprinklers: list[Coordinate] = Field(default_factory=list)
    tolerances: TopologyTolerances | None = None


class ZoneSummaryRequest(BaseModel):
    zones: list[Zone]
    pipes: list[Pipe] = Field(default_factory=list)
    crops: list[CropParameters] | None = None
    row_spacing_cm: float | None = Field(default=None, gt=0)
    plant_spacing_cm: float | None = Field(default=None, gt=0)


class LayoutRequest(FieldSnapshot):
    crops: list[CropParameters] | None = None
    tolerances: TopologyTolerances | None = None


@app.post("/curve", response_model=CurveResponse)
async def curve(request: CurveRequest):
    """Build a dense pipe path from anchor points."""
    if len(request.anchors) < 2:
        raise HTTPException(status_code=400, detail="At least two anchors are required")
    path = build_curve(request.anchors, request.mode, request.tension, request.segments)
    segments = compute_segments(path)
    length_m = segments[-1].cumulative_m_end if segments else 0.0
    return CurveResponse(path=path, length_m=length_m, segments=segments)


@app.post("/sample")
async def sample(
    request: SampleRequest,
    format: str = Query("json", pattern="^(csv|json)$"),
):
    """Fill a boundary with grid points, keeping clear of obstacles."""
    if request.spacing is not None:
        spacing = request.spacing
    elif request.radius_m is not None:
        spacing = effective_spacing_for_radius(request.radius_m, request.overlap)
    else:
        raise HTTPException(status_code=400, detail="Provide either spacing or radius_m")
    if len(request.boundary) < 3:
        raise HTTPException(status_code=400, detail="Boundary needs at least three vertices")

    points = await sample_points_async(
        request.boundary,
        request.obstacles,
        spacing,
        request.rotation_deg,
        buffer_ratio=request.buffer_ratio,
        row_spacing=request.row_spacing,
    )

    if format == "json":
        return SampleResponse(count=len(points), points=points)

    rows = ({"point": i, "lat": p.lat, "lng": p.lng} for i, p in enumerate(points))
    return _rows_to_csv_response(["point", "lat", "lng"], rows, "points.csv")


@app.post("/topology")
async def topology(
    request: TopologyRequest,
    format: str = Query("json", pattern="^(csv|json)$"),
):
    """Connection points, fittings and zone statistics for a pipe set."""
    result: TopologyResult = analyze(request.pipes, request.zones, request.sprinklers, request.tolerances)

    if format == "json":
        return result

    return _connections_to_csv_response(result.connection_points)


@app.post("/zones/summary", response_model=list[ZoneSummary])
async def zones_summary(request: ZoneSummaryRequest):
    """Area, planting points and yield estimates per zone."""
    crops = _crop_lookup(request.crops)
    pipes = enforce_tier_constraints(request.pipes, request.zones)
    members = zone_members(pipes, request.zones)
    laterals = {
        zone_id: [p for p in zone_pipes if p.type is PipeType.LATERAL] for zone_id, zone_pipes in members.items()
    }
    return summarize_zones(
        request.zones,
        crops,
        pipes_by_zone=laterals,
        stats_by_zone=zone_pipe_stats(pipes, request.zones),
        row_spacing_cm=request.row_spacing_cm,
        plant_spacing_cm=request.plant_spacing_cm,
    )


@app.post("/layout", response_model=LayoutResult)
async def layout(request: LayoutRequest):
    """Everything derived from a field snapshot."""
    crops = _crop_lookup(request.crops)
    return build_layout(request, crops, request.tolerances)


@lru_cache(maxsize=1)
def _default_crops(path: str) -> dict[str, CropParameters]:
    logger.info("loading crop table from %s", path)
    return read_crop_table(path)


def _crop_lookup(crops: list[CropParameters] | None) -> dict[str, CropParameters]:
    """Crops from the request, else the table named by ``IRRIGATION_CROP_TABLE``."""
    if crops is None:
        path = os.environ.get(CROP_TABLE_ENV)
        if not path:
            return {}
        try:
            return _default_crops(path)
        except (OSError, ValueError) as exc:
            raise HTTPException(status_code=500, detail=f"Cannot read crop table: {exc}") from exc

    table: dict[str, CropParameters] = {}
    for crop in crops:
        if crop.value in table:
            raise HTTPException(status_code=400, detail=f"Duplicate crop value: {crop.value}")
        table[crop.value] = crop
    return table


def _connections_to_csv_response(points: list[ConnectionPoint]) -> StreamingResponse:
    rows = (
        {
            "id": p.id,
            "type": p.type.value,
            "detection": p.detection.value,
            "submain_id": p.submain_id,
            "main_id": p.main_id or "",
            "lat": p.position.lat,
            "lng": p.position.lng,
            "connected_laterals": ";".join(p.connected_laterals),
        }
        for p in points
    )
    fieldnames = ["id", "type", "detection", "submain_id", "main_id", "lat", "lng", "connected_laterals"]
    return _rows_to_csv_response(fieldnames, rows, "connection_points.csv")


def _rows_to_csv_response(fieldnames: list[str], rows: Iterable[dict], filename: str) -> StreamingResponse:
    """Stream dict rows as a CSV attachment."""

    def generate():
        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=fieldnames)
        writer.writeheader()
        yield buf.getvalue()
        buf.seek(0)
        buf.truncate(0)

        for row in rows:
            writer.writerow(row)
            yield buf.getvalue()
            buf.seek(0)
            buf.truncate(0)

    return StreamingResponse(
        generate(),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
