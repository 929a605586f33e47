"""Irrigation layout engine: pipe curves, point grids, pipe topology and zone metrics."""

from .config import CurveSettings, SamplerSettings, TopologyTolerances
from .crops import read_crop_table
from .curves import build_curve, extract_anchor_points, insert_anchor, move_anchor, remove_anchor
from .layout import build_layout
from .metrics import (
    estimate_yield_and_price,
    geodesic_area_m2,
    planting_points_from_area,
    planting_points_from_laterals,
    summarize_zone,
    summarize_zones,
    zone_area_m2,
)
from .models import (
    ConnectionPoint,
    ConnectionType,
    Coordinate,
    CropParameters,
    FieldSnapshot,
    FittingsBreakdown,
    LayoutResult,
    Obstacle,
    Pipe,
    PipeType,
    TopologyResult,
    Zone,
    ZoneSummary,
)
from .sampler import iter_sample_batches, sample_points, sample_points_async
from .segments import compute_segments
from .topology import analyze, count_connections_by_type

__all__ = [
    "ConnectionPoint",
    "ConnectionType",
    "Coordinate",
    "CropParameters",
    "CurveSettings",
    "FieldSnapshot",
    "FittingsBreakdown",
    "LayoutResult",
    "Obstacle",
    "Pipe",
    "PipeType",
    "SamplerSettings",
    "TopologyResult",
    "TopologyTolerances",
    "Zone",
    "ZoneSummary",
    "analyze",
    "build_curve",
    "build_layout",
    "compute_segments",
    "count_connections_by_type",
    "estimate_yield_and_price",
    "extract_anchor_points",
    "geodesic_area_m2",
    "insert_anchor",
    "iter_sample_batches",
    "move_anchor",
    "planting_points_from_area",
    "planting_points_from_laterals",
    "read_crop_table",
    "remove_anchor",
    "sample_points",
    "sample_points_async",
    "summarize_zone",
    "summarize_zones",
    "zone_area_m2",
]
