"""Obstacle-aware grid sampling inside a field polygon.

Points are laid out on rows aligned with the field's chosen orientation. Rows
start at the vertical center of the rotated field and grow outward in both
directions, so any partial rows end up at the field edges.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Iterator, Sequence

from .config import DEFAULT_SAMPLER_SETTINGS, SamplerSettings
from .geometry import (
    XY,
    distance_point_to_segment,
    point_in_polygon,
    polygon_centroid,
    polygon_edges,
    project,
    rotate,
    to_lat_lng,
)
from .models import Coordinate, Obstacle

logger = logging.getLogger(__name__)


def effective_spacing_for_radius(radius: float, overlap_fraction: float = 0.0) -> float:
    """Grid spacing for sprinklers or pivots of ``radius`` meters."""
    return 2.0 * radius * (1.0 - overlap_fraction)


def plant_spacing_m(row_spacing_cm: float, plant_spacing_cm: float) -> tuple[float, float]:
    """Crop spacing in meters as (row spacing, in-row plant spacing)."""
    return row_spacing_cm / 100.0, plant_spacing_cm / 100.0


def _row_positions(center: float, low: float, high: float, step: float) -> Iterator[float]:
    yield center
    k = 1
    while True:
        above = center + k * step
        below = center - k * step
        if above > high and below < low:
            return
        if above <= high:
            yield above
        if below >= low:
            yield below
        k += 1


def _row_edges(edges: list[tuple[XY, XY]], y: float, clearance: float) -> list[tuple[XY, XY]]:
    """Edges that can come within ``clearance`` of the row at ``y``."""
    return [(a, b) for a, b in edges if min(a[1], b[1]) - clearance < y < max(a[1], b[1]) + clearance]


def _accepts(
    p: XY,
    ring: list[XY],
    holes: list[list[XY]],
    edges: list[tuple[XY, XY]],
    clearance: float,
) -> bool:
    if not point_in_polygon(p, ring):
        return False
    if any(point_in_polygon(p, hole) for hole in holes):
        return False
    for a, b in edges:
        dist, _ = distance_point_to_segment(p, a, b)
        if dist < clearance:
            return False
    return True


def iter_sample_batches(
    boundary: Sequence[Coordinate],
    obstacles: Sequence[Obstacle] = (),
    spacing: float = 1.0,
    rotation_deg: float = 0.0,
    buffer_ratio: float | None = None,
    row_spacing: float | None = None,
    rows_per_batch: int | None = None,
    settings: SamplerSettings = DEFAULT_SAMPLER_SETTINGS,
) -> Iterator[list[Coordinate]]:
    """Yield accepted grid points a batch of rows at a time.

    A caller on an event loop can hand control back between batches, or stop
    iterating to abandon the generation.

    Args:
        boundary: Field polygon, open or closed.
        obstacles: Polygons to keep points out of.
        spacing: Point spacing along a row, in meters.
        rotation_deg: Field orientation; rows run along this heading.
        buffer_ratio: Minimum edge clearance as a fraction of ``spacing``.
        row_spacing: Distance between rows; defaults to ``spacing``.
        rows_per_batch: Rows evaluated per yielded batch.
    """
    if len(boundary) < 3 or spacing <= 0:
        logger.debug("nothing to sample: %d boundary vertices, spacing %s", len(boundary), spacing)
        return
    buffer_ratio = settings.buffer_ratio if buffer_ratio is None else buffer_ratio
    rows_per_batch = rows_per_batch or settings.rows_per_batch
    row_step = row_spacing if row_spacing and row_spacing > 0 else spacing

    origin = polygon_centroid(boundary)
    angle = -math.radians(rotation_deg)
    ring = [rotate(xy, angle) for xy in project(boundary, origin)]
    holes = [
        [rotate(xy, angle) for xy in project(obstacle.coordinates, origin)]
        for obstacle in obstacles
        if len(obstacle.coordinates) >= 3
    ]
    edges = polygon_edges(ring)
    for hole in holes:
        edges.extend(polygon_edges(hole))
    clearance = buffer_ratio * spacing

    xs = [x for x, _ in ring]
    ys = [y for _, y in ring]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    columns = math.floor((max_x - min_x) / spacing) + 1

    batch: list[Coordinate] = []
    rows = 0
    total = 0
    for y in _row_positions((min_y + max_y) / 2, min_y, max_y, row_step):
        row_edges = _row_edges(edges, y, clearance)
        for k in range(columns):
            p = (min_x + k * spacing, y)
            if _accepts(p, ring, holes, row_edges, clearance):
                batch.append(to_lat_lng(rotate(p, -angle), origin))
        rows += 1
        if rows % rows_per_batch == 0:
            total += len(batch)
            yield batch
            batch = []
    if batch:
        total += len(batch)
        yield batch
    logger.debug("sampled %d points over %d rows at %.2f m spacing", total, rows, spacing)


def sample_points(
    boundary: Sequence[Coordinate],
    obstacles: Sequence[Obstacle] = (),
    spacing: float = 1.0,
    rotation_deg: float = 0.0,
    buffer_ratio: float | None = None,
    row_spacing: float | None = None,
    settings: SamplerSettings = DEFAULT_SAMPLER_SETTINGS,
) -> list[Coordinate]:
    """Fill ``boundary`` with grid points, skipping obstacles and edge margins."""
    points: list[Coordinate] = []
    for batch in iter_sample_batches(
        boundary,
        obstacles,
        spacing,
        rotation_deg,
        buffer_ratio=buffer_ratio,
        row_spacing=row_spacing,
        settings=settings,
    ):
        points.extend(batch)
    return points


async def sample_points_async(
    boundary: Sequence[Coordinate],
    obstacles: Sequence[Obstacle] = (),
    spacing: float = 1.0,
    rotation_deg: float = 0.0,
    buffer_ratio: float | None = None,
    row_spacing: float | None = None,
    settings: SamplerSettings = DEFAULT_SAMPLER_SETTINGS,
) -> list[Coordinate]:
    """Same as :func:`sample_points`, yielding to the event loop between batches."""
    points: list[Coordinate] = []
    for batch in iter_sample_batches(
        boundary,
        obstacles,
        spacing,
        rotation_deg,
        buffer_ratio=buffer_ratio,
        row_spacing=row_spacing,
        settings=settings,
    ):
        points.extend(batch)
        await asyncio.sleep(0)
    return points
