"""Zone area, planting points, yield and income estimates."""

from __future__ import annotations

import logging
import math
from typing import Mapping, Sequence

from pyproj import Geod

from .models import Coordinate, CropParameters, Pipe, PipeType, Zone, ZonePipeStats, ZoneSummary
from .sampler import plant_spacing_m
from .segments import path_length

logger = logging.getLogger(__name__)

SQUARE_METERS_PER_RAI = 1600.0
METERS_PER_DEG_AREA = 111000.0

_GEOD = Geod(ellps="WGS84")


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round halves toward positive infinity. Built-in ``round`` rounds halves to even."""
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


def zone_area_m2(coordinates: Sequence[Coordinate]) -> float:
    """Planar shoelace area of a lat/lng polygon in square meters.

    Uses the same small-area projection as the rest of the engine, scaled at
    the polygon's mean latitude. Returns 0 for fewer than three vertices.
    """
    if len(coordinates) < 3:
        return 0.0
    twice_area = 0.0
    n = len(coordinates)
    for i in range(n):
        a = coordinates[i]
        b = coordinates[(i + 1) % n]
        twice_area += a.lng * b.lat - b.lng * a.lat
    lat0 = sum(c.lat for c in coordinates) / n
    return abs(twice_area) / 2 * METERS_PER_DEG_AREA**2 * math.cos(math.radians(lat0))


def geodesic_area_m2(coordinates: Sequence[Coordinate]) -> float:
    """Ellipsoidal (WGS84) area in square meters."""
    if len(coordinates) < 3:
        return 0.0
    area, _ = _GEOD.polygon_area_perimeter([c.lng for c in coordinates], [c.lat for c in coordinates])
    return abs(area)


def area_to_rai(area_m2: float) -> float:
    return area_m2 / SQUARE_METERS_PER_RAI


def planting_points_from_area(area_m2: float, row_spacing_m: float, plant_spacing_m: float) -> int:
    """Upfront estimate before any pipes are drawn."""
    if area_m2 <= 0 or row_spacing_m <= 0 or plant_spacing_m <= 0:
        return 0
    return math.floor(area_m2 * (1 / row_spacing_m) * (1 / plant_spacing_m))


def planting_points_from_laterals(laterals: Sequence[Pipe], plant_spacing_m: float) -> int:
    """Count plants along drawn laterals, one at each end of every run."""
    if plant_spacing_m <= 0:
        return 0
    return sum(math.floor(path_length(lateral.coordinates) / plant_spacing_m) + 1 for lateral in laterals)


def estimate_yield_and_price(area_m2: float, crop: CropParameters | None) -> tuple[int, int]:
    """Return (yield in kg, income) for a zone of ``area_m2`` planted with ``crop``."""
    if not area_m2 or crop is None:
        return 0, 0
    estimated_yield = int(round_half_up(area_to_rai(area_m2) * crop.yield_per_rai))
    estimated_price = int(round_half_up(estimated_yield * crop.price_per_kg))
    return estimated_yield, estimated_price


def water_requirement(planting_points: int, crop: CropParameters | None) -> int:
    """Liters per irrigation for the whole zone."""
    if not planting_points or crop is None or not crop.water_requirement:
        return 0
    return int(round_half_up(planting_points * crop.water_requirement))


def summarize_zone(
    zone: Zone,
    crop: CropParameters | None = None,
    laterals: Sequence[Pipe] = (),
    pipe_stats: ZonePipeStats | None = None,
    row_spacing_cm: float | None = None,
    plant_spacing_cm: float | None = None,
) -> ZoneSummary:
    """Build the summary for one zone.

    Planting points come from the zone's laterals once any exist, otherwise
    from the zone area and crop spacing. Explicit spacings override the
    crop's defaults. A zone without a crop reports its area and zeros.
    """
    area = zone_area_m2(zone.coordinates)
    pipe_stats = pipe_stats or ZonePipeStats()
    summary = ZoneSummary(
        zone_id=zone.id,
        zone_name=zone.name,
        zone_area_m2=round_half_up(area),
        zone_area_rai=round_half_up(area_to_rai(area), 2),
        total_planting_points=0,
        estimated_yield=0,
        estimated_price=0,
        water_requirement_per_day=0,
        pipe_stats=pipe_stats,
    )
    if crop is None:
        logger.debug("zone %s has no crop assigned", zone.id)
        return summary

    row_m, plant_m = plant_spacing_m(
        row_spacing_cm or crop.row_spacing_cm,
        plant_spacing_cm or crop.plant_spacing_cm,
    )
    laterals = [p for p in laterals if p.type is PipeType.LATERAL]
    if laterals:
        points = planting_points_from_laterals(laterals, plant_m)
    else:
        points = planting_points_from_area(area, row_m, plant_m)
    estimated_yield, estimated_price = estimate_yield_and_price(area, crop)

    return summary.model_copy(
        update={
            "crop_value": crop.value,
            "crop_name": crop.name,
            "total_planting_points": points,
            "estimated_yield": estimated_yield,
            "estimated_price": estimated_price,
            "water_requirement_per_day": water_requirement(points, crop),
        }
    )


def summarize_zones(
    zones: Sequence[Zone],
    crops: Mapping[str, CropParameters],
    pipes_by_zone: Mapping[str, Sequence[Pipe]] | None = None,
    stats_by_zone: Mapping[str, ZonePipeStats] | None = None,
    row_spacing_cm: float | None = None,
    plant_spacing_cm: float | None = None,
) -> list[ZoneSummary]:
    """Summaries for every zone, looking each zone's crop up by ``crop_type``."""
    pipes_by_zone = pipes_by_zone or {}
    stats_by_zone = stats_by_zone or {}
    summaries = []
    for zone in zones:
        crop = crops.get(zone.crop_type) if zone.crop_type else None
        if zone.crop_type and crop is None:
            logger.warning("zone %s: unknown crop %r", zone.id, zone.crop_type)
        summaries.append(
            summarize_zone(
                zone,
                crop,
                laterals=pipes_by_zone.get(zone.id, ()),
                pipe_stats=stats_by_zone.get(zone.id),
                row_spacing_cm=row_spacing_cm,
                plant_spacing_cm=plant_spacing_cm,
            )
        )
    return summaries
