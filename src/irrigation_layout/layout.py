"""Derive everything the host displays from a persisted field snapshot."""

from __future__ import annotations

import logging
from typing import Mapping

from .config import DEFAULT_TOLERANCES, TopologyTolerances
from .metrics import summarize_zones
from .models import Coordinate, CropParameters, FieldSnapshot, LayoutResult, PipeType
from .sampler import effective_spacing_for_radius, sample_points
from .topology import analyze, count_connections_by_type, zone_members

logger = logging.getLogger(__name__)


def place_sprinklers(snapshot: FieldSnapshot) -> list[Coordinate]:
    """Sprinkler positions: the snapshot's own, or a grid sized from the sprinkler radius."""
    if snapshot.sprinklers:
        return list(snapshot.sprinklers)
    settings = snapshot.settings
    if settings.sprinkler_radius_m is None or len(snapshot.boundary) < 3:
        return []
    spacing = effective_spacing_for_radius(settings.sprinkler_radius_m, settings.sprinkler_overlap)
    return sample_points(
        snapshot.boundary,
        snapshot.obstacles,
        spacing,
        rotation_deg=settings.rotation_deg,
    )


def build_layout(
    snapshot: FieldSnapshot,
    crops: Mapping[str, CropParameters] | None = None,
    tolerances: TopologyTolerances | None = None,
) -> LayoutResult:
    """Analyze a snapshot's pipes and summarize its zones in one pass.

    The snapshot is not modified; pipes in the result carry the tiers after
    per-zone constraints are applied.
    """
    tolerances = tolerances or DEFAULT_TOLERANCES
    sprinklers = place_sprinklers(snapshot)
    topology = analyze(snapshot.pipes, snapshot.zones, sprinklers, tolerances)

    members = zone_members(topology.pipes, snapshot.zones, tolerances)
    laterals_by_zone = {
        zone_id: [p for p in pipes if p.type is PipeType.LATERAL] for zone_id, pipes in members.items()
    }
    summaries = summarize_zones(
        snapshot.zones,
        crops or {},
        pipes_by_zone=laterals_by_zone,
        stats_by_zone=topology.zone_stats,
        row_spacing_cm=snapshot.settings.row_spacing_cm,
        plant_spacing_cm=snapshot.settings.plant_spacing_cm,
    )
    logger.info("layout: %d pipes, %d zones, %d sprinklers", len(topology.pipes), len(summaries), len(sprinklers))
    return LayoutResult(
        pipes=topology.pipes,
        connection_points=topology.connection_points,
        connection_counts=count_connections_by_type(topology.connection_points),
        fittings=topology.fittings,
        zone_summaries=summaries,
        sprinklers=sprinklers,
    )
