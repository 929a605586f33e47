"""Pipe topology analysis: tiers, connection points and per-zone statistics.

All pipes are projected into one local meter frame so distances between
tiers can be compared against tolerances in meters. Connection points are
derived data; analyzing the same pipes twice gives identical output.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Sequence

from .config import DEFAULT_TOLERANCES, TopologyTolerances
from .fittings import LateralAttachment, MainJoin, count_fittings
from .geometry import (
    XY,
    distance,
    distance_point_to_segment,
    distance_to_polyline,
    point_in_polygon,
    polygon_centroid,
    polygon_edges,
    polyline_intersections,
    project,
    to_lat_lng,
)
from .models import (
    ConnectionPoint,
    ConnectionType,
    Coordinate,
    DetectionStage,
    Pipe,
    PipeStats,
    PipeType,
    TopologyResult,
    Zone,
    ZonePipeStats,
)
from .segments import path_length, planar_length, point_at_station, station_on_path

logger = logging.getLogger(__name__)


class PipeNetwork:
    """Pipes projected into a shared local frame, keyed by pipe id."""

    def __init__(self, pipes: Sequence[Pipe], origin: Coordinate | None = None):
        self.pipes = list(pipes)
        if origin is None:
            vertices = [c for pipe in self.pipes for c in pipe.coordinates]
            origin = polygon_centroid(vertices) if vertices else Coordinate(lat=0.0, lng=0.0)
        self.origin = origin
        self.paths: dict[str, list[XY]] = {pipe.id: project(pipe.coordinates, origin) for pipe in self.pipes}

    def of_type(self, pipe_type: PipeType) -> list[Pipe]:
        return [pipe for pipe in self.pipes if pipe.type is pipe_type]

    def paths_by_tier(self) -> dict[PipeType, list[list[XY]]]:
        return {tier: [self.paths[p.id] for p in self.of_type(tier)] for tier in PipeType}

    def to_coordinate(self, xy: XY) -> Coordinate:
        return to_lat_lng(xy, self.origin)


class SubmainConnection(NamedTuple):
    """Where and how a submain meets a main, in the network's meter frame."""

    position: XY
    type: ConnectionType
    detection: DetectionStage
    main_station: float
    main_arms: int
    submain_arms: int


def pipe_in_zone(pipe: Pipe, zone: Zone, buffer_m: float = 0.0) -> bool:
    """True if any vertex of ``pipe`` is inside ``zone`` or within ``buffer_m`` of its boundary."""
    origin = polygon_centroid(zone.coordinates)
    ring = project(zone.coordinates, origin)
    edges = polygon_edges(ring)
    for xy in project(pipe.coordinates, origin):
        if point_in_polygon(xy, ring):
            return True
        if buffer_m > 0 and any(distance_point_to_segment(xy, a, b)[0] <= buffer_m for a, b in edges):
            return True
    return False


def resolve_zone(pipe: Pipe, zones: Sequence[Zone] = ()) -> str | None:
    """The pipe's own zone id, else the first zone it lies in."""
    if pipe.zone_id:
        return pipe.zone_id
    for zone in zones:
        if pipe_in_zone(pipe, zone):
            return zone.id
    return None


def enforce_tier_constraints(pipes: Sequence[Pipe], zones: Sequence[Zone] = ()) -> list[Pipe]:
    """Keep at most one main and one submain per zone.

    The longest main stays; other mains drop to submain and compete with the
    zone's submains, of which again only the longest stays. Ties keep input
    order. Pipes without a zone are returned unchanged.
    """
    pipes = list(pipes)
    lengths = [path_length(p.coordinates) for p in pipes]
    by_zone: dict[str, list[int]] = {}
    for index, pipe in enumerate(pipes):
        zone_id = resolve_zone(pipe, zones)
        if zone_id is not None:
            by_zone.setdefault(zone_id, []).append(index)

    tiers = [p.type for p in pipes]
    for zone_id, indices in by_zone.items():
        for tier, demoted in ((PipeType.MAIN, PipeType.SUBMAIN), (PipeType.SUBMAIN, PipeType.LATERAL)):
            candidates = sorted((i for i in indices if tiers[i] is tier), key=lambda i: -lengths[i])
            for i in candidates[1:]:
                logger.debug("zone %s: demoting pipe %s from %s to %s", zone_id, pipes[i].id, tier.value, demoted.value)
                tiers[i] = demoted

    return [
        pipe if pipe.type is tier else pipe.model_copy(update={"type": tier})
        for pipe, tier in zip(pipes, tiers)
    ]


def summarize_pipe_stats(pipes: Sequence[Pipe]) -> ZonePipeStats:
    per_tier: dict[PipeType, PipeStats] = {}
    for tier in PipeType:
        lengths = [path_length(p.coordinates) for p in pipes if p.type is tier]
        per_tier[tier] = PipeStats(
            count=len(lengths),
            total_length=sum(lengths),
            longest_length=max(lengths, default=0.0),
        )
    return ZonePipeStats(
        main=per_tier[PipeType.MAIN],
        submain=per_tier[PipeType.SUBMAIN],
        lateral=per_tier[PipeType.LATERAL],
        total=sum(s.count for s in per_tier.values()),
        total_length=sum(s.total_length for s in per_tier.values()),
        total_longest_length=sum(s.longest_length for s in per_tier.values()),
    )


def zone_members(
    pipes: Sequence[Pipe],
    zones: Sequence[Zone],
    tolerances: TopologyTolerances = DEFAULT_TOLERANCES,
) -> dict[str, list[Pipe]]:
    """Pipes belonging to each zone.

    A pipe tagged with a zone id belongs to that zone only. Untagged pipes
    belong to every zone they touch, counting ``zone_buffer_m`` around the
    zone boundary.
    """
    return {
        zone.id: [
            pipe
            for pipe in pipes
            if pipe.zone_id == zone.id
            or (not pipe.zone_id and pipe_in_zone(pipe, zone, tolerances.zone_buffer_m))
        ]
        for zone in zones
    }


def zone_pipe_stats(
    pipes: Sequence[Pipe],
    zones: Sequence[Zone],
    tolerances: TopologyTolerances = DEFAULT_TOLERANCES,
) -> dict[str, ZonePipeStats]:
    return {zone_id: summarize_pipe_stats(members) for zone_id, members in zone_members(pipes, zones, tolerances).items()}


def _side_of(path: Sequence[XY], segment: int, p: XY) -> int:
    a, b = path[segment], path[segment + 1]
    cross = (b[0] - a[0]) * (p[1] - a[1]) - (b[1] - a[1]) * (p[0] - a[0])
    return 1 if cross >= 0 else -1


def lateral_contacts(
    lateral: Sequence[XY],
    submain: Sequence[XY],
    tolerances: TopologyTolerances = DEFAULT_TOLERANCES,
) -> list[tuple[XY, bool, DetectionStage, XY | None]]:
    """Where a lateral touches a submain.

    Returns (position, crossing, stage, far end) tuples. An intersection
    within ``lateral_attach_m`` of a lateral end is an attachment, not a
    crossing; ``far end`` is then the lateral's other end. With no
    intersection, the lateral end nearest the submain attaches if it is
    within ``lateral_attach_m``.
    """
    start, end = lateral[0], lateral[-1]
    contacts: list[tuple[XY, bool, DetectionStage, XY | None]] = []
    for hit in polyline_intersections(lateral, submain):
        d_start = distance(hit, start)
        d_end = distance(hit, end)
        if min(d_start, d_end) <= tolerances.lateral_attach_m:
            far = end if d_start <= d_end else start
            contacts.append((hit, False, DetectionStage.INTERSECTION, far))
        else:
            contacts.append((hit, True, DetectionStage.INTERSECTION, None))
    if contacts:
        return contacts

    best = None
    for near, far in ((start, end), (end, start)):
        dist, closest, _ = distance_to_polyline(near, submain)
        if dist <= tolerances.lateral_attach_m and (best is None or dist < best[0]):
            best = (dist, closest, far)
    if best is None:
        return []
    return [(best[1], False, DetectionStage.SNAP, best[2])]


def connect_laterals(
    network: PipeNetwork,
    tolerances: TopologyTolerances = DEFAULT_TOLERANCES,
) -> tuple[list[ConnectionPoint], list[LateralAttachment]]:
    """Connection points between laterals and submains.

    A contact within ``junction_merge_m`` of an existing point on the same
    submain joins that point, which becomes a junction.
    """
    points: list[ConnectionPoint] = []
    positions: list[XY] = []
    attachments: list[LateralAttachment] = []

    for lateral in network.of_type(PipeType.LATERAL):
        lateral_path = network.paths[lateral.id]
        for submain in network.of_type(PipeType.SUBMAIN):
            submain_path = network.paths[submain.id]
            contacts = lateral_contacts(lateral_path, submain_path, tolerances)
            for k, (xy, crossing, stage, far) in enumerate(contacts):
                _, _, segment = distance_to_polyline(xy, submain_path)
                side = 0 if crossing else _side_of(submain_path, segment, far)
                station = station_on_path(xy, submain_path).station
                attachments.append(LateralAttachment(submain.id, lateral.id, station, crossing, side))

                merged = False
                for i, existing in enumerate(points):
                    if existing.submain_id == submain.id and distance(positions[i], xy) <= tolerances.junction_merge_m:
                        laterals = list(existing.connected_laterals)
                        if lateral.id not in laterals:
                            laterals.append(lateral.id)
                        points[i] = existing.model_copy(
                            update={"connected_laterals": laterals, "type": ConnectionType.JUNCTION}
                        )
                        merged = True
                        break
                if merged:
                    continue

                points.append(
                    ConnectionPoint(
                        id=f"{submain.id}:{lateral.id}:{k}",
                        position=network.to_coordinate(xy),
                        connected_laterals=[lateral.id],
                        submain_id=submain.id,
                        type=ConnectionType.CROSSING if crossing else ConnectionType.SINGLE,
                        detection=stage,
                    )
                )
                positions.append(xy)

    logger.debug("%d lateral connection points from %d attachments", len(points), len(attachments))
    return points, attachments


def locate_on_main(
    submain: Sequence[XY],
    main: Sequence[XY],
    tolerances: TopologyTolerances = DEFAULT_TOLERANCES,
) -> tuple[XY, DetectionStage] | None:
    """Find where a submain joins a main.

    Hand-drawn pipes rarely meet exactly, so each rung of the ladder accepts a
    looser fit than the one before: an exact intersection or an endpoint snap,
    then an endpoint within ``endpoint_fallback_m``, the submain midpoint
    within ``midpoint_fallback_m``, and finally the closest pair of vertices
    within ``vertex_fallback_m``. The first rung that matches wins.
    """
    hits = polyline_intersections(submain, main)
    if hits:
        return hits[0], DetectionStage.INTERSECTION

    dist, closest = min(
        (distance_to_polyline(end, main)[:2] for end in (submain[0], submain[-1])),
        key=lambda r: r[0],
    )
    if dist <= tolerances.connection_snap_m:
        return closest, DetectionStage.SNAP
    if dist <= tolerances.endpoint_fallback_m:
        return closest, DetectionStage.ENDPOINT

    midpoint = point_at_station(submain, planar_length(submain) / 2)
    dist, closest, _ = distance_to_polyline(midpoint, main)
    if dist <= tolerances.midpoint_fallback_m:
        return closest, DetectionStage.MIDPOINT

    dist, vertex = min(((distance(s, m), m) for s in submain for m in main), key=lambda r: r[0])
    if dist <= tolerances.vertex_fallback_m:
        return vertex, DetectionStage.VERTEX
    return None


def _arms(path: Sequence[XY], p: XY, window: float) -> int:
    st = station_on_path(p, path)
    return 1 if st.station <= window or st.remaining <= window else 2


def classify_submain_connection(
    submain: Sequence[XY],
    main: Sequence[XY],
    tolerances: TopologyTolerances = DEFAULT_TOLERANCES,
) -> SubmainConnection | None:
    """Classify how ``submain`` meets ``main``, or None if they are unrelated.

    A submain end within ``connection_snap_m`` of a main end is an L-shape.
    Otherwise the join is located with :func:`locate_on_main` and its station
    along the main decides between a T-shape near a main end and a
    cross-shape at least ``cross_shape_min_fraction`` of the main's length
    from both ends.
    """
    main_ends = ((main[0], 0.0), (main[-1], planar_length(main)))
    best = None
    for end in (submain[0], submain[-1]):
        for main_end, station in main_ends:
            d = distance(end, main_end)
            if d <= tolerances.connection_snap_m and (best is None or d < best[0]):
                best = (d, main_end, station)
    if best is not None:
        d, position, station = best
        stage = DetectionStage.INTERSECTION if d == 0 else DetectionStage.SNAP
        return SubmainConnection(position, ConnectionType.L_SHAPE, stage, station, 1, 1)

    located = locate_on_main(submain, main, tolerances)
    if located is None:
        return None
    position, stage = located

    st = station_on_path(position, main)
    fraction = st.station / st.total if st.total > 0 else 0.0
    if min(fraction, 1.0 - fraction) >= tolerances.cross_shape_min_fraction:
        ctype = ConnectionType.CROSS_SHAPE
    else:
        ctype = ConnectionType.T_SHAPE

    window = tolerances.endpoint_window_m
    main_arms = 1 if st.station <= window or st.remaining <= window else 2
    if stage in (DetectionStage.SNAP, DetectionStage.ENDPOINT):
        submain_arms = 1
    else:
        submain_arms = _arms(submain, position, window)
    return SubmainConnection(position, ctype, stage, st.station, main_arms, submain_arms)


def connect_submains(
    network: PipeNetwork,
    tolerances: TopologyTolerances = DEFAULT_TOLERANCES,
) -> tuple[list[ConnectionPoint], list[MainJoin]]:
    points: list[ConnectionPoint] = []
    joins: list[MainJoin] = []
    for submain in network.of_type(PipeType.SUBMAIN):
        for main in network.of_type(PipeType.MAIN):
            found = classify_submain_connection(network.paths[submain.id], network.paths[main.id], tolerances)
            if found is None:
                logger.debug("submain %s does not reach main %s", submain.id, main.id)
                continue
            points.append(
                ConnectionPoint(
                    id=f"{main.id}:{submain.id}",
                    position=network.to_coordinate(found.position),
                    submain_id=submain.id,
                    main_id=main.id,
                    type=found.type,
                    detection=found.detection,
                )
            )
            joins.append(MainJoin(main.id, submain.id, found.main_station, found.main_arms, found.submain_arms))
    return points, joins


def count_connections_by_type(points: Sequence[ConnectionPoint]) -> dict[str, int]:
    counts = {ctype.value: 0 for ctype in ConnectionType}
    for point in points:
        counts[point.type.value] += 1
    return counts


def analyze(
    pipes: Sequence[Pipe],
    zones: Sequence[Zone] = (),
    sprinklers: Sequence[Coordinate] = (),
    tolerances: TopologyTolerances | None = None,
) -> TopologyResult:
    """Derive connection points, fittings and zone statistics from a pipe set.

    Args:
        pipes: Rendered pipe paths of every tier.
        zones: Zones used for tier constraints and per-zone statistics.
        sprinklers: Sprinkler positions, used for lateral fittings.
        tolerances: Distance tolerances; defaults to ``DEFAULT_TOLERANCES``.

    Returns a new ``TopologyResult``; ``pipes`` carries the tiers after
    constraint enforcement.
    """
    tolerances = tolerances or DEFAULT_TOLERANCES
    pipes = enforce_tier_constraints(pipes, zones)
    network = PipeNetwork(pipes)

    lateral_points, attachments = connect_laterals(network, tolerances)
    main_points, joins = connect_submains(network, tolerances)
    fittings = count_fittings(
        network.paths_by_tier(),
        attachments,
        joins,
        project(sprinklers, network.origin),
        tolerances,
    )
    connection_points = lateral_points + main_points

    logger.info(
        "analyzed %d pipes: %d connection points, %d fittings",
        len(pipes),
        len(connection_points),
        fittings.total,
    )
    return TopologyResult(
        pipes=pipes,
        connection_points=connection_points,
        fittings=fittings,
        zone_stats=zone_pipe_stats(pipes, zones, tolerances),
    )
