"""Fitting counts for a bill of materials.

Fittings come from four places:

* every internal vertex where a pipe changes direction gets a 2-way coupling;
* submain-to-main joins count the pipe arms meeting at the node;
* lateral attachments along a submain are grouped into stations and counted
  by position and by whether laterals leave on one or both sides;
* sprinklers mounted on a lateral get tees, plus an end fitting.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Sequence

from .config import DEFAULT_TOLERANCES, TopologyTolerances
from .geometry import XY, distance_to_polyline
from .models import FittingCounts, FittingsBreakdown, PipeType, TierFittings
from .segments import turn_angles

logger = logging.getLogger(__name__)


class LateralAttachment(NamedTuple):
    """A lateral meeting a submain ``station`` meters along it.

    ``side`` is +1 or -1 for a lateral leaving to the left or right of the
    submain, and 0 for a lateral that crosses it.
    """

    submain_id: str
    lateral_id: str
    station: float
    crossing: bool
    side: int


class MainJoin(NamedTuple):
    """A submain connected to a main, with the pipe arms each contributes."""

    main_id: str
    submain_id: str
    station: float
    main_arms: int
    submain_arms: int


def combine(*counts: FittingCounts) -> FittingCounts:
    return FittingCounts(
        two_way=sum(c.two_way for c in counts),
        three_way=sum(c.three_way for c in counts),
        four_way=sum(c.four_way for c in counts),
    )


def corner_fittings(paths: Sequence[Sequence[XY]], min_turn_rad: float = DEFAULT_TOLERANCES.corner_min_turn_rad) -> FittingCounts:
    """One 2-way coupling per direction change."""
    two_way = sum(1 for path in paths for angle in turn_angles(path) if angle > min_turn_rad)
    return FittingCounts(two_way=two_way)


def _by_arms(arms: int) -> FittingCounts:
    if arms >= 4:
        return FittingCounts(four_way=1)
    if arms == 3:
        return FittingCounts(three_way=1)
    if arms == 2:
        return FittingCounts(two_way=1)
    return FittingCounts()


def main_fittings(joins: Sequence[MainJoin], tolerances: TopologyTolerances = DEFAULT_TOLERANCES) -> FittingCounts:
    """Count fittings at submain-to-main nodes.

    Joins on the same main within ``junction_merge_m`` of each other are one
    node: the main passes through it once and every submain adds its arms.
    """
    counts: list[FittingCounts] = []
    by_main: dict[str, list[MainJoin]] = {}
    for join in joins:
        by_main.setdefault(join.main_id, []).append(join)

    for main_id in sorted(by_main):
        node: list[MainJoin] = []
        for join in sorted(by_main[main_id], key=lambda j: j.station):
            if node and join.station - node[-1].station > tolerances.junction_merge_m:
                counts.append(_node_fitting(node))
                node = []
            node.append(join)
        if node:
            counts.append(_node_fitting(node))
    return combine(*counts)


def _node_fitting(node: list[MainJoin]) -> FittingCounts:
    arms = max(j.main_arms for j in node) + sum(j.submain_arms for j in node)
    return _by_arms(arms)


def station_clusters(
    attachments: Sequence[LateralAttachment],
    snap_m: float = DEFAULT_TOLERANCES.station_snap_m,
    cluster_m: float = DEFAULT_TOLERANCES.station_cluster_m,
) -> list[list[LateralAttachment]]:
    """Group attachments on one submain by snapped station, in station order.

    A station joins the first cluster whose centre lies within ``cluster_m``,
    and the centre moves halfway towards it. Evenly spaced laterals therefore
    form separate clusters instead of chaining into one.
    """
    snapped = sorted(
        ((round(a.station / snap_m) * snap_m, a) for a in attachments),
        key=lambda item: item[0],
    )
    centres: list[float] = []
    clusters: list[list[LateralAttachment]] = []
    for station, attachment in snapped:
        for i, centre in enumerate(centres):
            if abs(centre - station) <= cluster_m:
                centres[i] = (centre + station) / 2
                clusters[i].append(attachment)
                break
        else:
            centres.append(station)
            clusters.append([attachment])
    order = sorted(range(len(clusters)), key=lambda i: centres[i])
    return [clusters[i] for i in order]


def submain_fittings(attachments: Sequence[LateralAttachment], tolerances: TopologyTolerances = DEFAULT_TOLERANCES) -> FittingCounts:
    """Count fittings for the lateral stations along a single submain.

    The first and last stations close the submain: a tee when laterals leave
    on both sides, otherwise an elbow. Inner stations carry the flow through:
    a cross when fed on both sides, otherwise a tee.
    """
    clusters = station_clusters(attachments, tolerances.station_snap_m, tolerances.station_cluster_m)
    counts = FittingCounts()
    for index, cluster in enumerate(clusters):
        both_sides = any(a.crossing for a in cluster) or len({a.side for a in cluster}) > 1
        outer = index == 0 or index == len(clusters) - 1
        if outer:
            fitting = FittingCounts(three_way=1) if both_sides else FittingCounts(two_way=1)
        else:
            fitting = FittingCounts(four_way=1) if both_sides else FittingCounts(three_way=1)
        counts = combine(counts, fitting)
    return counts


def sprinkler_fittings(
    lateral_paths: Sequence[Sequence[XY]],
    sprinklers: Sequence[XY],
    attach_m: float = DEFAULT_TOLERANCES.sprinkler_attach_m,
) -> FittingCounts:
    """Tees for sprinklers along each lateral and one fitting at its end."""
    counts = FittingCounts()
    for path in lateral_paths:
        mounted = sum(1 for s in sprinklers if distance_to_polyline(s, path)[0] <= attach_m)
        if mounted:
            counts = combine(counts, FittingCounts(two_way=1, three_way=mounted - 1))
    return counts


def count_fittings(
    paths_by_tier: dict[PipeType, list[list[XY]]],
    attachments: Sequence[LateralAttachment] = (),
    joins: Sequence[MainJoin] = (),
    sprinklers: Sequence[XY] = (),
    tolerances: TopologyTolerances = DEFAULT_TOLERANCES,
) -> FittingsBreakdown:
    """Aggregate fittings per tier and overall."""
    main_paths = paths_by_tier.get(PipeType.MAIN, [])
    submain_paths = paths_by_tier.get(PipeType.SUBMAIN, [])
    lateral_paths = paths_by_tier.get(PipeType.LATERAL, [])

    by_submain: dict[str, list[LateralAttachment]] = {}
    for attachment in attachments:
        by_submain.setdefault(attachment.submain_id, []).append(attachment)

    main = combine(
        corner_fittings(main_paths, tolerances.corner_min_turn_rad),
        main_fittings(joins, tolerances),
    )
    submain = combine(
        corner_fittings(submain_paths, tolerances.corner_min_turn_rad),
        *(submain_fittings(group, tolerances) for _, group in sorted(by_submain.items())),
    )
    lateral = combine(
        corner_fittings(lateral_paths, tolerances.corner_min_turn_rad),
        sprinkler_fittings(lateral_paths, sprinklers, tolerances.sprinkler_attach_m),
    )
    overall = combine(main, submain, lateral)
    logger.debug(
        "fittings: %d two-way, %d three-way, %d four-way",
        overall.two_way,
        overall.three_way,
        overall.four_way,
    )
    return FittingsBreakdown(
        two_way=overall.two_way,
        three_way=overall.three_way,
        four_way=overall.four_way,
        total=overall.total,
        breakdown=TierFittings(main=main, submain=submain, lateral=lateral),
    )
