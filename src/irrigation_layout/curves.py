"""Pipe path construction from anchor points.

Two modes are supported. ``SPLINE`` runs a cardinal spline through every
anchor and is used for free-form smoothing. ``CIRCULAR`` keeps straight runs
between anchors and rounds each interior corner with a circular fillet, which
is how pipes are routed.

Both modes pin the first and last output point to the first and last anchor
exactly, so a connected pipe end never drifts when a curve is rebuilt.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from .config import DEFAULT_CURVE_SETTINGS, CurveSettings
from .geometry import XY, clamp_unit, distance_point_to_segment, project, to_lat_lng
from .models import Coordinate, CurveMode

logger = logging.getLogger(__name__)


def build_curve(
    anchors: Sequence[Coordinate],
    mode: CurveMode | str = CurveMode.SPLINE,
    tension: float | None = None,
    segments: int | None = None,
    settings: CurveSettings = DEFAULT_CURVE_SETTINGS,
) -> list[Coordinate]:
    """Build a dense path through ``anchors``.

    Args:
        anchors: Ordered control points; the first and last are fixed ends.
        mode: ``spline`` or ``circular``.
        tension: Spline tension / corner tightness in [0, 1].
        segments: Subdivisions per anchor span (spline and straight-line cases).
        settings: Corner radius bounds and angle thresholds.

    Returns fewer than two anchors unchanged.
    """
    anchors = list(anchors)
    if len(anchors) < 2:
        return anchors

    mode = CurveMode(mode)
    tension = settings.default_tension if tension is None else min(1.0, max(0.0, tension))
    segments = settings.default_segments if segments is None else max(1, int(segments))

    if len(anchors) == 2:
        path = _straight_line(anchors[0], anchors[1], segments)
    elif mode is CurveMode.SPLINE:
        path = _cardinal_spline(anchors, tension, segments)
    else:
        path = _circular_corners(anchors, tension, settings)

    path[0] = anchors[0]
    path[-1] = anchors[-1]
    return path


def _straight_line(a: Coordinate, b: Coordinate, segments: int) -> list[Coordinate]:
    path = []
    for i in range(segments + 1):
        t = i / segments
        path.append(Coordinate(lat=a.lat + t * (b.lat - a.lat), lng=a.lng + t * (b.lng - a.lng)))
    return path


def _cardinal_spline(anchors: list[Coordinate], tension: float, segments: int) -> list[Coordinate]:
    """Cardinal (generalized Catmull-Rom) spline over lat/lng components."""
    s = (1.0 - tension) / 2.0
    n = len(anchors)
    path: list[Coordinate] = []

    for i in range(n - 1):
        p0 = anchors[i - 1] if i > 0 else anchors[0]
        p1 = anchors[i]
        p2 = anchors[i + 1]
        p3 = anchors[i + 2] if i + 2 < n else anchors[n - 1]

        m1_lat = s * (p2.lat - p0.lat)
        m1_lng = s * (p2.lng - p0.lng)
        m2_lat = s * (p3.lat - p1.lat)
        m2_lng = s * (p3.lng - p1.lng)

        # spans share their first point with the previous span's last
        for k in range(0 if i == 0 else 1, segments + 1):
            t = k / segments
            t2 = t * t
            t3 = t2 * t
            h1 = 2 * t3 - 3 * t2 + 1
            h2 = -2 * t3 + 3 * t2
            h3 = t3 - 2 * t2 + t
            h4 = t3 - t2
            path.append(
                Coordinate(
                    lat=h1 * p1.lat + h2 * p2.lat + h3 * m1_lat + h4 * m2_lat,
                    lng=h1 * p1.lng + h2 * p2.lng + h3 * m1_lng + h4 * m2_lng,
                )
            )

    return path


def calculate_corner_angle(prev: XY, corner: XY, nxt: XY) -> float:
    """Signed heading change at ``corner`` in radians (positive = left turn).

    Returns 0 when either incident segment has zero length.
    """
    ax = corner[0] - prev[0]
    ay = corner[1] - prev[1]
    bx = nxt[0] - corner[0]
    by = nxt[1] - corner[1]
    la = math.hypot(ax, ay)
    lb = math.hypot(bx, by)
    if la == 0 or lb == 0:
        return 0.0
    ax, ay, bx, by = ax / la, ay / la, bx / lb, by / lb
    return math.atan2(ax * by - ay * bx, ax * bx + ay * by)


def corner_radius(angle: float, tension: float, settings: CurveSettings = DEFAULT_CURVE_SETTINGS) -> float:
    """Fillet radius for a turn of ``angle`` radians; 0 means leave the corner sharp."""
    turn = abs(angle)
    if turn < settings.min_turn_angle:
        return 0.0
    span = settings.max_corner_radius - settings.min_corner_radius
    return settings.min_corner_radius + span * math.sin(turn / 2) * tension * 0.5


def _fillet(prev: XY, corner: XY, nxt: XY, radius: float, settings: CurveSettings) -> list[XY] | None:
    """Arc points from the first tangent point to the second, or None to keep the corner."""
    v1 = (prev[0] - corner[0], prev[1] - corner[1])
    v2 = (nxt[0] - corner[0], nxt[1] - corner[1])
    l1 = math.hypot(*v1)
    l2 = math.hypot(*v2)
    if l1 == 0 or l2 == 0:
        logger.debug("zero-length corner leg at %s, keeping corner", corner)
        return None
    u1 = (v1[0] / l1, v1[1] / l1)
    u2 = (v2[0] / l2, v2[1] / l2)

    interior = math.acos(clamp_unit(u1[0] * u2[0] + u1[1] * u2[1]))
    low, high = settings.fillet_angle_range
    if not low < interior < high:
        logger.debug("corner angle %.3f rad outside fillet range, keeping corner", interior)
        return None

    half = interior / 2
    tangent_len = radius / math.tan(half)
    # keep fillets on neighbouring corners from overlapping
    limit = min(l1, l2) / 2
    if tangent_len > limit:
        tangent_len = limit
        radius = limit * math.tan(half)

    bx = u1[0] + u2[0]
    by = u1[1] + u2[1]
    bl = math.hypot(bx, by)
    if bl == 0:
        logger.debug("zero bisector at %s, keeping corner", corner)
        return None

    t1 = (corner[0] + u1[0] * tangent_len, corner[1] + u1[1] * tangent_len)
    t2 = (corner[0] + u2[0] * tangent_len, corner[1] + u2[1] * tangent_len)
    center_dist = radius / math.sin(half)
    center = (corner[0] + bx / bl * center_dist, corner[1] + by / bl * center_dist)

    start = math.atan2(t1[1] - center[1], t1[0] - center[0])
    end = math.atan2(t2[1] - center[1], t2[0] - center[0])
    delta = end - start
    while delta <= -math.pi:
        delta += 2 * math.pi
    while delta > math.pi:
        delta -= 2 * math.pi

    turn = math.pi - interior
    steps = max(5, math.floor(turn * 10))
    arc = [t1]
    for k in range(1, steps):
        a = start + delta * k / steps
        arc.append((center[0] + radius * math.cos(a), center[1] + radius * math.sin(a)))
    arc.append(t2)
    return arc


def _circular_corners(anchors: list[Coordinate], tension: float, settings: CurveSettings) -> list[Coordinate]:
    origin = anchors[0]
    pts = project(anchors, origin)
    out: list[XY] = [pts[0]]

    for i in range(1, len(pts) - 1):
        angle = calculate_corner_angle(pts[i - 1], pts[i], pts[i + 1])
        radius = corner_radius(angle, tension, settings)
        arc = _fillet(pts[i - 1], pts[i], pts[i + 1], radius, settings) if radius > 0 else None
        if arc is None:
            out.append(pts[i])
        else:
            out.extend(arc)

    out.append(pts[-1])
    return [to_lat_lng(p, origin) for p in out]


def insert_anchor(anchors: Sequence[Coordinate], point: Coordinate) -> tuple[list[Coordinate], int]:
    """Insert ``point`` into the anchor span it lies closest to.

    Returns the new anchor list and the index the point landed at. The caller
    rebuilds the full curve from the new anchors.
    """
    anchors = list(anchors)
    if len(anchors) < 2:
        anchors.append(point)
        return anchors, len(anchors) - 1

    origin = anchors[0]
    pts = project(anchors, origin)
    p = project([point], origin)[0]
    best_index = 1
    best_dist = math.inf
    for i in range(1, len(pts)):
        dist, _ = distance_point_to_segment(p, pts[i - 1], pts[i])
        if dist < best_dist:
            best_dist = dist
            best_index = i
    anchors.insert(best_index, point)
    return anchors, best_index


def move_anchor(anchors: Sequence[Coordinate], index: int, position: Coordinate) -> list[Coordinate]:
    """Move an interior anchor. End anchors are fixed, so moving them is a no-op."""
    anchors = list(anchors)
    if not 0 < index < len(anchors) - 1:
        logger.debug("anchor %d is an endpoint or out of range, not moved", index)
        return anchors
    anchors[index] = position
    return anchors


def remove_anchor(anchors: Sequence[Coordinate], index: int) -> list[Coordinate]:
    """Remove an interior anchor. End anchors cannot be removed."""
    anchors = list(anchors)
    if not 0 < index < len(anchors) - 1:
        logger.debug("anchor %d is an endpoint or out of range, not removed", index)
        return anchors
    del anchors[index]
    return anchors


def extract_anchor_points(path: Sequence[Coordinate], max_points: int = 8) -> list[Coordinate]:
    """Pick up to ``max_points`` evenly spaced vertices of a dense path as anchors.

    Used to make a committed pipe editable again; the ends are always kept.
    """
    path = list(path)
    max_points = max(2, max_points)
    if len(path) <= max_points:
        return path
    last = len(path) - 1
    indices = sorted({round(k * last / (max_points - 1)) for k in range(max_points)})
    return [path[i] for i in indices]
