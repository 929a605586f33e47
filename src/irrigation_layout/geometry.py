"""Planar geometry kernel and the local tangent-plane projection.

Coordinates are projected with an equirectangular approximation around an
origin. This is accurate for field-sized areas (a few km); error grows with
extent and with latitude.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from .models import Coordinate

METERS_PER_DEG_LAT = 111320.0
EARTH_RADIUS_M = 6371008.8

XY = tuple[float, float]


def meters_per_deg_lng(lat: float) -> float:
    return METERS_PER_DEG_LAT * math.cos(math.radians(lat))


def to_local_meters(p: Coordinate, origin: Coordinate) -> XY:
    """Project ``p`` to (x east, y north) meters relative to ``origin``."""
    return (
        (p.lng - origin.lng) * meters_per_deg_lng(origin.lat),
        (p.lat - origin.lat) * METERS_PER_DEG_LAT,
    )


def to_lat_lng(xy: XY, origin: Coordinate) -> Coordinate:
    """Inverse of :func:`to_local_meters`."""
    x, y = xy
    m_lng = meters_per_deg_lng(origin.lat)
    lng = origin.lng + (x / m_lng if m_lng else 0.0)
    return Coordinate(lat=origin.lat + y / METERS_PER_DEG_LAT, lng=lng)


def project(points: Iterable[Coordinate], origin: Coordinate) -> list[XY]:
    return [to_local_meters(p, origin) for p in points]


def rotate(xy: XY, angle_rad: float) -> XY:
    """Rotate counter-clockwise about the origin."""
    cos_a = math.cos(angle_rad)
    sin_a = math.sin(angle_rad)
    x, y = xy
    return (x * cos_a - y * sin_a, x * sin_a + y * cos_a)


def point_in_polygon(point: XY, polygon: Sequence[XY]) -> bool:
    """Ray-casting parity test. The polygon may be open or closed.

    Points exactly on an edge may be reported either way.
    """
    if len(polygon) < 3:
        return False
    x, y = point
    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def coordinate_in_polygon(point: Coordinate, polygon: Sequence[Coordinate]) -> bool:
    """:func:`point_in_polygon` on lat/lng, treating (lng, lat) as the plane."""
    return point_in_polygon((point.lng, point.lat), [(c.lng, c.lat) for c in polygon])


def distance(a: XY, b: XY) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def distance_point_to_segment(p: XY, a: XY, b: XY) -> tuple[float, XY]:
    """Return the distance from ``p`` to segment ``ab`` and the closest point."""
    abx = b[0] - a[0]
    aby = b[1] - a[1]
    len_sq = abx * abx + aby * aby
    if len_sq == 0:
        return math.hypot(p[0] - a[0], p[1] - a[1]), a
    t = ((p[0] - a[0]) * abx + (p[1] - a[1]) * aby) / len_sq
    t = max(0.0, min(1.0, t))
    closest = (a[0] + t * abx, a[1] + t * aby)
    return math.hypot(p[0] - closest[0], p[1] - closest[1]), closest


def segment_intersection(p1: XY, p2: XY, p3: XY, p4: XY) -> XY | None:
    """Intersection of segments p1p2 and p3p4, endpoints inclusive.

    Returns ``None`` when the segments miss each other or are parallel
    (including collinear overlaps, which have no unique point).
    """
    d1x = p2[0] - p1[0]
    d1y = p2[1] - p1[1]
    d2x = p4[0] - p3[0]
    d2y = p4[1] - p3[1]
    denom = d1x * d2y - d1y * d2x
    if denom == 0:
        return None
    ox = p3[0] - p1[0]
    oy = p3[1] - p1[1]
    t = (ox * d2y - oy * d2x) / denom
    u = (ox * d1y - oy * d1x) / denom
    if 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0:
        return (p1[0] + t * d1x, p1[1] + t * d1y)
    return None


def polyline_intersections(a: Sequence[XY], b: Sequence[XY]) -> list[XY]:
    """All segment-segment intersections between two polylines, in path order of ``a``."""
    hits: list[XY] = []
    for i in range(1, len(a)):
        for j in range(1, len(b)):
            ip = segment_intersection(a[i - 1], a[i], b[j - 1], b[j])
            if ip is None:
                continue
            # adjacent segments share vertices; keep one hit per location
            if any(math.hypot(ip[0] - h[0], ip[1] - h[1]) < 1e-9 for h in hits):
                continue
            hits.append(ip)
    return hits


def distance_to_polyline(p: XY, line: Sequence[XY]) -> tuple[float, XY, int]:
    """Closest approach of ``p`` to a polyline.

    Returns (distance, closest point, index of the segment's first vertex).
    """
    if len(line) == 1:
        return math.hypot(p[0] - line[0][0], p[1] - line[0][1]), line[0], 0
    best = (math.inf, line[0], 0)
    for i in range(1, len(line)):
        d, closest = distance_point_to_segment(p, line[i - 1], line[i])
        if d < best[0]:
            best = (d, closest, i - 1)
    return best


def polygon_edges(polygon: Sequence[XY]) -> list[tuple[XY, XY]]:
    """Edges of a polygon ring, closing it if needed."""
    if len(polygon) < 2:
        return []
    ring = list(polygon)
    if ring[0] != ring[-1]:
        ring.append(ring[0])
    return [(ring[i], ring[i + 1]) for i in range(len(ring) - 1)]


def polygon_centroid(points: Sequence[Coordinate]) -> Coordinate:
    """Vertex average; good enough as a projection origin."""
    n = len(points)
    return Coordinate(
        lat=sum(p.lat for p in points) / n,
        lng=sum(p.lng for p in points) / n,
    )


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in meters."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def clamp_unit(value: float) -> float:
    """Clamp to [-1, 1] before acos/asin."""
    return max(-1.0, min(1.0, value))
